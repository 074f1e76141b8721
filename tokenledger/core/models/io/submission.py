"""
Submission I/O models.

Request and response schemas of the HTTP API: the submission payload posted by
the CLI, the submit response, the error envelope and the ledger read view.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field

from ..base import WireSchema
from ..domain.ledger import SourceUsage
from ..domain.usage import (
    DailyContribution,
    DataSummary,
    DateRange,
    YearSummary,
)


class SubmissionMeta(WireSchema):
    generated_at: str
    version: str
    date_range: DateRange


class SubmissionPayload(WireSchema):
    """Complete usage data generated by one CLI installation."""

    meta: SubmissionMeta
    summary: DataSummary
    years: List[YearSummary]
    contributions: List[DailyContribution]


class SubmissionMetrics(WireSchema):
    total_tokens: int
    total_cost: float
    date_range: DateRange
    active_days: int
    sources: List[str]


class SubmitResponse(WireSchema):
    success: bool = True
    submission_id: str
    username: str
    metrics: SubmissionMetrics
    mode: Literal["create", "merge"]
    warnings: Optional[List[str]] = None


class ErrorResponse(WireSchema):
    error: str
    details: Optional[List[str]] = None
    error_id: Optional[str] = None


class LedgerDay(WireSchema):
    """One persisted day, with device partitions folded away."""

    date: str
    tokens: int
    cost: float
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_write_tokens: int
    reasoning_tokens: int
    source_breakdown: Dict[str, SourceUsage]
    model_breakdown: Dict[str, int]


class LedgerAggregate(WireSchema):
    """The user's recomputed submission aggregate."""

    submission_id: str
    total_tokens: int
    total_cost: float
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_write_tokens: int
    reasoning_tokens: int
    active_days: int
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    sources_used: List[str] = Field(default_factory=list)
    models_used: List[str] = Field(default_factory=list)
    submission_hash: Optional[str] = None
    cli_version: Optional[str] = None
    updated_at: Optional[datetime] = None


class LedgerView(WireSchema):
    username: str
    aggregate: Optional[LedgerAggregate] = None
    days: List[LedgerDay] = Field(default_factory=list)
