"""
Daily breakdown entity.

One row per (submission, date). ``source_breakdown`` holds the
device-partitioned per-source JSON described in
``tokenledger.core.models.domain.ledger``; the numeric columns and
``model_breakdown`` are derived from it on every write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import BigInteger, UniqueConstraint
from sqlmodel import Field

from ..base import Base, JSONVariant, new_id, utc_now_naive

# 1: source entries without device partitions, 2: every source entry partitioned
SCHEMA_VERSION_LEGACY = 1
SCHEMA_VERSION_PARTITIONED = 2


class DailyBreakdown(Base, table=True):
    """Persisted usage of one user on one UTC day.

    Table: daily_breakdown
    """

    __tablename__ = "daily_breakdown"
    __table_args__ = (UniqueConstraint("submission_id", "date", name="uq_daily_breakdown_submission_date"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    submission_id: str = Field(foreign_key="submissions.id", max_length=36, index=True)
    date: str = Field(max_length=10, index=True)

    tokens: int = Field(default=0, sa_type=BigInteger)
    cost: float = Field(default=0.0)
    input_tokens: int = Field(default=0, sa_type=BigInteger)
    output_tokens: int = Field(default=0, sa_type=BigInteger)
    cache_read_tokens: int = Field(default=0, sa_type=BigInteger)
    cache_write_tokens: int = Field(default=0, sa_type=BigInteger)
    reasoning_tokens: int = Field(default=0, sa_type=BigInteger)
    messages: int = Field(default=0)

    schema_version: int = Field(default=SCHEMA_VERSION_PARTITIONED)
    source_breakdown: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONVariant)
    model_breakdown: Dict[str, int] = Field(default_factory=dict, sa_type=JSONVariant)

    created_at: datetime = Field(default_factory=utc_now_naive)
    updated_at: datetime = Field(default_factory=utc_now_naive)

    def __repr__(self) -> str:
        return f"DailyBreakdown(id={self.id}, date={self.date}, tokens={self.tokens})"
