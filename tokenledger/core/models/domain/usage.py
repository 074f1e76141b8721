"""
Usage domain models.

Token breakdowns, per-source contributions and the day / year / summary
structures produced by the aggregator and carried inside a submission.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from ..base import WireSchema

KNOWN_SOURCES = ("opencode", "claude", "codex", "gemini", "cursor", "amp", "droid")

SourceName = Literal["opencode", "claude", "codex", "gemini", "cursor", "amp", "droid"]

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
YEAR_PATTERN = r"^\d{4}$"

# 9999-12-31T23:59:59.999Z, the last instant datetime can represent
MAX_TIMESTAMP_MS = 253402300799999


class TokenBreakdown(WireSchema):
    """Token counts by kind.

    Componentwise addition makes this a commutative monoid with
    ``TokenBreakdown.zero()`` as identity, so ``sum(items, TokenBreakdown.zero())``
    works everywhere totals are combined.
    """

    model_config = ConfigDict(frozen=True)

    input: int = Field(ge=0)
    output: int = Field(ge=0)
    cache_read: int = Field(ge=0)
    cache_write: int = Field(ge=0)
    reasoning: int = Field(default=0, ge=0)

    @classmethod
    def zero(cls) -> "TokenBreakdown":
        return cls(input=0, output=0, cache_read=0, cache_write=0, reasoning=0)

    @property
    def total(self) -> int:
        return self.input + self.output + self.cache_read + self.cache_write + self.reasoning

    def __add__(self, other: "TokenBreakdown") -> "TokenBreakdown":
        if not isinstance(other, TokenBreakdown):
            return NotImplemented
        return TokenBreakdown(
            input=self.input + other.input,
            output=self.output + other.output,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            reasoning=self.reasoning + other.reasoning,
        )


class SourceContribution(WireSchema):
    """Usage of one (source, model) pair on one day."""

    source: SourceName
    model_id: str = Field(min_length=1)
    provider_id: Optional[str] = None
    tokens: TokenBreakdown
    cost: float = Field(ge=0)
    messages: int = Field(ge=0)


class DailyTotals(WireSchema):
    tokens: int = Field(ge=0)
    cost: float = Field(ge=0)
    messages: int = Field(ge=0)


class DailyContribution(WireSchema):
    """One UTC calendar day of usage, broken down by source and model."""

    date: str = Field(pattern=DATE_PATTERN)
    totals: DailyTotals
    intensity: int = Field(ge=0, le=4)
    token_breakdown: TokenBreakdown
    sources: List[SourceContribution]


class DateRange(WireSchema):
    start: str = Field(pattern=DATE_PATTERN)
    end: str = Field(pattern=DATE_PATTERN)


class YearSummary(WireSchema):
    year: str = Field(pattern=YEAR_PATTERN)
    total_tokens: int = Field(ge=0)
    total_cost: float = Field(ge=0)
    range: DateRange


class DataSummary(WireSchema):
    total_tokens: int = Field(ge=0)
    total_cost: float = Field(ge=0)
    total_days: int = Field(ge=0)
    active_days: int = Field(ge=0)
    average_per_day: float = Field(ge=0)
    max_cost_in_single_day: float = Field(ge=0)
    sources: List[SourceName]
    models: List[str]


class UsageEvent(WireSchema):
    """A single normalized usage record emitted by a session parser.

    ``cost`` is the cost the vendor log reported itself, if any; it is only
    used when no pricing entry resolves for ``model_id``.
    """

    source: SourceName
    model_id: str = Field(min_length=1)
    provider_id: str = ""
    timestamp_ms: int = Field(ge=0, le=MAX_TIMESTAMP_MS)
    tokens: TokenBreakdown
    cost: Optional[float] = Field(default=None, ge=0)

    @property
    def date(self) -> str:
        """UTC calendar date of the event as ``YYYY-MM-DD``."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
