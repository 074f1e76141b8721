"""
Ledger domain models.

Shapes of the JSON stored in a day row's ``source_breakdown`` column:

    {source: {tokens, cost, input, output, cacheRead, cacheWrite, reasoning,
              messages, models: {model_id: UsageTotals},
              devices: {device_id: SourceUsage}}}

A source's top-level totals and ``models`` are always derived from its
``devices`` partitions. Entries written before device partitioning have no
``devices`` map (and very old ones carry a single ``modelId`` instead of
``models``).
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import Field

from ..base import WireSchema
from .usage import SourceContribution

LEGACY_DEVICE_ID = "__legacy__"


class UsageTotals(WireSchema):
    tokens: int = 0
    cost: float = 0.0
    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    reasoning: int = 0
    messages: int = 0

    @classmethod
    def from_contribution(cls, contribution: SourceContribution) -> "UsageTotals":
        t = contribution.tokens
        return cls(
            tokens=t.total,
            cost=contribution.cost,
            input=t.input,
            output=t.output,
            cache_read=t.cache_read,
            cache_write=t.cache_write,
            reasoning=t.reasoning,
            messages=contribution.messages,
        )

    def totals(self) -> "UsageTotals":
        """Copy of the counters only, dropping any subclass detail."""
        return UsageTotals(
            tokens=self.tokens,
            cost=self.cost,
            input=self.input,
            output=self.output,
            cache_read=self.cache_read,
            cache_write=self.cache_write,
            reasoning=self.reasoning,
            messages=self.messages,
        )

    def __add__(self, other: "UsageTotals") -> "UsageTotals":
        if not isinstance(other, UsageTotals):
            return NotImplemented
        return UsageTotals(
            tokens=self.tokens + other.tokens,
            cost=self.cost + other.cost,
            input=self.input + other.input,
            output=self.output + other.output,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            reasoning=self.reasoning + other.reasoning,
            messages=self.messages + other.messages,
        )


class SourceUsage(UsageTotals):
    """Totals of one source on one day, with per-model detail."""

    models: Dict[str, UsageTotals] = Field(default_factory=dict)


class SourceBreakdown(SourceUsage):
    """Persisted entry of one source on one day, partitioned by device."""

    devices: Optional[Dict[str, SourceUsage]] = None
    model_id: Optional[str] = None

    @property
    def is_partitioned(self) -> bool:
        return self.devices is not None

    def public_view(self) -> SourceUsage:
        """The entry without device partitions, as shown to readers."""
        models = dict(self.models)
        if not models and self.model_id:
            models = {self.model_id: self.totals()}
        return SourceUsage(**self.totals().model_dump(), models=models)
