"""Domain models: usage events, daily contributions and stored ledger entries."""

from .ledger import LEGACY_DEVICE_ID, SourceBreakdown, SourceUsage, UsageTotals
from .usage import (
    KNOWN_SOURCES,
    DailyContribution,
    DailyTotals,
    DataSummary,
    DateRange,
    SourceContribution,
    SourceName,
    TokenBreakdown,
    UsageEvent,
    YearSummary,
)

__all__ = [
    "KNOWN_SOURCES",
    "LEGACY_DEVICE_ID",
    "DailyContribution",
    "DailyTotals",
    "DataSummary",
    "DateRange",
    "SourceBreakdown",
    "SourceContribution",
    "SourceName",
    "SourceUsage",
    "TokenBreakdown",
    "UsageEvent",
    "UsageTotals",
    "YearSummary",
]
