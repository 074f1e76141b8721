"""
Usage aggregation.

Turns a flat list of :class:`UsageEvent` records into per-day contributions,
per-year summaries and an overall summary, and assembles them into a
submission payload.

Events are sorted before they are folded so that the same event set always
produces the same output, including floating point cost sums, independent of
the order the session parsers emitted them in.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.domain.usage import (
    DailyContribution,
    DailyTotals,
    DataSummary,
    DateRange,
    SourceContribution,
    TokenBreakdown,
    UsageEvent,
    YearSummary,
)
from ..models.io.submission import SubmissionMeta, SubmissionPayload
from ..pricing.resolver import PricingResolver

logger = logging.getLogger(__name__)


@dataclass
class AggregationOptions:
    """Filters applied to events before aggregation.

    ``since`` and ``until`` are inclusive ``YYYY-MM-DD`` bounds on the UTC
    event date; ``year`` keeps a single ``YYYY``.
    """

    sources: Optional[Sequence[str]] = None
    since: Optional[str] = None
    until: Optional[str] = None
    year: Optional[str] = None

    def accepts(self, event: UsageEvent) -> bool:
        if self.sources is not None and event.source not in self.sources:
            return False
        date = event.date
        if self.since is not None and date < self.since:
            return False
        if self.until is not None and date > self.until:
            return False
        if self.year is not None and not date.startswith(f"{self.year}-"):
            return False
        return True


@dataclass
class _SourceAccumulator:
    source: str
    model_id: str
    provider_id: Optional[str]
    tokens: TokenBreakdown = field(default_factory=TokenBreakdown.zero)
    cost: float = 0.0
    messages: int = 0

    def add(self, tokens: TokenBreakdown, cost: float) -> None:
        self.tokens = self.tokens + tokens
        self.cost += cost
        self.messages += 1


def _event_sort_key(event: UsageEvent) -> Tuple:
    t = event.tokens
    return (
        event.timestamp_ms,
        event.source,
        event.model_id,
        event.provider_id,
        t.input,
        t.output,
        t.cache_read,
        t.cache_write,
        t.reasoning,
        event.cost if event.cost is not None else -1.0,
    )


def calculate_intensity(cost: float, max_cost: float) -> int:
    """
    Grade a day's cost relative to the highest single-day cost.

    Thresholds are strict: a ratio of exactly 0.75 grades 3, not 4.

    Args:
        cost: The day's total cost.
        max_cost: The highest daily cost in the set.

    Returns:
        int: Intensity between 0 and 4.
    """
    if cost <= 0 or max_cost <= 0:
        return 0
    ratio = cost / max_cost
    if ratio > 0.75:
        return 4
    if ratio > 0.5:
        return 3
    if ratio > 0.25:
        return 2
    return 1


def aggregate_by_date(events: Iterable[UsageEvent], resolver: PricingResolver) -> List[DailyContribution]:
    """
    Group usage events into daily contributions.

    Each event counts as one message. Within a day, events are grouped by
    ``(source, model_id)``; the first provider id seen for a group is kept.

    Args:
        events: Normalized usage events.
        resolver: Pricing resolver used to cost each event.

    Returns:
        List[DailyContribution]: Days sorted by date with intensities assigned.
    """
    days: Dict[str, Dict[Tuple[str, str], _SourceAccumulator]] = defaultdict(dict)
    for event in sorted(events, key=_event_sort_key):
        cost = resolver.cost_for(event.model_id, event.tokens, event.cost)
        groups = days[event.date]
        key = (event.source, event.model_id)
        acc = groups.get(key)
        if acc is None:
            acc = _SourceAccumulator(
                source=event.source,
                model_id=event.model_id,
                provider_id=event.provider_id or None,
            )
            groups[key] = acc
        acc.add(event.tokens, cost)

    contributions: List[DailyContribution] = []
    for date in sorted(days):
        accs = [days[date][key] for key in sorted(days[date])]
        sources = [
            SourceContribution(
                source=a.source,
                model_id=a.model_id,
                provider_id=a.provider_id,
                tokens=a.tokens,
                cost=a.cost,
                messages=a.messages,
            )
            for a in accs
        ]
        breakdown = sum((s.tokens for s in sources), TokenBreakdown.zero())
        contributions.append(
            DailyContribution(
                date=date,
                totals=DailyTotals(
                    tokens=breakdown.total,
                    cost=sum(s.cost for s in sources),
                    messages=sum(s.messages for s in sources),
                ),
                intensity=0,
                token_breakdown=breakdown,
                sources=sources,
            )
        )

    max_cost = max((c.totals.cost for c in contributions), default=0.0)
    for contribution in contributions:
        contribution.intensity = calculate_intensity(contribution.totals.cost, max_cost)
    return contributions


def calculate_years(contributions: Sequence[DailyContribution]) -> List[YearSummary]:
    """Group days by 4-digit year with summed totals and the observed [min, max] date."""
    grouped: Dict[str, List[DailyContribution]] = defaultdict(list)
    for c in contributions:
        grouped[c.date[:4]].append(c)

    years: List[YearSummary] = []
    for year in sorted(grouped):
        days = grouped[year]
        dates = [d.date for d in days]
        years.append(
            YearSummary(
                year=year,
                total_tokens=sum(d.totals.tokens for d in days),
                total_cost=sum(d.totals.cost for d in days),
                range=DateRange(start=min(dates), end=max(dates)),
            )
        )
    return years


def calculate_summary(contributions: Sequence[DailyContribution]) -> DataSummary:
    total_tokens = sum(c.totals.tokens for c in contributions)
    total_cost = sum(c.totals.cost for c in contributions)
    active_days = sum(1 for c in contributions if c.totals.tokens > 0)
    sources = sorted({s.source for c in contributions for s in c.sources})
    models = sorted({s.model_id for c in contributions for s in c.sources})
    return DataSummary(
        total_tokens=total_tokens,
        total_cost=total_cost,
        total_days=len(contributions),
        active_days=active_days,
        average_per_day=total_cost / active_days if active_days else 0.0,
        max_cost_in_single_day=max((c.totals.cost for c in contributions), default=0.0),
        sources=sources,
        models=models,
    )


def build_submission(
    events: Iterable[UsageEvent],
    resolver: PricingResolver,
    options: Optional[AggregationOptions] = None,
    version: str = "1.0.0",
    generated_at: Optional[str] = None,
) -> SubmissionPayload:
    """
    Aggregate usage events into a complete submission payload.

    Args:
        events: Normalized usage events from the session parsers.
        resolver: Pricing resolver used to cost each event.
        options: Optional source and date filters.
        version: Client version recorded in ``meta.version``.
        generated_at: ISO-8601 timestamp for ``meta.generated_at``; defaults to now (UTC).

    Returns:
        SubmissionPayload: Payload ready to be validated and submitted.
    """
    selected = list(events)
    if options is not None:
        selected = [e for e in selected if options.accepts(e)]

    contributions = aggregate_by_date(selected, resolver)
    if generated_at is None:
        generated_at = datetime.now(timezone.utc).isoformat()

    start = contributions[0].date if contributions else ""
    end = contributions[-1].date if contributions else ""
    logger.info(f"Aggregated {len(selected)} events into {len(contributions)} days ({start or '-'}..{end or '-'})")

    # an empty event set yields an empty date range, which the pattern would reject
    return SubmissionPayload(
        meta=SubmissionMeta(
            generated_at=generated_at,
            version=version,
            date_range=DateRange.model_construct(start=start, end=end),
        ),
        summary=calculate_summary(contributions),
        years=calculate_years(contributions),
        contributions=contributions,
    )
