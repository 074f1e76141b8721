"""
Device-partitioned merge arithmetic.

Pure functions behind :class:`tokenledger.core.ledger.service.SubmissionMerger`.
Nothing here touches the database: stored day rows come in as
:class:`StoredDay` values and leave as lists of column dicts ready for a batch
insert or a batch update by primary key.

For one (user, day, source) the rules are:

- the incoming snapshot of a device replaces that device's partition
  wholesale, so resubmitting is idempotent;
- sources the submission does not mention for the day are left untouched;
- visible source totals are the sum over device partitions, day totals the sum
  over sources, and the user aggregate a fold over every stored day.

Every sum runs over sorted keys so identical inputs give identical floats.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..database.base import new_id
from ..database.entities.daily_breakdown import SCHEMA_VERSION_LEGACY, SCHEMA_VERSION_PARTITIONED
from ..errors import InternalError
from ..models.base import BaseSchema
from ..models.domain.ledger import LEGACY_DEVICE_ID, SourceBreakdown, SourceUsage, UsageTotals
from ..models.domain.usage import DailyContribution, SourceContribution


@dataclass
class StoredDay:
    """The parts of an existing day row the merge needs."""

    id: str
    date: str
    schema_version: int
    source_breakdown: Dict[str, SourceBreakdown]

    @classmethod
    def from_row(cls, id: str, date: str, schema_version: Optional[int], source_breakdown: Optional[Mapping[str, Any]]) -> "StoredDay":
        return cls(
            id=id,
            date=date,
            schema_version=schema_version or SCHEMA_VERSION_LEGACY,
            source_breakdown=parse_source_breakdown(source_breakdown),
        )


@dataclass
class DayWritePlan:
    inserts: List[Dict[str, Any]] = field(default_factory=list)
    updates: List[Dict[str, Any]] = field(default_factory=list)


class SubmissionAggregate(BaseSchema):
    total_tokens: int = 0
    total_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    reasoning_tokens: int = 0
    active_days: int = 0
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    sources_used: List[str] = []
    models_used: List[str] = []


def parse_source_breakdown(raw: Optional[Mapping[str, Any]]) -> Dict[str, SourceBreakdown]:
    """
    Parse a stored ``source_breakdown`` column.

    Raises:
        InternalError: The stored JSON does not match the breakdown shape.
    """
    try:
        return {name: SourceBreakdown.model_validate(entry) for name, entry in (raw or {}).items()}
    except ValidationError as exc:
        raise InternalError(f"Stored source breakdown is unreadable: {exc.error_count()} error(s)") from exc


def dump_source_breakdown(breakdown: Mapping[str, SourceBreakdown]) -> Dict[str, Any]:
    return {name: breakdown[name].model_dump(by_alias=True, exclude_none=True) for name in sorted(breakdown)}


def sum_totals(items: Iterable[UsageTotals]) -> UsageTotals:
    total = UsageTotals()
    for item in items:
        total = total + item
    return total


def collapse_contributions(sources: Sequence[SourceContribution]) -> Dict[str, SourceUsage]:
    """
    Group one day's incoming entries by source, with per-model detail.

    Duplicate ``(source, model_id)`` entries are summed.

    Args:
        sources: The day's source contributions as submitted.

    Returns:
        Dict[str, SourceUsage]: Snapshot of this device per source.
    """
    per_source: Dict[str, Dict[str, UsageTotals]] = {}
    for contribution in sources:
        models = per_source.setdefault(contribution.source, {})
        usage = UsageTotals.from_contribution(contribution)
        previous = models.get(contribution.model_id)
        models[contribution.model_id] = usage if previous is None else previous + usage

    snapshots: Dict[str, SourceUsage] = {}
    for name in sorted(per_source):
        models = {model_id: per_source[name][model_id] for model_id in sorted(per_source[name])}
        totals = sum_totals(models.values())
        snapshots[name] = SourceUsage(**totals.model_dump(), models=models)
    return snapshots


def fold_devices(devices: Mapping[str, SourceUsage]) -> SourceUsage:
    """Sum device partitions into source-level totals and per-model detail."""
    totals = UsageTotals()
    models: Dict[str, UsageTotals] = {}
    for device_id in sorted(devices):
        partition = devices[device_id]
        totals = totals + partition.totals()
        for model_id in sorted(partition.models):
            previous = models.get(model_id)
            usage = partition.models[model_id]
            models[model_id] = usage if previous is None else previous + usage
    return SourceUsage(**totals.model_dump(), models={m: models[m] for m in sorted(models)})


def partition_of(entry: SourceBreakdown) -> Dict[str, SourceUsage]:
    """
    Device partitions of a stored source entry.

    An entry written before device partitioning becomes a single
    ``__legacy__`` partition holding its totals, so it keeps counting next to
    the partitions written from now on.
    """
    if entry.devices is not None:
        return dict(entry.devices)
    return {LEGACY_DEVICE_ID: entry.public_view()}


def merge_source_breakdowns(
    existing: Mapping[str, SourceBreakdown],
    incoming: Mapping[str, SourceUsage],
    device_id: str,
) -> Dict[str, SourceBreakdown]:
    """
    Replace this device's partition for every incoming source.

    Args:
        existing: Stored source entries of the day (may be empty).
        incoming: This device's snapshot per source for the day.
        device_id: Id of the submitting API token.

    Returns:
        Dict[str, SourceBreakdown]: The merged source entries; untouched
        sources are carried over as they were.
    """
    merged: Dict[str, SourceBreakdown] = dict(existing)
    for name in sorted(incoming):
        devices = partition_of(existing[name]) if name in existing else {}
        devices[device_id] = incoming[name]
        devices = {d: devices[d] for d in sorted(devices)}
        folded = fold_devices(devices)
        merged[name] = SourceBreakdown(**folded.model_dump(), devices=devices)
    return merged


def day_totals(breakdown: Mapping[str, SourceBreakdown]) -> UsageTotals:
    return sum_totals(breakdown[name].totals() for name in sorted(breakdown))


def build_model_breakdown(breakdown: Mapping[str, SourceBreakdown]) -> Dict[str, int]:
    """Tokens per model across every source and device of the day."""
    result: Dict[str, int] = {}
    for name in sorted(breakdown):
        for model_id, usage in breakdown[name].public_view().models.items():
            result[model_id] = result.get(model_id, 0) + usage.tokens
    return {m: result[m] for m in sorted(result)}


def day_columns(breakdown: Mapping[str, SourceBreakdown]) -> Dict[str, Any]:
    """Column values of a day row derived from its source entries."""
    totals = day_totals(breakdown)
    partitioned = all(entry.is_partitioned for entry in breakdown.values())
    return {
        "tokens": totals.tokens,
        "cost": totals.cost,
        "input_tokens": totals.input,
        "output_tokens": totals.output,
        "cache_read_tokens": totals.cache_read,
        "cache_write_tokens": totals.cache_write,
        "reasoning_tokens": totals.reasoning,
        "messages": totals.messages,
        "schema_version": SCHEMA_VERSION_PARTITIONED if partitioned else SCHEMA_VERSION_LEGACY,
        "source_breakdown": dump_source_breakdown(breakdown),
        "model_breakdown": build_model_breakdown(breakdown),
    }


def plan_day_writes(
    submission_id: str,
    device_id: str,
    contributions: Sequence[DailyContribution],
    existing: Mapping[str, StoredDay],
    now: datetime,
) -> DayWritePlan:
    """
    Compute every day-level change of a submission in memory.

    Args:
        submission_id: Id of the user's submission aggregate row.
        device_id: Id of the submitting API token.
        contributions: The submission's days, one per date.
        existing: Stored day rows of the user keyed by date.
        now: Timestamp for ``created_at`` / ``updated_at``.

    Returns:
        DayWritePlan: Column dicts for one batch insert and one batch update.
    """
    plan = DayWritePlan()
    for day in sorted(contributions, key=lambda c: c.date):
        incoming = collapse_contributions(day.sources)
        stored = existing.get(day.date)
        if stored is None:
            merged = merge_source_breakdowns({}, incoming, device_id)
            plan.inserts.append(
                {
                    "id": new_id(),
                    "submission_id": submission_id,
                    "date": day.date,
                    "created_at": now,
                    "updated_at": now,
                    **day_columns(merged),
                }
            )
        elif incoming:
            merged = merge_source_breakdowns(stored.source_breakdown, incoming, device_id)
            plan.updates.append({"id": stored.id, "updated_at": now, **day_columns(merged)})
    return plan


def compute_submission_aggregate(days: Iterable[Any]) -> SubmissionAggregate:
    """
    Fold stored day rows into the user aggregate.

    Args:
        days: Every day row of the user; anything with the ``DailyBreakdown``
            column attributes.

    Returns:
        SubmissionAggregate: Totals, active days, date range and the sorted
        sets of sources and models used.
    """
    rows = sorted(days, key=lambda d: d.date)
    sources: set = set()
    models: set = set()
    for row in rows:
        breakdown = parse_source_breakdown(row.source_breakdown)
        sources.update(breakdown)
        for entry in breakdown.values():
            models.update(entry.public_view().models)
    return SubmissionAggregate(
        total_tokens=sum(r.tokens for r in rows),
        total_cost=sum(r.cost for r in rows),
        input_tokens=sum(r.input_tokens for r in rows),
        output_tokens=sum(r.output_tokens for r in rows),
        cache_read_tokens=sum(r.cache_read_tokens for r in rows),
        cache_write_tokens=sum(r.cache_write_tokens for r in rows),
        reasoning_tokens=sum(r.reasoning_tokens for r in rows),
        active_days=sum(1 for r in rows if r.tokens > 0),
        date_start=rows[0].date if rows else None,
        date_end=rows[-1].date if rows else None,
        sources_used=sorted(sources),
        models_used=sorted(models),
    )
