"""Unit tests for the device-partitioned merge arithmetic.

These run without a database: stored rows are :class:`StoredDay` values and
the write plan is inspected directly.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest

from test.factories import day_entry, source_entry
from tokenledger.core.database.entities.daily_breakdown import SCHEMA_VERSION_LEGACY, SCHEMA_VERSION_PARTITIONED
from tokenledger.core.errors import InternalError
from tokenledger.core.ledger.merge import (
    StoredDay,
    build_model_breakdown,
    collapse_contributions,
    compute_submission_aggregate,
    day_columns,
    merge_source_breakdowns,
    parse_source_breakdown,
    plan_day_writes,
)
from tokenledger.core.models.domain.ledger import LEGACY_DEVICE_ID, SourceBreakdown
from tokenledger.core.models.domain.usage import DailyContribution, SourceContribution

NOW = datetime(2025, 6, 1, 12, 0, 0)


def contribution(**kwargs) -> SourceContribution:
    return SourceContribution.model_validate(source_entry(**kwargs))


def day(date: str, *sources: dict) -> DailyContribution:
    return DailyContribution.model_validate(day_entry(date, list(sources)))


def stored(date: str, breakdown: dict, row_id: str = "row-1", schema_version: int = SCHEMA_VERSION_PARTITIONED) -> StoredDay:
    return StoredDay.from_row(row_id, date, schema_version, breakdown)


def apply(plan_row: dict, date: str) -> StoredDay:
    """Turn a planned insert or update back into a stored day."""
    return StoredDay.from_row(plan_row["id"], date, plan_row["schema_version"], plan_row["source_breakdown"])


class TestCollapseContributions:
    """Test grouping one day's entries by source."""

    def test_groups_by_source_with_model_detail(self):
        snapshot = collapse_contributions(
            [
                contribution(model_id="claude-opus-4-5", input=10, output=5, cost=0.5),
                contribution(model_id="claude-sonnet-4-5", input=100, output=20, cost=1.0),
                contribution(source="codex", model_id="gpt-5", input=7, output=0, cost=0.1),
            ]
        )

        assert list(snapshot) == ["claude", "codex"]
        claude = snapshot["claude"]
        assert claude.tokens == 135
        assert claude.cost == pytest.approx(1.5)
        assert claude.messages == 2
        assert sorted(claude.models) == ["claude-opus-4-5", "claude-sonnet-4-5"]
        assert claude.models["claude-opus-4-5"].tokens == 15

    def test_duplicate_model_entries_are_summed(self):
        snapshot = collapse_contributions([contribution(input=10, output=0), contribution(input=5, output=0)])

        assert snapshot["claude"].models["claude-sonnet-4-5"].input == 15
        assert snapshot["claude"].messages == 2


class TestMergeSourceBreakdowns:
    """Test the per-source replacement of one device's partition."""

    def test_resubmission_replaces_instead_of_adding(self):
        first = merge_source_breakdowns({}, collapse_contributions([contribution(input=100, output=20)]), "laptop")

        second = merge_source_breakdowns(first, collapse_contributions([contribution(input=40, output=20)]), "laptop")

        assert second["claude"].tokens == 60
        assert list(second["claude"].devices) == ["laptop"]

    def test_identical_resubmission_is_a_no_op(self):
        incoming = collapse_contributions([contribution(input=100, output=20)])
        first = merge_source_breakdowns({}, incoming, "laptop")

        second = merge_source_breakdowns(first, incoming, "laptop")

        assert second["claude"].model_dump() == first["claude"].model_dump()

    def test_devices_add_up(self):
        laptop = merge_source_breakdowns({}, collapse_contributions([contribution(input=100, output=20, cost=1.0)]), "laptop")

        both = merge_source_breakdowns(
            laptop,
            collapse_contributions([contribution(input=50, output=10, cost=0.5)]),
            "desktop",
        )

        entry = both["claude"]
        assert entry.tokens == 180
        assert entry.cost == pytest.approx(1.5)
        assert sorted(entry.devices) == ["desktop", "laptop"]
        assert entry.devices["laptop"].tokens == 120
        assert entry.models["claude-sonnet-4-5"].tokens == 180

    def test_sources_absent_from_the_submission_are_untouched(self):
        existing = merge_source_breakdowns(
            {},
            collapse_contributions(
                [contribution(input=100, output=0), contribution(source="codex", model_id="gpt-5", input=70, output=0)]
            ),
            "laptop",
        )

        merged = merge_source_breakdowns(existing, collapse_contributions([contribution(input=10, output=0)]), "laptop")

        assert merged["claude"].tokens == 10
        assert merged["codex"] is existing["codex"]

    def test_legacy_entry_becomes_a_legacy_partition(self):
        legacy = parse_source_breakdown(
            {"claude": {"tokens": 500, "cost": 2.0, "input": 400, "output": 100, "messages": 3, "modelId": "claude-3-opus"}}
        )
        assert legacy["claude"].is_partitioned is False

        merged = merge_source_breakdowns(legacy, collapse_contributions([contribution(input=100, output=20, cost=1.0)]), "laptop")

        entry = merged["claude"]
        assert sorted(entry.devices) == [LEGACY_DEVICE_ID, "laptop"]
        assert entry.tokens == 620
        assert entry.cost == pytest.approx(3.0)
        assert entry.models["claude-3-opus"].tokens == 500
        assert entry.models["claude-sonnet-4-5"].tokens == 120


class TestDayColumns:
    """Test derivation of day row columns from source entries."""

    def test_day_totals_are_the_sum_over_sources(self):
        breakdown = merge_source_breakdowns(
            {},
            collapse_contributions(
                [
                    contribution(input=100, output=20, cache_read=5, reasoning=3, cost=1.0),
                    contribution(source="codex", model_id="gpt-5", input=30, output=10, cache_write=2, cost=0.25),
                ]
            ),
            "laptop",
        )

        columns = day_columns(breakdown)

        assert columns["tokens"] == 170
        assert columns["cost"] == pytest.approx(1.25)
        assert columns["input_tokens"] == 130
        assert columns["cache_read_tokens"] == 5
        assert columns["cache_write_tokens"] == 2
        assert columns["reasoning_tokens"] == 3
        assert columns["messages"] == 2
        assert columns["schema_version"] == SCHEMA_VERSION_PARTITIONED
        assert columns["model_breakdown"] == {"claude-sonnet-4-5": 128, "gpt-5": 42}

    def test_stored_json_is_camel_case(self):
        breakdown = merge_source_breakdowns({}, collapse_contributions([contribution(cache_read=5)]), "laptop")

        stored_json = day_columns(breakdown)["source_breakdown"]

        assert stored_json["claude"]["cacheRead"] == 5
        assert stored_json["claude"]["devices"]["laptop"]["models"]["claude-sonnet-4-5"]["cacheRead"] == 5
        assert "modelId" not in stored_json["claude"]

    def test_any_unpartitioned_source_keeps_the_legacy_schema_version(self):
        breakdown = parse_source_breakdown({"codex": {"tokens": 10, "input": 10, "modelId": "gpt-4o"}})
        breakdown = merge_source_breakdowns(breakdown, collapse_contributions([contribution()]), "laptop")

        assert day_columns(breakdown)["schema_version"] == SCHEMA_VERSION_LEGACY

    def test_model_breakdown_includes_legacy_single_model_entries(self):
        breakdown = parse_source_breakdown({"codex": {"tokens": 10, "input": 10, "modelId": "gpt-4o"}})

        assert build_model_breakdown(breakdown) == {"gpt-4o": 10}


class TestPlanDayWrites:
    """Test the in-memory write plan of a submission."""

    def test_new_days_are_inserted(self):
        plan = plan_day_writes(
            "sub-1",
            "laptop",
            [day("2025-01-11", source_entry()), day("2025-01-10", source_entry())],
            {},
            NOW,
        )

        assert [row["date"] for row in plan.inserts] == ["2025-01-10", "2025-01-11"]
        assert plan.updates == []
        row = plan.inserts[0]
        assert row["submission_id"] == "sub-1"
        assert row["tokens"] == 120
        assert row["created_at"] == NOW
        assert row["updated_at"] == NOW
        assert row["id"] != plan.inserts[1]["id"]

    def test_existing_days_are_updated_by_id(self):
        first = plan_day_writes("sub-1", "laptop", [day("2025-01-10", source_entry(input=100, output=20))], {}, NOW)
        existing = {"2025-01-10": apply(first.inserts[0], "2025-01-10")}

        plan = plan_day_writes("sub-1", "laptop", [day("2025-01-10", source_entry(input=40, output=20))], existing, NOW)

        assert plan.inserts == []
        assert len(plan.updates) == 1
        update = plan.updates[0]
        assert update["id"] == first.inserts[0]["id"]
        assert update["tokens"] == 60
        assert "created_at" not in update

    def test_existing_day_without_incoming_sources_is_left_alone(self):
        existing = {"2025-01-10": stored("2025-01-10", {"claude": {"tokens": 10, "input": 10, "modelId": "m"}})}

        plan = plan_day_writes("sub-1", "laptop", [day("2025-01-10")], existing, NOW)

        assert plan.inserts == []
        assert plan.updates == []

    def test_new_day_without_sources_is_inserted_empty(self):
        plan = plan_day_writes("sub-1", "laptop", [day("2025-01-10")], {}, NOW)

        assert plan.inserts[0]["tokens"] == 0
        assert plan.inserts[0]["source_breakdown"] == {}


class TestComputeSubmissionAggregate:
    """Test the fold of stored day rows into the user aggregate."""

    @staticmethod
    def row(date: str, tokens: int, cost: float, breakdown: dict) -> SimpleNamespace:
        return SimpleNamespace(
            date=date,
            tokens=tokens,
            cost=cost,
            input_tokens=tokens,
            output_tokens=0,
            cache_read_tokens=0,
            cache_write_tokens=0,
            reasoning_tokens=0,
            source_breakdown=breakdown,
        )

    def test_aggregate_is_the_sum_over_days(self):
        rows = [
            self.row("2025-01-12", 0, 0.0, {}),
            self.row("2025-01-10", 100, 1.0, {"claude": {"tokens": 100, "models": {"claude-sonnet-4-5": {"tokens": 100}}}}),
            self.row("2025-01-11", 50, 0.5, {"codex": {"tokens": 50, "modelId": "gpt-5"}}),
        ]

        aggregate = compute_submission_aggregate(rows)

        assert aggregate.total_tokens == 150
        assert aggregate.total_cost == pytest.approx(1.5)
        assert aggregate.input_tokens == 150
        assert aggregate.active_days == 2
        assert (aggregate.date_start, aggregate.date_end) == ("2025-01-10", "2025-01-12")
        assert aggregate.sources_used == ["claude", "codex"]
        assert aggregate.models_used == ["claude-sonnet-4-5", "gpt-5"]

    def test_no_rows(self):
        aggregate = compute_submission_aggregate([])

        assert aggregate.total_tokens == 0
        assert aggregate.date_start is None
        assert aggregate.sources_used == []


class TestSourceBreakdownModel:
    """Test the persisted source entry model."""

    def test_public_view_hides_devices(self):
        entry = SourceBreakdown.model_validate(
            {"tokens": 5, "models": {"m": {"tokens": 5}}, "devices": {"laptop": {"tokens": 5, "models": {"m": {"tokens": 5}}}}}
        )

        view = entry.public_view().model_dump(by_alias=True)

        assert "devices" not in view
        assert view["models"]["m"]["tokens"] == 5

    @pytest.mark.parametrize(
        "raw",
        [
            {"claude": {"tokens": "lots"}},
            {"claude": {"tokens": 5, "cost": float("inf")}},
            {"claude": {"tokens": 5, "devices": ["laptop"]}},
        ],
    )
    def test_unreadable_stored_breakdown_is_an_internal_error(self, raw):
        with pytest.raises(InternalError, match="Stored source breakdown is unreadable"):
            parse_source_breakdown(raw)

    def test_missing_breakdown_parses_as_empty(self):
        assert parse_source_breakdown(None) == {}
