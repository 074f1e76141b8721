"""Aggregation of usage events into submission payloads."""

from .aggregator import (
    AggregationOptions,
    aggregate_by_date,
    build_submission,
    calculate_intensity,
    calculate_summary,
    calculate_years,
)

__all__ = [
    "AggregationOptions",
    "aggregate_by_date",
    "build_submission",
    "calculate_intensity",
    "calculate_summary",
    "calculate_years",
]
