"""
Submission validation.

Structural validation is delegated to the pydantic schema of
:class:`SubmissionPayload`; semantic checks then look for internally
inconsistent or impossible data. Nothing here fails fast: every problem found
is collected so a client can fix all of them in one round trip.

Errors reject the submission:

- a contribution date, or the declared date range end, after today (UTC);
- a declared token total differing from the recomputed sum by more than
  ``max(1% of declared, 100)``;
- two contributions sharing a date.

Warnings are surfaced to the caller but do not block the merge.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import Counter
from datetime import date as date_type
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import Field, ValidationError

from ..models.base import BaseSchema
from ..models.io.submission import SubmissionPayload

logger = logging.getLogger(__name__)

UNKNOWN_MODEL_ID = "unknown"

TOKEN_TOLERANCE_RATIO = 0.01
TOKEN_TOLERANCE_ABSOLUTE = 100
COST_TOLERANCE_RATIO = 0.01
COST_TOLERANCE_ABSOLUTE = 0.1
DAY_SOURCE_TOLERANCE_RATIO = 0.05
DAY_SOURCE_MIN_TOKENS = 100
YEAR_TOLERANCE_RATIO = 0.01
YEAR_MIN_TOKENS = 1000


class ValidationResult(BaseSchema):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    data: Optional[SubmissionPayload] = None


def normalize_submission_data(raw: Any) -> Any:
    """
    Repair model ids in place before validation.

    A missing, non-string or blank ``modelId`` becomes ``"unknown"``; other
    model ids are stripped of surrounding whitespace. Anything that is not
    shaped like a submission is left alone for the schema to reject.

    Args:
        raw: Decoded JSON body.

    Returns:
        Any: The same object, for chaining.
    """
    if not isinstance(raw, dict):
        return raw
    contributions = raw.get("contributions")
    if not isinstance(contributions, list):
        return raw
    for day in contributions:
        if not isinstance(day, dict) or not isinstance(day.get("sources"), list):
            continue
        for source in day["sources"]:
            if not isinstance(source, dict):
                continue
            model_id = source.get("modelId")
            if not isinstance(model_id, str) or not model_id.strip():
                source["modelId"] = UNKNOWN_MODEL_ID
            else:
                source["modelId"] = model_id.strip()
    return raw


def _format_schema_errors(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        messages.append(f"{path}: {error['msg']}" if path else error["msg"])
    return messages


def _exceeds(diff: float, declared: float, ratio: float, absolute: float) -> bool:
    return diff > declared * ratio and diff > absolute


def check_semantics(payload: SubmissionPayload, today: str) -> ValidationResult:
    """
    Run the semantic checks on an already parsed payload.

    Args:
        payload: Structurally valid submission.
        today: Current UTC date as ``YYYY-MM-DD``.

    Returns:
        ValidationResult: Collected errors and warnings.
    """
    errors: List[str] = []
    warnings: List[str] = []
    contributions = payload.contributions
    date_range = payload.meta.date_range

    if date_range.end > today:
        errors.append(f"Date range extends into the future: {date_range.end}")
    for day in contributions:
        if day.date > today:
            errors.append(f"Future date found in contributions: {day.date}")

    calculated_tokens = sum(day.totals.tokens for day in contributions)
    calculated_cost = sum(day.totals.cost for day in contributions)
    declared_tokens = payload.summary.total_tokens
    declared_cost = payload.summary.total_cost

    if _exceeds(abs(calculated_tokens - declared_tokens), declared_tokens, TOKEN_TOLERANCE_RATIO, TOKEN_TOLERANCE_ABSOLUTE):
        errors.append(f"Token total mismatch: summary={declared_tokens}, calculated={calculated_tokens}")
    if _exceeds(abs(calculated_cost - declared_cost), declared_cost, COST_TOLERANCE_RATIO, COST_TOLERANCE_ABSOLUTE):
        warnings.append(f"Cost total minor mismatch: summary={declared_cost:.2f}, calculated={calculated_cost:.2f}")

    active_days = sum(1 for day in contributions if day.totals.tokens > 0)
    if active_days != payload.summary.active_days:
        warnings.append(f"Active days mismatch: summary={payload.summary.active_days}, calculated={active_days}")

    for day in contributions:
        if not day.sources:
            continue
        source_tokens = sum(s.tokens.total for s in day.sources)
        diff = abs(source_tokens - day.totals.tokens)
        if diff > day.totals.tokens * DAY_SOURCE_TOLERANCE_RATIO and day.totals.tokens > DAY_SOURCE_MIN_TOKENS:
            warnings.append(f"Day {day.date}: source tokens ({source_tokens}) don't match total ({day.totals.tokens})")

    dates = sorted(day.date for day in contributions)
    if dates:
        if dates[0] < date_range.start:
            warnings.append(f"Contribution date {dates[0]} is before dateRange.start {date_range.start}")
        if dates[-1] > date_range.end:
            warnings.append(f"Contribution date {dates[-1]} is after dateRange.end {date_range.end}")

    for day_date, count in Counter(day.date for day in contributions).items():
        if count > 1:
            errors.append(f"Duplicate date found: {day_date}")

    for year in payload.years:
        year_tokens = sum(day.totals.tokens for day in contributions if day.date.startswith(year.year))
        diff = abs(year_tokens - year.total_tokens)
        if diff > year.total_tokens * YEAR_TOLERANCE_RATIO and year_tokens > YEAR_MIN_TOKENS:
            warnings.append(f"Year {year.year} token mismatch: summary={year.total_tokens}, calculated={year_tokens}")

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        data=payload if not errors else None,
    )


def validate_submission(raw: Any, today: Optional[date_type] = None) -> ValidationResult:
    """
    Validate a decoded submission body.

    Schema errors short-circuit the semantic checks, since those need a
    well-formed payload to run on.

    Args:
        raw: Decoded JSON body, ideally passed through :func:`normalize_submission_data` first.
        today: Reference date for the future-date checks; defaults to the current UTC date.

    Returns:
        ValidationResult: ``data`` holds the parsed payload when ``valid``.
    """
    try:
        payload = SubmissionPayload.model_validate(raw)
    except ValidationError as exc:
        errors = _format_schema_errors(exc)
        logger.debug(f"Submission failed schema validation with {len(errors)} error(s)")
        return ValidationResult(valid=False, errors=errors)

    if today is None:
        today = datetime.now(timezone.utc).date()
    result = check_semantics(payload, today.isoformat())
    if not result.valid:
        logger.info(f"Submission rejected: {'; '.join(result.errors)}")
    elif result.warnings:
        logger.info(f"Submission accepted with {len(result.warnings)} warning(s)")
    return result


def generate_submission_hash(payload: SubmissionPayload) -> str:
    """
    Fingerprint the shape of a submission.

    Covers the sorted declared sources, the declared date range, the number of
    contributions and the first and last contribution dates. Totals are left
    out because they change once a submission is merged.

    Args:
        payload: Parsed submission.

    Returns:
        str: First 16 hex characters of a SHA-256 digest.
    """
    dates = sorted(day.date for day in payload.contributions)
    content = {
        "sources": sorted(payload.summary.sources),
        "dateRange": {"start": payload.meta.date_range.start, "end": payload.meta.date_range.end},
        "daysCount": len(payload.contributions),
        "firstDay": dates[0] if dates else None,
        "lastDay": dates[-1] if dates else None,
    }
    encoded = json.dumps(content, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:16]
