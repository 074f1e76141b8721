"""
Submission Endpoint.

Receives usage data from a CLI installation, validates it and merges it into
the user's ledger. The merge is idempotent: a blind retry of the same payload
after any failure is always safe.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from tokenledger.core.errors import SubmissionValidationError
from tokenledger.core.logging_config import get_logger
from tokenledger.core.models.domain.usage import DateRange
from tokenledger.core.models.io.submission import ErrorResponse, SubmissionMetrics, SubmitResponse
from tokenledger.core.validation.submission import normalize_submission_data, validate_submission
from tokenledger.server.services.deps import AuthenticatedDeviceDep, SubmissionMergerDep

logger = get_logger(__name__)

router = APIRouter(tags=["submissions"])


@router.post(
    "/submit",
    response_model=SubmitResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Submit Usage Data",
    description=(
        "Merge a full usage snapshot of one CLI installation into the caller's ledger. "
        "Only the sources present in the submission are replaced for this device; "
        "other sources and other devices are preserved."
    ),
    response_description="Merge result with the recomputed user totals.",
    responses={
        200: {"description": "Submission merged"},
        400: {"model": ErrorResponse, "description": "Invalid JSON, validation failure or empty submission"},
        401: {"model": ErrorResponse, "description": "Missing, invalid or expired API token"},
        500: {"model": ErrorResponse, "description": "Store failure; the submission can be retried as is"},
    },
)
async def submit(request: Request, device: AuthenticatedDeviceDep, merger: SubmissionMergerDep) -> SubmitResponse:
    """
    Submit token usage data.

    - **Authorization**: ``Bearer <api token>``; the token identifies the device.
    - **Body**: the submission payload generated by the CLI.

    Validation problems are all reported together in ``details``; non-fatal
    issues come back as ``warnings`` on success.
    """
    try:
        raw = await request.json()
    except ValueError as exc:
        raise SubmissionValidationError([], message="Invalid JSON body") from exc

    normalize_submission_data(raw)
    result = validate_submission(raw)
    if not result.valid or result.data is None:
        raise SubmissionValidationError(result.errors, result.warnings)

    payload = result.data
    if not payload.contributions:
        raise SubmissionValidationError([], message="No contribution data to submit")

    outcome = await merger.merge(device.user_id, device.device_id, payload)
    aggregate = outcome.aggregate
    logger.info(
        f"Accepted submission from {device.username} ({outcome.mode}) with {len(payload.contributions)} day(s)"
    )
    return SubmitResponse(
        submission_id=outcome.submission_id,
        username=device.username,
        metrics=SubmissionMetrics(
            total_tokens=aggregate.total_tokens,
            total_cost=aggregate.total_cost,
            date_range=DateRange(start=aggregate.date_start, end=aggregate.date_end),
            active_days=aggregate.active_days,
            sources=aggregate.sources_used,
        ),
        mode=outcome.mode,
        warnings=result.warnings or None,
    )
