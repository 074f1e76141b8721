"""
User Ledger Endpoints.

Read-only access to a user's merged ledger for display code.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from tokenledger.core.models.domain.usage import DATE_PATTERN
from tokenledger.core.models.io.submission import ErrorResponse, LedgerView
from tokenledger.server.services.deps import LedgerReaderDep

router = APIRouter(tags=["users"])


@router.get(
    "/users/{username}/ledger",
    response_model=LedgerView,
    response_model_by_alias=True,
    summary="Get User Ledger",
    description="Retrieve a user's recomputed totals and the persisted day rows within an inclusive date range.",
    response_description="The user's aggregate and day rows.",
    responses={
        200: {"description": "Ledger found"},
        400: {"model": ErrorResponse, "description": "Invalid date filter"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_user_ledger(
    username: str,
    reader: LedgerReaderDep,
    start: Optional[str] = Query(None, pattern=DATE_PATTERN, description="First date (YYYY-MM-DD), inclusive."),
    end: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Last date (YYYY-MM-DD), inclusive."),
) -> LedgerView:
    """
    Get a user's ledger.

    Day rows show per-source totals and a per-model token breakdown; the
    per-device partitions behind them are not exposed.
    """
    return await reader.get_ledger(username, start, end)
