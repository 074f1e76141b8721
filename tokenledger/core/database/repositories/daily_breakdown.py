"""
Daily breakdown repository.

Batch operations used by the merge (lock, insert many, update many by primary
key) and the date-range read used by display code.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...ledger.merge import StoredDay
from ..entities.daily_breakdown import DailyBreakdown
from ..entities.submissions import Submission
from .base import AsyncBaseRepository


class DailyBreakdownRepository(AsyncBaseRepository[DailyBreakdown]):
    """Repository for per-day usage rows."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, DailyBreakdown)

    async def lock_for_submission(self, submission_id: str) -> Dict[str, StoredDay]:
        """Lock every day row of a submission and return them keyed by date.

        Selects plain columns rather than entities, so nothing stale lingers in
        the identity map once the rows are rewritten by a bulk update.

        Args:
            submission_id: Submission id

        Returns:
            Mapping of date to stored day
        """
        stmt = (
            select(
                DailyBreakdown.id,
                DailyBreakdown.date,
                DailyBreakdown.schema_version,
                DailyBreakdown.source_breakdown,
            )
            .where(DailyBreakdown.submission_id == submission_id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return {row.date: StoredDay.from_row(row.id, row.date, row.schema_version, row.source_breakdown) for row in result}

    async def insert_many(self, rows: Sequence[Dict[str, Any]]) -> None:
        """Insert new day rows in one batch.

        Args:
            rows: Column dicts, each carrying its own ``id``
        """
        if rows:
            await self.session.execute(insert(DailyBreakdown), list(rows))

    async def update_many(self, rows: Sequence[Dict[str, Any]]) -> None:
        """Update existing day rows in one batch keyed by primary key.

        Args:
            rows: Column dicts, each carrying the ``id`` of the row to update
        """
        if rows:
            await self.session.execute(update(DailyBreakdown), list(rows))

    async def list_for_submission(self, submission_id: str) -> List[DailyBreakdown]:
        """Every day row of a submission, freshly loaded from the database.

        Args:
            submission_id: Submission id

        Returns:
            Day rows ordered by date
        """
        stmt = (
            select(DailyBreakdown)
            .where(DailyBreakdown.submission_id == submission_id)
            .order_by(DailyBreakdown.date)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[DailyBreakdown]:
        """Day rows of a user within an inclusive date range.

        Args:
            user_id: User id
            start: First date (``YYYY-MM-DD``), unbounded when None
            end: Last date (``YYYY-MM-DD``), unbounded when None

        Returns:
            Day rows ordered by date
        """
        stmt = (
            select(DailyBreakdown)
            .join(Submission, DailyBreakdown.submission_id == Submission.id)
            .where(Submission.user_id == user_id)
        )
        if start is not None:
            stmt = stmt.where(DailyBreakdown.date >= start)
        if end is not None:
            stmt = stmt.where(DailyBreakdown.date <= end)
        result = await self.session.execute(stmt.order_by(DailyBreakdown.date))
        return list(result.scalars().all())
