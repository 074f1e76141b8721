"""
Submission aggregate repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...ledger.merge import SubmissionAggregate
from ..entities.submissions import Submission
from .base import AsyncBaseRepository


class SubmissionRepository(AsyncBaseRepository[Submission]):
    """Repository for the per-user submission aggregate."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Submission)

    async def get_by_user_id(self, user_id: str) -> Optional[Submission]:
        """Get the submission aggregate of a user.

        Args:
            user_id: User id

        Returns:
            Submission instance or None if the user never submitted
        """
        stmt = select(Submission).where(Submission.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_id_for_user(self, user_id: str) -> Optional[str]:
        """Lock the user's submission row for the rest of the transaction.

        Args:
            user_id: User id

        Returns:
            The submission id, or None if the user has no submission yet
        """
        stmt = select(Submission.id).where(Submission.user_id == user_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_placeholder(
        self,
        user_id: str,
        cli_version: Optional[str],
        submission_hash: Optional[str],
        now: datetime,
    ) -> str:
        """Insert an empty aggregate row for a user's first submission.

        Totals are filled in by :meth:`apply_aggregate` at the end of the merge.
        A concurrent first submission of the same user fails here on the
        unique ``user_id`` constraint.

        Returns:
            The new submission id
        """
        submission = Submission(
            user_id=user_id,
            cli_version=cli_version,
            submission_hash=submission_hash,
            created_at=now,
            updated_at=now,
        )
        await self.add(submission)
        return submission.id

    async def apply_aggregate(
        self,
        submission_id: str,
        aggregate: SubmissionAggregate,
        cli_version: Optional[str],
        submission_hash: Optional[str],
        now: datetime,
    ) -> None:
        """Overwrite the aggregate columns with freshly recomputed values.

        Args:
            submission_id: Submission id
            aggregate: Aggregate recomputed from every day row of the user
            cli_version: Version of the CLI that sent this submission
            submission_hash: Fingerprint of this submission
            now: Timestamp for ``updated_at``
        """
        stmt = (
            update(Submission)
            .where(Submission.id == submission_id)
            .values(
                **aggregate.model_dump(),
                cli_version=cli_version,
                submission_hash=submission_hash,
                submit_count=Submission.submit_count + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
