"""
Submission merge service.

:class:`SubmissionMerger` merges one device's submission into the user's
persisted, device-partitioned ledger inside a single transaction:

1. record the token's ``last_used_at``;
2. lock (or create) the user's submission row, then lock every day row;
3. plan all day-level writes in memory (:func:`plan_day_writes`);
4. one batch insert for new days, one batch update for existing days;
5. recompute the submission aggregate from every stored day row.

Any database failure rolls the whole transaction back and surfaces as
:class:`TransientStoreError`; resubmitting the same payload is safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokenledger.core.logging_config import get_logger

from ..database.base import utc_now_naive
from ..database.repositories.daily_breakdown import DailyBreakdownRepository
from ..database.repositories.submissions import SubmissionRepository
from ..database.repositories.users import ApiTokenRepository, UserRepository
from ..errors import TransientStoreError, UserNotFoundError
from ..models.io.submission import LedgerAggregate, LedgerDay, LedgerView, SubmissionPayload
from ..validation.submission import generate_submission_hash
from .merge import SubmissionAggregate, compute_submission_aggregate, parse_source_breakdown, plan_day_writes

logger = get_logger(__name__)


@dataclass
class MergeOutcome:
    submission_id: str
    mode: Literal["create", "merge"]
    aggregate: SubmissionAggregate
    days_inserted: int
    days_updated: int


class SubmissionMerger:
    """Merges submissions into the ledger, one transaction per submission."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def merge(self, user_id: str, device_id: str, payload: SubmissionPayload) -> MergeOutcome:
        """
        Merge a validated submission of one device.

        Args:
            user_id: Owner of the submitting token.
            device_id: Id of the submitting API token.
            payload: Validated submission payload.

        Returns:
            MergeOutcome: The submission id, whether the aggregate row was
            created or merged into, and the recomputed aggregate.

        Raises:
            TransientStoreError: The transaction failed and was rolled back.
            InternalError: A stored day row could not be read; nothing was written.
        """
        now = utc_now_naive()
        submission_hash = generate_submission_hash(payload)
        cli_version = payload.meta.version

        try:
            async with self.session_factory() as session, session.begin():
                tokens = ApiTokenRepository(session)
                submissions = SubmissionRepository(session)
                days = DailyBreakdownRepository(session)

                await tokens.touch_last_used(device_id, now)

                mode: Literal["create", "merge"] = "merge"
                submission_id = await submissions.lock_id_for_user(user_id)
                if submission_id is None:
                    mode = "create"
                    submission_id = await submissions.create_placeholder(user_id, cli_version, submission_hash, now)

                existing = await days.lock_for_submission(submission_id)
                plan = plan_day_writes(submission_id, device_id, payload.contributions, existing, now)
                await days.insert_many(plan.inserts)
                await days.update_many(plan.updates)

                rows = await days.list_for_submission(submission_id)
                aggregate = compute_submission_aggregate(rows)
                await submissions.apply_aggregate(submission_id, aggregate, cli_version, submission_hash, now)
        except DBAPIError as exc:
            logger.error(
                f"Merge transaction failed for user {user_id}: {exc.__class__.__name__}",
                extra={"user_id": user_id, "device_id": device_id},
            )
            raise TransientStoreError() from exc

        logger.info(
            f"Merged submission {submission_id} ({mode}): {len(plan.inserts)} new day(s), "
            f"{len(plan.updates)} updated day(s), total_tokens={aggregate.total_tokens}"
        )
        return MergeOutcome(
            submission_id=submission_id,
            mode=mode,
            aggregate=aggregate,
            days_inserted=len(plan.inserts),
            days_updated=len(plan.updates),
        )


class LedgerReader:
    """Read-only access to a user's persisted ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_ledger(self, username: str, start: Optional[str] = None, end: Optional[str] = None) -> LedgerView:
        """
        Load a user's aggregate and day rows within an inclusive date range.

        Device partitions are folded away; readers only see source totals.

        Raises:
            UserNotFoundError: No user has this username.
            InternalError: A stored day row could not be read.
        """
        user = await UserRepository(self.session).get_by_username(username)
        if user is None:
            raise UserNotFoundError(username)

        submission = await SubmissionRepository(self.session).get_by_user_id(user.id)
        if submission is None:
            return LedgerView(username=user.username)

        rows = await DailyBreakdownRepository(self.session).list_for_user(user.id, start, end)
        days: List[LedgerDay] = []
        for row in rows:
            breakdown = parse_source_breakdown(row.source_breakdown)
            sources = {name: breakdown[name].public_view() for name in sorted(breakdown)}
            days.append(
                LedgerDay(
                    date=row.date,
                    tokens=row.tokens,
                    cost=row.cost,
                    input_tokens=row.input_tokens,
                    output_tokens=row.output_tokens,
                    cache_read_tokens=row.cache_read_tokens,
                    cache_write_tokens=row.cache_write_tokens,
                    reasoning_tokens=row.reasoning_tokens,
                    source_breakdown=sources,
                    model_breakdown=dict(row.model_breakdown or {}),
                )
            )

        aggregate = LedgerAggregate(
            submission_id=submission.id,
            total_tokens=submission.total_tokens,
            total_cost=submission.total_cost,
            input_tokens=submission.input_tokens,
            output_tokens=submission.output_tokens,
            cache_read_tokens=submission.cache_read_tokens,
            cache_write_tokens=submission.cache_write_tokens,
            reasoning_tokens=submission.reasoning_tokens,
            active_days=submission.active_days,
            date_start=submission.date_start,
            date_end=submission.date_end,
            sources_used=list(submission.sources_used or []),
            models_used=list(submission.models_used or []),
            submission_hash=submission.submission_hash,
            cli_version=submission.cli_version,
            updated_at=submission.updated_at,
        )
        return LedgerView(username=user.username, aggregate=aggregate, days=days)
