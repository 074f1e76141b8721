"""
User and API token repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..entities.users import ApiToken, User
from .base import AsyncBaseRepository


class UserRepository(AsyncBaseRepository[User]):
    """Repository for users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by username.

        Args:
            username: Unique username

        Returns:
            User instance or None
        """
        stmt = select(User).where(User.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class ApiTokenRepository(AsyncBaseRepository[ApiToken]):
    """Repository for API tokens."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ApiToken)

    async def get_with_user(self, token: str) -> Optional[Tuple[ApiToken, User]]:
        """Look up a bearer token together with the user it belongs to.

        Args:
            token: Raw bearer token value

        Returns:
            (ApiToken, User) tuple, or None for an unknown token
        """
        stmt = select(ApiToken, User).join(User, ApiToken.user_id == User.id).where(ApiToken.token == token).limit(1)
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def touch_last_used(self, token_id: str, when: datetime) -> None:
        """Record that a token was just used.

        Args:
            token_id: API token id
            when: Timestamp to store in ``last_used_at``
        """
        stmt = update(ApiToken).where(ApiToken.id == token_id).values(last_used_at=when)
        await self.session.execute(stmt)
