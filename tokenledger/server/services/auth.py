"""
API token authentication.

A bearer token resolves to the owning user and to the token's own id, which
is the device id its usage is partitioned under.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tokenledger.core.database.base import utc_now_naive
from tokenledger.core.database.repositories.users import ApiTokenRepository
from tokenledger.core.errors import AuthError
from tokenledger.core.logging_config import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthenticatedDevice:
    user_id: str
    username: str
    device_id: str


def parse_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        AuthError: The header is missing, not a bearer header, or empty.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthError("Missing or invalid Authorization header")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthError("Missing or invalid Authorization header")
    return token


async def authenticate_token(
    session: AsyncSession,
    token: str,
    now: Optional[datetime] = None,
) -> AuthenticatedDevice:
    """
    Resolve a bearer token to its user and device.

    Args:
        session: Database session used for the lookup.
        token: Raw token value.
        now: Reference time for the expiry check; defaults to the current UTC time.

    Returns:
        AuthenticatedDevice: The owning user and the token id.

    Raises:
        AuthError: Unknown or expired token.
    """
    found = await ApiTokenRepository(session).get_with_user(token)
    if found is None:
        logger.info("Rejected request with unknown API token")
        raise AuthError("Invalid API token")
    api_token, user = found
    if api_token.is_expired(now or utc_now_naive()):
        logger.info(f"Rejected expired API token {api_token.id} of user {user.username}")
        raise AuthError("API token has expired")
    logger.debug(f"Authenticated user {user.username} with device {api_token.id}")
    return AuthenticatedDevice(user_id=user.id, username=user.username, device_id=api_token.id)
