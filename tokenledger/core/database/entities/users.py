"""
User and API token entity models.

An API token identifies one CLI installation ("device") of a user; its id is
the device id under which that installation's usage is partitioned.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now_naive


class User(Base, table=True):
    """Registered ledger user.

    Table: users
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    username: str = Field(max_length=64, unique=True, index=True)
    display_name: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utc_now_naive)

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username})"


class ApiToken(Base, table=True):
    """Bearer token issued to one CLI installation.

    Table: api_tokens
    """

    __tablename__ = "api_tokens"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", max_length=36, index=True)
    token: str = Field(max_length=128, unique=True, index=True)
    name: str = Field(default="CLI", max_length=100)
    expires_at: Optional[datetime] = Field(default=None)
    last_used_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now_naive)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def __repr__(self) -> str:
        return f"ApiToken(id={self.id}, user_id={self.user_id}, name={self.name})"
