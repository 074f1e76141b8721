"""
Submission aggregate entity.

One row per user. Every counter on it is recomputed from the user's full set
of daily breakdown rows after each merge, never incremented in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger
from sqlmodel import Field

from ..base import Base, JSONVariant, new_id, utc_now_naive


class Submission(Base, table=True):
    """Per-user usage aggregate.

    Table: submissions
    """

    __tablename__ = "submissions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="users.id", max_length=36, unique=True, index=True)

    # Recomputed totals
    total_tokens: int = Field(default=0, sa_type=BigInteger)
    total_cost: float = Field(default=0.0)
    input_tokens: int = Field(default=0, sa_type=BigInteger)
    output_tokens: int = Field(default=0, sa_type=BigInteger)
    cache_read_tokens: int = Field(default=0, sa_type=BigInteger)
    cache_write_tokens: int = Field(default=0, sa_type=BigInteger)
    reasoning_tokens: int = Field(default=0, sa_type=BigInteger)
    active_days: int = Field(default=0)
    date_start: Optional[str] = Field(default=None, max_length=10)
    date_end: Optional[str] = Field(default=None, max_length=10)
    sources_used: List[str] = Field(default_factory=list, sa_type=JSONVariant)
    models_used: List[str] = Field(default_factory=list, sa_type=JSONVariant)

    # Metadata of the latest submission
    status: str = Field(default="verified", max_length=20)
    cli_version: Optional[str] = Field(default=None, max_length=32)
    submission_hash: Optional[str] = Field(default=None, max_length=64)
    submit_count: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now_naive)
    updated_at: datetime = Field(default_factory=utc_now_naive)

    def __repr__(self) -> str:
        return f"Submission(id={self.id}, user_id={self.user_id}, total_tokens={self.total_tokens})"
