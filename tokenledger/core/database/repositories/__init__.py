"""
Database repository layer.

Each module provides async data access operations for its corresponding
SQLModel entities. Repositories flush but never commit.

Modules:
- base: AsyncBaseRepository
- users: Users and API tokens
- submissions: Per-user submission aggregate
- daily_breakdown: Per-day usage rows
"""

from .base import AsyncBaseRepository
from .daily_breakdown import DailyBreakdownRepository
from .submissions import SubmissionRepository
from .users import ApiTokenRepository, UserRepository

__all__ = [
    "ApiTokenRepository",
    "AsyncBaseRepository",
    "DailyBreakdownRepository",
    "SubmissionRepository",
    "UserRepository",
]
