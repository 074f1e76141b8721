"""
Database entity models.

Modules:
- users: Users and the API tokens identifying their CLI installations
- submissions: Per-user recomputed usage aggregate
- daily_breakdown: Device-partitioned per-day usage rows
"""

from .daily_breakdown import DailyBreakdown
from .submissions import Submission
from .users import ApiToken, User

__all__ = [
    "ApiToken",
    "DailyBreakdown",
    "Submission",
    "User",
]
