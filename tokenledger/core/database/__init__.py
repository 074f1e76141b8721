"""
Ledger database layer.

Structure:
- entities/: SQLModel table models (users, API tokens, submissions, day rows)
- repositories/: Async data access for those tables
- session.py: Global engine and session factory management
- utils.py: Engine / session factory helpers and ``create_all``
"""

from .base import Base
from .utils import (
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "Base",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
