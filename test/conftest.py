from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# The global engine is created on import; point it at SQLite before anything imports tokenledger
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Load test/.env first, then fall back to test/.env.example for defaults
TEST_ROOT = Path(__file__).resolve().parent
load_dotenv(TEST_ROOT / ".env", override=False)
load_dotenv(TEST_ROOT / ".env.example", override=False)

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel.pool import StaticPool

# Import test settings after dotenv is loaded
from test.settings import test_settings
from tokenledger.core.database.entities.users import ApiToken, User
from tokenledger.core.database.utils import create_all, create_engine, create_sessionmaker


@pytest.fixture(scope="session")
def test_config():
    """Fixture providing test configuration from Pydantic settings model.

    Returns:
        TestSettings: Test configuration with all environment variables loaded
    """
    return test_settings


# =====================================================================
# Ledger database fixtures (in-memory SQLite shared across connections)
# =====================================================================


@pytest_asyncio.fixture
async def ledger_engine(test_config) -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory ledger database with every table."""
    engine = create_engine(
        test_config.database.url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(ledger_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_sessionmaker(ledger_engine)


@pytest_asyncio.fixture
async def alice(session_factory) -> User:
    """A user with two CLI installations, ``laptop`` and ``desktop``."""
    async with session_factory() as session, session.begin():
        user = User(username="alice", display_name="Alice")
        session.add(user)
        await session.flush()
        session.add_all(
            [
                ApiToken(id="device-laptop", user_id=user.id, token="tok-alice-laptop", name="laptop"),
                ApiToken(id="device-desktop", user_id=user.id, token="tok-alice-desktop", name="desktop"),
            ]
        )
    return user
