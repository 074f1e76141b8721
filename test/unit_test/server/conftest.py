from datetime import datetime
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tokenledger.core.database.entities.users import ApiToken
from tokenledger.core.database.session import get_session, get_session_factory
from tokenledger.core.pricing.resolver import ModelPricing, PricingResolver, PricingTable
from tokenledger.server.main import app
from tokenledger.server.services.pricing import get_pricing_resolver


@pytest_asyncio.fixture
async def expired_token(session_factory, alice) -> str:
    async with session_factory() as session, session.begin():
        session.add(
            ApiToken(
                id="device-old",
                user_id=alice.id,
                token="tok-alice-expired",
                expires_at=datetime(2020, 1, 1),
            )
        )
    return "tok-alice-expired"


@pytest_asyncio.fixture(name="client")
async def client_fixture(session_factory, alice) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with the database and pricing dependencies overridden."""

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    def get_pricing_resolver_override() -> PricingResolver:
        return PricingResolver(
            PricingTable({"claude-sonnet-4-5": ModelPricing(input_cost_per_token=0.001, output_cost_per_token=0.002)})
        )

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_pricing_resolver] = get_pricing_resolver_override

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()
