"""
FastAPI dependencies.

Provides the authenticated device, the submission merger, the pricing
resolver and database sessions to API endpoints.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokenledger.core.database.session import get_session, get_session_factory
from tokenledger.core.ledger.service import LedgerReader, SubmissionMerger
from tokenledger.core.pricing.resolver import PricingResolver

from .auth import AuthenticatedDevice, authenticate_token, parse_bearer_token
from .pricing import get_pricing_resolver

SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_authenticated_device(
    session_factory: SessionFactoryDep,
    authorization: Annotated[Optional[str], Header()] = None,
) -> AuthenticatedDevice:
    """
    Authenticate the request's bearer token.

    Uses a short-lived session of its own so the merge can open a fresh
    transaction afterwards.
    """
    token = parse_bearer_token(authorization)
    async with session_factory() as session:
        return await authenticate_token(session, token)


def get_submission_merger(session_factory: SessionFactoryDep) -> SubmissionMerger:
    return SubmissionMerger(session_factory)


def get_ledger_reader(session: SessionDep) -> LedgerReader:
    return LedgerReader(session)


AuthenticatedDeviceDep = Annotated[AuthenticatedDevice, Depends(get_authenticated_device)]
SubmissionMergerDep = Annotated[SubmissionMerger, Depends(get_submission_merger)]
LedgerReaderDep = Annotated[LedgerReader, Depends(get_ledger_reader)]
PricingResolverDep = Annotated[PricingResolver, Depends(get_pricing_resolver)]
