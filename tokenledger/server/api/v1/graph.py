"""
Graph Endpoint.

Aggregates raw usage events into a submission payload with the server's
pricing table, for clients that do not ship one.
"""

from __future__ import annotations

from fastapi import APIRouter

from tokenledger.core.aggregation.aggregator import AggregationOptions, build_submission
from tokenledger.core.models.io.graph import GraphRequest
from tokenledger.core.models.io.submission import ErrorResponse
from tokenledger.server.services.deps import PricingResolverDep

router = APIRouter(tags=["graph"])


@router.post(
    "/graph",
    summary="Aggregate Usage Events",
    description="Price and aggregate usage events into days, years and a summary, ready for submission.",
    response_description="The aggregated submission payload (camelCase).",
    responses={
        200: {"description": "Events aggregated"},
        400: {"model": ErrorResponse, "description": "Malformed events or filters"},
    },
)
async def build_graph(body: GraphRequest, resolver: PricingResolverDep):
    """
    Aggregate usage events.

    - **events**: normalized usage events.
    - **sources / since / until / year**: optional filters, as in the CLI ``graph`` command.
    """
    options = AggregationOptions(sources=body.sources, since=body.since, until=body.until, year=body.year)
    payload = build_submission(body.events, resolver, options=options, version=body.version)
    return payload.model_dump(mode="json", by_alias=True)
