"""
Process-wide pricing resolver.

Built once from ``TOKENLEDGER_PRICING_FILE``; without a configured file the
table is empty and every event falls back to its self-reported cost.
"""

from __future__ import annotations

from functools import lru_cache

from tokenledger.core.logging_config import get_logger
from tokenledger.core.pricing.resolver import PricingResolver, PricingTable, load_pricing_table
from tokenledger.server.core.config import settings

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_pricing_resolver() -> PricingResolver:
    """
    Get the shared pricing resolver.

    Returns:
        PricingResolver: Resolver over the configured pricing table.

    Raises:
        FileNotFoundError: The configured pricing file does not exist.
        ValueError: The configured pricing file is not a JSON object.
    """
    pricing_file = settings.ledger.pricing_file
    if not pricing_file:
        logger.warning("No pricing file configured; costs fall back to self-reported values")
        return PricingResolver(PricingTable({}))
    return PricingResolver(load_pricing_table(pricing_file))
