"""Model pricing resolution and cost calculation."""

from .resolver import (
    ModelPricing,
    PricingEntry,
    PricingMatch,
    PricingResolver,
    PricingTable,
    load_pricing_table,
    normalize_model_name,
)

__all__ = [
    "ModelPricing",
    "PricingEntry",
    "PricingMatch",
    "PricingResolver",
    "PricingTable",
    "load_pricing_table",
    "normalize_model_name",
]
