"""
Core ledger functionality for tokenledger.

This package provides pricing, aggregation, validation and merge logic plus
the shared logging configuration, error types and database layer.
"""

from tokenledger.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
