"""
Pydantic models of the ledger.

- base: BaseSchema (strict internal models) and WireSchema (camelCase JSON)
- domain: usage and ledger domain models
- io: HTTP request and response models
"""

from .base import BaseSchema, WireSchema

__all__ = ["BaseSchema", "WireSchema"]
