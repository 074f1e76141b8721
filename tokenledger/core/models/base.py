"""Pydantic base schema utilities for ledger models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base Pydantic model for internal domain schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    - ``allow_inf_nan=False``: Reject ``Infinity`` and ``NaN`` in float fields.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )


class WireSchema(BaseModel):
    """
    Base Pydantic model for schemas exchanged with the CLI.

    The CLI speaks camelCase JSON (``cacheRead``, ``modelId``, ``dateRange``);
    Python code uses snake_case attribute names. Unknown keys sent by newer
    clients are ignored rather than rejected. ``Infinity`` and ``NaN``, which
    Python's JSON decoder accepts, are rejected in every float field.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )
