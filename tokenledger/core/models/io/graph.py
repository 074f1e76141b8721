"""
Graph request model.

Input of the server-side aggregation endpoint: raw usage events plus the
filters the CLI ``graph`` command accepts.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from ..base import WireSchema
from ..domain.usage import DATE_PATTERN, YEAR_PATTERN, SourceName, UsageEvent


class GraphRequest(WireSchema):
    events: List[UsageEvent]
    sources: Optional[List[SourceName]] = None
    since: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    until: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    year: Optional[str] = Field(default=None, pattern=YEAR_PATTERN)
    version: str = Field(default="1.0.0", description="Client version recorded in meta.version")
