"""HTTP request and response models."""

from .graph import GraphRequest
from .submission import (
    ErrorResponse,
    LedgerAggregate,
    LedgerDay,
    LedgerView,
    SubmissionMeta,
    SubmissionMetrics,
    SubmissionPayload,
    SubmitResponse,
)

__all__ = [
    "ErrorResponse",
    "GraphRequest",
    "LedgerAggregate",
    "LedgerDay",
    "LedgerView",
    "SubmissionMeta",
    "SubmissionMetrics",
    "SubmissionPayload",
    "SubmitResponse",
]
