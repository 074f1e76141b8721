"""Submission validation and fingerprinting."""

from .submission import (
    ValidationResult,
    generate_submission_hash,
    normalize_submission_data,
    validate_submission,
)

__all__ = [
    "ValidationResult",
    "generate_submission_hash",
    "normalize_submission_data",
    "validate_submission",
]
