"""Error types for the ledger core.

Defines a small hierarchy of exceptions raised while validating, authenticating
and merging usage submissions. The server translates each class into an HTTP
status in ``tokenledger.server.exception_handlers``.
"""

from __future__ import annotations

from typing import List, Optional


class LedgerError(Exception):
    """Base error for all ledger exceptions."""


class SubmissionValidationError(LedgerError):
    """Raised when a submission payload fails structural or semantic checks.

    Carries every problem found, never just the first one.
    """

    def __init__(
        self,
        errors: List[str],
        warnings: Optional[List[str]] = None,
        message: str = "Validation failed",
    ) -> None:
        super().__init__(f"{message}: {'; '.join(errors)}" if errors else message)
        self.message = message
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class AuthError(LedgerError):
    """Raised for a missing, unknown or expired API token."""

    def __init__(self, message: str = "Invalid API token") -> None:
        super().__init__(message)
        self.message = message


class UserNotFoundError(LedgerError):
    """Raised when a ledger query names a user that does not exist."""

    def __init__(self, username: str) -> None:
        super().__init__(f"User not found: '{username}'")
        self.username = username


class TransientStoreError(LedgerError):
    """Raised when the merge transaction fails in the store.

    The whole transaction has been rolled back; resubmitting the same payload
    is safe because merges are idempotent.
    """

    def __init__(self, message: str = "Failed to persist submission") -> None:
        super().__init__(message)
        self.message = message


class InternalError(LedgerError):
    """Raised for internal failures whose detail must not reach the caller.

    The ledger raises it when a stored day row no longer parses as a source
    breakdown.
    """
