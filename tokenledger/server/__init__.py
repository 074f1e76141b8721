"""
tokenledger Server Package.

This package contains the FastAPI application serving the ledger.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Server configuration and constants.
    services: Request dependencies (authentication, merger, pricing).
    exception_handlers: Translation of ledger errors into HTTP responses.
"""
