"""
Exception handlers for the tokenledger server.

This package contains the handlers translating ledger errors into HTTP
responses and a setup function to register them with the FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
