"""
Ledger Error Handlers.

Translate the ledger error taxonomy into ``{error, details?}`` JSON responses:

- SubmissionValidationError, RequestValidationError -> 400
- AuthError -> 401
- UserNotFoundError -> 404
- TransientStoreError -> 500 (safe to retry)
- InternalError -> 500 (no detail leaked)
"""

from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tokenledger.core.errors import (
    AuthError,
    InternalError,
    SubmissionValidationError,
    TransientStoreError,
    UserNotFoundError,
)
from tokenledger.core.logging_config import get_logger
from tokenledger.core.models.io.submission import ErrorResponse

logger = get_logger(__name__)


def _error_response(
    status_code: int,
    error: str,
    details: Optional[List[str]] = None,
    error_id: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details or None, error_id=error_id)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


async def submission_validation_handler(request: Request, exc: SubmissionValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message} ({len(exc.errors)} error(s))")
    return _error_response(400, exc.message, exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        details.append(f"{path}: {error['msg']}")
    logger.info(f"{request.method} {request.url.path} rejected with {len(details)} request error(s)")
    return _error_response(400, "Validation failed", details)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return _error_response(401, exc.message)


async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
    return _error_response(404, "User not found")


async def transient_store_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed in the store: {exc.__cause__!r}")
    return _error_response(500, exc.message)


async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    error_id = str(id(exc))
    logger.error(
        f"Internal error [{error_id}] in {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path},
    )
    return _error_response(500, "Internal server error", error_id=error_id)


def register_ledger_handlers(app: FastAPI) -> None:
    """
    Register the ledger error handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(SubmissionValidationError, submission_validation_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(UserNotFoundError, user_not_found_handler)
    app.add_exception_handler(TransientStoreError, transient_store_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
