"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
registers exception handlers and includes all API routers. It serves as the
root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tokenledger.core.logging_config import get_logger, setup_logging

from .api.v1 import graph, health, submit, users
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .services.pricing import get_pricing_resolver

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Loads the pricing table on startup so a misconfigured pricing file fails
    the deployment rather than the first request. Schema creation is left to
    Alembic migrations.
    """
    # Startup
    logger.info("Starting up tokenledger server...")
    resolver = get_pricing_resolver()
    logger.info(f"Pricing table ready with {len(resolver.table)} models")

    yield

    # Shutdown
    logger.info("Shutting down tokenledger server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    tokenledger Server API

    Ingests AI-assistant token usage submitted by CLI installations and keeps one
    merged, per-day, per-source, per-model usage ledger per user.
    """,
    version=constant.API_VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(submit.router, prefix=constant.API_V1_STR)
app.include_router(users.router, prefix=constant.API_V1_STR)
app.include_router(graph.router, prefix=constant.API_V1_STR)


def run() -> None:
    """Run the server with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "tokenledger.server.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
