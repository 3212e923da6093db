"""
Startup Hub API gateway FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hub_api import config, db
from hub_api.auth import api_gateway
from hub_api.errors import GatewayError
from hub_api.middleware.login_rate_limit import login_rate_limiter
from hub_api.middleware.rate_limit import rate_limiter
from hub_api.routes import api_tokens as api_token_routes
from hub_api.routes import mcp as mcp_routes
from hub_api.services.api_response import api_error, generate_request_id

logger = logging.getLogger(__name__)


# Background task for cleanup
async def cleanup_task():
    """
    Background task to evict idle rate limit entries.

    Runs every 60 seconds.
    """
    max_age_seconds = config.settings.RATE_LIMIT_ENTRY_TTL_MINUTES * 60

    while True:
        try:
            removed = rate_limiter.cleanup_old_entries(max_age_seconds=max_age_seconds)
            removed += login_rate_limiter.cleanup_old_entries()
            if removed > 0:
                logger.info("Cleaned up %d idle rate limit entries", removed)
        except Exception:
            logger.exception("Error in cleanup task")

        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Initialize database pool (postgres token store only)
    - Start background cleanup task
    - Drain pending last_used_at updates and close the pool on shutdown
    """
    if config.settings.TOKEN_STORE == "postgres":
        await db.init_pool()
        logger.info("Database pool initialized")

    cleanup_task_handle = asyncio.create_task(cleanup_task())
    logger.info("Background cleanup task started")

    yield

    cleanup_task_handle.cancel()
    try:
        await cleanup_task_handle
    except asyncio.CancelledError:
        logger.info("Background cleanup task stopped")

    await api_gateway.verifier.flush()

    if config.settings.TOKEN_STORE == "postgres":
        await db.close_pool()
        logger.info("Database pool closed")


app = FastAPI(
    title="Startup Hub API",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Every bearer-token failure leaves through here."""
    request_id = generate_request_id()
    if exc.status_code >= 500:
        logger.error("gateway: %s %s code=%s request_id=%s", request.method, request.url.path, exc.code, request_id)
    else:
        logger.warning(
            "gateway: %s %s code=%s reason=%s request_id=%s",
            request.method,
            request.url.path,
            exc.code,
            getattr(exc, "reason", "-"),
            request_id,
        )
    return api_error(exc, request_id=request_id)


# Register routes
app.include_router(api_token_routes.router)
app.include_router(mcp_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
