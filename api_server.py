"""
Browser Scan API Server
System diagnostic logging: compressed scan storage and admin aggregates.

Endpoints:
- GET  /                    liveness text
- GET  /health              service + store status
- POST /receive             ingest one scan payload
- GET  /api/admin/stats     total + browser distribution
- GET  /api/admin/logs      decompressed listing (router and app-level handlers)
- GET  /api/admin/analytics geo hotspots + IP distribution (router)
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from browserscan import __version__
from browserscan.config import Settings, get_settings, configure_logging
from browserscan.shared import EscapedJSONResponse, parse_json
from browserscan.ratelimit import RateLimiter, RateLimitMiddleware
from browserscan.telemetry import (
    LogStore,
    MirrorFile,
    StatsResponse,
    ReceiveResponse,
    admin_router,
    compute_stats,
    error_response,
    get_mirror,
    get_store,
    ingest_payload,
    list_decoded_logs,
    resolve_client_ip,
)

logger = logging.getLogger(__name__)

LIVENESS_TEXT = "System Diagnostic Logging Server is Active"


async def read_json_object(request: Request) -> Optional[Dict[str, Any]]:
    """Request body as a dict. Empty body -> {}; anything but a JSON object -> None."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = parse_json(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


# ============================================
# Core Endpoints
# ============================================
def root():
    return PlainTextResponse(LIVENESS_TEXT)


def health(store: LogStore = Depends(get_store)):
    return {"status": "healthy", "version": __version__, "store": store.backend}


async def receive(
    request: Request,
    store: LogStore = Depends(get_store),
    mirror: MirrorFile = Depends(get_mirror),
):
    """Compress and store one scan, then mirror it to the local file."""
    body = await read_json_object(request)
    if body is None:
        return error_response("Invalid JSON body", status_code=400)

    peer = request.client.host if request.client else None
    ip = resolve_client_ip(request.headers, peer)

    try:
        await run_in_threadpool(ingest_payload, body, ip, store, mirror)
    except Exception:
        logger.exception("Critical Error: ingest failed")
        return error_response("Logging Failure")

    return ReceiveResponse()


async def admin_stats(store: LogStore = Depends(get_store)):
    """Total requests and browser distribution."""
    try:
        return await run_in_threadpool(compute_stats, store)
    except Exception:
        logger.exception("Failed to fetch stats")
        return error_response("Failed to fetch stats")


async def admin_logs(store: LogStore = Depends(get_store)):
    """Decompressed listing; shadowed by the admin router's /logs when mounted first."""
    try:
        return await run_in_threadpool(list_decoded_logs, store)
    except Exception:
        logger.exception("Failed to fetch logs")
        return error_response("Failed to fetch logs")


def register_core_endpoints(app: FastAPI) -> None:
    """Register the app-level routes."""
    app.add_api_route("/", root, methods=["GET"], response_class=PlainTextResponse)
    app.add_api_route("/health", health, methods=["GET"], response_class=EscapedJSONResponse)
    app.add_api_route("/receive", receive, methods=["POST"], response_model=ReceiveResponse,
                      response_class=EscapedJSONResponse)
    app.add_api_route("/api/admin/stats", admin_stats, methods=["GET"], response_model=StatsResponse,
                      response_class=EscapedJSONResponse)
    app.add_api_route("/api/admin/logs", admin_logs, methods=["GET"], response_class=EscapedJSONResponse)


# ============================================
# App Configuration
# ============================================
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Browser Scan API",
        description="System diagnostic logging server",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "GET"],
        allow_headers=["Content-Type"],
    )

    # Added last so it runs first
    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            enabled=settings.rate_limit_enabled,
        ),
    )

    # Router first: it owns /api/admin/logs
    app.include_router(admin_router)
    register_core_endpoints(app)

    logger.info(
        f"Browser Scan API v{__version__} configured "
        f"(env={settings.environment}, cors={settings.cors_origins})"
    )
    return app


configure_logging(get_settings().log_level)
app = create_app()
