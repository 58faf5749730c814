"""
Browser Scan Admin Endpoints
Router-mounted dashboard queries.

Endpoints:
- GET /api/admin/analytics - geo hotspots and IP distribution
- GET /api/admin/logs      - decompressed listing (same handler logic as the app-level route)
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from browserscan.shared import EscapedJSONResponse
from .aggregate import compute_analytics, list_decoded_logs
from .models import AnalyticsResponse
from .store import LogStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], default_response_class=EscapedJSONResponse)


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_admin_analytics(store: LogStore = Depends(get_store)):
    """Top coordinate buckets and client addresses."""
    try:
        return await run_in_threadpool(compute_analytics, store)
    except Exception:
        logger.exception("[Admin] analytics failed")
        return error_response("Failed to fetch analytics")


@router.get("/logs")
async def get_all_raw_logs(store: LogStore = Depends(get_store)):
    """All logs, decompressed, newest first."""
    try:
        return await run_in_threadpool(list_decoded_logs, store)
    except Exception:
        logger.exception("[Admin] log listing failed")
        return error_response("Failed to fetch logs")
