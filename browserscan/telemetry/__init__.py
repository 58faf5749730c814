"""
Browser Scan Telemetry Module
Compressed storage and admin aggregation of client scan payloads.

Principles:
- Payload stored compressed, opaque until decoded
- A few uncompressed fields for grouping
- Append-only, no update or delete path
"""

from .models import (
    LogRecord,
    DecodeFailure,
    StatsResponse,
    AnalyticsResponse,
    ReceiveResponse,
    UNKNOWN_BROWSER,
)
from .store import (
    LogStore,
    MemoryLogStore,
    PostgresLogStore,
    StoreError,
    StoreUnavailableError,
    build_store,
    get_store,
)
from .mirror import MirrorFile, get_mirror, rebuild_mirror
from .ingest import ingest_payload, resolve_client_ip, build_record
from .decode import decode_record, decode_records
from .aggregate import compute_stats, compute_analytics, list_decoded_logs
from .admin import router as admin_router, error_response

__all__ = [
    "LogRecord",
    "DecodeFailure",
    "StatsResponse",
    "AnalyticsResponse",
    "ReceiveResponse",
    "UNKNOWN_BROWSER",
    "LogStore",
    "MemoryLogStore",
    "PostgresLogStore",
    "StoreError",
    "StoreUnavailableError",
    "build_store",
    "get_store",
    "MirrorFile",
    "get_mirror",
    "rebuild_mirror",
    "ingest_payload",
    "resolve_client_ip",
    "build_record",
    "decode_record",
    "decode_records",
    "compute_stats",
    "compute_analytics",
    "list_decoded_logs",
    "admin_router",
    "error_response",
]
