"""
Browser Scan Ingest
Turns a submitted body into a stored record plus a mirror entry.

Flow:
1. Resolve client address (X-Forwarded-For first entry, else peer)
2. Compress body, build LogRecord
3. Store write
4. Mirror append
"""

import logging
from typing import Any, Dict, Mapping, Optional

from browserscan.shared import compress_payload
from .models import LogRecord, browser_label, coordinate_text
from .mirror import MirrorFile, mirror_entry
from .store import LogStore

logger = logging.getLogger(__name__)

FORWARDED_FOR_HEADER = "x-forwarded-for"


def resolve_client_ip(headers: Mapping[str, str], peer: Optional[str]) -> Optional[str]:
    """First X-Forwarded-For entry, falling back to the transport peer."""
    forwarded = headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return peer or None


def build_record(body: Dict[str, Any], ip: Optional[str]) -> LogRecord:
    """Compress the body and attach searchable metadata."""
    return LogRecord(
        payload=compress_payload(body),
        ip=ip,
        browser=browser_label(body),
        latitude=coordinate_text(body.get("latitude")),
        longitude=coordinate_text(body.get("longitude")),
    )


def ingest_payload(
    body: Dict[str, Any],
    ip: Optional[str],
    store: LogStore,
    mirror: MirrorFile,
) -> LogRecord:
    """
    Store then mirror one submission.
    A mirror failure propagates after the store write; the store write stays.
    """
    record = build_record(body, ip)
    store.insert(record)
    mirror.append(mirror_entry(record, body))
    logger.info(f"[AUDIT] Data synced to DB and File from IP: {ip}")
    return record
