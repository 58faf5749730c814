"""
Browser Scan Collector Client
Posts scans to /receive and reads the dashboard stats back.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from browserscan.shared import to_iso

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class CollectorError(Exception):
    """Backend rejected or did not answer a collector call."""


class ScanClient:
    """Thin httpx wrapper around the ingest and stats endpoints."""

    def __init__(self, base_url: str, http: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)
        self._owns_http = http is None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "ScanClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def submit(self, scan: Dict[str, Any], timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        """POST {...scan, timestamp} to /receive."""
        body = dict(scan)
        body["timestamp"] = to_iso(timestamp or datetime.now(timezone.utc))
        try:
            response = self._http.post(f"{self.base_url}/receive", json=body)
        except httpx.HTTPError as e:
            raise CollectorError(f"Transmission failed: {e}") from e
        if response.status_code != 200:
            raise CollectorError(f"Server returned {response.status_code}")
        return response.json()

    def fetch_stats(self) -> Dict[str, Any]:
        try:
            response = self._http.get(f"{self.base_url}/api/admin/stats")
        except httpx.HTTPError as e:
            raise CollectorError(f"Stats unavailable: {e}") from e
        if response.status_code != 200:
            raise CollectorError("Stats unavailable")
        return response.json()


def format_stats(stats: Dict[str, Any]) -> List[str]:
    """Total line plus one line per browser."""
    lines = [f"Total Audits: {stats.get('totalRequests', 0)}", "Browser Distribution:"]
    for group in stats.get("browsers", []):
        name = group.get("_id") or "Unknown"
        lines.append(f"• {name}: {group.get('count', 0)} requests")
    return lines
