"""
Browser Scan Collector
Client side of the service: gathers a scan, caches it, posts it, shows stats.
"""

from .signals import (
    NOT_AVAILABLE,
    DENIED,
    detect_browser,
    build_scan,
    read_geolocation,
    read_battery,
    quantize_device_memory,
    visible_results,
)
from .cache import ScanCache, STALE_AFTER_MS
from .client import ScanClient, CollectorError, format_stats

__all__ = [
    "NOT_AVAILABLE",
    "DENIED",
    "detect_browser",
    "build_scan",
    "read_geolocation",
    "read_battery",
    "quantize_device_memory",
    "visible_results",
    "ScanCache",
    "STALE_AFTER_MS",
    "ScanClient",
    "CollectorError",
    "format_stats",
]
