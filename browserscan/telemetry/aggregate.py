"""
Browser Scan Aggregations
Read-side queries shared by the app-level and router-level admin endpoints.
"""

from typing import Any, Dict, List

from .decode import decode_records, is_failure
from .models import StatsResponse, AnalyticsResponse
from .store import LogStore, GEO_HOTSPOT_LIMIT, IP_DISTRIBUTION_LIMIT


def compute_stats(store: LogStore) -> StatsResponse:
    """Total count plus browser distribution."""
    return StatsResponse(
        totalRequests=store.count(),
        browsers=store.browser_counts(),
    )


def compute_analytics(store: LogStore) -> AnalyticsResponse:
    """Geo hotspots (top 5 coordinate prefixes) and IP distribution (top 10)."""
    return AnalyticsResponse(
        geoHotspots=store.geo_hotspots(limit=GEO_HOTSPOT_LIMIT),
        ipDistribution=store.ip_distribution(limit=IP_DISTRIBUTION_LIMIT),
    )


def list_decoded_logs(store: LogStore) -> List[Dict[str, Any]]:
    """Every record restored, newest first, failures as stubs."""
    return [
        item.model_dump() if is_failure(item) else item
        for item in decode_records(store.fetch_all())
    ]
