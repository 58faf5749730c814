"""
Browser Scan Telemetry Data Models
Pydantic models for stored scan logs and admin responses.
"""

from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
import uuid

UNKNOWN_BROWSER = "Unknown"
DECODE_FAILED = "Decompression failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogRecord(BaseModel):
    """
    One stored submission.
    The payload is the gzip'd JSON body; everything else is searchable metadata.
    Immutable once built.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    payload: bytes
    ip: Optional[str] = None
    browser: Optional[str] = None

    # Uncompressed copies for geo bucketing
    latitude: Optional[str] = None
    longitude: Optional[str] = None

    is_compressed: bool = True
    received_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(frozen=True)


class ReceiveResponse(BaseModel):
    status: str = "captured"
    message: str = "Logged to DB and local storage."


class BrowserCount(BaseModel):
    """Group row keyed by browser label (Mongo-style _id key)."""
    id: Optional[str] = Field(default=None, alias="_id")
    count: int = 0

    model_config = ConfigDict(populate_by_name=True)


class IpCount(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    count: int = 0

    model_config = ConfigDict(populate_by_name=True)


class GeoBucket(BaseModel):
    lat: str = ""
    lng: str = ""


class GeoHotspot(BaseModel):
    id: GeoBucket = Field(default_factory=GeoBucket, alias="_id")
    count: int = 0

    model_config = ConfigDict(populate_by_name=True)


class StatsResponse(BaseModel):
    """Totals for the admin dashboard."""
    totalRequests: int = 0
    browsers: List[BrowserCount] = Field(default_factory=list)


class AnalyticsResponse(BaseModel):
    geoHotspots: List[GeoHotspot] = Field(default_factory=list)
    ipDistribution: List[IpCount] = Field(default_factory=list)


class DecodeFailure(BaseModel):
    """Stand-in for a record whose payload could not be restored."""
    id: str
    error: str = DECODE_FAILED
    raw: Optional[str] = None


def storable_text(value: str) -> str:
    """
    Column-safe copy of a submitted string.
    Lone surrogates become '?' and NUL characters are dropped; the payload keeps the original.
    """
    return value.encode("utf-8", "replace").decode("utf-8").replace("\x00", "")


def browser_label(body: Dict[str, Any]) -> str:
    """Browser label from a submitted body; falsy or missing -> Unknown."""
    value = body.get("browser")
    if not value:
        return UNKNOWN_BROWSER
    return storable_text(value if isinstance(value, str) else str(value))


def coordinate_text(value: Any) -> Optional[str]:
    """String form of a submitted coordinate, None when absent."""
    if value is None:
        return None
    if isinstance(value, str):
        return storable_text(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
