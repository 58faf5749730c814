"""
Browser Scan Payload Codec
Single source of truth for turning submitted payloads into stored blobs and back.

Format: gzip(compact JSON text, ASCII with \\u escapes)
"""

import gzip
import json
import math
import zlib
from datetime import datetime, timezone
from typing import Any, Dict, Optional

GZIP_MAGIC = b"\x1f\x8b"


class CodecError(Exception):
    """Payload could not be encoded or decoded."""


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> Optional[float]:
    value = float(text)
    # Out-of-range literals such as 1e400 are kept as null
    return value if math.isfinite(value) else None


def parse_json(raw) -> Any:
    """
    Strict JSON parse for str or bytes.
    NaN / Infinity / -Infinity are rejected with ValueError.
    """
    return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)


def serialize_payload(obj: Dict[str, Any]) -> str:
    """
    Convert a payload to compact JSON text.
    The payload is only checked for JSON-serializability, never for shape.
    Non-ASCII text (lone surrogates included) is written as \\u escapes.
    """
    try:
        return json.dumps(obj, separators=(',', ':'), ensure_ascii=True, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Payload is not JSON-serializable: {e}") from e


def compress_payload(obj: Dict[str, Any]) -> bytes:
    """Serialize and gzip a payload."""
    text = serialize_payload(obj)
    return gzip.compress(text.encode('ascii'))


def is_gzip(blob: bytes) -> bool:
    """Check the gzip magic bytes."""
    return bool(blob) and bytes(blob[:2]) == GZIP_MAGIC


def decompress_payload(blob: bytes) -> Dict[str, Any]:
    """
    Gunzip and parse a stored payload.
    Raises CodecError for anything that is not a gzip'd JSON object.
    """
    if blob is None:
        raise CodecError("Payload is missing")
    if not is_gzip(blob):
        raise CodecError("Decompression failed: not gzip data")
    try:
        text = gzip.decompress(bytes(blob)).decode('utf-8')
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise CodecError(f"Decompression failed: {e}") from e

    try:
        data = parse_json(text)
    except ValueError as e:
        raise CodecError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CodecError(f"Payload is not a JSON object: {type(data).__name__}")
    return data


def to_iso(dt: datetime) -> str:
    """
    Render a timestamp the way browser clients do.
    2025-01-02T03:04:05.678Z
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
