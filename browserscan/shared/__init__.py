"""Browser Scan Shared Utilities"""

from .codec import (
    CodecError,
    parse_json,
    serialize_payload,
    compress_payload,
    decompress_payload,
    is_gzip,
    to_iso,
)
from .responses import EscapedJSONResponse

__all__ = [
    "CodecError",
    "parse_json",
    "serialize_payload",
    "compress_payload",
    "decompress_payload",
    "is_gzip",
    "to_iso",
    "EscapedJSONResponse",
]
