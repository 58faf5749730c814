"""
Browser Scan Decode
Restores stored payloads for the admin listing.

Each record decodes independently: a bad payload becomes a DecodeFailure in
its own slot and never aborts the rest of the listing.
"""

import logging
from typing import Any, Dict, List, Union

from browserscan.shared import decompress_payload, to_iso, CodecError
from .models import LogRecord, DecodeFailure

logger = logging.getLogger(__name__)

DecodedLog = Union[Dict[str, Any], DecodeFailure]


def decode_record(record: LogRecord) -> DecodedLog:
    """{id, ip, receivedAt, ...payload} or a DecodeFailure stub."""
    try:
        original = decompress_payload(record.payload)
    except CodecError as e:
        logger.warning(f"[Decode] Record {record.id} unreadable: {e}")
        return DecodeFailure(id=record.id, raw=record.ip)

    merged: Dict[str, Any] = {
        "id": record.id,
        "ip": record.ip,
        "receivedAt": to_iso(record.received_at),
    }
    merged.update(original)
    return merged


def decode_records(records: List[LogRecord]) -> List[DecodedLog]:
    """Same order and length as the input."""
    return [decode_record(record) for record in records]


def is_failure(item: DecodedLog) -> bool:
    return isinstance(item, DecodeFailure)
