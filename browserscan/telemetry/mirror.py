"""
Browser Scan Mirror File
Human-readable JSON array copy of every submission, kept next to the store.

The mirror is a secondary sink. Appends are serialized inside the process and
written atomically; nothing links a mirror write to the store write.
"""

import os
import json
import logging
import tempfile
from threading import Lock
from typing import Any, Dict, List, Optional

from browserscan.shared import decompress_payload, to_iso, CodecError
from .models import LogRecord

logger = logging.getLogger(__name__)


def mirror_entry(record: LogRecord, body: Dict[str, Any]) -> Dict[str, Any]:
    """{id, ip, receivedAt, ...body}; body keys win on collision."""
    entry: Dict[str, Any] = {
        "id": record.id,
        "ip": record.ip,
        "receivedAt": to_iso(record.received_at),
    }
    entry.update(body)
    return entry


class MirrorFile:
    """Append-only JSON array on disk."""

    def __init__(self, path: str):
        self.path = path
        self._lock = Lock()

    def read(self) -> List[Dict[str, Any]]:
        """Current entries; missing or unreadable file -> []."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"[Mirror] Unreadable mirror file {self.path}, starting fresh: {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"[Mirror] Mirror file {self.path} is not a JSON array, starting fresh")
            return []
        return data

    def _write(self, entries: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".mirror-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, ensure_ascii=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def append(self, entry: Dict[str, Any]) -> int:
        """Append one entry, return the new length."""
        with self._lock:
            entries = self.read()
            entries.append(entry)
            self._write(entries)
            return len(entries)

    def replace_all(self, entries: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._write(entries)


def rebuild_mirror(store, mirror: MirrorFile) -> Dict[str, int]:
    """
    Regenerate the mirror from the store, oldest first.
    Records whose payload cannot be restored are skipped and counted.
    """
    entries: List[Dict[str, Any]] = []
    skipped = 0
    for record in reversed(store.fetch_all()):
        try:
            body = decompress_payload(record.payload)
        except CodecError as e:
            logger.warning(f"[Mirror] Skipping record {record.id}: {e}")
            skipped += 1
            continue
        entries.append(mirror_entry(record, body))

    mirror.replace_all(entries)
    logger.info(f"[Mirror] Rebuilt {mirror.path}: {len(entries)} entries, {skipped} skipped")
    return {"written": len(entries), "skipped": skipped}


_mirror: Optional[MirrorFile] = None
_mirror_lock = Lock()


def get_mirror() -> MirrorFile:
    """Get the process-wide mirror (FastAPI dependency)."""
    global _mirror
    if _mirror is None:
        with _mirror_lock:
            if _mirror is None:
                from browserscan.config import get_settings
                _mirror = MirrorFile(get_settings().log_file)
    return _mirror
