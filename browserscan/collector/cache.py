"""
Last-scan cache. Restored only while younger than 20 minutes.
"""

import json
import logging
import os
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STALE_AFTER_MS = 20 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class ScanCache:
    """Persists {lastScan, scanTime} to a JSON file."""

    def __init__(self, path: str, stale_after_ms: int = STALE_AFTER_MS):
        self.path = path
        self.stale_after_ms = stale_after_ms

    def save(self, scan: Dict[str, Any], scan_time_ms: Optional[int] = None) -> None:
        state = {"lastScan": scan, "scanTime": scan_time_ms if scan_time_ms is not None else now_ms()}
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(state, f)

    def load(self, current_ms: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Cached scan if fresh, else None."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable scan cache {self.path}: {e}")
            return None

        scan = state.get("lastScan") if isinstance(state, dict) else None
        scan_time = state.get("scanTime") if isinstance(state, dict) else None
        if not isinstance(scan, dict) or not isinstance(scan_time, (int, float)):
            return None

        current = current_ms if current_ms is not None else now_ms()
        if current - scan_time >= self.stale_after_ms:
            return None
        return scan
