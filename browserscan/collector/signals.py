"""
Browser Scan Collector Signals
Gathers the device/browser facts a scan reports.

Sentinels:
- "N/A"     signal not available on this platform
- "Denied"  geolocation refused, failed or timed out
"""

import os
import glob
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
DENIED = "Denied"
GEO_TIMEOUT_SECONDS = 8.0
DEVICE_MEMORY_STEPS = (0.25, 0.5, 1, 2, 4, 8)

GeoProvider = Callable[[], Tuple[float, float]]


def detect_browser(user_agent: str, brave: bool = False, chrome_runtime: bool = False) -> str:
    """Ordered checks, first match wins."""
    ua = user_agent or ""
    if brave:
        return "Brave Browser"
    if "Edg/" in ua:
        return "Edge"
    if "Chrome" in ua and chrome_runtime:
        return "Chrome"
    if "Firefox" in ua:
        return "Firefox"
    if "Safari" in ua and "Chrome" not in ua:
        return "Safari"
    return "Mobile Browser"


def hardware_concurrency() -> Any:
    return os.cpu_count() or NOT_AVAILABLE


def quantize_device_memory(gib: float) -> float:
    """Round down to a power of two between 0.25 and 8, like navigator.deviceMemory."""
    result = DEVICE_MEMORY_STEPS[0]
    for step in DEVICE_MEMORY_STEPS:
        if gib >= step:
            result = step
    return result


def _format_gb(value: float) -> str:
    return f"{int(value) if float(value).is_integer() else value} GB"


def device_memory() -> str:
    try:
        total = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        return NOT_AVAILABLE
    if total <= 0:
        return NOT_AVAILABLE
    return _format_gb(quantize_device_memory(total / (1024 ** 3)))


def read_geolocation(
    provider: Optional[GeoProvider],
    timeout: float = GEO_TIMEOUT_SECONDS,
) -> Dict[str, str]:
    """{lat, lng} with 4 decimals, or sentinel strings."""
    if provider is None:
        return {"lat": NOT_AVAILABLE, "lng": NOT_AVAILABLE}

    executor = ThreadPoolExecutor(max_workers=1)
    try:
        lat, lng = executor.submit(provider).result(timeout=timeout)
        return {"lat": f"{float(lat):.4f}", "lng": f"{float(lng):.4f}"}
    except FutureTimeout:
        logger.warning(f"Geolocation timed out after {timeout}s")
        return {"lat": DENIED, "lng": DENIED}
    except Exception as e:
        logger.warning(f"Geolocation unavailable: {e}")
        return {"lat": DENIED, "lng": DENIED}
    finally:
        executor.shutdown(wait=False)


def read_battery(power_supply_dir: str = "/sys/class/power_supply") -> str:
    """Rounded battery percentage from sysfs."""
    for path in sorted(glob.glob(os.path.join(power_supply_dir, "BAT*", "capacity"))):
        try:
            with open(path, "r") as f:
                return f"{round(float(f.read().strip()))}%"
        except (OSError, ValueError):
            continue
    return NOT_AVAILABLE


def build_scan(
    user_agent: str = "",
    brave: bool = False,
    chrome_runtime: bool = False,
    geo_provider: Optional[GeoProvider] = None,
    connection: Optional[str] = None,
    power_supply_dir: str = "/sys/class/power_supply",
) -> Dict[str, Any]:
    """One scan, keys in display order."""
    location = read_geolocation(geo_provider)
    return {
        "browser": detect_browser(user_agent, brave=brave, chrome_runtime=chrome_runtime),
        "cores": hardware_concurrency(),
        "memory": device_memory(),
        "latitude": location["lat"],
        "longitude": location["lng"],
        "battery": read_battery(power_supply_dir),
        "connection": connection or NOT_AVAILABLE,
    }


def visible_results(scan: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty and sentinel values for display."""
    hidden = {NOT_AVAILABLE, "Hidden", DENIED}
    return {
        key: value
        for key, value in scan.items()
        if value and not (isinstance(value, str) and value in hidden)
    }
