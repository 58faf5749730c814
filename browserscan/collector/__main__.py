"""
Browser Scan Collector CLI

Usage:
    python -m browserscan.collector --backend http://localhost:4000 \
        --user-agent "Mozilla/5.0 ... Firefox/128.0" --lat 37.7749 --lng -122.4194
    python -m browserscan.collector --stats-only
"""

import os
import sys
import argparse
import logging
from typing import List, Optional

from browserscan.config import configure_logging
from .cache import ScanCache
from .client import ScanClient, CollectorError, format_stats
from .signals import build_scan, visible_results

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "http://localhost:4000"
DEFAULT_CACHE = os.path.join(os.path.expanduser("~"), ".browserscan", "last_scan.json")


def _denied():
    raise PermissionError("User denied geolocation")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Collect and submit a system scan')
    parser.add_argument('--backend', default=os.getenv("SCAN_BACKEND_URL", DEFAULT_BACKEND),
                        help='Server base URL')
    parser.add_argument('--user-agent', default='', help='User-agent string to classify')
    parser.add_argument('--brave', action='store_true', help='Client exposes the Brave flag')
    parser.add_argument('--chrome-runtime', action='store_true', help='Client exposes window.chrome')
    parser.add_argument('--lat', type=float, help='Latitude')
    parser.add_argument('--lng', type=float, help='Longitude')
    parser.add_argument('--deny-location', action='store_true', help='Report geolocation as denied')
    parser.add_argument('--connection', help='Effective connection type (e.g. 4g)')
    parser.add_argument('--cache', default=DEFAULT_CACHE, help='Last-scan cache file')
    parser.add_argument('--stats-only', action='store_true', help='Only print dashboard stats')
    return parser.parse_args(argv)


def print_scan(scan) -> None:
    for key, value in visible_results(scan).items():
        print(f"  {key}: {value}")


def print_stats(client: ScanClient) -> None:
    try:
        stats = client.fetch_stats()
    except CollectorError as e:
        logger.warning(f"Admin stats could not be loaded or server is offline: {e}")
        return
    for line in format_stats(stats):
        print(line)


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging(os.getenv("LOG_LEVEL", "WARNING"))
    args = parse_args(argv)
    cache = ScanCache(args.cache)

    with ScanClient(args.backend) as client:
        if args.stats_only:
            cached = cache.load()
            if cached:
                print("Last scan:")
                print_scan(cached)
            print_stats(client)
            return 0

        geo_provider = None
        if args.deny_location:
            geo_provider = _denied
        elif args.lat is not None and args.lng is not None:
            geo_provider = lambda: (args.lat, args.lng)  # noqa: E731

        print("Analyzing System & Locating...")
        scan = build_scan(
            user_agent=args.user_agent,
            brave=args.brave,
            chrome_runtime=args.chrome_runtime,
            geo_provider=geo_provider,
            connection=args.connection,
        )
        cache.save(scan)
        print_scan(scan)

        print("Transmitting Audit...")
        try:
            client.submit(scan)
        except CollectorError as e:
            print(f"Sync Error: Data Saved Locally ({e})")
            return 1

        print("✓ Audit Logged Successfully")
        print_stats(client)
        return 0


if __name__ == "__main__":
    sys.exit(main())
