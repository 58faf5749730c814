#!/usr/bin/env python3
"""
Rebuild the mirror file from the log store.

Usage:
    python scripts/export_mirror.py
    python scripts/export_mirror.py --output backup/logs.json
"""

import sys
import logging
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from browserscan.config import get_settings, configure_logging  # noqa: E402
from browserscan.telemetry import MirrorFile, build_store, rebuild_mirror, StoreError  # noqa: E402

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    parser = argparse.ArgumentParser(description='Regenerate the mirror file from the store')
    parser.add_argument('--output', '-o', default=settings.log_file, help='Mirror file path')
    args = parser.parse_args(argv)

    if not settings.database_url:
        logger.error("DATABASE_URL is not set; nothing to export")
        return 1

    try:
        result = rebuild_mirror(build_store(settings.database_url), MirrorFile(args.output))
    except StoreError as e:
        logger.error(f"Export failed: {e}")
        return 1

    print(f"Wrote {result['written']} entries to {args.output} ({result['skipped']} skipped)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
