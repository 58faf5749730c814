"""
Browser Scan Telemetry Migrations
Schema for the scan log store in PostgreSQL.
"""

from typing import List, Tuple

SCAN_LOGS_MIGRATION_SQL = """
-- One row per /receive call.
-- payload is gzip'd JSON; the remaining columns are searchable metadata.

CREATE TABLE IF NOT EXISTS scan_logs (
    id UUID PRIMARY KEY,
    payload BYTEA NOT NULL,

    ip TEXT,
    browser TEXT,
    latitude TEXT,
    longitude TEXT,

    is_compressed BOOLEAN DEFAULT TRUE,
    received_at TIMESTAMPTZ DEFAULT NOW(),
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_scan_logs_received_at ON scan_logs(received_at);
CREATE INDEX IF NOT EXISTS idx_scan_logs_browser ON scan_logs(browser);
CREATE INDEX IF NOT EXISTS idx_scan_logs_ip ON scan_logs(ip);
"""

SCAN_LOGS_TEXT_COLUMNS_SQL = """
-- Client-supplied metadata is free-form; drop the length caps of earlier schemas.
ALTER TABLE scan_logs ALTER COLUMN ip TYPE TEXT;
ALTER TABLE scan_logs ALTER COLUMN latitude TYPE TEXT;
ALTER TABLE scan_logs ALTER COLUMN longitude TYPE TEXT;
"""

# Ordered; names are recorded in the _migrations table.
MIGRATIONS: List[Tuple[str, str]] = [
    ("001_scan_logs", SCAN_LOGS_MIGRATION_SQL),
    ("002_scan_logs_text_columns", SCAN_LOGS_TEXT_COLUMNS_SQL),
]


def get_migration_sql() -> str:
    """Return the full schema script."""
    return "\n".join(sql for _, sql in MIGRATIONS)
