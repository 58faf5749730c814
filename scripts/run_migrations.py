#!/usr/bin/env python3
"""
Browser Scan Migration Runner
=============================
Applies pending schema migrations to PostgreSQL.

Usage:
    python scripts/run_migrations.py
    python scripts/run_migrations.py --dry-run

Or import and call:
    from scripts.run_migrations import run_pending_migrations
    run_pending_migrations()
"""

import os
import sys
import hashlib
import logging
from pathlib import Path
from typing import List, Optional, Set, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from browserscan.telemetry.migration import MIGRATIONS  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def get_db_connection():
    """Get database connection from environment variables."""
    database_url = os.environ.get('DATABASE_URL')

    if database_url:
        return psycopg2.connect(database_url)

    # Fallback to individual env vars
    return psycopg2.connect(
        host=os.environ.get('PGHOST', 'localhost'),
        port=os.environ.get('PGPORT', '5432'),
        database=os.environ.get('PGDATABASE', 'browserscan'),
        user=os.environ.get('PGUSER', 'postgres'),
        password=os.environ.get('PGPASSWORD', '')
    )


def ensure_migrations_table(conn):
    """Create migrations tracking table if it doesn't exist."""
    with conn.cursor() as cur:
        cur.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id SERIAL PRIMARY KEY,
                filename VARCHAR(255) UNIQUE NOT NULL,
                executed_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                checksum VARCHAR(64),
                success BOOLEAN DEFAULT true,
                error_message TEXT
            )
        """)
        conn.commit()
    logger.info("Migrations table ready")


def get_executed_migrations(conn) -> Set[str]:
    """Names of migrations that already succeeded."""
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("""
            SELECT filename FROM _migrations
            WHERE success = true
            ORDER BY filename
        """)
        return {row['filename'] for row in cur.fetchall()}


def get_pending_migrations(executed: Set[str]) -> List[Tuple[str, str]]:
    return [(name, sql) for name, sql in MIGRATIONS if name not in executed]


def calculate_checksum(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()


def run_migration(conn, name: str, sql: str) -> bool:
    """Run a single migration and record the outcome."""
    logger.info(f"Running migration: {name}")
    checksum = calculate_checksum(sql)

    try:
        with conn.cursor() as cur:
            cur.execute(sql)
            cur.execute("""
                INSERT INTO _migrations (filename, checksum, success)
                VALUES (%s, %s, true)
                ON CONFLICT (filename) DO UPDATE SET
                    executed_at = NOW(),
                    checksum = EXCLUDED.checksum,
                    success = true,
                    error_message = NULL
            """, (name, checksum))
        conn.commit()
        logger.info(f"Migration {name} completed successfully")
        return True

    except psycopg2.Error as e:
        conn.rollback()
        logger.error(f"Migration {name} failed: {e}")
        with conn.cursor() as cur:
            cur.execute("""
                INSERT INTO _migrations (filename, checksum, success, error_message)
                VALUES (%s, %s, false, %s)
                ON CONFLICT (filename) DO UPDATE SET
                    executed_at = NOW(),
                    checksum = EXCLUDED.checksum,
                    success = false,
                    error_message = EXCLUDED.error_message
            """, (name, checksum, str(e)))
        conn.commit()
        return False


def run_pending_migrations(conn=None) -> dict:
    """
    Run all pending migrations, stopping at the first failure.

    Returns:
        dict with 'success', 'executed', 'failed', 'skipped', 'errors'
    """
    result = {
        'success': True,
        'executed': 0,
        'failed': 0,
        'skipped': 0,
        'errors': []
    }

    owns_conn = conn is None
    if owns_conn:
        try:
            conn = get_db_connection()
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to database: {e}")
            result['success'] = False
            result['errors'].append(str(e))
            return result

    try:
        ensure_migrations_table(conn)
        pending = get_pending_migrations(get_executed_migrations(conn))
        logger.info(f"Pending migrations: {len(pending)}")

        for name, sql in pending:
            if run_migration(conn, name, sql):
                result['executed'] += 1
            else:
                result['failed'] += 1
                result['success'] = False
                result['errors'].append(f"Failed: {name}")
                break

        result['skipped'] = len(pending) - result['executed'] - result['failed']
    finally:
        if owns_conn:
            conn.close()

    logger.info(
        f"Migration summary: {result['executed']} executed, "
        f"{result['failed']} failed, {result['skipped']} skipped"
    )
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Run database migrations')
    parser.add_argument('--dry-run', action='store_true', help='Show pending migrations without running')
    args = parser.parse_args(argv)

    if args.dry_run:
        conn = get_db_connection()
        try:
            ensure_migrations_table(conn)
            executed = get_executed_migrations(conn)
            pending = get_pending_migrations(executed)
        finally:
            conn.close()

        print(f"\nExecuted migrations: {len(executed)}")
        for name in sorted(executed):
            print(f"  ✓ {name}")
        print(f"\nPending migrations: {len(pending)}")
        for name, _ in pending:
            print(f"  ○ {name}")
        return 0

    result = run_pending_migrations()
    return 0 if result['success'] else 1


if __name__ == "__main__":
    sys.exit(main())
