"""
Browser Scan Log Store
Persistence and grouping queries for scan logs.

Backends:
- PostgresLogStore: scan_logs table via psycopg2 (DATABASE_URL set)
- MemoryLogStore: in-process list, same grouping semantics (local runs, tests)

Usage:
    from browserscan.telemetry import get_store

    store = get_store()
    store.insert(record)
    store.browser_counts()
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from threading import Lock
from typing import Optional, Dict, Any, List, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor

from .migration import get_migration_sql
from .models import LogRecord

logger = logging.getLogger(__name__)

GEO_PREFIX_LENGTH = 5
GEO_HOTSPOT_LIMIT = 5
IP_DISTRIBUTION_LIMIT = 10


class StoreError(Exception):
    """Store operation failed."""


class StoreUnavailableError(StoreError):
    """Store could not be reached."""


def coordinate_bucket(value: Optional[str], width: int = GEO_PREFIX_LENGTH) -> str:
    """
    First `width` characters of a coordinate string.
    Missing values bucket as "". Sign and integer-part length shift boundaries.
    """
    return (value or "")[:width]


def _ranked(counter: Counter, limit: Optional[int] = None) -> List[Tuple[Any, int]]:
    """Sort groups by count desc, then key asc with None last."""
    rows = sorted(
        counter.items(),
        key=lambda kv: (-kv[1], kv[0] is None, kv[0] if kv[0] is not None else ""),
    )
    return rows[:limit] if limit is not None else rows


class LogStore(ABC):
    """Append-only scan log collection."""

    backend = "abstract"

    @abstractmethod
    def insert(self, record: LogRecord) -> str:
        """Persist a record, return its id."""

    @abstractmethod
    def count(self) -> int:
        """Total records."""

    @abstractmethod
    def browser_counts(self) -> List[Dict[str, Any]]:
        """[{_id: browser, count}] sorted by count desc."""

    @abstractmethod
    def geo_hotspots(
        self, limit: int = GEO_HOTSPOT_LIMIT, prefix_length: int = GEO_PREFIX_LENGTH
    ) -> List[Dict[str, Any]]:
        """[{_id: {lat, lng}, count}] for the busiest coordinate prefixes."""

    @abstractmethod
    def ip_distribution(self, limit: int = IP_DISTRIBUTION_LIMIT) -> List[Dict[str, Any]]:
        """[{_id: ip, count}] for the busiest addresses."""

    @abstractmethod
    def fetch_all(self) -> List[LogRecord]:
        """All records, newest received first."""


class MemoryLogStore(LogStore):
    """Thread-safe in-process store."""

    backend = "memory"

    def __init__(self):
        self._records: List[LogRecord] = []
        self._lock = Lock()

    def _snapshot(self) -> List[LogRecord]:
        with self._lock:
            return list(self._records)

    def insert(self, record: LogRecord) -> str:
        with self._lock:
            self._records.append(record)
        return record.id

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def browser_counts(self) -> List[Dict[str, Any]]:
        counter = Counter(r.browser for r in self._snapshot())
        return [{"_id": browser, "count": n} for browser, n in _ranked(counter)]

    def geo_hotspots(
        self, limit: int = GEO_HOTSPOT_LIMIT, prefix_length: int = GEO_PREFIX_LENGTH
    ) -> List[Dict[str, Any]]:
        counter = Counter(
            (coordinate_bucket(r.latitude, prefix_length), coordinate_bucket(r.longitude, prefix_length))
            for r in self._snapshot()
        )
        return [
            {"_id": {"lat": lat, "lng": lng}, "count": n}
            for (lat, lng), n in _ranked(counter, limit)
        ]

    def ip_distribution(self, limit: int = IP_DISTRIBUTION_LIMIT) -> List[Dict[str, Any]]:
        counter = Counter(r.ip for r in self._snapshot())
        return [{"_id": ip, "count": n} for ip, n in _ranked(counter, limit)]

    def fetch_all(self) -> List[LogRecord]:
        # Equal timestamps: latest insert first
        records = list(reversed(self._snapshot()))
        return sorted(records, key=lambda r: r.received_at, reverse=True)


class PostgresLogStore(LogStore):
    """scan_logs table in PostgreSQL. One connection per operation."""

    backend = "postgres"

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._tables_ready = False
        self._tables_lock = Lock()

    def _get_conn(self):
        """Get database connection."""
        try:
            conn = psycopg2.connect(self._dsn, cursor_factory=RealDictCursor)
        except psycopg2.Error as e:
            logger.error(f"[LogStore] DB connection failed: {e}")
            raise StoreUnavailableError("Database connection failed") from e
        self._ensure_tables(conn)
        return conn

    def _ensure_tables(self, conn) -> None:
        """Ensure scan_logs exists (once per process)."""
        if self._tables_ready:
            return
        with self._tables_lock:
            if self._tables_ready:
                return
            try:
                cur = conn.cursor()
                cur.execute(get_migration_sql())
                conn.commit()
                cur.close()
            except psycopg2.Error as e:
                conn.rollback()
                conn.close()
                logger.error(f"[LogStore] Table creation failed: {e}")
                raise StoreError("Table creation failed") from e
            self._tables_ready = True

    def _query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            rows = [dict(row) for row in cur.fetchall()]
            cur.close()
            return rows
        except psycopg2.Error as e:
            logger.error(f"[LogStore] Query failed: {e}")
            raise StoreError("Query failed") from e
        finally:
            conn.close()

    def insert(self, record: LogRecord) -> str:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO scan_logs
                (id, payload, ip, browser, latitude, longitude, is_compressed, received_at, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                record.id,
                psycopg2.Binary(record.payload),
                record.ip,
                record.browser,
                record.latitude,
                record.longitude,
                record.is_compressed,
                record.received_at,
                record.created_at,
            ))
            conn.commit()
            cur.close()
            return record.id
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"[LogStore] insert failed: {e}")
            raise StoreError("Insert failed") from e
        finally:
            conn.close()

    def count(self) -> int:
        rows = self._query("SELECT COUNT(*) AS total FROM scan_logs")
        return int(rows[0]["total"] or 0) if rows else 0

    def browser_counts(self) -> List[Dict[str, Any]]:
        rows = self._query("""
            SELECT browser, COUNT(*) AS count
            FROM scan_logs
            GROUP BY browser
            ORDER BY count DESC, browser ASC NULLS LAST
        """)
        return [{"_id": row["browser"], "count": int(row["count"])} for row in rows]

    def geo_hotspots(
        self, limit: int = GEO_HOTSPOT_LIMIT, prefix_length: int = GEO_PREFIX_LENGTH
    ) -> List[Dict[str, Any]]:
        rows = self._query("""
            SELECT
                SUBSTRING(COALESCE(latitude, '') FROM 1 FOR %s) AS lat,
                SUBSTRING(COALESCE(longitude, '') FROM 1 FOR %s) AS lng,
                COUNT(*) AS count
            FROM scan_logs
            GROUP BY 1, 2
            ORDER BY count DESC, lat ASC, lng ASC
            LIMIT %s
        """, (prefix_length, prefix_length, limit))
        return [
            {"_id": {"lat": row["lat"], "lng": row["lng"]}, "count": int(row["count"])}
            for row in rows
        ]

    def ip_distribution(self, limit: int = IP_DISTRIBUTION_LIMIT) -> List[Dict[str, Any]]:
        rows = self._query("""
            SELECT ip, COUNT(*) AS count
            FROM scan_logs
            GROUP BY ip
            ORDER BY count DESC, ip ASC NULLS LAST
            LIMIT %s
        """, (limit,))
        return [{"_id": row["ip"], "count": int(row["count"])} for row in rows]

    def fetch_all(self) -> List[LogRecord]:
        rows = self._query("""
            SELECT id, payload, ip, browser, latitude, longitude,
                   is_compressed, received_at, created_at
            FROM scan_logs
            ORDER BY received_at DESC
        """)
        return [
            LogRecord(
                id=str(row["id"]),
                payload=bytes(row["payload"]) if row["payload"] is not None else b"",
                ip=row["ip"],
                browser=row["browser"],
                latitude=row["latitude"],
                longitude=row["longitude"],
                is_compressed=bool(row["is_compressed"]),
                received_at=row["received_at"],
                created_at=row["created_at"],
            )
            for row in rows
        ]


_store: Optional[LogStore] = None
_store_lock = Lock()


def build_store(database_url: Optional[str]) -> LogStore:
    """PostgreSQL when a DSN is configured, memory otherwise."""
    if database_url:
        return PostgresLogStore(database_url)
    logger.warning("DATABASE_URL not set, using in-memory log store")
    return MemoryLogStore()


def get_store() -> LogStore:
    """Get the process-wide store (FastAPI dependency)."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                from browserscan.config import get_settings
                _store = build_store(get_settings().database_url)
    return _store
