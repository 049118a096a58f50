"""SQLite-backed search log for analytics and luxury appearance tracking."""
from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

from bellhopping.hotels.models import EnrichedHotelResult
from bellhopping.tasks.search_payloads import SearchQuery

logger = logging.getLogger(__name__)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
SCHEMA_VERSION = 2
TOP_DESTINATIONS = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _json_dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def _destination(query: SearchQuery) -> str:
    location = query.location
    if location.name:
        return location.name
    if location.code:
        return location.code
    if location.coordinates is not None:
        return f"{location.coordinates.latitude:.4f},{location.coordinates.longitude:.4f}"
    return "unknown"


def _search_params(query: SearchQuery) -> dict[str, Any]:
    location = query.location
    return {
        "location": {
            "code": location.code,
            "type": location.type.value if location.type else None,
            "name": location.name,
            "lat": location.coordinates.latitude if location.coordinates else None,
            "lng": location.coordinates.longitude if location.coordinates else None,
        },
        "check_in": query.check_in.isoformat(),
        "check_out": query.check_out.isoformat(),
        "rooms": query.rooms,
        "adults": query.adults,
        "children": query.children,
        "radius_miles": query.radius_miles,
    }


class SearchLogSink(Protocol):
    """What the orchestrator needs from a search log."""

    async def log_search(
        self,
        query: SearchQuery,
        results: Sequence[EnrichedHotelResult],
        *,
        response_time_ms: float,
        cached: bool,
        session_id: Optional[str] = None,
    ) -> Optional[int]:
        ...

    async def log_failed_search(
        self,
        query: SearchQuery,
        error: BaseException,
        *,
        response_time_ms: float,
        session_id: Optional[str] = None,
    ) -> Optional[int]:
        ...


class SqliteSearchLog:
    """Thin async wrapper over sqlite3; every statement runs in a worker thread."""

    def __init__(
        self,
        db_path: Path,
        *,
        busy_timeout_ms: int = 2000,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._path = db_path
        self._busy_timeout_ms = busy_timeout_ms
        self._clock = clock
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # lifecycle

    async def initialize(self) -> None:
        if self._connection is not None:
            return
        async with self._lock:
            if self._connection is None:
                self._connection = await asyncio.to_thread(self._open_connection)

    async def close(self) -> None:
        if self._connection is None:
            return
        async with self._lock:
            conn = self._connection
            self._connection = None
            if conn is not None:
                await asyncio.to_thread(conn.close)

    async def __aenter__(self) -> "SqliteSearchLog":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.close()

    def _open_connection(self) -> sqlite3.Connection:
        if str(self._path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(max(self._busy_timeout_ms, 0))};")
        try:
            self._apply_migrations(conn)
        except sqlite3.OperationalError as exc:
            conn.close()
            logger.error("SQLite migration failed (path=%s): %s", self._path, exc)
            raise
        return conn

    def _apply_migrations(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        current = self._get_schema_version(conn)
        if current >= SCHEMA_VERSION:
            return
        for version in range(current + 1, SCHEMA_VERSION + 1):
            script = MIGRATIONS.get(version)
            if not script:
                raise RuntimeError(f"Missing migration script for version {version}")
            conn.executescript(script)
            conn.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)\n"
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (str(version),),
            )
        conn.commit()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()
        if not row:
            return 0
        try:
            return int(row[0])
        except (TypeError, ValueError):
            return 0

    def _require_connection(self) -> sqlite3.Connection:
        if not self._connection:
            raise RuntimeError("Search log has not been initialised")
        return self._connection

    def _now(self) -> str:
        return self._clock().strftime(ISO_FORMAT)

    def _since(self, days: int) -> str:
        return (self._clock() - timedelta(days=days)).strftime(ISO_FORMAT)

    # ------------------------------------------------------------------
    # writes

    async def log_search(
        self,
        query: SearchQuery,
        results: Sequence[EnrichedHotelResult],
        *,
        response_time_ms: float,
        cached: bool,
        session_id: Optional[str] = None,
    ) -> Optional[int]:
        luxury_count = sum(1 for hotel in results if hotel.is_luxury)

        def _op() -> int:
            conn = self._require_connection()
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO search_logs(
                        session_id, destination, check_in, check_out, rooms, adults, children,
                        results_count, luxury_count, response_time_ms, cached, status,
                        error_message, search_params, created_at
                    )
                    VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'success', NULL, ?, ?)
                    """,
                    (
                        session_id,
                        _destination(query),
                        query.check_in.isoformat(),
                        query.check_out.isoformat(),
                        query.rooms,
                        query.adults,
                        query.children,
                        len(results),
                        luxury_count,
                        float(response_time_ms),
                        1 if cached else 0,
                        _json_dumps(_search_params(query)),
                        self._now(),
                    ),
                )
                log_id = int(cursor.lastrowid)
                conn.executemany(
                    """
                    INSERT INTO search_results(
                        search_log_id, hotel_code, hotel_name, chain_code, chain_name, star_rating,
                        city, country, lowest_rate, highest_rate, currency_code, rate_count,
                        is_luxury, luxury_programs, thumbnail
                    )
                    VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            log_id,
                            hotel.hotel_code,
                            hotel.hotel_name,
                            hotel.chain_code,
                            hotel.chain_name,
                            hotel.star_rating,
                            hotel.address.city,
                            hotel.address.country,
                            hotel.lowest_rate,
                            hotel.highest_rate,
                            hotel.currency_code,
                            hotel.rate_count,
                            1 if hotel.is_luxury else 0,
                            _json_dumps([program.value for program in hotel.luxury_programs]),
                            hotel.thumbnail,
                        )
                        for hotel in results
                    ],
                )
            return log_id

        try:
            async with self._lock:
                log_id = await asyncio.to_thread(_op)
        except sqlite3.Error:
            logger.exception("Failed to log search for %s", _destination(query))
            return None
        logger.info("Search logged: %s (%s hotels, %s luxury)", log_id, len(results), luxury_count)
        return log_id

    async def log_failed_search(
        self,
        query: SearchQuery,
        error: BaseException,
        *,
        response_time_ms: float,
        session_id: Optional[str] = None,
    ) -> Optional[int]:
        def _op() -> int:
            conn = self._require_connection()
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO search_logs(
                        session_id, destination, check_in, check_out, rooms, adults, children,
                        results_count, luxury_count, response_time_ms, cached, status,
                        error_message, search_params, created_at
                    )
                    VALUES(?, ?, ?, ?, ?, ?, ?, 0, 0, ?, 0, 'error', ?, ?, ?)
                    """,
                    (
                        session_id,
                        _destination(query),
                        query.check_in.isoformat(),
                        query.check_out.isoformat(),
                        query.rooms,
                        query.adults,
                        query.children,
                        float(response_time_ms),
                        str(error),
                        _json_dumps(_search_params(query)),
                        self._now(),
                    ),
                )
            return int(cursor.lastrowid)

        try:
            async with self._lock:
                log_id = await asyncio.to_thread(_op)
        except sqlite3.Error:
            logger.exception("Failed to log failed search for %s", _destination(query))
            return None
        logger.info("Failed search logged: %s - %s", log_id, error)
        return log_id

    # ------------------------------------------------------------------
    # reads

    async def search_stats(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)

        def _op() -> dict[str, Any]:
            conn = self._require_connection()
            total, successful, failed = conn.execute(
                """
                SELECT
                    COUNT(*),
                    COALESCE(SUM(CASE WHEN status='success' THEN 1 ELSE 0 END), 0),
                    COALESCE(SUM(CASE WHEN status='error' THEN 1 ELSE 0 END), 0)
                FROM search_logs
                WHERE created_at >= ?
                """,
                (since,),
            ).fetchone()
            destinations = conn.execute(
                """
                SELECT destination, COUNT(*) AS searches
                FROM search_logs
                WHERE created_at >= ?
                GROUP BY destination
                ORDER BY searches DESC, destination ASC
                LIMIT ?
                """,
                (since, TOP_DESTINATIONS),
            ).fetchall()
            success_rate = round(successful / total * 100, 2) if total else 0.0
            return {
                "total_searches": int(total),
                "successful_searches": int(successful),
                "failed_searches": int(failed),
                "success_rate": success_rate,
                "top_destinations": [
                    {"destination": destination, "count": int(count)} for destination, count in destinations
                ],
            }

        async with self._lock:
            return await asyncio.to_thread(_op)

    async def luxury_stats(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)

        def _op() -> dict[str, Any]:
            conn = self._require_connection()
            searches, total_hotels, total_luxury = conn.execute(
                """
                SELECT COUNT(*), COALESCE(SUM(results_count), 0), COALESCE(SUM(luxury_count), 0)
                FROM search_logs
                WHERE created_at >= ? AND status='success'
                """,
                (since,),
            ).fetchone()
            rate = round(total_luxury / total_hotels * 100, 2) if total_hotels else 0.0
            return {
                "total_hotels": int(total_hotels),
                "total_luxury_hotels": int(total_luxury),
                "luxury_appearance_rate": rate,
                "average_luxury_per_search": total_luxury / searches if searches else 0,
            }

        async with self._lock:
            return await asyncio.to_thread(_op)


MIGRATIONS: dict[int, str] = {
    1: """
        CREATE TABLE IF NOT EXISTS search_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT,
            destination TEXT NOT NULL,
            check_in TEXT NOT NULL,
            check_out TEXT NOT NULL,
            rooms INTEGER NOT NULL,
            adults INTEGER NOT NULL,
            children INTEGER NOT NULL DEFAULT 0,
            results_count INTEGER NOT NULL DEFAULT 0,
            luxury_count INTEGER NOT NULL DEFAULT 0,
            response_time_ms REAL,
            cached INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL,
            error_message TEXT,
            search_params TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS search_results (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            search_log_id INTEGER NOT NULL REFERENCES search_logs(id) ON DELETE CASCADE,
            hotel_code TEXT NOT NULL,
            hotel_name TEXT,
            chain_code TEXT,
            chain_name TEXT,
            star_rating REAL,
            city TEXT,
            country TEXT,
            lowest_rate REAL,
            highest_rate REAL,
            currency_code TEXT,
            rate_count INTEGER NOT NULL DEFAULT 0,
            is_luxury INTEGER NOT NULL DEFAULT 0,
            luxury_programs TEXT,
            thumbnail TEXT
        );
    """,
    2: """
        CREATE INDEX IF NOT EXISTS idx_search_logs_created_at ON search_logs(created_at);
        CREATE INDEX IF NOT EXISTS idx_search_results_hotel_code ON search_results(hotel_code);
    """,
}
