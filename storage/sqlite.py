"""SQLite persistence for canonical feed URLs, their aliases and fetch logs."""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable, Iterator

from core.models import CanonicalizeResult, FetchLog, MatchOutcome
from core.structured_logging import emit_json_event


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS feeds (
    url TEXT PRIMARY KEY,
    method TEXT NOT NULL,
    reason TEXT NOT NULL,
    run_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS feed_aliases (
    alias_url TEXT PRIMARY KEY,
    feed_url TEXT NOT NULL REFERENCES feeds(url) ON DELETE CASCADE,
    run_id TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_feed_aliases_feed_url ON feed_aliases(feed_url);

CREATE TABLE IF NOT EXISTS fetch_log (
    id TEXT PRIMARY KEY,
    url TEXT NOT NULL,
    method TEXT NOT NULL,
    status_code INTEGER,
    final_url TEXT,
    latency_ms INTEGER,
    bytes_received INTEGER,
    error_code TEXT,
    created_at TEXT NOT NULL,
    run_id TEXT
);
"""


def _utc_now() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(UTC)


class SQLiteFeedStore:
    """
    Known canonical feeds, usable as the canonicalizer's existence check.

    Every recorded run stores the selected URL in `feeds` and maps the input
    URL, the origin URL, the selected URL itself and every URL the run proved
    to serve the same feed in `feed_aliases`, so a later run that reaches any
    of them stops at the existence check.
    """

    def __init__(self, db_path: str | Path, initialize: bool = True) -> None:
        """Initialize store and optionally create the schema."""
        self.db_path = Path(db_path)
        if initialize:
            self.initialize_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        try:
            connection.execute("PRAGMA foreign_keys = ON")
            yield connection
            connection.commit()
        finally:
            connection.close()

    def initialize_schema(self) -> None:
        """Create tables on an empty database; no-op when they exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as connection:
            connection.executescript(SCHEMA_SQL)

    def lookup(self, url: str) -> dict[str, Any] | None:
        """Return the stored canonical feed for a canonical or alias URL."""
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT f.url, f.method, f.reason, f.run_id, f.updated_at
                FROM feeds f
                WHERE f.url = ?
                UNION ALL
                SELECT f.url, f.method, f.reason, f.run_id, f.updated_at
                FROM feed_aliases a
                JOIN feeds f ON f.url = a.feed_url
                WHERE a.alias_url = ?
                LIMIT 1
                """,
                (url, url),
            ).fetchone()
        if row is None:
            return None
        return dict(row)

    async def exists(self, url: str) -> dict[str, Any] | None:
        """Existence-check collaborator: stored data for `url`, else None."""
        return await asyncio.to_thread(self.lookup, url)

    def record(self, input_url: str, result: CanonicalizeResult) -> None:
        """Upsert the selected feed and remember the URLs that led to it."""
        now = _utc_now().isoformat()
        aliases = {input_url, result.origin_url, result.url}
        aliases.update(attempt.url for attempt in result.attempts if attempt.outcome == MatchOutcome.MATCH)
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO feeds (url, method, reason, run_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    method = excluded.method,
                    reason = excluded.reason,
                    run_id = excluded.run_id,
                    updated_at = excluded.updated_at
                """,
                (
                    result.url,
                    result.method.value,
                    result.reason.value,
                    result.run_id,
                    now,
                    now,
                ),
            )
            for alias in sorted(aliases):
                connection.execute(
                    """
                    INSERT INTO feed_aliases (alias_url, feed_url, run_id, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(alias_url) DO UPDATE SET
                        feed_url = excluded.feed_url,
                        run_id = excluded.run_id
                    """,
                    (alias, result.url, result.run_id, now),
                )

        emit_json_event(
            event_type="feed_recorded",
            run_id=result.run_id,
            component="storage",
            url=result.url,
            aliases=sorted(aliases),
        )

    def save_fetch_logs(self, fetch_logs: Iterable[FetchLog], run_id: str | None = None) -> int:
        """Insert fetch_log rows; returns how many were written."""
        rows = [
            (
                fetch_log.id,
                fetch_log.url,
                fetch_log.method,
                fetch_log.status_code,
                fetch_log.final_url,
                fetch_log.latency_ms,
                fetch_log.bytes_received,
                fetch_log.error_code.value if fetch_log.error_code else None,
                fetch_log.created_at.isoformat(),
                run_id,
            )
            for fetch_log in fetch_logs
        ]
        if not rows:
            return 0
        with self._connect() as connection:
            connection.executemany(
                """
                INSERT OR IGNORE INTO fetch_log (
                    id,
                    url,
                    method,
                    status_code,
                    final_url,
                    latency_ms,
                    bytes_received,
                    error_code,
                    created_at,
                    run_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def list_aliases(self, feed_url: str) -> list[str]:
        """All alias URLs that point at one canonical feed, sorted."""
        with self._connect() as connection:
            rows = connection.execute(
                "SELECT alias_url FROM feed_aliases WHERE feed_url = ? ORDER BY alias_url",
                (feed_url,),
            ).fetchall()
        return [str(row["alias_url"]) for row in rows]
