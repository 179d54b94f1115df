"""SQLite event log adapter.

Implements StatusSinkPort by appending every pipeline event to a simple
SQLite database, so forwarding history survives restarts.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import sqlite3
from typing import Dict, List

from core.models import StatusEvent


class SQLiteEventLog:
    """Thin SQLite wrapper that satisfies the StatusSinkPort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist."""

        with self._connect() as conn:
            # events is an append-only log for auditing. We keep it denormalized
            # for simplicity.
            # Fields:
            # - id: auto-increment primary key
            # - created_at: when the event was recorded (UTC, ISO 8601)
            # - kind: StatusEventKind value
            # - sender: canonical sender number
            # - reasons: filter reasons joined with "; " (filtered events only)
            # - attempts: delivery attempts (delivery events only)
            # - last_error: final transport error (failed deliveries only)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TIMESTAMP NOT NULL,
                    kind TEXT NOT NULL,
                    sender TEXT,
                    reasons TEXT,
                    attempts INTEGER,
                    last_error TEXT
                )
                """
            )

    def record(self, event: StatusEvent) -> None:
        """Persist one event to the append-only events table."""

        created_at = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events (created_at, kind, sender, reasons, attempts, last_error)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    created_at.isoformat(),
                    event.kind.value,
                    event.sender,
                    "; ".join(event.reasons) or None,
                    event.attempts,
                    event.last_error,
                ),
            )

    async def publish(self, event: StatusEvent) -> None:
        await asyncio.to_thread(self.record, event)

    def recent(self, limit: int = 20) -> List[sqlite3.Row]:
        """Return the newest events first."""

        with self._connect() as conn:
            return conn.execute(
                "SELECT * FROM events ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()

    def counts(self) -> Dict[str, int]:
        """Return the number of recorded events per kind."""

        with self._connect() as conn:
            rows = conn.execute("SELECT kind, COUNT(*) AS total FROM events GROUP BY kind").fetchall()
        return {row["kind"]: int(row["total"]) for row in rows}

    def cleanup(self, ttl_days: int) -> int:
        """Delete events older than the TTL and return the number removed."""

        cutoff = datetime.now(timezone.utc) - timedelta(days=ttl_days)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM events WHERE created_at < ?",
                (cutoff.isoformat(),),
            )
            return cur.rowcount
