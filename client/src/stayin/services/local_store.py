"""On-device cache store (SQLite).

Opening the store is one of the startup readiness tasks.
"""

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, UTC
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class LocalStore:
    """Small key/value cache kept on the device."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _connect(self) -> sqlite3.Connection:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row
        conn.executescript(SCHEMA)
        conn.commit()
        return conn

    async def open(self) -> None:
        """Open the database and create tables if missing (non-destructive)."""
        if self._conn is not None:
            return
        self._conn = await asyncio.to_thread(self._connect)
        logger.info(f"Local store open at {self.path}")

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await asyncio.to_thread(conn.close)
        logger.debug("Local store closed")

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Local store is not open")
        return self._conn

    async def put(self, key: str, value: Any) -> None:
        conn = self._require()

        def _write() -> None:
            conn.execute(
                "INSERT INTO cache_entries (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, json.dumps(value), datetime.now(UTC).isoformat()),
            )
            conn.commit()

        await asyncio.to_thread(_write)

    async def get(self, key: str) -> Any | None:
        conn = self._require()

        def _read() -> sqlite3.Row | None:
            return conn.execute(
                "SELECT value FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()

        row = await asyncio.to_thread(_read)
        return json.loads(row["value"]) if row else None
