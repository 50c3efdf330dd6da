"""SQLite-backed journey store."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..errors import StorageError
from ..models import Journey
from .base import JourneyStore

logger = logging.getLogger(__name__)


class SQLiteJourneyStore(JourneyStore):
    """Stores each journey as one row holding its full JSON record.

    Blocking sqlite calls run on a single worker thread, so operations apply in
    the order they were issued and a stale write can never land after a newer
    one for the same journey.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            if str(path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(path), check_same_thread=False)
            self._init_schema()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to open journey database at {self.path}: {exc}") from exc
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sjr-sqlite")
        self._closed = False

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS journeys (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                start_time INTEGER NOT NULL,
                end_time INTEGER,
                record_json TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_journeys_start_time ON journeys (start_time)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_journeys_name ON journeys (name)")
        self.conn.commit()

    async def _run(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        if self._closed:
            raise StorageError(f"Failed to {action}: store is closed")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, fn, *args)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to {action}: {exc}") from exc

    def _upsert(self, params: tuple) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO journeys (id, name, start_time, end_time, record_json)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    start_time = excluded.start_time,
                    end_time = excluded.end_time,
                    record_json = excluded.record_json
                """,
                params,
            )

    def _fetch_one(self, journey_id: str) -> Optional[str]:
        row = self.conn.execute("SELECT record_json FROM journeys WHERE id = ?", (journey_id,)).fetchone()
        return row[0] if row else None

    def _fetch_all(self) -> List[str]:
        rows = self.conn.execute("SELECT record_json FROM journeys ORDER BY start_time DESC").fetchall()
        return [row[0] for row in rows]

    def _delete(self, journey_id: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM journeys WHERE id = ?", (journey_id,))

    def _clear(self) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM journeys")

    async def put(self, journey: Journey) -> None:
        # snapshot now; the journey may keep changing while the write is queued
        record = journey.to_record()
        params = (
            journey.id,
            journey.name,
            journey.start_time,
            journey.end_time,
            json.dumps(record),
        )
        await self._run("save journey", self._upsert, params)

    async def get(self, journey_id: str) -> Optional[Journey]:
        payload = await self._run("get journey", self._fetch_one, journey_id)
        if payload is None:
            return None
        return Journey.from_record(json.loads(payload))

    async def get_all(self) -> List[Journey]:
        payloads = await self._run("get journeys", self._fetch_all)
        return [Journey.from_record(json.loads(payload)) for payload in payloads]

    async def delete(self, journey_id: str) -> None:
        await self._run("delete journey", self._delete, journey_id)

    async def clear_all(self) -> None:
        await self._run("clear journeys", self._clear)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        try:
            self.conn.close()
        except sqlite3.Error as exc:
            logger.warning("Failed to close journey database %s: %s", self.path, exc)
