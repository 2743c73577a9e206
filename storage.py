from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional

from config import settings
from models import BookRecord

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "books"


class SlotStorage:
    """SQLite-backed key/value store holding one serialized string per slot."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or settings.database_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS slots (
                    name TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_item(self, name: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM slots WHERE name = ?",
                (name,),
            ).fetchone()
        return row["value"] if row else None

    def set_item(self, name: str, value: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO slots (name, value) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE
                SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                (name, value),
            )

    def remove_item(self, name: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM slots WHERE name = ?", (name,))


class BookStore:
    """Persists the whole book collection as a JSON array in a single slot."""

    def __init__(self, storage: SlotStorage, slot: str = DEFAULT_SLOT):
        self.storage = storage
        self.slot = slot

    def load(self) -> List[BookRecord]:
        raw = self.storage.get_item(self.slot)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Slot %r does not hold valid JSON; starting empty", self.slot)
            return []
        if not isinstance(data, list):
            logger.warning("Slot %r does not hold a list; starting empty", self.slot)
            return []

        books: List[BookRecord] = []
        for entry in data:
            if not isinstance(entry, dict):
                logger.warning("Skipping stored entry that is not an object: %r", entry)
                continue
            try:
                books.append(BookRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as error:
                logger.warning("Skipping malformed stored book %r: %s", entry.get("id"), error)
        return books

    def save(self, books: Iterable[BookRecord]) -> None:
        payload = [book.to_dict() for book in books]
        self.storage.set_item(self.slot, json.dumps(payload, ensure_ascii=False))
        logger.debug("Saved %d books to slot %r", len(payload), self.slot)
