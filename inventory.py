from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from models import BookFields, BookRecord, Origin, local_id
from storage import BookStore

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://placeholder.com/150"


class InventoryError(ValueError):
    """Raised when an operation on the collection is not allowed."""


class ReadOnlyRecordError(InventoryError):
    pass


class RecordNotFoundError(InventoryError):
    pass


class Inventory:
    """In-memory book collection, mirrored to a BookStore after every change."""

    def __init__(
        self,
        store: BookStore,
        *,
        placeholder_image: str = PLACEHOLDER_IMAGE,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.placeholder_image = placeholder_image
        self._clock = clock
        self._lock = threading.RLock()
        self._books: "OrderedDict[str, BookRecord]" = OrderedDict(
            (book.id, book) for book in store.load()
        )
        logger.info("Loaded %d books from storage", len(self._books))

    # --------------------------------------------------------------------- #
    # Queries
    # --------------------------------------------------------------------- #
    def __len__(self) -> int:
        return len(self._books)

    def list_books(self) -> List[BookRecord]:
        with self._lock:
            return list(self._books.values())

    def get(self, book_id: str) -> Optional[BookRecord]:
        with self._lock:
            return self._books.get(book_id)

    def _require(self, book_id: str, action: str) -> BookRecord:
        record = self._books.get(book_id)
        if record is None:
            raise RecordNotFoundError(f"Book {book_id!r} not found")
        if record.read_only:
            raise ReadOnlyRecordError(f"Cannot {action} books from the API")
        return record

    def _persist(self) -> None:
        self.store.save(self._books.values())

    def _next_local_id(self) -> str:
        timestamp = int(self._clock() * 1000)
        while local_id(timestamp) in self._books:
            timestamp += 1
        return local_id(timestamp)

    # --------------------------------------------------------------------- #
    # Mutations
    # --------------------------------------------------------------------- #
    def add(self, fields: BookFields) -> BookRecord:
        with self._lock:
            record = BookRecord(
                id=self._next_local_id(),
                origin=Origin.LOCAL,
                title=fields.title,
                author=fields.author,
                published_date=fields.published_date,
                publisher=fields.publisher,
                email=fields.email,
                age=fields.age,
                image=fields.image or self.placeholder_image,
                subtitle="",
                url="#",
            )
            self._books[record.id] = record
            self._persist()
        logger.info("Added book %s (%r)", record.id, record.title)
        return record

    def update(self, book_id: str, fields: BookFields) -> BookRecord:
        """Replace the editable fields of a local book, keeping its image when none is given."""
        with self._lock:
            current = self._require(book_id, "edit")
            record = replace(
                current,
                title=fields.title,
                author=fields.author,
                published_date=fields.published_date,
                publisher=fields.publisher,
                email=fields.email,
                age=fields.age,
                image=fields.image or current.image,
            )
            self._books[book_id] = record
            self._persist()
        logger.info("Updated book %s", book_id)
        return record

    def delete(self, book_id: str, confirm: Callable[[], bool]) -> bool:
        """Remove a local book once ``confirm`` agrees. Returns whether it was removed."""
        with self._lock:
            self._require(book_id, "delete")
            if not confirm():
                return False
            del self._books[book_id]
            self._persist()
        logger.info("Deleted book %s", book_id)
        return True

    def merge_remote(self, records: Iterable[BookRecord]) -> None:
        """Keep every local book and replace the remote ones with ``records``."""
        incoming = list(records)
        for record in incoming:
            if record.origin is not Origin.REMOTE:
                raise ValueError(f"Book {record.id!r} is not a remote record")

        with self._lock:
            merged: "OrderedDict[str, BookRecord]" = OrderedDict(
                (book_id, book)
                for book_id, book in self._books.items()
                if book.origin is Origin.LOCAL
            )
            for record in incoming:
                merged[record.id] = record
            self._books = merged
            self._persist()
        logger.info("Merged %d remote books", len(incoming))
