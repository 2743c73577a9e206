from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import partial
from typing import Callable, List, Optional

from api import CatalogFetchError, fetch_recent_books
from config import Settings, settings as default_settings
from form import FormController
from inventory import Inventory, InventoryError
from models import BookRecord
from storage import BookStore, SlotStorage

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch books"
DELETE_PROMPT = "Are you sure you want to delete this book?"

CatalogFetcher = Callable[[], Optional[List[BookRecord]]]


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class BookInventoryApp:
    """Holds the whole application state and applies user intents to it."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        storage: Optional[SlotStorage] = None,
        fetcher: Optional[CatalogFetcher] = None,
    ):
        self.settings = config or default_settings
        self.storage = storage or SlotStorage(self.settings.database_path)
        self.inventory = Inventory(
            BookStore(self.storage, self.settings.storage_slot),
            placeholder_image=self.settings.placeholder_image,
        )
        self.form = FormController(self.inventory, max_image_bytes=self.settings.max_image_bytes)
        self.fetch_status = FetchStatus.IDLE
        self.fetch_error: Optional[str] = None
        self.notices: List[str] = []
        self.pending_delete: Optional[str] = None
        self._fetcher = fetcher or partial(
            fetch_recent_books,
            self.settings.recent_books_url,
            timeout=self.settings.recent_books_timeout,
        )

    # --------------------------------------------------------------------- #
    # Startup catalog fetch
    # --------------------------------------------------------------------- #
    async def load_recent_books(self) -> None:
        """Fetch the recent books catalog once and merge it into the collection."""
        if self.fetch_status is not FetchStatus.IDLE:
            return
        self.fetch_status = FetchStatus.LOADING
        try:
            records = await asyncio.to_thread(self._fetcher)
            if records is not None:
                self.inventory.merge_remote(records)
        except CatalogFetchError as error:
            logger.error("Error fetching books: %s", error)
            self._fetch_failed()
        except Exception:
            # Any failure must end the loading state.
            logger.exception("Unexpected error while loading recent books")
            self._fetch_failed()
        else:
            self.fetch_status = FetchStatus.LOADED

    def _fetch_failed(self) -> None:
        self.fetch_error = FETCH_FAILED_MESSAGE
        self.fetch_status = FetchStatus.FAILED

    # --------------------------------------------------------------------- #
    # Notices
    # --------------------------------------------------------------------- #
    def notify(self, message: str) -> None:
        self.notices.append(message)

    def pop_notices(self) -> List[str]:
        notices, self.notices = self.notices, []
        return notices

    # --------------------------------------------------------------------- #
    # Intents
    # --------------------------------------------------------------------- #
    def submit(self) -> Optional[BookRecord]:
        try:
            return self.form.submit()
        except InventoryError as error:
            # The book under edit vanished or became read-only meanwhile.
            self.notify(str(error))
            self.form.reset()
            return None

    def edit_book(self, book_id: str) -> bool:
        try:
            self.form.begin_edit(book_id)
        except InventoryError as error:
            self.notify(str(error))
            return False
        return True

    def cancel_edit(self) -> None:
        self.form.cancel_edit()

    def request_delete(self, book_id: str) -> bool:
        """Ask for confirmation before deleting a local book."""
        record = self.inventory.get(book_id)
        if record is None:
            self.notify(f"Book {book_id!r} not found")
            return False
        if record.read_only:
            self.notify("Cannot delete books from the API")
            return False
        self.pending_delete = book_id
        return True

    def confirm_delete(self, answer: bool) -> bool:
        book_id, self.pending_delete = self.pending_delete, None
        if book_id is None:
            return False
        try:
            removed = self.inventory.delete(book_id, confirm=lambda: answer)
        except InventoryError as error:
            self.notify(str(error))
            return False
        if removed and self.form.editing_id == book_id:
            self.form.reset()
        return removed

    def close(self) -> None:
        self.storage.close()
