from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from typing import Dict, Optional

from inventory import Inventory, ReadOnlyRecordError, RecordNotFoundError
from media import MAX_IMAGE_BYTES, ImageRejected, check_image, decode_image
from models import BookFields, BookRecord, parse_number

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


@dataclass
class Draft:
    """The book being entered or edited, every field kept as typed."""

    title: str = ""
    author: str = ""
    published_date: str = ""
    publisher: str = ""
    email: str = ""
    age: str = ""
    image: str = ""

    @classmethod
    def from_record(cls, record: BookRecord) -> "Draft":
        return cls(
            title=record.title,
            author=record.author,
            published_date=record.published_date or "",
            publisher=record.publisher or "",
            email=record.email or "",
            age="" if record.age is None else str(record.age),
            image=record.image or "",
        )

    def to_fields(self) -> BookFields:
        return BookFields(
            title=self.title.strip(),
            author=self.author.strip(),
            published_date=self.published_date.strip(),
            publisher=self.publisher.strip(),
            email=self.email.strip(),
            age=parse_number(self.age),
            image=self.image,
        )


DRAFT_TEXT_FIELDS = tuple(f.name for f in fields(Draft) if f.name != "image")


def validate_draft(draft: Draft) -> Dict[str, str]:
    """Check every rule and return a message for each failing field."""
    errors: Dict[str, str] = {}
    if not draft.title.strip():
        errors["title"] = "Title is required"
    if not draft.author.strip():
        errors["author"] = "Author is required"
    if not EMAIL_PATTERN.fullmatch(draft.email):
        errors["email"] = "Invalid email format"
    age = parse_number(draft.age)
    if age is None or age <= 0:
        errors["age"] = "Age must be a positive number"
    return errors


class FormController:
    def __init__(self, inventory: Inventory, *, max_image_bytes: int = MAX_IMAGE_BYTES):
        self.inventory = inventory
        self.max_image_bytes = max_image_bytes
        self.draft = Draft()
        self.errors: Dict[str, str] = {}
        self.editing_id: Optional[str] = None
        self.image_preview: Optional[str] = None
        self.image_pending = False

    @property
    def editing(self) -> bool:
        return self.editing_id is not None

    def reset(self) -> None:
        self.draft = Draft()
        self.errors = {}
        self.editing_id = None
        self.image_preview = None

    def update_fields(self, **values: str) -> None:
        for name, value in values.items():
            if name not in DRAFT_TEXT_FIELDS:
                raise AttributeError(f"Draft has no editable field {name!r}")
            setattr(self.draft, name, "" if value is None else str(value))

    def begin_edit(self, book_id: str) -> BookRecord:
        record = self.inventory.get(book_id)
        if record is None:
            raise RecordNotFoundError(f"Book {book_id!r} not found")
        if record.read_only:
            raise ReadOnlyRecordError("Cannot edit books from the API")
        self.draft = Draft.from_record(record)
        self.errors = {}
        self.editing_id = record.id
        self.image_preview = record.image or None
        return record

    def cancel_edit(self) -> None:
        self.reset()

    def submit(self) -> Optional[BookRecord]:
        """Commit the draft as a new book or as the edit in progress."""
        errors = validate_draft(self.draft)
        if errors:
            self.errors = errors
            logger.debug("Draft rejected: %s", ", ".join(sorted(errors)))
            return None

        book_fields = self.draft.to_fields()
        if self.editing_id is not None:
            record = self.inventory.update(self.editing_id, book_fields)
        else:
            record = self.inventory.add(book_fields)
        self.reset()
        return record

    async def select_image(
        self,
        content_type: Optional[str],
        content: bytes,
        size: Optional[int] = None,
    ) -> bool:
        """Embed an uploaded image into the draft. Returns False when it is rejected.

        ``size`` is the upload's size when ``content`` holds only part of it.
        """
        try:
            check_image(content_type, len(content) if size is None else size, self.max_image_bytes)
        except ImageRejected as error:
            self.errors["image"] = str(error)
            return False

        self.errors.pop("image", None)
        self.image_pending = True
        try:
            data_url = await decode_image(content, content_type)
        except ImageRejected as error:
            self.errors["image"] = str(error)
            return False
        finally:
            self.image_pending = False

        self.image_preview = data_url
        self.draft.image = data_url
        return True
