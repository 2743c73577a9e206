from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

LOCAL_PREFIX = "local-"
REMOTE_PREFIX = "api-"

Number = Union[int, float]


class Origin(str, Enum):
    """Where a record came from. Remote records are read-only."""

    LOCAL = "local"
    REMOTE = "remote"

    @property
    def prefix(self) -> str:
        return REMOTE_PREFIX if self is Origin.REMOTE else LOCAL_PREFIX

    @classmethod
    def from_id(cls, book_id: str) -> "Origin":
        return cls.REMOTE if book_id.startswith(REMOTE_PREFIX) else cls.LOCAL


def parse_number(value: Any) -> Optional[Number]:
    """Return ``value`` as an int or float, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def local_id(timestamp_ms: int) -> str:
    return f"{LOCAL_PREFIX}{timestamp_ms}"


def remote_id(value: Any) -> str:
    return f"{REMOTE_PREFIX}{value}"


@dataclass
class BookFields:
    """Validated values of the editable fields of a book."""

    title: str
    author: str
    published_date: str = ""
    publisher: str = ""
    email: str = ""
    age: Optional[Number] = None
    image: str = ""


@dataclass
class BookRecord:
    id: str
    title: str
    author: str
    origin: Origin = Origin.LOCAL
    published_date: str = ""
    publisher: str = ""
    email: Optional[str] = None
    age: Optional[Number] = None
    image: str = ""
    subtitle: str = ""
    url: str = "#"

    @property
    def read_only(self) -> bool:
        return self.origin is Origin.REMOTE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "origin": self.origin.value,
            "title": self.title,
            "author": self.author,
            "publishedDate": self.published_date,
            "publisher": self.publisher,
            "email": self.email,
            "age": self.age,
            "image": self.image,
            "subtitle": self.subtitle,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookRecord":
        """Build a record from its stored shape.

        Records written before the origin was stored explicitly carry it only
        in their id prefix, so it is inferred from there when missing.
        """
        book_id = str(data["id"])
        origin_value = data.get("origin")
        origin = Origin(origin_value) if origin_value else Origin.from_id(book_id)
        return cls(
            id=book_id,
            origin=origin,
            title=str(data.get("title") or ""),
            author=str(data.get("author") or ""),
            published_date=str(data.get("publishedDate") or ""),
            publisher=str(data.get("publisher") or ""),
            email=data.get("email"),
            age=parse_number(data.get("age")),
            image=str(data.get("image") or ""),
            subtitle=str(data.get("subtitle") or ""),
            url="#" if data.get("url") is None else str(data["url"]),
        )
