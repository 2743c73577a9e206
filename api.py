import logging
from typing import Any, Dict, List, Optional

import requests

from models import BookRecord, Origin, remote_id

logger = logging.getLogger(__name__)

RECENT_BOOKS_URL = "https://www.dbooks.org/api/recent"


class CatalogFetchError(RuntimeError):
    """The recent books catalog could not be read or was not understood."""


def fetch_recent_books(
    url: str = RECENT_BOOKS_URL,
    timeout: float = 15,
) -> Optional[List[BookRecord]]:
    """Fetch the recent books listing and convert it into remote records.

    Returns None when the catalog answers with a status other than ``"ok"``;
    the caller should then leave its collection as it is.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as error:
        raise CatalogFetchError(f"Unable to reach the recent books catalog: {error}") from error

    if not isinstance(data, dict):
        raise CatalogFetchError("Catalog response is not a JSON object")
    if data.get("status") != "ok":
        logger.warning("Catalog answered with status %r; ignoring response", data.get("status"))
        return None

    books = data.get("books")
    if not isinstance(books, list):
        raise CatalogFetchError("Catalog response has no list of books")

    records: List[BookRecord] = []
    for entry in books:
        if not isinstance(entry, dict) or entry.get("id") in (None, ""):
            raise CatalogFetchError(f"Catalog entry without an id: {entry!r}")
        records.append(build_record(entry))
    return records


def build_record(entry: Dict[str, Any]) -> BookRecord:
    """Create a read-only record from a catalog entry."""
    return BookRecord(
        id=remote_id(entry["id"]),
        origin=Origin.REMOTE,
        title=str(entry.get("title") or ""),
        author=str(entry.get("authors") or ""),
        published_date="",
        publisher="",
        subtitle=str(entry.get("subtitle") or ""),
        image=str(entry.get("image") or ""),
        url=str(entry.get("url") or ""),
    )
