from __future__ import annotations

import asyncio
import base64
import io
from typing import Any, Tuple

from PIL import Image, UnidentifiedImageError

MAX_IMAGE_BYTES = 5 * 1024 * 1024

# Vector formats Pillow cannot open; they are accepted on their declared type.
UNDECODED_TYPES = {"image/svg+xml"}


class ImageRejected(ValueError):
    pass


def check_image(content_type: str | None, size: int, max_bytes: int = MAX_IMAGE_BYTES) -> None:
    """Reject uploads that are not declared as images or are too large."""
    if not content_type or not content_type.startswith("image/"):
        raise ImageRejected("Please upload an image file")
    if size > max_bytes:
        megabytes = max_bytes / (1024 * 1024)
        raise ImageRejected(f"Image must be less than {megabytes:g}MB")


def verify_image(content: bytes, content_type: str) -> None:
    if content_type in UNDECODED_TYPES:
        return
    try:
        with Image.open(io.BytesIO(content)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as error:
        raise ImageRejected("Please upload an image file") from error


def to_data_url(content: bytes, content_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


async def read_upload(upload: Any, max_bytes: int = MAX_IMAGE_BYTES) -> Tuple[bytes, int]:
    """Read an uploaded file, never holding more than ``max_bytes + 1`` bytes.

    Returns the content and the size to check against the limit. Uploads whose
    declared size is already over the limit are not read at all.
    """
    declared = getattr(upload, "size", None)
    if declared is not None and declared > max_bytes:
        return b"", declared
    content = await upload.read(max_bytes + 1)
    return content, len(content)


def _decode(content: bytes, content_type: str) -> str:
    verify_image(content, content_type)
    return to_data_url(content, content_type)


async def decode_image(content: bytes, content_type: str) -> str:
    """Verify and embed an uploaded image without blocking the event loop."""
    return await asyncio.to_thread(_decode, content, content_type)
