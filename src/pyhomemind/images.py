"""Inline image encoding.

Images are stored on the owning entity's ``image`` field as ``data:`` URLs;
there is no external blob storage.
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
from pathlib import Path

from pyhomemind.exceptions import HomeMindImageTooLargeError

_DEFAULT_MIME = "application/octet-stream"


def to_data_url(content: bytes, mime_type: str = _DEFAULT_MIME) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


def _read_limited(path: Path, max_bytes: int | None) -> bytes:
    if max_bytes is not None:
        size = path.stat().st_size
        if size > max_bytes:
            raise HomeMindImageTooLargeError(f"{path.name} is {size} bytes; the limit is {max_bytes}")
    return path.read_bytes()


async def encode_image(path: str | Path, *, max_bytes: int | None = None) -> str:
    """Read *path* off the event loop and return it as a ``data:`` URL."""
    file_path = Path(path)
    content = await asyncio.to_thread(_read_limited, file_path, max_bytes)
    mime_type, _ = mimetypes.guess_type(file_path.name)
    return to_data_url(content, mime_type or _DEFAULT_MIME)
