"""
Bitmap Loader - Turns a source descriptor into a decoded Pillow image.

Two kinds of descriptor are supported:
  - data URLs (data:image/png;base64,...), decoded locally
  - http(s) URLs, fetched anonymously with httpx

Every failure (network, HTTP status, timeout, bad data, undecodable image)
is reported as a single LoadError. There is no retry; callers decide the
fallback.
"""

import base64
import binascii
import io
import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote_to_bytes

import httpx
from PIL import Image, UnidentifiedImageError

from .config import LOAD_TIMEOUT
from .errors import LoadError

logger = logging.getLogger(__name__)


def is_data_url(source: str) -> bool:
    return source.startswith("data:")


def is_remote_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def file_to_data_url(path: Path) -> str:
    """Read a local image file into a self-contained data URL."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {path}")
    mime, _ = mimetypes.guess_type(path.name)
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'application/octet-stream'};base64,{payload}"


def decode_data_url(source: str) -> bytes:
    """Return the raw bytes carried by a data URL."""
    header, sep, data = source.partition(",")
    if not sep:
        raise LoadError("Malformed data URL (no ',' separator)")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise LoadError(f"Malformed base64 in data URL: {e}") from e
    return unquote_to_bytes(data)


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded RGBA image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise LoadError(f"Could not decode image: {e}") from e


class BitmapLoader:
    """
    Loads bitmaps for image layers.

    A shared httpx.AsyncClient may be injected (tests pass one built on
    httpx.MockTransport); otherwise a client is opened per remote load.
    """

    def __init__(self, timeout: float = LOAD_TIMEOUT, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client

    async def load(self, source: str) -> Image.Image:
        if is_data_url(source):
            return decode_image(decode_data_url(source))
        if is_remote_url(source):
            return decode_image(await self._fetch(source))
        raise LoadError(f"Unsupported image source: {source[:60]}")

    async def _fetch(self, url: str) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Fetch failed for %s: %s", url, e)
            raise LoadError(f"Could not fetch {url}: {e}") from e
        return response.content
