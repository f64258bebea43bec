"""
YouTube helpers - video id extraction and thumbnail resolution.

A video id is 11 characters of [A-Za-z0-9_-]. Thumbnails live at
https://i.ytimg.com/vi/{id}/{quality}.jpg; not every quality exists for
every video, so candidates are tried from best to worst.
"""

import logging
import re

from PIL import Image

from .errors import InvalidIdentifier, LoadError, ThumbnailUnavailable

logger = logging.getLogger(__name__)

BARE_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")

# Tried in order after the bare-id check; first match wins
URL_PATTERNS = [
    re.compile(r"(?:youtube\.com/(?:watch\?v=|embed/|v/)|youtu\.be/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"v=([a-zA-Z0-9_-]{11})"),
]

THUMBNAIL_QUALITIES = ["maxresdefault", "sddefault", "hqdefault", "mqdefault", "default"]
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/{quality}.jpg"


def extract_video_id(text: str | None) -> str | None:
    """Extract a video id from a bare id or any common YouTube URL form."""
    if not text:
        return None
    text = text.strip()

    m = BARE_ID.match(text)
    if m:
        return m.group(0)

    for pattern in URL_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1)
    return None


def thumbnail_urls(video_id: str) -> list[str]:
    """Candidate thumbnail URLs, highest quality first."""
    return [THUMBNAIL_URL.format(video_id=video_id, quality=q) for q in THUMBNAIL_QUALITIES]


async def resolve_thumbnail(text: str, loader) -> tuple[str, Image.Image]:
    """
    Find the best thumbnail that actually loads.

    Candidates are tried one at a time: a lower quality is only requested
    after the better one failed. Returns (url, bitmap).
    """
    video_id = extract_video_id(text)
    if not video_id:
        raise InvalidIdentifier(
            "Invalid YouTube link or id. Paste the full URL or the 11-character video id."
        )

    for url in thumbnail_urls(video_id):
        try:
            bitmap = await loader.load(url)
        except LoadError as e:
            logger.info("Thumbnail candidate failed: %s (%s)", url, e)
            continue
        logger.info("Using thumbnail %s (%dx%d)", url, bitmap.width, bitmap.height)
        return url, bitmap

    raise ThumbnailUnavailable(
        f"Could not load any thumbnail for video {video_id}. "
        "The video may have no thumbnails or the images are blocked."
    )
