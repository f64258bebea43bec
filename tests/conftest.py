"""Shared pytest fixtures for thumbnail studio tests."""

import base64
import io

import pytest
from PIL import Image

from src.thumbnail_studio.editor import Editor
from src.thumbnail_studio.errors import LoadError
from src.thumbnail_studio.store import LayerStore
from src.thumbnail_studio.workspace import MemorySlot


def encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, fmt)
    return buf.getvalue()


class FakeLoader:
    """Loader returning canned bitmaps by source; unknown sources fail."""

    def __init__(self, results: dict | None = None):
        self.results = dict(results or {})
        self.calls: list[str] = []

    async def load(self, source: str) -> Image.Image:
        self.calls.append(source)
        result = self.results.get(source)
        if result is None:
            raise LoadError(f"not found: {source}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def slot():
    """An in-memory persistence slot."""
    return MemorySlot()


@pytest.fixture
def store(slot):
    """An empty layer store saving to the memory slot."""
    return LayerStore(slot)


@pytest.fixture
def make_png():
    """Factory for PNG bytes of a solid color."""
    def _make(color=(255, 0, 0), size=(4, 4)) -> bytes:
        return encode(Image.new("RGB", size, color))
    return _make


@pytest.fixture
def make_data_url(make_png):
    """Factory for data URLs carrying a solid-color PNG."""
    def _make(color=(255, 0, 0), size=(4, 4)) -> str:
        payload = base64.b64encode(make_png(color, size)).decode("ascii")
        return f"data:image/png;base64,{payload}"
    return _make


@pytest.fixture
def fake_loader():
    return FakeLoader()


@pytest.fixture
def editor(store, fake_loader):
    """An editor on a small 40x20 black canvas with a fake loader."""
    return Editor(store=store, loader=fake_loader, size=(40, 20), background="#000000")
