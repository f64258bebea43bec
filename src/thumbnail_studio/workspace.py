"""
Workspace - Persistence slot for the editor's layer list.

The studio directory (data/studio/ by default) holds one JSON file per slot
key; the layer store keeps its whole serialized state in the "tc_layers" slot.
Slots are best-effort caches: read and write failures are logged and
swallowed, never raised.
"""

import logging
from pathlib import Path

from .config import LAYERS_PATH

logger = logging.getLogger(__name__)


class JsonFileSlot:
    """A single string value stored in a file on disk."""

    def __init__(self, path: Path = LAYERS_PATH):
        self.path = Path(path)

    def read(self) -> str | None:
        """Return the stored value, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return None

    def write(self, value: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            logger.warning("Could not save %s: %s", self.path, e)


class MemorySlot:
    """In-process slot, used when nothing should touch the disk."""

    def __init__(self, value: str | None = None):
        self.value = value
        self.writes = 0

    def read(self) -> str | None:
        return self.value

    def write(self, value: str) -> None:
        self.value = value
        self.writes += 1

