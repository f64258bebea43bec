"""
Editor - One editing session over a layer store.

Owns the bitmap cache (decoded images keyed by layer src) and the intake
actions: add an image file, add text, add a YouTube thumbnail. Bitmaps load
asynchronously; a load that finishes after its layer was removed or had its
source replaced is thrown away.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from .compositor import compose
from .config import (
    BACKGROUND, CANVAS_H, CANVAS_W, EXPORT_PIXEL_RATIO, OUTPUT_DIR,
    IMAGE_FILE_DEFAULTS, TEXT_DEFAULTS, YOUTUBE_DEFAULTS,
)
from .errors import LoadError
from .exporter import SAMPLE_WIDTH, color_breakdown, save_png
from .layers import ImageLayer, Layer, TextLayer
from .loader import BitmapLoader, file_to_data_url
from .store import LayerStore
from .workspace import JsonFileSlot
from .youtube import resolve_thumbnail

logger = logging.getLogger(__name__)


class Editor:
    def __init__(
        self,
        store: LayerStore | None = None,
        loader: BitmapLoader | None = None,
        size: Tuple[int, int] = (CANVAS_W, CANVAS_H),
        background: str = BACKGROUND,
    ):
        self.store = store if store is not None else LayerStore(JsonFileSlot())
        self.loader = loader or BitmapLoader()
        self.size = size
        self.background = background
        self._bitmaps: Dict[str, Image.Image] = {}
        self._failed: set[str] = set()

    # ── Bitmaps ───────────────────────────────────────────────────────

    def has_bitmap(self, layer: Layer) -> bool:
        return isinstance(layer, ImageLayer) and layer.src in self._bitmaps

    async def load_bitmap(self, layer_id: str) -> bool:
        """
        Load the bitmap for an image layer. Returns True once the bitmap is
        available. Results for layers that disappeared or changed source
        while loading are discarded.
        """
        layer = self.store.get(layer_id)
        if not isinstance(layer, ImageLayer):
            return False
        src = layer.src
        if src in self._bitmaps:
            return True

        try:
            bitmap = await self.loader.load(src)
        except LoadError as e:
            if self._still_wants(layer_id, src):
                self._failed.add(src)
                logger.warning("Layer %s: image failed to load, it will not be drawn (%s)", layer_id, e)
            return False

        if not self._still_wants(layer_id, src):
            logger.info("Discarding late bitmap for layer %s (removed or replaced)", layer_id)
            return False

        self._bitmaps[src] = bitmap
        self._failed.discard(src)
        return True

    async def load_pending(self) -> int:
        """Load bitmaps for every image layer that has none yet. Returns how many loaded."""
        loaded = 0
        for layer in self.store:
            if isinstance(layer, ImageLayer) and layer.src not in self._bitmaps and layer.src not in self._failed:
                if await self.load_bitmap(layer.id):
                    loaded += 1
        return loaded

    def _still_wants(self, layer_id: str, src: str) -> bool:
        current = self.store.get(layer_id)
        return isinstance(current, ImageLayer) and current.src == src

    def _prune_bitmaps(self) -> None:
        in_use = {layer.src for layer in self.store if isinstance(layer, ImageLayer)}
        for src in list(self._bitmaps):
            if src not in in_use:
                del self._bitmaps[src]
        self._failed &= in_use

    # ── Intake ────────────────────────────────────────────────────────

    async def add_image_file(self, path: Path) -> ImageLayer:
        """Add a local image file as a new top layer and select it."""
        src = file_to_data_url(path)
        layer = self.store.append(ImageLayer(src=src, **IMAGE_FILE_DEFAULTS))
        self.store.select(layer.id)
        logger.info("Added image layer %s from %s", layer.id, Path(path).name)
        await self.load_bitmap(layer.id)
        return layer

    def add_text(self, **overrides: Any) -> TextLayer:
        """Add a text layer (defaults: "Your headline" at (60, 60)) and select it."""
        layer = self.store.append(TextLayer.model_validate({**TEXT_DEFAULTS, **overrides}))
        self.store.select(layer.id)
        logger.info("Added text layer %s", layer.id)
        return layer

    async def add_youtube_thumbnail(self, text: str) -> ImageLayer:
        """
        Add the best available thumbnail of a YouTube video.

        Raises InvalidIdentifier or ThumbnailUnavailable; on failure no
        layer is created.
        """
        url, bitmap = await resolve_thumbnail(text, self.loader)
        self._bitmaps[url] = bitmap
        layer = self.store.append(ImageLayer(src=url, **YOUTUBE_DEFAULTS))
        self.store.select(layer.id)
        logger.info("Added YouTube thumbnail layer %s", layer.id)
        return layer

    # ── Editing ───────────────────────────────────────────────────────

    async def update_layer(self, layer_id: str, patch: Dict[str, Any]) -> Optional[Layer]:
        """Patch a layer; a changed image source is loaded before returning."""
        before = self.store.get(layer_id)
        layer = self.store.update(layer_id, patch)
        if isinstance(layer, ImageLayer) and isinstance(before, ImageLayer) and layer.src != before.src:
            self._prune_bitmaps()
            await self.load_bitmap(layer_id)
            layer = self.store.get(layer_id)
        return layer

    def remove_layer(self, layer_id: str) -> bool:
        removed = self.store.remove(layer_id)
        if removed:
            self._prune_bitmaps()
        return removed

    def toggle_visibility(self, layer_id: str) -> Optional[Layer]:
        layer = self.store.get(layer_id)
        if layer is None:
            return None
        return self.store.update(layer_id, {"visible": not layer.visible})

    async def replace_image(self, layer_id: str, path: Path) -> ImageLayer:
        """Swap an image layer's source for a local file, keeping its placement."""
        layer = self.store.get(layer_id)
        if not isinstance(layer, ImageLayer):
            raise ValueError(f"Layer {layer_id} is not an image layer")
        updated = self.store.update(layer_id, {"src": file_to_data_url(path)})
        self._prune_bitmaps()
        await self.load_bitmap(layer_id)
        return updated

    def clear(self) -> None:
        self.store.clear()
        self._bitmaps.clear()
        self._failed.clear()

    # ── Output ────────────────────────────────────────────────────────

    def render(self, scale: float = 1.0) -> Image.Image:
        return compose(self.store.layers, self._bitmaps, self.size, self.background, scale)

    def export_png(self, out_path: Path = OUTPUT_DIR / "thumbnail.png",
                   pixel_ratio: float = EXPORT_PIXEL_RATIO) -> Path:
        """Render at pixel_ratio and write the PNG. Raises ExportError."""
        return save_png(self.render(pixel_ratio), out_path)

    def breakdown(self, sample_width: int = SAMPLE_WIDTH):
        return color_breakdown(self.render(), sample_width)

    def describe_layers(self) -> List[str]:
        """One line per layer, top of the z-order first; '*' marks the selection."""
        lines = []
        for layer in reversed(self.store.layers):
            marker = "*" if layer.id == self.store.selected_id else " "
            hidden = "" if layer.visible else " (hidden)"
            if isinstance(layer, TextLayer):
                detail = f'"{layer.text[:30]}"'
            else:
                status = "loaded" if layer.src in self._bitmaps else (
                    "failed" if layer.src in self._failed else "pending")
                detail = f"{layer.width:g}x{layer.height:g} opacity={layer.opacity:g} [{status}]"
            lines.append(
                f"{marker} {layer.id} {layer.type.capitalize()} at ({layer.x:g},{layer.y:g}) {detail}{hidden}"
            )
        return lines
