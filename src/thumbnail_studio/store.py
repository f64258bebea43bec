"""
Layer Store - Ordered collection of layers, the single source of truth.

Index 0 is the bottom of the z-order; append puts a layer on top. Every
mutation is saved to the injected persistence slot. Layers are immutable
models: update swaps in a new model, so snapshots handed out stay valid.
"""

import logging
import math
from typing import Any, Iterator, Protocol

from pydantic import ValidationError

from .layers import (
    Layer, ImageLayer, apply_patch, dump_layers, load_layers, new_layer_id,
)

logger = logging.getLogger(__name__)

# Smallest width/height an edit can set on an image layer
MIN_LAYER_SIZE = 1.0


class Slot(Protocol):
    def read(self) -> str | None: ...
    def write(self, value: str) -> None: ...


class LayerStore:
    """Layers in z-order plus the current selection."""

    def __init__(self, slot: Slot | None = None):
        self._slot = slot
        self._layers: list[Layer] = []
        self._selected_id: str | None = None
        if slot is not None:
            self._layers = self._rehydrate(slot)

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected(self) -> Layer | None:
        return self.get(self._selected_id) if self._selected_id else None

    def get(self, layer_id: str) -> Layer | None:
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        return None

    def index_of(self, layer_id: str) -> int:
        for i, layer in enumerate(self._layers):
            if layer.id == layer_id:
                return i
        return -1

    def __contains__(self, layer_id: object) -> bool:
        return isinstance(layer_id, str) and self.index_of(layer_id) >= 0

    def __iter__(self) -> Iterator[Layer]:
        return iter(tuple(self._layers))

    def __len__(self) -> int:
        return len(self._layers)

    # ── Mutations ─────────────────────────────────────────────────────

    def append(self, layer: Layer) -> Layer:
        """Add a layer on top. A missing or already-used id is replaced."""
        if not layer.id or layer.id in self:
            layer = layer.model_copy(update={"id": self._unique_id()})
        self._layers.append(layer)
        logger.debug("Appended %s layer %s (z=%d)", layer.type, layer.id, len(self._layers) - 1)
        self._save()
        return layer

    def update(self, layer_id: str, patch: dict[str, Any]) -> Layer | None:
        """
        Merge patch fields into a layer. Returns the new layer, or None if
        no layer has this id. Invalid patches raise ValueError and leave the
        store untouched.
        """
        idx = self.index_of(layer_id)
        if idx < 0:
            return None

        layer = self._layers[idx]
        patch = dict(patch)
        if isinstance(layer, ImageLayer):
            for key in ("width", "height"):
                if key in patch and patch[key] is not None:
                    value = float(patch[key])
                    # Non-finite sizes are left for validation to reject
                    patch[key] = max(MIN_LAYER_SIZE, value) if math.isfinite(value) else value

        try:
            updated = apply_patch(layer, patch)
        except ValidationError as e:
            raise ValueError(f"Invalid update for layer {layer_id}: {e}") from e

        self._layers[idx] = updated
        self._save()
        return updated

    def remove(self, layer_id: str) -> bool:
        """Delete a layer, clearing the selection if it was selected."""
        idx = self.index_of(layer_id)
        if idx < 0:
            return False
        del self._layers[idx]
        if self._selected_id == layer_id:
            self._selected_id = None
        logger.debug("Removed layer %s", layer_id)
        self._save()
        return True

    def select(self, layer_id: str | None) -> Layer | None:
        """Select a layer by id; None or an unknown id clears the selection."""
        layer = self.get(layer_id) if layer_id else None
        self._selected_id = layer.id if layer else None
        return layer

    def clear(self) -> None:
        self._layers = []
        self._selected_id = None
        self._save()

    # ── Serialization ─────────────────────────────────────────────────

    def serialize(self) -> str:
        return dump_layers(self._layers)

    @staticmethod
    def deserialize(blob: str | bytes) -> list[Layer]:
        """Parse a serialized layer list. Raises ValueError if malformed."""
        return load_layers(blob)

    # ── Internals ─────────────────────────────────────────────────────

    def _unique_id(self) -> str:
        while True:
            candidate = new_layer_id()
            if candidate not in self:
                return candidate

    def _save(self) -> None:
        if self._slot is not None:
            self._slot.write(self.serialize())

    @staticmethod
    def _rehydrate(slot: Slot) -> list[Layer]:
        """Load saved layers; anything unreadable yields an empty store."""
        blob = slot.read()
        if not blob:
            return []
        try:
            layers = load_layers(blob)
        except ValueError as e:
            logger.warning("Discarding unreadable saved layers: %s", str(e)[:150])
            return []

        # Drop duplicate ids so lookups stay unambiguous
        seen = set()
        unique = []
        for layer in layers:
            if layer.id in seen:
                logger.warning("Dropping saved layer with duplicate id %s", layer.id)
                continue
            seen.add(layer.id)
            unique.append(layer)
        logger.info("Restored %d layer(s)", len(unique))
        return unique
