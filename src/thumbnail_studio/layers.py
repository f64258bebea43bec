"""
Layer models - the image and text layers that make up a thumbnail.

Layers are a tagged union on "type". The serialized form keeps the field
names of the saved editor state (fontSize, fill, src):

    {"id": "id_k3f9x2a", "type": "image", "src": "data:image/png;base64,...",
     "x": 100, "y": 50, "width": 600, "height": 300, "opacity": 1, "visible": true}
    {"id": "id_p0q7c1d", "type": "text", "text": "Your headline",
     "x": 60, "y": 60, "fontSize": 64, "fill": "#fff", "align": "left", "visible": true}

Z-order is not a field: it is the layer's position in the store.
"""

import secrets
import string
from typing import Annotated, Any, Iterable, Literal, Union

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_layer_id() -> str:
    """Generate a layer id like 'id_k3f9x2a'."""
    return "id_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))


class BaseLayer(BaseModel):
    """Fields shared by every layer kind."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        allow_inf_nan=False,
    )

    id: str = Field(default_factory=new_layer_id)
    x: float = 0.0
    y: float = 0.0
    visible: bool = True


class ImageLayer(BaseLayer):
    """A bitmap drawn scaled to (width, height) with the given opacity."""

    type: Literal["image"] = "image"
    src: str
    width: float = 100.0
    height: float = 100.0
    opacity: float = 1.0

    @field_validator("width", "height")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        return max(0.0, v)

    @field_validator("opacity")
    @classmethod
    def _clamp_opacity(cls, v: float) -> float:
        return min(1.0, max(0.0, v))


class TextLayer(BaseLayer):
    """A single unwrapped line of text anchored at (x, y)."""

    type: Literal["text"] = "text"
    text: str = ""
    font_size: int = Field(default=64, alias="fontSize")
    fill: str = "#fff"
    align: Literal["left", "center", "right"] = "left"

    @field_validator("font_size")
    @classmethod
    def _positive_size(cls, v: int) -> int:
        return max(1, v)

    @field_validator("fill")
    @classmethod
    def _valid_color(cls, v: str) -> str:
        ImageColor.getrgb(v)  # raises ValueError on unknown colors
        return v


Layer = Annotated[Union[ImageLayer, TextLayer], Field(discriminator="type")]

_LAYER = TypeAdapter(Layer)
_LAYER_LIST = TypeAdapter(list[Layer])

# snake_case attribute -> serialized name, for patches using either spelling
_ALIASES = {
    name: field.alias
    for cls in (ImageLayer, TextLayer)
    for name, field in cls.model_fields.items()
    if field.alias
}

# Identity fields never change after creation
_FIXED_KEYS = ("id", "type")


def layer_from_dict(data: dict[str, Any]) -> Layer:
    """Validate a serialized layer dict into the matching layer model."""
    return _LAYER.validate_python(data)


def layer_to_dict(layer: Layer) -> dict[str, Any]:
    return layer.model_dump(by_alias=True)


def apply_patch(layer: Layer, patch: dict[str, Any]) -> Layer:
    """
    Return a new layer with patch fields merged in.

    Keys may use either attribute or serialized names. Raises
    pydantic.ValidationError (a ValueError) if the result is invalid.
    """
    data = layer.model_dump(by_alias=True)
    for key, value in patch.items():
        key = _ALIASES.get(key, key)
        if key in _FIXED_KEYS:
            continue
        data[key] = value
    return type(layer).model_validate(data)


def dump_layers(layers: Iterable[Layer]) -> str:
    """Serialize an ordered layer list to JSON text."""
    return _LAYER_LIST.dump_json(list(layers), by_alias=True).decode("utf-8")


def load_layers(blob: str | bytes) -> list[Layer]:
    """Parse JSON text produced by dump_layers. Raises ValueError if malformed."""
    return _LAYER_LIST.validate_json(blob)
