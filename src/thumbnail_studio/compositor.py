"""
Compositor - Layer-based image composition with text overlay.

Draws every visible layer of the store onto a 1280x720 canvas, bottom to
top. Image layers are scaled to their (width, height) and faded by their
opacity; text layers are drawn as a single unwrapped block anchored at
(x, y). Anything extending past the canvas is cropped.
"""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Mapping, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .config import BACKGROUND, CANVAS_H, CANVAS_W, DEFAULT_FONT, FONTS_DIR
from .layers import ImageLayer, Layer, TextLayer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def get_font(name: str, size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    """Load a font with fallback chain: data/fonts -> system fonts -> Pillow default."""
    path = FONTS_DIR / name
    if path.exists():
        return ImageFont.truetype(str(path), size)
    if sys.platform == "win32":
        winpath = Path("C:/Windows/Fonts") / name
        if winpath.exists():
            return ImageFont.truetype(str(winpath), size)
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        logger.warning("Font '%s' not found, using default", name)
        return ImageFont.load_default(size=size)


def to_rgba(color: str) -> Tuple[int, int, int, int]:
    """Convert any Pillow color string ('#fff', '#112233cc', 'white') to RGBA."""
    return ImageColor.getcolor(color, "RGBA")


def compose(
    layers: Iterable[Layer],
    bitmaps: Mapping[str, Image.Image],
    size: Tuple[int, int] = (CANVAS_W, CANVAS_H),
    background: str = BACKGROUND,
    scale: float = 1.0,
) -> Image.Image:
    """
    Compose layers into a single RGBA image.

    bitmaps maps an image layer's src to its decoded bitmap; image layers
    whose bitmap is missing (still loading or failed) are skipped. scale
    multiplies the canvas and every position, size and font size.
    """
    width = max(1, round(size[0] * scale))
    height = max(1, round(size[1] * scale))
    canvas = Image.new("RGBA", (width, height), to_rgba(background))

    layers = list(layers)
    logger.debug("Canvas: %dx%d, %d layer(s)", width, height, len(layers))

    for i, layer in enumerate(layers):
        if not layer.visible:
            continue
        if isinstance(layer, ImageLayer):
            bitmap = bitmaps.get(layer.src)
            if bitmap is None:
                logger.debug("Layer %d (%s): bitmap not loaded, skipping", i, layer.id)
                continue
            canvas = _draw_image(canvas, layer, bitmap, scale)
        elif isinstance(layer, TextLayer):
            canvas = _draw_text(canvas, layer, scale)

    return canvas


def _draw_image(canvas: Image.Image, layer: ImageLayer, bitmap: Image.Image, scale: float) -> Image.Image:
    new_w = round(layer.width * scale)
    new_h = round(layer.height * scale)
    if new_w < 1 or new_h < 1:
        return canvas

    img = bitmap if bitmap.mode == "RGBA" else bitmap.convert("RGBA")
    if img.size != (new_w, new_h):
        img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)

    # Opacity (copy first: the bitmap is shared with the cache)
    if layer.opacity < 1.0:
        opacity = layer.opacity
        alpha = img.getchannel("A").point(lambda a: int(a * opacity))
        img = img.copy()
        img.putalpha(alpha)

    x = round(layer.x * scale)
    y = round(layer.y * scale)

    # Paste onto a clear sheet first so off-canvas positions clip cleanly
    sheet = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    sheet.paste(img, (x, y))
    logger.debug("  Image %s at (%d,%d) %dx%d opacity=%.2f", layer.id, x, y, new_w, new_h, layer.opacity)
    return Image.alpha_composite(canvas, sheet)


def _draw_text(canvas: Image.Image, layer: TextLayer, scale: float) -> Image.Image:
    if not layer.text:
        return canvas

    font = get_font(DEFAULT_FONT, max(1, round(layer.font_size * scale)))
    sheet = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(sheet)

    # align anchors the block at x: left edge, center, or right edge
    bbox = draw.textbbox((0, 0), layer.text, font=font, align=layer.align)
    text_w = bbox[2] - bbox[0]
    x = layer.x * scale
    y = layer.y * scale
    if layer.align == "center":
        x -= text_w / 2
    elif layer.align == "right":
        x -= text_w

    draw.text((x, y), layer.text, font=font, fill=to_rgba(layer.fill), align=layer.align)
    logger.debug("  Text %s \"%s\" at (%d,%d)", layer.id, layer.text[:30], x, y)
    return Image.alpha_composite(canvas, sheet)
