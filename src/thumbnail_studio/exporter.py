"""
Exporter - PNG output and approximate color breakdown of a composite.

The color breakdown is a quick diagnostic, not an exact histogram:
  1. downsample the composite to SAMPLE_WIDTH pixels wide (height keeps the
     aspect ratio, rounded half up)
  2. quantize each channel to the nearest multiple of QUANT_STEP
     (half rounds up, so 256 is a possible bucket)
  3. count every PIXEL_STRIDE-th pixel in row-major order, starting at 0
  4. keep the TOP_COLORS most frequent buckets; ties go to the bucket seen first
"""

import io
import logging
from collections import Counter
from pathlib import Path
from typing import List, Tuple

import numpy as np
from PIL import Image

from .errors import ExportError

logger = logging.getLogger(__name__)

SAMPLE_WIDTH = 200
QUANT_STEP = 32
PIXEL_STRIDE = 4
TOP_COLORS = 5

RGB = Tuple[int, int, int]


def encode_png(surface: Image.Image) -> bytes:
    """Losslessly encode a composite as PNG bytes."""
    buf = io.BytesIO()
    try:
        surface.save(buf, "PNG")
    except (OSError, ValueError) as e:
        raise ExportError(f"Export failed: {e}") from e
    return buf.getvalue()


def save_png(surface: Image.Image, out_path: Path) -> Path:
    """Encode and write a composite to disk. Returns the written path."""
    data = encode_png(surface)
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(data)
    except OSError as e:
        raise ExportError(f"Could not write {out_path}: {e}") from e
    logger.info("Saved: %s (%dx%d)", out_path, surface.width, surface.height)
    return out_path


def color_breakdown(surface: Image.Image, sample_width: int = SAMPLE_WIDTH) -> List[Tuple[RGB, int]]:
    """Return up to TOP_COLORS ((r, g, b), count) pairs, most frequent first."""
    if sample_width < 1:
        raise ValueError("sample_width must be at least 1")

    sample_height = max(1, int(surface.height / surface.width * sample_width + 0.5))
    small = surface.convert("RGB").resize((sample_width, sample_height), Image.Resampling.BILINEAR)

    arr = np.asarray(small, dtype=np.int32).reshape(-1, 3)
    quantized = ((arr + QUANT_STEP // 2) // QUANT_STEP) * QUANT_STEP
    sampled = quantized[::PIXEL_STRIDE]

    # Counter keeps insertion order, and most_common() sorts stably
    counts = Counter(map(tuple, sampled.tolist()))
    return [((r, g, b), n) for (r, g, b), n in counts.most_common(TOP_COLORS)]


def format_breakdown(breakdown: List[Tuple[RGB, int]]) -> str:
    """Human-readable list of the dominant colors."""
    lines = ["Top colors (approx):"]
    lines.extend(f"{r},{g},{b}" for (r, g, b), _ in breakdown)
    return "\n".join(lines)
