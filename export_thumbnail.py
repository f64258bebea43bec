#!/usr/bin/env python3
"""
Render the saved layer stack to a PNG thumbnail.

Usage:
    python export_thumbnail.py
    python export_thumbnail.py --output data/output/my_thumb.png
    python export_thumbnail.py --pixel-ratio 1 --breakdown

Layers are read from data/studio/tc_layers.json (edit them with mcp_server.py).
"""

import argparse
import asyncio
import sys
from pathlib import Path

from src.thumbnail_studio.config import OUTPUT_DIR, EXPORT_PIXEL_RATIO, setup_logging
from src.thumbnail_studio.editor import Editor
from src.thumbnail_studio.errors import StudioError
from src.thumbnail_studio.exporter import format_breakdown


def main():
    parser = argparse.ArgumentParser(
        description="Export the current thumbnail composition as PNG"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output path (default: data/output/thumbnail.png)"
    )
    parser.add_argument(
        "--pixel-ratio", "-r",
        type=float,
        default=EXPORT_PIXEL_RATIO,
        help=f"Export scale factor (default: {EXPORT_PIXEL_RATIO})"
    )
    parser.add_argument(
        "--breakdown", "-b",
        action="store_true",
        help="Also print the dominant colors"
    )

    args = parser.parse_args()
    setup_logging()

    output_path = Path(args.output) if args.output else OUTPUT_DIR / "thumbnail.png"

    editor = Editor()
    asyncio.run(editor.load_pending())

    try:
        dest = editor.export_png(output_path, args.pixel_ratio)
    except StudioError as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Thumbnail saved: {dest}")
    if args.breakdown:
        print(format_breakdown(editor.breakdown()))


if __name__ == "__main__":
    main()
