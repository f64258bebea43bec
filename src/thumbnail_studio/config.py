"""
Studio configuration - paths, canvas defaults and logging.

Values come from the environment (a .env file at the repo root is loaded
on import) with the defaults below.
"""

import logging
import os
import sys
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent.parent.parent
load_dotenv(BASE_DIR / ".env")

DATA_DIR = BASE_DIR / "data"
STUDIO_DIR = Path(os.getenv("STUDIO_DIR", str(DATA_DIR / "studio")))
OUTPUT_DIR = Path(os.getenv("STUDIO_OUTPUT_DIR", str(DATA_DIR / "output")))
FONTS_DIR = DATA_DIR / "fonts"

# Persistence slot key (one JSON value, one file)
LAYERS_KEY = "tc_layers"
LAYERS_PATH = STUDIO_DIR / f"{LAYERS_KEY}.json"

# Canvas (YouTube thumbnail standard)
CANVAS_W = 1280
CANVAS_H = 720
BACKGROUND = os.getenv("STUDIO_BACKGROUND", "#111827")

DEFAULT_FONT = os.getenv("STUDIO_FONT", "Montserrat-ExtraBold.ttf")
LOAD_TIMEOUT = float(os.getenv("STUDIO_LOAD_TIMEOUT", "10"))
EXPORT_PIXEL_RATIO = float(os.getenv("STUDIO_PIXEL_RATIO", "1.5"))
LOG_LEVEL = os.getenv("STUDIO_LOG_LEVEL", "INFO")

# ── Intake defaults ───────────────────────────────────────────────────

IMAGE_FILE_DEFAULTS = {"x": 100, "y": 50, "width": 600, "height": 300}
YOUTUBE_DEFAULTS = {"x": 80, "y": 40, "width": 640, "height": 360}
TEXT_DEFAULTS = {
    "text": "Your headline",
    "x": 60,
    "y": 60,
    "fontSize": 64,
    "fill": "#fff",
    "align": "left",
}


def setup_logging(level: str | int = LOG_LEVEL) -> logging.Logger:
    """
    Configure the root logger to write to stderr.

    stdout is reserved for the MCP stdio transport, so nothing may log there.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)
    return root
