#!/usr/bin/env python3
"""
Thumbnail Studio - MCP Server for Claude Desktop
================================================
Model Context Protocol server that exposes the thumbnail editor as tools.
Layers persist in data/studio/tc_layers.json between sessions.

Tools:
  - list_layers: Show the layer stack (top first) and the selection
  - add_text_layer: Add a text layer
  - add_image_layer: Add a local image file as a layer
  - add_youtube_thumbnail: Add the best available thumbnail of a YouTube video
  - update_layer: Patch layer fields (position, size, opacity, text, color...)
  - select_layer: Select a layer
  - toggle_layer: Show/hide a layer
  - replace_image: Swap the image of an image layer for a local file
  - remove_layer: Delete a layer
  - clear_layers: Remove every layer
  - export_thumbnail: Render and save the thumbnail as PNG
  - color_breakdown: Dominant colors of the current composition

Run: python mcp_server.py
"""

import json
import logging
from pathlib import Path
from typing import Any

# MCP SDK imports
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from src.thumbnail_studio.config import OUTPUT_DIR, EXPORT_PIXEL_RATIO, setup_logging
from src.thumbnail_studio.editor import Editor
from src.thumbnail_studio.exporter import format_breakdown

logger = logging.getLogger("thumbnail_studio.mcp")

_editor: Editor | None = None


async def get_editor() -> Editor:
    """Create the session editor on first use and load saved bitmaps."""
    global _editor
    if _editor is None:
        _editor = Editor()
        loaded = await _editor.load_pending()
        logger.info("Editor ready: %d layer(s), %d bitmap(s) loaded", len(_editor.store), loaded)
    return _editor


def _layer_summary(editor: Editor) -> str:
    lines = editor.describe_layers()
    if not lines:
        return "No layers"
    return "\n".join(lines)


# ─── MCP Server ───────────────────────────────────────────────────────

app = Server("thumbnail-studio")

_LAYER_ID = {"type": "string", "description": "Layer id, e.g. id_k3f9x2a (see list_layers)"}


@app.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="list_layers",
            description=(
                "List all layers, top of the stack first. '*' marks the selected layer. "
                "CALL THIS FIRST to see the current composition."
            ),
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="add_text_layer",
            description="Add a text layer on top of the stack and select it.",
            inputSchema={
                "type": "object",
                "properties": {
                    "text": {"type": "string", "default": "Your headline"},
                    "x": {"type": "number", "default": 60},
                    "y": {"type": "number", "default": 60},
                    "fontSize": {"type": "integer", "default": 64},
                    "fill": {"type": "string", "description": "Color: #fff, #FFD700, white...", "default": "#fff"},
                    "align": {"type": "string", "enum": ["left", "center", "right"], "default": "left"},
                },
                "required": [],
            },
        ),
        Tool(
            name="add_image_layer",
            description="Add a local image file (png, jpg, webp...) as a new image layer at (100, 50), 600x300.",
            inputSchema={
                "type": "object",
                "properties": {"path": {"type": "string", "description": "Path to the image file"}},
                "required": ["path"],
            },
        ),
        Tool(
            name="add_youtube_thumbnail",
            description=(
                "Add a YouTube video's thumbnail as an image layer. Accepts a full URL "
                "(watch?v=, youtu.be/, embed/) or the 11-character video id. "
                "Tries maxres -> sd -> hq -> mq -> default and uses the first that loads."
            ),
            inputSchema={
                "type": "object",
                "properties": {"video": {"type": "string", "description": "YouTube link or video id"}},
                "required": ["video"],
            },
        ),
        Tool(
            name="update_layer",
            description=(
                "Patch fields of a layer. Image: x, y, width, height, opacity (0-1), visible. "
                "Text: x, y, text, fontSize, fill, align, visible."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "layer_id": _LAYER_ID,
                    "patch": {"type": "object", "description": "Fields to change, e.g. {\"x\": 200, \"opacity\": 0.5}"},
                },
                "required": ["layer_id", "patch"],
            },
        ),
        Tool(
            name="select_layer",
            description="Select a layer (omit layer_id to clear the selection).",
            inputSchema={"type": "object", "properties": {"layer_id": _LAYER_ID}, "required": []},
        ),
        Tool(
            name="toggle_layer",
            description="Show or hide a layer.",
            inputSchema={"type": "object", "properties": {"layer_id": _LAYER_ID}, "required": ["layer_id"]},
        ),
        Tool(
            name="replace_image",
            description="Replace the image of an image layer with a local file, keeping position and size.",
            inputSchema={
                "type": "object",
                "properties": {"layer_id": _LAYER_ID, "path": {"type": "string"}},
                "required": ["layer_id", "path"],
            },
        ),
        Tool(
            name="remove_layer",
            description="Delete a layer.",
            inputSchema={"type": "object", "properties": {"layer_id": _LAYER_ID}, "required": ["layer_id"]},
        ),
        Tool(
            name="clear_layers",
            description="Remove every layer. Cannot be undone.",
            inputSchema={
                "type": "object",
                "properties": {
                    "confirm": {"type": "boolean", "description": "Must be true", "default": False},
                },
                "required": ["confirm"],
            },
        ),
        Tool(
            name="export_thumbnail",
            description=f"Render the composition at {EXPORT_PIXEL_RATIO}x and save it as PNG (default data/output/thumbnail.png).",
            inputSchema={
                "type": "object",
                "properties": {
                    "output": {"type": "string", "description": "Output path"},
                    "pixel_ratio": {"type": "number", "default": EXPORT_PIXEL_RATIO},
                },
                "required": [],
            },
        ),
        Tool(
            name="color_breakdown",
            description="Approximate top 5 colors of the current composition.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    try:
        result = await _handle_tool(name, arguments or {})
        return [TextContent(type="text", text=result)]
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        return [TextContent(type="text", text=f"ERROR: {str(e)}")]


async def _handle_tool(name: str, args: dict[str, Any]) -> str:
    editor = await get_editor()

    # ── list_layers ───────────────────────────────────────────────
    if name == "list_layers":
        return f"LAYERS ({len(editor.store)}):\n\n{_layer_summary(editor)}"

    # ── add_text_layer ────────────────────────────────────────────
    elif name == "add_text_layer":
        fields = {k: args[k] for k in ("text", "x", "y", "fontSize", "fill", "align") if k in args}
        layer = editor.add_text(**fields)
        return (
            f"Text layer added!\n"
            f"  Layer ID: {layer.id}\n"
            f"  Text: \"{layer.text}\"\n"
            f"  Position: ({layer.x:g}, {layer.y:g})\n\n"
            f"Next: update_layer to style it, or export_thumbnail."
        )

    # ── add_image_layer ───────────────────────────────────────────
    elif name == "add_image_layer":
        path = args.get("path", "")
        if not path:
            return "ERROR: path is required"

        layer = await editor.add_image_file(Path(path))
        note = "" if editor.has_bitmap(layer) else "\n  WARNING: image could not be decoded; the layer will not be drawn."
        return (
            f"Image layer added!\n"
            f"  Layer ID: {layer.id}\n"
            f"  Size: {layer.width:g}x{layer.height:g} at ({layer.x:g}, {layer.y:g}){note}"
        )

    # ── add_youtube_thumbnail ─────────────────────────────────────
    elif name == "add_youtube_thumbnail":
        video = args.get("video", "")
        layer = await editor.add_youtube_thumbnail(video)
        return (
            f"YouTube thumbnail added!\n"
            f"  Layer ID: {layer.id}\n"
            f"  Source: {layer.src}\n"
            f"  Size: {layer.width:g}x{layer.height:g} at ({layer.x:g}, {layer.y:g})"
        )

    # ── update_layer ──────────────────────────────────────────────
    elif name == "update_layer":
        layer_id = args.get("layer_id", "")
        patch = args.get("patch") or {}
        if isinstance(patch, str):
            patch = json.loads(patch)
        if not patch:
            return "ERROR: patch is required. Example: {\"x\": 200, \"opacity\": 0.5}"

        layer = await editor.update_layer(layer_id, patch)
        if layer is None:
            return f"ERROR: Layer not found: {layer_id}"
        return f"Layer updated!\n\n{_layer_summary(editor)}"

    # ── select_layer ──────────────────────────────────────────────
    elif name == "select_layer":
        layer = editor.store.select(args.get("layer_id"))
        return f"Selected: {layer.id}" if layer else "Selection cleared"

    # ── toggle_layer ──────────────────────────────────────────────
    elif name == "toggle_layer":
        layer_id = args.get("layer_id", "")
        layer = editor.toggle_visibility(layer_id)
        if layer is None:
            return f"ERROR: Layer not found: {layer_id}"
        return f"Layer {layer.id} is now {'visible' if layer.visible else 'hidden'}"

    # ── replace_image ─────────────────────────────────────────────
    elif name == "replace_image":
        layer = await editor.replace_image(args.get("layer_id", ""), Path(args.get("path", "")))
        note = "" if editor.has_bitmap(layer) else " (WARNING: image could not be decoded)"
        return f"Image replaced on layer {layer.id}{note}"

    # ── remove_layer ──────────────────────────────────────────────
    elif name == "remove_layer":
        layer_id = args.get("layer_id", "")
        if not editor.remove_layer(layer_id):
            return f"ERROR: Layer not found: {layer_id}"
        return f"Layer {layer_id} removed.\n\n{_layer_summary(editor)}"

    # ── clear_layers ──────────────────────────────────────────────
    elif name == "clear_layers":
        if not args.get("confirm", False):
            return "ERROR: Must set confirm=true to clear all layers"
        editor.clear()
        return "All layers removed"

    # ── export_thumbnail ──────────────────────────────────────────
    elif name == "export_thumbnail":
        output = Path(args["output"]) if args.get("output") else OUTPUT_DIR / "thumbnail.png"
        pixel_ratio = float(args.get("pixel_ratio", EXPORT_PIXEL_RATIO))
        dest = editor.export_png(output, pixel_ratio)
        return (
            f"Thumbnail exported!\n"
            f"  Saved: {dest}\n"
            f"  Layers: {len(editor.store)}\n"
            f"  Pixel ratio: {pixel_ratio:g}"
        )

    # ── color_breakdown ───────────────────────────────────────────
    elif name == "color_breakdown":
        return format_breakdown(editor.breakdown())

    else:
        return f"ERROR: Unknown tool '{name}'"


# ─── Main ─────────────────────────────────────────────────────────────

async def main():
    setup_logging()

    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
