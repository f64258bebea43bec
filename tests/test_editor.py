"""Tests for the editor session: intake, bitmap cache, late loads, export."""

import asyncio

import pytest
from PIL import Image

from src.thumbnail_studio.editor import Editor
from src.thumbnail_studio.errors import InvalidIdentifier, ThumbnailUnavailable
from src.thumbnail_studio.layers import ImageLayer
from src.thumbnail_studio.loader import BitmapLoader
from src.thumbnail_studio.store import LayerStore
from src.thumbnail_studio.youtube import thumbnail_urls

VIDEO = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class GatedLoader:
    """Loader that blocks until released, to simulate slow fetches."""

    def __init__(self, bitmap):
        self.bitmap = bitmap
        self.gate = asyncio.Event()

    async def load(self, source):
        await self.gate.wait()
        return self.bitmap


class TestAddText:
    def test_defaults_and_selection(self, editor):
        layer = editor.add_text()
        assert layer.text == "Your headline"
        assert (layer.x, layer.y, layer.font_size, layer.fill, layer.align) == (60, 60, 64, "#fff", "left")
        assert editor.store.selected_id == layer.id

    def test_overrides(self, editor):
        layer = editor.add_text(text="ÉPICO", fontSize=90)
        assert layer.text == "ÉPICO"
        assert layer.font_size == 90


class TestAddImageFile:
    def test_adds_loads_and_selects(self, tmp_path, make_png, store):
        path = tmp_path / "photo.png"
        path.write_bytes(make_png((0, 255, 0), (6, 3)))
        editor = Editor(store=store, size=(40, 20), background="#000000")

        layer = asyncio.run(editor.add_image_file(path))

        assert (layer.x, layer.y, layer.width, layer.height) == (100, 50, 600, 300)
        assert layer.src.startswith("data:image/png;base64,")
        assert editor.has_bitmap(layer)
        assert editor.store.selected_id == layer.id

    def test_undecodable_file_keeps_layer_without_bitmap(self, tmp_path, store):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not really a png")
        editor = Editor(store=store)

        layer = asyncio.run(editor.add_image_file(path))

        assert layer.id in editor.store
        assert not editor.has_bitmap(layer)


class TestAddYoutubeThumbnail:
    def test_adds_best_thumbnail(self, editor, fake_loader):
        urls = thumbnail_urls("dQw4w9WgXcQ")
        fake_loader.results[urls[1]] = Image.new("RGBA", (640, 480), (255, 0, 0, 255))

        layer = asyncio.run(editor.add_youtube_thumbnail(VIDEO))

        assert layer.src == urls[1]
        assert (layer.x, layer.y, layer.width, layer.height) == (80, 40, 640, 360)
        assert editor.has_bitmap(layer)
        assert editor.store.selected_id == layer.id

    def test_no_thumbnail_creates_no_layer(self, editor):
        with pytest.raises(ThumbnailUnavailable):
            asyncio.run(editor.add_youtube_thumbnail(VIDEO))
        assert len(editor.store) == 0

    def test_invalid_input_creates_no_layer(self, editor):
        with pytest.raises(InvalidIdentifier):
            asyncio.run(editor.add_youtube_thumbnail("not a video"))
        assert len(editor.store) == 0


class TestLateLoads:
    def test_result_for_removed_layer_is_discarded(self, store):
        bitmap = Image.new("RGBA", (4, 4), (255, 0, 0, 255))

        async def scenario():
            editor = Editor(store=store, loader=GatedLoader(bitmap))
            layer = editor.store.append(ImageLayer(src="https://example.com/a.png"))
            task = asyncio.create_task(editor.load_bitmap(layer.id))
            await asyncio.sleep(0)
            editor.remove_layer(layer.id)
            editor.loader.gate.set()
            return editor, layer, await task

        editor, layer, loaded = asyncio.run(scenario())
        assert loaded is False
        assert not editor.has_bitmap(layer)

    def test_result_for_replaced_source_is_discarded(self, store):
        bitmap = Image.new("RGBA", (4, 4))

        async def scenario():
            editor = Editor(store=store, loader=GatedLoader(bitmap))
            layer = editor.store.append(ImageLayer(src="https://example.com/old.png"))
            task = asyncio.create_task(editor.load_bitmap(layer.id))
            await asyncio.sleep(0)
            editor.store.update(layer.id, {"src": "https://example.com/new.png"})
            editor.loader.gate.set()
            return editor, layer, await task

        editor, old_layer, loaded = asyncio.run(scenario())
        assert loaded is False
        assert not editor.has_bitmap(old_layer)

    def test_load_pending_restores_saved_layers(self, slot, fake_loader):
        first = LayerStore(slot)
        first.append(ImageLayer(src="https://example.com/ok.png"))
        first.append(ImageLayer(src="https://example.com/broken.png"))
        fake_loader.results["https://example.com/ok.png"] = Image.new("RGBA", (2, 2))

        editor = Editor(store=LayerStore(slot), loader=fake_loader)
        assert asyncio.run(editor.load_pending()) == 1

        # Failed sources are not retried on the next pass
        fake_loader.calls.clear()
        assert asyncio.run(editor.load_pending()) == 0
        assert fake_loader.calls == []


class TestEditing:
    def test_toggle_visibility(self, editor):
        layer = editor.add_text()
        assert editor.toggle_visibility(layer.id).visible is False
        assert editor.toggle_visibility(layer.id).visible is True
        assert editor.toggle_visibility("id_missing") is None

    def test_update_with_new_src_loads_it(self, editor, fake_loader):
        old, new = "https://example.com/a.png", "https://example.com/b.png"
        fake_loader.results[old] = Image.new("RGBA", (10, 10), (0, 0, 255, 255))
        fake_loader.results[new] = Image.new("RGBA", (10, 10), (255, 0, 0, 255))
        layer = editor.store.append(ImageLayer(src=old, x=0, y=0, width=10, height=10))
        asyncio.run(editor.load_bitmap(layer.id))

        updated = asyncio.run(editor.update_layer(layer.id, {"src": new}))

        assert editor.has_bitmap(updated)
        assert old not in editor._bitmaps
        assert "[loaded]" in editor.describe_layers()[0]
        assert editor.render().getpixel((5, 5)) == (255, 0, 0, 255)

    def test_update_without_src_change_skips_loading(self, editor, fake_loader):
        layer = editor.store.append(ImageLayer(src="https://example.com/a.png"))
        asyncio.run(editor.update_layer(layer.id, {"x": 30}))
        assert fake_loader.calls == []
        assert asyncio.run(editor.update_layer("id_missing", {"x": 1})) is None

    def test_remove_prunes_bitmap(self, editor, fake_loader):
        src = "https://example.com/a.png"
        fake_loader.results[src] = Image.new("RGBA", (2, 2))
        layer = editor.store.append(ImageLayer(src=src))
        asyncio.run(editor.load_bitmap(layer.id))

        editor.remove_layer(layer.id)
        assert src not in editor._bitmaps

    def test_replace_image(self, editor, tmp_path, make_png):
        layer = editor.store.append(ImageLayer(src="https://example.com/a.png", x=5, width=50))
        path = tmp_path / "new.png"
        path.write_bytes(make_png())

        editor.loader = BitmapLoader()
        updated = asyncio.run(editor.replace_image(layer.id, path))
        assert updated.src.startswith("data:image/png")
        assert (updated.x, updated.width) == (5, 50)
        assert editor.has_bitmap(updated)

    def test_replace_image_on_text_layer(self, editor, tmp_path):
        layer = editor.add_text()
        with pytest.raises(ValueError):
            asyncio.run(editor.replace_image(layer.id, tmp_path / "x.png"))

    def test_clear(self, editor):
        editor.add_text()
        editor.clear()
        assert len(editor.store) == 0
        assert editor.store.selected_id is None


class TestOutput:
    def test_render_uses_loaded_bitmaps(self, editor, fake_loader):
        src = "https://example.com/red.png"
        fake_loader.results[src] = Image.new("RGBA", (10, 10), (255, 0, 0, 255))
        layer = editor.store.append(ImageLayer(src=src, x=0, y=0, width=10, height=10))
        asyncio.run(editor.load_bitmap(layer.id))

        canvas = editor.render()
        assert canvas.size == (40, 20)
        assert canvas.getpixel((5, 5)) == (255, 0, 0, 255)
        assert canvas.getpixel((30, 15)) == (0, 0, 0, 255)

    def test_export_png_uses_pixel_ratio(self, editor, tmp_path):
        editor.add_text(text="Hi", fontSize=8)
        out = editor.export_png(tmp_path / "thumbnail.png", pixel_ratio=1.5)
        assert Image.open(out).size == (60, 30)

    def test_breakdown_of_empty_canvas(self, editor):
        assert editor.breakdown() == [((0, 0, 0), 5000)]

    def test_describe_layers_top_first(self, editor):
        bottom = editor.store.append(ImageLayer(src="https://example.com/a.png", width=640, height=360))
        top = editor.add_text(text="A very long headline that keeps going and going")
        editor.toggle_visibility(bottom.id)

        lines = editor.describe_layers()
        assert lines[0].startswith(f"* {top.id} Text")
        assert '"A very long headline that keep"' in lines[0]
        assert lines[1].startswith(f"  {bottom.id} Image")
        assert "640x360" in lines[1]
        assert "[pending]" in lines[1]
        assert lines[1].endswith("(hidden)")
