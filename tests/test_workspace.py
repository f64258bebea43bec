"""Tests for the on-disk persistence slot."""

import logging

from src.thumbnail_studio.layers import TextLayer
from src.thumbnail_studio.store import LayerStore
from src.thumbnail_studio.workspace import JsonFileSlot


class TestJsonFileSlot:
    def test_missing_file_reads_none(self, tmp_path):
        assert JsonFileSlot(tmp_path / "tc_layers.json").read() is None

    def test_write_then_read(self, tmp_path):
        slot = JsonFileSlot(tmp_path / "nested" / "tc_layers.json")
        slot.write('[{"type": "text"}]')
        assert slot.read() == '[{"type": "text"}]'

    def test_write_failure_is_swallowed(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        slot = JsonFileSlot(blocker / "tc_layers.json")

        with caplog.at_level(logging.WARNING):
            slot.write("[]")

        assert "Could not save" in caplog.text
        assert slot.read() is None

    def test_store_survives_restart(self, tmp_path):
        path = tmp_path / "tc_layers.json"
        layer = LayerStore(JsonFileSlot(path)).append(TextLayer(text="persisted"))

        reopened = LayerStore(JsonFileSlot(path))
        assert reopened.get(layer.id) == layer

    def test_corrupt_file_gives_empty_store(self, tmp_path):
        path = tmp_path / "tc_layers.json"
        path.write_text("<<<garbage>>>", encoding="utf-8")
        assert len(LayerStore(JsonFileSlot(path))) == 0
