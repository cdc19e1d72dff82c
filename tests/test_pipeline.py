"""Tests for the ingestion pipeline wiring."""

import pytest

from itemkb.config import ChunkingSettings, Settings
from itemkb.ingestion.errors import ConfigurationError, SourceReadError
from itemkb.pipeline import IngestionPipeline


class FakeStore:
    """Records calls instead of embedding anything."""

    def __init__(self, existing=()):
        self.collections = {name: {} for name in existing}
        self.deleted = []

    def has_collection(self, name):
        return name in self.collections

    def delete_collection(self, name):
        self.deleted.append(name)
        self.collections.pop(name, None)

    def save_chunks(self, name, chunks):
        self.collections.setdefault(name, {}).update(chunks)
        return len(self.collections[name])


class TestBuildChunks:

    def test_catalog_is_chunked(self, catalog_workbook) -> None:
        chunks = IngestionPipeline().build_chunks(catalog_workbook)

        assert "weapons_sunlit_blade" in chunks
        assert "armour_torch" in chunks
        assert "armour_adamantine_shield" in chunks
        parts = [cid for cid in chunks if cid.startswith("weapons_flame_tongue_part")]
        assert len(parts) >= 2
        assert all(len(chunks[cid]) <= 128 for cid in parts)

    def test_chunk_order_follows_catalog(self, catalog_workbook) -> None:
        ids = list(IngestionPipeline().build_chunks(catalog_workbook))

        assert ids[0] == "weapons_sunlit_blade"
        assert ids[1] == "weapons_flame_tongue_part0"
        assert ids[-2:] == ["armour_torch", "armour_adamantine_shield"]

    def test_build_is_idempotent(self, catalog_workbook) -> None:
        pipeline = IngestionPipeline()

        first = pipeline.build_chunks(catalog_workbook)
        second = pipeline.build_chunks(catalog_workbook)

        assert list(first.items()) == list(second.items())

    def test_source_defaults_to_settings(self, catalog_workbook) -> None:
        settings = Settings()
        settings.source.path = str(catalog_workbook)

        chunks = IngestionPipeline(settings).build_chunks()

        assert "armour_torch" in chunks

    def test_missing_source(self, tmp_path) -> None:
        with pytest.raises(SourceReadError):
            IngestionPipeline().build_chunks(tmp_path / "missing.xlsx")

    def test_invalid_chunking_settings_fail_fast(self) -> None:
        settings = Settings(chunking=ChunkingSettings(max_chunk_size=0))

        with pytest.raises(ConfigurationError):
            IngestionPipeline(settings)

    def test_empty_separator_fails_fast(self) -> None:
        settings = Settings(chunking=ChunkingSettings(separator=""))

        with pytest.raises(ConfigurationError):
            IngestionPipeline(settings)


class TestPopulate:

    def test_new_collection_is_filled(self, catalog_workbook) -> None:
        store = FakeStore()

        written = IngestionPipeline().populate(store, "items", catalog_workbook)

        assert written == len(store.collections["items"])
        assert written > 4

    def test_existing_collection_is_skipped(self, catalog_workbook) -> None:
        store = FakeStore(existing=["items"])

        written = IngestionPipeline().populate(store, "items", catalog_workbook)

        assert written == 0
        assert store.collections["items"] == {}
        assert store.deleted == []

    def test_existing_collection_is_skipped_without_reading_source(self, tmp_path) -> None:
        store = FakeStore(existing=["items"])

        assert IngestionPipeline().populate(store, "items", tmp_path / "missing.xlsx") == 0

    def test_force_rebuilds(self, catalog_workbook) -> None:
        store = FakeStore(existing=["items"])
        store.collections["items"] = {"stale": "old text"}

        written = IngestionPipeline().populate(store, "items", catalog_workbook, force=True)

        assert store.deleted == ["items"]
        assert "stale" not in store.collections["items"]
        assert written == len(store.collections["items"])

    def test_force_keeps_collection_when_source_fails(self, tmp_path) -> None:
        store = FakeStore(existing=["items"])
        store.collections["items"] = {"kept": "text"}

        with pytest.raises(SourceReadError):
            IngestionPipeline().populate(store, "items", tmp_path / "missing.xlsx",
                                         force=True)

        assert store.collections["items"] == {"kept": "text"}

    def test_collection_defaults_to_settings(self, catalog_workbook) -> None:
        settings = Settings()
        settings.memory.collection = "catalog"
        store = FakeStore()

        IngestionPipeline(settings).populate(store, source=catalog_workbook)

        assert "catalog" in store.collections
