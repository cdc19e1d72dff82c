"""Tests for the FAISS-backed memory store (uses the hashing encoder)."""

import pytest

from itemkb.memory.store import MemoryQueryResult, MemoryStore

CHUNKS = {
    "weapons_flame_tongue": "Item: Flame Tongue\nDescription: a burning fire sword\nItemID: weapons_flame_tongue",
    "armour_adamantine_shield": "Item: Adamantine Shield\nDescription: heavy shield of metal\nItemID: armour_adamantine_shield",
    "misc_torch": "Item: Torch\nDescription: a wooden stick that gives light\nItemID: misc_torch",
}


@pytest.fixture
def store(tmp_path, hashing_encoder):
    return MemoryStore(str(tmp_path / "memory"), encoder=hashing_encoder)


class TestCollections:

    def test_empty_store(self, store) -> None:
        assert store.list_collections() == []
        assert not store.has_collection("items")
        assert store.count("items") == 0

    def test_save_creates_collection(self, store) -> None:
        total = store.save_chunks("items", CHUNKS)

        assert total == 3
        assert store.has_collection("items")
        assert store.list_collections() == ["items"]
        assert store.count("items") == 3

    def test_delete_collection(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        store.delete_collection("items")

        assert not store.has_collection("items")
        store.delete_collection("items")  # deleting twice is a no-op

    def test_collections_are_independent(self, store) -> None:
        store.save_chunks("a", {"x": "fire"})
        store.save_chunks("b", CHUNKS)

        assert store.list_collections() == ["a", "b"]
        assert store.count("a") == 1
        assert store.count("b") == 3

    @pytest.mark.parametrize("name", ["", ".", "..", "../escape", "a/b"])
    def test_invalid_collection_name(self, store, name) -> None:
        with pytest.raises(ValueError):
            store.has_collection(name)

    def test_persisted_across_instances(self, tmp_path, hashing_encoder) -> None:
        MemoryStore(str(tmp_path), encoder=hashing_encoder).save_chunks("items", CHUNKS)

        reopened = MemoryStore(str(tmp_path), encoder=hashing_encoder)

        assert reopened.count("items") == 3
        assert reopened.search("items", "fire sword", limit=1)[0].id == "weapons_flame_tongue"

    def test_count_needs_no_encoder(self, tmp_path, hashing_encoder) -> None:
        MemoryStore(str(tmp_path), encoder=hashing_encoder).save_chunks("items", CHUNKS)

        assert MemoryStore(str(tmp_path), encoder=None).count("items") == 3


class TestUpsert:

    def test_existing_ids_are_replaced(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        total = store.save_chunks("items", {"misc_torch": "Item: Torch\nDescription: now made of fire"})

        assert total == 3
        hits = store.search("items", "made of fire", limit=3)
        torch = next(h for h in hits if h.id == "misc_torch")
        assert "now made of fire" in torch.text

    def test_new_ids_are_appended(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        total = store.save_chunks("items", {"misc_rope": "Item: Rope"})

        assert total == 4

    def test_empty_save_creates_empty_collection(self, store) -> None:
        assert store.save_chunks("items", {}) == 0
        assert store.has_collection("items")
        assert store.search("items", "anything") == []


class TestSearch:

    def test_best_match_first(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        results = store.search("items", "burning fire sword", limit=3)

        assert results[0].id == "weapons_flame_tongue"
        assert results[0].text == CHUNKS["weapons_flame_tongue"]
        scores = [r.relevance for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_limit(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        assert len(store.search("items", "item", limit=2)) == 2
        assert len(store.search("items", "item", limit=10)) == 3
        assert store.search("items", "item", limit=0) == []

    def test_min_relevance_filters(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        results = store.search("items", "burning fire sword", limit=3, min_relevance=0.4)

        assert [r.id for r in results] == ["weapons_flame_tongue"]
        assert all(r.relevance >= 0.4 for r in results)

    def test_unrelated_query_finds_nothing_above_threshold(self, store) -> None:
        store.save_chunks("items", CHUNKS)

        assert store.search("items", "zzzz qqqq", min_relevance=0.4) == []

    def test_missing_collection(self, store) -> None:
        assert store.search("nope", "fire") == []

    def test_result_to_dict(self) -> None:
        result = MemoryQueryResult("torch", "Item: Torch", 0.5)

        assert result.to_dict() == {"id": "torch", "text": "Item: Torch", "relevance": 0.5}
