"""
Memory Store
=============
Named collections of embedded chunks, each backed by a FAISS index on disk.

This is the indexing side of the pipeline: it takes the chunker's
``{chunk_id: text}`` mapping, embeds every text and answers free-text
queries with ``(id, text, relevance)`` results.

Layout on disk::

    <store_dir>/
        <collection>/
            index.faiss      -- IndexFlatIP over normalised embeddings
            metadata.json    -- [{"id": ..., "text": ...}, ...] in vector order

Design decisions:
  - Inner product on L2-normalised vectors equals cosine similarity, so
    ``relevance`` is comparable across queries and ``min_relevance`` is a
    plain threshold.
  - Saving an id that already exists replaces its vector and text
    (upsert), so re-running ingestion never duplicates entries.
  - Metadata is a parallel list looked up by vector position.  Removing
    vectors from a flat index keeps the remaining ones in order, so the
    list stays aligned.
"""

import json
import logging
import shutil
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import faiss
import numpy as np
from tqdm import tqdm

INDEX_FILENAME = "index.faiss"
METADATA_FILENAME = "metadata.json"


@dataclass
class MemoryQueryResult:
    """One search hit."""
    id: str
    text: str
    relevance: float

    def to_dict(self) -> Dict:
        return asdict(self)


class _Collection:
    """In-memory view of one collection: the index plus its metadata list."""

    def __init__(self, index, entries: List[Dict]):
        self.index = index
        self.entries = entries

    @property
    def size(self) -> int:
        return self.index.ntotal


class MemoryStore:
    """
    FAISS-backed store of named chunk collections.

    Usage:
        store = MemoryStore("data/processed/memory", encoder=EmbeddingEncoder())
        if not store.has_collection("items"):
            store.save_chunks("items", chunks)
        hits = store.search("items", "sword that burns", limit=5, min_relevance=0.4)
    """

    def __init__(
        self,
        store_dir: str,
        encoder,
        batch_size: int = 32,
        show_progress: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.store_dir = Path(store_dir)
        self.encoder = encoder
        self.batch_size = batch_size
        self.show_progress = show_progress
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def list_collections(self) -> List[str]:
        if not self.store_dir.exists():
            return []
        return sorted(
            d.name for d in self.store_dir.iterdir()
            if d.is_dir() and (d / INDEX_FILENAME).exists()
        )

    def has_collection(self, name: str) -> bool:
        return (self._collection_dir(name) / INDEX_FILENAME).exists()

    def delete_collection(self, name: str) -> None:
        path = self._collection_dir(name)
        if path.exists():
            shutil.rmtree(path)
            self.logger.info("Deleted collection '%s'", name)

    def count(self, name: str) -> int:
        if not self.has_collection(name):
            return 0
        return self._load(name).size

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def save_chunks(self, name: str, chunks: Mapping[str, str]) -> int:
        """
        Embed and store *chunks* (``{id: text}``) in collection *name*.

        Creates the collection when it does not exist.  Existing ids are
        replaced.

        Returns:
            Number of vectors in the collection after the save.
        """
        if self.has_collection(name):
            collection = self._load(name)
        else:
            collection = _Collection(faiss.IndexFlatIP(self.encoder.dimension), [])

        ids = list(chunks)
        if not ids:
            self._save(name, collection)
            return collection.size

        replaced = [i for i, entry in enumerate(collection.entries) if entry["id"] in chunks]
        if replaced:
            collection.index.remove_ids(np.array(replaced, dtype=np.int64))
            replaced_set = set(replaced)
            collection.entries = [
                entry for i, entry in enumerate(collection.entries)
                if i not in replaced_set
            ]
            self.logger.info("Replacing %d existing chunks in '%s'", len(replaced), name)

        batches = range(0, len(ids), self.batch_size)
        for start in tqdm(batches, desc="Indexing", unit="batch",
                          disable=not self.show_progress):
            batch_ids = ids[start:start + self.batch_size]
            texts = [chunks[chunk_id] for chunk_id in batch_ids]
            vectors = self.encoder.encode(texts)
            collection.index.add(np.ascontiguousarray(vectors, dtype=np.float32))
            collection.entries.extend(
                {"id": chunk_id, "text": text}
                for chunk_id, text in zip(batch_ids, texts)
            )
            self.logger.debug("Saved chunks %d-%d of %d", start + 1,
                              start + len(batch_ids), len(ids))

        self._save(name, collection)
        self.logger.info("Collection '%s' now holds %d chunks", name, collection.size)
        return collection.size

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        name: str,
        query: str,
        limit: int = 5,
        min_relevance: float = 0.0,
    ) -> List[MemoryQueryResult]:
        """
        Return up to *limit* chunks whose relevance is at least
        *min_relevance*, best first.
        """
        if not self.has_collection(name):
            self.logger.warning("Search called on missing collection '%s'", name)
            return []
        collection = self._load(name)
        if collection.size == 0 or limit <= 0:
            return []

        query_vector = self.encoder.encode([query]).astype(np.float32)
        top_k = min(limit, collection.size)
        scores, indices = collection.index.search(query_vector, top_k)

        results: List[MemoryQueryResult] = []
        for score, idx in zip(scores[0], indices[0]):
            if idx < 0:
                continue
            entry = collection.entries[idx]
            self.logger.debug("Result: %s, relevance: %.4f", entry["id"], score)
            if score >= min_relevance:
                results.append(MemoryQueryResult(entry["id"], entry["text"], float(score)))

        self.logger.info("Found %d results above relevance %.2f", len(results), min_relevance)
        return results

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _collection_dir(self, name: str) -> Path:
        if not name or name != Path(name).name or name in (".", ".."):
            raise ValueError(f"Invalid collection name: '{name}'")
        return self.store_dir / name

    def _load(self, name: str) -> _Collection:
        path = self._collection_dir(name)
        index = faiss.read_index(str(path / INDEX_FILENAME))
        with open(path / METADATA_FILENAME, "r", encoding="utf-8") as fh:
            entries = json.load(fh)
        if len(entries) != index.ntotal:
            raise RuntimeError(
                f"Collection '{name}' is corrupt: {index.ntotal} vectors vs "
                f"{len(entries)} metadata entries"
            )
        return _Collection(index, entries)

    def _save(self, name: str, collection: _Collection) -> None:
        path = self._collection_dir(name)
        path.mkdir(parents=True, exist_ok=True)
        faiss.write_index(collection.index, str(path / INDEX_FILENAME))
        with open(path / METADATA_FILENAME, "w", encoding="utf-8") as fh:
            json.dump(collection.entries, fh, ensure_ascii=False, indent=2)
