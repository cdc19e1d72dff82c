"""
Embedding Encoder
==================
Turns item chunks and search queries into unit-length vectors for the
memory store.

Any object with a ``dimension`` attribute and an ``encode(texts)`` method
returning a ``(len(texts), dimension)`` float32 array can stand in for
``EmbeddingEncoder`` (the test-suite uses a hashing encoder).

Vectors are L2-normalised, so the store's inner-product scores are cosine
similarities and ``min_relevance`` behaves the same for every query.
"""

import logging
from typing import Optional, Sequence

import numpy as np

# sentence-transformers pulls in torch; only required when a model is loaded
try:
    from sentence_transformers import SentenceTransformer

    ST_AVAILABLE = True
except ImportError:
    ST_AVAILABLE = False


class EmbeddingEncoder:
    """
    sentence-transformers model wrapper used by ``MemoryStore``.

    Usage::

        encoder = EmbeddingEncoder("sentence-transformers/all-MiniLM-L6-v2")
        store = MemoryStore("data/processed/memory", encoder=encoder)
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        device: str = "cpu",
        cache_folder: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not ST_AVAILABLE:
            raise ImportError(
                "Semantic search needs sentence-transformers: "
                "pip install sentence-transformers"
            )
        self.logger = logger or logging.getLogger(__name__)
        self.model_name = model_name
        self.logger.info("Loading embedding model '%s' (%s)", model_name, device)
        self.model = SentenceTransformer(model_name, device=device,
                                         cache_folder=cache_folder)
        self.dimension = self.model.get_sentence_embedding_dimension()

    def encode(self, texts: Sequence[str], batch_size: int = 32) -> np.ndarray:
        if len(texts) == 0:
            return np.zeros((0, self.dimension), dtype=np.float32)

        vectors = self.model.encode(
            list(texts),
            batch_size=batch_size,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        self.logger.debug("Embedded %d texts into %s", len(texts), vectors.shape)
        return np.asarray(vectors, dtype=np.float32)
