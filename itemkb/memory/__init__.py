"""
Memory subpackage -- embedding and storing item chunks.

    EmbeddingEncoder  -- sentence-transformers text-to-vector encoder
    MemoryStore       -- FAISS collections with (id, text, relevance) search
"""

from itemkb.memory.store import MemoryQueryResult, MemoryStore
