"""
Ingestion Pipeline
===================
Wires the stages together:

    SpreadsheetExtractor -> RecordFormatter -> ItemChunker -> MemoryStore

``build_chunks`` runs the three pure stages and returns the chunk mapping.
``populate`` additionally hands the chunks to a store, but only when the
target collection does not exist yet (or when forced), so repeated runs
against the same store are cheap no-ops.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from itemkb.config import Settings
from itemkb.ingestion.chunker import ItemChunker
from itemkb.ingestion.extractor import SpreadsheetExtractor
from itemkb.ingestion.formatter import RecordFormatter


class IngestionPipeline:
    """
    Usage::

        settings = load_settings()
        pipeline = IngestionPipeline(settings)
        chunks = pipeline.build_chunks("data/item_index.xlsx")
    """

    def __init__(self, settings: Optional[Settings] = None,
                 logger: Optional[logging.Logger] = None,
                 show_progress: bool = False):
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger(__name__)

        chunking = self.settings.chunking
        # Built first so invalid chunking settings fail before any I/O.
        self.chunker = ItemChunker(
            max_chunk_size=chunking.max_chunk_size,
            max_tokens_per_line=chunking.max_tokens_per_line,
            token_counter=chunking.token_counter,
            separator=chunking.separator,
            logger=self.logger.getChild("chunker"),
        )
        self.separator = self.chunker.separator
        self.extractor = SpreadsheetExtractor(
            excluded_sheet=self.settings.source.excluded_sheet,
            logger=self.logger.getChild("extractor"),
            show_progress=show_progress,
        )
        self.formatter = RecordFormatter(
            separator=self.separator,
            logger=self.logger.getChild("formatter"),
        )

    def build_chunks(self, source: Optional[Union[str, Path]] = None) -> Dict[str, str]:
        """Extract, format and chunk *source* (defaults to the configured path)."""
        source = source or self.settings.source.path
        self.logger.info("Building chunks from %s", source)

        records = self.extractor.extract(source)
        text = self.formatter.format(records)
        chunks = self.chunker.chunk(text, self.separator)

        self.logger.info("%d items -> %d chunks", len(records), len(chunks))
        return chunks

    def populate(self, store, collection: Optional[str] = None,
                 source: Optional[Union[str, Path]] = None,
                 force: bool = False) -> int:
        """
        Fill *collection* in *store* with the chunks of *source*.

        Returns:
            Number of chunks written (0 when the collection already existed).
        """
        collection = collection or self.settings.memory.collection

        exists = store.has_collection(collection)
        if exists and not force:
            self.logger.info("Collection '%s' already exists", collection)
            return 0

        chunks = self.build_chunks(source)
        if exists:
            store.delete_collection(collection)
        store.save_chunks(collection, chunks)
        return len(chunks)
