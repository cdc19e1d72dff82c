"""
Ingestion subpackage -- extracting, rendering, and chunking catalog items.

Pipeline flow:
    SpreadsheetExtractor  -->  RecordFormatter  -->  ItemChunker
    (xlsx/csv rows)            (item text blocks)    (id -> chunk text)
"""

from itemkb.ingestion.errors import (
    CellReadError,
    ConfigurationError,
    IngestionError,
    SourceReadError,
    SubTableProcessingError,
)
from itemkb.ingestion.records import ItemRecord, slugify
from itemkb.ingestion.extractor import SpreadsheetExtractor
from itemkb.ingestion.formatter import RecordFormatter, ITEM_SEPARATOR
from itemkb.ingestion.text_splitter import BoundedTextSplitter
from itemkb.ingestion.chunker import ItemChunker
