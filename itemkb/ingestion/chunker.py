"""
Item Chunker
=============
Splits the formatter's text stream back into per-item blocks and turns
every block into one or more retrieval chunks keyed by a stable id.

Why re-split?
  The formatter output is a self-contained interchange format.  The chunker
  only relies on the ``Item:`` / ``ItemID:`` lines and on the separator,
  so it also accepts text that was edited by hand or produced elsewhere.

Chunking strategy:
  - A block of at most ``max_chunk_size`` characters becomes one chunk,
    keyed by its ``ItemID`` (or ``item{i}`` when it has none).
  - A larger block is cut into token-bounded paragraphs.  Every paragraph
    is re-wrapped with the ``Item:`` header and the ``ItemID:`` footer so
    each part can be retrieved and attributed on its own.  Parts are keyed
    ``<id>_part<j>``.

The chunker holds no state between calls: the same text always yields the
same ids and the same chunk texts, in the same order.
"""

import logging
from typing import Dict, List, Optional, Tuple

from itemkb.ingestion.errors import ConfigurationError
from itemkb.ingestion.formatter import ITEM_ID_PREFIX, ITEM_PREFIX, ITEM_SEPARATOR
from itemkb.ingestion.records import slugify
from itemkb.ingestion.text_splitter import (
    TOKEN_COUNTERS,
    BoundedTextSplitter,
    LengthFunction,
)

# ---------------------------------------------------------------------------
# Default chunking parameters -- override via configs/settings.yaml
# ---------------------------------------------------------------------------
DEFAULT_MAX_CHUNK_SIZE = 1024       # characters per unsplit item block
DEFAULT_MAX_TOKENS_PER_LINE = 128   # token budget per line / part


def _find_field(text: str, prefix: str) -> str:
    """Value of the first line starting with *prefix*, or ``""``."""
    for line in text.split("\n"):
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return ""


def extract_item_name(text: str) -> str:
    return _find_field(text, ITEM_PREFIX)


def extract_item_id(text: str) -> str:
    return _find_field(text, ITEM_ID_PREFIX)


def _require_positive_int(name: str, value) -> None:
    # bool is an int subclass but never a size
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"{name} must be an integer (got {type(value).__name__} {value!r})"
        )
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive (got {value})")


class ItemChunker:
    """
    Turns separator-delimited item text into an ordered ``{chunk_id: text}``
    mapping.

    Usage::

        chunker = ItemChunker(max_chunk_size=1024, max_tokens_per_line=128)
        chunks = chunker.chunk(text, ITEM_SEPARATOR)

        # Word-count budget instead of characters
        chunker = ItemChunker(token_counter="words")
    """

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        max_tokens_per_line: int = DEFAULT_MAX_TOKENS_PER_LINE,
        token_counter="chars",
        separator: str = ITEM_SEPARATOR,
        logger: Optional[logging.Logger] = None,
    ):
        _require_positive_int("max_chunk_size", max_chunk_size)
        _require_positive_int("max_tokens_per_line", max_tokens_per_line)
        if not isinstance(separator, str) or not separator:
            raise ConfigurationError(
                f"Chunk separator must be a non-empty string (got {separator!r})"
            )
        self.max_chunk_size = max_chunk_size
        self.max_tokens_per_line = max_tokens_per_line
        self.separator = separator
        self.splitter = BoundedTextSplitter(
            max_tokens_per_line,
            length_function=self._resolve_counter(token_counter),
        )
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _resolve_counter(token_counter) -> LengthFunction:
        if callable(token_counter):
            return token_counter
        if not isinstance(token_counter, str) or token_counter not in TOKEN_COUNTERS:
            raise ConfigurationError(
                f"Unknown token_counter '{token_counter}'. "
                f"Choose from {sorted(TOKEN_COUNTERS)}"
            )
        return TOKEN_COUNTERS[token_counter]

    # ------------------------------------------------------------------ #
    # Public API                                                          #
    # ------------------------------------------------------------------ #

    def chunk(self, text: str, separator: Optional[str] = None) -> Dict[str, str]:
        """
        Split *text* into item blocks and chunk each one.

        Args:
            text      : formatter output (or any text in the same grammar)
            separator : record separator line (defaults to the one given at
                        construction)

        Returns:
            Ordered dict of chunk id -> chunk text.  Empty for empty text.

        Raises:
            ConfigurationError: if *separator* is empty.
        """
        if separator is None:
            separator = self.separator
        if not separator:
            raise ConfigurationError("Chunk separator must not be empty")

        text = text or ""
        self.logger.info("Chunking %d characters of item text", len(text))

        blocks = self.split_blocks(text, separator)
        self.logger.info("Found %d item blocks", len(blocks))

        result: Dict[str, str] = {}
        for index, block in enumerate(blocks):
            for chunk_id, chunk_text in self._chunk_block(block, index, len(blocks), result):
                result[chunk_id] = chunk_text

        self.logger.info("Generated %d chunks", len(result))
        return result

    @staticmethod
    def split_blocks(text: str, separator: str) -> List[str]:
        """Trimmed, non-blank item blocks in input order."""
        return [block.strip() for block in text.split(separator) if block.strip()]

    def split_item(self, block: str) -> List[str]:
        """
        Cut one oversized item block into header/footer-wrapped parts.

        The ``Item:`` line at the top and the ``ItemID:`` line at the bottom
        are removed from the body and re-added to every part.
        """
        item_name = extract_item_name(block)
        item_id = extract_item_id(block)

        header = f"{ITEM_PREFIX} {item_name}\n" if item_name else ""
        footer = f"\n{ITEM_ID_PREFIX} {item_id}" if item_id else ""

        lines = self.splitter.split_lines(block)
        if lines and lines[0].startswith(ITEM_PREFIX):
            lines.pop(0)
        if lines and lines[-1].startswith(ITEM_ID_PREFIX):
            lines.pop()

        budget = self.max_tokens_per_line - self.splitter.measure(header + footer)
        if budget <= 0:
            self.logger.warning(
                "Header and footer of item '%s' exceed the %d token budget; "
                "parts will be larger than the budget",
                item_name or item_id, self.max_tokens_per_line,
            )
            budget = self.max_tokens_per_line

        paragraphs = self.splitter.split_paragraphs(lines, budget)
        if not paragraphs:
            paragraphs = [""]
        return [f"{header}{paragraph}{footer}" for paragraph in paragraphs]

    # ------------------------------------------------------------------ #
    # Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _chunk_block(self, block: str, index: int, total: int,
                     emitted: Dict[str, str]) -> List[Tuple[str, str]]:
        item_id = slugify(extract_item_id(block))
        base_id = item_id or f"item{index}"

        single = len(block) <= self.max_chunk_size
        parts = [block] if single else self.split_item(block)

        def ids_for(base: str) -> List[str]:
            if single:
                return [base]
            return [f"{base}_part{j}" for j in range(len(parts))]

        chunk_ids = ids_for(base_id)
        suffix = 0
        while any(chunk_id in emitted for chunk_id in chunk_ids):
            suffix += 1
            chunk_ids = ids_for(f"{base_id}_{suffix}")
        if suffix:
            self.logger.warning(
                "Chunk id '%s' already used; item %d stored as '%s_%d'",
                base_id, index, base_id, suffix,
            )

        for j, (chunk_id, part) in enumerate(zip(chunk_ids, parts)):
            self.logger.debug(
                "Item %d/%d part %d/%d -> '%s' (length: %d)",
                index + 1, total, j + 1, len(parts), chunk_id, len(part),
            )
        return list(zip(chunk_ids, parts))


def chunk_statistics(chunks: Dict[str, str]) -> Dict:
    """
    Summarise a chunk mapping.

    Returns:
        Dict with keys: num_chunks, total_chars, avg_chunk_len,
        min_chunk_len, max_chunk_len, split_items (items cut into parts).
    """
    lengths = [len(text) for text in chunks.values()]
    split_bases = {
        chunk_id.rsplit("_part", 1)[0]
        for chunk_id in chunks
        if "_part" in chunk_id and chunk_id.rsplit("_part", 1)[1].isdigit()
    }
    return {
        "num_chunks": len(lengths),
        "total_chars": sum(lengths),
        "avg_chunk_len": sum(lengths) / len(lengths) if lengths else 0,
        "min_chunk_len": min(lengths) if lengths else 0,
        "max_chunk_len": max(lengths) if lengths else 0,
        "split_items": len(split_bases),
    }
