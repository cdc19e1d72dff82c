"""
Bounded Text Splitter
======================
Splits plain text into lines that stay under a token budget, then packs
those lines into paragraphs that stay under a (usually smaller) budget.

What is a "token" here?
  Whatever the configured length function says.  Two approximations ship
  with the module:

  - ``char_count``  -- one token per character (default)
  - ``word_count``  -- one token per whitespace-delimited word

  A HuggingFace tokenizer can be plugged in with ``tokenizer_counter``.

Line splitting strategy:
  Every input line that is over budget is split recursively, coarsest
  boundary first:

      sentence end  ->  clause punctuation  ->  whitespace  ->  characters

  Pieces are then merged greedily back together (joined by a single space)
  as long as the merged line still fits.  Only the last level cuts inside
  a word, so a line is never over budget unless a single character is.
"""

import re
from typing import Callable, Dict, List, Optional

LengthFunction = Callable[[str], int]

# Boundaries tried in order, from coarsest to finest.
_SPLIT_PATTERNS = [
    re.compile(r"(?<=[.!?])\s+"),   # sentence end
    re.compile(r"(?<=[;:,])\s+"),   # clause punctuation
    re.compile(r"\s+"),             # word boundary
]


def char_count(text: str) -> int:
    return len(text)


def word_count(text: str) -> int:
    return len(text.split())


def tokenizer_counter(tokenizer) -> LengthFunction:
    """
    Wrap a HuggingFace tokenizer as a length function.

    Usage::

        from transformers import AutoTokenizer
        tok = AutoTokenizer.from_pretrained("sentence-transformers/all-MiniLM-L6-v2")
        splitter = BoundedTextSplitter(128, length_function=tokenizer_counter(tok))
    """
    def count(text: str) -> int:
        return len(tokenizer.encode(text, add_special_tokens=False))
    return count


TOKEN_COUNTERS: Dict[str, LengthFunction] = {
    "chars": char_count,
    "words": word_count,
}


class BoundedTextSplitter:
    """
    Token-bounded line and paragraph splitter.

    Usage::

        splitter = BoundedTextSplitter(max_tokens_per_line=128)
        lines = splitter.split_lines(text)
        paragraphs = splitter.split_paragraphs(lines, max_tokens=100)
    """

    def __init__(self, max_tokens_per_line: int = 128,
                 length_function: Optional[LengthFunction] = None):
        if max_tokens_per_line <= 0:
            raise ValueError(
                f"max_tokens_per_line must be positive (got {max_tokens_per_line})"
            )
        self.max_tokens_per_line = max_tokens_per_line
        self.length_function = length_function or char_count

    def measure(self, text: str) -> int:
        return self.length_function(text)

    def split_lines(self, text: str) -> List[str]:
        """Split *text* into non-empty lines of at most ``max_tokens_per_line``."""
        lines: List[str] = []
        for raw_line in text.splitlines():
            raw_line = raw_line.strip()
            if raw_line:
                lines.extend(self._split_bounded(raw_line, self.max_tokens_per_line))
        return lines

    def split_paragraphs(self, lines: List[str], max_tokens: int) -> List[str]:
        """
        Pack *lines* into newline-joined paragraphs of at most *max_tokens*.

        Lines that alone exceed the paragraph budget are split again with
        that budget first, so every paragraph respects it.
        """
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive (got {max_tokens})")

        paragraphs: List[str] = []
        current = ""
        for line in lines:
            for piece in self._split_bounded(line, max_tokens):
                candidate = f"{current}\n{piece}" if current else piece
                if current and self.measure(candidate) > max_tokens:
                    paragraphs.append(current)
                    current = piece
                else:
                    current = candidate
        if current:
            paragraphs.append(current)
        return paragraphs

    # ------------------------------------------------------------------ #
    # Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _split_bounded(self, text: str, limit: int, level: int = 0) -> List[str]:
        if self.measure(text) <= limit:
            return [text]
        if level >= len(_SPLIT_PATTERNS):
            return self._split_characters(text, limit)

        pieces = [p for p in _SPLIT_PATTERNS[level].split(text) if p]
        if len(pieces) <= 1:
            return self._split_bounded(text, limit, level + 1)

        parts: List[str] = []
        for piece in pieces:
            parts.extend(self._split_bounded(piece, limit, level + 1))
        return self._merge(parts, limit, joiner=" ")

    def _split_characters(self, text: str, limit: int) -> List[str]:
        pieces: List[str] = []
        current = ""
        for char in text:
            if current and self.measure(current + char) > limit:
                pieces.append(current)
                current = char
            else:
                current += char
        if current:
            pieces.append(current)
        return pieces

    def _merge(self, parts: List[str], limit: int, joiner: str) -> List[str]:
        merged: List[str] = []
        current = ""
        for part in parts:
            candidate = f"{current}{joiner}{part}" if current else part
            if current and self.measure(candidate) > limit:
                merged.append(current)
                current = part
            else:
                current = candidate
        if current:
            merged.append(current)
        return merged
