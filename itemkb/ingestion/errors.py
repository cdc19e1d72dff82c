"""
Ingestion errors.

``SourceReadError`` and ``ConfigurationError`` abort a run.  The other two
are raised and handled inside the extractor: a failing sheet is logged and
dropped, a failing cell becomes an empty string.
"""

from pathlib import Path
from typing import Optional, Union


class IngestionError(Exception):
    """Base class for every error raised by the ingestion stages."""


class SourceReadError(IngestionError):
    """The tabular source is missing, unsupported, or structurally corrupt."""

    def __init__(self, path: Union[str, Path], reason: str = "cannot be read"):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Source '{self.path}' {reason}")

    def __str__(self) -> str:
        return f"Source '{self.path}' {self.reason}"


class SubTableProcessingError(IngestionError):
    """One worksheet could not be processed; its records are dropped."""

    def __init__(self, sheet: str, cause: Optional[BaseException] = None):
        self.sheet = sheet
        self.cause = cause
        super().__init__(f"Failed to process sheet '{sheet}': {cause}")


class CellReadError(IngestionError):
    """A single cell could not be converted to text."""

    def __init__(self, sheet: str, row: int, column: int,
                 cause: Optional[BaseException] = None):
        self.sheet = sheet
        self.row = row
        self.column = column
        self.cause = cause
        super().__init__(
            f"Cannot read cell (row={row}, column={column}) in sheet '{sheet}': {cause}"
        )


class ConfigurationError(IngestionError, ValueError):
    """Invalid chunking parameters."""
