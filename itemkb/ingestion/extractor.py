"""
Spreadsheet Extractor
======================
Reads a tabular item catalog from disk and returns a deduplicated list of
``ItemRecord`` objects.

Two source formats are supported:

1. **Excel workbooks** (primary) -- ``.xlsx`` / ``.xlsm`` files read with
   **openpyxl** in read-only mode.  Every worksheet is a sub-table whose
   name becomes the ``source`` of its records.

2. **CSV files** (secondary) -- a single sub-table named after the file
   stem.

Row layout
----------
Columns 1-7 map positionally to ``name``, ``rarity``, ``category``,
``properties``, ``area``, ``location`` and ``description``.  The first
used row of every sheet is a header and is skipped, as is every row whose
first cell is blank (section breaks).

Design notes
------------
* The extractor **never writes** to the source file.
* One broken sheet never aborts the run: the error is logged and the
  sheet contributes no records.
* One broken cell never drops its row: the cell reads as an empty string.
* Deduplication happens after all sheets are read, so the first
  occurrence of an item (in sheet order, then row order) wins.
"""

import csv
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from openpyxl import load_workbook
from tqdm import tqdm

from itemkb.ingestion.errors import (
    CellReadError,
    SourceReadError,
    SubTableProcessingError,
)
from itemkb.ingestion.records import RECORD_COLUMNS, ItemRecord


# Table-of-contents sheet that holds no items.
DEFAULT_EXCLUDED_SHEET = "INDEX"

_WORKBOOK_EXTENSIONS = {".xlsx", ".xlsm"}
_CSV_EXTENSIONS = {".csv"}

# openpyxl marks formula errors (#N/A, #REF!, ...) with this data type.
_ERROR_DATA_TYPE = "e"


def _cell_value(cell):
    """Return the raw value of an openpyxl cell or a plain CSV string."""
    if getattr(cell, "data_type", None) == _ERROR_DATA_TYPE:
        raise ValueError(f"error value {cell.value!r}")
    return getattr(cell, "value", cell)


def _is_blank_row(row: Sequence) -> bool:
    for cell in row:
        value = getattr(cell, "value", cell)
        if value is not None and str(value).strip():
            return False
    return True


class SpreadsheetExtractor:
    """
    Extract catalog items from a spreadsheet file.

    Parameters
    ----------
    excluded_sheet : str
        Name of the worksheet to skip (the catalog index).
    logger : logging.Logger or None
        Where diagnostics go.  Defaults to this module's logger.
    show_progress : bool
        Display a tqdm progress bar over the worksheets.

    Usage
    -----
    ::

        extractor = SpreadsheetExtractor(excluded_sheet="INDEX")
        records = extractor.extract("data/item_index.xlsx")
    """

    def __init__(
        self,
        excluded_sheet: str = DEFAULT_EXCLUDED_SHEET,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = False,
    ):
        self.excluded_sheet = excluded_sheet
        self.logger = logger or logging.getLogger(__name__)
        self.show_progress = show_progress

    # ------------------------------------------------------------------ #
    # Public API                                                          #
    # ------------------------------------------------------------------ #

    def extract(self, source: Union[str, Path]) -> List[ItemRecord]:
        """
        Read every eligible row of *source* and return unique records.

        Returns
        -------
        list of ItemRecord
            In first-seen order, without duplicates or blank names.

        Raises
        ------
        SourceReadError
            If the file is missing, has an unsupported extension, or cannot
            be opened as a workbook / CSV file.
        """
        path = self._validate_path(source)

        records: List[ItemRecord] = []
        for sheet_name, rows in self._iter_tables(path):
            try:
                sheet_records = self._extract_sheet(sheet_name, rows)
            except Exception as exc:
                error = SubTableProcessingError(sheet_name, exc)
                self.logger.error("%s -- sheet skipped", error)
                continue
            self.logger.info("Sheet '%s': %d rows mapped", sheet_name,
                             len(sheet_records))
            records.extend(sheet_records)

        unique = list(dict.fromkeys(records))
        kept = [r for r in unique if not r.is_blank()]

        duplicates = len(records) - len(unique)
        if duplicates:
            self.logger.info("Dedup: dropped %d duplicate items", duplicates)
        if len(unique) != len(kept):
            self.logger.info("Dropped %d items without a name",
                             len(unique) - len(kept))
        self.logger.info("Extracted %d items from %s", len(kept), path)
        return kept

    # ------------------------------------------------------------------ #
    # Source access                                                       #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_path(source: Union[str, Path]) -> Path:
        if source is None or not str(source).strip():
            raise SourceReadError("", "path is empty")
        path = Path(source)
        if not path.is_file():
            raise SourceReadError(path, "does not exist")
        ext = path.suffix.lower()
        if ext not in _WORKBOOK_EXTENSIONS and ext not in _CSV_EXTENSIONS:
            raise SourceReadError(path, f"has unsupported extension '{ext}'")
        return path

    def _iter_tables(self, path: Path) -> Iterator[Tuple[str, Iterable[Sequence]]]:
        """Yield ``(sheet_name, rows)`` for every sheet that is not excluded."""
        if path.suffix.lower() in _CSV_EXTENSIONS:
            yield from self._iter_csv(path)
            return

        try:
            workbook = load_workbook(str(path), read_only=True, data_only=True)
        except Exception as exc:
            raise SourceReadError(path, f"is not a readable workbook ({exc})") from exc

        try:
            worksheets = [
                ws for ws in workbook.worksheets
                if ws.title != self.excluded_sheet
            ]
            for ws in tqdm(worksheets, desc="Sheets", unit="sheet",
                           disable=not self.show_progress):
                yield ws.title, ws.iter_rows()
        finally:
            workbook.close()

    def _iter_csv(self, path: Path) -> Iterator[Tuple[str, Iterable[Sequence]]]:
        # Read eagerly: a decode error rejects the whole file, not one sheet.
        try:
            with open(path, "r", encoding="utf-8-sig", newline="") as fh:
                rows = list(csv.reader(fh))
        except OSError as exc:
            raise SourceReadError(path, f"cannot be opened ({exc})") from exc
        except (UnicodeDecodeError, csv.Error) as exc:
            raise SourceReadError(path, f"is not a readable UTF-8 CSV file ({exc})") from exc
        yield path.stem, rows

    # ------------------------------------------------------------------ #
    # Row mapping                                                         #
    # ------------------------------------------------------------------ #

    def _extract_sheet(self, sheet_name: str,
                       rows: Iterable[Sequence]) -> List[ItemRecord]:
        records: List[ItemRecord] = []
        header_seen = False

        for row_number, row in enumerate(rows, start=1):
            if _is_blank_row(row):
                continue
            if not header_seen:
                header_seen = True
                continue
            if not self._cell_text(sheet_name, row_number, row, 1):
                continue
            records.append(self._create_record(sheet_name, row_number, row))

        return records

    def _create_record(self, sheet_name: str, row_number: int,
                       row: Sequence) -> ItemRecord:
        values = {
            field_name: self._cell_text(sheet_name, row_number, row, column)
            for column, field_name in enumerate(RECORD_COLUMNS, start=1)
        }
        return ItemRecord(source=sheet_name, **values)

    def _cell_text(self, sheet_name: str, row_number: int,
                   row: Sequence, column: int) -> str:
        """Trimmed text of a cell, or ``""`` when it is missing or unreadable."""
        try:
            return self._read_cell(sheet_name, row_number, row, column)
        except CellReadError as exc:
            self.logger.debug("%s -- using empty value", exc)
            return ""

    @staticmethod
    def _read_cell(sheet_name: str, row_number: int,
                   row: Sequence, column: int) -> str:
        if column > len(row):
            return ""
        try:
            value = _cell_value(row[column - 1])
            return "" if value is None else str(value).strip()
        except Exception as exc:
            raise CellReadError(sheet_name, row_number, column, exc) from exc
