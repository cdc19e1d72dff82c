"""
Shared test fixtures.

Provides: spreadsheet builders, a sample catalog workbook, a hashing
encoder that stands in for the embedding model
Dependencies: pytest, openpyxl, numpy
"""

import re
import zlib

import numpy as np
import pytest
from openpyxl import Workbook

HEADER = ["Name", "Rarity", "Type", "Properties", "Act/Area", "Location", "Description"]


def write_workbook(path, sheets):
    """Write ``{sheet_name: [row, ...]}`` to *path* as an xlsx workbook."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


@pytest.fixture
def make_workbook(tmp_path):
    def _make(sheets, filename="items.xlsx"):
        return write_workbook(tmp_path / filename, sheets)
    return _make


@pytest.fixture
def catalog_workbook(make_workbook):
    """Small catalog with an index sheet, two item sheets and one long item."""
    long_description = " ".join(
        f"The blade hums with ember number {i} when drawn at dusk." for i in range(40)
    )
    return make_workbook({
        "INDEX": [
            ["Sheet", "Contents"],
            ["Weapons", "All weapons"],
            ["Armour", "All armour"],
        ],
        "Weapons": [
            HEADER,
            ["Sunlit Blade", "Rare", "Longsword", "1d8 Slashing", "Act 1",
             "Blighted Village", "A sword that glows faintly."],
            ["Flame Tongue", "Very Rare", "Scimitar", "", "Act 2", "",
             long_description],
            [],
            ["SUNLIT BLADE", "Common", "", "", "", "", "Duplicate row."],
        ],
        "Armour": [
            HEADER,
            [None, "Section break"],
            ["Torch", None, None, None, None, None, None],
            ["Adamantine Shield", "Uncommon", "Shield", "AC 2", "", "Grymforge", ""],
        ],
    })


class HashingEncoder:
    """Deterministic bag-of-words encoder with the EmbeddingEncoder interface."""

    dimension = 64

    def encode(self, texts, batch_size=32):
        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for row, text in enumerate(texts):
            for word in re.findall(r"[a-z0-9]+", text.lower()):
                vectors[row, zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return vectors / norms


@pytest.fixture
def hashing_encoder():
    return HashingEncoder()
