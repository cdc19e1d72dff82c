"""
Item Records
=============
Canonical representation of one catalog entry read from a spreadsheet row.

Identity
--------
Two records are the same item when their ``name`` and ``source`` match
ignoring case.  Every other attribute is ignored by ``==`` and ``hash``,
so a set or dict of records collapses duplicates that differ only in
capitalisation or in secondary columns.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Tuple

# Order of the positional spreadsheet columns (1-based column = index + 1).
RECORD_COLUMNS = (
    "name",
    "rarity",
    "category",
    "properties",
    "area",
    "location",
    "description",
)


def normalize_key(value: str) -> str:
    """Case-fold a value for identity comparison."""
    return (value or "").casefold()


def slugify(value: str) -> str:
    """Lowercase *value* and replace spaces with underscores."""
    return (value or "").replace(" ", "_").lower()


@dataclass(frozen=True, eq=False)
class ItemRecord:
    """
    A single catalog item.

    Attributes:
        name        : item name (required to be non-blank to be kept)
        rarity      : rarity label
        category    : item type / category
        properties  : free-text properties
        area        : coarse location (act, region, ...)
        location    : precise location
        description : long description
        source      : name of the worksheet the row came from
    """
    name: str = ""
    rarity: str = ""
    category: str = ""
    properties: str = ""
    area: str = ""
    location: str = ""
    description: str = ""
    source: str = ""

    @property
    def identity_key(self) -> Tuple[str, str]:
        return normalize_key(self.name), normalize_key(self.source)

    @property
    def item_id(self) -> str:
        """Deterministic id: ``<source>_<name>`` slug, or just the name slug."""
        base_id = slugify(self.name)
        if self.source.strip():
            return f"{slugify(self.source)}_{base_id}"
        return base_id

    def is_blank(self) -> bool:
        return not self.name.strip()

    def __eq__(self, other) -> bool:
        if not isinstance(other, ItemRecord):
            return NotImplemented
        return self.identity_key == other.identity_key

    def __hash__(self) -> int:
        return hash(self.identity_key)

    def to_dict(self) -> Dict:
        return asdict(self)
