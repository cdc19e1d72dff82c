"""
Record Formatter
=================
Renders ``ItemRecord`` objects into one linear text stream that the
chunker splits back into per-item blocks.

Block grammar::

    Item: <name>
    Rarity: <rarity>. Type: <category>. Properties: ... . Source: <source>
    Description: <description>
    ItemID: <source_slug>_<name_slug>
    --------------------

The property line and the description line are omitted when empty.  The
separator line is a plain marker, not an escape-aware delimiter: a field
value containing it would split its record in two.
"""

import logging
from typing import Iterable, List, Optional

from itemkb.ingestion.records import ItemRecord

ITEM_SEPARATOR = "--------------------"

ITEM_PREFIX = "Item:"
ITEM_ID_PREFIX = "ItemID:"


def build_properties(record: ItemRecord) -> List[str]:
    """Return the non-blank property fragments of *record* in display order."""
    properties: List[str] = []

    if record.rarity.strip():
        properties.append(f"Rarity: {record.rarity}")
    if record.category.strip():
        properties.append(f"Type: {record.category}")
    if record.properties.strip():
        properties.append(f"Properties: {record.properties}")

    location_parts = [p for p in (record.area, record.location) if p.strip()]
    if location_parts:
        properties.append(f"Location: {' - '.join(location_parts)}")

    if record.source.strip():
        properties.append(f"Source: {record.source}")
    return properties


class RecordFormatter:
    """
    Turns a sequence of records into separator-delimited text blocks.

    Usage::

        formatter = RecordFormatter()
        text = formatter.format(records)
    """

    def __init__(self, separator: str = ITEM_SEPARATOR,
                 logger: Optional[logging.Logger] = None):
        self.separator = separator
        self.logger = logger or logging.getLogger(__name__)

    def format(self, records: Iterable[ItemRecord]) -> str:
        """Render *records* in order.  Returns ``""`` for no records."""
        blocks = [self.format_record(record) for record in records]
        if not blocks:
            return ""
        self.logger.info("Formatted %d items for chunking", len(blocks))
        return "".join(blocks)

    def format_record(self, record: ItemRecord) -> str:
        lines = [f"{ITEM_PREFIX} {record.name}"]

        properties = build_properties(record)
        if properties:
            lines.append(". ".join(properties))

        if record.description.strip():
            lines.append(f"Description: {record.description}")

        lines.append(f"{ITEM_ID_PREFIX} {record.item_id}")
        lines.append(self.separator)
        return "\n".join(lines) + "\n"
