"""
Settings
=========
Loads ``configs/settings.yaml`` and exposes it as typed dataclasses.

Why a separate module?
----------------------
The CLI, the pipeline and the tests all need the same settings.  Loading
them in one place means defaults, environment overrides and validation
live in a single spot.

Lookup order for the settings file:
  1. explicit path passed to ``load_settings``
  2. ``ITEMKB_SETTINGS`` environment variable
  3. ``configs/settings.yaml`` next to the package
"""

import logging
import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from itemkb.ingestion.chunker import DEFAULT_MAX_CHUNK_SIZE, DEFAULT_MAX_TOKENS_PER_LINE
from itemkb.ingestion.extractor import DEFAULT_EXCLUDED_SHEET
from itemkb.ingestion.formatter import ITEM_SEPARATOR

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SETTINGS_PATH = PROJECT_ROOT / "configs" / "settings.yaml"
SETTINGS_ENV_VAR = "ITEMKB_SETTINGS"


@dataclass
class SourceSettings:
    path: str = "data/item_index.xlsx"
    excluded_sheet: str = DEFAULT_EXCLUDED_SHEET


@dataclass
class ChunkingSettings:
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    max_tokens_per_line: int = DEFAULT_MAX_TOKENS_PER_LINE
    token_counter: str = "chars"
    separator: str = ITEM_SEPARATOR


@dataclass
class MemorySettings:
    store_dir: str = "data/processed/memory"
    collection: str = "items"
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: str = "cpu"
    limit: int = 5
    min_relevance: float = 0.4
    batch_size: int = 32


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class Settings:
    source: SourceSettings = field(default_factory=SourceSettings)
    chunking: ChunkingSettings = field(default_factory=ChunkingSettings)
    memory: MemorySettings = field(default_factory=MemorySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_dict(self) -> Dict:
        return asdict(self)


def _build_section(section_cls, data: Optional[Dict]):
    """Instantiate *section_cls* from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", section_cls.__name__, unknown)
    return section_cls(**{k: v for k, v in data.items() if k in known})


def read_settings_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse a YAML settings file.

    Returns:
        The parsed YAML as a dict, or empty dict if the file is missing or
        cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Settings file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to read settings: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file %s does not contain a mapping", path)
        return {}
    return data


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings, falling back to defaults for anything missing."""
    path = path or os.environ.get(SETTINGS_ENV_VAR) or SETTINGS_PATH
    data = read_settings_file(path)
    return Settings(
        source=_build_section(SourceSettings, data.get("source")),
        chunking=_build_section(ChunkingSettings, data.get("chunking")),
        memory=_build_section(MemorySettings, data.get("memory")),
        logging=_build_section(LoggingSettings, data.get("logging")),
    )
