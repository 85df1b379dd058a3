"""
Conversion settings.

Flag defaults can be set from the environment:

- WIKITRIPLES_STRICT: "1"/"true" halts on the first badly encoded record
- WIKITRIPLES_COMPRESSLEVEL: gzip level of the output (0-9, default 6)
- WIKITRIPLES_LOG_LEVEL: logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger("wikitriples.config")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_compresslevel(name: str, default: int = 6) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        level = int(value)
    except ValueError:
        level = -1
    if not 0 <= level <= 9:
        logger.warning(f"Ignoring {name}={value!r}: expected an integer from 0 to 9, using {default}")
        return default
    return level


STRICT = _env_flag("WIKITRIPLES_STRICT")
COMPRESSLEVEL = _env_compresslevel("WIKITRIPLES_COMPRESSLEVEL")
LOG_LEVEL = os.getenv("WIKITRIPLES_LOG_LEVEL", "INFO")


class Mode(str, Enum):
    PAGES = "pages"
    LINKS = "links"


class ErrorPolicy(str, Enum):
    """What to do with a record whose text is not valid UTF-8."""

    STRICT = "strict"  # halt the run
    PERMISSIVE = "permissive"  # report, skip the record, keep going


@dataclass
class ConversionConfig:
    """Settings for one conversion run."""

    mode: Mode
    infile: Path
    outfile: Path
    pages_file: Path | None = None  # links mode: the pages-triples file
    encyclopedia_only: bool = False  # pages mode: namespace 0 only
    error_policy: ErrorPolicy = ErrorPolicy.STRICT if STRICT else ErrorPolicy.PERMISSIVE
    compresslevel: int = COMPRESSLEVEL
    progress: bool = True

    def __post_init__(self) -> None:
        self.mode = Mode(self.mode)
        self.error_policy = ErrorPolicy(self.error_policy)
        self.infile = Path(self.infile)
        self.outfile = Path(self.outfile)
        if self.pages_file is not None:
            self.pages_file = Path(self.pages_file)
        if self.mode is Mode.LINKS and self.pages_file is None:
            raise ValueError("links mode needs the pages-triples file")
        if not 0 <= self.compresslevel <= 9:
            raise ValueError(f"compresslevel must be between 0 and 9, got {self.compresslevel}")

    @property
    def strict(self) -> bool:
        return self.error_policy is ErrorPolicy.STRICT

    @property
    def table(self) -> str:
        return "page" if self.mode is Mode.PAGES else "pagelinks"
