"""
Decompressing byte source for SQL dumps.

Dumps are read as raw bytes: text decoding is deferred to the record
decoder so that a bad byte sequence in one title can be reported (and
skipped) without losing the position in the stream.
"""

from __future__ import annotations

import bz2
import gzip
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

logger = logging.getLogger("wikitriples.source")


GZIP_MAGIC = b"\x1f\x8b"
BZ2_MAGIC = b"BZh"


def detect_compression(path: str | Path) -> str:
    """Return "gzip", "bz2" or "plain" from the leading bytes of ``path``."""
    with open(path, "rb") as f:
        head = f.read(3)
    if head.startswith(GZIP_MAGIC):
        return "gzip"
    if head.startswith(BZ2_MAGIC):
        return "bz2"
    return "plain"


@contextmanager
def open_dump(path: str | Path) -> Iterator[BinaryIO]:
    """Open a (possibly compressed) dump for binary reading.

    The format is taken from the file content, not its name.
    """
    path = Path(path)
    compression = detect_compression(path)

    if compression == "gzip":
        opener = gzip.open
    elif compression == "bz2":
        opener = bz2.open
    else:
        opener = open

    logger.debug(f"Opening {path} ({compression})")
    with opener(path, "rb") as f:
        yield f


def iter_lines(stream: BinaryIO) -> Iterator[tuple[int, bytes]]:
    """Yield ``(offset, line)`` pairs, offset being the absolute byte offset
    of the line in the decompressed stream."""
    offset = 0
    for line in stream:
        yield offset, line
        offset += len(line)
