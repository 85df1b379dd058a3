"""
Triple serialization.

One triple per line::

    <3> <namespace> "0" .
    <3> <title> "Antoine Meillet" .
    <177374> <linksto> <222657> .

Literal objects are double-quoted with backslash escapes; ``linksto``
objects are page references.
"""

from __future__ import annotations

import gzip
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from tqdm import tqdm

from wikitriples.errors import MalformedTriple
from wikitriples.source import open_dump

logger = logging.getLogger("wikitriples.triples")

TITLE = "title"
NAMESPACE = "namespace"
LINKSTO = "linksto"
PREDICATES = (TITLE, NAMESPACE, LINKSTO)


@dataclass(frozen=True)
class Triple:
    subject: int
    predicate: str
    obj: str | int

    @classmethod
    def title(cls, page_id: int, title: str) -> Triple:
        return cls(page_id, TITLE, title)

    @classmethod
    def namespace(cls, page_id: int, namespace: int) -> Triple:
        return cls(page_id, NAMESPACE, namespace)

    @classmethod
    def linksto(cls, source_id: int, target_id: int) -> Triple:
        return cls(source_id, LINKSTO, target_id)


# =============================================================================
# FORMATTING / PARSING
# =============================================================================

_LITERAL_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})
_LITERAL_UNESCAPE = re.compile(r"\\(.)")
_LITERAL_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t"}

_TRIPLE_PATTERN = re.compile(
    r'^<(\d+)> <(\w+)> (?:"((?:[^"\\]|\\.)*)"|<(\d+)>|(-?\d+)) \.$'
)


def escape_literal(value: str) -> str:
    return value.translate(_LITERAL_ESCAPES)


def unescape_literal(value: str) -> str:
    if "\\" not in value:
        return value
    return _LITERAL_UNESCAPE.sub(lambda m: _LITERAL_UNESCAPES.get(m.group(1), m.group(1)), value)


def format_triple(triple: Triple) -> str:
    if triple.predicate == LINKSTO:
        obj = f"<{triple.obj}>"
    else:
        obj = f'"{escape_literal(str(triple.obj))}"'
    return f"<{triple.subject}> <{triple.predicate}> {obj} ."


def parse_triple(line: str, line_number: int | None = None) -> Triple:
    """Inverse of ``format_triple``. Namespace objects may be quoted or bare."""
    match = _TRIPLE_PATTERN.match(line.strip())
    if not match or match.group(2) not in PREDICATES:
        raise MalformedTriple(f"not a triple: {line.strip()[:80]!r}", line_number)

    subject = int(match.group(1))
    predicate = match.group(2)
    literal, reference, bare = match.group(3), match.group(4), match.group(5)

    if predicate == LINKSTO:
        if reference is None:
            raise MalformedTriple("linksto object must be a page reference", line_number)
        return Triple(subject, predicate, int(reference))
    if reference is not None:
        raise MalformedTriple(f"{predicate} object must be a literal", line_number)

    value = unescape_literal(literal) if literal is not None else bare
    if predicate == NAMESPACE:
        try:
            return Triple(subject, predicate, int(value))
        except ValueError as e:
            raise MalformedTriple(f"namespace is not an integer: {value!r}", line_number) from e
    return Triple(subject, predicate, value)


def read_triples(path: str | Path) -> Iterator[Triple]:
    """Stream the triples of a (possibly compressed) triples file."""
    with open_dump(path) as f:
        for line_number, raw in enumerate(f, 1):
            try:
                line = raw.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise MalformedTriple(f"invalid UTF-8: {e.reason}", line_number) from e
            if not line or line.startswith("#"):
                continue
            yield parse_triple(line, line_number)


# =============================================================================
# WRITER
# =============================================================================


class TripleWriter:
    """
    Gzip sink for triples.

    Every triple goes out as one complete line in a single write, in call
    order. Closing the writer after a failure keeps what was written.
    """

    def __init__(self, path: str | Path, compresslevel: int = 6, progress: bool = False):
        self.path = Path(path)
        self.compresslevel = compresslevel
        self.progress = progress
        self.written = 0
        self._raw: Any = None
        self._stream: Any = None
        self._pbar: tqdm | None = None

    def __enter__(self) -> TripleWriter:
        # No file name and a zero mtime in the header: same triples, same bytes
        self._raw = open(self.path, "wb")
        self._stream = gzip.GzipFile(
            filename="", mode="wb", compresslevel=self.compresslevel, fileobj=self._raw, mtime=0
        )
        self._pbar = tqdm(
            desc="Writing triples",
            unit=" triples",
            unit_scale=True,
            disable=not self.progress,
        )
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def write(self, triple: Triple) -> None:
        if self._stream is None:
            raise RuntimeError("TripleWriter is not open")
        self._stream.write((format_triple(triple) + "\n").encode("utf-8"))
        self.written += 1
        if self._pbar is not None:
            self._pbar.update(1)

    def write_all(self, triples: list[Triple]) -> None:
        for triple in triples:
            self.write(triple)

    def close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
        if self._stream is not None:
            self._stream.close()
            self._stream = None
            self._raw.close()
            self._raw = None
            logger.info(f"Wrote {self.written:,} triples to {self.path}")
