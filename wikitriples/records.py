"""
Record decoding for the ``page`` and ``pagelinks`` tables.

Column layouts are fixed constants taken from the MediaWiki schema:

- page:      https://www.mediawiki.org/wiki/Manual:Page_table
- pagelinks: https://www.mediawiki.org/wiki/Manual:Pagelinks_table

The decoder maps the positional tokens of one row-tuple to named columns
and types them. It does not filter.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from wikitriples.errors import EncodingError, InvalidInteger, MalformedTuple
from wikitriples.sql import Token, TokenKind

logger = logging.getLogger("wikitriples.records")


# =============================================================================
# DATA CLASSES FOR DECODED RECORDS
# =============================================================================


@dataclass
class Page:
    """A row of the page table."""

    page_id: int
    namespace: int  # 0 = main namespace (articles)
    title: str
    is_redirect: bool = False
    content_model: str = ""

    @property
    def is_article(self) -> bool:
        return self.namespace == 0


@dataclass
class Link:
    """A row of the pagelinks table. The target is referenced by name."""

    source_id: int
    target_namespace: int
    target_title: str
    source_namespace: int | None = None


# =============================================================================
# TABLE LAYOUTS
# =============================================================================


class Rule(Enum):
    INT = "int"
    TEXT = "text"
    FLAG = "flag"
    SKIP = "skip"


@dataclass(frozen=True)
class Column:
    name: str
    rule: Rule
    required: bool = False
    default: Any = None
    positive: bool = False  # page ids start at 1


@dataclass(frozen=True)
class TableLayout:
    table: str
    columns: tuple[Column, ...]

    @property
    def min_width(self) -> int:
        """Number of values needed to cover every required column."""
        required = [i for i, col in enumerate(self.columns) if col.required]
        return required[-1] + 1 if required else 0


PAGE_LAYOUT = TableLayout(
    "page",
    (
        Column("page_id", Rule.INT, required=True, positive=True),
        Column("page_namespace", Rule.INT, required=True),
        Column("page_title", Rule.TEXT, required=True),
        Column("page_is_redirect", Rule.FLAG, default=False),
        Column("page_is_new", Rule.SKIP),
        Column("page_random", Rule.SKIP),
        Column("page_touched", Rule.SKIP),
        Column("page_links_updated", Rule.SKIP),
        Column("page_latest", Rule.SKIP),
        Column("page_len", Rule.SKIP),
        Column("page_content_model", Rule.TEXT, default=""),
        Column("page_lang", Rule.SKIP),
    ),
)

# Dumps from before MediaWiki 1.41 still carry page_restrictions.
PAGE_LAYOUT_LEGACY = TableLayout(
    "page",
    PAGE_LAYOUT.columns[:3]
    + (Column("page_restrictions", Rule.SKIP),)
    + PAGE_LAYOUT.columns[3:],
)

PAGELINKS_LAYOUT = TableLayout(
    "pagelinks",
    (
        Column("pl_from", Rule.INT, required=True, positive=True),
        Column("pl_namespace", Rule.INT, required=True),
        Column("pl_title", Rule.TEXT, required=True),
        Column("pl_from_namespace", Rule.INT),
    ),
)


def page_layout_for(width: int) -> TableLayout:
    if width == len(PAGE_LAYOUT_LEGACY.columns):
        return PAGE_LAYOUT_LEGACY
    return PAGE_LAYOUT


# =============================================================================
# VALUE DECODING
# =============================================================================

_INTEGER = re.compile(rb"[+-]?\d+")
_ESCAPE = re.compile(rb"\\(.)|''", re.DOTALL)
_ESCAPES = {
    b"0": b"\x00",
    b"'": b"'",
    b'"': b'"',
    b"b": b"\x08",
    b"n": b"\n",
    b"r": b"\r",
    b"t": b"\t",
    b"Z": b"\x1a",
    b"\\": b"\\",
    # MySQL keeps the backslash for these two
    b"%": b"\\%",
    b"_": b"\\_",
}
_TRUE_FLAGS = frozenset((b"1", b"b'1'", b"true"))
_FALSE_FLAGS = frozenset((b"0", b"b'0'", b"false", b"null", b""))


def _unescape_match(match: re.Match) -> bytes:
    escaped = match.group(1)
    if escaped is None:
        return b"'"
    return _ESCAPES.get(escaped, escaped)


def unescape(raw: bytes) -> bytes:
    """Resolve the MySQL escape sequences of a quoted string body."""
    if b"\\" not in raw and b"''" not in raw:
        return raw
    return _ESCAPE.sub(_unescape_match, raw)


def decode_text(token: Token, ordinal: int | None = None) -> str:
    raw = unescape(token.raw) if token.kind is TokenKind.STRING else token.raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"invalid UTF-8 in string: {e.reason}", token.offset, ordinal) from e


def decode_int(token: Token, ordinal: int | None = None) -> int:
    if not _INTEGER.fullmatch(token.raw):
        raise InvalidInteger(f"not an integer: {token.raw[:40]!r}", token.offset, ordinal)
    return int(token.raw)


def decode_flag(token: Token) -> bool | None:
    value = token.raw.lower()
    if value in _TRUE_FLAGS:
        return True
    if value in _FALSE_FLAGS:
        return False
    return None


def decode_row(
    layout: TableLayout, tokens: Sequence[Token], ordinal: int | None = None
) -> dict[str, Any]:
    """
    Decode one row-tuple against ``layout``.

    Required columns must be present and well-formed. Optional columns that
    are missing, NULL or malformed fall back to their default.
    """
    if len(tokens) < layout.min_width:
        offset = tokens[0].offset if tokens else None
        raise MalformedTuple(
            f"`{layout.table}` tuple has {len(tokens)} values, "
            f"expected at least {layout.min_width}",
            offset,
            ordinal,
        )

    row: dict[str, Any] = {}
    for column, token in zip(layout.columns, tokens):
        if column.rule is Rule.SKIP:
            continue
        if column.required:
            if token.is_null:
                raise MalformedTuple(f"NULL in column {column.name}", token.offset, ordinal)
            value = _decode_value(column, token, ordinal)
            if column.positive and value < 1:
                raise InvalidInteger(
                    f"{column.name} must be positive, got {value}", token.offset, ordinal
                )
            row[column.name] = value
            continue
        if token.is_null:
            row[column.name] = column.default
            continue
        try:
            row[column.name] = _decode_value(column, token, ordinal)
        except (InvalidInteger, EncodingError) as e:
            logger.debug(f"Defaulting {column.name}: {e}")
            row[column.name] = column.default

    for column in layout.columns[len(tokens):]:
        if column.rule is not Rule.SKIP:
            row[column.name] = column.default
    return row


def _decode_value(column: Column, token: Token, ordinal: int | None) -> Any:
    if column.rule is Rule.INT:
        return decode_int(token, ordinal)
    if column.rule is Rule.TEXT:
        return decode_text(token, ordinal)
    flag = decode_flag(token)
    return column.default if flag is None else flag


# =============================================================================
# RECORD BUILDERS
# =============================================================================


def clean_title(title: str) -> str:
    """Titles are stored with underscores in place of spaces."""
    return title.replace("_", " ")


def decode_page(tokens: Sequence[Token], ordinal: int | None = None) -> Page:
    row = decode_row(page_layout_for(len(tokens)), tokens, ordinal)
    return Page(
        page_id=row["page_id"],
        namespace=row["page_namespace"],
        title=clean_title(row["page_title"]),
        is_redirect=row["page_is_redirect"],
        content_model=row["page_content_model"],
    )


def decode_link(tokens: Sequence[Token], ordinal: int | None = None) -> Link:
    row = decode_row(PAGELINKS_LAYOUT, tokens, ordinal)
    return Link(
        source_id=row["pl_from"],
        target_namespace=row["pl_namespace"],
        target_title=clean_title(row["pl_title"]),
        source_namespace=row["pl_from_namespace"],
    )
