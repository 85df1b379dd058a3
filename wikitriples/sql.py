"""
Streaming reader for MySQL ``INSERT`` statements in MediaWiki SQL dumps.

MediaWiki dumps (``page.sql.gz``, ``pagelinks.sql.gz``) are mysqldump
output: a ``CREATE TABLE`` block followed by extended inserts, each one a
single (often multi-megabyte) line of the form::

    INSERT INTO `page` VALUES (1,0,'Foo',0,...),(2,0,'Bar',0,...);

Only the inserts for one target table are of interest. This module provides:

- StatementLocator: picks the target table's inserts out of the line stream
- TupleTokenizer: splits the value list into row-tuples of raw tokens

Everything operates on bytes; decoding to text is the record decoder's job.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from wikitriples.errors import MalformedTuple

logger = logging.getLogger("wikitriples.sql")


# =============================================================================
# STATEMENT LOCATOR
# =============================================================================


@dataclass(frozen=True)
class Statement:
    """The value list of one ``INSERT INTO <table> VALUES`` statement."""

    table: str
    offset: int  # absolute byte offset of values[0]
    values: bytes


class StatementLocator:
    """
    Find the insert statements of one table in a dump.

    Consumes ``(offset, line)`` pairs as produced by ``source.iter_lines``.
    A statement whose line does not end with ``;`` is continued on the
    following lines; that statement alone is buffered.
    """

    INSERT_PATTERN = re.compile(
        rb"\s*INSERT\s+INTO\s+`?(\w+)`?\s+VALUES\s*", re.IGNORECASE
    )

    def __init__(self, table: str):
        self.table = table
        self._table = table.encode("ascii")
        self.statements_seen = 0
        self.statements_matched = 0

    def statements(self, lines: Iterable[tuple[int, bytes]]) -> Iterator[Statement]:
        buffer: list[bytes] | None = None
        start = 0
        skipping = False

        for offset, line in lines:
            if buffer is not None:
                buffer.append(line)
                if _ends_statement(line):
                    yield Statement(self.table, start, b"".join(buffer))
                    buffer = None
                continue

            if skipping:
                skipping = not _ends_statement(line)
                continue

            # Cheap pre-check before running the regex on a huge line
            if b"INSERT" not in line[:64].upper():
                continue

            match = self.INSERT_PATTERN.match(line)
            if not match:
                continue

            self.statements_seen += 1
            if match.group(1) != self._table:
                skipping = not _ends_statement(line)
                continue

            self.statements_matched += 1
            start = offset + match.end()
            values = line[match.end():]
            if _ends_statement(line):
                yield Statement(self.table, start, values)
            else:
                buffer = [values]

        if buffer is not None:
            # Truncated dump; the tokenizer reports the unterminated tuple.
            logger.warning(f"Dump ended inside an INSERT INTO `{self.table}` statement")
            yield Statement(self.table, start, b"".join(buffer))

        logger.debug(
            f"{self.statements_matched:,} of {self.statements_seen:,} "
            f"insert statements matched `{self.table}`"
        )


def _ends_statement(line: bytes) -> bool:
    return line[-64:].rstrip().endswith(b";")


# =============================================================================
# TUPLE TOKENIZER
# =============================================================================


class ScanState(Enum):
    OUTSIDE_TUPLE = "outside_tuple"
    INSIDE_TUPLE = "inside_tuple"
    INSIDE_BARE = "inside_bare"
    INSIDE_STRING = "inside_string"
    ESCAPE_PENDING = "escape_pending"


class TokenKind(Enum):
    STRING = "string"  # quoted literal, quotes stripped, escapes kept
    BARE = "bare"  # integers, NULL, floats, flag literals


@dataclass(frozen=True)
class Token:
    """One literal of a row-tuple, still undecoded."""

    kind: TokenKind
    raw: bytes
    offset: int  # absolute byte offset of raw[0]

    @property
    def is_null(self) -> bool:
        return self.kind is TokenKind.BARE and self.raw.upper() == b"NULL"


_LPAREN = ord("(")
_RPAREN = ord(")")
_COMMA = ord(",")
_QUOTE = ord("'")
_BACKSLASH = ord("\\")
_SEMICOLON = ord(";")
_WHITESPACE = frozenset(b" \t\r\n")

# Fast-forward over the bodies of strings and bare literals
_STRING_BODY = re.compile(rb"[^'\\]*")
_BARE_BODY = re.compile(rb"[^,)]*")


class TupleTokenizer:
    """
    Finite-state scanner over the value list of an insert statement.

    Tuples are delimited by parentheses, values by commas outside strings.
    Strings are single-quoted; a backslash escapes the next byte and a
    doubled quote stands for a literal quote, so neither ends the string.
    Bare literals are captured verbatim and typed later.
    """

    def tuples(self, data: bytes, base_offset: int = 0) -> Iterator[list[Token]]:
        state = ScanState.OUTSIDE_TUPLE
        tokens: list[Token] = []
        tuple_start = 0
        field_start = 0
        at_separator = False  # no value since "(" or the last comma
        pos = 0
        end = len(data)

        while pos < end:
            if state is ScanState.OUTSIDE_TUPLE:
                c = data[pos]
                if c == _LPAREN:
                    state = ScanState.INSIDE_TUPLE
                    tokens = []
                    tuple_start = pos
                    at_separator = True
                elif c == _SEMICOLON:
                    return
                elif c != _COMMA and c not in _WHITESPACE:
                    raise MalformedTuple(
                        f"unexpected {bytes([c])!r} between tuples", base_offset + pos
                    )
                pos += 1

            elif state is ScanState.INSIDE_TUPLE:
                c = data[pos]
                if c == _RPAREN:
                    state = ScanState.OUTSIDE_TUPLE
                    pos += 1
                    yield tokens
                elif c == _QUOTE:
                    state = ScanState.INSIDE_STRING
                    field_start = pos + 1
                    pos += 1
                elif c == _COMMA:
                    if at_separator:
                        raise MalformedTuple("empty value", base_offset + pos)
                    at_separator = True
                    pos += 1
                elif c in _WHITESPACE:
                    pos += 1
                else:
                    # Not consumed: the bare scan starts on this byte
                    state = ScanState.INSIDE_BARE
                    field_start = pos

            elif state is ScanState.INSIDE_BARE:
                pos = _BARE_BODY.match(data, pos).end()
                if pos >= end:
                    break
                raw = data[field_start:pos].strip()
                tokens.append(Token(TokenKind.BARE, raw, base_offset + field_start))
                at_separator = False
                state = ScanState.INSIDE_TUPLE

            elif state is ScanState.INSIDE_STRING:
                pos = _STRING_BODY.match(data, pos).end()
                if pos >= end:
                    break
                if data[pos] == _BACKSLASH:
                    state = ScanState.ESCAPE_PENDING
                elif pos + 1 < end and data[pos + 1] == _QUOTE:
                    # '' inside a string
                    pos += 1
                else:
                    tokens.append(
                        Token(TokenKind.STRING, data[field_start:pos], base_offset + field_start)
                    )
                    at_separator = False
                    state = ScanState.INSIDE_TUPLE
                pos += 1

            else:  # ESCAPE_PENDING
                state = ScanState.INSIDE_STRING
                pos += 1

        if state is ScanState.INSIDE_STRING or state is ScanState.ESCAPE_PENDING:
            raise MalformedTuple("unterminated string", base_offset + tuple_start)
        if state is not ScanState.OUTSIDE_TUPLE:
            raise MalformedTuple("unterminated tuple", base_offset + tuple_start)
