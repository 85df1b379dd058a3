"""
Error taxonomy for dump conversion.

- MalformedTuple: the tokenizer cannot find matching delimiters (dump corruption)
- InvalidInteger: non-numeric value in an integer column (dump corruption)
- EncodingError: a text column is not valid UTF-8 (skippable in permissive mode)
- MalformedTriple: a line of a pages-triples file cannot be parsed

I/O failures are plain OSError and are never wrapped.
"""

from __future__ import annotations


class DumpError(Exception):
    """Base class for conversion errors tied to a position in the input."""

    def __init__(self, message: str, offset: int | None = None, ordinal: int | None = None):
        self.message = message
        self.offset = offset
        self.ordinal = ordinal
        super().__init__(str(self))

    def __str__(self) -> str:
        where = []
        if self.offset is not None:
            where.append(f"byte offset {self.offset}")
        if self.ordinal is not None:
            where.append(f"record #{self.ordinal}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class MalformedTuple(DumpError):
    """A row-tuple has unbalanced quotes or parentheses, or too few values."""


class InvalidInteger(DumpError):
    """An integer column holds something that is not an integer."""


class EncodingError(DumpError):
    """A string column is not valid UTF-8."""


class MalformedTriple(DumpError):
    """A pages-triples line does not follow the triple grammar.

    For this error ``offset`` is the 1-based line number.
    """

    def __str__(self) -> str:
        if self.offset is not None:
            return f"{self.message} (line {self.offset})"
        return self.message
