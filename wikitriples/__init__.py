"""
wikitriples
===========

Streaming converter from MediaWiki SQL dumps to triples.

Modules:
- source: decompressing byte source for .sql/.gz/.bz2 dumps
- sql: insert statement locator and row-tuple tokenizer
- records: table layouts and record decoding
- filters: page index, page filter and link filter
- triples: triple formatting, parsing and the gzip writer
- pipeline: conversion driver and error policy
- config: run settings
- cli: command line entry point
"""

__version__ = "1.0.0"

from wikitriples.config import ConversionConfig, ErrorPolicy, Mode
from wikitriples.errors import (
    DumpError,
    EncodingError,
    InvalidInteger,
    MalformedTriple,
    MalformedTuple,
)
from wikitriples.filters import LinkFilter, PageFilter, PageIndex
from wikitriples.pipeline import (
    ConversionPipeline,
    ConversionSummary,
    RunResult,
    RunState,
    convert,
    convert_links,
    convert_pages,
)
from wikitriples.records import Link, Page, decode_link, decode_page
from wikitriples.sql import Statement, StatementLocator, Token, TupleTokenizer
from wikitriples.triples import Triple, TripleWriter, format_triple, parse_triple

__all__ = [
    # Config
    "ConversionConfig",
    "ErrorPolicy",
    "Mode",
    # Errors
    "DumpError",
    "EncodingError",
    "InvalidInteger",
    "MalformedTriple",
    "MalformedTuple",
    # Parsing
    "Statement",
    "StatementLocator",
    "Token",
    "TupleTokenizer",
    "Page",
    "Link",
    "decode_page",
    "decode_link",
    # Filtering
    "PageIndex",
    "PageFilter",
    "LinkFilter",
    # Output
    "Triple",
    "TripleWriter",
    "format_triple",
    "parse_triple",
    # Pipeline
    "ConversionPipeline",
    "ConversionSummary",
    "RunResult",
    "RunState",
    "convert",
    "convert_pages",
    "convert_links",
]
