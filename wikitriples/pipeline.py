"""
Conversion pipeline: SQL dump in, gzip-compressed triples out.

    ┌────────────┐   ┌───────────┐   ┌───────────┐   ┌─────────┐   ┌────────┐   ┌─────────┐
    │ Dump bytes │──▶│ Statement │──▶│   Tuple   │──▶│ Record  │──▶│ Page / │──▶│ Triple  │
    │  (gz/bz2)  │   │  locator  │   │ tokenizer │   │ decoder │   │  Link  │   │ writer  │
    └────────────┘   └───────────┘   └───────────┘   └─────────┘   │ filter │   └─────────┘
                                                                   └────────┘

Two modes:

- pages: filters page rows and builds the page index as a side effect
- links: rebuilds the page index from a pages-triples file first, then
  keeps the links whose two ends are in it

The run is single-threaded and streaming; only the current statement and
the page index are held in memory.

Error policy: an EncodingError halts the run in strict mode and is logged
and skipped in permissive mode. MalformedTuple, InvalidInteger and
MalformedTriple always halt. OSError propagates to the caller. A halted
run leaves the triples written so far in the output file.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, Iterator

from wikitriples.config import ConversionConfig, Mode
from wikitriples.errors import DumpError, EncodingError
from wikitriples.filters import LinkFilter, PageFilter, PageIndex
from wikitriples.records import decode_link, decode_page
from wikitriples.source import iter_lines, open_dump
from wikitriples.sql import StatementLocator, Token, TupleTokenizer
from wikitriples.triples import Triple, TripleWriter

logger = logging.getLogger("wikitriples.pipeline")


class RunState(str, Enum):
    RUNNING = "running"
    HALTED = "halted"
    COMPLETED = "completed"


@dataclass
class ConversionSummary:
    """Counters for one run."""

    mode: str
    statements: int = 0
    tuples: int = 0
    accepted: int = 0
    rejected: int = 0  # pages outside the main namespace in encyclopedia mode
    duplicates: int = 0
    encoding_errors: int = 0  # skipped in permissive mode
    unknown_source: int = 0
    unknown_target: int = 0
    pages_loaded: int = 0  # links mode: size of the rebuilt index
    triples_written: int = 0
    elapsed: float = 0.0

    @property
    def links_dropped(self) -> int:
        return self.unknown_source + self.unknown_target

    def summary(self) -> str:
        parts = [
            f"{self.tuples:,} tuples in {self.statements:,} statements",
            f"{self.accepted:,} accepted",
        ]
        if self.mode == Mode.PAGES.value:
            parts.append(f"{self.rejected:,} filtered out")
            parts.append(f"{self.duplicates:,} duplicates")
        else:
            parts.append(f"{self.links_dropped:,} dropped")
        if self.encoding_errors:
            parts.append(f"{self.encoding_errors:,} skipped (encoding)")
        parts.append(f"{self.triples_written:,} triples in {self.elapsed:.1f}s")
        return ", ".join(parts)


@dataclass
class RunResult:
    state: RunState
    summary: ConversionSummary
    error: DumpError | None = None

    @property
    def ok(self) -> bool:
        return self.state is RunState.COMPLETED


class ConversionPipeline:
    """Runs one conversion described by a ConversionConfig."""

    def __init__(self, config: ConversionConfig):
        self.config = config
        self.state = RunState.RUNNING
        self.summary = ConversionSummary(mode=config.mode.value)
        self.locator = StatementLocator(config.table)
        self.tokenizer = TupleTokenizer()
        self.index = PageIndex()
        self._writer: TripleWriter | None = None
        self._filter: PageFilter | LinkFilter | None = None

    def run(self) -> RunResult:
        start = time.time()
        try:
            accept = self._pages_step() if self.config.mode is Mode.PAGES else self._links_step()
            self._convert(accept)
        except DumpError as e:
            self.state = RunState.HALTED
            logger.error(f"❌ Conversion halted: {e}")
            return RunResult(self.state, self.summary, e)
        finally:
            self._finish_summary(start)

        self.state = RunState.COMPLETED
        logger.info(f"✅ {self.summary.summary()}")
        return RunResult(self.state, self.summary)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _pages_step(self) -> Callable[[list[Token], int], list[Triple]]:
        page_filter = PageFilter(self.index, encyclopedia_only=self.config.encyclopedia_only)
        self._filter = page_filter
        if self.config.encyclopedia_only:
            logger.info("Keeping encyclopedia pages only (namespace 0)")

        def accept(tokens: list[Token], ordinal: int) -> list[Triple]:
            return page_filter(decode_page(tokens, ordinal))

        return accept

    def _links_step(self) -> Callable[[list[Token], int], list[Triple]]:
        self.index = PageIndex.from_triples(self.config.pages_file)
        self.summary.pages_loaded = len(self.index)
        link_filter = LinkFilter(self.index)
        self._filter = link_filter

        def accept(tokens: list[Token], ordinal: int) -> list[Triple]:
            triple = link_filter(decode_link(tokens, ordinal))
            return [triple] if triple is not None else []

        return accept

    def _convert(self, accept: Callable[[list[Token], int], list[Triple]]) -> None:
        logger.info(f"Converting `{self.config.table}` rows from {self.config.infile}")
        with open_dump(self.config.infile) as dump, TripleWriter(
            self.config.outfile,
            compresslevel=self.config.compresslevel,
            progress=self.config.progress,
        ) as writer:
            self._writer = writer
            for ordinal, tokens in enumerate(self._tuples(dump), 1):
                self.summary.tuples = ordinal
                try:
                    triples = accept(tokens, ordinal)
                except EncodingError as e:
                    if self.config.strict:
                        raise
                    self.summary.encoding_errors += 1
                    logger.warning(f"⚠️  Skipping record: {e}")
                    continue
                writer.write_all(triples)

    def _tuples(self, dump: BinaryIO) -> Iterator[list[Token]]:
        for statement in self.locator.statements(iter_lines(dump)):
            yield from self.tokenizer.tuples(statement.values, statement.offset)

    def _finish_summary(self, start: float) -> None:
        summary = self.summary
        summary.statements = self.locator.statements_matched
        summary.elapsed = time.time() - start
        if self._writer is not None:
            summary.triples_written = self._writer.written

        flt = self._filter
        if isinstance(flt, PageFilter):
            summary.accepted = flt.accepted
            summary.rejected = flt.rejected
            summary.duplicates = flt.duplicates
        elif isinstance(flt, LinkFilter):
            summary.accepted = flt.accepted
            summary.unknown_source = flt.unknown_source
            summary.unknown_target = flt.unknown_target


def convert(config: ConversionConfig) -> RunResult:
    """Run the conversion described by ``config``."""
    return ConversionPipeline(config).run()


def convert_pages(config: ConversionConfig) -> RunResult:
    if config.mode is not Mode.PAGES:
        raise ValueError(f"expected a pages config, got {config.mode.value}")
    return convert(config)


def convert_links(config: ConversionConfig) -> RunResult:
    if config.mode is not Mode.LINKS:
        raise ValueError(f"expected a links config, got {config.mode.value}")
    return convert(config)
