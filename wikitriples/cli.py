"""
Command line entry point.

Usage:
    wikitriples pages [-e] enwiki-latest-page.sql.gz pages.nt.gz
    wikitriples links enwiki-latest-pagelinks.sql.gz pages.nt.gz links.nt.gz
    wikitriples --strict pages page.sql.gz pages.nt.gz

Exit status is 0 when the conversion completes (even if records were
skipped in permissive mode) and 1 when it halts or an I/O error occurs.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from rich.console import Console
from rich.table import Table

from wikitriples import __version__
from wikitriples.config import (
    COMPRESSLEVEL,
    LOG_LEVEL,
    STRICT,
    ConversionConfig,
    ErrorPolicy,
    Mode,
)
from wikitriples.pipeline import ConversionSummary, RunResult, convert

logger = logging.getLogger("wikitriples.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wikitriples",
        description="Extract pages and links from Wikipedia SQL dumps as triples",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=STRICT,
        help="Halt on the first record with invalid UTF-8 (default: report and skip it)",
    )
    parser.add_argument(
        "--compresslevel",
        type=int,
        default=COMPRESSLEVEL,
        choices=range(0, 10),
        metavar="0-9",
        help="gzip level of the output file",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not show the progress counter",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )

    subparsers = parser.add_subparsers(dest="mode", required=True)

    pages = subparsers.add_parser(
        Mode.PAGES.value,
        help="Extract pages from a dump of the `page` table",
    )
    pages.add_argument("infile", help="The page table dump (.sql, .sql.gz or .sql.bz2)")
    pages.add_argument("outfile", help="Where to write the page triples (gzipped)")
    pages.add_argument(
        "-e",
        "--encyclopedia",
        action="store_true",
        help="Keep only encyclopedia pages (namespace 0)",
    )

    links = subparsers.add_parser(
        Mode.LINKS.value,
        help="Extract links from a dump of the `pagelinks` table",
        description=(
            "Keep only the links whose two pages are in the pages triples. "
            "The pages are loaded into memory, which can take several GB."
        ),
    )
    links.add_argument("pagelinks", help="The pagelinks table dump")
    links.add_argument("pages", help="The page triples written by the `pages` command")
    links.add_argument("outfile", help="Where to write the link triples (gzipped)")

    return parser


def config_from_args(args: argparse.Namespace) -> ConversionConfig:
    policy = ErrorPolicy.STRICT if args.strict else ErrorPolicy.PERMISSIVE
    if args.mode == Mode.PAGES.value:
        return ConversionConfig(
            mode=Mode.PAGES,
            infile=args.infile,
            outfile=args.outfile,
            encyclopedia_only=args.encyclopedia,
            error_policy=policy,
            compresslevel=args.compresslevel,
            progress=not args.no_progress,
        )
    return ConversionConfig(
        mode=Mode.LINKS,
        infile=args.pagelinks,
        outfile=args.outfile,
        pages_file=args.pages,
        error_policy=policy,
        compresslevel=args.compresslevel,
        progress=not args.no_progress,
    )


def render_summary(console: Console, result: RunResult) -> None:
    summary: ConversionSummary = result.summary
    table = Table(title=f"{summary.mode} conversion: {result.state.value}")
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")

    rows = [
        ("Statements", summary.statements),
        ("Tuples", summary.tuples),
        ("Accepted", summary.accepted),
    ]
    if summary.mode == Mode.PAGES.value:
        rows += [("Filtered out", summary.rejected), ("Duplicate ids", summary.duplicates)]
    else:
        rows += [
            ("Pages loaded", summary.pages_loaded),
            ("Unknown source", summary.unknown_source),
            ("Unknown target", summary.unknown_target),
        ]
    rows += [
        ("Skipped (encoding)", summary.encoding_errors),
        ("Triples written", summary.triples_written),
    ]
    for name, value in rows:
        table.add_row(name, f"{value:,}")

    console.print(table)
    if result.error is not None:
        console.print(f"[bold red]Error:[/bold red] {result.error}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if config.error_policy is ErrorPolicy.PERMISSIVE:
        logger.warning("Records with invalid UTF-8 will be reported and skipped")

    console = Console(stderr=True)
    start = time.time()
    try:
        result = convert(config)
    except OSError as e:
        logger.error(f"❌ I/O error: {e}")
        logger.info(f"Elapsed: {time.time() - start:.1f}s")
        return 1

    render_summary(console, result)
    logger.info(f"Elapsed: {time.time() - start:.1f}s")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
