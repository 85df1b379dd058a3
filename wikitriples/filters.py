"""
Semantic filters for decoded records, and the page index they share.

The page index is built by the page filter during a pages run, or rebuilt
from the pages-triples file before a links run. It is then frozen and only
read by the link filter.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from wikitriples.records import Link, Page
from wikitriples.triples import NAMESPACE, TITLE, Triple, read_triples

logger = logging.getLogger("wikitriples.filters")

MAIN_NAMESPACE = 0


# =============================================================================
# PAGE INDEX
# =============================================================================


class PageIndex:
    """Maps ``(namespace, title)`` to page id, and holds the set of page ids."""

    def __init__(self) -> None:
        self.ids: set[int] = set()
        self.by_title: dict[tuple[int, str], int] = {}
        self.frozen = False

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self.ids

    def add(self, page_id: int, namespace: int, title: str) -> bool:
        """Register a page. Returns False if the id is already known."""
        if self.frozen:
            raise RuntimeError("PageIndex is frozen")
        if page_id in self.ids:
            return False
        self.ids.add(page_id)
        key = (namespace, title)
        if key in self.by_title:
            logger.debug(f"Title {namespace}:{title} already maps to page {self.by_title[key]}")
        else:
            self.by_title[key] = page_id
        return True

    def resolve(self, namespace: int, title: str) -> int | None:
        return self.by_title.get((namespace, title))

    def freeze(self) -> PageIndex:
        self.frozen = True
        return self

    @classmethod
    def from_triples(cls, path: str | Path) -> PageIndex:
        """
        Rebuild the index from a pages-triples file.

        A page is registered once both its namespace and title triples have
        been read. Raises MalformedTriple on unparsable lines.
        """
        logger.info(f"Loading pages from {path}...")
        start = time.time()
        index = cls()
        pending: dict[int, dict[str, object]] = {}

        for triple in read_triples(path):
            if triple.predicate not in (NAMESPACE, TITLE):
                continue
            fields = pending.setdefault(triple.subject, {})
            fields[triple.predicate] = triple.obj
            if len(fields) == 2:
                del pending[triple.subject]
                index.add(triple.subject, fields[NAMESPACE], fields[TITLE])

        if pending:
            logger.warning(f"{len(pending):,} pages in {path} lack a title or namespace")

        logger.info(f"Done! {len(index):,} pages loaded in {time.time() - start:.1f}s")
        return index.freeze()


# =============================================================================
# FILTERS
# =============================================================================


class PageFilter:
    """
    Accepts pages (optionally main-namespace only), once per page id.

    Redirect pages are kept. On acceptance the page is registered in the
    index and its namespace and title triples are returned.
    """

    def __init__(self, index: PageIndex, encyclopedia_only: bool = False):
        self.index = index
        self.encyclopedia_only = encyclopedia_only
        self.accepted = 0
        self.rejected = 0
        self.duplicates = 0

    def __call__(self, page: Page) -> list[Triple]:
        if self.encyclopedia_only and page.namespace != MAIN_NAMESPACE:
            self.rejected += 1
            return []

        if not self.index.add(page.page_id, page.namespace, page.title):
            logger.debug(f"Skipping duplicate page id {page.page_id}")
            self.duplicates += 1
            return []

        self.accepted += 1
        return [
            Triple.namespace(page.page_id, page.namespace),
            Triple.title(page.page_id, page.title),
        ]


class LinkFilter:
    """Accepts links whose source and target pages are both in the index.

    Targets are matched on their literal (namespace, title); redirects are
    not followed.
    """

    def __init__(self, index: PageIndex):
        if not index.frozen:
            raise RuntimeError("LinkFilter needs a complete (frozen) PageIndex")
        self.index = index
        self.accepted = 0
        self.unknown_source = 0
        self.unknown_target = 0

    @property
    def dropped(self) -> int:
        return self.unknown_source + self.unknown_target

    def __call__(self, link: Link) -> Triple | None:
        if link.source_id not in self.index:
            self.unknown_source += 1
            return None

        target_id = self.index.resolve(link.target_namespace, link.target_title)
        if target_id is None:
            self.unknown_target += 1
            return None

        self.accepted += 1
        return Triple.linksto(link.source_id, target_id)
