"""Pytest fixtures for dump conversion tests."""
from __future__ import annotations

import gzip
from pathlib import Path
from typing import Callable

import pytest

from wikitriples.config import ConversionConfig, ErrorPolicy, Mode

PAGE_HEADER = b"""-- MySQL dump 10.19  Distrib 10.3.38-MariaDB, for debian-linux-gnu (x86_64)
--
-- Host: 10.64.32.82    Database: enwiki
-- ------------------------------------------------------

DROP TABLE IF EXISTS `page`;
CREATE TABLE `page` (
  `page_id` int(8) unsigned NOT NULL AUTO_INCREMENT,
  `page_namespace` int(11) NOT NULL DEFAULT 0,
  `page_title` varbinary(255) NOT NULL DEFAULT '',
  `page_is_redirect` tinyint(1) unsigned NOT NULL DEFAULT 0,
  PRIMARY KEY (`page_id`)
) ENGINE=InnoDB AUTO_INCREMENT=75432104 DEFAULT CHARSET=binary;

/*!40000 ALTER TABLE `page` DISABLE KEYS */;
"""

PAGE_INSERTS = [
    b"INSERT INTO `page` VALUES "
    b"(1,0,'AccessibleComputing',1,0,0.856,'20240101000000','20240101000000',1219062925,111,'wikitext',NULL),"
    b"(3,0,'Antoine_Meillet',0,0,0,'','20200101000000','','wikitext',NULL),"
    b"(12,0,'Anarchism',0,0,0.786,'20240101000000','20240101000000',1234,100,'wikitext',NULL),"
    b"(25,1,'Anarchism',0,0,0.1,'20240101000000','20240101000000',1235,10,'wikitext',NULL);\n",
    b"INSERT INTO `page` VALUES "
    b"(39,0,'Albedo',0,0,0.5,'20240101000000','20240101000000',1236,50,'wikitext',NULL),"
    b"(40,0,'Conan_O\\'Brien',0,0,0.5,'20240101000000','20240101000000',1237,50,'wikitext',NULL),"
    b"(3,0,'Antoine_Meillet',0,0,0,'','20200101000000','','wikitext',NULL);\n",
]

PAGE_FOOTER = b"/*!40000 ALTER TABLE `page` ENABLE KEYS */;\nUNLOCK TABLES;\n"

PAGELINKS_INSERTS = [
    b"INSERT INTO `pagelinks` VALUES "
    b"(1,0,'Anarchism',0),(3,0,'Albedo',0),(12,0,'Missing_page',0),"
    b"(99,0,'Albedo',0),(12,1,'Anarchism',0),(39,0,'Conan_O\\'Brien',0);\n",
]


@pytest.fixture
def make_dump(tmp_path: Path) -> Callable[..., Path]:
    """Write gzipped dump content to a file under tmp_path."""

    def _make(name: str, *chunks: bytes) -> Path:
        path = tmp_path / name
        with gzip.open(path, "wb") as f:
            for chunk in chunks:
                f.write(chunk)
        return path

    return _make


@pytest.fixture
def page_dump(make_dump) -> Path:
    return make_dump("page.sql.gz", PAGE_HEADER, *PAGE_INSERTS, PAGE_FOOTER)


@pytest.fixture
def pagelinks_dump(make_dump) -> Path:
    return make_dump("pagelinks.sql.gz", *PAGELINKS_INSERTS)


@pytest.fixture
def pages_config(page_dump: Path, tmp_path: Path) -> ConversionConfig:
    return ConversionConfig(
        mode=Mode.PAGES,
        infile=page_dump,
        outfile=tmp_path / "pages.nt.gz",
        encyclopedia_only=True,
        error_policy=ErrorPolicy.PERMISSIVE,
        progress=False,
    )


def read_lines(path: Path) -> list[str]:
    with gzip.open(path, "rt", encoding="utf-8") as f:
        return [line.rstrip("\n") for line in f]


@pytest.fixture
def output_lines() -> Callable[[Path], list[str]]:
    return read_lines
