"""Tests for the insert statement locator and the tuple tokenizer."""
from __future__ import annotations

import io

import pytest

from wikitriples.errors import MalformedTuple
from wikitriples.source import iter_lines
from wikitriples.sql import StatementLocator, TokenKind, TupleTokenizer


def _statements(data: bytes, table: str = "page"):
    locator = StatementLocator(table)
    return locator, list(locator.statements(iter_lines(io.BytesIO(data))))


def _tuples(data: bytes, base_offset: int = 0):
    return list(TupleTokenizer().tuples(data, base_offset))


class TestStatementLocator:
    """Test picking the target table's inserts out of a dump."""

    def test_skips_ddl_comments_and_other_tables(self):
        """Only inserts into the target table are yielded."""
        data = (
            b"-- MySQL dump\n"
            b"CREATE TABLE `page` (\n  `page_id` int(8)\n);\n"
            b"INSERT INTO `pagelinks` VALUES (1,0,'A',0);\n"
            b"INSERT INTO `page` VALUES (1,0,'A',0);\n"
            b"UNLOCK TABLES;\n"
        )
        locator, statements = _statements(data)

        assert len(statements) == 1
        assert statements[0].table == "page"
        assert statements[0].values == b"(1,0,'A',0);\n"
        assert locator.statements_seen == 2
        assert locator.statements_matched == 1

    def test_statement_offset_points_at_values(self):
        """The statement offset is the absolute position of its value list."""
        data = b"-- header\nINSERT INTO `page` VALUES (7,0,'X',0);\n"
        _, statements = _statements(data)

        offset = statements[0].offset
        assert data[offset:].startswith(b"(7,0,'X',0);")

    def test_absent_table_yields_nothing(self):
        """A dump without the target table is not an error."""
        data = b"INSERT INTO `redirect` VALUES (1,0,'A','','');\n"
        locator, statements = _statements(data)

        assert statements == []
        assert locator.statements_matched == 0

    def test_statement_spanning_lines(self):
        """A statement without a terminating ';' continues on the next lines."""
        data = (
            b"INSERT INTO `page` VALUES (1,0,'A',0),\n"
            b"(2,0,'B',0),\n"
            b"(3,0,'C',0);\n"
            b"INSERT INTO `page` VALUES (4,0,'D',0);\n"
        )
        _, statements = _statements(data)

        assert len(statements) == 2
        rows = _tuples(statements[0].values)
        assert [row[0].raw for row in rows] == [b"1", b"2", b"3"]

    def test_other_table_spanning_lines_is_skipped(self):
        """Continuation lines of a foreign statement are not mistaken for ours."""
        data = (
            b"INSERT INTO `pagelinks` VALUES (1,0,'A',0),\n"
            b"(2,0,'B',0);\n"
            b"INSERT INTO `page` VALUES (5,0,'E',0);\n"
        )
        _, statements = _statements(data)

        assert len(statements) == 1
        assert statements[0].values.startswith(b"(5,")

    def test_template_variants(self):
        """Backticks are optional and keywords are case-insensitive."""
        data = b"insert into page values (1,0,'A',0);\n"
        _, statements = _statements(data)

        assert len(statements) == 1

    def test_prefix_table_name_does_not_match(self):
        """`page` must not match inserts into `page_props`."""
        data = b"INSERT INTO `page_props` VALUES (1,'wikibase_item','Q1',NULL);\n"
        _, statements = _statements(data)

        assert statements == []


class TestTupleTokenizer:
    """Test the row-tuple scanner."""

    def test_basic_tuples(self):
        """Bare and quoted values are split per tuple."""
        rows = _tuples(b"(1,'a',NULL),(2,'b',0);")

        assert len(rows) == 2
        assert [t.raw for t in rows[0]] == [b"1", b"a", b"NULL"]
        assert [t.kind for t in rows[0]] == [TokenKind.BARE, TokenKind.STRING, TokenKind.BARE]
        assert rows[0][2].is_null
        assert not rows[1][2].is_null

    def test_escaped_quote_does_not_end_string(self):
        """A backslash-escaped quote stays inside the string."""
        rows = _tuples(b"(40,0,'Conan_O\\'Brien',0);")

        assert rows[0][2].raw == b"Conan_O\\'Brien"
        assert len(rows[0]) == 4

    def test_escaped_backslash_before_closing_quote(self):
        """An escaped backslash does not escape the closing quote."""
        rows = _tuples(b"(1,'a\\\\',2);")

        assert rows[0][1].raw == b"a\\\\"
        assert rows[0][2].raw == b"2"

    def test_doubled_quote(self):
        """Two quotes in a row stand for a literal quote."""
        rows = _tuples(b"(1,'It''s',2);")

        assert rows[0][1].raw == b"It''s"
        assert len(rows[0]) == 3

    def test_empty_string(self):
        rows = _tuples(b"(1,'',2);")

        assert rows[0][1].kind is TokenKind.STRING
        assert rows[0][1].raw == b""

    def test_delimiters_inside_string(self):
        """Commas, parentheses and semicolons inside strings are data."""
        rows = _tuples(b"(1,'a,b);(c',3);")

        assert len(rows) == 1
        assert rows[0][1].raw == b"a,b);(c"

    def test_trailing_comma_tolerated(self):
        rows = _tuples(b"(1,2,);")

        assert [t.raw for t in rows[0]] == [b"1", b"2"]

    @pytest.mark.parametrize(
        "data, comma",
        [
            (b"(1,,'A',0);", 3),
            (b"(1, ,'A',0);", 4),
            (b"(,1,'A',0);", 1),
            (b"(1,'A',,);", 7),
        ],
    )
    def test_empty_value(self, data: bytes, comma: int):
        """A missing value is an error, not a silent column shift."""
        with pytest.raises(MalformedTuple, match="empty value") as exc_info:
            _tuples(data, base_offset=20)

        assert exc_info.value.offset == 20 + comma

    def test_empty_string_is_a_value(self):
        rows = _tuples(b"(1,'',0);")

        assert [t.raw for t in rows[0]] == [b"1", b"", b"0"]

    def test_whitespace_between_values(self):
        rows = _tuples(b"(1, 'a' , NULL ),\n (2,'b',0);")

        assert [t.raw for t in rows[0]] == [b"1", b"a", b"NULL"]
        assert len(rows) == 2

    def test_token_offsets(self):
        """Token offsets are absolute byte offsets."""
        rows = _tuples(b"(7,'x')", base_offset=100)

        assert rows[0][0].offset == 101
        assert rows[0][1].offset == 104

    def test_stops_at_semicolon(self):
        rows = _tuples(b"(1);(2);")

        assert len(rows) == 1

    def test_unterminated_string(self):
        """An unterminated string at end of input is a MalformedTuple."""
        with pytest.raises(MalformedTuple, match="unterminated string") as exc_info:
            _tuples(b"(1,0,'abc", base_offset=10)

        assert exc_info.value.offset == 10

    def test_unterminated_escape(self):
        with pytest.raises(MalformedTuple, match="unterminated string"):
            _tuples(b"(1,'abc\\")

    def test_unterminated_tuple(self):
        with pytest.raises(MalformedTuple, match="unterminated tuple"):
            _tuples(b"(1,2),(3,4")

    def test_garbage_between_tuples(self):
        with pytest.raises(MalformedTuple, match="between tuples"):
            _tuples(b"(1,2)x(3,4);")

    def test_earlier_tuples_are_yielded_before_failure(self):
        """The scan is lazy: good tuples come out before the error is raised."""
        tuples = TupleTokenizer().tuples(b"(1,2),(3,'4")

        assert [t.raw for t in next(tuples)] == [b"1", b"2"]
        with pytest.raises(MalformedTuple):
            next(tuples)

    def test_restartable_per_statement(self):
        tokenizer = TupleTokenizer()
        data = b"(1,'a'),(2,'b');"

        first = list(tokenizer.tuples(data))
        second = list(tokenizer.tuples(data))

        assert first == second
