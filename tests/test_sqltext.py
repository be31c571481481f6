"""Tests for the shared text helpers."""

from __future__ import annotations

from querylens import sqltext


class TestCounting:
    def test_overlapping_occurrences(self):
        assert sqltext.count_occurrences("aaaa", "aa") == 3

    def test_empty_needle(self):
        assert sqltext.count_occurrences("abc", "") == 0

    def test_word_patterns_are_reused(self):
        assert sqltext.word_pattern("orders") is sqltext.word_pattern("orders")
        assert sqltext.word_pattern.cache_info().maxsize is not None


class TestLocate:
    def test_locate_is_one_based(self):
        assert sqltext.locate("SELECT id\n  FROM t", "from") == (2, 3)

    def test_locate_missing(self):
        assert sqltext.locate("SELECT 1", "where") is None

    def test_line_of_offset(self):
        assert sqltext.line_of_offset("a\nb\nc", 4) == 3


class TestBalance:
    def test_parens_in_literals_are_ignored(self):
        assert sqltext.paren_balance("SELECT '(' FROM t") == (0, 0)

    def test_missing_and_extra(self):
        assert sqltext.paren_balance("SELECT (a FROM t") == (1, 0)
        assert sqltext.paren_balance("SELECT a) FROM t") == (0, 1)

    def test_comments_are_ignored(self):
        assert sqltext.paren_balance("SELECT a -- (\nFROM t /* ) */") == (0, 0)

    def test_find_closing_paren(self):
        sql = "f(a, (b), 'x)')"
        assert sqltext.find_closing_paren(sql, 1) == len(sql) - 1

    def test_quote_in_line_comment_is_not_open(self):
        assert sqltext.unclosed_quote("SELECT 'a' -- don't\nFROM t") is None

    def test_comment_marker_in_literal_is_not_a_comment(self):
        assert sqltext.open_context("SELECT '--'") is None
        assert sqltext.open_context("SELECT 1 -- note") == "--"

    def test_unclosed_quote(self):
        assert sqltext.unclosed_quote("SELECT 'abc") == "'"
        assert sqltext.unclosed_quote("SELECT \"a'b") == '"'
        assert sqltext.unclosed_quote("SELECT 'it''s'") is None

    def test_unclosed_block_comment(self):
        assert sqltext.open_context("SELECT 1 /* don't") == "/*"


class TestSplitting:
    def test_split_top_level(self):
        assert sqltext.split_top_level("a, COALESCE(b, c), 'x,y'") == ["a", "COALESCE(b, c)", "'x,y'"]

    def test_split_statements(self):
        assert sqltext.split_statements("SELECT 1; SELECT 2;") == ["SELECT 1;", "SELECT 2;"]

    def test_strip_comments(self):
        assert "note" not in sqltext.strip_comments("SELECT 1 -- note\nFROM t")


class TestIdentifiers:
    def test_backtick_name_is_one_part(self):
        assert sqltext.identifier_parts("`proj.ds.table`") == ["proj.ds.table"]

    def test_dotted_parts(self):
        assert sqltext.identifier_parts('db."schema".tbl') == ["db", "schema", "tbl"]

    def test_mask_literals_keeps_offsets(self):
        sql = "WHERE a = 'x.y' AND b"
        masked = sqltext.mask_literals(sql)

        assert len(masked) == len(sql)
        assert "x.y" not in masked
