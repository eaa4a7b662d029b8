"""Tests for query normalization (signatures used for grouping)."""

import pytest

from querydoctor.analyzer.cache import ContentCache
from querydoctor.analyzer.normalizer import QueryNormalizer


class TestQueryNormalizer:
    """Signature contract: literals erased, structure kept."""

    def test_queries_differing_only_in_literals_share_signature(self):
        """Two lookups with different ids should normalize identically."""
        normalizer = QueryNormalizer()

        assert normalizer.normalize("SELECT * FROM users WHERE id = 42") == normalizer.normalize(
            "SELECT * FROM users WHERE id = 7"
        )

    def test_string_literal_becomes_placeholder(self):
        """String literals are replaced by ? and the text is uppercased."""
        normalizer = QueryNormalizer()

        assert (
            normalizer.normalize("SELECT * FROM users WHERE email = 'a@b.c'")
            == "SELECT * FROM USERS WHERE EMAIL = ?"
        )

    @pytest.mark.parametrize("value", ["?", ":id", "5", "'five'"])
    def test_placeholders_and_literals_are_equivalent(self, value):
        """Bound placeholders and inline literals produce the same signature."""
        normalizer = QueryNormalizer()

        assert (
            normalizer.normalize(f"SELECT name FROM users WHERE id = {value}")
            == "SELECT NAME FROM USERS WHERE ID = ?"
        )

    def test_in_lists_collapse_regardless_of_length(self):
        """IN lists of any length collapse to IN (?)."""
        normalizer = QueryNormalizer()

        one = normalizer.normalize("SELECT * FROM t WHERE id IN (1)")
        many = normalizer.normalize("SELECT * FROM t WHERE id IN (1, 2, 3)")

        assert one == many == "SELECT * FROM T WHERE ID IN (?)"

    def test_identifier_digits_are_kept(self):
        """ORM aliases like t0_ must not lose their digits."""
        normalizer = QueryNormalizer()

        signature = normalizer.normalize("SELECT t0_.id FROM users t0_ WHERE t0_.id = 3")

        assert signature == "SELECT T0_.ID FROM USERS T0_ WHERE T0_.ID = ?"

    def test_whitespace_and_case_are_ignored(self):
        normalizer = QueryNormalizer()

        assert normalizer.normalize("select  *\n  from Users") == normalizer.normalize(
            "SELECT * FROM users"
        )

    def test_comments_are_ignored(self):
        normalizer = QueryNormalizer()

        assert normalizer.normalize("SELECT * FROM t /* hint */ WHERE id = 1") == normalizer.normalize(
            "SELECT * FROM t WHERE id = 2"
        )

    @pytest.mark.parametrize("sql", [
        "SELECT * FROM users WHERE id = 42",
        "SELECT * FROM users WHERE email = 'a@b.c' AND age > 30",
        "SELECT * FROM t WHERE id IN (1, 2, 3)",
        "UPDATE users SET name = 'x' WHERE id = :id",
        "SELECT * FROM t WHERE a = 'unterminated",
    ])
    def test_normalization_is_idempotent(self, sql):
        """normalize(normalize(sql)) == normalize(sql)."""
        normalizer = QueryNormalizer()

        once = normalizer.normalize(sql)

        assert normalizer.normalize(once) == once

    @pytest.mark.parametrize("sql", ["", "   ", "\n\t"])
    def test_blank_input_gives_empty_signature(self, sql):
        assert QueryNormalizer().normalize(sql) == ""

    def test_unlexable_sql_uses_regex_pass(self):
        """An unterminated quote makes the lexer fail; the regex pass takes over."""
        normalizer = QueryNormalizer()
        sql = "SELECT * FROM t WHERE a = 'unterminated"

        assert normalizer.normalize(sql) == normalizer.normalize_with_regex(sql)

    def test_regex_pass_follows_the_same_contract(self):
        normalizer = QueryNormalizer()

        signature = normalizer.normalize_with_regex(
            "SELECT * FROM users WHERE id = 42 AND name = 'x' AND role IN (1, 2)"
        )

        assert signature == "SELECT * FROM USERS WHERE ID = ? AND NAME = ? AND ROLE IN (?)"

    def test_results_are_memoized_in_the_cache(self):
        cache = ContentCache(capacity=10)
        normalizer = QueryNormalizer(cache=cache)
        sql = "SELECT * FROM users WHERE id = 1"

        normalizer.normalize(sql)
        normalizer.normalize(sql)

        assert sql in cache
        assert cache.stats()["hits"] == 1

    @pytest.mark.parametrize("sql", [
        "SELECT * FROM items WHERE ratio > .5",
        "SELECT * FROM items WHERE price = 1.5e3",
        "SELECT * FROM items WHERE delta = -3",
        "SELECT * FROM users WHERE active = TRUE AND deleted = false",
    ])
    def test_lexer_and_regex_passes_agree(self, sql):
        """Should give the same signature for the same SQL on both passes."""
        normalizer = QueryNormalizer()

        assert normalizer.normalize_with_lexer(sql) == normalizer.normalize_with_regex(sql)
        assert "?" in normalizer.normalize_with_regex(sql)

    def test_boolean_literals_are_values(self):
        normalizer = QueryNormalizer()

        assert normalizer.normalize("SELECT * FROM users WHERE active = TRUE") == (
            normalizer.normalize("SELECT * FROM users WHERE active = false")
        )
