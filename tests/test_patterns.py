"""Tests for the structural shape detectors."""

import pytest

from querydoctor.analyzer.patterns import NPlusOnePattern, SqlPatternDetector


class TestNPlusOnePattern:
    """Foreign-key lookup shape."""

    def test_detects_foreign_key_lookup(self):
        detector = SqlPatternDetector()

        pattern = detector.detect_n_plus_one_pattern("SELECT * FROM comments WHERE post_id = ?")

        assert pattern == NPlusOnePattern("comments", "post_id")
        assert pattern.relation == "post"

    def test_literal_values_count_as_lookups(self):
        detector = SqlPatternDetector()

        assert detector.detect_n_plus_one_pattern("SELECT * FROM comments WHERE post_id = 12") is not None

    def test_ignores_primary_key_lookup(self):
        detector = SqlPatternDetector()

        assert detector.detect_n_plus_one_pattern("SELECT * FROM users WHERE id = ?") is None

    def test_ignores_joined_queries(self):
        detector = SqlPatternDetector()
        sql = "SELECT * FROM comments c JOIN posts p ON p.id = c.post_id WHERE c.post_id = ?"

        assert detector.detect_n_plus_one_pattern(sql) is None

    def test_ignores_column_comparisons(self):
        detector = SqlPatternDetector()

        assert detector.detect_n_plus_one_pattern("SELECT * FROM comments WHERE post_id = parent_id") is None

    def test_detects_foreign_key_join(self):
        detector = SqlPatternDetector()

        pattern = detector.detect_n_plus_one_from_join(
            "SELECT * FROM posts p JOIN users u ON u.id = p.user_id"
        )

        assert pattern == NPlusOnePattern("users", "user_id")


class TestLazyLoadingPattern:
    """Primary-key lookup shape."""

    def test_detects_primary_key_lookup(self):
        detector = SqlPatternDetector()

        table = detector.detect_lazy_loading_pattern(
            "SELECT t0.id, t0.name FROM customer t0 WHERE t0.id = ?"
        )

        assert table == "customer"

    def test_requires_a_single_condition(self):
        detector = SqlPatternDetector()

        assert detector.detect_lazy_loading_pattern(
            "SELECT * FROM customer WHERE id = ? AND active = 1"
        ) is None

    def test_ignores_non_selects(self):
        detector = SqlPatternDetector()

        assert detector.detect_lazy_loading_pattern("DELETE FROM customer WHERE id = ?") is None


class TestPartialCollectionLoad:

    def test_foreign_key_lookup_with_limit(self):
        detector = SqlPatternDetector()

        assert detector.detect_partial_collection_load(
            "SELECT * FROM comments WHERE post_id = ? LIMIT 5"
        )

    def test_without_limit(self):
        detector = SqlPatternDetector()

        assert not detector.detect_partial_collection_load("SELECT * FROM comments WHERE post_id = ?")


class TestStatementTables:

    @pytest.mark.parametrize("method, sql, table", [
        ("detect_update_query", "UPDATE users SET name = ? WHERE id = ?", "users"),
        ("detect_delete_query", "DELETE FROM sessions WHERE id = ?", "sessions"),
        ("detect_insert_query", "INSERT INTO logs (message) VALUES (?)", "logs"),
    ])
    def test_table_of_modification(self, method, sql, table):
        detector = SqlPatternDetector()

        assert getattr(detector, method)(sql) == table

    def test_wrong_statement_type_gives_none(self):
        detector = SqlPatternDetector()

        assert detector.detect_update_query("SELECT * FROM users") is None
        assert detector.is_select_query("SELECT * FROM users")
