"""Tests for the query integrity analyzers."""

import pytest

from querydoctor.analyzer.collections import QueryTrace
from querydoctor.analyzer.models import IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.rules import DivisionByZero, TransactionBoundary
from querydoctor.analyzer.rules.division_by_zero import code_only
from querydoctor.analyzer.rules.transaction_boundary import is_begin
from querydoctor.exceptions import ConfigurationError


def make_trace(*records) -> QueryTrace:
    return QueryTrace(
        r if isinstance(r, QueryRecord) else QueryRecord(sql=r, execution_ms=0.0)
        for r in records
    )


class TestDivisionByZero:

    def test_column_divisor(self):
        issues = DivisionByZero().analyze(make_trace("SELECT total / quantity FROM order_line"))

        assert len(issues) == 1
        issue = issues.first()
        assert issue.severity == Severity.CRITICAL
        assert issue.category == IssueCategory.INTEGRITY
        assert issue.subject == "total/quantity"
        assert issue.suggestion.context["safe_division"] == "total / NULLIF(quantity, 0)"

    def test_every_query_is_kept(self):
        trace = make_trace(
            "SELECT o.total / o.quantity FROM order_line o WHERE o.id = 1",
            "SELECT o.total / o.quantity AS unit FROM order_line o",
        )

        issue = DivisionByZero().analyze(trace).first()

        assert issue.subject == "o.total/o.quantity"
        assert len(issue.origin_queries) == 2

    @pytest.mark.parametrize("sql", [
        "SELECT total / NULLIF(quantity, 0) FROM order_line",
        "SELECT COALESCE(total / quantity, 0) FROM order_line",
        "SELECT CASE WHEN quantity > 0 THEN total / quantity END FROM order_line",
        "SELECT price / 100 FROM products",
        "SELECT * FROM files WHERE path = 'docs/readme'",
        "SELECT /* totals */ id FROM orders",
    ])
    def test_safe_queries(self, sql):
        assert DivisionByZero().analyze(make_trace(sql)).is_empty()

    def test_literal_zero_divisor(self):
        issue = DivisionByZero().analyze(make_trace("SELECT price / 0 FROM products")).first()

        assert issue.subject == "price/0"

    def test_code_only_blanks_literals_and_comments(self):
        assert "/" not in code_only("SELECT 'a/b' /* c/d */ FROM t")


class TestTransactionBoundary:

    def test_multiple_writes_in_one_transaction(self):
        trace = make_trace(
            "START TRANSACTION",
            "INSERT INTO orders (id) VALUES (1)",
            "UPDATE stock SET quantity = quantity - 1 WHERE id = 7",
            "COMMIT",
        )

        issues = TransactionBoundary().analyze(trace)

        assert len(issues) == 1
        issue = issues.first()
        assert issue.type == "transaction_multiple_flush"
        assert issue.severity == Severity.WARNING
        assert issue.subject == "tx:1"
        assert issue.metrics["writes"] == 2
        assert len(issue.origin_queries) == 2

    def test_single_write_is_fine(self):
        trace = make_trace("BEGIN", "INSERT INTO orders (id) VALUES (1)", "COMMIT")

        assert TransactionBoundary().analyze(trace).is_empty()

    def test_nested_transaction(self):
        trace = make_trace("BEGIN", "BEGIN", "SELECT 1", "COMMIT", "COMMIT")

        issues = TransactionBoundary().analyze(trace)

        assert len(issues) == 1
        issue = issues.first()
        assert issue.type == "transaction_nested"
        assert issue.severity == Severity.CRITICAL
        assert issue.title == "Nested Transaction Detected (Depth: 2)"
        assert issue.subject == "tx:2"

    def test_unclosed_transaction(self):
        trace = make_trace("BEGIN", "DELETE FROM sessions WHERE expired = 1")

        issue = TransactionBoundary().analyze(trace).first()

        assert issue.type == "transaction_unclosed"
        assert issue.severity == Severity.CRITICAL
        assert len(issue.origin_queries) == 2

    def test_long_transaction(self):
        trace = make_trace(
            "BEGIN",
            QueryRecord(sql="SELECT * FROM reports", execution_ms=1500.0),
            "COMMIT",
        )

        issue = TransactionBoundary().analyze(trace).first()

        assert issue.type == "transaction_too_long"
        assert issue.severity == Severity.WARNING
        assert issue.metrics["duration_ms"] == 1500.0

    def test_duration_threshold_is_strict(self):
        trace = make_trace(
            "BEGIN",
            QueryRecord(sql="SELECT * FROM reports", execution_ms=1000.0),
            "COMMIT",
        )

        assert TransactionBoundary().analyze(trace).is_empty()

    def test_rolled_back_transaction_is_not_too_long(self):
        trace = make_trace(
            "BEGIN",
            QueryRecord(sql="SELECT * FROM reports", execution_ms=1500.0),
            "ROLLBACK",
        )

        assert TransactionBoundary().analyze(trace).is_empty()

    def test_problems_of_separate_transactions_stay_separate(self):
        trace = make_trace(
            "BEGIN", "INSERT INTO a (id) VALUES (1)", "INSERT INTO a (id) VALUES (2)", "COMMIT",
            "BEGIN", "INSERT INTO b (id) VALUES (1)", "INSERT INTO b (id) VALUES (2)", "COMMIT",
        )

        issues = TransactionBoundary().analyze(trace)

        assert [i.subject for i in issues] == ["tx:1", "tx:2"]

    def test_writes_outside_transactions_are_ignored(self):
        trace = make_trace("INSERT INTO a (id) VALUES (1)", "INSERT INTO a (id) VALUES (2)")

        assert TransactionBoundary().analyze(trace).is_empty()

    @pytest.mark.parametrize("sql, expected", [
        ("START TRANSACTION", True),
        ("begin", True),
        ("SET XACT_ABORT ON; BEGIN TRANSACTION", True),
        ("COMMIT", False),
        ("SELECT 'BEGIN'", False),
    ])
    def test_is_begin(self, sql, expected):
        assert is_begin(sql) is expected

    def test_invalid_threshold(self):
        with pytest.raises(ConfigurationError):
            TransactionBoundary(config={"max_writes_per_transaction": 0})
