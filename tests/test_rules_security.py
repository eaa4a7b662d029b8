"""Tests for the injection and query builder analyzers."""

import pytest

from querydoctor.analyzer.collections import QueryTrace
from querydoctor.analyzer.models import IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.rules import DqlInjection, QueryBuilderBestPractices, SqlInjection
from querydoctor.analyzer.rules.base import RuleContext
from querydoctor.analyzer.rules.sql_injection import runtime_injection_patterns
from querydoctor.analyzer.sql_ast import SQLStructureExtractor


def make_trace(*records) -> QueryTrace:
    return QueryTrace(
        r if isinstance(r, QueryRecord) else QueryRecord(sql=r)
        for r in records
    )


@pytest.fixture(params=[False, True], ids=["tokens", "grammar"])
def context(request):
    """Every analyzer test runs against the token extractor and, when pglast is installed, the grammar."""
    if request.param:
        pytest.importorskip("pglast")
    return RuleContext(extractor=SQLStructureExtractor(use_grammar=request.param))


class TestSqlInjection:
    """Unparameterized statements carrying injection payloads."""

    def test_quote_closing_tautology(self, context):
        trace = make_trace("SELECT * FROM users WHERE name = '' OR '1'='1'")

        issue = SqlInjection(context=context).analyze(trace).first()

        assert issue.severity == Severity.CRITICAL
        assert issue.category == IssueCategory.SECURITY
        assert "OR tautology" in issue.suggestion.context["patterns"]
        assert issue.metrics["pattern_count"] >= 1

    def test_bound_parameters_are_trusted(self, context):
        """Should trust statements that carry bound parameters."""
        record = QueryRecord(sql="SELECT * FROM users WHERE name = '' OR '1'='1'", params=("x",))

        assert SqlInjection(context=context).analyze(make_trace(record)).is_empty()

    def test_time_based_payload(self, context):
        issue = SqlInjection(context=context).analyze(make_trace("SELECT SLEEP(5)")).first()

        assert issue.suggestion.context["patterns"] == ["SLEEP()"]

    def test_non_dml_is_ignored(self, context):
        assert SqlInjection(context=context).analyze(make_trace("SHOW TABLES -- all")).is_empty()

    def test_clean_query(self, context):
        assert SqlInjection(context=context).analyze(make_trace("SELECT * FROM users WHERE id = 1")).is_empty()

    def test_runtime_patterns_in_table_order(self):
        sql = "SELECT * FROM users WHERE id = 1 UNION SELECT password FROM admins; DROP TABLE users --"

        assert runtime_injection_patterns(sql) == ["line comment", "UNION SELECT", "stacked DROP TABLE"]


class TestDqlInjection:
    """Risk scores aggregated into at most two issues."""

    def test_critical_and_warning_groups(self, context):
        trace = make_trace(
            "SELECT * FROM users WHERE name = '1 OR 1=1'",
            "SELECT * FROM users WHERE email = 'john@example.com'",
            "SELECT * FROM users WHERE status = 'active'",
        )

        issues = DqlInjection(context=context).analyze(trace).to_list()

        assert [i.severity for i in issues] == [Severity.CRITICAL, Severity.WARNING]
        critical, warning = issues
        assert critical.subject == "risk:critical"
        assert critical.title == "Security Vulnerability: 1 queries with SQL injection risks"
        assert critical.metrics["max_risk"] == 6
        assert warning.subject == "risk:warning"
        assert warning.origin_queries == ("SELECT * FROM users WHERE email = 'john@example.com'",)

    def test_clean_trace(self, context):
        trace = make_trace(
            "SELECT * FROM users WHERE id = ?",
            "SELECT * FROM users WHERE status = 'active'",
        )

        assert DqlInjection(context=context).analyze(trace).is_empty()

    def test_every_risky_query_is_kept(self, context):
        trace = make_trace(*(
            f"SELECT * FROM users WHERE name = '{i} OR 1=1'" for i in range(15)
        ))

        issue = DqlInjection(context=context).analyze(trace).first()

        assert issue.metrics["count"] == 15
        assert len(issue.origin_queries) == 15


class TestQueryBuilderBestPractices:

    def analyze(self, context, *records):
        return QueryBuilderBestPractices(context=context).analyze(make_trace(*records))

    def test_incorrect_null_comparison(self, context):
        issue = self.analyze(context, "SELECT * FROM users WHERE deleted_at = NULL").first()

        assert issue.type == "query_builder_incorrect_null"
        assert issue.severity == Severity.CRITICAL
        assert issue.suggestion.context["fields"] == ["deleted_at = NULL"]
        assert "IS NULL" in issue.suggestion.context["fix"]

    def test_empty_in(self, context):
        issues = self.analyze(context, "SELECT * FROM users WHERE id IN ()")

        assert issues.unique_types() == ["query_builder_empty_in"]

    def test_missing_named_parameter(self, context):
        issue = self.analyze(context, "SELECT * FROM users WHERE email = :email").first()

        assert issue.type == "query_builder_missing_params"
        assert issue.title == "Missing Query Parameters: email"

    def test_bound_named_parameter(self, context):
        record = QueryRecord(sql="SELECT * FROM users WHERE email = :email", params={"email": "a@b.c"})

        assert self.analyze(context, record).is_empty()

    def test_positional_parameters_skip_the_check(self, context):
        """Should not check placeholders when values were bound by position."""
        record = QueryRecord(sql="SELECT * FROM users WHERE email = :email", params=("a@b.c",))

        assert self.analyze(context, record).is_empty()

    def test_unescaped_like(self, context):
        issue = self.analyze(context, "SELECT * FROM products WHERE name LIKE '%phone%'").first()

        assert issue.type == "query_builder_unescaped_like"
        assert issue.severity == Severity.WARNING
        assert issue.category == IssueCategory.INTEGRITY

    def test_same_signature_reported_once(self, context):
        """Should report each problem once per query signature."""
        issues = self.analyze(
            context,
            "SELECT * FROM users WHERE deleted_at = NULL",
            "SELECT * FROM users WHERE deleted_at = NULL",
        )

        assert len(issues) == 1

    def test_same_signature_keeps_every_query(self, context):
        issues = self.analyze(
            context,
            "SELECT * FROM users WHERE deleted_at = NULL AND id = 1",
            "SELECT * FROM users WHERE deleted_at = NULL AND id = 2",
        )

        assert len(issues) == 1
        assert len(issues.first().origin_queries) == 2

    def test_postgres_casts_are_not_placeholders(self, context):
        assert self.analyze(context, "SELECT created_at::date FROM users").is_empty()
