"""Tests for QueryTrace and IssueCollection."""

import pytest

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import BacktraceFrame, Issue, IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.normalizer import QueryNormalizer


def make_record(sql: str, execution_ms: float = 1.0, **kwargs) -> QueryRecord:
    return QueryRecord(sql=sql, execution_ms=execution_ms, **kwargs)


def make_issue(issue_type: str = "slow_query", severity: Severity = Severity.WARNING, **kwargs) -> Issue:
    return Issue(type=issue_type, title=f"{issue_type} {severity.value}", severity=severity, **kwargs)


class TestQueryTrace:
    """Immutable, ordered view over query records."""

    def test_filter_by_type(self):
        trace = QueryTrace([
            make_record("SELECT * FROM a"),
            make_record("UPDATE a SET x = 1"),
            make_record("SELECT * FROM b"),
        ])

        assert len(trace.only_selects()) == 2
        assert len(trace.only_updates()) == 1
        assert trace.count_by_type() == {"SELECT": 2, "UPDATE": 1}

    def test_filter_slow_is_strict(self):
        trace = QueryTrace([
            make_record("SELECT 1", 100.0),
            make_record("SELECT 2", 100.5),
        ])

        assert trace.filter_slow(100.0).sql_queries() == ["SELECT 2"]
        assert trace.filter_fast(100.0).sql_queries() == ["SELECT 1"]

    def test_transformations_return_new_traces(self):
        trace = QueryTrace([make_record("SELECT 1"), make_record("DELETE FROM a")])

        selects = trace.only_selects()

        assert len(trace) == 2
        assert selects is not trace

    def test_group_by_pattern_keeps_first_appearance_order(self):
        trace = QueryTrace([
            make_record("SELECT * FROM users WHERE id = 1"),
            make_record("SELECT * FROM orders WHERE id = 1"),
            make_record("SELECT * FROM users WHERE id = 2"),
        ])

        groups = trace.group_by_pattern(QueryNormalizer().normalize)

        assert list(groups) == [
            "SELECT * FROM USERS WHERE ID = ?",
            "SELECT * FROM ORDERS WHERE ID = ?",
        ]
        assert len(groups["SELECT * FROM USERS WHERE ID = ?"]) == 2

    def test_exclude_paths(self):
        vendor = (BacktraceFrame(file="C:\\app\\vendor\\orm\\Loader.php"),)
        app = (BacktraceFrame(file="/app/src/Controller.php"),)
        trace = QueryTrace([
            make_record("SELECT 1", backtrace=vendor),
            make_record("SELECT 2", backtrace=app),
            make_record("SELECT 3"),
        ])

        kept = trace.exclude_paths(["vendor/"])

        assert kept.sql_queries() == ["SELECT 2", "SELECT 3"]

    def test_aggregates(self):
        trace = QueryTrace([make_record("SELECT 1", 10.0), make_record("SELECT 2", 30.0)])

        assert trace.total_execution_time() == 40.0
        assert trace.average_execution_time() == 20.0
        assert trace.slowest().sql == "SELECT 2"
        assert trace.fastest().sql == "SELECT 1"

    def test_empty_trace(self):
        trace = QueryTrace()

        assert trace.is_empty()
        assert trace.first() is None
        assert trace.slowest() is None
        assert trace.average_execution_time() == 0.0

    def test_with_row_count_above_is_strict(self):
        trace = QueryTrace([
            make_record("SELECT 1", row_count=1000),
            make_record("SELECT 2", row_count=1001),
            make_record("SELECT 3"),
        ])

        assert trace.with_row_count_above(1000).sql_queries() == ["SELECT 2"]

    def test_from_dicts(self):
        trace = QueryTrace.from_dicts([{"sql": "SELECT 1", "executionMS": 5}])

        assert trace[0].execution_ms == 5.0


class TestIssueCollection:
    """Filtering, grouping and lazy materialization."""

    def test_generator_is_consumed_once(self):
        calls = []

        def generate():
            calls.append(1)
            yield make_issue()

        issues = IssueCollection.from_generator(generate)

        assert calls == []
        assert len(issues) == 1
        assert len(issues) == 1
        assert calls == [1]

    def test_count_by_severity_omits_zero(self):
        issues = IssueCollection([
            make_issue(severity=Severity.INFO),
            make_issue(severity=Severity.CRITICAL),
            make_issue(severity=Severity.INFO),
        ])

        assert issues.count_by_severity() == {"critical": 1, "info": 2}

    def test_sort_by_severity_is_stable(self):
        first = make_issue("a", Severity.WARNING)
        second = make_issue("b", Severity.WARNING)
        critical = make_issue("c", Severity.CRITICAL)

        ordered = IssueCollection([first, second, critical]).sort_by_severity().to_list()

        assert ordered == [critical, first, second]

    def test_filters(self):
        issues = IssueCollection([
            make_issue("slow_query", Severity.CRITICAL),
            make_issue("sql_injection", Severity.CRITICAL, category=IssueCategory.SECURITY),
            make_issue("find_all", Severity.INFO),
        ])

        assert len(issues.only_critical()) == 2
        assert len(issues.filter_by_severity("info")) == 1
        assert issues.filter_by_category("security").first().type == "sql_injection"
        assert issues.unique_types() == ["slow_query", "sql_injection", "find_all"]
        assert issues.has_critical()

    def test_unknown_severity_string_raises(self):
        with pytest.raises(ValueError):
            IssueCollection([make_issue()]).filter_by_severity("bogus")

    def test_group_by_severity_orders_most_severe_first(self):
        issues = IssueCollection([
            make_issue(severity=Severity.INFO),
            make_issue(severity=Severity.CRITICAL),
        ])

        assert list(issues.group_by_severity()) == [Severity.CRITICAL, Severity.INFO]

    def test_most_severe(self):
        warning = make_issue(severity=Severity.WARNING)
        critical = make_issue(severity=Severity.CRITICAL)

        assert IssueCollection([warning, critical]).most_severe() is critical
        assert IssueCollection.empty().most_severe() is None

    def test_merge(self):
        merged = IssueCollection([make_issue()]).merge([make_issue("find_all")])

        assert merged.count_by_type() == {"slow_query": 1, "find_all": 1}
