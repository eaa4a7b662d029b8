"""Tests for the input and output models."""

import pytest
from pydantic import ValidationError

from querydoctor.analyzer.models import (
    AssociationType,
    ExplainSummary,
    Issue,
    MappingRecord,
    QueryRecord,
    Severity,
    Suggestion,
)


class TestQueryRecord:

    @pytest.mark.parametrize("sql, query_type", [
        ("SELECT * FROM users", "SELECT"),
        ("  (SELECT 1)", "SELECT"),
        ("WITH recent AS (SELECT * FROM orders) SELECT * FROM recent", "SELECT"),
        ("update users set name = ?", "UPDATE"),
        ("INSERT INTO logs VALUES (?)", "INSERT"),
        ("DELETE FROM sessions", "DELETE"),
        ("SHOW TABLES", "OTHER"),
    ])
    def test_query_type(self, sql, query_type):
        assert QueryRecord(sql=sql).query_type == query_type

    def test_blank_sql_is_rejected(self):
        with pytest.raises(ValidationError):
            QueryRecord(sql="   ")

    def test_negative_execution_time_is_rejected(self):
        with pytest.raises(ValidationError):
            QueryRecord(sql="SELECT 1", execution_ms=-1)

    def test_is_slow_is_strict(self):
        record = QueryRecord(sql="SELECT 1", execution_ms=100.0)

        assert not record.is_slow(100.0)
        assert record.is_slow(99.9)
        with pytest.raises(ValueError):
            record.is_slow(0)

    def test_named_params_keep_their_names(self):
        record = QueryRecord(sql="SELECT * FROM t WHERE id = :id", params={"id": 5})

        assert record.params == (5,)
        assert record.param_names == ("id",)
        assert record.to_dict()["params"] == {"id": 5}

    def test_from_dict_converts_seconds(self):
        """An executionMS strictly between 0 and 1 is a duration in seconds."""
        record = QueryRecord.from_dict({"sql": "SELECT 1", "executionMS": 0.25, "rowCount": 3})

        assert record.execution_ms == pytest.approx(250.0)
        assert record.row_count == 3

    def test_from_dict_keeps_milliseconds(self):
        record = QueryRecord.from_dict({"sql": "SELECT 1", "executionMS": 12.5})

        assert record.execution_ms == 12.5

    def test_from_dict_reads_backtrace(self):
        record = QueryRecord.from_dict({
            "sql": "SELECT 1",
            "backtrace": [{"file": "src/Repo.php", "line": 12, "function": "getItems", "class": "Repo"}],
        })

        assert record.backtrace is not None
        assert record.backtrace[0].class_name == "Repo"
        assert record.backtrace[0].to_dict()["class"] == "Repo"


class TestExplainSummary:

    @pytest.mark.parametrize("access_type, full_scan", [
        ("ALL", True),
        ("all", True),
        ("Seq Scan", True),
        ("ref", False),
        ("Index Scan", False),
    ])
    def test_full_scan_by_access_type(self, access_type, full_scan):
        assert ExplainSummary(access_type=access_type).is_full_scan is full_scan

    def test_no_key_with_rows_is_full_scan(self):
        assert ExplainSummary(rows_examined=5000).is_full_scan
        assert not ExplainSummary(rows_examined=5000, key="idx_status").is_full_scan
        assert not ExplainSummary().is_full_scan


class TestIssue:

    def test_sort_key_puts_critical_first(self):
        info = Issue(type="a", title="A", severity=Severity.INFO)
        critical = Issue(type="z", title="Z", severity=Severity.CRITICAL)

        assert sorted([info, critical]) == [critical, info]

    def test_to_dict(self):
        issue = Issue(
            type="slow_query",
            title="Slow Query: 150.00ms",
            severity=Severity.CRITICAL,
            suggestion=Suggestion(template_key="Performance/slow_query", context={"execution_ms": 150}),
            origin_queries=("SELECT * FROM big",),
        )

        data = issue.to_dict()

        assert data["severity"] == "critical"
        assert data["category"] == "performance"
        assert data["queries"] == ["SELECT * FROM big"]
        assert data["suggestion"] == {
            "templateKey": "Performance/slow_query",
            "context": {"execution_ms": 150},
        }

    def test_issues_are_frozen(self):
        issue = Issue(type="a", title="A", severity=Severity.INFO)

        with pytest.raises(ValidationError):
            issue.title = "B"


class TestMappingRecord:

    def test_cascade_is_lowercased(self):
        mapping = MappingRecord(entity="App\\Entity\\Order", field="items", cascade=["Persist", "REMOVE"])

        assert mapping.cascade == ("persist", "remove")

    def test_short_names(self):
        mapping = MappingRecord(
            entity="App\\Entity\\Order",
            field="customer",
            association_type="many_to_one",
            target_entity="app.models.Customer",
        )

        assert mapping.short_entity == "Order"
        assert mapping.short_target == "Customer"
        assert mapping.subject == "Order.customer"
        assert mapping.association_type is AssociationType.MANY_TO_ONE
