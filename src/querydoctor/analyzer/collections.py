"""
Collections for query traces and issues.

QueryTrace is an immutable, ordered sequence of QueryRecords with
fluent filtering and aggregation. Every transformation returns a new
trace; the original is never modified.

IssueCollection wraps analyzer output. It may be built over a generator
and only materializes the issues on first use, so analyzers can yield
issues lazily.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

from querydoctor.analyzer.models import (
    BacktraceFrame,
    Issue,
    IssueCategory,
    QueryRecord,
    Severity,
)

QUERY_TYPES = ("SELECT", "INSERT", "UPDATE", "DELETE", "OTHER")


class QueryTrace:
    """
    Ordered, immutable sequence of query records for one unit of work.

    Example:
        trace = QueryTrace.from_dicts(profiler_rows)
        slow_selects = trace.only_selects().filter_slow(50)
        print(slow_selects.total_execution_time())
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[QueryRecord] = ()) -> None:
        self._records: tuple[QueryRecord, ...] = tuple(records)

    @classmethod
    def from_dicts(cls, rows: Iterable[dict[str, Any]]) -> "QueryTrace":
        """Build a trace from profiler dicts (see QueryRecord.from_dict)."""
        return cls(QueryRecord.from_dict(row) for row in rows)

    # ── Sequence protocol ─────────────────────────────────────────────────

    def __iter__(self) -> Iterator[QueryRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> QueryRecord:
        return self._records[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryTrace):
            return NotImplemented
        return self._records == other._records

    def __hash__(self) -> int:
        return hash(self._records)

    def __repr__(self) -> str:
        return f"QueryTrace({len(self._records)} queries)"

    @property
    def records(self) -> tuple[QueryRecord, ...]:
        return self._records

    def is_empty(self) -> bool:
        return not self._records

    def first(self) -> QueryRecord | None:
        return self._records[0] if self._records else None

    # ── Filtering ─────────────────────────────────────────────────────────

    def filter(self, predicate: Callable[[QueryRecord], bool]) -> "QueryTrace":
        return QueryTrace(r for r in self._records if predicate(r))

    def filter_by_type(self, query_type: str) -> "QueryTrace":
        wanted = query_type.upper()
        return self.filter(lambda r: r.query_type == wanted)

    def only_selects(self) -> "QueryTrace":
        return self.filter_by_type("SELECT")

    def only_inserts(self) -> "QueryTrace":
        return self.filter_by_type("INSERT")

    def only_updates(self) -> "QueryTrace":
        return self.filter_by_type("UPDATE")

    def only_deletes(self) -> "QueryTrace":
        return self.filter_by_type("DELETE")

    def filter_slow(self, threshold: float = 100.0) -> "QueryTrace":
        """Records strictly slower than threshold ms."""
        return self.filter(lambda r: r.execution_ms > threshold)

    def filter_fast(self, threshold: float = 100.0) -> "QueryTrace":
        """Records at or below threshold ms."""
        return self.filter(lambda r: r.execution_ms <= threshold)

    def with_backtrace(self) -> "QueryTrace":
        return self.filter(lambda r: bool(r.backtrace))

    def without_backtrace(self) -> "QueryTrace":
        return self.filter(lambda r: not r.backtrace)

    def matching_sql(self, pattern: str | re.Pattern[str]) -> "QueryTrace":
        """Records whose SQL matches the regex pattern."""
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        return self.filter(lambda r: compiled.search(r.sql) is not None)

    def with_row_count_above(self, threshold: int) -> "QueryTrace":
        return self.filter(lambda r: r.row_count is not None and r.row_count > threshold)

    def exclude_paths(self, paths: Sequence[str]) -> "QueryTrace":
        """
        Drop records whose backtrace touches any of the given paths.

        A record is dropped when any frame's file contains one of the paths
        (e.g. "vendor/"). Backslashes are treated as forward slashes.
        Records without a backtrace are kept.
        """
        if not paths:
            return self
        needles = [p.replace("\\", "/") for p in paths]
        return self.filter(lambda r: not _from_excluded_path(r.backtrace, needles))

    # ── Ordering ──────────────────────────────────────────────────────────

    def sort_by_execution_time(self, descending: bool = True) -> "QueryTrace":
        return QueryTrace(sorted(self._records, key=lambda r: r.execution_ms, reverse=descending))

    # ── Grouping and aggregation ──────────────────────────────────────────

    def group_by_pattern(self, normalizer: Callable[[str], str]) -> dict[str, "QueryTrace"]:
        """Group records by normalized signature, in first-appearance order."""
        groups: dict[str, list[QueryRecord]] = {}
        for record in self._records:
            groups.setdefault(normalizer(record.sql), []).append(record)
        return {signature: QueryTrace(records) for signature, records in groups.items()}

    def group_by_type(self) -> dict[str, "QueryTrace"]:
        groups: dict[str, list[QueryRecord]] = {}
        for record in self._records:
            groups.setdefault(record.query_type, []).append(record)
        return {query_type: QueryTrace(records) for query_type, records in groups.items()}

    def count_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._records:
            counts[record.query_type] = counts.get(record.query_type, 0) + 1
        return counts

    def total_execution_time(self) -> float:
        return sum(r.execution_ms for r in self._records)

    def average_execution_time(self) -> float:
        if not self._records:
            return 0.0
        return self.total_execution_time() / len(self._records)

    def slowest(self) -> QueryRecord | None:
        if not self._records:
            return None
        return max(self._records, key=lambda r: r.execution_ms)

    def fastest(self) -> QueryRecord | None:
        if not self._records:
            return None
        return min(self._records, key=lambda r: r.execution_ms)

    def sql_queries(self) -> list[str]:
        return [r.sql for r in self._records]


def _from_excluded_path(
    backtrace: tuple[BacktraceFrame, ...] | None, needles: list[str]
) -> bool:
    if not backtrace:
        return False
    for frame in backtrace:
        if not frame.file:
            continue
        path = frame.file.replace("\\", "/")
        if any(needle in path for needle in needles):
            return True
    return False


class IssueCollection:
    """
    Collection of issues with filtering, grouping and statistics.

    Built from a list, or lazily from a generator. A lazy collection
    consumes its generator once, on first access.

    Example:
        issues = IssueCollection.from_generator(rule.iter_issues(trace))
        if issues.has_critical():
            for issue in issues.only_critical():
                print(issue.title)
    """

    def __init__(self, issues: Iterable[Issue] = ()) -> None:
        self._source: Iterable[Issue] | None = issues
        self._items: list[Issue] | None = None

    @classmethod
    def from_generator(cls, generator: Callable[[], Iterable[Issue]] | Iterable[Issue]) -> "IssueCollection":
        """Lazy collection over a generator or a generator factory."""
        source = generator() if callable(generator) else generator
        return cls(source)

    @classmethod
    def from_issues(cls, issues: Iterable[Issue]) -> "IssueCollection":
        return cls(list(issues))

    @classmethod
    def empty(cls) -> "IssueCollection":
        return cls(())

    @property
    def items(self) -> list[Issue]:
        if self._items is None:
            self._items = list(self._source) if self._source is not None else []
            self._source = None
        return self._items

    def to_list(self) -> list[Issue]:
        return list(self.items)

    def __iter__(self) -> Iterator[Issue]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Issue:
        return self.items[index]

    def __bool__(self) -> bool:
        return bool(self.items)

    def __repr__(self) -> str:
        return f"IssueCollection({len(self.items)} issues)"

    def count(self) -> int:
        return len(self.items)

    def is_empty(self) -> bool:
        return not self.items

    def first(self) -> Issue | None:
        return self.items[0] if self.items else None

    # ── Filtering ─────────────────────────────────────────────────────────

    def filter(self, predicate: Callable[[Issue], bool]) -> "IssueCollection":
        return IssueCollection([i for i in self.items if predicate(i)])

    def filter_by_severity(self, severity: Severity | str) -> "IssueCollection":
        """
        Issues of exactly one severity.

        Raises:
            ValueError: If a string names no severity level.
        """
        wanted = Severity.from_string(severity)
        return self.filter(lambda i: i.severity == wanted)

    def only_critical(self) -> "IssueCollection":
        return self.filter_by_severity(Severity.CRITICAL)

    def only_warnings(self) -> "IssueCollection":
        return self.filter_by_severity(Severity.WARNING)

    def only_info(self) -> "IssueCollection":
        return self.filter_by_severity(Severity.INFO)

    def filter_by_type(self, issue_type: str) -> "IssueCollection":
        return self.filter(lambda i: i.type == issue_type)

    def filter_by_category(self, category: IssueCategory | str) -> "IssueCollection":
        wanted = IssueCategory(category)
        return self.filter(lambda i: i.category == wanted)

    def with_suggestions(self) -> "IssueCollection":
        return self.filter(lambda i: i.suggestion is not None)

    def with_backtrace(self) -> "IssueCollection":
        return self.filter(lambda i: bool(i.backtrace))

    def with_queries(self) -> "IssueCollection":
        return self.filter(lambda i: bool(i.origin_queries))

    # ── Grouping and statistics ───────────────────────────────────────────

    def group_by_severity(self) -> dict[Severity, "IssueCollection"]:
        groups: dict[Severity, list[Issue]] = {}
        for issue in self.items:
            groups.setdefault(issue.severity, []).append(issue)
        return {
            severity: IssueCollection(groups[severity])
            for severity in sorted(groups, key=lambda s: s.rank)
        }

    def group_by_type(self) -> dict[str, "IssueCollection"]:
        groups: dict[str, list[Issue]] = {}
        for issue in self.items:
            groups.setdefault(issue.type, []).append(issue)
        return {issue_type: IssueCollection(issues) for issue_type, issues in groups.items()}

    def count_by_severity(self) -> dict[str, int]:
        """Counts per severity value, most severe first. Zero counts are omitted."""
        counts: dict[str, int] = {}
        for severity in sorted(Severity, key=lambda s: s.rank):
            n = sum(1 for i in self.items if i.severity == severity)
            if n:
                counts[severity.value] = n
        return counts

    def count_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for issue in self.items:
            counts[issue.type] = counts.get(issue.type, 0) + 1
        return counts

    def has_critical(self) -> bool:
        return any(i.severity == Severity.CRITICAL for i in self.items)

    def has_warnings(self) -> bool:
        return any(i.severity == Severity.WARNING for i in self.items)

    def most_severe(self) -> Issue | None:
        """First issue of the highest severity present, or None."""
        best: Issue | None = None
        for issue in self.items:
            if best is None or issue.severity.rank < best.severity.rank:
                best = issue
        return best

    def unique_types(self) -> list[str]:
        return list(dict.fromkeys(i.type for i in self.items))

    # ── Ordering and combination ──────────────────────────────────────────

    def sort_by_severity(self) -> "IssueCollection":
        """Critical first; issues of equal severity keep their relative order."""
        return IssueCollection(sorted(self.items, key=lambda i: i.severity.rank))

    def merge(self, other: Iterable[Issue]) -> "IssueCollection":
        return IssueCollection([*self.items, *other])

    def to_list_of_dicts(self) -> list[dict[str, Any]]:
        return [issue.to_dict() for issue in self.items]
