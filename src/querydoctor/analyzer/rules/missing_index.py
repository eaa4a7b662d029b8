"""
Rule: Missing Index

Uses the EXPLAIN summary the host attached to a record to find full
table scans over many rows. A scan is worth reporting when the query is
slow, or when it runs repeatedly (the scan cost is paid every time).

Why it matters:
- A full scan reads every row: O(n) and growing with the table
- An index on the filtered columns turns it into an O(log n) lookup

Detection strategy:
- Record has explain data showing a full scan (MySQL type ALL,
  PostgreSQL Seq Scan, or no key used)
- rows examined >= min_rows_scanned
- execution time > slow_query_threshold_ms, or the signature occurs at
  least REPETITION_COUNT times in the trace
- One issue per (table, filtered columns); the suggested index covers
  the WHERE columns of the main table

Limitations:
- Without explain data the rule cannot tell an index scan from a full scan
  and reports nothing
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig

REPETITION_COUNT = 3


class MissingIndexConfig(RuleConfig):
    """
    Configuration for missing index detection.

    Attributes:
        min_rows_scanned: Rows a full scan must examine to be reported (default 1000).
        slow_query_threshold_ms: Execution time above which a scan is slow (default 50).
    """

    min_rows_scanned: int = Field(default=1_000, ge=0, description="Minimum rows examined")
    slow_query_threshold_ms: float = Field(
        default=50.0,
        ge=0,
        description="Execution time in ms above which a full scan is reported",
    )


@register_rule
class MissingIndex(Rule):
    """Report full scans over large row counts with a CREATE INDEX hint."""

    rule_id = "missing_index"
    version = "1.0.0"
    description = "Detects full table scans that an index would avoid"
    config_schema = MissingIndexConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: MissingIndexConfig = self.config  # type: ignore[assignment]
        signature_counts: dict[str, int] = {}
        for record in trace:
            signature = self.normalizer.normalize(record.sql)
            signature_counts[signature] = signature_counts.get(signature, 0) + 1

        groups: dict[tuple[str, tuple[str, ...]], list[QueryRecord]] = {}
        for record in trace:
            try:
                key = self._candidate_key(record, signature_counts, config)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            if key is not None:
                groups.setdefault(key, []).append(record)

        for (table, columns), records in groups.items():
            rows_scanned = max(r.explain.rows_examined or 0 for r in records if r.explain)
            query_ms = max(r.execution_ms for r in records)
            metrics = {"rows_scanned": rows_scanned, "query_ms": query_ms, "count": len(records)}
            if self.suppressed(metrics):
                continue
            yield self._build_issue(table, columns, records, rows_scanned, query_ms, metrics)

    def _candidate_key(
        self,
        record: QueryRecord,
        signature_counts: dict[str, int],
        config: MissingIndexConfig,
    ) -> tuple[str, tuple[str, ...]] | None:
        explain = record.explain
        if explain is None or not explain.is_full_scan:
            return None
        if (explain.rows_examined or 0) < config.min_rows_scanned:
            return None

        slow = record.execution_ms > config.slow_query_threshold_ms
        repeated = signature_counts.get(self.normalizer.normalize(record.sql), 0) >= REPETITION_COUNT
        if not (slow or repeated):
            return None

        structure = self.extractor.extract(record.sql)
        if structure.main_table is None:
            return None
        qualifier = structure.main_table.qualifier.lower()
        columns = tuple(dict.fromkeys(
            c.column for c in structure.where_conditions
            if c.alias is None or c.alias.lower() == qualifier
        ))
        return structure.main_table.table, columns

    def _build_issue(
        self,
        table: str,
        columns: tuple[str, ...],
        records: list[QueryRecord],
        rows_scanned: int,
        query_ms: float,
        metrics: dict[str, int | float],
    ) -> Issue:
        if columns:
            index_name = f"idx_{table}_{'_'.join(columns)}".replace('"', "")
            index_sql = f"CREATE INDEX {index_name} ON {table} ({', '.join(columns)});"
        else:
            index_sql = f"-- Add an index on the filtered columns of {table}"

        return self.make_issue(
            title=f"Missing Index on {table}: {rows_scanned:,} rows scanned",
            description=(
                f"A full scan of {table} examined {rows_scanned:,} rows "
                f"(slowest run {query_ms:.2f}ms, {len(records)} run(s)). "
                + (f"Filtered columns: {', '.join(columns)}." if columns else "")
            ),
            severity=self.severity.for_missing_index(rows_scanned, query_ms),
            queries=records,
            template_key="Performance/missing_index",
            context={
                "table": table,
                "columns": list(columns),
                "rows_scanned": rows_scanned,
                "index_sql": index_sql,
            },
            metrics=metrics,
            subject=f"{table}({', '.join(columns)})",
        )
