"""
Rule: Slow Query

Reports every query slower than a threshold, with optimization hints
read from the query structure:

- subquery (often rewritable as a JOIN)
- ORDER BY / GROUP BY columns that should be indexed
- LIKE with a leading wildcard
- DISTINCT
"""

from __future__ import annotations

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class SlowQueryConfig(RuleConfig):
    """
    Configuration for slow query detection.

    Attributes:
        threshold_ms: Queries strictly slower than this are reported.
            Must be positive and below 100 seconds.
    """

    threshold_ms: float = Field(
        default=100.0,
        gt=0,
        lt=100_000,
        description="Execution time in ms above which a query is slow",
    )


@register_rule
class SlowQuery(Rule):
    """Report queries above the execution time threshold."""

    rule_id = "slow_query"
    version = "1.0.0"
    description = "Detects queries exceeding an execution time threshold"
    config_schema = SlowQueryConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        config: SlowQueryConfig = self.config  # type: ignore[assignment]
        return IssueCollection.from_generator(
            self.iter_records(trace.filter_slow(config.threshold_ms), self._check)
        )

    def _check(self, record: QueryRecord) -> Issue | None:
        config: SlowQueryConfig = self.config  # type: ignore[assignment]
        metrics = {"time": record.execution_ms}
        if self.suppressed(metrics):
            return None

        hints = self.optimization_hints(record.sql)
        return self.make_issue(
            title=f"Slow Query: {record.execution_ms:.2f}ms",
            description=(
                f"Query execution time ({record.execution_ms:.2f}ms) exceeds "
                f"threshold ({config.threshold_ms:g}ms). {hints}"
            ),
            severity=self.severity.for_slow_query(record.execution_ms),
            queries=[record],
            template_key="Performance/slow_query",
            context={"execution_ms": round(record.execution_ms, 2), "hints": hints},
            metrics=metrics,
        )

    def optimization_hints(self, sql: str) -> str:
        structure = self.extractor.extract(sql)
        hints: list[str] = []

        if structure.has_subquery:
            hints.append("Subquery detected - consider rewriting as JOIN")
        if structure.has_order_by:
            columns = structure.order_by_column_names
            hints.append(
                f"Ensure ORDER BY columns are indexed: {', '.join(columns)}"
                if columns else "Ensure ORDER BY columns are indexed"
            )
        if structure.has_group_by:
            columns = structure.group_by_columns
            hints.append(
                f"Ensure GROUP BY columns are indexed: {', '.join(columns)}"
                if columns else "Ensure GROUP BY columns are indexed"
            )
        if any(p.startswith("%") for p in structure.like_patterns):
            hints.append("Leading wildcard LIKE detected - cannot use index efficiently")
        if structure.has_distinct:
            hints.append("DISTINCT operation can be expensive")

        if not hints:
            return "Review query structure and add appropriate indexes."
        return ". ".join(hints) + "."
