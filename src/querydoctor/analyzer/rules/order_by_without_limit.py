"""
Rule: ORDER BY without LIMIT

Sorting a whole result set is paid in full even when the caller only
shows the first page. Reported only when the host recorded a row count,
since the cost of the sort is proportional to it.
"""

from __future__ import annotations

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule


@register_rule
class OrderByWithoutLimit(Rule):
    """Report sorted, unbounded SELECTs."""

    rule_id = "order_by_without_limit"
    version = "1.0.0"
    description = "Detects ORDER BY on unbounded result sets"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(
            self.iter_records(trace.only_selects(), self._check)
        )

    def _check(self, record: QueryRecord) -> Issue | None:
        if record.row_count is None:
            return None
        structure = self.extractor.extract(record.sql)
        if not structure.has_order_by or structure.has_limit:
            return None

        rows = record.row_count
        metrics = {"rows": rows, "time": record.execution_ms}
        if self.suppressed(metrics):
            return None

        order_by = ", ".join(structure.order_by_column_names) or "expression"
        return self.make_issue(
            title=f"ORDER BY without LIMIT: {rows} rows sorted",
            description=(
                f"The query sorts {rows} rows by {order_by} "
                f"({record.execution_ms:.2f}ms) but has no LIMIT."
            ),
            severity=self.severity.for_order_by_without_limit(rows, record.execution_ms),
            queries=[record],
            template_key="Performance/order_by_without_limit",
            context={"order_by": order_by, "rows": rows},
            metrics=metrics,
            subject=self.normalizer.normalize(record.sql),
        )
