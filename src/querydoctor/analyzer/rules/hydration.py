"""
Rule: Excessive Hydration

Every returned row becomes an object graph in memory. Result sets above
row_threshold are reported; severity grows with the row count.
"""

from __future__ import annotations

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class HydrationConfig(RuleConfig):
    row_threshold: int = Field(default=1_000, ge=0, description="Rows above which hydration is reported")


@register_rule
class Hydration(Rule):
    """Report queries returning more rows than can be hydrated cheaply."""

    rule_id = "hydration"
    version = "1.0.0"
    description = "Detects queries hydrating very large result sets"
    config_schema = HydrationConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        config: HydrationConfig = self.config  # type: ignore[assignment]
        return IssueCollection.from_generator(
            self.iter_records(trace.with_row_count_above(config.row_threshold), self._check)
        )

    def _check(self, record: QueryRecord) -> Issue | None:
        rows = record.row_count or 0
        return self.make_issue(
            title=f"Excessive Hydration: {rows} rows",
            description=(
                f"The query returned {rows} rows ({record.execution_ms:.2f}ms). "
                f"Select scalar fields, paginate, or iterate in batches."
            ),
            severity=self.severity.for_hydration(rows),
            queries=[record],
            template_key="Performance/hydration",
            context={"rows": rows},
            metrics={"rows": rows},
            subject=self.normalizer.normalize(record.sql),
        )
