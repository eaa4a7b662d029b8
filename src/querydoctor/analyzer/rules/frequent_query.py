"""
Rule: Frequently Executed Query

Detects any statement (not only SELECTs) executed many times in one
trace. Unlike N+1, the repeated query may be identical every time, e.g.
a settings lookup issued from inside a loop, which is a caching or
hoisting opportunity.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class FrequentQueryConfig(RuleConfig):
    threshold: int = Field(default=10, ge=0, description="Executions of one signature to report")


@register_rule
class FrequentQuery(Rule):
    """Report signatures executed at least `threshold` times."""

    rule_id = "frequent_query"
    version = "1.0.0"
    description = "Detects queries executed many times in one trace"
    config_schema = FrequentQueryConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: FrequentQueryConfig = self.config  # type: ignore[assignment]

        for signature, group in trace.group_by_pattern(self.normalizer.normalize).items():
            count = len(group)
            if count < config.threshold:
                continue
            total_ms = group.total_execution_time()
            metrics = {"count": count, "total_ms": round(total_ms, 3)}
            if self.suppressed(metrics):
                continue

            yield self.make_issue(
                title=f"Frequent Query: executed {count} times",
                description=(
                    f"The query {signature} was executed {count} times "
                    f"({total_ms:.2f}ms in total, threshold: {config.threshold}). "
                    f"Cache its result or move it out of the loop."
                ),
                severity=self.severity.for_frequent_query(count, total_ms),
                queries=list(group),
                template_key="Performance/frequent_query",
                context={"count": count, "signature": signature},
                metrics=metrics,
            )
