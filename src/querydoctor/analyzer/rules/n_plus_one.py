"""
Rule: N+1 Queries

Detects the same SELECT executed many times with different literal values,
the signature of an ORM loading a relation one row at a time:

    SELECT * FROM comments WHERE post_id = 1
    SELECT * FROM comments WHERE post_id = 2
    ... (once per post)

Why it matters:
- Each query pays a full network round trip and parse/plan cost
- Cost grows linearly with the number of parent rows
- A single JOIN or WHERE ... IN (...) replaces all of them

Detection strategy:
- Group SELECTs by normalized signature
- Report groups that reach the threshold, and groups that reach the
  repetition floor even when every query is fast: repetition alone is
  structural, speed does not excuse it
- Severity from count and summed execution time
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class NPlusOneConfig(RuleConfig):
    """
    Configuration for N+1 detection.

    Attributes:
        threshold: Group size that always counts as N+1 (default 5).
        repetition_floor: Smaller group size still reported regardless of speed (default 3).
    """

    threshold: int = Field(default=5, ge=0, description="Occurrences that make a group an N+1")
    repetition_floor: int = Field(
        default=3,
        ge=0,
        description="Occurrences reported even when every query is fast",
    )


@register_rule
class NPlusOne(Rule):
    """Group repeated SELECTs by signature and report the repetitive ones."""

    rule_id = "n_plus_one"
    version = "1.0.0"
    description = "Detects the same SELECT repeated with different values (N+1)"
    config_schema = NPlusOneConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: NPlusOneConfig = self.config  # type: ignore[assignment]
        groups = trace.only_selects().group_by_pattern(self.normalizer.normalize)

        for signature, group in groups.items():
            count = len(group)
            if count < config.threshold and count < config.repetition_floor:
                continue
            total_ms = group.total_execution_time()
            metrics = {"count": count, "total_ms": round(total_ms, 3)}
            if self.suppressed(metrics):
                continue
            issue = self._build_issue(signature, group, count, total_ms, metrics)
            if issue is not None:
                yield issue

    def _build_issue(
        self,
        signature: str,
        group: QueryTrace,
        count: int,
        total_ms: float,
        metrics: dict[str, int | float],
    ) -> Issue | None:
        first = group.first()
        if first is None:
            return None

        pattern = self.context.patterns.detect_n_plus_one_pattern(first.sql)
        main_table = self.extractor.extract_main_table(first.sql)
        table = pattern.table if pattern else (main_table.table if main_table else "unknown")
        relation = pattern.relation if pattern else "relation"

        description = (
            f"The same query was executed {count} times with different values "
            f"({total_ms:.2f}ms in total). "
        )
        if pattern:
            description += (
                f"Rows of {table} are loaded one {pattern.foreign_key} at a time; "
                f"load the {relation} relation in one query instead."
            )
        else:
            description += "Batch the lookups or load the data with a JOIN."

        return self.make_issue(
            title=f"N+1 Query Detected: {count} queries",
            description=description,
            severity=self.severity.for_n_plus_one(count, total_ms),
            queries=list(group),
            template_key="Performance/n_plus_one",
            context={
                "table": table,
                "relation": relation,
                "count": count,
                "signature": signature,
            },
            metrics=metrics,
        )
