"""
Rule: Ineffective LIKE Pattern

Detects LIKE patterns that start with a wildcard:

    SELECT * FROM product WHERE name LIKE '%phone%'

Why it matters:
- A B-tree index is ordered by prefix; '%x' has no prefix to seek on
- The database falls back to scanning every row

Detection strategy:
- Only records at or above min_execution_ms are considered
- Literal LIKE patterns starting with '%' (from the extractor)
- String parameters starting with '%' bound to a query containing LIKE
- One issue per distinct pattern across the whole trace, listing every
  query that uses it; severity follows the slowest of them
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


def like_kind(pattern: str) -> str:
    if pattern.startswith("%") and pattern.endswith("%"):
        return "contains search"
    if pattern.startswith("%"):
        return "ends-with search"
    return "prefix search"


class IneffectiveLikeConfig(RuleConfig):
    min_execution_ms: float = Field(
        default=5.0,
        ge=0,
        description="Queries faster than this are not reported",
    )


@register_rule
class IneffectiveLike(Rule):
    """Report leading-wildcard LIKE patterns that defeat indexes."""

    rule_id = "ineffective_like"
    version = "1.0.0"
    description = "Detects LIKE patterns with a leading wildcard"
    config_schema = IneffectiveLikeConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: IneffectiveLikeConfig = self.config  # type: ignore[assignment]
        by_pattern: dict[str, list[QueryRecord]] = {}

        for record in trace:
            if record.execution_ms < config.min_execution_ms:
                continue
            try:
                patterns = self._leading_wildcards(record)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            for pattern in patterns:
                by_pattern.setdefault(pattern, []).append(record)

        for pattern, records in by_pattern.items():
            yield self._build_issue(pattern, records)

    def _leading_wildcards(self, record: QueryRecord) -> list[str]:
        patterns = [
            p for p in self.extractor.extract(record.sql).like_patterns
            if p.startswith("%")
        ]
        if "LIKE" in record.sql.upper():
            patterns.extend(
                p for p in record.params
                if isinstance(p, str) and p.startswith("%")
            )
        return list(dict.fromkeys(patterns))

    def _build_issue(self, pattern: str, records: list[QueryRecord]) -> Issue:
        slowest = max(r.execution_ms for r in records)
        kind = like_kind(pattern)
        return self.make_issue(
            title=f"Ineffective LIKE Pattern: '{pattern}' ({kind})",
            description=(
                f"The LIKE pattern '{pattern}' starts with a wildcard, so no index can be "
                f"used and the table is scanned ({slowest:.2f}ms in the slowest of "
                f"{len(records)} queries). Use a full-text index or a prefix search instead."
            ),
            severity=self.severity.for_ineffective_like(slowest),
            queries=records,
            template_key="Performance/ineffective_like",
            context={"pattern": pattern, "like_type": kind},
            metrics={"time": slowest, "count": len(records)},
            subject=pattern,
        )
