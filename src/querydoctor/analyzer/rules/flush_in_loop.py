"""
Rule: Flush in Loop

Detects a unit of work flushed once per loop iteration:

    foreach ($users as $user) {
        $em->persist($user);
        $em->flush();
    }

Why it matters:
- Every flush is a round-trip plus change-set computation over the whole
  identity map
- The cost grows with the number of managed entities, so the loop gets
  slower as it runs

Detection strategy:
- A flush boundary is a write (INSERT / UPDATE) immediately followed by a
  SELECT, the shape a flush followed by the next loop read leaves in a trace
- Consecutive boundaries form a flush group; the writes in each group are
  counted
- Reported when there are at least flush_count_threshold groups averaging
  between 0 and max_avg_operations writes each. More writes per flush
  is already batching.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class FlushInLoopConfig(RuleConfig):
    flush_count_threshold: int = Field(
        default=5,
        ge=1,
        description="Flush groups needed to report",
    )
    max_avg_operations: float = Field(
        default=10.0,
        gt=0,
        description="Groups averaging more writes than this are batched, not looped",
    )


def is_flush_boundary(current: QueryRecord, following: QueryRecord) -> bool:
    return (current.is_insert or current.is_update) and following.is_select


def flush_groups(records: tuple[QueryRecord, ...]) -> list[tuple[int, int, int]]:
    """(start index, end index, writes) for each span between two flush boundaries."""
    groups = []
    last_boundary = -1
    writes = 0
    for index, record in enumerate(records):
        if record.is_insert or record.is_update or record.is_delete:
            writes += 1
        if index + 1 < len(records) and is_flush_boundary(record, records[index + 1]):
            if last_boundary >= 0:
                groups.append((last_boundary, index, writes))
            last_boundary = index
            writes = 0
    return groups


@register_rule
class FlushInLoop(Rule):
    """Report flush() called once per loop iteration."""

    rule_id = "flush_in_loop"
    version = "1.0.0"
    description = "Detects repeated write-then-read cycles caused by flushing in a loop"
    config_schema = FlushInLoopConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: FlushInLoopConfig = self.config  # type: ignore[assignment]
        records = trace.records
        groups = flush_groups(records)
        if len(groups) < config.flush_count_threshold:
            return

        avg_operations = sum(writes for _, _, writes in groups) / len(groups)
        if avg_operations <= 0 or avg_operations > config.max_avg_operations:
            return

        indices = sorted({i for start, end, _ in groups for i in range(start, end + 1)})
        affected = [records[i] for i in indices]
        total_ms = sum(r.execution_ms for r in affected)
        flush_count = len(groups)

        yield self.make_issue(
            title=f"Performance Anti-Pattern: {flush_count} flush() calls in loop",
            description=(
                f"Detected {flush_count} flush() calls with an average of "
                f"{avg_operations:.1f} operations between each flush. This anti-pattern "
                f"causes severe performance degradation. Batch operations and flush once "
                f"(threshold: {config.flush_count_threshold})."
            ),
            severity=self.severity.for_flush_in_loop(flush_count),
            queries=affected,
            template_key="Performance/flush_in_loop",
            context={"flush_count": flush_count, "avg_operations": round(avg_operations, 1)},
            metrics={
                "flush_count": flush_count,
                "avg_operations": round(avg_operations, 1),
                "total_ms": round(total_ms, 3),
            },
        )
