"""
Rule: Batch Writes Without EntityManager::clear()

A long run of INSERT / UPDATE / DELETE statements on one table means a
batch job is pushing entities through the unit of work. Unless the
entity manager is cleared every few hundred rows, every written entity
stays managed and memory grows with the batch.

A table is reported when it receives at least batch_size_threshold writes
and at least 70% of the gaps between consecutive writes are at most
max_gap queries wide (the writes form one run, not scattered calls).
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig

SEQUENTIAL_RATIO = 0.7


class EntityManagerClearConfig(RuleConfig):
    batch_size_threshold: int = Field(default=20, ge=2, description="Writes to one table to report")
    max_gap: int = Field(default=10, ge=1, description="Widest gap between writes of one run")


def is_sequential(indices: list[int], max_gap: int) -> bool:
    if len(indices) < 2:
        return False
    close = sum(1 for a, b in zip(indices, indices[1:]) if b - a <= max_gap)
    return close / (len(indices) - 1) >= SEQUENTIAL_RATIO


@register_rule
class EntityManagerClear(Rule):
    """Report long write runs on one table with no sign of clearing."""

    rule_id = "entity_manager_clear"
    version = "1.0.0"
    description = "Detects batch writes that keep every entity managed"
    config_schema = EntityManagerClearConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: EntityManagerClearConfig = self.config  # type: ignore[assignment]
        writes: dict[str, list[tuple[int, QueryRecord]]] = {}

        for index, record in enumerate(trace):
            try:
                table = self._written_table(record)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            if table is not None:
                writes.setdefault(table, []).append((index, record))

        for table, entries in writes.items():
            count = len(entries)
            if count < config.batch_size_threshold:
                continue
            if not is_sequential([i for i, _ in entries], config.max_gap):
                continue

            records = [record for _, record in entries]
            yield self.make_issue(
                title=f"Memory Leak Risk: {count} operations on {table}",
                description=(
                    f"Detected {count} sequential INSERT/UPDATE/DELETE operations on table "
                    f"{table} without EntityManager::clear(). This can cause memory leaks "
                    f"in batch operations (threshold: {config.batch_size_threshold})."
                ),
                severity=self.severity.for_batch_without_clear(count),
                queries=records,
                template_key="Performance/entity_manager_clear",
                context={"table": table, "count": count},
                metrics={"count": count},
                subject=table,
            )

    def _written_table(self, record: QueryRecord) -> str | None:
        patterns = self.context.patterns
        if record.is_insert:
            return patterns.detect_insert_query(record.sql)
        if record.is_update:
            return patterns.detect_update_query(record.sql)
        if record.is_delete:
            return patterns.detect_delete_query(record.sql)
        return None
