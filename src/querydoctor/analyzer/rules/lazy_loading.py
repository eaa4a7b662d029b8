"""
Rule: Lazy Loading in a Loop

Detects many primary-key lookups on one table issued close together,
which is what iterating a collection and touching an uninitialized
proxy on each element looks like:

    SELECT ... FROM customer t0 WHERE t0.id = ?   (x 50, interleaved)

Detection strategy:
- Keep SELECTs whose WHERE is exactly `id = <value>`
- Group them by table
- Require the group to be clustered (average gap between positions in
  the trace <= 5) and at least `threshold` long
- The relation name comes from the first getter (getCustomer -> customer)
  in the backtrace
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import BacktraceFrame, Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig

_GETTER = re.compile(r"^get([A-Z]\w*)")
_TABLE_PREFIX = re.compile(r"^(?:tbl_|tb_)")

MAX_AVERAGE_GAP = 5


def table_to_entity_name(table: str) -> str:
    """customer_order -> CustomerOrder; tbl_/tb_ prefixes are dropped."""
    stripped = _TABLE_PREFIX.sub("", table.strip('"`'))
    return "".join(part[:1].upper() + part[1:] for part in stripped.split("_") if part)


def relation_from_backtrace(backtrace: tuple[BacktraceFrame, ...] | None) -> str:
    if not backtrace:
        return "relation"
    for frame in backtrace:
        match = _GETTER.match(frame.function or "")
        if match:
            name = match.group(1)
            return name[:1].lower() + name[1:]
    return "relation"


def is_clustered(positions: list[int]) -> bool:
    if len(positions) < 2:
        return False
    gaps = [b - a for a, b in zip(positions, positions[1:])]
    return sum(gaps) / len(gaps) <= MAX_AVERAGE_GAP


class LazyLoadingConfig(RuleConfig):
    threshold: int = Field(default=10, ge=0, description="PK lookups on one table to report")


@register_rule
class LazyLoading(Rule):
    """Report clustered primary-key lookups on the same table."""

    rule_id = "lazy_loading"
    version = "1.0.0"
    description = "Detects proxies initialized one by one inside a loop"
    config_schema = LazyLoadingConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        config: LazyLoadingConfig = self.config  # type: ignore[assignment]
        by_table: dict[str, list[tuple[int, QueryRecord]]] = {}

        for index, record in enumerate(trace):
            try:
                table = self.context.patterns.detect_lazy_loading_pattern(record.sql)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            if table is not None:
                by_table.setdefault(table, []).append((index, record))

        for table, items in by_table.items():
            count = len(items)
            if count < config.threshold:
                continue
            if not is_clustered([index for index, _ in items]):
                continue

            records = [record for _, record in items]
            total_ms = sum(r.execution_ms for r in records)
            entity = table_to_entity_name(table)
            relation = relation_from_backtrace(records[0].backtrace)

            yield self.make_issue(
                title=f"Lazy Loading in Loop: {count} queries on {entity}",
                description=(
                    f"Detected {count} sequential lazy-loaded queries on entity {entity} "
                    f"(relation: {relation}). Use eager loading with JOIN FETCH to avoid "
                    f"N+1 queries (threshold: {config.threshold})."
                ),
                severity=self.severity.for_n_plus_one(count, total_ms),
                queries=records,
                template_key="Performance/lazy_loading",
                context={"entity": entity, "relation": relation, "count": count},
                metrics={"count": count, "total_ms": round(total_ms, 3)},
            )

