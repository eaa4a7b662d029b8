"""
Rule: LIMIT with a Collection Join

Detects paginated SELECTs that fetch-join a collection:

    SELECT p.*, pic.* FROM pet p
    LEFT JOIN picture pic ON pic.pet_id = p.id
    LIMIT 1

LIMIT counts SQL rows, not root entities. A pet with four pictures spans
four rows, so LIMIT 1 hydrates the pet with one picture and silently drops
the other three.

Detection strategy:
- SELECT with LIMIT and at least one JOIN
- The select list reads from at least two aliases (the join is fetched,
  not only filtered on)
- At least one join can match many rows: joins pinned to one row (a
  locale column in ON, or a single `joined.id = ...` equality) are safe
"""

from __future__ import annotations

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule


@register_rule
class CollectionJoinLimit(Rule):
    """Report LIMIT applied to a query that fetch-joins a collection."""

    rule_id = "collection_join_limit"
    version = "1.0.0"
    description = "Detects LIMIT combined with a fetch-joined collection"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(
            self.iter_records(trace.only_selects(), self._check)
        )

    def has_limit_with_collection_join(self, sql: str) -> bool:
        structure = self.extractor.extract(sql)
        if not structure.is_select or not structure.has_limit or not structure.joins:
            return False
        if len(set(structure.select_qualifiers)) < 2:
            return False
        return any(not join.is_single_row() for join in structure.joins)

    def _check(self, record: QueryRecord) -> Issue | None:
        if not self.has_limit_with_collection_join(record.sql):
            return None

        main_table = self.extractor.extract_main_table(record.sql)
        entity_hint = main_table.table if main_table else "entity"
        return self.make_issue(
            title="setMaxResults() with Collection Join Detected",
            description=(
                "Query uses LIMIT with a fetch-joined collection. LIMIT applies to SQL "
                "rows instead of entities, so collections are partially hydrated "
                "(silent data loss). Paginate with two queries: one for the root ids, "
                "one for the collections."
            ),
            severity=Severity.CRITICAL,
            queries=[record],
            template_key="Performance/setMaxResults_with_collection_join",
            context={"entity_hint": entity_hint},
            subject=self.normalizer.normalize(record.sql),
        )
