"""
Rule: Partial Collection Load

Detects a relation loaded by foreign key with a LIMIT:

    SELECT * FROM comment WHERE post_id = ? LIMIT 5

Usually a collection sliced in application code (or an extra-lazy
collection) where a dedicated repository query was meant.
"""

from __future__ import annotations

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule


@register_rule
class PartialCollectionLoad(Rule):
    rule_id = "partial_collection_load"
    version = "1.0.0"
    description = "Detects collections loaded by foreign key with a LIMIT"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_records(trace, self._check))

    def _check(self, record: QueryRecord) -> Issue | None:
        patterns = self.context.patterns
        if not patterns.detect_partial_collection_load(record.sql):
            return None
        pattern = patterns.detect_n_plus_one_pattern(record.sql)
        if pattern is None:
            return None

        return self.make_issue(
            title=f"Partial Collection Load on {pattern.table}",
            description=(
                f"Rows of {pattern.table} are loaded by {pattern.foreign_key} with a "
                f"LIMIT, which loads only part of the {pattern.relation} collection."
            ),
            severity=Severity.INFO,
            queries=[record],
            template_key="Performance/partial_collection_load",
            context={"table": pattern.table, "relation": pattern.relation},
            subject=f"{pattern.table}.{pattern.foreign_key}",
        )
