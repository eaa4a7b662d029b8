"""
Rule: Query Builder Best Practices

Construction mistakes that are visible in the SQL a query builder emits:

- `col = NULL` / `col <> NULL`: never true, IS [NOT] NULL was meant (critical)
- `IN ()`: an empty list, a syntax error on most platforms (critical)
- `:name` placeholders with no bound value (critical)
- LIKE against a literal starting with a wildcard: the pattern was
  concatenated instead of bound and escaped (warning)

Missing parameters are only checked when the host recorded parameter
names, or recorded no parameters at all. Each issue is reported once per
normalized query shape and lists every query of that shape.
"""

from __future__ import annotations

from collections.abc import Iterator

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, IssueCategory, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule


@register_rule
class QueryBuilderBestPractices(Rule):
    """Report NULL comparisons, empty IN lists, unbound placeholders and raw LIKE wildcards."""

    rule_id = "query_builder_best_practices"
    version = "1.0.0"
    category = IssueCategory.INTEGRITY
    description = "Detects query builder misuse visible in generated SQL"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        def check(record: QueryRecord) -> list[Issue]:
            signature = self.normalizer.normalize(record.sql)
            return list(self._check_record(record, signature))

        yield from self.merge_by_subject(self.iter_records(trace, check))

    def _check_record(self, record: QueryRecord, signature: str) -> Iterator[Issue]:
        detector = self.context.query_builder
        sql = record.sql

        null_match = detector.detect_incorrect_null_comparison(sql)
        if null_match.detected:
            yield self._issue(
                record, signature, "incorrect_null",
                title="Incorrect NULL Comparison",
                context={"fields": list(null_match.locations)},
            )

        if detector.has_empty_in_clause(sql):
            yield self._issue(
                record, signature, "empty_in",
                title="Empty IN() Clause",
            )

        if record.param_names or not record.params:
            missing = detector.detect_missing_parameters(sql, record.param_names)
            if missing.detected:
                yield self._issue(
                    record, signature, "missing_params",
                    title=f"Missing Query Parameters: {', '.join(missing.locations)}",
                    context={"missing": list(missing.locations)},
                )

        if detector.has_unescaped_like(sql):
            yield self._issue(
                record, signature, "unescaped_like",
                title="Unescaped LIKE Pattern",
            )

    def _issue(
        self,
        record: QueryRecord,
        signature: str,
        pattern_type: str,
        *,
        title: str,
        context: dict[str, object] | None = None,
    ) -> Issue:
        detector = self.context.query_builder
        fix = detector.get_fix_suggestion(pattern_type)
        return self.make_issue(
            title=title,
            description=f"{detector.get_pattern_description(pattern_type)}. {fix}.",
            severity=self.severity.for_query_builder(pattern_type),
            queries=[record],
            template_key=f"Integrity/query_builder_{pattern_type}",
            context={**(context or {}), "fix": fix},
            issue_type=f"query_builder_{pattern_type}",
            subject=signature,
        )
