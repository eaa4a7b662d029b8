"""
Rule: JOIN Optimization

Three structural JOIN problems, each its own issue type:

- join_too_many: more than max_joins_recommended joins (warning), more
  than max_joins_critical (critical)
- join_unused: an aliased join whose alias is never referenced outside
  its own ON clause
- left_join_with_not_null: LEFT JOIN alias filtered with
  `alias.col IS NOT NULL` in WHERE, which discards the NULL rows the LEFT
  JOIN exists to keep (it is an INNER JOIN in disguise)

Issues are reported once per (type, table/alias) across the trace, with
the SQL of every query where the problem occurs.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import Field, model_validator

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig
from querydoctor.analyzer.sql_parser import JoinInfo, StructuralQuery


class JoinOptimizationConfig(RuleConfig):
    max_joins_recommended: int = Field(default=5, ge=0, description="Joins above this warn")
    max_joins_critical: int = Field(default=8, ge=0, description="Joins above this are critical")

    @model_validator(mode="after")
    def _critical_above_recommended(self) -> "JoinOptimizationConfig":
        if self.max_joins_critical < self.max_joins_recommended:
            raise ValueError("max_joins_critical must be >= max_joins_recommended")
        return self


@register_rule
class JoinOptimization(Rule):
    """Report too many joins, unused joins and LEFT JOINs used as INNER JOINs."""

    rule_id = "join_optimization"
    version = "1.0.0"
    description = "Detects suboptimal JOIN usage"
    config_schema = JoinOptimizationConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        def check(record: QueryRecord) -> list[Issue]:
            structure = self.extractor.extract(record.sql)
            if not structure.joins:
                return []
            return list(self._check_structure(record, structure))

        yield from self.merge_by_subject(self.iter_records(trace, check))

    def _check_structure(self, record: QueryRecord, structure: StructuralQuery) -> Iterator[Issue]:
        too_many = self._too_many_joins(record, structure)
        if too_many is not None:
            yield too_many
        for join in structure.joins:
            unused = self._unused_join(record, join)
            if unused is not None:
                yield unused
            if join.type == "LEFT":
                not_null = self._left_join_with_not_null(record, join)
                if not_null is not None:
                    yield not_null

    def _too_many_joins(self, record: QueryRecord, structure: StructuralQuery) -> Issue | None:
        config: JoinOptimizationConfig = self.config  # type: ignore[assignment]
        join_count = len(structure.joins)
        if join_count <= config.max_joins_recommended:
            return None

        severity = self.severity.for_join_count(
            join_count, config.max_joins_recommended, config.max_joins_critical
        )
        return self.make_issue(
            title=f"Too Many JOINs in Single Query ({join_count} tables)",
            description=(
                f"Query contains {join_count} JOINs (recommended: "
                f"{config.max_joins_recommended} max). Consider splitting it into "
                f"multiple queries."
            ),
            severity=severity,
            queries=[record],
            template_key="Performance/join_too_many",
            context={"join_count": join_count},
            metrics={"join_count": join_count},
            issue_type="join_too_many",
            subject=self.normalizer.normalize(record.sql),
        )

    def _unused_join(self, record: QueryRecord, join: JoinInfo) -> Issue | None:
        if join.alias is None:
            return None
        if self.extractor.is_alias_used_in_query(record.sql, join.alias, exclude_join=join):
            return None

        return self.make_issue(
            title="Unused JOIN Detected",
            description=(
                f"Query performs {join.type} JOIN on table '{join.table}' "
                f"(alias '{join.alias}') but never uses it. Remove this JOIN."
            ),
            severity=Severity.WARNING,
            queries=[record],
            template_key="Performance/join_unused",
            context={"table": join.table, "alias": join.alias, "join_type": join.type},
            issue_type="join_unused",
            subject=f"{join.table} {join.alias}",
        )

    def _left_join_with_not_null(self, record: QueryRecord, join: JoinInfo) -> Issue | None:
        field = self.extractor.find_is_not_null_field_on_alias(record.sql, join.qualifier)
        if field is None:
            return None

        return self.make_issue(
            title="LEFT JOIN Filtered With IS NOT NULL",
            description=(
                f"LEFT JOIN on table '{join.table}' is filtered with "
                f"{join.qualifier}.{field} IS NOT NULL, so rows without a match are "
                f"discarded anyway. Use INNER JOIN."
            ),
            severity=Severity.WARNING,
            queries=[record],
            template_key="Performance/left_join_with_not_null",
            context={"table": join.table, "alias": join.qualifier, "field": field},
            issue_type="left_join_with_not_null",
            subject=f"{join.table} {join.qualifier}.{field}",
        )
