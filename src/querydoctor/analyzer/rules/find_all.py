"""
Rule: Unpaginated findAll()

Detects single-table SELECTs with neither WHERE nor LIMIT, the SQL of a repository
findAll(). Aggregates (`SELECT COUNT(*) ...`) and `SELECT EXISTS(...)`
return one row and are ignored.

When the host did not record a row count the result is assumed to be
large (UNKNOWN_ROW_ESTIMATE).
"""

from __future__ import annotations

import re

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig

UNKNOWN_ROW_ESTIMATE = 999

_SINGLE_ROW_SELECT = re.compile(r"^\s*SELECT\s+(?:(?:COUNT|MAX|MIN|SUM|AVG)|EXISTS)\s*\(", re.IGNORECASE)


class FindAllConfig(RuleConfig):
    threshold: int = Field(default=99, ge=0, description="Rows above which findAll is reported")


@register_rule
class FindAll(Rule):
    """Report unfiltered, unbounded SELECTs returning many rows."""

    rule_id = "find_all"
    version = "1.0.0"
    description = "Detects unpaginated queries without WHERE or LIMIT"
    config_schema = FindAllConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(
            self.iter_records(trace.only_selects(), self._check)
        )

    def is_find_all_pattern(self, sql: str) -> bool:
        if _SINGLE_ROW_SELECT.match(sql):
            return False
        structure = self.extractor.extract(sql)
        if not structure.is_select or structure.joins or len(structure.from_tables) != 1:
            return False
        return not structure.has_where and not structure.has_limit

    def _check(self, record: QueryRecord) -> Issue | None:
        config: FindAllConfig = self.config  # type: ignore[assignment]
        if not self.is_find_all_pattern(record.sql):
            return None

        rows = record.row_count if record.row_count is not None else UNKNOWN_ROW_ESTIMATE
        if rows <= config.threshold:
            return None
        metrics = {"rows": rows, "time": record.execution_ms}
        if self.suppressed(metrics):
            return None

        main_table = self.extractor.extract_main_table(record.sql)
        table = main_table.table if main_table else "unknown"
        return self.make_issue(
            title=f"Unpaginated Query: findAll() returned {rows} rows",
            description=(
                f"Query without WHERE or LIMIT clause returned approximately {rows} rows. "
                f"Consider adding pagination or filters (threshold: {config.threshold})."
            ),
            severity=self.severity.for_find_all(rows, record.execution_ms),
            queries=[record],
            template_key="Performance/find_all",
            context={"table": table, "rows": rows},
            metrics=metrics,
            subject=self.normalizer.normalize(record.sql),
        )
