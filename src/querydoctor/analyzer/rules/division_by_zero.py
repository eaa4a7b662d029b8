"""
Rule: Potential Division by Zero

Detects `a / b` in SQL where the divisor is a column or parameter and
nothing guards against zero:

    SELECT total / quantity FROM order_line

Depending on the platform and SQL mode this raises an error or silently
yields NULL. Queries that use NULLIF, COALESCE or CASE WHEN anywhere are
assumed to be guarded. Non-zero numeric divisors are safe.

One issue per `dividend/divisor` pair, listing every query that contains it.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from sqlparse import tokens as T
from sqlparse.lexer import tokenize

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule

DIVISION = re.compile(r"(\w+(?:\.\w+)?)\s*/\s*(\w+(?:\.\w+)?)")
GUARDED = re.compile(r"\bNULLIF\b|\bCOALESCE\b|\bCASE\s+WHEN\b", re.IGNORECASE)


def code_only(sql: str) -> str:
    """SQL with comments removed and string literals emptied."""
    out = []
    for ttype, value in tokenize(sql):
        if ttype in T.Comment:
            out.append(" ")
        elif ttype in T.String.Single:
            out.append("''")
        else:
            out.append(value)
    return "".join(out)


def is_nonzero_constant(divisor: str) -> bool:
    try:
        return float(divisor) != 0.0
    except ValueError:
        return False


@register_rule
class DivisionByZero(Rule):
    """Report unguarded divisions by a column or parameter."""

    rule_id = "division_by_zero"
    version = "1.0.0"
    category = IssueCategory.INTEGRITY
    description = "Detects divisions that fail when the divisor is zero"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        groups: dict[tuple[str, str], list[QueryRecord]] = {}
        expressions: dict[tuple[str, str], str] = {}

        for record in trace:
            try:
                divisions = self._divisions(record.sql)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            for dividend, divisor, expression in divisions:
                key = (dividend, divisor)
                groups.setdefault(key, []).append(record)
                expressions.setdefault(key, expression)

        for (dividend, divisor), records in groups.items():
            expression = expressions[(dividend, divisor)]
            yield self.make_issue(
                title="Potential Division By Zero Error",
                description=(
                    f"Division operation '{expression}' found in query. If '{divisor}' is "
                    f"zero, this will cause a database error. Use NULLIF({divisor}, 0) to "
                    f"safely handle zero values."
                ),
                severity=Severity.CRITICAL,
                queries=records,
                template_key="Integrity/division_by_zero",
                context={
                    "unsafe_division": expression,
                    "safe_division": f"{dividend} / NULLIF({divisor}, 0)",
                    "dividend": dividend,
                    "divisor": divisor,
                },
                metrics={"count": len(records)},
                subject=f"{dividend}/{divisor}",
            )

    @staticmethod
    def _divisions(sql: str) -> list[tuple[str, str, str]]:
        code = code_only(sql)
        if GUARDED.search(code):
            return []
        return [
            (m.group(1), m.group(2), m.group(0))
            for m in DIVISION.finditer(code)
            if not is_nonzero_constant(m.group(2))
        ]
