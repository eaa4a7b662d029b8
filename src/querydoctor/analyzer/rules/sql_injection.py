"""
Rule: SQL Injection in Raw Queries

Looks at what actually reached the database: a statement executed with no
bound parameters that still carries the fingerprints of an injection
payload. Any hit is critical.

Runtime patterns:
- SQL comments (`--`, `/* ... */`)
- quote-closing tautologies (`' OR 1=1`, `' OR TRUE`)
- UNION SELECT
- stacked statements (`; DROP TABLE`, `; DELETE FROM`)
- time-based payloads (SLEEP(), BENCHMARK())
"""

from __future__ import annotations

import re

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule

_DML = re.compile(r"^\s*(?:SELECT|INSERT|UPDATE|DELETE)\b", re.IGNORECASE)

RUNTIME_INJECTION_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("line comment", re.compile(r"--")),
    ("block comment", re.compile(r"/\*.*?\*/", re.DOTALL)),
    ("OR tautology", re.compile(r"'\s*OR\s*['\"]?\d+['\"]?\s*=\s*['\"]?\d+", re.IGNORECASE)),
    ("OR TRUE", re.compile(r"'\s*OR\s*TRUE", re.IGNORECASE)),
    ("UNION SELECT", re.compile(r"UNION\s+SELECT", re.IGNORECASE)),
    ("stacked DROP TABLE", re.compile(r";\s*DROP\s+TABLE", re.IGNORECASE)),
    ("stacked DELETE", re.compile(r";\s*DELETE\s+FROM", re.IGNORECASE)),
    ("SLEEP()", re.compile(r"SLEEP\s*\(", re.IGNORECASE)),
    ("BENCHMARK()", re.compile(r"BENCHMARK\s*\(", re.IGNORECASE)),
)

MAX_SQL_PREVIEW = 100


def runtime_injection_patterns(sql: str) -> list[str]:
    """Names of the runtime injection patterns found in sql, in table order."""
    return [name for name, pattern in RUNTIME_INJECTION_PATTERNS if pattern.search(sql)]


@register_rule
class SqlInjection(Rule):
    """Report unparameterized statements that look like injection payloads."""

    rule_id = "sql_injection"
    version = "1.0.0"
    category = IssueCategory.SECURITY
    description = "Detects raw queries carrying SQL injection patterns"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_records(trace, self._check))

    def _check(self, record: QueryRecord) -> Issue | None:
        if record.params or not _DML.match(record.sql):
            return None
        patterns = runtime_injection_patterns(record.sql)
        if not patterns:
            return None

        preview = record.sql[:MAX_SQL_PREVIEW] + ("..." if len(record.sql) > MAX_SQL_PREVIEW else "")
        return self.make_issue(
            title="SQL Injection: Suspicious query without parameters",
            description=(
                f"Detected potential SQL injection in query: {preview}. The query "
                f"contains suspicious patterns ({', '.join(patterns)}) and no bound "
                f"parameters. Use prepared statements with parameter binding."
            ),
            severity=Severity.CRITICAL,
            queries=[record],
            template_key="Security/sql_injection",
            context={"patterns": patterns},
            metrics={"pattern_count": len(patterns)},
            subject=self.normalizer.normalize(record.sql),
        )
