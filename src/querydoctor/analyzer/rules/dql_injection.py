"""
Rule: DQL / SQL Injection Risk

Scores every query with InjectionPatternDetector and reports two
aggregated issues: one critical issue for all queries scoring 3 or more,
one warning for all queries scoring exactly 2. Each issue lists the union
of the indicators seen and every query in its group.
"""

from __future__ import annotations

from collections.abc import Iterator

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.injection import InjectionRisk
from querydoctor.analyzer.models import Issue, IssueCategory, QueryRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule


@register_rule
class DqlInjection(Rule):
    """Aggregate injection-risk scores into a critical and a warning issue."""

    rule_id = "dql_injection"
    version = "1.0.0"
    category = IssueCategory.SECURITY
    description = "Detects queries showing signs of concatenated user input"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        groups: dict[Severity, list[tuple[QueryRecord, InjectionRisk]]] = {
            Severity.CRITICAL: [],
            Severity.WARNING: [],
        }
        for record in trace:
            try:
                risk = self.context.injection.detect_injection_risk(record.sql)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            severity = self.severity.for_injection_risk(risk.risk_level)
            if severity in groups:
                groups[severity].append((record, risk))

        for severity, group in groups.items():
            if group:
                yield self._build_issue(group, severity)

    def _build_issue(self, group: list[tuple[QueryRecord, InjectionRisk]], severity: Severity) -> Issue:
        count = len(group)
        indicators = list(dict.fromkeys(
            indicator for _, risk in group for indicator in risk.indicators
        ))
        records = [record for record, _ in group]

        if severity is Severity.CRITICAL:
            title = f"Security Vulnerability: {count} queries with SQL injection risks"
            description = (
                f"Detected {count} queries with CRITICAL injection risk. Indicators: "
                f"{', '.join(indicators)}. Always use parameterized queries and never "
                f"concatenate user input."
            )
        else:
            title = f"Security Warning: {count} queries with potential injection risks"
            description = (
                f"Detected {count} queries with HIGH injection risk. Indicators: "
                f"{', '.join(indicators)}. Review these queries and ensure proper "
                f"parameter binding."
            )

        return self.make_issue(
            title=title,
            description=description,
            severity=severity,
            queries=records,
            template_key="Security/dql_injection",
            context={"indicators": indicators},
            metrics={
                "count": count,
                "max_risk": max(risk.risk_level for _, risk in group),
            },
            subject=f"risk:{severity.value}",
        )
