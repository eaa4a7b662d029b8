"""
Rule: Decimal Precision

Checks the precision/scale of decimal columns against their apparent use:

- decimal_missing_precision: no explicit precision/scale, vendor
  defaults apply (warning)
- decimal_insufficient_precision: money below decimal(10, 2), or a
  percentage below decimal(5, 2) (warning)
- decimal_unusual_scale: money with a scale other than 2 or 4 (info)
- decimal_excessive_precision: precision above 30 (info)
"""

from __future__ import annotations

from collections.abc import Sequence

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import Issue, IssueCategory, MappingRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import MappingRule

RECOMMENDED = {
    "money": (19, 4),
    "percentage": (5, 2),
    "default": (10, 2),
}

MONEY_PATTERNS = ("price", "amount", "cost", "total", "balance", "fee", "charge", "payment")
PERCENTAGE_PATTERNS = ("percent", "percentage", "rate", "ratio")

MAX_REASONABLE_PRECISION = 30


def use_case(field: str) -> str:
    lowered = field.lower()
    if any(p in lowered for p in MONEY_PATTERNS):
        return "money"
    if any(p in lowered for p in PERCENTAGE_PATTERNS):
        return "percentage"
    return "default"


@register_rule
class DecimalPrecision(MappingRule):
    """Report decimal columns whose precision/scale does not fit their use."""

    rule_id = "decimal_precision"
    version = "1.0.0"
    category = IssueCategory.CONFIGURATION
    description = "Detects missing, insufficient or excessive decimal precision"

    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_mappings(mappings, self._check))

    def _check(self, mapping: MappingRecord) -> Issue | None:
        if (mapping.column_type or "").lower() != "decimal":
            return None

        case = use_case(mapping.field)
        precision, scale = mapping.precision, mapping.scale

        if precision is None or scale is None:
            return self._issue(
                mapping, case, "decimal_missing_precision", Severity.WARNING,
                f"Missing Decimal Precision: {mapping.subject}",
                "uses decimal type without explicit precision/scale. Database "
                "defaults vary between vendors.",
            )

        if case == "money":
            if precision < 10 or scale < 2:
                return self._issue(
                    mapping, case, "decimal_insufficient_precision", Severity.WARNING,
                    f"Insufficient Decimal Precision: {mapping.subject}",
                    f"has precision={precision}, scale={scale} which may be "
                    f"insufficient for money values.",
                )
            if scale not in (2, 4):
                return self._issue(
                    mapping, case, "decimal_unusual_scale", Severity.INFO,
                    f"Unusual Decimal Scale: {mapping.subject}",
                    f"has scale={scale} which is unusual for money. Most currencies "
                    f"use 2 decimal places, some use 4.",
                )

        if case == "percentage" and (precision < 5 or scale < 2):
            return self._issue(
                mapping, case, "decimal_insufficient_precision", Severity.WARNING,
                f"Insufficient Decimal Precision: {mapping.subject}",
                f"has precision={precision}, scale={scale} which may be "
                f"insufficient for percentage values.",
            )

        if precision > MAX_REASONABLE_PRECISION:
            return self._issue(
                mapping, case, "decimal_excessive_precision", Severity.INFO,
                f"Excessive Decimal Precision: {mapping.subject}",
                f"has precision={precision} which is very high and wastes storage.",
            )
        return None

    def _issue(
        self,
        mapping: MappingRecord,
        case: str,
        issue_type: str,
        severity: Severity,
        title: str,
        problem: str,
    ) -> Issue:
        recommended_precision, recommended_scale = RECOMMENDED[case]
        return self.make_issue(
            title=title,
            description=(
                f"Entity {mapping.short_entity}.{mapping.field} {problem} Recommended: "
                f"precision={recommended_precision}, scale={recommended_scale}."
            ),
            severity=severity,
            template_key="Integrity/decimal_precision",
            context={
                "entity": mapping.short_entity,
                "field": mapping.field,
                "precision": mapping.precision if mapping.precision is not None else "default",
                "scale": mapping.scale if mapping.scale is not None else "default",
                "recommended_precision": recommended_precision,
                "recommended_scale": recommended_scale,
            },
            issue_type=issue_type,
            subject=mapping.subject,
        )
