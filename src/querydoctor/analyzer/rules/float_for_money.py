"""
Rule: Float for Money

Binary floating point cannot represent most decimal fractions
(0.1 + 0.2 != 0.3), so money stored as float or double drifts with every
computation.

A field counts as money when its name contains a money word (price,
amount, total...) and no non-money word (hours, quantity, rate...), or
when it is a generic number field (value, amount, sum, total) on a
money-handling entity (Invoice, Order...).
"""

from __future__ import annotations

from collections.abc import Sequence

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import Issue, MappingRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import MappingRule

FLOAT_TYPES = frozenset({"float", "double"})

MONEY_FIELD_PATTERNS = (
    "price", "amount", "cost", "total", "subtotal", "balance", "fee", "charge",
    "payment", "turnover", "income", "expense", "refund", "credit",
    "debit", "salary", "wage", "commission", "discount", "tax", "vat",
    "revenue", "profit", "loss",
)

NON_MONEY_FIELD_PATTERNS = (
    "hours", "timeentries", "timeentry", "duration", "elapsed", "quantity",
    "weight", "volume", "distance", "length", "width", "height", "ratio",
    "coefficient", "factor", "multiplier", "rate", "percentage", "percent",
    "score", "rating", "rank",
)

MONEY_ENTITY_PATTERNS = (
    "invoice", "order", "payment", "transaction", "billing", "product", "cart",
    "checkout", "purchase", "sale", "account", "wallet", "subscription",
)

GENERIC_NUMBER_FIELDS = frozenset({"value", "amount", "sum", "total"})


def _contains_any(text: str, patterns: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(pattern in lowered for pattern in patterns)


def is_money_field(entity: str, field: str) -> bool:
    if _contains_any(field, NON_MONEY_FIELD_PATTERNS):
        return False
    if _contains_any(field, MONEY_FIELD_PATTERNS):
        return True
    return _contains_any(entity, MONEY_ENTITY_PATTERNS) and field.lower() in GENERIC_NUMBER_FIELDS


@register_rule
class FloatForMoney(MappingRule):
    """Report float/double columns holding monetary values."""

    rule_id = "float_for_money"
    version = "1.0.0"
    description = "Detects monetary values stored as floating point"

    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_mappings(mappings, self._check))

    def _check(self, mapping: MappingRecord) -> Issue | None:
        column_type = (mapping.column_type or "").lower()
        if column_type not in FLOAT_TYPES:
            return None
        if not is_money_field(mapping.short_entity, mapping.field):
            return None

        return self.make_issue(
            title=f"Float Used for Money: {mapping.subject}",
            description=(
                f"Entity {mapping.short_entity}.{mapping.field} uses {column_type} type for "
                f"what appears to be a monetary value. Floating point cannot represent "
                f"decimal amounts exactly and rounding errors accumulate."
            ),
            severity=Severity.CRITICAL,
            template_key="Integrity/float_for_money",
            context={
                "entity": mapping.short_entity,
                "field": mapping.field,
                "column_type": column_type,
            },
            subject=mapping.subject,
        )
