"""
Rule: cascade="all"

`all` cascades every operation, remove included. On a many-to-one or
many-to-many towards an independent entity (a User, a Category...) that
means deleting one child deletes the shared parent and everything that
cascades from it.

Severity:
- critical: many_to_one / many_to_many towards an independent entity
- warning: every other association

A cascade list naming persist, remove, refresh and detach (merge
optional) and nothing else is cascade="all" spelled out.
"""

from __future__ import annotations

from collections.abc import Sequence

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import AssociationType, Issue, MappingRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import MappingRule

ALL_OPERATIONS = ("persist", "remove", "refresh", "detach", "merge")

INDEPENDENT_ENTITY_PATTERNS = (
    "User", "Customer", "Account", "Member", "Client",
    "Company", "Organization", "Team", "Department",
    "Product", "Category", "Brand", "Tag",
    "Author", "Editor", "Publisher",
)


def has_cascade_all(cascade: Sequence[str]) -> bool:
    if "all" in cascade:
        return True
    matched = sum(1 for operation in ALL_OPERATIONS if operation in cascade)
    return matched >= 4 and len(cascade) == matched


def is_independent_entity(entity: str) -> bool:
    return any(pattern in entity for pattern in INDEPENDENT_ENTITY_PATTERNS)


@register_rule
class CascadeAll(MappingRule):
    """Report associations that cascade every operation."""

    rule_id = "cascade_all"
    version = "1.0.0"
    description = "Detects dangerous use of cascade=\"all\""

    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_mappings(mappings, self._check))

    def _check(self, mapping: MappingRecord) -> Issue | None:
        if mapping.association_type is None or not has_cascade_all(mapping.cascade):
            return None

        target = mapping.short_target or "Unknown"
        severity = Severity.WARNING
        if mapping.association_type in (AssociationType.MANY_TO_ONE, AssociationType.MANY_TO_MANY):
            if is_independent_entity(mapping.target_entity or ""):
                severity = Severity.CRITICAL

        return self.make_issue(
            title='Dangerous cascade="all" Detected',
            description=(
                f"Field {mapping.field} in entity {mapping.short_entity} uses "
                f'cascade="all" towards {target}. This can lead to accidental data '
                f"deletion or duplication."
            ),
            severity=severity,
            template_key="Integrity/cascade_all",
            context={"entity": mapping.short_entity, "field": mapping.field, "target": target},
            subject=mapping.subject,
        )
