"""
Rule: orphanRemoval without cascade remove

On a one-to-many, orphanRemoval deletes a child taken out of the
collection, but without cascade remove deleting the parent leaves its
children behind (or fails on the foreign key). The composition is only
half declared.
"""

from __future__ import annotations

from collections.abc import Sequence

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import AssociationType, Issue, MappingRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import MappingRule


@register_rule
class OrphanRemovalWithoutCascadeRemove(MappingRule):
    rule_id = "orphan_removal_without_cascade_remove"
    version = "1.0.0"
    description = "Detects orphanRemoval=true without cascade remove"

    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        return IssueCollection.from_generator(self.iter_mappings(mappings, self._check))

    def _check(self, mapping: MappingRecord) -> Issue | None:
        if mapping.association_type is not AssociationType.ONE_TO_MANY:
            return None
        if not mapping.orphan_removal:
            return None
        if "remove" in mapping.cascade or "all" in mapping.cascade:
            return None

        target = mapping.short_target or "Unknown"
        return self.make_issue(
            title='orphanRemoval Without cascade="remove" (Incomplete)',
            description=(
                f"Field {mapping.field} in entity {mapping.short_entity} has "
                f'orphanRemoval=true but no cascade="remove". Removing a {target} from '
                f"the collection deletes it, but deleting the {mapping.short_entity} does not."
            ),
            severity=Severity.WARNING,
            template_key="Integrity/orphan_removal_without_cascade_remove",
            context={"entity": mapping.short_entity, "field": mapping.field, "target": target},
            subject=mapping.subject,
        )
