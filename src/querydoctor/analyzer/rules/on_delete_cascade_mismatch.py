"""
Rule: ORM cascade / database ON DELETE mismatch

Compares a one-to-many's ORM-side removal settings with the ON DELETE
rule of the foreign key declared on its inverse (owning many-to-one)
side, found through mapped_by:

- orm_cascade_db_setnull: ORM cascades remove, DB sets NULL
- orm_orphan_db_setnull: orphanRemoval, DB sets NULL
- db_cascade_no_orm: DB cascades, ORM does not know
- orm_cascade_no_db: ORM cascades remove, no DB rule

Each mismatch means deleting through the ORM and deleting in SQL give
different results.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from querydoctor.analyzer.collections import IssueCollection
from querydoctor.analyzer.models import AssociationType, Issue, MappingRecord, Severity
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import MappingRule

MISMATCH_MESSAGES = {
    "orm_cascade_db_setnull": (
        "ORM cascades remove but the database sets the foreign key to NULL"
    ),
    "orm_orphan_db_setnull": (
        "orphanRemoval deletes children but the database sets the foreign key to NULL"
    ),
    "db_cascade_no_orm": (
        "the database cascades deletes the ORM does not know about, so loaded "
        "entities become stale"
    ),
    "orm_cascade_no_db": (
        "ORM cascades remove but the database has no ON DELETE rule, so deletes "
        "issued in SQL fail or leave orphans"
    ),
}


def identify_mismatch(cascade_remove: bool, orphan_removal: bool, on_delete: str) -> str | None:
    if cascade_remove and on_delete == "SET NULL":
        return "orm_cascade_db_setnull"
    if orphan_removal and on_delete == "SET NULL":
        return "orm_orphan_db_setnull"
    if on_delete == "CASCADE" and not cascade_remove:
        return "db_cascade_no_orm"
    if cascade_remove and on_delete == "":
        return "orm_cascade_no_db"
    return None


@register_rule
class OnDeleteCascadeMismatch(MappingRule):
    """Report one-to-many associations whose ORM and DB delete rules disagree."""

    rule_id = "on_delete_cascade_mismatch"
    version = "1.0.0"
    description = "Detects mismatches between ORM cascade and database ON DELETE"

    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(mappings))

    def _iter_issues(self, mappings: Sequence[MappingRecord]) -> Iterator[Issue]:
        by_field = {(m.entity, m.field): m for m in mappings}

        def check(mapping: MappingRecord) -> Issue | None:
            if mapping.association_type is not AssociationType.ONE_TO_MANY:
                return None
            if mapping.target_entity is None or mapping.mapped_by is None:
                return None
            inverse = by_field.get((mapping.target_entity, mapping.mapped_by))
            if inverse is None:
                return None
            return self._check_pair(mapping, inverse)

        yield from self.iter_mappings(mappings, check)

    def _check_pair(self, mapping: MappingRecord, inverse: MappingRecord) -> Issue | None:
        cascade_remove = "remove" in mapping.cascade or "all" in mapping.cascade
        on_delete = (inverse.on_delete or "").strip().upper()
        mismatch = identify_mismatch(cascade_remove, mapping.orphan_removal, on_delete)
        if mismatch is None:
            return None

        orm_cascade = ", ".join(mapping.cascade) or "none"
        return self.make_issue(
            title="ORM Cascade / Database onDelete Mismatch",
            description=(
                f"{mapping.short_entity}.{mapping.field}: {MISMATCH_MESSAGES[mismatch]} "
                f"({inverse.short_entity}.{inverse.field} ON DELETE {on_delete or 'NONE'})."
            ),
            severity=Severity.WARNING,
            template_key="Integrity/on_delete_cascade_mismatch",
            context={
                "entity": mapping.short_entity,
                "field": mapping.field,
                "orm_cascade": orm_cascade,
                "on_delete": on_delete or "NONE",
                "mismatch_type": mismatch,
            },
            subject=mapping.subject,
        )
