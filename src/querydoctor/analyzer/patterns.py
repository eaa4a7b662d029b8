"""
Shape detectors over single SQL statements.

Each detector answers one question about the structure of a query, using
the shared SQLStructureExtractor:

- detect_n_plus_one_pattern: "load related rows by foreign key" shape
- detect_lazy_loading_pattern: "load one entity by primary key" shape
- detect_partial_collection_load: foreign-key load with a LIMIT
- detect_n_plus_one_from_join: join condition shaped x.id = y.<rel>_id

Detectors are stateless apart from the extractor's cache.
"""

from __future__ import annotations

from dataclasses import dataclass

from querydoctor.analyzer.sql_ast import SQLStructureExtractor

_LITERAL_KINDS = ("placeholder", "string", "number")


@dataclass(frozen=True)
class NPlusOnePattern:
    """A foreign-key lookup: table plus the `<relation>_id` column."""

    table: str
    foreign_key: str

    @property
    def relation(self) -> str:
        """Relation name: `category` for `category_id`."""
        return self.foreign_key[:-3] if self.foreign_key.lower().endswith("_id") else self.foreign_key


class SqlPatternDetector:
    """
    Structural shape checks used by the performance analyzers.

    Example:
        detector = SqlPatternDetector()
        detector.detect_n_plus_one_pattern("SELECT * FROM comments WHERE post_id = ?")
        # NPlusOnePattern(table='comments', foreign_key='post_id')
    """

    def __init__(self, extractor: SQLStructureExtractor | None = None) -> None:
        self.extractor = extractor if extractor is not None else SQLStructureExtractor()

    def detect_n_plus_one_pattern(self, sql: str) -> NPlusOnePattern | None:
        """
        Single-table SELECT filtering a `*_id` column by equality.

        The compared value must be a placeholder or a literal, not another
        column or a subquery.
        """
        structure = self.extractor.extract(sql)
        if not structure.is_select or structure.main_table is None or structure.joins:
            return None
        if len(structure.from_tables) != 1:
            return None

        for condition in structure.where_conditions:
            if (
                condition.is_equality
                and condition.column.lower().endswith("_id")
                and condition.value_kind in _LITERAL_KINDS
            ):
                return NPlusOnePattern(structure.main_table.table, condition.column)
        return None

    def detect_n_plus_one_from_join(self, sql: str) -> NPlusOnePattern | None:
        """Join whose ON clause links a primary key to a `*_id` column."""
        for join in self.extractor.extract_joins(sql):
            for condition in join.on_conditions:
                if condition.operator != "=" or condition.left is None or condition.right is None:
                    continue
                left, right = condition.left.column.lower(), condition.right.column.lower()
                if left == "id" and right.endswith("_id"):
                    return NPlusOnePattern(join.table, condition.right.column)
                if right == "id" and left.endswith("_id"):
                    return NPlusOnePattern(join.table, condition.left.column)
        return None

    def detect_lazy_loading_pattern(self, sql: str) -> str | None:
        """Table name when WHERE is exactly `id = <literal-or-placeholder>`."""
        structure = self.extractor.extract(sql)
        if not structure.is_select or structure.main_table is None:
            return None
        if len(structure.where_conditions) != 1:
            return None

        condition = structure.where_conditions[0]
        if (
            condition.column.lower() == "id"
            and condition.is_equality
            and condition.value_kind in _LITERAL_KINDS
        ):
            return structure.main_table.table
        return None

    def detect_partial_collection_load(self, sql: str) -> bool:
        """Foreign-key WHERE shape combined with a LIMIT clause."""
        if not self.extractor.has_limit(sql):
            return False
        return self.detect_n_plus_one_pattern(sql) is not None

    def detect_update_query(self, sql: str) -> str | None:
        return self._table_for(sql, "UPDATE")

    def detect_delete_query(self, sql: str) -> str | None:
        return self._table_for(sql, "DELETE")

    def detect_insert_query(self, sql: str) -> str | None:
        return self._table_for(sql, "INSERT")

    def is_select_query(self, sql: str) -> bool:
        return self.extractor.extract(sql).is_select

    def _table_for(self, sql: str, statement_type: str) -> str | None:
        structure = self.extractor.extract(sql)
        if structure.statement_type != statement_type or structure.main_table is None:
            return None
        return structure.main_table.table
