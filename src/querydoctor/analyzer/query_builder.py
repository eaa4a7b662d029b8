"""
Detectors for query-builder mistakes visible in the generated SQL.

- `column = NULL` / `column <> NULL` (never true; IS [NOT] NULL intended)
- empty `IN ()` (a syntax error on most platforms)
- LIKE wildcards baked into a literal instead of a bound, escaped value
- `:name` placeholders with no bound value
- literal values concatenated into WHERE/AND/OR conditions
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from querydoctor.analyzer.sql_ast import SQLStructureExtractor
from querydoctor.analyzer.sql_parser import mask_string_literals

_EMPTY_IN = re.compile(r"\bIN\s*\(\s*\)", re.IGNORECASE)
_LIKE_WILDCARD_LITERAL = re.compile(r"LIKE\s+['\"][%_].*?['\"]", re.IGNORECASE)
_NAMED_PLACEHOLDER = re.compile(r"(?<![:\w]):([A-Za-z_]\w*)")

_QUOTED_LITERAL_PATTERNS = (
    ("WHERE with double quotes", re.compile(r"WHERE\s+\w+\s*=\s*\"[^\"]*\"")),
    ("WHERE with single quotes", re.compile(r"WHERE\s+\w+\s*=\s*'[^']*'")),
    ("AND with double quotes", re.compile(r"AND\s+\w+\s*=\s*\"[^\"]*\"")),
    ("AND with single quotes", re.compile(r"AND\s+\w+\s*=\s*'[^']*'")),
    ("OR with double quotes", re.compile(r"OR\s+\w+\s*=\s*\"[^\"]*\"")),
    ("OR with single quotes", re.compile(r"OR\s+\w+\s*=\s*'[^']*'")),
)

PATTERN_DESCRIPTIONS = {
    "sql_injection": "String concatenation in WHERE/AND/OR - use parameters instead",
    "incorrect_null": "Use IS NULL / IS NOT NULL instead of = NULL / != NULL",
    "empty_in": "Empty IN() clause will cause SQL syntax error",
    "unescaped_like": "LIKE with wildcards in SQL - should be parameterized and escaped",
    "missing_params": "Parameter placeholders without corresponding bound values",
}

FIX_SUGGESTIONS = {
    "sql_injection": "Bind the value as a named parameter instead of concatenating it into the query",
    "incorrect_null": "Use IS NULL / IS NOT NULL (isNull()/isNotNull() expressions in the builder)",
    "empty_in": "Check that the list is non-empty before adding the IN() condition",
    "unescaped_like": "Escape % and _ in user input and bind the LIKE pattern as a parameter",
    "missing_params": "Bind a value for every placeholder used in the query",
}


@dataclass(frozen=True)
class PatternMatch:
    """Result of a detector that reports where it matched."""

    detected: bool
    locations: tuple[str, ...] = ()


class QueryBuilderPatternDetector:
    """
    Checks SQL produced by a query builder for common construction errors.

    Example:
        detector = QueryBuilderPatternDetector()
        detector.detect_incorrect_null_comparison("SELECT * FROM u WHERE deleted_at = NULL")
        # PatternMatch(detected=True, locations=('deleted_at = NULL',))
    """

    def __init__(self, extractor: SQLStructureExtractor | None = None) -> None:
        self.extractor = extractor if extractor is not None else SQLStructureExtractor()

    def detect_incorrect_null_comparison(self, sql: str) -> PatternMatch:
        fields = [
            f"{condition.column} {condition.operator} NULL"
            for condition in self.extractor.extract_where_conditions(sql)
            if condition.operator in ("=", "<>") and condition.value_kind == "null"
        ]
        return PatternMatch(bool(fields), tuple(fields))

    def has_empty_in_clause(self, sql: str) -> bool:
        masked, _ = mask_string_literals(sql)
        return _EMPTY_IN.search(masked) is not None

    def has_unescaped_like(self, sql: str) -> bool:
        """LIKE compared against a literal that starts with a wildcard."""
        if "LIKE" not in sql.upper():
            return False
        return _LIKE_WILDCARD_LITERAL.search(sql) is not None

    def extract_parameter_placeholders(self, sql: str) -> list[str]:
        """Distinct `:name` placeholders in order of appearance, ignoring `::type` casts."""
        masked, _ = mask_string_literals(sql)
        seen: dict[str, None] = {}
        for match in _NAMED_PLACEHOLDER.finditer(masked):
            seen.setdefault(match.group(1), None)
        return list(seen)

    def detect_missing_parameters(
        self, sql: str, params: Mapping[str, object] | Iterable[str]
    ) -> PatternMatch:
        """
        Placeholders with no bound value.

        params is either a name -> value mapping or an iterable of bound names.
        """
        placeholders = self.extract_parameter_placeholders(sql)
        if not placeholders:
            return PatternMatch(False)
        provided = set(params.keys() if isinstance(params, Mapping) else params)
        missing = [name for name in placeholders if name not in provided]
        return PatternMatch(bool(missing), tuple(missing))

    def detect_quoted_literals_in_conditions(self, sql: str) -> list[str]:
        return [name for name, pattern in _QUOTED_LITERAL_PATTERNS if pattern.search(sql)]

    def detect_potential_sql_injection(self, sql: str) -> PatternMatch:
        """WHERE conditions compared against a quoted literal."""
        locations = [
            f"{condition.column} {condition.operator} <literal>"
            for condition in self.extractor.extract_where_conditions(sql)
            if condition.value_kind == "string"
        ]
        return PatternMatch(bool(locations), tuple(locations))

    @staticmethod
    def get_pattern_description(pattern_type: str) -> str:
        return PATTERN_DESCRIPTIONS.get(pattern_type, "Unknown pattern")

    @staticmethod
    def get_fix_suggestion(pattern_type: str) -> str:
        return FIX_SUGGESTIONS.get(pattern_type, "Review the query and fix the issue")
