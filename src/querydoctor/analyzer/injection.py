"""
Weighted injection-risk scoring for raw SQL text.

The score is the sum of independent boolean checks, each with a fixed
weight, so the same SQL always produces the same score and each check can
be tested on its own:

    numeric value in quotes        +1
    injection keywords in string   +3
    comment syntax in string       +2
    consecutive quotes             +1
    unparameterized LIKE           +1
    literal string in WHERE        +2
    multiple suspicious literals   +3

Status-like words ('active', 'pending', 'true', ...) are allowlisted so
ordinary hard-coded enums do not raise the score.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from querydoctor.analyzer.sql_ast import SQLStructureExtractor

SAFE_LITERAL_VALUES = frozenset({
    "active", "inactive", "pending", "completed", "cancelled", "deleted",
    "published", "draft", "archived", "suspended", "approved", "rejected",
    "enabled", "disabled", "open", "closed", "processing", "shipped",
    "yes", "no", "true", "false", "y", "n", "1", "0",
    "user", "admin", "guest", "member", "subscriber", "customer",
    "public", "private", "internal", "external",
})

# (weight, indicator) per check
NUMERIC_IN_QUOTES = (1, "Numeric value in quotes (possible concatenation)")
INJECTION_KEYWORDS = (3, "SQL injection keywords detected in string")
COMMENT_SYNTAX = (2, "SQL comment syntax in string value")
CONSECUTIVE_QUOTES = (1, "Consecutive quotes detected")
UNPARAMETERIZED_LIKE = (1, "LIKE clause without parameter")
LITERAL_IN_WHERE = (2, "WHERE clause with literal string instead of parameter")
MULTIPLE_LITERALS = (3, "Multiple conditions with literal strings (possible injection)")

PATTERN_DESCRIPTIONS = {
    "numeric_in_quotes": "Numeric values in quoted strings indicate possible concatenation",
    "injection_keywords": "Classic SQL injection keywords (UNION, OR 1=1, comments)",
    "comment_syntax": "SQL comment syntax attempting to bypass security",
    "consecutive_quotes": "Multiple quotes attempting to escape string boundaries",
    "unparameterized_like": "LIKE clause with direct values instead of parameters",
    "literal_in_where": "WHERE clause using literal strings instead of parameter binding",
    "multiple_conditions": "Multiple conditions with literals - complex injection attempt",
}

_QUOTED_WITH_DIGIT = re.compile(r"['\"]([^'\"]*\d+[^'\"]*)['\"]")
_KEYWORD_IN_STRING = re.compile(
    r"'.*(?:UNION|OR\s+1\s*=\s*1|AND\s+1\s*=\s*1|--|#|/\*).*'",
    re.IGNORECASE,
)
_OR_TAUTOLOGY = re.compile(r"OR\s+['\"]?1['\"]?\s*=\s*['\"]?1['\"]?", re.IGNORECASE)
_AND_TAUTOLOGY = re.compile(r"AND\s+['\"]?1['\"]?\s*=\s*['\"]?1['\"]?", re.IGNORECASE)
_COMMENT_IN_STRING = re.compile(r"['\"].*(?:--|#|/\*).*['\"]")
_CONSECUTIVE_QUOTES = re.compile(r"'{2,}|\"{2,}")
_LIKE_LITERAL = re.compile(r"LIKE\s+['\"][^?:]*%[^?:]*['\"]", re.IGNORECASE)
_WHERE_LITERAL = re.compile(r"WHERE\s+[^=]+\s*=\s*'([^'?:]+)'", re.IGNORECASE)
_CHAINED_LITERALS = re.compile(
    r"(?:WHERE|AND|OR)\s+[^=]+\s*=\s*'[^']*'\s+(?:OR|AND)\s+",
    re.IGNORECASE,
)

_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}|^\d{2}/\d{2}/\d{4}")
_TIME = re.compile(r"^\d{2}:\d{2}(?::\d{2})?$")
_VERSION = re.compile(r"^\d+\.\d+(?:\.\d+)?$")
_SHORT_INTEGER = re.compile(r"^\d{1,10}$")
_SHORT_WORD = re.compile(r"^[a-z]+$")


@dataclass(frozen=True)
class InjectionRisk:
    """Score plus the indicators that contributed to it, in check order."""

    risk_level: int = 0
    indicators: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {"risk_level": self.risk_level, "indicators": list(self.indicators)}


@dataclass(frozen=True)
class _WhereLiterals:
    """String literals compared in the WHERE clause of a SELECT."""

    parsed: bool = False
    literals: tuple[str, ...] = ()
    like_values: tuple[str, ...] = ()


def is_suspicious_numeric_value(value: str) -> bool:
    """A digit-bearing literal that is not a UUID, date, time, version or short integer."""
    if not re.search(r"\d", value):
        return False
    for shape in (_UUID, _DATE, _TIME, _VERSION, _SHORT_INTEGER):
        if shape.search(value):
            return False
    return True


def is_suspicious_literal_value(value: str) -> bool:
    """A literal that is neither allowlisted nor a short plain word."""
    normalized = value.strip().lower()
    if not normalized or normalized in SAFE_LITERAL_VALUES:
        return False
    if len(normalized) <= 10 and _SHORT_WORD.match(normalized):
        return False
    return True


class InjectionPatternDetector:
    """
    Scores SQL text for signs of string concatenation and injection.

    Checks read the WHERE literals from the structure extractor when the
    statement is a SELECT and fall back to regexes over the raw text
    otherwise.

    Example:
        detector = InjectionPatternDetector()
        detector.detect_injection_risk("SELECT * FROM t WHERE x = '1 OR 1=1'")
        # InjectionRisk(risk_level=6, indicators=(...))
    """

    def __init__(self, extractor: SQLStructureExtractor | None = None) -> None:
        self.extractor = extractor if extractor is not None else SQLStructureExtractor()

    def detect_injection_risk(self, sql: str) -> InjectionRisk:
        where = self._where_literals(sql)
        checks = (
            (self.has_numeric_value_in_quotes(sql, where), NUMERIC_IN_QUOTES),
            (self.has_sql_injection_keywords(sql), INJECTION_KEYWORDS),
            (self.has_comment_syntax_in_string(sql), COMMENT_SYNTAX),
            (self.has_consecutive_quotes(sql), CONSECUTIVE_QUOTES),
            (self.has_unparameterized_like(sql, where), UNPARAMETERIZED_LIKE),
            (self.has_literal_string_in_where(sql, where), LITERAL_IN_WHERE),
            (self.has_multiple_conditions_with_literals(sql, where), MULTIPLE_LITERALS),
        )

        risk_level = 0
        indicators: list[str] = []
        for hit, (weight, indicator) in checks:
            if hit:
                risk_level += weight
                indicators.append(indicator)
        return InjectionRisk(risk_level, tuple(indicators))

    # ── Individual checks ─────────────────────────────────────────────────

    def has_numeric_value_in_quotes(self, sql: str, where: _WhereLiterals | None = None) -> bool:
        where = where if where is not None else self._where_literals(sql)
        if where.literals:
            return any(is_suspicious_numeric_value(v) for v in where.literals)
        match = _QUOTED_WITH_DIGIT.search(sql)
        return match is not None and is_suspicious_numeric_value(match.group(1))

    def has_sql_injection_keywords(self, sql: str) -> bool:
        return bool(
            _KEYWORD_IN_STRING.search(sql)
            or _OR_TAUTOLOGY.search(sql)
            or _AND_TAUTOLOGY.search(sql)
        )

    def has_comment_syntax_in_string(self, sql: str) -> bool:
        return _COMMENT_IN_STRING.search(sql) is not None

    def has_consecutive_quotes(self, sql: str) -> bool:
        return _CONSECUTIVE_QUOTES.search(sql) is not None

    def has_unparameterized_like(self, sql: str, where: _WhereLiterals | None = None) -> bool:
        where = where if where is not None else self._where_literals(sql)
        if where.parsed and where.like_values:
            return any("%" in v or "_" in v for v in where.like_values)
        if where.parsed:
            return False
        return _LIKE_LITERAL.search(sql) is not None

    def has_literal_string_in_where(self, sql: str, where: _WhereLiterals | None = None) -> bool:
        where = where if where is not None else self._where_literals(sql)
        if where.literals:
            return any(is_suspicious_literal_value(v) for v in where.literals)
        match = _WHERE_LITERAL.search(sql)
        return match is not None and is_suspicious_literal_value(match.group(1))

    def has_multiple_conditions_with_literals(
        self, sql: str, where: _WhereLiterals | None = None
    ) -> bool:
        where = where if where is not None else self._where_literals(sql)
        if where.parsed:
            return sum(1 for v in where.literals if is_suspicious_literal_value(v)) >= 2
        return _CHAINED_LITERALS.search(sql) is not None

    @staticmethod
    def get_pattern_description(pattern_name: str) -> str:
        return PATTERN_DESCRIPTIONS.get(pattern_name, "Unknown pattern")

    def _where_literals(self, sql: str) -> _WhereLiterals:
        structure = self.extractor.extract(sql)
        if not structure.is_select:
            return _WhereLiterals()

        literals: list[str] = []
        like_values: list[str] = []
        for condition in structure.where_conditions:
            if condition.value_kind != "string" or condition.value is None:
                continue
            literals.append(condition.value)
            if "LIKE" in condition.operator:
                like_values.append(condition.value)
        return _WhereLiterals(True, tuple(literals), tuple(like_values))
