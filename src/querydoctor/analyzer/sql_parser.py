"""
Structural view of a SQL statement, plus the fallback extractors.

StructuralQuery is what every analyzer consumes: tables, joins, WHERE
conditions, ORDER BY / GROUP BY columns, aggregations and LIMIT facts.
Three extractors produce it, tried in this order:

- querydoctor.analyzer.sql_ast.GrammarExtractor walks a real PostgreSQL
  grammar AST (pglast) and yields HIGH confidence results.
- TokenExtractor (this module) finds clauses and joins in the sqlparse
  token stream. It handles SQL the grammar rejects (MySQL dialect,
  fragments) and yields MEDIUM confidence results.
- RegexExtractor (this module) is the last resort when even the token
  pass fails. It never raises.

An extraction result always comes entirely from one extractor.

Usage:
    from querydoctor.analyzer.sql_parser import TokenExtractor

    structure = TokenExtractor().extract("SELECT * FROM users u WHERE u.id = ?")
    structure.main_table   # TableRef(table='users', alias='u')
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import sqlparse
from sqlparse import tokens as T
from sqlparse.lexer import tokenize

AGGREGATE_FUNCTIONS = ("COUNT", "SUM", "AVG", "MIN", "MAX")

# Words that can follow a table name but are never its alias
RESERVED_AFTER_TABLE = frozenset({
    "ON", "USING", "WHERE", "LEFT", "RIGHT", "INNER", "OUTER", "FULL", "CROSS",
    "NATURAL", "JOIN", "STRAIGHT_JOIN", "ORDER", "GROUP", "LIMIT", "OFFSET",
    "HAVING", "SET", "UNION", "FOR", "WINDOW", "VALUES", "INTO", "AS",
    "LATERAL", "RETURNING", "USE", "FORCE", "IGNORE",
})


class SQLConfidence(str, Enum):
    """
    How far a StructuralQuery can be trusted.

    HIGH: Built from the PostgreSQL grammar AST
    MEDIUM: Built from the sqlparse token stream
    LOW: Built by the regex extractor
    NONE: Empty input, nothing extracted
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass(frozen=True)
class TableRef:
    """A table in FROM/UPDATE/DELETE/INSERT position."""

    table: str
    alias: str | None = None

    @property
    def qualifier(self) -> str:
        """Name other clauses use to reference this table."""
        return self.alias or self.table


@dataclass(frozen=True)
class ColumnReference:
    """
    A column mentioned somewhere in the statement.

    clause is one of: select, where, join:<index>, group, having, order.
    """

    qualifier: str | None
    column: str
    clause: str


@dataclass(frozen=True)
class JoinCondition:
    """One comparison inside a JOIN ... ON clause."""

    left: ColumnReference | None
    operator: str
    right: ColumnReference | None
    value: str | None = None

    def columns(self) -> tuple[ColumnReference, ...]:
        return tuple(c for c in (self.left, self.right) if c is not None)


@dataclass(frozen=True)
class JoinInfo:
    """A JOIN clause: normalized type, joined table, alias and ON conditions."""

    type: str
    table: str
    alias: str | None
    on_conditions: tuple[JoinCondition, ...] = ()
    index: int = 0

    @property
    def qualifier(self) -> str:
        return self.alias or self.table

    @property
    def clause_id(self) -> str:
        return f"join:{self.index}"

    def has_locale_constraint(self) -> bool:
        """ON clause pins a locale column (translation-table pattern)."""
        return any(
            col.column.lower() == "locale"
            for cond in self.on_conditions
            for col in cond.columns()
        )

    def has_unique_constraint(self) -> bool:
        """
        Single equality condition on the joined table's primary key.

        A join on `joined.id = other.fk_id` can match at most one row per
        outer row. A join on `joined.fk_id = other.id` is a collection join.
        """
        if len(self.on_conditions) != 1:
            return False
        condition = self.on_conditions[0]
        if condition.operator != "=":
            return False
        qualifier = self.qualifier.lower()
        for col in condition.columns():
            if (col.qualifier or "").lower() == qualifier and col.column.lower() == "id":
                return True
        return False

    def is_single_row(self) -> bool:
        return self.has_locale_constraint() or self.has_unique_constraint()

    def to_dict(self) -> dict[str, str | None]:
        return {"type": self.type, "table": self.table, "alias": self.alias}


@dataclass(frozen=True)
class WhereCondition:
    """
    One comparison in the WHERE clause.

    value_kind is one of: placeholder, string, number, boolean, null, column,
    list, subquery, expression. value holds the literal text for string and
    number kinds, "?" for placeholders and None otherwise.
    """

    column: str
    operator: str
    value: str | None = None
    value_kind: str = "expression"
    alias: str | None = None

    @property
    def is_equality(self) -> bool:
        return self.operator == "="

    @property
    def is_parameterized(self) -> bool:
        return self.value_kind == "placeholder"

    def to_dict(self) -> dict[str, str | None]:
        return {
            "column": self.column,
            "operator": self.operator,
            "value": self.value,
            "alias": self.alias,
        }


@dataclass(frozen=True)
class OrderByItem:
    column: str
    alias: str | None = None
    direction: str = "ASC"


@dataclass(frozen=True)
class StructuralQuery:
    """
    Derived structure of one SQL statement.

    Immutable and cached by content hash of the SQL text. Joins and
    aggregations are only populated for SELECT statements.
    """

    statement_type: str = "OTHER"
    main_table: TableRef | None = None
    from_tables: tuple[TableRef, ...] = ()
    joins: tuple[JoinInfo, ...] = ()
    where_conditions: tuple[WhereCondition, ...] = ()
    select_qualifiers: tuple[str, ...] = ()
    order_by: tuple[OrderByItem, ...] = ()
    group_by_columns: tuple[str, ...] = ()
    aggregation_functions: tuple[str, ...] = ()
    like_patterns: tuple[str, ...] = ()
    column_references: tuple[ColumnReference, ...] = ()
    has_where: bool = False
    has_group_by: bool = False
    has_order_by: bool = False
    has_limit: bool = False
    has_offset: bool = False
    limit_value: int | None = None
    has_distinct: bool = False
    has_subquery: bool = False
    confidence: SQLConfidence = SQLConfidence.NONE
    parse_error: str | None = None

    @property
    def is_select(self) -> bool:
        return self.statement_type == "SELECT"

    @property
    def where_columns(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for cond in self.where_conditions:
            seen.setdefault(cond.column, None)
        return tuple(seen)

    @property
    def order_by_column_names(self) -> tuple[str, ...]:
        return tuple(item.column for item in self.order_by)

    @property
    def all_tables(self) -> tuple[tuple[TableRef, str], ...]:
        """Every table with its source: "from" or "join"."""
        tables: list[tuple[TableRef, str]] = [(t, "from") for t in self.from_tables]
        tables.extend((TableRef(j.table, j.alias), "join") for j in self.joins)
        return tuple(tables)

    def join_for_alias(self, alias: str) -> JoinInfo | None:
        wanted = alias.lower()
        for join in self.joins:
            if join.qualifier.lower() == wanted:
                return join
        return None

    def references_to(self, qualifier: str, exclude_clause: str | None = None) -> list[ColumnReference]:
        wanted = qualifier.lower()
        return [
            ref for ref in self.column_references
            if ref.qualifier is not None
            and ref.qualifier.lower() == wanted
            and ref.clause != exclude_clause
        ]


EMPTY_STRUCTURE = StructuralQuery()


# ── Regex extractor ──────────────────────────────────────────────────────

_STRING_LITERAL = re.compile(r"'(?:[^'\\]|\\.|'')*'", re.DOTALL)
_MASKED_LITERAL = re.compile(r"'@(\d+)'")
_LINE_COMMENT = re.compile(r"--[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LEADING_KEYWORD = re.compile(r"^\s*\(*\s*([A-Za-z]+)")

_CLAUSE_KEYWORDS = re.compile(
    r"\b(SELECT|FROM|WHERE|GROUP\s+BY|HAVING|ORDER\s+BY|LIMIT|OFFSET|"
    r"FOR\s+UPDATE|UNION|SET|VALUES|RETURNING)\b",
    re.IGNORECASE,
)
_JOIN_KEYWORD = re.compile(
    r"\b(?:(?:NATURAL\s+)?(LEFT|RIGHT|FULL)(?:\s+OUTER)?\s+|(INNER)\s+|(CROSS)\s+|STRAIGHT_)?JOIN\b",
    re.IGNORECASE,
)
_TABLE_WITH_ALIAS = re.compile(
    r"^\s*(?P<table>\"?[\w.$]+\"?)(?:\s+(?:AS\s+)?(?P<alias>[A-Za-z_]\w*))?",
    re.IGNORECASE,
)
_QUALIFIED_REF = re.compile(r"\b([A-Za-z_]\w*)\.([A-Za-z_]\w*|\*)")
_AGGREGATE_CALL = re.compile(r"\b(COUNT|SUM|AVG|MIN|MAX)\s*\(", re.IGNORECASE)
_LIMIT = re.compile(
    r"\bLIMIT\s+(\d+|\?|:\w+|\$\d+|%s)(?:\s*,\s*(\d+|\?|:\w+|\$\d+|%s))?",
    re.IGNORECASE,
)
_OFFSET = re.compile(r"\bOFFSET\b", re.IGNORECASE)
_DISTINCT = re.compile(r"\bDISTINCT\b", re.IGNORECASE)
_SUBQUERY = re.compile(r"\(\s*SELECT\b", re.IGNORECASE)
_LIKE_LITERAL = re.compile(r"\bI?LIKE\s+'@(\d+)'", re.IGNORECASE)
_BOOL_SPLIT = re.compile(r"\b(AND|OR|BETWEEN)\b", re.IGNORECASE)
_CONDITION = re.compile(
    r"^(?:NOT\s+)?(?:(?P<alias>[A-Za-z_]\w*)\.)?(?P<column>[A-Za-z_]\w*)\s*"
    r"(?P<op><=>|!=|<>|<=|>=|=|<|>|NOT\s+I?LIKE\b|I?LIKE\b|NOT\s+IN\b|IN\b|"
    r"IS\s+NOT\b|IS\b|NOT\s+BETWEEN\b|BETWEEN\b)\s*(?P<value>.*)$",
    re.IGNORECASE | re.DOTALL,
)
_PLACEHOLDER = re.compile(r"^(?:\?|:[A-Za-z_]\w*|\$\d+|%s)$")
_NUMBER = re.compile(r"^[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?$")
_COLUMN_VALUE = re.compile(r"^(?:[A-Za-z_]\w*\.)?[A-Za-z_]\w*$")
_ORDER_ITEM = re.compile(
    r"^(?:(?P<alias>[A-Za-z_]\w*)\.)?(?P<column>[A-Za-z_]\w*)(?:\s+(?P<dir>ASC|DESC))?",
    re.IGNORECASE,
)


def _unquote(literal: str) -> str:
    inner = literal[1:-1]
    return inner.replace("''", "'").replace("\\'", "'")


def mask_string_literals(sql: str) -> tuple[str, list[str]]:
    """
    Replace single-quoted literals with numbered markers.

    Keyword and column regexes then cannot match text inside strings.
    Returns the masked SQL and the unquoted literal values by marker number.
    """
    literals: list[str] = []

    def _sub(match: re.Match[str]) -> str:
        literals.append(_unquote(match.group(0)))
        return f"'@{len(literals) - 1}'"

    return _STRING_LITERAL.sub(_sub, sql), literals


def _depth_map(text: str) -> list[int]:
    """Parenthesis depth before each character."""
    depths = []
    depth = 0
    for char in text:
        depths.append(depth)
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
    return depths


def _top_level(pattern: re.Pattern[str], text: str) -> list[re.Match[str]]:
    depths = _depth_map(text)
    return [m for m in pattern.finditer(text) if depths[m.start()] == 0]


def _split_top_level(text: str, separator: str = ",") -> list[str]:
    parts = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _strip_wrapping_parens(text: str) -> str | None:
    """Inner text if the whole string is one parenthesized group."""
    text = text.strip()
    if not (text.startswith("(") and text.endswith(")")):
        return None
    depth = 0
    for i, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and i != len(text) - 1:
                return None
    return text[1:-1]


class RegexExtractor:
    """
    Best-effort regex extraction of StructuralQuery.

    Works on SQL with string literals masked out, comments removed and
    MySQL backticks stripped. Results carry LOW confidence.

    Subclasses replace _prepare, _statement_type, _clauses or _join_spans
    to locate the same landmarks another way.
    """

    confidence = SQLConfidence.LOW

    def extract(self, sql: str, parse_error: str | None = None) -> StructuralQuery:
        if not sql or not sql.strip():
            return EMPTY_STRUCTURE

        masked, literals = self._prepare(sql)
        statement_type = self._statement_type(masked)

        if statement_type == "SELECT":
            return self._extract_select(masked, literals, parse_error)
        if statement_type in ("UPDATE", "DELETE", "INSERT"):
            return self._extract_modification(masked, literals, statement_type, parse_error)
        return StructuralQuery(
            statement_type=statement_type,
            confidence=self.confidence,
            parse_error=parse_error,
        )

    def _prepare(self, sql: str) -> tuple[str, list[str]]:
        """Masked SQL without comments or backticks, and the literal values."""
        cleaned = _BLOCK_COMMENT.sub(" ", sql)
        masked, literals = mask_string_literals(cleaned)
        return _LINE_COMMENT.sub(" ", masked).replace("`", ""), literals

    def _statement_type(self, masked: str) -> str:
        match = _LEADING_KEYWORD.match(masked)
        if not match:
            return "OTHER"
        keyword = match.group(1).upper()
        if keyword == "WITH":
            return "SELECT" if re.search(r"\bSELECT\b", masked, re.IGNORECASE) else "OTHER"
        if keyword in ("SELECT", "INSERT", "UPDATE", "DELETE"):
            return keyword
        return "OTHER"

    def _clauses(self, masked: str) -> dict[str, str]:
        """Text of each top-level clause, keyed by normalized keyword (first wins)."""
        matches = _top_level(_CLAUSE_KEYWORDS, masked)
        clauses: dict[str, str] = {}
        for i, match in enumerate(matches):
            name = " ".join(match.group(1).upper().split())
            end = matches[i + 1].start() if i + 1 < len(matches) else len(masked)
            if name == "UNION":
                break
            clauses.setdefault(name, masked[match.end():end])
        return clauses

    def _extract_select(
        self,
        masked: str,
        literals: list[str],
        parse_error: str | None,
    ) -> StructuralQuery:
        clauses = self._clauses(masked)
        references: list[ColumnReference] = []

        select_text = clauses.get("SELECT", "")
        select_refs = self._qualified_refs(select_text, "select")
        references.extend(select_refs)
        select_qualifiers = tuple(dict.fromkeys(ref.qualifier for ref in select_refs if ref.qualifier))

        from_tables, joins, join_refs = self._parse_from(clauses.get("FROM", ""), literals)
        references.extend(join_refs)

        where_text = clauses.get("WHERE")
        conditions: tuple[WhereCondition, ...] = ()
        if where_text is not None:
            conditions = tuple(self._parse_conditions(where_text, literals))
            references.extend(self._qualified_refs(where_text, "where"))

        group_text = clauses.get("GROUP BY")
        group_columns: list[str] = []
        if group_text is not None:
            references.extend(self._qualified_refs(group_text, "group"))
            for item in _split_top_level(group_text):
                match = _ORDER_ITEM.match(item)
                if match:
                    group_columns.append(match.group("column"))

        having_text = clauses.get("HAVING")
        if having_text is not None:
            references.extend(self._qualified_refs(having_text, "having"))

        order_text = clauses.get("ORDER BY")
        order_items: list[OrderByItem] = []
        if order_text is not None:
            references.extend(self._qualified_refs(order_text, "order"))
            for item in _split_top_level(order_text):
                match = _ORDER_ITEM.match(item)
                if match:
                    order_items.append(OrderByItem(
                        column=match.group("column"),
                        alias=match.group("alias"),
                        direction=(match.group("dir") or "ASC").upper(),
                    ))

        aggregations = tuple(dict.fromkeys(
            m.group(1).upper() for m in _AGGREGATE_CALL.finditer(masked)
        ))

        has_limit, has_offset, limit_value = self._limit_facts(masked)

        main_table = from_tables[0] if from_tables else None

        return StructuralQuery(
            statement_type="SELECT",
            main_table=main_table,
            from_tables=tuple(from_tables),
            joins=tuple(joins),
            where_conditions=conditions,
            select_qualifiers=select_qualifiers,
            order_by=tuple(order_items),
            group_by_columns=tuple(group_columns),
            aggregation_functions=aggregations,
            like_patterns=self._like_patterns(masked, literals),
            column_references=tuple(references),
            has_where=where_text is not None,
            has_group_by=group_text is not None,
            has_order_by=order_text is not None,
            has_limit=has_limit,
            has_offset=has_offset,
            limit_value=limit_value,
            has_distinct=bool(_DISTINCT.search(masked)),
            has_subquery=bool(_SUBQUERY.search(masked)),
            confidence=self.confidence,
            parse_error=parse_error,
        )

    def _extract_modification(
        self,
        masked: str,
        literals: list[str],
        statement_type: str,
        parse_error: str | None,
    ) -> StructuralQuery:
        if statement_type == "UPDATE":
            table_match = re.match(
                r"^\s*UPDATE\s+(?:LOW_PRIORITY\s+|IGNORE\s+)*(?P<rest>.*)$",
                masked, re.IGNORECASE | re.DOTALL,
            )
        elif statement_type == "DELETE":
            table_match = re.match(
                r"^\s*DELETE\s+(?:\w+\s+)?FROM\s+(?P<rest>.*)$",
                masked, re.IGNORECASE | re.DOTALL,
            )
        else:
            table_match = re.match(
                r"^\s*INSERT\s+(?:IGNORE\s+)?INTO\s+(?P<rest>.*)$",
                masked, re.IGNORECASE | re.DOTALL,
            )

        main_table = None
        if table_match:
            main_table = self._table_ref(table_match.group("rest"))

        clauses = self._clauses(masked)
        where_text = clauses.get("WHERE")
        conditions: tuple[WhereCondition, ...] = ()
        references: list[ColumnReference] = []
        if where_text is not None:
            conditions = tuple(self._parse_conditions(where_text, literals))
            references.extend(self._qualified_refs(where_text, "where"))

        has_limit, has_offset, limit_value = self._limit_facts(masked)

        return StructuralQuery(
            statement_type=statement_type,
            main_table=main_table,
            from_tables=(main_table,) if main_table else (),
            where_conditions=conditions,
            like_patterns=self._like_patterns(masked, literals),
            column_references=tuple(references),
            has_where=where_text is not None,
            has_limit=has_limit,
            has_offset=has_offset,
            limit_value=limit_value,
            has_subquery=bool(_SUBQUERY.search(masked)),
            confidence=self.confidence,
            parse_error=parse_error,
        )

    def _table_ref(self, text: str) -> TableRef | None:
        text = text.strip()
        if text.startswith("("):
            alias_match = re.search(r"\)\s*(?:AS\s+)?([A-Za-z_]\w*)\s*$", text, re.IGNORECASE)
            alias = alias_match.group(1) if alias_match else None
            if alias and alias.upper() in RESERVED_AFTER_TABLE:
                alias = None
            return TableRef("(subquery)", alias)
        match = _TABLE_WITH_ALIAS.match(text)
        if not match:
            return None
        table = match.group("table").strip('"')
        alias = match.group("alias")
        if alias and alias.upper() in RESERVED_AFTER_TABLE:
            alias = None
        return TableRef(table, alias)

    def _parse_from(
        self,
        from_text: str,
        literals: list[str],
    ) -> tuple[list[TableRef], list[JoinInfo], list[ColumnReference]]:
        spans = self._join_spans(from_text)
        head = from_text[:spans[0][0]] if spans else from_text

        from_tables = [
            ref for ref in (self._table_ref(part) for part in _split_top_level(head))
            if ref is not None
        ]

        joins: list[JoinInfo] = []
        references: list[ColumnReference] = []
        for index, (_, keyword_end, join_type) in enumerate(spans):
            end = spans[index + 1][0] if index + 1 < len(spans) else len(from_text)
            segment = from_text[keyword_end:end]

            on_split = re.split(r"\b(ON|USING)\b", segment, maxsplit=1, flags=re.IGNORECASE)
            table_part = on_split[0]
            condition_text = on_split[2] if len(on_split) == 3 else ""

            ref = self._table_ref(table_part)
            if ref is None:
                continue

            clause_id = f"join:{index}"
            join_refs = self._qualified_refs(condition_text, clause_id)
            references.extend(join_refs)
            joins.append(JoinInfo(
                type=join_type,
                table=ref.table,
                alias=ref.alias,
                on_conditions=tuple(self._parse_join_conditions(condition_text, clause_id, literals)),
                index=index,
            ))

        return from_tables, joins, references

    def _join_spans(self, from_text: str) -> list[tuple[int, int, str]]:
        """(start, end, join type) of each top-level JOIN keyword."""
        return [
            (m.start(), m.end(), (m.group(1) or m.group(2) or m.group(3) or "INNER").upper())
            for m in _top_level(_JOIN_KEYWORD, from_text)
        ]

    def _parse_join_conditions(
        self,
        text: str,
        clause_id: str,
        literals: list[str],
    ) -> list[JoinCondition]:
        conditions = []
        for part in self._split_boolean(text):
            match = _CONDITION.match(part)
            if not match:
                continue
            left = ColumnReference(match.group("alias"), match.group("column"), clause_id)
            operator = self._normalize_operator(match.group("op"))
            value = match.group("value").strip().rstrip(")").strip()
            right = None
            literal = None
            if _COLUMN_VALUE.match(value) and value.upper() not in ("NULL", "TRUE", "FALSE"):
                qualifier, _, column = value.rpartition(".")
                right = ColumnReference(qualifier or None, column, clause_id)
            else:
                literal = self._classify_value(value, literals)[1]
            conditions.append(JoinCondition(left=left, operator=operator, right=right, value=literal))
        return conditions

    def _split_boolean(self, text: str) -> list[str]:
        """Split a boolean expression at top-level AND/OR, unwrapping groups."""
        text = text.strip()
        if not text:
            return []
        inner = _strip_wrapping_parens(text)
        if inner is not None:
            return self._split_boolean(inner)

        parts: list[str] = []
        start = 0
        pending_between = False
        for match in _top_level(_BOOL_SPLIT, text):
            word = match.group(1).upper()
            if word == "BETWEEN":
                pending_between = True
                continue
            if word == "AND" and pending_between:
                pending_between = False
                continue
            parts.append(text[start:match.start()])
            start = match.end()
        parts.append(text[start:])

        result: list[str] = []
        for part in parts:
            part = part.strip()
            if not part:
                continue
            if _strip_wrapping_parens(part) is not None:
                result.extend(self._split_boolean(part))
            else:
                result.append(part)
        return result

    def _parse_conditions(self, text: str, literals: list[str]) -> list[WhereCondition]:
        conditions = []
        for part in self._split_boolean(text):
            match = _CONDITION.match(part)
            if not match:
                continue
            operator = self._normalize_operator(match.group("op"))
            raw_value = match.group("value").strip()
            if operator in ("IS", "IS NOT"):
                if raw_value.upper().startswith("NULL"):
                    operator = f"{operator} NULL"
                    kind, value = "null", None
                else:
                    kind, value = self._classify_value(raw_value, literals)
            else:
                kind, value = self._classify_value(raw_value, literals)
            conditions.append(WhereCondition(
                column=match.group("column"),
                operator=operator,
                value=value,
                value_kind=kind,
                alias=match.group("alias"),
            ))
        return conditions

    @staticmethod
    def _normalize_operator(op: str) -> str:
        op = " ".join(op.upper().split())
        return "<>" if op == "!=" else op

    def _classify_value(self, raw: str, literals: list[str]) -> tuple[str, str | None]:
        value = raw.strip()
        if value.startswith("("):
            if _SUBQUERY.match(value):
                return "subquery", None
            return "list", None
        # Unbalanced closing parens from an enclosing group
        while value.endswith(")") and value.count("(") < value.count(")"):
            value = value[:-1].rstrip()
        literal_match = _MASKED_LITERAL.fullmatch(value)
        if literal_match:
            return "string", literals[int(literal_match.group(1))]
        if _PLACEHOLDER.match(value):
            return "placeholder", "?"
        if _NUMBER.match(value):
            return "number", value
        upper = value.upper()
        if upper == "NULL":
            return "null", None
        if upper in ("TRUE", "FALSE"):
            return "boolean", upper.lower()
        if _COLUMN_VALUE.match(value):
            return "column", value
        return "expression", None

    def _qualified_refs(self, text: str, clause: str) -> list[ColumnReference]:
        return [
            ColumnReference(m.group(1), m.group(2), clause)
            for m in _QUALIFIED_REF.finditer(text)
        ]

    def _like_patterns(self, masked: str, literals: list[str]) -> tuple[str, ...]:
        return tuple(literals[int(m.group(1))] for m in _LIKE_LITERAL.finditer(masked))

    def _limit_facts(self, masked: str) -> tuple[bool, bool, int | None]:
        matches = _top_level(_LIMIT, masked)
        has_offset = bool(_top_level(_OFFSET, masked))
        if not matches:
            return False, has_offset, None
        match = matches[-1]
        limit_token = match.group(1)
        if match.group(2) is not None:
            # MySQL LIMIT offset, count
            has_offset = True
            limit_token = match.group(2)
        limit_value = int(limit_token) if limit_token.isdigit() else None
        return True, has_offset, limit_value


# ── Token extractor ──────────────────────────────────────────────────────

_TOKEN_CLAUSES = frozenset({
    "SELECT", "FROM", "WHERE", "GROUP BY", "HAVING", "ORDER BY", "LIMIT",
    "OFFSET", "FOR UPDATE", "UNION", "SET", "VALUES", "RETURNING",
})
_JOIN_TYPES = ("LEFT", "RIGHT", "FULL", "CROSS", "INNER")


def _positioned_tokens(text: str) -> list[tuple[Any, str, int, int]]:
    """(ttype, value, offset, paren depth) for each sqlparse token."""
    result = []
    offset = 0
    depth = 0
    for ttype, value in tokenize(text):
        if ttype in T.Punctuation and value == ")":
            depth = max(0, depth - 1)
        result.append((ttype, value, offset, depth))
        if ttype in T.Punctuation and value == "(":
            depth += 1
        offset += len(value)
    return result


def _keyword(ttype: Any, value: str) -> str | None:
    if ttype in T.Keyword:
        return " ".join(value.upper().split())
    return None


class TokenExtractor(RegexExtractor):
    """
    StructuralQuery from the sqlparse token stream.

    sqlparse lexes any dialect without rejecting it, so clause keywords,
    joins, comments and literals are found by token type instead of by
    pattern. Expression details (conditions, ORDER BY items) still go
    through the RegexExtractor parsers on the clause text. Results carry
    MEDIUM confidence.
    """

    confidence = SQLConfidence.MEDIUM

    def _prepare(self, sql: str) -> tuple[str, list[str]]:
        literals: list[str] = []
        out: list[str] = []
        for ttype, value in tokenize(sql):
            if ttype in T.Comment:
                out.append(" ")
            elif ttype in T.String.Single:
                literals.append(_unquote(value))
                out.append(f"'@{len(literals) - 1}'")
            elif ttype in T.Name and value.startswith("`"):
                out.append(value.strip("`"))
            else:
                out.append(value)
        return "".join(out), literals

    def _statement_type(self, masked: str) -> str:
        statements = sqlparse.parse(masked)
        if statements:
            statement_type = statements[0].get_type()
            if statement_type in ("SELECT", "INSERT", "UPDATE", "DELETE"):
                return statement_type
        return super()._statement_type(masked)

    def _clauses(self, masked: str) -> dict[str, str]:
        tokens = _positioned_tokens(masked)
        starts: list[tuple[str, int, int]] = []
        for index, (ttype, value, offset, depth) in enumerate(tokens):
            keyword = _keyword(ttype, value)
            if keyword is None or depth != 0:
                continue
            if keyword.startswith("UNION"):
                keyword = "UNION"
            elif keyword == "FOR" and self._next_keyword(tokens, index) == "UPDATE":
                keyword = "FOR UPDATE"
            elif keyword not in _TOKEN_CLAUSES:
                continue
            starts.append((keyword, offset, offset + len(value)))

        clauses: dict[str, str] = {}
        for i, (name, _, body_start) in enumerate(starts):
            if name == "UNION":
                break
            end = starts[i + 1][1] if i + 1 < len(starts) else len(masked)
            clauses.setdefault(name, masked[body_start:end])
        return clauses

    def _join_spans(self, from_text: str) -> list[tuple[int, int, str]]:
        spans = []
        for ttype, value, offset, depth in _positioned_tokens(from_text):
            keyword = _keyword(ttype, value)
            if keyword is None or depth != 0 or not keyword.endswith("JOIN"):
                continue
            words = keyword.replace("_", " ").split()
            join_type = next((w for w in _JOIN_TYPES if w in words), "INNER")
            spans.append((offset, offset + len(value), join_type))
        return spans

    @staticmethod
    def _next_keyword(tokens: list[tuple[Any, str, int, int]], index: int) -> str | None:
        for ttype, value, _, _ in tokens[index + 1:]:
            if ttype in T.Whitespace or ttype in T.Newline:
                continue
            return _keyword(ttype, value)
        return None
