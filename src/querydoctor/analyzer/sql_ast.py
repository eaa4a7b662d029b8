"""
SQL structure extraction using pglast (PostgreSQL's actual parser).

Provides accurate structure for:
- JOIN trees, including parenthesized and nested joins
- WHERE conditions with their operators and operand kinds
- ORDER BY / GROUP BY / LIMIT / DISTINCT facts
- Subqueries anywhere in the statement

ORM-generated SQL often uses `?` or `:name` placeholders and MySQL
backticks, which the PostgreSQL grammar rejects. Those are rewritten to
`$n` parameters and double-quoted identifiers before parsing. Anything the
grammar still rejects goes to the sqlparse token extractor, and to the
regex extractor if even that fails.

Design principle: "Use the source of truth"
If the grammar can parse it, trust the grammar. Never mix results from the
extractors in one StructuralQuery.

Usage:
    from querydoctor.analyzer.sql_ast import SQLStructureExtractor

    extractor = SQLStructureExtractor()
    structure = extractor.extract("SELECT * FROM orders o WHERE o.status = ?")

    if structure.confidence == SQLConfidence.HIGH:
        # Grammar-backed structure
        ...
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator

from querydoctor.analyzer.cache import ContentCache
from querydoctor.analyzer.sql_parser import (
    AGGREGATE_FUNCTIONS,
    EMPTY_STRUCTURE,
    ColumnReference,
    JoinCondition,
    JoinInfo,
    OrderByItem,
    RegexExtractor,
    SQLConfidence,
    StructuralQuery,
    TableRef,
    TokenExtractor,
    WhereCondition,
)
from querydoctor.exceptions import ParseError

logger = logging.getLogger(__name__)

# pglast is an optional dependency (the "grammar" extra)
_PGLAST_AVAILABLE = False
try:
    from pglast import ast, parse_sql
    from pglast.enums import A_Expr_Kind, BoolExprType, JoinType, NullTestType, SortByDir
    _PGLAST_AVAILABLE = True
except ImportError:
    ast = None  # type: ignore[assignment]
    parse_sql = None  # type: ignore[assignment]

_LIKE_OPERATORS = {"~~": "LIKE", "!~~": "NOT LIKE", "~~*": "ILIKE", "!~~*": "NOT ILIKE"}

_STATEMENT_TYPES = {
    "SelectStmt": "SELECT",
    "InsertStmt": "INSERT",
    "UpdateStmt": "UPDATE",
    "DeleteStmt": "DELETE",
}


_MYSQL_LIMIT = re.compile(r"\bLIMIT\s+(\$\d+|\d+)\s*,\s*(\$\d+|\d+)", re.IGNORECASE)


def _rewrite_mysql_limit(sql: str) -> str:
    def _sub(match: re.Match[str]) -> str:
        # Inside a string literal
        if sql.count("'", 0, match.start()) % 2:
            return match.group(0)
        return f"LIMIT {match.group(2)} OFFSET {match.group(1)}"

    return _MYSQL_LIMIT.sub(_sub, sql)


def prepare_for_grammar(sql: str) -> str:
    """
    Rewrite driver placeholders and MySQL quoting for the PostgreSQL grammar.

    `?`, `:name` and `%s` outside literals, identifiers and comments become
    `$1`, `$2`, ... Backtick identifiers become double-quoted identifiers
    and MySQL `LIMIT offset, count` becomes `LIMIT count OFFSET offset`.
    """
    out: list[str] = []
    i = 0
    n = len(sql)
    param = 0

    while i < n:
        char = sql[i]

        if char == "'" or char == '"':
            end = i + 1
            while end < n:
                if sql[end] == char:
                    if end + 1 < n and sql[end + 1] == char:
                        end += 2
                        continue
                    break
                end += 1
            out.append(sql[i:end + 1])
            i = end + 1
            continue

        if char == "`":
            end = sql.find("`", i + 1)
            if end == -1:
                end = n
            out.append('"' + sql[i + 1:end] + '"')
            i = end + 1
            continue

        if sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            out.append(sql[i:end])
            i = end
            continue

        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append(sql[i:end])
            i = end
            continue

        if char == "?":
            param += 1
            out.append(f"${param}")
            i += 1
            continue

        if char == "%" and i + 1 < n and sql[i + 1] == "s":
            param += 1
            out.append(f"${param}")
            i += 2
            continue

        if (
            char == ":"
            and i + 1 < n
            and (sql[i + 1].isalpha() or sql[i + 1] == "_")
            and (i == 0 or sql[i - 1] != ":")
        ):
            end = i + 1
            while end < n and (sql[end].isalnum() or sql[end] == "_"):
                end += 1
            param += 1
            out.append(f"${param}")
            i = end
            continue

        out.append(char)
        i += 1

    return _rewrite_mysql_limit("".join(out))


def _tag(node: Any) -> str:
    return type(node).__name__


def _string_value(node: Any) -> str | None:
    """Text of a String node across pglast versions (sval / str)."""
    for attr in ("sval", "str"):
        value = getattr(node, attr, None)
        if isinstance(value, str):
            return value
    return None


def _children(node: Any) -> Iterator[Any]:
    for attr in getattr(type(node), "__slots__", ()):
        value = getattr(node, attr, None)
        if isinstance(value, (ast.Node, tuple, list)):
            yield value


def _flatten_bool(node: Any) -> Iterator[Any]:
    """Yield the leaf predicates of an AND/OR tree."""
    if node is None:
        return
    if _tag(node) == "BoolExpr" and node.boolop in (BoolExprType.AND_EXPR, BoolExprType.OR_EXPR):
        for arg in node.args or ():
            yield from _flatten_bool(arg)
        return
    yield node


def _describe_value(node: Any) -> tuple[str, str | None]:
    """Classify an operand: (value_kind, value text)."""
    if node is None:
        return "expression", None
    if isinstance(node, (tuple, list)):
        return "list", None

    tag = _tag(node)
    if tag == "ParamRef":
        return "placeholder", "?"
    if tag == "A_Const":
        return _describe_const(node)
    if tag == "TypeCast":
        return _describe_value(node.arg)
    if tag == "ColumnRef":
        names = _column_names(node)
        return "column", ".".join(names) if names else None
    if tag == "SubLink":
        return "subquery", None
    if tag == "A_ArrayExpr":
        return "list", None
    return "expression", None


def _describe_const(node: Any) -> tuple[str, str | None]:
    if getattr(node, "isnull", False):
        return "null", None
    value = getattr(node, "val", None)
    tag = _tag(value)
    if value is None or tag == "Null":
        return "null", None
    if tag == "Integer":
        return "number", str(value.ival)
    if tag == "Float":
        return "number", getattr(value, "fval", None) or _string_value(value)
    if tag == "Boolean":
        return "boolean", "true" if value.boolval else "false"
    if tag in ("String", "BitString"):
        return "string", _string_value(value) or getattr(value, "bsval", None)
    return "expression", None


def _column_names(node: Any) -> list[str]:
    names = []
    for field in node.fields or ():
        if _tag(field) == "A_Star":
            names.append("*")
        else:
            value = _string_value(field)
            if value:
                names.append(value)
    return names


def _operator_name(node: Any) -> str:
    """Readable operator for an A_Expr (LIKE instead of ~~, IN instead of =)."""
    opname = ""
    if node.name:
        opname = _string_value(node.name[-1]) or ""
    kind = node.kind

    if kind == A_Expr_Kind.AEXPR_IN:
        return "IN" if opname == "=" else "NOT IN"
    if kind in (A_Expr_Kind.AEXPR_BETWEEN, A_Expr_Kind.AEXPR_BETWEEN_SYM):
        return "BETWEEN"
    if kind in (A_Expr_Kind.AEXPR_NOT_BETWEEN, A_Expr_Kind.AEXPR_NOT_BETWEEN_SYM):
        return "NOT BETWEEN"
    if opname in _LIKE_OPERATORS:
        return _LIKE_OPERATORS[opname]
    return opname.upper()


class _StatementWalker:
    """
    Collects structure from one statement AST.

    Expression walks never descend into subqueries: their columns and
    joins belong to a different scope.
    """

    def __init__(self) -> None:
        self.references: list[ColumnReference] = []
        self.conditions: list[WhereCondition] = []
        self.like_patterns: list[str] = []
        self.aggregations: dict[str, None] = {}
        self.from_tables: list[TableRef] = []
        self.joins: list[JoinInfo] = []
        self.has_subquery = False
        self.has_distinct = False

    # ── expressions ──

    def walk_expr(self, node: Any, clause: str) -> None:
        if node is None:
            return
        if isinstance(node, (tuple, list)):
            for item in node:
                self.walk_expr(item, clause)
            return
        if not isinstance(node, ast.Node):
            return

        tag = _tag(node)
        if tag == "ColumnRef":
            ref = self._reference(node, clause)
            if ref is not None:
                self.references.append(ref)
            return
        if tag in ("SubLink", "RangeSubselect"):
            self.has_subquery = True
            self.walk_expr(getattr(node, "testexpr", None), clause)
            return
        if tag == "SelectStmt":
            self.has_subquery = True
            return
        if tag == "FuncCall":
            name = _string_value(node.funcname[-1]) if node.funcname else None
            if name and name.upper() in AGGREGATE_FUNCTIONS:
                self.aggregations.setdefault(name.upper(), None)
            if getattr(node, "agg_distinct", False):
                self.has_distinct = True
        if tag == "A_Expr" and _operator_name(node) in ("LIKE", "NOT LIKE", "ILIKE", "NOT ILIKE"):
            kind, value = _describe_value(node.rexpr)
            if kind == "string" and value is not None:
                self.like_patterns.append(value)

        for child in _children(node):
            self.walk_expr(child, clause)

    def _reference(self, node: Any, clause: str) -> ColumnReference | None:
        names = _column_names(node)
        if not names:
            return None
        qualifier = names[-2] if len(names) >= 2 else None
        return ColumnReference(qualifier, names[-1], clause)

    # ── WHERE ──

    def walk_where(self, node: Any) -> None:
        if node is None:
            return
        self.walk_expr(node, "where")
        for predicate in _flatten_bool(node):
            condition = self._condition(predicate)
            if condition is not None:
                self.conditions.append(condition)

    def _condition(self, node: Any) -> WhereCondition | None:
        tag = _tag(node)

        if tag == "NullTest":
            if _tag(node.arg) != "ColumnRef":
                return None
            ref = self._reference(node.arg, "where")
            if ref is None:
                return None
            operator = "IS NOT NULL" if node.nulltesttype == NullTestType.IS_NOT_NULL else "IS NULL"
            return WhereCondition(
                column=ref.column, operator=operator, value=None,
                value_kind="null", alias=ref.qualifier,
            )

        if tag == "SubLink":
            testexpr = getattr(node, "testexpr", None)
            if testexpr is None or _tag(testexpr) != "ColumnRef":
                return None
            ref = self._reference(testexpr, "where")
            if ref is None:
                return None
            return WhereCondition(
                column=ref.column, operator="IN", value=None,
                value_kind="subquery", alias=ref.qualifier,
            )

        if tag != "A_Expr":
            return None

        column_node, value_node = node.lexpr, node.rexpr
        if _tag(column_node) != "ColumnRef" and _tag(value_node) == "ColumnRef":
            column_node, value_node = value_node, column_node
        if _tag(column_node) != "ColumnRef":
            return None

        ref = self._reference(column_node, "where")
        if ref is None:
            return None
        kind, value = _describe_value(value_node)
        return WhereCondition(
            column=ref.column,
            operator=_operator_name(node),
            value=value,
            value_kind=kind,
            alias=ref.qualifier,
        )

    # ── FROM / JOIN ──

    def walk_from(self, items: Any) -> None:
        for item in items or ():
            ref = self._from_item(item)
            if ref is not None:
                self.from_tables.append(ref)

    def _from_item(self, item: Any) -> TableRef | None:
        """Walk a FROM item, recording joins. Returns its leftmost table."""
        tag = _tag(item)

        if tag == "RangeVar":
            alias = item.alias.aliasname if item.alias is not None else None
            return TableRef(item.relname, alias)

        if tag == "RangeSubselect":
            self.has_subquery = True
            alias = item.alias.aliasname if item.alias is not None else None
            return TableRef("(subquery)", alias)

        if tag == "RangeFunction":
            alias = item.alias.aliasname if getattr(item, "alias", None) is not None else None
            return TableRef("(function)", alias)

        if tag == "JoinExpr":
            leftmost = self._from_item(item.larg)
            right = self._from_item(item.rarg)
            if right is not None:
                index = len(self.joins)
                clause_id = f"join:{index}"
                self.walk_expr(item.quals, clause_id)
                self.joins.append(JoinInfo(
                    type=self._join_type(item),
                    table=right.table,
                    alias=right.alias,
                    on_conditions=tuple(self._join_conditions(item.quals, clause_id)),
                    index=index,
                ))
            return leftmost

        return None

    @staticmethod
    def _join_type(item: Any) -> str:
        jointype = item.jointype
        if jointype == JoinType.JOIN_LEFT:
            return "LEFT"
        if jointype == JoinType.JOIN_RIGHT:
            return "RIGHT"
        if jointype == JoinType.JOIN_FULL:
            return "FULL"
        if item.quals is None and not item.usingClause and not item.isNatural:
            return "CROSS"
        return "INNER"

    def _join_conditions(self, quals: Any, clause_id: str) -> list[JoinCondition]:
        conditions = []
        for predicate in _flatten_bool(quals):
            if _tag(predicate) != "A_Expr":
                continue
            left = (
                self._reference(predicate.lexpr, clause_id)
                if _tag(predicate.lexpr) == "ColumnRef" else None
            )
            right = None
            value = None
            if _tag(predicate.rexpr) == "ColumnRef":
                right = self._reference(predicate.rexpr, clause_id)
            else:
                value = _describe_value(predicate.rexpr)[1]
            conditions.append(JoinCondition(
                left=left, operator=_operator_name(predicate), right=right, value=value,
            ))
        return conditions


class GrammarExtractor:
    """
    StructuralQuery from the pglast AST.

    Raises ParseError when the grammar rejects the SQL. Callers fall back
    to TokenExtractor.
    """

    def __init__(self) -> None:
        if not _PGLAST_AVAILABLE:
            raise RuntimeError("pglast is not installed. Install with: pip install querydoctor[grammar]")

    def extract(self, sql: str) -> StructuralQuery:
        prepared = prepare_for_grammar(sql)
        try:
            tree = parse_sql(prepared)
        except Exception as e:
            raise ParseError(f"Grammar rejected SQL: {e}", source=sql[:200]) from e

        if not tree:
            raise ParseError("Empty parse result", source=sql[:200])

        stmt = tree[0].stmt
        statement_type = _STATEMENT_TYPES.get(_tag(stmt), "OTHER")

        if statement_type == "SELECT":
            return self._select(stmt)
        if statement_type in ("UPDATE", "DELETE", "INSERT"):
            return self._modification(stmt, statement_type)
        return StructuralQuery(statement_type="OTHER", confidence=SQLConfidence.HIGH)

    def _select(self, stmt: Any) -> StructuralQuery:
        # UNION / INTERSECT / EXCEPT: describe the leftmost branch
        while stmt.larg is not None and not stmt.fromClause and not stmt.targetList:
            stmt = stmt.larg

        walker = _StatementWalker()
        walker.walk_expr(stmt.targetList, "select")
        walker.walk_from(stmt.fromClause)
        walker.walk_where(stmt.whereClause)
        walker.walk_expr(stmt.groupClause, "group")
        walker.walk_expr(stmt.havingClause, "having")

        group_columns: list[str] = []
        for item in stmt.groupClause or ():
            if _tag(item) == "ColumnRef":
                names = _column_names(item)
                if names:
                    group_columns.append(names[-1])

        order_items: list[OrderByItem] = []
        for sort_by in stmt.sortClause or ():
            walker.walk_expr(sort_by, "order")
            target = getattr(sort_by, "node", None)
            if target is not None and _tag(target) == "ColumnRef":
                names = _column_names(target)
                if names:
                    order_items.append(OrderByItem(
                        column=names[-1],
                        alias=names[-2] if len(names) >= 2 else None,
                        direction="DESC" if sort_by.sortby_dir == SortByDir.SORTBY_DESC else "ASC",
                    ))

        has_limit, limit_value = self._limit(stmt.limitCount)
        select_qualifiers = tuple(dict.fromkeys(
            ref.qualifier for ref in walker.references
            if ref.clause == "select" and ref.qualifier
        ))

        return StructuralQuery(
            statement_type="SELECT",
            main_table=walker.from_tables[0] if walker.from_tables else None,
            from_tables=tuple(walker.from_tables),
            joins=tuple(walker.joins),
            where_conditions=tuple(walker.conditions),
            select_qualifiers=select_qualifiers,
            order_by=tuple(order_items),
            group_by_columns=tuple(group_columns),
            aggregation_functions=tuple(walker.aggregations),
            like_patterns=tuple(walker.like_patterns),
            column_references=tuple(walker.references),
            has_where=stmt.whereClause is not None,
            has_group_by=bool(stmt.groupClause),
            has_order_by=bool(stmt.sortClause),
            has_limit=has_limit,
            has_offset=stmt.limitOffset is not None,
            limit_value=limit_value,
            has_distinct=stmt.distinctClause is not None or walker.has_distinct,
            has_subquery=walker.has_subquery,
            confidence=SQLConfidence.HIGH,
        )

    def _modification(self, stmt: Any, statement_type: str) -> StructuralQuery:
        walker = _StatementWalker()
        relation = stmt.relation
        alias = relation.alias.aliasname if relation.alias is not None else None
        main_table = TableRef(relation.relname, alias)

        if statement_type == "UPDATE":
            walker.walk_expr(stmt.targetList, "set")
            walker.walk_from(stmt.fromClause)
        elif statement_type == "DELETE":
            walker.walk_from(stmt.usingClause)
        else:
            select = stmt.selectStmt
            if select is not None and _tag(select) == "SelectStmt" and select.fromClause:
                walker.has_subquery = True

        where = getattr(stmt, "whereClause", None)
        walker.walk_where(where)

        return StructuralQuery(
            statement_type=statement_type,
            main_table=main_table,
            from_tables=(main_table,),
            where_conditions=tuple(walker.conditions),
            like_patterns=tuple(walker.like_patterns),
            column_references=tuple(walker.references),
            has_where=where is not None,
            has_subquery=walker.has_subquery,
            confidence=SQLConfidence.HIGH,
        )

    @staticmethod
    def _limit(node: Any) -> tuple[bool, int | None]:
        if node is None:
            return False, None
        kind, value = _describe_value(node)
        if kind == "null":
            # LIMIT ALL
            return False, None
        if kind == "number" and value is not None and value.lstrip("-").isdigit():
            return True, int(value)
        return True, None


class SQLStructureExtractor:
    """
    Structure extraction: grammar first, then sqlparse tokens, then regex.

    Every accessor goes through extract(), which is cached by a content
    hash of the SQL text. Nothing here raises on bad input: the worst case
    is an empty StructuralQuery.

    Example:
        extractor = SQLStructureExtractor(cache=ContentCache(capacity=5000))
        extractor.extract_joins("SELECT * FROM users u LEFT JOIN orders o ON o.user_id = u.id")
        # (JoinInfo(type='LEFT', table='orders', alias='o', ...),)
    """

    def __init__(
        self,
        cache: ContentCache[StructuralQuery] | None = None,
        use_grammar: bool = True,
    ) -> None:
        self.cache: ContentCache[StructuralQuery] = cache if cache is not None else ContentCache()
        self._grammar: GrammarExtractor | None = None
        self._tokens = TokenExtractor()
        self._regex = RegexExtractor()

        if use_grammar and _PGLAST_AVAILABLE:
            self._grammar = GrammarExtractor()
        elif use_grammar:
            logger.debug("pglast not installed, structure extraction uses the token extractor")

    @property
    def uses_grammar(self) -> bool:
        return self._grammar is not None

    def extract(self, sql: str) -> StructuralQuery:
        if not sql or not sql.strip():
            return EMPTY_STRUCTURE
        return self.cache.get_or_compute(sql, lambda: self._extract_uncached(sql))

    def _extract_uncached(self, sql: str) -> StructuralQuery:
        parse_error = None
        if self._grammar is not None:
            try:
                return self._grammar.extract(sql)
            except ParseError as e:
                logger.debug("Grammar parse failed, using token extractor: %s", e.message)
                parse_error = e.message
            except Exception as e:
                logger.debug("Grammar walk failed, using token extractor: %s", e)
                parse_error = str(e)

        try:
            return self._tokens.extract(sql, parse_error=parse_error)
        except Exception as e:
            logger.debug("Token extraction failed, using regex extractor: %s", e)
            parse_error = parse_error or str(e)

        try:
            return self._regex.extract(sql, parse_error=parse_error)
        except Exception as e:
            logger.warning("Regex extraction failed: %s", e)
            return StructuralQuery(confidence=SQLConfidence.LOW, parse_error=str(e))

    # ── tables and joins ──

    def extract_main_table(self, sql: str) -> TableRef | None:
        return self.extract(sql).main_table

    def extract_joins(self, sql: str) -> tuple[JoinInfo, ...]:
        return self.extract(sql).joins

    def extract_all_tables(self, sql: str) -> list[dict[str, str | None]]:
        """Every table with alias and source ("from" or "join")."""
        return [
            {"table": ref.table, "alias": ref.alias, "source": source}
            for ref, source in self.extract(sql).all_tables
        ]

    def has_join(self, sql: str) -> bool:
        return bool(self.extract(sql).joins)

    def count_joins(self, sql: str) -> int:
        return len(self.extract(sql).joins)

    def extract_join_on_conditions(self, sql: str, table_or_alias: str) -> tuple[JoinCondition, ...]:
        wanted = table_or_alias.lower()
        for join in self.extract(sql).joins:
            if join.table.lower() == wanted or (join.alias or "").lower() == wanted:
                return join.on_conditions
        return ()

    def extract_table_aliases_from_select(self, sql: str) -> list[str]:
        return list(self.extract(sql).select_qualifiers)

    def has_locale_constraint_in_join(self, sql: str) -> bool:
        return any(j.has_locale_constraint() for j in self.extract(sql).joins)

    def has_unique_join_constraint(self, sql: str) -> bool:
        return any(j.has_unique_constraint() for j in self.extract(sql).joins)

    def is_alias_used_in_query(
        self,
        sql: str,
        alias: str,
        exclude_join: JoinInfo | None = None,
    ) -> bool:
        """
        Whether alias is referenced outside the JOIN that introduced it.

        By default the ON clause of the join whose alias (or table, for
        unaliased joins) equals alias is excluded.
        """
        structure = self.extract(sql)
        join = exclude_join if exclude_join is not None else structure.join_for_alias(alias)
        exclude_clause = join.clause_id if join is not None else None
        return bool(structure.references_to(alias, exclude_clause))

    # ── WHERE ──

    def extract_where_columns(self, sql: str) -> list[str]:
        return list(self.extract(sql).where_columns)

    def extract_where_conditions(self, sql: str) -> list[WhereCondition]:
        return list(self.extract(sql).where_conditions)

    def has_complex_where_conditions(self, sql: str) -> bool:
        return len(self.extract(sql).where_conditions) > 1

    def find_is_not_null_field_on_alias(self, sql: str, alias: str) -> str | None:
        """First field with `alias.field IS NOT NULL` in WHERE, or None."""
        wanted = alias.lower()
        for condition in self.extract(sql).where_conditions:
            if (
                condition.operator == "IS NOT NULL"
                and condition.alias is not None
                and condition.alias.lower() == wanted
            ):
                return condition.column
        return None

    # ── aggregation / ordering / paging ──

    def extract_aggregation_functions(self, sql: str) -> list[str]:
        structure = self.extract(sql)
        if not structure.is_select:
            return []
        return list(structure.aggregation_functions)

    def extract_order_by_column_names(self, sql: str) -> list[str]:
        return list(self.extract(sql).order_by_column_names)

    def extract_group_by_columns(self, sql: str) -> list[str]:
        return list(self.extract(sql).group_by_columns)

    def has_subquery(self, sql: str) -> bool:
        return self.extract(sql).has_subquery

    def has_group_by(self, sql: str) -> bool:
        return self.extract(sql).has_group_by

    def has_order_by(self, sql: str) -> bool:
        return self.extract(sql).has_order_by

    def has_limit(self, sql: str) -> bool:
        return self.extract(sql).has_limit

    def has_offset(self, sql: str) -> bool:
        return self.extract(sql).has_offset

    def get_limit_value(self, sql: str) -> int | None:
        return self.extract(sql).limit_value

    def has_distinct(self, sql: str) -> bool:
        return self.extract(sql).has_distinct

    def has_leading_wildcard_like(self, sql: str) -> bool:
        return any(p.startswith("%") for p in self.extract(sql).like_patterns)


def is_pglast_available() -> bool:
    """Check if pglast is available."""
    return _PGLAST_AVAILABLE
