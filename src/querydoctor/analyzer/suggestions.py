"""
Suggestion rendering sink.

Analyzers attach a Suggestion (template key + context) to each issue and
never format text themselves. The renderer turns a suggestion into a
plain-text remediation hint using str.format templates. Unknown keys and
missing context values degrade to a generic line instead of raising.
"""

from __future__ import annotations

import logging
from typing import Any

from querydoctor.analyzer.models import Suggestion

logger = logging.getLogger(__name__)


TEMPLATES: dict[str, str] = {
    # Performance
    "Performance/n_plus_one": (
        "The same query ran {count} times. Load the {relation} relation of {table} "
        "eagerly with a JOIN (fetch join) or batch the lookups with WHERE ... IN (...)."
    ),
    "Performance/lazy_loading": (
        "{count} lazy loads of {entity}. Fetch-join {relation} in the query that "
        "loads the parent entities, or use a batch fetch."
    ),
    "Performance/frequent_query": (
        "Query executed {count} times: {signature}. Cache the result or hoist the "
        "query out of the loop."
    ),
    "Performance/slow_query": (
        "Query took {execution_ms}ms. Check the execution plan with EXPLAIN. {hints}"
    ),
    "Performance/missing_index": (
        "Full scan of {table} examined {rows_scanned} rows. Consider:\n{index_sql}"
    ),
    "Performance/ineffective_like": (
        "LIKE '{pattern}' starts with a wildcard, so no B-tree index can be used. "
        "Use a prefix search or a full-text index."
    ),
    "Performance/join_too_many": (
        "Query uses {join_count} joins. Split it, or load associations separately."
    ),
    "Performance/join_unused": (
        "Join on {table} (alias {alias}) is never referenced. Remove it."
    ),
    "Performance/left_join_with_not_null": (
        "LEFT JOIN {table} {alias} is filtered with {alias}.{field} IS NOT NULL, "
        "which makes it an INNER JOIN. Write INNER JOIN."
    ),
    "Performance/setMaxResults_with_collection_join": (
        "LIMIT applies to SQL rows, not to {entity_hint} entities, when a collection "
        "is fetch-joined. Paginate with a paginator that counts distinct roots, or "
        "load the collection in a second query."
    ),
    "Performance/partial_collection_load": (
        "{table} rows are loaded by {relation}_id with a LIMIT. Use a dedicated "
        "repository query instead of slicing the collection."
    ),
    "Performance/order_by_without_limit": (
        "ORDER BY {order_by} without LIMIT sorted {rows} rows. Add a LIMIT or "
        "paginate."
    ),
    "Performance/find_all": (
        "Unfiltered SELECT on {table} returned {rows} rows. Add criteria or paginate."
    ),
    "Performance/hydration": (
        "Query returned {rows} rows. Hydrating that many entities is expensive: "
        "select scalar fields, paginate, or iterate in batches."
    ),
    "Performance/flush_in_loop": (
        "flush() ran {flush_count} times with about {avg_operations} writes each. "
        "Persist inside the loop and flush once after it, or every few hundred rows."
    ),
    "Performance/entity_manager_clear": (
        "{count} writes on {table} keep every entity managed. Call clear() after "
        "each flushed batch."
    ),
    # Security
    "Security/sql_injection": (
        "Raw SQL contains {patterns}. Use bound parameters instead of concatenation."
    ),
    "Security/dql_injection": (
        "Query shows signs of string concatenation ({indicators}). Bind every value "
        "as a parameter."
    ),
    # Query builder
    "Integrity/query_builder_incorrect_null": "{fields}: {fix}",
    "Integrity/query_builder_empty_in": "{fix}",
    "Integrity/query_builder_missing_params": "Missing parameters {missing}: {fix}",
    "Integrity/query_builder_unescaped_like": "{fix}",
    "Integrity/division_by_zero": (
        "Replace {unsafe_division} with {safe_division} so a zero {divisor} "
        "yields NULL instead of an error."
    ),
    # Transactions
    "Integrity/transaction_nested": (
        "Transaction {transaction} was opened at depth {depth}. Use a savepoint or "
        "let the outer transaction own the boundary."
    ),
    "Integrity/transaction_multiple_flush": (
        "Transaction {transaction} ran {writes} writes. Flush once at the end of "
        "the unit of work."
    ),
    "Integrity/transaction_unclosed": (
        "Transaction {transaction} is never committed or rolled back. Wrap the work "
        "in try/commit/rollback."
    ),
    "Integrity/transaction_too_long": (
        "Transaction {transaction} held locks for {duration_ms}ms. Keep slow reads "
        "and remote calls outside the transaction."
    ),
    # Mapping integrity
    "Integrity/cascade_all": (
        "{entity}.{field} uses cascade=all towards {target}. List the cascade "
        "operations you need explicitly (usually persist)."
    ),
    "Integrity/orphan_removal_without_cascade_remove": (
        "{entity}.{field} has orphanRemoval but no cascade remove. Add 'remove' to "
        "the cascade list so removing {entity} also removes its {target} children."
    ),
    "Integrity/on_delete_cascade_mismatch": (
        "{entity}.{field}: ORM cascade ({orm_cascade}) and database ON DELETE "
        "({on_delete}) disagree. Align them."
    ),
    "Integrity/float_for_money": (
        "{entity}.{field} stores money as {column_type}. Use decimal(19, 4) or an "
        "integer amount of minor units."
    ),
    "Integrity/decimal_precision": (
        "{entity}.{field} is decimal({precision}, {scale}). Use "
        "decimal({recommended_precision}, {recommended_scale})."
    ),
}


class _Missing(dict):
    """format_map mapping that renders unknown names as {name}."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class SuggestionRenderer:
    """
    Renders Suggestions into text.

    Example:
        renderer = SuggestionRenderer()
        renderer.render(issue.suggestion)
    """

    def __init__(self, templates: dict[str, str] | None = None) -> None:
        self.templates = dict(TEMPLATES)
        if templates:
            self.templates.update(templates)

    def has_template(self, template_key: str) -> bool:
        return template_key in self.templates

    def render(self, suggestion: Suggestion | None) -> str:
        if suggestion is None:
            return ""
        template = self.templates.get(suggestion.template_key)
        if template is None:
            return self._generic(suggestion)
        try:
            return template.format_map(_Missing(_stringify(suggestion.context)))
        except (ValueError, IndexError, AttributeError, TypeError) as e:
            logger.debug("Template %s failed to render: %s", suggestion.template_key, e)
            return self._generic(suggestion)

    @staticmethod
    def _generic(suggestion: Suggestion) -> str:
        if not suggestion.context:
            return suggestion.template_key
        pairs = ", ".join(f"{k}={v}" for k, v in sorted(suggestion.context.items()))
        return f"{suggestion.template_key}: {pairs}"


def _stringify(context: dict[str, Any]) -> dict[str, Any]:
    # Lists read better as comma-separated text
    return {
        key: ", ".join(str(v) for v in value) if isinstance(value, (list, tuple)) else value
        for key, value in context.items()
    }
