"""Tests for analyzer registration."""

import pytest

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import IssueCategory
from querydoctor.analyzer.registry import (
    RuleRegistry,
    get_registry,
    reset_registry,
    restore_builtin_rules,
)
from querydoctor.analyzer.rules import BUILTIN_RULES, DqlInjection, SlowQuery, SqlInjection
from querydoctor.analyzer.rules.base import Rule


class DuplicateSlowQuery(Rule):
    rule_id = "slow_query"

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.empty()


class TestGlobalRegistry:
    """Built-in analyzers register on import, in a fixed order."""

    def test_builtin_ids_in_registration_order(self):
        assert get_registry().all_ids()[:len(BUILTIN_RULES)] == [r.rule_id for r in BUILTIN_RULES]

    def test_twenty_four_builtin_analyzers(self):
        ids = {r.rule_id for r in BUILTIN_RULES}

        assert len(ids) == 24
        assert {"n_plus_one", "missing_index", "float_for_money", "decimal_precision"} <= ids
        assert {"flush_in_loop", "entity_manager_clear", "division_by_zero", "transaction_boundary"} <= ids

    def test_by_category(self):
        security = get_registry().by_category(IssueCategory.SECURITY)

        assert security == [SqlInjection, DqlInjection]

    def test_reset_and_restore(self):
        try:
            reset_registry()
            assert len(get_registry()) == 0
        finally:
            restore_builtin_rules()

        assert get_registry().all_ids()[:len(BUILTIN_RULES)] == [r.rule_id for r in BUILTIN_RULES]


class TestRuleRegistry:
    """Isolated registries for tests and hosts."""

    def test_register_and_get(self):
        registry = RuleRegistry()
        registry.register(SlowQuery)

        assert registry.get("slow_query") is SlowQuery
        assert "slow_query" in registry
        assert registry.get("missing") is None

    def test_duplicate_id_from_other_class_raises(self):
        registry = RuleRegistry()
        registry.register(SlowQuery)

        with pytest.raises(ValueError, match="already registered"):
            registry.register(DuplicateSlowQuery)

    def test_reregistering_same_class_is_allowed(self):
        registry = RuleRegistry()
        registry.register(SlowQuery)
        registry.register(SlowQuery)

        assert len(registry) == 1

    def test_filter(self):
        registry = RuleRegistry()
        registry.register_many(BUILTIN_RULES)

        included = registry.filter(include={"slow_query", "sql_injection"})
        excluded = registry.filter(exclude={"slow_query"})

        assert included == [SlowQuery, SqlInjection]
        assert SlowQuery not in excluded
        assert len(excluded) == len(BUILTIN_RULES) - 1

    def test_unregister(self):
        registry = RuleRegistry()
        registry.register(SlowQuery)

        assert registry.unregister("slow_query")
        assert not registry.unregister("slow_query")
        assert registry.all() == []
