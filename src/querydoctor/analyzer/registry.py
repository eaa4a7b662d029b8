"""
Analyzer registry.

Analyzers are registered explicitly, by decorator, in one process-wide
registry. Nothing is discovered by scanning modules or reflection, so the
set of analyzers an orchestrator runs is always visible and testable:

- built-in analyzers register when querydoctor.analyzer.rules is imported
- hosts can register their own analyzers the same way
- tests can build an isolated RuleRegistry with only the rules they need
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, TypeVar

if TYPE_CHECKING:
    from querydoctor.analyzer.models import IssueCategory
    from querydoctor.analyzer.rules.base import Rule

T = TypeVar("T", bound="Rule")


class RuleRegistry:
    """
    Ordered mapping of rule_id -> analyzer class.

    Registration order is the order the orchestrator runs analyzers and
    merges their issues in.

    Example:
        @register_rule
        class NPlusOne(Rule):
            rule_id = "n_plus_one"
            ...

        rules = get_registry().filter(exclude={"find_all"})
    """

    def __init__(self) -> None:
        self._rules: dict[str, type[Rule]] = {}

    def register(self, rule_cls: type[T]) -> type[T]:
        """
        Register an analyzer class; usable as a decorator.

        Raises:
            ValueError: If another class already uses the same rule_id
        """
        rule_id = rule_cls.rule_id

        existing = self._rules.get(rule_id)
        if existing is not None and existing is not rule_cls:
            raise ValueError(
                f"Analyzer '{rule_id}' already registered by {existing.__module__}.{existing.__name__}. "
                f"Cannot register {rule_cls.__module__}.{rule_cls.__name__}"
            )

        self._rules[rule_id] = rule_cls
        return rule_cls

    def register_many(self, rule_classes: Iterable[type[Rule]]) -> None:
        for rule_cls in rule_classes:
            self.register(rule_cls)

    def unregister(self, rule_id: str) -> bool:
        """Remove an analyzer. Returns False if it was not registered."""
        if rule_id in self._rules:
            del self._rules[rule_id]
            return True
        return False

    def get(self, rule_id: str) -> type[Rule] | None:
        return self._rules.get(rule_id)

    def all(self) -> list[type[Rule]]:
        """All analyzer classes, in registration order."""
        return list(self._rules.values())

    def all_ids(self) -> list[str]:
        return list(self._rules.keys())

    def by_category(self, category: "IssueCategory") -> list[type[Rule]]:
        return [r for r in self._rules.values() if r.category == category]

    def filter(
        self,
        include: set[str] | None = None,
        exclude: set[str] | None = None,
    ) -> list[type[Rule]]:
        """
        Analyzer classes narrowed by id.

        Example:
            # Only the repetition analyzers
            registry.filter(include={"n_plus_one", "lazy_loading", "frequent_query"})
        """
        rules = self.all()

        if include is not None:
            rules = [r for r in rules if r.rule_id in include]

        if exclude is not None:
            rules = [r for r in rules if r.rule_id not in exclude]

        return rules

    def clear(self) -> None:
        self._rules.clear()

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules


_global_registry = RuleRegistry()


def get_registry() -> RuleRegistry:
    """The process-wide registry the built-in analyzers register into."""
    return _global_registry


def register_rule(rule_cls: type[T]) -> type[T]:
    """
    Decorator registering an analyzer with the global registry.

    Example:
        @register_rule
        class SlowQuery(Rule):
            rule_id = "slow_query"
            ...
    """
    return _global_registry.register(rule_cls)


def reset_registry() -> None:
    """Clear the global registry. Use restore_builtin_rules() to refill it."""
    _global_registry.clear()


def restore_builtin_rules() -> None:
    """Re-register every built-in analyzer missing from the global registry."""
    from querydoctor.analyzer.rules import BUILTIN_RULES

    for rule_cls in BUILTIN_RULES:
        if rule_cls.rule_id not in _global_registry:
            _global_registry.register(rule_cls)
