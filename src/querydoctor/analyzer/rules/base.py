"""
Base classes for analyzers.

Every analyzer inherits from Rule (query analyzers) or MappingRule
(entity mapping analyzers) and is registered with @register_rule.

Contract:
- analyze(trace) -> IssueCollection, pure with respect to the trace and
  the injected configuration
- thresholds come from config_schema, validated at construction
- severity comes from SeverityCalculator, never from position or order
- a record that makes the analyzer raise is logged and skipped; the
  remaining records are still analyzed

The shared SQL tooling (extractor, normalizer, detectors) lives on a
RuleContext so that every analyzer in one orchestrator pass hits the
same parse and normalization caches.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Mapping
from functools import cached_property
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

from querydoctor.analyzer.cache import ContentCache
from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.injection import InjectionPatternDetector
from querydoctor.analyzer.models import (
    BacktraceFrame,
    Issue,
    IssueCategory,
    MappingRecord,
    QueryRecord,
    Severity,
    Suggestion,
)
from querydoctor.analyzer.normalizer import QueryNormalizer
from querydoctor.analyzer.patterns import SqlPatternDetector
from querydoctor.analyzer.query_builder import QueryBuilderPatternDetector
from querydoctor.analyzer.severity import SeverityCalculator
from querydoctor.analyzer.sql_ast import SQLStructureExtractor
from querydoctor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class RuleConfig(BaseModel):
    """
    Base configuration for all analyzers.

    Subclasses add thresholds as Field(ge=0) attributes. Unknown keys are
    ignored so that a shared settings map can carry keys for other hosts.

    Example:
        class SlowQueryConfig(RuleConfig):
            threshold_ms: float = Field(default=100.0, gt=0, lt=100_000)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = True


class RuleContext:
    """
    Shared SQL tooling for one orchestrator pass.

    The extractor and normalizer carry bounded content caches; the pattern
    detectors are built on the same extractor.
    """

    def __init__(
        self,
        extractor: SQLStructureExtractor | None = None,
        normalizer: QueryNormalizer | None = None,
        cache_size: int = 1000,
    ) -> None:
        self.extractor = extractor if extractor is not None else SQLStructureExtractor(
            cache=ContentCache(cache_size)
        )
        self.normalizer = normalizer if normalizer is not None else QueryNormalizer(
            cache=ContentCache(cache_size)
        )
        self.severity = SeverityCalculator()

    @cached_property
    def patterns(self) -> SqlPatternDetector:
        return SqlPatternDetector(self.extractor)

    @cached_property
    def injection(self) -> InjectionPatternDetector:
        return InjectionPatternDetector(self.extractor)

    @cached_property
    def query_builder(self) -> QueryBuilderPatternDetector:
        return QueryBuilderPatternDetector(self.extractor)


class Rule(ABC):
    """
    Abstract base class for query analyzers.

    Analyzers should be:
    - Deterministic: same trace and config, same issues
    - Isolated: no state shared with other analyzers beyond the caches
    - Focused: one analyzer, one concern

    Attributes:
        rule_id: Unique identifier and default issue type (e.g. "n_plus_one")
        version: Semver string, bump when detection logic changes
        category: Issue category for issues from this analyzer
        description: One-line description for documentation
        config_schema: Pydantic model for analyzer configuration

    Example:
        @register_rule
        class SlowQuery(Rule):
            rule_id = "slow_query"
            category = IssueCategory.PERFORMANCE
            config_schema = SlowQueryConfig

            def analyze(self, trace: QueryTrace) -> IssueCollection:
                return IssueCollection.from_generator(
                    self.iter_records(trace, self._check)
                )
    """

    rule_id: str
    version: str = "1.0.0"
    category: IssueCategory = IssueCategory.PERFORMANCE
    description: str = ""

    config_schema: type[RuleConfig] = RuleConfig

    def __init__(
        self,
        config: RuleConfig | Mapping[str, Any] | None = None,
        context: RuleContext | None = None,
    ) -> None:
        """
        Build the analyzer with validated configuration.

        Raises:
            ConfigurationError: If config does not satisfy config_schema
        """
        try:
            if config is None:
                self.config = self.config_schema()
            elif isinstance(config, Mapping):
                self.config = self.config_schema(**config)
            else:
                self.config = config
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid configuration for analyzer '{self.rule_id}': "
                f"{field or 'config'}: {first.get('msg', e)}",
                config_key=f"{self.rule_id}.{field}" if field else self.rule_id,
            ) from e
        self.context = context if context is not None else RuleContext()

    @abstractmethod
    def analyze(self, trace: QueryTrace) -> IssueCollection:
        """Return the issues this analyzer finds in the trace."""

    @property
    def uses_mappings(self) -> bool:
        return False

    # ── helpers for subclasses ────────────────────────────────────────────

    @property
    def extractor(self) -> SQLStructureExtractor:
        return self.context.extractor

    @property
    def normalizer(self) -> QueryNormalizer:
        return self.context.normalizer

    @property
    def severity(self) -> SeverityCalculator:
        return self.context.severity

    def iter_records(
        self,
        records: Iterable[QueryRecord],
        check: Callable[[QueryRecord], Issue | Iterable[Issue] | None],
    ) -> Iterator[Issue]:
        """
        Run check on each record, yielding the issues it returns.

        A record whose check raises is logged and skipped.
        """
        for record in records:
            try:
                result = check(record)
                issues = _as_issues(result)
            except Exception as e:
                self.log_skipped("a record", e)
                continue
            yield from issues

    @staticmethod
    def merge_by_subject(issues: Iterable[Issue]) -> Iterator[Issue]:
        """
        One issue per (type, subject), carrying the SQL of every occurrence.

        The most severe occurrence is kept (the first on a tie) and the origin
        queries of all occurrences are unioned in trace order.
        """
        kept: dict[tuple[str, str | None], Issue] = {}
        queries: dict[tuple[str, str | None], list[str]] = {}
        for issue in issues:
            key = (issue.type, issue.subject)
            queries.setdefault(key, []).extend(issue.origin_queries)
            current = kept.get(key)
            if current is None or issue.severity.rank < current.severity.rank:
                kept[key] = issue
        for key, issue in kept.items():
            yield issue.model_copy(
                update={"origin_queries": tuple(dict.fromkeys(queries[key]))}
            )

    def log_skipped(self, what: str, error: Exception) -> None:
        logger.warning(
            "Analyzer %s skipped %s: %s: %s",
            self.rule_id, what, type(error).__name__, error,
        )

    def suppressed(self, metrics: Mapping[str, float], issue_type: str | None = None) -> bool:
        return self.severity.should_suppress(issue_type or self.rule_id, metrics)

    def make_issue(
        self,
        *,
        title: str,
        severity: Severity,
        description: str = "",
        queries: Sequence[QueryRecord] | Sequence[str] = (),
        template_key: str | None = None,
        context: Mapping[str, Any] | None = None,
        metrics: Mapping[str, int | float] | None = None,
        subject: str | None = None,
        issue_type: str | None = None,
        category: IssueCategory | None = None,
        backtrace: tuple[BacktraceFrame, ...] | None = None,
    ) -> Issue:
        """Build an Issue with this analyzer's type and category filled in."""
        sqls = [q.sql if isinstance(q, QueryRecord) else q for q in queries]
        if backtrace is None:
            backtrace = next(
                (q.backtrace for q in queries if isinstance(q, QueryRecord) and q.backtrace),
                None,
            )
        suggestion = None
        if template_key is not None:
            suggestion = Suggestion(
                template_key=template_key,
                context=dict(context or {}),
                category=(category or self.category).value,
            )
        return Issue(
            type=issue_type or self.rule_id,
            title=title,
            description=description,
            severity=severity,
            category=category or self.category,
            suggestion=suggestion,
            origin_queries=tuple(dict.fromkeys(sqls)),
            backtrace=backtrace,
            metrics=dict(metrics or {}),
            subject=subject,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule_id={self.rule_id!r}, version={self.version!r})"


class MappingRule(Rule):
    """
    Analyzer over ORM mapping metadata instead of query traces.

    The orchestrator calls analyze_mappings() with the MappingRecords the
    host supplies; analyze(trace) returns nothing.
    """

    category = IssueCategory.INTEGRITY

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.empty()

    @abstractmethod
    def analyze_mappings(self, mappings: Sequence[MappingRecord]) -> IssueCollection:
        """Return the issues found in the mapping metadata."""

    @property
    def uses_mappings(self) -> bool:
        return True

    def iter_mappings(
        self,
        mappings: Iterable[MappingRecord],
        check: Callable[[MappingRecord], Issue | Iterable[Issue] | None],
    ) -> Iterator[Issue]:
        """Run check on each mapping; a mapping whose check raises is logged and skipped."""
        for mapping in mappings:
            try:
                issues = _as_issues(check(mapping))
            except Exception as e:
                self.log_skipped(f"mapping {mapping.subject}", e)
                continue
            yield from issues


def _as_issues(result: Issue | Iterable[Issue] | None) -> list[Issue]:
    # Materialized so a failing generator is caught per record
    if result is None:
        return []
    if isinstance(result, Issue):
        return [result]
    return list(result)
