"""
Analyzer - orchestrates the analyzer set over one query trace.

Runs every registered analyzer against a QueryTrace (and the ORM mapping
metadata, for mapping analyzers), then deduplicates and sorts the issues.

Design Principles:
- Deterministic: same trace, mappings and config give the same result,
  whether analyzers run sequentially or on a thread pool
- Observable failure: PASS/SKIP/FAIL status for every analyzer
- Isolated: an analyzer that fails, or cannot be built from its
  configuration, contributes nothing and the others still run
- Config is not code: thresholds come from Config, not from call sites
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.dedup import IssueDeduplicator
from querydoctor.analyzer.models import (
    Issue,
    MappingRecord,
    QueryRecord,
    RuleRun,
    RuleRunStatus,
    Severity,
)
from querydoctor.analyzer.registry import get_registry
from querydoctor.analyzer.rules.base import MappingRule, Rule, RuleContext
from querydoctor.config import Config, get_config
from querydoctor.exceptions import RuleError

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    """
    Complete result of analyzing one trace.

    Contains:
    - issues: deduplicated issues, most severe first
    - rule_runs: status of each analyzer execution (PASS/SKIP/FAIL)
    - query_count: number of records analyzed
    - duration_ms: wall time of the whole pass
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    issues: IssueCollection = Field(
        default_factory=IssueCollection.empty,
        description="Deduplicated issues, sorted by severity",
    )
    rule_runs: tuple[RuleRun, ...] = Field(
        default_factory=tuple,
        description="Status of each analyzer execution",
    )
    query_count: int = Field(default=0, ge=0, description="Records analyzed")
    mapping_count: int = Field(default=0, ge=0, description="Mapping records analyzed")
    duration_ms: float = Field(default=0.0, ge=0, description="Analysis wall time")

    @property
    def has_critical(self) -> bool:
        return self.issues.has_critical()

    @property
    def has_errors(self) -> bool:
        """Check if any analyzer failed during analysis."""
        return any(r.status == RuleRunStatus.FAIL for r in self.rule_runs)

    def rule_runs_by_status(self, status: RuleRunStatus) -> list[RuleRun]:
        return [r for r in self.rule_runs if r.status == status]

    def summary(self) -> dict[str, int | float]:
        """Counts by severity and by analyzer status."""
        counts = self.issues.count_by_severity()
        return {
            "total": len(self.issues),
            "critical": counts.get(Severity.CRITICAL.value, 0),
            "warning": counts.get(Severity.WARNING.value, 0),
            "info": counts.get(Severity.INFO.value, 0),
            "queries": self.query_count,
            "rules_passed": len(self.rule_runs_by_status(RuleRunStatus.PASS)),
            "rules_skipped": len(self.rule_runs_by_status(RuleRunStatus.SKIP)),
            "rules_failed": len(self.rule_runs_by_status(RuleRunStatus.FAIL)),
            "duration_ms": round(self.duration_ms, 3),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary(),
            "issues": self.issues.to_list_of_dicts(),
            "rule_runs": [r.model_dump(mode="json") for r in self.rule_runs],
        }


class Analyzer:
    """
    Runs the analyzer set over a query trace.

    Analyzers are built fresh for every pass from the configuration, and
    share one RuleContext (extractor, normalizer and their caches) for the
    lifetime of the Analyzer.

    Example:
        from querydoctor import Analyzer, QueryTrace

        trace = QueryTrace.from_dicts(profiler_rows)
        result = Analyzer().analyze(trace)

        for issue in result.issues:
            print(f"{issue.severity}: {issue.title}")
    """

    DEFAULT_MAX_ISSUES_PER_RULE: int = 100
    DEFAULT_MAX_WORKERS: int = 4

    def __init__(
        self,
        rules: Sequence[type[Rule]] | None = None,
        config: Config | None = None,
        parallel: bool = False,
        max_workers: int = DEFAULT_MAX_WORKERS,
        fail_fast: bool = False,
        max_issues_per_rule: int = DEFAULT_MAX_ISSUES_PER_RULE,
        include_rules: set[str] | None = None,
        exclude_rules: set[str] | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            rules: Analyzer classes to run (if None, uses the registry)
            config: Configuration (if None, uses get_config())
            parallel: Run analyzers on a thread pool
            max_workers: Thread pool size for parallel execution (default: 4)
            fail_fast: Raise RuleError on the first analyzer failure
            max_issues_per_rule: Cap on issues kept from one analyzer (default: 100)
            include_rules: Only run these analyzer ids
            exclude_rules: Skip these analyzer ids
        """
        self.config = config if config is not None else get_config()

        if rules is not None:
            rule_classes = list(rules)
            if include_rules is not None:
                rule_classes = [r for r in rule_classes if r.rule_id in include_rules]
            if exclude_rules is not None:
                rule_classes = [r for r in rule_classes if r.rule_id not in exclude_rules]
        else:
            rule_classes = get_registry().filter(include=include_rules, exclude=exclude_rules)
        self.rule_classes: list[type[Rule]] = rule_classes

        self.parallel = parallel
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self.max_issues_per_rule = max_issues_per_rule

        self.context = RuleContext(cache_size=self.config.cache_size)
        self.deduplicator = IssueDeduplicator(self.context.normalizer)

    @classmethod
    def from_config(cls, config: Config | None = None, **kwargs: Any) -> "Analyzer":
        """Build an Analyzer whose orchestration knobs come from config."""
        config = config if config is not None else get_config()
        return cls(
            config=config,
            parallel=config.parallel,
            max_workers=config.max_workers,
            fail_fast=config.fail_fast,
            max_issues_per_rule=config.max_issues_per_rule,
            **kwargs,
        )

    def analyze(
        self,
        records: QueryTrace | Iterable[QueryRecord | dict[str, Any]],
        mappings: Iterable[MappingRecord | dict[str, Any]] = (),
    ) -> AnalysisResult:
        """
        Analyze a query trace and mapping metadata.

        Raises:
            RuleError: If fail_fast is set and an analyzer fails
        """
        start_time = time.perf_counter()
        trace = records if isinstance(records, QueryTrace) else _as_trace(records)
        mapping_list = tuple(
            m if isinstance(m, MappingRecord) else MappingRecord.model_validate(m)
            for m in mappings
        )

        if self.parallel and len(self.rule_classes) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(
                    lambda rule_cls: self._run_rule(rule_cls, trace, mapping_list),
                    self.rule_classes,
                ))
        else:
            outcomes = [self._run_rule(r, trace, mapping_list) for r in self.rule_classes]

        # Merged in registry order regardless of completion order
        all_issues: list[Issue] = []
        rule_runs: list[RuleRun] = []
        for issues, run in outcomes:
            all_issues.extend(issues)
            rule_runs.append(run)

        unique = self.deduplicator.deduplicate(IssueCollection.from_issues(all_issues))
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "Analyzed %d queries with %d analyzers: %d issues (%d before dedup) in %.2fms",
            len(trace), len(rule_runs), len(unique), len(all_issues), duration_ms,
        )

        return AnalysisResult(
            issues=unique.sort_by_severity(),
            rule_runs=tuple(rule_runs),
            query_count=len(trace),
            mapping_count=len(mapping_list),
            duration_ms=duration_ms,
        )

    def _run_rule(
        self,
        rule_cls: type[Rule],
        trace: QueryTrace,
        mappings: tuple[MappingRecord, ...],
    ) -> tuple[list[Issue], RuleRun]:
        """Build and run one analyzer, tracking its status (PASS/SKIP/FAIL)."""
        rule_id = rule_cls.rule_id

        if not self.config.is_rule_enabled(rule_id):
            return [], self._skip(rule_cls, "disabled by configuration")

        rule_start = time.perf_counter()
        try:
            rule = rule_cls(self.config.rule_settings(rule_id), self.context)
            if not rule.config.enabled:
                return [], self._skip(rule_cls, "disabled by configuration")

            if isinstance(rule, MappingRule):
                if not mappings:
                    return [], self._skip(rule_cls, "no mapping metadata supplied")
                issues = rule.analyze_mappings(mappings).to_list()
            else:
                issues = rule.analyze(trace).to_list()

            issues = issues[:self.max_issues_per_rule]
            runtime_ms = (time.perf_counter() - rule_start) * 1000
            return issues, RuleRun(
                rule_id=rule_id,
                version=rule_cls.version,
                status=RuleRunStatus.PASS,
                runtime_ms=runtime_ms,
                issues_count=len(issues),
            )

        except Exception as e:
            runtime_ms = (time.perf_counter() - rule_start) * 1000

            if self.fail_fast:
                raise RuleError(rule_id, rule_cls.version, e) from e

            logger.warning("Rule %s failed: %s", rule_id, e)
            return [], RuleRun(
                rule_id=rule_id,
                version=rule_cls.version,
                status=RuleRunStatus.FAIL,
                runtime_ms=runtime_ms,
                issues_count=0,
                error_summary=f"{type(e).__name__}: {e}",
            )

    @staticmethod
    def _skip(rule_cls: type[Rule], reason: str) -> RuleRun:
        logger.debug("Rule %s skipped: %s", rule_cls.rule_id, reason)
        return RuleRun(
            rule_id=rule_cls.rule_id,
            version=rule_cls.version,
            status=RuleRunStatus.SKIP,
            skip_reason=reason,
        )


def _as_trace(records: Iterable[QueryRecord | dict[str, Any]]) -> QueryTrace:
    return QueryTrace(
        r if isinstance(r, QueryRecord) else QueryRecord.from_dict(r)
        for r in records
    )
