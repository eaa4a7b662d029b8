"""
Severity from measured impact.

Every function is pure and uses strict `>` comparisons, so a value sitting
exactly on a boundary falls into the lower tier:

    for_slow_query(100.0)  -> WARNING
    for_slow_query(100.01) -> CRITICAL

Severity is never inferred from an issue's position or from analyzer
order, only from the metrics recorded on it.
"""

from __future__ import annotations

from collections.abc import Mapping

from querydoctor.analyzer.models import Severity

# issue type -> (metric name, floor); candidates below the floor are noise
SUPPRESSION_FLOORS: dict[str, tuple[str, float]] = {
    "slow_query": ("time", 10),
    "missing_index": ("rows_scanned", 500),
    "n_plus_one": ("count", 3),
    "frequent_query": ("count", 10),
    "order_by_without_limit": ("rows", 50),
    "find_all": ("rows", 100),
}

# Query builder mistakes that still return correct rows
QUERY_BUILDER_WARNINGS = frozenset({"unescaped_like"})

# Transaction problems that do not lose or corrupt data
TRANSACTION_WARNINGS = frozenset({"multiple_flush", "too_long"})


class SeverityCalculator:
    """Maps impact metrics to a Severity tier."""

    @staticmethod
    def for_n_plus_one(count: int, total_ms: float) -> Severity:
        if count > 100 or total_ms > 100:
            return Severity.CRITICAL
        if count > 10 or total_ms > 10:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_missing_index(rows_scanned: int, query_ms: float) -> Severity:
        if rows_scanned > 100_000 or query_ms > 100:
            return Severity.CRITICAL
        if rows_scanned > 1_000 or query_ms > 10:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_slow_query(ms: float) -> Severity:
        if ms > 100:
            return Severity.CRITICAL
        if ms > 10:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_hydration(rows: int, memory_mb: float = 0.0) -> Severity:
        if rows > 10_000 or memory_mb > 50:
            return Severity.CRITICAL
        if rows > 1_000 or memory_mb > 10:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_frequent_query(count: int, total_ms: float) -> Severity:
        if count > 100 or total_ms > 100:
            return Severity.CRITICAL
        if count > 20:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_order_by_without_limit(rows: int, ms: float) -> Severity:
        if rows > 10_000:
            return Severity.CRITICAL
        if rows > 100 or ms > 50:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_find_all(rows: int, ms: float) -> Severity:
        if rows > 10_000:
            return Severity.CRITICAL
        if rows > 100 or ms > 50:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_ineffective_like(ms: float) -> Severity:
        if ms > 100:
            return Severity.CRITICAL
        return Severity.WARNING

    @staticmethod
    def for_join_count(join_count: int, recommended: int, critical: int) -> Severity:
        if join_count > critical:
            return Severity.CRITICAL
        if join_count > recommended:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_injection_risk(risk_level: int) -> Severity:
        """Risk 3 and above is critical, 2 a warning, anything lower info."""
        if risk_level > 2:
            return Severity.CRITICAL
        if risk_level > 1:
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def for_query_builder(pattern_type: str) -> Severity:
        if pattern_type in QUERY_BUILDER_WARNINGS:
            return Severity.WARNING
        return Severity.CRITICAL

    @staticmethod
    def for_flush_in_loop(flush_count: int) -> Severity:
        if flush_count > 20:
            return Severity.CRITICAL
        return Severity.WARNING

    @staticmethod
    def for_batch_without_clear(write_count: int) -> Severity:
        if write_count > 1_000:
            return Severity.CRITICAL
        return Severity.WARNING

    @staticmethod
    def for_transaction_boundary(problem: str) -> Severity:
        if problem in TRANSACTION_WARNINGS:
            return Severity.WARNING
        return Severity.CRITICAL

    @staticmethod
    def should_suppress(issue_type: str, metrics: Mapping[str, float]) -> bool:
        """
        True when a candidate's metric is below its type's reporting floor.

        Types without a floor, and metrics that are absent, never suppress.
        """
        floor = SUPPRESSION_FLOORS.get(issue_type)
        if floor is None:
            return False
        metric, minimum = floor
        value = metrics.get(metric)
        if value is None:
            return False
        return value < minimum
