"""
Core data models for the query analyzer.

These models define the contract between analyzers and consumers
(presentation layers, CI gates, snapshot tests). Changes here affect
every analyzer.

Design decisions:
- Pydantic for validation and serialization
- Frozen models (immutable after creation)
- Severity as an explicitly ordered enum, never inferred from list position
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_LEADING_KEYWORD = re.compile(r"^\s*\(*\s*([A-Za-z]+)")
_CTE_SELECT = re.compile(r"^\s*WITH\b.*?\)\s*SELECT\b", re.IGNORECASE | re.DOTALL)


class Severity(str, Enum):
    """
    Severity levels for issues.

    CRITICAL: Severe performance impact, security hole or data loss risk
    WARNING: Significant issue that should be addressed
    INFO: Optimization opportunity, nice-to-have improvement
    """
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank: 0 is the most severe."""
        return _SEVERITY_ORDER[self]

    def __lt__(self, other: object) -> bool:
        """Enable sorting by severity (CRITICAL sorts first)."""
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def is_more_severe_than(self, other: "Severity") -> bool:
        return self.rank < other.rank

    @classmethod
    def max_of(cls, *severities: "Severity") -> "Severity":
        """Return the most severe of the given levels (INFO if none)."""
        if not severities:
            return cls.INFO
        return min(severities, key=lambda s: s.rank)

    @classmethod
    def from_string(cls, value: "str | Severity") -> "Severity":
        """
        Parse a severity, case-insensitively.

        Raises:
            ValueError: If the value names no severity level.
        """
        if isinstance(value, Severity):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown severity {value!r}, expected one of: {valid}") from None


_SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


class IssueCategory(str, Enum):
    """Broad family an issue belongs to."""

    PERFORMANCE = "performance"
    SECURITY = "security"
    INTEGRITY = "integrity"
    CONFIGURATION = "configuration"


class RuleRunStatus(str, Enum):
    """
    Status of an analyzer execution - distinguishes PASS vs SKIP vs FAIL.

    Users must be able to tell "no issues" apart from "analyzer disabled"
    and "analyzer crashed".
    """

    PASS = "pass"      # Analyzer executed normally
    SKIP = "skip"      # Disabled or nothing to analyze
    FAIL = "fail"      # Analyzer crashed during setup or execution


class BacktraceFrame(BaseModel):
    """One stack frame captured when a query was issued."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    file: str | None = None
    line: int | None = None
    function: str | None = None
    class_name: str | None = Field(default=None, alias="class")

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "function": self.function,
            "class": self.class_name,
        }


class ExplainSummary(BaseModel):
    """
    EXPLAIN data the host attached to a query record.

    Only the fields the missing-index analyzer needs are kept. Both MySQL
    (access type "ALL") and PostgreSQL ("Seq Scan") full scans are
    recognised.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_type: str | None = Field(
        default=None,
        description="Access method, e.g. ALL, ref, Seq Scan, Index Scan",
    )
    rows_examined: int | None = Field(
        default=None,
        ge=0,
        description="Rows the engine examined (estimated or actual)",
    )
    key: str | None = Field(default=None, description="Index used, if any")
    possible_keys: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def is_full_scan(self) -> bool:
        if self.access_type:
            access = self.access_type.strip()
            if access.upper() == "ALL" or "seq scan" in access.lower():
                return True
            return False
        return self.key is None and self.rows_examined is not None


class QueryRecord(BaseModel):
    """
    One observed SQL execution.

    Attributes:
        sql: The SQL text as sent to the database.
        execution_ms: Execution time in milliseconds.
        params: Bound parameter values, in order.
        param_names: Parameter names when the values were bound by name.
        row_count: Rows returned or affected, when known.
        backtrace: Stack frames captured at execution time, when known.
        explain: EXPLAIN summary attached by the host, when known.
    """

    model_config = ConfigDict(frozen=True)

    sql: str = Field(..., min_length=1, description="SQL text")
    execution_ms: float = Field(default=0.0, ge=0, description="Execution time in ms")
    params: tuple[Any, ...] = Field(default_factory=tuple)
    param_names: tuple[str, ...] = Field(default_factory=tuple)
    row_count: int | None = Field(default=None, ge=0)
    backtrace: tuple[BacktraceFrame, ...] | None = None
    explain: ExplainSummary | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_named_params(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("params"), dict):
            named = data["params"]
            data = {**data, "params": tuple(named.values())}
            data.setdefault("param_names", tuple(str(key) for key in named))
        return data

    @field_validator("sql")
    @classmethod
    def _sql_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sql must not be blank")
        return value

    @field_validator("params", mode="before")
    @classmethod
    def _params_as_tuple(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, dict):
            return tuple(value.values())
        if isinstance(value, list):
            return tuple(value)
        return value

    @property
    def query_type(self) -> str:
        """Leading statement keyword: SELECT, INSERT, UPDATE, DELETE or OTHER."""
        match = _LEADING_KEYWORD.match(self.sql)
        if not match:
            return "OTHER"
        keyword = match.group(1).upper()
        if keyword == "WITH" and _CTE_SELECT.match(self.sql):
            return "SELECT"
        if keyword in ("SELECT", "INSERT", "UPDATE", "DELETE"):
            return keyword
        return "OTHER"

    @property
    def is_select(self) -> bool:
        return self.query_type == "SELECT"

    @property
    def is_insert(self) -> bool:
        return self.query_type == "INSERT"

    @property
    def is_update(self) -> bool:
        return self.query_type == "UPDATE"

    @property
    def is_delete(self) -> bool:
        return self.query_type == "DELETE"

    def is_slow(self, threshold_ms: float = 100.0) -> bool:
        """True when execution time is strictly above the threshold."""
        if threshold_ms <= 0:
            raise ValueError(f"threshold_ms must be positive, got {threshold_ms}")
        return self.execution_ms > threshold_ms

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryRecord":
        """
        Build a record from a loosely-shaped profiler dict.

        Accepts executionMS / execution_ms / executionTime for the timing and
        rowCount / row_count for the row count. An executionMS value strictly
        between 0 and 1 is a duration in seconds and is converted.
        """
        if "execution_ms" in data:
            execution_ms = float(data["execution_ms"] or 0.0)
        elif "executionMS" in data:
            execution_ms = float(data["executionMS"] or 0.0)
            if 0 < execution_ms < 1:
                execution_ms *= 1000
        else:
            execution_ms = float(data.get("executionTime") or 0.0)

        backtrace = data.get("backtrace")
        frames = None
        if backtrace:
            frames = tuple(
                frame if isinstance(frame, BacktraceFrame) else BacktraceFrame.model_validate(frame)
                for frame in backtrace
                if isinstance(frame, (dict, BacktraceFrame))
            )

        row_count = data.get("row_count", data.get("rowCount"))

        return cls(
            sql=data.get("sql", ""),
            execution_ms=execution_ms,
            params=data.get("params") or (),
            row_count=row_count,
            backtrace=frames,
            explain=data.get("explain"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sql": self.sql,
            "execution_ms": self.execution_ms,
            "params": dict(zip(self.param_names, self.params)) if self.param_names else list(self.params),
            "row_count": self.row_count,
            "backtrace": [f.to_dict() for f in self.backtrace] if self.backtrace else None,
        }


class Suggestion(BaseModel):
    """
    A remediation hint: a template key plus the context to render it.

    Rendering belongs to querydoctor.analyzer.suggestions.SuggestionRenderer.
    """

    model_config = ConfigDict(frozen=True)

    template_key: str = Field(..., min_length=1)
    context: dict[str, Any] = Field(default_factory=dict)
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"templateKey": self.template_key, "context": dict(self.context)}


class Issue(BaseModel):
    """
    A single problem detected by an analyzer.

    Issues are created once by an analyzer and never mutated. The
    deduplicator may discard an issue or replace it with a merged copy.

    Attributes:
        type: Issue type key (e.g. "n_plus_one"). Equals the analyzer's rule_id
            unless one analyzer reports several types.
        title: Human-readable one-line summary.
        description: Detailed explanation of the problem.
        severity: How serious the issue is.
        category: Issue family.
        suggestion: Remediation hint, if any.
        origin_queries: Every SQL string that contributed to the issue.
        backtrace: Backtrace of the triggering record, if known.
        metrics: Impact metrics severity was derived from.
        subject: Narrower identity for dedup, e.g. "Order.customer".

    Example:
        Issue(
            type="n_plus_one",
            title="N+1 Query Detected: 12 queries",
            description="The same query ran 12 times ...",
            severity=Severity.WARNING,
            category=IssueCategory.PERFORMANCE,
            origin_queries=("SELECT * FROM users WHERE id = 1", ...),
            metrics={"count": 12, "total_ms": 3.2},
        )
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1, description="Issue type key")
    title: str = Field(..., min_length=1, description="One-line summary")
    description: str = Field(default="", description="Detailed explanation")
    severity: Severity = Field(..., description="Severity level")
    category: IssueCategory = Field(
        default=IssueCategory.PERFORMANCE,
        description="Issue family",
    )
    suggestion: Suggestion | None = Field(default=None, description="Remediation hint")
    origin_queries: tuple[str, ...] = Field(
        default_factory=tuple,
        description="SQL strings that triggered the issue",
    )
    backtrace: tuple[BacktraceFrame, ...] | None = Field(
        default=None,
        description="Backtrace inherited from the triggering query",
    )
    metrics: dict[str, int | float] = Field(
        default_factory=dict,
        description="Impact metrics the severity was derived from",
    )
    subject: str | None = Field(
        default=None,
        description="Type-specific identity used as the dedup key",
    )

    @property
    def sort_key(self) -> tuple[Any, ...]:
        """Deterministic ordering key, most severe first."""
        return (
            self.severity.rank,
            self.type,
            self.subject or "",
            self.title,
            self.origin_queries,
            self.description,
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Issue):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash((self.type, self.severity, self.title, self.subject, self.origin_queries))

    def to_dict(self) -> dict[str, Any]:
        """Flat record for presentation layers."""
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category.value,
            "suggestion": self.suggestion.to_dict() if self.suggestion else None,
            "queries": list(self.origin_queries),
            "backtrace": [f.to_dict() for f in self.backtrace] if self.backtrace else None,
        }


class AssociationType(str, Enum):
    """ORM association kinds."""

    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


class MappingRecord(BaseModel):
    """
    One mapped field of an ORM entity, supplied by the metadata provider.

    Plain columns leave association_type unset; associations leave the
    column fields unset.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    entity: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    association_type: AssociationType | None = None
    target_entity: str | None = None
    cascade: tuple[str, ...] = Field(default_factory=tuple)
    orphan_removal: bool = False
    nullable: bool | None = None
    column_type: str | None = None
    precision: int | None = Field(default=None, ge=0)
    scale: int | None = Field(default=None, ge=0)
    on_delete: str | None = None
    mapped_by: str | None = None
    inversed_by: str | None = None

    @field_validator("cascade", mode="before")
    @classmethod
    def _normalize_cascade(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(str(v).strip().lower() for v in value)

    @property
    def short_entity(self) -> str:
        """Entity name without namespace (App\\Entity\\Order -> Order)."""
        return re.split(r"[\\.]", self.entity)[-1]

    @property
    def short_target(self) -> str | None:
        if self.target_entity is None:
            return None
        return re.split(r"[\\.]", self.target_entity)[-1]

    @property
    def subject(self) -> str:
        return f"{self.short_entity}.{self.field}"


class RuleRun(BaseModel):
    """
    Record of a single analyzer execution.

    Lets users distinguish PASS vs SKIP vs FAIL and see exactly what
    happened during analysis.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Analyzer identifier")
    version: str = Field(..., description="Analyzer version")
    status: RuleRunStatus = Field(..., description="Execution status")
    runtime_ms: float = Field(default=0.0, description="Execution time in milliseconds")
    issues_count: int = Field(default=0, description="Number of issues generated")
    error_summary: str | None = Field(default=None, description="Error message if FAIL")
    skip_reason: str | None = Field(default=None, description="Reason if SKIP")
