"""
Package-level exception hierarchy for querydoctor.

All exceptions inherit from QueryDoctorError, enabling:
- Catching all querydoctor errors with a single except clause
- Rich context fields for debugging (rule_id, config_key, source)
- Structured serialization via to_dict() for error reports

Hierarchy:
    QueryDoctorError
    ├── AnalyzerError          – Errors during analysis orchestration
    │   ├── RuleError          – A specific analyzer failed during execution
    │   └── ConfigurationError – Invalid analyzer configuration
    └── ParseError             – SQL text rejected by the grammar parser
"""

from __future__ import annotations

from typing import Any


class QueryDoctorError(Exception):
    """
    Base exception for all querydoctor errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for error reports."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Analysis Errors ──────────────────────────────────────────────────────


class AnalyzerError(QueryDoctorError):
    """Errors during analysis orchestration."""
    pass


class RuleError(AnalyzerError):
    """
    Error during analyzer execution.

    Only raised when the orchestrator runs in fail-fast mode. Otherwise
    the failure is logged and recorded on the rule run.

    Attributes:
        rule_id: The ID of the analyzer that failed.
        rule_version: Version of the analyzer.
        original_error: The underlying exception.
    """

    def __init__(
        self,
        rule_id: str,
        rule_version: str,
        original_error: Exception,
    ) -> None:
        self.rule_id = rule_id
        self.rule_version = rule_version
        self.original_error = original_error

        message = (
            f"Rule '{rule_id}' v{rule_version} failed: "
            f"{original_error.__class__.__name__}: {original_error}"
        )
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output / logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "rule_id": self.rule_id,
            "rule_version": self.rule_version,
            "original_error_type": self.original_error.__class__.__name__,
            "original_error_message": str(self.original_error),
        }


class ConfigurationError(AnalyzerError):
    """
    Error in analyzer configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(QueryDoctorError):
    """
    SQL text could not be parsed by the grammar parser.

    Never escapes the structure extractor: it is caught there and the
    sqlparse token extractor takes over.

    Attributes:
        source: The SQL text (possibly truncated) that failed to parse.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result
