"""querydoctor - Diagnostic engine for SQL query traces and ORM mappings."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from querydoctor.exceptions import (
    QueryDoctorError,
    AnalyzerError,
    RuleError,
    ConfigurationError,
    ParseError,
)

# Public API exports
from querydoctor.analyzer.analyzer import AnalysisResult, Analyzer
from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import (
    BacktraceFrame,
    ExplainSummary,
    Issue,
    IssueCategory,
    MappingRecord,
    QueryRecord,
    RuleRun,
    RuleRunStatus,
    Severity,
    Suggestion,
)
from querydoctor.analyzer.suggestions import SuggestionRenderer
from querydoctor.config import (
    Config,
    get_config,
    load_config_from_env,
    load_config_from_file,
    reset_config,
)

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "QueryDoctorError",
    "AnalyzerError",
    "RuleError",
    "ConfigurationError",
    "ParseError",
    # Orchestration
    "Analyzer",
    "AnalysisResult",
    # Inputs
    "QueryRecord",
    "QueryTrace",
    "BacktraceFrame",
    "ExplainSummary",
    "MappingRecord",
    # Outputs
    "Issue",
    "IssueCategory",
    "IssueCollection",
    "RuleRun",
    "RuleRunStatus",
    "Severity",
    "Suggestion",
    "SuggestionRenderer",
    # Configuration
    "Config",
    "get_config",
    "load_config_from_env",
    "load_config_from_file",
    "reset_config",
]
