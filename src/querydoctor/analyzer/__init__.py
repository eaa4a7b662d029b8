"""
Query trace analyzer module.

Module responsibilities (one concept, one module):
- models.py: Immutable domain models (QueryRecord, Issue, MappingRecord, ...)
- sql_parser.py: Structural query model, the sqlparse token extractor and the regex extractor
- sql_ast.py: SQLStructureExtractor (pglast grammar path, then token and regex fallbacks)
- normalizer.py: Query signatures (sqlparse lexer, regex fallback)
- patterns.py / injection.py / query_builder.py: Pattern detectors
- severity.py: SeverityCalculator and suppression floors
- dedup.py: IssueDeduplicator
- collections.py: QueryTrace and IssueCollection
- cache.py: Bounded, thread-safe content caches
- suggestions.py: Suggestion template rendering
- registry.py: Analyzer registration
- rules/: One analyzer per module
- analyzer.py: Main Analyzer orchestrator
"""

from querydoctor.analyzer.analyzer import AnalysisResult, Analyzer
from querydoctor.analyzer.cache import ContentCache, content_hash
from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.dedup import IssueDeduplicator
from querydoctor.analyzer.injection import InjectionPatternDetector, InjectionRisk
from querydoctor.analyzer.models import (
    AssociationType,
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
from querydoctor.analyzer.normalizer import QueryNormalizer
from querydoctor.analyzer.patterns import NPlusOnePattern, SqlPatternDetector
from querydoctor.analyzer.query_builder import PatternMatch, QueryBuilderPatternDetector
from querydoctor.analyzer.registry import (
    RuleRegistry,
    get_registry,
    register_rule,
    reset_registry,
    restore_builtin_rules,
)
from querydoctor.analyzer.rules.base import MappingRule, Rule, RuleConfig, RuleContext
from querydoctor.analyzer.severity import SeverityCalculator
from querydoctor.analyzer.sql_ast import SQLStructureExtractor, is_pglast_available
from querydoctor.analyzer.sql_parser import SQLConfidence, StructuralQuery
from querydoctor.analyzer.suggestions import SuggestionRenderer

__all__ = [
    "AnalysisResult",
    "Analyzer",
    "AssociationType",
    "BacktraceFrame",
    "ContentCache",
    "ExplainSummary",
    "InjectionPatternDetector",
    "InjectionRisk",
    "Issue",
    "IssueCategory",
    "IssueCollection",
    "IssueDeduplicator",
    "MappingRecord",
    "MappingRule",
    "NPlusOnePattern",
    "PatternMatch",
    "QueryBuilderPatternDetector",
    "QueryNormalizer",
    "QueryRecord",
    "QueryTrace",
    "Rule",
    "RuleConfig",
    "RuleContext",
    "RuleRegistry",
    "RuleRun",
    "RuleRunStatus",
    "SQLConfidence",
    "SQLStructureExtractor",
    "Severity",
    "SeverityCalculator",
    "SqlPatternDetector",
    "StructuralQuery",
    "Suggestion",
    "SuggestionRenderer",
    "content_hash",
    "get_registry",
    "is_pglast_available",
    "register_rule",
    "reset_registry",
    "restore_builtin_rules",
]
