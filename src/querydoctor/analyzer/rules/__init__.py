"""Analyzer rules module - one detection analyzer per module."""

from querydoctor.analyzer.rules.base import MappingRule, Rule, RuleConfig, RuleContext
from querydoctor.analyzer.rules.n_plus_one import NPlusOne
from querydoctor.analyzer.rules.lazy_loading import LazyLoading
from querydoctor.analyzer.rules.frequent_query import FrequentQuery
from querydoctor.analyzer.rules.slow_query import SlowQuery
from querydoctor.analyzer.rules.missing_index import MissingIndex
from querydoctor.analyzer.rules.ineffective_like import IneffectiveLike
from querydoctor.analyzer.rules.join_optimization import JoinOptimization
from querydoctor.analyzer.rules.collection_join_limit import CollectionJoinLimit
from querydoctor.analyzer.rules.partial_collection_load import PartialCollectionLoad
from querydoctor.analyzer.rules.order_by_without_limit import OrderByWithoutLimit
from querydoctor.analyzer.rules.find_all import FindAll
from querydoctor.analyzer.rules.hydration import Hydration
from querydoctor.analyzer.rules.flush_in_loop import FlushInLoop
from querydoctor.analyzer.rules.entity_manager_clear import EntityManagerClear
from querydoctor.analyzer.rules.sql_injection import SqlInjection
from querydoctor.analyzer.rules.dql_injection import DqlInjection
from querydoctor.analyzer.rules.query_builder_best_practices import QueryBuilderBestPractices
from querydoctor.analyzer.rules.division_by_zero import DivisionByZero
from querydoctor.analyzer.rules.transaction_boundary import TransactionBoundary
from querydoctor.analyzer.rules.cascade_all import CascadeAll
from querydoctor.analyzer.rules.orphan_removal_without_cascade_remove import (
    OrphanRemovalWithoutCascadeRemove,
)
from querydoctor.analyzer.rules.on_delete_cascade_mismatch import OnDeleteCascadeMismatch
from querydoctor.analyzer.rules.float_for_money import FloatForMoney
from querydoctor.analyzer.rules.decimal_precision import DecimalPrecision

# Registration order, which is also run and merge order
BUILTIN_RULES = (
    NPlusOne,
    LazyLoading,
    FrequentQuery,
    SlowQuery,
    MissingIndex,
    IneffectiveLike,
    JoinOptimization,
    CollectionJoinLimit,
    PartialCollectionLoad,
    OrderByWithoutLimit,
    FindAll,
    Hydration,
    FlushInLoop,
    EntityManagerClear,
    SqlInjection,
    DqlInjection,
    QueryBuilderBestPractices,
    DivisionByZero,
    TransactionBoundary,
    CascadeAll,
    OrphanRemovalWithoutCascadeRemove,
    OnDeleteCascadeMismatch,
    FloatForMoney,
    DecimalPrecision,
)

__all__ = [
    "BUILTIN_RULES",
    "MappingRule",
    "Rule",
    "RuleConfig",
    "RuleContext",
    # Individual analyzers
    "CascadeAll",
    "CollectionJoinLimit",
    "DecimalPrecision",
    "DivisionByZero",
    "DqlInjection",
    "EntityManagerClear",
    "FindAll",
    "FloatForMoney",
    "FlushInLoop",
    "FrequentQuery",
    "Hydration",
    "IneffectiveLike",
    "JoinOptimization",
    "LazyLoading",
    "MissingIndex",
    "NPlusOne",
    "OnDeleteCascadeMismatch",
    "OrderByWithoutLimit",
    "OrphanRemovalWithoutCascadeRemove",
    "PartialCollectionLoad",
    "QueryBuilderBestPractices",
    "SlowQuery",
    "SqlInjection",
    "TransactionBoundary",
]
