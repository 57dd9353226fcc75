"""
Reconciliation Module for TTree/RNTuple Datasets

This module checks that a dataset migrated from a ROOT TTree (row store)
to an RNTuple (columnar store) kept its schema and data.

Main components:
- stores: Store accessors (TTree and RNTuple files, in-memory columns)
- matcher: Field name matching
- classifier: Type compatibility classification
- extractor: Flattened value extraction
- statistics: Per-type statistics buckets
- checker: Reconciliation driver

Usage:
    from src.reconciliation import ReconciliationChecker, TTreeStore, RNTupleStore

    checker = ReconciliationChecker(
        TTreeStore("legacy.root", "events"),
        RNTupleStore("migrated.root", "events"),
    )
    report = checker.run()
    print(report.passed, report.type_verdict)
"""

from src.reconciliation.models import (
    NO_MATCH,
    FieldCorrespondence,
    FieldDescriptor,
    FlattenedBuffer,
    PackedBits,
    ReconciliationReport,
    ScalarType,
    Severity,
    Shape,
    StatisticsBucket,
    StoreOrigin,
    TypeTag,
)
from src.reconciliation.errors import (
    FieldReadError,
    FieldSetNotFound,
    ReconciliationError,
    StoreError,
    StoreNotFound,
    TableNotFound,
)
from src.reconciliation.type_table import TypeTable
from src.reconciliation.stores import MemoryStore, RNTupleStore, StoreAccessor, TTreeStore
from src.reconciliation.matcher import FieldMatcher
from src.reconciliation.classifier import TypeClassifier
from src.reconciliation.extractor import ValueExtractor
from src.reconciliation.statistics import StatisticsAggregator
from src.reconciliation.checker import CheckerConfig, ReconciliationChecker, RunStage

__all__ = [
    "NO_MATCH",
    "FieldCorrespondence",
    "FieldDescriptor",
    "FlattenedBuffer",
    "PackedBits",
    "ReconciliationReport",
    "ScalarType",
    "Severity",
    "Shape",
    "StatisticsBucket",
    "StoreOrigin",
    "TypeTag",
    "FieldReadError",
    "FieldSetNotFound",
    "ReconciliationError",
    "StoreError",
    "StoreNotFound",
    "TableNotFound",
    "TypeTable",
    "StoreAccessor",
    "MemoryStore",
    "TTreeStore",
    "RNTupleStore",
    "FieldMatcher",
    "TypeClassifier",
    "ValueExtractor",
    "StatisticsAggregator",
    "CheckerConfig",
    "ReconciliationChecker",
    "RunStage",
]

__version__ = "1.0.0"
