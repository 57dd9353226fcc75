"""
Reconciliation Checker for TTree/RNTuple Datasets

Drives one reconciliation run: opens both stores, compares entry and field
counts, matches field names, classifies types, extracts values, aggregates
statistics and assembles the report. Store handles are owned by the run
and always closed at its end.
"""

import logging
import os
import time
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from src.reconciliation.classifier import TypeClassifier
from src.reconciliation.errors import StoreError
from src.reconciliation.extractor import ValueExtractor
from src.reconciliation.matcher import FieldMatcher
from src.reconciliation.models import (
    CountPair,
    FieldCorrespondence,
    FieldDescriptor,
    FlattenedBuffer,
    ReconciliationReport,
    ScalarType,
    SequenceComparison,
    StoreOrigin,
    StoreRef,
)
from src.reconciliation.statistics import StatisticsAggregator
from src.reconciliation.stores.base import StoreAccessor
from src.reconciliation.stores.root_files import RNTupleStore, TTreeStore
from src.reconciliation.type_table import TypeTable
from src.utils.correlation import RunContext

logger = logging.getLogger(__name__)


class RunStage(Enum):
    """Stages of a reconciliation run, in execution order."""
    CREATED = "created"
    OPENED = "opened"
    ENTRIES_CHECKED = "entries_checked"
    FIELDS_CHECKED = "fields_checked"
    NAMES_MATCHED = "names_matched"
    TYPES_CLASSIFIED = "types_classified"
    VALUES_EXTRACTED = "values_extracted"
    STATS_AGGREGATED = "stats_aggregated"
    REPORTED = "reported"
    FAILED = "failed"


_STAGE_ORDER = [
    RunStage.CREATED,
    RunStage.OPENED,
    RunStage.ENTRIES_CHECKED,
    RunStage.FIELDS_CHECKED,
    RunStage.NAMES_MATCHED,
    RunStage.TYPES_CLASSIFIED,
    RunStage.VALUES_EXTRACTED,
    RunStage.STATS_AGGREGATED,
    RunStage.REPORTED,
]


@dataclass
class CheckerConfig:
    """Locations of the two stores plus run options."""
    ttree_file: str
    rntuple_file: str
    ttree_name: str
    rntuple_name: str
    type_table_path: Optional[str] = None
    include_values: bool = False

    def validate(self) -> None:
        """
        Check that every location is set.

        Raises:
            ValueError: If a required value is empty
        """
        missing = [
            name for name in ("ttree_file", "rntuple_file", "ttree_name", "rntuple_name")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CheckerConfig":
        """
        Build a configuration from RECONCILE_* environment variables.

        Args:
            environ: Environment mapping (os.environ if not provided)
        """
        environ = os.environ if environ is None else environ
        config = cls(
            ttree_file=environ.get("RECONCILE_TTREE_FILE", ""),
            rntuple_file=environ.get("RECONCILE_RNTUPLE_FILE", ""),
            ttree_name=environ.get("RECONCILE_TTREE_NAME", ""),
            rntuple_name=environ.get("RECONCILE_RNTUPLE_NAME", ""),
            type_table_path=environ.get("RECONCILE_TYPE_TABLE") or None,
            include_values=environ.get("RECONCILE_INCLUDE_VALUES", "false").lower() == "true",
        )
        config.validate()
        return config


def element_spelling(native_type: str) -> str:
    """Element type of a sequence spelling ("int" for "vector<int>", "Int_t" for "Int_t[]")."""
    if native_type.endswith("[]"):
        return native_type[:-2]
    start = native_type.find("<")
    end = native_type.rfind(">")
    if start != -1 and end != -1 and start < end:
        return native_type[start + 1:end].strip()
    return native_type


class ReconciliationChecker:
    """
    Compares a TTree with an RNTuple holding the same dataset.

    Usage:
        checker = ReconciliationChecker(
            TTreeStore("legacy.root", "events"),
            RNTupleStore("migrated.root", "events"),
        )
        report = checker.run()
    """

    def __init__(
        self,
        legacy: StoreAccessor,
        columnar: StoreAccessor,
        type_table: Optional[TypeTable] = None,
        metrics=None,
        include_values: bool = False
    ):
        """
        Initialize the checker.

        Args:
            legacy: Accessor for the TTree side
            columnar: Accessor for the RNTuple side
            type_table: Type table (shared default if not provided)
            metrics: Optional ReconciliationMetrics to record runs in
            include_values: Attach the flattened values to the report
        """
        if legacy.origin is not StoreOrigin.LEGACY:
            raise ValueError(f"Expected a TTree accessor, got {legacy.describe()}")
        if columnar.origin is not StoreOrigin.COLUMNAR:
            raise ValueError(f"Expected an RNTuple accessor, got {columnar.describe()}")

        self.legacy = legacy
        self.columnar = columnar
        self.metrics = metrics
        self.include_values = include_values

        self.matcher = FieldMatcher()
        self.classifier = TypeClassifier(type_table)
        self.aggregator = StatisticsAggregator()
        self.stage = RunStage.CREATED

        logger.debug("Initialized ReconciliationChecker")

    @classmethod
    def from_config(cls, config: CheckerConfig, metrics=None) -> "ReconciliationChecker":
        """Build a checker over ROOT files described by a CheckerConfig."""
        config.validate()
        type_table = TypeTable.from_yaml(config.type_table_path) if config.type_table_path else None

        return cls(
            TTreeStore(config.ttree_file, config.ttree_name),
            RNTupleStore(config.rntuple_file, config.rntuple_name),
            type_table=type_table,
            metrics=metrics,
            include_values=config.include_values,
        )

    @property
    def type_table(self) -> TypeTable:
        return self.classifier.type_table

    def run(self) -> ReconciliationReport:
        """
        Execute one reconciliation run.

        Returns:
            ReconciliationReport

        Raises:
            StoreError: If either store cannot be opened or read; no partial
                        report is produced

        Any exception ends the run in stage FAILED and is re-raised.
        """
        self.stage = RunStage.CREATED
        start_time = time.monotonic()

        with RunContext() as run_id:
            logger.info(
                f"Starting reconciliation of {self.legacy.describe()} "
                f"against {self.columnar.describe()}"
            )

            try:
                report = self._run(run_id)
            except Exception as e:
                failed_stage = self.stage
                self.stage = RunStage.FAILED
                duration = time.monotonic() - start_time
                logger.error(
                    f"Reconciliation aborted after stage {failed_stage.value}: {e}",
                    exc_info=not isinstance(e, StoreError),
                    extra={
                        'legacy_store': self.legacy.describe(),
                        'columnar_store': self.columnar.describe(),
                        'stage': failed_stage.value,
                        'duration': duration,
                    }
                )
                if self.metrics is not None:
                    self.metrics.record_failure(e, duration)
                raise

            duration = time.monotonic() - start_time
            logger.info(
                f"Reconciliation completed in {duration:.2f}s: "
                f"{'passed' if report.passed else 'divergence found'}",
                extra={'stage': self.stage.value, 'duration': duration}
            )

        if self.metrics is not None:
            self.metrics.record_run(report, duration)

        return report

    def _run(self, run_id: str) -> ReconciliationReport:
        type_table = self.classifier.type_table

        with ExitStack() as stack:
            legacy = stack.enter_context(self.legacy)
            columnar = stack.enter_context(self.columnar)
            self._advance(RunStage.OPENED)

            entries = CountPair(legacy.entry_count(), columnar.entry_count())
            if not entries.equal:
                logger.warning(
                    f"Entry counts differ: TTree={entries.legacy}, RNTuple={entries.columnar}"
                )
            self._advance(RunStage.ENTRIES_CHECKED)

            legacy_fields = legacy.field_descriptors(type_table)
            columnar_fields = columnar.field_descriptors(type_table)
            fields = CountPair(len(legacy_fields), len(columnar_fields))
            if not fields.equal:
                logger.warning(
                    f"Field counts differ: TTree={fields.legacy}, RNTuple={fields.columnar}"
                )
            self._advance(RunStage.FIELDS_CHECKED)

            correspondences = self.matcher.match_descriptors(legacy_fields, columnar_fields)
            self._advance(RunStage.NAMES_MATCHED)

            type_comparisons = self.classifier.classify_correspondences(
                correspondences,
                {d.name: d.native_type for d in legacy_fields},
                {d.name: d.native_type for d in columnar_fields},
            )
            self._advance(RunStage.TYPES_CLASSIFIED)

            legacy_extractor = ValueExtractor(legacy, legacy_fields)
            columnar_extractor = ValueExtractor(columnar, columnar_fields)
            legacy_buffers = legacy_extractor.extract_all()
            columnar_buffers = columnar_extractor.extract_all()
            sequence_comparisons = self._compare_sequences(
                correspondences,
                legacy_fields,
                columnar_fields,
                legacy_extractor,
                columnar_extractor,
            )
            read_errors = legacy_extractor.read_errors + columnar_extractor.read_errors
            self._advance(RunStage.VALUES_EXTRACTED)

            legacy_statistics = self.aggregator.aggregate(legacy_buffers)
            columnar_statistics = self.aggregator.aggregate(columnar_buffers)
            statistics_comparisons = self.aggregator.compare(legacy_statistics, columnar_statistics)
            self._advance(RunStage.STATS_AGGREGATED)

            report = ReconciliationReport(
                run_id=run_id,
                legacy=StoreRef(legacy.location, legacy.object_name, legacy.origin),
                columnar=StoreRef(columnar.location, columnar.object_name, columnar.origin),
                entries=entries,
                fields=fields,
                correspondences=tuple(correspondences),
                type_comparisons=tuple(type_comparisons),
                sequence_comparisons=tuple(sequence_comparisons),
                read_errors=tuple(read_errors),
                legacy_statistics=tuple(legacy_statistics),
                columnar_statistics=tuple(columnar_statistics),
                statistics_comparisons=tuple(statistics_comparisons),
                values=self._values(legacy_buffers, columnar_buffers) if self.include_values else None,
            )
            self._advance(RunStage.REPORTED)

        return report

    def _advance(self, stage: RunStage) -> None:
        current = _STAGE_ORDER.index(self.stage) if self.stage in _STAGE_ORDER else -1
        if stage not in _STAGE_ORDER or _STAGE_ORDER.index(stage) != current + 1:
            raise RuntimeError(
                f"Invalid stage transition: {self.stage.value} -> {stage.value}"
            )
        self.stage = stage
        logger.debug(f"Stage: {stage.value}")

    def _compare_sequences(
        self,
        correspondences: Sequence[FieldCorrespondence],
        legacy_fields: Sequence[FieldDescriptor],
        columnar_fields: Sequence[FieldDescriptor],
        legacy_extractor: ValueExtractor,
        columnar_extractor: ValueExtractor
    ) -> List[SequenceComparison]:
        legacy_by_name = {d.name: d for d in legacy_fields}
        columnar_by_name = {d.name: d for d in columnar_fields}

        comparisons = []
        for correspondence in correspondences:
            if not correspondence.is_matched:
                continue

            legacy_field = legacy_by_name[correspondence.legacy_name]
            columnar_field = columnar_by_name[correspondence.columnar_name]
            if not (legacy_field.canonical_type.is_sequence or columnar_field.canonical_type.is_sequence):
                continue

            comparison = SequenceComparison(
                field_name=correspondence.name,
                legacy_element_type=element_spelling(legacy_field.native_type),
                columnar_element_type=element_spelling(columnar_field.native_type),
                legacy_element_count=legacy_extractor.element_count(legacy_field.name),
                columnar_element_count=columnar_extractor.element_count(columnar_field.name),
            )
            if not comparison.counts_match:
                logger.warning(
                    f"Sequence field {comparison.field_name} element counts differ: "
                    f"TTree={comparison.legacy_element_count}, "
                    f"RNTuple={comparison.columnar_element_count}"
                )
            comparisons.append(comparison)

        return comparisons

    @staticmethod
    def _values(
        legacy_buffers: Dict[ScalarType, FlattenedBuffer],
        columnar_buffers: Dict[ScalarType, FlattenedBuffer]
    ) -> Dict[str, Dict[str, list]]:
        return {
            StoreOrigin.LEGACY.value: {
                t.value: buffer.values.tolist() for t, buffer in legacy_buffers.items()
            },
            StoreOrigin.COLUMNAR.value: {
                t.value: buffer.values.tolist() for t, buffer in columnar_buffers.items()
            },
        }
