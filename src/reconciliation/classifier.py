"""
Type Compatibility Classifier for TTree/RNTuple Reconciliation

Canonicalizes native type spellings of both stores and classifies each
field as an exact match, a near match (precision change), a mismatch, or
missing (no canonical mapping on one side).
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from src.reconciliation.models import (
    NO_MATCH,
    FieldCorrespondence,
    Severity,
    TypeComparisonResult,
)
from src.reconciliation.type_table import TypeTable, get_default_type_table

logger = logging.getLogger(__name__)


class TypeClassifier:
    """
    Classifies native type pairs through a TypeTable.

    Classification is symmetric and depends on the table only.
    """

    def __init__(self, type_table: Optional[TypeTable] = None):
        """
        Initialize the classifier.

        Args:
            type_table: Type table to use (shared default table if not provided)
        """
        self.type_table = type_table or get_default_type_table()
        logger.debug("Initialized TypeClassifier")

    def classify(
        self,
        field_name: str,
        legacy_type: str,
        columnar_type: str
    ) -> TypeComparisonResult:
        """
        Classify one field's type pair.

        Args:
            field_name: Field name
            legacy_type: Native TTree spelling (or "No match")
            columnar_type: Native RNTuple spelling (or "No match")

        Returns:
            TypeComparisonResult carrying the severity
        """
        legacy_tag = self.type_table.canonicalize(legacy_type)
        columnar_tag = self.type_table.canonicalize(columnar_type)

        if not legacy_tag.is_known or not columnar_tag.is_known:
            severity = Severity.MISSING
        elif legacy_tag == columnar_tag:
            severity = Severity.EXACT
        elif self.type_table.is_near(legacy_tag, columnar_tag):
            severity = Severity.NEAR
        else:
            severity = Severity.MISMATCH

        if severity is not Severity.EXACT:
            logger.debug(
                f"Field {field_name} type {severity.value}: "
                f"TTree={legacy_type}, RNTuple={columnar_type}"
            )

        return TypeComparisonResult(
            field_name=field_name,
            legacy_type=legacy_type,
            columnar_type=columnar_type,
            legacy_canonical=legacy_tag,
            columnar_canonical=columnar_tag,
            severity=severity,
        )

    def classify_correspondences(
        self,
        correspondences: Sequence[FieldCorrespondence],
        legacy_types: Dict[str, str],
        columnar_types: Dict[str, str]
    ) -> List[TypeComparisonResult]:
        """
        Classify every correspondence of a run.

        A MISSING field does not stop classification of the fields after it.

        Args:
            correspondences: Output of FieldMatcher.match()
            legacy_types: TTree field name -> native spelling
            columnar_types: RNTuple field name -> native spelling

        Returns:
            One result per correspondence, in the same order
        """
        results = []

        for correspondence in correspondences:
            legacy_type = legacy_types.get(correspondence.legacy_name, NO_MATCH)
            columnar_type = columnar_types.get(correspondence.columnar_name, NO_MATCH)
            results.append(self.classify(correspondence.name, legacy_type, columnar_type))

        counts = self.severity_counts(results)
        logger.info(
            "Type comparison: " + ", ".join(f"{count} {name}" for name, count in counts.items())
        )

        return results

    @staticmethod
    def overall(results: Iterable[TypeComparisonResult]) -> Severity:
        """Worst severity across a run: MISSING > MISMATCH > NEAR > EXACT."""
        return Severity.worst(r.severity for r in results)

    @staticmethod
    def severity_counts(results: Iterable[TypeComparisonResult]) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        for result in results:
            counts[result.severity.value] += 1
        return counts
