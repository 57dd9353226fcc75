"""
Unit tests for reconciliation data model.
"""

import numpy as np
import pytest

from src.reconciliation.models import (
    NO_MATCH,
    CountPair,
    FieldCorrespondence,
    FieldReadFinding,
    FlattenedBuffer,
    PackedBits,
    ReconciliationReport,
    ScalarType,
    Severity,
    Shape,
    StatisticsBucket,
    StatisticsComparison,
    StoreOrigin,
    StoreRef,
    TypeComparisonResult,
    TypeTag,
)


class TestTypeTag:
    """Test canonical type tags."""

    def test_parse_scalar(self):
        tag = TypeTag.parse("double")
        assert tag == TypeTag(ScalarType.FLOAT64)
        assert not tag.is_sequence

    def test_parse_sequence(self):
        tag = TypeTag.parse("vector<int>")
        assert tag == TypeTag.sequence_of(ScalarType.INT32)
        assert tag.is_sequence
        assert str(tag) == "vector<int>"

    def test_parse_rejects_unknown_spelling(self):
        with pytest.raises(ValueError, match="Not a canonical type spelling"):
            TypeTag.parse("Long64_t")

    def test_parse_rejects_unknown_tag(self):
        with pytest.raises(ValueError):
            TypeTag.parse("unknown")

    def test_unknown_tag(self):
        tag = TypeTag.unknown()
        assert not tag.is_known
        assert str(tag) == "unknown"


class TestScalarType:
    """Test canonical element types."""

    def test_comparable_order(self):
        assert ScalarType.comparable() == [
            ScalarType.INT32, ScalarType.FLOAT32, ScalarType.FLOAT64, ScalarType.BOOL,
        ]

    def test_dtypes(self):
        assert ScalarType.INT32.dtype == np.dtype(np.int32)
        assert ScalarType.FLOAT32.dtype == np.dtype(np.float32)
        assert ScalarType.BOOL.dtype == np.dtype(np.bool_)

    def test_unknown_has_no_dtype(self):
        with pytest.raises(ValueError):
            ScalarType.UNKNOWN.dtype


class TestFieldCorrespondence:
    """Test field correspondences."""

    def test_matched(self):
        correspondence = FieldCorrespondence("energy", "energy")
        assert correspondence.is_matched
        assert correspondence.name == "energy"

    def test_unmatched_sides(self):
        legacy_only = FieldCorrespondence("energy", NO_MATCH)
        columnar_only = FieldCorrespondence(NO_MATCH, "mass")

        assert not legacy_only.is_matched
        assert legacy_only.name == "energy"
        assert columnar_only.name == "mass"
        assert columnar_only.to_dict() == {"ttree": "No match", "rntuple": "mass"}


class TestSeverity:
    """Test severity ordering and verdicts."""

    def test_worst_case_wins(self):
        assert Severity.worst([Severity.EXACT, Severity.NEAR]) is Severity.NEAR
        assert Severity.worst([Severity.MISSING, Severity.MISMATCH]) is Severity.MISSING

    def test_worst_of_nothing_is_exact(self):
        assert Severity.worst([]) is Severity.EXACT

    def test_verdicts(self):
        assert Severity.EXACT.verdict == "TRUE"
        assert Severity.NEAR.verdict == "NOT_EXACTLY"
        assert Severity.MISMATCH.verdict == "FALSE"
        assert Severity.MISSING.verdict == "FALSE"


class TestPackedBits:
    """Test bit-packed boolean records."""

    def test_pack_and_unpack(self):
        bits = [True, False, True, True, False, False, False, False, True]
        packed = PackedBits.pack(bits)

        assert len(packed) == 9
        assert len(packed.data) == 2
        assert packed.unpack() == bits

    def test_least_significant_bit_first(self):
        assert PackedBits(b"\x05", 3).unpack() == [True, False, True]

    def test_length_must_fit(self):
        with pytest.raises(ValueError, match="does not fit"):
            PackedBits(b"\x01", 9)


class TestFlattenedBuffer:
    """Test flattened value buffers."""

    def test_values_are_read_only(self):
        buffer = FlattenedBuffer(ScalarType.INT32, np.arange(3, dtype=np.int32))

        assert len(buffer) == 3
        with pytest.raises(ValueError):
            buffer.values[0] = 7


class TestStatisticsComparison:
    """Test exact statistics comparison."""

    def test_equal_buckets(self):
        bucket = StatisticsBucket(ScalarType.INT32, 10, 4.5, 2.5)
        assert StatisticsComparison(ScalarType.INT32, bucket, bucket).equal

    def test_tiny_difference_is_not_equal(self):
        legacy = StatisticsBucket(ScalarType.FLOAT64, 10, 4.5, 2.5)
        columnar = StatisticsBucket(ScalarType.FLOAT64, 10, 4.5 + 1e-12, 2.5)
        assert not StatisticsComparison(ScalarType.FLOAT64, legacy, columnar).equal

    def test_empty_bucket(self):
        assert StatisticsBucket.empty(ScalarType.BOOL).to_dict() == {
            "type": "bool", "count": 0, "mean": 0.0, "stddev": 0.0,
        }


class TestReconciliationReport:
    """Test report verdicts and serialization."""

    def build_report(self, severity=Severity.EXACT, read_errors=(), correspondences=None, values=None):
        int_tag = TypeTag(ScalarType.INT32)
        bucket = StatisticsBucket(ScalarType.INT32, 2, 0.5, 0.5)
        return ReconciliationReport(
            run_id="run-1",
            legacy=StoreRef("legacy.root", "events", StoreOrigin.LEGACY),
            columnar=StoreRef("migrated.root", "events", StoreOrigin.COLUMNAR),
            entries=CountPair(2, 2),
            fields=CountPair(1, 1),
            correspondences=correspondences or (FieldCorrespondence("value", "value"),),
            type_comparisons=(
                TypeComparisonResult("value", "Int_t", "std::int32_t", int_tag, int_tag, severity),
            ),
            sequence_comparisons=(),
            read_errors=tuple(read_errors),
            legacy_statistics=(bucket,),
            columnar_statistics=(bucket,),
            statistics_comparisons=(StatisticsComparison(ScalarType.INT32, bucket, bucket),),
            values=values,
        )

    def test_passed(self):
        report = self.build_report()
        assert report.passed
        assert report.type_verdict == "TRUE"

    def test_near_type_fails(self):
        report = self.build_report(severity=Severity.NEAR)
        assert not report.passed
        assert report.type_verdict == "NOT_EXACTLY"

    def test_read_error_counts_as_missing(self):
        finding = FieldReadFinding("value", StoreOrigin.COLUMNAR, "broken page")
        report = self.build_report(read_errors=[finding])

        assert report.type_severity is Severity.MISSING
        assert not report.passed

    def test_unmatched_names_fail(self):
        report = self.build_report(correspondences=(
            FieldCorrespondence("value", NO_MATCH),
            FieldCorrespondence(NO_MATCH, "amount"),
        ))
        assert not report.names_match
        assert not report.passed

    def test_to_dict(self):
        report = self.build_report()
        data = report.to_dict()

        assert data["run_id"] == "run-1"
        assert data["ttree"] == {"file": "legacy.root", "name": "events", "kind": "ttree"}
        assert data["entries"] == {"ttree": 2, "rntuple": 2, "equal": True}
        assert data["field_types"][0]["severity"] == "exact"
        assert data["verdicts"]["passed"] is True
        assert "values" not in data

    def test_to_dict_with_values(self):
        report = self.build_report(values={"ttree": {"int": [0, 1]}, "rntuple": {"int": [0, 1]}})
        assert report.to_dict()["values"]["ttree"]["int"] == [0, 1]
