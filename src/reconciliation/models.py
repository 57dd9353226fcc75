"""
Data Model for TTree/RNTuple Reconciliation

Plain, read-only value objects produced by a single reconciliation run:
type tags, field descriptors, correspondences, type comparison results,
flattened value buffers, statistics buckets and the final report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

NO_MATCH = "No match"


class ScalarType(Enum):
    """Canonical element types."""
    INT32 = "int"
    FLOAT32 = "float"
    FLOAT64 = "double"
    BOOL = "bool"
    UNKNOWN = "unknown"

    @classmethod
    def comparable(cls) -> List["ScalarType"]:
        """Types that get a statistics bucket, in report order."""
        return [cls.INT32, cls.FLOAT32, cls.FLOAT64, cls.BOOL]

    @property
    def dtype(self) -> np.dtype:
        if self is ScalarType.UNKNOWN:
            raise ValueError("Unknown type has no value representation")
        return np.dtype(_DTYPES[self])


_DTYPES = {
    ScalarType.INT32: np.int32,
    ScalarType.FLOAT32: np.float32,
    ScalarType.FLOAT64: np.float64,
    ScalarType.BOOL: np.bool_,
}


class Shape(Enum):
    """Record shape of a field."""
    SCALAR = "scalar"
    SEQUENCE = "sequence"


class StoreOrigin(Enum):
    """Which side of the comparison a store or field belongs to."""
    LEGACY = "ttree"
    COLUMNAR = "rntuple"


@dataclass(frozen=True)
class TypeTag:
    """
    Canonical type of a field.

    A sequence of T is represented as TypeTag(T, Shape.SEQUENCE). The
    canonical spelling (``str(tag)``) is ``int``, ``double``,
    ``vector<float>`` and so on.
    """
    scalar: ScalarType
    shape: Shape = Shape.SCALAR

    @classmethod
    def unknown(cls) -> "TypeTag":
        return cls(ScalarType.UNKNOWN, Shape.SCALAR)

    @classmethod
    def sequence_of(cls, scalar: ScalarType) -> "TypeTag":
        return cls(scalar, Shape.SEQUENCE)

    @classmethod
    def parse(cls, spelling: str) -> "TypeTag":
        """
        Parse a canonical spelling.

        Args:
            spelling: Canonical spelling such as "float" or "vector<int>"

        Returns:
            The matching TypeTag

        Raises:
            ValueError: If the spelling is not a canonical one
        """
        text = spelling.strip()
        shape = Shape.SCALAR
        if text.startswith("vector<") and text.endswith(">"):
            text = text[len("vector<"):-1].strip()
            shape = Shape.SEQUENCE

        try:
            scalar = ScalarType(text)
        except ValueError as e:
            raise ValueError(f"Not a canonical type spelling: '{spelling}'") from e

        if scalar is ScalarType.UNKNOWN:
            raise ValueError(f"Not a canonical type spelling: '{spelling}'")

        return cls(scalar, shape)

    @property
    def is_known(self) -> bool:
        return self.scalar is not ScalarType.UNKNOWN

    @property
    def is_sequence(self) -> bool:
        return self.shape is Shape.SEQUENCE

    def __str__(self) -> str:
        if self.shape is Shape.SEQUENCE:
            return f"vector<{self.scalar.value}>"
        return self.scalar.value


@dataclass(frozen=True)
class FieldDescriptor:
    """A named, typed field of one store."""
    name: str
    native_type: str
    canonical_type: TypeTag
    origin: StoreOrigin

    @property
    def shape(self) -> Shape:
        return self.canonical_type.shape


@dataclass(frozen=True)
class FieldCorrespondence:
    """Pairing of a legacy field with a columnar field by name."""
    legacy_name: str
    columnar_name: str

    @property
    def is_matched(self) -> bool:
        return self.legacy_name != NO_MATCH and self.columnar_name != NO_MATCH

    @property
    def name(self) -> str:
        """The real field name carried by this correspondence."""
        return self.legacy_name if self.legacy_name != NO_MATCH else self.columnar_name

    def to_dict(self) -> Dict[str, str]:
        return {"ttree": self.legacy_name, "rntuple": self.columnar_name}


class Severity(Enum):
    """Outcome of comparing the types of one field across both stores."""
    EXACT = "exact"
    NEAR = "near"
    MISMATCH = "mismatch"
    MISSING = "missing"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def verdict(self) -> str:
        """Aggregate verdict label for this severity."""
        if self is Severity.EXACT:
            return "TRUE"
        if self is Severity.NEAR:
            return "NOT_EXACTLY"
        return "FALSE"

    @classmethod
    def worst(cls, severities: Iterable["Severity"]) -> "Severity":
        """Worst case of the given severities; EXACT when there are none."""
        return max(severities, key=lambda s: s.rank, default=cls.EXACT)


_SEVERITY_RANK = {
    Severity.EXACT: 0,
    Severity.NEAR: 1,
    Severity.MISMATCH: 2,
    Severity.MISSING: 3,
}


@dataclass(frozen=True)
class TypeComparisonResult:
    """Per-field type comparison."""
    field_name: str
    legacy_type: str
    columnar_type: str
    legacy_canonical: TypeTag
    columnar_canonical: TypeTag
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field_name,
            "ttree_type": self.legacy_type,
            "rntuple_type": self.columnar_type,
            "ttree_canonical": str(self.legacy_canonical),
            "rntuple_canonical": str(self.columnar_canonical),
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class PackedBits:
    """
    Bit-packed boolean sequence of one record.

    Bits are stored least-significant bit first; only the first ``length``
    bits are meaningful.
    """
    data: bytes
    length: int

    def __post_init__(self):
        if self.length < 0 or self.length > len(self.data) * 8:
            raise ValueError(
                f"Bit length {self.length} does not fit in {len(self.data)} bytes"
            )

    @classmethod
    def pack(cls, values: Iterable[bool]) -> "PackedBits":
        bits = np.asarray(list(values), dtype=np.bool_)
        return cls(np.packbits(bits, bitorder="little").tobytes(), int(bits.size))

    def unpack(self) -> List[bool]:
        raw = np.frombuffer(self.data, dtype=np.uint8)
        bits = np.unpackbits(raw, bitorder="little")[:self.length]
        return [bool(b) for b in bits]

    def __len__(self) -> int:
        return self.length


@dataclass(frozen=True, eq=False)
class FlattenedBuffer:
    """All values of one canonical type read from one store."""
    scalar_type: ScalarType
    values: np.ndarray
    record_lengths: Tuple[int, ...] = ()

    def __post_init__(self):
        self.values.flags.writeable = False

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class StatisticsBucket:
    """Summary statistics of one canonical type for one store."""
    canonical_type: ScalarType
    count: int
    mean: float
    stddev: float

    @classmethod
    def empty(cls, canonical_type: ScalarType) -> "StatisticsBucket":
        return cls(canonical_type, 0, 0.0, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.canonical_type.value,
            "count": self.count,
            "mean": self.mean,
            "stddev": self.stddev,
        }


@dataclass(frozen=True)
class StatisticsComparison:
    """Matching statistics buckets of both stores."""
    canonical_type: ScalarType
    legacy: StatisticsBucket
    columnar: StatisticsBucket

    @property
    def equal(self) -> bool:
        # Exact comparison: drift introduced by the migration must surface.
        return (
            self.legacy.count == self.columnar.count
            and self.legacy.mean == self.columnar.mean
            and self.legacy.stddev == self.columnar.stddev
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.canonical_type.value,
            "ttree": self.legacy.to_dict(),
            "rntuple": self.columnar.to_dict(),
            "equal": self.equal,
        }


@dataclass(frozen=True)
class SequenceComparison:
    """Element types and element counts of a sequence field on both sides."""
    field_name: str
    legacy_element_type: str
    columnar_element_type: str
    legacy_element_count: int
    columnar_element_count: int

    @property
    def counts_match(self) -> bool:
        return self.legacy_element_count == self.columnar_element_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field_name,
            "ttree_element_type": self.legacy_element_type,
            "rntuple_element_type": self.columnar_element_type,
            "ttree_element_count": self.legacy_element_count,
            "rntuple_element_count": self.columnar_element_count,
            "counts_match": self.counts_match,
        }


@dataclass(frozen=True)
class FieldReadFinding:
    """A field whose values could not be extracted."""
    field_name: str
    origin: StoreOrigin
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field_name, "store": self.origin.value, "message": self.message}


@dataclass(frozen=True)
class CountPair:
    """A count taken on both stores."""
    legacy: int
    columnar: int

    @property
    def equal(self) -> bool:
        return self.legacy == self.columnar

    def to_dict(self) -> Dict[str, Any]:
        return {"ttree": self.legacy, "rntuple": self.columnar, "equal": self.equal}


@dataclass(frozen=True)
class StoreRef:
    """Where a store lives and which object inside it was compared."""
    location: str
    object_name: str
    origin: StoreOrigin

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.location, "name": self.object_name, "kind": self.origin.value}


@dataclass(frozen=True)
class ReconciliationReport:
    """
    Composite result of one reconciliation run.

    Holds the raw findings of every stage plus derived verdicts. Rendering
    is left to the caller; ``to_dict()`` gives a JSON-serializable view.
    """
    run_id: str
    legacy: StoreRef
    columnar: StoreRef
    entries: CountPair
    fields: CountPair
    correspondences: Tuple[FieldCorrespondence, ...]
    type_comparisons: Tuple[TypeComparisonResult, ...]
    sequence_comparisons: Tuple[SequenceComparison, ...]
    read_errors: Tuple[FieldReadFinding, ...]
    legacy_statistics: Tuple[StatisticsBucket, ...]
    columnar_statistics: Tuple[StatisticsBucket, ...]
    statistics_comparisons: Tuple[StatisticsComparison, ...]
    values: Optional[Dict[str, Dict[str, List[Any]]]] = field(default=None, compare=False)

    @property
    def entries_match(self) -> bool:
        return self.entries.equal

    @property
    def fields_match(self) -> bool:
        return self.fields.equal

    @property
    def names_match(self) -> bool:
        return all(c.is_matched for c in self.correspondences)

    @property
    def type_severity(self) -> Severity:
        """Worst type severity, counting unreadable fields as MISSING."""
        severities = [r.severity for r in self.type_comparisons]
        if self.read_errors:
            severities.append(Severity.MISSING)
        return Severity.worst(severities)

    @property
    def type_verdict(self) -> str:
        return self.type_severity.verdict

    @property
    def statistics_match(self) -> bool:
        return all(c.equal for c in self.statistics_comparisons)

    @property
    def sequences_match(self) -> bool:
        return all(c.counts_match for c in self.sequence_comparisons)

    @property
    def passed(self) -> bool:
        return (
            self.entries_match
            and self.fields_match
            and self.names_match
            and self.type_severity is Severity.EXACT
            and self.sequences_match
            and self.statistics_match
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the report."""
        result = {
            "run_id": self.run_id,
            "ttree": self.legacy.to_dict(),
            "rntuple": self.columnar.to_dict(),
            "entries": self.entries.to_dict(),
            "fields": self.fields.to_dict(),
            "field_names": [c.to_dict() for c in self.correspondences],
            "field_types": [r.to_dict() for r in self.type_comparisons],
            "sequence_fields": [c.to_dict() for c in self.sequence_comparisons],
            "read_errors": [f.to_dict() for f in self.read_errors],
            "statistics": [c.to_dict() for c in self.statistics_comparisons],
            "verdicts": {
                "entries_match": self.entries_match,
                "fields_match": self.fields_match,
                "names_match": self.names_match,
                "types": self.type_verdict,
                "type_severity": self.type_severity.value,
                "sequences_match": self.sequences_match,
                "statistics_match": self.statistics_match,
                "passed": self.passed,
            },
        }
        if self.values is not None:
            result["values"] = self.values
        return result
