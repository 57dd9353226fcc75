"""
Value Extractor for TTree/RNTuple Reconciliation

Reads every field of a canonical type from one store and flattens the
values into a single buffer: fields in declaration order, records in store
order, sequence elements in record order.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from src.reconciliation.errors import FieldReadError
from src.reconciliation.models import (
    FieldDescriptor,
    FieldReadFinding,
    FlattenedBuffer,
    PackedBits,
    ScalarType,
    Shape,
)

logger = logging.getLogger(__name__)


def flatten_records(records: Iterable[Any]) -> Tuple[List[Any], Tuple[int, ...]]:
    """
    Concatenate per-record sequences.

    Bit-packed boolean records are unpacked first. Records that were never
    filled (None) contribute no values and no length.

    Args:
        records: One sequence (or PackedBits, or None) per record

    Returns:
        (flattened values, per-record lengths)
    """
    values: List[Any] = []
    lengths: List[int] = []

    for record in records:
        if record is None:
            continue
        elements = record.unpack() if isinstance(record, PackedBits) else list(record)
        values.extend(elements)
        lengths.append(len(elements))

    return values, tuple(lengths)


def split_records(values: Sequence[Any], lengths: Sequence[int]) -> List[List[Any]]:
    """
    Inverse of flatten_records().

    Raises:
        ValueError: If the lengths do not add up to the number of values
    """
    if sum(lengths) != len(values):
        raise ValueError(
            f"Record lengths add up to {sum(lengths)} but {len(values)} values were given"
        )

    records = []
    offset = 0
    for length in lengths:
        records.append(list(values[offset:offset + length]))
        offset += length
    return records


class ValueExtractor:
    """
    Extracts flattened value buffers from one store.

    Fields are read at most once per extractor. A field that fails to read
    is recorded in ``read_errors`` and contributes no values; the other
    fields are still extracted. Store-level errors propagate.
    """

    def __init__(self, store, descriptors: Sequence[FieldDescriptor]):
        """
        Initialize the extractor.

        Args:
            store: Open StoreAccessor
            descriptors: Field descriptors of that store
        """
        self.store = store
        self.descriptors = list(descriptors)
        self._cache: Dict[str, Optional[Tuple[np.ndarray, Tuple[int, ...]]]] = {}
        self._read_errors: List[FieldReadFinding] = []

    @property
    def read_errors(self) -> List[FieldReadFinding]:
        return list(self._read_errors)

    def extract(self, scalar_type: ScalarType, shape: Optional[Shape] = None) -> FlattenedBuffer:
        """
        Extract every value of one canonical type.

        Args:
            scalar_type: Element type to extract
            shape: Restrict to scalar or sequence fields (both when None)

        Returns:
            FlattenedBuffer; record_lengths covers the sequence fields only
        """
        if scalar_type is ScalarType.UNKNOWN:
            raise ValueError("Cannot extract values of an unknown type")

        parts = []
        lengths: List[int] = []

        for descriptor in self.descriptors:
            if descriptor.canonical_type.scalar is not scalar_type:
                continue
            if shape is not None and descriptor.shape is not shape:
                continue

            field_values = self._field_values(descriptor)
            if field_values is None:
                continue

            values, record_lengths = field_values
            parts.append(values)
            lengths.extend(record_lengths)

        if parts:
            values = np.concatenate(parts)
        else:
            values = np.empty(0, dtype=scalar_type.dtype)

        logger.debug(
            f"Extracted {values.size} {scalar_type.value} values from {self.store.describe()}"
        )
        return FlattenedBuffer(scalar_type, values, tuple(lengths))

    def extract_all(self) -> Dict[ScalarType, FlattenedBuffer]:
        """One buffer per comparable type, scalar and sequence fields together."""
        return {t: self.extract(t) for t in ScalarType.comparable()}

    def element_count(self, field_name: str) -> int:
        """
        Number of flattened values of one field.

        Returns:
            Element count, 0 for unknown, untyped or unreadable fields
        """
        for descriptor in self.descriptors:
            if descriptor.name == field_name:
                if not descriptor.canonical_type.is_known:
                    return 0
                field_values = self._field_values(descriptor)
                return 0 if field_values is None else int(field_values[0].size)
        return 0

    def _field_values(
        self,
        descriptor: FieldDescriptor
    ) -> Optional[Tuple[np.ndarray, Tuple[int, ...]]]:
        if descriptor.name in self._cache:
            return self._cache[descriptor.name]

        dtype = descriptor.canonical_type.scalar.dtype
        result = None
        try:
            records = self.store.read_field(descriptor.name)
            if descriptor.shape is Shape.SEQUENCE:
                values, lengths = flatten_records(records)
            else:
                values = [record for record in records if record is not None]
                lengths = ()
            array = np.asarray(values, dtype=dtype)
            if array.ndim != 1:
                raise ValueError(
                    f"expected one {descriptor.canonical_type.scalar.value} per "
                    f"{'element' if descriptor.shape is Shape.SEQUENCE else 'record'}, "
                    f"got values of shape {array.shape}"
                )
            result = (array, lengths)

        except FieldReadError as e:
            self._record_failure(descriptor, str(e))
        except (TypeError, ValueError, OverflowError) as e:
            self._record_failure(descriptor, f"Malformed values in field '{descriptor.name}': {e}")

        self._cache[descriptor.name] = result
        return result

    def _record_failure(self, descriptor: FieldDescriptor, message: str) -> None:
        logger.warning(f"Skipping field {descriptor.name} of {self.store.describe()}: {message}")
        self._read_errors.append(
            FieldReadFinding(field_name=descriptor.name, origin=descriptor.origin, message=message)
        )
