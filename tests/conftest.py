"""
Pytest configuration and shared fixtures for unit and integration tests.

Provides in-memory TTree/RNTuple stores for the standard reconciliation
scenarios: identical stores, a renamed field, a dropped record and a
precision change.
"""

import pytest

from src.reconciliation.models import StoreOrigin
from src.reconciliation.stores.memory import MemoryStore

RECORDS = 10

VALUES = list(range(RECORDS))
WEIGHTS = [i * 0.5 for i in range(RECORDS)]
ENERGIES = [i * 1.25 for i in range(RECORDS)]
IS_NEW = [i % 2 == 0 for i in range(RECORDS)]

LEGACY_TYPES = {"value": "Int_t", "weight": "Float_t", "energy": "Double_t", "isNew": "Bool_t"}
COLUMNAR_TYPES = {"value": "std::int32_t", "weight": "float", "energy": "double", "isNew": "bool"}


def legacy_columns(skip=None):
    return _columns(LEGACY_TYPES, skip)


def columnar_columns(skip=None):
    return _columns(COLUMNAR_TYPES, skip)


def _columns(types, skip):
    data = {"value": VALUES, "weight": WEIGHTS, "energy": ENERGIES, "isNew": IS_NEW}
    columns = []
    for name in ("value", "weight", "energy", "isNew"):
        values = [v for i, v in enumerate(data[name]) if i != skip]
        columns.append((name, types[name], values))
    return columns


def make_legacy(columns=None, **kwargs):
    """TTree-side memory store; the four standard fields by default."""
    return MemoryStore(
        legacy_columns() if columns is None else columns,
        origin=StoreOrigin.LEGACY,
        location="legacy.root",
        **kwargs
    )


def make_columnar(columns=None, **kwargs):
    """RNTuple-side memory store; the four standard fields by default."""
    return MemoryStore(
        columnar_columns() if columns is None else columns,
        origin=StoreOrigin.COLUMNAR,
        location="migrated.root",
        **kwargs
    )


@pytest.fixture
def legacy_store():
    """TTree store with 10 records of value/weight/energy/isNew."""
    return make_legacy()


@pytest.fixture
def columnar_store():
    """RNTuple store identical in content to legacy_store."""
    return make_columnar()


@pytest.fixture
def renamed_columnar_store():
    """RNTuple store where 'energy' was renamed to 'mass'."""
    columns = [
        ("mass" if name == "energy" else name, native, values)
        for name, native, values in columnar_columns()
    ]
    return make_columnar(columns)


@pytest.fixture
def dropped_record_columnar_store():
    """RNTuple store missing record 4."""
    return make_columnar(columnar_columns(skip=4))


@pytest.fixture
def narrowed_columnar_store():
    """RNTuple store where 'energy' was stored as float instead of double."""
    columns = [
        (name, "float" if name == "energy" else native, values)
        for name, native, values in columnar_columns()
    ]
    return make_columnar(columns)


@pytest.fixture
def make_legacy_store():
    """Factory for TTree-side memory stores."""
    return make_legacy


@pytest.fixture
def make_columnar_store():
    """Factory for RNTuple-side memory stores."""
    return make_columnar
