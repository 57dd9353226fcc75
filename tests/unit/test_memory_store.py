"""
Unit tests for the store accessor interface, exercised through MemoryStore.
"""

import pytest

from src.reconciliation.errors import (
    FieldReadError,
    FieldSetNotFound,
    StoreNotFound,
    StoreNotOpen,
    TableNotFound,
)
from src.reconciliation.models import ScalarType, Shape, StoreOrigin
from src.reconciliation.stores.base import is_private_field
from src.reconciliation.stores.memory import MemoryStore
from src.reconciliation.type_table import TypeTable


class TestPrivateFields:
    """Test private field detection."""

    @pytest.mark.parametrize("name,expected", [
        ("_0", True),
        ("hits._0", True),
        ("hits", False),
        ("_01", False),
        ("x_0", False),
    ])
    def test_is_private_field(self, name, expected):
        assert is_private_field(name) is expected


class TestMemoryStore:
    """Test the store accessor lifecycle and queries."""

    def test_lifecycle(self, legacy_store):
        assert not legacy_store.is_open

        with legacy_store as store:
            assert store.is_open
            assert store.entry_count() == 10

        assert not legacy_store.is_open

    def test_queries_require_open_handle(self, legacy_store):
        with pytest.raises(StoreNotOpen):
            legacy_store.entry_count()

    def test_field_types_in_declaration_order(self, legacy_store):
        with legacy_store:
            assert legacy_store.field_types() == [
                ("value", "Int_t"),
                ("weight", "Float_t"),
                ("energy", "Double_t"),
                ("isNew", "Bool_t"),
            ]

    def test_private_fields_are_hidden(self):
        store = MemoryStore(
            [("hits", "std::vector<float>", [[1.0]]), ("_0", "float", [1.0])],
            origin=StoreOrigin.COLUMNAR,
        )
        with store:
            assert store.field_names() == ["hits"]
            with pytest.raises(FieldReadError):
                store.read_field("_0")

    def test_field_descriptors(self):
        store = MemoryStore([("hits", "vector<double>", [[1.0]]), ("id", "Long64_t", [1])])
        with store:
            descriptors = store.field_descriptors(TypeTable.default())

        assert descriptors[0].canonical_type.scalar is ScalarType.FLOAT64
        assert descriptors[0].shape is Shape.SEQUENCE
        assert descriptors[0].origin is StoreOrigin.LEGACY
        assert not descriptors[1].canonical_type.is_known

    def test_read_field_and_entry(self, columnar_store):
        with columnar_store:
            assert columnar_store.read_field("value") == list(range(10))
            assert columnar_store.read_entry("energy", 2) == 2.5

    def test_read_entry_out_of_range(self, columnar_store):
        with columnar_store:
            with pytest.raises(FieldReadError, match="out of range"):
                columnar_store.read_entry("value", 10)

    def test_read_entry_not_stored(self):
        store = MemoryStore([("a", "Int_t", [1, 2]), ("b", "Int_t", [1])])
        with store:
            with pytest.raises(FieldReadError, match="not stored"):
                store.read_entry("b", 1)

    def test_read_unknown_field(self, legacy_store):
        with legacy_store:
            with pytest.raises(FieldReadError) as exc_info:
                legacy_store.read_field("mass")

        assert exc_info.value.field_name == "mass"
        assert exc_info.value.origin is StoreOrigin.LEGACY

    def test_explicit_entry_count(self):
        store = MemoryStore([("a", "Int_t", [1, 2])], entries=5)
        with store:
            assert store.entry_count() == 5

    def test_empty_store(self):
        with MemoryStore([]) as store:
            assert store.entry_count() == 0
            assert store.field_types() == []

    def test_missing_file(self):
        store = MemoryStore([], exists=False, location="absent.root")

        with pytest.raises(
            StoreNotFound, match=r"absent.root \(looking for ttree events\)"
        ) as exc_info:
            store.open()

        assert exc_info.value.store == "absent.root"
        assert not store.is_open

    def test_missing_tree(self):
        store = MemoryStore([], object_exists=False, object_name="tree")

        with pytest.raises(TableNotFound, match="tree"):
            store.open()

    def test_missing_ntuple(self):
        store = MemoryStore([], origin=StoreOrigin.COLUMNAR, object_exists=False)

        with pytest.raises(FieldSetNotFound):
            store.open()

    def test_duplicate_fields_rejected(self):
        with pytest.raises(ValueError, match="Duplicate field names"):
            MemoryStore([("a", "Int_t", []), ("a", "Float_t", [])])

    def test_describe(self, columnar_store):
        assert columnar_store.describe() == "rntuple 'events' in migrated.root"
