"""
TTree Store Integration Tests

Reads a real TTree written by uproot and reconciles it against in-memory
RNTuple columns.
"""

import pytest

from src.reconciliation.checker import ReconciliationChecker
from src.reconciliation.errors import FieldSetNotFound, StoreNotFound, TableNotFound
from src.reconciliation.models import ScalarType, Severity, Shape
from src.reconciliation.stores.root_files import RNTupleStore, TTreeStore
from src.reconciliation.type_table import TypeTable


@pytest.mark.integration
class TestTTreeStore:
    """Integration tests for reading TTrees."""

    def test_field_types(self, ttree_file):
        with TTreeStore(ttree_file, "events") as store:
            assert store.entry_count() == 10
            assert store.field_types() == [
                ("value", "Int_t"),
                ("weight", "Float_t"),
                ("energy", "Double_t"),
                ("isNew", "Bool_t"),
                ("nhits", "Int_t"),
                ("hits", "Int_t[]"),
            ]

    def test_counted_branch_is_a_sequence(self, ttree_file):
        with TTreeStore(ttree_file, "events") as store:
            descriptors = {d.name: d for d in store.field_descriptors(TypeTable.default())}

        assert descriptors["hits"].shape is Shape.SEQUENCE
        assert descriptors["nhits"].shape is Shape.SCALAR

    def test_read_field(self, ttree_file):
        with TTreeStore(ttree_file, "events") as store:
            assert store.read_field("value") == list(range(10))
            assert store.read_field("isNew")[:3] == [True, False, True]
            assert store.read_field("hits")[:4] == [[], [0], [0, 1], []]
            assert store.read_field("nhits")[:4] == [0, 1, 2, 0]

    def test_read_entry(self, ttree_file):
        with TTreeStore(ttree_file, "events") as store:
            assert store.read_entry("energy", 4) == 5.0
            assert store.read_entry("hits", 5) == [0, 1]

    def test_missing_tree(self, ttree_file):
        with pytest.raises(TableNotFound, match="tracks"):
            TTreeStore(ttree_file, "tracks").open()

    def test_tree_is_not_an_ntuple(self, ttree_file):
        with pytest.raises(FieldSetNotFound):
            RNTupleStore(ttree_file, "events").open()

    def test_missing_file(self, tmp_path):
        with pytest.raises(StoreNotFound, match="looking for ttree events"):
            TTreeStore(str(tmp_path / "absent.root"), "events").open()


@pytest.mark.integration
class TestTTreeReconciliation:
    """Reconcile a real TTree against in-memory columns."""

    def test_identical_content(self, ttree_file, jagged_columnar_store):
        checker = ReconciliationChecker(TTreeStore(ttree_file, "events"), jagged_columnar_store)

        report = checker.run()

        assert report.passed
        assert report.type_severity is Severity.EXACT
        assert report.read_errors == ()
        ints = [c for c in report.statistics_comparisons if c.canonical_type is ScalarType.INT32][0]
        assert ints.legacy.count == 29

    def test_sequence_field(self, ttree_file, jagged_columnar_store):
        report = ReconciliationChecker(TTreeStore(ttree_file, "events"), jagged_columnar_store).run()

        [hits] = report.sequence_comparisons
        assert hits.field_name == "hits"
        assert hits.legacy_element_type == "Int_t"
        assert hits.columnar_element_type == "std::int32_t"
        assert hits.legacy_element_count == hits.columnar_element_count == 9

    def test_dropped_record(self, ttree_file, dropped_record_columnar_store):
        legacy = TTreeStore(ttree_file, "events")

        report = ReconciliationChecker(legacy, dropped_record_columnar_store).run()

        assert not report.entries_match
        assert not report.statistics_match
        assert not legacy.is_open
