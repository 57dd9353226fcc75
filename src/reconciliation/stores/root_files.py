"""
ROOT file store accessors backed by uproot.

TTreeStore reads a legacy TTree, RNTupleStore reads an RNTuple. Both only
read; nothing is ever written back to the files.
"""

import logging
from typing import Any, List, Optional, Tuple

import awkward as ak
import uproot

from src.reconciliation.errors import (
    FieldReadError,
    FieldSetNotFound,
    StoreNotFound,
    TableNotFound,
)
from src.reconciliation.models import StoreOrigin
from src.reconciliation.stores.base import StoreAccessor

logger = logging.getLogger(__name__)

# ROOT leaf classes and the type name TLeaf::GetTypeName() reports for them
LEAF_TYPE_NAMES = {
    "TLeafB": "Char_t",
    "TLeafS": "Short_t",
    "TLeafI": "Int_t",
    "TLeafL": "Long64_t",
    "TLeafF": "Float_t",
    "TLeafD": "Double_t",
    "TLeafO": "Bool_t",
}

RNTUPLE_CLASSNAMES = ("ROOT::Experimental::RNTuple", "ROOT::RNTuple")

# Errors uproot raises while decoding a branch or field
_READ_ERRORS = (
    uproot.DeserializationError,
    NotImplementedError,
    ValueError,
    KeyError,
    OSError,
)


class _RootFileStore(StoreAccessor):
    """Shared open/close handling for objects inside a ROOT file."""

    expected_classnames: Tuple[str, ...] = ()
    missing_error = TableNotFound

    def __init__(self, location: str, object_name: str):
        super().__init__(location, object_name)
        self._file = None
        self._object = None

    def _open_store(self) -> None:
        try:
            self._file = uproot.open(self.location)
        except (OSError, ValueError) as e:
            logger.error(f"Cannot open {self.origin.value} file {self.location}: {e}")
            raise StoreNotFound(
                f"Cannot open {self.origin.value} file: {self.location} "
                f"(looking for {self.origin.value} {self.object_name})",
                store=self.location,
                object_name=self.object_name,
            ) from e

        try:
            classname = self._file.classname_of(self.object_name)
        except KeyError as e:
            self._release()
            raise self.missing_error(
                f"Cannot find {self.origin.value}: {self.object_name} in file: {self.location}",
                store=self.location,
                object_name=self.object_name,
            ) from e

        if classname not in self.expected_classnames:
            self._release()
            raise self.missing_error(
                f"Object {self.object_name} in file {self.location} is a {classname}, "
                f"not a {self.origin.value}",
                store=self.location,
                object_name=self.object_name,
            )

        self._object = self._file[self.object_name]

    def _close_store(self) -> None:
        self._release()

    def _release(self) -> None:
        if self._file is not None:
            self._file.close()
        self._file = None
        self._object = None

    def _entry_count(self) -> int:
        return int(self._object.num_entries)

    def _read_field(self, name: str) -> List[Any]:
        try:
            return ak.to_list(self._load(name, None, None))
        except _READ_ERRORS as e:
            raise FieldReadError(
                f"Failed to read field '{name}' from {self.describe()}: {e}",
                field_name=name,
                origin=self.origin,
            ) from e

    def _read_entry(self, name: str, index: int) -> Any:
        try:
            return ak.to_list(self._load(name, index, index + 1))[0]
        except _READ_ERRORS as e:
            raise FieldReadError(
                f"Failed to read entry {index} of field '{name}' from {self.describe()}: {e}",
                field_name=name,
                origin=self.origin,
            ) from e

    def _load(self, name: str, entry_start: Optional[int], entry_stop: Optional[int]):
        raise NotImplementedError


class TTreeStore(_RootFileStore):
    """Legacy row-store: a TTree read through uproot."""

    origin = StoreOrigin.LEGACY
    expected_classnames = ("TTree",)
    missing_error = TableNotFound

    def _field_types(self) -> List[Tuple[str, str]]:
        return [(branch.name, self.native_type(branch)) for branch in self._object.branches]

    @staticmethod
    def native_type(branch) -> str:
        """
        Native type spelling of a branch, as ROOT reports it.

        Branch elements report their class name (``vector<int>``); simple
        branches report the type of their single leaf (``Int_t``), with a
        ``[]`` suffix when the leaf holds an array per entry (``hits[nhits]/I``
        or ``xyz[3]/F``).
        """
        if branch.classname == "TBranchElement" and branch.has_member("fClassName"):
            class_name = branch.member("fClassName")
            if class_name:
                return str(class_name)

        leaves = branch.member("fLeaves") if branch.has_member("fLeaves") else []
        if len(leaves) == 1 and leaves[0].classname in LEAF_TYPE_NAMES:
            type_name = LEAF_TYPE_NAMES[leaves[0].classname]
            if TTreeStore.is_array_leaf(leaves[0]):
                return type_name + "[]"
            return type_name

        return branch.typename

    @staticmethod
    def is_array_leaf(leaf) -> bool:
        """Whether a leaf stores a counted or fixed-size array per entry."""
        if leaf.has_member("fLeafCount") and leaf.member("fLeafCount") is not None:
            return True
        return leaf.has_member("fLen") and int(leaf.member("fLen")) > 1

    def _load(self, name: str, entry_start: Optional[int], entry_stop: Optional[int]):
        return self._object[name].array(
            entry_start=entry_start,
            entry_stop=entry_stop,
            library="ak",
        )


class RNTupleStore(_RootFileStore):
    """Columnar store: an RNTuple read through uproot."""

    origin = StoreOrigin.COLUMNAR
    expected_classnames = RNTUPLE_CLASSNAMES
    missing_error = FieldSetNotFound

    def _field_types(self) -> List[Tuple[str, str]]:
        # Top-level fields are their own parent; subfields (such as the
        # "_0" item field of a vector) point at their collection.
        return [
            (record.field_name, record.type_name)
            for field_id, record in enumerate(self._object.field_records)
            if record.parent_field_id == field_id
        ]

    def _load(self, name: str, entry_start: Optional[int], entry_stop: Optional[int]):
        arrays = self._object.arrays(
            filter_name=[name],
            entry_start=entry_start,
            entry_stop=entry_stop,
            library="ak",
        )
        return arrays[name]
