"""
In-memory store accessor.

Holds already-decoded columns. Used for tests and by callers that decode
the stores themselves.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from src.reconciliation.errors import FieldSetNotFound, StoreNotFound, TableNotFound
from src.reconciliation.models import StoreOrigin
from src.reconciliation.stores.base import StoreAccessor

logger = logging.getLogger(__name__)


class MemoryStore(StoreAccessor):
    """
    Store accessor over in-memory columns.

    Each column is (name, native type, per-record values). A ``None`` record
    stands for an entry that was never filled.
    """

    def __init__(
        self,
        columns: Sequence[Tuple[str, str, Sequence[Any]]],
        origin: StoreOrigin = StoreOrigin.LEGACY,
        object_name: str = "events",
        location: str = "memory",
        entries: Optional[int] = None,
        exists: bool = True,
        object_exists: bool = True
    ):
        """
        Initialize the in-memory store.

        Args:
            columns: (name, native type, values) per field, in declaration order
            origin: Which side of the comparison this store plays
            object_name: Name of the TTree / RNTuple
            location: Pseudo file name used in messages
            entries: Entry count; defaults to the longest column
            exists: Simulate a file that cannot be opened when False
            object_exists: Simulate a missing TTree / RNTuple when False
        """
        super().__init__(location, object_name)
        self.origin = origin
        self._columns = [(name, native, list(values)) for name, native, values in columns]
        self._entries = entries
        self._exists = exists
        self._object_exists = object_exists

        names = [name for name, _, _ in self._columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in {self.describe()}: {names}")

    def _open_store(self) -> None:
        if not self._exists:
            raise StoreNotFound(
                f"Cannot open {self.origin.value} file: {self.location} "
                f"(looking for {self.origin.value} {self.object_name})",
                store=self.location,
                object_name=self.object_name,
            )
        if not self._object_exists:
            error = TableNotFound if self.origin is StoreOrigin.LEGACY else FieldSetNotFound
            raise error(
                f"Cannot find {self.origin.value}: {self.object_name} in file: {self.location}",
                store=self.location,
                object_name=self.object_name,
            )

    def _close_store(self) -> None:
        pass

    def _entry_count(self) -> int:
        if self._entries is not None:
            return self._entries
        return max((len(values) for _, _, values in self._columns), default=0)

    def _field_types(self) -> List[Tuple[str, str]]:
        return [(name, native) for name, native, _ in self._columns]

    def _read_field(self, name: str) -> List[Any]:
        for column_name, _, values in self._columns:
            if column_name == name:
                return list(values)
        return []
