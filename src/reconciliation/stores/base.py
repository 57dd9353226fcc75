"""
Store Accessor Interface

Capability interface shared by every storage backend: open/close, entry
count, field enumeration and typed per-field reads. Backends only need to
implement the underscore hooks.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Tuple

from src.reconciliation.errors import FieldReadError, StoreNotOpen
from src.reconciliation.models import FieldDescriptor, StoreOrigin

logger = logging.getLogger(__name__)

PRIVATE_FIELD_NAME = "_0"


def is_private_field(name: str) -> bool:
    """
    Whether a field is a synthetic private field.

    RNTuple names the item field of a collection ``_0``; such fields (and
    dotted paths ending in one) never take part in a comparison.
    """
    return name == PRIVATE_FIELD_NAME or name.endswith("." + PRIVATE_FIELD_NAME)


class StoreAccessor(ABC):
    """
    Read-only handle on one store object (a TTree or an RNTuple).

    Handles are opened and closed by their owner, normally through the
    context-manager protocol.
    """

    origin: StoreOrigin

    def __init__(self, location: str, object_name: str):
        self.location = str(location)
        self.object_name = object_name
        self._open = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "StoreAccessor":
        """
        Open the store.

        Raises:
            StoreNotFound: If the file cannot be opened
            TableNotFound: If a TTree is missing from the file
            FieldSetNotFound: If an RNTuple is missing from the file
        """
        if self._open:
            return self
        self._open_store()
        self._open = True
        logger.info(f"Opened {self.describe()}")
        return self

    def close(self) -> None:
        if not self._open:
            return
        try:
            self._close_store()
        finally:
            self._open = False
            logger.debug(f"Closed {self.describe()}")

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "StoreAccessor":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entry_count(self) -> int:
        self._ensure_open()
        return self._entry_count()

    def field_types(self) -> List[Tuple[str, str]]:
        """
        List public fields with their native type spelling.

        Returns:
            (name, native type) pairs in declaration order
        """
        self._ensure_open()
        return [
            (name, native_type)
            for name, native_type in self._field_types()
            if not is_private_field(name)
        ]

    def field_names(self) -> List[str]:
        return [name for name, _ in self.field_types()]

    def field_descriptors(self, type_table) -> List[FieldDescriptor]:
        """
        Describe public fields with their canonical types.

        Args:
            type_table: TypeTable used to canonicalize native spellings

        Returns:
            Field descriptors in declaration order
        """
        return [
            FieldDescriptor(
                name=name,
                native_type=native_type,
                canonical_type=type_table.canonicalize(native_type),
                origin=self.origin,
            )
            for name, native_type in self.field_types()
        ]

    def read_field(self, name: str) -> List[Any]:
        """
        Read every record of one field.

        Args:
            name: Field name

        Returns:
            One value per record in store order. Sequence fields give a list
            (or PackedBits) per record; a record that was never filled is None.

        Raises:
            FieldReadError: If the field is unknown or cannot be decoded
            StoreNotOpen: If the handle is not open
        """
        self._ensure_open()
        self._ensure_field(name)
        return self._read_field(name)

    def read_entry(self, name: str, index: int) -> Any:
        """
        Read one record of one field.

        Raises:
            FieldReadError: If the field is unknown or the index is out of range
        """
        self._ensure_open()
        self._ensure_field(name)

        count = self._entry_count()
        if index < 0 or index >= count:
            raise FieldReadError(
                f"Entry {index} out of range for field '{name}' "
                f"({count} entries in {self.describe()})",
                field_name=name,
                origin=self.origin,
            )

        try:
            return self._read_entry(name, index)
        except IndexError as e:
            raise FieldReadError(
                f"Entry {index} of field '{name}' is not stored in {self.describe()}",
                field_name=name,
                origin=self.origin,
            ) from e

    def describe(self) -> str:
        return f"{self.origin.value} '{self.object_name}' in {self.location}"

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _open_store(self) -> None:
        ...

    @abstractmethod
    def _close_store(self) -> None:
        ...

    @abstractmethod
    def _entry_count(self) -> int:
        ...

    @abstractmethod
    def _field_types(self) -> List[Tuple[str, str]]:
        ...

    @abstractmethod
    def _read_field(self, name: str) -> List[Any]:
        ...

    def _read_entry(self, name: str, index: int) -> Any:
        return self._read_field(name)[index]

    def _ensure_open(self) -> None:
        if not self._open:
            raise StoreNotOpen(
                f"Store is not open: {self.describe()}",
                store=self.location,
                object_name=self.object_name,
            )

    def _ensure_field(self, name: str) -> None:
        if is_private_field(name) or name not in dict(self._field_types()):
            raise FieldReadError(
                f"No field '{name}' in {self.describe()}",
                field_name=name,
                origin=self.origin,
            )
