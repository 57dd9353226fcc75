"""
Exceptions raised by the reconciliation engine.

Store-level errors are fatal and abort a run. Field-level errors are
recovered by the caller and folded into the report.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""
    pass


class StoreError(ReconciliationError):
    """Raised when a store handle cannot be used. Always fatal for a run."""

    def __init__(self, message: str, store: Optional[str] = None, object_name: Optional[str] = None):
        super().__init__(message)
        self.store = store
        self.object_name = object_name


class StoreNotFound(StoreError):
    """Raised when the underlying file cannot be opened."""
    pass


class TableNotFound(StoreError):
    """Raised when the named TTree does not exist in an openable file."""
    pass


class FieldSetNotFound(StoreError):
    """Raised when the named RNTuple does not exist in an openable file."""
    pass


class StoreNotOpen(StoreError):
    """Raised when a closed or never-opened store handle is used."""
    pass


class FieldReadError(ReconciliationError):
    """Raised when the values of a single field cannot be read."""

    def __init__(self, message: str, field_name: str, origin=None):
        super().__init__(message)
        self.field_name = field_name
        self.origin = origin


class TypeMappingMissing(ReconciliationError):
    """Raised when a native type spelling has no canonical mapping."""

    def __init__(self, native_type: str):
        super().__init__(f"No canonical type for native spelling '{native_type}'")
        self.native_type = native_type


class TypeTableError(ReconciliationError):
    """Raised when a type table definition is malformed."""
    pass
