"""
Store accessors for the reconciliation engine.

- base: capability interface shared by all backends
- memory: in-memory columns
- root_files: TTree and RNTuple files read with uproot
"""

from src.reconciliation.stores.base import StoreAccessor, is_private_field
from src.reconciliation.stores.memory import MemoryStore
from src.reconciliation.stores.root_files import RNTupleStore, TTreeStore

__all__ = [
    "StoreAccessor",
    "MemoryStore",
    "TTreeStore",
    "RNTupleStore",
    "is_private_field",
]
