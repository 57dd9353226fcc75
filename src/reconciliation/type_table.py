"""
Type Tables for TTree/RNTuple Reconciliation

Native type spellings of both stores are mapped onto canonical type tags
through plain data tables. New spellings are added here (or in a YAML
override file) without touching the comparison logic.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import yaml

from src.reconciliation.errors import TypeMappingMissing, TypeTableError
from src.reconciliation.models import TypeTag

logger = logging.getLogger(__name__)


# (native spelling, canonical spelling)
DEFAULT_TYPE_SPELLINGS: List[Tuple[str, str]] = [
    # ROOT leaf types
    ("Int_t", "int"),
    ("Float_t", "float"),
    ("Double_t", "double"),
    ("Bool_t", "bool"),
    # C++ / RNTuple spellings
    ("int", "int"),
    ("std::int32_t", "int"),
    ("int32_t", "int"),
    ("float", "float"),
    ("double", "double"),
    ("bool", "bool"),
    # Sequences, TTree branch element class names
    ("vector<int>", "vector<int>"),
    ("vector<float>", "vector<float>"),
    ("vector<double>", "vector<double>"),
    ("vector<bool>", "vector<bool>"),
    # Sequences, TTree leaf arrays (counted or fixed size)
    ("Int_t[]", "vector<int>"),
    ("Float_t[]", "vector<float>"),
    ("Double_t[]", "vector<double>"),
    ("Bool_t[]", "vector<bool>"),
    # Sequences, RNTuple field type names
    ("std::vector<int>", "vector<int>"),
    ("std::vector<std::int32_t>", "vector<int>"),
    ("std::vector<int32_t>", "vector<int>"),
    ("std::vector<float>", "vector<float>"),
    ("std::vector<double>", "vector<double>"),
    ("std::vector<bool>", "vector<bool>"),
]

# Pairs of canonical spellings that differ only in floating point precision.
DEFAULT_NEAR_MATCHES: List[Tuple[str, str]] = [
    ("float", "double"),
    ("vector<float>", "vector<double>"),
]


class TypeTable:
    """
    Native spelling to canonical type mapping plus the near-match relation.

    The near-match relation is symmetric: registering (a, b) also links
    (b, a).
    """

    def __init__(
        self,
        spellings: Iterable[Tuple[str, str]],
        near_matches: Iterable[Tuple[str, str]] = ()
    ):
        """
        Initialize the type table.

        Args:
            spellings: (native spelling, canonical spelling) pairs
            near_matches: (canonical spelling, canonical spelling) pairs

        Raises:
            TypeTableError: If a canonical spelling cannot be parsed
        """
        self._spellings: Dict[str, TypeTag] = {}
        self._near: set = set()

        for native, canonical in spellings:
            self._spellings[native.strip()] = self._parse(canonical)

        for left, right in near_matches:
            a, b = self._parse(left), self._parse(right)
            self._near.add((a, b))
            self._near.add((b, a))

        logger.debug(
            f"Initialized TypeTable with {len(self._spellings)} spellings "
            f"and {len(self._near) // 2} near matches"
        )

    @classmethod
    def default(cls) -> "TypeTable":
        return cls(DEFAULT_TYPE_SPELLINGS, DEFAULT_NEAR_MATCHES)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TypeTable":
        """
        Load a type table from a YAML file.

        The file may contain a ``spellings`` mapping (native -> canonical)
        and a ``near_matches`` list of two-element lists. Entries are merged
        onto the default tables unless ``replace: true`` is set.

        Args:
            path: Path to the YAML file

        Returns:
            TypeTable instance

        Raises:
            TypeTableError: If the file cannot be read or is malformed
        """
        try:
            with open(path, "r") as f:
                document = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise TypeTableError(f"Failed to load type table from {path}: {e}") from e

        if not isinstance(document, dict):
            raise TypeTableError(f"Type table {path} must be a mapping")

        spellings = document.get("spellings", {}) or {}
        if not isinstance(spellings, dict):
            raise TypeTableError("'spellings' must be a mapping of native to canonical types")

        near_matches = document.get("near_matches", []) or []
        if not isinstance(near_matches, list) or any(
            not isinstance(pair, (list, tuple)) or len(pair) != 2 for pair in near_matches
        ):
            raise TypeTableError("'near_matches' must be a list of type pairs")

        spelling_pairs = [(str(k), str(v)) for k, v in spellings.items()]
        near_pairs = [(str(a), str(b)) for a, b in near_matches]

        if document.get("replace", False):
            table = cls(spelling_pairs, near_pairs)
        else:
            table = cls.default().with_overrides(spelling_pairs, near_pairs)

        logger.info(f"Loaded type table from {path}")
        return table

    def with_overrides(
        self,
        spellings: Iterable[Tuple[str, str]] = (),
        near_matches: Iterable[Tuple[str, str]] = ()
    ) -> "TypeTable":
        """Return a new table with extra or replaced entries."""
        merged = dict(self.spelling_pairs())
        for native, canonical in spellings:
            merged[native] = canonical
        return TypeTable(list(merged.items()), self.near_match_pairs() + list(near_matches))

    def canonicalize(self, native_type: str) -> TypeTag:
        """
        Map a native spelling to its canonical tag.

        Args:
            native_type: Type spelling as reported by the store

        Returns:
            Canonical TypeTag, or the Unknown tag for unmapped spellings
        """
        tag = self._spellings.get(native_type.strip())
        if tag is None:
            logger.debug(f"No canonical mapping for native type '{native_type}'")
            return TypeTag.unknown()
        return tag

    def lookup(self, native_type: str) -> TypeTag:
        """Strict variant of canonicalize()."""
        tag = self._spellings.get(native_type.strip())
        if tag is None:
            raise TypeMappingMissing(native_type)
        return tag

    def is_near(self, left: TypeTag, right: TypeTag) -> bool:
        return (left, right) in self._near

    def spelling_pairs(self) -> List[Tuple[str, str]]:
        return [(native, str(tag)) for native, tag in self._spellings.items()]

    def near_match_pairs(self) -> List[Tuple[str, str]]:
        seen = set()
        pairs = []
        for a, b in self._near:
            key = frozenset((a, b))
            if key in seen:
                continue
            seen.add(key)
            pairs.append(tuple(sorted((str(a), str(b)))))
        return sorted(pairs)

    def to_dict(self) -> Dict[str, object]:
        """Serializable view, in the same layout from_yaml() reads."""
        return {
            "spellings": dict(self.spelling_pairs()),
            "near_matches": [list(pair) for pair in self.near_match_pairs()],
        }

    @staticmethod
    def _parse(canonical: str) -> TypeTag:
        try:
            return TypeTag.parse(canonical)
        except ValueError as e:
            raise TypeTableError(str(e)) from e


_default_table: Optional[TypeTable] = None


def get_default_type_table() -> TypeTable:
    """Get or create the shared default type table."""
    global _default_table

    if _default_table is None:
        _default_table = TypeTable.default()

    return _default_table
