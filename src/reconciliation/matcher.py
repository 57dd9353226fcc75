"""
Field Matcher for TTree/RNTuple Reconciliation

Pairs the fields of both stores by name. Every field of either store ends
up in exactly one correspondence, matched or paired with "No match".
"""

import logging
from typing import Dict, List, Sequence

from src.reconciliation.models import (
    NO_MATCH,
    FieldCorrespondence,
    FieldDescriptor,
    StoreOrigin,
)

logger = logging.getLogger(__name__)


class FieldMatcher:
    """
    Matches field names across the legacy and columnar stores.

    Legacy fields drive the walk in declaration order; columnar fields left
    over afterwards are appended in their own declaration order.
    """

    def __init__(self):
        """Initialize the field matcher."""
        logger.debug("Initialized FieldMatcher")

    def match(
        self,
        legacy_names: Sequence[str],
        columnar_names: Sequence[str]
    ) -> List[FieldCorrespondence]:
        """
        Match field names between the two stores.

        Args:
            legacy_names: TTree field names in declaration order
            columnar_names: RNTuple field names in declaration order

        Returns:
            Correspondences: legacy-driven pairs first, then columnar leftovers

        Raises:
            ValueError: If a name occurs twice on one side
        """
        self._check_unique(legacy_names, "TTree")
        self._check_unique(columnar_names, "RNTuple")

        # dicts keep insertion order, so leftovers come out in declaration order
        remaining: Dict[str, str] = {name: name for name in columnar_names}
        correspondences: List[FieldCorrespondence] = []

        for legacy_name in legacy_names:
            columnar_name = remaining.pop(legacy_name, None)
            if columnar_name is not None:
                correspondences.append(FieldCorrespondence(legacy_name, columnar_name))
            else:
                logger.debug(f"TTree field '{legacy_name}' has no RNTuple counterpart")
                correspondences.append(FieldCorrespondence(legacy_name, NO_MATCH))

        for columnar_name in remaining:
            logger.debug(f"RNTuple field '{columnar_name}' has no TTree counterpart")
            correspondences.append(FieldCorrespondence(NO_MATCH, columnar_name))

        unmatched = sum(1 for c in correspondences if not c.is_matched)
        if unmatched:
            logger.warning(f"Found {unmatched} unmatched fields")
        logger.info(
            f"Matched {len(correspondences) - unmatched} of {len(correspondences)} field names"
        )

        return correspondences

    def match_descriptors(
        self,
        legacy: Sequence[FieldDescriptor],
        columnar: Sequence[FieldDescriptor]
    ) -> List[FieldCorrespondence]:
        """Match two descriptor lists by name."""
        return self.match([d.name for d in legacy], [d.name for d in columnar])

    @staticmethod
    def names_match(correspondences: Sequence[FieldCorrespondence]) -> bool:
        """Whether every field found its counterpart."""
        return all(c.is_matched for c in correspondences)

    @staticmethod
    def unmatched(
        correspondences: Sequence[FieldCorrespondence],
        origin: StoreOrigin
    ) -> List[str]:
        """
        Names of one store's fields that have no counterpart.

        Args:
            correspondences: Output of match()
            origin: Store whose unmatched names are wanted

        Returns:
            Sorted list of field names
        """
        if origin is StoreOrigin.LEGACY:
            names = [c.legacy_name for c in correspondences if c.columnar_name == NO_MATCH]
        else:
            names = [c.columnar_name for c in correspondences if c.legacy_name == NO_MATCH]
        return sorted(names)

    @staticmethod
    def _check_unique(names: Sequence[str], label: str) -> None:
        seen = set()
        duplicates = set()
        for name in names:
            if name in seen:
                duplicates.add(name)
            seen.add(name)

        if duplicates:
            raise ValueError(
                f"Duplicate {label} field names: {sorted(duplicates)}"
            )
