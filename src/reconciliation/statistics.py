"""
Statistics Aggregator for TTree/RNTuple Reconciliation

Summarizes flattened value buffers as (count, mean, population standard
deviation) per canonical type and compares the summaries of both stores.
"""

import logging
from typing import Dict, List, Sequence

import numpy as np

from src.reconciliation.models import (
    FlattenedBuffer,
    ScalarType,
    StatisticsBucket,
    StatisticsComparison,
)

logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """Computes and compares per-type statistics buckets."""

    def bucket(self, buffer: FlattenedBuffer) -> StatisticsBucket:
        """
        Summarize one buffer.

        Args:
            buffer: Flattened values of one canonical type

        Returns:
            StatisticsBucket; (0, 0.0, 0.0) for an empty buffer
        """
        if buffer.values.size == 0:
            return StatisticsBucket.empty(buffer.scalar_type)

        values = buffer.values.astype(np.float64)
        return StatisticsBucket(
            canonical_type=buffer.scalar_type,
            count=int(values.size),
            mean=float(np.mean(values)),
            stddev=float(np.std(values)),
        )

    def aggregate(self, buffers: Dict[ScalarType, FlattenedBuffer]) -> List[StatisticsBucket]:
        """
        Summarize the buffers of one store.

        Returns:
            Four buckets in ScalarType.comparable() order; types without a
            buffer get an empty bucket
        """
        buckets = []
        for scalar_type in ScalarType.comparable():
            buffer = buffers.get(scalar_type)
            if buffer is None:
                buckets.append(StatisticsBucket.empty(scalar_type))
            else:
                buckets.append(self.bucket(buffer))
        return buckets

    def compare(
        self,
        legacy: Sequence[StatisticsBucket],
        columnar: Sequence[StatisticsBucket]
    ) -> List[StatisticsComparison]:
        """
        Pair the buckets of both stores by type.

        Args:
            legacy: TTree buckets
            columnar: RNTuple buckets

        Returns:
            One comparison per comparable type
        """
        legacy_by_type = {b.canonical_type: b for b in legacy}
        columnar_by_type = {b.canonical_type: b for b in columnar}

        comparisons = []
        for scalar_type in ScalarType.comparable():
            comparison = StatisticsComparison(
                canonical_type=scalar_type,
                legacy=legacy_by_type.get(scalar_type, StatisticsBucket.empty(scalar_type)),
                columnar=columnar_by_type.get(scalar_type, StatisticsBucket.empty(scalar_type)),
            )
            if not comparison.equal:
                logger.warning(
                    f"{scalar_type.value} statistics differ: "
                    f"TTree={comparison.legacy.to_dict()}, RNTuple={comparison.columnar.to_dict()}"
                )
            comparisons.append(comparison)

        return comparisons
