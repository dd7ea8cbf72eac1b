"""
Streaming top-K selection of the partitions with the most reclaimable space.

The aggregator sees every partition of a table exactly once, possibly
millions of them, and keeps only the K best under purge order in a bounded
min-heap: the root is the weakest retained partition, so each candidate is
checked against it in O(1) and swapped in with one O(log K) replace. Memory
stays O(K) whatever the stream length; totals are kept for all partitions.
"""
import heapq
import logging
from typing import List

from analysis.types import PURGE_ORDER, PartitionStatistics, RunningTotals

logger = logging.getLogger(__name__)


class TopKAggregator:
    """
    Keep the K highest-ranked partitions of a stream plus running totals.

    Example:
        aggregator = TopKAggregator(k=10)
        for stats in source:
            aggregator.consume(stats)
        total_size, total_reclaimable = aggregator.totals()
        largest = aggregator.drain_sorted()
    """

    def __init__(self, k: int = 10):
        """
        Initialize aggregator.

        Args:
            k: Number of partitions to retain; 0 keeps none but still totals
        """
        if k < 0:
            raise ValueError(f"Number of partitions must be >= 0, got {k}")

        self.k = k
        self.count = 0
        self._heap = []
        self._total_size = 0
        self._total_reclaimable = 0

    def __len__(self) -> int:
        return len(self._heap)

    def consume(self, stats: PartitionStatistics) -> None:
        """Fold one partition into the totals and offer it to the top-K set."""
        self.count += 1
        self._total_size += stats.size
        self._total_reclaimable += stats.reclaimable

        if self.k == 0:
            return

        candidate = PURGE_ORDER(stats)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, candidate)
        elif self._heap[0] < candidate:
            # Ties with the weakest member keep the member that arrived first
            heapq.heapreplace(self._heap, candidate)

    def totals(self) -> RunningTotals:
        return RunningTotals(self._total_size, self._total_reclaimable)

    def drain_sorted(self) -> List[PartitionStatistics]:
        """
        Remove and return the retained partitions, highest rank first.

        A second call returns an empty list.
        """
        ranked = []
        while self._heap:
            ranked.append(heapq.heappop(self._heap).obj)
        ranked.reverse()

        logger.debug(f"[TopKAggregator] Drained {len(ranked)} of {self.count} partitions")
        return ranked
