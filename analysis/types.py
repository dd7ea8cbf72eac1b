"""Value types shared by the statistics source, the aggregator and the report."""
import functools
from dataclasses import dataclass, field
from typing import NamedTuple, Tuple


@dataclass(frozen=True)
class PartitionStatistics:
    """
    Reclaimable-space statistics for one partition.

    key is opaque to the aggregator; it only breaks ranking ties and is
    rendered for display. reclaimable is normally <= size but is not checked.
    """
    key: bytes
    size: int
    reclaimable: int
    generations: Tuple[int, ...] = field(default_factory=tuple)


class RunningTotals(NamedTuple):
    """Sums over every consumed partition, retained or not."""
    size: int = 0
    reclaimable: int = 0


def compare_purge_order(a: PartitionStatistics, b: PartitionStatistics) -> int:
    """
    Compare two partitions by purge rank.

    Returns a negative number when a ranks below b, positive when it ranks
    above, 0 when they rank the same. Rank is reclaimable descending, then
    size descending, then key ascending.
    """
    if a.reclaimable != b.reclaimable:
        return -1 if a.reclaimable < b.reclaimable else 1
    if a.size != b.size:
        return -1 if a.size < b.size else 1
    if a.key != b.key:
        return -1 if a.key > b.key else 1
    return 0


# Wrapped records compare by rank, lowest first; the record is on .obj
PURGE_ORDER = functools.cmp_to_key(compare_purge_order)


def purge_sort_key(stats: PartitionStatistics) -> Tuple[int, int, bytes]:
    """sorted() key that puts the highest-ranked partition first."""
    return (-stats.reclaimable, -stats.size, stats.key)
