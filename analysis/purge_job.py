"""Purge statistics job - one streaming pass over a table's data files."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Collection, List, Optional

from analysis.progress import ProgressReporter
from analysis.source import PurgeStatisticsSource
from analysis.throttle import ThroughputLimiter
from analysis.topk import TopKAggregator
from analysis.types import PartitionStatistics, RunningTotals
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurgeReport:
    """Outcome of a completed pass."""
    keyspace: str
    table: str
    key_type: str
    totals: RunningTotals
    partition_count: int
    partitions: List[PartitionStatistics] = field(default_factory=list)


class PurgeStatisticsJob:
    """
    Find the partitions of a table with the most reclaimable space.

    Workflow:
    1. Open the statistics source (throttled by a ThroughputLimiter when a ceiling is set)
    2. Feed every partition into a TopKAggregator, updating progress as the source advances
    3. Release the source, whether the pass succeeded or failed
    4. Return totals and the retained partitions in purge order
    """

    def __init__(
        self,
        storage: StorageBackend,
        keyspace: str,
        table: str,
        top_partitions: int = 10,
        throughput_mb: int = 0,
        snapshot: Optional[str] = None,
        filters: Optional[Collection[str]] = None,
        interactive: bool = True,
        gc_grace_seconds: int = 864000,
        source_factory: Callable[..., PurgeStatisticsSource] = PurgeStatisticsSource,
    ):
        """
        Initialize purge statistics job.

        Args:
            storage: Storage backend holding the table
            keyspace: Keyspace (table group) name
            table: Table name
            top_partitions: Number of partitions to report (0 = totals only)
            throughput_mb: Read throughput ceiling in MB/s (0 = unlimited)
            snapshot: Scan this snapshot instead of the live files
            filters: Only scan these data files
            interactive: Show a progress bar
            gc_grace_seconds: Age after which tombstones are purgeable
            source_factory: Callable opening the statistics source
        """
        if top_partitions < 0:
            raise ValueError(f"Number of partitions must be >= 0, got {top_partitions}")
        if throughput_mb < 0:
            raise ValueError(f"Throughput limit must be >= 0, got {throughput_mb}")

        self.storage = storage
        self.keyspace = keyspace
        self.table = table
        self.top_partitions = top_partitions
        self.throughput_mb = throughput_mb
        self.snapshot = snapshot
        self.filters = list(filters) if filters else None
        self.interactive = interactive
        self.gc_grace_seconds = gc_grace_seconds
        self.source_factory = source_factory

    def run(self) -> PurgeReport:
        """
        Execute the pass.

        Returns:
            PurgeReport with totals and the largest reclaimable partitions

        Raises:
            Whatever the source raises while opening or streaming; the source
            is released first.
        """
        start_time = datetime.now()
        logger.info(
            f"[PurgeStatisticsJob] Analyzing {self.keyspace}.{self.table}: "
            f"top={self.top_partitions}, "
            f"throughput={'unlimited' if not self.throughput_mb else f'{self.throughput_mb} MB/s'}, "
            f"snapshot={self.snapshot}, filters={self.filters}"
        )

        limiter = ThroughputLimiter.from_megabytes(self.throughput_mb) if self.throughput_mb else None
        aggregator = TopKAggregator(self.top_partitions)

        source = self.source_factory(
            storage=self.storage,
            keyspace=self.keyspace,
            table=self.table,
            snapshot=self.snapshot,
            filters=self.filters,
            limiter=limiter,
            gc_grace_seconds=self.gc_grace_seconds,
        )
        try:
            with ProgressReporter("Analyzing data files...", self.interactive) as progress:
                progress.update(0.0)
                for stats in source:
                    aggregator.consume(stats)
                    progress.update(source.progress)
        except Exception as e:
            logger.error(f"[PurgeStatisticsJob] Scan of {self.keyspace}.{self.table} failed: {e}")
            raise
        finally:
            source.close()

        totals = aggregator.totals()
        report = PurgeReport(
            keyspace=self.keyspace,
            table=self.table,
            key_type=source.key_type,
            totals=totals,
            partition_count=aggregator.count,
            partitions=aggregator.drain_sorted(),
        )

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"[PurgeStatisticsJob] Scanned {report.partition_count:,} partitions in {elapsed:.2f}s: "
            f"{totals.size:,} bytes on disk, {totals.reclaimable:,} bytes reclaimable"
        )
        return report
