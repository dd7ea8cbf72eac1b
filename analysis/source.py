"""
Purge statistics source - stream per-partition reclaimable-space statistics
out of a table's generation files.

Each generation file is sorted by partition key, so the source reads every
file one row group at a time, merges the per-file partition streams by key
and emits one PartitionStatistics per partition. Only the cells of the
partition being merged (plus one pending partition per file) are held in
memory at a time.

Reclaimable accounting per partition:
- every cell is charged its share of its row group's compressed bytes
- for each clustering key the newest version wins, ordered by (write_time, generation);
  all older versions are reclaimable
- a winning tombstone older than gc_grace_seconds is reclaimable as well
"""
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import BinaryIO, Collection, Dict, Iterator, List, Optional, Tuple

import pyarrow.parquet as pq
import yaml

from analysis.keys import format_key
from analysis.throttle import ThroughputLimiter
from analysis.types import PartitionStatistics
from storage.base import StorageBackend
from storage.factory import TABLE_DESCRIPTOR, get_table_path
from storage.table_writer import parse_generation

logger = logging.getLogger(__name__)

DATA_COLUMNS = ["partition_key", "clustering_key", "write_time", "deleted", "value"]

# Fixed per-cell overhead: write_time (int64) + deleted flag
CELL_OVERHEAD_BYTES = 9


@dataclass(frozen=True)
class DataFile:
    """One generation file of a table."""
    path: str
    name: str
    generation: int
    size: int


@dataclass
class _Fragment:
    """Cells of one partition found in one data file."""
    key: bytes
    generation: int
    # (clustering_key, write_time, deleted, disk_bytes)
    cells: List[Tuple[bytes, int, bool, float]] = field(default_factory=list)


def _row_group_bytes(row_group_metadata) -> int:
    return sum(
        row_group_metadata.column(i).total_compressed_size
        for i in range(row_group_metadata.num_columns)
    )


def _matches_filter(data_file: DataFile, filters: Collection[str]) -> bool:
    stem = data_file.name[: -len(".parquet")]
    return data_file.name in filters or stem in filters


class PurgeStatisticsSource:
    """
    Lazy, single-pass iterator of PartitionStatistics for one table.

    Opening the source resolves and opens the table's data files; close()
    releases them. The iterator is not restartable.

    Example:
        source = PurgeStatisticsSource(storage, "shop", "orders", limiter=limiter)
        try:
            for stats in source:
                print(source.format_key(stats.key), stats.reclaimable, source.progress)
        finally:
            source.close()
    """

    def __init__(
        self,
        storage: StorageBackend,
        keyspace: str,
        table: str,
        snapshot: Optional[str] = None,
        filters: Optional[Collection[str]] = None,
        limiter: Optional[ThroughputLimiter] = None,
        gc_grace_seconds: int = 864000,
        now: Optional[float] = None,
    ):
        """
        Open a table's data files for scanning.

        Args:
            storage: Storage backend holding the table
            keyspace: Keyspace (table group) name
            table: Table name
            snapshot: Scan this snapshot instead of the live files
            filters: Only scan data files with these names (with or without .parquet)
            limiter: Throttles row group reads
            gc_grace_seconds: Age after which a winning tombstone is purgeable
            now: Current time in epoch seconds (defaults to time.time())

        Raises:
            FileNotFoundError: Table or snapshot does not exist
            ValueError: Filters match no data file
        """
        self.storage = storage
        self.keyspace = keyspace
        self.table = table
        self.snapshot = snapshot
        self.limiter = limiter
        now = time.time() if now is None else now
        self.gc_before = int((now - gc_grace_seconds) * 1_000_000)

        self.table_path = get_table_path(keyspace, table, snapshot)
        self.data_files = self._resolve_data_files(filters)
        self.key_type = self._read_key_type()

        self._handles: List[BinaryIO] = []
        self._parquet_files: List[pq.ParquetFile] = []
        self._closed = False
        self.bytes_read = 0
        self.total_bytes = 0

        try:
            for data_file in self.data_files:
                handle = self.storage.open_read(data_file.path)
                self._handles.append(handle)
                parquet_file = pq.ParquetFile(handle)
                self._parquet_files.append(parquet_file)
                metadata = parquet_file.metadata
                self.total_bytes += sum(
                    _row_group_bytes(metadata.row_group(i)) for i in range(metadata.num_row_groups)
                )
        except Exception:
            self.close()
            raise

        self._partitions = self._merge_partitions()

        logger.info(
            f"[PurgeStatisticsSource] Opened {keyspace}.{table}"
            f"{f' (snapshot {snapshot})' if snapshot else ''}: "
            f"{len(self.data_files)} data files, {self.total_bytes:,} bytes, key_type={self.key_type}"
        )

    def _resolve_data_files(self, filters: Optional[Collection[str]]) -> List[DataFile]:
        data_files = []
        for info in self.storage.list_files(self.table_path, pattern="gen-*.parquet"):
            name = info["path"].split("/")[-1]
            generation = parse_generation(name)
            if generation is None:
                continue
            data_files.append(DataFile(info["path"], name, generation, info["size"]))

        if not data_files:
            if self.snapshot:
                raise FileNotFoundError(
                    f"Snapshot '{self.snapshot}' not found for {self.keyspace}.{self.table}"
                )
            descriptor = self.storage.join_path(self.table_path, TABLE_DESCRIPTOR)
            if not self.storage.exists(descriptor):
                raise FileNotFoundError(f"Table not found: {self.keyspace}.{self.table}")

        if filters:
            filters = set(filters)
            data_files = [f for f in data_files if _matches_filter(f, filters)]
            if not data_files:
                raise ValueError(f"No data files of {self.keyspace}.{self.table} match filter {sorted(filters)}")

        return sorted(data_files, key=lambda f: f.generation)

    def _read_key_type(self) -> str:
        candidates = [self.table_path]
        if self.snapshot:
            candidates.append(get_table_path(self.keyspace, self.table))

        for path in candidates:
            descriptor = self.storage.join_path(path, TABLE_DESCRIPTOR)
            if self.storage.exists(descriptor):
                data = yaml.safe_load(self.storage.read_bytes(descriptor)) or {}
                return data.get("key_type", "blob")

        return "blob"

    @property
    def progress(self) -> float:
        """Fraction of the table's bytes read so far, in [0, 1]."""
        if self.total_bytes == 0:
            return 1.0
        return min(1.0, self.bytes_read / self.total_bytes)

    def format_key(self, key: bytes) -> str:
        return format_key(key, self.key_type)

    def __iter__(self) -> Iterator[PartitionStatistics]:
        return self

    def __next__(self) -> PartitionStatistics:
        if self._closed:
            raise StopIteration
        return next(self._partitions)

    def _scan_file(self, data_file: DataFile, parquet_file: pq.ParquetFile) -> Iterator[_Fragment]:
        """Yield this file's partitions in key order, one row group read at a time."""
        fragment = None

        for index in range(parquet_file.num_row_groups):
            compressed = _row_group_bytes(parquet_file.metadata.row_group(index))
            if self.limiter is not None:
                self.limiter.acquire(compressed)

            columns = parquet_file.read_row_group(index, columns=DATA_COLUMNS).to_pydict()
            self.bytes_read += compressed

            rows = list(zip(
                columns["partition_key"],
                columns["clustering_key"],
                columns["write_time"],
                columns["deleted"],
                columns["value"],
            ))
            raw_sizes = [
                len(key) + len(clustering or b"") + len(value or b"") + CELL_OVERHEAD_BYTES
                for key, clustering, _, _, value in rows
            ]
            ratio = compressed / (sum(raw_sizes) or 1)

            for (key, clustering, write_time, deleted, _), raw in zip(rows, raw_sizes):
                if fragment is None or key != fragment.key:
                    if fragment is not None:
                        if key < fragment.key:
                            raise ValueError(
                                f"Data file {data_file.path} is not sorted by partition key"
                            )
                        yield fragment
                    fragment = _Fragment(key, data_file.generation)
                fragment.cells.append((clustering or b"", write_time, bool(deleted), raw * ratio))

        if fragment is not None:
            yield fragment

    def _merge_partitions(self) -> Iterator[PartitionStatistics]:
        scans = [
            self._scan_file(data_file, parquet_file)
            for data_file, parquet_file in zip(self.data_files, self._parquet_files)
        ]
        merged = heapq.merge(*scans, key=lambda fragment: fragment.key)

        for key, fragments in itertools.groupby(merged, key=lambda fragment: fragment.key):
            yield self._summarize(key, list(fragments))

    def _summarize(self, key: bytes, fragments: List[_Fragment]) -> PartitionStatistics:
        cells = [
            (clustering, (write_time, fragment.generation), deleted, disk)
            for fragment in fragments
            for clustering, write_time, deleted, disk in fragment.cells
        ]

        # Newest version per clustering key; first seen wins exact ties
        winners: Dict[bytes, int] = {}
        for index, (clustering, version, _, _) in enumerate(cells):
            best = winners.get(clustering)
            if best is None or version > cells[best][1]:
                winners[clustering] = index

        size = 0.0
        reclaimable = 0.0
        winning = set(winners.values())
        for index, (_, (write_time, _), deleted, disk) in enumerate(cells):
            size += disk
            if index not in winning:
                reclaimable += disk
            elif deleted and write_time < self.gc_before:
                reclaimable += disk

        return PartitionStatistics(
            key=key,
            size=int(round(size)),
            reclaimable=int(round(reclaimable)),
            generations=tuple(sorted({fragment.generation for fragment in fragments})),
        )

    def close(self) -> None:
        """Release every open data file. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        partitions = getattr(self, "_partitions", None)
        if partitions is not None:
            partitions.close()

        for handle in self._handles:
            handle.close()
        self._handles = []
        self._parquet_files = []

        logger.debug(f"[PurgeStatisticsSource] Closed {self.keyspace}.{self.table}")

    def __enter__(self) -> "PurgeStatisticsSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
