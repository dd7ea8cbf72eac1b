"""
Table writer - produce generation files in the layout PurgeStat scans.

Works with any StorageBackend (local filesystem or S3).
"""
import io
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import polars as pl
import yaml

from analysis.keys import KEY_TYPES, encode_key
from storage.base import StorageBackend
from storage.factory import TABLE_DESCRIPTOR, get_table_path

logger = logging.getLogger(__name__)

GENERATION_PATTERN = re.compile(r"^gen-(\d+)\.parquet$")

TABLE_SCHEMA = {
    "partition_key": pl.Binary,
    "clustering_key": pl.Binary,
    "write_time": pl.Int64,
    "deleted": pl.Boolean,
    "value": pl.Binary,
}


def generation_file_name(generation: int) -> str:
    return f"gen-{generation}.parquet"


def parse_generation(file_name: str) -> Optional[int]:
    """Return the generation encoded in a data file name, or None for other files."""
    match = GENERATION_PATTERN.match(file_name)
    return int(match.group(1)) if match else None


class TableWriter:
    """
    Write immutable, key-sorted generation files for one table.

    Directory structure (relative to storage root):
        {keyspace}/{table}/
          table.yaml
          gen-1.parquet
          gen-2.parquet
          snapshots/
            {name}/
              table.yaml
              gen-1.parquet

    Each generation is sorted by partition_key then clustering_key, which is
    what lets the statistics source merge generations in a single pass.

    Example:
        writer = TableWriter(storage, "shop", "orders", key_type="text")
        writer.write_generation([
            {"partition_key": "alice", "clustering_key": b"1", "write_time": 10, "value": b"..."},
            {"partition_key": "bob", "write_time": 11, "deleted": True},
        ])
        writer.snapshot("before-repair")
    """

    def __init__(
        self,
        storage: StorageBackend,
        keyspace: str,
        table: str,
        key_type: str = "blob",
        compression: str = "zstd",
        row_group_size: int = 10_000,
    ):
        """
        Initialize table writer and persist the table descriptor.

        Args:
            storage: Storage backend instance
            keyspace: Keyspace (table group) name
            table: Table name
            key_type: Partition key type (blob, text, bigint, uuid)
            compression: Parquet compression codec
            row_group_size: Rows per Parquet row group
        """
        if key_type not in KEY_TYPES:
            raise ValueError(f"Unknown key type '{key_type}'. Must be one of: {list(KEY_TYPES)}")

        self.storage = storage
        self.keyspace = keyspace
        self.table = table
        self.key_type = key_type
        self.compression = compression
        self.row_group_size = row_group_size
        self.table_path = get_table_path(keyspace, table)

        descriptor = {"keyspace": keyspace, "table": table, "key_type": key_type}
        self.storage.write_bytes(
            yaml.safe_dump(descriptor, sort_keys=False).encode("utf-8"),
            self.storage.join_path(self.table_path, TABLE_DESCRIPTOR),
        )

    def list_generations(self) -> List[int]:
        """Return the generations of the live data files, ascending."""
        generations = []
        for info in self.storage.list_files(self.table_path, pattern="gen-*.parquet"):
            generation = parse_generation(info["path"].split("/")[-1])
            if generation is not None:
                generations.append(generation)
        return sorted(generations)

    def write_generation(self, rows: Iterable[Dict[str, Any]]) -> str:
        """
        Write rows as the next generation file.

        Rows are dicts with partition_key (bytes or a value of the table key type),
        and optional clustering_key (bytes), write_time (int, microseconds),
        deleted (bool) and value (bytes).

        Returns:
            Relative path of the written file
        """
        records = [self._normalize(row) for row in rows]
        if not records:
            raise ValueError("Cannot write an empty generation")

        df = (
            pl.from_dicts(records, schema=TABLE_SCHEMA)
            .sort(["partition_key", "clustering_key", "write_time"])
        )

        existing = self.list_generations()
        generation = existing[-1] + 1 if existing else 1
        file_path = self.storage.join_path(self.table_path, generation_file_name(generation))

        buffer = io.BytesIO()
        df.write_parquet(
            buffer,
            compression=self.compression,
            row_group_size=self.row_group_size,
        )
        self.storage.write_bytes(buffer.getvalue(), file_path)

        logger.info(
            f"[TableWriter] Wrote {len(df)} rows to {file_path} "
            f"({len(buffer.getvalue()) / 1024:.1f} KB)"
        )
        return file_path

    def snapshot(self, name: str) -> List[str]:
        """
        Copy the live data files and descriptor into snapshots/{name}.

        Returns:
            Relative paths of the copied data files
        """
        snapshot_path = get_table_path(self.keyspace, self.table, snapshot=name)
        copied = []

        for info in self.storage.list_files(self.table_path):
            file_name = info["path"].split("/")[-1]
            if file_name != TABLE_DESCRIPTOR and parse_generation(file_name) is None:
                continue
            target = self.storage.join_path(snapshot_path, file_name)
            self.storage.write_bytes(self.storage.read_bytes(info["path"]), target)
            if file_name != TABLE_DESCRIPTOR:
                copied.append(target)

        logger.info(f"[TableWriter] Snapshot '{name}' holds {len(copied)} data files")
        return copied

    def _normalize(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "partition_key": encode_key(row["partition_key"], self.key_type),
            "clustering_key": row.get("clustering_key") or b"",
            "write_time": int(row.get("write_time", 0)),
            "deleted": bool(row.get("deleted", False)),
            "value": None if row.get("deleted") else row.get("value", b""),
        }
