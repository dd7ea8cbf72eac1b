"""Test configuration fixtures."""
import pytest
from pathlib import Path
import tempfile
import shutil
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.types import PartitionStatistics
from storage.base import LocalStorage
from storage.table_writer import TableWriter

# Fixed "now" for tests: 2025-11-20T12:00:00Z
NOW = 1763640000.0
NOW_MICROS = int(NOW * 1_000_000)
DAY_MICROS = 86_400 * 1_000_000


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def storage(temp_dir):
    """Local storage rooted in a temporary directory."""
    return LocalStorage(str(temp_dir))


@pytest.fixture
def make_stats():
    """Factory for PartitionStatistics with terse arguments."""
    def _make(reclaimable, size, key=b"k", generations=(1,)):
        return PartitionStatistics(key=key, size=size, reclaimable=reclaimable, generations=tuple(generations))
    return _make


@pytest.fixture
def orders_table(storage):
    """
    Table shop.orders (text keys) with two generations.

    gen-1: alice has two rows, bob one row, carol one row
    gen-2: alice row 1 overwritten, bob deleted 30 days ago, dave new
    """
    writer = TableWriter(storage, "shop", "orders", key_type="text", row_group_size=2)
    writer.write_generation([
        {"partition_key": "alice", "clustering_key": b"1", "write_time": NOW_MICROS - 40 * DAY_MICROS, "value": b"x" * 100},
        {"partition_key": "alice", "clustering_key": b"2", "write_time": NOW_MICROS - 40 * DAY_MICROS, "value": b"y" * 100},
        {"partition_key": "bob", "clustering_key": b"1", "write_time": NOW_MICROS - 40 * DAY_MICROS, "value": b"z" * 300},
        {"partition_key": "carol", "clustering_key": b"1", "write_time": NOW_MICROS - 40 * DAY_MICROS, "value": b"c" * 50},
    ])
    writer.write_generation([
        {"partition_key": "alice", "clustering_key": b"1", "write_time": NOW_MICROS - DAY_MICROS, "value": b"X" * 100},
        {"partition_key": "bob", "clustering_key": b"1", "write_time": NOW_MICROS - 30 * DAY_MICROS, "deleted": True},
        {"partition_key": "dave", "clustering_key": b"1", "write_time": NOW_MICROS - DAY_MICROS, "value": b"d" * 80},
    ])
    return writer


@pytest.fixture
def sample_config():
    """Sample configuration for testing."""
    return {
        "storage": {
            "backend": "local",
            "base_dir": "./test_data",
        },
        "analysis": {
            "top_partitions": 5,
            "throughput_mb": 2,
            "gc_grace_seconds": 3600,
            "interactive": False,
        },
        "log_level": "DEBUG",
    }
