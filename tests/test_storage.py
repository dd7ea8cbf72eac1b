"""Tests for storage backends, the storage factory and the table writer."""
import pytest
import yaml
from pathlib import Path
import sys

import pyarrow.parquet as pq

sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.keys import encode_key, format_key
from config import PurgeStatConfig
from storage.base import LocalStorage
from storage.factory import create_storage, get_table_path
from storage.table_writer import TableWriter, generation_file_name, parse_generation


def test_local_storage_round_trip(storage, temp_dir):
    written = storage.write_bytes(b"hello", "ks/tbl/file.bin")

    assert Path(written) == temp_dir / "ks" / "tbl" / "file.bin"
    assert storage.exists("ks/tbl/file.bin")
    assert storage.read_bytes("ks/tbl/file.bin") == b"hello"
    with storage.open_read("ks/tbl/file.bin") as handle:
        assert handle.read(2) == b"he"


def test_local_list_files_is_flat_and_filtered(storage):
    storage.write_bytes(b"1", "ks/tbl/gen-1.parquet")
    storage.write_bytes(b"22", "ks/tbl/gen-2.parquet")
    storage.write_bytes(b"x", "ks/tbl/table.yaml")
    storage.write_bytes(b"3", "ks/tbl/snapshots/s/gen-1.parquet")

    files = storage.list_files("ks/tbl", pattern="gen-*.parquet")

    assert [f["path"] for f in files] == ["ks/tbl/gen-1.parquet", "ks/tbl/gen-2.parquet"]
    assert [f["size"] for f in files] == [1, 2]
    assert storage.list_files("ks/missing") == []


def test_join_path(storage):
    assert storage.join_path("ks/", "/tbl", "", "gen-1.parquet") == "ks/tbl/gen-1.parquet"


def test_create_local_storage(temp_dir):
    config = PurgeStatConfig(storage={"backend": "local", "base_dir": str(temp_dir)})
    backend = create_storage(config)

    assert isinstance(backend, LocalStorage)
    assert backend.backend_type == "local"


def test_s3_backend_requires_s3_settings():
    config = PurgeStatConfig(storage={"backend": "s3", "base_dir": "bucket", "s3": None})
    with pytest.raises(ValueError, match="no S3 configuration"):
        create_storage(config)


def test_table_paths():
    assert get_table_path("shop", "orders") == "shop/orders"
    assert get_table_path("shop", "orders", snapshot="s1") == "shop/orders/snapshots/s1"


def test_generation_file_names():
    assert generation_file_name(12) == "gen-12.parquet"
    assert parse_generation("gen-12.parquet") == 12
    assert parse_generation("table.yaml") is None
    assert parse_generation("gen-x.parquet") is None


def test_writer_numbers_generations_and_sorts(storage):
    writer = TableWriter(storage, "shop", "orders", key_type="text")
    first = writer.write_generation([
        {"partition_key": "zoe", "write_time": 2, "value": b"z"},
        {"partition_key": "amy", "clustering_key": b"2", "write_time": 1, "value": b"a"},
        {"partition_key": "amy", "clustering_key": b"1", "write_time": 1, "deleted": True},
    ])
    second = writer.write_generation([{"partition_key": "bea", "write_time": 3}])

    assert first == "shop/orders/gen-1.parquet"
    assert second == "shop/orders/gen-2.parquet"
    assert writer.list_generations() == [1, 2]

    table = pq.read_table(storage.get_full_path(first)).to_pydict()
    assert table["partition_key"] == [b"amy", b"amy", b"zoe"]
    assert table["clustering_key"] == [b"1", b"2", b""]
    assert table["deleted"] == [True, False, False]
    assert table["value"][0] is None

    descriptor = yaml.safe_load(storage.read_bytes("shop/orders/table.yaml"))
    assert descriptor == {"keyspace": "shop", "table": "orders", "key_type": "text"}


def test_writer_rejects_empty_generation(storage):
    writer = TableWriter(storage, "shop", "orders")
    with pytest.raises(ValueError):
        writer.write_generation([])


def test_writer_rejects_unknown_key_type(storage):
    with pytest.raises(ValueError):
        TableWriter(storage, "shop", "orders", key_type="decimal")


def test_snapshot_copies_data_and_descriptor(storage, orders_table):
    copied = orders_table.snapshot("s1")

    assert copied == ["shop/orders/snapshots/s1/gen-1.parquet", "shop/orders/snapshots/s1/gen-2.parquet"]
    assert storage.exists("shop/orders/snapshots/s1/table.yaml")
    assert storage.read_bytes(copied[0]) == storage.read_bytes("shop/orders/gen-1.parquet")


@pytest.mark.parametrize("key_type,value,display", [
    ("text", "alice", "alice"),
    ("bigint", -7, "-7"),
    ("uuid", "12345678-1234-5678-1234-567812345678", "12345678-1234-5678-1234-567812345678"),
    ("blob", b"\x01\x02", "0102"),
])
def test_key_codecs(key_type, value, display):
    assert format_key(encode_key(value, key_type), key_type) == display


def test_undecodable_keys_fall_back_to_hex():
    assert format_key(b"\xff\xfe", "text") == "fffe"
    assert format_key(b"\x01", "bigint") == "01"


def test_blob_keys_must_be_bytes():
    with pytest.raises(TypeError):
        encode_key("alice", "blob")
