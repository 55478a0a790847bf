"""
Semantic test: Parquet files are read straight from the object store.

Invariants:
- No download and no local copy happen for Parquet.
- Batch reads cross row-group boundaries and stop with an empty batch.
- skip_rows follows the same asymmetric exhaustion rule as ORC.
"""

from __future__ import annotations

import io
from datetime import datetime

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from bucket_inventory.config.reader_config import InventoryReaderConfig
from bucket_inventory.core.errors import ReaderClosedError, SkipExhaustionError
from bucket_inventory.inventory.inventory_reader import InventoryReader

KEY = "inventory/data/part-0.parquet"


def _parquet_bytes(count: int, *, row_group_size: int, with_size: bool = True) -> bytes:
    columns = {
        "bucket": pa.array(["source-bucket"] * count, pa.string()),
        "key": pa.array([f"objects/{i:04d}" for i in range(count)], pa.string()),
        "last_modified_date": pa.array(
            [datetime(2024, 1, 1, 0, 0, i) for i in range(count)],
            pa.timestamp("ms"),
        ),
    }
    if with_size:
        columns["size"] = pa.array([100 + i for i in range(count)], pa.int64())

    buf = io.BytesIO()
    pq.write_table(pa.table(columns), buf, row_group_size=row_group_size)
    return buf.getvalue()


def _open(fake_store, manifest_factory, data: bytes, tmp_path, decode_batch_size: int = 2):
    fake_store.objects[KEY] = data
    factory = InventoryReader(
        manifest=manifest_factory("Parquet", [KEY]),
        store=fake_store,
        config=InventoryReaderConfig(temp_dir=tmp_path, parquet_batch_size=decode_batch_size),
    )
    return factory, factory.get_manifest_file_reader(KEY)


def test_streams_without_local_copy(fake_store, manifest_factory, tmp_path) -> None:
    factory, reader = _open(fake_store, manifest_factory, _parquet_bytes(5, row_group_size=3), tmp_path)

    first = reader.read(4)
    second = reader.read(4)
    third = reader.read(4)
    reader.close()

    assert [o.key for o in first] == [f"objects/{i:04d}" for i in range(4)]
    assert [o.key for o in second] == ["objects/0004"]
    assert third == []

    assert fake_store.downloads == []
    assert fake_store.streams_opened == [("inventory-bucket", KEY)]
    assert len(factory.cache) == 0
    assert list(tmp_path.iterdir()) == []


def test_records_are_converted(fake_store, manifest_factory, tmp_path) -> None:
    _, reader = _open(fake_store, manifest_factory, _parquet_bytes(3, row_group_size=3), tmp_path)

    records = reader.read(3)

    assert records[2].bucket == "source-bucket"
    assert records[2].size == 102
    assert records[2].last_modified == 1_704_067_200 + 2


def test_missing_optional_column_maps_to_none(fake_store, manifest_factory, tmp_path) -> None:
    data = _parquet_bytes(2, row_group_size=2, with_size=False)
    _, reader = _open(fake_store, manifest_factory, data, tmp_path)

    records = reader.read(2)

    assert [o.size for o in records] == [None, None]


def test_total_matches_num_rows(fake_store, manifest_factory, tmp_path) -> None:
    _, reader = _open(
        fake_store, manifest_factory, _parquet_bytes(17, row_group_size=5), tmp_path, decode_batch_size=3
    )

    keys: list[str] = []
    while batch := reader.read(4):
        assert len(batch) <= 4
        keys.extend(o.key for o in batch)

    assert len(keys) == len(set(keys)) == reader.get_num_rows() == 17


def test_skip_rows(fake_store, manifest_factory, tmp_path) -> None:
    data = _parquet_bytes(5, row_group_size=3)
    _, reader = _open(fake_store, manifest_factory, data, tmp_path)

    reader.skip_rows(0)
    reader.skip_rows(3)

    assert [o.key for o in reader.read(10)] == ["objects/0003", "objects/0004"]

    _, other = _open(fake_store, manifest_factory, data, tmp_path)
    with pytest.raises(SkipExhaustionError):
        other.skip_rows(6)


def test_close_releases_stream(fake_store, manifest_factory, tmp_path) -> None:
    _, reader = _open(fake_store, manifest_factory, _parquet_bytes(3, row_group_size=3), tmp_path)

    with reader:
        reader.read(1)

    with pytest.raises(ReaderClosedError):
        reader.read(1)
    reader.close()
