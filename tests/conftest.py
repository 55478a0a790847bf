"""Shared fakes for the semantic test suite."""

from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from bucket_inventory.core.domain.types import Manifest, ManifestFile
from bucket_inventory.core.errors import TransportError
from bucket_inventory.core.ports.object_store import DownloadContext


class FakeObjectStore:
    """In-memory ObjectStore that counts every call."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.downloads: list[tuple[str, str, Path]] = []
        self.streams_opened: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None
        self.before_write: Callable[[], None] | None = None
        self._lock = threading.Lock()

    def download_to_file(
        self,
        bucket: str,
        key: str,
        destination: str | Path,
        *,
        ctx: DownloadContext | None = None,
    ) -> int:
        with self._lock:
            self.downloads.append((bucket, key, Path(destination)))

        if ctx is not None:
            ctx.check(key=key)
        if self.before_write is not None:
            self.before_write()
        if self.fail_with is not None:
            raise self.fail_with
        if key not in self.objects:
            raise TransportError(f"no such object: {key}", key=key)

        data = self.objects[key]
        Path(destination).write_bytes(data)
        return len(data)

    def open_stream(self, bucket: str, key: str) -> io.BytesIO:
        self.streams_opened.append((bucket, key))
        if key not in self.objects:
            raise TransportError(f"no such object: {key}", key=key)
        return io.BytesIO(self.objects[key])

    def download_count(self, key: str) -> int:
        return sum(1 for _, k, _ in self.downloads if k == key)


class FakeOrcDecoder:
    """OrcStripeDecoder over in-memory stripes of row dicts."""

    def __init__(
        self,
        stripes: Sequence[Sequence[dict[str, Any]]],
        *,
        close_error: Exception | None = None,
        columns: Sequence[str] = ("bucket", "key", "size", "last_modified_date"),
    ) -> None:
        self._stripes = [list(s) for s in stripes]
        self._columns = list(columns)
        self.close_error = close_error
        self.closed = False
        self.stripes_read: list[int] = []

    def num_rows(self) -> int:
        return sum(len(s) for s in self._stripes)

    def num_stripes(self) -> int:
        return len(self._stripes)

    def column_names(self) -> list[str]:
        return list(self._columns)

    def read_stripe(self, index: int, columns: Sequence[str]) -> list[dict[str, Any]]:
        self.stripes_read.append(index)
        return [{c: row.get(c) for c in columns} for row in self._stripes[index]]

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


def make_rows(count: int, *, bucket: str = "source-bucket", start: int = 0) -> list[dict[str, Any]]:
    return [
        {
            "bucket": bucket,
            "key": f"objects/{i:04d}",
            "size": 100 + i,
            "last_modified_date": 1_700_000_000 + i,
        }
        for i in range(start, start + count)
    ]


@pytest.fixture
def rows_factory() -> Callable[..., list[dict[str, Any]]]:
    return make_rows


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def orc_decoder_factory() -> Callable[..., FakeOrcDecoder]:
    return FakeOrcDecoder


@pytest.fixture
def manifest_factory() -> Callable[..., Manifest]:
    def _make(fmt: str, keys: Sequence[str], bucket: str = "inventory-bucket") -> Manifest:
        return Manifest(
            format=fmt,
            inventory_bucket=bucket,
            files=tuple(ManifestFile(key=k) for k in keys),
        )

    return _make
