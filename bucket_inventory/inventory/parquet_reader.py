"""Parquet manifest file reader.

Parquet data files are decoded straight from a seekable remote handle;
no local copy is made.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Iterator, Sequence

import pyarrow.parquet as pq

from bucket_inventory.core.domain.types import InventoryFormat, InventoryObject
from bucket_inventory.core.errors import ReaderClosedError, SkipExhaustionError
from bucket_inventory.inventory.records import inventory_object_from_row
from bucket_inventory.runtime.metrics import ReaderMetrics

LOGGER = logging.getLogger(__name__)


class ParquetManifestFileReader:
    """ManifestFileReader delegating to a ``pyarrow.parquet.ParquetFile``.

    Decoded batches come back in whatever size the decoder chooses; rows
    beyond the caller's batch are held until the next ``read``.
    """

    def __init__(
        self,
        *,
        parquet_file: pq.ParquetFile,
        stream: BinaryIO,
        key: str,
        columns: Sequence[str],
        decode_batch_size: int,
        metrics: ReaderMetrics | None = None,
    ) -> None:
        self._file = parquet_file
        self._stream = stream
        self._key = key
        self._metrics = metrics

        available = set(parquet_file.schema_arrow.names)
        selected = [c for c in columns if c in available]
        self._batches: Iterator[Any] = parquet_file.iter_batches(
            batch_size=decode_batch_size,
            columns=selected,
        )
        self._rows: list[dict[str, Any]] = []
        self._pos = 0
        self._closed = False

    @property
    def key(self) -> str:
        return self._key

    def __enter__(self) -> ParquetManifestFileReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ReaderClosedError(f"reader for {self._key!r} is closed")

    def _fill(self) -> bool:
        """Load the next decoded batch; False once the file is drained."""
        while self._pos >= len(self._rows):
            batch = next(self._batches, None)
            if batch is None:
                return False
            self._rows = batch.to_pylist()
            self._pos = 0
        return True

    def read(self, batch_size: int) -> list[InventoryObject]:
        self._ensure_open()
        if batch_size < 0:
            raise ValueError("batch_size must be >= 0")

        records: list[InventoryObject] = []
        while len(records) < batch_size and self._fill():
            take = min(batch_size - len(records), len(self._rows) - self._pos)
            for row in self._rows[self._pos:self._pos + take]:
                records.append(inventory_object_from_row(row))
            self._pos += take

        if self._metrics is not None:
            self._metrics.record_read(format_name=InventoryFormat.PARQUET.value, count=len(records))
        return records

    def skip_rows(self, n: int) -> None:
        self._ensure_open()
        if n < 0:
            raise ValueError("n must be >= 0")

        skipped = 0
        while skipped < n:
            if not self._fill():
                raise SkipExhaustionError(requested=n, skipped=skipped)
            take = min(n - skipped, len(self._rows) - self._pos)
            self._pos += take
            skipped += take

    def get_num_rows(self) -> int:
        self._ensure_open()
        return self._file.metadata.num_rows

    def close(self) -> None:
        """Stop the batch stream and release the remote handle."""
        if self._closed:
            return
        self._closed = True
        self._rows = []

        last_error: Exception | None = None
        steps = (
            ("batch stream", getattr(self._batches, "close", lambda: None)),
            ("parquet file", self._file.close),
            ("remote stream", self._stream.close),
        )
        for name, step in steps:
            try:
                step()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.exception(
                    "failed to release %s", name, extra={"key": self._key}
                )
                last_error = exc

        if last_error is not None:
            raise last_error
