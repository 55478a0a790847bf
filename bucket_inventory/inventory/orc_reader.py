"""ORC manifest file reader.

ORC data files are decoded from a local copy. The decoder exposes the file
stripe by stripe; the reader walks stripes and rows behind a cursor and
adapts that to batch reads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Callable, Protocol, Sequence

from pyarrow import orc

from bucket_inventory.core.domain.types import InventoryFormat, InventoryObject
from bucket_inventory.core.errors import ReaderClosedError, SkipExhaustionError
from bucket_inventory.inventory.records import inventory_object_from_row
from bucket_inventory.runtime.metrics import ReaderMetrics

LOGGER = logging.getLogger(__name__)


class OrcStripeDecoder(Protocol):
    """Local-file decoder with stripe-level access."""

    def num_rows(self) -> int:
        """Total rows declared by the file footer."""

    def num_stripes(self) -> int:
        """Number of stripes in the file."""

    def column_names(self) -> list[str]:
        """Top-level column names of the file schema."""

    def read_stripe(self, index: int, columns: Sequence[str]) -> list[dict[str, Any]]:
        """Decode one stripe into row dicts keyed by column name."""

    def close(self) -> None:
        """Release the file handle."""


class PyArrowOrcDecoder:
    """OrcStripeDecoder backed by ``pyarrow.orc``."""

    def __init__(self, path: str | Path) -> None:
        self._fh: BinaryIO = Path(path).open("rb")
        try:
            self._file = orc.ORCFile(self._fh)
        except Exception:
            self._fh.close()
            raise

    @classmethod
    def open(cls, path: str | Path) -> PyArrowOrcDecoder:
        return cls(path)

    def num_rows(self) -> int:
        return self._file.nrows

    def num_stripes(self) -> int:
        return self._file.nstripes

    def column_names(self) -> list[str]:
        return list(self._file.schema.names)

    def read_stripe(self, index: int, columns: Sequence[str]) -> list[dict[str, Any]]:
        available = set(self.column_names())
        selected = [c for c in columns if c in available]
        return self._file.read_stripe(index, columns=selected).to_pylist()

    def close(self) -> None:
        self._fh.close()


OrcOpener = Callable[[Path], OrcStripeDecoder]


class _StripeCursor:
    """Row cursor over all stripes of a decoder, loading one stripe at a time."""

    def __init__(self, decoder: OrcStripeDecoder, *, columns: Sequence[str], key: str) -> None:
        self._decoder = decoder
        self._columns = tuple(columns)
        self._key = key
        self._next_stripe = 0
        self._rows: list[dict[str, Any]] = []
        self._pos = 0

    def next_row(self) -> dict[str, Any] | None:
        """Return the next row, crossing stripe boundaries; None when drained."""
        while self._pos >= len(self._rows):
            if not self._advance_stripe():
                return None

        row = self._rows[self._pos]
        self._pos += 1
        return row

    def _advance_stripe(self) -> bool:
        if self._next_stripe >= self._decoder.num_stripes():
            return False

        LOGGER.debug(
            "start new stripe",
            extra={"key": self._key, "stripe": self._next_stripe},
        )
        self._rows = self._decoder.read_stripe(self._next_stripe, self._columns)
        self._pos = 0
        self._next_stripe += 1
        return True

    def close(self) -> None:
        self._rows = []
        self._pos = 0


class OrcManifestFileReader:
    """ManifestFileReader over a locally materialized ORC file.

    ``release`` is called with the key on close so the owning factory can
    drop the cache entry and delete the local copy.
    """

    def __init__(
        self,
        *,
        decoder: OrcStripeDecoder,
        key: str,
        release: Callable[[str], None],
        columns: Sequence[str],
        metrics: ReaderMetrics | None = None,
    ) -> None:
        self._decoder = decoder
        self._key = key
        self._release = release
        self._metrics = metrics
        self._cursor = _StripeCursor(decoder, columns=columns, key=key)
        self._closed = False

    @property
    def key(self) -> str:
        return self._key

    def __enter__(self) -> OrcManifestFileReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ReaderClosedError(f"reader for {self._key!r} is closed")

    def read(self, batch_size: int) -> list[InventoryObject]:
        self._ensure_open()
        if batch_size < 0:
            raise ValueError("batch_size must be >= 0")

        records: list[InventoryObject] = []
        while len(records) < batch_size:
            row = self._cursor.next_row()
            if row is None:
                break
            records.append(inventory_object_from_row(row))

        if self._metrics is not None:
            self._metrics.record_read(format_name=InventoryFormat.ORC.value, count=len(records))
        return records

    def skip_rows(self, n: int) -> None:
        self._ensure_open()
        if n < 0:
            raise ValueError("n must be >= 0")

        skipped = 0
        while skipped < n:
            if self._cursor.next_row() is None:
                raise SkipExhaustionError(requested=n, skipped=skipped)
            skipped += 1

    def get_num_rows(self) -> int:
        self._ensure_open()
        return self._decoder.num_rows()

    def close(self) -> None:
        """Release cursor and decoder, then drop the local copy.

        Every step runs even if an earlier one fails; the last failure is
        re-raised once all of them have run.
        """
        if self._closed:
            return
        self._closed = True

        last_error: Exception | None = None
        steps = (
            ("cursor", self._cursor.close),
            ("decoder", self._decoder.close),
            ("local copy", lambda: self._release(self._key)),
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
