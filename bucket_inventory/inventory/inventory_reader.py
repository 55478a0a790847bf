"""Reader factory for inventory data files.

Resolves the manifest's declared format to a reader implementation and
owns the local copies of data files that must be materialized first.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from bucket_inventory.config.reader_config import InventoryReaderConfig
from bucket_inventory.core.domain.types import InventoryFormat, Manifest
from bucket_inventory.core.errors import DecodeOpenError, TransportError, UnsupportedFormatError
from bucket_inventory.core.ports.manifest_file_reader import ManifestFileReader
from bucket_inventory.core.ports.object_store import DownloadContext, ObjectStore
from bucket_inventory.inventory.materialization import MaterializationCache, MaterializedFile
from bucket_inventory.inventory.orc_reader import (
    OrcManifestFileReader,
    OrcOpener,
    PyArrowOrcDecoder,
)
from bucket_inventory.inventory.parquet_reader import ParquetManifestFileReader
from bucket_inventory.inventory.records import missing_required_columns
from bucket_inventory.runtime.metrics import ReaderMetrics

LOGGER = logging.getLogger(__name__)

# Decoders signal unreadable input with these
_DECODE_ERRORS = (pa.ArrowException, OSError, ValueError)


class InventoryReader:
    """
    Produces ManifestFileReader instances for the data files of a manifest.

    Semantics:
    - Parquet files are streamed from the object store.
    - ORC files are downloaded once per key to a temp file and decoded
      locally; the copy is deleted when the reader for that key is closed.
    - Nothing is retried. Errors reach the caller on the first failure.
    """

    def __init__(
        self,
        *,
        manifest: Manifest,
        store: ObjectStore,
        config: InventoryReaderConfig | None = None,
        ctx: DownloadContext | None = None,
        metrics: ReaderMetrics | None = None,
        orc_opener: OrcOpener = PyArrowOrcDecoder.open,
    ) -> None:
        self._manifest = manifest
        self._store = store
        self._config = config or InventoryReaderConfig()
        self._ctx = ctx
        self._metrics = metrics
        self._orc_opener = orc_opener
        self._cache = MaterializationCache(temp_dir=self._config.temp_dir)

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def cache(self) -> MaterializationCache:
        return self._cache

    # ------------------------------------------------------------------

    def get_manifest_file_reader(
        self,
        key: str,
        *,
        ctx: DownloadContext | None = None,
    ) -> ManifestFileReader:
        """Return a reader for the data file ``key``.

        ``ctx`` overrides the factory-wide download context for this call.
        """
        try:
            file_format = InventoryFormat(self._manifest.format)
        except ValueError as exc:
            raise UnsupportedFormatError(self._manifest.format) from exc

        if file_format is InventoryFormat.PARQUET:
            reader: ManifestFileReader = self._get_parquet_reader(key)
        else:
            reader = self._get_orc_reader(key, ctx=ctx or self._ctx)

        if self._metrics is not None:
            self._metrics.record_open(format_name=file_format.value)
        return reader

    # ------------------------------------------------------------------

    def _get_parquet_reader(self, key: str) -> ParquetManifestFileReader:
        stream = self._store.open_stream(self._manifest.inventory_bucket, key)

        try:
            parquet_file = pq.ParquetFile(stream)
        except _DECODE_ERRORS as exc:
            stream.close()
            raise DecodeOpenError(
                f"failed to create parquet reader for {key!r}: {exc}", key=key
            ) from exc

        missing = missing_required_columns(parquet_file.schema_arrow.names)
        if missing:
            stream.close()
            raise DecodeOpenError(
                f"parquet file {key!r} lacks required columns {missing}", key=key
            )

        return ParquetManifestFileReader(
            parquet_file=parquet_file,
            stream=stream,
            key=key,
            columns=self._config.columns,
            decode_batch_size=self._config.parquet_batch_size,
            metrics=self._metrics,
        )

    def _get_orc_reader(self, key: str, *, ctx: DownloadContext | None) -> OrcManifestFileReader:
        idx = self._manifest.index_of(key)
        if idx is None:
            LOGGER.warning("key is not listed in the manifest", extra={"key": key})

        local_path: Path | None = None
        downloaded = False
        while local_path is None:
            entry = self._cache.get_or_create(key, index_in_manifest=idx)
            with entry.lock:
                # a failed download by another caller may have dropped the entry
                if self._cache.get(key) is not entry:
                    continue
                if not entry.ready:
                    self._materialize(entry, ctx=ctx)
                    downloaded = True
                local_path = entry.local_path

        try:
            decoder = self._orc_opener(local_path)
        except _DECODE_ERRORS as exc:
            self._reject_copy(entry, downloaded=downloaded)
            raise DecodeOpenError(
                f"failed to open orc file for {key!r}: {exc}", key=key
            ) from exc

        missing = missing_required_columns(decoder.column_names())
        if missing:
            decoder.close()
            self._reject_copy(entry, downloaded=downloaded)
            raise DecodeOpenError(
                f"orc file {key!r} lacks required columns {missing}", key=key
            )

        return OrcManifestFileReader(
            decoder=decoder,
            key=key,
            release=functools.partial(self._cache.discard, entry=entry),
            columns=self._config.columns,
            metrics=self._metrics,
        )

    def _materialize(self, entry: MaterializedFile, *, ctx: DownloadContext | None) -> None:
        """Download ``entry.key`` to a fresh temp file and mark it ready.

        On any failure the partial file is removed and the entry dropped.
        """
        key = entry.key
        local_path: Path | None = None
        try:
            local_path = self._cache.new_local_file(key)
            LOGGER.debug(
                "start downloading",
                extra={"key": key, "local_path": str(local_path)},
            )
            size_bytes = self._store.download_to_file(
                self._manifest.inventory_bucket,
                key,
                local_path,
                ctx=ctx,
            )
        except OSError as exc:
            self._abandon(entry, local_path)
            raise TransportError(f"failed to download {key!r}: {exc}", key=key) from exc
        except Exception:
            self._abandon(entry, local_path)
            raise

        entry.local_path = local_path
        entry.ready = True
        LOGGER.debug(
            "finished downloading",
            extra={"key": key, "local_path": str(local_path), "size_bytes": size_bytes},
        )

        if self._metrics is not None:
            self._metrics.record_download(size_bytes=size_bytes)

    def _reject_copy(self, entry: MaterializedFile, *, downloaded: bool) -> None:
        # a fresh copy the decoder rejects is not worth keeping; a reused
        # one still belongs to the readers already open on it
        if downloaded:
            self._cache.discard(entry.key, entry=entry)

    def _abandon(self, entry: MaterializedFile, local_path: Path | None) -> None:
        if local_path is not None:
            local_path.unlink(missing_ok=True)
        self._cache.discard(entry.key, entry=entry)
