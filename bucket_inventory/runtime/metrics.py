from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter


class ReaderMetrics:
    """Prometheus counters for inventory reading.

    Metrics live in their own CollectorRegistry so several readers (and
    tests) never collide on the process-wide default registry. Expose or
    push ``registry`` from the hosting application.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.readers_opened = Counter(
            "bucket_inventory_readers_opened",
            "Manifest file readers opened",
            labelnames=["format"],
            registry=self.registry,
        )
        self.downloads = Counter(
            "bucket_inventory_downloads",
            "Data files materialized to local disk",
            registry=self.registry,
        )
        self.downloaded_bytes = Counter(
            "bucket_inventory_downloaded_bytes",
            "Bytes written by data file downloads",
            registry=self.registry,
        )
        self.records_read = Counter(
            "bucket_inventory_records_read",
            "Inventory records returned by readers",
            labelnames=["format"],
            registry=self.registry,
        )

    def record_open(self, *, format_name: str) -> None:
        self.readers_opened.labels(format=format_name).inc()

    def record_download(self, *, size_bytes: int) -> None:
        self.downloads.inc()
        self.downloaded_bytes.inc(size_bytes)

    def record_read(self, *, format_name: str, count: int) -> None:
        if count:
            self.records_read.labels(format=format_name).inc(count)
