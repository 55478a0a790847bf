"""
Error taxonomy for inventory readers.

Read exhaustion is not an error: a read returning fewer records than asked
for (or none) means the file is drained. Skip exhaustion is an error.
"""
from __future__ import annotations


class InventoryError(Exception):
    """Base class for all errors raised by this package."""


class UnsupportedFormatError(InventoryError):
    """The manifest declares a data-file format without a reader."""

    def __init__(self, format_name: str) -> None:
        super().__init__(f"unsupported inventory format: {format_name!r}")
        self.format_name = format_name


class TransportError(InventoryError):
    """Fetching bytes from the object store failed."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class DownloadCancelledError(TransportError):
    """The download context was cancelled or its deadline expired."""


class DecodeOpenError(InventoryError):
    """A format decoder could not open the file it was given."""

    def __init__(self, message: str, *, key: str) -> None:
        super().__init__(message)
        self.key = key


class SkipExhaustionError(InventoryError):
    """``skip_rows`` asked for more records than remained."""

    def __init__(self, *, requested: int, skipped: int) -> None:
        super().__init__(
            f"insufficient rows to skip: requested {requested}, skipped {skipped}"
        )
        self.requested = requested
        self.skipped = skipped


class ReaderClosedError(InventoryError):
    """An operation was attempted on a closed reader."""
