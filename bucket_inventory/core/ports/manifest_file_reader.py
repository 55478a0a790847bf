"""Reader protocol shared by every inventory data-file format."""

from __future__ import annotations

from typing import Protocol

from bucket_inventory.core.domain.types import InventoryObject


class ManifestFileReader(Protocol):
    """Batch reader over one data file listed in a manifest.

    ``read`` returns at most ``batch_size`` records. A short or empty batch
    means the file is exhausted; it is never signalled with an exception.
    ``skip_rows`` past the end, by contrast, raises SkipExhaustionError.
    """

    def read(self, batch_size: int) -> list[InventoryObject]:
        """Return the next batch of records."""

    def skip_rows(self, n: int) -> None:
        """Advance past exactly ``n`` records without decoding them into models."""

    def get_num_rows(self) -> int:
        """Return the record count declared by the file metadata."""

    def close(self) -> None:
        """Release every handle held by the reader."""
