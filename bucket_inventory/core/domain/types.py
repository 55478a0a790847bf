"""Core shared data models.

This module defines the canonical Pydantic models used across the package:
the uniform inventory record emitted by every format reader and the
manifest describing an inventory export.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Inventory records
# ---------------------------------------------------------------------------


class InventoryObject(BaseModel):
    """One object listed by an inventory export.

    ``last_modified`` is expressed in Unix seconds.
    """

    bucket: str
    key: str
    size: int | None = None
    last_modified: int | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Manifest models
# ---------------------------------------------------------------------------


class InventoryFormat(str, Enum):
    """Data-file formats with a reader implementation."""

    PARQUET = "Parquet"
    ORC = "ORC"


class ManifestFile(BaseModel):
    key: str = Field(..., min_length=1)
    size: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="ignore", frozen=True)


class Manifest(BaseModel):
    """Listing of the data files of one inventory export.

    ``format`` is kept as the raw tag declared by the export. It is resolved
    against :class:`InventoryFormat` only when a reader is requested, so a
    manifest with an unknown tag can still be loaded and inspected.
    """

    format: str = Field(..., min_length=1)
    inventory_bucket: str = Field(..., min_length=1)
    files: tuple[ManifestFile, ...] = ()
    source_bucket: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("inventory_bucket")
    @classmethod
    def _strip_bucket_arn(cls, value: str) -> str:
        # destinationBucket is published as "arn:aws:s3:::<name>"
        if value.startswith("arn:"):
            return value.rsplit(":", 1)[-1]
        return value

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> Manifest:
        """Create a Manifest from an inventory ``manifest.json`` document.

        JSON example:
            {
              "sourceBucket": "example-source",
              "destinationBucket": "arn:aws:s3:::example-inventory",
              "fileFormat": "ORC",
              "files": [{"key": "data/a.orc", "size": 1024}]
            }
        """
        return cls.model_validate(
            {
                "format": obj.get("fileFormat"),
                "inventory_bucket": obj.get("destinationBucket"),
                "source_bucket": obj.get("sourceBucket"),
                "files": obj.get("files", []),
            }
        )

    def index_of(self, key: str) -> int | None:
        """Return the position of ``key`` in ``files`` or None if unlisted."""
        for idx, entry in enumerate(self.files):
            if entry.key == key:
                return idx
        return None
