"""Public API for the bucket_inventory package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from bucket_inventory.config.reader_config import (
    InventoryReaderConfig,
    ObjectStoreConfig,
)

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from bucket_inventory.core.domain.types import (
    InventoryFormat,
    InventoryObject,
    Manifest,
    ManifestFile,
)
from bucket_inventory.core.errors import (
    DecodeOpenError,
    DownloadCancelledError,
    InventoryError,
    ReaderClosedError,
    SkipExhaustionError,
    TransportError,
    UnsupportedFormatError,
)
from bucket_inventory.core.ports.manifest_file_reader import ManifestFileReader
from bucket_inventory.core.ports.object_store import DownloadContext, ObjectStore

# ----------------------------------------------------------------------
# Reader API
# ----------------------------------------------------------------------
from bucket_inventory.inventory.inventory_reader import InventoryReader
from bucket_inventory.io.oci_object_store import OCIObjectStorageClient
from bucket_inventory.runtime.metrics import ReaderMetrics

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Reader
    "InventoryReader",
    "ManifestFileReader",
    "ReaderMetrics",

    # Object store
    "ObjectStore",
    "OCIObjectStorageClient",
    "DownloadContext",

    # Config
    "InventoryReaderConfig",
    "ObjectStoreConfig",

    # Domain
    "InventoryObject",
    "InventoryFormat",
    "Manifest",
    "ManifestFile",

    # Errors
    "InventoryError",
    "UnsupportedFormatError",
    "TransportError",
    "DownloadCancelledError",
    "DecodeOpenError",
    "SkipExhaustionError",
    "ReaderClosedError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("bucket-inventory")
except PackageNotFoundError:
    __version__ = "0.0.0"
