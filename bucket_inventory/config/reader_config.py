"""Configuration models for the inventory reader and its object store.

Both models parse from JSON-compatible objects and, for deployments that
configure through the environment, from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

INVENTORY_COLUMNS: tuple[str, ...] = ("bucket", "key", "size", "last_modified_date")

_ENV_PREFIX = "BUCKET_INVENTORY_"


def _env_overrides(environ: Mapping[str, str], names: tuple[str, ...]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for name in names:
        raw = environ.get(_ENV_PREFIX + name.upper())
        if raw:
            overrides[name] = raw
    return overrides


class InventoryReaderConfig(BaseModel):
    """Settings for the reader factory.

    JSON example:
        "reader": {
          "temp_dir": "/mnt/scratch/inventory",
          "parquet_batch_size": 4096
        }
    """

    # None means the platform default temp directory
    temp_dir: Path | None = None
    parquet_batch_size: int = Field(default=4096, gt=0)
    columns: tuple[str, ...] = INVENTORY_COLUMNS

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_columns(self) -> InventoryReaderConfig:
        """bucket and key are required to build a record."""
        missing = {"bucket", "key"} - set(self.columns)
        if missing:
            raise ValueError(f"columns must include {sorted(missing)}")
        return self

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> InventoryReaderConfig:
        return cls.model_validate(obj)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> InventoryReaderConfig:
        """Read BUCKET_INVENTORY_TEMP_DIR and BUCKET_INVENTORY_PARQUET_BATCH_SIZE."""
        env = os.environ if environ is None else environ
        return cls.model_validate(
            _env_overrides(env, ("temp_dir", "parquet_batch_size"))
        )


class ObjectStoreConfig(BaseModel):
    """Connection settings for OCI Object Storage.

    Authentication modes:
      - "instance_principal": identity of the current OCI Compute instance.
      - "api_key": user API key from an OCI CLI-style config file.
    """

    region: str | None = None
    auth_mode: Literal["instance_principal", "api_key"] = "instance_principal"
    oci_config_file: str | None = None
    oci_profile: str = "DEFAULT"

    download_chunk_size_bytes: int = Field(default=8 * 1024 * 1024, gt=0)
    read_buffer_size_bytes: int = Field(default=1024 * 1024, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_auth(self) -> ObjectStoreConfig:
        if self.auth_mode == "api_key" and self.oci_config_file is None:
            raise ValueError("oci_config_file is required for api_key auth")
        return self

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> ObjectStoreConfig:
        return cls.model_validate(obj)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ObjectStoreConfig:
        env = os.environ if environ is None else environ
        return cls.model_validate(
            _env_overrides(
                env,
                (
                    "region",
                    "auth_mode",
                    "oci_config_file",
                    "oci_profile",
                    "download_chunk_size_bytes",
                    "read_buffer_size_bytes",
                ),
            )
        )
