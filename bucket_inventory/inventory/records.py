"""Conversion of decoded inventory rows into InventoryObject models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from bucket_inventory.core.domain.types import InventoryObject


def to_unix_seconds(value: Any) -> int | None:
    """Convert a decoded ``last_modified_date`` cell to Unix seconds.

    Naive datetimes are read as UTC. Integers are taken as Unix seconds.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if isinstance(value, int):
        return value
    raise TypeError(f"unsupported last_modified_date value: {value!r}")


def inventory_object_from_row(row: Mapping[str, Any]) -> InventoryObject:
    size = row.get("size")
    return InventoryObject(
        bucket=row["bucket"],
        key=row["key"],
        size=int(size) if size is not None else None,
        last_modified=to_unix_seconds(row.get("last_modified_date")),
    )


REQUIRED_COLUMNS: tuple[str, ...] = ("bucket", "key")


def missing_required_columns(column_names: Iterable[str]) -> list[str]:
    """Return the required columns absent from a data file's schema."""
    present = set(column_names)
    return [c for c in REQUIRED_COLUMNS if c not in present]
