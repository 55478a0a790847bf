"""
Semantic test: ORC skip_rows.

Invariants:
- skip_rows(n) followed by reads yields the remaining rows in order.
- skip_rows(0) leaves the cursor untouched.
- Skipping past the end raises SkipExhaustionError, unlike read exhaustion.
"""

from __future__ import annotations

import pytest

from bucket_inventory.core.errors import SkipExhaustionError
from bucket_inventory.inventory.orc_reader import OrcManifestFileReader


def _reader(decoder) -> OrcManifestFileReader:
    return OrcManifestFileReader(
        decoder=decoder,
        key="data/a.orc",
        release=lambda key: None,
        columns=("bucket", "key", "size", "last_modified_date"),
    )


def _drain(reader) -> list[str]:
    keys: list[str] = []
    while batch := reader.read(3):
        keys.extend(o.key for o in batch)
    return keys


@pytest.mark.parametrize("n", [1, 2, 3, 4])
def test_skip_then_read_returns_remainder(n, orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    reader = _reader(orc_decoder_factory([rows[:3], rows[3:]]))

    reader.skip_rows(n)

    assert _drain(reader) == [r["key"] for r in rows[n:]]


def test_skip_zero_is_noop(orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    decoder = orc_decoder_factory([rows[:3], rows[3:]])
    reader = _reader(decoder)

    reader.skip_rows(0)

    assert decoder.stripes_read == []
    assert _drain(reader) == [r["key"] for r in rows]


def test_skip_after_partial_read(orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    reader = _reader(orc_decoder_factory([rows[:3], rows[3:]]))

    assert [o.key for o in reader.read(2)] == [r["key"] for r in rows[:2]]
    reader.skip_rows(2)

    assert _drain(reader) == [rows[4]["key"]]


def test_skip_exactly_all_rows_then_read_is_empty(orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    reader = _reader(orc_decoder_factory([rows[:3], rows[3:]]))

    reader.skip_rows(5)

    assert reader.read(4) == []


def test_skip_past_end_raises(orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    reader = _reader(orc_decoder_factory([rows[:3], rows[3:]]))

    with pytest.raises(SkipExhaustionError) as excinfo:
        reader.skip_rows(6)

    assert excinfo.value.requested == 6
    assert excinfo.value.skipped == 5
    reader.close()


def test_negative_skip_rejected(orc_decoder_factory, rows_factory) -> None:
    reader = _reader(orc_decoder_factory([rows_factory(2)]))

    with pytest.raises(ValueError):
        reader.skip_rows(-1)


def test_num_rows_independent_of_cursor(orc_decoder_factory, rows_factory) -> None:
    rows = rows_factory(5)
    reader = _reader(orc_decoder_factory([rows[:3], rows[3:]]))

    reader.skip_rows(4)

    assert reader.get_num_rows() == 5
