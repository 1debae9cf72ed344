"""Unit tests for row composition and cleansing."""

from __future__ import annotations

import os

import pytest

import rowlog.core.formatter as formatter_module
from rowlog.core.formatter import (
    ApproximateClock,
    RowFormatter,
    default_column_filter,
    default_serializer,
)
from rowlog.utils.dates import format_row_date


def test_default_cleansing_strips_framing_characters() -> None:
    assert default_column_filter("line one\r\nline two", 0) == "line one  line two"
    assert default_column_filter("a][b][c", 3) == "abc"
    assert default_column_filter(None, 1) == ""
    assert default_column_filter(42, 2) == "42"


def test_default_serializer_wraps_each_column() -> None:
    assert default_serializer(["a", "b", "c"], {}) == "[a][b][c]" + os.linesep


def test_compose_fills_columns_in_order() -> None:
    formatter = RowFormatter(["category", "missing", "msg"], clock=lambda: 1000.25)
    row = formatter.compose("app.log", {"category": "error", "msg": "multi\nline"})

    assert row is not None
    assert row.columns == ["error", "", "multi line"]
    assert row.line == "[error][][multi line]" + os.linesep
    assert row.path == "app.log"


def test_timestamps_derive_from_one_reading() -> None:
    formatter = RowFormatter(["epoch", "hires_epoch", "date"], clock=lambda: 1700000000.98765)
    row = formatter.compose("x.log", {})

    assert row.record["epoch"] == 1700000000
    assert row.record["hires_epoch"] == "1700000000.988"
    assert row.record["date"] == format_row_date(1700000000)


def test_explicit_timestamp_wins_over_clock() -> None:
    formatter = RowFormatter(["epoch"], clock=lambda: 5.0)
    row = formatter.compose("x.log", {"now": 1234.5})

    assert row.columns == ["1234"]
    assert "now" not in row.record


def test_date_recomputed_only_when_second_changes(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def _counting(epoch: float) -> str:
        calls.append(epoch)
        return f"date-{epoch}"

    monkeypatch.setattr(formatter_module, "format_row_date", _counting)
    ticks = iter([100.1, 100.5, 100.9, 101.0])
    formatter = RowFormatter(["date"], clock=lambda: next(ticks))

    dates = [formatter.compose("x.log", {}).columns[0] for _ in range(4)]

    assert dates == ["date-100", "date-100", "date-100", "date-101"]
    assert calls == [100, 101]


def test_structured_data_is_serialized_and_absent_data_is_empty() -> None:
    formatter = RowFormatter(["data"], clock=lambda: 1.0)

    assert formatter.compose("x.log", {"data": {"foo": "bar"}}).columns == ['{"foo":"bar"}']
    assert formatter.compose("x.log", {"data": [1, 2]}).columns == ["[1,2]"]
    assert formatter.compose("x.log", {}).columns == [""]


def test_path_placeholders_resolved_from_record() -> None:
    formatter = RowFormatter(["msg"], clock=lambda: 1.0)
    row = formatter.compose("logs/[category]-[unknown].log", {"category": "error", "msg": "m"})

    assert row.path == "logs/error-[unknown].log"


def test_column_filter_replaces_default_cleansing() -> None:
    formatter = RowFormatter(
        ["code", "msg"],
        column_filter=lambda value, index: f"{index}:{value}",
        clock=lambda: 1.0,
    )
    row = formatter.compose("x.log", {"code": 7, "msg": "a][b"})

    assert row.columns == ["0:7", "1:a][b"]


def test_serializer_can_suppress_a_row() -> None:
    formatter = RowFormatter(["msg"], serializer=lambda cols, record: None, clock=lambda: 1.0)

    assert formatter.compose("x.log", {"msg": "dropped"}) is None


def test_approximate_time_never_goes_backwards() -> None:
    clock = ApproximateClock(interval=0.01)
    clock.start()
    formatter = RowFormatter(["hires_epoch"], approximate_clock=clock)

    values = [
        float(formatter.compose("x.log", {"approximate_time": True}).record["hires_epoch"])
        for _ in range(10)
    ]

    assert values == sorted(values)


def test_hires_epoch_always_has_three_decimals() -> None:
    formatter = RowFormatter(["hires_epoch"], clock=lambda: 1700000000.1)

    assert formatter.compose("x.log", {}).columns == ["1700000000.100"]
