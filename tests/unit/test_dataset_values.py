from datetime import datetime, timezone, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from wacrm.utils.dataset_values import (
    DataSetValueError,
    coerce_value,
    prepare_record,
    primary_key_text,
    read_value,
    value_slots,
)


def _column(name, data_type="string", **fields):
    defaults = dict(max_length=None, is_required=False, is_primary_key=False, default_value=None)
    defaults.update(fields)
    return SimpleNamespace(column_name=name, data_type=data_type, **defaults)


@pytest.mark.parametrize(
    "data_type, raw, expected",
    [
        ("string", 42, "42"),
        ("int", "7", 7),
        ("int", 7.0, 7),
        ("decimal", "12.50", Decimal("12.50")),
        ("boolean", "Yes", True),
        ("boolean", 0, False),
    ],
)
def test_coerce_value(data_type, raw, expected):
    assert coerce_value(data_type, raw) == expected


def test_blank_values_mean_no_value():
    assert coerce_value("int", None) is None
    assert coerce_value("datetime", "   ") is None


def test_datetimes_are_stored_in_utc():
    assert coerce_value("datetime", "2026-03-15T09:00:00+08:00") == datetime(2026, 3, 15, 1, 0, tzinfo=timezone.utc)
    naive = coerce_value("datetime", "2026-03-15T09:00:00")
    assert naive.utcoffset() == timedelta(0)
    assert naive.hour == 9


@pytest.mark.parametrize(
    "data_type, raw, message",
    [
        ("int", "2.5", "not a whole number"),
        ("int", True, "expected a number"),
        ("decimal", "NaN", "not a number"),
        ("decimal", 10 ** 15, "out of range"),
        ("boolean", "maybe", "not a boolean"),
        ("datetime", "next week", "not an ISO 8601 date"),
        ("datetime", 20260315, "expected an ISO 8601 date string"),
        ("string", {"a": 1}, "expected a text value"),
        ("money", "1", "unsupported data type"),
    ],
)
def test_coerce_value_rejects(data_type, raw, message):
    with pytest.raises(DataSetValueError, match=message):
        coerce_value(data_type, raw)


def test_string_max_length():
    with pytest.raises(DataSetValueError, match="longer than 3 characters"):
        coerce_value("string", "abcd", max_length=3)


def test_long_strings_use_the_text_slot():
    assert value_slots("string", "short") == {"string_value": "short"}
    assert value_slots("string", "x" * 501) == {"text_value": "x" * 501}
    assert value_slots("int", 3) == {"numeric_value": Decimal(3)}


def test_read_value_returns_json_friendly_numbers():
    stored = SimpleNamespace(numeric_value=Decimal("3.0000"), string_value=None, text_value="long text")
    assert read_value("int", stored) == 3
    assert isinstance(read_value("decimal", stored), float)
    assert read_value("string", stored) == "long text"


def test_primary_key_text():
    assert primary_key_text(Decimal("100.0000")) == "100"
    assert primary_key_text(False) == "false"
    assert primary_key_text(datetime(2026, 1, 2, tzinfo=timezone.utc)) == "2026-01-02T00:00:00+00:00"


def test_prepare_record_collects_every_problem():
    columns = [
        _column("code", is_primary_key=True),
        _column("qty", "int", is_required=True),
        _column("note", max_length=5),
    ]
    typed, primary_key, errors = prepare_record(columns, {"qty": "x", "note": "too long", "extra": 1})
    assert typed == {}
    assert primary_key is None
    assert errors == [
        "Unknown column 'extra'",
        "code is required",
        "qty: 'x' is not a number",
        "note: longer than 5 characters",
    ]


def test_prepare_record_applies_defaults_and_primary_key():
    columns = [
        _column("code", "int", is_primary_key=True),
        _column("status", default_value="new"),
        _column("paid", "boolean"),
    ]
    typed, primary_key, errors = prepare_record(columns, {"code": "42", "paid": ""})
    assert errors == []
    assert typed == {"code": 42, "status": "new"}
    assert primary_key == "42"
