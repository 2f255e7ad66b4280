"""Tests for raw value coercion and formatting."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Literal, Optional

import pytest

from cqrs_ddd_criteria.coercion import coerce_value, format_value, parse_interval
from cqrs_ddd_criteria.exceptions import CoercionError
from cqrs_ddd_criteria.operators import FilterOperator


class Status(Enum):
    ACTIVE = "active"
    ON_HOLD = "hold"


class Priority(IntEnum):
    LOW = 1
    HIGH = 3


# -- scalars -----------------------------------------------------------------


def test_numbers():
    assert coerce_value("42", int) == 42
    assert coerce_value("4.5", float) == 4.5
    assert coerce_value("1.10", Decimal) == Decimal("1.10")


def test_optional_unwrapped():
    assert coerce_value("7", Optional[int]) == 7


def test_booleans():
    assert coerce_value("TRUE", bool) is True
    assert coerce_value("1", bool) is True
    assert coerce_value("false", bool) is False
    assert coerce_value("0", bool) is False
    with pytest.raises(CoercionError):
        coerce_value("yes", bool)


def test_datetime_with_zulu_suffix():
    value = coerce_value("2024-01-02T03:04:05Z", datetime.datetime)
    assert value == datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)


def test_datetime_offset_normalised_to_utc():
    value = coerce_value("2024-01-02T05:00:00+02:00", datetime.datetime)
    assert value.hour == 3
    assert value.tzinfo == datetime.timezone.utc


def test_date_time_interval_uuid():
    assert coerce_value("2024-02-29", datetime.date) == datetime.date(2024, 2, 29)
    assert coerce_value("12:30", datetime.time) == datetime.time(12, 30)
    assert coerce_value("7d", datetime.timedelta) == datetime.timedelta(days=7)
    raw = "12345678-1234-5678-1234-567812345678"
    assert coerce_value(raw, uuid.UUID) == uuid.UUID(raw)


def test_enum_by_name_case_insensitive():
    assert coerce_value("on_hold", Status) is Status.ON_HOLD


def test_enum_by_value():
    assert coerce_value("hold", Status) is Status.ON_HOLD
    assert coerce_value("3", Priority) is Priority.HIGH


def test_enum_unknown_member():
    with pytest.raises(CoercionError) as exc_info:
        coerce_value("archived", Status)
    assert "ACTIVE" in str(exc_info.value)


def test_text_kept_verbatim():
    assert coerce_value(" a b ", str) == " a b "
    assert coerce_value("", str) == ""


def test_blank_non_text_is_none():
    assert coerce_value("", int) is None
    assert coerce_value("  ", datetime.date) is None


def test_invalid_number():
    with pytest.raises(CoercionError) as exc_info:
        coerce_value("abc", int)
    err = exc_info.value
    assert isinstance(err, ValueError)
    assert err.raw == "abc"
    assert err.type_name == "int"
    assert err.to_dict()["error"] == "COERCION_ERROR"


def test_invalid_decimal():
    with pytest.raises(CoercionError):
        coerce_value("1,5", Decimal)


def test_fallback_through_type_adapter():
    assert coerce_value("b", Literal["a", "b"]) == "b"
    with pytest.raises(CoercionError):
        coerce_value("c", Literal["a", "b"])


# -- operator shapes ---------------------------------------------------------


def test_in_yields_list():
    assert coerce_value("1, 2,3", int, FilterOperator.IN) == [1, 2, 3]
    assert coerce_value("a,b", str, FilterOperator.IN) == ["a", "b"]
    assert coerce_value("", int, FilterOperator.IN) == []


def test_contains_on_collection_uses_element_type():
    assert coerce_value("5", list[int], FilterOperator.CT) == 5
    assert coerce_value("x", list[str], FilterOperator.NCT) == "x"


def test_contains_on_scalar_is_membership_list():
    assert coerce_value("1,3", Priority, FilterOperator.CT) == [
        Priority.LOW,
        Priority.HIGH,
    ]
    assert coerce_value("4", int, FilterOperator.CT) == [4]


def test_contains_on_text_is_substring():
    assert coerce_value("a,b", str, FilterOperator.CT) == "a,b"


# -- intervals ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2w", datetime.timedelta(weeks=2)),
        ("24h", datetime.timedelta(hours=24)),
        ("01:30:00", datetime.timedelta(hours=1, minutes=30)),
        ("-01:00:00", -datetime.timedelta(hours=1)),
        ("1 day 2 hours", datetime.timedelta(days=1, hours=2)),
        ("90", datetime.timedelta(seconds=90)),
    ],
)
def test_parse_interval(text, expected):
    assert parse_interval(text) == expected


def test_parse_interval_invalid():
    with pytest.raises(ValueError):
        parse_interval("soon")


def test_invalid_interval_is_coercion_error():
    with pytest.raises(CoercionError):
        coerce_value("soon", datetime.timedelta)


# -- formatting --------------------------------------------------------------


def test_format_value():
    assert format_value(None) == ""
    assert format_value(True) == "true"
    assert format_value(Status.ON_HOLD) == "ON_HOLD"
    assert format_value(datetime.date(2024, 1, 2)) == "2024-01-02"
    assert format_value(datetime.timedelta(days=1)) == "86400s"
    assert format_value([1, 2]) == "1,2"
    assert format_value(Decimal("1.5")) == "1.5"


@pytest.mark.parametrize(
    ("value", "target"),
    [
        (datetime.datetime(2024, 5, 6, 7, 8, 9), datetime.datetime),
        (datetime.time(23, 59, 1), datetime.time),
        (datetime.timedelta(minutes=5), datetime.timedelta),
        (Priority.HIGH, Priority),
        (False, bool),
        (Decimal("-3.25"), Decimal),
    ],
)
def test_formatted_value_reads_back(value, target):
    assert coerce_value(format_value(value), target) == value
