"""
Raw-text to typed-value conversion.

Filter values are kept as text in the tree; they are converted here once the
compiler knows the resolved column type.  ``format_value`` is the inverse used
by the builder to render typed Python values as grammar text.
"""

from __future__ import annotations

import datetime
import functools
import re
import uuid
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from .exceptions import CoercionError
from .introspection import element_type_of, type_name, unwrap_optional
from .operators import CONTAINMENT_OPERATORS, LIST_OPERATORS, FilterOperator

_TRUE = frozenset({"true", "1"})
_FALSE = frozenset({"false", "0"})

# ---------------------------------------------------------------------------
# Interval parsing
# ---------------------------------------------------------------------------

_TIME_RE = re.compile(r"^(-)?(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")
_UNIT_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(weeks?|days?|hours?|minutes?|seconds?)", re.IGNORECASE
)
# Shorthand: 7d, 24h, 30m, 90s, 2w
_SHORTHAND_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([dhmsw])$", re.IGNORECASE)
_SHORTHAND_UNITS = {
    "d": "days",
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "w": "weeks",
}


def parse_interval(value: str | datetime.timedelta) -> datetime.timedelta:
    """
    Parse an interval string into a ``timedelta``.

    Supported formats:
    - ``"1:30:00"`` (HH:MM:SS, optional leading ``-``)
    - ``"7d"``, ``"24h"``, ``"30m"``, ``"90s"``, ``"2w"``
    - ``"1 day 2 hours 30 minutes"``
    - Plain numeric string, treated as seconds
    """
    if isinstance(value, datetime.timedelta):
        return value

    text = str(value).strip()

    sm = _SHORTHAND_RE.match(text)
    if sm:
        unit = _SHORTHAND_UNITS[sm.group(2).lower()]
        return datetime.timedelta(**{unit: float(sm.group(1))})

    m = _TIME_RE.match(text)
    if m:
        sign, hours, minutes, seconds = m.groups()
        delta = datetime.timedelta(
            hours=int(hours), minutes=int(minutes), seconds=float(seconds)
        )
        return -delta if sign else delta

    parts = _UNIT_RE.findall(text)
    if parts and not _UNIT_RE.sub("", text).strip():
        kwargs: dict[str, float] = {}
        for amount, unit in parts:
            key = unit.lower().rstrip("s") + "s"
            kwargs[key] = kwargs.get(key, 0.0) + float(amount)
        return datetime.timedelta(**kwargs)

    try:
        return datetime.timedelta(seconds=float(text))
    except ValueError as err:
        raise ValueError(f"Unrecognised interval format: {value}") from err


def _format_interval(value: datetime.timedelta) -> str:
    seconds = value.total_seconds()
    if seconds == int(seconds):
        return f"{int(seconds)}s" if seconds >= 0 else str(int(seconds))
    return str(seconds)


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce_value(
    raw: str,
    value_type: Any,
    operator: FilterOperator = FilterOperator.EQ,
) -> Any:
    """
    Convert *raw* to the value a comparison against *value_type* needs.

    - ``in`` always yields a list of converted items.
    - ``ct``/``nct`` against a collection converts against its element type.
    - ``ct``/``nct`` against a non-text scalar yields a list (is-one-of).
    - Empty text for a non-text target yields ``None``.

    Raises:
        CoercionError: *raw* (or one of its items) cannot be converted.
    """
    value_type, _ = unwrap_optional(value_type)

    if operator in LIST_OPERATORS:
        return _coerce_list(raw, value_type)

    if operator in CONTAINMENT_OPERATORS:
        element_type = element_type_of(value_type)
        if element_type is not None:
            return coerce_scalar(raw, element_type)
        if not is_text_type(value_type):
            return _coerce_list(raw, value_type)

    return coerce_scalar(raw, value_type)


def is_text_type(value_type: Any) -> bool:
    return value_type is Any or value_type is object or value_type is str


def _coerce_list(raw: str, value_type: Any) -> list[Any]:
    if not raw.strip():
        return []
    return [coerce_scalar(part.strip(), value_type) for part in raw.split(",")]


def coerce_scalar(raw: str, value_type: Any) -> Any:
    """Convert one raw item to *value_type*."""
    value_type, _ = unwrap_optional(value_type)
    if is_text_type(value_type):
        return raw
    text = raw.strip()
    if not text:
        return None

    if isinstance(value_type, type):
        if issubclass(value_type, bool):
            return _coerce_bool(text, value_type)
        if issubclass(value_type, Enum):
            return _coerce_enum(text, value_type)
        converter = _CONVERTERS.get(value_type)
        if converter is not None:
            try:
                return converter(text)
            except (ValueError, InvalidOperation, OverflowError) as exc:
                reason = str(exc) or None
                raise CoercionError(raw, type_name(value_type), reason) from exc

    return _coerce_with_adapter(raw, value_type)


def _coerce_bool(text: str, value_type: type) -> bool:
    lowered = text.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise CoercionError(text, type_name(value_type), "expected true/false/1/0")


def _coerce_enum(text: str, enum_type: type[Enum]) -> Enum:
    folded = text.casefold()
    for name, member in enum_type.__members__.items():
        if name.casefold() == folded:
            return member
    for member in enum_type:
        if str(member.value).casefold() == folded:
            return member
    names = ", ".join(enum_type.__members__)
    raise CoercionError(text, type_name(enum_type), f"expected one of {names}")


def _parse_datetime(text: str) -> datetime.datetime:
    result = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
    if result.tzinfo is not None:
        result = result.astimezone(datetime.timezone.utc)
    return result


_CONVERTERS: dict[Any, Any] = {
    int: int,
    float: float,
    Decimal: Decimal,
    datetime.datetime: _parse_datetime,
    datetime.date: datetime.date.fromisoformat,
    datetime.time: datetime.time.fromisoformat,
    datetime.timedelta: parse_interval,
    uuid.UUID: uuid.UUID,
}


@functools.lru_cache(maxsize=256)
def _adapter(value_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(value_type)


def _coerce_with_adapter(raw: str, value_type: Any) -> Any:
    try:
        adapter = _adapter(value_type)
    except (PydanticSchemaGenerationError, TypeError) as exc:
        raise CoercionError(raw, type_name(value_type), "unsupported type") from exc
    try:
        return adapter.validate_strings(raw)
    except ValidationError as exc:
        reason = exc.errors()[0]["msg"] if exc.errors() else None
        raise CoercionError(raw, type_name(value_type), reason) from exc


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_value(value: Any) -> str:
    """
    Render a typed value as grammar text that ``coerce_value`` reads back.

    Booleans become ``true``/``false``, enums their member name, temporal
    values ISO-8601, and sequences a comma-separated list.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return _format_interval(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(format_value(item) for item in value)
    return str(value)
