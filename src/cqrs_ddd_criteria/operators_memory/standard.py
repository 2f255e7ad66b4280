"""Equality and ordering: eq, neq, gt, gte, lt, lte."""

from __future__ import annotations

import datetime
import operator as op
from collections.abc import Callable
from typing import Any, ClassVar

from ..evaluator import MemoryOperator
from ..operators import FilterOperator


def align(actual: Any, expected: Any) -> tuple[Any, Any]:
    """Read a naive datetime as UTC when the other side carries an offset."""
    if isinstance(actual, datetime.datetime) and isinstance(
        expected, datetime.datetime
    ):
        if actual.tzinfo is None and expected.tzinfo is not None:
            return actual.replace(tzinfo=datetime.timezone.utc), expected
        if expected.tzinfo is None and actual.tzinfo is not None:
            return actual, expected.replace(tzinfo=datetime.timezone.utc)
    return actual, expected


class _Comparison(MemoryOperator):
    compare: ClassVar[Callable[[Any, Any], Any]]

    def matches(self, actual: Any, expected: Any) -> bool:
        return bool(self.compare(*align(actual, expected)))


class _Ordering(_Comparison):
    """``None`` on either side is unordered, so the test is false."""

    def matches(self, actual: Any, expected: Any) -> bool:
        if actual is None or expected is None:
            return False
        return super().matches(actual, expected)


class EqualOperator(_Comparison):
    operator = FilterOperator.EQ
    compare = staticmethod(op.eq)


class NotEqualOperator(_Comparison):
    operator = FilterOperator.NEQ
    compare = staticmethod(op.ne)


class GreaterThanOperator(_Ordering):
    operator = FilterOperator.GT
    compare = staticmethod(op.gt)


class GreaterEqualOperator(_Ordering):
    operator = FilterOperator.GTE
    compare = staticmethod(op.ge)


class LessThanOperator(_Ordering):
    operator = FilterOperator.LT
    compare = staticmethod(op.lt)


class LessEqualOperator(_Ordering):
    operator = FilterOperator.LTE
    compare = staticmethod(op.le)
