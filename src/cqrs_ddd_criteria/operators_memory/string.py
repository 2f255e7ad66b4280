"""Text and containment operators: ct, nct, sw, ew."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..evaluator import MemoryOperator
from ..operators import FilterOperator


class ContainsOperator(MemoryOperator):
    """
    ``ct`` over three target shapes.

    - text field: substring test
    - collection field: element membership
    - scalar field with a list condition: is-one-of
    """

    operator = FilterOperator.CT

    def matches(self, actual: Any, expected: Any) -> bool:
        if actual is None:
            return False
        if isinstance(expected, list):
            return actual in expected
        if isinstance(actual, str):
            return str(expected) in actual
        if isinstance(actual, Iterable) and not isinstance(actual, Mapping):
            return expected in actual
        return bool(actual == expected)


class NotContainsOperator(ContainsOperator):
    operator = FilterOperator.NCT

    def matches(self, actual: Any, expected: Any) -> bool:
        return not super().matches(actual, expected)


class StartsWithOperator(MemoryOperator):
    operator = FilterOperator.SW

    def matches(self, actual: Any, expected: Any) -> bool:
        return actual is not None and str(actual).startswith(str(expected))


class EndsWithOperator(MemoryOperator):
    operator = FilterOperator.EW

    def matches(self, actual: Any, expected: Any) -> bool:
        return actual is not None and str(actual).endswith(str(expected))
