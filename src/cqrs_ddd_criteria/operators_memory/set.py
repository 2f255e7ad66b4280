"""Set membership operator: in."""

from __future__ import annotations

from typing import Any

from ..evaluator import MemoryOperator
from ..operators import FilterOperator
from .standard import align


class InOperator(MemoryOperator):
    operator = FilterOperator.IN

    def matches(self, actual: Any, expected: Any) -> bool:
        if expected is None:
            return False
        return any(a == e for a, e in (align(actual, item) for item in expected))
