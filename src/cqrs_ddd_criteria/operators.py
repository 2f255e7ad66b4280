from __future__ import annotations

from enum import Enum


class FilterOperator(str, Enum):
    """Leaf operators of the filter grammar."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CT = "ct"
    NCT = "nct"
    SW = "sw"
    EW = "ew"
    IN = "in"

    @classmethod
    def from_token(cls, token: str) -> FilterOperator | None:
        """Return the operator for *token* (case-insensitive) or ``None``."""
        return _FILTER_TOKENS.get(token.strip().lower())


class CompositeOperator(str, Enum):
    """Combinators over child nodes."""

    AND = "and"
    OR = "or"
    ANY = "any"
    ALL = "all"

    @property
    def is_quantifier(self) -> bool:
        return self in (CompositeOperator.ANY, CompositeOperator.ALL)

    @classmethod
    def from_token(cls, token: str) -> CompositeOperator | None:
        return _COMPOSITE_TOKENS.get(token.strip().lower())


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def from_token(cls, token: str) -> SortDirection | None:
        return _SORT_TOKENS.get(token.strip().lower())


_FILTER_TOKENS: dict[str, FilterOperator] = {m.value: m for m in FilterOperator}
_COMPOSITE_TOKENS: dict[str, CompositeOperator] = {
    m.value: m for m in CompositeOperator
}
_SORT_TOKENS: dict[str, SortDirection] = {m.value: m for m in SortDirection}

# Operators that take a comma-separated list of values.
LIST_OPERATORS: frozenset[FilterOperator] = frozenset({FilterOperator.IN})

# Operators restricted to orderable targets.
ORDERING_OPERATORS: frozenset[FilterOperator] = frozenset(
    {FilterOperator.GT, FilterOperator.GTE, FilterOperator.LT, FilterOperator.LTE}
)

# Operators restricted to text targets.
TEXT_OPERATORS: frozenset[FilterOperator] = frozenset(
    {FilterOperator.SW, FilterOperator.EW}
)

# Operators that become membership tests on non-text targets.
CONTAINMENT_OPERATORS: frozenset[FilterOperator] = frozenset(
    {FilterOperator.CT, FilterOperator.NCT}
)
