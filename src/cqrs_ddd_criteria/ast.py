"""
Immutable predicate and sort trees.

A filter tree is made of :class:`FilterLeaf` nodes (``column op value``) and
:class:`CompositeFilter` nodes (``and``/``or`` over children, or an
``any``/``all`` quantifier over a collection column).  Sorting is an ordered
sequence of :class:`SortLeaf` items.

Children of a quantifier are stored *qualified*: their columns start with the
quantified column, so every column in a tree is a full path from the root
record type.  The formatter and the compiler strip the prefix again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Union

from .exceptions import GrammarError
from .operators import CompositeOperator, FilterOperator, SortDirection

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ColumnPath:
    """Ordered, non-empty sequence of member names (``profile.address.city``)."""

    segments: tuple[str, ...]

    def __post_init__(self) -> None:
        segments = tuple(self.segments)
        if not segments:
            raise GrammarError("Column path cannot be empty")
        for segment in segments:
            if not isinstance(segment, str) or not _IDENT_RE.match(segment):
                raise GrammarError(
                    f"Invalid column segment {segment!r}",
                    text=".".join(map(str, segments)),
                )
        object.__setattr__(self, "segments", segments)

    @classmethod
    def parse(cls, text: str | ColumnPath) -> ColumnPath:
        if isinstance(text, ColumnPath):
            return text
        stripped = text.strip()
        if not stripped:
            raise GrammarError("Column path cannot be empty", text=text)
        return cls(tuple(part.strip() for part in stripped.split(".")))

    def __str__(self) -> str:
        return ".".join(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return str(self).casefold()

    def has_prefix(self, prefix: ColumnPath) -> bool:
        """True if *prefix* is a strict, case-insensitive prefix of this path."""
        if len(prefix) >= len(self):
            return False
        head = self.segments[: len(prefix)]
        return all(a.casefold() == b.casefold() for a, b in zip(head, prefix.segments))

    def relative_to(self, prefix: ColumnPath) -> ColumnPath:
        if not self.has_prefix(prefix):
            raise ValueError(f"'{self}' is not below '{prefix}'")
        return ColumnPath(self.segments[len(prefix) :])

    def join(self, other: ColumnPath) -> ColumnPath:
        return ColumnPath(self.segments + other.segments)


class _Combinable:
    """``&`` / ``|`` support shared by filter nodes."""

    def __and__(self, other: FilterNode) -> CompositeFilter:
        nodes = (self, other)
        return CompositeFilter(CompositeOperator.AND, nodes)  # type: ignore[arg-type]

    def __or__(self, other: FilterNode) -> CompositeFilter:
        nodes = (self, other)
        return CompositeFilter(CompositeOperator.OR, nodes)  # type: ignore[arg-type]

    def __str__(self) -> str:
        from .syntax import format_filter

        return format_filter(self)  # type: ignore[arg-type]


@dataclass(frozen=True, eq=True)
class FilterLeaf(_Combinable):
    """
    A single ``column:op(value)`` test.

    ``value`` stays raw text; it is coerced only at compile time, once the
    target type is known.
    """

    column: ColumnPath
    operator: FilterOperator = FilterOperator.EQ
    value: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", ColumnPath.parse(self.column))
        if not isinstance(self.operator, FilterOperator):
            object.__setattr__(self, "operator", FilterOperator(self.operator))
        if not isinstance(self.value, str):
            raise TypeError(
                f"FilterLeaf.value must be raw text, got {type(self.value).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.operator.value,
            "column": str(self.column),
            "value": self.value,
        }


@dataclass(frozen=True, eq=True)
class CompositeFilter(_Combinable):
    """
    ``and``/``or`` over children, or an ``any``/``all`` quantifier.

    ``column`` names the collection a quantifier ranges over and is ``None``
    for ``and``/``or``.
    """

    operator: CompositeOperator
    children: tuple[FilterNode, ...] = field(default_factory=tuple)
    column: ColumnPath | None = None

    def __post_init__(self) -> None:
        operator = CompositeOperator(self.operator)
        object.__setattr__(self, "operator", operator)
        children = _checked_children(self.children)

        if operator.is_quantifier:
            if self.column is None:
                raise GrammarError(f"'{operator.value}' requires a collection column")
            column = ColumnPath.parse(self.column)
            object.__setattr__(self, "column", column)
            children = tuple(_qualify(child, column) for child in children)
        elif self.column is not None:
            raise GrammarError(f"'{operator.value}' does not take a column")

        object.__setattr__(self, "children", children)

    @classmethod
    def from_qualified(
        cls,
        operator: CompositeOperator | str,
        children: Iterable[FilterNode],
        column: ColumnPath | str | None = None,
    ) -> CompositeFilter:
        """
        Build a node whose children already carry full paths from the root.

        The constructor prefixes quantifier children with the quantified
        column; this skips that step and checks the prefix instead.
        """
        node = cls(operator, (), column)
        children = _checked_children(children)
        if node.column is not None:
            for path in iter_columns(children):
                if not path.has_prefix(node.column):
                    raise GrammarError(
                        f"Column '{path}' is not below '{node.column}'",
                        text=str(path),
                    )
        object.__setattr__(node, "children", children)
        return node

    @property
    def is_quantifier(self) -> bool:
        return self.operator.is_quantifier

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "op": self.operator.value,
            "conditions": [child.to_dict() for child in self.children],
        }
        if self.column is not None:
            data["column"] = str(self.column)
        return data


FilterNode = Union[FilterLeaf, CompositeFilter]


def _checked_children(children: Iterable[Any]) -> tuple[FilterNode, ...]:
    nodes = tuple(children)
    for child in nodes:
        if not isinstance(child, (FilterLeaf, CompositeFilter)):
            raise TypeError(f"Unsupported filter node: {child!r}")
    return nodes


@dataclass(frozen=True)
class SortLeaf:
    column: ColumnPath
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", ColumnPath.parse(self.column))
        if not isinstance(self.direction, SortDirection):
            object.__setattr__(self, "direction", SortDirection(self.direction))

    def __str__(self) -> str:
        return f"{self.column}:{self.direction.value}"

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC

    def to_dict(self) -> dict[str, Any]:
        return {"column": str(self.column), "direction": self.direction.value}


# ---------------------------------------------------------------------------
# Qualification
# ---------------------------------------------------------------------------


def _qualify(node: FilterNode, prefix: ColumnPath) -> FilterNode:
    """Prefix every column below a quantifier with the quantified column."""
    if isinstance(node, FilterLeaf):
        return replace(node, column=prefix.join(node.column))
    children = tuple(_qualify(c, prefix) for c in node.children)
    if node.column is None:
        return CompositeFilter(node.operator, children)
    return CompositeFilter.from_qualified(
        node.operator, children, prefix.join(node.column)
    )


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_leaves(nodes: Iterable[FilterNode]) -> Iterator[FilterLeaf]:
    """Yield every leaf, depth-first, in declaration order."""
    for node in nodes:
        if isinstance(node, FilterLeaf):
            yield node
        else:
            yield from iter_leaves(node.children)


def iter_columns(nodes: Iterable[FilterNode]) -> Iterator[ColumnPath]:
    """Yield leaf columns and quantified columns, depth-first."""
    for node in nodes:
        if isinstance(node, FilterLeaf):
            yield node.column
            continue
        if node.column is not None:
            yield node.column
        yield from iter_columns(node.children)


# ---------------------------------------------------------------------------
# Dict round-trip
# ---------------------------------------------------------------------------


def node_from_dict(data: dict[str, Any]) -> FilterNode:
    """Rebuild a node from the shape produced by ``to_dict()``."""
    if not isinstance(data, dict):
        raise GrammarError(f"Expected a dict, got {type(data).__name__}")
    op = str(data.get("op", "")).lower()
    composite = CompositeOperator.from_token(op)
    if composite is not None:
        conditions = data.get("conditions") or []
        if not isinstance(conditions, list):
            raise GrammarError("'conditions' must be a list")
        return CompositeFilter.from_qualified(
            composite,
            tuple(node_from_dict(c) for c in conditions),
            data.get("column"),
        )
    operator = FilterOperator.from_token(op)
    if operator is None:
        raise GrammarError(f"Unknown operator {op!r}")
    if "column" not in data:
        raise GrammarError(f"Leaf missing 'column': {data}")
    return FilterLeaf(data["column"], operator, str(data.get("value", "")))
