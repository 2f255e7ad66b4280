"""
Typed construction of filter trees and criteria.

Example::

    c = columns(User)
    tree = and_(c.age.gt(18), c.is_active.eq(True))
    # → and(age:gt(18), is_active:eq(true))

    tree = c.roles.any(c.roles.each.name.eq("Admin"))
    # → roles:any(name:eq(Admin))

    criteria = (
        CriteriaBuilder()
        .or_group()
            .where("role", "eq", "admin")
            .where("role", "eq", "superuser")
        .end_group()
        .where("active", "eq", True)
        .order_by("name", "desc")
        .build()
    )

Values are rendered to grammar text with ``format_value``; they are
converted back to typed values when the tree is compiled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .ast import ColumnPath, CompositeFilter, FilterLeaf, SortLeaf
from .coercion import format_value
from .criteria import Criteria
from .exceptions import GrammarError
from .introspection import element_type_of, resolve_column
from .operators import CompositeOperator, FilterOperator, SortDirection
from .syntax import check_value

if TYPE_CHECKING:
    from .ast import FilterNode


class Column:
    """
    Handle on a column path, optionally checked against a record type.

    A typed column (``columns(User).age``) is resolved when it is created, so
    a misspelt member fails here rather than at compile time.
    """

    __slots__ = ("_path", "_record_type")

    def __init__(self, path: str | ColumnPath, record_type: Any = None) -> None:
        self._path = ColumnPath.parse(path)
        self._record_type = record_type
        if record_type is not None:
            resolve_column(record_type, self._path)

    @property
    def path(self) -> ColumnPath:
        return self._path

    @property
    def record_type(self) -> Any:
        return self._record_type

    def child(self, name: str) -> Column:
        return Column(self._path.join(ColumnPath.parse(name)), self._record_type)

    def __getattr__(self, name: str) -> Column:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.child(name)

    def __getitem__(self, path: str) -> Column:
        """Child column, including names a method shadows (``c.log["path"]``)."""
        return self.child(path)

    @property
    def each(self) -> ColumnSet:
        """Columns of one element of this collection column."""
        element_type = None
        if self._record_type is not None:
            column = resolve_column(self._record_type, self._path)
            element_type = element_type_of(column.value_type)
            if element_type is None:
                raise TypeError(f"'{self._path}' is not a collection")
        return ColumnSet(element_type)

    def __repr__(self) -> str:
        return f"Column({str(self._path)!r})"

    def __str__(self) -> str:
        return str(self._path)

    # -- leaf conditions -----------------------------------------------------

    def _leaf(self, operator: FilterOperator, value: Any) -> FilterLeaf:
        return FilterLeaf(self._path, operator, check_value(format_value(value)))

    def eq(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.EQ, value)

    def neq(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.NEQ, value)

    def gt(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.GT, value)

    def gte(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.GTE, value)

    def lt(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.LT, value)

    def lte(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.LTE, value)

    def contains(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.CT, value)

    def not_contains(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.NCT, value)

    def starts_with(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.SW, value)

    def ends_with(self, value: Any) -> FilterLeaf:
        return self._leaf(FilterOperator.EW, value)

    def in_(self, *values: Any) -> FilterLeaf:
        """``in_(1, 2, 3)`` or ``in_([1, 2, 3])``."""
        if len(values) == 1 and isinstance(values[0], (list, tuple, set, frozenset)):
            values = tuple(values[0])
        return self._leaf(FilterOperator.IN, list(values))

    # -- quantifiers ---------------------------------------------------------

    def any(self, *conditions: FilterNode) -> CompositeFilter:
        """True if some element satisfies all *conditions*."""
        return _composite(CompositeOperator.ANY, conditions, self._path)

    def all(self, *conditions: FilterNode) -> CompositeFilter:
        """True if every element satisfies all *conditions*."""
        return _composite(CompositeOperator.ALL, conditions, self._path)

    # -- sorting -------------------------------------------------------------

    def asc(self) -> SortLeaf:
        return SortLeaf(self._path, SortDirection.ASC)

    def desc(self) -> SortLeaf:
        return SortLeaf(self._path, SortDirection.DESC)


class ColumnSet:
    """Attribute access to the columns of a record type (``columns(User).age``)."""

    __slots__ = ("_record_type",)

    def __init__(self, record_type: Any = None) -> None:
        self._record_type = record_type

    def __getattr__(self, name: str) -> Column:
        if name.startswith("_"):
            raise AttributeError(name)
        return Column(name, self._record_type)

    def __getitem__(self, path: str) -> Column:
        return Column(path, self._record_type)


def _composite(
    operator: CompositeOperator,
    nodes: tuple[FilterNode, ...],
    path: ColumnPath | None = None,
) -> CompositeFilter:
    if not nodes:
        raise GrammarError(f"'{operator.value}' requires at least one condition")
    return CompositeFilter(operator, nodes, path)


def column(path: str | ColumnPath, record_type: Any = None) -> Column:
    return Column(path, record_type)


def columns(record_type: Any = None) -> ColumnSet:
    return ColumnSet(record_type)


def and_(*nodes: FilterNode) -> CompositeFilter:
    return _composite(CompositeOperator.AND, nodes)


def or_(*nodes: FilterNode) -> CompositeFilter:
    return _composite(CompositeOperator.OR, nodes)


class CriteriaBuilder:
    """
    Fluent builder for a :class:`Criteria` (filters plus sorting).

    Conditions added at the same level are combined with AND.  Use
    ``or_group()`` / ``and_group()`` / ``any_group(column)`` /
    ``all_group(column)`` for explicit grouping and ``end_group()`` to close
    the current group.
    """

    def __init__(self) -> None:
        self._filters: list[FilterNode] = []
        self._sorting: list[SortLeaf] = []
        self._stack: list[
            tuple[CompositeOperator, ColumnPath | None, list[FilterNode]]
        ] = []

    # -- leaf conditions -----------------------------------------------------

    def where(
        self,
        target: str | Column | FilterNode,
        op: FilterOperator | str | None = None,
        value: Any = None,
    ) -> CriteriaBuilder:
        """
        Add a condition to the current group.

        ``where(node)`` adds a built node; ``where("age", "gt", 30)`` builds
        a leaf.
        """
        if isinstance(target, (FilterLeaf, CompositeFilter)):
            node: FilterNode = target
        else:
            path = target.path if isinstance(target, Column) else target
            operator = FilterOperator.EQ if op is None else FilterOperator(op)
            node = FilterLeaf(path, operator, check_value(format_value(value)))
        self._current().append(node)
        return self

    # -- grouping ------------------------------------------------------------

    def and_group(self) -> CriteriaBuilder:
        self._stack.append((CompositeOperator.AND, None, []))
        return self

    def or_group(self) -> CriteriaBuilder:
        self._stack.append((CompositeOperator.OR, None, []))
        return self

    def any_group(self, collection: str | Column) -> CriteriaBuilder:
        """Open a group whose conditions apply to the elements of *collection*."""
        return self._quantifier_group(CompositeOperator.ANY, collection)

    def all_group(self, collection: str | Column) -> CriteriaBuilder:
        return self._quantifier_group(CompositeOperator.ALL, collection)

    def _quantifier_group(
        self, operator: CompositeOperator, collection: str | Column
    ) -> CriteriaBuilder:
        path = collection.path if isinstance(collection, Column) else collection
        self._stack.append((operator, ColumnPath.parse(path), []))
        return self

    def end_group(self) -> CriteriaBuilder:
        """Close the current group and add it to the parent."""
        if not self._stack:
            raise ValueError("No open group to close")
        operator, path, nodes = self._stack.pop()
        if not nodes:
            raise ValueError("Cannot create an empty group")
        self._current().append(CompositeFilter(operator, tuple(nodes), path))
        return self

    # -- sorting -------------------------------------------------------------

    def order_by(
        self,
        target: str | Column | SortLeaf,
        direction: SortDirection | str = SortDirection.ASC,
    ) -> CriteriaBuilder:
        if isinstance(target, SortLeaf):
            self._sorting.append(target)
        else:
            path = target.path if isinstance(target, Column) else target
            self._sorting.append(SortLeaf(path, SortDirection(direction)))
        return self

    # -- build ---------------------------------------------------------------

    def build(self) -> Criteria:
        """
        Return the composed criteria.

        Raises:
            ValueError: If groups are still open.
        """
        if self._stack:
            raise ValueError(
                f"{len(self._stack)} group(s) still open, "
                f"call end_group() before build()"
            )
        return Criteria(tuple(self._filters), tuple(self._sorting))

    def reset(self) -> CriteriaBuilder:
        self._filters.clear()
        self._sorting.clear()
        self._stack.clear()
        return self

    def _current(self) -> list[FilterNode]:
        if self._stack:
            return self._stack[-1][2]
        return self._filters

