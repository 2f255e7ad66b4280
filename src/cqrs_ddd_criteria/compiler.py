"""
Compile filter trees and sort lists against a record type.

One tree walker (:class:`FilterCompiler`) resolves columns, checks that the
operator fits the resolved type, and coerces raw values.  What each node
becomes is left to a :class:`CompilerBackend`:

- :class:`MemoryBackend` (here) builds a plain ``Callable[[Any], bool]``
- ``cqrs_ddd_criteria.sqla`` builds a SQLAlchemy ``ColumnElement[bool]``
- ``cqrs_ddd_criteria.cache`` builds a structural hash token stream

Quantifier children are qualified with the quantified column in the tree;
the walker strips that prefix and compiles them against the element type.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .ast import CompositeFilter, FilterLeaf
from .coercion import coerce_value, is_text_type
from .exceptions import OperatorMismatchError
from .introspection import ResolvedColumn, resolve_column, type_name
from .operators import (
    ORDERING_OPERATORS,
    TEXT_OPERATORS,
    CompositeOperator,
    FilterOperator,
)
from .operators_memory import DEFAULT_MEMORY_REGISTRY
from .syntax import parse_filters, parse_sorting

if TYPE_CHECKING:
    from .ast import ColumnPath, FilterNode, SortLeaf
    from .cache import PredicateCache
    from .evaluator import MemoryOperatorRegistry

logger = logging.getLogger("cqrs_ddd.criteria.compiler")

T = TypeVar("T")
Predicate = Callable[[Any], bool]

_ORDERABLE_TYPES: tuple[type, ...] = (
    int,
    float,
    Decimal,
    str,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


@dataclass(frozen=True)
class CompileOptions:
    """
    Compile-time switches.

    Attributes:
        null_guard: A ``None`` object part-way along a column path yields the
            terminal's default instead of raising ``AttributeError``.
        use_column_fallback: Resolve segments by alternate name (alias,
            database column name) when no member name matches.
    """

    null_guard: bool = False
    use_column_fallback: bool = False


DEFAULT_OPTIONS = CompileOptions()


# ---------------------------------------------------------------------------
# Operator / type compatibility
# ---------------------------------------------------------------------------


def is_orderable_type(value_type: Any) -> bool:
    if value_type is Any or value_type is object:
        return True
    if not isinstance(value_type, type):
        return False
    if issubclass(value_type, (bool, uuid.UUID)):
        return False
    if issubclass(value_type, Enum):
        return issubclass(value_type, (int, str))
    if issubclass(value_type, _ORDERABLE_TYPES):
        return True
    return getattr(value_type, "__lt__", None) is not object.__lt__


def check_operator(column: ResolvedColumn, operator: FilterOperator) -> None:
    """
    Reject operators the resolved column type cannot support.

    Raises:
        OperatorMismatchError
    """
    value_type = column.value_type
    if operator in TEXT_OPERATORS and not is_text_type(value_type):
        raise OperatorMismatchError(
            operator.value,
            type_name(value_type),
            str(column.path),
            "only text columns support prefix/suffix tests",
        )
    if operator in ORDERING_OPERATORS and (
        column.is_collection or not is_orderable_type(value_type)
    ):
        raise OperatorMismatchError(
            operator.value,
            type_name(value_type),
            str(column.path),
            "type has no ordering",
        )
    if operator in (FilterOperator.EQ, FilterOperator.NEQ, FilterOperator.IN) and (
        column.is_collection
    ):
        raise OperatorMismatchError(
            operator.value,
            type_name(value_type),
            str(column.path),
            "use any/all or ct to test collection elements",
        )


# ---------------------------------------------------------------------------
# Backend protocol and walker
# ---------------------------------------------------------------------------


class CompilerBackend(ABC, Generic[T]):
    """What each node of a filter tree compiles into."""

    #: Identifies the backend in cache keys.
    name: str = "backend"

    @abstractmethod
    def comparison(
        self,
        column: ResolvedColumn,
        operator: FilterOperator,
        value: Any,
        options: CompileOptions,
    ) -> T:
        """Compile ``column operator value`` (value already coerced)."""
        ...

    @abstractmethod
    def conjunction(self, parts: Sequence[T]) -> T:
        """AND of *parts*; true when empty."""
        ...

    @abstractmethod
    def disjunction(self, parts: Sequence[T]) -> T:
        """OR of *parts*; false when empty."""
        ...

    @abstractmethod
    def quantifier(
        self,
        operator: CompositeOperator,
        column: ResolvedColumn,
        predicate: T,
        options: CompileOptions,
    ) -> T:
        """``any``/``all`` of *predicate* over the elements of *column*."""
        ...


class FilterCompiler(Generic[T]):
    """Walk a filter tree and delegate node construction to a backend."""

    def __init__(
        self,
        backend: CompilerBackend[T],
        options: CompileOptions | None = None,
    ) -> None:
        self.backend = backend
        self.options = options or DEFAULT_OPTIONS

    def compile(self, record_type: Any, filters: Sequence[FilterNode]) -> T:
        """Compile *filters* (conjoined) against *record_type*."""
        if len(filters) == 1:
            return self._compile(filters[0], record_type, None)
        return self.backend.conjunction(
            [self._compile(node, record_type, None) for node in filters]
        )

    def resolve(
        self, record_type: Any, column: ColumnPath, scope: ColumnPath | None
    ) -> ResolvedColumn:
        path = column.relative_to(scope) if scope is not None else column
        return resolve_column(
            record_type, path, use_column_fallback=self.options.use_column_fallback
        )

    def _compile(
        self, node: FilterNode, record_type: Any, scope: ColumnPath | None
    ) -> T:
        if isinstance(node, FilterLeaf):
            return self._compile_leaf(node, record_type, scope)
        if node.is_quantifier:
            return self._compile_quantifier(node, record_type, scope)

        parts = [self._compile(child, record_type, scope) for child in node.children]
        if node.operator is CompositeOperator.AND:
            return self.backend.conjunction(parts)
        return self.backend.disjunction(parts)

    def _compile_leaf(
        self, leaf: FilterLeaf, record_type: Any, scope: ColumnPath | None
    ) -> T:
        column = self.resolve(record_type, leaf.column, scope)
        check_operator(column, leaf.operator)
        value = coerce_value(leaf.value, column.value_type, leaf.operator)
        return self.backend.comparison(column, leaf.operator, value, self.options)

    def _compile_quantifier(
        self, node: CompositeFilter, record_type: Any, scope: ColumnPath | None
    ) -> T:
        assert node.column is not None
        column = self.resolve(record_type, node.column, scope)
        element_type = column.element_type
        if element_type is None:
            raise OperatorMismatchError(
                node.operator.value,
                type_name(column.value_type),
                str(column.path),
                "not a collection",
            )
        inner = self.backend.conjunction(
            [self._compile(child, element_type, node.column) for child in node.children]
        )
        return self.backend.quantifier(node.operator, column, inner, self.options)


def normalize_filters(filters: Any) -> list[FilterNode]:
    """Accept filter text, a single node, or a sequence of nodes."""
    if filters is None:
        return []
    if isinstance(filters, str):
        return parse_filters(filters)
    if isinstance(filters, (FilterLeaf, CompositeFilter)):
        return [filters]
    return list(filters)


def normalize_sorting(sorting: Any) -> list[SortLeaf]:
    if sorting is None:
        return []
    if isinstance(sorting, str):
        return parse_sorting(sorting)
    return list(sorting)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


def _always_true(candidate: Any) -> bool:
    return True


def _always_false(candidate: Any) -> bool:
    return False


class MemoryBackend(CompilerBackend[Predicate]):
    """Compile to plain Python callables evaluated per candidate."""

    name = "memory"

    def __init__(self, registry: MemoryOperatorRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_MEMORY_REGISTRY
        if registry is not None:
            self.name = f"memory:{id(registry)}"

    def comparison(
        self,
        column: ResolvedColumn,
        operator: FilterOperator,
        value: Any,
        options: CompileOptions,
    ) -> Predicate:
        strategy = self.registry.require(operator)
        null_guard = options.null_guard

        def predicate(candidate: Any) -> bool:
            return strategy.matches(column.read(candidate, null_guard), value)

        return predicate

    def conjunction(self, parts: Sequence[Predicate]) -> Predicate:
        if not parts:
            return _always_true
        if len(parts) == 1:
            return parts[0]
        predicates = tuple(parts)
        return lambda candidate: all(p(candidate) for p in predicates)

    def disjunction(self, parts: Sequence[Predicate]) -> Predicate:
        if not parts:
            return _always_false
        if len(parts) == 1:
            return parts[0]
        predicates = tuple(parts)
        return lambda candidate: any(p(candidate) for p in predicates)

    def quantifier(
        self,
        operator: CompositeOperator,
        column: ResolvedColumn,
        predicate: Predicate,
        options: CompileOptions,
    ) -> Predicate:
        null_guard = options.null_guard
        quantify = any if operator is CompositeOperator.ANY else all

        def quantified(candidate: Any) -> bool:
            items = column.read(candidate, null_guard)
            if items is None:
                return quantify(())
            return quantify(predicate(item) for item in items)

        return quantified


# ---------------------------------------------------------------------------
# Public API: filtering
# ---------------------------------------------------------------------------


def compile_filter(
    record_type: Any,
    filters: Any,
    *,
    options: CompileOptions | None = None,
    registry: MemoryOperatorRegistry | None = None,
    cache: PredicateCache | None = None,
) -> Predicate:
    """
    Compile *filters* into a predicate over instances of *record_type*.

    Args:
        record_type: The record class candidates are instances of.
        filters: Filter text, one node, or a sequence of nodes (conjoined).
        options: Compile switches.
        registry: Custom in-memory operator registry.
        cache: When given, structurally identical trees share one compiled
            predicate.

    Raises:
        GrammarError, ResolutionError, CoercionError, OperatorMismatchError
    """
    nodes = normalize_filters(filters)
    compiler = FilterCompiler(MemoryBackend(registry), options)

    def build() -> Predicate:
        logger.debug(
            "Compiling %d filter(s) for %s", len(nodes), type_name(record_type)
        )
        return compiler.compile(record_type, nodes)

    if cache is None:
        return build()

    from .cache import structural_hash

    key = structural_hash(
        nodes, record_type, backend=compiler.backend.name, options=compiler.options
    )
    return cache.get_or_create(key, build)


def apply_filter(
    items: Iterable[Any],
    record_type: Any,
    filters: Any,
    *,
    options: CompileOptions | None = None,
    registry: MemoryOperatorRegistry | None = None,
    cache: PredicateCache | None = None,
) -> list[Any]:
    """Return the items of *items* that satisfy *filters*."""
    predicate = compile_filter(
        record_type, filters, options=options, registry=registry, cache=cache
    )
    return [item for item in items if predicate(item)]


# ---------------------------------------------------------------------------
# Public API: sorting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SortKey:
    column: ResolvedColumn
    descending: bool
    null_guard: bool = False

    def __call__(self, item: Any) -> tuple[bool, Any]:
        value = self.column.read(item, self.null_guard)
        return (value is not None, value)


def compile_sorting(
    record_type: Any,
    sorting: Any,
    *,
    options: CompileOptions | None = None,
) -> list[SortKey]:
    """
    Resolve each sort item into a :class:`SortKey`.

    Raises:
        GrammarError, ResolutionError, OperatorMismatchError
    """
    opts = options or DEFAULT_OPTIONS
    keys = []
    for item in normalize_sorting(sorting):
        column = resolve_column(
            record_type, item.column, use_column_fallback=opts.use_column_fallback
        )
        if column.is_collection:
            raise OperatorMismatchError(
                item.direction.value,
                type_name(column.value_type),
                str(column.path),
                "cannot sort by a collection",
            )
        keys.append(SortKey(column, item.descending, opts.null_guard))
    return keys


def apply_sorting(
    items: Iterable[Any],
    record_type: Any,
    sorting: Any,
    *,
    options: CompileOptions | None = None,
) -> list[Any]:
    """
    Return *items* ordered by *sorting*.

    Earlier keys take precedence; ties keep their input order.  ``None``
    sorts first ascending and last descending.
    """
    result = list(items)
    for key in reversed(compile_sorting(record_type, sorting, options=options)):
        result.sort(key=key, reverse=key.descending)
    return result
