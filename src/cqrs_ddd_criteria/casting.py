"""
Remap criteria built for one record shape onto another.

A :class:`CastOptions` table maps source column names (case-insensitive) to
destination columns, optionally with a raw-value transform or operator
override, or to a custom function producing any number of destination items.

Example::

    options = (
        CastOptions()
        .map("name", "full_name", value_transform=str.upper)
        .map("roles", "groups")
        .exclude("internalNote")
        .throw_on_unmapped()
    )
    cast_filters(parse_filters("name:eq(bob)"), UserEntity, options)
    # → [full_name:eq(BOB)]

Processing runs in two passes.  The validation pass collects every unmapped
column (leaf columns and quantified columns at any depth) and, with
``throw_on_unmapped()``, raises one :class:`UnmappedColumnError` naming all
of them before anything is rewritten.  The rewrite pass then maps, passes
through (resolving against the destination type) or drops each item.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from .ast import ColumnPath, CompositeFilter, FilterLeaf, FilterNode, SortLeaf
from .criteria import Criteria
from .exceptions import UnmappedColumnError
from .introspection import element_type_of, resolve_column
from .operators import FilterOperator, SortDirection

logger = logging.getLogger("cqrs_ddd.criteria.casting")

FilterTransform = Callable[[FilterNode], Iterable[FilterNode]]
SortTransform = Callable[[SortLeaf], Iterable[SortLeaf]]


def _as_path(column: Any) -> ColumnPath:
    """Accept a path string, a ``ColumnPath`` or a builder ``Column``."""
    return ColumnPath.parse(getattr(column, "path", column))


@dataclass(frozen=True)
class ColumnMapEntry:
    """How one source filter column is rewritten."""

    source: ColumnPath
    destination: ColumnPath | None = None
    value_transform: Callable[[str], str] | None = None
    operator: FilterOperator | None = None
    custom: FilterTransform | None = None


@dataclass(frozen=True)
class SortMapEntry:
    """How one source sort column is rewritten."""

    source: ColumnPath
    destination: ColumnPath | None = None
    direction: SortDirection | None = None
    custom: SortTransform | None = None


class CastOptions:
    """Fluent column-mapping configuration."""

    def __init__(self) -> None:
        self._filter_map: dict[str, ColumnMapEntry] = {}
        self._sort_map: dict[str, SortMapEntry] = {}
        self._excluded: set[str] = set()
        self._exclude_unmapped = False
        self._throw_on_unmapped = False
        self._use_column_fallback = False

    # -- mapping -------------------------------------------------------------

    def map(
        self,
        source: str,
        destination: Any,
        value_transform: Callable[[str], str] | None = None,
        operator: FilterOperator | str | None = None,
    ) -> CastOptions:
        """Map filter column *source* to *destination*."""
        path = ColumnPath.parse(source)
        self._filter_map[path.key] = ColumnMapEntry(
            path,
            _as_path(destination),
            value_transform,
            FilterOperator(operator) if operator is not None else None,
        )
        return self

    def custom_map(self, source: str, transform: FilterTransform) -> CastOptions:
        """Rewrite items on *source* with *transform* (zero or more results)."""
        path = ColumnPath.parse(source)
        self._filter_map[path.key] = ColumnMapEntry(path, custom=transform)
        return self

    def map_sorting(
        self,
        source: str,
        destination: Any,
        direction: SortDirection | str | None = None,
    ) -> CastOptions:
        path = ColumnPath.parse(source)
        self._sort_map[path.key] = SortMapEntry(
            path,
            _as_path(destination),
            SortDirection(direction) if direction is not None else None,
        )
        return self

    def custom_sort_map(self, source: str, transform: SortTransform) -> CastOptions:
        path = ColumnPath.parse(source)
        self._sort_map[path.key] = SortMapEntry(path, custom=transform)
        return self

    # -- policies ------------------------------------------------------------

    def exclude(self, *columns: str) -> CastOptions:
        """Always drop items on *columns*, whatever the unmapped policy."""
        self._excluded.update(ColumnPath.parse(c).key for c in columns)
        return self

    def exclude_unmapped(self) -> CastOptions:
        """Drop items without a mapping instead of passing them through."""
        self._exclude_unmapped = True
        return self

    def throw_on_unmapped(self) -> CastOptions:
        """Raise :class:`UnmappedColumnError` if any column has no mapping."""
        self._throw_on_unmapped = True
        return self

    def use_column_fallback(self) -> CastOptions:
        """Resolve pass-through columns by alternate name on the destination."""
        self._use_column_fallback = True
        return self

    # -- look-up -------------------------------------------------------------

    def filter_entry(self, column: ColumnPath) -> ColumnMapEntry | None:
        return self._filter_map.get(column.key)

    def sort_entry(self, column: ColumnPath) -> SortMapEntry | None:
        return self._sort_map.get(column.key)

    def is_excluded(self, column: ColumnPath) -> bool:
        return column.key in self._excluded

    @property
    def excludes_unmapped(self) -> bool:
        return self._exclude_unmapped

    @property
    def throws_on_unmapped(self) -> bool:
        return self._throw_on_unmapped

    @property
    def column_fallback(self) -> bool:
        return self._use_column_fallback


DEFAULT_CAST_OPTIONS = CastOptions()


# ---------------------------------------------------------------------------
# Validation pass
# ---------------------------------------------------------------------------


def _unmapped_filter_columns(
    nodes: Iterable[FilterNode], options: CastOptions, covered: bool = False
) -> list[str]:
    """Source columns with no entry, excluding those under a mapped quantifier."""
    found: list[str] = []
    for node in nodes:
        column = node.column
        mapped = column is not None and (
            options.filter_entry(column) is not None or options.is_excluded(column)
        )
        if column is not None and not mapped and not covered:
            found.append(str(column))
        if isinstance(node, CompositeFilter):
            found.extend(
                _unmapped_filter_columns(
                    node.children, options, covered or (node.is_quantifier and mapped)
                )
            )
    return found


def _unmapped_sort_columns(
    sorting: Iterable[SortLeaf], options: CastOptions
) -> list[str]:
    return [
        str(item.column)
        for item in sorting
        if options.sort_entry(item.column) is None
        and not options.is_excluded(item.column)
    ]


def _raise_unmapped(columns: list[str]) -> None:
    unique = list(dict.fromkeys(columns))
    if unique:
        raise UnmappedColumnError(unique)


# ---------------------------------------------------------------------------
# Rewrite pass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Scope:
    """Quantifier being rewritten: children move from *source* to *target*."""

    source: ColumnPath
    target: ColumnPath
    element_type: Any = None


class _FilterCaster:
    def __init__(self, destination_type: Any, options: CastOptions) -> None:
        self.destination_type = destination_type
        self.options = options

    def cast(self, nodes: Iterable[FilterNode]) -> list[FilterNode]:
        result: list[FilterNode] = []
        for node in nodes:
            result.extend(self._cast(node, None))
        return result

    def _cast(self, node: FilterNode, scope: _Scope | None) -> list[FilterNode]:
        if isinstance(node, FilterLeaf):
            return self._cast_leaf(node, scope)
        if node.is_quantifier:
            return self._cast_quantifier(node, scope)

        children = [c for child in node.children for c in self._cast(child, scope)]
        if not children:
            logger.debug("Dropping empty %s group", node.operator.value)
            return []
        return [CompositeFilter(node.operator, tuple(children))]

    def _cast_leaf(self, leaf: FilterLeaf, scope: _Scope | None) -> list[FilterNode]:
        if self.options.is_excluded(leaf.column):
            logger.debug("Dropping excluded filter column %s", leaf.column)
            return []

        entry = self.options.filter_entry(leaf.column)
        if entry is not None:
            if entry.custom is not None:
                return list(entry.custom(leaf))
            assert entry.destination is not None
            value = leaf.value
            if entry.value_transform is not None:
                value = entry.value_transform(value)
            return [
                FilterLeaf(entry.destination, entry.operator or leaf.operator, value)
            ]

        if scope is None and self.options.excludes_unmapped:
            logger.debug("Dropping unmapped filter column %s", leaf.column)
            return []
        return [replace(leaf, column=self._pass_through(leaf.column, scope))]

    def _cast_quantifier(
        self, node: CompositeFilter, scope: _Scope | None
    ) -> list[FilterNode]:
        assert node.column is not None
        if self.options.is_excluded(node.column):
            logger.debug("Dropping excluded collection %s", node.column)
            return []

        entry = self.options.filter_entry(node.column)
        if entry is not None and entry.custom is not None:
            return list(entry.custom(node))
        if entry is not None:
            assert entry.destination is not None
            target = entry.destination
        elif scope is None and self.options.excludes_unmapped:
            logger.debug("Dropping unmapped collection %s", node.column)
            return []
        else:
            target = self._pass_through(node.column, scope)

        inner = _Scope(node.column, target, self._element_type(target, scope))
        children = [c for child in node.children for c in self._cast(child, inner)]
        if not children:
            logger.debug("Dropping empty %s over %s", node.operator.value, node.column)
            return []
        return [CompositeFilter.from_qualified(node.operator, children, target)]

    def _owner_type(self, scope: _Scope | None) -> Any:
        return self.destination_type if scope is None else scope.element_type

    def _pass_through(self, column: ColumnPath, scope: _Scope | None) -> ColumnPath:
        """Destination path for an unmapped column, resolved where possible."""
        relative = column.relative_to(scope.source) if scope is not None else column
        owner = self._owner_type(scope)
        if owner is not None:
            resolved = resolve_column(
                owner, relative, use_column_fallback=self.options.column_fallback
            )
            relative = ColumnPath(resolved.member_names)
        return scope.target.join(relative) if scope is not None else relative

    def _element_type(self, target: ColumnPath, scope: _Scope | None) -> Any:
        owner = self._owner_type(scope)
        if owner is None:
            return None
        relative = target.relative_to(scope.target) if scope is not None else target
        resolved = resolve_column(
            owner, relative, use_column_fallback=self.options.column_fallback
        )
        return element_type_of(resolved.value_type)


def _cast_sort_item(
    item: SortLeaf, destination_type: Any, options: CastOptions
) -> list[SortLeaf]:
    if options.is_excluded(item.column):
        logger.debug("Dropping excluded sort column %s", item.column)
        return []
    entry = options.sort_entry(item.column)
    if entry is not None:
        if entry.custom is not None:
            return list(entry.custom(item))
        assert entry.destination is not None
        return [SortLeaf(entry.destination, entry.direction or item.direction)]
    if options.excludes_unmapped:
        logger.debug("Dropping unmapped sort column %s", item.column)
        return []
    if destination_type is None:
        return [item]
    resolved = resolve_column(
        destination_type, item.column, use_column_fallback=options.column_fallback
    )
    return [SortLeaf(ColumnPath(resolved.member_names), item.direction)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def cast_filters(
    filters: Iterable[FilterNode],
    destination_type: Any = None,
    options: CastOptions | None = None,
) -> list[FilterNode]:
    """
    Rewrite *filters* for *destination_type* using *options*.

    Unmapped columns pass through resolved against *destination_type*
    (unchanged if it is ``None``) unless ``exclude_unmapped()`` is set.

    Raises:
        UnmappedColumnError: ``throw_on_unmapped()`` is set and at least one
            column has no mapping.
        ResolutionError: A passed-through column does not exist on the
            destination type.
    """
    opts = options or DEFAULT_CAST_OPTIONS
    nodes = list(filters)
    if opts.throws_on_unmapped:
        _raise_unmapped(_unmapped_filter_columns(nodes, opts))
    return _FilterCaster(destination_type, opts).cast(nodes)


def cast_sorting(
    sorting: Iterable[SortLeaf],
    destination_type: Any = None,
    options: CastOptions | None = None,
) -> list[SortLeaf]:
    """Rewrite *sorting* for *destination_type*; see :func:`cast_filters`."""
    opts = options or DEFAULT_CAST_OPTIONS
    items = list(sorting)
    if opts.throws_on_unmapped:
        _raise_unmapped(_unmapped_sort_columns(items, opts))
    return [
        cast
        for item in items
        for cast in _cast_sort_item(item, destination_type, opts)
    ]


def cast_criteria(
    criteria: Criteria,
    destination_type: Any = None,
    options: CastOptions | None = None,
) -> Criteria:
    """
    Rewrite filters and sorting together.

    With ``throw_on_unmapped()`` one error lists the unmapped columns of both.
    """
    opts = options or DEFAULT_CAST_OPTIONS
    if opts.throws_on_unmapped:
        _raise_unmapped(
            _unmapped_filter_columns(criteria.filters, opts)
            + _unmapped_sort_columns(criteria.sorting, opts)
        )
    return Criteria(
        tuple(_FilterCaster(destination_type, opts).cast(criteria.filters)),
        tuple(
            cast
            for item in criteria.sorting
            for cast in _cast_sort_item(item, destination_type, opts)
        ),
    )


class CastRegistry:
    """
    Named cast configurations.

    Keys are names or ``(source_type, destination_type)`` pairs::

        registry = CastRegistry()
        registry.register((UserDto, UserEntity), CastOptions().map("name", "full_name"))
        options = registry.resolve((UserDto, UserEntity))
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, CastOptions | Callable[[], CastOptions]] = {}
        self._lock = threading.Lock()

    def register(
        self, key: Hashable, options: CastOptions | Callable[[], CastOptions]
    ) -> None:
        """Register *options*, or a factory called on every ``resolve``."""
        with self._lock:
            self._entries[key] = options

    def unregister(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def has(self, key: Hashable) -> bool:
        return key in self._entries

    def resolve(self, key: Hashable) -> CastOptions:
        """
        Return the configuration registered under *key*.

        Raises:
            KeyError: Nothing is registered under *key*.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            raise KeyError(f"No cast configuration registered for {key!r}")
        if isinstance(entry, CastOptions):
            return entry
        return entry()
