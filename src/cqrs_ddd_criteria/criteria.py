"""Criteria: an immutable set of filters plus an ordering."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .ast import CompositeFilter, FilterLeaf, SortLeaf, node_from_dict
from .syntax import format_filters, format_sorting, parse_filters, parse_sorting

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ast import FilterNode

logger = logging.getLogger("cqrs_ddd.criteria")


def _as_texts(raw: Any) -> list[str]:
    """Query params may repeat a key; accept a string or a list of strings."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    return [str(item) for item in raw if item is not None]


@dataclass(frozen=True)
class Criteria:
    """
    Filters (conjoined) and sorting (primary key first) for one query.

    Usage::

        criteria = Criteria.parse("and(age:gt(18), isActive:eq(true))", "name:desc")
        criteria = Criteria.from_query_params(request.query_params)
    """

    filters: tuple[FilterNode, ...] = field(default_factory=tuple)
    sorting: tuple[SortLeaf, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        filters = self.filters
        if isinstance(filters, (FilterLeaf, CompositeFilter)):
            filters = (filters,)
        object.__setattr__(self, "filters", tuple(filters))
        sorting = self.sorting
        if isinstance(sorting, SortLeaf):
            sorting = (sorting,)
        object.__setattr__(self, "sorting", tuple(sorting))

    # -- construction --------------------------------------------------------

    @classmethod
    def parse(
        cls, filter_text: str | None = None, sort_text: str | None = None
    ) -> Criteria:
        return cls(tuple(parse_filters(filter_text)), tuple(parse_sorting(sort_text)))

    @classmethod
    def from_query_params(
        cls,
        params: Mapping[str, Any],
        filter_key: str = "filter",
        sort_key: str = "sort",
    ) -> Criteria:
        """
        Build criteria from request query parameters.

        Repeated ``filter`` values are conjoined; repeated ``sort`` values
        are appended in order.
        """
        filters: list[FilterNode] = []
        for text in _as_texts(params.get(filter_key)):
            filters.extend(parse_filters(text))
        sorting: list[SortLeaf] = []
        for text in _as_texts(params.get(sort_key)):
            sorting.extend(parse_sorting(text))
        criteria = cls(tuple(filters), tuple(sorting))
        logger.debug("Criteria from query params: %s", criteria)
        return criteria

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Criteria:
        filters = tuple(node_from_dict(item) for item in data.get("filters", []))
        sorting = tuple(
            SortLeaf(item["column"], item.get("direction", "asc"))
            for item in data.get("sorting", [])
        )
        return cls(filters, sorting)

    # -- combination ---------------------------------------------------------

    def where(self, *nodes: FilterNode) -> Criteria:
        """Return a copy with *nodes* conjoined to the filters."""
        return replace(self, filters=self.filters + tuple(nodes))

    def merge(self, other: Criteria) -> Criteria:
        """Conjoin filters; *other*'s sort keys follow this one's."""
        return Criteria(self.filters + other.filters, self.sorting + other.sorting)

    def with_sorting(self, sorting: str | Iterable[SortLeaf] | None) -> Criteria:
        """Return a copy with its sorting replaced."""
        if sorting is None or isinstance(sorting, str):
            items = tuple(parse_sorting(sorting))
        else:
            items = tuple(sorting)
        return replace(self, sorting=items)

    # -- inspection ----------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.filters and not self.sorting

    @property
    def filter_text(self) -> str:
        return format_filters(self.filters)

    @property
    def sort_text(self) -> str:
        return format_sorting(self.sorting)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filters": [node.to_dict() for node in self.filters],
            "sorting": [item.to_dict() for item in self.sorting],
        }

    def __str__(self) -> str:
        return f"filter={self.filter_text!r} sort={self.sort_text!r}"
