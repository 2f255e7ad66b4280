"""Specification façade over a :class:`Criteria` and a record type."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from sqlalchemy import Select

from .cache import PredicateCache
from .compiler import CompileOptions, Predicate, apply_sorting, compile_filter
from .criteria import Criteria

logger = logging.getLogger("cqrs_ddd.criteria.specification")

T = TypeVar("T", contravariant=True)


@runtime_checkable
class ISpecification(Protocol, Generic[T]):
    """
    Protocol for the Specification pattern.
    Used to encapsulate business rules for querying and filtering records.
    """

    def is_satisfied_by(self, candidate: T) -> bool:
        """
        Check if the candidate satisfies the specification.
        Used primarily for in-memory filtering.
        """
        ...

    def to_dict(self) -> dict[str, Any]:
        """
        Return a dictionary representation of the specification.
        Useful for serializing criteria across process boundaries.
        """
        ...


class CriteriaSpecification(Generic[T]):
    """
    Criteria bound to the record type they are evaluated against.

    The predicate is compiled on first use and kept for the lifetime of the
    specification.  Passing a :class:`PredicateCache` shares compiled
    predicates between specifications with structurally equal filters.

    Usage::

        spec = CriteriaSpecification(User, Criteria.parse("age:gt(18)", "name"))
        adults = spec.apply(users)               # filtered, sorted list
        stmt = spec.apply(select(UserModel))     # WHERE ... ORDER BY ...
    """

    def __init__(
        self,
        record_type: Any,
        criteria: Criteria | str,
        options: CompileOptions | None = None,
        cache: PredicateCache | None = None,
    ) -> None:
        self.record_type = record_type
        self.criteria = (
            Criteria.parse(criteria) if isinstance(criteria, str) else criteria
        )
        self.options = options
        self.cache = cache
        self._predicate: Predicate | None = None

    def get_predicate(self) -> Predicate | None:
        """Compiled filter predicate, or ``None`` when there are no filters."""
        if not self.criteria.filters:
            return None
        if self._predicate is None:
            self._predicate = compile_filter(
                self.record_type,
                self.criteria.filters,
                options=self.options,
                cache=self.cache,
            )
        return self._predicate

    def is_satisfied_by(self, candidate: T) -> bool:
        predicate = self.get_predicate()
        return True if predicate is None else predicate(candidate)

    def apply(self, source: Any) -> Any:
        """
        Apply filters and sorting to *source*.

        A SQLAlchemy ``Select`` gets ``WHERE``/``ORDER BY`` clauses (the
        record type must then be a mapped class); any other iterable is
        filtered and sorted into a new list.
        """
        if isinstance(source, Select):
            from .sqla import apply_criteria

            return apply_criteria(
                source, self.record_type, self.criteria, options=self.options
            )
        if not isinstance(source, Iterable):
            raise TypeError(
                f"Cannot apply criteria to {type(source).__name__!r}, "
                f"expected an iterable or a Select"
            )

        predicate = self.get_predicate()
        if predicate is None:
            items = list(source)
        else:
            items = [item for item in source if predicate(item)]
        logger.debug("Specification kept %d item(s)", len(items))
        if not self.criteria.sorting:
            return items
        return apply_sorting(
            items, self.record_type, self.criteria.sorting, options=self.options
        )

    def __and__(self, other: CriteriaSpecification[T]) -> CriteriaSpecification[T]:
        """Conjoin filters of two specifications over the same record type."""
        if other.record_type is not self.record_type:
            raise TypeError("Cannot combine specifications over different types")
        return CriteriaSpecification(
            self.record_type,
            self.criteria.merge(other.criteria),
            self.options,
            self.cache,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.criteria.to_dict()

    def __repr__(self) -> str:
        name = getattr(self.record_type, "__name__", self.record_type)
        return f"CriteriaSpecification({name}, {self.criteria})"
