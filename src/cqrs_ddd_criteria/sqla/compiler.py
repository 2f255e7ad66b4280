"""
Compile filter trees into SQLAlchemy filter expressions.

The shared tree walker resolves and coerces; :class:`SQLAlchemyBackend` turns
each node into a ``ColumnElement[bool]`` that keeps the tree's shape:

- ``and`` / ``or`` → ``and_()`` / ``or_()``
- a column path through many-to-one relationships → nested ``.has()``
- ``any`` → ``relationship.any(inner)``
- ``all`` → ``~relationship.any(~inner)`` (true on an empty collection)

Leaf operators are looked up in a ``SQLAlchemyOperatorRegistry``.

Sorting
-------
``apply_sqla_sorting`` adds ``ORDER BY`` clauses to a ``Select``; each
relationship prefix of a sort path is outer-joined once through an alias.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import ColumnElement, Select, and_, false, or_, true
from sqlalchemy.orm import aliased

from ..compiler import (
    DEFAULT_OPTIONS,
    CompileOptions,
    CompilerBackend,
    FilterCompiler,
    normalize_filters,
    normalize_sorting,
)
from ..exceptions import OperatorMismatchError, ResolutionError
from ..introspection import resolve_column, type_name
from ..operators import CompositeOperator
from .operators import DEFAULT_SQLA_REGISTRY

if TYPE_CHECKING:
    from ..criteria import Criteria
    from ..introspection import Accessor, ResolvedColumn
    from ..operators import FilterOperator
    from .strategy import SQLAlchemyOperatorRegistry

logger = logging.getLogger("cqrs_ddd.criteria.sqla")


def _mapped_attribute(accessor: Accessor) -> Any:
    return getattr(accessor.owner, accessor.name)


def _through_relationships(
    column: ResolvedColumn, expr: ColumnElement[bool]
) -> ColumnElement[bool]:
    """Wrap *expr* in ``.has()`` for every hop before the terminal member."""
    for hop in reversed(column.accessors[:-1]):
        if not hop.relationship:
            raise ResolutionError(
                str(column.path),
                hop.name,
                type_name(hop.owner),
                reason=f"'{hop.name}' is not a relationship",
            )
        expr = cast("ColumnElement[bool]", _mapped_attribute(hop).has(expr))
    return expr


class SQLAlchemyBackend(CompilerBackend["ColumnElement[bool]"]):
    """Compile to SQLAlchemy boolean expressions over mapped classes."""

    name = "sqlalchemy"

    def __init__(self, registry: SQLAlchemyOperatorRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_SQLA_REGISTRY

    def comparison(
        self,
        column: ResolvedColumn,
        operator: FilterOperator,
        value: Any,
        options: CompileOptions,
    ) -> ColumnElement[bool]:
        attribute = _mapped_attribute(column.terminal)
        clause = self.registry.require(operator).clause(attribute, value)
        return _through_relationships(column, clause)

    def conjunction(self, parts: Sequence[ColumnElement[bool]]) -> ColumnElement[bool]:
        if not parts:
            return true()
        if len(parts) == 1:
            return parts[0]
        return and_(*parts)

    def disjunction(self, parts: Sequence[ColumnElement[bool]]) -> ColumnElement[bool]:
        if not parts:
            return false()
        if len(parts) == 1:
            return parts[0]
        return or_(*parts)

    def quantifier(
        self,
        operator: CompositeOperator,
        column: ResolvedColumn,
        predicate: ColumnElement[bool],
        options: CompileOptions,
    ) -> ColumnElement[bool]:
        if not column.terminal.relationship:
            raise OperatorMismatchError(
                operator.value,
                type_name(column.value_type),
                str(column.path),
                "quantifiers need a relationship collection",
            )
        relationship = _mapped_attribute(column.terminal)
        if operator is CompositeOperator.ANY:
            expr = relationship.any(predicate)
        else:
            expr = ~relationship.any(~predicate)
        return _through_relationships(column, cast("ColumnElement[bool]", expr))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_sqla_filter(
    model: type[Any],
    filters: Any,
    *,
    options: CompileOptions | None = None,
    registry: SQLAlchemyOperatorRegistry | None = None,
) -> ColumnElement[bool]:
    """
    Build a SQLAlchemy filter expression from a filter tree.

    Args:
        model: The SQLAlchemy model class.
        filters: Filter text, one node, or a sequence of nodes (conjoined).
        options: Compile switches (``null_guard`` has no effect in SQL).
        registry: Optional custom operator registry.  Falls back to
            ``DEFAULT_SQLA_REGISTRY``.

    Returns:
        SQLAlchemy Boolean expression.
    """
    nodes = normalize_filters(filters)
    logger.debug("Compiling %d filter(s) to SQL for %s", len(nodes), model.__name__)
    compiler = FilterCompiler(SQLAlchemyBackend(registry), options)
    return compiler.compile(model, nodes)


def apply_sqla_sorting(
    stmt: Select[Any],
    model: type[Any],
    sorting: Any,
    *,
    options: CompileOptions | None = None,
) -> Select[Any]:
    """
    Add ``ORDER BY`` clauses for *sorting* to *stmt*.

    Raises:
        ResolutionError: A path does not exist or crosses a non-relationship.
        OperatorMismatchError: A path ends at a collection.
    """
    opts = options or DEFAULT_OPTIONS
    entities: dict[tuple[str, ...], Any] = {(): model}
    clauses: list[Any] = []

    for item in normalize_sorting(sorting):
        column = resolve_column(
            model, item.column, use_column_fallback=opts.use_column_fallback
        )
        if column.is_collection:
            raise OperatorMismatchError(
                item.direction.value,
                type_name(column.value_type),
                str(column.path),
                "cannot sort by a collection",
            )

        prefix: tuple[str, ...] = ()
        for hop in column.accessors[:-1]:
            if not hop.relationship:
                raise ResolutionError(
                    str(column.path),
                    hop.name,
                    type_name(hop.owner),
                    reason=f"'{hop.name}' is not a relationship",
                )
            parent = entities[prefix]
            prefix = (*prefix, hop.name)
            if prefix not in entities:
                alias = aliased(hop.value_type)
                stmt = stmt.outerjoin(getattr(parent, hop.name).of_type(alias))
                entities[prefix] = alias

        attribute = getattr(entities[prefix], column.terminal.name)
        clauses.append(attribute.desc() if item.descending else attribute.asc())

    if clauses:
        stmt = stmt.order_by(*clauses)
    return stmt


def apply_criteria(
    stmt: Select[Any],
    model: type[Any],
    criteria: Criteria,
    *,
    options: CompileOptions | None = None,
    registry: SQLAlchemyOperatorRegistry | None = None,
) -> Select[Any]:
    """Apply the filters (``WHERE``) and sorting (``ORDER BY``) of *criteria*."""
    if criteria.filters:
        stmt = stmt.where(
            build_sqla_filter(
                model, criteria.filters, options=options, registry=registry
            )
        )
    return apply_sqla_sorting(stmt, model, criteria.sorting, options=options)
