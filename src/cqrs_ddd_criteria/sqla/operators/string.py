"""
Text and containment clauses: ct, nct, sw, ew.

``LIKE`` patterns are built with ``autoescape=True`` so ``%`` and ``_`` in
the filter value match literally, as they do in memory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from ...operators import FilterOperator
from ..strategy import SQLAlchemyOperator

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


class ContainsOperator(SQLAlchemyOperator):
    """``LIKE '%value%'`` on text, ``IN (...)`` for an is-one-of list."""

    operator = FilterOperator.CT

    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        if isinstance(value, list):
            return cast("ColumnElement[bool]", column.in_(value))
        return cast("ColumnElement[bool]", column.contains(value, autoescape=True))


class NotContainsOperator(ContainsOperator):
    operator = FilterOperator.NCT

    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        return ~super().clause(column, value)


class StartsWithOperator(SQLAlchemyOperator):
    operator = FilterOperator.SW

    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.startswith(value, autoescape=True))


class EndsWithOperator(SQLAlchemyOperator):
    operator = FilterOperator.EW

    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.endswith(value, autoescape=True))
