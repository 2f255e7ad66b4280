"""Equality and ordering clauses: eq, neq, gt, gte, lt, lte."""

from __future__ import annotations

import operator as op
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, cast

from ...operators import FilterOperator
from ..strategy import SQLAlchemyOperator

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


class _Comparison(SQLAlchemyOperator):
    compare: ClassVar[Callable[[Any, Any], Any]]

    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", self.compare(column, value))


class EqualOperator(_Comparison):
    operator = FilterOperator.EQ
    compare = staticmethod(op.eq)


class NotEqualOperator(_Comparison):
    """``!=`` keeps SQL semantics: rows where the column is NULL do not match."""

    operator = FilterOperator.NEQ
    compare = staticmethod(op.ne)


class GreaterThanOperator(_Comparison):
    operator = FilterOperator.GT
    compare = staticmethod(op.gt)


class GreaterEqualOperator(_Comparison):
    operator = FilterOperator.GTE
    compare = staticmethod(op.ge)


class LessThanOperator(_Comparison):
    operator = FilterOperator.LT
    compare = staticmethod(op.lt)


class LessEqualOperator(_Comparison):
    operator = FilterOperator.LTE
    compare = staticmethod(op.le)
