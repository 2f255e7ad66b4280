"""
SQLAlchemy operator strategies.

Each strategy turns one filter operator, a mapped attribute and a coerced
value into a boolean clause.  The registry is the generic one from
:mod:`cqrs_ddd_criteria.evaluator`, keyed the same way as the in-memory
strategies.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from ..evaluator import OperatorRegistry, OperatorStrategy

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement


class SQLAlchemyOperator(OperatorStrategy):
    """Builds the ``WHERE`` clause for one operator."""

    @abstractmethod
    def clause(self, column: Any, value: Any) -> ColumnElement[bool]:
        """
        Args:
            column: An instrumented attribute of the mapped class.
            value: The filter value, already coerced to the column type.
        """


class SQLAlchemyOperatorRegistry(OperatorRegistry[SQLAlchemyOperator]):
    backend = "SQLAlchemy"
