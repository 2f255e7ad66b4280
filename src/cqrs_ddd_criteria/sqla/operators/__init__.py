"""
Built-in SQLAlchemy operator strategies.

``build_default_sqla_registry()`` returns a fresh registry on every call;
``DEFAULT_SQLA_REGISTRY`` is the shared instance ``build_sqla_filter`` falls
back to.
"""

from __future__ import annotations

from ..strategy import SQLAlchemyOperatorRegistry
from .set import InOperator
from .standard import (
    EqualOperator,
    GreaterEqualOperator,
    GreaterThanOperator,
    LessEqualOperator,
    LessThanOperator,
    NotEqualOperator,
)
from .string import (
    ContainsOperator,
    EndsWithOperator,
    NotContainsOperator,
    StartsWithOperator,
)


def build_default_sqla_registry() -> SQLAlchemyOperatorRegistry:
    return SQLAlchemyOperatorRegistry(
        [
            EqualOperator(),
            NotEqualOperator(),
            GreaterThanOperator(),
            GreaterEqualOperator(),
            LessThanOperator(),
            LessEqualOperator(),
            InOperator(),
            ContainsOperator(),
            NotContainsOperator(),
            StartsWithOperator(),
            EndsWithOperator(),
        ]
    )


DEFAULT_SQLA_REGISTRY: SQLAlchemyOperatorRegistry = build_default_sqla_registry()

__all__ = [
    "DEFAULT_SQLA_REGISTRY",
    "build_default_sqla_registry",
    "SQLAlchemyOperatorRegistry",
]
