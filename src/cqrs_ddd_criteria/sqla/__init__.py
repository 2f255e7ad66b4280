"""SQLAlchemy backend: filter trees to ``WHERE`` and sort lists to ``ORDER BY``."""

from __future__ import annotations

from .compiler import (
    SQLAlchemyBackend,
    apply_criteria,
    apply_sqla_sorting,
    build_sqla_filter,
)
from .operators import DEFAULT_SQLA_REGISTRY, build_default_sqla_registry
from .strategy import SQLAlchemyOperator, SQLAlchemyOperatorRegistry

__all__ = [
    "DEFAULT_SQLA_REGISTRY",
    "SQLAlchemyBackend",
    "SQLAlchemyOperator",
    "SQLAlchemyOperatorRegistry",
    "apply_criteria",
    "apply_sqla_sorting",
    "build_default_sqla_registry",
    "build_sqla_filter",
]
