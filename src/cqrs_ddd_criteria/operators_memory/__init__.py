"""
Built-in in-memory operator strategies.

``build_default_registry()`` returns a fresh registry on every call, so a
caller may register replacements without affecting anybody else;
``DEFAULT_MEMORY_REGISTRY`` is the shared instance compilers fall back to.
"""

from __future__ import annotations

from ..evaluator import MemoryOperatorRegistry
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


def build_default_registry() -> MemoryOperatorRegistry:
    return MemoryOperatorRegistry(
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


DEFAULT_MEMORY_REGISTRY: MemoryOperatorRegistry = build_default_registry()

__all__ = [
    "DEFAULT_MEMORY_REGISTRY",
    "build_default_registry",
    "MemoryOperatorRegistry",
]
