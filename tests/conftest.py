"""Shared fixtures for criteria tests."""

from __future__ import annotations

import pytest

from cqrs_ddd_criteria.cache import PredicateCache
from cqrs_ddd_criteria.operators_memory import build_default_registry


@pytest.fixture
def registry():
    """Fresh in-memory operator registry."""
    return build_default_registry()


@pytest.fixture
def cache():
    """Isolated predicate cache."""
    return PredicateCache()
