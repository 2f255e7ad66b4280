"""
Compiled-predicate cache keyed by structural hash.

The key is derived from what a tree *means* against a record type (node
kinds, operators, resolved member names, coerced value types and values), not
from its text, so ``"AGE:gt( 30 )"`` and ``column("age").gt(30)`` share one
entry.

Thread safety: lookups and inserts take ``_lock``; factories run outside it.
Two threads missing on the same key may both compile, and ``setdefault``
keeps whichever value was stored first, so every caller converges on one
instance.  Counters have their own lock and are only eventually consistent
with the store.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from .compiler import (
    DEFAULT_OPTIONS,
    CompileOptions,
    CompilerBackend,
    FilterCompiler,
    normalize_filters,
)

if TYPE_CHECKING:
    from .introspection import ResolvedColumn
    from .operators import CompositeOperator, FilterOperator

logger = logging.getLogger("cqrs_ddd.criteria.cache")

T = TypeVar("T")
_MISSING = object()


# ---------------------------------------------------------------------------
# Structural hash
# ---------------------------------------------------------------------------


def _qualified_name(tp: Any) -> str:
    module = getattr(tp, "__module__", "")
    name = getattr(tp, "__qualname__", None) or repr(tp)
    return f"{module}.{name}" if module else name


def _canonical(value: Any) -> Any:
    if isinstance(value, list):
        return ("list", tuple(_canonical(item) for item in value))
    return (_qualified_name(type(value)), repr(value))


class HashBackend(CompilerBackend[tuple]):
    """Compile a tree into a nested token tuple."""

    name = "hash"

    def comparison(
        self,
        column: ResolvedColumn,
        operator: FilterOperator,
        value: Any,
        options: CompileOptions,
    ) -> tuple:
        return (
            "leaf",
            operator.value,
            column.member_names,
            _qualified_name(column.value_type),
            _canonical(value),
        )

    def conjunction(self, parts: Sequence[tuple]) -> tuple:
        return ("and", *parts)

    def disjunction(self, parts: Sequence[tuple]) -> tuple:
        return ("or", *parts)

    def quantifier(
        self,
        operator: CompositeOperator,
        column: ResolvedColumn,
        predicate: tuple,
        options: CompileOptions,
    ) -> tuple:
        return (operator.value, column.member_names, predicate)


def structural_hash(
    filters: Any,
    record_type: Any,
    *,
    backend: str = "memory",
    options: CompileOptions | None = None,
) -> str:
    """
    SHA-256 key for *filters* compiled against *record_type*.

    Resolution and coercion run as part of hashing, so a tree that would not
    compile raises the same errors here.
    """
    opts = options or DEFAULT_OPTIONS
    tokens = FilterCompiler(HashBackend(), opts).compile(
        record_type, normalize_filters(filters)
    )
    payload = (
        _qualified_name(record_type),
        id(record_type),
        backend,
        opts.null_guard,
        opts.use_column_fallback,
        tokens,
    )
    return hashlib.sha256(repr(payload).encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheStatistics:
    hits: int
    misses: int
    entries: int

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        """Hits over lookups, ``0.0`` before the first lookup."""
        return self.hits / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "entries": self.entries,
            "hit_ratio": self.hit_ratio,
        }


class PredicateCache:
    """
    Thread-safe map from structural hash to compiled predicate.

    Usage::

        cache = PredicateCache()
        predicate = cache.get_or_create(key, lambda: compile_it())
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_or_create(self, key: str, factory: Callable[[], T]) -> T:
        """
        Return the entry for *key*, computing it with *factory* on a miss.

        A factory that raises stores nothing; the error propagates.
        """
        with self._lock:
            entry = self._entries.get(key, _MISSING)
        if entry is not _MISSING:
            self._count(hit=True)
            logger.debug("Predicate cache hit %s", key[:12])
            return entry  # type: ignore[no-any-return]

        self._count(hit=False)
        logger.debug("Predicate cache miss %s", key[:12])
        value = factory()
        with self._lock:
            return self._entries.setdefault(key, value)  # type: ignore[no-any-return]

    def get(self, key: str) -> Any | None:
        """Peek at an entry without touching the counters."""
        with self._lock:
            return self._entries.get(key)

    def _count(self, *, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def statistics(self) -> CacheStatistics:
        with self._lock:
            entries = len(self._entries)
        with self._stats_lock:
            return CacheStatistics(self._hits, self._misses, entries)

    def clear(self) -> None:
        """Drop every entry and reset the counters in one step."""
        with self._lock, self._stats_lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


_default_cache: PredicateCache | None = None
_cache_lock = threading.Lock()


def get_default_cache() -> PredicateCache:
    """Process-wide cache instance."""
    global _default_cache
    if _default_cache is None:
        with _cache_lock:
            if _default_cache is None:
                _default_cache = PredicateCache()
    return _default_cache
