"""
Operator strategies and their registries.

Each compiler backend maps every :class:`FilterOperator` to one strategy
object.  The compiler looks the strategy up once per leaf with
``require()`` and keeps it inside the compiled result, so a registry change
never affects predicates that were already built.

Replacing a built-in operator::

    class CaseInsensitiveEqual(MemoryOperator):
        operator = FilterOperator.EQ

        def matches(self, actual, expected):
            return str(actual).casefold() == str(expected).casefold()

    registry = build_default_registry()
    registry.register(CaseInsensitiveEqual())
    compile_filter(User, "name:eq(ann)", registry=registry)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

if TYPE_CHECKING:
    from .operators import FilterOperator


class OperatorStrategy(ABC):
    """Backend-specific implementation of one filter operator."""

    operator: ClassVar[FilterOperator]


S = TypeVar("S", bound=OperatorStrategy)


class MemoryOperator(OperatorStrategy):
    """Tests one operator against a value read from a candidate record."""

    @abstractmethod
    def matches(self, actual: Any, expected: Any) -> bool:
        """
        Args:
            actual: The value read from the candidate (may be ``None``).
            expected: The filter value, already coerced to the column type.
        """


class OperatorRegistry(Generic[S]):
    """Strategies of one backend keyed by the operator they implement."""

    backend = "generic"

    def __init__(self, strategies: Iterable[S] = ()) -> None:
        self._strategies: dict[FilterOperator, S] = {}
        self.register(*strategies)

    def register(self, *strategies: S) -> None:
        """Add strategies, replacing any registered for the same operator."""
        for strategy in strategies:
            self._strategies[strategy.operator] = strategy

    def unregister(self, operator: FilterOperator) -> None:
        self._strategies.pop(operator, None)

    def require(self, operator: FilterOperator) -> S:
        """
        Raises:
            ValueError: If no strategy handles *operator*.
        """
        try:
            return self._strategies[operator]
        except KeyError:
            raise ValueError(
                f"No {self.backend} strategy for operator '{operator.value}'"
            ) from None


class MemoryOperatorRegistry(OperatorRegistry[MemoryOperator]):
    backend = "in-memory"
