"""
Criteria exception hierarchy with fuzzy-match suggestions.

All exceptions inherit from ``CriteriaError`` and provide
``to_dict()`` for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class CriteriaError(Exception):
    """Base exception for all criteria errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class GrammarError(CriteriaError):
    """
    Filter or sort text does not follow the grammar.

    Raised for unbalanced parentheses, a missing ``:`` separator,
    malformed column names, empty arguments and unknown sort directions.
    No partial tree is ever returned alongside this error.
    """

    def __init__(
        self,
        message: str,
        text: str | None = None,
        position: int | None = None,
    ) -> None:
        self.message = message
        self.text = text
        self.position = position
        detail = message
        if text is not None:
            detail += f" in {text!r}"
        if position is not None:
            detail += f" at position {position}"
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "GRAMMAR_ERROR",
            "message": self.message,
            "text": self.text,
            "position": self.position,
        }


class ResolutionError(CriteriaError):
    """
    A column path segment does not exist on the type being searched.

    Example error message::

        Cannot resolve 'profile.adress.city': 'Profile' has no member 'adress'.
        Did you mean one of these?
          • address

        Available members: address, bio, id
    """

    def __init__(
        self,
        path: str,
        segment: str,
        type_name: str,
        available: list[str] | None = None,
        reason: str | None = None,
        cutoff: float = 0.6,
    ) -> None:
        self.path = path
        self.segment = segment
        self.type_name = type_name
        self.available = sorted(available or [])
        self.reason = reason
        self.suggestions = get_close_matches(
            segment, self.available, n=5, cutoff=cutoff
        )
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        reason = self.reason or f"'{self.type_name}' has no member '{self.segment}'"
        lines = [f"Cannot resolve '{self.path}': {reason}."]
        if self.suggestions:
            lines.append("Did you mean one of these?")
            for s in self.suggestions:
                lines.append(f"  • {s}")
        if self.available:
            preview = ", ".join(self.available[:15])
            if len(self.available) > 15:
                preview += ", ..."
            lines.append(f"Available members: {preview}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "RESOLUTION_ERROR",
            "path": self.path,
            "segment": self.segment,
            "type": self.type_name,
            "suggestions": self.suggestions,
            "available": self.available,
        }


class CoercionError(CriteriaError, ValueError):
    """A raw value cannot be converted to the resolved target type."""

    def __init__(self, raw: str, type_name: str, reason: str | None = None) -> None:
        self.raw = raw
        self.type_name = type_name
        self.reason = reason
        message = f"Cannot convert {raw!r} to {type_name}"
        if reason:
            message += f": {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "COERCION_ERROR",
            "raw": self.raw,
            "type": self.type_name,
            "reason": self.reason,
        }


class OperatorMismatchError(CriteriaError):
    """An operator is applied to a value type that does not support it."""

    def __init__(
        self,
        operator: str,
        type_name: str,
        column: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.operator = operator
        self.type_name = type_name
        self.column = column
        message = f"Operator '{operator}' is not supported for type {type_name}"
        if column:
            message += f" (column '{column}')"
        if reason:
            message += f": {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "OPERATOR_MISMATCH",
            "operator": self.operator,
            "type": self.type_name,
            "column": self.column,
        }


class UnmappedColumnError(CriteriaError):
    """Casting found source columns without a mapping entry."""

    def __init__(self, columns: list[str]) -> None:
        self.columns = list(columns)
        super().__init__(
            f"The following columns are unknown: {', '.join(self.columns)}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNMAPPED_COLUMNS",
            "columns": self.columns,
        }
