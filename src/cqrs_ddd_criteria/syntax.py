"""
Filter and sort text grammar.

Filters::

    age:gt(30)
    name:Bob                                  (literal value, ``eq``)
    and(age:gt(18), isActive:eq(true))
    or(name:sw(A), and(age:lt(20), city:eq(Paris)))
    roles:any(name:eq(Admin), level:gte(3))

Sorting::

    name:desc, age            (direction defaults to ``asc``)

Parsing is recursive descent: at each position a composite is tried before a
leaf.  Any malformed input raises :class:`GrammarError`; no partial tree is
returned.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from .ast import ColumnPath, CompositeFilter, FilterLeaf, SortLeaf
from .exceptions import GrammarError
from .operators import CompositeOperator, FilterOperator, SortDirection

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ast import FilterNode

logger = logging.getLogger("cqrs_ddd.criteria.syntax")

# ``name(`` at the start of a leaf remainder.
_CALL_RE = re.compile(r"^\s*([A-Za-z]+)\s*\(")

FILTER_SEPARATOR = ", "
SORT_SEPARATOR = ", "


# ---------------------------------------------------------------------------
# Argument splitting
# ---------------------------------------------------------------------------


def split_arguments(text: str) -> list[str]:
    """
    Split *text* on commas that are not nested inside parentheses.

    Returned parts are stripped.  Unbalanced parentheses raise
    :class:`GrammarError`.
    """
    parts: list[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise GrammarError("Unbalanced parentheses", text=text, position=index)
        elif char == "," and depth == 0:
            parts.append(text[start:index].strip())
            start = index + 1
    if depth != 0:
        raise GrammarError("Unbalanced parentheses", text=text, position=len(text))
    parts.append(text[start:].strip())
    return parts


def check_value(value: str) -> str:
    """
    Return *value* if it can sit inside ``op(...)`` and be read back intact.

    Parentheses must balance and never close before they open.
    """
    depth = 0
    for index, char in enumerate(value):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                break
    else:
        if depth == 0:
            return value
        index = len(value)
    raise GrammarError("Unbalanced parentheses in value", text=value, position=index)


def _call_body(text: str, open_index: int) -> str:
    """Return the text between ``text[open_index]`` and its matching ``)``."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                if text[index + 1 :].strip():
                    raise GrammarError(
                        "Unexpected text after ')'", text=text, position=index + 1
                    )
                return text[open_index + 1 : index]
    raise GrammarError("Unbalanced parentheses", text=text, position=open_index)


def _arguments(body: str, text: str) -> list[str]:
    args = split_arguments(body)
    if len(args) == 1 and not args[0]:
        raise GrammarError("Composite requires at least one argument", text=text)
    if any(not arg for arg in args):
        raise GrammarError("Empty argument", text=text)
    return args


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def parse_filter(text: str) -> FilterNode:
    """Parse a single filter expression into a tree."""
    node = _parse_node(text)
    logger.debug("Parsed filter %r -> %r", text, node)
    return node


def parse_filters(text: str | None) -> list[FilterNode]:
    """
    Parse a comma-separated sequence of filter expressions.

    Blank input yields an empty list.  The resulting nodes are conjoined with
    AND when compiled.
    """
    if text is None or not text.strip():
        return []
    args = split_arguments(text)
    if any(not arg for arg in args):
        raise GrammarError("Empty filter expression", text=text)
    nodes = [_parse_node(arg) for arg in args]
    logger.debug("Parsed %d filter(s) from %r", len(nodes), text)
    return nodes


def _parse_node(text: str) -> FilterNode:
    stripped = text.strip()
    if not stripped:
        raise GrammarError("Empty filter expression", text=text)

    paren = stripped.find("(")
    colon = stripped.find(":")

    # and(...) / or(...)
    if paren > 0 and (colon < 0 or paren < colon):
        operator = CompositeOperator.from_token(stripped[:paren])
        if operator is not None and not operator.is_quantifier:
            body = _call_body(stripped, paren)
            children = tuple(_parse_node(arg) for arg in _arguments(body, stripped))
            return CompositeFilter(operator, children)

    if colon < 0:
        raise GrammarError("Missing ':' separator", text=stripped)

    column = ColumnPath.parse(stripped[:colon])
    remainder = stripped[colon + 1 :]
    if not remainder.strip():
        raise GrammarError(f"Missing value for column '{column}'", text=stripped)

    match = _CALL_RE.match(remainder)
    if match:
        name = match.group(1)
        open_index = match.end() - 1

        quantifier = CompositeOperator.from_token(name)
        if quantifier is not None and quantifier.is_quantifier:
            body = _call_body(remainder, open_index)
            children = tuple(_parse_node(arg) for arg in _arguments(body, stripped))
            return CompositeFilter(quantifier, children, column)

        operator = FilterOperator.from_token(name)
        if operator is not None:
            return FilterLeaf(column, operator, _call_body(remainder, open_index))

    return FilterLeaf(column, FilterOperator.EQ, remainder.strip())


def format_filter(node: FilterNode) -> str:
    """Render *node* in the canonical ``column:op(value)`` form."""
    return _format_node(node, None)


def format_filters(nodes: Iterable[FilterNode]) -> str:
    return FILTER_SEPARATOR.join(format_filter(node) for node in nodes)


def _format_node(node: FilterNode, scope: ColumnPath | None) -> str:
    if isinstance(node, FilterLeaf):
        column = node.column.relative_to(scope) if scope is not None else node.column
        return f"{column}:{node.operator.value}({node.value})"

    if node.column is None:
        inner = FILTER_SEPARATOR.join(_format_node(c, scope) for c in node.children)
        return f"{node.operator.value}({inner})"

    column = node.column.relative_to(scope) if scope is not None else node.column
    inner = FILTER_SEPARATOR.join(_format_node(c, node.column) for c in node.children)
    return f"{column}:{node.operator.value}({inner})"


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def parse_sorting(text: str | None) -> list[SortLeaf]:
    """Parse ``column[:asc|desc]`` items separated by commas."""
    if text is None or not text.strip():
        return []
    sorting: list[SortLeaf] = []
    for item in split_arguments(text):
        if not item:
            raise GrammarError("Empty sort item", text=text)
        column_text, sep, direction_text = item.partition(":")
        direction = SortDirection.ASC
        if sep:
            parsed = SortDirection.from_token(direction_text)
            if parsed is None:
                raise GrammarError(
                    f"Unknown sort direction {direction_text.strip()!r}", text=item
                )
            direction = parsed
        sorting.append(SortLeaf(ColumnPath.parse(column_text), direction))
    logger.debug("Parsed sorting %r -> %r", text, sorting)
    return sorting


def format_sorting(sorting: Iterable[SortLeaf]) -> str:
    return SORT_SEPARATOR.join(str(item) for item in sorting)
