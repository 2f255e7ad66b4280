"""
Column-path resolution against record types.

A record type is described once (members, their value types, alternate
names) and each ``(type, path)`` pair is resolved once into an accessor chain.
Supported record types:

- pydantic models (``alias`` / ``validation_alias`` / ``serialization_alias``
  are alternate names)
- dataclasses (``field(metadata={"column": "..."})`` is the alternate name)
- SQLAlchemy mapped classes (the database column name is the alternate name;
  relationships resolve to the related class or ``list[related]``)
- plain annotated classes

Annotated read-only ``@property`` members are resolvable on all of them.
"""

from __future__ import annotations

import dataclasses
import datetime
import functools
import logging
import types
import typing
from collections import abc
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from .ast import ColumnPath
from .exceptions import ResolutionError

logger = logging.getLogger("cqrs_ddd.criteria.introspection")

_COLLECTION_ORIGINS: frozenset[Any] = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        abc.Sequence,
        abc.MutableSequence,
        abc.Set,
        abc.MutableSet,
        abc.Collection,
        abc.Iterable,
    }
)

_SCALAR_TYPES: tuple[type, ...] = (
    Decimal,
    Enum,
    UUID,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)

# Bases whose own properties are framework API, not record members.
_LIBRARY_MODULES = frozenset({"builtins", "pydantic", "sqlalchemy"})

_TYPE_DEFAULTS: dict[Any, Any] = {
    int: 0,
    float: 0.0,
    Decimal: Decimal(0),
    bool: False,
}


def type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


# ---------------------------------------------------------------------------
# Annotation helpers
# ---------------------------------------------------------------------------


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``Annotated`` and ``None`` from a union; return ``(type, nullable)``."""
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(get_args(annotation))
        if len(args) == 1:
            inner, _ = unwrap_optional(args[0])
            return inner, nullable
        return annotation, nullable
    if annotation is None or annotation is type(None):
        return Any, True
    return annotation, False


def element_type_of(annotation: Any) -> Any | None:
    """
    Return the element type of a collection annotation, else ``None``.

    ``str``, ``bytes`` and mappings are not collections here.
    """
    annotation, _ = unwrap_optional(annotation)
    if annotation in (str, bytes, bytearray):
        return None
    if annotation in (list, tuple, set, frozenset):
        return Any
    origin = get_origin(annotation)
    if origin not in _COLLECTION_ORIGINS:
        return None
    args = get_args(annotation)
    if not args:
        return Any
    if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
        # Heterogeneous tuples have no single element type.
        return Any
    return unwrap_optional(args[0])[0]


def default_for(value_type: Any, nullable: bool) -> Any:
    """Value used for a terminal whose owner chain hit ``None``."""
    if nullable:
        return None
    return _TYPE_DEFAULTS.get(value_type)


# ---------------------------------------------------------------------------
# Type description
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemberInfo:
    name: str
    value_type: Any
    nullable: bool = False
    alternate_names: tuple[str, ...] = ()
    relationship: bool = False


@dataclass(frozen=True)
class TypeDescriptor:
    """Members declared by one record type."""

    record_type: Any
    members: tuple[MemberInfo, ...]
    is_record: bool = True

    @functools.cached_property
    def _by_name(self) -> dict[str, MemberInfo]:
        return {m.name: m for m in self.members}

    @property
    def member_names(self) -> list[str]:
        return [m.name for m in self.members]

    def candidates(self, segment: str, use_fallback: bool = False) -> list[MemberInfo]:
        """
        Members matching *segment*: exact name, then case-insensitive name,
        then (with *use_fallback*) case-insensitive alternate name.
        """
        exact = self._by_name.get(segment)
        if exact is not None:
            return [exact]
        folded = segment.casefold()
        matches = [m for m in self.members if m.name.casefold() == folded]
        if matches or not use_fallback:
            return matches
        return [
            m
            for m in self.members
            if any(alt.casefold() == folded for alt in m.alternate_names)
        ]


@functools.lru_cache(maxsize=None)
def describe_type(record_type: Any) -> TypeDescriptor:
    """Describe the members of *record_type* (memoised)."""
    members: list[MemberInfo] = []
    is_record = isinstance(record_type, type) and not _is_scalar(record_type)
    if is_record:
        if issubclass(record_type, BaseModel):
            members = _pydantic_members(record_type)
        elif dataclasses.is_dataclass(record_type):
            members = _dataclass_members(record_type)
        else:
            mapped = _sqlalchemy_members(record_type)
            members = mapped if mapped is not None else _annotated_members(record_type)
        members = _merge(members, _property_members(record_type))
    logger.debug(
        "Described %s: %d member(s)", type_name(record_type), len(members)
    )
    return TypeDescriptor(record_type, tuple(members), is_record)


def _is_scalar(tp: type) -> bool:
    return tp.__module__ == "builtins" or issubclass(tp, _SCALAR_TYPES)


def _merge(members: list[MemberInfo], extra: list[MemberInfo]) -> list[MemberInfo]:
    known = {m.name for m in members}
    return members + [m for m in extra if m.name not in known]


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints: dict[str, Any] = {}
        for base in reversed(cls.__mro__):
            hints.update(getattr(base, "__annotations__", {}))
        return hints


def _member(name: str, annotation: Any, alternates: tuple[str, ...] = ()) -> MemberInfo:
    value_type, nullable = unwrap_optional(annotation)
    return MemberInfo(name, value_type, nullable, tuple(a for a in alternates if a))


def _pydantic_members(model: type[BaseModel]) -> list[MemberInfo]:
    members = []
    for name, info in model.model_fields.items():
        alternates = tuple(
            alias
            for alias in (info.alias, info.validation_alias, info.serialization_alias)
            if isinstance(alias, str) and alias != name
        )
        members.append(_member(name, info.annotation, alternates))
    return members


def _dataclass_members(cls: type) -> list[MemberInfo]:
    hints = _type_hints(cls)
    members = []
    for f in dataclasses.fields(cls):
        alternate = f.metadata.get("column")
        alternates = (alternate,) if isinstance(alternate, str) else ()
        members.append(_member(f.name, hints.get(f.name, Any), alternates))
    return members


def _sqlalchemy_members(cls: type) -> list[MemberInfo] | None:
    try:
        mapper = sa_inspect(cls, raiseerr=False)
    except NoInspectionAvailable:
        return None
    if mapper is None or not hasattr(mapper, "column_attrs"):
        return None

    members = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        try:
            python_type: Any = column.type.python_type
        except NotImplementedError:
            python_type = Any
        alternates = (column.name,) if column.name and column.name != prop.key else ()
        members.append(
            MemberInfo(prop.key, python_type, bool(column.nullable), alternates)
        )
    for rel in mapper.relationships:
        target = rel.mapper.class_
        if rel.uselist:
            members.append(MemberInfo(rel.key, list[target], False, relationship=True))
        else:
            members.append(MemberInfo(rel.key, target, True, relationship=True))
    return members


def _annotated_members(cls: type) -> list[MemberInfo]:
    members = []
    for name, annotation in _type_hints(cls).items():
        if name.startswith("_") or get_origin(annotation) is ClassVar:
            continue
        members.append(_member(name, annotation))
    return members


def _property_members(cls: type) -> list[MemberInfo]:
    members = []
    seen: set[str] = set()
    for base in cls.__mro__:
        if base.__module__.split(".")[0] in _LIBRARY_MODULES:
            continue
        for name, attr in vars(base).items():
            if name in seen or name.startswith("_") or not isinstance(attr, property):
                continue
            seen.add(name)
            if attr.fget is None:
                continue
            try:
                annotation = typing.get_type_hints(attr.fget).get("return", Any)
            except (NameError, TypeError):
                annotation = attr.fget.__annotations__.get("return", Any)
            members.append(_member(name, annotation))
    return members


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Accessor:
    """One hop of a resolved column: read member *name* from an *owner* instance."""

    name: str
    owner: Any
    value_type: Any
    nullable: bool = False
    relationship: bool = False

    def get(self, obj: Any) -> Any:
        if isinstance(obj, Mapping):
            return obj[self.name]
        return getattr(obj, self.name)


@dataclass(frozen=True)
class ResolvedColumn:
    """Accessor chain for a column path, plus the terminal value type."""

    path: ColumnPath
    record_type: Any
    accessors: tuple[Accessor, ...]

    @property
    def terminal(self) -> Accessor:
        return self.accessors[-1]

    @property
    def value_type(self) -> Any:
        return self.terminal.value_type

    @property
    def nullable(self) -> bool:
        return self.terminal.nullable

    @property
    def member_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.accessors)

    @property
    def element_type(self) -> Any | None:
        return element_type_of(self.value_type)

    @property
    def is_collection(self) -> bool:
        return self.element_type is not None

    def read(self, obj: Any, null_guard: bool = False) -> Any:
        """
        Read the terminal value from *obj*.

        With *null_guard*, a ``None`` owner before any hop yields the
        terminal's default instead of raising.
        """
        current = obj
        for accessor in self.accessors:
            if current is None and null_guard:
                return default_for(self.value_type, self.nullable)
            current = accessor.get(current)
        return current

    def __str__(self) -> str:
        return ".".join(self.member_names)


def resolve_column(
    record_type: Any,
    path: ColumnPath | str,
    *,
    use_column_fallback: bool = False,
) -> ResolvedColumn:
    """
    Resolve *path* against *record_type*.

    Raises:
        ResolutionError: A segment does not exist, is ambiguous, or would
            traverse a collection or scalar value.
    """
    return _resolve(record_type, ColumnPath.parse(path), use_column_fallback)


@functools.lru_cache(maxsize=1024)
def _resolve(
    record_type: Any, path: ColumnPath, use_column_fallback: bool
) -> ResolvedColumn:
    current: Any = record_type
    accessors: list[Accessor] = []
    last = len(path) - 1

    for index, segment in enumerate(path.segments):
        descriptor = describe_type(current)
        if not descriptor.is_record:
            raise ResolutionError(
                str(path),
                segment,
                type_name(current),
                reason=f"'{type_name(current)}' has no members",
            )

        matches = descriptor.candidates(segment, use_column_fallback)
        if not matches:
            raise ResolutionError(
                str(path), segment, type_name(current), descriptor.member_names
            )
        if len(matches) > 1:
            names = ", ".join(sorted(m.name for m in matches))
            raise ResolutionError(
                str(path),
                segment,
                type_name(current),
                descriptor.member_names,
                reason=f"'{segment}' is ambiguous on '{type_name(current)}' ({names})",
            )

        member = matches[0]
        accessors.append(
            Accessor(
                member.name,
                current,
                member.value_type,
                member.nullable,
                member.relationship,
            )
        )
        if index < last:
            if element_type_of(member.value_type) is not None:
                raise ResolutionError(
                    str(path),
                    segment,
                    type_name(current),
                    reason=(
                        f"'{member.name}' is a collection; "
                        "use any/all to filter its elements"
                    ),
                )
            current = member.value_type

    resolved = ResolvedColumn(path, record_type, tuple(accessors))
    logger.debug("Resolved %s.%s -> %s", type_name(record_type), path, resolved)
    return resolved
