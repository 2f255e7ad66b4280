"""Tests for column-path resolution against record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from cqrs_ddd_criteria.exceptions import ResolutionError
from cqrs_ddd_criteria.introspection import (
    describe_type,
    element_type_of,
    resolve_column,
    unwrap_optional,
)

# -- record types ------------------------------------------------------------


class Address(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city: str
    zip_code: str | None = Field(default=None, alias="zip")


class Profile(BaseModel):
    followers: int = 0
    address: Address | None = None


class Role(BaseModel):
    name: str


class User(BaseModel):
    name: str
    age: int = 0
    profile: Profile | None = None
    roles: list[Role] = []

    @property
    def display_name(self) -> str:
        return self.name.title()


@dataclass
class OrderLine:
    sku: str
    quantity: int


@dataclass
class Order:
    id: int
    customer_name: str = field(metadata={"column": "customer"})
    lines: list[OrderLine] = field(default_factory=list)


class Ambiguous:
    value: int
    Value: int


class Plain:
    title: str
    count: Optional[int]
    _hidden: str


class Base(DeclarativeBase):
    pass


class DepartmentModel(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))


class EmployeeModel(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(primary_key=True)
    email_address: Mapped[str] = mapped_column("email", String(100))
    department_id: Mapped[int] = mapped_column(ForeignKey("departments.id"))
    department: Mapped[DepartmentModel] = relationship()
    badges: Mapped[list[BadgeModel]] = relationship(back_populates="employee")


class BadgeModel(Base):
    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(String(20))
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"))
    employee: Mapped[EmployeeModel] = relationship(back_populates="badges")


# -- annotation helpers ------------------------------------------------------


def test_unwrap_optional():
    assert unwrap_optional(Optional[int]) == (int, True)
    assert unwrap_optional(int | None) == (int, True)
    assert unwrap_optional(int) == (int, False)


def test_element_type_of():
    assert element_type_of(list[int]) is int
    assert element_type_of(Optional[list[Role]]) is Role
    assert element_type_of(tuple[str, ...]) is str
    assert element_type_of(set[int]) is int
    assert element_type_of(str) is None
    assert element_type_of(int) is None
    assert element_type_of(dict[str, int]) is None


def test_heterogeneous_tuple_has_no_single_element_type():
    assert element_type_of(tuple[int, str]) is Any
    assert element_type_of(tuple[int]) is Any
    assert element_type_of(tuple[int, ...]) is int


# -- pydantic ----------------------------------------------------------------


def test_resolve_nested_path():
    column = resolve_column(User, "profile.address.city")
    assert column.member_names == ("profile", "address", "city")
    assert column.value_type is str
    assert not column.nullable


def test_resolve_is_case_insensitive():
    assert resolve_column(User, "PROFILE.Followers").member_names == (
        "profile",
        "followers",
    )


def test_alias_needs_fallback():
    with pytest.raises(ResolutionError):
        resolve_column(User, "profile.address.zip")
    column = resolve_column(User, "profile.address.zip", use_column_fallback=True)
    assert column.member_names[-1] == "zip_code"
    assert column.nullable


def test_property_member():
    column = resolve_column(User, "display_name")
    assert column.value_type is str
    assert column.read(User(name="ada lovelace")) == "Ada Lovelace"


def test_collection_member():
    column = resolve_column(User, "roles")
    assert column.is_collection
    assert column.element_type is Role


def test_cannot_traverse_collection():
    with pytest.raises(ResolutionError) as exc_info:
        resolve_column(User, "roles.name")
    assert "collection" in str(exc_info.value)


def test_cannot_traverse_scalar():
    with pytest.raises(ResolutionError) as exc_info:
        resolve_column(User, "name.length")
    assert exc_info.value.segment == "length"


def test_unknown_member_suggestions():
    with pytest.raises(ResolutionError) as exc_info:
        resolve_column(User, "profile.adress.city")
    err = exc_info.value
    assert err.path == "profile.adress.city"
    assert err.segment == "adress"
    assert err.type_name == "Profile"
    assert "address" in err.suggestions


def test_resolution_is_memoised():
    assert resolve_column(User, "age") is resolve_column(User, "age")


# -- dataclasses and plain classes -------------------------------------------


def test_dataclass_metadata_column():
    column = resolve_column(Order, "customer", use_column_fallback=True)
    assert column.member_names == ("customer_name",)


def test_dataclass_collection_element():
    assert resolve_column(Order, "lines").element_type is OrderLine


def test_ambiguous_case_insensitive_match():
    assert resolve_column(Ambiguous, "Value").member_names == ("Value",)
    with pytest.raises(ResolutionError) as exc_info:
        resolve_column(Ambiguous, "VALUE")
    assert "ambiguous" in str(exc_info.value)


def test_plain_annotated_class():
    descriptor = describe_type(Plain)
    assert descriptor.member_names == ["title", "count"]
    assert resolve_column(Plain, "count").nullable


# -- SQLAlchemy --------------------------------------------------------------


def test_sqlalchemy_columns_and_relationships():
    column = resolve_column(EmployeeModel, "department.name")
    assert column.member_names == ("department", "name")
    assert column.accessors[0].relationship
    assert column.value_type is str


def test_sqlalchemy_database_column_name_fallback():
    column = resolve_column(EmployeeModel, "email", use_column_fallback=True)
    assert column.member_names == ("email_address",)


def test_sqlalchemy_collection_relationship():
    column = resolve_column(EmployeeModel, "badges")
    assert column.element_type is BadgeModel


# -- reading -----------------------------------------------------------------


def test_read_values():
    user = User(
        name="bob",
        profile=Profile(followers=3, address=Address(city="Paris")),
    )
    assert resolve_column(User, "profile.address.city").read(user) == "Paris"


def test_read_mapping():
    column = resolve_column(User, "profile.followers")
    assert column.read({"profile": {"followers": 7}}) == 7


def test_read_null_intermediate_without_guard():
    column = resolve_column(User, "profile.followers")
    with pytest.raises(AttributeError):
        column.read(User(name="bob"))


def test_read_null_intermediate_with_guard():
    user = User(name="bob")
    assert resolve_column(User, "profile.followers").read(user, null_guard=True) == 0
    zip_column = resolve_column(User, "profile.address.zip_code")
    assert zip_column.read(user, null_guard=True) is None
