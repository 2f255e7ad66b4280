"""Tests for the filter and sort grammar."""

from __future__ import annotations

import pytest

from cqrs_ddd_criteria.ast import ColumnPath, CompositeFilter, FilterLeaf, SortLeaf
from cqrs_ddd_criteria.exceptions import GrammarError
from cqrs_ddd_criteria.operators import CompositeOperator, FilterOperator, SortDirection
from cqrs_ddd_criteria.syntax import (
    format_filter,
    format_filters,
    format_sorting,
    parse_filter,
    parse_filters,
    parse_sorting,
    split_arguments,
)

# -- split_arguments ---------------------------------------------------------


def test_split_arguments_respects_nesting():
    parts = split_arguments("a:eq(1), and(b:eq(2), c:eq(3)) ,d:eq(4)")
    assert parts == ["a:eq(1)", "and(b:eq(2), c:eq(3))", "d:eq(4)"]


def test_split_arguments_unbalanced():
    with pytest.raises(GrammarError):
        split_arguments("and(a:eq(1)")
    with pytest.raises(GrammarError):
        split_arguments("a:eq(1))")


# -- leaves ------------------------------------------------------------------


def test_explicit_operator():
    node = parse_filter("age:gt(30)")
    assert node == FilterLeaf(ColumnPath(("age",)), FilterOperator.GT, "30")


def test_literal_value_defaults_to_eq():
    node = parse_filter("name:Bob")
    assert node == FilterLeaf("name", FilterOperator.EQ, "Bob")


def test_operator_keywords_are_case_insensitive():
    assert parse_filter("age:GTE(5)").operator is FilterOperator.GTE


def test_value_inside_call_is_verbatim():
    node = parse_filter("name:eq( a, b )")
    assert node.value == " a, b "


def test_literal_value_is_trimmed():
    assert parse_filter("name:  Bob  ").value == "Bob"


def test_unknown_call_shape_is_literal():
    node = parse_filter("name:foo(bar)")
    assert node.operator is FilterOperator.EQ
    assert node.value == "foo(bar)"


def test_operator_call_wins_over_literal():
    assert parse_filter("name:eq(5)").value == "5"
    # A literal that looks like a call is written explicitly.
    assert parse_filter("name:eq(eq(5))").value == "eq(5)"


def test_empty_value_inside_call():
    assert parse_filter("name:eq()").value == ""


def test_dotted_column():
    node = parse_filter("profile.address.city:eq(Paris)")
    assert node.column.segments == ("profile", "address", "city")


def test_colon_in_literal_value():
    node = parse_filter("starts_at:12:30")
    assert str(node.column) == "starts_at"
    assert node.value == "12:30"


# -- composites --------------------------------------------------------------


def test_and_composite():
    node = parse_filter("and(age:gt(18), isActive:eq(true))")
    assert node.operator is CompositeOperator.AND
    assert [str(c.column) for c in node.children] == ["age", "isActive"]


def test_nested_boolean_composites():
    node = parse_filter("or(name:sw(A), and(age:lt(20), city:eq(Paris)))")
    assert node.operator is CompositeOperator.OR
    inner = node.children[1]
    assert inner.operator is CompositeOperator.AND
    assert len(inner.children) == 2


def test_composite_keywords_case_insensitive_and_padded():
    node = parse_filter("  AND( age:gt(30) ,  name:Bob )  ")
    assert node.operator is CompositeOperator.AND
    assert node.children[1] == FilterLeaf("name", FilterOperator.EQ, "Bob")


def test_quantifier_qualifies_children():
    node = parse_filter("roles:any(name:eq(Admin), level:gte(3))")
    assert node.operator is CompositeOperator.ANY
    assert str(node.column) == "roles"
    assert [str(c.column) for c in node.children] == ["roles.name", "roles.level"]


def test_nested_quantifiers():
    node = parse_filter("roles:any(permissions:all(code:sw(read)))")
    inner = node.children[0]
    assert inner.operator is CompositeOperator.ALL
    assert str(inner.column) == "roles.permissions"
    assert str(inner.children[0].column) == "roles.permissions.code"


def test_quantifier_inside_boolean():
    node = parse_filter("and(age:gt(1), projects:all(status:eq(Done)))")
    assert node.children[1].is_quantifier


def test_child_named_like_its_collection_is_prefixed():
    node = parse_filter("owner:any(owner.name:eq(Ann))")
    assert str(node.children[0].column) == "owner.owner.name"
    assert format_filter(node) == "owner:any(owner.name:eq(Ann))"


def test_from_qualified_keeps_child_paths():
    leaf = FilterLeaf("roles.name", FilterOperator.EQ, "x")
    node = CompositeFilter.from_qualified(CompositeOperator.ANY, [leaf], "roles")
    assert node.children == (leaf,)
    assert node == parse_filter("roles:any(name:eq(x))")


def test_from_qualified_rejects_child_outside_the_collection():
    leaf = FilterLeaf("name", FilterOperator.EQ, "x")
    with pytest.raises(GrammarError):
        CompositeFilter.from_qualified(CompositeOperator.ANY, [leaf], "roles")


# -- errors ------------------------------------------------------------------


@pytest.mark.parametrize(
    "text",
    [
        "and()",
        "and(a:eq(1),)",
        "roles:any()",
        "age:gt(30",
        "age:gt(30)x",
        "and(a:eq(1)) trailing",
        "age",
        "age:",
        "1age:eq(1)",
        "a..b:eq(1)",
        "",
    ],
)
def test_malformed_filters_raise(text):
    with pytest.raises(GrammarError):
        parse_filter(text)


def test_grammar_error_carries_position():
    with pytest.raises(GrammarError) as exc_info:
        parse_filter("age:gt(30)x")
    assert exc_info.value.position is not None
    assert exc_info.value.to_dict()["error"] == "GRAMMAR_ERROR"


# -- sequences ---------------------------------------------------------------


def test_parse_filters_sequence():
    nodes = parse_filters("a:eq(1), or(b:eq(2), c:eq(3))")
    assert len(nodes) == 2


def test_parse_filters_blank():
    assert parse_filters("") == []
    assert parse_filters("   ") == []
    assert parse_filters(None) == []


def test_parse_filters_empty_item():
    with pytest.raises(GrammarError):
        parse_filters("a:eq(1),,b:eq(2)")


# -- formatting --------------------------------------------------------------


def test_format_canonical_form():
    assert format_filter(parse_filter("name:Bob")) == "name:eq(Bob)"
    assert (
        format_filter(parse_filter("AND(age:GT(18),name:Bob)"))
        == "and(age:gt(18), name:eq(Bob))"
    )


def test_format_strips_quantifier_prefix():
    text = "roles:any(permissions:all(code:sw(read)), name:eq(Admin))"
    assert format_filter(parse_filter(text)) == text


@pytest.mark.parametrize(
    "text",
    [
        "name:Bob",
        "and(age:gt(18),isActive:eq(true))",
        "or(name:sw(A), and(age:lt(20), city:eq(Paris)))",
        "roles:any(name:eq(Admin))",
        "projects:all(status:eq(Done), tasks:any(done:eq(false)))",
        "tags:in(a,b, c)",
    ],
)
def test_format_is_stable_after_one_cycle(text):
    once = format_filter(parse_filter(text))
    twice = format_filter(parse_filter(once))
    assert once == twice


def test_parse_of_format_equals_tree():
    tree = CompositeFilter(
        CompositeOperator.OR,
        (
            FilterLeaf("name", FilterOperator.SW, "A"),
            CompositeFilter(
                CompositeOperator.ANY,
                (FilterLeaf("name", FilterOperator.EQ, "Admin"),),
                "roles",
            ),
        ),
    )
    assert parse_filter(format_filter(tree)) == tree


def test_format_filters_sequence():
    nodes = parse_filters("a:eq(1),b:eq(2)")
    assert format_filters(nodes) == "a:eq(1), b:eq(2)"


def test_str_of_node_is_formatted_text():
    assert str(parse_filter("age:gt(3)")) == "age:gt(3)"


# -- sorting -----------------------------------------------------------------


def test_parse_sorting():
    assert parse_sorting("name:desc, age") == [
        SortLeaf("name", SortDirection.DESC),
        SortLeaf("age", SortDirection.ASC),
    ]


def test_parse_sorting_case_insensitive():
    assert parse_sorting("name:DESC")[0].descending


def test_parse_sorting_blank():
    assert parse_sorting("") == []
    assert parse_sorting(None) == []


@pytest.mark.parametrize("text", ["name:up", "name:desc,,age", "1name"])
def test_parse_sorting_errors(text):
    with pytest.raises(GrammarError):
        parse_sorting(text)


def test_format_sorting():
    assert format_sorting(parse_sorting("name:desc,profile.age")) == (
        "name:desc, profile.age:asc"
    )
