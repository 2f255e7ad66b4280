"""Tests for exceptions module."""

from __future__ import annotations

from cqrs_ddd_criteria.exceptions import (
    CoercionError,
    CriteriaError,
    GrammarError,
    OperatorMismatchError,
    ResolutionError,
    UnmappedColumnError,
)

# -- GrammarError ------------------------------------------------------------


def test_grammar_error_message():
    err = GrammarError("Unbalanced parentheses", text="and(a:eq(1)", position=11)
    assert "Unbalanced parentheses" in str(err)
    assert "position 11" in str(err)
    assert err.to_dict() == {
        "error": "GRAMMAR_ERROR",
        "message": "Unbalanced parentheses",
        "text": "and(a:eq(1)",
        "position": 11,
    }


# -- ResolutionError ---------------------------------------------------------


def test_resolution_error_fuzzy_suggestion():
    err = ResolutionError(
        "profile.adress.city", "adress", "Profile", ["address", "bio", "id"]
    )
    assert "profile.adress.city" in str(err)
    assert "address" in err.suggestions
    assert "Did you mean" in str(err)


def test_resolution_error_no_matches():
    err = ResolutionError("zzz", "zzz", "User", ["name", "age"])
    d = err.to_dict()
    assert d["error"] == "RESOLUTION_ERROR"
    assert d["suggestions"] == []
    assert d["available"] == ["age", "name"]


def test_resolution_error_reason_overrides_message():
    err = ResolutionError(
        "roles.name", "roles", "User", reason="'roles' is a collection"
    )
    assert "'roles' is a collection" in str(err)


def test_resolution_error_long_member_list_is_truncated():
    members = [f"field_{i:02d}" for i in range(20)]
    err = ResolutionError("x", "x", "Wide", members)
    assert "..." in str(err)


# -- CoercionError -----------------------------------------------------------


def test_coercion_error_is_value_error():
    err = CoercionError("abc", "int", "invalid literal")
    assert isinstance(err, ValueError)
    assert str(err) == "Cannot convert 'abc' to int: invalid literal"
    assert err.to_dict()["type"] == "int"


# -- OperatorMismatchError ---------------------------------------------------


def test_operator_mismatch_message():
    err = OperatorMismatchError("sw", "int", "age", "only text columns")
    assert "'sw'" in str(err)
    assert "(column 'age')" in str(err)
    assert err.to_dict() == {
        "error": "OPERATOR_MISMATCH",
        "operator": "sw",
        "type": "int",
        "column": "age",
    }


# -- UnmappedColumnError -----------------------------------------------------


def test_unmapped_columns():
    err = UnmappedColumnError(["age", "email"])
    assert str(err) == "The following columns are unknown: age, email"
    assert err.to_dict()["columns"] == ["age", "email"]


# -- Hierarchy ---------------------------------------------------------------


def test_all_errors_share_a_base():
    for err in (
        GrammarError("x"),
        ResolutionError("a", "a", "T"),
        CoercionError("a", "int"),
        OperatorMismatchError("gt", "bool"),
        UnmappedColumnError(["a"]),
    ):
        assert isinstance(err, CriteriaError)


def test_base_to_dict():
    assert CriteriaError("boom").to_dict() == {
        "error": "CriteriaError",
        "message": "boom",
    }
