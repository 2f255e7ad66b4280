from pytest_archon import archrule


def test_core_is_backend_independent() -> None:
    """
    Parsing, resolution and in-memory compilation must not import the
    SQLAlchemy backend.  ``specification`` dispatches to it lazily, and the
    package root re-exports ``specification``.
    """
    (
        archrule("core_no_sqla")
        .match("cqrs_ddd_criteria*")
        .exclude("cqrs_ddd_criteria")
        .exclude("cqrs_ddd_criteria.sqla*")
        .exclude("cqrs_ddd_criteria.specification")
        .should_not_import("cqrs_ddd_criteria.sqla*")
        .check("cqrs_ddd_criteria")
    )


def test_tree_layer_isolation() -> None:
    """
    The filter tree and its text grammar are the lowest level.
    They must not depend on resolution, compilation or casting.
    """
    (
        archrule("tree_isolation")
        .match("cqrs_ddd_criteria.ast")
        .match("cqrs_ddd_criteria.syntax")
        .match("cqrs_ddd_criteria.operators")
        .should_not_import("cqrs_ddd_criteria.introspection")
        .should_not_import("cqrs_ddd_criteria.compiler")
        .should_not_import("cqrs_ddd_criteria.casting")
        .should_not_import("cqrs_ddd_criteria.cache")
        .check("cqrs_ddd_criteria")
    )


def test_memory_operators_layering() -> None:
    """
    In-memory operator strategies should not depend on the compiler that
    drives them.
    """
    (
        archrule("memory_operators_layering")
        .match("cqrs_ddd_criteria.operators_memory*")
        .should_not_import("cqrs_ddd_criteria.compiler")
        .should_not_import("cqrs_ddd_criteria.specification")
        .check("cqrs_ddd_criteria")
    )
