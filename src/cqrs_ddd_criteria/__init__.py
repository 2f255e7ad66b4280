from .ast import (
    ColumnPath,
    CompositeFilter,
    FilterLeaf,
    FilterNode,
    SortLeaf,
    iter_columns,
    iter_leaves,
    node_from_dict,
)
from .builder import Column, ColumnSet, CriteriaBuilder, and_, column, columns, or_
from .cache import (
    CacheStatistics,
    PredicateCache,
    get_default_cache,
    structural_hash,
)
from .casting import (
    CastOptions,
    CastRegistry,
    ColumnMapEntry,
    SortMapEntry,
    cast_criteria,
    cast_filters,
    cast_sorting,
)
from .coercion import coerce_value, format_value, parse_interval
from .compiler import (
    CompileOptions,
    CompilerBackend,
    FilterCompiler,
    MemoryBackend,
    SortKey,
    apply_filter,
    apply_sorting,
    compile_filter,
    compile_sorting,
)
from .criteria import Criteria
from .evaluator import MemoryOperator, MemoryOperatorRegistry
from .exceptions import (
    CoercionError,
    CriteriaError,
    GrammarError,
    OperatorMismatchError,
    ResolutionError,
    UnmappedColumnError,
)
from .introspection import (
    Accessor,
    ResolvedColumn,
    describe_type,
    element_type_of,
    resolve_column,
)
from .operators import CompositeOperator, FilterOperator, SortDirection
from .operators_memory import DEFAULT_MEMORY_REGISTRY, build_default_registry
from .specification import CriteriaSpecification, ISpecification
from .syntax import (
    format_filter,
    format_filters,
    format_sorting,
    parse_filter,
    parse_filters,
    parse_sorting,
    split_arguments,
)

__all__ = [
    # Core types
    "FilterOperator",
    "CompositeOperator",
    "SortDirection",
    "ColumnPath",
    "FilterLeaf",
    "CompositeFilter",
    "FilterNode",
    "SortLeaf",
    "Criteria",
    "iter_columns",
    "iter_leaves",
    "node_from_dict",
    # Grammar
    "parse_filter",
    "parse_filters",
    "parse_sorting",
    "format_filter",
    "format_filters",
    "format_sorting",
    "split_arguments",
    # Builder
    "Column",
    "ColumnSet",
    "CriteriaBuilder",
    "column",
    "columns",
    "and_",
    "or_",
    # Resolution / coercion
    "Accessor",
    "ResolvedColumn",
    "describe_type",
    "element_type_of",
    "resolve_column",
    "coerce_value",
    "format_value",
    "parse_interval",
    # Compilation
    "CompileOptions",
    "CompilerBackend",
    "FilterCompiler",
    "MemoryBackend",
    "SortKey",
    "compile_filter",
    "apply_filter",
    "compile_sorting",
    "apply_sorting",
    # Evaluator / strategy
    "MemoryOperator",
    "MemoryOperatorRegistry",
    "DEFAULT_MEMORY_REGISTRY",
    "build_default_registry",
    # Casting
    "CastOptions",
    "CastRegistry",
    "ColumnMapEntry",
    "SortMapEntry",
    "cast_criteria",
    "cast_filters",
    "cast_sorting",
    # Cache
    "CacheStatistics",
    "PredicateCache",
    "get_default_cache",
    "structural_hash",
    # Specification
    "CriteriaSpecification",
    "ISpecification",
    # Exceptions
    "CriteriaError",
    "GrammarError",
    "ResolutionError",
    "CoercionError",
    "OperatorMismatchError",
    "UnmappedColumnError",
]
