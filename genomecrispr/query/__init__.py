"""Query construction: conditions, sorting and pagination."""

from genomecrispr.query.conditions import Condition, ConditionSet, build_conditions
from genomecrispr.query.assembler import (
    AssembledQuery,
    PageSpec,
    SortSpec,
    assemble_count,
    assemble_query,
    assemble_unpaged,
)

__all__ = [
    "Condition",
    "ConditionSet",
    "build_conditions",
    "AssembledQuery",
    "PageSpec",
    "SortSpec",
    "assemble_count",
    "assemble_query",
    "assemble_unpaged",
]
