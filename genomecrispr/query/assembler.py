"""
Query assembler.

Combines a ConditionSet with sorting and pagination into the SQL executed
against the ``genome_crispr`` relation (flat table or compatibility view).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from genomecrispr.db.database import SQLITE_MAX_INT
from genomecrispr.models.enums import SortDirection, SortField
from genomecrispr.query.conditions import ConditionSet


RELATION = "genome_crispr"

DEFAULT_SORT_FIELD = SortField.ROWID
DEFAULT_PAGE_SIZE = 25

# Sortable columns -> fixed ORDER BY expression. Request values are only
# ever used as keys into this table.
SORT_EXPRESSIONS = {
    SortField.ROWID: "rowid",
    SortField.CHR: "chr",
    SortField.START: "CAST(start AS INTEGER)",
    SortField.END: 'CAST("end" AS INTEGER)',
    SortField.STRAND: "strand",
    SortField.SYMBOL: "symbol",
    SortField.ENSG: "ensg",
    SortField.LOG2FC: "CAST(log2fc AS REAL)",
    SortField.EFFECT: "effect",
    SortField.CELLLINE: "cellline",
}


@dataclass(frozen=True)
class SortSpec:
    """Whitelisted sort field and direction."""
    field: SortField = DEFAULT_SORT_FIELD
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def resolve(cls, field: Optional[str], direction: Optional[str]) -> "SortSpec":
        """Map raw request values onto the whitelist, falling back silently."""
        return cls(
            field=SortField.from_string(field) or DEFAULT_SORT_FIELD,
            direction=SortDirection.from_string(direction),
        )

    def order_clause(self) -> str:
        clause = f" ORDER BY {SORT_EXPRESSIONS[self.field]} {self.direction.value}"
        if self.field != SortField.ROWID:
            # Stable order across pages for duplicate sort keys
            clause += ", rowid ASC"
        return clause


@dataclass(frozen=True)
class PageSpec:
    """
    Row window for a page query.

    page is always >= 1 and page_size always positive. Pages whose offset
    would not fit an SQLite INTEGER are moved to the last representable
    window, which reads as an empty page.
    """
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size < 1:
            object.__setattr__(self, "page_size", DEFAULT_PAGE_SIZE)
        elif self.page_size > SQLITE_MAX_INT:
            object.__setattr__(self, "page_size", SQLITE_MAX_INT)
        if self.page < 1:
            object.__setattr__(self, "page", 1)
        max_page = SQLITE_MAX_INT // self.page_size
        if self.page > max_page:
            object.__setattr__(self, "page", max_page)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


@dataclass(frozen=True)
class AssembledQuery:
    """Count query and data query sharing one predicate."""
    count_sql: str
    data_sql: str
    params: Tuple[Any, ...]
    data_params: Tuple[Any, ...]


def assemble_count(conditions: ConditionSet, relation: str = RELATION) -> str:
    return f"SELECT COUNT(*) AS count FROM {relation}" + conditions.where_clause()


def assemble_unpaged(
    conditions: ConditionSet,
    sort: SortSpec,
    relation: str = RELATION,
) -> str:
    """Full filtered, ordered selection with no LIMIT (grouped search)."""
    return f"SELECT rowid, * FROM {relation}" + conditions.where_clause() + sort.order_clause()


def assemble_query(
    conditions: ConditionSet,
    page: PageSpec,
    sort: SortSpec,
    relation: str = RELATION,
) -> AssembledQuery:
    """
    Build the count and page queries for a search.

    Args:
        conditions: Predicates from build_conditions()
        page: Row window
        sort: Resolved sort specification
        relation: Table or view to query

    Returns:
        AssembledQuery; LIMIT and OFFSET are bound parameters appended
        after the predicate values in ``data_params``.
    """
    params = conditions.params
    data_sql = assemble_unpaged(conditions, sort, relation) + " LIMIT ? OFFSET ?"
    return AssembledQuery(
        count_sql=assemble_count(conditions, relation),
        data_sql=data_sql,
        params=params,
        data_params=params + (page.limit, page.offset),
    )
