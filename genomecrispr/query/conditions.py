"""
Condition builder for search queries.

Turns untrusted filter parameters into parameterized SQL predicates.
All user input travels as bound parameters (?) and never reaches the
predicate text; column names come from fixed tables below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

from genomecrispr.models.data_classes import SearchFilters
from genomecrispr.models.enums import EffectDirection, Strand
from genomecrispr.views.formatter import parse_float


# Columns searched by the free-text query
TEXT_SEARCH_COLUMNS: Tuple[str, ...] = ("symbol", "ensg")

# Experiment-context filters matched as case-insensitive substrings
CONTEXT_FILTER_COLUMNS: Tuple[str, ...] = ("cellline", "condition", "cas", "screentype", "pubmed")

# filter name -> (SQL expression, comparison operator)
RANGE_FILTERS = {
    "start_min": ("CAST(start AS INTEGER)", ">="),
    "end_max": ('CAST("end" AS INTEGER)', "<="),
    "log2fc_min": ("CAST(log2fc AS REAL)", ">="),
    "log2fc_max": ("CAST(log2fc AS REAL)", "<="),
}

LOG2FC_EXPR = "CAST(log2fc AS REAL)"


@dataclass(frozen=True)
class Condition:
    """One predicate fragment with the values bound to its placeholders."""
    fragment: str
    values: Tuple[Any, ...]

    @property
    def placeholder_count(self) -> int:
        return self.fragment.count("?")


@dataclass(frozen=True)
class ConditionSet:
    """
    Immutable, ordered collection of conditions.

    ``add`` returns a new set, so a set handed to one query can never be
    changed by another.
    """
    conditions: Tuple[Condition, ...] = ()

    def add(self, fragment: str, *values: Any) -> "ConditionSet":
        return ConditionSet(self.conditions + (Condition(fragment, tuple(values)),))

    @property
    def fragments(self) -> Tuple[str, ...]:
        return tuple(c.fragment for c in self.conditions)

    @property
    def params(self) -> Tuple[Any, ...]:
        """Bound values flattened in placeholder order."""
        return tuple(v for c in self.conditions for v in c.values)

    def where_clause(self) -> str:
        """Return ' WHERE a AND b ...' or an empty string."""
        if not self.conditions:
            return ""
        return " WHERE " + " AND ".join(self.fragments)

    def __len__(self) -> int:
        return len(self.conditions)

    def __bool__(self) -> bool:
        return bool(self.conditions)


def _text(value: Any) -> str:
    """Trimmed text of a raw filter value ('' for missing)."""
    if value is None:
        return ""
    return str(value).strip()


def _finite_number(value: Any) -> Optional[float]:
    text = _text(value)
    if not text:
        return None
    return parse_float(text)


def add_text_query(conditions: ConditionSet, query: Any) -> ConditionSet:
    """Substring match of the query against every text search column."""
    text = _text(query)
    if not text:
        return conditions
    pattern = f"%{text}%"
    fragment = "(" + " OR ".join(f"{col} LIKE ?" for col in TEXT_SEARCH_COLUMNS) + ")"
    # One bound value per placeholder
    return conditions.add(fragment, *([pattern] * len(TEXT_SEARCH_COLUMNS)))


def add_chromosome(conditions: ConditionSet, chromosome: Any) -> ConditionSet:
    text = _text(chromosome)
    if not text:
        return conditions
    return conditions.add("chr = ?", text)


def add_strand(conditions: ConditionSet, strand: Any) -> ConditionSet:
    """Exact strand match; anything but '+' or '-' is ignored."""
    text = _text(strand)
    if text not in (Strand.PLUS.value, Strand.MINUS.value):
        return conditions
    return conditions.add("strand = ?", text)


def add_effect(conditions: ConditionSet, effect: Any) -> ConditionSet:
    """Restrict log2fc to > 0 ('up') or < 0 ('down'); zero matches neither."""
    text = _text(effect)
    if text == EffectDirection.UP.value:
        return conditions.add(f"{LOG2FC_EXPR} > ?", 0)
    if text == EffectDirection.DOWN.value:
        return conditions.add(f"{LOG2FC_EXPR} < ?", 0)
    return conditions


def add_range(conditions: ConditionSet, name: str, value: Any) -> ConditionSet:
    """Numeric bound, included only when the value is a finite number."""
    number = _finite_number(value)
    if number is None:
        return conditions
    expression, operator = RANGE_FILTERS[name]
    return conditions.add(f"{expression} {operator} ?", number)


def add_context(conditions: ConditionSet, column: str, value: Any) -> ConditionSet:
    text = _text(value)
    if not text:
        return conditions
    return conditions.add(f"{column} LIKE ?", f"%{text}%")


def build_conditions(filters: Union[SearchFilters, Mapping[str, Any]]) -> ConditionSet:
    """
    Build the ordered condition set for a filter snapshot.

    Args:
        filters: SearchFilters, or any mapping of filter name -> raw value

    Returns:
        ConditionSet; empty when no recognized filter carries a usable value
    """
    if not isinstance(filters, SearchFilters):
        filters = SearchFilters.from_params(filters)

    conditions = ConditionSet()
    conditions = add_text_query(conditions, filters.query)
    conditions = add_chromosome(conditions, filters.chr)
    conditions = add_strand(conditions, filters.strand)
    conditions = add_effect(conditions, filters.effect)
    for name in RANGE_FILTERS:
        conditions = add_range(conditions, name, getattr(filters, name))
    for column in CONTEXT_FILTER_COLUMNS:
        conditions = add_context(conditions, column, getattr(filters, column))
    return conditions
