"""
Hierarchical gene views.

Folds flat measurement rows into gene -> experiment context -> sgRNA trees.
Ordering follows first appearance in the input at every level, so the
storage query's ORDER BY decides display order.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from genomecrispr.models.data_classes import CellLineView, GeneView
from genomecrispr.views.formatter import format_sgrna, parse_text


Row = Mapping[str, Any]
ContextKey = Tuple[Optional[str], Optional[str]]


def context_key(row: Row) -> ContextKey:
    """Rows sharing (cell line, condition) belong to the same context."""
    return (parse_text(row.get("cellline")), parse_text(row.get("condition")))


def group_rows_by_symbol(rows: Iterable[Row]) -> "OrderedDict[Optional[str], List[Row]]":
    """Group rows by gene symbol, keeping first-seen symbol order."""
    groups: "OrderedDict[Optional[str], List[Row]]" = OrderedDict()
    for row in rows:
        groups.setdefault(parse_text(row.get("symbol")), []).append(row)
    return groups


def build_gene_view(rows: Sequence[Row]) -> Optional[GeneView]:
    """
    Build the view for rows that all share one gene symbol.

    Gene identity (symbol, ensg, chr) comes from the first row. Context
    metadata (cas, screentype, pubmed) comes from the first row of each
    context. Every input row yields exactly one sgRNA.

    Args:
        rows: Raw rows for a single symbol

    Returns:
        Frozen GeneView, or None for an empty sequence
    """
    if not rows:
        return None

    contexts: "OrderedDict[ContextKey, List[Row]]" = OrderedDict()
    for row in rows:
        contexts.setdefault(context_key(row), []).append(row)

    cell_lines = []
    for (name, condition), context_rows in contexts.items():
        first = context_rows[0]
        cell_lines.append(CellLineView(
            name=name,
            condition=condition,
            cas=parse_text(first.get("cas")),
            screentype=parse_text(first.get("screentype")),
            pubmed=parse_text(first.get("pubmed")),
            sgrnas=tuple(format_sgrna(row) for row in context_rows),
        ))

    first_row = rows[0]
    return GeneView(
        symbol=parse_text(first_row.get("symbol")),
        ensg=parse_text(first_row.get("ensg")),
        chr=parse_text(first_row.get("chr")),
        cell_lines=tuple(cell_lines),
    )


def build_gene_views(rows: Iterable[Row]) -> List[GeneView]:
    """Group an arbitrary result set by symbol and build one view per gene."""
    views = []
    for gene_rows in group_rows_by_symbol(rows).values():
        view = build_gene_view(gene_rows)
        if view is not None:
            views.append(view)
    return views

