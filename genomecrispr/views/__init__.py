"""Response shaping: entity formatting, gene views and pagination."""

from genomecrispr.views.formatter import (
    format_measurement,
    format_sgrna,
    parse_float,
    parse_int,
    parse_text,
)
from genomecrispr.views.hierarchy import (
    build_gene_view,
    build_gene_views,
    group_rows_by_symbol,
)
from genomecrispr.views.pagination import (
    clamp_page,
    clamp_page_size,
    paginate,
    parse_search_request,
    total_pages,
)

__all__ = [
    "format_measurement",
    "format_sgrna",
    "parse_float",
    "parse_int",
    "parse_text",
    "build_gene_view",
    "build_gene_views",
    "group_rows_by_symbol",
    "clamp_page",
    "clamp_page_size",
    "paginate",
    "parse_search_request",
    "total_pages",
]
