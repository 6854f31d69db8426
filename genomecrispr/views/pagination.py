"""
Pagination helpers.

Request clamping for page/page_size, and in-memory paging of grouped
results. Gene views cannot be paged in SQL because one gene spans an
unknown number of rows, so grouped searches fetch every matching row and
slice after grouping. This costs a full fetch per request; it is the
price of exact gene counts.
"""

from __future__ import annotations

import math
from typing import Any, List, Mapping, Sequence, Tuple, TypeVar

from genomecrispr.models.data_classes import SearchFilters, SearchRequest
from genomecrispr.models.enums import ResultView, SortDirection, SortField
from genomecrispr.views.formatter import parse_int


T = TypeVar("T")


def clamp_page(value: Any) -> int:
    """Pages start at 1; missing, invalid or smaller values become 1."""
    page = parse_int(value)
    if page is None or page < 1:
        return 1
    return page


def clamp_page_size(value: Any, default: int, maximum: int) -> int:
    """Non-positive or invalid sizes become ``default``; large ones ``maximum``."""
    size = parse_int(value)
    if size is None or size <= 0:
        size = default
    return min(size, maximum)


def total_pages(total: int, page_size: int) -> int:
    if total <= 0 or page_size <= 0:
        return 0
    return math.ceil(total / page_size)


def slice_bounds(page: int, page_size: int) -> Tuple[int, int]:
    start = (max(page, 1) - 1) * page_size
    return start, start + page_size


def paginate(items: Sequence[T], page: int, page_size: int) -> Tuple[List[T], int, int]:
    """
    Slice an already grouped sequence.

    Returns:
        (page items, total item count, total page count)
    """
    start, stop = slice_bounds(page, page_size)
    return list(items[start:stop]), len(items), total_pages(len(items), page_size)


def parse_search_request(
    params: Mapping[str, Any],
    default_page_size: int,
    max_page_size: int,
    page_size_key: str = "limit",
) -> SearchRequest:
    """
    Build a SearchRequest from raw query parameters.

    Accepts ``sort_by``/``sortBy`` and ``sort_order``/``sortOrder``. Sort values
    are kept as received; whitelisting happens in the query assembler.
    """
    sort_by = params.get("sort_by", params.get("sortBy")) or SortField.ROWID.value
    sort_order = params.get("sort_order", params.get("sortOrder")) or SortDirection.ASC.value

    view = ResultView.GENES
    if str(params.get("view", "")).strip().lower() == ResultView.RECORDS.value:
        view = ResultView.RECORDS

    return SearchRequest(
        filters=SearchFilters.from_params(params),
        page=clamp_page(params.get("page")),
        page_size=clamp_page_size(params.get(page_size_key), default_page_size, max_page_size),
        sort_by=str(sort_by),
        sort_order=str(sort_order),
        view=view,
    )
