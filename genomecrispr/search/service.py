"""
Search service.

Runs one request through condition building, query assembly, storage and
response shaping. A service instance wraps a single database connection
and keeps no state between calls.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from genomecrispr.core.errors import GeneNotFoundError, RecordNotFoundError
from genomecrispr.db.database import CrisprDatabase
from genomecrispr.models.data_classes import (
    CountBucket,
    DatabaseStats,
    GeneView,
    Measurement,
    SearchRequest,
    SearchResults,
    Suggestion,
)
from genomecrispr.models.enums import ResultView
from genomecrispr.query.assembler import (
    RELATION,
    PageSpec,
    SortSpec,
    assemble_query,
    assemble_unpaged,
)
from genomecrispr.query.conditions import build_conditions
from genomecrispr.views.formatter import format_measurement, parse_text
from genomecrispr.views.hierarchy import build_gene_view, build_gene_views
from genomecrispr.views.pagination import clamp_page_size, paginate, total_pages

logger = logging.getLogger(__name__)


SUGGEST_MIN_LENGTH = 2
SUGGEST_DEFAULT_LIMIT = 10
SUGGEST_MAX_LIMIT = 50
TOP_CELL_LINES = 10


class CrisprSearchService:
    """
    Search, lookup and statistics over the genome_crispr relation.

    Example:
        with CrisprDatabase(path) as db:
            results = CrisprSearchService(db).search_genes(request)
    """

    def __init__(self, database: CrisprDatabase, relation: str = RELATION):
        self.database = database
        self.relation = relation

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, request: SearchRequest) -> Union[SearchResults[GeneView], SearchResults[Measurement]]:
        """Dispatch on the requested result view."""
        if request.view == ResultView.RECORDS:
            return self.search_records(request)
        return self.search_genes(request)

    def search_records(self, request: SearchRequest) -> SearchResults[Measurement]:
        """Row-level search; pagination is pushed down into SQL."""
        conditions = build_conditions(request.filters)
        page = PageSpec(page=request.page, page_size=request.page_size)
        sort = SortSpec.resolve(request.sort_by, request.sort_order)
        query = assemble_query(conditions, page, sort, self.relation)

        total = self.database.fetch_count(query.count_sql, query.params)
        rows = self.database.fetch_all(query.data_sql, query.data_params)
        logger.debug(f"Record search: {len(conditions)} conditions, {total} rows")

        return SearchResults[Measurement](
            results=[format_measurement(row) for row in rows],
            total_rows=total,
            total_pages=total_pages(total, page.page_size),
            page=page.page,
            page_size=page.page_size,
            view=ResultView.RECORDS,
            has_search=bool(conditions),
            filters=request.filters,
            sort_by=request.sort_by,
            sort_order=request.sort_order,
        )

    def search_genes(self, request: SearchRequest) -> SearchResults[GeneView]:
        """
        Gene-level search.

        Fetches every matching row, groups by symbol, then pages the gene
        views in memory. total_rows is the number of distinct genes.
        Without any active filter nothing is fetched.
        """
        conditions = build_conditions(request.filters)
        page = PageSpec(page=request.page, page_size=request.page_size)

        if not conditions:
            return SearchResults[GeneView](
                page=page.page,
                page_size=page.page_size,
                view=ResultView.GENES,
                has_search=False,
                filters=request.filters,
                sort_by=request.sort_by,
                sort_order=request.sort_order,
            )

        sort = SortSpec.resolve(request.sort_by, request.sort_order)
        rows = self.database.fetch_all(
            assemble_unpaged(conditions, sort, self.relation),
            conditions.params,
        )
        views = build_gene_views(rows)
        page_views, n_genes, n_pages = paginate(views, page.page, page.page_size)
        logger.debug(f"Gene search: {len(rows)} rows grouped into {n_genes} genes")

        return SearchResults[GeneView](
            results=page_views,
            total_rows=n_genes,
            total_pages=n_pages,
            page=page.page,
            page_size=page.page_size,
            view=ResultView.GENES,
            has_search=True,
            filters=request.filters,
            sort_by=request.sort_by,
            sort_order=request.sort_order,
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_record(self, record_id: int) -> Measurement:
        """Fetch one measurement by rowid."""
        row = self.database.fetch_one(
            f"SELECT rowid, * FROM {self.relation} WHERE rowid = ?",
            (record_id,),
        )
        if row is None:
            raise RecordNotFoundError(record_id)
        return format_measurement(row)

    def get_gene(self, symbol: str) -> GeneView:
        """Fetch the full view for one gene symbol (exact match)."""
        rows = self.database.fetch_all(
            f"SELECT rowid, * FROM {self.relation} WHERE symbol = ? ORDER BY rowid",
            (symbol,),
        )
        view = build_gene_view(rows)
        if view is None:
            raise GeneNotFoundError(symbol)
        return view

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def _buckets(self, sql: str) -> List[CountBucket]:
        return [
            CountBucket(value=parse_text(row["value"]), count=int(row["count"]))
            for row in self.database.fetch_all(sql)
        ]

    def stats(self) -> DatabaseStats:
        """Record/gene totals and per-column distributions."""
        relation = self.relation
        return DatabaseStats(
            total_records=self.database.fetch_count(f"SELECT COUNT(*) AS count FROM {relation}"),
            total_genes=self.database.fetch_count(
                f"SELECT COUNT(DISTINCT symbol) AS count FROM {relation}"
            ),
            chromosomes=self._buckets(
                f"SELECT chr AS value, COUNT(*) AS count FROM {relation} GROUP BY chr ORDER BY chr"
            ),
            strands=self._buckets(
                f"SELECT strand AS value, COUNT(*) AS count FROM {relation} "
                f"GROUP BY strand ORDER BY strand"
            ),
            effects=self._buckets(
                f"SELECT effect AS value, COUNT(*) AS count FROM {relation} "
                f"WHERE effect IS NOT NULL AND effect != '' "
                f"GROUP BY effect ORDER BY count DESC, value"
            ),
            top_cell_lines=self._buckets(
                f"SELECT cellline AS value, COUNT(*) AS count FROM {relation} "
                f"GROUP BY cellline ORDER BY count DESC, value LIMIT {TOP_CELL_LINES}"
            ),
        )

    def suggest(self, query: Optional[str], limit: Optional[int] = None) -> List[Suggestion]:
        """
        Autocomplete gene symbols and Ensembl IDs by prefix.

        Args:
            query: Prefix typed by the user; fewer than 2 characters yields nothing
            limit: Maximum suggestions (default 10, capped at 50)
        """
        prefix = (query or "").strip()
        if len(prefix) < SUGGEST_MIN_LENGTH:
            return []

        n = clamp_page_size(limit, SUGGEST_DEFAULT_LIMIT, SUGGEST_MAX_LIMIT)
        pattern = f"{prefix}%"
        rows = self.database.fetch_all(
            f"""
            SELECT DISTINCT symbol AS value, 'gene_symbol' AS type FROM {self.relation}
            WHERE symbol LIKE ? AND symbol IS NOT NULL
            UNION
            SELECT DISTINCT ensg AS value, 'ensg_id' AS type FROM {self.relation}
            WHERE ensg LIKE ? AND ensg IS NOT NULL
            ORDER BY value LIMIT ?
            """,
            (pattern, pattern, n),
        )
        return [Suggestion(value=str(row["value"]), type=row["type"]) for row in rows]
