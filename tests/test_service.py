"""
Search service tests against real SQLite databases.

Uses the bundled example dataset:
    TP53  chr17  HeLa x3, Jiyoye x2   all down
    BRCA1 chr17  HeLa x2              up (1.2, 0.8)
    EGFR  chr7   KBM7/treatment x2    up (2.8, 3.1)
    MYC   chr8   HeLa x1              down (-0.5)
    KRAS  chr12  Jiyoye x1            up (1.7)
"""

import pytest

from conftest import make_measurement
from genomecrispr.core.errors import GeneNotFoundError, RecordNotFoundError, StorageError
from genomecrispr.db.database import CrisprDatabase
from genomecrispr.models.data_classes import SearchFilters, SearchRequest
from genomecrispr.models.enums import ResultView
from genomecrispr.search.service import CrisprSearchService


def _request(view=ResultView.GENES, page=1, page_size=25, sort_by="rowid", sort_order="ASC", **filters):
    return SearchRequest(
        filters=SearchFilters.from_params(filters),
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        view=view,
    )


# =============================================================================
# Gene-level search
# =============================================================================

class TestSearchGenes:
    """Grouped search over the example dataset."""

    def test_single_gene(self, service):
        results = service.search_genes(_request(query="TP53"))
        assert results.has_search is True
        assert results.total_rows == 1
        assert results.total_pages == 1

        gene = results.results[0]
        assert gene.symbol == "TP53"
        assert gene.total_sgrnas == 5
        assert [(cl.name, cl.sgrna_count) for cl in gene.cell_lines] == [("HeLa", 3), ("Jiyoye", 2)]

    def test_no_filters_returns_nothing(self, service):
        results = service.search_genes(_request())
        assert results.has_search is False
        assert results.results == []
        assert results.total_rows == 0
        assert results.total_pages == 0

    def test_effect_up(self, service):
        results = service.search_genes(_request(effect="up"))
        assert [g.symbol for g in results.results] == ["BRCA1", "EGFR", "KRAS"]
        assert results.total_rows == 3

    def test_sort_by_symbol_desc(self, service):
        results = service.search_genes(_request(effect="up", sort_by="symbol", sort_order="DESC"))
        assert [g.symbol for g in results.results] == ["KRAS", "EGFR", "BRCA1"]

    def test_genes_are_paged_after_grouping(self, service):
        results = service.search_genes(_request(effect="up", page=2, page_size=2))
        assert [g.symbol for g in results.results] == ["KRAS"]
        assert results.total_rows == 3
        assert results.total_pages == 2
        assert results.has_prev is True
        assert results.has_next is False

    def test_page_past_end(self, service):
        results = service.search_genes(_request(effect="up", page=10, page_size=2))
        assert results.results == []
        assert results.total_rows == 3

    def test_grouping_across_contexts(self, make_db):
        path = make_db([
            make_measurement(symbol="BRCA1", cellline="HeLa", sequence="AAAA"),
            make_measurement(symbol="BRCA1", cellline="HeLa", sequence="CCCC"),
            make_measurement(symbol="BRCA1", cellline="KBM7", sequence="GGGG"),
        ])
        with CrisprDatabase(path) as db:
            results = CrisprSearchService(db).search_genes(_request(query="BRCA1"))

        assert results.total_rows == 1
        gene = results.results[0]
        assert gene.total_sgrnas == 3
        assert len(gene.cell_lines) == 2

    def test_filters_are_echoed(self, service):
        results = service.search_genes(_request(query="TP53", sort_by="bogus"))
        assert results.filters.query == "TP53"
        assert results.sort_by == "bogus"


# =============================================================================
# Record-level search
# =============================================================================

class TestSearchRecords:
    """Flat search with pagination pushed into SQL."""

    def test_pages_and_counts(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, chr="17", page_size=3))
        assert results.total_rows == 7
        assert results.total_pages == 3
        assert len(results.results) == 3
        assert [m.id for m in results.results] == [1, 2, 3]

    def test_last_page(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, chr="17", page=3, page_size=3))
        assert [m.id for m in results.results] == [7]
        assert results.has_next is False

    def test_sort_by_log2fc(self, service):
        results = service.search_records(
            _request(view=ResultView.RECORDS, sort_by="log2fc", sort_order="ASC", page_size=2)
        )
        assert results.total_rows == 11
        assert [m.log2fc for m in results.results] == [-3.2, -2.5]

    def test_unknown_sort_falls_back_to_rowid(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, sort_by="nope", page_size=3))
        assert [m.id for m in results.results] == [1, 2, 3]

    def test_context_filter_is_case_insensitive(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, cellline="hela"))
        assert results.total_rows == 6

    def test_log2fc_window(self, service):
        results = service.search_records(
            _request(view=ResultView.RECORDS, log2fc_min="1", log2fc_max="3")
        )
        assert sorted(m.log2fc for m in results.results) == [1.2, 1.7, 2.8]

    def test_strand_and_effect_combined(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, strand="-", effect="up"))
        assert {m.symbol for m in results.results} == {"EGFR"}
        assert results.total_rows == 2

    def test_effect_zero_matches_neither(self, make_db):
        path = make_db([make_measurement(log2fc=v, sequence=f"S{i}") for i, v in enumerate([-1, 0, 2, 3])])
        with CrisprDatabase(path) as db:
            svc = CrisprSearchService(db)
            up = svc.search_records(_request(view=ResultView.RECORDS, effect="up"))
            down = svc.search_records(_request(view=ResultView.RECORDS, effect="down"))
        assert up.total_rows == 2
        assert down.total_rows == 1

    def test_hostile_query_matches_nothing(self, service):
        results = service.search_records(
            _request(view=ResultView.RECORDS, query="x' OR '1'='1")
        )
        assert results.total_rows == 0
        assert service.stats().total_records == 11

    def test_dispatch_on_view(self, service):
        assert service.search(_request(view=ResultView.RECORDS, query="MYC")).view == ResultView.RECORDS
        assert service.search(_request(query="MYC")).view == ResultView.GENES


class TestFlatTextTable:
    """Numbers stored as TEXT still filter and sort numerically."""

    def test_range_compares_numerically(self, flat_db):
        with CrisprDatabase(flat_db) as db:
            svc = CrisprSearchService(db)
            results = svc.search_records(_request(view=ResultView.RECORDS, start_min="1000"))
        assert [m.start for m in results.results] == [1000, 20000]

    def test_numeric_sort(self, flat_db):
        with CrisprDatabase(flat_db) as db:
            results = CrisprSearchService(db).search_records(
                _request(view=ResultView.RECORDS, sort_by="start", sort_order="DESC")
            )
        assert [m.start for m in results.results] == [20000, 1000, 999]

    def test_malformed_values_become_none(self, flat_db):
        with CrisprDatabase(flat_db) as db:
            record = CrisprSearchService(db).get_record(3)
        assert record.log2fc is None
        assert record.fold_change is None
        assert record.rc_initial is None
        assert record.rc_final == 12


# =============================================================================
# Lookups
# =============================================================================

class TestLookups:

    def test_get_record(self, service):
        record = service.get_record(1)
        assert record.id == 1
        assert record.symbol == "TP53"
        assert record.sequence == "GACTCCAGTGGTAATCTACT"
        assert record.midpoint == 7572037
        assert record.length == 23

    def test_missing_record(self, service):
        with pytest.raises(RecordNotFoundError) as exc_info:
            service.get_record(999)
        assert exc_info.value.record_id == 999

    def test_get_gene(self, service):
        gene = service.get_gene("EGFR")
        assert gene.chr == "7"
        assert len(gene.cell_lines) == 1
        assert gene.cell_lines[0].name == "KBM7"
        assert gene.cell_lines[0].condition == "treatment"
        assert gene.average_effect == pytest.approx(2.95)

    def test_gene_lookup_is_exact(self, service):
        with pytest.raises(GeneNotFoundError):
            service.get_gene("tp53")


# =============================================================================
# Aggregates
# =============================================================================

class TestStatsAndSuggest:

    def test_stats(self, service):
        stats = service.stats()
        assert stats.total_records == 11
        assert stats.total_genes == 5
        assert {b.value: b.count for b in stats.chromosomes} == {"12": 1, "17": 7, "7": 2, "8": 1}
        assert [(b.value, b.count) for b in stats.top_cell_lines] == [("HeLa", 6), ("Jiyoye", 3), ("KBM7", 2)]
        assert [(b.value, b.count) for b in stats.effects] == [("down", 6), ("up", 5)]

    def test_suggest_symbol(self, service):
        suggestions = service.suggest("TP")
        assert [(s.value, s.type) for s in suggestions] == [("TP53", "gene_symbol")]

    def test_suggest_ensg(self, service):
        suggestions = service.suggest("ENSG000001")
        assert [s.value for s in suggestions] == [
            "ENSG00000133703", "ENSG00000136997", "ENSG00000141510", "ENSG00000146648",
        ]
        assert all(s.type == "ensg_id" for s in suggestions)

    def test_suggest_limit(self, service):
        assert len(service.suggest("ENSG", limit=2)) == 2

    @pytest.mark.parametrize("query", [None, "", "T", " "])
    def test_short_prefix(self, service, query):
        assert service.suggest(query) == []


# =============================================================================
# Storage failures
# =============================================================================

class TestStorage:

    def test_missing_database(self, tmp_path):
        db = CrisprDatabase(tmp_path / "missing.db")
        with pytest.raises(StorageError, match="init-db"):
            db.fetch_all("SELECT 1")

    def test_bad_sql(self, database):
        with pytest.raises(StorageError):
            database.fetch_all("SELECT * FROM no_such_table")

    def test_read_only(self, database):
        with pytest.raises(StorageError):
            database.fetch_all("DELETE FROM sgrnas")

    def test_existing_file_not_overwritten(self, example_db):
        from genomecrispr.db.schema import initialize_database

        with pytest.raises(StorageError):
            initialize_database(example_db)
        assert initialize_database(example_db, with_example_data=True, overwrite=True) == 11


class _FailingDataFetch(CrisprDatabase):
    """Counts succeed; every row fetch fails."""

    def __init__(self, db_path):
        super().__init__(db_path)
        self.counted = 0

    def fetch_count(self, sql, params=()):
        self.counted += 1
        return super().fetch_count(sql, params)

    def fetch_all(self, sql, params=()):
        raise StorageError("Database query failed: disk I/O error")


class TestPartialFailure:

    def test_data_failure_after_count_propagates(self, example_db):
        with _FailingDataFetch(example_db) as db:
            svc = CrisprSearchService(db)
            results = None
            with pytest.raises(StorageError):
                results = svc.search_records(_request(view=ResultView.RECORDS, chr="17"))

        assert db.counted == 1
        assert results is None

    def test_page_size_falls_back_to_default(self, service):
        results = service.search_records(SearchRequest(view=ResultView.RECORDS, page_size=0))
        assert results.page_size == 25
        assert len(results.results) == 11
        assert results.total_pages == 1

    def test_out_of_range_record_id(self, service):
        with pytest.raises(StorageError):
            service.get_record(10 ** 20)

    def test_out_of_range_page_is_empty(self, service):
        results = service.search_records(_request(view=ResultView.RECORDS, page=10 ** 20))
        assert results.results == []
        assert results.total_rows == 11
