"""
Pydantic data classes for GenomeCRISPR.

Every entity is an explicit, frozen record: unknown input fields are dropped
and nothing is attached to an instance after construction.
"""

from __future__ import annotations

from typing import Any, Generic, List, Mapping, Optional, Tuple, TypeVar
from pydantic import BaseModel, ConfigDict, Field, computed_field

from genomecrispr.models.enums import ResultView, SortDirection, SortField


T = TypeVar("T")


# =============================================================================
# Search Input
# =============================================================================

FILTER_FIELDS: Tuple[str, ...] = (
    "query",
    "chr",
    "strand",
    "effect",
    "cellline",
    "condition",
    "cas",
    "screentype",
    "pubmed",
    "start_min",
    "end_max",
    "log2fc_min",
    "log2fc_max",
)


class SearchFilters(BaseModel):
    """
    Snapshot of the user-supplied predicates for one request.

    Values are kept exactly as received (as text); interpretation, trimming
    and validation happen in the condition builder so a malformed value can
    never fail construction.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    query: str = ""
    chr: str = ""
    strand: str = ""
    effect: str = ""
    cellline: str = ""
    condition: str = ""
    cas: str = ""
    screentype: str = ""
    pubmed: str = ""
    start_min: str = ""
    end_max: str = ""
    log2fc_min: str = ""
    log2fc_max: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "SearchFilters":
        """Build filters from an untrusted mapping, ignoring unknown keys."""
        values = {}
        for name in FILTER_FIELDS:
            raw = params.get(name)
            if raw is None:
                continue
            values[name] = raw if isinstance(raw, str) else str(raw)
        return cls(**values)


class SearchRequest(BaseModel):
    """Filters plus pagination and sort directives for one search."""
    model_config = ConfigDict(frozen=True)

    filters: SearchFilters = Field(default_factory=SearchFilters)
    page: int = 1
    page_size: int = 25
    # Echoed back as requested; the query assembler does its own whitelisting
    sort_by: str = SortField.ROWID.value
    sort_order: str = SortDirection.ASC.value
    view: ResultView = ResultView.GENES


# =============================================================================
# Entities
# =============================================================================

class GuideInterval(BaseModel):
    """Genomic interval and effect score shared by the measurement entities."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    start: Optional[int] = None
    end: Optional[int] = None
    log2fc: Optional[float] = None

    @computed_field
    @property
    def midpoint(self) -> Optional[int]:
        if self.start is None or self.end is None:
            return None
        return (self.start + self.end) // 2

    @computed_field
    @property
    def length(self) -> Optional[int]:
        if self.start is None or self.end is None:
            return None
        return abs(self.end - self.start) + 1

    @computed_field
    @property
    def fold_change(self) -> Optional[float]:
        """Linear fold-change, 2 ** log2fc."""
        if self.log2fc is None:
            return None
        try:
            return 2.0 ** self.log2fc
        except OverflowError:
            return None


class Measurement(GuideInterval):
    """One guide-level observation with its gene and experiment context."""
    id: Optional[int] = None
    chr: Optional[str] = None
    strand: Optional[str] = None
    pubmed: Optional[str] = None
    cellline: Optional[str] = None
    condition: Optional[str] = None
    sequence: Optional[str] = None
    symbol: Optional[str] = None
    ensg: Optional[str] = None
    rc_initial: Optional[int] = None
    rc_final: Optional[int] = None
    effect: Optional[str] = None
    cas: Optional[str] = None
    screentype: Optional[str] = None


class SgRNAView(GuideInterval):
    """A measurement as it appears inside a gene view."""
    id: Optional[int] = None
    sequence: Optional[str] = None
    strand: Optional[str] = None
    effect: Optional[str] = None
    rc_initial: Optional[int] = None
    rc_final: Optional[int] = None


def _mean_log2fc(sgrnas: Tuple[SgRNAView, ...]) -> Optional[float]:
    scores = [sg.log2fc for sg in sgrnas if sg.log2fc is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


class CellLineView(BaseModel):
    """Measurements of one gene taken under one experiment context."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    condition: Optional[str] = None
    cas: Optional[str] = None
    screentype: Optional[str] = None
    pubmed: Optional[str] = None
    sgrnas: Tuple[SgRNAView, ...] = ()

    @computed_field
    @property
    def sgrna_count(self) -> int:
        return len(self.sgrnas)

    @computed_field
    @property
    def average_effect(self) -> Optional[float]:
        """Mean log2fc over the sgRNAs with a parseable score."""
        return _mean_log2fc(self.sgrnas)


class GeneView(BaseModel):
    """Gene -> experiment context -> sgRNA tree for one symbol."""
    model_config = ConfigDict(frozen=True)

    symbol: Optional[str] = None
    ensg: Optional[str] = None
    chr: Optional[str] = None
    cell_lines: Tuple[CellLineView, ...] = ()

    @computed_field
    @property
    def total_sgrnas(self) -> int:
        return sum(cl.sgrna_count for cl in self.cell_lines)

    @computed_field
    @property
    def average_effect(self) -> Optional[float]:
        """Mean log2fc over every valid score in every context."""
        return _mean_log2fc(tuple(sg for cl in self.cell_lines for sg in cl.sgrnas))


# =============================================================================
# Payloads
# =============================================================================

class SearchResults(BaseModel, Generic[T]):
    """One page of search results plus the directives that produced it."""
    model_config = ConfigDict(frozen=True)

    results: List[T] = Field(default_factory=list)
    total_rows: int = 0
    total_pages: int = 0
    page: int = 1
    page_size: int = 25
    view: ResultView = ResultView.GENES
    has_search: bool = False
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort_by: str = SortField.ROWID.value
    sort_order: str = SortDirection.ASC.value

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @computed_field
    @property
    def has_prev(self) -> bool:
        return self.page > 1


class Suggestion(BaseModel):
    """Autocomplete entry."""
    value: str
    type: str  # "gene_symbol" or "ensg_id"


class CountBucket(BaseModel):
    """Row count for one value of a grouped column."""
    value: Optional[str] = None
    count: int = 0


class DatabaseStats(BaseModel):
    """Aggregate statistics over the whole dataset."""
    total_records: int = 0
    total_genes: int = 0
    chromosomes: List[CountBucket] = Field(default_factory=list)
    strands: List[CountBucket] = Field(default_factory=list)
    effects: List[CountBucket] = Field(default_factory=list)
    top_cell_lines: List[CountBucket] = Field(default_factory=list)
