"""Models package."""

from genomecrispr.models.enums import (
    Strand,
    EffectDirection,
    SortField,
    SortDirection,
    ResultView,
    ExportFormat,
)
from genomecrispr.models.data_classes import (
    SearchFilters,
    SearchRequest,
    Measurement,
    SgRNAView,
    CellLineView,
    GeneView,
    SearchResults,
    Suggestion,
    CountBucket,
    DatabaseStats,
)

__all__ = [
    # Enums
    "Strand",
    "EffectDirection",
    "SortField",
    "SortDirection",
    "ResultView",
    "ExportFormat",
    # Data classes
    "SearchFilters",
    "SearchRequest",
    "Measurement",
    "SgRNAView",
    "CellLineView",
    "GeneView",
    "SearchResults",
    "Suggestion",
    "CountBucket",
    "DatabaseStats",
]
