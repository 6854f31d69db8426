"""
GenomeCRISPR - CRISPR screen data warehouse

Search, browse and export guide-level CRISPR screening measurements
stored in an embedded SQLite database.
"""

__version__ = "0.1.0"
__author__ = "GenomeCRISPR Team"

from genomecrispr.models.enums import SortField, SortDirection, EffectDirection, Strand
from genomecrispr.models.data_classes import (
    SearchFilters,
    SearchRequest,
    Measurement,
    GeneView,
    SearchResults,
)

__all__ = [
    # Enums
    "SortField",
    "SortDirection",
    "EffectDirection",
    "Strand",
    # Data classes
    "SearchFilters",
    "SearchRequest",
    "Measurement",
    "GeneView",
    "SearchResults",
]
