"""Search orchestration package."""

from genomecrispr.search.service import CrisprSearchService

__all__ = ["CrisprSearchService"]
