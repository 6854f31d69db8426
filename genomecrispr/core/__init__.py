"""Core utilities package."""

from genomecrispr.core.errors import (
    GenomeCrisprError,
    StorageError,
    RecordNotFoundError,
    GeneNotFoundError,
    InvalidParameterError,
)
from genomecrispr.core.logs import configure_logging

__all__ = [
    "GenomeCrisprError",
    "StorageError",
    "RecordNotFoundError",
    "GeneNotFoundError",
    "InvalidParameterError",
    "configure_logging",
]
