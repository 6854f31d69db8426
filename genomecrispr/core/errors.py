"""
Exception hierarchy for GenomeCRISPR.

Lookups that find nothing raise the *NotFoundError types so callers can
answer "not found" instead of reporting a failure.
"""


class GenomeCrisprError(Exception):
    """Base class for all GenomeCRISPR errors."""


class StorageError(GenomeCrisprError, RuntimeError):
    """Raised when the database cannot be opened or a query fails."""


class RecordNotFoundError(GenomeCrisprError, LookupError):
    """Raised when no measurement exists for a record ID."""

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class GeneNotFoundError(GenomeCrisprError, LookupError):
    """Raised when no measurement exists for a gene symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Gene not found: {symbol}")


class InvalidParameterError(GenomeCrisprError, ValueError):
    """Raised by request handling for parameters that cannot fall back to a default."""
    pass
