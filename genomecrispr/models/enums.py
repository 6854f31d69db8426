"""
Core enumerations for GenomeCRISPR.
"""

from enum import Enum
from typing import Optional


class Strand(str, Enum):
    """DNA strand of a guide."""
    PLUS = "+"
    MINUS = "-"


class EffectDirection(str, Enum):
    """Sign of the log2 fold-change a search is restricted to."""
    UP = "up"
    DOWN = "down"


class SortField(str, Enum):
    """Columns a listing may be ordered by."""
    ROWID = "rowid"
    CHR = "chr"
    START = "start"
    END = "end"
    STRAND = "strand"
    SYMBOL = "symbol"
    ENSG = "ensg"
    LOG2FC = "log2fc"
    EFFECT = "effect"
    CELLLINE = "cellline"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["SortField"]:
        """Parse a sort field, returning None for anything outside the whitelist."""
        if value is None:
            return None
        for field in cls:
            if field.value == value:
                return field
        return None


class SortDirection(str, Enum):
    """ORDER BY direction."""
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "SortDirection":
        """Parse a direction case-insensitively, defaulting to ascending."""
        if isinstance(value, str) and value.strip().upper() == "DESC":
            return cls.DESC
        return cls.ASC


class ResultView(str, Enum):
    """Shape of a search payload."""
    GENES = "genes"
    RECORDS = "records"


class ExportFormat(str, Enum):
    """Supported export formats."""
    JSON = "json"
    CSV = "csv"
