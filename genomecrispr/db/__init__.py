"""Storage package: SQLite schema and query execution."""

from genomecrispr.db.database import SQLITE_MAX_INT, SQLITE_MIN_INT, CrisprDatabase
from genomecrispr.db.schema import (
    EXAMPLE_MEASUREMENTS,
    create_schema,
    initialize_database,
    load_measurements,
)

__all__ = [
    "CrisprDatabase",
    "SQLITE_MAX_INT",
    "SQLITE_MIN_INT",
    "EXAMPLE_MEASUREMENTS",
    "create_schema",
    "initialize_database",
    "load_measurements",
]
