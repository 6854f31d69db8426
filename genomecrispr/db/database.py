"""
SQLite access for the search layer.

Implements the execution contract used by the service: SQL text plus bound
parameters in, a single aggregate value or a list of row dicts out. Every
sqlite3 failure surfaces as StorageError.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from genomecrispr.core.errors import StorageError

logger = logging.getLogger(__name__)

# Range of an SQLite INTEGER
SQLITE_MIN_INT = -(2 ** 63)
SQLITE_MAX_INT = 2 ** 63 - 1


class CrisprDatabase:
    """
    Read-only connection to a GenomeCRISPR database.

    Use as a context manager so each request owns (and closes) its own
    connection:

        with CrisprDatabase(path) as db:
            rows = db.fetch_all("SELECT ...", params)
    """

    def __init__(self, db_path: Path, read_only: bool = True):
        self.db_path = Path(db_path)
        self.read_only = read_only
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection, opening it on first use."""
        if self._connection is None:
            if not self.db_path.exists():
                raise StorageError(
                    f"Database not found at {self.db_path}. "
                    f"Create it with: genomecrispr init-db --example"
                )
            try:
                if self.read_only:
                    uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
                    self._connection = sqlite3.connect(uri, uri=True)
                else:
                    self._connection = sqlite3.connect(str(self.db_path))
            except sqlite3.Error as e:
                raise StorageError(f"Failed to open database at {self.db_path}: {e}") from e
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "CrisprDatabase":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _execute(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        conn = self._get_connection()
        try:
            return conn.execute(sql, tuple(params))
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Query failed: {e} | {sql.strip()}")
            raise StorageError(f"Database query failed: {e}") from e

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a data query and return its rows as dicts, in order."""
        cursor = self._execute(sql, params)
        try:
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Database query failed: {e}") from e

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a query and return its first row, or None."""
        cursor = self._execute(sql, params)
        try:
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Database query failed: {e}") from e
        return dict(row) if row is not None else None

    def fetch_count(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run an aggregate query and return its first column as an int."""
        row = self.fetch_one(sql, params)
        if row is None:
            return 0
        value = next(iter(row.values()), 0)
        return int(value or 0)
