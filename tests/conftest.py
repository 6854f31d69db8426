"""
Test configuration and fixtures for GenomeCRISPR.
"""

import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Iterable, Mapping

import pytest

from genomecrispr.config import get_config
from genomecrispr.db.database import CrisprDatabase
from genomecrispr.db.schema import initialize_database
from genomecrispr.search.service import CrisprSearchService


def make_measurement(**overrides: Any) -> Dict[str, Any]:
    """Flat measurement record with sensible defaults."""
    record = {
        "symbol": "GENE1",
        "ensg": "ENSG00000000001",
        "chr": "1",
        "cellline": "HeLa",
        "condition": "control",
        "cas": "Cas9",
        "screentype": "survival",
        "pubmed": "11111",
        "sequence": "ACGTACGTACGTACGTACGT",
        "start": 1000,
        "end": 1022,
        "strand": "+",
        "log2fc": 0.5,
        "effect": "up",
        "rc_initial": 100,
        "rc_final": 150,
    }
    record.update(overrides)
    return record


@pytest.fixture
def example_db(tmp_path: Path) -> Path:
    """Database file loaded with the bundled example dataset (11 sgRNAs, 5 genes)."""
    path = tmp_path / "genome_crispr.db"
    initialize_database(path, with_example_data=True)
    return path


@pytest.fixture
def make_db(tmp_path: Path) -> Callable[[Iterable[Mapping[str, Any]]], Path]:
    """Factory for databases holding only the given measurement records."""
    counter = {"n": 0}

    def _make(records: Iterable[Mapping[str, Any]]) -> Path:
        counter["n"] += 1
        path = tmp_path / f"custom_{counter['n']}.db"
        initialize_database(path, records=records)
        return path

    return _make


@pytest.fixture
def database(example_db: Path) -> Generator[CrisprDatabase, None, None]:
    with CrisprDatabase(example_db) as db:
        yield db


@pytest.fixture
def service(database: CrisprDatabase) -> CrisprSearchService:
    return CrisprSearchService(database)


@pytest.fixture
def flat_db(tmp_path: Path) -> Path:
    """
    Flat import table storing every column as TEXT, the way the raw
    GenomeCRISPR dump is loaded.
    """
    path = tmp_path / "flat.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE genome_crispr (
            start TEXT, "end" TEXT, chr TEXT, strand TEXT, pubmed TEXT,
            cellline TEXT, condition TEXT, sequence TEXT, symbol TEXT, ensg TEXT,
            log2fc TEXT, rc_initial TEXT, rc_final TEXT, effect TEXT, cas TEXT,
            screentype TEXT
        );
        """
    )
    rows = [
        ("999", "1021", "3", "+", "1", "A549", "ctrl", "AAAA", "FLAT1", "ENSG1", "-0.25", "10", "8", "down", "Cas9", "survival"),
        ("1000", "1022", "3", "-", "1", "A549", "ctrl", "CCCC", "FLAT1", "ENSG1", "2", "10", "40", "up", "Cas9", "survival"),
        ("20000", "20022", "3", "+", "1", "A549", "ctrl", "GGGG", "FLAT2", "ENSG2", "not-a-number", "x", "12.7", "", "Cas9", "survival"),
    ]
    conn.executemany("INSERT INTO genome_crispr VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)", rows)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def configured_db(example_db: Path, tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point the application configuration at the example database."""
    monkeypatch.setenv("GENOMECRISPR_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GENOMECRISPR_DB_PATH", str(example_db))
    get_config.cache_clear()
    yield example_db
    get_config.cache_clear()
