"""
Database schema and initialization.

Measurements are stored normalized (genes, cell_lines, experiments, sgrnas)
and read through the flat ``genome_crispr`` compatibility view, which has
the same columns as the original flat import table.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from genomecrispr.core.errors import StorageError

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    DROP VIEW IF EXISTS genome_crispr;
    DROP TABLE IF EXISTS sgrnas;
    DROP TABLE IF EXISTS experiments;
    DROP TABLE IF EXISTS cell_lines;
    DROP TABLE IF EXISTS genes;

    CREATE TABLE genes (
        gene_id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL UNIQUE,
        ensg TEXT,
        chr TEXT NOT NULL
    );

    CREATE TABLE cell_lines (
        cellline_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    );

    CREATE TABLE experiments (
        experiment_id INTEGER PRIMARY KEY AUTOINCREMENT,
        gene_id INTEGER NOT NULL,
        cellline_id INTEGER NOT NULL,
        condition TEXT,
        cas TEXT,
        screentype TEXT,
        pubmed TEXT,
        FOREIGN KEY (gene_id) REFERENCES genes(gene_id),
        FOREIGN KEY (cellline_id) REFERENCES cell_lines(cellline_id)
    );

    CREATE TABLE sgrnas (
        sgrna_id INTEGER PRIMARY KEY AUTOINCREMENT,
        experiment_id INTEGER NOT NULL,
        sequence TEXT NOT NULL,
        start_pos INTEGER NOT NULL,
        end_pos INTEGER NOT NULL,
        strand TEXT,
        log2fc REAL,
        effect TEXT,
        rc_initial INTEGER,
        rc_final INTEGER,
        FOREIGN KEY (experiment_id) REFERENCES experiments(experiment_id)
    );

    CREATE INDEX idx_genes_symbol ON genes(symbol);
    CREATE INDEX idx_genes_chr ON genes(chr);
    CREATE INDEX idx_genes_symbol_chr ON genes(symbol, chr);
    CREATE INDEX idx_experiments_gene ON experiments(gene_id);
    CREATE INDEX idx_experiments_cellline ON experiments(cellline_id);
    CREATE INDEX idx_experiments_gene_cellline ON experiments(gene_id, cellline_id);
    CREATE INDEX idx_sgrnas_experiment ON sgrnas(experiment_id);
    CREATE INDEX idx_sgrnas_log2fc ON sgrnas(log2fc);
    CREATE INDEX idx_sgrnas_position ON sgrnas(start_pos, end_pos);

    CREATE VIEW genome_crispr AS
    SELECT
        s.sgrna_id AS rowid,
        s.start_pos AS start,
        s.end_pos AS "end",
        g.chr,
        s.strand,
        e.pubmed,
        cl.name AS cellline,
        e.condition,
        s.sequence,
        g.symbol,
        g.ensg,
        s.log2fc,
        s.rc_initial,
        s.rc_final,
        s.effect,
        e.cas,
        e.screentype
    FROM sgrnas s
    JOIN experiments e ON s.experiment_id = e.experiment_id
    JOIN genes g ON e.gene_id = g.gene_id
    JOIN cell_lines cl ON e.cellline_id = cl.cellline_id;
"""


def _measurement(
    symbol: str, ensg: str, chr: str, cellline: str, condition: str, cas: str,
    screentype: str, pubmed: str, sequence: str, start: int, end: int,
    strand: str, log2fc: float, effect: str, rc_initial: int, rc_final: int,
) -> Dict[str, Any]:
    return {
        "symbol": symbol, "ensg": ensg, "chr": chr, "cellline": cellline,
        "condition": condition, "cas": cas, "screentype": screentype,
        "pubmed": pubmed, "sequence": sequence, "start": start, "end": end,
        "strand": strand, "log2fc": log2fc, "effect": effect,
        "rc_initial": rc_initial, "rc_final": rc_final,
    }


# Small development dataset: 5 genes, 3 cell lines, 6 experiments, 11 sgRNAs
EXAMPLE_MEASUREMENTS: List[Dict[str, Any]] = [
    _measurement("TP53", "ENSG00000141510", "17", "HeLa", "control", "Cas9", "survival", "12345",
                 "GACTCCAGTGGTAATCTACT", 7572026, 7572048, "+", -2.5, "down", 1000, 250),
    _measurement("TP53", "ENSG00000141510", "17", "HeLa", "control", "Cas9", "survival", "12345",
                 "CACTCCAGTGGTAATCTACT", 7572036, 7572058, "+", -1.8, "down", 950, 400),
    _measurement("TP53", "ENSG00000141510", "17", "HeLa", "control", "Cas9", "survival", "12345",
                 "TACTCCAGTGGTAATCTACT", 7572046, 7572068, "-", -3.2, "down", 1100, 150),
    _measurement("TP53", "ENSG00000141510", "17", "Jiyoye", "control", "Cas9", "survival", "12345",
                 "GACTCCAGTGGTAATCTACT", 7572026, 7572048, "+", -2.1, "down", 800, 300),
    _measurement("TP53", "ENSG00000141510", "17", "Jiyoye", "control", "Cas9", "survival", "12345",
                 "CACTCCAGTGGTAATCTACT", 7572036, 7572058, "+", -1.5, "down", 750, 450),
    _measurement("BRCA1", "ENSG00000012048", "17", "HeLa", "control", "Cas9", "survival", "12346",
                 "GAATTCAGTGGTAATCTACT", 41196362, 41196384, "+", 1.2, "up", 500, 850),
    _measurement("BRCA1", "ENSG00000012048", "17", "HeLa", "control", "Cas9", "survival", "12346",
                 "CAATTCAGTGGTAATCTACT", 41196372, 41196394, "+", 0.8, "up", 600, 900),
    _measurement("EGFR", "ENSG00000146648", "7", "KBM7", "treatment", "Cas9", "proliferation", "12347",
                 "GCCTCCAGTGGTAATCTACT", 55241707, 55241729, "-", 2.8, "up", 400, 1200),
    _measurement("EGFR", "ENSG00000146648", "7", "KBM7", "treatment", "Cas9", "proliferation", "12347",
                 "ACCTCCAGTGGTAATCTACT", 55241717, 55241739, "-", 3.1, "up", 350, 1300),
    _measurement("MYC", "ENSG00000136997", "8", "HeLa", "control", "Cas9", "survival", "12348",
                 "GTCTCCAGTGGTAATCTACT", 128748315, 128748337, "+", -0.5, "down", 900, 700),
    _measurement("KRAS", "ENSG00000133703", "12", "Jiyoye", "control", "Cas9", "survival", "12349",
                 "ATCTCCAGTGGTAATCTACT", 25398284, 25398306, "+", 1.7, "up", 600, 1100),
]


def create_schema(conn: sqlite3.Connection) -> None:
    """(Re)create the normalized tables, indexes and compatibility view."""
    conn.executescript(SCHEMA_SQL)


def _get_or_create(conn: sqlite3.Connection, cache: Dict[Tuple, int], key: Tuple,
                   select_sql: str, insert_sql: str, params: Tuple) -> int:
    if key in cache:
        return cache[key]
    row = conn.execute(select_sql, key).fetchone()
    if row is None:
        cursor = conn.execute(insert_sql, params)
        new_id = cursor.lastrowid
    else:
        new_id = row[0]
    cache[key] = new_id
    return new_id


def load_measurements(conn: sqlite3.Connection, records: Iterable[Mapping[str, Any]]) -> int:
    """
    Insert flat measurement records into the normalized tables.

    Genes are keyed by symbol (the first record's ensg/chr wins), cell lines
    by name, experiments by (gene, cell line, condition, cas, screentype,
    pubmed).

    Returns:
        Number of sgRNA rows inserted
    """
    genes: Dict[Tuple, int] = {}
    cell_lines: Dict[Tuple, int] = {}
    experiments: Dict[Tuple, int] = {}
    inserted = 0

    for record in records:
        gene_id = _get_or_create(
            conn, genes, (record["symbol"],),
            "SELECT gene_id FROM genes WHERE symbol = ?",
            "INSERT INTO genes (symbol, ensg, chr) VALUES (?, ?, ?)",
            (record["symbol"], record.get("ensg"), record.get("chr") or ""),
        )
        cellline_id = _get_or_create(
            conn, cell_lines, (record["cellline"],),
            "SELECT cellline_id FROM cell_lines WHERE name = ?",
            "INSERT INTO cell_lines (name) VALUES (?)",
            (record["cellline"],),
        )
        experiment_key = (
            gene_id, cellline_id, record.get("condition"), record.get("cas"),
            record.get("screentype"), record.get("pubmed"),
        )
        experiment_id = _get_or_create(
            conn, experiments, experiment_key,
            """
            SELECT experiment_id FROM experiments
            WHERE gene_id = ? AND cellline_id = ? AND condition IS ? AND cas IS ?
              AND screentype IS ? AND pubmed IS ?
            """,
            """
            INSERT INTO experiments (gene_id, cellline_id, condition, cas, screentype, pubmed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            experiment_key,
        )
        conn.execute(
            """
            INSERT INTO sgrnas (experiment_id, sequence, start_pos, end_pos, strand,
                                log2fc, effect, rc_initial, rc_final)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                experiment_id, record["sequence"], record["start"], record["end"],
                record.get("strand"), record.get("log2fc"), record.get("effect"),
                record.get("rc_initial"), record.get("rc_final"),
            ),
        )
        inserted += 1

    return inserted


def initialize_database(
    db_path: Path,
    records: Iterable[Mapping[str, Any]] = (),
    with_example_data: bool = False,
    overwrite: bool = False,
) -> int:
    """
    Create a database file with the schema and optional measurements.

    Args:
        db_path: Target SQLite file
        records: Flat measurement records to load
        with_example_data: Also load EXAMPLE_MEASUREMENTS
        overwrite: Replace an existing file's tables

    Returns:
        Number of sgRNA rows loaded
    """
    if db_path.exists() and not overwrite:
        raise StorageError(f"Database already exists: {db_path} (use overwrite to replace it)")

    db_path.parent.mkdir(parents=True, exist_ok=True)
    all_records = list(records)
    if with_example_data:
        all_records = EXAMPLE_MEASUREMENTS + all_records

    try:
        conn = sqlite3.connect(str(db_path))
        try:
            create_schema(conn)
            loaded = load_measurements(conn, all_records)
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"Failed to initialize database at {db_path}: {e}") from e

    logger.info(f"Initialized {db_path} with {loaded} measurements")
    return loaded
