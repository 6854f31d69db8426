"""
Row-to-entity formatting.

Raw rows may carry numbers as text (the flat import stores every column as
TEXT). Parsing here never raises: anything unparseable becomes None.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from genomecrispr.models.data_classes import Measurement, SgRNAView


def parse_float(value: Any) -> Optional[float]:
    """Parse a finite float, or return None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    """Parse an integer, truncating decimals ("12.7" -> 12), or return None."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = parse_float(value)
    if number is None:
        return None
    return int(number)


def parse_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _row_id(row: Mapping[str, Any]) -> Optional[int]:
    record_id = row.get("id")
    if record_id is None:
        record_id = row.get("rowid")
    return parse_int(record_id)


def format_measurement(row: Mapping[str, Any]) -> Measurement:
    """
    Map one genome_crispr row onto a Measurement.

    Known columns are parsed, unknown columns dropped; midpoint, length and
    fold_change derive from the parsed start/end/log2fc.
    """
    return Measurement(
        id=_row_id(row),
        start=parse_int(row.get("start")),
        end=parse_int(row.get("end")),
        chr=parse_text(row.get("chr")),
        strand=parse_text(row.get("strand")),
        pubmed=parse_text(row.get("pubmed")),
        cellline=parse_text(row.get("cellline")),
        condition=parse_text(row.get("condition")),
        sequence=parse_text(row.get("sequence")),
        symbol=parse_text(row.get("symbol")),
        ensg=parse_text(row.get("ensg")),
        log2fc=parse_float(row.get("log2fc")),
        rc_initial=parse_int(row.get("rc_initial")),
        rc_final=parse_int(row.get("rc_final")),
        effect=parse_text(row.get("effect")),
        cas=parse_text(row.get("cas")),
        screentype=parse_text(row.get("screentype")),
    )


def format_sgrna(row: Mapping[str, Any]) -> SgRNAView:
    """Map one row onto the sgRNA leaf of a gene view."""
    return SgRNAView(
        id=_row_id(row),
        sequence=parse_text(row.get("sequence")),
        start=parse_int(row.get("start")),
        end=parse_int(row.get("end")),
        strand=parse_text(row.get("strand")),
        log2fc=parse_float(row.get("log2fc")),
        effect=parse_text(row.get("effect")),
        rc_initial=parse_int(row.get("rc_initial")),
        rc_final=parse_int(row.get("rc_final")),
    )
