"""
Tests for row-to-entity formatting and value parsing.
"""

import pytest
from pydantic import ValidationError

from genomecrispr.views.formatter import (
    format_measurement,
    format_sgrna,
    parse_float,
    parse_int,
    parse_text,
)


class TestParsing:

    @pytest.mark.parametrize("raw,expected", [
        ("1.5", 1.5),
        (" -2 ", -2.0),
        (3, 3.0),
        ("abc", None),
        ("", None),
        (None, None),
        ("inf", None),
        ("nan", None),
        (True, None),
    ])
    def test_parse_float(self, raw, expected):
        assert parse_float(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("12", 12),
        ("12.7", 12),
        (7, 7),
        ("x", None),
        (None, None),
    ])
    def test_parse_int(self, raw, expected):
        assert parse_int(raw) == expected

    def test_parse_text(self):
        assert parse_text(None) is None
        assert parse_text(b"HeLa") == "HeLa"
        assert parse_text(12345) == "12345"


class TestFormatMeasurement:
    """Derived fields and tolerance of malformed rows."""

    def test_derived_fields(self):
        m = format_measurement({"start": "100", "end": "200", "log2fc": "1"})
        assert m.start == 100
        assert m.end == 200
        assert m.midpoint == 150
        assert m.length == 101
        assert m.fold_change == 2.0

    def test_reversed_interval_length(self):
        m = format_measurement({"start": 200, "end": 100})
        assert m.length == 101
        assert m.midpoint == 150

    def test_midpoint_rounds_down(self):
        assert format_measurement({"start": 1, "end": 4}).midpoint == 2

    def test_missing_coordinates(self):
        m = format_measurement({"end": "200"})
        assert m.start is None
        assert m.midpoint is None
        assert m.length is None

    def test_malformed_log2fc(self):
        m = format_measurement({"log2fc": "n/a"})
        assert m.log2fc is None
        assert m.fold_change is None

    def test_fold_change_overflow(self):
        m = format_measurement({"log2fc": "5000"})
        assert m.log2fc == 5000.0
        assert m.fold_change is None

    def test_negative_log2fc(self):
        assert format_measurement({"log2fc": -1}).fold_change == 0.5

    def test_id_from_rowid(self):
        assert format_measurement({"rowid": 42}).id == 42
        assert format_measurement({"id": "7", "rowid": 42}).id == 7

    def test_unknown_columns_dropped(self):
        m = format_measurement({"symbol": "TP53", "internal_flag": "x"})
        dumped = m.model_dump()
        assert dumped["symbol"] == "TP53"
        assert "internal_flag" not in dumped

    def test_serialized_payload_includes_derived_fields(self):
        dumped = format_measurement({"start": 10, "end": 20, "log2fc": 0}).model_dump(mode="json")
        assert dumped["midpoint"] == 15
        assert dumped["length"] == 11
        assert dumped["fold_change"] == 1.0

    def test_entities_are_frozen(self):
        m = format_measurement({"symbol": "TP53"})
        with pytest.raises(ValidationError):
            m.symbol = "BRCA1"


class TestFormatSgRNA:

    def test_sgrna_fields(self):
        sg = format_sgrna({
            "rowid": 3, "sequence": "ACGT", "start": "10", "end": "32",
            "strand": "-", "log2fc": "-3.2", "effect": "down",
            "rc_initial": "1100", "rc_final": "150", "symbol": "TP53",
        })
        assert sg.id == 3
        assert sg.strand == "-"
        assert sg.log2fc == -3.2
        assert sg.rc_initial == 1100
        assert sg.midpoint == 21
        assert "symbol" not in sg.model_dump()
