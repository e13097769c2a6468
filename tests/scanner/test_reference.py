from __future__ import annotations

import pytest

from gamma_scanner.scanner.reference import StaticReferenceTable, load_reference_table


def test_known_symbol_returns_table_values():
    table = StaticReferenceTable({"gme": (15.2, 304_000_000)})

    data = table.lookup("GME")

    assert data.short_interest_percent == 15.2
    assert data.float_shares == 304_000_000
    assert data.is_default is False


def test_missing_symbol_gets_defaults_without_error():
    table = StaticReferenceTable({}, default_short_interest=0.0, default_float=500_000_000)

    data = table.lookup("ZZZZ")

    assert data.short_interest_percent == 0.0
    assert data.float_shares == 500_000_000
    assert data.is_default is True


def test_bundled_table_is_seeded():
    table = load_reference_table()

    assert "GME" in table
    gme = table.lookup("GME")
    assert gme.short_interest_percent == pytest.approx(15.2)
    assert gme.float_shares == 304_000_000
    sofi = table.lookup("SOFI")
    assert sofi.short_interest_percent == pytest.approx(8.5)
    assert sofi.float_shares == 500_000_000


def test_csv_blank_cells_fall_back_to_defaults(tmp_path):
    path = tmp_path / "reference.csv"
    path.write_text(
        "symbol,short_interest_percent,float_shares\nabc,,12000000\nXYZ,7.5,\n",
        encoding="utf-8",
    )

    table = load_reference_table(path, default_short_interest=1.0, default_float=42)

    assert table.lookup("ABC").short_interest_percent == 1.0
    assert table.lookup("ABC").float_shares == 12_000_000
    assert table.lookup("XYZ").float_shares == 42
    assert table.lookup("XYZ").is_default is False


def test_csv_malformed_number_reports_line(tmp_path):
    path = tmp_path / "reference.csv"
    path.write_text("symbol,short_interest_percent,float_shares\nABC,lots,1\n", encoding="utf-8")

    with pytest.raises(ValueError, match=":2:"):
        load_reference_table(path)
