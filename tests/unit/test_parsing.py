"""Unit tests for spreadsheet cell coercion"""

from mca_ledger.utils.parsing import (
    is_blank,
    is_empty_row,
    parse_flag,
    parse_identifier,
    parse_number,
    parse_text,
)


def test_blank_cells():
    assert is_blank(None)
    assert is_blank("")
    assert is_blank("  ")
    assert is_blank(False)
    assert is_blank("FALSE")
    assert is_blank(float("nan"))
    assert not is_blank(0)
    assert not is_blank("0")


def test_parse_number_strips_currency_noise():
    assert parse_number("$1,250.50") == 1250.5
    assert parse_number("12%") == 12.0
    assert parse_number(7) == 7.0


def test_parse_number_rejects_garbage():
    assert parse_number("abc") is None
    assert parse_number(None) is None
    assert parse_number(True) is None
    assert parse_number(float("inf")) is None


def test_parse_text_defaults():
    assert parse_text("  Joe's Diner ") == "Joe's Diner"
    assert parse_text(None, "Unknown") == "Unknown"
    assert parse_text("FALSE", "Unknown") == "Unknown"


def test_identifiers_drop_float_fraction():
    assert parse_identifier(1042.0) == "1042"
    assert parse_identifier(" L-7 ") == "L-7"
    assert parse_identifier(None) is None
    assert parse_identifier("") is None


def test_empty_row_detection():
    assert is_empty_row([None, "", "  "])
    assert not is_empty_row([None, 0])
    assert not is_empty_row([None, "x"])


def test_flags():
    assert parse_flag(True)
    assert parse_flag("Yes")
    assert parse_flag("active")
    assert parse_flag(1)
    assert not parse_flag("no")
    assert not parse_flag(None)
    assert not parse_flag(0)
