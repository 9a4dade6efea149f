import logging

import pytest

from tripbudget.currency import (
    CURRENCY_CODES,
    convert,
    currency_symbol,
    format_money,
    is_supported,
    make_converter,
    table_anchor,
    try_convert,
)

RATES = {"USD": 1.0, "EUR": 0.92, "GBP": 0.79, "JPY": 149.5}


def test_same_currency_is_returned_unchanged():
    assert convert(123.456, "EUR", "EUR", RATES) == 123.456
    assert convert(123.456, "XYZ", "XYZ", {}) == 123.456
    assert convert(10, "USD", "USD", None) == 10


def test_both_rates_normalize_through_table_base():
    # 100 EUR -> USD base -> GBP
    assert convert(100, "EUR", "GBP", RATES) == pytest.approx(100 / 0.92 * 0.79)


def test_only_target_rate_multiplies():
    assert convert(100, "USD", "EUR", {"EUR": 0.92}) == pytest.approx(92)


def test_only_source_rate_divides():
    assert convert(92, "EUR", "USD", {"EUR": 0.92}) == pytest.approx(100)


def test_round_trip_between_two_currencies():
    there = convert(250.0, "GBP", "JPY", RATES)
    assert convert(there, "JPY", "GBP", RATES) == pytest.approx(250.0)


def test_unknown_currencies_degrade_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="tripbudget"):
        assert convert(50, "ABC", "XYZ", RATES) == 50
    assert "No exchange rate for ABC, XYZ (ABC -> XYZ)" in caplog.text


def test_try_convert_reports_missing_rates():
    result = try_convert(50, "ABC", "XYZ", RATES)
    assert result.amount == 50
    assert not result.converted
    assert result.missing == ("ABC", "XYZ")
    assert try_convert(92, "EUR", "USD", {"EUR": 0.92}).converted


def test_unknown_source_with_known_target_is_flagged(caplog):
    # USD is the table anchor, so a missing XYZ rate is a real gap
    result = try_convert(5, "XYZ", "USD", RATES)
    assert result.amount == 5
    assert not result.converted
    assert result.missing == ("XYZ",)
    with caplog.at_level(logging.WARNING, logger="tripbudget"):
        assert convert(5, "XYZ", "USD", RATES) == 5
    assert "No exchange rate for XYZ" in caplog.text

    result = try_convert(10, "EUR", "XYZ", RATES)
    assert result.amount == pytest.approx(10 / 0.92)
    assert result.missing == ("XYZ",)


def test_anchor_side_of_one_sided_table_is_converted():
    assert try_convert(100, "USD", "EUR", {"EUR": 0.92}, anchor="USD").converted
    assert try_convert(92, "EUR", "USD", {"EUR": 0.92}, anchor="USD").converted
    assert not try_convert(92, "EUR", "GBP", {"EUR": 0.92}, anchor="USD").converted
    assert table_anchor(RATES) == "USD"
    assert table_anchor({"EUR": 0.92}) is None
    assert table_anchor({}) is None


def test_zero_rate_counts_as_missing():
    assert convert(10, "EUR", "USD", {"EUR": 0}) == 10


def test_make_converter_targets_base():
    to_usd = make_converter("USD", RATES)
    assert to_usd(92, "EUR") == pytest.approx(100)
    assert to_usd(5, "USD") == 5


def test_supported_currencies_and_symbols():
    assert CURRENCY_CODES == ("USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "INR", "MXN", "MYR", "SGD")
    assert is_supported("MYR")
    assert not is_supported("BTC")
    assert currency_symbol("EUR") == "€"
    assert currency_symbol("BTC") == "BTC"


def test_format_money_rounds_for_display():
    assert format_money(1234.5, "USD") == "$1,234.50"
    assert format_money(-12.5, "EUR") == "-€12.50"
    assert format_money(7, "CHF") == "7.00 CHF"
