import math

import pytest

from portfolio_lens.parsing.numbers import looks_numeric, numeric_kind, parse_locale_number


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1'234.56", 1234.56),
        ("1’234’567.89", 1234567.89),
        ("1,234.56", 1234.56),
        ("1 234.50", 1234.5),
        ("12,5", 12.5),
        ("12,50", 12.5),
        ("1,234", 1234.0),
        ("CHF 1'000.00", 1000.0),
        ("1'000.00 USD", 1000.0),
        ("-5.5%", -5.5),
        ("5.5-", -5.5),
        ("(300)", -300.0),
        ("(1'250.75)", -1250.75),
        ("+2.25 %", 2.25),
        ("42", 42.0),
    ],
)
def test_parse_locale_number_formats(raw: str, expected: float) -> None:
    assert parse_locale_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "   ", "n/a", "abc", "-", None])
def test_parse_locale_number_returns_zero_for_non_numeric(raw) -> None:
    assert parse_locale_number(raw) == 0.0


def test_grouping_separator_is_ignored_with_point_decimal() -> None:
    for formatted in ("12'345.67", "1'000'000.5", "999.99"):
        assert parse_locale_number(formatted) == float(formatted.replace("'", ""))


def test_parse_locale_number_passes_through_numbers() -> None:
    assert parse_locale_number(3) == 3.0
    assert parse_locale_number(2.5) == 2.5
    assert parse_locale_number(math.inf) == 0.0
    assert parse_locale_number(True) == 0.0


def test_numeric_kind_classification() -> None:
    assert numeric_kind("10") == "integer"
    assert numeric_kind("1'000") == "integer"
    assert numeric_kind("150.25") == "decimal"
    assert numeric_kind("12,5") == "decimal"
    assert numeric_kind("48.9%") == "percent"
    assert numeric_kind("Apple Inc") is None
    assert looks_numeric("CHF 1'000.00") is True
    assert looks_numeric("USD") is False
