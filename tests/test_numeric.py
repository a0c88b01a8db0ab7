import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import pytest
from calc.numeric import (
    format_currency,
    format_money,
    format_percent,
    get_sbie_rates,
    get_transition_rate,
    is_blank,
    is_numeric,
    parse_numeric,
    round_amount,
)


@pytest.mark.parametrize("value, expected", [
    ('32,800,000', 32_800_000.0),
    ('1,234.5 EUR', 1234.5),
    ('-150000', -150_000.0),
    ('.5', 0.5),
    ('  42  ', 42.0),
    (1200000, 1_200_000.0),
    (3.5, 3.5),
])
def test_parse_numeric(value, expected):
    assert parse_numeric(value) == expected


@pytest.mark.parametrize("value", ['', 'abc', None, True, 'Infinity', float('inf'), float('nan'), '1e400'])
def test_parse_numeric_invalid_is_zero(value):
    assert parse_numeric(value) == 0.0


def test_round_amount_rounds_half_up():
    assert round_amount(0.125, 2) == 0.13
    assert round_amount(1234.5, 0) == 1235
    assert round_amount(-0.125, 2) == -0.12


def test_round_amount_ratio():
    assert round_amount(3_600_000 / 32_800_000, 4) == 0.1098
    assert round_amount(3_600_000 / 32_650_000, 4) == 0.1103


def test_format_money():
    assert format_money(1234.5) == '1,234.50'
    assert format_money(1_190_402.4) == '1,190,402.40'
    assert format_money(-0.001) == '0.00'
    assert format_money(1234.56, 0) == '1,235'


def test_format_currency():
    assert format_currency(1_190_402.4, 'EUR', 2) == '€1,190,402.40'
    assert format_currency(3_188_000, 'GBP') == '£3,188,000'
    assert format_currency(-1234, 'EUR') == '-€1,234'
    assert format_currency(1000, 'SEK') == 'SEK1,000'


def test_format_percent():
    assert format_percent(10.98) == '10.98%'
    assert format_percent(4.0244) == '4.02%'


def test_is_numeric():
    assert is_numeric('12abc')
    assert is_numeric(0)
    assert not is_numeric('abc')
    assert not is_numeric('')
    assert not is_numeric(None)


def test_is_blank():
    assert is_blank(None)
    assert is_blank('   ')
    assert not is_blank(0)
    assert not is_blank('0')


def test_rate_lookups():
    assert get_sbie_rates('2025').payroll == 9.6
    assert get_sbie_rates(2025).asset == 7.6
    assert get_transition_rate(2026) == 17.0


@pytest.mark.parametrize("value", [0.0, 12.5, 1_234_567.89, 1_190_402.4, -29_612_000.0, 3_188_000.07])
def test_formatted_money_parses_back(value):
    assert parse_numeric(format_money(value)) == round_amount(value)
