import math

import pytest

from shopscore.normalizer import clean_currency


def test_thousands_separator():
    assert clean_currency("1,234") == 1234


def test_magnitude_suffixes():
    assert clean_currency("2.5k") == 2500
    assert clean_currency("3万") == 30000
    assert clean_currency("3w") == 30000
    assert clean_currency("1.2m") == pytest.approx(1200000)


def test_currency_symbols_and_case():
    assert clean_currency("$24.99") == 24.99
    assert clean_currency(" ¥1,299.50 ") == 1299.5
    assert clean_currency("1.5K") == 1500


def test_invalid_input_is_zero():
    for raw in ("", None, "abc", "   ", float("nan")):
        assert clean_currency(raw) == 0


def test_numbers_pass_through():
    assert clean_currency(42) == 42
    assert clean_currency(3.5) == 3.5
    assert not math.isnan(clean_currency(0))


def test_only_first_suffix_applies():
    # k 优先于 m
    assert clean_currency("2km") == 2000
