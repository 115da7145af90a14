"""
Unit Tests for Price Formatting

Run with:
    pytest tests/unit/test_formatting.py -v
"""

from core.currency import get_currency
from core.utils.formatting import LOADING_LABEL, format_price, fraction_digits


class TestFractionDigits:

    def test_small_prices_get_five_digits(self):
        assert fraction_digits(0.12345) == 5
        assert fraction_digits(0.99999) == 5

    def test_other_prices_get_two_digits(self):
        assert fraction_digits(1) == 2
        assert fraction_digits(47123.45) == 2


class TestFormatPrice:

    def test_symbol_prefix_and_grouping(self):
        assert format_price(47123.45, get_currency("USD")) == "$47,123.45"
        assert format_price(1234.5, get_currency("EUR")) == "€1,234.50"

    def test_small_price_precision(self):
        assert format_price(0.123456, get_currency("USD")) == "$0.12346"

    def test_quote_without_symbol_uses_code(self):
        assert format_price(47123.45, get_currency("USDT")) == "47,123.45 USDT"

    def test_no_quote_currency(self):
        assert format_price(2.5) == "2.50"

    def test_loading_sentinel_is_never_a_number(self):
        assert format_price(0.0, get_currency("USD")) == LOADING_LABEL
        assert format_price(None, get_currency("USD")) == LOADING_LABEL
