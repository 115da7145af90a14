"""
Unit Tests for the Currency Catalog and CurrencyPair

These tests verify that:
- The catalog resolves codes case-insensitively
- Pair identity ignores custom_code
- Pairs with a non-crypto base are rejected
- Ordering is deterministic

Run with:
    pytest tests/unit/test_currency_pair.py -v
"""

import pytest
from pydantic import ValidationError

from core.currency import CURRENCIES, Currency, get_currency
from core.exchange_interface import sort_currency_pairs
from core.schemas import CurrencyPair, ExchangeSite, UpdateInterval


# ============================================
# Currency Catalog
# ============================================

class TestCurrencyCatalog:
    """Tests for get_currency and the catalog contents"""

    def test_lookup_is_case_insensitive(self):
        assert get_currency("btc") is get_currency("BTC")
        assert get_currency(" eur ").code == "EUR"

    def test_unknown_and_empty_codes_return_none(self):
        assert get_currency("NOPE") is None
        assert get_currency("") is None
        assert get_currency(None) is None

    def test_stablecoins_are_crypto(self):
        for code in ("USDT", "USDC", "DAI"):
            assert get_currency(code).is_crypto is True

    def test_fiat_currencies_are_not_crypto(self):
        for code in ("USD", "EUR", "GBP", "JPY"):
            assert get_currency(code).is_crypto is False

    def test_catalog_keys_match_codes(self):
        for code, currency in CURRENCIES.items():
            assert code == currency.code
            assert code == code.upper()

    def test_currency_identity_is_code(self):
        a = Currency(code="BTC", display_name="Bitcoin", is_crypto=True)
        b = Currency(code="BTC", display_name="Something else", is_crypto=True, symbol="B")
        assert a == b
        assert hash(a) == hash(b)
        assert str(a) == "BTC"


# ============================================
# CurrencyPair
# ============================================

class TestCurrencyPair:
    """Tests for CurrencyPair identity, invariants and builders"""

    def test_equality_ignores_custom_code(self):
        p1 = CurrencyPair.build("BTC", "USD", custom_code="btcusd")
        p2 = CurrencyPair.build("BTC", "USD", custom_code="XBTUSD")
        p3 = CurrencyPair.build("BTC", "USD")

        assert p1 == p2 == p3
        assert hash(p1) == hash(p2) == hash(p3)
        assert len({p1, p2, p3}) == 1

    def test_different_quote_is_a_different_pair(self):
        assert CurrencyPair.build("BTC", "USD") != CurrencyPair.build("BTC", "EUR")

    def test_str_and_repr(self):
        pair = CurrencyPair.build("eth", "eur", custom_code="etheur")
        assert str(pair) == "ETH/EUR"
        assert repr(pair) == "CurrencyPair('ETH/EUR', custom_code='etheur')"

    def test_non_crypto_base_raises(self):
        with pytest.raises(ValidationError):
            CurrencyPair(base_currency=get_currency("USD"), quote_currency=get_currency("BTC"))

    def test_non_crypto_base_is_a_value_error(self):
        with pytest.raises(ValueError):
            CurrencyPair(base_currency=get_currency("EUR"), quote_currency=get_currency("USD"))

    def test_build_returns_none_for_rejected_pairs(self):
        assert CurrencyPair.build("USD", "EUR") is None
        assert CurrencyPair.build("XYZ", "USD") is None
        assert CurrencyPair.build("BTC", "XYZ") is None
        assert CurrencyPair.build(None, "USD") is None

    def test_pairs_are_immutable(self):
        pair = CurrencyPair.build("BTC", "USD")
        with pytest.raises(ValidationError):
            pair.custom_code = "changed"

    def test_ordering_uses_base_then_quote(self):
        pairs = [
            CurrencyPair.build("ETH", "USD"),
            CurrencyPair.build("BTC", "USD"),
            CurrencyPair.build("BTC", "EUR"),
        ]
        assert [str(p) for p in sorted(pairs)] == ["BTC/EUR", "BTC/USD", "ETH/USD"]

    def test_sort_is_deterministic_and_deduplicates(self):
        first = [
            CurrencyPair.build("LTC", "USD", custom_code="ltcusd"),
            CurrencyPair.build("BTC", "USD", custom_code="btcusd"),
            CurrencyPair.build("BTC", "USD", custom_code="duplicate"),
        ]
        second = list(reversed(first))

        assert sort_currency_pairs(first) == sort_currency_pairs(second)
        result = sort_currency_pairs(first)
        assert [str(p) for p in result] == ["BTC/USD", "LTC/USD"]
        assert result[0].custom_code == "btcusd"


# ============================================
# Enums
# ============================================

class TestEnums:
    """Tests for ExchangeSite and UpdateInterval"""

    def test_exchange_site_values(self):
        assert ExchangeSite("bitstamp") is ExchangeSite.BITSTAMP
        assert ExchangeSite.BINANCE.display_name == "Binance"

    def test_update_interval_values(self):
        assert [int(i) for i in UpdateInterval] == [0, 5, 10, 30, 60, 300, 600]
        assert UpdateInterval.REAL_TIME.is_real_time
        assert not UpdateInterval.ONE_MINUTE.is_real_time
