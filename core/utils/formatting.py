"""
Price Formatting

Turns cached prices into display strings. A price equal to LOADING_PRICE
means "not loaded yet" and is rendered as LOADING_LABEL, never as a number.

Precision:
    price < 1   -> 5 fraction digits (e.g., "$0.12345")
    otherwise   -> 2 fraction digits (e.g., "$47,123.45")
"""

from typing import Optional

from core.currency import Currency
from core.ticker_config import LOADING_PRICE

LOADING_LABEL = "Loading..."
OFFLINE_LABEL = "Offline"
NO_PAIRS_LABEL = "No pairs available"


def fraction_digits(price: float) -> int:
    return 5 if price < 1 else 2


def is_loading(price: Optional[float]) -> bool:
    return price is None or price == LOADING_PRICE


def format_price(price: Optional[float], quote_currency: Optional[Currency] = None) -> str:
    """
    Format a price in its quote currency.

    The currency symbol is used as a prefix when the catalog has one,
    otherwise the code is appended ("1,234.50 CHF").

    Example:
        >>> format_price(47123.45, get_currency("USD"))
        '$47,123.45'
        >>> format_price(0.0, get_currency("USD"))
        'Loading...'
    """
    if is_loading(price):
        return LOADING_LABEL

    amount = f"{price:,.{fraction_digits(price)}f}"
    if quote_currency is None:
        return amount
    if quote_currency.symbol:
        return f"{quote_currency.symbol}{amount}"
    return f"{amount} {quote_currency.code}"
