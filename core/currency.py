"""
Currency Catalog

Static registry of the currencies the ticker knows about. Exchanges report
pairs as raw codes ("BTC/USD", baseAsset="ETH"); only codes found here can be
turned into CurrencyPair objects, which keeps unknown or exotic listings out
of the available pairs.

The catalog is built at import time and never modified afterwards.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Currency(BaseModel):
    """
    A crypto asset or fiat currency.

    Identity is the code: two Currency objects with the same code are equal
    and hash the same, whatever their display metadata.

    Attributes:
        code: Ticker symbol or ISO-4217 code in uppercase (e.g., "BTC", "USD")
        display_name: Human-readable name (e.g., "Bitcoin")
        is_crypto: True for crypto assets (stablecoins included)
        icon_ref: Opaque icon name for the display layer
        symbol: Currency sign used when formatting prices ("$", "€"), if any
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Currency code in uppercase", examples=["BTC", "USD"])
    display_name: str = Field(..., description="Human-readable name")
    is_crypto: bool = Field(..., description="True for crypto assets")
    icon_ref: str = Field(default="", description="Opaque icon reference")
    symbol: Optional[str] = Field(default=None, description="Currency sign for display")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Currency):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency(code='{self.code}')"


def _crypto(code: str, display_name: str, symbol: Optional[str] = None) -> Currency:
    return Currency(
        code=code,
        display_name=display_name,
        is_crypto=True,
        icon_ref=code.lower(),
        symbol=symbol,
    )


def _fiat(code: str, display_name: str, symbol: str) -> Currency:
    return Currency(
        code=code,
        display_name=display_name,
        is_crypto=False,
        icon_ref=code.lower(),
        symbol=symbol,
    )


# ============================================
# Catalog
# ============================================

_CATALOG = [
    # Crypto assets
    _crypto("BTC", "Bitcoin", "₿"),
    _crypto("ETH", "Ethereum", "Ξ"),
    _crypto("LTC", "Litecoin", "Ł"),
    _crypto("XRP", "Ripple"),
    _crypto("BCH", "Bitcoin Cash"),
    _crypto("ADA", "Cardano"),
    _crypto("SOL", "Solana"),
    _crypto("DOGE", "Dogecoin"),
    _crypto("DOT", "Polkadot"),
    _crypto("LINK", "Chainlink"),
    _crypto("XLM", "Stellar"),
    _crypto("UNI", "Uniswap"),
    _crypto("AVAX", "Avalanche"),
    _crypto("MATIC", "Polygon"),
    _crypto("TRX", "TRON"),
    _crypto("ETC", "Ethereum Classic"),
    _crypto("BNB", "BNB"),
    _crypto("PAXG", "PAX Gold"),

    # Stablecoins
    _crypto("USDT", "Tether"),
    _crypto("USDC", "USD Coin"),
    _crypto("DAI", "Dai"),

    # Fiat
    _fiat("USD", "US Dollar", "$"),
    _fiat("EUR", "Euro", "€"),
    _fiat("GBP", "British Pound", "£"),
    _fiat("JPY", "Japanese Yen", "¥"),
    _fiat("CAD", "Canadian Dollar", "CA$"),
    _fiat("AUD", "Australian Dollar", "A$"),
    _fiat("CHF", "Swiss Franc", "CHF"),
    _fiat("TRY", "Turkish Lira", "₺"),
    _fiat("BRL", "Brazilian Real", "R$"),
]

CURRENCIES: Dict[str, Currency] = {currency.code: currency for currency in _CATALOG}


def get_currency(code: Optional[str]) -> Optional[Currency]:
    """
    Look up a currency by code (case-insensitive).

    Returns:
        The Currency, or None if the code is empty or not in the catalog

    Example:
        >>> get_currency("btc").display_name
        'Bitcoin'
        >>> get_currency("XYZ") is None
        True
    """
    if not code:
        return None
    return CURRENCIES.get(code.strip().upper())
