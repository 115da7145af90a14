"""
Ticker Data Schemas

Pydantic models and enums shared by every exchange backend.

Models:
    - CurrencyPair: base/quote combination tracked for price
    - ExchangeSite: identifier of each supported backend
    - UpdateInterval: allowed update intervals, including the real-time sentinel

Regardless of which exchange reported a pair, it is normalized into a
CurrencyPair built from catalog currencies. The backend's own symbol
("btcusd", "BTCUSDT") rides along in `custom_code` but is not part of the
pair's identity.
"""

from enum import Enum, IntEnum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.currency import Currency, get_currency


# ============================================
# Exchange Sites
# ============================================

class ExchangeSite(str, Enum):
    """Supported exchange backends. The value is what gets persisted."""

    BITSTAMP = "bitstamp"
    BINANCE = "binance"

    @property
    def display_name(self) -> str:
        return _SITE_DISPLAY_NAMES[self]


_SITE_DISPLAY_NAMES = {
    ExchangeSite.BITSTAMP: "Bitstamp",
    ExchangeSite.BINANCE: "Binance",
}


# ============================================
# Update Intervals
# ============================================

class UpdateInterval(IntEnum):
    """
    Price update intervals in seconds.

    REAL_TIME is a sentinel: instead of polling, exchanges open a streaming
    connection per selected pair.
    """

    REAL_TIME = 0
    FIVE_SECONDS = 5
    TEN_SECONDS = 10
    THIRTY_SECONDS = 30
    ONE_MINUTE = 60
    FIVE_MINUTES = 300
    TEN_MINUTES = 600

    @property
    def is_real_time(self) -> bool:
        return self is UpdateInterval.REAL_TIME


# ============================================
# Currency Pair
# ============================================

class CurrencyPair(BaseModel):
    """
    A base/quote currency combination.

    Equality, hashing and ordering only look at (base code, quote code);
    `custom_code` is backend metadata. The base currency must be a crypto
    asset, construction fails otherwise.

    Attributes:
        base_currency: The asset being priced (e.g., BTC)
        quote_currency: The currency the price is expressed in (e.g., USD)
        custom_code: Exchange-specific trading pair identifier (e.g., "btcusd")

    Example:
        >>> pair = CurrencyPair.build("BTC", "USD", custom_code="btcusd")
        >>> str(pair)
        'BTC/USD'
        >>> pair == CurrencyPair.build("btc", "usd")
        True
    """

    model_config = ConfigDict(frozen=True)

    base_currency: Currency = Field(..., description="Crypto asset being priced")
    quote_currency: Currency = Field(..., description="Currency of the price")
    custom_code: Optional[str] = Field(default=None, description="Exchange-specific pair identifier")

    @model_validator(mode="after")
    def validate_base_is_crypto(self) -> "CurrencyPair":
        """Reject pairs whose base is not a crypto asset."""
        if not self.base_currency.is_crypto:
            raise ValueError(f"Base currency {self.base_currency.code} is not a crypto asset")
        return self

    @classmethod
    def build(
        cls,
        base_code: Optional[str],
        quote_code: Optional[str],
        custom_code: Optional[str] = None
    ) -> Optional["CurrencyPair"]:
        """
        Build a pair from raw currency codes.

        Returns:
            The pair, or None if a code is not in the catalog or the base is
            not a crypto asset
        """
        base_currency = get_currency(base_code)
        quote_currency = get_currency(quote_code)
        if base_currency is None or quote_currency is None:
            return None

        try:
            return cls(
                base_currency=base_currency,
                quote_currency=quote_currency,
                custom_code=custom_code,
            )
        except ValidationError:
            return None

    @property
    def identity(self) -> Tuple[str, str]:
        """(base code, quote code) tuple used for equality and ordering."""
        return (self.base_currency.code, self.quote_currency.code)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CurrencyPair):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __lt__(self, other: "CurrencyPair") -> bool:
        if not isinstance(other, CurrencyPair):
            return NotImplemented
        return self.identity < other.identity

    def __le__(self, other: "CurrencyPair") -> bool:
        if not isinstance(other, CurrencyPair):
            return NotImplemented
        return self.identity <= other.identity

    def __gt__(self, other: "CurrencyPair") -> bool:
        if not isinstance(other, CurrencyPair):
            return NotImplemented
        return self.identity > other.identity

    def __ge__(self, other: "CurrencyPair") -> bool:
        if not isinstance(other, CurrencyPair):
            return NotImplemented
        return self.identity >= other.identity

    def __str__(self) -> str:
        return f"{self.base_currency.code}/{self.quote_currency.code}"

    def __repr__(self) -> str:
        return f"CurrencyPair('{self}', custom_code={self.custom_code!r})"
