"""
Exchange Manager - Registry and Factory for Exchange Backends

Maps each ExchangeSite to the class implementing it and builds fresh
instances on demand. Only one exchange is active at a time; switching sites
means shutting down the old instance and building a new one, which is the
controller's job.

Example Usage:
    manager = ExchangeManager()
    exchange = manager.build(ExchangeSite.BITSTAMP, ticker_config)
    await exchange.load()

    # Adding a new exchange:
    # 1. Add a variant to ExchangeSite
    # 2. Create the backend class under exchanges/
    # 3. Register it in ExchangeManager.__init__
"""

from typing import Dict, List, Type, Union

from core.exchange_interface import ExchangeInterface
from core.logging import logger
from core.schemas import ExchangeSite
from core.ticker_config import TickerConfig, parse_exchange_site


class ExchangeManager:
    """
    Registry of exchange backend classes.

    Attributes:
        exchanges: Dictionary mapping sites to backend classes
                  Example: {ExchangeSite.BITSTAMP: BitstampExchange}

    Example:
        >>> manager = ExchangeManager()
        >>> manager.list_sites()
        ['bitstamp', 'binance']
        >>> exchange = manager.build("binance", ticker_config)
    """

    def __init__(self):
        # Import here to avoid circular imports
        # Each exchange module imports from core, so we can't import at module level
        from exchanges.binance import BinanceExchange
        from exchanges.bitstamp import BitstampExchange

        self.exchanges: Dict[ExchangeSite, Type[ExchangeInterface]] = {
            ExchangeSite.BITSTAMP: BitstampExchange,
            ExchangeSite.BINANCE: BinanceExchange,
        }

        logger.debug(
            f"ExchangeManager initialized with {len(self.exchanges)} exchange(s): "
            f"{', '.join(site.value for site in self.exchanges)}"
        )

    # ============================================
    # Lookup
    # ============================================

    def get_exchange_class(self, site: Union[ExchangeSite, str]) -> Type[ExchangeInterface]:
        """
        Get the backend class for a site.

        Args:
            site: ExchangeSite or its value (case-insensitive)

        Raises:
            ValueError: If the site is not supported
        """
        parsed = parse_exchange_site(site)
        if parsed is None or parsed not in self.exchanges:
            available = ", ".join(self.list_sites())
            logger.error(f"Exchange '{site}' not found. Available: {available}")
            raise ValueError(
                f"Exchange '{site}' is not supported. "
                f"Available exchanges: {available}"
            )
        return self.exchanges[parsed]

    def has_site(self, site: Union[ExchangeSite, str]) -> bool:
        parsed = parse_exchange_site(site)
        return parsed is not None and parsed in self.exchanges

    def list_sites(self) -> List[str]:
        return [site.value for site in self.exchanges]

    # ============================================
    # Factory
    # ============================================

    def build(self, site: Union[ExchangeSite, str], config: TickerConfig) -> ExchangeInterface:
        """
        Build a new, IDLE exchange instance for a site.

        Raises:
            ValueError: If the site is not supported
        """
        exchange_class = self.get_exchange_class(site)
        exchange = exchange_class(config)
        logger.debug(f"Built {exchange!r}")
        return exchange

    def __repr__(self) -> str:
        return f"<ExchangeManager(exchanges={self.list_sites()})>"

    def __len__(self) -> int:
        return len(self.exchanges)
