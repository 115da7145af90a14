"""
Exchange Backends Package

This package contains individual exchange backend modules.
Each exchange (Bitstamp, Binance) has its own subfolder with:
- api_client.py: REST API logic (pair discovery, last price)
- ws_client.py: WebSocket trade stream
- __init__.py: Main exchange class implementing ExchangeInterface

The modular design allows adding new exchanges without modifying existing code.
"""
