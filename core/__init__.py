"""
Core Package

Contains the exchange-agnostic core logic including:
- ExchangeInterface: Abstract base class defining the lifecycle and price acquisition of every exchange
- ExchangeManager: Factory that builds the exchange for a site
- TickerConfig: Selected pairs, update interval and the price cache
- Schemas: Currency pairs, exchange sites and update intervals

This layer ensures all exchanges follow the same interface, making the system modular and scalable.
"""
