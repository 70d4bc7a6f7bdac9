"""Oracle Price Sources

Off-chain prices for the binary market keeper.

Key Components:
- RandomPriceSource: Random integer prices for test networks
- ExchangePriceSource: Median spot price across exchange tickers (aiohttp)
- create_price_source: Lookup by name for the CLI
"""

from .price_feed import (
    PriceSource,
    RandomPriceSource,
    ExchangePriceSource,
    PriceSourceError,
    DataSource,
    create_price_source
)

__all__ = [
    'PriceSource',
    'RandomPriceSource',
    'ExchangePriceSource',
    'PriceSourceError',
    'DataSource',
    'create_price_source'
]

__version__ = '1.0.0'
