from typing import Dict, List, Optional
import random
import statistics
import asyncio
import logging
from decimal import Decimal
from enum import Enum

import aiohttp

logger = logging.getLogger(__name__)


class DataSource(Enum):
    RANDOM = "RANDOM"
    BINANCE = "BINANCE"
    COINBASE = "COINBASE"
    KRAKEN = "KRAKEN"


class PriceSourceError(Exception):
    """No usable price could be obtained"""
    pass


class PriceSource:
    """Supplies the integer price written by the round keeper"""

    source = DataSource.RANDOM

    async def fetch_price(self) -> int:
        raise NotImplementedError

    def get_price(self) -> int:
        """Blocking wrapper around ``fetch_price``"""
        return asyncio.run(self.fetch_price())


class RandomPriceSource(PriceSource):
    """Uniform random price in ``[0, upper)`` rounded to an integer"""

    def __init__(self, upper: int = 2000, rng: random.Random = None):
        self.upper = upper
        self.rng = rng or random.Random()

    async def fetch_price(self) -> int:
        return round(self.rng.random() * self.upper)


class ExchangePriceSource(PriceSource):
    """Median spot price across public exchange tickers"""

    EXCHANGES = {
        DataSource.BINANCE: {
            'base_url': 'https://api.binance.com/api/v3',
            'pairs': {'BTC-USD': 'BTCUSDT', 'ETH-USD': 'ETHUSDT'}
        },
        DataSource.COINBASE: {
            'base_url': 'https://api.exchange.coinbase.com',
            'pairs': {'BTC-USD': 'BTC-USD', 'ETH-USD': 'ETH-USD'}
        },
        DataSource.KRAKEN: {
            'base_url': 'https://api.kraken.com/0/public',
            'pairs': {'BTC-USD': 'XXBTZUSD', 'ETH-USD': 'XETHZUSD'}
        }
    }

    def __init__(self, symbol: str = 'BTC-USD', sources: Optional[List[DataSource]] = None,
                 timeout: float = 10.0):
        self.symbol = symbol
        self.sources = sources or list(self.EXCHANGES)
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch_price(self) -> int:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            results = await asyncio.gather(
                *(self._fetch_from_source(session, source) for source in self.sources),
                return_exceptions=True
            )

        prices = [price for price in results if isinstance(price, Decimal)]
        for source, result in zip(self.sources, results):
            if isinstance(result, Exception):
                logger.warning(f"Error fetching from {source.value}: {result}")
        if not prices:
            raise PriceSourceError(f"No exchange returned a price for {self.symbol}")
        return int(round(statistics.median(prices)))

    async def fetch_prices(self) -> Dict[DataSource, Decimal]:
        """Raw ticker price per exchange, skipping failures"""
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            results = await asyncio.gather(
                *(self._fetch_from_source(session, source) for source in self.sources),
                return_exceptions=True
            )
        return {
            source: price
            for source, price in zip(self.sources, results)
            if isinstance(price, Decimal)
        }

    async def _fetch_from_source(self, session: aiohttp.ClientSession,
                                 source: DataSource) -> Optional[Decimal]:
        config = self.EXCHANGES[source]
        pair = config['pairs'].get(self.symbol)
        if pair is None:
            raise PriceSourceError(f"{source.value} does not list {self.symbol}")

        if source == DataSource.BINANCE:
            url, params = f"{config['base_url']}/ticker/price", {'symbol': pair}
        elif source == DataSource.COINBASE:
            url, params = f"{config['base_url']}/products/{pair}/ticker", None
        else:
            url, params = f"{config['base_url']}/Ticker", {'pair': pair}

        async with session.get(url, params=params) as response:
            if response.status != 200:
                raise PriceSourceError(f"{source.value} responded with HTTP {response.status}")
            data = await response.json()

        if source == DataSource.KRAKEN:
            return Decimal(data['result'][pair]['c'][0])  # Last trade price
        return Decimal(data['price'])


def create_price_source(name: str = 'random', **kwargs) -> PriceSource:
    """Price source by name: ``random`` or ``exchange``"""
    if name == 'random':
        return RandomPriceSource(**kwargs)
    if name == 'exchange':
        return ExchangePriceSource(**kwargs)
    raise ValueError(f"Unknown price source: {name}")
