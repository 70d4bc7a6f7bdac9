"""Round keeper: executes every executable timeframe of a binary market"""

import asyncio
import logging
from typing import List, Optional

from oracles import PriceSource, RandomPriceSource
from smart_contracts.engine import Contract

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60  # 1m


class RoundKeeper:
    """Polls ``get_executable_timeframes`` and calls ``execute_round`` with a fresh price"""

    def __init__(self, market: Contract, price_source: PriceSource = None,
                 interval: int = DEFAULT_INTERVAL, engine=None, blocks_per_tick: int = 0):
        self.market = market
        self.price_source = price_source or RandomPriceSource()
        self.interval = interval
        # Blocks produced per interval; in-process chains only mine on transactions
        self.engine = engine
        self.blocks_per_tick = blocks_per_tick
        self.executions = 0
        self.failures = 0

    async def execute_round(self) -> Optional[List[int]]:
        """One keeper tick; returns the executed timeframe ids

        Failures are logged and swallowed so the next tick runs regardless.
        """
        try:
            if self.engine is not None and self.blocks_per_tick:
                self.engine.mine(self.blocks_per_tick)
            timeframes = self.market.get_executable_timeframes()
            logger.info(f"timeframes: {timeframes}")
            if not timeframes:
                logger.info("Not executable")
                return None
            price = await self.price_source.fetch_price()
            self.market.execute_round(list(timeframes), price)
            self.executions += 1
            logger.info(f"Executed: {timeframes} {price}")
            return list(timeframes)
        except Exception as e:
            self.failures += 1
            logger.error(f"executeRound: {e}")
            return None

    async def run(self, ticks: Optional[int] = None):
        """Tick immediately, then every ``interval`` seconds; forever unless ``ticks`` is given"""
        count = 0
        while ticks is None or count < ticks:
            await self.execute_round()
            count += 1
            if ticks is None or count < ticks:
                await asyncio.sleep(self.interval)


def run_keeper(market: Contract, price_source: PriceSource = None,
               interval: int = DEFAULT_INTERVAL, ticks: Optional[int] = None,
               engine=None, blocks_per_tick: int = 0) -> RoundKeeper:
    keeper = RoundKeeper(market, price_source, interval, engine, blocks_per_tick)
    asyncio.run(keeper.run(ticks))
    return keeper
