from typing import Dict, List

from ..engine import SmartContract, Ownable, only_owner, view
from .market import BinaryMarket

DEFAULT_BUFFER_BLOCKS = 100


class BinaryMarketManager(Ownable, SmartContract):
    """Deploys binary markets and keeps the list of them"""

    def __init__(self):
        super().__init__()
        self.all_markets: List[Dict[str, str]] = []
        self._transfer_ownership(self.msg_sender)

    @only_owner
    def create_market(self, oracle: str, vault: str, market_name: str,
                      timeframes: List[Dict[str, int]], admin: str, operator: str,
                      min_bet_amount: int, buffer_blocks: int = DEFAULT_BUFFER_BLOCKS) -> str:
        config = self._call(vault, 'config')
        market = self._create(BinaryMarket)
        self._call(market, 'initialize', oracle, vault, config, market_name, buffer_blocks,
                   timeframes, admin, operator, min_bet_amount)

        self.all_markets.append({'market': market, 'name': market_name})
        self._emit_event('MarketCreated', {
            'market': market,
            'name': market_name,
            'oracle': oracle,
            'vault': vault
        })
        return market

    @view
    def get_markets_count(self) -> int:
        return len(self.all_markets)
