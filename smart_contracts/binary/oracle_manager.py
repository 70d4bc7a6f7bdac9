from typing import Dict

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Ownable, Revert, only_owner, view
from .oracle import PriceRound


class OracleManager(Ownable, SmartContract):
    """Maps market ids to oracles"""

    def __init__(self):
        super().__init__()
        self.oracles: Dict[int, str] = {}
        self._transfer_ownership(self.msg_sender)

    @only_owner
    def add_oracle(self, market_id: int, oracle: str):
        self.require(oracle != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(market_id not in self.oracles, "ORACLE_ALREADY_ADDED")
        self.oracles[market_id] = oracle
        self._emit_event('OracleAdded', {'marketId': market_id, 'oracle': oracle})

    @only_owner
    def remove_oracle(self, market_id: int):
        oracle = self.oracles.pop(market_id, None)
        self.require(oracle is not None, "ORACLE_NOT_ADDED")
        self._emit_event('OracleRemoved', {'marketId': market_id, 'oracle': oracle})

    @view
    def get_price(self, market_id: int, round_id: int) -> PriceRound:
        oracle = self.oracles.get(market_id)
        if oracle is None:
            raise Revert("INVALID_MARKET")
        return self._call(oracle, 'get_price', round_id)
