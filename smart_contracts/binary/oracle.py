from typing import Dict, List, NamedTuple, Optional

from ..engine import SmartContract, Ownable, Revert, only_owner, view


class PriceRound(NamedTuple):
    timestamp: int
    price: int


class Oracle(Ownable, SmartContract):
    """Round-indexed price feed written by whitelisted writers"""

    def __init__(self):
        super().__init__()
        self.writers: Dict[str, bool] = {}
        self.rounds: Dict[int, Dict[str, object]] = {}
        self.last_round_id = 0
        self.has_written = False
        self._transfer_ownership(self.msg_sender)

    def _only_writer(self):
        if not self.writers.get(self.msg_sender, False):
            raise Revert("Oracle: not writer")

    @only_owner
    def set_writer(self, writer: str, enable: bool):
        self.writers[writer] = enable
        self._emit_event('WriterUpdated', {'writer': writer, 'enabled': enable})

    def write_price(self, round_id: int, timestamp: int, price: int):
        self._only_writer()
        self._write_price(round_id, timestamp, price)

    def write_batch_prices(self, round_ids: List[int], timestamps: List[int], prices: List[int]):
        self._only_writer()
        if not (len(round_ids) == len(timestamps) == len(prices)):
            raise Revert("input array mismatch")
        for round_id, timestamp, price in zip(round_ids, timestamps, prices):
            self._write_price(round_id, timestamp, price)

    def _write_price(self, round_id: int, timestamp: int, price: int):
        if self.has_written:
            if round_id <= self.last_round_id:
                raise Revert("invalid round")
            if timestamp <= self.rounds[self.last_round_id]['time']:
                raise Revert("invalid time")

        self.rounds[round_id] = {
            'writer': self.msg_sender,
            'time': timestamp,
            'price': price
        }
        self.last_round_id = round_id
        self.has_written = True
        self._emit_event('WrotePrice', {
            'writer': self.msg_sender,
            'roundId': round_id,
            'timestamp': timestamp,
            'price': price
        })

    @view
    def get_price(self, round_id: int) -> PriceRound:
        data = self.rounds.get(round_id)
        if data is None:
            raise Revert("Oracle: round not found")
        return PriceRound(data['time'], data['price'])

    @view
    def get_latest_round_data(self) -> Optional[PriceRound]:
        if not self.has_written:
            raise Revert("Oracle: no price")
        return self.get_price(self.last_round_id)
