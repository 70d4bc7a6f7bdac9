from typing import Any, Dict, List, Optional

from security.cryptography import ZERO_ADDRESS
from ..engine import (
    SmartContract, Initializable, Pausable, Revert, initializer, view, when_not_paused
)

BULL = 0
BEAR = 1


def _new_round(epoch: int) -> Dict[str, Any]:
    return {
        'epoch': epoch,
        'start_block': 0,
        'lock_block': 0,
        'close_block': 0,
        'start_timestamp': 0,
        'lock_timestamp': 0,
        'close_timestamp': 0,
        'lock_price': 0,
        'close_price': 0,
        'lock_oracle_id': 0,
        'close_oracle_id': 0,
        'total_amount': 0,
        'bull_amount': 0,
        'bear_amount': 0,
        'reward_base_cal_amount': 0,
        'reward_amount': 0,
        'oracle_called': False
    }


class BinaryMarket(Initializable, Pausable, SmartContract):
    """Binary options market with block-based rounds per timeframe.

    Every timeframe runs its own epoch sequence. A round opens for bets at
    ``start_block``, locks at ``lock_block`` and closes one interval later.
    The operator drives the lifecycle: ``genesis_start_round`` opens epoch 1
    everywhere, ``genesis_lock_round`` locks it per timeframe, and
    ``execute_round`` locks the current round, settles the previous one and
    opens the next. Each lock or execute writes one round to the oracle.

    Settlement is pari-mutuel: winners split the round's pool minus the
    trading fee, which goes to the treasury. Bets are held by the vault.
    """

    def __init__(self):
        super().__init__()

    @initializer
    def initialize(self, oracle: str, vault: str, config: str, market_name: str,
                   buffer_blocks: int, timeframes: List[Dict[str, int]],
                   admin: str, operator: str, min_bet_amount: int):
        self.require(oracle != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(vault != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(config != ZERO_ADDRESS, "ZERO_ADDRESS")

        self.oracle = oracle
        self.vault = vault
        self.config = config
        self.market_name = market_name
        self.buffer_blocks = int(buffer_blocks)
        self.admin = admin
        self.operator = operator
        self.min_bet_amount = min_bet_amount

        self.timeframes: Dict[int, Dict[str, int]] = {}
        self.rounds: Dict[int, Dict[int, Dict[str, Any]]] = {}
        self.ledger: Dict[int, Dict[int, Dict[str, Dict[str, Any]]]] = {}
        self.user_rounds: Dict[int, Dict[str, List[int]]] = {}
        self.current_epochs: Dict[int, int] = {}
        self.genesis_lock_once: Dict[int, bool] = {}
        self.genesis_start_once = False
        self.oracle_latest_round_id = 0
        self._set_timeframes(timeframes)

    # Roles

    def _only_operator(self):
        if self.msg_sender != self.operator:
            raise Revert("operator: wut?")

    def _only_admin(self):
        if self.msg_sender != self.admin:
            raise Revert("admin: wut?")

    def _only_admin_or_operator(self):
        if self.msg_sender not in (self.admin, self.operator):
            raise Revert("admin | operator: wut?")

    # Admin

    def set_pause(self, value: bool):
        self._only_admin_or_operator()
        if value:
            self._pause()
        else:
            # Rounds restart from genesis after a pause
            self.genesis_start_once = False
            self.genesis_lock_once = {}
            self._unpause()

    def set_oracle(self, oracle: str):
        self._only_admin()
        self.require(oracle != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.oracle = oracle
        self._emit_event('OracleChanged', {'oracle': oracle})

    def set_operator(self, operator: str):
        self._only_admin()
        self.require(operator != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.operator = operator
        self._emit_event('OperatorChanged', {'operator': operator})

    def set_min_bet_amount(self, min_bet_amount: int):
        self._only_admin()
        self.min_bet_amount = min_bet_amount
        self._emit_event('MinBetAmountChanged', {'minBetAmount': min_bet_amount})

    def set_buffer_blocks(self, buffer_blocks: int):
        self._only_admin()
        self.buffer_blocks = buffer_blocks

    def set_timeframes(self, timeframes: List[Dict[str, int]]):
        self._only_admin()
        self._set_timeframes(timeframes)

    def _set_timeframes(self, timeframes: List[Dict[str, int]]):
        for timeframe in timeframes:
            timeframe_id = int(timeframe['id'])
            self.require(int(timeframe['interval_blocks']) > 0, "INVALID_TIMEFRAME")
            self.timeframes[timeframe_id] = {
                'id': timeframe_id,
                'interval': int(timeframe.get('interval', 0)),
                'interval_blocks': int(timeframe['interval_blocks']),
                'buffer_blocks': int(timeframe.get('buffer_blocks', self.buffer_blocks))
            }
            self.rounds.setdefault(timeframe_id, {})
            self.ledger.setdefault(timeframe_id, {})
            self.user_rounds.setdefault(timeframe_id, {})
            self.current_epochs.setdefault(timeframe_id, 0)

    # Round lifecycle

    @when_not_paused
    def genesis_start_round(self):
        self._only_operator()
        self.require(not self.genesis_start_once, "Can only run genesisStartRound once")
        for timeframe_id in self.timeframes:
            self.current_epochs[timeframe_id] += 1
            self._start_round(timeframe_id, self.current_epochs[timeframe_id])
        self.genesis_start_once = True

    @when_not_paused
    def genesis_lock_round(self, timeframe_id: int, price: Optional[int] = None):
        self._only_operator()
        self.require(timeframe_id in self.timeframes, "INVALID_TIMEFRAME")
        self.require(self.genesis_start_once, "Can only run after genesisStartRound is triggered")
        self.require(not self.genesis_lock_once.get(timeframe_id, False),
                     "Can only run genesisLockRound once")

        if price is None:
            price = self._latest_price()
        round_id = self._write_oracle(price, self.block_timestamp)

        epoch = self.current_epochs[timeframe_id]
        self._safe_lock_round(timeframe_id, epoch, round_id, price)
        self.current_epochs[timeframe_id] = epoch + 1
        self._start_round(timeframe_id, epoch + 1)
        self.genesis_lock_once[timeframe_id] = True

    @when_not_paused
    def execute_round(self, timeframe_ids: List[int], price: int, timestamp: Optional[int] = None):
        self._only_operator()
        self.require(self.genesis_start_once, "Can only run after genesisStartRound is triggered")
        for timeframe_id in timeframe_ids:
            self.require(timeframe_id in self.timeframes, "INVALID_TIMEFRAME")
            self.require(self.genesis_lock_once.get(timeframe_id, False),
                         "Can only run after genesisLockRound is triggered")

        round_id = self._write_oracle(price, timestamp if timestamp is not None else self.block_timestamp)

        for timeframe_id in timeframe_ids:
            epoch = self.current_epochs[timeframe_id]
            self._safe_lock_round(timeframe_id, epoch, round_id, price)
            self._safe_end_round(timeframe_id, epoch - 1, round_id, price)
            self._calculate_rewards(timeframe_id, epoch - 1)

            self.current_epochs[timeframe_id] = epoch + 1
            self._safe_start_round(timeframe_id, epoch + 1)

    def _write_oracle(self, price: int, timestamp: int) -> int:
        round_id = self.oracle_latest_round_id + 1
        self._call(self.oracle, 'write_price', round_id, timestamp, price)
        self.oracle_latest_round_id = round_id
        return round_id

    def _latest_price(self) -> int:
        if self.oracle_latest_round_id == 0:
            return 0
        return self._call(self.oracle, 'get_price', self.oracle_latest_round_id).price

    def _start_round(self, timeframe_id: int, epoch: int):
        interval_blocks = self.timeframes[timeframe_id]['interval_blocks']
        interval = self.timeframes[timeframe_id]['interval']
        round_ = _new_round(epoch)
        round_['start_block'] = self.block_number
        round_['lock_block'] = self.block_number + interval_blocks
        round_['close_block'] = self.block_number + 2 * interval_blocks
        round_['start_timestamp'] = self.block_timestamp
        round_['lock_timestamp'] = self.block_timestamp + interval
        round_['close_timestamp'] = self.block_timestamp + 2 * interval
        self.rounds[timeframe_id][epoch] = round_
        self._emit_event('StartRound', {'timeframeId': timeframe_id, 'epoch': epoch})

    def _safe_start_round(self, timeframe_id: int, epoch: int):
        previous = self.rounds[timeframe_id].get(epoch - 2)
        self.require(previous is not None and previous['close_block'] != 0,
                     "Can only start round after round n-2 has ended")
        self.require(self.block_number >= previous['close_block'],
                     "Can only start new round after round n-2 closeBlock")
        self._start_round(timeframe_id, epoch)

    def _safe_lock_round(self, timeframe_id: int, epoch: int, round_id: int, price: int):
        round_ = self.rounds[timeframe_id].get(epoch)
        self.require(round_ is not None and round_['start_block'] != 0,
                     "Can only lock round after round has started")
        self.require(self.block_number >= round_['lock_block'], "Can only lock round after lockBlock")
        self.require(self.block_number <= round_['lock_block'] + self.timeframes[timeframe_id]['buffer_blocks'],
                     "Can only lock round within bufferBlocks")

        interval_blocks = self.timeframes[timeframe_id]['interval_blocks']
        round_['close_block'] = self.block_number + interval_blocks
        round_['close_timestamp'] = self.block_timestamp + self.timeframes[timeframe_id]['interval']
        round_['lock_price'] = price
        round_['lock_oracle_id'] = round_id
        round_['lock_timestamp'] = self.block_timestamp
        self._emit_event('LockRound', {
            'timeframeId': timeframe_id,
            'epoch': epoch,
            'roundId': round_id,
            'price': price
        })

    def _safe_end_round(self, timeframe_id: int, epoch: int, round_id: int, price: int):
        round_ = self.rounds[timeframe_id].get(epoch)
        self.require(round_ is not None and round_['lock_block'] != 0,
                     "Can only end round after round has locked")
        self.require(self.block_number >= round_['close_block'], "Can only end round after closeBlock")
        self.require(self.block_number <= round_['close_block'] + self.timeframes[timeframe_id]['buffer_blocks'],
                     "Can only end round within bufferBlocks")

        round_['close_price'] = price
        round_['close_oracle_id'] = round_id
        round_['close_timestamp'] = self.block_timestamp
        round_['oracle_called'] = True
        self._emit_event('EndRound', {
            'timeframeId': timeframe_id,
            'epoch': epoch,
            'roundId': round_id,
            'price': price
        })

    def _calculate_rewards(self, timeframe_id: int, epoch: int):
        round_ = self.rounds[timeframe_id][epoch]
        self.require(round_['reward_base_cal_amount'] == 0 and round_['reward_amount'] == 0,
                     "Rewards calculated")

        if round_['close_price'] > round_['lock_price']:
            reward_base = round_['bull_amount']
        elif round_['close_price'] < round_['lock_price']:
            reward_base = round_['bear_amount']
        else:
            reward_base = 0

        treasury_amount = 0
        reward_amount = 0
        # Nobody to pay: the pool stays in the vault
        if reward_base > 0:
            trading_fee = self._call(self.config, 'trading_fee')
            fee_base = self._call(self.config, 'FEE_BASE')
            treasury_amount = round_['total_amount'] * trading_fee // fee_base
            reward_amount = round_['total_amount'] - treasury_amount
            if treasury_amount > 0:
                treasury = self._call(self.config, 'treasury')
                self._call(self.vault, 'claim_bet_amount', treasury, treasury_amount)

        round_['reward_base_cal_amount'] = reward_base
        round_['reward_amount'] = reward_amount
        self._emit_event('RewardsCalculated', {
            'timeframeId': timeframe_id,
            'epoch': epoch,
            'rewardBaseCalAmount': reward_base,
            'rewardAmount': reward_amount,
            'treasuryAmount': treasury_amount
        })

    # Betting

    @view
    def bettable(self, timeframe_id: int, epoch: int) -> bool:
        round_ = self.rounds.get(timeframe_id, {}).get(epoch)
        if round_ is None:
            return False
        return (round_['start_block'] != 0
                and round_['lock_block'] != 0
                and round_['start_block'] < self.block_number < round_['lock_block'])

    @when_not_paused
    def open_position(self, amount: int, timeframe_id: int, position: int):
        position = int(position)
        self.require(amount >= self.min_bet_amount, "Bet amount must be greater than minBetAmount")
        self.require(position in (BULL, BEAR), "INVALID_POSITION")
        epoch = self.current_epochs.get(timeframe_id, 0)
        self.require(self.bettable(timeframe_id, epoch), "Round not bettable")

        sender = self.msg_sender
        entries = self.ledger[timeframe_id].setdefault(epoch, {})
        self.require(entries.get(sender, {}).get('amount', 0) == 0, "Can only bet once per round")

        self._call(self._underlying_token(), 'transfer_from', sender, self.vault, amount)

        round_ = self.rounds[timeframe_id][epoch]
        round_['total_amount'] += amount
        if position == BULL:
            round_['bull_amount'] += amount
        else:
            round_['bear_amount'] += amount

        entries[sender] = {'position': position, 'amount': amount, 'claimed': False}
        self.user_rounds[timeframe_id].setdefault(sender, []).append(epoch)

        self._emit_event('PositionOpened', {
            'marketName': self.market_name,
            'user': sender,
            'amount': amount,
            'timeframeId': timeframe_id,
            'roundId': epoch,
            'position': position
        })

    def _underlying_token(self) -> str:
        return self._call(self.vault, 'underlying_token')

    # Claims

    @view
    def is_claimable(self, timeframe_id: int, epoch: int, user: str) -> bool:
        round_ = self.rounds.get(timeframe_id, {}).get(epoch)
        bet = self.ledger.get(timeframe_id, {}).get(epoch, {}).get(user)
        if round_ is None or bet is None:
            return False
        if not round_['oracle_called'] or bet['amount'] == 0 or bet['claimed']:
            return False
        return ((round_['close_price'] > round_['lock_price'] and bet['position'] == BULL)
                or (round_['close_price'] < round_['lock_price'] and bet['position'] == BEAR))

    @view
    def refundable(self, timeframe_id: int, epoch: int, user: str) -> bool:
        round_ = self.rounds.get(timeframe_id, {}).get(epoch)
        bet = self.ledger.get(timeframe_id, {}).get(epoch, {}).get(user)
        if round_ is None or bet is None:
            return False
        buffer_blocks = self.timeframes[timeframe_id]['buffer_blocks']
        return (not round_['oracle_called']
                and not bet['claimed']
                and bet['amount'] != 0
                and self.block_number > round_['close_block'] + buffer_blocks)

    @when_not_paused
    def claim(self, timeframe_id: int, epochs):
        if isinstance(epochs, int):
            epochs = [epochs]
        sender = self.msg_sender
        total = 0
        for epoch in epochs:
            round_ = self.rounds.get(timeframe_id, {}).get(epoch)
            self.require(round_ is not None and round_['start_block'] != 0, "Round has not started")
            self.require(self.block_number > round_['close_block'], "Round has not ended")

            bet = self.ledger[timeframe_id].get(epoch, {}).get(sender)
            if round_['oracle_called']:
                self.require(self.is_claimable(timeframe_id, epoch, sender), "Not eligible for claim")
                amount = bet['amount'] * round_['reward_amount'] // round_['reward_base_cal_amount']
            else:
                self.require(self.refundable(timeframe_id, epoch, sender), "Not eligible for refund")
                amount = bet['amount']
            bet['claimed'] = True
            total += amount
            self._emit_event('Claimed', {
                'marketName': self.market_name,
                'user': sender,
                'timeframeId': timeframe_id,
                'roundId': epoch,
                'amount': amount
            })

        if total > 0:
            self._call(self.vault, 'claim_bet_amount', sender, total)

    # Keeper helpers

    @view
    def get_executable_timeframes(self) -> List[int]:
        """Timeframes whose current round can be locked in the next block"""
        if not self.genesis_start_once or self.paused:
            return []
        executable = []
        for timeframe_id, timeframe in sorted(self.timeframes.items()):
            if not self.genesis_lock_once.get(timeframe_id, False):
                continue
            round_ = self.rounds[timeframe_id].get(self.current_epochs[timeframe_id])
            if round_ is None:
                continue
            if round_['lock_block'] <= self.block_number <= round_['lock_block'] + timeframe['buffer_blocks']:
                executable.append(timeframe_id)
        return executable

    @view
    def get_user_rounds(self, timeframe_id: int, user: str) -> List[int]:
        return list(self.user_rounds.get(timeframe_id, {}).get(user, []))

    @view
    def get_current_round(self, timeframe_id: int) -> Dict[str, Any]:
        return dict(self.rounds[timeframe_id][self.current_epochs[timeframe_id]])
