import copy
import time
import threading
import logging
from typing import Dict, List, Optional, Any

from .block import Block, GenesisBlock
from .transaction import Transaction

logger = logging.getLogger(__name__)


class Blockchain:
    """Local development chain with automining and time travel.

    Every submitted transaction is mined into its own block. Block
    timestamps strictly increase; ``evm_increase_time`` and
    ``evm_set_next_block_timestamp`` move the clock forward the same way a
    hardhat node does, and ``mine`` produces empty blocks.
    """

    def __init__(self,
                 chain_id: int = 31337,
                 block_gas_limit: int = 30_000_000,
                 gas_price: int = 1_000_000_000,
                 genesis_timestamp: Optional[int] = None):
        """
        Args:
            chain_id: EIP-155 chain id reported by the chain
            block_gas_limit: Gas limit of every block
            gas_price: Gas price charged for every transaction (wei)
            genesis_timestamp: Timestamp of block 0, defaults to now
        """
        self.chain_id = chain_id
        self.block_gas_limit = block_gas_limit
        self.gas_price = gas_price

        self.chain: List[Block] = []
        self.balances: Dict[str, int] = {}
        self.nonces: Dict[str, int] = {}
        self.transactions: Dict[str, Transaction] = {}

        # Clock state
        self.time_offset = 0
        self.next_timestamp: Optional[int] = None

        self.chain_lock = threading.RLock()

        genesis_ts = genesis_timestamp if genesis_timestamp is not None else int(time.time())
        self.chain.append(GenesisBlock(genesis_ts, gas_limit=block_gas_limit))

    # ------------------------------------------------------------------ blocks

    @property
    def height(self) -> int:
        return len(self.chain) - 1

    def get_latest_block(self) -> Block:
        with self.chain_lock:
            return self.chain[-1]

    def get_block_by_height(self, height: int) -> Optional[Block]:
        with self.chain_lock:
            if 0 <= height < len(self.chain):
                return self.chain[height]
        return None

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        with self.chain_lock:
            for block in self.chain:
                if block.hash == block_hash:
                    return block
        return None

    def pending_block_number(self) -> int:
        return self.height + 1

    def pending_timestamp(self) -> int:
        """Timestamp the next mined block will carry"""
        latest = self.get_latest_block()
        if self.next_timestamp is not None:
            return self.next_timestamp
        return max(latest.timestamp + 1, int(time.time()) + self.time_offset)

    def mine_block(self, transactions: List[str] = None, gas_used: int = 0) -> Block:
        """Mine a block with the given transaction hashes"""
        with self.chain_lock:
            latest = self.get_latest_block()
            block = Block(
                number=latest.number + 1,
                timestamp=self.pending_timestamp(),
                parent_hash=latest.hash,
                transactions=transactions,
                gas_limit=self.block_gas_limit,
                gas_used=gas_used,
                base_fee=self.gas_price
            )
            self.chain.append(block)
            self.next_timestamp = None
            return block

    def mine(self, blocks: int = 1, interval: int = 1) -> Block:
        """Mine ``blocks`` empty blocks ``interval`` seconds apart"""
        if blocks < 1:
            raise ValueError("Number of blocks must be positive")
        with self.chain_lock:
            block = None
            for _ in range(blocks):
                if self.next_timestamp is None and block is not None:
                    self.next_timestamp = max(block.timestamp + interval, self.pending_timestamp())
                block = self.mine_block()
            logger.debug(f"Mined {blocks} block(s), head at {block.number}")
            return block

    # ------------------------------------------------------------------- clock

    def evm_increase_time(self, seconds: int) -> int:
        """Move the clock forward; applies from the next mined block"""
        if seconds < 0:
            raise ValueError("Cannot move time backwards")
        with self.chain_lock:
            self.time_offset += seconds
            if self.next_timestamp is not None:
                self.next_timestamp += seconds
            return self.time_offset

    def evm_set_next_block_timestamp(self, timestamp: int):
        with self.chain_lock:
            latest = self.get_latest_block()
            if timestamp <= latest.timestamp:
                raise ValueError(
                    f"Timestamp {timestamp} is lower than or equal to previous block's timestamp {latest.timestamp}"
                )
            # Keep the offset in step so later blocks do not jump backwards
            self.time_offset = max(self.time_offset, timestamp - int(time.time()))
            self.next_timestamp = timestamp

    # ---------------------------------------------------------------- accounts

    def get_balance(self, address: str) -> int:
        return self.balances.get(address, 0)

    def set_balance(self, address: str, amount: int):
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self.balances[address] = amount

    def transfer_native(self, from_address: str, to_address: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.balances.get(from_address, 0) < amount:
            return False
        self.balances[from_address] = self.balances.get(from_address, 0) - amount
        self.balances[to_address] = self.balances.get(to_address, 0) + amount
        return True

    def get_transaction_count(self, address: str) -> int:
        return self.nonces.get(address, 0)

    def increment_nonce(self, address: str) -> int:
        """Return the current nonce of ``address`` and advance it"""
        nonce = self.nonces.get(address, 0)
        self.nonces[address] = nonce + 1
        return nonce

    def add_transaction(self, transaction: Transaction):
        self.transactions[transaction.hash] = transaction

    def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        return self.transactions.get(tx_hash)

    # --------------------------------------------------------------- snapshots

    def snapshot_state(self, include_blocks: bool = False) -> Dict[str, Any]:
        state = {
            'balances': dict(self.balances),
            'nonces': dict(self.nonces)
        }
        if include_blocks:
            state['chain'] = list(self.chain)
            state['transactions'] = dict(self.transactions)
            state['time_offset'] = self.time_offset
            state['next_timestamp'] = self.next_timestamp
        return state

    def restore_state(self, state: Dict[str, Any]):
        with self.chain_lock:
            self.balances = dict(state['balances'])
            self.nonces = dict(state['nonces'])
            if 'chain' in state:
                self.chain = list(state['chain'])
                self.transactions = dict(state['transactions'])
                self.time_offset = state['time_offset']
                self.next_timestamp = state['next_timestamp']

    def get_chain_info(self) -> Dict[str, Any]:
        latest = self.get_latest_block()
        return {
            'chain_id': self.chain_id,
            'height': self.height,
            'latest_block_hash': latest.hash,
            'latest_block_timestamp': latest.timestamp,
            'gas_price': self.gas_price,
            'block_gas_limit': self.block_gas_limit,
            'accounts': len(self.balances)
        }

    def __deepcopy__(self, memo):
        # Blocks are immutable once mined; share them between copies
        clone = self.__class__.__new__(self.__class__)
        memo[id(self)] = clone
        for key, value in self.__dict__.items():
            if key == 'chain_lock':
                setattr(clone, key, threading.RLock())
            elif key in ('chain', 'transactions'):
                setattr(clone, key, copy.copy(value))
            else:
                setattr(clone, key, copy.deepcopy(value, memo))
        return clone
