import json
from typing import List, Dict, Any

from eth_utils import keccak

ZERO_HASH = "0x" + "00" * 32


class Block:
    """A mined block on the local chain"""

    def __init__(self,
                 number: int,
                 timestamp: int,
                 parent_hash: str,
                 transactions: List[str] = None,
                 gas_limit: int = 30_000_000,
                 gas_used: int = 0,
                 base_fee: int = 0):
        """
        Args:
            number: Block height
            timestamp: Block timestamp in seconds
            parent_hash: Hash of the previous block
            transactions: Hashes of the transactions included in the block
            gas_limit: Block gas limit
            gas_used: Gas consumed by the included transactions
            base_fee: Gas price charged in this block
        """
        self.number = number
        self.timestamp = timestamp
        self.parent_hash = parent_hash
        self.transactions = list(transactions or [])
        self.gas_limit = gas_limit
        self.gas_used = gas_used
        self.base_fee = base_fee
        self.hash = self.calculate_hash()

    def calculate_hash(self) -> str:
        header_data = {
            'number': self.number,
            'timestamp': self.timestamp,
            'parent_hash': self.parent_hash,
            'transactions': self.transactions,
            'gas_limit': self.gas_limit,
            'gas_used': self.gas_used
        }
        header_string = json.dumps(header_data, sort_keys=True)
        return "0x" + keccak(text=header_string).hex()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'hash': self.hash,
            'parent_hash': self.parent_hash,
            'timestamp': self.timestamp,
            'transactions': list(self.transactions),
            'gas_limit': self.gas_limit,
            'gas_used': self.gas_used,
            'base_fee': self.base_fee
        }

    def __str__(self) -> str:
        return f"Block(number={self.number}, hash={self.hash[:10]}..., txs={len(self.transactions)})"

    def __repr__(self) -> str:
        return self.__str__()


class GenesisBlock(Block):
    """First block of the chain"""

    def __init__(self, timestamp: int, gas_limit: int = 30_000_000):
        super().__init__(
            number=0,
            timestamp=timestamp,
            parent_hash=ZERO_HASH,
            gas_limit=gas_limit
        )
