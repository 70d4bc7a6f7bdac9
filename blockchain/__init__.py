"""Blockchain Module

This module provides the local development chain the contracts run on:
- Transaction and receipt records
- Blocks with keccak hashes and strictly increasing timestamps
- Blockchain with balances, nonces, automining, time travel and snapshots
- Network configuration and a JSON-RPC client for remote networks

Components:
- Transaction: Individual transaction handling
- Block: Block structure
- Blockchain: Main chain data structure
- Network: Named network table, secrets and RPC access
"""

from .core.transaction import Transaction, TransactionReceipt, Event
from .core.block import Block, GenesisBlock
from .core.blockchain import Blockchain

__all__ = [
    'Transaction',
    'TransactionReceipt',
    'Event',
    'Block',
    'GenesisBlock',
    'Blockchain',
    'create_local_chain'
]

__version__ = '1.0.0'

# Configuration constants
LOCAL_CHAIN_ID = 31337
BLOCK_GAS_LIMIT = 30_000_000
DEFAULT_GAS_PRICE = 1_000_000_000  # 1 gwei


def create_local_chain(chain_id=LOCAL_CHAIN_ID, genesis_timestamp=None):
    """Create a local development chain

    Args:
        chain_id: Chain id reported by the chain
        genesis_timestamp: Timestamp of block 0, defaults to now

    Returns:
        Blockchain: Fresh chain containing only the genesis block
    """
    return Blockchain(
        chain_id=chain_id,
        block_gas_limit=BLOCK_GAS_LIMIT,
        gas_price=DEFAULT_GAS_PRICE,
        genesis_timestamp=genesis_timestamp
    )


CONFIG = {
    'LOCAL_CHAIN_ID': LOCAL_CHAIN_ID,
    'BLOCK_GAS_LIMIT': BLOCK_GAS_LIMIT,
    'DEFAULT_GAS_PRICE': DEFAULT_GAS_PRICE
}
