"""Hashing, ABI encoding and merkle-proof helpers shared by contracts, scripts and tests."""

from .cryptography import (
    CryptoUtils,
    ETH_ADDRESS,
    ZERO_ADDRESS,
    address_leaf,
    allocation_leaf,
    keccak256,
)
from .merkle import MerkleTree, process_proof, verify_proof

__all__ = [
    'CryptoUtils',
    'ETH_ADDRESS',
    'ZERO_ADDRESS',
    'address_leaf',
    'allocation_leaf',
    'keccak256',
    'MerkleTree',
    'process_proof',
    'verify_proof'
]
