import secrets
from typing import Any, List, Sequence, Union

import rlp
from eth_abi import encode as eth_abi_encode
from eth_utils import is_address, keccak, to_bytes, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Token address the distributor contracts use for the native currency
ETH_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

HexOrBytes = Union[str, bytes]


class CryptoUtils:
    """Utility class for EVM hashing and encoding operations"""

    @staticmethod
    def generate_random_bytes(length: int = 32) -> bytes:
        """Generate cryptographically secure random bytes"""
        return secrets.token_bytes(length)

    @staticmethod
    def keccak256(data: HexOrBytes) -> bytes:
        """Compute keccak-256 of raw bytes or a 0x-prefixed hex string"""
        return keccak(CryptoUtils.to_bytes(data))

    @staticmethod
    def keccak256_hex(data: HexOrBytes) -> str:
        return "0x" + CryptoUtils.keccak256(data).hex()

    @staticmethod
    def to_bytes(data: HexOrBytes) -> bytes:
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        if isinstance(data, str) and data.startswith("0x"):
            return to_bytes(hexstr=data)
        raise TypeError(f"Expected bytes or 0x-prefixed hex string, got {data!r}")

    @staticmethod
    def to_hex(data: bytes) -> str:
        return "0x" + bytes(data).hex()

    @staticmethod
    def abi_encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
        """ABI-encode values the way abi.encode / defaultAbiCoder.encode does"""
        return eth_abi_encode(list(types), list(values))

    @staticmethod
    def to_checksum(address: str) -> str:
        return to_checksum_address(address)

    @staticmethod
    def is_address(value: Any) -> bool:
        return isinstance(value, str) and is_address(value)

    @staticmethod
    def address_bytes(address: str) -> bytes:
        return to_bytes(hexstr=address)

    @staticmethod
    def create_address(sender: str, nonce: int) -> str:
        """Contract address for a CREATE issued by ``sender`` at ``nonce``"""
        encoded = rlp.encode([CryptoUtils.address_bytes(sender), nonce])
        return to_checksum_address(keccak(encoded)[12:])

    @staticmethod
    def function_selector(signature: str) -> str:
        return "0x" + keccak(text=signature)[:4].hex()


def keccak256(data: HexOrBytes) -> bytes:
    return CryptoUtils.keccak256(data)


def allocation_leaf(user: str, token: str, allocation: int) -> bytes:
    """Leaf of the distributor tree: keccak256(abi.encode(user, token, allocation))"""
    return keccak(CryptoUtils.abi_encode(
        ["address", "address", "uint256"], [user, token, allocation]
    ))


def address_leaf(address: str) -> bytes:
    """Leaf of a whitelist tree: keccak256 of the packed 20-byte address"""
    return keccak(CryptoUtils.address_bytes(address))


def normalize_proof(proof: Sequence[HexOrBytes]) -> List[bytes]:
    return [CryptoUtils.to_bytes(node) for node in proof]
