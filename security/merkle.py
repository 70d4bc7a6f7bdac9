from typing import Callable, List, Optional, Sequence

from .cryptography import CryptoUtils, HexOrBytes, keccak256, normalize_proof


def _hash_pair(a: bytes, b: bytes) -> bytes:
    if a > b:
        a, b = b, a
    return keccak256(a + b)


class MerkleTree:
    """Merkle tree over pre-hashed leaves with sorted-pair hashing.

    Layers are built bottom-up. An odd node at the end of a layer is
    promoted to the next layer unchanged, so roots and proofs match the
    ones produced by merkletreejs with ``sortPairs: true`` and verify
    against OpenZeppelin's ``MerkleProof``.
    """

    def __init__(self, leaves: Sequence[HexOrBytes],
                 hash_fn: Callable[[bytes], bytes] = keccak256,
                 sort_pairs: bool = True):
        self.hash_fn = hash_fn
        self.sort_pairs = sort_pairs
        self.leaves: List[bytes] = [CryptoUtils.to_bytes(leaf) for leaf in leaves]
        self.layers: List[List[bytes]] = self._build_layers(self.leaves)

    def _combine(self, left: bytes, right: bytes) -> bytes:
        if self.sort_pairs and left > right:
            left, right = right, left
        return self.hash_fn(left + right)

    def _build_layers(self, leaves: List[bytes]) -> List[List[bytes]]:
        layers = [list(leaves)]
        current = layers[0]
        while len(current) > 1:
            next_layer = []
            for i in range(0, len(current), 2):
                if i + 1 == len(current):
                    next_layer.append(current[i])
                else:
                    next_layer.append(self._combine(current[i], current[i + 1]))
            layers.append(next_layer)
            current = next_layer
        return layers

    @property
    def root(self) -> bytes:
        top = self.layers[-1]
        return top[0] if top else b""

    def get_root(self) -> bytes:
        return self.root

    def get_hex_root(self) -> str:
        return CryptoUtils.to_hex(self.root)

    def get_leaf_index(self, leaf: HexOrBytes) -> int:
        leaf = CryptoUtils.to_bytes(leaf)
        try:
            return self.leaves.index(leaf)
        except ValueError:
            return -1

    def get_proof(self, leaf: HexOrBytes, index: Optional[int] = None) -> List[bytes]:
        """Sibling path for ``leaf``; empty when the leaf is not in the tree"""
        if index is None:
            index = self.get_leaf_index(leaf)
        if index < 0:
            return []

        proof = []
        for layer in self.layers[:-1]:
            pair_index = index - 1 if index % 2 else index + 1
            if pair_index < len(layer):
                proof.append(layer[pair_index])
            index //= 2
        return proof

    def get_hex_proof(self, leaf: HexOrBytes, index: Optional[int] = None) -> List[str]:
        return [CryptoUtils.to_hex(node) for node in self.get_proof(leaf, index)]

    def verify(self, proof: Sequence[HexOrBytes], leaf: HexOrBytes,
               root: Optional[HexOrBytes] = None) -> bool:
        return verify_proof(proof, self.root if root is None else root, leaf)

    def __len__(self) -> int:
        return len(self.leaves)


def process_proof(proof: Sequence[HexOrBytes], leaf: HexOrBytes) -> bytes:
    computed = CryptoUtils.to_bytes(leaf)
    for node in normalize_proof(proof):
        computed = _hash_pair(computed, node)
    return computed


def verify_proof(proof: Sequence[HexOrBytes], root: HexOrBytes, leaf: HexOrBytes) -> bool:
    """OpenZeppelin MerkleProof.verify"""
    return process_proof(proof, leaf) == CryptoUtils.to_bytes(root)
