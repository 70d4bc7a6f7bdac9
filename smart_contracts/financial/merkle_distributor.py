from typing import Dict, List, Sequence

from security.cryptography import CryptoUtils, ETH_ADDRESS, ZERO_ADDRESS, allocation_leaf
from security.merkle import verify_proof
from ..engine import SmartContract, Ownable, Revert, only_owner, payable, view


class BalanceMerkleDistributor(Ownable, SmartContract):
    """Pays cumulative allocations of ETH or ERC20 tokens against merkle proofs.

    Leaves are ``keccak256(abi.encode(user, token, allocation))``. Allocations
    are cumulative: a claim pays ``allocation - claimed_amount`` so a new root
    with a larger allocation releases only the difference.
    """

    def __init__(self, setter: str):
        super().__init__()
        self.require(setter != ZERO_ADDRESS, "invalid setter")
        self.setter = setter
        self.merkle_root = "0x" + "00" * 32
        self.claimed_amount: Dict[str, Dict[str, int]] = {}
        self._transfer_ownership(self.msg_sender)

    @payable
    def receive(self):
        pass

    def set_merkle_root(self, merkle_root):
        if self.msg_sender != self.setter:
            raise Revert("msg.sender is not setter")
        self.merkle_root = CryptoUtils.to_hex(CryptoUtils.to_bytes(merkle_root))
        self._emit_event('MerkleRootUpdated', {'merkleRoot': self.merkle_root})

    @only_owner
    def set_setter(self, setter: str):
        self.require(setter != ZERO_ADDRESS, "invalid setter")
        self.setter = setter
        self._emit_event('SetterUpdated', {'setter': setter})

    def claim(self, token: str, allocation: int, proof: Sequence):
        self._claim(self.msg_sender, token, allocation, proof)

    def claim_in_batch(self, tokens: List[str], allocations: List[int], proofs: List[Sequence]):
        self.require(len(tokens) == len(allocations) == len(proofs), "invalid length")
        for token, allocation, proof in zip(tokens, allocations, proofs):
            self._claim(self.msg_sender, token, allocation, proof)

    def _claim(self, user: str, token: str, allocation: int, proof: Sequence):
        leaf = allocation_leaf(user, token, allocation)
        if not verify_proof(proof, self.merkle_root, leaf):
            raise Revert("invalid proof")

        claimed = self.claimed_amount.get(user, {}).get(token, 0)
        amount = allocation - claimed
        if amount <= 0:
            return

        self.claimed_amount.setdefault(user, {})[token] = allocation
        self._transfer_out(token, user, amount)
        self._emit_event('Claimed', {'user': user, 'token': token, 'amount': amount})

    @only_owner
    def recover_token(self, token: str, amount: int):
        self._transfer_out(token, self.msg_sender, amount)

    def _transfer_out(self, token: str, to: str, amount: int):
        if token == ETH_ADDRESS:
            self._send_native(to, amount)
        else:
            self._call(token, 'transfer', to, amount)

    @view
    def get_claimed_amount(self, user: str, token: str) -> int:
        return self.claimed_amount.get(user, {}).get(token, 0)
