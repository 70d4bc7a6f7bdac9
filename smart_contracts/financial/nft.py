from typing import Dict, List

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Revert, view


class ERC721A(SmartContract):
    """ERC-721 with sequential token ids starting at 0 and batch minting

    Revert reasons follow the custom errors of ERC721A.
    """

    def __init__(self, name: str, symbol: str):
        super().__init__()
        self.name = name
        self.symbol = symbol

        self.current_index = 0
        self.burn_counter = 0
        self.owners: Dict[int, str] = {}
        self.balances: Dict[str, int] = {}
        self.minted_counts: Dict[str, int] = {}
        self.token_approvals: Dict[int, str] = {}
        self.operator_approvals: Dict[str, Dict[str, bool]] = {}

    # Views

    @view
    def total_supply(self) -> int:
        return self.current_index - self.burn_counter

    @view
    def balance_of(self, owner: str) -> int:
        if owner == ZERO_ADDRESS:
            raise Revert("BalanceQueryForZeroAddress")
        return self.balances.get(owner, 0)

    @view
    def owner_of(self, token_id: int) -> str:
        owner = self.owners.get(token_id)
        if owner is None:
            raise Revert("OwnerQueryForNonexistentToken")
        return owner

    @view
    def tokens_of_owner(self, owner: str) -> List[int]:
        return sorted(token_id for token_id, holder in self.owners.items() if holder == owner)

    @view
    def number_minted(self, owner: str) -> int:
        return self.minted_counts.get(owner, 0)

    @view
    def exists(self, token_id: int) -> bool:
        return token_id in self.owners

    @view
    def get_approved(self, token_id: int) -> str:
        if token_id not in self.owners:
            raise Revert("ApprovalQueryForNonexistentToken")
        return self.token_approvals.get(token_id, ZERO_ADDRESS)

    @view
    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.operator_approvals.get(owner, {}).get(operator, False)

    # Approvals

    def approve(self, to: str, token_id: int):
        owner = self.owner_of(token_id)
        sender = self.msg_sender
        if sender != owner and not self.is_approved_for_all(owner, sender):
            raise Revert("ApprovalCallerNotOwnerNorApproved")
        self.token_approvals[token_id] = to
        self._emit_event('Approval', {'owner': owner, 'approved': to, 'tokenId': token_id})

    def set_approval_for_all(self, operator: str, approved: bool):
        sender = self.msg_sender
        self.operator_approvals.setdefault(sender, {})[operator] = approved
        self._emit_event('ApprovalForAll', {'owner': sender, 'operator': operator, 'approved': approved})

    # Transfers

    def transfer_from(self, from_address: str, to: str, token_id: int):
        self._transfer(from_address, to, token_id)

    def _is_approved_or_owner(self, spender: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        return (spender == owner
                or self.is_approved_for_all(owner, spender)
                or self.token_approvals.get(token_id) == spender)

    def _transfer(self, from_address: str, to: str, token_id: int):
        owner = self.owner_of(token_id)
        if owner != from_address:
            raise Revert("TransferFromIncorrectOwner")
        if not self._is_approved_or_owner(self.msg_sender, token_id):
            raise Revert("TransferCallerNotOwnerNorApproved")
        if to == ZERO_ADDRESS:
            raise Revert("TransferToZeroAddress")

        self.token_approvals.pop(token_id, None)
        self.balances[from_address] -= 1
        self.balances[to] = self.balances.get(to, 0) + 1
        self.owners[token_id] = to
        self._emit_event('Transfer', {'from': from_address, 'to': to, 'tokenId': token_id})

    # Mint / burn

    def _mint(self, to: str, quantity: int) -> int:
        """Mint ``quantity`` tokens to ``to`` and return the first id"""
        if to == ZERO_ADDRESS:
            raise Revert("MintToZeroAddress")
        if quantity <= 0:
            raise Revert("MintZeroQuantity")

        start = self.current_index
        for token_id in range(start, start + quantity):
            self.owners[token_id] = to
            self._emit_event('Transfer', {'from': ZERO_ADDRESS, 'to': to, 'tokenId': token_id})
        self.balances[to] = self.balances.get(to, 0) + quantity
        self.minted_counts[to] = self.minted_counts.get(to, 0) + quantity
        self.current_index = start + quantity
        return start

    def _burn(self, token_id: int, approval_check: bool = False):
        owner = self.owner_of(token_id)
        if approval_check and not self._is_approved_or_owner(self.msg_sender, token_id):
            raise Revert("TransferCallerNotOwnerNorApproved")

        self.token_approvals.pop(token_id, None)
        del self.owners[token_id]
        self.balances[owner] -= 1
        self.burn_counter += 1
        self._emit_event('Transfer', {'from': owner, 'to': ZERO_ADDRESS, 'tokenId': token_id})
