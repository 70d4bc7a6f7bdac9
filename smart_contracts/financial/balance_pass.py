from typing import Dict, List, Sequence

from security.cryptography import CryptoUtils, address_leaf
from security.merkle import verify_proof
from ..engine import Ownable, Revert, only_owner, view
from .nft import ERC721A

TOKEN_TYPES = ("Genesis", "Gold", "Platinum")


class BalancePass(Ownable, ERC721A):
    """Membership NFT minted in three timed phases.

    Two whitelist phases gated by merkle roots over address leaves are
    followed by a public phase. Each wallet can mint up to
    ``max_wallet_limit`` tokens overall and the collection is capped at
    ``max_mint``.
    """

    def __init__(self, max_mint: int, max_wallet_limit: int, base_token_uri: str,
                 wl1_mint_timestamp: int, wl2_mint_timestamp: int, public_mint_timestamp: int,
                 whitelist1_root, whitelist2_root):
        super().__init__("Balance Pass", "BALANCE-PASS")
        self.max_mint = max_mint
        self.max_wallet_limit = max_wallet_limit
        self.base_token_uri = base_token_uri
        self.wl1_mint_timestamp = wl1_mint_timestamp
        self.wl2_mint_timestamp = wl2_mint_timestamp
        self.public_mint_timestamp = public_mint_timestamp
        self.whitelist1_root = CryptoUtils.to_hex(CryptoUtils.to_bytes(whitelist1_root))
        self.whitelist2_root = CryptoUtils.to_hex(CryptoUtils.to_bytes(whitelist2_root))
        self.token_types: Dict[int, int] = {}
        self._transfer_ownership(self.msg_sender)

    # Minting

    def mint_whitelist1(self, proof: Sequence):
        now = self.block_timestamp
        if not (self.wl1_mint_timestamp <= now < self.wl2_mint_timestamp):
            raise Revert("WHITELIST1_MINT_DIDNT_START")
        self._check_proof(proof, self.whitelist1_root)
        self._mint_one()

    def mint_whitelist2(self, proof: Sequence):
        now = self.block_timestamp
        if not (self.wl2_mint_timestamp <= now < self.public_mint_timestamp):
            raise Revert("WHITELIST2_MINT_DIDNT_START")
        self._check_proof(proof, self.whitelist2_root)
        self._mint_one()

    def mint_public(self):
        if self.block_timestamp < self.public_mint_timestamp:
            raise Revert("PUBLIC_MINT_DIDNT_START")
        self._mint_one()

    def _check_proof(self, proof: Sequence, root: str):
        if not verify_proof(proof, root, address_leaf(self.msg_sender)):
            raise Revert("INVALID_PROOF")

    def _mint_one(self):
        sender = self.msg_sender
        if self.number_minted(sender) + 1 > self.max_wallet_limit:
            raise Revert("MAX_WALLET_LIMIT_REACHED")
        if self.current_index + 1 > self.max_mint:
            raise Revert("MAX_MINT_REACHED")
        self._mint(sender, 1)

    # Owner settings

    @only_owner
    def set_base_uri(self, base_token_uri: str):
        self.base_token_uri = base_token_uri

    @only_owner
    def set_max_mint(self, max_mint: int):
        self.max_mint = max_mint

    @only_owner
    def set_max_mint_wallet_limit(self, max_wallet_limit: int):
        self.max_wallet_limit = max_wallet_limit

    @only_owner
    def set_whitelist1_root(self, root):
        self.whitelist1_root = CryptoUtils.to_hex(CryptoUtils.to_bytes(root))

    @only_owner
    def set_whitelist2_root(self, root):
        self.whitelist2_root = CryptoUtils.to_hex(CryptoUtils.to_bytes(root))

    @only_owner
    def set_mint_timestamps(self, wl1_mint_timestamp: int, wl2_mint_timestamp: int,
                            public_mint_timestamp: int):
        self.require(wl1_mint_timestamp <= wl2_mint_timestamp <= public_mint_timestamp,
                     "INVALID_TIMESTAMPS")
        self.wl1_mint_timestamp = wl1_mint_timestamp
        self.wl2_mint_timestamp = wl2_mint_timestamp
        self.public_mint_timestamp = public_mint_timestamp

    @only_owner
    def set_token_type(self, ranges: List[Sequence[int]], token_type: int):
        """Assign ``token_type`` to every id in the inclusive ``[start, end]`` ranges"""
        self.require(0 <= token_type < len(TOKEN_TYPES), "INVALID_TOKEN_TYPE")
        for start, end in ranges:
            self.require(start <= end, "INVALID_RANGE")
            for token_id in range(start, end + 1):
                self.token_types[token_id] = token_type

    # Views

    @view
    def get_token_type(self, token_id: int) -> str:
        return TOKEN_TYPES[self.token_types.get(token_id, 0)]

    @view
    def base_uri(self) -> str:
        return self.base_token_uri

    @view
    def token_uri(self, token_id: int) -> str:
        if not self.exists(token_id):
            raise Revert("URIQueryForNonexistentToken")
        return f"{self.base_token_uri}/{token_id}.json"

    @view
    def current_token_id(self) -> int:
        return self.current_index
