from typing import Dict, List

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Ownable, Revert, only_owner, view
from .vault import BinaryVault


class BinaryVaultManager(Ownable, SmartContract):
    """Creates one vault per underlying token and routes liquidity to it"""

    def __init__(self):
        super().__init__()
        self.vaults: Dict[str, str] = {}
        self.underlying_tokens: List[str] = []
        self._transfer_ownership(self.msg_sender)

    @only_owner
    def create_new_vault(self, name: str, symbol: str, vault_id: int,
                         underlying_token: str, config: str) -> str:
        self.require(underlying_token != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(underlying_token not in self.vaults, "VAULT_EXISTS")

        vault = self._create(BinaryVault)
        self._call(vault, 'initialize', name, symbol, vault_id, underlying_token, config)
        self._call(vault, 'set_vault_manager', self.address)
        self._call(vault, 'transfer_ownership', self.msg_sender)

        self.vaults[underlying_token] = vault
        self.underlying_tokens.append(underlying_token)

        self._emit_event('VaultCreated', {
            'vault': vault,
            'vaultId': vault_id,
            'underlyingToken': underlying_token
        })
        return vault

    def _vault_for(self, underlying_token: str, amount: int) -> str:
        vault = self.vaults.get(underlying_token)
        if vault is None:
            raise Revert("invalid uToken")
        self.require(amount > 0, "zero amount")
        return vault

    def stake(self, underlying_token: str, amount: int):
        vault = self._vault_for(underlying_token, amount)
        self._call(vault, 'stake', self.msg_sender, amount)

    def unstake(self, underlying_token: str, amount: int):
        vault = self._vault_for(underlying_token, amount)
        self._call(vault, 'unstake', self.msg_sender, amount)

    @view
    def get_underlying_tokens_count(self) -> int:
        return len(self.underlying_tokens)
