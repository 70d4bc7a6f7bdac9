from typing import Dict

from security.cryptography import ZERO_ADDRESS
from ..engine import Initializable, Ownable, Pausable, Revert, initializer, only_owner, view, when_not_paused
from ..financial.nft import ERC721A


class BinaryVault(Initializable, Ownable, Pausable, ERC721A):
    """Liquidity vault backing binary markets.

    Each staker holds a single position NFT carrying the staked amount.
    Staking again burns the old position and mints one with the summed
    amount; unstaking burns it and re-mints the remainder.
    """

    def __init__(self):
        super().__init__("", "")

    @initializer
    def initialize(self, name: str, symbol: str, vault_id: int,
                   underlying_token: str, config: str):
        self.require(underlying_token != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(config != ZERO_ADDRESS, "ZERO_ADDRESS")

        self.name = name
        self.symbol = symbol
        self.vault_id = vault_id
        self.underlying_token = underlying_token
        self.config = config
        self.vault_manager = ZERO_ADDRESS

        self.whitelisted_markets: Dict[str, bool] = {}
        self.staked_amounts: Dict[int, int] = {}
        self.total_staked = 0
        self.watermark = 0

        self._transfer_ownership(self.msg_sender)

    # Owner

    @only_owner
    def pause_vault(self):
        self._pause()

    @only_owner
    def unpause_vault(self):
        self._unpause()

    @only_owner
    def whitelist_market(self, market: str, whitelist: bool):
        self.require(market != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.whitelisted_markets[market] = whitelist
        self._emit_event('MarketWhitelisted', {'market': market, 'whitelist': whitelist})

    @only_owner
    def set_vault_manager(self, vault_manager: str):
        self.require(vault_manager != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.vault_manager = vault_manager

    # Liquidity

    @when_not_paused
    def stake(self, user: str, amount: int):
        self.require(user != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(amount > 0, "ZERO_AMOUNT")

        payer = user if self.msg_sender == self.vault_manager else self.msg_sender
        self._call(self.underlying_token, 'transfer_from', payer, self.address, amount)

        position = amount
        for token_id in self.tokens_of_owner(user):
            position += self.staked_amounts.pop(token_id, 0)
            self._burn(token_id)

        token_id = self._mint(user, 1)
        self.staked_amounts[token_id] = position
        self.total_staked += amount
        self.watermark += amount

        self._emit_event('Staked', {'user': user, 'tokenId': token_id, 'amount': amount})

    @when_not_paused
    def unstake(self, user: str, amount: int):
        self.require(amount > 0, "ZERO_AMOUNT")
        self.require(user != ZERO_ADDRESS, "ZERO_ADDRESS")

        token_ids = self.tokens_of_owner(user)
        if not token_ids:
            raise Revert(f'NO_DEPOSIT("{user}")')

        sender = self.msg_sender
        if sender != self.vault_manager:
            for token_id in token_ids:
                if not self._is_approved_or_owner(sender, token_id):
                    raise Revert("TransferCallerNotOwnerNorApproved")

        position = sum(self.staked_amounts.get(token_id, 0) for token_id in token_ids)
        if amount > position:
            raise Revert("EXCEED_BALANCE")

        for token_id in token_ids:
            self.staked_amounts.pop(token_id, None)
            self._burn(token_id)

        remaining = position - amount
        if remaining > 0:
            new_token_id = self._mint(user, 1)
            self.staked_amounts[new_token_id] = remaining

        self.total_staked -= amount
        self.watermark -= amount
        self._call(self.underlying_token, 'transfer', user, amount)

        self._emit_event('Unstaked', {'user': user, 'amount': amount})

    @view
    def staked_amount_of(self, user: str) -> int:
        return sum(self.staked_amounts.get(token_id, 0) for token_id in self.tokens_of_owner(user))

    @view
    def get_balance(self) -> int:
        """Underlying tokens held by the vault"""
        return self._call(self.underlying_token, 'balance_of', self.address)

    # Market settlement

    def claim_bet_amount(self, to: str, amount: int):
        if not self.whitelisted_markets.get(self.msg_sender, False):
            raise Revert("NOT_WHITELISTED_MARKET")
        self.require(to != ZERO_ADDRESS, "ZERO_ADDRESS")
        if amount > 0:
            self._call(self.underlying_token, 'transfer', to, amount)
        self._emit_event('BetAmountClaimed', {'market': self.msg_sender, 'to': to, 'amount': amount})
