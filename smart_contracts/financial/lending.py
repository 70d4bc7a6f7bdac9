from typing import Dict, List, Sequence
from enum import Enum

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Ownable, Initializable, Revert, initializer, only_owner, view
from .nft import ERC721A

FEE_BASE = 10_000
SECONDS_PER_YEAR = 365 * 24 * 60 * 60


class VaultStatus(Enum):
    FUNDING = "FUNDING"
    FROZEN = "FROZEN"
    BORROWED = "BORROWED"
    REPAID = "REPAID"
    DEFAULTED = "DEFAULTED"
    REFUNDING = "REFUNDING"


class BalanceVaultShare(Ownable, ERC721A):
    """Lender share NFT; only the owning vault mints and burns"""

    def __init__(self):
        super().__init__("", "")

    def initialize(self, name: str, symbol: str, vault: str):
        if self.owner != ZERO_ADDRESS:
            raise Revert("Initializable: contract is already initialized")
        self.require(vault != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.name = name
        self.symbol = symbol
        self._transfer_ownership(vault)

    @only_owner
    def mint(self, to: str) -> int:
        return self._mint(to, 1)

    @only_owner
    def burn(self, token_id: int):
        self._burn(token_id)


class BalanceVault(Initializable, Ownable, SmartContract):
    """Fixed-term loan funded by lenders in allowed stable tokens.

    Lenders fund until ``freeze_timestamp`` and receive one share NFT per
    deposit. After the freeze the borrower (vault owner) withdraws the
    funds, minus the borrower fee, and repays principal plus APR interest
    before ``repayment_timestamp``. Amounts of every allowed token are
    counted one to one against ``funding_amount``.
    """

    def __init__(self):
        super().__init__()

    @initializer
    def initialize(self, borrower: str, dao: str, usdb: str, nft: str, funding_amount: int,
                   allowed_tokens: Sequence[str], freeze_timestamp: int, repayment_timestamp: int,
                   apr: int, fee_borrower: int, fee_lender_usdb: int, fee_lender_other: int):
        self.require(borrower != ZERO_ADDRESS and dao != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(nft != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(funding_amount > 0, "ZERO_AMOUNT")
        self.require(len(allowed_tokens) > 0, "NO_ALLOWED_TOKENS")
        self.require(freeze_timestamp < repayment_timestamp, "INVALID_TIMESTAMPS")

        self.manager = self.msg_sender
        self.dao = dao
        self.usdb = usdb
        self.nft = nft
        self.funding_amount = funding_amount
        self.allowed_tokens: List[str] = list(allowed_tokens)
        self.freeze_timestamp = freeze_timestamp
        self.repayment_timestamp = repayment_timestamp
        self.apr = apr
        self.fee_borrower = fee_borrower
        self.fee_lender_usdb = fee_lender_usdb
        self.fee_lender_other = fee_lender_other

        self.total_funded = 0
        self.funded_by_token: Dict[str, int] = {}
        self.shares: Dict[int, Dict] = {}
        self.withdrawn = False
        self.repaid = False

        self._transfer_ownership(borrower)

    # Lenders

    def fund(self, token: str, amount: int) -> int:
        if self.block_timestamp >= self.freeze_timestamp:
            raise Revert("FUNDING_CLOSED")
        if token not in self.allowed_tokens:
            raise Revert("TOKEN_NOT_ALLOWED")
        self.require(amount > 0, "ZERO_AMOUNT")
        if self.total_funded + amount > self.funding_amount:
            raise Revert("FUNDING_LIMIT_REACHED")

        lender = self.msg_sender
        self._call(token, 'transfer_from', lender, self.address, amount)
        share_id = self._call(self.nft, 'mint', lender)
        self.shares[share_id] = {'token': token, 'amount': amount}
        self.funded_by_token[token] = self.funded_by_token.get(token, 0) + amount
        self.total_funded += amount

        self._emit_event('Funded', {'lender': lender, 'token': token, 'amount': amount, 'shareId': share_id})
        return share_id

    def redeem(self, share_id: int):
        if not self.repaid:
            raise Revert("NOT_REPAID")
        share = self._take_share(share_id)
        principal = share['amount']
        interest = self.interest_for(principal)
        fee_rate = self.fee_lender_usdb if share['token'] == self.usdb else self.fee_lender_other
        fee = interest * fee_rate // FEE_BASE

        self._call(share['token'], 'transfer', self.msg_sender, principal + interest - fee)
        if fee:
            self._call(share['token'], 'transfer', self.dao, fee)
        self._emit_event('Redeemed', {
            'lender': self.msg_sender,
            'shareId': share_id,
            'token': share['token'],
            'amount': principal + interest - fee,
            'fee': fee
        })

    def refund(self, share_id: int):
        if self.withdrawn or self.block_timestamp < self.repayment_timestamp:
            raise Revert("NOT_REFUNDABLE")
        share = self._take_share(share_id)
        self.funded_by_token[share['token']] -= share['amount']
        self.total_funded -= share['amount']
        self._call(share['token'], 'transfer', self.msg_sender, share['amount'])
        self._emit_event('Refunded', {
            'lender': self.msg_sender,
            'shareId': share_id,
            'token': share['token'],
            'amount': share['amount']
        })

    def _take_share(self, share_id: int) -> Dict:
        share = self.shares.get(share_id)
        if share is None:
            raise Revert("INVALID_SHARE")
        if self._call(self.nft, 'owner_of', share_id) != self.msg_sender:
            raise Revert("NOT_SHARE_OWNER")
        self._call(self.nft, 'burn', share_id)
        del self.shares[share_id]
        return share

    # Borrower

    @only_owner
    def withdraw(self):
        if self.block_timestamp < self.freeze_timestamp:
            raise Revert("NOT_FROZEN")
        if self.block_timestamp >= self.repayment_timestamp:
            raise Revert("REPAYMENT_PASSED")
        if self.withdrawn:
            raise Revert("ALREADY_WITHDRAWN")
        self.require(self.total_funded > 0, "NOTHING_FUNDED")
        self.withdrawn = True

        total_fee = 0
        for token, amount in self.funded_by_token.items():
            fee = amount * self.fee_borrower // FEE_BASE
            total_fee += fee
            if fee:
                self._call(token, 'transfer', self.dao, fee)
            self._call(token, 'transfer', self.owner, amount - fee)
        self._emit_event('Withdrawn', {'borrower': self.owner, 'amount': self.total_funded, 'fee': total_fee})

    def repay(self):
        if not self.withdrawn:
            raise Revert("NOT_WITHDRAWN")
        if self.repaid:
            raise Revert("ALREADY_REPAID")
        self.repaid = True

        total = 0
        for token, amount in self.funded_by_token.items():
            due = amount + self.interest_for(amount)
            total += due
            self._call(token, 'transfer_from', self.msg_sender, self.address, due)
        self._emit_event('Repaid', {'payer': self.msg_sender, 'amount': total})

    # Views

    @view
    def interest_for(self, principal: int) -> int:
        duration = self.repayment_timestamp - self.freeze_timestamp
        return principal * self.apr * duration // (FEE_BASE * SECONDS_PER_YEAR)

    @view
    def repayment_amount(self) -> int:
        return sum(amount + self.interest_for(amount) for amount in self.funded_by_token.values())

    @view
    def status(self) -> str:
        now = self.block_timestamp
        if self.repaid:
            state = VaultStatus.REPAID
        elif self.withdrawn:
            state = VaultStatus.DEFAULTED if now >= self.repayment_timestamp else VaultStatus.BORROWED
        elif now < self.freeze_timestamp:
            state = VaultStatus.FUNDING
        elif now < self.repayment_timestamp:
            state = VaultStatus.FROZEN
        else:
            state = VaultStatus.REFUNDING
        return state.value

    @view
    def get_vault_info(self) -> Dict:
        return {
            'borrower': self.owner,
            'nft': self.nft,
            'fundingAmount': self.funding_amount,
            'totalFunded': self.total_funded,
            'allowedTokens': list(self.allowed_tokens),
            'freezeTimestamp': self.freeze_timestamp,
            'repaymentTimestamp': self.repayment_timestamp,
            'apr': self.apr,
            'status': self.status()
        }


class BalanceVaultManager(Ownable, SmartContract):
    """Clones lending vaults and their share NFTs from templates"""

    def __init__(self, dao: str, usdb: str, fee_borrower: int = 500,
                 fee_lender_usdb: int = 1500, fee_lender_other: int = 2000):
        super().__init__()
        self.require(dao != ZERO_ADDRESS and usdb != ZERO_ADDRESS, "ZERO_ADDRESS")
        self._check_fees(fee_borrower, fee_lender_usdb, fee_lender_other)
        self.dao = dao
        self.usdb = usdb
        self.fee_borrower = fee_borrower
        self.fee_lender_usdb = fee_lender_usdb
        self.fee_lender_other = fee_lender_other
        self.vault_template = ZERO_ADDRESS
        self.nft_template = ZERO_ADDRESS
        self.generated_vaults: List[str] = []
        self.borrower_vaults: Dict[str, List[str]] = {}
        self._transfer_ownership(self.msg_sender)

    def _check_fees(self, *fees: int):
        for fee in fees:
            self.require(0 <= fee <= FEE_BASE, "TOO_HIGH")

    @only_owner
    def set_vault_template(self, vault_template: str):
        self.require(vault_template != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.vault_template = vault_template

    @only_owner
    def set_nft_template(self, nft_template: str):
        self.require(nft_template != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.nft_template = nft_template

    @only_owner
    def set_dao(self, dao: str):
        self.require(dao != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.dao = dao

    @only_owner
    def set_fee_borrower(self, fee: int):
        self._check_fees(fee)
        self.fee_borrower = fee

    @only_owner
    def set_fee_lender_usdb(self, fee: int):
        self._check_fees(fee)
        self.fee_lender_usdb = fee

    @only_owner
    def set_fee_lender_other(self, fee: int):
        self._check_fees(fee)
        self.fee_lender_other = fee

    def create_vault(self, funding_amount: int, allowed_tokens: Sequence[str],
                     freeze_timestamp: int, repayment_timestamp: int, apr: int) -> str:
        if self.vault_template == ZERO_ADDRESS or self.nft_template == ZERO_ADDRESS:
            raise Revert("template not set")
        if freeze_timestamp <= self.block_timestamp:
            raise Revert("INVALID_TIMESTAMPS")

        borrower = self.msg_sender
        vault = self._clone(self.vault_template)
        nft = self._clone(self.nft_template)
        index = len(self.generated_vaults)
        self._call(nft, 'initialize', f"Balance Vault Share {index}", f"BVS-{index}", vault)
        self._call(vault, 'initialize', borrower, self.dao, self.usdb, nft, funding_amount,
                   list(allowed_tokens), freeze_timestamp, repayment_timestamp, apr,
                   self.fee_borrower, self.fee_lender_usdb, self.fee_lender_other)

        self.generated_vaults.append(vault)
        self.borrower_vaults.setdefault(borrower, []).append(vault)
        self._emit_event('VaultCreated', {'borrower': borrower, 'vault': vault, 'nft': nft})
        return vault

    @view
    def get_generated_vaults_length(self) -> int:
        return len(self.generated_vaults)

    @view
    def get_generated_vaults_page(self, offset: int, limit: int) -> List[str]:
        self.require(offset >= 0 and limit >= 0, "INVALID_PAGE")
        return self.generated_vaults[offset:offset + limit]

    @view
    def get_borrower_vaults(self, borrower: str) -> List[str]:
        return list(self.borrower_vaults.get(borrower, []))
