from typing import Dict, List, Sequence

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Ownable, Initializable, Revert, initializer, only_owner, view

SECONDS_PER_MONTH = 30 * 24 * 60 * 60


class InsuranceVault(Initializable, Ownable, SmartContract):
    """Life cover policy for one holder, cloned from a template by the manager"""

    def __init__(self):
        super().__init__()

    @initializer
    def initialize(self, holder: str, usdb: str, insurer: str, id_number: str,
                   personal_details: Sequence[str], premium: int, smoker: bool,
                   cover_amount: int, date_of_birth: int):
        self.require(holder != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(usdb != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.require(len(personal_details) == 3, "INVALID_PERSONAL_DETAILS")

        first_name, last_name, physical_address = personal_details
        self.holder = holder
        self.usdb = usdb
        self.manager = self.msg_sender
        self.id_number = id_number
        self.first_name = first_name
        self.last_name = last_name
        self.physical_address = physical_address
        self.premium = premium
        self.smoker = smoker
        self.cover_amount = cover_amount
        self.date_of_birth = date_of_birth
        self.created_at = self.block_timestamp
        self.paid_until = self.block_timestamp
        self.total_premiums_paid = 0
        self.paid_out = False

        self._emit_event('VaultInitialized', {
            'holder': holder,
            'idNumber': id_number,
            'premium': premium,
            'coverAmount': cover_amount
        })
        self._transfer_ownership(insurer)

    def pay_premium(self, months: int):
        self.require(months > 0, "ZERO_AMOUNT")
        self.require(not self.paid_out, "POLICY_CLOSED")
        amount = self.premium * months
        self._call(self.usdb, 'transfer_from', self.msg_sender, self.address, amount)

        # A lapsed policy restarts cover from now
        start = max(self.paid_until, self.block_timestamp)
        self.paid_until = start + months * SECONDS_PER_MONTH
        self.total_premiums_paid += amount
        self._emit_event('PremiumPaid', {
            'payer': self.msg_sender,
            'months': months,
            'amount': amount,
            'paidUntil': self.paid_until
        })

    @view
    def is_covered(self) -> bool:
        return not self.paid_out and self.block_timestamp < self.paid_until

    @only_owner
    def payout(self, beneficiary: str, amount: int):
        self.require(beneficiary != ZERO_ADDRESS, "ZERO_ADDRESS")
        if self.paid_out:
            raise Revert("ALREADY_PAID_OUT")
        if not self.is_covered():
            raise Revert("NOT_COVERED")
        if amount > self.cover_amount:
            raise Revert("EXCEEDS_COVER")
        balance = self._call(self.usdb, 'balance_of', self.address)
        if amount > balance:
            raise Revert("INSUFFICIENT_BALANCE")

        self.paid_out = True
        self._call(self.usdb, 'transfer', beneficiary, amount)
        self._emit_event('PaidOut', {'beneficiary': beneficiary, 'amount': amount})


class InsuranceVaultManager(Ownable, SmartContract):
    """Creates one insurance vault per registered identity number"""

    def __init__(self, usdb: str):
        super().__init__()
        self.require(usdb != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.usdb = usdb
        self.vault_template = ZERO_ADDRESS
        self.holder_address: Dict[str, str] = {}
        self.generated_vaults: Dict[str, List[str]] = {}
        self.all_vaults: List[str] = []
        self._transfer_ownership(self.msg_sender)

    @only_owner
    def set_vault_template(self, vault_template: str):
        self.require(vault_template != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.vault_template = vault_template
        self._emit_event('VaultTemplateUpdated', {'template': vault_template})

    def create_vault(self, id_number: str, personal_details: Sequence[str], premium: int,
                     smoker: bool, cover_amount: int, date_of_birth: int) -> str:
        if self.vault_template == ZERO_ADDRESS:
            raise Revert("template not set")
        if id_number in self.holder_address:
            raise Revert("ID_NUMBER_ALREADY_REGISTERED")

        holder = self.msg_sender
        vault = self._clone(self.vault_template)
        self._call(vault, 'initialize', holder, self.usdb, self.owner, id_number,
                   list(personal_details), premium, smoker, cover_amount, date_of_birth)

        self.holder_address[id_number] = vault
        self.generated_vaults.setdefault(holder, []).append(vault)
        self.all_vaults.append(vault)
        self._emit_event('VaultCreated', {'holder': holder, 'vault': vault, 'idNumber': id_number})
        return vault

    @view
    def get_generated_vaults_length(self, holder: str) -> int:
        return len(self.generated_vaults.get(holder, []))

    @view
    def get_generated_vaults(self, holder: str) -> List[str]:
        return list(self.generated_vaults.get(holder, []))
