from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Ownable, Initializable, initializer, only_owner


class BinaryConfig(Initializable, Ownable, SmartContract):
    """Fee and treasury settings shared by binary markets"""

    FEE_BASE = 10_000

    def __init__(self, trading_fee: int = None, claim_notice_period: int = None, treasury: str = None):
        super().__init__()
        # Plain deployments pass the settings to the constructor
        if trading_fee is not None:
            self.initialize(trading_fee, claim_notice_period, treasury)

    @initializer
    def initialize(self, trading_fee: int, claim_notice_period: int, treasury: str):
        self.require(trading_fee <= self.FEE_BASE, "TOO_HIGH")
        self.require(treasury != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.trading_fee = trading_fee
        self.claim_notice_period = claim_notice_period
        self.treasury = treasury
        self._transfer_ownership(self.msg_sender)

    @only_owner
    def set_trading_fee(self, new_trading_fee: int):
        self.require(new_trading_fee <= self.FEE_BASE, "TOO_HIGH")
        self.trading_fee = new_trading_fee

    @only_owner
    def set_claim_notice_period(self, new_notice_period: int):
        self.claim_notice_period = new_notice_period

    @only_owner
    def set_treasury(self, new_treasury: str):
        self.require(new_treasury != ZERO_ADDRESS, "ZERO_ADDRESS")
        self.treasury = new_treasury
