from typing import Dict, List, Optional
from dataclasses import dataclass, field
import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex
from mnemonic import Mnemonic

logger = logging.getLogger(__name__)

Account.enable_unaudited_hdwallet_features()

# Hardhat's default development mnemonic
DEFAULT_MNEMONIC = "test test test test test test test test test test test junk"
DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0"
DEFAULT_ACCOUNT_COUNT = 20


@dataclass
class Signer:
    """An externally owned account able to send transactions"""
    address: str
    private_key: str = field(repr=False)
    index: int = 0
    path: Optional[str] = None

    def sign_message(self, message: str) -> str:
        signed = Account.sign_message(encode_defunct(text=message), private_key=self.private_key)
        return to_hex(signed.signature)

    def to_dict(self) -> Dict[str, object]:
        return {
            'index': self.index,
            'address': self.address,
            'path': self.path
        }

    def __str__(self) -> str:
        return self.address


class HDWallet:
    """Hierarchical Deterministic Wallet (BIP44, Ethereum coin type)"""

    def __init__(self, mnemonic: Optional[str] = None, passphrase: str = "",
                 derivation_path: str = DEFAULT_DERIVATION_PATH):
        self.mnemonic_generator = Mnemonic("english")

        if mnemonic:
            if not self.mnemonic_generator.check(mnemonic):
                raise ValueError("Invalid mnemonic")
            self.mnemonic = mnemonic
        else:
            self.mnemonic = self.mnemonic_generator.generate(strength=128)

        self.passphrase = passphrase
        self.derivation_path = derivation_path

        # Derived signers cache
        self.derived: Dict[int, Signer] = {}

    def derive_signer(self, index: int) -> Signer:
        """Derive the signer at ``<derivation_path>/<index>``"""
        if index < 0:
            raise ValueError("Account index must be non-negative")
        if index not in self.derived:
            path = f"{self.derivation_path}/{index}"
            account = Account.from_mnemonic(self.mnemonic, passphrase=self.passphrase,
                                            account_path=path)
            self.derived[index] = Signer(
                address=account.address,
                private_key=to_hex(account.key),
                index=index,
                path=path
            )
        return self.derived[index]

    def derive_signers(self, count: int = DEFAULT_ACCOUNT_COUNT) -> List[Signer]:
        return [self.derive_signer(i) for i in range(count)]


_default_wallet: Optional[HDWallet] = None


def get_default_wallet() -> HDWallet:
    global _default_wallet
    if _default_wallet is None:
        _default_wallet = HDWallet(DEFAULT_MNEMONIC)
    return _default_wallet


def default_signers(count: int = DEFAULT_ACCOUNT_COUNT) -> List[Signer]:
    """Development accounts derived from the default mnemonic"""
    return get_default_wallet().derive_signers(count)


def signer_from_private_key(private_key: str, index: int = 0) -> Signer:
    """Signer for a configured deployer key (``secrets.json``)"""
    account = Account.from_key(private_key)
    logger.debug(f"Loaded signer {account.address} from private key")
    return Signer(address=account.address, private_key=to_hex(account.key), index=index)
