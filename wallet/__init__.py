"""Wallet Module

Development accounts for the local chain and deployer keys for remote
networks.

Classes:
    HDWallet: BIP44 wallet deriving Ethereum accounts from a mnemonic
    Signer: Address and key of an account able to send transactions

Example:
    >>> from wallet import default_signers
    >>> deployer = default_signers(1)[0]
    >>> deployer.address
    '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'
"""

from .signers import (
    HDWallet,
    Signer,
    DEFAULT_MNEMONIC,
    DEFAULT_DERIVATION_PATH,
    DEFAULT_ACCOUNT_COUNT,
    default_signers,
    get_default_wallet,
    signer_from_private_key
)

__all__ = [
    'HDWallet',
    'Signer',
    'DEFAULT_MNEMONIC',
    'DEFAULT_DERIVATION_PATH',
    'DEFAULT_ACCOUNT_COUNT',
    'default_signers',
    'get_default_wallet',
    'signer_from_private_key',
    'validate_mnemonic'
]

__version__ = '1.0.0'


def validate_mnemonic(mnemonic: str) -> bool:
    """Validate BIP39 mnemonic phrase

    Args:
        mnemonic: Mnemonic phrase to validate

    Returns:
        bool: True if mnemonic is valid, False otherwise
    """
    from mnemonic import Mnemonic
    return Mnemonic("english").check(mnemonic)
