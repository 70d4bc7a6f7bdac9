"""Smart Contracts Module

This module provides the contracts and the runtime they execute on:

- Engine: VM, deployment, snapshots and signer-bound handles
- Binary: oracle-driven binary options markets and liquidity vaults
- Financial: tokens, merkle distributor, Balance Pass, insurance and lending vaults
- Artifacts: contract name registry for factories and scripts
"""

from wallet.signers import default_signers
from .engine import SmartContractVM, SmartContractEngine, Contract, ContractFactory
from .artifacts import CONTRACTS, ArtifactNotFoundError, get_contract_class, list_contract_names

__all__ = [
    'SmartContractVM',
    'SmartContractEngine',
    'Contract',
    'ContractFactory',
    'CONTRACTS',
    'ArtifactNotFoundError',
    'get_contract_class',
    'list_contract_names',
    'create_contract_engine'
]

__version__ = '1.0.0'

# Configuration constants
DEFAULT_GAS_LIMIT = 30_000_000
DEFAULT_SIGNER_COUNT = 20


def create_contract_engine(chain=None, signer_count=DEFAULT_SIGNER_COUNT):
    """Create a smart contract engine

    Args:
        chain: Blockchain instance (a fresh local chain by default)
        signer_count: Number of funded default signers

    Returns:
        SmartContractEngine: Configured contract engine
    """
    return SmartContractEngine(chain=chain, signers=default_signers(signer_count))


CONFIG = {
    'DEFAULT_GAS_LIMIT': DEFAULT_GAS_LIMIT,
    'DEFAULT_SIGNER_COUNT': DEFAULT_SIGNER_COUNT
}
