"""Contract name registry used by factories, scripts and the API"""

from typing import Dict, Type

from .engine import SmartContract
from .financial import (
    MockERC20,
    BalanceMerkleDistributor,
    BalancePass,
    InsuranceVault,
    InsuranceVaultManager,
    BalanceVault,
    BalanceVaultShare,
    BalanceVaultManager
)
from .binary import (
    Oracle,
    OracleManager,
    BinaryConfig,
    BinaryVault,
    BinaryVaultManager,
    BinaryMarket,
    BinaryMarketManager
)

CONTRACTS: Dict[str, Type[SmartContract]] = {
    cls.__name__: cls
    for cls in (
        MockERC20,
        BinaryConfig,
        Oracle,
        OracleManager,
        BinaryVault,
        BinaryVaultManager,
        BinaryMarket,
        BinaryMarketManager,
        BalanceMerkleDistributor,
        BalancePass,
        InsuranceVault,
        InsuranceVaultManager,
        BalanceVault,
        BalanceVaultShare,
        BalanceVaultManager
    )
}


class ArtifactNotFoundError(KeyError):
    """No contract class is registered under the requested name"""
    pass


def get_contract_class(name: str) -> Type[SmartContract]:
    """Get contract class by name"""
    try:
        return CONTRACTS[name]
    except KeyError:
        raise ArtifactNotFoundError(f"Artifact for contract \"{name}\" not found") from None


def list_contract_names():
    return sorted(CONTRACTS)
