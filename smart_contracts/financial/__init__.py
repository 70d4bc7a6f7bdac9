"""Financial Smart Contracts Module

Token standards and the Balance product contracts built on them:

- ERC-20 and ERC-721A token bases plus a mintable mock token
- Merkle distributor for cumulative ETH / ERC20 allocations
- Balance Pass membership NFT with whitelist phases
- Insurance vaults cloned per policy holder
- Fixed-term lending vaults with share NFTs
"""

from .token import ERC20, MockERC20
from .nft import ERC721A
from .merkle_distributor import BalanceMerkleDistributor
from .balance_pass import BalancePass, TOKEN_TYPES
from .insurance_vault import InsuranceVault, InsuranceVaultManager
from .lending import BalanceVault, BalanceVaultShare, BalanceVaultManager, VaultStatus

__all__ = [
    # Tokens
    'ERC20',
    'MockERC20',
    'ERC721A',

    # Distribution
    'BalanceMerkleDistributor',
    'BalancePass',
    'TOKEN_TYPES',

    # Vaults
    'InsuranceVault',
    'InsuranceVaultManager',
    'BalanceVault',
    'BalanceVaultShare',
    'BalanceVaultManager',
    'VaultStatus'
]

# Financial constants
BASIS_POINTS_SCALE = 10000  # 1 basis point = 0.01%
