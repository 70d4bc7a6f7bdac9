"""Binary options: oracle, config, liquidity vaults, markets and their managers."""

from .oracle import Oracle, PriceRound
from .oracle_manager import OracleManager
from .config import BinaryConfig
from .vault import BinaryVault
from .vault_manager import BinaryVaultManager
from .market import BinaryMarket, BULL, BEAR
from .market_manager import BinaryMarketManager

__all__ = [
    'Oracle',
    'PriceRound',
    'OracleManager',
    'BinaryConfig',
    'BinaryVault',
    'BinaryVaultManager',
    'BinaryMarket',
    'BULL',
    'BEAR',
    'BinaryMarketManager'
]
