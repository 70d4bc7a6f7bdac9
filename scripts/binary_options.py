"""Deploy the binary options stack and wire an example vault and market"""

import logging
from typing import Dict

from smart_contracts.engine import Contract
from .common import DeploymentContext

logger = logging.getLogger(__name__)

TRADING_FEE = 1000  # 10%
CLAIM_NOTICE_PERIOD = 86400
MIN_BET_AMOUNT = 10**17  # 0.1 token

TIMEFRAMES = [
    {'id': 0, 'interval': 60, 'interval_blocks': 10},  # 1m
    {'id': 1, 'interval': 300, 'interval_blocks': 50},  # 5m
    {'id': 2, 'interval': 900, 'interval_blocks': 150}  # 15m
]


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    owner = ctx.deployer
    operator = ctx.book_address('operatorAddress') or ctx.signers[1].address
    treasury = ctx.book_address('treasuryAddress') or ctx.signers[2].address
    logger.info(f"owner: {owner.address} operator: {operator} treasury: {treasury}")
    dai = ctx.token_address('daiAddress', 'DAI')

    oracle = ctx.deploy('Oracle', label='Binary Oracle')
    config = ctx.deploy('BinaryConfig', TRADING_FEE, CLAIM_NOTICE_PERIOD, treasury,
                        label='Binary Config')
    vault_manager = ctx.deploy('BinaryVaultManager', label='Binary Vault Manager')
    market_manager = ctx.deploy('BinaryMarketManager', label='Binary Market Manager')

    logger.info("deploying new vault...")
    vault_manager.create_new_vault("Balance BTC/USDC Vault", "BTCUSDC", 0, dai, config.address)
    vault = ctx.attach('BinaryVault', vault_manager.vaults[dai])
    ctx.record('Example Vault', vault)
    ctx.log_verify(vault.address)

    logger.info("deploying new market...")
    market_manager.create_market(oracle.address, vault.address, "BTC/USDC Market", TIMEFRAMES,
                                 owner.address, operator, MIN_BET_AMOUNT)
    market = ctx.attach('BinaryMarket', market_manager.all_markets[0]['market'])
    ctx.record('Example Market', market)
    ctx.log_verify(market.address)

    oracle.set_writer(market.address, True)
    vault.whitelist_market(market.address, True)

    return {
        'Oracle': oracle,
        'BinaryConfig': config,
        'BinaryVaultManager': vault_manager,
        'BinaryMarketManager': market_manager,
        'BinaryVault': vault,
        'BinaryMarket': market
    }
