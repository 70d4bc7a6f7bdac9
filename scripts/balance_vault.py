"""Deploy the lending vault manager with its vault and share templates"""

import logging
from typing import Dict

from smart_contracts.engine import Contract
from .common import DeploymentContext

logger = logging.getLogger(__name__)

FEE_BORROWER = 500
FEE_LENDER_USDB = 1500
FEE_LENDER_OTHER = 2000


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    dao = ctx.book_address('daoAddress') or ctx.deployer.address
    usdb = ctx.token_address('usdbAddress', 'USDB')

    vault_template = ctx.deploy('BalanceVault', label='BalanceVaultTemplate')
    share_template = ctx.deploy('BalanceVaultShare', label='BalanceVaultShareTemplate')
    manager = ctx.deploy('BalanceVaultManager', dao, usdb,
                         FEE_BORROWER, FEE_LENDER_USDB, FEE_LENDER_OTHER)

    manager.set_vault_template(vault_template.address)
    manager.set_nft_template(share_template.address)
    logger.info(f"Templates set on BalanceVaultManager {manager.address}")

    return {
        'BalanceVaultTemplate': vault_template,
        'BalanceVaultShareTemplate': share_template,
        'BalanceVaultManager': manager
    }
