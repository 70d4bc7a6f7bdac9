"""Deploy the insurance vault manager and the vault template it clones"""

from typing import Dict

from smart_contracts.engine import Contract
from .common import DeploymentContext


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    usdb = ctx.token_address('usdbAddress', 'USDB')

    manager = ctx.deploy('InsuranceVaultManager', usdb)
    template = ctx.deploy('InsuranceVault', label='InsuranceVaultTemplate')
    manager.set_vault_template(template.address)

    return {'InsuranceVaultManager': manager, 'InsuranceVaultTemplate': template}
