"""Deploy the merkle distributor"""

from typing import Dict

from smart_contracts.engine import Contract
from .common import DeploymentContext

DEFAULT_SETTER = "0x994cd376c9E8D9b8075bE15E6a9AfA9b79eBAaC2"


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    setter = ctx.book_address('merkleSetterAddress') or DEFAULT_SETTER
    distributor = ctx.deploy('BalanceMerkleDistributor', setter)
    return {'BalanceMerkleDistributor': distributor}
