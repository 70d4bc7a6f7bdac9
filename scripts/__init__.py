"""Deployment and operations scripts

Each script exposes ``main(ctx)`` taking a ``DeploymentContext`` and
returning the contracts it deployed or operated on, keyed by name.
"""

from . import (
    balance_vault,
    insurance_vault,
    balance_pass,
    merkle_distributor,
    binary_options,
    binary_market_ops
)
from .common import DeploymentContext, create_context
from .execute_round import RoundKeeper, run_keeper

SCRIPTS = {
    'balance-vault': balance_vault.main,
    'insurance-vault': insurance_vault.main,
    'balance-pass': balance_pass.main,
    'merkle-distributor': merkle_distributor.main,
    'binary-options': binary_options.main,
    'binary-market': binary_market_ops.main
}

__all__ = [
    'SCRIPTS',
    'DeploymentContext',
    'create_context',
    'run_script',
    'RoundKeeper',
    'run_keeper'
]


def run_script(name: str, network: str = 'hardhat', **kwargs):
    """Run a deployment script by name on a fresh context"""
    try:
        script = SCRIPTS[name]
    except KeyError:
        raise ValueError(f"Unknown script {name!r}; expected one of {', '.join(sorted(SCRIPTS))}") from None
    ctx = create_context(network, **kwargs)
    return ctx, script(ctx)
