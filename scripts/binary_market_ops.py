"""Inspect a binary market and claim the deployer's winnings.

With a ``binaryMarketAddress`` in the address book the script operates on
that market. On local networks without one it deploys the binary options
stack and plays a short demo round first so there is something to claim.
"""

import logging
from typing import Dict

from smart_contracts.binary import BULL
from smart_contracts.engine import Contract
from . import binary_options
from .common import DeploymentContext

logger = logging.getLogger(__name__)

TIMEFRAME_ID = 0
DEMO_LIQUIDITY = 100 * 10**18
DEMO_BET = 10**18
DEMO_LOCK_PRICE = 1000
DEMO_CLOSE_PRICE = 1004


def mine_until(ctx: DeploymentContext, block_number: int):
    """Mine empty blocks so the next transaction lands in ``block_number``"""
    missing = block_number - ctx.engine.get_block_number() - 1
    if missing > 0:
        ctx.engine.mine(missing)


def prepare_demo_market(ctx: DeploymentContext) -> Contract:
    deployed = binary_options.main(ctx)
    market, vault_manager = deployed['BinaryMarket'], deployed['BinaryVaultManager']
    operator = ctx.signers[1]
    dai = ctx.attach('MockERC20', deployed['BinaryVault'].underlying_token)

    dai.mint(ctx.deployer.address, DEMO_LIQUIDITY + DEMO_BET)
    dai.approve(deployed['BinaryVault'].address, DEMO_LIQUIDITY)
    vault_manager.stake(dai.address, DEMO_LIQUIDITY)
    dai.approve(market.address, DEMO_BET)

    market.connect(operator).genesis_start_round()
    market.open_position(DEMO_BET, TIMEFRAME_ID, BULL)

    round_ = market.rounds[TIMEFRAME_ID][1]
    mine_until(ctx, round_['lock_block'])
    market.connect(operator).genesis_lock_round(TIMEFRAME_ID, DEMO_LOCK_PRICE)

    round_ = market.rounds[TIMEFRAME_ID][1]
    mine_until(ctx, round_['close_block'])
    market.connect(operator).execute_round([TIMEFRAME_ID], DEMO_CLOSE_PRICE)
    logger.info(f"Demo rounds played on market {market.address}")
    return market


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    logger.info(f"Executing contract method with the account: {ctx.deployer.address}")
    market_address = ctx.book_address('binaryMarketAddress')
    if market_address:
        market = ctx.attach('BinaryMarket', market_address)
    elif ctx.network.is_local:
        market = prepare_demo_market(ctx)
    else:
        raise ValueError(f"binaryMarketAddress missing from address book of {ctx.network.name}")

    vault = ctx.attach('BinaryVault', market.vault)
    token = ctx.attach('MockERC20', vault.underlying_token)
    logger.info(f"vault: {vault.whitelisted_markets.get(market.address, False)} "
                f"{token.balance_of(vault.address)}")
    logger.info(f"latestRoundId: {market.oracle_latest_round_id}")

    user = ctx.deployer.address
    current_epoch = market.current_epochs[TIMEFRAME_ID]
    epoch = current_epoch - 2
    claimable = market.is_claimable(TIMEFRAME_ID, epoch, user)
    logger.info(f"currentEpoch: {current_epoch} {claimable}")
    logger.info(f"ledger: {market.rounds[TIMEFRAME_ID].get(epoch)} "
                f"{market.ledger[TIMEFRAME_ID].get(epoch, {}).get(user)}")

    if claimable:
        receipt = market.claim(TIMEFRAME_ID, epoch)
        claimed = receipt.find_event('Claimed')
        logger.info(f"Claimed {claimed['amount']} for epoch {epoch}")
    else:
        logger.info(f"Nothing to claim for epoch {epoch}")

    return {'BinaryMarket': market, 'BinaryVault': vault}
