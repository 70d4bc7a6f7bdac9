#!/usr/bin/env python3
"""
Balance Contracts - Command Line Entry Point

Deploys the Balance contracts onto the in-process development chain, runs
the binary market round keeper and serves a read-only API over the chain.

Usage:
    python main.py <command> [options]

Commands:
    accounts                List the funded development accounts
    deploy SCRIPT           Run a deployment script (see --help for names)
    keeper                  Run the binary market round keeper
    serve                   Serve the read-only REST API
    network-info NETWORK    Show a network's configuration and head block

Examples:
    python main.py accounts
    python main.py deploy binary-options --network hardhat
    python main.py keeper --ticks 5 --interval 1
    python main.py serve --deploy binary-options --port 8080
    python main.py network-info mainnet
"""

import sys
import asyncio
import argparse
import logging

from blockchain.network import (
    ConfigurationError,
    RPCError,
    RpcClient,
    get_network,
    load_secrets
)
from oracles import create_price_source
from scripts import SCRIPTS, create_context
from scripts.binary_market_ops import mine_until
from scripts.binary_options import TIMEFRAMES
from scripts.execute_round import DEFAULT_INTERVAL, RoundKeeper
from smart_contracts import ArtifactNotFoundError
from smart_contracts.engine import TransactionReverted

logger = logging.getLogger(__name__)

BLOCK_TIME = 6  # seconds


class BalancePlatform:
    """Runs the CLI commands against one in-process chain"""

    def __init__(self, network: str = 'hardhat', deployments_dir: str = 'deployments'):
        self.network = network
        self.deployments_dir = deployments_dir
        self.ctx = None

    def context(self):
        if self.ctx is None:
            self.ctx = create_context(self.network, deployments_dir=self.deployments_dir)
        return self.ctx

    def list_accounts(self):
        engine = self.context().engine
        for signer in engine.get_signers():
            balance = engine.get_account_balance(signer.address) / 10**18
            print(f"{signer.index:>2}  {signer.address}  {balance:,.4f} ETH")

    def deploy(self, script_name: str):
        ctx = self.context()
        deployed = SCRIPTS[script_name](ctx)
        for label, contract in deployed.items():
            print(f"{label}: {contract.address}")
        return deployed

    def start_keeper(self, price_source: str = 'random', interval: int = DEFAULT_INTERVAL,
                     ticks: int = None) -> RoundKeeper:
        """Deploy the binary options stack, play the genesis rounds and keep executing"""
        ctx = self.context()
        deployed = SCRIPTS['binary-options'](ctx)
        market = deployed['BinaryMarket'].connect(ctx.signers[1])
        keeper = RoundKeeper(market, create_price_source(price_source), interval,
                             engine=ctx.engine, blocks_per_tick=max(1, interval // BLOCK_TIME))

        market.genesis_start_round()
        # Shorter timeframes keep running while the longer ones wait for their lock block
        for timeframe in sorted(TIMEFRAMES, key=lambda tf: tf['interval_blocks']):
            lock_block = market.rounds[timeframe['id']][1]['lock_block']
            while ctx.engine.get_block_number() + keeper.blocks_per_tick < lock_block:
                asyncio.run(keeper.execute_round())
            mine_until(ctx, lock_block)
            market.genesis_lock_round(timeframe['id'])
        logger.info(f"Keeper started for market {market.address}")

        asyncio.run(keeper.run(ticks))
        return keeper

    def serve(self, host: str, port: int, debug: bool = False, script: str = None):
        from api import BlockchainAPI
        if script:
            self.deploy(script)
        BlockchainAPI(self.context().engine).run(host=host, port=port, debug=debug)

    @staticmethod
    def network_info(name: str):
        network = get_network(name)
        print(f"Network: {network.name}")
        print(f"Chain id: {network.chain_id}")
        if network.is_local and name == 'hardhat':
            print("RPC: in-process development chain")
            return
        url = network.rpc_url(load_secrets())
        client = RpcClient(url)
        info = client.get_network_info()
        print(f"RPC: {url}")
        print(f"Remote chain id: {info['chain_id']}")
        print(f"Block number: {info['block_number']}")
        if info['chain_id'] != network.chain_id:
            logger.warning(f"Chain id mismatch: expected {network.chain_id}, got {info['chain_id']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Balance contracts deployment and operations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--network', default='hardhat',
                        help='Network whose address book and deployer are used (default: hardhat)')
    parser.add_argument('--deployments-dir', default='deployments',
                        help='Directory for deployment records (default: deployments)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('accounts', help='List the funded development accounts')

    deploy = subparsers.add_parser('deploy', help='Run a deployment script')
    deploy.add_argument('script', choices=sorted(SCRIPTS))

    keeper = subparsers.add_parser('keeper', help='Run the binary market round keeper')
    keeper.add_argument('--price-source', choices=['random', 'exchange'], default='random')
    keeper.add_argument('--interval', type=int, default=DEFAULT_INTERVAL,
                        help=f'Seconds between rounds (default: {DEFAULT_INTERVAL})')
    keeper.add_argument('--ticks', type=int, default=None,
                        help='Stop after this many ticks (default: run forever)')

    serve = subparsers.add_parser('serve', help='Serve the read-only REST API')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', type=int, default=5000)
    serve.add_argument('--deploy', dest='script', choices=sorted(SCRIPTS),
                       help='Deploy a script before serving')

    info = subparsers.add_parser('network-info', help="Show a network's configuration")
    info.add_argument('name')
    return parser


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s'
    )

    platform = BalancePlatform(args.network, args.deployments_dir)
    try:
        if args.command == 'accounts':
            platform.list_accounts()
        elif args.command == 'deploy':
            platform.deploy(args.script)
        elif args.command == 'keeper':
            platform.start_keeper(args.price_source, args.interval, args.ticks)
        elif args.command == 'serve':
            platform.serve(args.host, args.port, args.debug, args.script)
        elif args.command == 'network-info':
            platform.network_info(args.name)
    except KeyboardInterrupt:
        logger.info("Stopped")
    except (ConfigurationError, RPCError, TransactionReverted, ArtifactNotFoundError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
