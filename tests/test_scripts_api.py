import unittest
from unittest.mock import patch

import sys
import os
import json
import random
import asyncio
import tempfile
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main
from api import create_app
from blockchain.network import ConfigurationError, Secrets
from oracles import PriceSource, PriceSourceError, RandomPriceSource
from scripts import SCRIPTS, create_context, run_script
from scripts.binary_market_ops import DEMO_BET, mine_until
from scripts.execute_round import RoundKeeper, run_keeper
from security import ZERO_ADDRESS
from smart_contracts import ArtifactNotFoundError, create_contract_engine

DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ACCOUNT1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ACCOUNT1_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"


class FailingPriceSource(PriceSource):
    async def fetch_price(self) -> int:
        raise PriceSourceError("no price")


class TestDeploymentScripts(unittest.TestCase):
    """Test cases for the deployment scripts"""

    def setUp(self):
        """Set up test fixtures"""
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _saved(self, network='hardhat'):
        with open(os.path.join(self.tmp.name, f"{network}.json")) as f:
            return json.load(f)

    def test_unknown_script(self):
        with self.assertRaisesRegex(ValueError, "Unknown script 'nope'"):
            run_script('nope')

    def test_balance_vault(self):
        ctx, deployed = run_script('balance-vault', deployments_dir=self.tmp.name)
        manager = deployed['BalanceVaultManager']
        self.assertEqual(manager.vault_template, deployed['BalanceVaultTemplate'].address)
        self.assertEqual(manager.nft_template, deployed['BalanceVaultShareTemplate'].address)
        self.assertEqual(manager.dao, ctx.deployer.address)
        self.assertEqual(manager.fee_lender_other, 2000)

        saved = self._saved()
        self.assertEqual(saved['BalanceVaultManager']['address'], manager.address)
        self.assertEqual(saved['MockERC20 (usdbAddress)']['contract'], 'MockERC20')
        self.assertEqual(saved['BalanceVaultManager']['args'][1], manager.usdb)

    def test_insurance_vault(self):
        _, deployed = run_script('insurance-vault', deployments_dir=self.tmp.name)
        manager = deployed['InsuranceVaultManager']
        self.assertEqual(manager.vault_template, deployed['InsuranceVaultTemplate'].address)
        self.assertIn('InsuranceVaultTemplate', self._saved())

    def test_balance_pass(self):
        ctx, deployed = run_script('balance-pass', deployments_dir=self.tmp.name)
        pass_nft = deployed['BalancePass']
        self.assertEqual(pass_nft.max_mint, 350)
        self.assertEqual(pass_nft.max_wallet_limit, 1)
        self.assertEqual(pass_nft.owner, ctx.deployer.address)
        self.assertEqual(pass_nft.wl2_mint_timestamp - pass_nft.wl1_mint_timestamp, 24 * 60 * 60)

    def test_merkle_distributor(self):
        _, deployed = run_script('merkle-distributor', deployments_dir=None)
        self.assertEqual(deployed['BalanceMerkleDistributor'].setter,
                         "0x994cd376c9E8D9b8075bE15E6a9AfA9b79eBAaC2")

    def test_binary_options(self):
        ctx, deployed = run_script('binary-options', deployments_dir=self.tmp.name)
        market, vault = deployed['BinaryMarket'], deployed['BinaryVault']
        self.assertEqual(market.vault, vault.address)
        self.assertEqual(market.config, deployed['BinaryConfig'].address)
        self.assertEqual(market.operator, ctx.signers[1].address)
        self.assertTrue(vault.whitelisted_markets[market.address])
        self.assertTrue(deployed['Oracle'].writers[market.address])
        self.assertEqual(deployed['BinaryConfig'].treasury, ctx.signers[2].address)

        saved = self._saved()
        for label in ('Binary Oracle', 'Binary Config', 'Binary Vault Manager',
                      'Binary Market Manager', 'Example Vault', 'Example Market'):
            self.assertIn(label, saved)
        self.assertEqual(saved['Example Market']['address'], market.address)

    def test_binary_market_claims_demo_round(self):
        ctx, deployed = run_script('binary-market', deployments_dir=None)
        market = deployed['BinaryMarket']
        user = ctx.deployer.address

        self.assertEqual(market.current_epochs[0], 3)
        self.assertTrue(market.ledger[0][1][user]['claimed'])
        self.assertFalse(market.is_claimable(0, 1, user))

        claims = [receipt for receipt in ctx.engine.get_transaction_history(address=user)
                  if receipt.function_name == 'claim']
        self.assertEqual(len(claims), 1)
        self.assertEqual(claims[0].find_event('Claimed')['amount'], DEMO_BET - DEMO_BET // 10)

    def test_records_merge_across_runs(self):
        engine = create_contract_engine(signer_count=4)
        ctx = create_context('hardhat', engine=engine, deployments_dir=self.tmp.name)
        SCRIPTS['merkle-distributor'](ctx)
        SCRIPTS['insurance-vault'](ctx)
        saved = self._saved()
        self.assertIn('BalanceMerkleDistributor', saved)
        self.assertIn('InsuranceVaultManager', saved)

    def test_remote_network_uses_address_book(self):
        with open(os.path.join(self.tmp.name, 'networks-goerli.json'), 'w') as f:
            json.dump({'usdbAddress': ACCOUNT1}, f)

        ctx = create_context('goerli', deployments_dir=self.tmp.name, address_book_dir=self.tmp.name,
                             secrets=Secrets(private_key=ACCOUNT1_KEY))
        self.assertEqual(ctx.deployer.address, ACCOUNT1)
        deployed = SCRIPTS['insurance-vault'](ctx)
        self.assertEqual(deployed['InsuranceVaultManager'].usdb, ACCOUNT1)
        self.assertEqual(deployed['InsuranceVaultManager'].owner, ACCOUNT1)
        self.assertIn('InsuranceVaultManager', self._saved('goerli'))

    def test_remote_network_requires_book_entries(self):
        with open(os.path.join(self.tmp.name, 'networks-goerli.json'), 'w') as f:
            json.dump({}, f)
        ctx = create_context('goerli', deployments_dir=None, address_book_dir=self.tmp.name,
                             secrets=Secrets(private_key=ACCOUNT1_KEY))
        with self.assertRaisesRegex(ConfigurationError, "usdbAddress missing"):
            SCRIPTS['balance-vault'](ctx)
        with self.assertRaisesRegex(ValueError, "binaryMarketAddress missing"):
            SCRIPTS['binary-market'](ctx)

    def test_book_market_must_exist_on_chain(self):
        with open(os.path.join(self.tmp.name, 'networks-goerli.json'), 'w') as f:
            json.dump({'binaryMarketAddress': ACCOUNT1}, f)
        ctx = create_context('goerli', deployments_dir=None, address_book_dir=self.tmp.name,
                             secrets=Secrets(private_key=ACCOUNT1_KEY))
        with self.assertRaisesRegex(ConfigurationError, f"No contract at {ACCOUNT1} on goerli"):
            SCRIPTS['binary-market'](ctx)

    def test_attach_checks_contract_type(self):
        ctx, deployed = run_script('balance-pass', deployments_dir=None)
        address = deployed['BalancePass'].address
        with self.assertRaisesRegex(ConfigurationError, "is a BalancePass, not a BinaryMarket"):
            ctx.attach('BinaryMarket', address)
        self.assertEqual(ctx.attach('BalancePass', address).address, address)


class TestRoundKeeper(unittest.TestCase):
    """Test cases for the round keeper"""

    def setUp(self):
        """Set up test fixtures"""
        self.ctx, deployed = run_script('binary-options', deployments_dir=None)
        self.market = deployed['BinaryMarket'].connect(self.ctx.signers[1])

    def _genesis(self):
        self.market.genesis_start_round()
        mine_until(self.ctx, self.market.rounds[0][1]['lock_block'])
        self.market.genesis_lock_round(0)

    def test_nothing_to_execute_before_genesis(self):
        keeper = RoundKeeper(self.market, RandomPriceSource(rng=random.Random(1)), 0,
                             engine=self.ctx.engine, blocks_per_tick=10)
        self.assertIsNone(asyncio.run(keeper.execute_round()))
        self.assertEqual(keeper.failures, 0)
        self.assertEqual(keeper.executions, 0)

    def test_executes_due_timeframes(self):
        self._genesis()
        keeper = RoundKeeper(self.market, RandomPriceSource(rng=random.Random(1)), 0,
                             engine=self.ctx.engine, blocks_per_tick=10)
        self.assertEqual(asyncio.run(keeper.execute_round()), [0])
        self.assertEqual(self.market.current_epochs[0], 3)

        asyncio.run(keeper.run(ticks=2))
        self.assertEqual(keeper.executions, 3)
        self.assertEqual(keeper.failures, 0)
        self.assertEqual(self.market.oracle_latest_round_id, 4)

    def test_failures_are_counted(self):
        self._genesis()
        keeper = run_keeper(self.market, FailingPriceSource(), interval=0, ticks=1,
                            engine=self.ctx.engine, blocks_per_tick=10)
        self.assertEqual(keeper.failures, 1)
        self.assertEqual(keeper.executions, 0)
        self.assertEqual(self.market.current_epochs[0], 2)

    def test_unpaused_market_waits_for_genesis(self):
        self._genesis()
        self.market.set_pause(True)
        self.market.set_pause(False)
        keeper = RoundKeeper(self.market, RandomPriceSource(), 0)
        self.assertIsNone(asyncio.run(keeper.execute_round()))
        self.assertEqual(keeper.failures, 0)


class TestCommandLine(unittest.TestCase):
    """Test cases for the command line entry point"""

    def setUp(self):
        """Set up test fixtures"""
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_keeper(self):
        keeper = main.BalancePlatform('hardhat', None).start_keeper('random', 0, 2)
        self.assertGreater(keeper.executions, 0)
        self.assertEqual(keeper.failures, 0)

    def test_accounts(self):
        self.assertEqual(main.main(['--deployments-dir', self.tmp.name, 'accounts']), 0)

    def test_deploy(self):
        self.assertEqual(main.main(['--deployments-dir', self.tmp.name, 'deploy', 'balance-pass']), 0)
        self.assertTrue(os.path.exists(os.path.join(self.tmp.name, 'hardhat.json')))

    def test_network_info(self):
        self.assertEqual(main.main(['network-info', 'hardhat']), 0)
        self.assertEqual(main.main(['network-info', 'ropsten']), 1)

    def test_remote_network_info(self):
        with patch('main.RpcClient') as client:
            client.return_value.get_network_info.return_value = {
                'url': 'https://cloudflare-eth.com', 'chain_id': 1, 'block_number': 5
            }
            self.assertEqual(main.main(['network-info', 'mainnet']), 0)
        client.assert_called_once_with('https://cloudflare-eth.com')

    def test_remote_deploy_without_key(self):
        missing = os.path.join(self.tmp.name, 'missing.json')
        with patch.dict(os.environ, {'SECRETS_FILE': missing}):
            os.environ.pop('PRIVATE_KEY', None)
            code = main.main(['--network', 'goerli', '--deployments-dir', self.tmp.name,
                              'deploy', 'balance-pass'])
        self.assertEqual(code, 1)

    def test_unknown_artifact_exits_with_error(self):
        with patch.object(main.BalancePlatform, 'deploy', side_effect=ArtifactNotFoundError('Missing')):
            code = main.main(['--deployments-dir', self.tmp.name, 'deploy', 'balance-pass'])
        self.assertEqual(code, 1)


class TestRestAPI(unittest.TestCase):
    """Test cases for the read-only REST API"""

    def setUp(self):
        """Set up test fixtures"""
        self.engine = create_contract_engine(signer_count=4)
        ctx = create_context('hardhat', engine=self.engine, deployments_dir=None)
        deployed = SCRIPTS['binary-options'](ctx)
        self.market = deployed['BinaryMarket']
        self.token = self.engine.get_contract_factory('MockERC20').deploy()
        self.client = create_app(self.engine).test_client()

    def test_health(self):
        response = self.client.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], 'healthy')
        self.assertEqual(response.get_json()['block_number'], self.engine.get_block_number())

    def test_chain_info(self):
        data = self.client.get('/api/chain/info').get_json()
        self.assertEqual(data['chain_id'], 31337)
        self.assertEqual(data['height'], self.engine.get_block_number())
        self.assertEqual(data['stats']['failed_transactions'], 0)

    def test_blocks(self):
        response = self.client.get('/api/blocks/0')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['number'], 0)
        self.assertEqual(self.client.get('/api/blocks/99999').status_code, 404)

    def test_transaction_receipt(self):
        receipt = self.token.transfer(ACCOUNT1, 5)
        response = self.client.get(f'/api/transactions/{receipt.transaction_hash}')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['function'], 'transfer')
        self.assertEqual(data['events'][0]['event'], 'Transfer')
        self.assertEqual(self.client.get('/api/transactions/0xdead').status_code, 404)

    def test_accounts(self):
        accounts = self.client.get('/api/accounts').get_json()['accounts']
        self.assertEqual(len(accounts), 4)
        self.assertEqual(accounts[0]['address'], DEPLOYER)
        self.assertGreater(accounts[0]['nonce'], 0)
        self.assertIsInstance(accounts[0]['balance'], str)

    def test_contract_list(self):
        markets = self.client.get('/api/contracts?name=BinaryMarket').get_json()['contracts']
        self.assertEqual([entry['address'] for entry in markets], [self.market.address])
        everything = self.client.get('/api/contracts').get_json()['contracts']
        self.assertGreater(len(everything), len(markets))

    def test_contract(self):
        self.assertEqual(self.client.get('/api/contracts/nothex').status_code, 400)
        self.assertEqual(self.client.get(f'/api/contracts/{ZERO_ADDRESS}').status_code, 404)

        response = self.client.get(f'/api/contracts/{self.token.address.lower()}')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['name'], 'MockERC20')
        self.assertEqual(data['address'], self.token.address)
        self.assertIn('balances', data['state'])

    def test_market_round(self):
        path = f'/api/markets/{self.market.address}/rounds/0/1'
        self.assertEqual(self.client.get(path).status_code, 404)
        self.assertEqual(self.client.get(f'/api/markets/{self.token.address}/rounds/0/1').status_code, 404)
        self.assertEqual(self.client.get('/api/markets/nothex/rounds/0/1').status_code, 400)

        self.market.connect(self.engine.get_signers()[1]).genesis_start_round()
        response = self.client.get(path)
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['epoch'], 1)
        self.assertEqual(data['timeframe_id'], 0)
        self.assertTrue(data['bettable'])


if __name__ == '__main__':
    loader = unittest.TestLoader()
    test_suite = unittest.TestSuite()
    for case in (TestDeploymentScripts, TestRoundKeeper, TestCommandLine, TestRestAPI):
        test_suite.addTests(loader.loadTestsFromTestCase(case))
    unittest.TextTestRunner(verbosity=2).run(test_suite)
