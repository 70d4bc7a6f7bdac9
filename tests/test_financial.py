import unittest

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from security import ETH_ADDRESS, ZERO_ADDRESS, MerkleTree, address_leaf, allocation_leaf
from smart_contracts import create_contract_engine
from smart_contracts.engine import TransactionReverted
from smart_contracts.financial.lending import SECONDS_PER_YEAR
from smart_contracts.financial.insurance_vault import SECONDS_PER_MONTH

ETHER = 10**18
WHITELIST = [
    "0x45fFb7aC7bC4eF4Fe1A095C71EcFc237523355e7",
    "0x1667cC75D4E52a5cCe71cDb25606Dcaf5B625264",
    "0x0F26e3C772BFeB5694517451875F30Bd5931487F",
    "0xFd86a0D88155e9DEAF274df8F7dEf9D8A2054dDD",
    "0x6F1AB7d800Dc9D2abcC493aDCe369d87178057F1"
]

engine = create_contract_engine(signer_count=6)


class TestMockERC20(unittest.TestCase):
    """Test cases for the mintable test token"""

    def setUp(self):
        """Set up test fixtures"""
        self.owner, self.alice, self.bob = engine.get_signers()[:3]
        self.token = engine.get_contract_factory('MockERC20').deploy()

    def test_initial_supply(self):
        supply = self.token.INITIAL_SUPPLY
        self.assertEqual(self.token.balance_of(self.owner.address), supply)
        self.assertEqual(self.token.total_supply, supply)
        self.assertEqual(self.token.symbol, "MOCK")

    def test_transfer(self):
        receipt = self.token.transfer(self.alice.address, 5 * ETHER)
        self.assertEqual(receipt.find_event('Transfer').args,
                         {'from': self.owner.address, 'to': self.alice.address, 'value': 5 * ETHER})
        self.assertEqual(self.token.balance_of(self.alice.address), 5 * ETHER)

        with self.assertRaisesRegex(TransactionReverted, "ERC20: transfer amount exceeds balance"):
            self.token.connect(self.alice).transfer(self.bob.address, 6 * ETHER)
        with self.assertRaisesRegex(TransactionReverted, "ERC20: transfer to the zero address"):
            self.token.transfer(ZERO_ADDRESS, 1)

    def test_allowance(self):
        self.token.approve(self.alice.address, 3 * ETHER)
        self.assertEqual(self.token.allowance(self.owner.address, self.alice.address), 3 * ETHER)

        spender = self.token.connect(self.alice)
        spender.transfer_from(self.owner.address, self.bob.address, 2 * ETHER)
        self.assertEqual(self.token.balance_of(self.bob.address), 2 * ETHER)
        self.assertEqual(self.token.allowance(self.owner.address, self.alice.address), ETHER)
        with self.assertRaisesRegex(TransactionReverted, "ERC20: insufficient allowance"):
            spender.transfer_from(self.owner.address, self.bob.address, 2 * ETHER)

        self.token.increase_allowance(self.alice.address, ETHER)
        self.token.decrease_allowance(self.alice.address, 2 * ETHER)
        self.assertEqual(self.token.allowance(self.owner.address, self.alice.address), 0)
        with self.assertRaisesRegex(TransactionReverted, "ERC20: decreased allowance below zero"):
            self.token.decrease_allowance(self.alice.address, 1)

    def test_anyone_can_mint(self):
        self.token.connect(self.alice).mint(self.alice.address, ETHER)
        self.assertEqual(self.token.balance_of(self.alice.address), ETHER)
        self.assertEqual(self.token.total_supply, self.token.INITIAL_SUPPLY + ETHER)


class TestBalanceMerkleDistributor(unittest.TestCase):
    """Test cases for cumulative merkle claims"""

    def setUp(self):
        """Set up test fixtures"""
        self.owner, self.setter, self.alice, self.bob = engine.get_signers()[:4]
        self.token = engine.get_contract_factory('MockERC20').deploy()
        self.distributor = engine.get_contract_factory('BalanceMerkleDistributor').deploy(self.setter.address)

        engine.send_transaction(self.owner, self.distributor.address, 100 * ETHER)
        self.token.transfer(self.distributor.address, 100 * ETHER)

        self.allocations = [
            (self.alice.address, ETH_ADDRESS, ETHER),
            (self.alice.address, self.token.address, 2 * ETHER),
            (self.bob.address, ETH_ADDRESS, 3 * ETHER),
            (self.bob.address, self.token.address, 4 * ETHER)
        ]
        self.tree = self._set_root(self.allocations)

    def _set_root(self, allocations):
        tree = MerkleTree([allocation_leaf(*allocation) for allocation in allocations])
        self.distributor.connect(self.setter).set_merkle_root(tree.get_hex_root())
        return tree

    def _proof(self, user, token, allocation, tree=None):
        return (tree or self.tree).get_hex_proof(allocation_leaf(user, token, allocation))

    def test_only_setter_sets_root(self):
        with self.assertRaisesRegex(TransactionReverted, "msg.sender is not setter"):
            self.distributor.set_merkle_root("0x" + "11" * 32)
        self.assertEqual(self.distributor.merkle_root, self.tree.get_hex_root())

    def test_set_setter(self):
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.distributor.connect(self.alice).set_setter(self.alice.address)
        with self.assertRaisesRegex(TransactionReverted, "invalid setter"):
            self.distributor.set_setter(ZERO_ADDRESS)

        self.distributor.set_setter(self.alice.address)
        self.assertEqual(self.distributor.setter, self.alice.address)
        self.distributor.connect(self.alice).set_merkle_root("0x" + "11" * 32)

    def test_claim_eth(self):
        before = engine.get_account_balance(self.alice.address)
        proof = self._proof(self.alice.address, ETH_ADDRESS, ETHER)

        receipt = self.distributor.connect(self.alice).claim(ETH_ADDRESS, ETHER, proof)
        self.assertEqual(engine.get_account_balance(self.alice.address), before + ETHER - receipt.fee)
        self.assertEqual(receipt.find_event('Claimed').args,
                         {'user': self.alice.address, 'token': ETH_ADDRESS, 'amount': ETHER})
        self.assertEqual(self.distributor.get_claimed_amount(self.alice.address, ETH_ADDRESS), ETHER)
        self.assertEqual(engine.get_account_balance(self.distributor.address), 99 * ETHER)

    def test_claim_erc20(self):
        proof = self._proof(self.bob.address, self.token.address, 4 * ETHER)
        self.distributor.connect(self.bob).claim(self.token.address, 4 * ETHER, proof)
        self.assertEqual(self.token.balance_of(self.bob.address), 4 * ETHER)

    def test_second_claim_pays_nothing(self):
        proof = self._proof(self.bob.address, self.token.address, 4 * ETHER)
        distributor = self.distributor.connect(self.bob)
        distributor.claim(self.token.address, 4 * ETHER, proof)

        receipt = distributor.claim(self.token.address, 4 * ETHER, proof)
        self.assertEqual(receipt.events_named('Claimed'), [])
        self.assertEqual(self.token.balance_of(self.bob.address), 4 * ETHER)

    def test_unclaimed_amount_reads_zero(self):
        self.assertEqual(
            engine.call_view(self.distributor.address, 'claimed_amount', [self.alice.address, ETH_ADDRESS]),
            0
        )
        self.assertEqual(self.distributor.get_claimed_amount(self.bob.address, self.token.address), 0)

    def test_cumulative_allocation(self):
        """A larger allocation under a new root pays only the difference"""
        distributor = self.distributor.connect(self.bob)
        distributor.claim(self.token.address, 4 * ETHER,
                          self._proof(self.bob.address, self.token.address, 4 * ETHER))

        allocations = self.allocations[:3] + [(self.bob.address, self.token.address, 10 * ETHER)]
        tree = self._set_root(allocations)
        receipt = distributor.claim(self.token.address, 10 * ETHER,
                                    self._proof(self.bob.address, self.token.address, 10 * ETHER, tree))
        self.assertEqual(receipt.find_event('Claimed')['amount'], 6 * ETHER)
        self.assertEqual(self.token.balance_of(self.bob.address), 10 * ETHER)

    def test_invalid_proof(self):
        proof = self._proof(self.alice.address, ETH_ADDRESS, ETHER)
        with self.assertRaisesRegex(TransactionReverted, "invalid proof"):
            self.distributor.connect(self.alice).claim(ETH_ADDRESS, 2 * ETHER, proof)
        with self.assertRaisesRegex(TransactionReverted, "invalid proof"):
            self.distributor.connect(self.bob).claim(ETH_ADDRESS, ETHER, proof)

    def test_claim_in_batch(self):
        tokens = [ETH_ADDRESS, self.token.address]
        allocations = [ETHER, 2 * ETHER]
        proofs = [self._proof(self.alice.address, token, allocation)
                  for token, allocation in zip(tokens, allocations)]

        with self.assertRaisesRegex(TransactionReverted, "invalid length"):
            self.distributor.connect(self.alice).claim_in_batch(tokens, allocations, proofs[:1])

        receipt = self.distributor.connect(self.alice).claim_in_batch(tokens, allocations, proofs)
        self.assertEqual(len(receipt.events_named('Claimed')), 2)
        self.assertEqual(self.token.balance_of(self.alice.address), 2 * ETHER)
        self.assertEqual(self.distributor.get_claimed_amount(self.alice.address, ETH_ADDRESS), ETHER)

    def test_recover_token(self):
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.distributor.connect(self.alice).recover_token(ETH_ADDRESS, ETHER)

        before = engine.get_account_balance(self.owner.address)
        receipt = self.distributor.recover_token(ETH_ADDRESS, 10 * ETHER)
        self.assertEqual(engine.get_account_balance(self.owner.address), before + 10 * ETHER - receipt.fee)

        before = self.token.balance_of(self.owner.address)
        self.distributor.recover_token(self.token.address, 10 * ETHER)
        self.assertEqual(self.token.balance_of(self.owner.address) - before, 10 * ETHER)
        self.assertEqual(self.token.balance_of(self.distributor.address), 90 * ETHER)


class TestBalancePass(unittest.TestCase):
    """Test cases for the phased membership NFT"""

    BASE_URI = "https://balance.capital/pass"

    def setUp(self):
        """Set up test fixtures"""
        self.owner, self.non_owner, self.in_root, self.outsider, self.other = engine.get_signers()[1:6]
        members = WHITELIST + [self.owner.address, self.non_owner.address, self.in_root.address]
        self.tree = MerkleTree([address_leaf(address) for address in members])

        now = engine.latest_timestamp()
        self.wl1_time = now + 1000
        self.wl2_time = now + 2000
        self.public_time = now + 3000
        self.factory = engine.get_contract_factory('BalancePass', self.owner)
        self.nft = self.factory.deploy(
            3, 1, self.BASE_URI, self.wl1_time, self.wl2_time, self.public_time,
            self.tree.get_hex_root(), self.tree.get_hex_root()
        )

    def _proof(self, signer):
        return self.tree.get_hex_proof(address_leaf(signer.address))

    def test_deployment(self):
        self.assertEqual(self.nft.name, "Balance Pass")
        self.assertEqual(self.nft.owner, self.owner.address)
        self.assertEqual(self.nft.max_mint, 3)
        self.assertEqual(self.nft.base_uri(), self.BASE_URI)
        self.assertEqual(self.nft.current_token_id(), 0)

    def test_mints_before_their_phase(self):
        nft = self.nft.connect(self.in_root)
        with self.assertRaisesRegex(TransactionReverted, "WHITELIST1_MINT_DIDNT_START"):
            nft.mint_whitelist1(self._proof(self.in_root))
        with self.assertRaisesRegex(TransactionReverted, "WHITELIST2_MINT_DIDNT_START"):
            nft.mint_whitelist2(self._proof(self.in_root))
        with self.assertRaisesRegex(TransactionReverted, "PUBLIC_MINT_DIDNT_START"):
            nft.mint_public()

    def test_whitelist1_phase(self):
        engine.set_next_block_timestamp(self.wl1_time)
        with self.assertRaisesRegex(TransactionReverted, "INVALID_PROOF"):
            self.nft.connect(self.outsider).mint_whitelist1(self._proof(self.in_root))

        receipt = self.nft.connect(self.in_root).mint_whitelist1(self._proof(self.in_root))
        self.assertEqual(receipt.find_event('Transfer')['tokenId'], 0)
        self.assertEqual(self.nft.owner_of(0), self.in_root.address)

        with self.assertRaisesRegex(TransactionReverted, "MAX_WALLET_LIMIT_REACHED"):
            self.nft.connect(self.in_root).mint_whitelist1(self._proof(self.in_root))
        with self.assertRaisesRegex(TransactionReverted, "WHITELIST2_MINT_DIDNT_START"):
            self.nft.connect(self.owner).mint_whitelist2(self._proof(self.owner))

    def test_all_phases(self):
        engine.set_next_block_timestamp(self.wl1_time)
        self.nft.connect(self.in_root).mint_whitelist1(self._proof(self.in_root))

        engine.set_next_block_timestamp(self.wl2_time)
        with self.assertRaisesRegex(TransactionReverted, "WHITELIST1_MINT_DIDNT_START"):
            self.nft.connect(self.owner).mint_whitelist1(self._proof(self.owner))
        self.nft.connect(self.owner).mint_whitelist2(self._proof(self.owner))

        engine.set_next_block_timestamp(self.public_time)
        self.nft.connect(self.outsider).mint_public()
        with self.assertRaisesRegex(TransactionReverted, "MAX_MINT_REACHED"):
            self.nft.connect(self.other).mint_public()

        self.assertEqual([self.nft.owner_of(token_id) for token_id in range(3)],
                         [self.in_root.address, self.owner.address, self.outsider.address])
        self.assertEqual(self.nft.current_token_id(), 3)
        self.assertEqual(self.nft.total_supply(), 3)
        self.assertEqual(self.nft.token_uri(0), f"{self.BASE_URI}/0.json")

    def test_token_uri_requires_token(self):
        with self.assertRaisesRegex(TransactionReverted, "URIQueryForNonexistentToken"):
            self.nft.token_uri(0)

    def test_token_types(self):
        self.assertEqual(self.nft.get_token_type(0), "Genesis")
        self.nft.set_token_type([[0, 1]], 1)
        self.nft.set_token_type([[5, 5]], 2)
        self.assertEqual(self.nft.get_token_type(1), "Gold")
        self.assertEqual(self.nft.get_token_type(2), "Genesis")
        self.assertEqual(self.nft.get_token_type(5), "Platinum")

        with self.assertRaisesRegex(TransactionReverted, "INVALID_TOKEN_TYPE"):
            self.nft.set_token_type([[0, 1]], 3)
        with self.assertRaisesRegex(TransactionReverted, "INVALID_RANGE"):
            self.nft.set_token_type([[2, 1]], 1)

    def test_transfer(self):
        engine.set_next_block_timestamp(self.public_time)
        self.nft.connect(self.outsider).mint_public()

        with self.assertRaisesRegex(TransactionReverted, "TransferCallerNotOwnerNorApproved"):
            self.nft.connect(self.other).transfer_from(self.outsider.address, self.other.address, 0)
        self.nft.connect(self.outsider).transfer_from(self.outsider.address, self.other.address, 0)
        self.assertEqual(self.nft.owner_of(0), self.other.address)
        self.assertEqual(self.nft.balance_of(self.outsider.address), 0)

    def test_owner_settings(self):
        nft = self.nft.connect(self.non_owner)
        for call, args in (
            (nft.set_base_uri, ("ipfs://x",)),
            (nft.set_max_mint, (10,)),
            (nft.set_max_mint_wallet_limit, (5,)),
            (nft.set_whitelist1_root, ("0x" + "00" * 32,)),
            (nft.set_whitelist2_root, ("0x" + "00" * 32,)),
            (nft.set_mint_timestamps, (1, 2, 3))
        ):
            with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
                call(*args)

        with self.assertRaisesRegex(TransactionReverted, "INVALID_TIMESTAMPS"):
            self.nft.set_mint_timestamps(3, 2, 1)

        self.nft.set_base_uri("ipfs://x")
        self.nft.set_max_mint(10)
        self.nft.set_max_mint_wallet_limit(5)
        self.assertEqual(self.nft.base_uri(), "ipfs://x")
        self.assertEqual(self.nft.max_mint, 10)
        self.assertEqual(self.nft.max_wallet_limit, 5)

    def test_new_root_excludes_old_members(self):
        tree = MerkleTree([address_leaf(address) for address in WHITELIST])
        self.nft.set_whitelist1_root(tree.get_hex_root())
        engine.set_next_block_timestamp(self.wl1_time)
        with self.assertRaisesRegex(TransactionReverted, "INVALID_PROOF"):
            self.nft.connect(self.in_root).mint_whitelist1(self._proof(self.in_root))


class TestInsuranceVault(unittest.TestCase):
    """Test cases for insurance vault creation, premiums and payouts"""

    ID_NUMBER = "8512232569888"
    PERSONAL_DETAILS = ["First", "Last", "10 Main Road, Cape Town"]
    PREMIUM = 200 * ETHER
    COVER = 100_000 * ETHER
    DATE_OF_BIRTH = 731289600

    def setUp(self):
        """Set up test fixtures"""
        self.owner, self.holder, self.beneficiary = engine.get_signers()[:3]
        self.usdb = engine.get_contract_factory('MockERC20').deploy("USD Balance", "USDB")
        self.manager = engine.get_contract_factory('InsuranceVaultManager').deploy(self.usdb.address)
        self.template = engine.get_contract_factory('InsuranceVault').deploy()

    def _create_vault(self, id_number=ID_NUMBER):
        return self.manager.connect(self.holder).create_vault(
            id_number, self.PERSONAL_DETAILS, self.PREMIUM, True, self.COVER, self.DATE_OF_BIRTH
        )

    def _vault(self):
        address = self.manager.holder_address[self.ID_NUMBER]
        return engine.get_contract_at('InsuranceVault', address)

    def test_template_required(self):
        with self.assertRaisesRegex(TransactionReverted, "template not set"):
            self._create_vault()
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.manager.connect(self.holder).set_vault_template(self.template.address)

    def test_create_vault(self):
        self.manager.set_vault_template(self.template.address)
        receipt = self._create_vault()

        self.assertEqual(self.manager.get_generated_vaults_length(self.holder.address), 1)
        self.assertEqual(self.manager.holder_address[self.ID_NUMBER], receipt.logs[0].address)
        self.assertEqual(self.manager.get_generated_vaults(self.holder.address), [receipt.logs[0].address])

        vault = self._vault()
        self.assertEqual(vault.holder, self.holder.address)
        self.assertEqual(vault.owner, self.owner.address)
        self.assertEqual(vault.first_name, "First")
        self.assertEqual(vault.cover_amount, self.COVER)
        self.assertTrue(vault.smoker)
        with self.assertRaisesRegex(TransactionReverted, "already initialized"):
            vault.initialize(self.holder.address, self.usdb.address, self.owner.address, "1",
                             self.PERSONAL_DETAILS, 1, False, 1, 1)

    def test_id_number_registered_once(self):
        self.manager.set_vault_template(self.template.address)
        self._create_vault()
        with self.assertRaisesRegex(TransactionReverted, "ID_NUMBER_ALREADY_REGISTERED"):
            self._create_vault()
        self._create_vault("7001015009087")
        self.assertEqual(self.manager.get_generated_vaults_length(self.holder.address), 2)

    def _pay(self, months):
        vault = self._vault()
        amount = self.PREMIUM * months
        self.usdb.transfer(self.holder.address, amount)
        self.usdb.connect(self.holder).approve(vault.address, amount)
        return vault.connect(self.holder).pay_premium(months)

    def test_pay_premium(self):
        self.manager.set_vault_template(self.template.address)
        self._create_vault()
        vault = self._vault()
        self.assertFalse(vault.is_covered())

        receipt = self._pay(2)
        paid_at = engine.latest_timestamp()
        self.assertEqual(receipt.find_event('PremiumPaid')['paidUntil'], paid_at + 2 * SECONDS_PER_MONTH)
        self.assertEqual(vault.total_premiums_paid, 2 * self.PREMIUM)
        self.assertEqual(self.usdb.balance_of(vault.address), 2 * self.PREMIUM)
        self.assertTrue(vault.is_covered())

        with self.assertRaisesRegex(TransactionReverted, "ZERO_AMOUNT"):
            vault.connect(self.holder).pay_premium(0)

    def test_payout(self):
        self.manager.set_vault_template(self.template.address)
        self._create_vault()
        vault = self._vault()
        self._pay(1)
        self.usdb.transfer(vault.address, self.COVER)

        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            vault.connect(self.holder).payout(self.beneficiary.address, ETHER)
        with self.assertRaisesRegex(TransactionReverted, "EXCEEDS_COVER"):
            vault.payout(self.beneficiary.address, self.COVER + 1)

        vault.payout(self.beneficiary.address, self.COVER)
        self.assertEqual(self.usdb.balance_of(self.beneficiary.address), self.COVER)
        self.assertFalse(vault.is_covered())
        with self.assertRaisesRegex(TransactionReverted, "ALREADY_PAID_OUT"):
            vault.payout(self.beneficiary.address, 1)
        with self.assertRaisesRegex(TransactionReverted, "POLICY_CLOSED"):
            vault.connect(self.holder).pay_premium(1)

    def test_lapsed_policy_is_not_covered(self):
        self.manager.set_vault_template(self.template.address)
        self._create_vault()
        vault = self._vault()
        self._pay(1)

        engine.increase_time(SECONDS_PER_MONTH + 1)
        engine.mine()
        self.assertFalse(vault.is_covered())
        with self.assertRaisesRegex(TransactionReverted, "NOT_COVERED"):
            vault.payout(self.beneficiary.address, 1)

    def test_insufficient_balance(self):
        self.manager.set_vault_template(self.template.address)
        self._create_vault()
        vault = self._vault()
        self._pay(1)
        with self.assertRaisesRegex(TransactionReverted, "INSUFFICIENT_BALANCE"):
            vault.payout(self.beneficiary.address, self.PREMIUM + 1)


class TestBalanceVault(unittest.TestCase):
    """Test cases for fixed-term lending vaults"""

    FUNDING = 1000 * ETHER
    APR = 1000

    def setUp(self):
        """Set up test fixtures"""
        self.owner, self.dao, self.borrower, self.alice, self.bob = engine.get_signers()[:5]
        token = engine.get_contract_factory('MockERC20')
        self.usdb = token.deploy("USD Balance", "USDB")
        self.usdc = token.deploy("USD Coin", "USDC")
        self.manager = engine.get_contract_factory('BalanceVaultManager').deploy(
            self.dao.address, self.usdb.address
        )
        self.manager.set_vault_template(engine.get_contract_factory('BalanceVault').deploy().address)
        self.manager.set_nft_template(engine.get_contract_factory('BalanceVaultShare').deploy().address)

        for lender in (self.alice, self.bob):
            for stable in (self.usdb, self.usdc):
                stable.transfer(lender.address, self.FUNDING)

        self.freeze = engine.latest_timestamp() + 1000
        self.repayment = self.freeze + SECONDS_PER_YEAR
        self.vault, self.nft = self._create_vault()

    def _create_vault(self, borrower=None):
        receipt = self.manager.connect(borrower or self.borrower).create_vault(
            self.FUNDING, [self.usdb.address, self.usdc.address], self.freeze, self.repayment, self.APR
        )
        created = receipt.find_event('VaultCreated')
        return (engine.get_contract_at('BalanceVault', created['vault']),
                engine.get_contract_at('BalanceVaultShare', created['nft']))

    def _fund(self, lender, stable, amount):
        stable.connect(lender).approve(self.vault.address, amount)
        return self.vault.connect(lender).fund(stable.address, amount)

    def _fund_both(self):
        self._fund(self.alice, self.usdb, 600 * ETHER)
        self._fund(self.bob, self.usdc, 400 * ETHER)

    def test_create_vault(self):
        self.assertEqual(self.vault.owner, self.borrower.address)
        self.assertEqual(self.vault.manager, self.manager.address)
        self.assertEqual(self.vault.fee_borrower, 500)
        self.assertEqual(self.nft.owner, self.vault.address)
        self.assertEqual(self.nft.symbol, "BVS-0")
        self.assertEqual(self.vault.status(), "FUNDING")

        info = self.vault.get_vault_info()
        self.assertEqual(info['borrower'], self.borrower.address)
        self.assertEqual(info['allowedTokens'], [self.usdb.address, self.usdc.address])
        self.assertEqual(info['totalFunded'], 0)

    def test_create_vault_validation(self):
        manager = engine.get_contract_factory('BalanceVaultManager').deploy(self.dao.address, self.usdb.address)
        with self.assertRaisesRegex(TransactionReverted, "template not set"):
            manager.create_vault(self.FUNDING, [self.usdb.address], self.freeze, self.repayment, self.APR)

        now = engine.latest_timestamp()
        with self.assertRaisesRegex(TransactionReverted, "INVALID_TIMESTAMPS"):
            self.manager.create_vault(self.FUNDING, [self.usdb.address], now, self.repayment, self.APR)
        with self.assertRaisesRegex(TransactionReverted, "INVALID_TIMESTAMPS"):
            self.manager.create_vault(self.FUNDING, [self.usdb.address], self.freeze, self.freeze, self.APR)
        with self.assertRaisesRegex(TransactionReverted, "NO_ALLOWED_TOKENS"):
            self.manager.create_vault(self.FUNDING, [], self.freeze, self.repayment, self.APR)

    def test_manager_settings(self):
        with self.assertRaisesRegex(TransactionReverted, "TOO_HIGH"):
            self.manager.set_fee_borrower(10_001)
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.manager.connect(self.alice).set_dao(self.alice.address)

        self.manager.set_fee_borrower(100)
        self.manager.set_fee_lender_usdb(200)
        self.manager.set_fee_lender_other(300)
        vault, _ = self._create_vault()
        self.assertEqual((vault.fee_borrower, vault.fee_lender_usdb, vault.fee_lender_other), (100, 200, 300))

    def test_fund(self):
        receipt = self._fund(self.alice, self.usdb, 600 * ETHER)
        self.assertEqual(receipt.find_event('Funded')['shareId'], 0)
        self.assertEqual(self.nft.owner_of(0), self.alice.address)
        self.assertEqual(self.vault.total_funded, 600 * ETHER)

        with self.assertRaisesRegex(TransactionReverted, "FUNDING_LIMIT_REACHED"):
            self._fund(self.bob, self.usdc, 401 * ETHER)
        with self.assertRaisesRegex(TransactionReverted, "ZERO_AMOUNT"):
            self._fund(self.bob, self.usdc, 0)

        other = engine.get_contract_factory('MockERC20').deploy()
        with self.assertRaisesRegex(TransactionReverted, "TOKEN_NOT_ALLOWED"):
            self.vault.connect(self.bob).fund(other.address, ETHER)

        engine.set_next_block_timestamp(self.freeze)
        with self.assertRaisesRegex(TransactionReverted, "FUNDING_CLOSED"):
            self._fund(self.bob, self.usdc, ETHER)

    def test_full_lifecycle(self):
        self._fund_both()
        with self.assertRaisesRegex(TransactionReverted, "NOT_FROZEN"):
            self.vault.connect(self.borrower).withdraw()

        engine.set_next_block_timestamp(self.freeze)
        self.assertEqual(self.vault.status(), "FROZEN")
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.vault.connect(self.alice).withdraw()

        receipt = self.vault.connect(self.borrower).withdraw()
        self.assertEqual(receipt.find_event('Withdrawn')['fee'], 50 * ETHER)
        self.assertEqual(self.usdb.balance_of(self.borrower.address), 570 * ETHER)
        self.assertEqual(self.usdc.balance_of(self.borrower.address), 380 * ETHER)
        self.assertEqual(self.usdb.balance_of(self.dao.address), 30 * ETHER)
        self.assertEqual(self.vault.status(), "BORROWED")
        with self.assertRaisesRegex(TransactionReverted, "ALREADY_WITHDRAWN"):
            self.vault.connect(self.borrower).withdraw()
        with self.assertRaisesRegex(TransactionReverted, "NOT_REPAID"):
            self.vault.connect(self.alice).redeem(0)

        # One year at 10% APR
        self.assertEqual(self.vault.interest_for(600 * ETHER), 60 * ETHER)
        self.assertEqual(self.vault.repayment_amount(), 1100 * ETHER)

        for stable, due in ((self.usdb, 660 * ETHER), (self.usdc, 440 * ETHER)):
            stable.mint(self.borrower.address, ETHER * 100)
            stable.connect(self.borrower).approve(self.vault.address, due)
        self.vault.connect(self.borrower).repay()
        self.assertEqual(self.vault.status(), "REPAID")
        with self.assertRaisesRegex(TransactionReverted, "ALREADY_REPAID"):
            self.vault.connect(self.borrower).repay()

        with self.assertRaisesRegex(TransactionReverted, "NOT_SHARE_OWNER"):
            self.vault.connect(self.bob).redeem(0)

        alice_before = self.usdb.balance_of(self.alice.address)
        receipt = self.vault.connect(self.alice).redeem(0)
        self.assertEqual(receipt.find_event('Redeemed')['fee'], 9 * ETHER)
        self.assertEqual(self.usdb.balance_of(self.alice.address) - alice_before, 651 * ETHER)

        bob_before = self.usdc.balance_of(self.bob.address)
        self.vault.connect(self.bob).redeem(1)
        self.assertEqual(self.usdc.balance_of(self.bob.address) - bob_before, 432 * ETHER)

        self.assertEqual(self.usdb.balance_of(self.dao.address), 39 * ETHER)
        self.assertEqual(self.usdc.balance_of(self.dao.address), 28 * ETHER)
        self.assertEqual(self.nft.total_supply(), 0)
        with self.assertRaisesRegex(TransactionReverted, "INVALID_SHARE"):
            self.vault.connect(self.alice).redeem(0)

    def test_repay_before_withdraw(self):
        self._fund_both()
        with self.assertRaisesRegex(TransactionReverted, "NOT_WITHDRAWN"):
            self.vault.connect(self.borrower).repay()

    def test_refund_when_never_withdrawn(self):
        self._fund_both()
        with self.assertRaisesRegex(TransactionReverted, "NOT_REFUNDABLE"):
            self.vault.connect(self.alice).refund(0)

        engine.set_next_block_timestamp(self.repayment)
        self.assertEqual(self.vault.status(), "REFUNDING")
        before = self.usdb.balance_of(self.alice.address)
        self.vault.connect(self.alice).refund(0)
        self.assertEqual(self.usdb.balance_of(self.alice.address) - before, 600 * ETHER)
        with self.assertRaisesRegex(TransactionReverted, "OwnerQueryForNonexistentToken"):
            self.nft.owner_of(0)

    def test_defaulted(self):
        self._fund_both()
        engine.set_next_block_timestamp(self.freeze)
        self.vault.connect(self.borrower).withdraw()

        engine.set_next_block_timestamp(self.repayment)
        self.assertEqual(self.vault.status(), "DEFAULTED")
        with self.assertRaisesRegex(TransactionReverted, "NOT_REFUNDABLE"):
            self.vault.connect(self.alice).refund(0)

    def test_withdraw_closes_at_repayment(self):
        """Once repayment is due without a withdraw, lenders keep the refund path"""
        self._fund(self.alice, self.usdb, 500 * ETHER)
        engine.set_next_block_timestamp(self.repayment + 10)
        self.assertEqual(self.vault.status(), "REFUNDING")

        with self.assertRaisesRegex(TransactionReverted, "REPAYMENT_PASSED"):
            self.vault.connect(self.borrower).withdraw()
        self.assertEqual(self.vault.status(), "REFUNDING")

        before = self.usdb.balance_of(self.alice.address)
        self.vault.connect(self.alice).refund(0)
        self.assertEqual(self.usdb.balance_of(self.alice.address) - before, 500 * ETHER)

    def test_refund_reduces_funded_totals(self):
        self._fund_both()
        engine.set_next_block_timestamp(self.repayment)
        self.vault.connect(self.bob).refund(1)

        self.assertEqual(self.vault.total_funded, 600 * ETHER)
        self.assertEqual(self.vault.funded_by_token[self.usdc.address], 0)
        self.assertEqual(self.vault.funded_by_token[self.usdb.address], 600 * ETHER)
        self.assertEqual(self.usdc.balance_of(self.vault.address), 0)

    def test_share_mint_only_by_vault(self):
        with self.assertRaisesRegex(TransactionReverted, "Ownable: caller is not the owner"):
            self.nft.connect(self.alice).mint(self.alice.address)
        with self.assertRaisesRegex(TransactionReverted, "already initialized"):
            self.nft.initialize("Share", "S", self.alice.address)

    def test_vault_paging(self):
        self._create_vault(self.alice)
        self._create_vault(self.alice)
        self.assertEqual(self.manager.get_generated_vaults_length(), 3)

        vaults = self.manager.get_generated_vaults_page(0, 10)
        self.assertEqual(len(vaults), 3)
        self.assertEqual(vaults[0], self.vault.address)
        self.assertEqual(self.manager.get_generated_vaults_page(1, 1), vaults[1:2])
        self.assertEqual(self.manager.get_generated_vaults_page(5, 1), [])
        self.assertEqual(self.manager.get_borrower_vaults(self.alice.address), vaults[1:])
        with self.assertRaisesRegex(TransactionReverted, "INVALID_PAGE"):
            self.manager.get_generated_vaults_page(-1, 1)


if __name__ == '__main__':
    loader = unittest.TestLoader()
    test_suite = unittest.TestSuite()
    for case in (TestMockERC20, TestBalanceMerkleDistributor, TestBalancePass,
                 TestInsuranceVault, TestBalanceVault):
        test_suite.addTests(loader.loadTestsFromTestCase(case))
    unittest.TextTestRunner(verbosity=2).run(test_suite)
