"""Shared plumbing for the deployment scripts.

Scripts run against the in-process chain. The selected network decides the
address book the scripts read, the deployer account and the network name in
the printed verification commands. Every deployment is recorded in
``deployments/<network>.json``.
"""

import json
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from blockchain.core.transaction import jsonable
from blockchain.network import (
    NetworkConfig,
    ConfigurationError,
    get_network,
    get_deployer,
    load_address_book,
    load_secrets,
    verify_command
)
from smart_contracts.artifacts import get_contract_class
from smart_contracts.engine import Contract, SmartContractEngine, DEFAULT_ACCOUNT_BALANCE
from wallet.signers import Signer, default_signers

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYMENTS_DIR = 'deployments'


@dataclass
class DeploymentContext:
    engine: SmartContractEngine
    network: NetworkConfig
    deployer: Signer
    address_book: Dict[str, Any]
    deployments_dir: Optional[str] = DEFAULT_DEPLOYMENTS_DIR
    deployments: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def signers(self) -> List[Signer]:
        return self.engine.get_signers()

    def deploy(self, contract_name: str, *args, label: str = None, verify: bool = True) -> Contract:
        """Deploy ``contract_name`` from the deployer, log it and record it"""
        factory = self.engine.get_contract_factory(contract_name, self.deployer)
        contract = factory.deploy(*args)
        self.record(label or contract_name, contract, args)
        if verify:
            self.log_verify(contract.address, *args)
        return contract

    def attach(self, contract_name: str, address: str, signer: Signer = None) -> Contract:
        """Handle on a contract that already lives on the chain"""
        instance = self.engine.get_contract(address)
        if instance is None:
            raise ConfigurationError(f"No contract at {address} on {self.network.name}")
        if not isinstance(instance, get_contract_class(contract_name)):
            raise ConfigurationError(
                f"Contract at {address} is a {type(instance).__name__}, not a {contract_name}"
            )
        return self.engine.get_contract_at(contract_name, address, signer or self.deployer)

    def record(self, label: str, contract: Contract, args=()):
        logger.info(f"Deployed {label} to: {contract.address}")
        receipt = contract.deploy_receipt
        self.deployments[label] = {
            'contract': contract.contract_name,
            'address': contract.address,
            'args': jsonable(list(args)),
            'transactionHash': receipt.transaction_hash if receipt else None,
            'blockNumber': receipt.block_number if receipt else self.engine.get_block_number()
        }
        self.save()

    def log_verify(self, address: str, *args):
        logger.info(f"Verify:\n{verify_command(self.network.name, address, *args)}")

    def save(self) -> Optional[str]:
        """Write the deployment record, merged with earlier runs on this network"""
        if not self.deployments_dir:
            return None
        os.makedirs(self.deployments_dir, exist_ok=True)
        path = os.path.join(self.deployments_dir, f"{self.network.name}.json")
        existing: Dict[str, Any] = {}
        if os.path.exists(path):
            with open(path, 'r') as f:
                existing = json.load(f)
        existing.update(self.deployments)
        with open(path, 'w') as f:
            json.dump(existing, f, indent=2, sort_keys=True)
        return path

    def book_address(self, key: str) -> Optional[str]:
        return self.address_book.get(key)

    def token_address(self, key: str, symbol: str) -> str:
        """Token from the address book; local networks get a fresh mock"""
        address = self.book_address(key)
        if address:
            return address
        if not self.network.is_local:
            raise ConfigurationError(f"{key} missing from address book of {self.network.name}")
        token = self.deploy('MockERC20', f"Mock {symbol}", symbol, label=f"MockERC20 ({key})",
                            verify=False)
        self.address_book[key] = token.address
        return token.address


def create_context(network_name: str = 'hardhat', engine: SmartContractEngine = None,
                   deployments_dir: Optional[str] = DEFAULT_DEPLOYMENTS_DIR,
                   address_book_dir: str = None, secrets=None) -> DeploymentContext:
    """Build the context a deployment script runs in"""
    network = get_network(network_name)
    deployer = get_deployer(network, secrets or (None if network.is_local else load_secrets()))
    if engine is None:
        signers = default_signers()
        if deployer.address not in [s.address for s in signers]:
            signers = [deployer] + signers
        engine = SmartContractEngine(signers=signers)
    elif deployer.address not in [s.address for s in engine.get_signers()]:
        engine.signers.insert(0, deployer)
        engine.set_account_balance(deployer.address, DEFAULT_ACCOUNT_BALANCE)

    logger.info(f"Deploying contracts with the account: {deployer.address}")
    return DeploymentContext(
        engine=engine,
        network=network,
        deployer=deployer,
        address_book=dict(load_address_book(network_name, address_book_dir)),
        deployments_dir=deployments_dir
    )
