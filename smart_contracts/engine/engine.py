from typing import Callable, Dict, List, Any, Optional, Tuple, Type, Union
import hashlib
import inspect
import threading
import logging
from dataclasses import dataclass

from blockchain.core.blockchain import Blockchain
from blockchain.core.transaction import TransactionReceipt
from wallet.signers import Signer, default_signers
from .vm import SmartContractVM, SmartContract, TransactionReverted

logger = logging.getLogger(__name__)

# 10 000 ETH per development account
DEFAULT_ACCOUNT_BALANCE = 10_000 * 10**18


@dataclass
class ContractMetadata:
    """Metadata for deployed contracts"""
    address: str
    name: str
    deployer: str
    deployment_block: int
    deployment_time: int
    source_code_hash: str
    abi: Dict[str, Any]
    transaction_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': self.address,
            'name': self.name,
            'deployer': self.deployer,
            'deployment_block': self.deployment_block,
            'deployment_time': self.deployment_time,
            'source_code_hash': self.source_code_hash,
            'transaction_hash': self.transaction_hash,
            'functions': [f['name'] for f in self.abi['functions']]
        }


class ContractRegistry:
    """Registry for managing deployed contracts"""

    def __init__(self):
        self.contracts: Dict[str, ContractMetadata] = {}
        self.lock = threading.RLock()

    def register_contract(self, metadata: ContractMetadata):
        """Register a new contract"""
        with self.lock:
            self.contracts[metadata.address] = metadata
            logger.info(f"Contract {metadata.name} registered at {metadata.address}")

    def get_metadata(self, address: str) -> Optional[ContractMetadata]:
        """Get contract metadata by address"""
        return self.contracts.get(address)

    def list_contracts(self, name: str = None) -> List[ContractMetadata]:
        """List all registered contracts"""
        contracts = list(self.contracts.values())
        if name:
            contracts = [c for c in contracts if c.name == name]
        return contracts

    def prune(self, live_addresses):
        with self.lock:
            for address in list(self.contracts):
                if address not in live_addresses:
                    del self.contracts[address]


class SmartContractEngine:
    """Main engine for smart contract deployment, execution and chain control"""

    def __init__(self, chain: Blockchain = None, signers: List[Signer] = None,
                 initial_balance: int = DEFAULT_ACCOUNT_BALANCE):
        self.chain = chain or Blockchain()
        self.vm = SmartContractVM(self.chain)
        self.registry = ContractRegistry()
        self.transaction_history: List[TransactionReceipt] = []
        self.snapshots: Dict[str, Dict[str, Any]] = {}
        self.fixtures: Dict[Callable, Tuple[str, Any]] = {}
        self.lock = threading.RLock()
        self._snapshot_counter = 0

        self.signers = list(signers) if signers is not None else default_signers()
        for signer in self.signers:
            self.chain.set_balance(signer.address, initial_balance)

    # ------------------------------------------------------------ accounts

    def get_signers(self) -> List[Signer]:
        return list(self.signers)

    def get_account_balance(self, address: str) -> int:
        """Get account balance"""
        return self.chain.get_balance(address)

    def set_account_balance(self, address: str, amount: int):
        """Set account balance (for testing)"""
        self.chain.set_balance(address, amount)

    # ---------------------------------------------------------- deployment

    def deploy_contract(self, contract_class: Type[SmartContract],
                        deployer: str, constructor_args: List[Any] = None,
                        gas_limit: int = None, value: int = 0,
                        at_address: str = None) -> Tuple[str, TransactionReceipt]:
        """Deploy a smart contract"""
        deployer = _address_of(deployer)
        with self.lock:
            receipt = self.vm.execute_transaction(
                deployer, None, "constructor", constructor_args or [], value,
                gas_limit=gas_limit, contract_class=contract_class, at_address=at_address
            )
            self._record(receipt)

        if not receipt.success:
            logger.error(f"Contract deployment failed: {contract_class.__name__}: {receipt.error}")
            raise TransactionReverted(receipt.error, receipt)

        logger.info(f"Contract {contract_class.__name__} deployed at {receipt.contract_address}")
        return receipt.contract_address, receipt

    def deploy_proxy(self, contract_class: Type[SmartContract], deployer: str,
                     init_args: List[Any] = None, initializer: str = "initialize"
                     ) -> Tuple[str, List[TransactionReceipt]]:
        """Deploy an initializable contract and run its initializer"""
        address, deploy_receipt = self.deploy_contract(contract_class, deployer)
        init_receipt = self.call_contract(address, initializer, init_args or [], deployer)
        if not init_receipt.success:
            raise TransactionReverted(init_receipt.error, init_receipt)
        return address, [deploy_receipt, init_receipt]

    # ----------------------------------------------------------- execution

    def call_contract(self, contract_address: str, function_name: str,
                      args: List[Any], caller: str, value: int = 0,
                      gas_limit: int = None) -> TransactionReceipt:
        """Call a contract function in a new transaction"""
        caller = _address_of(caller)
        with self.lock:
            receipt = self.vm.execute_transaction(
                caller, contract_address, function_name, args, value, gas_limit=gas_limit
            )
            self._record(receipt)

        if receipt.success:
            logger.debug(f"Contract call successful: {contract_address}.{function_name}")
        else:
            logger.warning(f"Contract call failed: {contract_address}.{function_name}: {receipt.error}")
        return receipt

    def call_view(self, contract_address: str, function_name: str,
                  args: List[Any] = None, caller: str = None, value: int = 0) -> Any:
        """Execute without mining (eth_call); raises TransactionReverted"""
        caller = _address_of(caller) if caller else self.signers[0].address
        with self.lock:
            return self.vm.static_call(caller, contract_address, function_name, args or [], value)

    def send_transaction(self, sender: str, to: str, value: int) -> TransactionReceipt:
        """Send native currency; contracts receive it through ``receive``"""
        sender = _address_of(sender)
        with self.lock:
            function_name = "receive" if to in self.vm.contracts else "transfer"
            receipt = self.vm.execute_transaction(sender, to, function_name, [], value)
            self._record(receipt)
        if not receipt.success:
            raise TransactionReverted(receipt.error, receipt)
        return receipt

    def _record(self, receipt: TransactionReceipt):
        self.transaction_history.append(receipt)
        for address, contract in self.vm.contracts.items():
            if address not in self.registry.contracts:
                self.registry.register_contract(ContractMetadata(
                    address=address,
                    name=type(contract).__name__,
                    deployer=receipt.to or receipt.caller,
                    deployment_block=receipt.block_number,
                    deployment_time=receipt.timestamp,
                    source_code_hash=self._hash_contract_code(type(contract)),
                    abi=self._generate_abi(type(contract)),
                    transaction_hash=receipt.transaction_hash
                ))

    # ------------------------------------------------------ chain control

    def get_block_number(self) -> int:
        return self.chain.height

    def latest_timestamp(self) -> int:
        return self.chain.get_latest_block().timestamp

    def increase_time(self, seconds: int):
        self.chain.evm_increase_time(seconds)

    def set_next_block_timestamp(self, timestamp: int):
        self.chain.evm_set_next_block_timestamp(timestamp)

    def mine(self, blocks: int = 1):
        return self.chain.mine(blocks)

    def time_increase_to(self, timestamp: int):
        """Mine a block at ``timestamp``"""
        self.chain.evm_set_next_block_timestamp(timestamp)
        return self.chain.mine(1)

    def snapshot(self) -> str:
        """evm_snapshot over contracts, balances, nonces and blocks"""
        with self.lock:
            self._snapshot_counter += 1
            snapshot_id = hex(self._snapshot_counter)
            self.snapshots[snapshot_id] = self.vm.snapshot_world(include_blocks=True)
            return snapshot_id

    def revert(self, snapshot_id: str) -> bool:
        """evm_revert; the snapshot and every later one become invalid"""
        with self.lock:
            snapshot = self.snapshots.get(snapshot_id)
            if snapshot is None:
                return False
            self.vm.restore_world(snapshot)
            for key in [k for k in self.snapshots if int(k, 16) >= int(snapshot_id, 16)]:
                del self.snapshots[key]
            self.registry.prune(self.vm.contracts)
            return True

    def load_fixture(self, fixture: Callable[[], Any]) -> Any:
        """Run ``fixture`` once; later uses revert to the state right after it"""
        with self.lock:
            if fixture in self.fixtures:
                snapshot_id, result = self.fixtures[fixture]
                if self.revert(snapshot_id):
                    self.fixtures[fixture] = (self.snapshot(), result)
                    return result
                logger.info(f"Fixture {fixture.__name__} snapshot was discarded, running it again")
            result = fixture()
            self.fixtures[fixture] = (self.snapshot(), result)
            return result

    # ------------------------------------------------------------ handles

    def get_contract_factory(self, contract: Union[str, Type[SmartContract]],
                             signer: Union[Signer, str] = None):
        from .handles import ContractFactory
        from ..artifacts import get_contract_class
        contract_class = get_contract_class(contract) if isinstance(contract, str) else contract
        return ContractFactory(self, contract_class, signer or self.signers[0])

    def get_contract_at(self, contract: Union[str, Type[SmartContract]], address: str,
                        signer: Union[Signer, str] = None):
        return self.get_contract_factory(contract, signer).attach(address)

    # -------------------------------------------------------------- state

    def get_contract(self, address: str) -> Optional[SmartContract]:
        return self.vm.contracts.get(address)

    def get_contract_state(self, contract_address: str) -> Dict[str, Any]:
        """Get contract storage state"""
        contract = self.vm.contracts.get(contract_address)
        if contract is None:
            return {}
        return {k: v for k, v in contract._snapshot_state().items() if not k.startswith('_')}

    def get_transaction_history(self, address: str = None,
                                contract_address: str = None) -> List[TransactionReceipt]:
        """Get transaction history with optional filtering"""
        history = self.transaction_history

        if address:
            history = [tx for tx in history if tx.caller == address]

        if contract_address:
            history = [tx for tx in history if tx.contract_address == contract_address]

        return history

    def get_transaction_receipt(self, transaction_hash: str) -> Optional[TransactionReceipt]:
        for receipt in reversed(self.transaction_history):
            if receipt.transaction_hash == transaction_hash:
                return receipt
        return None

    def _hash_contract_code(self, contract_class: Type[SmartContract]) -> str:
        """Hash contract source code"""
        source = inspect.getsource(contract_class)
        return hashlib.sha256(source.encode()).hexdigest()

    def _generate_abi(self, contract_class: Type[SmartContract]) -> Dict[str, Any]:
        """Generate ABI for contract"""
        abi = {
            "name": contract_class.__name__,
            "functions": []
        }

        # Get public methods
        for name, method in inspect.getmembers(contract_class, predicate=inspect.isfunction):
            if name.startswith('_') or name == 'require':
                continue
            sig = inspect.signature(method)
            abi["functions"].append({
                "name": name,
                "stateMutability": _mutability(method),
                "inputs": [{
                    "name": param_name,
                    "type": _type_name(param.annotation)
                } for param_name, param in sig.parameters.items() if param_name != 'self'],
                "outputs": [{
                    "type": _type_name(sig.return_annotation)
                }]
            })

        return abi

    def get_engine_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        return {
            "chain_id": self.chain.chain_id,
            "block_number": self.chain.height,
            "total_contracts": len(self.registry.contracts),
            "total_transactions": len(self.transaction_history),
            "successful_transactions": len([tx for tx in self.transaction_history if tx.success]),
            "failed_transactions": len([tx for tx in self.transaction_history if not tx.success]),
            "gas_used": sum(tx.gas_used for tx in self.transaction_history)
        }


def _address_of(account: Union[Signer, str]) -> str:
    return account.address if isinstance(account, Signer) else account


def _mutability(method) -> str:
    if getattr(method, '_view', False):
        return "view"
    if getattr(method, '_payable', False):
        return "payable"
    return "nonpayable"


def _type_name(annotation) -> str:
    if annotation is inspect.Parameter.empty:
        return "any"
    return getattr(annotation, '__name__', str(annotation))


# Global engine instance
_engine_instance = None
_engine_lock = threading.Lock()


def get_engine() -> SmartContractEngine:
    """Get global engine instance (singleton)"""
    global _engine_instance
    if _engine_instance is None:
        with _engine_lock:
            if _engine_instance is None:
                _engine_instance = SmartContractEngine()
    return _engine_instance


def reset_engine():
    """Reset global engine instance (for testing)"""
    global _engine_instance
    with _engine_lock:
        _engine_instance = None
