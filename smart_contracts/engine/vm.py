from typing import Dict, List, Any, Optional, Type
import copy
import time
import logging
from dataclasses import dataclass, field

from blockchain.core.blockchain import Blockchain
from blockchain.core.transaction import Event, Transaction, TransactionReceipt
from security.cryptography import CryptoUtils

logger = logging.getLogger(__name__)


# Gas schedule (simplified)
GAS_TRANSACTION = 21000
GAS_CREATE = 32000
GAS_CALL = 2600
GAS_LOG = 1000
GAS_VALUE_TRANSFER = 9000
GAS_CODE_DEPOSIT = 200


class VMException(Exception):
    """Virtual Machine Exception"""
    pass


class Revert(VMException):
    """Raised inside contract code to abort the current transaction"""

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


class OutOfGasException(VMException):
    """Out of gas exception"""
    pass


class InsufficientFundsError(VMException):
    """Sender cannot cover the value of a transaction"""
    pass


class TransactionReverted(VMException):
    """A mined transaction failed; carries the revert reason and receipt"""

    def __init__(self, reason: str, receipt: Optional[TransactionReceipt] = None):
        super().__init__(f"Transaction reverted: {reason}" if reason else "Transaction reverted without a reason")
        self.reason = reason
        self.receipt = receipt


def view(func):
    """Mark a contract function as read-only"""
    func._view = True
    return func


def payable(func):
    """Mark a contract function as accepting native value"""
    func._payable = True
    return func


@dataclass
class ExecutionContext:
    """Context for smart contract execution"""
    caller: str
    contract_address: str
    value: int = 0
    gas_limit: int = 30_000_000
    block_number: int = 0
    timestamp: int = field(default_factory=lambda: int(time.time()))
    chain_id: int = 31337
    static: bool = False


class ExecutionResult:
    """Result of contract execution"""
    def __init__(self, success: bool, return_data: Any = None,
                 gas_used: int = 0, error: str = None, logs: List[Event] = None,
                 contract_address: str = None):
        self.success = success
        self.return_data = return_data
        self.gas_used = gas_used
        self.error = error
        self.logs = logs or []
        self.contract_address = contract_address


class SmartContractVM:
    """Executes Python contract classes against a local chain.

    Contracts are plain objects whose public methods are the contract ABI.
    Every top-level transaction runs inside a frame stack of
    ``ExecutionContext`` objects (``msg.sender`` is the caller of the
    innermost frame). A failing transaction restores the contracts it ran
    code in, the contracts it created and all native balances; the nonce
    bump and gas fee are kept. Calls made from a view run as static calls.
    """

    def __init__(self, chain: Blockchain = None):
        self.chain = chain or Blockchain()
        self.contracts: Dict[str, 'SmartContract'] = {}
        self.logs: List[Event] = []
        self.frames: List[ExecutionContext] = []
        self.gas_used = 0
        self.gas_limit = 0
        self.journal: Optional[Dict[str, Any]] = None

    # ---------------------------------------------------------------- frames

    @property
    def current_context(self) -> ExecutionContext:
        if not self.frames:
            raise VMException("No active execution context")
        return self.frames[-1]

    def _push_frame(self, caller: str, contract_address: str, value: int = 0,
                    static: bool = False) -> ExecutionContext:
        parent = self.frames[-1] if self.frames else None
        context = ExecutionContext(
            caller=caller,
            contract_address=contract_address,
            value=value,
            gas_limit=parent.gas_limit if parent else self.gas_limit,
            block_number=parent.block_number if parent else self.chain.pending_block_number(),
            timestamp=parent.timestamp if parent else self.chain.pending_timestamp(),
            chain_id=self.chain.chain_id,
            static=static or (parent.static if parent else False)
        )
        self.frames.append(context)
        return context

    def _consume_gas(self, amount: int):
        """Consume gas and check limits"""
        self.gas_used += amount
        if self.gas_limit and self.gas_used > self.gas_limit:
            raise OutOfGasException("Gas limit exceeded")

    # ------------------------------------------------------------- snapshots

    def snapshot_world(self, include_blocks: bool = False) -> Dict[str, Any]:
        return {
            'chain': self.chain.snapshot_state(include_blocks=include_blocks),
            'contracts': {
                address: (type(contract), contract._snapshot_state())
                for address, contract in self.contracts.items()
            }
        }

    def restore_world(self, snapshot: Dict[str, Any]):
        self.chain.restore_state(snapshot['chain'])
        saved = snapshot['contracts']
        for address in list(self.contracts):
            if address not in saved:
                del self.contracts[address]
        for address, (contract_class, state) in saved.items():
            contract = self.contracts.get(address)
            if contract is None:
                contract = contract_class.__new__(contract_class)
                contract.vm = self
                self.contracts[address] = contract
            contract._restore_state(state)

    # Transactions journal the contracts they touch instead of copying the
    # whole world; ``None`` marks a contract created by the transaction.

    def _begin_journal(self) -> Dict[str, Any]:
        self.journal = {}
        return self.chain.snapshot_state()

    def _journal_touch(self, address: str, contract: 'SmartContract'):
        if self.journal is not None and address not in self.journal:
            self.journal[address] = contract._snapshot_state()

    def _rollback_journal(self, chain_state: Dict[str, Any]):
        self.chain.restore_state(chain_state)
        for address, state in self.journal.items():
            if state is None:
                self.contracts.pop(address, None)
            elif address in self.contracts:
                self.contracts[address]._restore_state(state)
        self.journal = None

    # ------------------------------------------------------------ execution

    def _resolve_function(self, contract: 'SmartContract', function_name: str):
        """Contract method, or ``None`` for a public state getter"""
        if function_name.startswith('_') or function_name == 'require':
            raise Revert(f"function {function_name} is not public")
        func = getattr(type(contract), function_name, None)
        if callable(func):
            return func
        if function_name in contract.__dict__ or (func is not None and not isinstance(func, property)):
            return None
        raise Revert(f"function selector was not recognized: {function_name}")

    @staticmethod
    def _read_getter(contract: 'SmartContract', name: str, keys: List[Any]) -> Any:
        """Solidity-style public getter; mapping keys index into the value"""
        value = getattr(contract, name)
        for key in keys:
            if isinstance(value, dict):
                if key not in value:
                    # unset mapping slots read as zero
                    return 0
                value = value[key]
            elif isinstance(value, (list, tuple)) and isinstance(key, int) and 0 <= key < len(value):
                value = value[key]
            else:
                raise Revert(f"invalid getter key {key!r} for {name}")
        return copy.deepcopy(value)

    def is_view(self, address: str, function_name: str) -> bool:
        contract = self.contracts.get(address)
        if contract is None:
            return False
        func = getattr(type(contract), function_name, None)
        return not callable(func) or getattr(func, '_view', False)

    def _move_value(self, sender: str, to: str, value: int):
        if value <= 0:
            return
        self._consume_gas(GAS_VALUE_TRANSFER)
        if not self.chain.transfer_native(sender, to, value):
            raise Revert("sender doesn't have enough funds to send tx")

    def message_call(self, caller: str, to: str, function_name: str,
                     args: List[Any] = None, value: int = 0, static: bool = False) -> Any:
        """Run ``function_name`` on the contract at ``to`` as ``caller``"""
        contract = self.contracts.get(to)
        if contract is None:
            raise Revert(f"function call to a non-contract account {to}")
        func = self._resolve_function(contract, function_name)
        if func is None:
            if value:
                raise Revert(f"non-payable function {function_name} was sent value")
            return self._read_getter(contract, function_name, args or [])
        if value and not getattr(func, '_payable', False):
            raise Revert(f"non-payable function {function_name} was sent value")
        is_view = getattr(func, '_view', False)
        static = static or (self.frames[-1].static if self.frames else False)
        if static and not is_view:
            raise Revert(f"state change during static call to {function_name}")

        if self.frames:
            self._consume_gas(GAS_CALL)
        self._move_value(caller, to, value)
        if not is_view:
            self._journal_touch(to, contract)
        # calls made from a view run as static calls
        self._push_frame(caller, to, value, static or is_view)
        try:
            return getattr(contract, function_name)(*(args or []))
        finally:
            self.frames.pop()

    def create(self, deployer: str, contract_class: Type['SmartContract'],
               args: List[Any] = None, value: int = 0, nonce: int = None,
               at_address: str = None) -> 'SmartContract':
        """Instantiate ``contract_class`` at its CREATE address and run its constructor"""
        if at_address is not None:
            address = CryptoUtils.to_checksum(at_address)
        else:
            if nonce is None:
                nonce = self.chain.increment_nonce(deployer)
            address = CryptoUtils.create_address(deployer, nonce)
        if address in self.contracts:
            raise Revert(f"contract already deployed at {address}")

        self._consume_gas(GAS_CREATE)
        contract = contract_class.__new__(contract_class)
        contract.vm = self
        contract.address = address
        self.contracts[address] = contract
        if self.journal is not None:
            self.journal[address] = None
        # EIP-161: contract nonces start at 1
        self.chain.nonces[address] = 1

        self._move_value(deployer, address, value)
        self._push_frame(deployer, address, value)
        try:
            contract.__init__(*(args or []))
        finally:
            self.frames.pop()
        self._consume_gas(GAS_CODE_DEPOSIT * len(contract._snapshot_state()))
        return contract

    def emit(self, address: str, name: str, args: Dict[str, Any]):
        self._consume_gas(GAS_LOG)
        self.logs.append(Event(name=name, address=address, args=dict(args), log_index=len(self.logs)))

    # --------------------------------------------------------- transactions

    def execute_transaction(self, sender: str, to: Optional[str], function_name: str,
                            args: List[Any] = None, value: int = 0,
                            gas_limit: int = None, contract_class: Type['SmartContract'] = None,
                            at_address: str = None) -> TransactionReceipt:
        """Mine one transaction; deployments pass ``contract_class`` and ``to=None``"""
        chain = self.chain
        with chain.chain_lock:
            if self.frames:
                raise VMException("Cannot start a transaction during execution")
            gas_limit = gas_limit or chain.block_gas_limit
            if chain.get_balance(sender) < value + GAS_TRANSACTION * chain.gas_price:
                raise InsufficientFundsError(
                    f"sender doesn't have enough funds to send tx: {sender}"
                )

            nonce = chain.increment_nonce(sender)
            transaction = Transaction(
                sender=sender,
                to=to,
                function_name=function_name if to is not None else "constructor",
                args=args,
                value=value,
                nonce=nonce,
                gas_limit=gas_limit,
                gas_price=chain.gas_price,
                chain_id=chain.chain_id
            )
            chain.add_transaction(transaction)

            chain_state = self._begin_journal()
            self.logs = []
            self.gas_used = 0
            self.gas_limit = gas_limit
            result = self._run(transaction, contract_class, at_address)

            if result.success:
                self.journal = None
            else:
                self._rollback_journal(chain_state)
            fee = min(result.gas_used * chain.gas_price, chain.get_balance(sender))
            chain.set_balance(sender, chain.get_balance(sender) - fee)

            block = chain.mine_block([transaction.hash], result.gas_used)
            self.gas_limit = 0
            return TransactionReceipt(
                transaction_hash=transaction.hash,
                contract_address=result.contract_address if to is None else to,
                function_name=transaction.function_name,
                caller=sender,
                gas_used=result.gas_used,
                success=result.success,
                return_data=result.return_data,
                logs=result.logs,
                timestamp=block.timestamp,
                block_number=block.number,
                effective_gas_price=chain.gas_price,
                to=to,
                error=result.error
            )

    def _run(self, transaction: Transaction, contract_class, at_address) -> ExecutionResult:
        try:
            self._consume_gas(GAS_TRANSACTION)
            if transaction.is_deployment:
                contract = self.create(transaction.sender, contract_class, transaction.args,
                                       transaction.value, nonce=transaction.nonce,
                                       at_address=at_address)
                return ExecutionResult(True, contract.address, self.gas_used,
                                       logs=list(self.logs), contract_address=contract.address)
            if transaction.to not in self.contracts:
                self._move_value(transaction.sender, transaction.to, transaction.value)
                return ExecutionResult(True, None, self.gas_used)
            return_data = self.message_call(transaction.sender, transaction.to,
                                            transaction.function_name, transaction.args,
                                            transaction.value)
            return ExecutionResult(True, return_data, self.gas_used, logs=list(self.logs))
        except OutOfGasException:
            return ExecutionResult(False, error="out of gas", gas_used=self.gas_limit)
        except Revert as e:
            return ExecutionResult(False, error=e.reason, gas_used=self.gas_used)
        except Exception as e:
            # Python errors inside contract code behave like an EVM panic
            logger.debug(f"Contract execution raised {type(e).__name__}: {e}")
            return ExecutionResult(False, error=f"{type(e).__name__}: {e}", gas_used=self.gas_used)
        finally:
            self.frames = []

    def static_call(self, caller: str, to: str, function_name: str, args: List[Any] = None,
                    value: int = 0) -> Any:
        """eth_call: execute against the pending block and discard every change"""
        with self.chain.chain_lock:
            if self.frames:
                raise VMException("Cannot start a call during execution")
            contract = self.contracts.get(to)
            if contract is None:
                raise TransactionReverted(f"function call to a non-contract account {to}")
            # non-view functions are simulated and rolled back like callStatic
            is_view = self.is_view(to, function_name)
            chain_state = None if is_view else self._begin_journal()
            saved_logs, self.logs = self.logs, []
            self.gas_used = 0
            self.gas_limit = self.chain.block_gas_limit
            try:
                return self.message_call(caller, to, function_name, args, value, static=is_view)
            except Revert as e:
                raise TransactionReverted(e.reason) from e
            except OutOfGasException as e:
                raise TransactionReverted("out of gas") from e
            except VMException:
                raise
            except Exception as e:
                logger.debug(f"Static call raised {type(e).__name__}: {e}")
                raise TransactionReverted(f"{type(e).__name__}: {e}") from e
            finally:
                self.frames = []
                self.logs = saved_logs
                self.gas_limit = 0
                if chain_state is not None:
                    self._rollback_journal(chain_state)

    # ------------------------------------------------------------- accounts

    def get_code(self, address: str) -> Optional['SmartContract']:
        return self.contracts.get(address)

    def get_balance(self, address: str) -> int:
        """Get account balance"""
        return self.chain.get_balance(address)

    def set_balance(self, address: str, amount: int):
        """Set account balance"""
        self.chain.set_balance(address, amount)


class SmartContract:
    """Base class for smart contracts.

    Subclasses keep their storage as instance attributes and refer to other
    contracts by address only. The VM binds ``vm`` and ``address`` before
    the constructor runs.
    """

    def __init__(self):
        self.vm = getattr(self, 'vm', None)
        self.address = getattr(self, 'address', None)

    # Execution environment

    @property
    def msg_sender(self) -> str:
        return self.vm.current_context.caller

    @property
    def msg_value(self) -> int:
        return self.vm.current_context.value

    @property
    def block_number(self) -> int:
        return self.vm.current_context.block_number

    @property
    def block_timestamp(self) -> int:
        return self.vm.current_context.timestamp

    @property
    def chain_id(self) -> int:
        return self.vm.current_context.chain_id

    @staticmethod
    def require(condition: Any, reason: str = ""):
        if not condition:
            raise Revert(reason)

    def _emit_event(self, event_name: str, data: Dict[str, Any]):
        """Emit an event"""
        self.vm.emit(self.address, event_name, data)

    def _call(self, address: str, function_name: str, *args, value: int = 0) -> Any:
        """Call another contract with this contract as msg.sender"""
        return self.vm.message_call(self.address, address, function_name, list(args), value)

    def _create(self, contract_class: Type['SmartContract'], *args, value: int = 0) -> str:
        """Deploy a contract from this contract and return its address"""
        return self.vm.create(self.address, contract_class, list(args), value).address

    def _clone(self, implementation: str) -> str:
        """Deploy a fresh copy of the contract class living at ``implementation``"""
        template = self.vm.get_code(implementation)
        if template is None:
            raise Revert("ERC1167: create failed")
        return self._create(type(template))

    def _get_balance(self, address: str) -> int:
        """Get native balance of an address"""
        return self.vm.chain.get_balance(address)

    def _send_native(self, to: str, amount: int):
        if amount <= 0:
            return
        target = self.vm.contracts.get(to)
        if target is not None:
            self._call(to, 'receive', value=amount)
        elif not self.vm.chain.transfer_native(self.address, to, amount):
            raise Revert("Address: insufficient balance")

    # State management

    def _snapshot_state(self) -> Dict[str, Any]:
        return {
            key: copy.deepcopy(value)
            for key, value in self.__dict__.items()
            if key != 'vm'
        }

    def _restore_state(self, state: Dict[str, Any]):
        vm = self.vm
        self.__dict__.clear()
        self.__dict__.update(copy.deepcopy(state))
        self.vm = vm

    def __deepcopy__(self, memo):
        raise TypeError("Contracts are referenced by address, not copied")
