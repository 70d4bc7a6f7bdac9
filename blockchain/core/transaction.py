import json
import time
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

from eth_utils import keccak


@dataclass
class Event:
    """A log entry emitted by a contract during a transaction"""
    name: str
    address: str
    args: Dict[str, Any] = field(default_factory=dict)
    log_index: int = 0

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.name,
            'address': self.address,
            'args': {k: jsonable(v) for k, v in self.args.items()},
            'log_index': self.log_index
        }


class Transaction:
    """A signed-by-sender call or deployment submitted to the chain"""

    def __init__(self,
                 sender: str,
                 to: Optional[str],
                 function_name: str,
                 args: List[Any] = None,
                 value: int = 0,
                 nonce: int = 0,
                 gas_limit: int = 30_000_000,
                 gas_price: int = 1_000_000_000,
                 chain_id: int = 31337):
        """
        Args:
            sender: Address paying for and signing the transaction
            to: Target contract address, ``None`` for contract creation
            function_name: Called function, ``constructor`` for deployments
            args: Positional call arguments
            value: Native currency attached (wei)
            nonce: Sender nonce
            gas_limit: Maximum gas units for execution
            gas_price: Price per gas unit (wei)
            chain_id: Chain the transaction is bound to
        """
        self.sender = sender
        self.to = to
        self.function_name = function_name
        self.args = list(args or [])
        self.value = value
        self.nonce = nonce
        self.gas_limit = gas_limit
        self.gas_price = gas_price
        self.chain_id = chain_id
        self.timestamp = time.time()
        self.hash = self.calculate_hash()

    def calculate_hash(self) -> str:
        tx_data = {
            'sender': self.sender,
            'to': self.to,
            'function': self.function_name,
            'args': [jsonable(a) for a in self.args],
            'value': self.value,
            'nonce': self.nonce,
            'gas_limit': self.gas_limit,
            'gas_price': self.gas_price,
            'chain_id': self.chain_id
        }
        tx_string = json.dumps(tx_data, sort_keys=True, default=str)
        return "0x" + keccak(text=tx_string).hex()

    @property
    def is_deployment(self) -> bool:
        return self.to is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'from': self.sender,
            'to': self.to,
            'function': self.function_name,
            'args': [jsonable(a) for a in self.args],
            'value': self.value,
            'nonce': self.nonce,
            'gas_limit': self.gas_limit,
            'gas_price': self.gas_price,
            'chain_id': self.chain_id
        }


@dataclass
class TransactionReceipt:
    """Receipt for a mined transaction"""
    transaction_hash: str
    contract_address: Optional[str]
    function_name: str
    caller: str
    gas_used: int
    success: bool
    return_data: Any
    logs: List[Event]
    timestamp: int
    block_number: int = 0
    effective_gas_price: int = 0
    to: Optional[str] = None
    error: Optional[str] = None

    @property
    def status(self) -> int:
        return 1 if self.success else 0

    @property
    def events(self) -> List[Event]:
        return self.logs

    @property
    def fee(self) -> int:
        return self.gas_used * self.effective_gas_price

    def events_named(self, name: str) -> List[Event]:
        return [event for event in self.logs if event.name == name]

    def find_event(self, name: str) -> Optional[Event]:
        matches = self.events_named(name)
        return matches[0] if matches else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transaction_hash': self.transaction_hash,
            'block_number': self.block_number,
            'from': self.caller,
            'to': self.to,
            'contract_address': self.contract_address,
            'function': self.function_name,
            'status': self.status,
            'gas_used': self.gas_used,
            'effective_gas_price': self.effective_gas_price,
            'return_data': jsonable(self.return_data),
            'events': [event.to_dict() for event in self.logs],
            'timestamp': self.timestamp,
            'error': self.error
        }


def jsonable(value: Any) -> Any:
    """Best-effort conversion of call data to JSON-friendly values"""
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > 2**53:
        return str(value)
    return value
