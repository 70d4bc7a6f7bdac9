"""Client-side contract handles, the Python counterpart of ethers contracts.

A ``Contract`` handle forwards method calls to the engine: view functions
return their value, every other function is sent as a transaction from the
connected signer and returns the receipt (raising ``TransactionReverted``
when it fails). Reading a non-callable attribute returns a copy of the
contract's public state.
"""

import copy
from typing import Any, Optional, Type, Union

from wallet.signers import Signer
from .vm import SmartContract, TransactionReverted


class Contract:
    """Handle to a deployed contract bound to a signer"""

    def __init__(self, engine, contract_class: Type[SmartContract], address: str,
                 signer: Union[Signer, str], deploy_receipt=None):
        self._engine = engine
        self._contract_class = contract_class
        self._address = address
        self._signer = signer
        self.deploy_receipt = deploy_receipt

    @property
    def address(self) -> str:
        return self._address

    @property
    def signer_address(self) -> str:
        return self._signer.address if isinstance(self._signer, Signer) else self._signer

    @property
    def contract_name(self) -> str:
        return self._contract_class.__name__

    def connect(self, signer: Union[Signer, str]) -> 'Contract':
        return Contract(self._engine, self._contract_class, self._address, signer,
                        self.deploy_receipt)

    def transact(self, function_name: str, *args, value: int = 0):
        receipt = self._engine.call_contract(self._address, function_name, list(args),
                                             self.signer_address, value=value)
        if not receipt.success:
            raise TransactionReverted(receipt.error, receipt)
        return receipt

    def call_static(self, function_name: str, *args, value: int = 0) -> Any:
        """Simulate ``function_name`` without mining and return its result"""
        return self._engine.call_view(self._address, function_name, list(args),
                                      self.signer_address, value=value)

    def _instance(self) -> Optional[SmartContract]:
        return self._engine.get_contract(self._address)

    def __getattr__(self, name: str) -> Any:
        if name.startswith('_'):
            raise AttributeError(name)
        attr = getattr(self._contract_class, name, None)

        if callable(attr) and not isinstance(attr, type):
            if getattr(attr, '_view', False):
                def call(*args):
                    return self.call_static(name, *args)
            else:
                def call(*args, value: int = 0):
                    return self.transact(name, *args, value=value)
            call.__name__ = name
            call.__doc__ = attr.__doc__
            return call

        instance = self._instance()
        if instance is not None and name in instance.__dict__:
            return copy.deepcopy(instance.__dict__[name])
        if attr is not None and not isinstance(attr, property):
            return attr
        raise AttributeError(f"{self.contract_name} has no attribute {name!r}")

    def __eq__(self, other) -> bool:
        if isinstance(other, Contract):
            return self._address == other._address
        return self._address == other

    def __hash__(self) -> int:
        return hash(self._address)

    def __str__(self) -> str:
        return self._address

    def __repr__(self) -> str:
        return f"<Contract {self.contract_name} at {self._address}>"


class ContractFactory:
    """Deploys or attaches to contracts of one class"""

    def __init__(self, engine, contract_class: Type[SmartContract], signer: Union[Signer, str]):
        self.engine = engine
        self.contract_class = contract_class
        self.signer = signer

    def connect(self, signer: Union[Signer, str]) -> 'ContractFactory':
        return ContractFactory(self.engine, self.contract_class, signer)

    def deploy(self, *args, value: int = 0, at_address: str = None) -> Contract:
        address, receipt = self.engine.deploy_contract(
            self.contract_class, self.signer, list(args), value=value, at_address=at_address
        )
        return Contract(self.engine, self.contract_class, address, self.signer, receipt)

    def deploy_proxy(self, *args, initializer: str = "initialize") -> Contract:
        address, receipts = self.engine.deploy_proxy(
            self.contract_class, self.signer, list(args), initializer=initializer
        )
        return Contract(self.engine, self.contract_class, address, self.signer, receipts[0])

    def attach(self, address: str) -> Contract:
        return Contract(self.engine, self.contract_class, address, self.signer)
