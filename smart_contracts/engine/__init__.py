"""Smart Contract Engine Module

This module provides the runtime the contracts execute on:

- Virtual Machine (VM) running contract classes with msg/block context
- Smart Contract Engine for deployment, calls, snapshots and fixtures
- Access control mixins (Ownable, Pausable, Initializable)
- Contract handles and factories bound to signers
"""

from .vm import (
    SmartContractVM,
    SmartContract,
    ExecutionContext,
    ExecutionResult,
    VMException,
    Revert,
    TransactionReverted,
    OutOfGasException,
    InsufficientFundsError,
    view,
    payable
)

from .access import (
    Ownable,
    Pausable,
    Initializable,
    only_owner,
    when_not_paused,
    when_paused,
    initializer
)

from .engine import (
    SmartContractEngine,
    ContractRegistry,
    ContractMetadata,
    DEFAULT_ACCOUNT_BALANCE,
    get_engine,
    reset_engine
)

from .handles import Contract, ContractFactory

__all__ = [
    # VM classes
    'SmartContractVM',
    'SmartContract',
    'ExecutionContext',
    'ExecutionResult',
    'VMException',
    'Revert',
    'TransactionReverted',
    'OutOfGasException',
    'InsufficientFundsError',
    'view',
    'payable',

    # Access control
    'Ownable',
    'Pausable',
    'Initializable',
    'only_owner',
    'when_not_paused',
    'when_paused',
    'initializer',

    # Engine classes
    'SmartContractEngine',
    'ContractRegistry',
    'ContractMetadata',
    'DEFAULT_ACCOUNT_BALANCE',
    'get_engine',
    'reset_engine',

    # Handles
    'Contract',
    'ContractFactory'
]

__version__ = '1.0.0'
