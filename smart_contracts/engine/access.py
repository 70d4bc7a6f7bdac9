"""Access control mixins shared by the contracts (OpenZeppelin semantics)."""

import functools

from security.cryptography import ZERO_ADDRESS
from .vm import Revert, view


def only_owner(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.msg_sender != self.owner:
            raise Revert("Ownable: caller is not the owner")
        return func(self, *args, **kwargs)
    return wrapper


def when_not_paused(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.paused:
            raise Revert("Pausable: paused")
        return func(self, *args, **kwargs)
    return wrapper


def when_paused(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self.paused:
            raise Revert("Pausable: not paused")
        return func(self, *args, **kwargs)
    return wrapper


def initializer(func):
    """Allow ``func`` to run once per contract"""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if getattr(self, 'initialized', False):
            raise Revert("Initializable: contract is already initialized")
        self.initialized = True
        return func(self, *args, **kwargs)
    return wrapper


class Ownable:
    owner = ZERO_ADDRESS

    def _transfer_ownership(self, new_owner: str):
        old_owner = self.owner
        self.owner = new_owner
        self._emit_event('OwnershipTransferred', {
            'previousOwner': old_owner,
            'newOwner': new_owner
        })

    @only_owner
    def transfer_ownership(self, new_owner: str):
        if new_owner == ZERO_ADDRESS:
            raise Revert("Ownable: new owner is the zero address")
        self._transfer_ownership(new_owner)

    @only_owner
    def renounce_ownership(self):
        self._transfer_ownership(ZERO_ADDRESS)


class Pausable:
    paused = False

    def _pause(self):
        if self.paused:
            raise Revert("Pausable: paused")
        self.paused = True
        self._emit_event('Paused', {'account': self.msg_sender})

    def _unpause(self):
        if not self.paused:
            raise Revert("Pausable: not paused")
        self.paused = False
        self._emit_event('Unpaused', {'account': self.msg_sender})

    @view
    def is_paused(self) -> bool:
        return self.paused


class Initializable:
    """Proxy-style contracts: constructor leaves the contract uninitialized"""
    initialized = False
