from typing import Dict

from security.cryptography import ZERO_ADDRESS
from ..engine import SmartContract, Revert, view


class ERC20(SmartContract):
    """ERC-20 token with OpenZeppelin revert reasons"""

    def __init__(self, name: str, symbol: str, decimals: int = 18):
        super().__init__()

        # Token metadata
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0

        # State variables
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[str, Dict[str, int]] = {}  # owner -> spender -> amount

    @view
    def balance_of(self, account: str) -> int:
        """Get token balance of account"""
        return self.balances.get(account, 0)

    @view
    def allowance(self, owner: str, spender: str) -> int:
        """Get allowance amount"""
        return self.allowances.get(owner, {}).get(spender, 0)

    def transfer(self, to: str, amount: int) -> bool:
        """Transfer tokens"""
        self._transfer(self.msg_sender, to, amount)
        return True

    def transfer_from(self, from_address: str, to: str, amount: int) -> bool:
        """Transfer tokens from approved account"""
        self._spend_allowance(from_address, self.msg_sender, amount)
        self._transfer(from_address, to, amount)
        return True

    def approve(self, spender: str, amount: int) -> bool:
        """Approve spender to transfer tokens"""
        self._approve(self.msg_sender, spender, amount)
        return True

    def increase_allowance(self, spender: str, added_value: int) -> bool:
        owner = self.msg_sender
        self._approve(owner, spender, self.allowance(owner, spender) + added_value)
        return True

    def decrease_allowance(self, spender: str, subtracted_value: int) -> bool:
        owner = self.msg_sender
        current_allowance = self.allowance(owner, spender)
        self.require(current_allowance >= subtracted_value, "ERC20: decreased allowance below zero")
        self._approve(owner, spender, current_allowance - subtracted_value)
        return True

    def _transfer(self, from_address: str, to: str, amount: int):
        self.require(from_address != ZERO_ADDRESS, "ERC20: transfer from the zero address")
        self.require(to != ZERO_ADDRESS, "ERC20: transfer to the zero address")
        self.require(amount >= 0, "ERC20: negative amount")

        from_balance = self.balances.get(from_address, 0)
        if from_balance < amount:
            raise Revert("ERC20: transfer amount exceeds balance")

        self.balances[from_address] = from_balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount

        self._emit_event('Transfer', {
            'from': from_address,
            'to': to,
            'value': amount
        })

    def _approve(self, owner: str, spender: str, amount: int):
        self.require(spender != ZERO_ADDRESS, "ERC20: approve to the zero address")
        self.allowances.setdefault(owner, {})[spender] = amount

        self._emit_event('Approval', {
            'owner': owner,
            'spender': spender,
            'value': amount
        })

    def _spend_allowance(self, owner: str, spender: str, amount: int):
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise Revert("ERC20: insufficient allowance")
        self.allowances.setdefault(owner, {})[spender] = allowed - amount

    def _mint(self, account: str, amount: int):
        self.require(account != ZERO_ADDRESS, "ERC20: mint to the zero address")
        self.total_supply += amount
        self.balances[account] = self.balances.get(account, 0) + amount
        self._emit_event('Transfer', {
            'from': ZERO_ADDRESS,
            'to': account,
            'value': amount
        })

    def _burn(self, account: str, amount: int):
        balance = self.balances.get(account, 0)
        if balance < amount:
            raise Revert("ERC20: burn amount exceeds balance")
        self.balances[account] = balance - amount
        self.total_supply -= amount
        self._emit_event('Transfer', {
            'from': account,
            'to': ZERO_ADDRESS,
            'value': amount
        })


class MockERC20(ERC20):
    """Test token: mints a million tokens to the deployer, anyone can mint"""

    INITIAL_SUPPLY = 1_000_000 * 10**18

    def __init__(self, name: str = "Mock Token", symbol: str = "MOCK", decimals: int = 18):
        super().__init__(name, symbol, decimals)
        self._mint(self.msg_sender, self.INITIAL_SUPPLY)

    def mint(self, to: str, amount: int) -> bool:
        self._mint(to, amount)
        return True
