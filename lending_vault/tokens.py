"""
Token contracts the lending plugin talks to: a fungible stable coin used to
pay deposit fees and a non-fungible badge collection whose items are
deposited into custody.
"""

import logging
from typing import Dict, Optional

from .errors import (
    AccessDenied,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAddress,
    NotAuthorized,
    UnknownAsset,
)
from .keys import ZERO_ADDRESS, is_address, is_zero_address
from .ledger import Contract, Ledger

log = logging.getLogger(__name__)


class StableCoin(Contract):
    """Fungible currency with ERC20-style allowances"""

    _STATE = ("_balances", "_allowances")

    def __init__(self, ledger: Ledger, minter: str, name: str = "USD Coin",
                 symbol: str = "USDC", decimals: int = 6):
        super().__init__(ledger)
        self.minter = minter
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = {}  # address -> balance
        self._allowances: Dict[str, Dict[str, int]] = {}  # owner -> spender -> amount

    def mint(self, caller: str, to: str, amount: int) -> None:
        if caller != self.minter:
            raise AccessDenied(f"{caller} cannot mint {self.symbol}")
        if is_zero_address(to) or not is_address(to):
            raise InvalidAddress(f"Cannot mint to {to!r}")
        if amount <= 0:
            raise ValueError("Mint amount must be positive")

        self._balances[to] = self.balance_of(to) + amount
        self.emit("Transfer", ZERO_ADDRESS, to, amount)

    def total_supply(self) -> int:
        return sum(self._balances.values())

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Approve spender to transfer tokens on behalf of owner"""
        if amount < 0:
            raise ValueError("Allowance cannot be negative")

        self._allowances.setdefault(owner, {})[spender] = amount
        self.emit("Approval", owner, spender, amount)
        return True

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(owner, {}).get(spender, 0)

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        self._move(caller, to, amount)
        return True

    def transfer_from(self, caller: str, payer: str, payee: str, amount: int) -> bool:
        """Transfer tokens using the allowance payer granted to caller"""
        allowed = self.allowance(payer, caller)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{caller} may spend {allowed} of {payer}'s {self.symbol}, needs {amount}",
                details={'payer': payer, 'spender': caller, 'allowed': allowed, 'amount': amount}
            )

        self._move(payer, payee, amount)
        self._allowances[payer][caller] = allowed - amount
        return True

    def _move(self, payer: str, payee: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Transfer amount cannot be negative")
        if is_zero_address(payee) or not is_address(payee):
            raise InvalidAddress(f"Cannot transfer to {payee!r}")

        balance = self.balance_of(payer)
        if balance < amount:
            raise InsufficientBalance(
                f"{payer} holds {balance} {self.symbol}, needs {amount}",
                details={'payer': payer, 'balance': balance, 'amount': amount}
            )

        self._balances[payer] = balance - amount
        self._balances[payee] = self.balance_of(payee) + amount
        self.emit("Transfer", payer, payee, amount)


class BadgeCollection(Contract):
    """Non-fungible collection with ERC721-style approvals"""

    _STATE = ("_owners", "_approvals")

    def __init__(self, ledger: Ledger, minter: str, name: str, symbol: str = "BDG"):
        super().__init__(ledger)
        self.minter = minter
        self.name = name
        self.symbol = symbol
        self._owners: Dict[int, str] = {}  # asset id -> owner
        self._approvals: Dict[int, str] = {}  # asset id -> approved spender

    def mint(self, caller: str, to: str, asset_id: int) -> None:
        if caller != self.minter:
            raise AccessDenied(f"{caller} cannot mint {self.name}")
        if is_zero_address(to) or not is_address(to):
            raise InvalidAddress(f"Cannot mint to {to!r}")
        if asset_id in self._owners:
            raise ValueError(f"{self.name} #{asset_id} already minted")

        self._owners[asset_id] = to
        self.emit("Transfer", ZERO_ADDRESS, to, asset_id)

    def owner_of(self, asset_id: int) -> str:
        owner = self._owners.get(asset_id)
        if owner is None:
            raise UnknownAsset(f"{self.name} #{asset_id} does not exist")
        return owner

    def approve(self, caller: str, spender: str, asset_id: int) -> None:
        if self.owner_of(asset_id) != caller:
            raise NotAuthorized(f"{caller} does not own {self.name} #{asset_id}")

        self._approvals[asset_id] = spender
        self.emit("Approval", caller, spender, asset_id)

    def get_approved(self, asset_id: int) -> Optional[str]:
        self.owner_of(asset_id)
        return self._approvals.get(asset_id)

    def transfer_custody(self, caller: str, from_: str, to: str, asset_id: int) -> None:
        """Move an asset; caller must be its owner or the approved spender"""
        owner = self.owner_of(asset_id)
        if owner != from_:
            raise NotAuthorized(f"{from_} does not own {self.name} #{asset_id}")
        if caller != owner and self._approvals.get(asset_id) != caller:
            raise NotAuthorized(
                f"{caller} is not approved for {self.name} #{asset_id}",
                details={'owner': owner, 'caller': caller, 'asset_id': asset_id}
            )
        if is_zero_address(to) or not is_address(to):
            raise InvalidAddress(f"Cannot transfer to {to!r}")

        self._owners[asset_id] = to
        self._approvals.pop(asset_id, None)
        self.emit("Transfer", from_, to, asset_id)
        log.debug("%s #%s moved from %s to %s", self.name, asset_id, from_, to)
