"""Asset ledger protocol and an in-memory reference ledger.

Pools never hold balances themselves; they move funds through an
AssetLedger. Any object with these three methods can back a pool:

    balance_of(owner) -> int
    transfer(sender, to, amount) -> bool
    transfer_from(spender, owner, to, amount) -> bool

A ledger signals a declined transfer by returning False. The pool turns
that into TransferFailed and rolls back.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()

# Called as hook(ledger, sender, recipient, amount) after each successful transfer
TransferHook = Callable[["InMemoryLedger", str, str, int], None]


@runtime_checkable
class AssetLedger(Protocol):
    """Fungible-asset balance and transfer capability consumed by pools."""

    symbol: str

    def balance_of(self, owner: str) -> int:
        """Return the balance held by owner."""
        ...

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move amount from sender to to. Returns False if declined."""
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move amount from owner to to using spender's allowance. Returns False if declined."""
        ...


class InMemoryLedger:
    """ERC20-style ledger kept in process memory.

    Balances and allowances are plain dicts. Transfers are all-or-nothing:
    a declined transfer changes nothing and returns False.

    The optional on_transfer hook runs after every successful transfer. It
    stands in for token callbacks that can re-enter the caller.
    """

    def __init__(self, symbol: str, on_transfer: TransferHook | None = None) -> None:
        self.symbol = symbol
        self.on_transfer = on_transfer
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, owner: str, amount: int) -> None:
        """Create new units for owner."""
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount: {amount}")
        self._balances[owner] = self.balance_of(owner) + amount
        self._total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set spender's allowance over owner's balance."""
        if amount < 0:
            raise ValueError(f"Cannot approve negative amount: {amount}")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(
                "transfer_declined",
                symbol=self.symbol,
                sender=sender,
                to=to,
                amount=amount,
                balance=self.balance_of(sender),
            )
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if amount < 0 or allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                "transfer_from_declined",
                symbol=self.symbol,
                spender=spender,
                owner=owner,
                to=to,
                amount=amount,
                allowance=allowed,
                balance=self.balance_of(owner),
            )
            return False
        self._allowances[(owner, spender)] = allowed - amount
        try:
            self._move(owner, to, amount)
        except Exception:
            self._allowances[(owner, spender)] = allowed
            raise
        return True

    def _move(self, sender: str, to: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[to] = self.balance_of(to) + amount
        if self.on_transfer is None:
            return
        # A failing hook reverts the whole transfer
        try:
            self.on_transfer(self, sender, to, amount)
        except Exception:
            self._balances[to] -= amount
            self._balances[sender] += amount
            raise

    def __repr__(self) -> str:
        return f"InMemoryLedger({self.symbol!r}, total_supply={self._total_supply})"


__all__ = ["AssetLedger", "InMemoryLedger", "TransferHook"]
