"""Exchange error classes.

Every failure raised by a pool or the registry derives from ExchangeError.
Arithmetic failures (DivisionByZero, Underflow, Uint256Overflow) are also
ArithmeticError subclasses; exchange.safe_int raises and re-exports them.
"""

from __future__ import annotations


class ExchangeError(Exception):
    """Base error for exchange operations."""

    pass


class InvalidAmount(ExchangeError, ValueError):
    """Malformed amount, or a zero where a strictly positive one is required."""

    pass


class InsufficientShares(ExchangeError):
    """Caller tried to burn more shares than they hold."""

    def __init__(self, owner: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient shares for {owner}: requested {requested}, available {available}"
        )
        self.owner = owner
        self.requested = requested
        self.available = available


class SlippageExceeded(ExchangeError):
    """Quoted output is below the caller's minimum."""

    def __init__(self, amount_out: int, min_amount_out: int) -> None:
        super().__init__(f"Insufficient output amount: {amount_out} < {min_amount_out}")
        self.amount_out = amount_out
        self.min_amount_out = min_amount_out


class PoolNotFound(ExchangeError, LookupError):
    """No pool registered for the asset."""

    pass


class AlreadyRegistered(ExchangeError):
    """A pool is already registered for the asset."""

    pass


class TransferFailed(ExchangeError):
    """The asset ledger declined a transfer (balance or allowance too low)."""

    def __init__(self, symbol: str, sender: str, recipient: str, amount: int) -> None:
        super().__init__(f"{symbol} transfer of {amount} from {sender} to {recipient} failed")
        self.symbol = symbol
        self.sender = sender
        self.recipient = recipient
        self.amount = amount


class ReentrancyError(ExchangeError):
    """A pool operation was entered while another one was still running."""

    pass


class InvalidRoute(ExchangeError):
    """Routed swap or registration would pair a pool with the wrong asset."""

    pass


class SafeIntError(ExchangeError, ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division or modulo by zero, e.g. a quote against an empty reserve."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class Uint256Overflow(SafeIntError):
    """Value exceeds uint256 maximum."""

    pass


__all__ = [
    "ExchangeError",
    "InvalidAmount",
    "InsufficientShares",
    "SlippageExceeded",
    "PoolNotFound",
    "AlreadyRegistered",
    "TransferFailed",
    "ReentrancyError",
    "InvalidRoute",
    "SafeIntError",
    "DivisionByZero",
    "Underflow",
    "Uint256Overflow",
]
