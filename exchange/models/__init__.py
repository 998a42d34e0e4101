"""Validated types and read-only models for the exchange."""

from exchange.models.pool import PoolSnapshot
from exchange.models.types import AccountId, Uint256, validate_account, validate_amount

__all__ = [
    "AccountId",
    "Uint256",
    "PoolSnapshot",
    "validate_account",
    "validate_amount",
]
