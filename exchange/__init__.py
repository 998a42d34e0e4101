"""Constant product exchange - base-asset pools with routed swaps."""

from exchange.config import DEFAULT_CONFIG, ExchangeConfig
from exchange.errors import (
    AlreadyRegistered,
    DivisionByZero,
    ExchangeError,
    InsufficientShares,
    InvalidAmount,
    InvalidRoute,
    PoolNotFound,
    ReentrancyError,
    SlippageExceeded,
    TransferFailed,
)
from exchange.ledger import AssetLedger, InMemoryLedger
from exchange.pools import LiquidityPool, PoolRegistry

__version__ = "0.1.0"
__all__ = [
    "LiquidityPool",
    "PoolRegistry",
    "AssetLedger",
    "InMemoryLedger",
    "ExchangeConfig",
    "DEFAULT_CONFIG",
    "ExchangeError",
    "InvalidAmount",
    "InsufficientShares",
    "SlippageExceeded",
    "PoolNotFound",
    "AlreadyRegistered",
    "DivisionByZero",
    "TransferFailed",
    "ReentrancyError",
    "InvalidRoute",
    "__version__",
]
