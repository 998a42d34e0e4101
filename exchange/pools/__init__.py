"""Pool management package.

Provides LiquidityPool and the PoolRegistry used to route between pools.
"""

from .pool import LiquidityPool, PoolState
from .registry import PoolRegistry

__all__ = [
    "LiquidityPool",
    "PoolState",
    "PoolRegistry",
]
