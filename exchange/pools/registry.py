"""Pool registry mapping asset ids to their liquidity pools.

The registry is create-only: an asset id is bound to one pool exactly once
and the binding is never replaced or removed. Pools consult the registry
they were given to find the counterpart of a routed (asset-to-asset) swap.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import structlog

from exchange.config import DEFAULT_CONFIG, ExchangeConfig
from exchange.errors import AlreadyRegistered, InvalidRoute, PoolNotFound
from exchange.ledger import AssetLedger
from exchange.pools.pool import LiquidityPool

logger = structlog.get_logger()


class PoolRegistry:
    """Registry of liquidity pools keyed by asset id.

    Args:
        base_ledger: Ledger of the base asset. Required by create_pool();
            registries that only receive pre-built pools may omit it.
        config: Configuration handed to pools built by create_pool()
    """

    def __init__(
        self,
        base_ledger: AssetLedger | None = None,
        config: ExchangeConfig | None = None,
    ) -> None:
        self.base_ledger = base_ledger
        self.config = config or DEFAULT_CONFIG
        self._pools: dict[str, LiquidityPool] = {}

    def __len__(self) -> int:
        return len(self._pools)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._pools

    def __iter__(self) -> Iterator[LiquidityPool]:
        return iter(list(self._pools.values()))

    def asset_ids(self) -> list[str]:
        """Registered asset ids, in registration order."""
        return list(self._pools)

    def register_pool(self, asset_id: str, pool: LiquidityPool) -> None:
        """Bind asset_id to pool.

        A pool registered without a registry of its own is attached to this
        one, so it can route swaps through it.

        Raises:
            ValueError: If asset_id is not a non-empty string
            AlreadyRegistered: If asset_id is already bound
            InvalidRoute: If the pool trades a different asset
        """
        if not isinstance(asset_id, str) or not asset_id:
            raise ValueError(f"asset_id must be a non-empty string, got {asset_id!r}")
        if asset_id in self._pools:
            raise AlreadyRegistered(f"Pool already registered for asset {asset_id}")
        if pool.asset_id != asset_id:
            raise InvalidRoute(f"Pool trades {pool.asset_id}, cannot register it for {asset_id}")

        self._pools[asset_id] = pool
        if pool.registry is None:
            pool.registry = self

        logger.info("pool_registered", asset_id=asset_id, pool=pool.address)

    def get_pool(self, asset_id: str) -> LiquidityPool:
        """Return the pool bound to asset_id.

        Raises:
            PoolNotFound: If no pool is registered for asset_id
        """
        pool = self._pools.get(asset_id)
        if pool is None:
            raise PoolNotFound(f"No pool registered for asset {asset_id}")
        return pool

    def find_pool(self, asset_id: str) -> LiquidityPool | None:
        """Return the pool bound to asset_id, or None."""
        return self._pools.get(asset_id)

    def create_pool(self, asset_id: str, asset_ledger: AssetLedger, **kwargs: Any) -> LiquidityPool:
        """Build an empty pool for asset_id on this registry's base ledger and register it.

        Args:
            asset_id: Asset the new pool pairs with base
            asset_ledger: Ledger of that asset
            **kwargs: Extra LiquidityPool arguments (e.g. address)

        Raises:
            ValueError: If the registry has no base ledger
            AlreadyRegistered: If asset_id is already bound
        """
        if self.base_ledger is None:
            raise ValueError("PoolRegistry needs a base_ledger to create pools")
        if asset_id in self._pools:
            raise AlreadyRegistered(f"Pool already registered for asset {asset_id}")

        kwargs.setdefault("config", self.config)
        pool = LiquidityPool(asset_id, self.base_ledger, asset_ledger, registry=self, **kwargs)
        self.register_pool(asset_id, pool)
        return pool


__all__ = ["PoolRegistry"]
