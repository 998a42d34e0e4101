"""Pytest configuration and fixtures."""

import pytest

from exchange.ledger import InMemoryLedger
from exchange.pools import LiquidityPool, PoolRegistry
from tests.helpers import BASE, TOKEN_A, TOKEN_B, TRADER, fund, make_funded_pool


@pytest.fixture
def base_ledger() -> InMemoryLedger:
    """Ledger of the base asset."""
    return InMemoryLedger(BASE)


@pytest.fixture
def token_ledger() -> InMemoryLedger:
    """Ledger of the asset paired with base in the default pool."""
    return InMemoryLedger(TOKEN_A)


@pytest.fixture
def other_token_ledger() -> InMemoryLedger:
    """Ledger of a second asset, for routed swaps."""
    return InMemoryLedger(TOKEN_B)


@pytest.fixture
def empty_pool(base_ledger: InMemoryLedger, token_ledger: InMemoryLedger) -> LiquidityPool:
    """A pool with no liquidity."""
    return LiquidityPool(TOKEN_A, base_ledger, token_ledger)


@pytest.fixture
def pool(base_ledger: InMemoryLedger, token_ledger: InMemoryLedger) -> LiquidityPool:
    """A pool seeded with 1000 base / 2000 asset, trader funded and approved."""
    pool = make_funded_pool(base_ledger, token_ledger)
    fund(base_ledger, TRADER, pool.address)
    fund(token_ledger, TRADER, pool.address)
    return pool


@pytest.fixture
def registry(base_ledger: InMemoryLedger) -> PoolRegistry:
    """An empty registry over the base ledger."""
    return PoolRegistry(base_ledger)


@pytest.fixture
def routed_pools(
    registry: PoolRegistry,
    base_ledger: InMemoryLedger,
    token_ledger: InMemoryLedger,
    other_token_ledger: InMemoryLedger,
) -> tuple[LiquidityPool, LiquidityPool]:
    """Two registered pools (TKA and TKB), each 1000 base / 2000 asset.

    The trader holds TKA approved for the TKA pool.
    """
    pool_a = make_funded_pool(base_ledger, token_ledger, registry=registry)
    pool_b = make_funded_pool(base_ledger, other_token_ledger, registry=registry)
    fund(token_ledger, TRADER, pool_a.address)
    return pool_a, pool_b
