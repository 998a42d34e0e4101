"""Read-only views of pool state."""

from pydantic import BaseModel, ConfigDict, Field

from exchange.models.types import Uint256


class PoolSnapshot(BaseModel):
    """Point-in-time copy of a pool's reserves and share ledger.

    Returned by LiquidityPool.snapshot(). Mutating the pool afterwards does
    not change an existing snapshot.
    """

    model_config = ConfigDict(frozen=True)

    asset_id: str
    address: str
    base_reserve: Uint256
    asset_reserve: Uint256
    total_shares: Uint256
    share_balances: dict[str, Uint256] = Field(default_factory=dict)

    @property
    def k(self) -> int:
        """Curve invariant: base_reserve * asset_reserve."""
        return self.base_reserve * self.asset_reserve

    @property
    def is_empty(self) -> bool:
        return self.total_shares == 0
