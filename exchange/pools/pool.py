"""Constant product liquidity pool.

A LiquidityPool pairs the base asset with one other fungible asset. It owns
two reserves and a share ledger, and moves funds through AssetLedger
instances it does not own.

Every mutating operation follows the same shape:

1. Validate arguments (pure, no state touched)
2. Enter the pool transaction: take the reentrancy guard and snapshot state
3. Update reserves and shares
4. Move funds; every completed pull registers its refund on the journal
5. Leave the transaction: on success the journal is discarded. On any
   exception the snapshot is restored and the guard released, then the
   journal replays refunds in reverse

State is always updated before an external transfer, so a ledger callback
that reads the pool sees post-update reserves. Nested mutating calls into
the same pool are rejected with ReentrancyError. A routed swap holds the
guards of both pools it trades through.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import structlog

from exchange.amm.constant_product import ConstantProduct, constant_product
from exchange.config import DEFAULT_CONFIG, ExchangeConfig
from exchange.constants import POOL_ADDRESS_PREFIX
from exchange.errors import (
    InsufficientShares,
    InvalidAmount,
    InvalidRoute,
    PoolNotFound,
    ReentrancyError,
    SlippageExceeded,
    TransferFailed,
)
from exchange.ledger import AssetLedger
from exchange.models.pool import PoolSnapshot
from exchange.models.types import validate_account, validate_amount
from exchange.safe_int import S, SafeInt, mul_div

if TYPE_CHECKING:
    from exchange.pools.registry import PoolRegistry

logger = structlog.get_logger()


@dataclass
class PoolState:
    """Mutable reserves and share ledger of a pool."""

    base_reserve: int = 0
    asset_reserve: int = 0
    total_shares: int = 0
    share_balances: dict[str, int] = field(default_factory=dict)

    def copy(self) -> PoolState:
        return replace(self, share_balances=dict(self.share_balances))


class LiquidityPool:
    """Two-asset constant product pool (base asset vs. one fungible asset).

    Args:
        asset_id: Identifier of the non-base asset
        base_ledger: Ledger of the base asset (shared by all pools of a registry)
        asset_ledger: Ledger of the paired asset
        address: Account holding the pool's funds on both ledgers
            (default: "pool:<asset_id>")
        registry: Registry used to resolve counterpart pools for routed swaps
        config: Exchange configuration (default: DEFAULT_CONFIG)
        amm: Curve math implementation (default: constant_product)
    """

    def __init__(
        self,
        asset_id: str,
        base_ledger: AssetLedger,
        asset_ledger: AssetLedger,
        *,
        address: str | None = None,
        registry: PoolRegistry | None = None,
        config: ExchangeConfig | None = None,
        amm: ConstantProduct | None = None,
    ) -> None:
        if not isinstance(asset_id, str) or not asset_id:
            raise ValueError(f"asset_id must be a non-empty string, got {asset_id!r}")
        self.asset_id = asset_id
        self.address = address if address is not None else f"{POOL_ADDRESS_PREFIX}{asset_id}"
        self.base_ledger = base_ledger
        self.asset_ledger = asset_ledger
        self.registry = registry
        self.config = config or DEFAULT_CONFIG
        self._amm = amm or constant_product
        self._state = PoolState()
        self._busy = False

    def __repr__(self) -> str:
        s = self._state
        return (
            f"LiquidityPool({self.asset_id!r}, base_reserve={s.base_reserve}, "
            f"asset_reserve={s.asset_reserve}, total_shares={s.total_shares})"
        )

    # --- Read-only views ---

    @property
    def base_reserve(self) -> int:
        return self._state.base_reserve

    @property
    def asset_reserve(self) -> int:
        return self._state.asset_reserve

    @property
    def total_shares(self) -> int:
        return self._state.total_shares

    def get_reserves(self) -> tuple[int, int]:
        """Return (base_reserve, asset_reserve)."""
        return self._state.base_reserve, self._state.asset_reserve

    def get_reserve(self) -> int:
        """Return the reserve of the paired (non-base) asset."""
        return self._state.asset_reserve

    def share_balance_of(self, owner: str) -> int:
        return self._state.share_balances.get(owner, 0)

    def snapshot(self) -> PoolSnapshot:
        """Return a frozen copy of reserves and share balances."""
        s = self._state
        return PoolSnapshot(
            asset_id=self.asset_id,
            address=self.address,
            base_reserve=s.base_reserve,
            asset_reserve=s.asset_reserve,
            total_shares=s.total_shares,
            share_balances=dict(s.share_balances),
        )

    # --- Quotes ---

    def get_price(self, reserve_in: int, reserve_out: int) -> int:
        """Return reserve_in * price_precision // reserve_out.

        Raises:
            DivisionByZero: If reserve_out is zero
        """
        reserve_in = validate_amount(reserve_in, "reserve_in")
        reserve_out = validate_amount(reserve_out, "reserve_out")
        return self._amm.get_price(reserve_in, reserve_out, self.config.price_precision)

    def get_quote_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Return amount_in * reserve_out // (reserve_in + amount_in)."""
        return self._amm.get_quote_out(
            validate_amount(amount_in, "amount_in"),
            validate_amount(reserve_in, "reserve_in"),
            validate_amount(reserve_out, "reserve_out"),
        )

    def get_asset_out_for_base_in(self, base_amount_in: int) -> int:
        """Quote the asset received for an exact base input at current reserves."""
        return self._amm.get_quote_out(
            validate_amount(base_amount_in, "base_amount_in"),
            self._state.base_reserve,
            self._state.asset_reserve,
        )

    def get_base_out_for_asset_in(self, asset_amount_in: int) -> int:
        """Quote the base received for an exact asset input at current reserves."""
        return self._amm.get_quote_out(
            validate_amount(asset_amount_in, "asset_amount_in"),
            self._state.asset_reserve,
            self._state.base_reserve,
        )

    def get_base_in_for_asset_out(self, asset_amount_out: int) -> int:
        """Quote the base input needed to receive at least asset_amount_out."""
        return self._amm.get_quote_in(
            validate_amount(asset_amount_out, "asset_amount_out"),
            self._state.base_reserve,
            self._state.asset_reserve,
        )

    def get_asset_in_for_base_out(self, base_amount_out: int) -> int:
        """Quote the asset input needed to receive at least base_amount_out."""
        return self._amm.get_quote_in(
            validate_amount(base_amount_out, "base_amount_out"),
            self._state.asset_reserve,
            self._state.base_reserve,
        )

    # --- Liquidity ---

    def add_liquidity(self, trader: str, base_amount_in: int, asset_amount_desired: int) -> int:
        """Deposit both assets and mint pool shares to trader.

        The first deposit sets the reserves to exactly the supplied amounts
        and mints base_amount_in shares. Later deposits take exactly
        base_amount_in and the asset amount that keeps the reserve ratio,
        floor(asset_reserve * base_amount_in / base_reserve); any excess in
        asset_amount_desired is left with the trader.

        Args:
            trader: Account funding the deposit (must have approved the pool
                on both ledgers)
            base_amount_in: Base asset to deposit (must be positive)
            asset_amount_desired: Most of the paired asset trader will deposit

        Returns:
            Number of shares minted

        Raises:
            InvalidAmount: On zero base input, on a zero asset amount for the
                first deposit, if asset_amount_desired is below the required
                amount, or if the deposit would mint no shares
            TransferFailed: If a ledger declines to pull funds
        """
        trader = validate_account(trader, "trader")
        base_amount_in = validate_amount(base_amount_in, "base_amount_in")
        asset_amount_desired = validate_amount(asset_amount_desired, "asset_amount_desired")
        if base_amount_in == 0:
            raise InvalidAmount("base_amount_in must be positive")

        with self._transaction("add_liquidity") as undo:
            state = self._state
            if state.total_shares == 0:
                if asset_amount_desired == 0:
                    raise InvalidAmount("Initial deposit requires a positive asset amount")
                asset_amount_in = asset_amount_desired
                shares_minted = base_amount_in
            else:
                asset_amount_in = mul_div(state.asset_reserve, base_amount_in, state.base_reserve)
                if asset_amount_desired < asset_amount_in:
                    raise InvalidAmount(
                        f"Insufficient asset amount: {asset_amount_desired} < {asset_amount_in}"
                    )
                shares_minted = mul_div(state.total_shares, base_amount_in, state.base_reserve)
                if shares_minted == 0:
                    raise InvalidAmount(f"Deposit of {base_amount_in} base mints no shares")

            state.base_reserve = self._stored(S(state.base_reserve) + base_amount_in)
            state.asset_reserve = self._stored(S(state.asset_reserve) + asset_amount_in)
            state.total_shares = self._stored(S(state.total_shares) + shares_minted)
            state.share_balances[trader] = self.share_balance_of(trader) + shares_minted

            self._pull(undo, self.base_ledger, trader, base_amount_in)
            self._pull(undo, self.asset_ledger, trader, asset_amount_in)

        logger.info(
            "liquidity_added",
            pool=self.address,
            asset_id=self.asset_id,
            provider=trader,
            base_amount=base_amount_in,
            asset_amount=asset_amount_in,
            shares_minted=shares_minted,
        )
        return shares_minted

    def remove_liquidity(self, trader: str, shares_in: int) -> tuple[int, int]:
        """Burn shares and pay out the proportional part of both reserves.

        Returns:
            Tuple of (base_out, asset_out). Burning zero shares is a no-op
            returning (0, 0).

        Raises:
            InsufficientShares: If shares_in exceeds trader's share balance
            TransferFailed: If the pool cannot pay out
        """
        trader = validate_account(trader, "trader")
        shares_in = validate_amount(shares_in, "shares_in")

        with self._transaction("remove_liquidity"):
            state = self._state
            held = self.share_balance_of(trader)
            if shares_in > held:
                raise InsufficientShares(trader, shares_in, held)
            if shares_in == 0:
                return 0, 0

            base_out = mul_div(state.base_reserve, shares_in, state.total_shares)
            asset_out = mul_div(state.asset_reserve, shares_in, state.total_shares)

            state.base_reserve = self._stored(S(state.base_reserve) - base_out)
            state.asset_reserve = self._stored(S(state.asset_reserve) - asset_out)
            state.total_shares = self._stored(S(state.total_shares) - shares_in)
            self._set_share_balance(trader, held - shares_in)

            # Payouts are final, so check both before sending either
            self._ensure_can_pay(self.base_ledger, trader, base_out)
            self._ensure_can_pay(self.asset_ledger, trader, asset_out)
            self._pay(self.base_ledger, trader, base_out)
            self._pay(self.asset_ledger, trader, asset_out)

        logger.info(
            "liquidity_removed",
            pool=self.address,
            asset_id=self.asset_id,
            provider=trader,
            shares_burned=shares_in,
            base_amount=base_out,
            asset_amount=asset_out,
        )
        return base_out, asset_out

    def transfer_shares(self, sender: str, to: str, amount: int) -> None:
        """Move pool shares between accounts.

        Raises:
            InsufficientShares: If sender holds fewer than amount shares
        """
        sender = validate_account(sender, "sender")
        to = validate_account(to, "to")
        amount = validate_amount(amount, "amount")

        with self._transaction("transfer_shares"):
            held = self.share_balance_of(sender)
            if amount > held:
                raise InsufficientShares(sender, amount, held)
            self._set_share_balance(sender, held - amount)
            self._set_share_balance(to, self.share_balance_of(to) + amount)

        logger.debug(
            "shares_transferred",
            pool=self.address,
            sender=sender,
            to=to,
            amount=amount,
        )

    # --- Swaps ---

    def swap_base_for_asset(
        self,
        trader: str,
        base_amount_in: int,
        min_asset_out: int,
        recipient: str | None = None,
    ) -> int:
        """Sell an exact amount of base for the paired asset.

        Args:
            trader: Account paying the base input
            base_amount_in: Exact base input (zero is a valid no-op)
            min_asset_out: Minimum acceptable output
            recipient: Account receiving the output (default: trader)

        Returns:
            Asset amount paid to recipient

        Raises:
            SlippageExceeded: If the quote is below min_asset_out
            TransferFailed: If a ledger declines a transfer
        """
        trader, base_amount_in, min_asset_out, recipient = self._swap_args(
            trader, base_amount_in, min_asset_out, recipient
        )
        with self._transaction("swap_base_for_asset") as undo:
            asset_out = self._swap(
                undo,
                payer=trader,
                amount_in=base_amount_in,
                min_amount_out=min_asset_out,
                recipient=recipient,
                base_to_asset=True,
            )
        self._log_swap(trader, recipient, "base_to_asset", base_amount_in, asset_out)
        return asset_out

    def swap_asset_for_base(
        self,
        trader: str,
        asset_amount_in: int,
        min_base_out: int,
        recipient: str | None = None,
    ) -> int:
        """Sell an exact amount of the paired asset for base.

        Mirror image of swap_base_for_asset.
        """
        trader, asset_amount_in, min_base_out, recipient = self._swap_args(
            trader, asset_amount_in, min_base_out, recipient
        )
        with self._transaction("swap_asset_for_base") as undo:
            base_out = self._swap(
                undo,
                payer=trader,
                amount_in=asset_amount_in,
                min_amount_out=min_base_out,
                recipient=recipient,
                base_to_asset=False,
            )
        self._log_swap(trader, recipient, "asset_to_base", asset_amount_in, base_out)
        return base_out

    def swap_asset_for_asset(
        self,
        trader: str,
        asset_amount_in: int,
        min_other_asset_out: int,
        other_asset_id: str,
        recipient: str | None = None,
    ) -> int:
        """Sell this pool's asset for another registered asset, routed through base.

        Leg one sells asset for base on this pool and delivers the base
        straight to the counterpart pool. Leg two spends that base on the
        counterpart and checks min_other_asset_out. If leg two fails, the
        counterpart returns the base and this pool reverses leg one before
        the error propagates.

        Returns:
            Amount of the other asset paid to recipient

        Raises:
            PoolNotFound: If no pool is registered for other_asset_id
            InvalidRoute: If the counterpart is this pool or uses another base ledger
            SlippageExceeded: If the second leg's output is below min_other_asset_out
            TransferFailed: If a ledger declines a transfer
        """
        trader, asset_amount_in, min_other_asset_out, recipient = self._swap_args(
            trader, asset_amount_in, min_other_asset_out, recipient
        )
        other = self._resolve_counterpart(other_asset_id)

        with self._transaction("swap_asset_for_asset", other) as undo:
            base_out = self._swap(
                undo,
                payer=trader,
                amount_in=asset_amount_in,
                min_amount_out=0,
                recipient=other.address,
                base_to_asset=False,
            )
            other_out = other._swap(
                undo,
                payer=self.address,
                amount_in=base_out,
                min_amount_out=min_other_asset_out,
                recipient=recipient,
                base_to_asset=True,
                prepaid=True,
            )

        other._log_swap(self.address, recipient, "base_to_asset", base_out, other_out)
        logger.info(
            "routed_swap_executed",
            pool=self.address,
            asset_in=self.asset_id,
            asset_out=other.asset_id,
            trader=trader,
            recipient=recipient,
            amount_in=asset_amount_in,
            base_amount=base_out,
            amount_out=other_out,
        )
        return other_out

    def _swap(
        self,
        undo: ExitStack,
        *,
        payer: str,
        amount_in: int,
        min_amount_out: int,
        recipient: str,
        base_to_asset: bool,
        prepaid: bool = False,
    ) -> int:
        """Quote, update reserves, then move funds. Caller holds the transaction."""
        state = self._state
        if base_to_asset:
            reserve_in, reserve_out = state.base_reserve, state.asset_reserve
            ledger_in, ledger_out = self.base_ledger, self.asset_ledger
        else:
            reserve_in, reserve_out = state.asset_reserve, state.base_reserve
            ledger_in, ledger_out = self.asset_ledger, self.base_ledger

        # Prepaid input is returned to the payer whenever this leg fails
        if prepaid and amount_in:
            undo.callback(self._refund, ledger_in, payer, amount_in)

        amount_out = self._amm.get_quote_out(amount_in, reserve_in, reserve_out)
        if amount_out < min_amount_out:
            raise SlippageExceeded(amount_out, min_amount_out)

        new_in = self._stored(S(reserve_in) + amount_in)
        new_out = self._stored(S(reserve_out) - amount_out)
        if base_to_asset:
            state.base_reserve, state.asset_reserve = new_in, new_out
        else:
            state.asset_reserve, state.base_reserve = new_in, new_out

        if not prepaid:
            self._pull(undo, ledger_in, payer, amount_in)
        self._pay(ledger_out, recipient, amount_out)
        return amount_out

    # --- Internals ---

    @contextmanager
    def _transaction(
        self, operation: str, counterpart: LiquidityPool | None = None
    ) -> Iterator[ExitStack]:
        """Guard against reentry and roll back everything on failure.

        Takes the guard of this pool and of counterpart, if given, for the
        whole block. Yields an ExitStack acting as the refund journal.

        On failure every guarded pool restores its state snapshot and
        releases its guard first. Refunds then run in reverse order, so a
        ledger callback fired by a refund may call back into the pools.
        Every refund is attempted. A refund that fails is raised with the
        original error as its cause.
        """
        pools = [self] if counterpart is None else [self, counterpart]
        for pool in pools:
            if pool._busy:
                raise ReentrancyError(f"Pool {pool.address} re-entered during {operation}")
        saved = [(pool, pool._state.copy()) for pool in pools]
        for pool in pools:
            pool._busy = True

        undo = ExitStack()
        try:
            yield undo
        except BaseException as err:
            for pool, state in reversed(saved):
                pool._busy = False
                pool._restore(state, operation)
            try:
                undo.close()
            except BaseException as refund_err:
                raise refund_err from err
            raise
        else:
            undo.pop_all()
        finally:
            for pool in pools:
                pool._busy = False

    def _restore(self, saved: PoolState, operation: str) -> None:
        self._state = saved
        logger.warning(
            "pool_rolled_back",
            pool=self.address,
            asset_id=self.asset_id,
            operation=operation,
        )

    def _stored(self, value: SafeInt) -> int:
        """Unwrap a value about to be stored, enforcing the uint256 range."""
        if self.config.enforce_uint256:
            return value.to_uint256()
        return value.value

    def _set_share_balance(self, owner: str, balance: int) -> None:
        if balance:
            self._state.share_balances[owner] = balance
        else:
            self._state.share_balances.pop(owner, None)

    def _pull(self, undo: ExitStack, ledger: AssetLedger, owner: str, amount: int) -> None:
        """Pull amount from owner into the pool, journaling the refund."""
        if amount == 0:
            return
        if not ledger.transfer_from(self.address, owner, self.address, amount):
            raise TransferFailed(ledger.symbol, owner, self.address, amount)
        undo.callback(self._refund, ledger, owner, amount)

    def _pay(self, ledger: AssetLedger, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        if not ledger.transfer(self.address, recipient, amount):
            raise TransferFailed(ledger.symbol, self.address, recipient, amount)

    def _refund(self, ledger: AssetLedger, owner: str, amount: int) -> None:
        if not ledger.transfer(self.address, owner, amount):
            raise TransferFailed(ledger.symbol, self.address, owner, amount)

    def _ensure_can_pay(self, ledger: AssetLedger, recipient: str, amount: int) -> None:
        if amount and ledger.balance_of(self.address) < amount:
            raise TransferFailed(ledger.symbol, self.address, recipient, amount)

    def _swap_args(
        self,
        trader: str,
        amount_in: int,
        min_amount_out: int,
        recipient: str | None,
    ) -> tuple[str, int, int, str]:
        trader = validate_account(trader, "trader")
        recipient = trader if recipient is None else validate_account(recipient, "recipient")
        return (
            trader,
            validate_amount(amount_in, "amount_in"),
            validate_amount(min_amount_out, "min_amount_out"),
            recipient,
        )

    def _resolve_counterpart(self, other_asset_id: str) -> LiquidityPool:
        if self.registry is None:
            raise PoolNotFound(f"Pool {self.address} has no registry to route through")
        other = self.registry.get_pool(other_asset_id)
        if other is self:
            raise InvalidRoute(f"Cannot route {self.asset_id} to itself")
        if other.base_ledger is not self.base_ledger:
            raise InvalidRoute(
                f"Pools {self.asset_id} and {other.asset_id} do not share a base ledger"
            )
        return other

    def _log_swap(
        self,
        trader: str,
        recipient: str,
        direction: str,
        amount_in: int,
        amount_out: int,
    ) -> None:
        logger.info(
            "swap_executed",
            pool=self.address,
            asset_id=self.asset_id,
            direction=direction,
            trader=trader,
            recipient=recipient,
            amount_in=amount_in,
            amount_out=amount_out,
        )


__all__ = ["LiquidityPool", "PoolState"]
