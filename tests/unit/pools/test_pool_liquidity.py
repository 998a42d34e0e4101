"""Tests for LiquidityPool deposits, withdrawals and share accounting."""

import pytest

from exchange.config import ExchangeConfig
from exchange.constants import UINT256_MAX
from exchange.errors import InsufficientShares, InvalidAmount, TransferFailed, Uint256Overflow
from exchange.pools import LiquidityPool
from tests.helpers import (
    ASSET_RESERVE,
    BASE_RESERVE,
    PROVIDER,
    STARTING_BALANCE,
    TRADER,
    UNIT,
    fund,
    ledger_state,
)


def assert_share_ledger_consistent(pool: LiquidityPool) -> None:
    snapshot = pool.snapshot()
    assert sum(snapshot.share_balances.values()) == snapshot.total_shares
    empty = [snapshot.base_reserve == 0, snapshot.asset_reserve == 0, snapshot.total_shares == 0]
    assert all(empty) or not any(empty)


class TestFirstDeposit:
    """Tests for bootstrapping an empty pool."""

    def test_sets_reserves_and_mints_base_amount(self, empty_pool, base_ledger, token_ledger):
        """First deposit sets reserves exactly and mints shares 1:1 with base."""
        fund(base_ledger, PROVIDER, empty_pool.address)
        fund(token_ledger, PROVIDER, empty_pool.address)

        minted = empty_pool.add_liquidity(PROVIDER, 100 * UNIT, 200 * UNIT)

        assert minted == 100 * UNIT
        assert empty_pool.get_reserves() == (100 * UNIT, 200 * UNIT)
        assert empty_pool.get_reserve() == 200 * UNIT
        assert empty_pool.total_shares == 100 * UNIT
        assert empty_pool.share_balance_of(PROVIDER) == 100 * UNIT
        assert base_ledger.balance_of(empty_pool.address) == 100 * UNIT
        assert token_ledger.balance_of(empty_pool.address) == 200 * UNIT
        assert base_ledger.balance_of(PROVIDER) == STARTING_BALANCE - 100 * UNIT

    def test_any_ratio_accepted(self, empty_pool, base_ledger, token_ledger):
        fund(base_ledger, PROVIDER, empty_pool.address)
        fund(token_ledger, PROVIDER, empty_pool.address, 10**30)
        empty_pool.add_liquidity(PROVIDER, 1, 10**30)
        assert empty_pool.get_reserves() == (1, 10**30)

    def test_zero_base_rejected(self, empty_pool):
        with pytest.raises(InvalidAmount):
            empty_pool.add_liquidity(PROVIDER, 0, 100)

    def test_zero_asset_rejected(self, empty_pool, base_ledger):
        """First deposit needs both sides, otherwise the pool is half-funded."""
        fund(base_ledger, PROVIDER, empty_pool.address)
        with pytest.raises(InvalidAmount):
            empty_pool.add_liquidity(PROVIDER, 100, 0)
        assert empty_pool.snapshot().is_empty

    def test_missing_allowance_rolls_back(self, empty_pool, base_ledger, token_ledger):
        """A declined asset pull refunds the base already pulled."""
        fund(base_ledger, PROVIDER, empty_pool.address)
        fund(token_ledger, PROVIDER)  # no approval

        with pytest.raises(TransferFailed) as exc_info:
            empty_pool.add_liquidity(PROVIDER, 100, 200)

        assert exc_info.value.symbol == token_ledger.symbol
        assert empty_pool.snapshot().is_empty
        assert base_ledger.balance_of(PROVIDER) == STARTING_BALANCE
        assert base_ledger.balance_of(empty_pool.address) == 0


class TestSubsequentDeposit:
    """Tests for deposits into a funded pool."""

    def test_takes_required_amount_only(self, pool, base_ledger, token_ledger):
        """Excess desired asset stays with the depositor."""
        asset_before = token_ledger.balance_of(TRADER)

        minted = pool.add_liquidity(TRADER, 100 * UNIT, 300 * UNIT)

        assert minted == 100 * UNIT
        assert pool.get_reserves() == (BASE_RESERVE + 100 * UNIT, ASSET_RESERVE + 200 * UNIT)
        assert token_ledger.balance_of(TRADER) == asset_before - 200 * UNIT
        assert pool.share_balance_of(TRADER) == 100 * UNIT
        assert_share_ledger_consistent(pool)

    def test_exact_required_amount_accepted(self, pool):
        pool.add_liquidity(TRADER, 100 * UNIT, 200 * UNIT)
        assert pool.get_reserve() == ASSET_RESERVE + 200 * UNIT

    def test_insufficient_asset_rejected(self, pool):
        before = pool.snapshot()
        with pytest.raises(InvalidAmount):
            pool.add_liquidity(TRADER, 100 * UNIT, 200 * UNIT - 1)
        assert pool.snapshot() == before

    def test_zero_base_rejected(self, pool):
        with pytest.raises(InvalidAmount):
            pool.add_liquidity(TRADER, 0, 100)

    def test_formulas_after_swaps(self, pool):
        """Required asset and minted shares follow the floored ratios at current reserves."""
        pool.swap_base_for_asset(TRADER, 37 * UNIT + 11, 0)
        pool.swap_asset_for_base(TRADER, 5 * UNIT + 3, 0)

        base_reserve, asset_reserve = pool.get_reserves()
        total_shares = pool.total_shares
        base_in = 123 * UNIT + 7
        required = asset_reserve * base_in // base_reserve
        expected_shares = total_shares * base_in // base_reserve

        minted = pool.add_liquidity(TRADER, base_in, required)

        assert minted == expected_shares
        assert pool.get_reserves() == (base_reserve + base_in, asset_reserve + required)
        assert pool.total_shares == total_shares + expected_shares
        assert_share_ledger_consistent(pool)

    def test_deposit_minting_no_shares_rejected(self, empty_pool, base_ledger, token_ledger):
        """When base reserve outgrows the share supply, dust deposits are refused."""
        fund(base_ledger, PROVIDER, empty_pool.address)
        fund(token_ledger, PROVIDER, empty_pool.address)
        empty_pool.add_liquidity(PROVIDER, 1, 1000)
        empty_pool.swap_base_for_asset(PROVIDER, 1, 0)
        assert empty_pool.get_reserves() == (2, 500)

        with pytest.raises(InvalidAmount):
            empty_pool.add_liquidity(PROVIDER, 1, 1000)
        assert empty_pool.get_reserves() == (2, 500)

    def test_uint256_overflow_rolls_back(self, empty_pool, base_ledger, token_ledger):
        """A reserve that would leave uint256 aborts the deposit."""
        fund(base_ledger, PROVIDER, empty_pool.address, UINT256_MAX + 1)
        fund(token_ledger, PROVIDER, empty_pool.address, 10)
        empty_pool.add_liquidity(PROVIDER, UINT256_MAX, 1)
        before = empty_pool.snapshot()
        balances = ledger_state(base_ledger, token_ledger, accounts=[PROVIDER, empty_pool.address])

        with pytest.raises(Uint256Overflow):
            empty_pool.add_liquidity(PROVIDER, 1, 1)

        assert empty_pool.snapshot() == before
        assert ledger_state(
            base_ledger, token_ledger, accounts=[PROVIDER, empty_pool.address]
        ) == balances

    def test_uint256_not_enforced_when_disabled(self, base_ledger, token_ledger):
        pool = LiquidityPool(
            "TKA", base_ledger, token_ledger, config=ExchangeConfig(enforce_uint256=False)
        )
        fund(base_ledger, PROVIDER, pool.address, UINT256_MAX + 1)
        fund(token_ledger, PROVIDER, pool.address, 10)
        pool.add_liquidity(PROVIDER, UINT256_MAX, 1)
        pool.add_liquidity(PROVIDER, 1, 1)
        assert pool.base_reserve == UINT256_MAX + 1


class TestRemoveLiquidity:
    """Tests for burning shares."""

    def test_partial_withdrawal(self, pool, base_ledger, token_ledger):
        base_before = base_ledger.balance_of(PROVIDER)
        asset_before = token_ledger.balance_of(PROVIDER)

        base_out, asset_out = pool.remove_liquidity(PROVIDER, 100 * UNIT)

        assert (base_out, asset_out) == (100 * UNIT, 200 * UNIT)
        assert pool.get_reserves() == (900 * UNIT, 1800 * UNIT)
        assert pool.share_balance_of(PROVIDER) == 900 * UNIT
        assert base_ledger.balance_of(PROVIDER) == base_before + base_out
        assert token_ledger.balance_of(PROVIDER) == asset_before + asset_out
        assert_share_ledger_consistent(pool)

    def test_withdrawal_floors_outputs(self, pool):
        """Outputs are floored against current reserves after swaps."""
        pool.swap_base_for_asset(TRADER, 3 * UNIT + 1, 0)
        base_reserve, asset_reserve = pool.get_reserves()
        total = pool.total_shares
        shares = 333 * UNIT + 3

        base_out, asset_out = pool.remove_liquidity(PROVIDER, shares)

        assert base_out == base_reserve * shares // total
        assert asset_out == asset_reserve * shares // total
        assert pool.get_reserves() == (base_reserve - base_out, asset_reserve - asset_out)

    def test_full_withdrawal_drains_pool(self, pool, base_ledger, token_ledger):
        """Burning every share returns the pool to the empty state."""
        pool.swap_base_for_asset(TRADER, 10 * UNIT, 0)
        pool.add_liquidity(TRADER, 50 * UNIT, 500 * UNIT)
        pool.remove_liquidity(TRADER, pool.share_balance_of(TRADER))

        pool.remove_liquidity(PROVIDER, pool.total_shares)

        snapshot = pool.snapshot()
        assert (snapshot.base_reserve, snapshot.asset_reserve, snapshot.total_shares) == (0, 0, 0)
        assert snapshot.share_balances == {}
        assert base_ledger.balance_of(pool.address) == 0
        assert token_ledger.balance_of(pool.address) == 0

    def test_drained_pool_can_be_bootstrapped_again(self, pool):
        pool.remove_liquidity(PROVIDER, pool.total_shares)
        minted = pool.add_liquidity(TRADER, 5 * UNIT, 7 * UNIT)
        assert minted == 5 * UNIT
        assert pool.get_reserves() == (5 * UNIT, 7 * UNIT)

    def test_zero_shares_is_noop(self, pool, base_ledger, token_ledger):
        before = pool.snapshot()
        balances = ledger_state(base_ledger, token_ledger, accounts=[TRADER, pool.address])

        assert pool.remove_liquidity(TRADER, 0) == (0, 0)

        assert pool.snapshot() == before
        assert ledger_state(base_ledger, token_ledger, accounts=[TRADER, pool.address]) == balances

    def test_more_than_held_rejected(self, pool):
        before = pool.snapshot()
        with pytest.raises(InsufficientShares) as exc_info:
            pool.remove_liquidity(PROVIDER, BASE_RESERVE + 1)
        assert exc_info.value.available == BASE_RESERVE
        assert pool.snapshot() == before

    def test_non_holder_rejected(self, pool):
        with pytest.raises(InsufficientShares):
            pool.remove_liquidity(TRADER, 1)

    def test_unpayable_withdrawal_rolls_back(self, pool, token_ledger):
        """If the pool cannot pay both sides, nothing is paid and shares are kept."""
        # Move the pool's asset balance away behind its back
        token_ledger.transfer(pool.address, "elsewhere", ASSET_RESERVE)
        before = pool.snapshot()

        with pytest.raises(TransferFailed):
            pool.remove_liquidity(PROVIDER, 10 * UNIT)

        assert pool.snapshot() == before


class TestShareTransfers:
    """Tests for moving shares between accounts."""

    def test_transfer_then_withdraw(self, pool):
        pool.transfer_shares(PROVIDER, TRADER, 250 * UNIT)

        assert pool.share_balance_of(PROVIDER) == 750 * UNIT
        assert pool.share_balance_of(TRADER) == 250 * UNIT
        assert pool.remove_liquidity(TRADER, 250 * UNIT) == (250 * UNIT, 500 * UNIT)
        assert_share_ledger_consistent(pool)

    def test_transfer_everything_drops_sender(self, pool):
        pool.transfer_shares(PROVIDER, TRADER, BASE_RESERVE)
        assert PROVIDER not in pool.snapshot().share_balances

    def test_transfer_more_than_held_rejected(self, pool):
        with pytest.raises(InsufficientShares):
            pool.transfer_shares(TRADER, PROVIDER, 1)


class TestShareLedgerInvariant:
    """Sum of balances equals total shares across mixed operations."""

    def test_mixed_sequence(self, pool, base_ledger, token_ledger):
        others = ["lp1", "lp2", "lp3"]
        for lp in others:
            fund(base_ledger, lp, pool.address)
            fund(token_ledger, lp, pool.address)

        for i, lp in enumerate(others, start=1):
            pool.add_liquidity(lp, i * 17 * UNIT + i, STARTING_BALANCE)
            pool.swap_base_for_asset(TRADER, i * UNIT, 0)
            assert_share_ledger_consistent(pool)

        pool.transfer_shares("lp1", "lp2", pool.share_balance_of("lp1") // 2)
        pool.remove_liquidity("lp2", pool.share_balance_of("lp2"))
        pool.swap_asset_for_base(TRADER, 9 * UNIT, 0)
        pool.remove_liquidity("lp3", pool.share_balance_of("lp3") // 3)
        assert_share_ledger_consistent(pool)
