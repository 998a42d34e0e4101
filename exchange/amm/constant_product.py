"""Constant product curve math.

The pool prices trades on x * y = k with no fee retained. Every quote is
computed multiply-then-divide and floored, which biases results slightly
in the pool's favor so that k never decreases across swaps.
"""

from __future__ import annotations

from exchange.constants import PRICE_PRECISION
from exchange.errors import DivisionByZero, InvalidAmount
from exchange.safe_int import S


class ConstantProduct:
    """Constant product quoting.

    Formula: amount_out = (amount_in * reserve_out) / (reserve_in + amount_in)

    All methods are pure: they read only their arguments.
    """

    def get_price(
        self,
        reserve_in: int,
        reserve_out: int,
        precision: int = PRICE_PRECISION,
    ) -> int:
        """Spot price of one reserve in terms of the other, scaled by precision.

        Formula: price = reserve_in * precision // reserve_out

        Raises:
            DivisionByZero: If reserve_out is zero
        """
        return ((S(reserve_in) * S(precision)) // S(reserve_out)).value

    def get_quote_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate output amount for an exact input.

        Strictly increasing in amount_in for amount_in > 0, and always below
        reserve_out: a single finite swap can never drain the output side.

        Args:
            amount_in: Input amount
            reserve_in: Reserve of the input side
            reserve_out: Reserve of the output side

        Returns:
            Output amount (floored)

        Raises:
            DivisionByZero: If amount_in > 0 and either reserve is empty
        """
        if amount_in == 0:
            return 0
        if reserve_in == 0 or reserve_out == 0:
            raise DivisionByZero(
                f"Cannot quote against empty reserves ({reserve_in}, {reserve_out})"
            )

        numerator = S(amount_in) * S(reserve_out)
        denominator = S(reserve_in) + S(amount_in)

        return (numerator // denominator).value

    def get_quote_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate the input needed to receive at least amount_out.

        Formula: amount_in = (reserve_in * amount_out) / (reserve_out - amount_out) + 1

        The +1 rounds against the trader; get_quote_out(result) >= amount_out.

        Raises:
            InvalidAmount: If amount_out is not below reserve_out
            DivisionByZero: If reserve_in is empty
        """
        if amount_out == 0:
            return 0
        if amount_out >= reserve_out:
            raise InvalidAmount(
                f"Requested output {amount_out} must be below reserve {reserve_out}"
            )
        if reserve_in == 0:
            raise DivisionByZero("Cannot quote against an empty input reserve")

        numerator = S(reserve_in) * S(amount_out)
        denominator = S(reserve_out) - S(amount_out)

        return ((numerator // denominator) + S(1)).value


# Singleton instance
constant_product = ConstantProduct()

__all__ = ["ConstantProduct", "constant_product"]
