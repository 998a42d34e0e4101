"""Safe integer wrapper for arithmetic on reserves, shares and amounts.

Pool math never touches floats. Every ratio is computed multiply-then-divide
through SafeInt so that:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- uint256 overflow is caught on conversion (Uint256Overflow)

Usage pattern:
    from exchange.safe_int import S, mul_div

    def quote(amount_in: int, reserve_in: int, reserve_out: int) -> int:
        numerator = S(amount_in) * S(reserve_out)
        denominator = S(reserve_in) + S(amount_in)
        return (numerator // denominator).value

    # or, for the common a * b // c shape
    shares = mul_div(total_shares, base_in, base_reserve)
"""

from __future__ import annotations

from exchange.constants import UINT256_MAX
from exchange.errors import DivisionByZero, SafeIntError, Uint256Overflow, Underflow


class SafeInt:
    """Integer with checked arithmetic.

    Values are allowed to leave the uint256 range while a calculation is in
    progress (Python ints are unbounded); the range is enforced when the
    result is stored, via to_uint256().

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        result = other - self._value
        if result < 0:
            raise Underflow(f"Underflow: {other} - {self._value} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Floor division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Modulo by zero: {self._value} % 0")
        return SafeInt(self._value % other_val)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division (rounds up).

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        return SafeInt(-(-self._value // other_val))

    def min(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(min(self._value, _extract_value(other)))

    def to_uint256(self) -> int:
        """Convert to int, validating uint256 bounds.

        Raises:
            Uint256Overflow: If value is negative or exceeds 2^256-1
        """
        if self._value < 0:
            raise Uint256Overflow(f"Negative value cannot be uint256: {self._value}")
        if self._value > UINT256_MAX:
            raise Uint256Overflow(f"Value exceeds uint256 max: {self._value}")
        return self._value

    def is_uint256(self) -> bool:
        """Check if value fits in uint256 without raising."""
        return 0 <= self._value <= UINT256_MAX

    @classmethod
    def zero(cls) -> SafeInt:
        return cls(0)


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


def mul_div(a: SafeInt | int, b: SafeInt | int, denominator: SafeInt | int) -> int:
    """Return floor(a * b / denominator), multiplying before dividing.

    Raises:
        DivisionByZero: If denominator is zero
    """
    return ((S(a) * S(b)) // S(denominator)).value


# Convenience alias for concise code
S = SafeInt

__all__ = [
    "SafeInt",
    "S",
    "mul_div",
    "UINT256_MAX",
    "SafeIntError",
    "DivisionByZero",
    "Underflow",
    "Uint256Overflow",
]
