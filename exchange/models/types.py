"""Shared type definitions for exchange call boundaries.

Amounts are plain ints at the boundary. Validation goes through pydantic
strict adapters so that bools, floats and numeric strings are rejected
rather than silently coerced.
"""

from typing import Annotated, Any

from pydantic import Field, Strict, TypeAdapter, ValidationError

from exchange.constants import UINT256_MAX
from exchange.errors import InvalidAmount

# 256-bit unsigned integer amount
Uint256 = Annotated[
    int,
    Strict(),
    Field(ge=0, le=UINT256_MAX, description="256-bit unsigned integer amount"),
]

# Ledger account identifier (pool addresses, traders, recipients)
AccountId = Annotated[str, Strict(), Field(min_length=1)]

_UINT256_ADAPTER: TypeAdapter[int] = TypeAdapter(Uint256)
_ACCOUNT_ADAPTER: TypeAdapter[str] = TypeAdapter(AccountId)


def validate_amount(value: Any, name: str = "amount") -> int:
    """Validate that a value is a uint256 int.

    Args:
        value: Value to validate
        name: Argument name used in the error message

    Returns:
        The value as int

    Raises:
        InvalidAmount: If value is not an int (bool excluded) in [0, 2^256-1]
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"{name} must be an integer, got bool")
    try:
        return _UINT256_ADAPTER.validate_python(value)
    except ValidationError as err:
        raise InvalidAmount(f"Invalid {name}: {value!r}") from err


def validate_account(value: Any, name: str = "account") -> str:
    """Validate that a value is a non-empty account id string.

    Raises:
        InvalidAmount: If value is not a non-empty string
    """
    try:
        return _ACCOUNT_ADAPTER.validate_python(value)
    except ValidationError as err:
        raise InvalidAmount(f"Invalid {name}: {value!r}") from err
