"""Test helpers module for shared test utilities.

- constants: Account names and common amounts
- factories: Ledger funding and pool factory functions
"""

from tests.helpers.constants import (
    ASSET_RESERVE,
    BASE,
    BASE_RESERVE,
    PROVIDER,
    RECIPIENT,
    STARTING_BALANCE,
    TOKEN_A,
    TOKEN_B,
    TRADER,
    UNIT,
)
from tests.helpers.factories import fund, ledger_state, make_funded_pool, seed_pool

__all__ = [
    # Constants
    "UNIT",
    "BASE",
    "TOKEN_A",
    "TOKEN_B",
    "PROVIDER",
    "TRADER",
    "RECIPIENT",
    "BASE_RESERVE",
    "ASSET_RESERVE",
    "STARTING_BALANCE",
    # Factories
    "fund",
    "seed_pool",
    "make_funded_pool",
    "ledger_state",
]
