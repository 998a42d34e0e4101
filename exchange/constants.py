"""Exchange constants.

Centralizes numeric bounds and protocol parameters shared by the pool math.
"""

# Largest value a reserve, share total or amount may hold
UINT256_MAX = 2**256 - 1

# Scale factor for get_price quotes: price = reserve_in * 1000 // reserve_out
PRICE_PRECISION = 1000

# Account id prefix for pools created without an explicit address
POOL_ADDRESS_PREFIX = "pool:"
