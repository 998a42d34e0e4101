"""Configuration for the exchange."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from exchange.constants import PRICE_PRECISION

_TRUE_VALUES = ("true", "1", "yes")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ExchangeConfig:
    """Centralized configuration for pools.

    Swaps retain no fee: pricing is the pure constant-product curve with
    floor rounding, so there is no fee parameter here.

    Attributes:
        price_precision: Scale factor for get_price quotes (default: 1000)
        enforce_uint256: If True, any reserve, share total or amount that
            would leave the uint256 range aborts the operation.
        log_level: Level used by configure_logging() (default: INFO)
    """

    price_precision: int = PRICE_PRECISION
    enforce_uint256: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.price_precision <= 0:
            raise ValueError(f"price_precision must be positive, got {self.price_precision}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExchangeConfig:
        """Build a config from environment variables.

        - EXCHANGE_PRICE_PRECISION: get_price scale (default: 1000)
        - EXCHANGE_ENFORCE_UINT256: true/false (default: true)
        - EXCHANGE_LOG_LEVEL: logging level name (default: INFO)
        """
        env = os.environ if environ is None else environ
        return cls(
            price_precision=int(env.get("EXCHANGE_PRICE_PRECISION", str(PRICE_PRECISION))),
            enforce_uint256=env.get("EXCHANGE_ENFORCE_UINT256", "true").lower() in _TRUE_VALUES,
            log_level=env.get("EXCHANGE_LOG_LEVEL", "INFO").upper(),
        )


# Default configuration instance
DEFAULT_CONFIG = ExchangeConfig()
