"""Exchange configuration."""

import os
from dataclasses import dataclass

_TRUTHY = ("true", "1", "yes")


@dataclass(frozen=True)
class ExchangeConfig:
    """Centralized configuration for the exchange.

    The swap fee is fixed per pair at creation time: a pair created under
    this config charges (fee_denominator - fee_numerator) / fee_denominator
    of every input amount.

    Attributes:
        fee_numerator: Share of the input kept after the fee (default: 997)
        fee_denominator: Fee scale (default: 1000, i.e. a 0.3% fee)
        log_level: structlog filtering level name
        enable_faucet: If True, the HTTP service allows crediting ledger
            balances out of thin air (local testing only)
    """

    fee_numerator: int = 997
    fee_denominator: int = 1000

    log_level: str = "INFO"
    enable_faucet: bool = False

    def __post_init__(self) -> None:
        if not 0 < self.fee_numerator < self.fee_denominator:
            raise ValueError(
                "Fee must satisfy 0 < fee_numerator < fee_denominator, got "
                f"{self.fee_numerator}/{self.fee_denominator}"
            )

    @property
    def fee_bps(self) -> int:
        """Fee in basis points, rounded down (30 for 997/1000)."""
        return (self.fee_denominator - self.fee_numerator) * 10000 // self.fee_denominator

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        """Build a config from DEX_* environment variables.

        - DEX_FEE_NUMERATOR (default: 997)
        - DEX_FEE_DENOMINATOR (default: 1000)
        - DEX_LOG_LEVEL (default: INFO)
        - DEX_ENABLE_FAUCET (default: false)
        """
        return cls(
            fee_numerator=int(os.environ.get("DEX_FEE_NUMERATOR", "997")),
            fee_denominator=int(os.environ.get("DEX_FEE_DENOMINATOR", "1000")),
            log_level=os.environ.get("DEX_LOG_LEVEL", "INFO").upper(),
            enable_faucet=os.environ.get("DEX_ENABLE_FAUCET", "false").lower() in _TRUTHY,
        )


# Default configuration instance
DEFAULT_EXCHANGE_CONFIG = ExchangeConfig()
