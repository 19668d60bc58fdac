"""Wiring of ledger, factory and router into one exchange instance."""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from dex.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from dex.constants import DEFAULT_ROUTER_ADDRESS
from dex.factory import Factory
from dex.ledger import AssetLedger, InMemoryLedger
from dex.router import Router

logger = structlog.get_logger()


@dataclass
class Exchange:
    """A running exchange: the pieces a caller needs, built once at start-up."""

    config: ExchangeConfig
    ledger: AssetLedger
    factory: Factory
    router: Router


def build_exchange(
    config: ExchangeConfig | None = None,
    ledger: AssetLedger | None = None,
    router_address: str = DEFAULT_ROUTER_ADDRESS,
    clock: Callable[[], int] | None = None,
) -> Exchange:
    """Construct an exchange.

    Args:
        config: Exchange config. Defaults to DEFAULT_EXCHANGE_CONFIG.
        ledger: Asset ledger. Defaults to a fresh InMemoryLedger.
        router_address: Spender address of the router
        clock: Unix-seconds clock for deadline checks (system clock if None)
    """
    config = config if config is not None else DEFAULT_EXCHANGE_CONFIG
    ledger = ledger if ledger is not None else InMemoryLedger()
    factory = Factory(config)
    router = Router(factory, ledger, address=router_address, clock=clock)

    logger.info(
        "exchange_built",
        fee_numerator=config.fee_numerator,
        fee_denominator=config.fee_denominator,
        ledger=type(ledger).__name__,
        router=router.address[-8:],
    )
    return Exchange(config=config, ledger=ledger, factory=factory, router=router)
