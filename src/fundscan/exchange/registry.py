"""Build the configured exchange adapters from settings."""

from fundscan.config import ExchangeSettings
from fundscan.exchange.aster import AsterAdapter
from fundscan.exchange.client import ExchangeAdapter
from fundscan.exchange.hyperliquid import HyperliquidAdapter
from fundscan.exchange.lighter import LighterAdapter
from fundscan.exchange.pacifica import PacificaAdapter
from fundscan.logging import get_logger

logger = get_logger(__name__)


def build_adapters(settings: ExchangeSettings) -> list[ExchangeAdapter]:
    """Instantiate one adapter per enabled venue, in configured order.

    Raises:
        ValueError: If an enabled venue is unknown or has no numeric id.
    """
    factories = {
        "Aster": lambda: AsterAdapter(
            settings.aster_base_url,
            quote_asset=settings.quote_asset,
            timeout=settings.request_timeout,
        ),
        "Hyperliquid": lambda: HyperliquidAdapter(
            settings.hyperliquid_base_url, timeout=settings.request_timeout
        ),
        "Lighter": lambda: LighterAdapter(
            settings.lighter_base_url, timeout=settings.request_timeout
        ),
        "Pacifica": lambda: PacificaAdapter(
            settings.pacifica_base_url, timeout=settings.request_timeout
        ),
    }

    adapters: list[ExchangeAdapter] = []
    for name in settings.enabled:
        if name not in factories:
            raise ValueError(f"Unknown exchange {name!r}; known: {sorted(factories)}")
        if name not in settings.ids:
            raise ValueError(f"Exchange {name!r} has no id in EXCHANGE_IDS")
        adapters.append(factories[name]())

    logger.info("exchange_adapters_built", exchanges=[a.name for a in adapters])
    return adapters
