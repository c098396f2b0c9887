"""Exchange adapter layer -- normalised market data per venue over httpx."""

from fundscan.exchange.aster import AsterAdapter
from fundscan.exchange.client import ExchangeAdapter
from fundscan.exchange.hyperliquid import HyperliquidAdapter
from fundscan.exchange.lighter import LighterAdapter
from fundscan.exchange.pacifica import PacificaAdapter
from fundscan.exchange.registry import build_adapters

__all__ = [
    "AsterAdapter",
    "ExchangeAdapter",
    "HyperliquidAdapter",
    "LighterAdapter",
    "PacificaAdapter",
    "build_adapters",
]
