"""Shared data models for the opportunity scanner.

All rates, prices and USD amounts use Decimal. Funding rates are signed
percentages normalised to a one-hour interval. A missing order-book side
is None, never a sentinel zero.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class MirrorPolicy(str, Enum):
    """How the two directions of an exchange pair are reported."""

    INDEPENDENT = "independent"
    FIRST_WINS = "first_wins"


@dataclass(frozen=True)
class TokenSnapshot:
    """Point-in-time market state of one token on one venue."""

    exchange: str
    token: str
    funding_rate: Decimal  # percent per hour
    open_interest_usd: Decimal = Decimal("0")
    volume_usd: Decimal = Decimal("0")
    bid: Decimal | None = None
    ask: Decimal | None = None
    mid_price: Decimal = Decimal("0")
    fetched_at: float = field(default_factory=time.time)


@dataclass
class Opportunity:
    """Directional long/short opportunity for a token across two venues.

    Long on buy_exchange, short on sell_exchange. (A, B) and (B, A) are
    distinct opportunities representing opposite trades.
    """

    token: str
    buy_exchange: int
    sell_exchange: int
    avg_funding_buy: Decimal
    avg_funding_sell: Decimal
    apr: Decimal  # percent per year
    spread: Decimal | None
    buy_oi: Decimal = Decimal("0")
    sell_oi: Decimal = Decimal("0")
    buy_volume: Decimal = Decimal("0")
    sell_volume: Decimal = Decimal("0")
    buy_bid: Decimal | None = None
    buy_ask: Decimal | None = None
    buy_mid_price: Decimal = Decimal("0")
    sell_bid: Decimal | None = None
    sell_ask: Decimal | None = None
    sell_mid_price: Decimal = Decimal("0")

    @property
    def key(self) -> tuple[str, int, int]:
        """Cache identity: (token, buy_exchange, sell_exchange)."""
        return (self.token, self.buy_exchange, self.sell_exchange)


@dataclass
class FundingHistorySummary:
    """Averaged funding for one token on one venue over a lookback window."""

    avg_funding_rate: Decimal  # percent per sampling interval
    apr: Decimal
    interval_hours: Decimal = Decimal("1")
    data: list[dict] = field(default_factory=list)


# Persisted/JSON field names, in output order
_OPPORTUNITY_FIELDS: dict[str, str] = {
    "token": "token",
    "buy_exchange": "buyExchange",
    "sell_exchange": "sellExchange",
    "avg_funding_buy": "avgFundingBuy",
    "avg_funding_sell": "avgFundingSell",
    "apr": "apr",
    "buy_oi": "buyOI",
    "sell_oi": "sellOI",
    "buy_volume": "buyVolume",
    "sell_volume": "sellVolume",
    "buy_bid": "buyBid",
    "buy_ask": "buyAsk",
    "buy_mid_price": "buyMidPrice",
    "sell_bid": "sellBid",
    "sell_ask": "sellAsk",
    "sell_mid_price": "sellMidPrice",
    "spread": "spread",
}

_INT_FIELDS = {"buy_exchange", "sell_exchange"}
_OPTIONAL_FIELDS = {"spread", "buy_bid", "buy_ask", "sell_bid", "sell_ask"}


def decimal_to_json(value: Decimal | None) -> float | None:
    """Convert a Decimal to a JSON number, preserving None as null."""
    return float(value) if value is not None else None


def opportunity_to_dict(opportunity: Opportunity) -> dict[str, Any]:
    """Serialize an Opportunity to its camelCase JSON document shape."""
    result: dict[str, Any] = {}
    for attr, json_key in _OPPORTUNITY_FIELDS.items():
        value = getattr(opportunity, attr)
        if isinstance(value, Decimal):
            value = decimal_to_json(value)
        result[json_key] = value
    return result


def opportunity_from_dict(raw: dict[str, Any]) -> Opportunity:
    """Rebuild an Opportunity from a persisted JSON document entry.

    Raises:
        KeyError: If a mandatory field is missing.
        decimal.InvalidOperation: If a numeric field cannot be parsed.
    """
    kwargs: dict[str, Any] = {}
    for attr, json_key in _OPPORTUNITY_FIELDS.items():
        value = raw.get(json_key)
        if attr == "token":
            kwargs[attr] = raw[json_key]
        elif attr in _INT_FIELDS:
            kwargs[attr] = int(raw[json_key])
        elif value is None:
            kwargs[attr] = None if attr in _OPTIONAL_FIELDS else Decimal("0")
        else:
            kwargs[attr] = Decimal(str(value))
    return Opportunity(**kwargs)
