"""Opportunity builder for cross-exchange funding/spread arbitrage.

Evaluates both directional assignments of a snapshot pair independently:
"go long on X, short on Y". Each direction is an opportunity when its
annualised funding carry or its price spread qualifies.

Core formulas (rates in percent per hour):
  long_leg  = |rate| if rate < 0 else -rate     # longs collect negative funding
  short_leg = rate if rate > 0 else -|rate|     # shorts collect positive funding
  apr(long, short) = (long_leg + short_leg) * hours_per_year
  spread(buy, sell) = (sell.bid - buy.ask) / buy.ask   # undefined if a quote is missing

Mirror policies:
  independent -- emit a direction when apr > min_apr or spread > 0; both
                 directions of a pair may be emitted.
  first_wins  -- emit a direction when apr > 0 or spread > 0, and drop a
                 direction whose mirror was already emitted for the token.
"""

from decimal import Decimal
from itertools import combinations

from fundscan.config import OpportunitySettings
from fundscan.logging import get_logger
from fundscan.models import MirrorPolicy, Opportunity, TokenSnapshot

logger = get_logger(__name__)


def long_leg_carry(rate: Decimal) -> Decimal:
    """Hourly carry of the long leg: paid when funding is negative, charged when positive."""
    return abs(rate) if rate < 0 else -rate


def short_leg_carry(rate: Decimal) -> Decimal:
    """Hourly carry of the short leg: paid when funding is positive, charged when negative."""
    return rate if rate > 0 else -abs(rate)


def spread(buy: TokenSnapshot, sell: TokenSnapshot) -> Decimal | None:
    """Relative gap between selling on `sell` and buying on `buy`.

    Returns None when buy.ask or sell.bid is missing or non-positive.
    """
    if buy.ask is None or sell.bid is None:
        return None
    if buy.ask <= 0 or sell.bid <= 0:
        return None
    return (sell.bid - buy.ask) / buy.ask


class OpportunityBuilder:
    """Builds directional opportunities from per-venue token snapshots.

    Args:
        settings: Qualification thresholds and mirror policy.
        exchange_ids: Venue name to numeric id mapping.
    """

    def __init__(
        self, settings: OpportunitySettings, exchange_ids: dict[str, int]
    ) -> None:
        self._min_apr = settings.min_apr
        self._hours_per_year = settings.hours_per_year
        self._policy = MirrorPolicy(settings.mirror_policy)
        self._exchange_ids = dict(exchange_ids)

    @property
    def policy(self) -> MirrorPolicy:
        return self._policy

    def carry(self, long: TokenSnapshot, short: TokenSnapshot) -> Decimal:
        """Annualised net funding carry (percent/year) of long `long`, short `short`."""
        gain = long_leg_carry(long.funding_rate) + short_leg_carry(short.funding_rate)
        return gain * self._hours_per_year

    def _qualifies(self, apr: Decimal, spread_value: Decimal | None) -> bool:
        threshold = self._min_apr if self._policy is MirrorPolicy.INDEPENDENT else 0
        if apr > threshold:
            return True
        return spread_value is not None and spread_value > 0

    def evaluate(
        self, token: str, long: TokenSnapshot, short: TokenSnapshot
    ) -> Opportunity | None:
        """Evaluate a single direction: long on `long`, short on `short`."""
        apr = self.carry(long, short)
        spread_value = spread(long, short)
        if not self._qualifies(apr, spread_value):
            return None

        return Opportunity(
            token=token,
            buy_exchange=self._exchange_ids[long.exchange],
            sell_exchange=self._exchange_ids[short.exchange],
            avg_funding_buy=long.funding_rate,
            avg_funding_sell=short.funding_rate,
            apr=apr,
            spread=spread_value,
            buy_oi=long.open_interest_usd,
            sell_oi=short.open_interest_usd,
            buy_volume=long.volume_usd,
            sell_volume=short.volume_usd,
            buy_bid=long.bid,
            buy_ask=long.ask,
            buy_mid_price=long.mid_price,
            sell_bid=short.bid,
            sell_ask=short.ask,
            sell_mid_price=short.mid_price,
        )

    def build_pair(
        self, token: str, a: TokenSnapshot, b: TokenSnapshot
    ) -> list[Opportunity]:
        """Evaluate (long=a, short=b) then (long=b, short=a).

        Returns zero, one or two opportunities. The mirror policy is not
        applied here; see build().
        """
        found = []
        for long, short in ((a, b), (b, a)):
            opportunity = self.evaluate(token, long, short)
            if opportunity is not None:
                found.append(opportunity)
        return found

    def build(self, token: str, snapshots: list[TokenSnapshot]) -> list[Opportunity]:
        """Build all opportunities for a token from its venue snapshots.

        Snapshots from venues without a configured id are ignored. Fewer
        than two usable snapshots yield no opportunities.
        """
        usable = []
        for snapshot in snapshots:
            if snapshot.exchange not in self._exchange_ids:
                logger.warning(
                    "snapshot_from_unmapped_exchange",
                    token=token,
                    exchange=snapshot.exchange,
                )
                continue
            usable.append(snapshot)

        if len(usable) < 2:
            return []

        opportunities: list[Opportunity] = []
        seen: set[tuple[int, int]] = set()

        for a, b in combinations(usable, 2):
            for opportunity in self.build_pair(token, a, b):
                pair = (opportunity.buy_exchange, opportunity.sell_exchange)
                if self._policy is MirrorPolicy.FIRST_WINS:
                    if (pair[1], pair[0]) in seen:
                        continue
                    seen.add(pair)
                opportunities.append(opportunity)

        logger.debug(
            "opportunities_built",
            token=token,
            snapshots=len(usable),
            count=len(opportunities),
        )
        return opportunities
