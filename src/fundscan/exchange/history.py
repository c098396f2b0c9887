"""Funding-history summarisation shared by adapters with a history endpoint.

Core formula:
  avg_funding_rate = mean(sampled rates)
  interval_hours = mean spacing between consecutive samples (1h if single)
  apr = avg_funding_rate * (hours_per_year / interval_hours)
"""

from decimal import Decimal

from fundscan.exchange.rest import to_decimal
from fundscan.models import FundingHistorySummary

_MS_PER_HOUR = Decimal("3600000")


def summarize_funding_history(
    samples: list[dict],
    rate_key: str,
    time_key: str,
    rate_scale: Decimal = Decimal("100"),
    hours_per_year: Decimal = Decimal("8760"),
) -> FundingHistorySummary | None:
    """Average a vendor funding-history response into a summary.

    Args:
        samples: Raw records as returned by the venue.
        rate_key: Field holding the per-period rate.
        time_key: Field holding the sample time in epoch milliseconds.
        rate_scale: Multiplier turning the raw rate into a percentage.
        hours_per_year: Annualisation constant.

    Returns:
        None when the response is empty (no data for the window). A
        zero summary when records exist but none carries a parseable rate.
    """
    if not samples:
        return None

    rates = [
        rate * rate_scale
        for rate in (to_decimal(s.get(rate_key)) for s in samples)
        if rate is not None
    ]
    if not rates:
        return FundingHistorySummary(
            avg_funding_rate=Decimal("0"), apr=Decimal("0"), data=[]
        )

    avg_rate = sum(rates, Decimal("0")) / len(rates)

    times = [t for t in (to_decimal(s.get(time_key)) for s in samples) if t is not None]
    interval_hours = Decimal("1")
    if len(times) > 1:
        # Mean of consecutive gaps telescopes to (last - first) / (n - 1)
        spacing = abs(times[-1] - times[0]) / (len(times) - 1) / _MS_PER_HOUR
        if spacing > 0:
            interval_hours = spacing

    return FundingHistorySummary(
        avg_funding_rate=avg_rate,
        apr=avg_rate * (hours_per_year / interval_hours),
        interval_hours=interval_hours,
        data=list(samples),
    )
