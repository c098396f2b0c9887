"""Market data layer -- snapshot fan-out, opportunity building and caching."""

from fundscan.market_data.fan_out import fetch_snapshots
from fundscan.market_data.funding_history import FundingHistoryCache
from fundscan.market_data.opportunity_builder import OpportunityBuilder
from fundscan.market_data.opportunity_cache import OpportunityCache

__all__ = [
    "FundingHistoryCache",
    "OpportunityBuilder",
    "OpportunityCache",
    "fetch_snapshots",
]
