"""Abstract exchange adapter interface.

Defines the contract for all venue implementations. The refresh scheduler
depends only on this interface, keeping vendor-specific JSON handling
isolated in the concrete adapters.
"""

from abc import ABC, abstractmethod

from fundscan.models import FundingHistorySummary, TokenSnapshot


class ExchangeAdapter(ABC):
    """Abstract base class for per-venue market data adapters."""

    name: str = ""

    @abstractmethod
    async def list_tokens(self) -> list[str]:
        """Return the tradable base assets on this venue.

        Never raises: a failed discovery returns an empty list so one
        venue's outage does not block the others.
        """
        ...

    @abstractmethod
    async def get_snapshot(self, token: str) -> TokenSnapshot:
        """Fetch a normalised snapshot for a token.

        Raises:
            TokenNotListedError: The token is not listed on this venue.
            ExchangeRequestError: Transient network or HTTP failure.
        """
        ...

    async def get_funding_history(
        self, token: str, window_hours: int
    ) -> FundingHistorySummary | None:
        """Summarise funding over the last window_hours.

        Returns None when the venue has no data for the window. Venues
        without a history endpoint inherit this default.

        Raises:
            ExchangeRequestError: Transient failure; callers may retry.
        """
        return None

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...
