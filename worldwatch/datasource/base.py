"""
Ingestion interface consumed by the engine.

Fetching and parsing feeds, quotes and seismic data happens outside this
package; implementations hand over already-normalized models. Every method
may fail independently, and the orchestrator isolates failures per source.
"""

from abc import ABC, abstractmethod

from worldwatch.analysis.types import Earthquake, MarketData, NewsItem, PredictionMarket


class IngestionSource(ABC):
    """Abstract provider of normalized news, quotes and seismic events."""

    @abstractmethod
    async def fetch_items(self, category: str, sources: list[str]) -> list[NewsItem]:
        """Fetch the latest items of one news category from the given feeds."""
        ...

    @abstractmethod
    async def fetch_markets(self, symbols: list[str]) -> list[MarketData]:
        """Fetch quotes for the given instruments."""
        ...

    @abstractmethod
    async def fetch_predictions(self) -> list[PredictionMarket]:
        """Fetch current prediction market quotes."""
        ...

    @abstractmethod
    async def fetch_seismic_events(self) -> list[Earthquake]:
        """Fetch recent earthquakes."""
        ...
