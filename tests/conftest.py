from datetime import datetime, timedelta, timezone

import pytest

from worldwatch.analysis.types import (
    Earthquake,
    MarketData,
    NewsItem,
    PredictionMarket,
)
from worldwatch.clock import FrozenClock
from worldwatch.datasource.base import IngestionSource
from worldwatch.datastore.engine import Database

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeSource(IngestionSource):
    """In-memory ingestion source; categories listed in `failing` raise."""

    def __init__(self):
        self.items: dict[str, list[NewsItem]] = {}
        self.markets: list[MarketData] = []
        self.predictions: list[PredictionMarket] = []
        self.earthquakes: list[Earthquake] = []
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def fetch_items(self, category, sources):
        self.calls.append(f"news:{category}")
        if category in self.failing:
            raise ConnectionError(f"{category} feed unreachable")
        return list(self.items.get(category, []))

    async def fetch_markets(self, symbols):
        self.calls.append("markets")
        if "markets" in self.failing:
            raise ConnectionError("quotes unavailable")
        return [m for m in self.markets if m.symbol in symbols]

    async def fetch_predictions(self):
        self.calls.append("predictions")
        if "predictions" in self.failing:
            raise ConnectionError("predictions unavailable")
        return list(self.predictions)

    async def fetch_seismic_events(self):
        self.calls.append("seismic")
        if "seismic" in self.failing:
            raise ConnectionError("seismic unavailable")
        return list(self.earthquakes)


def make_item(
    title: str,
    category: str = "politics",
    source: str = "BBC World",
    minutes_ago: float = 10,
    is_alert: bool = False,
) -> NewsItem:
    return NewsItem(
        title=title,
        source=source,
        category=category,
        published_at=NOW - timedelta(minutes=minutes_ago),
        is_alert=is_alert,
    )


async def open_database(path) -> Database:
    database = Database(f"sqlite+aiosqlite:///{path}")
    await database.init()
    return database


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "worldwatch-test.db"
