"""
Directory-backed ingestion source.

External fetchers drop normalized JSON into one directory:

    <root>/news/<category>.json   list of NewsItem
    <root>/markets.json           list of MarketData
    <root>/predictions.json       list of PredictionMarket
    <root>/seismic.json           list of Earthquake

A missing or malformed file fails that source only.
"""

import asyncio
from pathlib import Path
from typing import TypeVar

from loguru import logger
from pydantic import TypeAdapter

from worldwatch.analysis.types import Earthquake, MarketData, NewsItem, PredictionMarket
from worldwatch.datasource.base import IngestionSource

T = TypeVar("T")


class JsonDirectorySource(IngestionSource):
    """Reads the latest normalized drops from `root` on every fetch."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    async def _read(self, path: Path, model: type[T]) -> list[T]:
        adapter = TypeAdapter(list[model])
        raw = await asyncio.to_thread(path.read_bytes)
        items = adapter.validate_json(raw)
        logger.debug(f"[Ingest] {path.name}: {len(items)} records")
        return items

    async def fetch_items(self, category: str, sources: list[str]) -> list[NewsItem]:
        items = await self._read(self.root / "news" / f"{category}.json", NewsItem)
        if not sources:
            return items
        wanted = set(sources)
        return [item for item in items if item.source in wanted]

    async def fetch_markets(self, symbols: list[str]) -> list[MarketData]:
        markets = await self._read(self.root / "markets.json", MarketData)
        wanted = set(symbols)
        return [m for m in markets if m.symbol in wanted]

    async def fetch_predictions(self) -> list[PredictionMarket]:
        return await self._read(self.root / "predictions.json", PredictionMarket)

    async def fetch_seismic_events(self) -> list[Earthquake]:
        return await self._read(self.root / "seismic.json", Earthquake)
