"""
Dashboard orchestrator - runs refresh cycles, correlation, snapshots and
playback from a single command loop.

All state changes happen inside `handle()`, which `run()` calls for one
command at a time, so there is exactly one writer. Timers only enqueue
commands (see worldwatch.scheduler).
"""

import asyncio
import math
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from worldwatch.analysis.baseline import deviation
from worldwatch.analysis.clustering import NewsClusterer
from worldwatch.analysis.config import INTEL_HOTSPOTS, MARKET_SYMBOLS, NEWS_CATEGORIES
from worldwatch.analysis.correlation import CorrelationEngine
from worldwatch.analysis.hotspots import HotspotBoard, HotspotScorer
from worldwatch.analysis.monitors import Monitor, MonitorMatch, match_monitors
from worldwatch.analysis.types import (
    CategoryReport,
    ClusteredEvent,
    Earthquake,
    FeedStatus,
    MarketData,
    NewsItem,
    PredictionMarket,
    PredictionSnapshot,
    Signal,
    Snapshot,
)
from worldwatch.clock import Clock, SystemClock
from worldwatch.datasource.base import IngestionSource
from worldwatch.messages import (
    LIVE_COMMANDS,
    Command,
    CommandType,
    Notification,
    NotificationKind,
)
from worldwatch.services.baseline_store import BaselineStore
from worldwatch.services.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from worldwatch.services.errors import CircuitOpenError, ServiceError, SourceFetchError
from worldwatch.services.signal_history import SignalHistory
from worldwatch.services.snapshot_store import SnapshotStore
from worldwatch.settings import Settings, global_settings

T = TypeVar("T")

MARKETS_FEED = "Markets"
PREDICTIONS_FEED = "Polymarket"
SEISMIC_FEED = "USGS"


class DashboardOrchestrator:
    """
    Owns the live dashboard state and the components that derive it.
    """

    def __init__(
        self,
        source: IngestionSource,
        baselines: BaselineStore,
        signal_history: SignalHistory,
        snapshots: SnapshotStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
        categories: dict[str, list[str]] | None = None,
        market_symbols: dict[str, str] | None = None,
        hotspot_board: HotspotBoard | None = None,
        monitors: list[Monitor] | None = None,
    ):
        self.settings = settings or global_settings
        self.clock = clock or SystemClock()
        self.source = source

        self.baselines = baselines
        self.signal_history = signal_history
        self.snapshots = snapshots

        self.categories = categories if categories is not None else NEWS_CATEGORIES
        self.market_symbols = (
            market_symbols if market_symbols is not None else MARKET_SYMBOLS
        )

        self.clusterer = NewsClusterer(self.settings.cluster_similarity_threshold)
        self.scorer = HotspotScorer(self.clock)
        self.correlation_engine = CorrelationEngine(self.clock)
        self.hotspot_board = hotspot_board or HotspotBoard(INTEL_HOTSPOTS)
        self.breakers = CircuitBreakerRegistry(
            CircuitBreakerConfig(
                failure_threshold=self.settings.source_failure_threshold,
                reset_timeout=timedelta(minutes=self.settings.source_reset_minutes),
            ),
            clock=self.clock,
        )

        self.commands: asyncio.Queue[Command] = asyncio.Queue()
        self.outbox: asyncio.Queue[Notification] = asyncio.Queue(
            maxsize=self.settings.outbox_max_size
        )

        # Live state
        self.playback_mode = False
        self.playback_timestamp: datetime | None = None
        self.all_news: list[NewsItem] = []
        self.latest_clusters: list[ClusteredEvent] = []
        self.latest_markets: list[MarketData] = []
        self.latest_predictions: list[PredictionMarket] = []
        self.latest_earthquakes: list[Earthquake] = []
        self.latest_signals: list[Signal] = []
        self.category_reports: dict[str, CategoryReport] = {}
        self.feed_statuses: dict[str, FeedStatus] = {}
        self._previous_prediction_prices: dict[str, float] = {}
        self.monitors: tuple[Monitor, ...] = tuple(monitors or ())
        self.monitor_results: dict[str, list[MonitorMatch]] = {}

    # ── Message plumbing ──────────────────────────────────────────────────────

    def submit(self, command: Command | CommandType) -> None:
        if isinstance(command, CommandType):
            command = Command(type=command)
        self.commands.put_nowait(command)

    def stop(self) -> None:
        self.submit(CommandType.STOP)

    def _notify(self, kind: NotificationKind, **payload: Any) -> None:
        if self.outbox.full():
            dropped = self.outbox.get_nowait()
            logger.debug(f"[Orchestrator] Outbox full, dropped {dropped.kind} notification")
        self.outbox.put_nowait(
            Notification(kind=kind, created_at=self.clock.now(), payload=payload)
        )

    async def run(self) -> None:
        """Consume commands until STOP; a failing command never ends the loop."""
        logger.info("[Orchestrator] Command loop started")
        while True:
            command = await self.commands.get()
            try:
                if command.type == CommandType.STOP:
                    break
                await self.handle(command)
            except Exception as e:
                logger.exception(f"[Orchestrator] {command.type.value} failed: {e}")
            finally:
                self.commands.task_done()
        logger.info("[Orchestrator] Command loop stopped")

    async def handle(self, command: Command) -> None:
        if self.playback_mode and command.type in LIVE_COMMANDS:
            logger.debug(f"[Orchestrator] Playback active, skipping {command.type.value}")
            return

        if command.type == CommandType.REFRESH_NEWS:
            await self.load_news()
        elif command.type == CommandType.REFRESH_MARKETS:
            await self.load_markets()
        elif command.type == CommandType.REFRESH_PREDICTIONS:
            await self.load_predictions()
        elif command.type == CommandType.REFRESH_SEISMIC:
            await self.load_seismic()
        elif command.type == CommandType.REFRESH_ALL:
            await self.load_all()
        elif command.type == CommandType.SAVE_SNAPSHOT:
            await self.save_snapshot()
        elif command.type == CommandType.ENTER_PLAYBACK:
            if command.timestamp is None:
                logger.warning("[Orchestrator] Playback requested without a timestamp")
                return
            await self.enter_playback(command.timestamp)
        elif command.type == CommandType.EXIT_PLAYBACK:
            await self.exit_playback()
        elif command.type == CommandType.SET_MONITORS:
            self.set_monitors(list(command.monitors))

    # ── Source isolation ──────────────────────────────────────────────────────

    async def _fetch_guarded(
        self, source_id: str, fetch: Callable[[], Awaitable[T]]
    ) -> T:
        breaker = self.breakers.get(source_id)
        if not breaker.can_request():
            raise CircuitOpenError(source_id, breaker.get_time_until_reset() or 0.0)
        try:
            result = await fetch()
        except Exception as e:
            breaker.record_failure()
            raise SourceFetchError(source_id, e) from e
        breaker.record_success()
        return result

    def _set_status(
        self, name: str, item_count: int = 0, error: ServiceError | None = None
    ) -> FeedStatus:
        status = FeedStatus(
            name=name,
            status="error" if error else "ok",
            item_count=item_count,
            error_message=str(error) if error else None,
            updated_at=self.clock.now(),
        )
        self.feed_statuses[name] = status
        return status

    # ── Refresh cycles ────────────────────────────────────────────────────────

    async def startup(self) -> None:
        """Initial load, first snapshot, then retention cleanup."""
        await self.load_all()
        await self.save_snapshot()
        await self.snapshots.clean_old(self.settings.snapshot_retention_days)

    async def load_all(self) -> None:
        # News first so correlation in load_predictions sees this cycle's clusters
        await self.load_news()
        await self.load_markets()
        await self.load_predictions()
        await self.load_seismic()

    async def _fetch_category(
        self, category: str, sources: list[str]
    ) -> list[NewsItem] | ServiceError:
        try:
            return await self._fetch_guarded(
                f"news:{category}",
                lambda: self.source.fetch_items(category, sources),
            )
        except ServiceError as e:
            return e

    async def load_news(self) -> None:
        # Fetches run concurrently; every state change below happens in order
        results = await asyncio.gather(
            *(self._fetch_category(c, s) for c, s in self.categories.items())
        )

        all_news: list[NewsItem] = []
        for category, result in zip(self.categories, results):
            if isinstance(result, ServiceError):
                logger.warning(f"[Orchestrator] Category '{category}' failed: {result}")
                report = CategoryReport(
                    category=category,
                    status=self._set_status(category, error=result),
                )
            else:
                baseline = await self.baselines.update(f"news:{category}", len(result))
                report = CategoryReport(
                    category=category,
                    items=result,
                    baseline=baseline,
                    deviation=deviation(len(result), baseline),
                    status=self._set_status(category, item_count=len(result)),
                )
                all_news.extend(result)

            self.category_reports[category] = report
            self._notify("category", report=report)

        self.all_news = all_news

        activity = self.scorer.score(self.hotspot_board.hotspots, all_news)
        hotspots = self.hotspot_board.publish(activity)
        self._notify("hotspots", hotspots=list(hotspots))

        self.latest_clusters = self.clusterer.cluster(all_news)
        logger.info(
            f"[Orchestrator] News cycle: {len(all_news)} items, "
            f"{len(self.latest_clusters)} events"
        )

        self.update_monitor_results()

    def set_monitors(self, monitors: list[Monitor]) -> None:
        ids = [m.id for m in monitors]
        if len(ids) != len(set(ids)):
            logger.warning("[Orchestrator] Ignoring monitor list with duplicate ids")
            return
        self.monitors = tuple(monitors)
        self.update_monitor_results()

    def update_monitor_results(self) -> dict[str, list[MonitorMatch]]:
        """Re-match every monitor against the current news and notify."""
        self.monitor_results = match_monitors(self.monitors, self.all_news)
        self._notify("monitors", results=self.monitor_results)
        return self.monitor_results

    async def load_markets(self) -> None:
        symbols = list(self.market_symbols)
        try:
            markets = await self._fetch_guarded(
                MARKETS_FEED, lambda: self.source.fetch_markets(symbols)
            )
        except ServiceError as e:
            logger.error(f"Market fetch failed: {e}")
            self._set_status(MARKETS_FEED, error=e)
            return

        self.latest_markets = markets
        self._set_status(MARKETS_FEED, item_count=len(markets))
        self._notify("markets", markets=markets)

    async def load_predictions(self) -> None:
        try:
            predictions = await self._fetch_guarded(
                PREDICTIONS_FEED, self.source.fetch_predictions
            )
        except ServiceError as e:
            logger.error(f"Prediction fetch failed: {e}")
            self._set_status(PREDICTIONS_FEED, error=e)
            return

        self.latest_predictions = predictions
        self._set_status(PREDICTIONS_FEED, item_count=len(predictions))
        self._notify("predictions", predictions=predictions)

        await self.run_correlation_analysis()

    async def load_seismic(self) -> None:
        try:
            earthquakes = await self._fetch_guarded(
                SEISMIC_FEED, self.source.fetch_seismic_events
            )
        except ServiceError as e:
            logger.error(f"Seismic fetch failed: {e}")
            self._set_status(SEISMIC_FEED, error=e)
            return

        self.latest_earthquakes = earthquakes
        self._set_status(SEISMIC_FEED, item_count=len(earthquakes))
        self._notify("seismic", earthquakes=earthquakes)

    async def run_correlation_analysis(self) -> list[Signal]:
        signals = self.correlation_engine.analyze(
            self.latest_clusters,
            self.latest_predictions,
            self.latest_markets,
            previous_prices=self._previous_prediction_prices,
        )
        self._previous_prediction_prices = {
            p.id: p.yes_price for p in self.latest_predictions
        }
        self.latest_signals = signals

        if signals:
            await self.signal_history.append(signals)
            self._notify(
                "signals",
                signals=signals,
                summary=self.correlation_engine.get_summary(signals),
            )
        return signals

    # ── Snapshots and playback ────────────────────────────────────────────────

    def build_snapshot(self) -> Snapshot:
        return Snapshot(
            timestamp=self.clock.now(),
            events=self.latest_clusters,
            market_prices={
                m.symbol: m.price
                for m in self.latest_markets
                if m.price is not None and math.isfinite(m.price)
            },
            predictions=[
                PredictionSnapshot(title=p.title, yes_price=p.yes_price)
                for p in self.latest_predictions
            ],
            hotspot_levels=self.hotspot_board.levels(),
        )

    async def save_snapshot(self) -> Snapshot | None:
        if self.playback_mode:
            return None
        snapshot = self.build_snapshot()
        await self.snapshots.save(snapshot)
        self._notify("snapshot", timestamp=snapshot.timestamp)
        return snapshot

    async def enter_playback(self, timestamp: datetime) -> bool:
        """Restore the dashboard to a stored snapshot and pause live updates."""
        snapshot = await self.snapshots.get(timestamp)
        if snapshot is None:
            logger.warning(f"[Orchestrator] No snapshot at {timestamp.isoformat()}")
            return False

        self.playback_mode = True
        self.playback_timestamp = snapshot.timestamp
        self.restore_snapshot(snapshot)
        self._notify("playback", active=True, timestamp=snapshot.timestamp)
        logger.info(f"[Orchestrator] Playback at {snapshot.timestamp.isoformat()}")
        return True

    def restore_snapshot(self, snapshot: Snapshot) -> None:
        self.latest_clusters = list(snapshot.events)
        self.latest_predictions = [
            PredictionMarket(id=f"snap-{i}", title=p.title, yes_price=p.yes_price)
            for i, p in enumerate(snapshot.predictions)
        ]
        self.latest_markets = [
            MarketData(
                symbol=symbol,
                name=self.market_symbols.get(symbol, ""),
                price=price,
            )
            for symbol, price in snapshot.market_prices.items()
        ]
        self.hotspot_board.restore_levels(snapshot.hotspot_levels)

        self._notify("predictions", predictions=self.latest_predictions)
        self._notify("markets", markets=self.latest_markets)
        self._notify("hotspots", hotspots=list(self.hotspot_board.hotspots))

    async def exit_playback(self) -> None:
        if not self.playback_mode:
            return
        self.playback_mode = False
        self.playback_timestamp = None
        self._notify("playback", active=False)
        logger.info("[Orchestrator] Playback ended, reloading live data")
        await self.load_all()
