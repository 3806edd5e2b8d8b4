import asyncio

import pytest
from conftest import make_item, open_database

from worldwatch.analysis.monitors import Monitor
from worldwatch.analysis.types import MarketData, PredictionMarket
from worldwatch.messages import Command, CommandType
from worldwatch.orchestrator import DashboardOrchestrator
from worldwatch.services.baseline_store import BaselineStore
from worldwatch.services.signal_history import SignalHistory
from worldwatch.services.snapshot_store import SnapshotStore
from worldwatch.settings import Settings

CATEGORIES = {"politics": ["BBC World"], "middleeast": ["Al Jazeera"]}
SYMBOLS = {"CL=F": "Crude Oil", "NVDA": "NVIDIA"}


def _orchestrator(source, clock, settings=None, **kwargs) -> DashboardOrchestrator:
    kwargs.setdefault("snapshots", SnapshotStore(clock=clock))
    return DashboardOrchestrator(
        source=source,
        baselines=BaselineStore(clock=clock),
        signal_history=SignalHistory(),
        settings=settings or Settings(),
        clock=clock,
        categories=CATEGORIES,
        market_symbols=SYMBOLS,
        **kwargs,
    )


def _load_world(source) -> None:
    source.items = {
        "politics": [make_item("Drone strikes reported near Kyiv", is_alert=True)],
        "middleeast": [
            make_item("Iran nuclear talks collapse in Vienna", category="middleeast"),
            make_item("Iran walks out of nuclear talks", category="middleeast"),
            make_item("Nuclear talks with Iran break down", category="middleeast"),
        ],
    }
    source.markets = [
        MarketData(symbol="CL=F", name="Crude Oil", price=81.0, change=-3.5),
        MarketData(symbol="NVDA", name="NVIDIA", price=None, change=0.4),
    ]
    source.predictions = [
        PredictionMarket(id="p1", title="Iran nuclear deal signed by June?", yes_price=0.3)
    ]


def _drain(queue) -> list:
    drained = []
    while not queue.empty():
        drained.append(queue.get_nowait())
    return drained


def test_startup_runs_full_cycle(source, clock):
    _load_world(source)

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.startup()
        baseline = await orchestrator.baselines.get("news:middleeast")
        history = await orchestrator.signal_history.count()
        snapshots = await orchestrator.snapshots.list()
        return orchestrator, baseline, history, snapshots

    orchestrator, baseline, history, snapshots = asyncio.run(scenario())

    reports = orchestrator.category_reports
    assert set(reports) == {"politics", "middleeast"}
    assert reports["middleeast"].status.status == "ok"
    assert reports["middleeast"].status.item_count == 3
    assert reports["middleeast"].deviation.level == "normal"
    assert baseline.sample_count == 1
    assert baseline.mean == 3

    assert [e.item_count for e in orchestrator.latest_clusters] == [1, 3]
    assert orchestrator.hotspot_board.get("Kyiv").level == "high"
    assert orchestrator.hotspot_board.get("Tehran").level != "low"

    kinds = {s.kind for s in orchestrator.latest_signals}
    assert {"news_prediction_convergence", "breaking_market_move"} <= kinds
    assert history == len(orchestrator.latest_signals)

    assert snapshots == [clock.now()]
    assert orchestrator.feed_statuses["Markets"].item_count == 2

    notified = [n.kind for n in _drain(orchestrator.outbox)]
    assert notified[:3] == ["category", "category", "hotspots"]
    for kind in ("markets", "predictions", "signals", "seismic", "snapshot"):
        assert kind in notified


def test_snapshot_skips_missing_prices(source, clock):
    _load_world(source)

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.load_all()
        return await orchestrator.save_snapshot()

    snapshot = asyncio.run(scenario())
    assert snapshot.market_prices == {"CL=F": 81.0}
    assert snapshot.predictions[0].yes_price == 0.3
    assert snapshot.hotspot_levels["Kyiv"] == "high"


def test_failing_category_is_isolated(source, clock):
    _load_world(source)
    source.failing = {"politics"}

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.load_news()
        return orchestrator, await orchestrator.baselines.get("news:politics")

    orchestrator, politics_baseline = asyncio.run(scenario())

    politics = orchestrator.category_reports["politics"]
    assert politics.status.status == "error"
    assert "unreachable" in politics.status.error_message
    assert politics.items == []
    assert politics_baseline is None

    assert orchestrator.category_reports["middleeast"].status.status == "ok"
    assert len(orchestrator.all_news) == 3


def test_repeated_failures_open_the_circuit(source, clock):
    _load_world(source)
    source.failing = {"politics"}

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        for _ in range(4):
            await orchestrator.load_news()
        return orchestrator

    orchestrator = asyncio.run(scenario())

    assert source.calls.count("news:politics") == 3
    assert source.calls.count("news:middleeast") == 4
    assert "news:politics" in orchestrator.breakers.get_open_circuits()
    assert "Circuit breaker open" in orchestrator.feed_statuses["politics"].error_message


def test_failed_market_fetch_keeps_previous_quotes(source, clock):
    _load_world(source)

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.load_markets()
        source.failing = {"markets"}
        await orchestrator.load_markets()
        return orchestrator

    orchestrator = asyncio.run(scenario())
    assert len(orchestrator.latest_markets) == 2
    assert orchestrator.feed_statuses["Markets"].status == "error"


def test_prediction_moves_are_tracked_between_cycles(source, clock):
    source.items = {"politics": [make_item("Drone strikes reported near Kyiv")]}
    source.markets = [MarketData(symbol="NVDA", change=0.1)]
    source.predictions = [
        PredictionMarket(id="fed", title="Fed cuts rates in March?", yes_price=0.30)
    ]

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.load_all()
        first = list(orchestrator.latest_signals)

        source.predictions = [
            PredictionMarket(id="fed", title="Fed cuts rates in March?", yes_price=0.45)
        ]
        await orchestrator.load_predictions()
        return first, orchestrator.latest_signals

    first, second = asyncio.run(scenario())
    assert first == []
    assert [s.kind for s in second] == ["prediction_leads_news"]
    assert second[0].related_prediction_ids == ["fed"]


def test_playback_restores_snapshot_and_pauses_live_updates(source, clock):
    _load_world(source)

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.startup()
        taken_at = clock.now()

        # Live world moves on
        source.items = {"politics": [], "middleeast": []}
        await orchestrator.load_news()
        assert orchestrator.hotspot_board.get("Kyiv").level == "low"

        assert await orchestrator.enter_playback(taken_at)
        calls_before = len(source.calls)
        await orchestrator.handle(Command(type=CommandType.REFRESH_ALL))
        await orchestrator.handle(Command(type=CommandType.SAVE_SNAPSHOT))
        paused = (
            len(source.calls) == calls_before,
            len(await orchestrator.snapshots.list()) == 1,
        )
        restored = (
            [p.id for p in orchestrator.latest_predictions],
            orchestrator.latest_predictions[0].no_price,
            orchestrator.latest_markets,
            orchestrator.hotspot_board.get("Kyiv").level,
            len(orchestrator.latest_clusters),
        )

        await orchestrator.handle(Command(type=CommandType.EXIT_PLAYBACK))
        return orchestrator, paused, restored, calls_before

    orchestrator, paused, restored, calls_before = asyncio.run(scenario())

    assert paused == (True, True)
    prediction_ids, no_price, markets, kyiv_level, cluster_count = restored
    assert prediction_ids == ["snap-0"]
    assert no_price == pytest.approx(0.7)
    assert markets == [MarketData(symbol="CL=F", name="Crude Oil", price=81.0)]
    assert kyiv_level == "high"
    assert cluster_count == 2

    assert not orchestrator.playback_mode
    assert len(source.calls) > calls_before


def test_unknown_playback_timestamp_is_ignored(source, clock):
    async def scenario():
        orchestrator = _orchestrator(source, clock)
        entered = await orchestrator.enter_playback(clock.now())
        return orchestrator, entered

    orchestrator, entered = asyncio.run(scenario())
    assert not entered
    assert not orchestrator.playback_mode


def test_run_loop_survives_failing_command(source, clock):
    _load_world(source)

    async def broken_markets():
        raise RuntimeError("quote parser exploded")

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        orchestrator.load_markets = broken_markets
        orchestrator.submit(CommandType.REFRESH_MARKETS)
        orchestrator.submit(Command(type=CommandType.REFRESH_NEWS))
        orchestrator.stop()
        await asyncio.wait_for(orchestrator.run(), timeout=5)
        return orchestrator

    orchestrator = asyncio.run(scenario())
    assert len(orchestrator.all_news) == 4
    assert orchestrator.commands.empty()


def test_outbox_keeps_only_the_newest_notifications(source, clock):
    _load_world(source)

    async def scenario():
        orchestrator = _orchestrator(
            source, clock, settings=Settings(outbox_max_size=5)
        )
        sizes = []
        for _ in range(3):
            await orchestrator.load_all()
            sizes.append(orchestrator.outbox.qsize())
        return orchestrator, sizes

    orchestrator, sizes = asyncio.run(scenario())

    assert sizes == [5, 5, 5]
    kept = [n.kind for n in _drain(orchestrator.outbox)]
    assert kept[-1] == "seismic"


def test_monitors_are_matched_after_each_news_cycle(source, clock):
    _load_world(source)
    monitors = [
        Monitor(id="iran", name="Iran talks", keywords=("Iran", "Vienna")),
        Monitor(id="oil", name="Oil", keywords=("crude",)),
    ]

    async def scenario():
        orchestrator = _orchestrator(source, clock, monitors=monitors)
        await orchestrator.load_news()
        return orchestrator

    orchestrator = asyncio.run(scenario())

    iran = orchestrator.monitor_results["iran"]
    assert len(iran) == 3
    assert iran[0].keywords == ("iran", "vienna")
    assert orchestrator.monitor_results["oil"] == []

    notifications = [n for n in _drain(orchestrator.outbox) if n.kind == "monitors"]
    assert len(notifications) == 1
    assert set(notifications[0].payload["results"]) == {"iran", "oil"}


def test_set_monitors_command_rematches_current_news(source, clock):
    _load_world(source)
    kyiv = Monitor(id="kyiv", name="Kyiv", keywords=("kyiv",))

    async def scenario():
        orchestrator = _orchestrator(source, clock)
        await orchestrator.load_news()
        assert orchestrator.monitor_results == {}
        orchestrator.submit(Command(type=CommandType.SET_MONITORS, monitors=(kyiv,)))
        orchestrator.stop()
        await asyncio.wait_for(orchestrator.run(), timeout=5)
        return orchestrator

    orchestrator = asyncio.run(scenario())

    assert orchestrator.monitors == (kyiv,)
    matches = orchestrator.monitor_results["kyiv"]
    assert [m.item.title for m in matches] == ["Drone strikes reported near Kyiv"]


def test_snapshot_drops_non_finite_prices(source, clock, db_path):
    _load_world(source)
    source.markets = [
        MarketData(symbol="CL=F", name="Crude Oil", price=81.0, change=-3.5),
        MarketData(symbol="NVDA", name="NVIDIA", price=float("nan"), change=0.4),
    ]

    async def scenario():
        database = await open_database(db_path)
        try:
            orchestrator = _orchestrator(
                source,
                clock,
                snapshots=SnapshotStore(database.session_factory, clock=clock),
            )
            await orchestrator.load_all()
            source.markets[1] = MarketData(symbol="NVDA", price=float("inf"))
            await orchestrator.load_markets()
            snapshot = await orchestrator.save_snapshot()
            entered = await orchestrator.enter_playback(snapshot.timestamp)
        finally:
            await database.close()
        return orchestrator, snapshot, entered

    orchestrator, snapshot, entered = asyncio.run(scenario())

    assert snapshot.market_prices == {"CL=F": 81.0}
    assert entered
    assert [m.symbol for m in orchestrator.latest_markets] == ["CL=F"]
