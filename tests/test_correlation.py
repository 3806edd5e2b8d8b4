from datetime import timedelta

from conftest import NOW, make_item

from worldwatch.analysis.config import categories_for_symbol
from worldwatch.analysis.correlation import CorrelationEngine
from worldwatch.analysis.types import ClusteredEvent, MarketData, PredictionMarket

IRAN_TITLES = [
    "Iran nuclear talks collapse in Vienna",
    "Iran walks out of nuclear talks",
    "Nuclear talks with Iran break down",
]


def _event(
    event_id: str,
    titles: list[str],
    category: str = "middleeast",
    span_minutes: float = 180,
    is_alert: bool = False,
) -> ClusteredEvent:
    step = span_minutes / max(len(titles) - 1, 1)
    items = [
        make_item(
            title,
            category=category,
            source=f"Source {i}",
            minutes_ago=span_minutes - i * step,
            is_alert=is_alert and i == 0,
        )
        for i, title in enumerate(titles)
    ]
    return ClusteredEvent(
        id=event_id,
        member_items=items,
        representative_title=titles[0],
        first_seen=min(i.published_at for i in items),
        last_seen=max(i.published_at for i in items),
        category_mix={category: len(items)},
    )


def _prediction(pred_id: str, title: str, yes_price: float) -> PredictionMarket:
    return PredictionMarket(id=pred_id, title=title, yes_price=yes_price)


def test_empty_inputs_yield_no_signals(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES)
    deal = _prediction("p1", "Iran nuclear deal signed by June?", 0.3)

    assert engine.analyze([], [deal], [MarketData(symbol="CL=F", change=5.0)]) == []
    assert engine.analyze([iran], [], []) == []


def test_active_event_converges_with_prediction(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES)
    deal = _prediction("p1", "Iran nuclear deal signed by June?", 0.3)

    signals = engine.analyze([iran], [deal], [])

    assert len(signals) == 1
    signal = signals[0]
    assert signal.kind == "news_prediction_convergence"
    assert signal.related_event_id == "iran"
    assert signal.related_prediction_ids == ["p1"]
    assert signal.confidence == 0.75
    assert signal.created_at == NOW


def test_quiet_event_needs_a_price_move(clock):
    engine = CorrelationEngine(clock)
    single = _event("iran", IRAN_TITLES[:1])
    deal = _prediction("p1", "Iran nuclear deal signed by June?", 0.42)

    assert engine.analyze([single], [deal], []) == []

    signals = engine.analyze([single], [deal], [], previous_prices={"p1": 0.30})
    assert [s.kind for s in signals] == ["news_prediction_convergence"]


def test_prediction_move_without_coverage_leads_news(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES)
    fed = _prediction("p2", "Fed cuts rates in March?", 0.40)

    signals = engine.analyze([iran], [fed], [], previous_prices={"p2": 0.30})
    assert [s.kind for s in signals] == ["prediction_leads_news"]
    assert signals[0].related_event_id is None
    assert signals[0].confidence == 0.7

    small = engine.analyze([iran], [fed], [], previous_prices={"p2": 0.38})
    assert small == []


def test_market_move_with_active_related_event(clock):
    engine = CorrelationEngine(clock)
    assert "middleeast" in categories_for_symbol("CL=F")
    iran = _event("iran", IRAN_TITLES)
    oil = MarketData(symbol="CL=F", name="Crude Oil", price=81.2, change=-3.5)

    signals = engine.analyze([iran], [], [oil])

    assert [s.kind for s in signals] == ["breaking_market_move"]
    assert signals[0].related_market_symbols == ["CL=F"]
    assert signals[0].related_event_id == "iran"
    assert "Crude Oil" in signals[0].title


def test_unexplained_market_move_is_silent_divergence(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES)
    nvda = MarketData(symbol="NVDA", name="NVIDIA", price=950.0, change=4.0)
    small = MarketData(symbol="^IXIC", name="NASDAQ", price=18000.0, change=2.5)

    signals = engine.analyze([iran], [], [nvda, small])

    assert [s.kind for s in signals] == ["silent_divergence"]
    assert signals[0].related_market_symbols == ["NVDA"]
    assert signals[0].confidence == 0.7


def test_fast_growing_event_is_velocity_spike(clock):
    engine = CorrelationEngine(clock)
    fast = _event(
        "quake",
        [
            "Strong earthquake shakes Istanbul",
            "Istanbul earthquake damages buildings",
            "Earthquake in Istanbul triggers evacuations",
            "Istanbul earthquake rescue underway",
        ],
        category="politics",
        span_minutes=30,
    )
    slow = _event("iran", IRAN_TITLES, span_minutes=120)

    signals = engine.analyze([fast, slow], [], [MarketData(symbol="GC=F", change=0.1)])

    assert [s.kind for s in signals] == ["velocity_spike"]
    assert signals[0].related_event_id == "quake"
    assert fast.velocity == 4.0


def test_signals_sorted_and_deterministic(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES, is_alert=True)
    deal = _prediction("p1", "Iran nuclear deal signed by June?", 0.5)
    fed = _prediction("p2", "Fed cuts rates in March?", 0.40)
    markets = [
        MarketData(symbol="CL=F", name="Crude Oil", change=-3.5),
        MarketData(symbol="NVDA", name="NVIDIA", change=4.0),
    ]
    previous = {"p1": 0.5, "p2": 0.30}

    first = engine.analyze([iran], [deal, fed], markets, previous_prices=previous)
    second = engine.analyze([iran], [deal, fed], markets, previous_prices=previous)

    assert {s.kind for s in first} == {
        "news_prediction_convergence",
        "prediction_leads_news",
        "breaking_market_move",
        "silent_divergence",
    }
    confidences = [s.confidence for s in first]
    assert confidences == sorted(confidences, reverse=True)
    assert all(0.0 <= c <= 1.0 for c in confidences)
    assert [s.id for s in first] == [s.id for s in second]
    assert len({s.id for s in first}) == len(first)


def test_signal_ids_change_with_time(clock):
    engine = CorrelationEngine(clock)
    iran = _event("iran", IRAN_TITLES)
    deal = _prediction("p1", "Iran nuclear deal signed by June?", 0.3)

    first = engine.analyze([iran], [deal], [])
    later = engine.analyze([iran], [deal], [], now=NOW + timedelta(minutes=5))
    assert first[0].id != later[0].id


def test_summary():
    assert CorrelationEngine.get_summary([])["status"] == "MONITORING"
