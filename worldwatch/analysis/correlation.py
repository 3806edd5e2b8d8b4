"""
Correlation engine - cross-references news events with prediction and
financial markets.

Detects:
- News/prediction convergence (an active event matching a prediction market)
- Prediction-leads-news (a prediction market moving with no matching coverage)
- Breaking market moves (an instrument moving alongside an active event)
- Silent divergence (an instrument moving with no related coverage)
- Velocity spikes (an event cluster growing quickly)
"""

import hashlib
from collections import Counter
from datetime import datetime
from typing import Any, Mapping

from loguru import logger

from worldwatch.analysis.config import categories_for_symbol
from worldwatch.analysis.text import extract_keywords
from worldwatch.analysis.types import (
    ClusteredEvent,
    MarketData,
    PredictionMarket,
    Signal,
    SignalKind,
)
from worldwatch.clock import Clock, SystemClock


class CorrelationEngine:
    """
    Emits signals from one pass of events, prediction markets and quotes.

    The engine never mutates its inputs and keeps no state between calls;
    prediction price moves are measured against the `previous_prices` the
    caller hands in.
    """

    PREDICTION_SHIFT_THRESHOLD = 0.05  # yes-price points
    MARKET_MOVE_THRESHOLD = 2.0  # percent
    SILENT_MOVE_THRESHOLD = 3.0  # percent
    MIN_SHARED_KEYWORDS = 2
    ACTIVE_EVENT_MIN_ITEMS = 3
    VELOCITY_MIN_ITEMS = 3
    VELOCITY_THRESHOLD = 3.0  # items per hour

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    @staticmethod
    def _event_keywords(event: ClusteredEvent) -> frozenset[str]:
        words: set[str] = set(extract_keywords(event.representative_title))
        for item in event.member_items:
            words |= extract_keywords(item.title)
        return frozenset(words)

    def _is_active(self, event: ClusteredEvent) -> bool:
        return event.is_alert or event.item_count >= self.ACTIVE_EVENT_MIN_ITEMS

    @staticmethod
    def _signal_id(kind: str, created_at: datetime, *parts: Any) -> str:
        packed = "|".join([kind, created_at.isoformat(), *(str(p or "") for p in parts)])
        return hashlib.md5(packed.encode()).hexdigest()[:16]

    def _make_signal(
        self,
        kind: SignalKind,
        title: str,
        description: str,
        confidence: float,
        now: datetime,
        event: ClusteredEvent | None = None,
        symbols: list[str] | None = None,
        prediction_ids: list[str] | None = None,
    ) -> Signal:
        symbols = symbols or []
        prediction_ids = prediction_ids or []
        event_id = event.id if event else None
        return Signal(
            id=self._signal_id(kind, now, event_id, ",".join(symbols), ",".join(prediction_ids)),
            kind=kind,
            title=title,
            description=description,
            related_event_id=event_id,
            related_market_symbols=symbols,
            related_prediction_ids=prediction_ids,
            confidence=round(min(max(confidence, 0.0), 1.0), 2),
            created_at=now,
        )

    def _best_event_for(
        self,
        prediction: PredictionMarket,
        events: list[ClusteredEvent],
        event_keywords: list[frozenset[str]],
    ) -> tuple[ClusteredEvent | None, int]:
        pred_keywords = extract_keywords(prediction.title)
        best: ClusteredEvent | None = None
        best_shared = 0
        for event, keywords in zip(events, event_keywords):
            shared = len(pred_keywords & keywords)
            if shared >= self.MIN_SHARED_KEYWORDS and shared > best_shared:
                best, best_shared = event, shared
        return best, best_shared

    def _prediction_signals(
        self,
        events: list[ClusteredEvent],
        predictions: list[PredictionMarket],
        previous_prices: Mapping[str, float],
        now: datetime,
    ) -> list[Signal]:
        signals: list[Signal] = []
        event_keywords = [self._event_keywords(e) for e in events]

        for prediction in predictions:
            previous = previous_prices.get(prediction.id)
            shift = prediction.yes_price - previous if previous is not None else 0.0
            moved = abs(shift) >= self.PREDICTION_SHIFT_THRESHOLD

            event, shared = self._best_event_for(prediction, events, event_keywords)

            if event is not None and (moved or self._is_active(event)):
                confidence = (
                    0.4
                    + 0.1 * shared
                    + 0.05 * min(event.item_count, 5)
                    + (0.2 if moved else 0.0)
                    + (0.1 if event.is_alert else 0.0)
                )
                signals.append(
                    self._make_signal(
                        "news_prediction_convergence",
                        title=f"News and markets converge: {prediction.title}",
                        description=(
                            f"'{event.representative_title}' ({event.item_count} reports) "
                            f"matches prediction at {prediction.yes_price:.0%}"
                            + (f", moved {shift * 100:+.1f} pts" if moved else "")
                        ),
                        confidence=min(confidence, 0.95),
                        now=now,
                        event=event,
                        prediction_ids=[prediction.id],
                    )
                )
            elif event is None and moved:
                signals.append(
                    self._make_signal(
                        "prediction_leads_news",
                        title=f"Prediction market moving ahead of news: {prediction.title}",
                        description=(
                            f"Yes price moved {shift * 100:+.1f} pts to "
                            f"{prediction.yes_price:.0%} with no matching coverage"
                        ),
                        confidence=min(0.4 + abs(shift) * 3, 0.9),
                        now=now,
                        prediction_ids=[prediction.id],
                    )
                )

        return signals

    def _market_signals(
        self,
        events: list[ClusteredEvent],
        markets: list[MarketData],
        now: datetime,
    ) -> list[Signal]:
        signals: list[Signal] = []

        for market in markets:
            move = abs(market.change)
            if move < self.MARKET_MOVE_THRESHOLD:
                continue

            related_categories = categories_for_symbol(market.symbol)
            if not related_categories:
                continue

            related = [
                e for e in events if related_categories.intersection(e.category_mix)
            ]
            active = [e for e in related if self._is_active(e)]
            label = market.name or market.symbol

            if active:
                # Prefer alerts, then the largest cluster; first wins ties
                event = max(active, key=lambda e: (e.is_alert, e.item_count))
                signals.append(
                    self._make_signal(
                        "breaking_market_move",
                        title=f"{label} {market.change:+.2f}% alongside breaking coverage",
                        description=f"Related event: '{event.representative_title}'",
                        confidence=min(
                            0.5 + move / 20 + (0.15 if event.is_alert else 0.0), 0.95
                        ),
                        now=now,
                        event=event,
                        symbols=[market.symbol],
                    )
                )
            elif not related and move >= self.SILENT_MOVE_THRESHOLD:
                signals.append(
                    self._make_signal(
                        "silent_divergence",
                        title=f"{label} {market.change:+.2f}% with no related coverage",
                        description=(
                            f"No events in {', '.join(sorted(related_categories))}"
                        ),
                        confidence=min(0.3 + move / 10, 0.85),
                        now=now,
                        symbols=[market.symbol],
                    )
                )

        return signals

    def _velocity_signals(
        self, events: list[ClusteredEvent], now: datetime
    ) -> list[Signal]:
        signals: list[Signal] = []
        for event in events:
            if event.item_count < self.VELOCITY_MIN_ITEMS:
                continue
            velocity = event.velocity
            if velocity < self.VELOCITY_THRESHOLD:
                continue
            signals.append(
                self._make_signal(
                    "velocity_spike",
                    title=f"Fast-moving story: {event.representative_title}",
                    description=(
                        f"{event.item_count} reports from {event.source_count} sources, "
                        f"{velocity:.1f}/hour"
                    ),
                    confidence=min(0.3 + velocity / 20 + 0.05 * event.source_count, 0.9),
                    now=now,
                    event=event,
                )
            )
        return signals

    def analyze(
        self,
        events: list[ClusteredEvent],
        predictions: list[PredictionMarket],
        markets: list[MarketData],
        previous_prices: Mapping[str, float] | None = None,
        now: datetime | None = None,
    ) -> list[Signal]:
        """
        Analyze one pass of data for correlations.

        Args:
            events: Clustered events from the current pass
            predictions: Current prediction market quotes
            markets: Current instrument quotes
            previous_prices: Prediction id -> yes price from the previous pass
            now: Creation time stamped on every signal

        Returns:
            Signals sorted by confidence, highest first; empty when there is
            nothing to correlate
        """
        if not events or (not predictions and not markets):
            return []

        now = now or self.clock.now()
        previous_prices = previous_prices or {}

        signals = (
            self._prediction_signals(events, predictions, previous_prices, now)
            + self._market_signals(events, markets, now)
            + self._velocity_signals(events, now)
        )
        signals.sort(key=lambda s: s.confidence, reverse=True)

        by_kind = Counter(s.kind for s in signals)
        logger.info(
            f"Correlation: {len(signals)} signals from {len(events)} events, "
            f"{len(predictions)} predictions, {len(markets)} markets {dict(by_kind)}"
        )
        return signals

    @staticmethod
    def get_summary(signals: list[Signal]) -> dict[str, Any]:
        if not signals:
            return {"total_signals": 0, "status": "MONITORING", "by_kind": {}}
        return {
            "total_signals": len(signals),
            "status": f"{len(signals)} SIGNALS",
            "by_kind": dict(Counter(s.kind for s in signals)),
            "top": [s.title for s in signals[:3]],
        }
