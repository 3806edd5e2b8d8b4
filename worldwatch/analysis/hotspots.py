"""
Hotspot scoring - weighted keyword activity per monitored location.

Scoring is a pure function of (hotspots, items, now). The resulting levels are
published to a HotspotBoard as one complete replacement, so a reader always
sees either the previous pass or the new one.
"""

from datetime import datetime

from loguru import logger

from worldwatch.analysis.text import contained_keywords
from worldwatch.analysis.types import Hotspot, HotspotActivity, HotspotLevel, NewsItem
from worldwatch.clock import Clock, SystemClock

MATCH_POINTS = 2
BREAKING_POINTS = 5
# (max hours since publication, bonus points), checked in order
RECENCY_BONUSES: tuple[tuple[float, int], ...] = ((1, 3), (6, 2), (24, 1))

HIGH_MATCH_COUNT = 4
HIGH_SCORE = 10
ELEVATED_MATCH_COUNT = 2
ELEVATED_SCORE = 4

STATUS_BREAKING = "BREAKING NEWS"
STATUS_HIGH = "High activity"
STATUS_ELEVATED = "Elevated activity"
STATUS_MENTIONED = "Recent mentions"
STATUS_IDLE = "Monitoring"

VALID_LEVELS: frozenset[str] = frozenset({"low", "elevated", "high"})


def matching_keywords(hotspot: Hotspot, title: str) -> list[str]:
    """Distinct hotspot keywords contained in a title (case-insensitive)."""
    return contained_keywords(hotspot.keywords, title)


def recency_bonus(published_at: datetime, now: datetime) -> int:
    hours_ago = (now - published_at).total_seconds() / 3600
    for max_hours, bonus in RECENCY_BONUSES:
        if hours_ago < max_hours:
            return bonus
    return 0


def classify(
    matched_count: int, score: int, has_breaking: bool
) -> tuple[HotspotLevel, str]:
    if has_breaking or matched_count >= HIGH_MATCH_COUNT or score >= HIGH_SCORE:
        return "high", STATUS_BREAKING if has_breaking else STATUS_HIGH
    elif matched_count >= ELEVATED_MATCH_COUNT or score >= ELEVATED_SCORE:
        return "elevated", STATUS_ELEVATED
    elif matched_count >= 1:
        return "low", STATUS_MENTIONED
    return "low", STATUS_IDLE


class HotspotScorer:
    """Computes a fresh activity level for every hotspot from a set of items."""

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    def score_one(
        self, hotspot: Hotspot, items: list[NewsItem], now: datetime
    ) -> HotspotActivity:
        score = 0
        matched_count = 0
        has_breaking = False

        for item in items:
            matches = matching_keywords(hotspot, item.title)
            if not matches:
                continue

            matched_count += 1
            score += MATCH_POINTS * len(matches)

            if item.is_alert:
                score += BREAKING_POINTS
                has_breaking = True

            score += recency_bonus(item.published_at, now)

        level, status = classify(matched_count, score, has_breaking)
        return HotspotActivity(
            name=hotspot.name,
            level=level,
            status=status,
            has_breaking=has_breaking,
            matched_count=matched_count,
            score=score,
        )

    def score(
        self,
        hotspots: list[Hotspot] | tuple[Hotspot, ...],
        items: list[NewsItem],
        now: datetime | None = None,
    ) -> dict[str, HotspotActivity]:
        """
        Score every hotspot against the given items.

        Returns:
            Mapping of hotspot name to its activity for this pass
        """
        now = now or self.clock.now()
        activity = {spot.name: self.score_one(spot, items, now) for spot in hotspots}

        raised = sum(1 for a in activity.values() if a.level != "low")
        logger.info(
            f"[Hotspot] Scored {len(activity)} hotspots against {len(items)} items, "
            f"{raised} above low"
        )
        return activity


class HotspotBoard:
    """
    Holds the current hotspot set.

    Every mutation builds a complete new tuple and swaps it in with a single
    assignment; readers holding the old tuple keep a consistent view.
    """

    def __init__(self, hotspots: list[Hotspot]):
        names = [spot.name for spot in hotspots]
        if len(names) != len(set(names)):
            raise ValueError("Hotspot names must be unique")
        self._hotspots: tuple[Hotspot, ...] = tuple(hotspots)

    @property
    def hotspots(self) -> tuple[Hotspot, ...]:
        return self._hotspots

    @property
    def names(self) -> set[str]:
        return {spot.name for spot in self._hotspots}

    def get(self, name: str) -> Hotspot | None:
        for spot in self._hotspots:
            if spot.name == name:
                return spot
        return None

    def publish(self, activity: dict[str, HotspotActivity]) -> tuple[Hotspot, ...]:
        """Replace every hotspot's level/status with the given pass results."""
        updated = []
        for spot in self._hotspots:
            result = activity.get(spot.name)
            if result is None:
                result = HotspotActivity(name=spot.name, level="low", status=STATUS_IDLE)
            updated.append(
                spot.model_copy(
                    update={
                        "level": result.level,
                        "status": result.status,
                        "has_breaking": result.has_breaking,
                        "matched_count": result.matched_count,
                        "score": result.score,
                    }
                )
            )
        self._hotspots = tuple(updated)
        return self._hotspots

    def levels(self) -> dict[str, HotspotLevel]:
        return {spot.name: spot.level for spot in self._hotspots}

    def restore_levels(self, levels: dict[str, str]) -> tuple[Hotspot, ...]:
        """Apply levels captured in a snapshot; unknown names are ignored."""
        unknown = set(levels) - self.names
        if unknown:
            logger.warning(f"[Hotspot] Ignoring unknown hotspots in snapshot: {sorted(unknown)}")

        updated = []
        for spot in self._hotspots:
            level = levels.get(spot.name)
            if level in VALID_LEVELS:
                spot = spot.model_copy(update={"level": level})
            updated.append(spot)
        self._hotspots = tuple(updated)
        return self._hotspots

    def related_items(
        self, name: str, items: list[NewsItem], limit: int = 5
    ) -> list[NewsItem]:
        """Items whose titles mention the hotspot, for the detail popup."""
        spot = self.get(name)
        if spot is None:
            return []
        return [item for item in items if matching_keywords(spot, item.title)][:limit]
