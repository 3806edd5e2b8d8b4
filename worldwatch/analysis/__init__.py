"""
Signal analysis: baselines, clustering, hotspot scoring and correlation.
"""

from worldwatch.analysis.types import (
    Baseline,
    CategoryReport,
    ClusteredEvent,
    DeviationResult,
    Earthquake,
    FeedStatus,
    Hotspot,
    HotspotActivity,
    MarketData,
    NewsItem,
    PredictionMarket,
    PredictionSnapshot,
    Signal,
    Snapshot,
)
from worldwatch.analysis.baseline import deviation, fold
from worldwatch.analysis.clustering import NewsClusterer
from worldwatch.analysis.correlation import CorrelationEngine
from worldwatch.analysis.hotspots import HotspotBoard, HotspotScorer
from worldwatch.analysis.monitors import Monitor, MonitorMatch, match_monitors
from worldwatch.analysis.config import (
    CATEGORY_SYMBOLS,
    INTEL_HOTSPOTS,
    MARKET_SYMBOLS,
    NEWS_CATEGORIES,
)

__all__ = [
    # Types
    "Baseline",
    "CategoryReport",
    "ClusteredEvent",
    "DeviationResult",
    "Earthquake",
    "FeedStatus",
    "Hotspot",
    "HotspotActivity",
    "MarketData",
    "NewsItem",
    "PredictionMarket",
    "PredictionSnapshot",
    "Signal",
    "Snapshot",
    # Analysis
    "deviation",
    "fold",
    "NewsClusterer",
    "CorrelationEngine",
    "HotspotBoard",
    "HotspotScorer",
    "Monitor",
    "MonitorMatch",
    "match_monitors",
    # Config
    "CATEGORY_SYMBOLS",
    "INTEL_HOTSPOTS",
    "MARKET_SYMBOLS",
    "NEWS_CATEGORIES",
]
