"""
Domain types for the signal-intelligence engine, as Pydantic models.
"""

import math
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DeviationLevel = Literal["normal", "elevated", "high"]
HotspotLevel = Literal["low", "elevated", "high"]
FeedState = Literal["ok", "error"]
SignalKind = Literal[
    "news_prediction_convergence",
    "prediction_leads_news",
    "breaking_market_move",
    "silent_divergence",
    "velocity_spike",
]


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Baseline(BaseModel):
    """Rolling mean/variance of a named metric (Welford accumulator)."""

    model_config = ConfigDict(frozen=True)

    key: str
    mean: float = 0.0
    m2: float = 0.0
    sample_count: int = Field(default=0, ge=0)
    last_updated: datetime | None = None

    @property
    def variance(self) -> float:
        if self.sample_count < 2:
            return 0.0
        return max(self.m2, 0.0) / (self.sample_count - 1)

    @property
    def stddev(self) -> float:
        return math.sqrt(self.variance)


class DeviationResult(BaseModel):
    """Distance of an observation from its baseline."""

    model_config = ConfigDict(frozen=True)

    z_score: float
    percent_change: float
    level: DeviationLevel


class NewsItem(BaseModel):
    """A normalized news item handed over by the ingestion layer."""

    model_config = ConfigDict(frozen=True)

    title: str
    source: str = ""
    source_url: str = ""
    category: str = ""
    published_at: datetime
    is_alert: bool = False
    raw_text: str = ""

    @field_validator("published_at")
    @classmethod
    def _published_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ClusteredEvent(BaseModel):
    """A group of news items judged to describe the same occurrence."""

    id: str
    member_items: list[NewsItem] = Field(default_factory=list)
    representative_title: str
    first_seen: datetime
    last_seen: datetime
    category_mix: dict[str, int] = Field(default_factory=dict)

    @property
    def item_count(self) -> int:
        return len(self.member_items)

    @property
    def source_count(self) -> int:
        return len({item.source or item.source_url for item in self.member_items})

    @property
    def is_alert(self) -> bool:
        return any(item.is_alert for item in self.member_items)

    @property
    def velocity(self) -> float:
        """Members per hour, over a span of at least one hour."""
        span_hours = (self.last_seen - self.first_seen).total_seconds() / 3600
        return self.item_count / max(span_hours, 1.0)


class Hotspot(BaseModel):
    """A named location whose activity level is derived from matching news."""

    model_config = ConfigDict(frozen=True)

    name: str
    lat: float
    lon: float
    keywords: tuple[str, ...]
    level: HotspotLevel = "low"
    status: str = "Monitoring"
    has_breaking: bool = False
    matched_count: int = 0
    score: int = 0


class HotspotActivity(BaseModel):
    """Result of one scoring pass for one hotspot."""

    model_config = ConfigDict(frozen=True)

    name: str
    level: HotspotLevel
    status: str
    has_breaking: bool = False
    matched_count: int = 0
    score: int = 0


class PredictionMarket(BaseModel):
    """A binary prediction market quote."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    yes_price: float = Field(ge=0.0, le=1.0)
    no_price: float | None = Field(default=None, validate_default=True)
    volume_24h: float = 0.0
    liquidity: float = 0.0

    @field_validator("no_price")
    @classmethod
    def _derive_no_price(cls, value: float | None, info: ValidationInfo) -> float | None:
        if value is None and "yes_price" in info.data:
            return 1.0 - info.data["yes_price"]
        return value


class MarketData(BaseModel):
    """Latest quote for a financial instrument; change is in percent."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str = ""
    price: float | None = None
    change: float = 0.0


class Earthquake(BaseModel):
    """Seismic event as delivered by the ingestion layer."""

    model_config = ConfigDict(frozen=True)

    id: str
    magnitude: float
    place: str = ""
    lat: float
    lon: float
    depth_km: float = 0.0
    occurred_at: datetime


class Signal(BaseModel):
    """A discrete correlation finding."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: SignalKind
    title: str
    description: str = ""
    related_event_id: str | None = None
    related_market_symbols: list[str] = Field(default_factory=list)
    related_prediction_ids: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    created_at: datetime


class PredictionSnapshot(BaseModel):
    """Prediction quote as captured in a snapshot."""

    model_config = ConfigDict(frozen=True)

    title: str
    yes_price: float


class Snapshot(BaseModel):
    """Point-in-time capture of derived state, identified by its timestamp."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    events: list[ClusteredEvent] = Field(default_factory=list)
    market_prices: dict[str, float] = Field(default_factory=dict)
    predictions: list[PredictionSnapshot] = Field(default_factory=list)
    hotspot_levels: dict[str, HotspotLevel] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class FeedStatus(BaseModel):
    """Health of one ingestion source for the status panel."""

    name: str
    status: FeedState
    item_count: int = 0
    error_message: str | None = None
    updated_at: datetime | None = None


class CategoryReport(BaseModel):
    """Items and deviation for one news category."""

    category: str
    items: list[NewsItem] = Field(default_factory=list)
    baseline: Baseline | None = None
    deviation: DeviationResult | None = None
    status: FeedStatus

