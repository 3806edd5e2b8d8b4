"""
Messages exchanged with the orchestrator.

Commands go in through `DashboardOrchestrator.commands`; notifications for the
presentation layer come out through `DashboardOrchestrator.outbox`.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from worldwatch.analysis.monitors import Monitor


class CommandType(str, Enum):
    REFRESH_NEWS = "refresh_news"
    REFRESH_MARKETS = "refresh_markets"
    REFRESH_PREDICTIONS = "refresh_predictions"
    REFRESH_SEISMIC = "refresh_seismic"
    REFRESH_ALL = "refresh_all"
    SAVE_SNAPSHOT = "save_snapshot"
    ENTER_PLAYBACK = "enter_playback"
    EXIT_PLAYBACK = "exit_playback"
    SET_MONITORS = "set_monitors"
    STOP = "stop"


# Commands that touch live data; ignored while in playback
LIVE_COMMANDS: frozenset[CommandType] = frozenset(
    {
        CommandType.REFRESH_NEWS,
        CommandType.REFRESH_MARKETS,
        CommandType.REFRESH_PREDICTIONS,
        CommandType.REFRESH_SEISMIC,
        CommandType.REFRESH_ALL,
        CommandType.SAVE_SNAPSHOT,
    }
)


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: CommandType
    timestamp: datetime | None = None  # for ENTER_PLAYBACK
    monitors: tuple[Monitor, ...] = ()  # for SET_MONITORS


NotificationKind = Literal[
    "category",
    "hotspots",
    "markets",
    "predictions",
    "seismic",
    "signals",
    "snapshot",
    "playback",
    "monitors",
]


class Notification(BaseModel):
    """Something the presentation layer should re-render."""

    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    created_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
