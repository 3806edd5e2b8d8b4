"""
Keyword monitors - user-defined watch lists matched against the news stream.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from worldwatch.analysis.text import contained_keywords
from worldwatch.analysis.types import NewsItem


class Monitor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    keywords: tuple[str, ...] = Field(min_length=1)

    @field_validator("keywords")
    @classmethod
    def _clean_keywords(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(dict.fromkeys(k.strip().lower() for k in value if k.strip()))
        if not cleaned:
            raise ValueError("a monitor needs at least one non-blank keyword")
        return cleaned


class MonitorMatch(BaseModel):
    """One news item that hit a monitor, with the keywords it hit on."""

    model_config = ConfigDict(frozen=True)

    monitor_id: str
    item: NewsItem
    keywords: tuple[str, ...]


def match_monitors(
    monitors: list[Monitor] | tuple[Monitor, ...], items: list[NewsItem]
) -> dict[str, list[MonitorMatch]]:
    """
    Match every monitor against item titles (case-insensitive substrings).

    Returns:
        Mapping of monitor id to its matches, newest item first. Every monitor
        has an entry, empty when nothing matched.
    """
    newest_first = sorted(items, key=lambda i: i.published_at, reverse=True)
    results: dict[str, list[MonitorMatch]] = {}
    for monitor in monitors:
        matches = []
        for item in newest_first:
            hits = contained_keywords(monitor.keywords, item.title)
            if hits:
                matches.append(
                    MonitorMatch(monitor_id=monitor.id, item=item, keywords=tuple(hits))
                )
        results[monitor.id] = matches
    return results
