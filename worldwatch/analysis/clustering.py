"""
News clustering - groups items that describe the same occurrence into events.
"""

import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field

from loguru import logger

from worldwatch.analysis.text import extract_keywords, jaccard, keyword_hash
from worldwatch.analysis.types import ClusteredEvent, NewsItem


@dataclass
class _Group:
    seed_keywords: frozenset[str]
    items: list[NewsItem] = field(default_factory=list)


class NewsClusterer:
    """
    Groups news items by title similarity.

    Each item is compared against the seed (first) item of existing groups
    that share at least one keyword with it, found through an inverted
    keyword index, and joins the first group in creation order whose Jaccard
    similarity reaches the threshold. Otherwise it starts a new group.
    Nothing is carried over between calls.
    """

    DEFAULT_SIMILARITY_THRESHOLD = 0.5

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        self.similarity_threshold = similarity_threshold

    def _find_group(
        self,
        keywords: frozenset[str],
        groups: list[_Group],
        index: dict[str, list[int]],
    ) -> int | None:
        candidates: set[int] = set()
        for word in keywords:
            candidates.update(index.get(word, ()))

        for group_idx in sorted(candidates):
            sim = jaccard(keywords, groups[group_idx].seed_keywords)
            if sim >= self.similarity_threshold:
                return group_idx
        return None

    def cluster(self, items: list[NewsItem]) -> list[ClusteredEvent]:
        """
        Cluster items into events.

        Args:
            items: Normalized news items, in the order they should be assigned

        Returns:
            Events in creation order; every item belongs to exactly one event
        """
        if not items:
            return []

        start_time = time.time()

        groups: list[_Group] = []
        # keyword -> indexes of groups whose seed contains it
        index: dict[str, list[int]] = defaultdict(list)

        for item in items:
            keywords = extract_keywords(item.title)
            group_idx = self._find_group(keywords, groups, index) if keywords else None

            if group_idx is None:
                groups.append(_Group(seed_keywords=keywords, items=[item]))
                for word in keywords:
                    index[word].append(len(groups) - 1)
            else:
                groups[group_idx].items.append(item)

        events = self._build_events(groups)

        elapsed = time.time() - start_time
        logger.info(
            f"[Cluster] {len(items)} items -> {len(events)} events in {elapsed:.3f}s"
        )
        return events

    @staticmethod
    def _build_events(groups: list[_Group]) -> list[ClusteredEvent]:
        events: list[ClusteredEvent] = []
        used_ids: set[str] = set()

        for group in groups:
            seed = group.items[0]
            event_id = keyword_hash(seed.title) if group.seed_keywords else "untitled"
            suffix = 1
            base_id = event_id
            while event_id in used_ids:
                suffix += 1
                event_id = f"{base_id}-{suffix}"
            used_ids.add(event_id)

            published = [item.published_at for item in group.items]
            category_mix = Counter(item.category for item in group.items if item.category)

            events.append(
                ClusteredEvent(
                    id=event_id,
                    member_items=list(group.items),
                    representative_title=seed.title,
                    first_seen=min(published),
                    last_seen=max(published),
                    category_mix=dict(category_mix),
                )
            )

        return events
