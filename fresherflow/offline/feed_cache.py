"""Offline snapshot of the opportunity feed, used when the API is unreachable."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fresherflow.errors import StorageError
from fresherflow.opportunities.models import Opportunity
from fresherflow.storage.local_store import LocalStore

logger = logging.getLogger("fresherflow.offline.feed_cache")

FEED_CACHE_KEY = "ff_feed_cache_v1"
MAX_ITEMS = 250


@dataclass
class FeedCacheEntry:
    cached_at: int  # epoch milliseconds
    opportunities: list[Opportunity]
    count: int

    def age_seconds(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return max(0.0, now - self.cached_at / 1000)


class FeedCache:
    """Bounded feed snapshot. Writes never raise; reads return None when unusable."""

    def __init__(self, store: LocalStore, max_items: int = MAX_ITEMS, clock: Callable[[], float] = time.time):
        self.store = store
        self.max_items = max_items
        self.clock = clock

    def _write(self, opportunities: list[Opportunity], count: int) -> None:
        payload = {
            "cachedAt": int(self.clock() * 1000),
            "opportunities": [opp.to_dict() for opp in opportunities],
            "count": count,
        }
        try:
            self.store.set_item(FEED_CACHE_KEY, json.dumps(payload))
        except StorageError as e:
            # Quota pressure or an unwritable store must not break the fetch flow
            logger.warning("Feed cache write skipped: %s", e)

    def save(self, opportunities: list[Opportunity], count: int) -> None:
        """Replace the cache with a fresh full fetch."""
        self._write(opportunities[: self.max_items], count)

    def merge_write(self, opportunities: list[Opportunity], count: int) -> None:
        """Union with the existing cache by id; the fresher record wins."""
        existing = self.read()
        by_id: dict[str, Opportunity] = {}
        if existing is not None:
            for opp in existing.opportunities:
                by_id[opp.id] = opp

        for opp in opportunities:
            current = by_id.get(opp.id)
            if current is None or opp.freshness >= current.freshness:
                by_id[opp.id] = opp

        merged = sorted(by_id.values(), key=lambda o: o.freshness, reverse=True)
        merged_count = max(count, existing.count if existing else 0, len(merged))
        self._write(merged[: self.max_items], merged_count)

    def read(self) -> Optional[FeedCacheEntry]:
        try:
            raw = self.store.get_item(FEED_CACHE_KEY)
            if not raw:
                return None
            parsed = json.loads(raw)
        except (StorageError, ValueError) as e:
            logger.warning("Feed cache unreadable: %s", e)
            return None

        if not isinstance(parsed, dict):
            return None
        items = parsed.get("opportunities")
        cached_at = parsed.get("cachedAt")
        if not isinstance(items, list) or isinstance(cached_at, bool) or not isinstance(cached_at, (int, float)):
            return None

        try:
            opportunities = [Opportunity.from_dict(item) for item in items]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Feed cache holds malformed opportunities: %s", e)
            return None

        count = parsed.get("count")
        if not isinstance(count, int) or isinstance(count, bool):
            count = len(opportunities)
        return FeedCacheEntry(cached_at=int(cached_at), opportunities=opportunities, count=count)
