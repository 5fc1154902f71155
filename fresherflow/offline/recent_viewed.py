"""Recently viewed opportunities, kept so detail pages open offline."""

import json
import logging
import time
from typing import Callable, Optional

from fresherflow.errors import StorageError
from fresherflow.opportunities.models import Opportunity
from fresherflow.storage.local_store import LocalStore

logger = logging.getLogger("fresherflow.offline.recent_viewed")

RECENT_VIEWED_KEY = "ff_recent_viewed_opportunities_v1"
MAX_ITEMS = 12


class RecentViewed:
    def __init__(self, store: LocalStore, max_items: int = MAX_ITEMS, clock: Callable[[], float] = time.time):
        self.store = store
        self.max_items = max_items
        self.clock = clock

    def _read_raw(self) -> list[dict]:
        try:
            parsed = json.loads(self.store.get_item(RECENT_VIEWED_KEY) or "[]")
        except (StorageError, ValueError):
            return []
        return [item for item in parsed if isinstance(item, dict)] if isinstance(parsed, list) else []

    def _write_raw(self, items: list[dict]) -> None:
        try:
            self.store.set_item(RECENT_VIEWED_KEY, json.dumps(items[: self.max_items]))
        except StorageError as e:
            logger.warning("Recently viewed write skipped: %s", e)

    def save(self, opportunity: Opportunity) -> None:
        """Move the opportunity to the front, dropping older copies by id or slug."""
        items = [
            item for item in self._read_raw()
            if item.get("id") != opportunity.id
            and not (opportunity.slug and item.get("slug") == opportunity.slug)
        ]
        entry = {
            "id": opportunity.id,
            "slug": opportunity.slug,
            "title": opportunity.title,
            "company": opportunity.company,
            "viewedAt": int(self.clock() * 1000),
            "data": opportunity.to_dict(),
        }
        self._write_raw([entry, *items])

    def count(self) -> int:
        return len(self._read_raw())

    def get_by_id_or_slug(self, id_or_slug: str) -> Optional[Opportunity]:
        for item in self._read_raw():
            if item.get("id") == id_or_slug or (item.get("slug") and item.get("slug") == id_or_slug):
                try:
                    return Opportunity.from_dict(item["data"])
                except (KeyError, TypeError, ValueError):
                    return None
        return None
