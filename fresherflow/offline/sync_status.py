"""Last successful sync timestamps for the feed and detail views."""

import logging
import math
import time
from datetime import datetime
from typing import Callable, Optional

from fresherflow.errors import StorageError
from fresherflow.storage.local_store import LocalStore

logger = logging.getLogger("fresherflow.offline.sync_status")

FEED_SYNC_KEY = "ff_last_feed_sync_at"
DETAIL_SYNC_KEY = "ff_last_detail_sync_at"


class SyncStatus:
    def __init__(self, store: LocalStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def _mark(self, key: str) -> None:
        try:
            self.store.set_item(key, str(int(self.clock() * 1000)))
        except StorageError as e:
            logger.warning("Could not record sync time for %s: %s", key, e)

    def _read(self, key: str) -> Optional[int]:
        try:
            raw = self.store.get_item(key)
        except StorageError:
            return None
        if not raw:
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        return int(value) if math.isfinite(value) and value > 0 else None

    def mark_feed_synced_now(self) -> None:
        self._mark(FEED_SYNC_KEY)

    def mark_detail_synced_now(self) -> None:
        self._mark(DETAIL_SYNC_KEY)

    def get_feed_last_sync_at(self) -> Optional[int]:
        return self._read(FEED_SYNC_KEY)

    def get_detail_last_sync_at(self) -> Optional[int]:
        return self._read(DETAIL_SYNC_KEY)


def format_sync_time(timestamp_ms: Optional[int]) -> str:
    if not timestamp_ms:
        return "Never"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")
