"""Feed loading with offline fallback, plus mutations that queue when offline."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Callable, Optional

from fresherflow.errors import ApiError, ProfileIncompleteError, TransientApiError
from fresherflow.offline.action_queue import OfflineActionQueue
from fresherflow.offline.feed_cache import FeedCache
from fresherflow.offline.sync_status import SyncStatus
from fresherflow.opportunities.models import Opportunity
from fresherflow.utils.text_processing import normalize_opportunity_type

logger = logging.getLogger("fresherflow.offline.feed")

CLOSING_SOON_WINDOW = timedelta(days=3)


@dataclass
class FeedFilters:
    type: Optional[str] = None
    city: Optional[str] = None
    closing_soon: bool = False
    saved_only: bool = False
    search: str = ""
    min_salary: Optional[int] = None
    max_salary: Optional[int] = None

    @property
    def narrows_catalog(self) -> bool:
        return bool(self.type or self.city)


@dataclass
class FeedResult:
    opportunities: list[Opportunity]
    count: int
    from_cache: bool = False
    cached_at: Optional[int] = None  # epoch milliseconds, set for cache hits


def apply_local_filters(
    opportunities: list[Opportunity],
    filters: FeedFilters,
    now: Optional[datetime] = None,
) -> list[Opportunity]:
    """Client-side search/filter over an already loaded (or cached) feed."""
    now = now or datetime.now(timezone.utc)
    wanted_type = normalize_opportunity_type(filters.type)
    search = filters.search.strip().lower()
    city = (filters.city or "").strip().lower()

    def keep(opp: Opportunity) -> bool:
        if wanted_type and opp.type != wanted_type:
            return False
        if search and search not in opp.title.lower() and search not in opp.company.lower():
            return False
        if city and not any(city in loc.lower() for loc in opp.locations):
            return False
        if filters.closing_soon:
            if opp.expires_at is None or not (now <= opp.expires_at <= now + CLOSING_SOON_WINDOW):
                return False
        if filters.min_salary:
            if not ((opp.salary_max and opp.salary_max >= filters.min_salary)
                    or (opp.salary_min and opp.salary_min >= filters.min_salary)):
                return False
        if filters.max_salary:
            if not (opp.salary_min and opp.salary_min <= filters.max_salary):
                return False
        return True

    return [opp for opp in opportunities if keep(opp)]


class FeedLoader:
    def __init__(
        self,
        api,
        cache: FeedCache,
        sync_status: SyncStatus,
        queue: Optional[OfflineActionQueue] = None,
        owner_id: Optional[str] = None,
        is_online: Optional[Callable[[], bool]] = None,
    ):
        self.api = api
        self.cache = cache
        self.sync_status = sync_status
        self.queue = queue
        self.owner_id = owner_id
        self.is_online = is_online or (lambda: True)
        self._catalog_hydrated = False

    def load(self, filters: Optional[FeedFilters] = None) -> FeedResult:
        """Fetch the feed; fall back to the offline cache when the API fails.

        Raises ProfileIncompleteError untouched (the cache must not hide the
        gate), and re-raises other API errors when there is no cache to use.
        """
        filters = filters or FeedFilters()
        try:
            if filters.saved_only:
                opportunities, count = self.api.list_saved()
                if filters.type:
                    wanted = normalize_opportunity_type(filters.type)
                    opportunities = [o for o in opportunities if o.type == wanted]
            else:
                opportunities, count = self.api.list_opportunities(
                    type=filters.type, city=filters.city, closing_soon=filters.closing_soon,
                )
        except ProfileIncompleteError:
            raise
        except ApiError as e:
            if filters.saved_only:
                raise
            cached = self.cache.read()
            if cached is None:
                raise
            logger.warning("Feed fetch failed (%s); serving %d cached opportunities", e, len(cached.opportunities))
            return FeedResult(
                opportunities=cached.opportunities,
                count=cached.count or len(cached.opportunities),
                from_cache=True,
                cached_at=cached.cached_at,
            )

        if not filters.saved_only:
            self.cache.save(opportunities, count or len(opportunities))
            self.sync_status.mark_feed_synced_now()
            if filters.narrows_catalog and not self._catalog_hydrated and self.is_online():
                self._hydrate_catalog()

        return FeedResult(opportunities=opportunities, count=count or len(opportunities))

    def _hydrate_catalog(self) -> None:
        # Merge the unfiltered feed so offline search works beyond the current view
        try:
            full, full_count = self.api.list_opportunities()
        except ApiError as e:
            logger.warning("Catalog hydration failed, keeping filtered snapshot: %s", e)
            return
        self.cache.merge_write(full, full_count or len(full))
        self._catalog_hydrated = True

    # Mutations

    def _apply_or_queue(self, call: Callable[[], object], enqueue: Callable[[], None], what: str):
        """Run ``call`` now, or queue the mutation when offline or the API is flaky.

        Returns ``(True, result)`` when applied, ``(False, None)`` when queued.
        """
        if self.is_online():
            try:
                return True, call()
            except TransientApiError as e:
                logger.info("%s failed (%s), queueing for later", what, e)
        if self.queue is None:
            raise TransientApiError(f"Offline and no action queue configured for {what}")
        enqueue()
        logger.info("Queued %s for replay when back online", what)
        return False, None

    def toggle_save(self, opportunity_id: str) -> Optional[bool]:
        """Return the new saved state, or None when the toggle was queued."""
        _, saved = self._apply_or_queue(
            partial(self.api.toggle_saved, opportunity_id),
            partial(self.queue.enqueue_save_toggle, opportunity_id, self.owner_id) if self.queue else None,
            f"save toggle on {opportunity_id}",
        )
        return saved

    def track_action(self, opportunity_id: str, action_type: str) -> bool:
        """Return True when applied now, False when queued."""
        applied, _ = self._apply_or_queue(
            partial(self.api.track_action, opportunity_id, action_type),
            partial(self.queue.enqueue_action_track, opportunity_id, action_type, self.owner_id) if self.queue else None,
            f"{action_type} on {opportunity_id}",
        )
        return applied

    def remove_action(self, opportunity_id: str) -> bool:
        applied, _ = self._apply_or_queue(
            partial(self.api.remove_action, opportunity_id),
            partial(self.queue.enqueue_action_remove, opportunity_id, self.owner_id) if self.queue else None,
            f"action removal on {opportunity_id}",
        )
        return applied
