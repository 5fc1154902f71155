"""Tests for feed loading, offline fallback and queued mutations."""

import json
from datetime import datetime, timedelta, timezone

import pytest
import requests

from fresherflow.api.client import FresherFlowClient
from fresherflow.errors import ApiError, ProfileIncompleteError, TransientApiError
from fresherflow.offline.action_queue import OfflineActionQueue, OfflineActionType
from fresherflow.offline.feed import FeedFilters, FeedLoader, apply_local_filters
from fresherflow.offline.feed_cache import FeedCache
from fresherflow.offline.sync_status import SyncStatus
from fresherflow.opportunities.models import Opportunity, OpportunityType
from fresherflow.storage.local_store import MemoryLocalStore

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_opportunity(n: int, **kwargs) -> Opportunity:
    defaults = dict(
        id=f"opp-{n}",
        title=f"Engineer {n}",
        company="Acme",
        posted_at=NOW - timedelta(hours=n),
        locations=["Bangalore"],
    )
    defaults.update(kwargs)
    return Opportunity(**defaults)


class FakeApi:
    def __init__(self, feed=None, error=None):
        self.feed = feed if feed is not None else [make_opportunity(1), make_opportunity(2)]
        self.error = error
        self.list_calls = []
        self.toggles = []

    def list_opportunities(self, type=None, city=None, closing_soon=False):
        self.list_calls.append((type, city, closing_soon))
        if self.error is not None:
            raise self.error
        items = [o for o in self.feed if not type or o.type == type]
        return items, len(items)

    def list_saved(self):
        if self.error is not None:
            raise self.error
        saved = [o for o in self.feed if o.is_saved]
        return saved, len(saved)

    def toggle_saved(self, opportunity_id):
        if self.error is not None:
            raise self.error
        self.toggles.append(opportunity_id)
        return True

    def track_action(self, opportunity_id, action_type):
        if self.error is not None:
            raise self.error
        return {}

    def remove_action(self, opportunity_id):
        if self.error is not None:
            raise self.error
        return {}


class StubSession:
    """Answers every request with the same JSON body."""

    def __init__(self, body):
        self.body = body

    def request(self, method, url, timeout=None, **kwargs):
        response = requests.Response()
        response.status_code = 200
        response._content = json.dumps(self.body).encode()
        return response


def make_loader(api, store=None, online=True, with_queue=True):
    store = store or MemoryLocalStore()
    queue = OfflineActionQueue(store, api=api, is_online=lambda: online) if with_queue else None
    loader = FeedLoader(
        api, FeedCache(store), SyncStatus(store),
        queue=queue, owner_id="u1", is_online=lambda: online,
    )
    return loader, store


class TestLoad:
    def test_success_writes_cache_and_sync_time(self):
        api = FakeApi()
        loader, store = make_loader(api)
        result = loader.load()
        assert not result.from_cache
        assert result.count == 2
        assert [o.id for o in loader.cache.read().opportunities] == ["opp-1", "opp-2"]
        assert loader.sync_status.get_feed_last_sync_at() is not None

    def test_falls_back_to_cache(self):
        api = FakeApi()
        loader, store = make_loader(api)
        loader.load()

        api.error = TransientApiError("HTTP 503", status_code=503)
        result = loader.load()
        assert result.from_cache
        assert result.cached_at is not None
        assert [o.id for o in result.opportunities] == ["opp-1", "opp-2"]

    def test_error_without_cache_propagates(self):
        loader, _ = make_loader(FakeApi(error=TransientApiError("down")))
        with pytest.raises(TransientApiError):
            loader.load()

    def test_profile_gate_not_hidden_by_cache(self):
        api = FakeApi()
        loader, _ = make_loader(api)
        loader.load()
        api.error = ProfileIncompleteError("Complete your profile", completion_percentage=60)
        with pytest.raises(ProfileIncompleteError) as exc:
            loader.load()
        assert exc.value.completion_percentage == 60

    def test_narrowing_filter_hydrates_catalog_once(self):
        api = FakeApi(feed=[
            make_opportunity(1, type=OpportunityType.WALKIN),
            make_opportunity(2),
            make_opportunity(3),
        ])
        loader, _ = make_loader(api)
        loader.load(FeedFilters(type="WALKIN"))
        assert api.list_calls == [("WALKIN", None, False), (None, None, False)]
        assert len(loader.cache.read().opportunities) == 3

        loader.load(FeedFilters(type="WALKIN"))
        assert len(api.list_calls) == 3

    def test_saved_only_skips_cache(self):
        api = FakeApi(feed=[make_opportunity(1, is_saved=True), make_opportunity(2)])
        loader, _ = make_loader(api)
        result = loader.load(FeedFilters(saved_only=True))
        assert [o.id for o in result.opportunities] == ["opp-1"]
        assert loader.cache.read() is None

    def test_saved_only_error_propagates(self):
        api = FakeApi()
        loader, _ = make_loader(api)
        loader.load()
        api.error = ApiError("boom", status_code=400)
        with pytest.raises(ApiError):
            loader.load(FeedFilters(saved_only=True))

    def test_malformed_payload_falls_back_to_cache(self):
        session = StubSession({"opportunities": [make_opportunity(1).to_dict()], "count": 1})
        client = FresherFlowClient("https://api.example.com", session=session)
        loader, _ = make_loader(client)
        loader.load()

        session.body = {"opportunities": [{"title": "missing id"}]}
        result = loader.load()
        assert result.from_cache
        assert [o.id for o in result.opportunities] == ["opp-1"]


class TestMutations:
    def test_toggle_online_calls_api(self):
        api = FakeApi()
        loader, _ = make_loader(api)
        assert loader.toggle_save("opp-1") is True
        assert api.toggles == ["opp-1"]
        assert loader.queue.get_pending_count() == 0

    def test_toggle_offline_queues(self):
        api = FakeApi()
        loader, _ = make_loader(api, online=False)
        assert loader.toggle_save("opp-1") is None
        pending = loader.queue.pending()
        assert [(a.type, a.owner_id) for a in pending] == [(OfflineActionType.SAVE_TOGGLE, "u1")]
        assert api.toggles == []

    def test_transient_failure_queues(self):
        loader, _ = make_loader(FakeApi(error=TransientApiError("timeout")))
        assert loader.track_action("opp-1", "APPLIED") is False
        assert loader.queue.pending()[0].action_type == "APPLIED"

    def test_remove_action_online(self):
        loader, _ = make_loader(FakeApi())
        assert loader.remove_action("opp-1") is True

    def test_offline_without_queue_raises(self):
        loader, _ = make_loader(FakeApi(), online=False, with_queue=False)
        with pytest.raises(TransientApiError):
            loader.toggle_save("opp-1")


class TestApplyLocalFilters:
    def test_search_title_and_company(self):
        items = [make_opportunity(1, title="Data Analyst"), make_opportunity(2, company="Datadog")]
        assert len(apply_local_filters(items, FeedFilters(search="data"), now=NOW)) == 2
        assert apply_local_filters(items, FeedFilters(search="analyst"), now=NOW)[0].id == "opp-1"

    def test_city_substring(self):
        items = [make_opportunity(1, locations=["Bengaluru, KA"]), make_opportunity(2, locations=["Pune"])]
        assert [o.id for o in apply_local_filters(items, FeedFilters(city="bengaluru"), now=NOW)] == ["opp-1"]

    def test_closing_soon_window(self):
        items = [
            make_opportunity(1, expires_at=NOW + timedelta(days=2)),
            make_opportunity(2, expires_at=NOW + timedelta(days=5)),
            make_opportunity(3),
        ]
        assert [o.id for o in apply_local_filters(items, FeedFilters(closing_soon=True), now=NOW)] == ["opp-1"]

    def test_type_filter_with_alias(self):
        items = [make_opportunity(1, type=OpportunityType.WALKIN), make_opportunity(2)]
        assert [o.id for o in apply_local_filters(items, FeedFilters(type="walk-ins"), now=NOW)] == ["opp-1"]

    def test_salary_range(self):
        items = [
            make_opportunity(1, salary_min=300000, salary_max=500000),
            make_opportunity(2, salary_min=800000, salary_max=1200000),
            make_opportunity(3),
        ]
        assert [o.id for o in apply_local_filters(items, FeedFilters(min_salary=400000), now=NOW)] == ["opp-1", "opp-2"]
        assert [o.id for o in apply_local_filters(items, FeedFilters(max_salary=600000), now=NOW)] == ["opp-1"]
