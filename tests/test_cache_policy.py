"""Tests for service-worker request classification and cache keys."""

from fresherflow.config import ServiceWorkerConfig
from fresherflow.pwa.cache_policy import CachePolicy, Request, Strategy, normalize_cache_key

ORIGIN = "https://fresherflow.in"


def make_policy(**kwargs) -> CachePolicy:
    defaults = dict(
        origin=ORIGIN,
        cache_version="v3",
        precache_routes=["/", "/offline.html"],
        api_prefixes=["/api/opportunities", "/api/saved"],
    )
    defaults.update(kwargs)
    return CachePolicy(**defaults)


class TestClassify:
    def test_non_get_bypasses(self):
        policy = make_policy()
        assert policy.classify(Request(f"{ORIGIN}/api/saved/1", method="POST")) == Strategy.BYPASS

    def test_non_http_scheme_bypasses(self):
        assert make_policy().classify(Request("chrome-extension://abc/script.js", destination="script")) == Strategy.BYPASS

    def test_navigation(self):
        assert make_policy().classify(Request(f"{ORIGIN}/jobs", mode="navigate")) == Strategy.NAVIGATION

    def test_static_asset(self):
        policy = make_policy()
        for destination in ("style", "script", "image", "font"):
            assert policy.classify(Request(f"{ORIGIN}/_next/x", destination=destination)) == Strategy.STATIC_ASSET

    def test_static_destination_under_api_not_static(self):
        assert make_policy().classify(Request(f"{ORIGIN}/api/admin/logo", destination="image")) == Strategy.BYPASS

    def test_api_prefix(self):
        policy = make_policy()
        assert policy.classify(Request(f"{ORIGIN}/api/opportunities?type=job")) == Strategy.API
        assert policy.classify(Request(f"{ORIGIN}/api/opportunities/abc")) == Strategy.API
        assert policy.classify(Request(f"{ORIGIN}/api/opportunitiesx")) == Strategy.BYPASS
        assert policy.classify(Request(f"{ORIGIN}/api/auth/me")) == Strategy.BYPASS

    def test_cross_origin_bypasses(self):
        assert make_policy().classify(Request("https://cdn.example.com/app.js", destination="script")) == Strategy.BYPASS


class TestCacheNames:
    def test_versioned_names(self):
        policy = make_policy()
        assert policy.static_cache_name == "fresherflow-static-v3"
        assert policy.api_cache_name == "fresherflow-api-v3"
        assert policy.current_cache_names == {"fresherflow-static-v3", "fresherflow-api-v3"}


class TestNormalizeCacheKey:
    def test_strips_tracking_params(self):
        a = normalize_cache_key(f"{ORIGIN}/api/opportunities?type=job&utm_source=x&utm_campaign=y")
        b = normalize_cache_key(f"{ORIGIN}/api/opportunities?ref=tw&type=job")
        assert a == b == f"{ORIGIN}/api/opportunities?type=job"

    def test_drops_fragment(self):
        assert normalize_cache_key(f"{ORIGIN}/jobs#top") == f"{ORIGIN}/jobs"


class TestFromConfig:
    def test_uses_service_worker_section(self):
        config = ServiceWorkerConfig(cache_version="build-9")
        policy = CachePolicy.from_config("https://fresherflow.in/some/page", config)
        assert policy.origin == ORIGIN
        assert policy.static_cache_name == "fresherflow-static-build-9"
        assert policy.classify(Request(f"{ORIGIN}/api/profile")) == Strategy.API
