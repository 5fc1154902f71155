"""Which caching strategy applies to a request, and how requests map to cache keys."""

import enum
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

OFFLINE_URL = "/offline.html"

STATIC_DESTINATIONS = frozenset({"style", "script", "image", "font"})

TRACKING_PARAMS = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content", "ref",
})

API_ROOT = "/api/"

OFFLINE_HTML = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Offline | FresherFlow</title>
<style>
body { font-family: system-ui, sans-serif; display: flex; min-height: 100vh; margin: 0;
       align-items: center; justify-content: center; background: #f8fafc; color: #0f172a; }
main { max-width: 420px; padding: 24px; text-align: center; }
a { color: #2563eb; }
</style>
</head>
<body>
<main>
<h1>You're offline</h1>
<p>This page hasn't been saved for offline use yet. Reconnect and it will load normally.</p>
<p><a href="/">Try again</a></p>
</main>
</body>
</html>
"""


class Strategy(str, enum.Enum):
    BYPASS = "BYPASS"  # network only, never cached
    NAVIGATION = "NAVIGATION"  # network first, cache/offline page fallback
    STATIC_ASSET = "STATIC_ASSET"  # stale-while-revalidate
    API = "API"  # stale-while-revalidate with offline JSON error


@dataclass(frozen=True)
class Request:
    url: str
    method: str = "GET"
    mode: str = "cors"  # "navigate" for page loads
    destination: str = ""  # "style", "script", "image", "font", "document", ...
    headers: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Response:
    status: int = 200
    body: bytes = b""
    headers: dict = field(default_factory=dict)
    url: str = ""
    redirected: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def normalize_cache_key(url: str) -> str:
    """Drop tracking params and the fragment so campaign links share a cache entry."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in TRACKING_PARAMS]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), ""))


def pathname(url: str) -> str:
    return urlsplit(url).path or "/"


class CachePolicy:
    def __init__(
        self,
        origin: str,
        cache_version: str,
        precache_routes: list[str],
        api_prefixes: list[str],
        app_name: str = "fresherflow",
    ):
        parts = urlsplit(origin)
        self.origin = f"{parts.scheme}://{parts.netloc}"
        self.cache_version = cache_version
        self.precache_routes = list(precache_routes)
        self.api_prefixes = [p.rstrip("/") for p in api_prefixes]
        self.static_cache_name = f"{app_name}-static-{cache_version}"
        self.api_cache_name = f"{app_name}-api-{cache_version}"

    @classmethod
    def from_config(cls, origin: str, config) -> "CachePolicy":
        return cls(origin, config.cache_version, config.precache_routes, config.api_prefixes)

    @property
    def current_cache_names(self) -> frozenset:
        return frozenset({self.static_cache_name, self.api_cache_name})

    def is_same_origin(self, url: str) -> bool:
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}" == self.origin

    def matches_api_prefix(self, path: str) -> Optional[str]:
        for prefix in self.api_prefixes:
            if path == prefix or path.startswith(prefix + "/"):
                return prefix
        return None

    def classify(self, request: Request) -> Strategy:
        scheme = urlsplit(request.url).scheme
        if request.method.upper() != "GET" or scheme not in ("http", "https"):
            return Strategy.BYPASS

        if request.mode == "navigate":
            return Strategy.NAVIGATION

        if not self.is_same_origin(request.url):
            return Strategy.BYPASS

        path = pathname(request.url)
        if self.matches_api_prefix(path):
            return Strategy.API
        if request.destination in STATIC_DESTINATIONS and not path.startswith(API_ROOT):
            return Strategy.STATIC_ASSET
        return Strategy.BYPASS
