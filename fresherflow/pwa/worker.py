"""Offline cache layer: executes the strategies chosen by ``CachePolicy``.

Fetching goes through an injected callable that returns a ``Response`` or
raises ``NetworkError``. Background revalidation runs on a thread pool and
never delays the response it refreshes.
"""

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

import requests

from fresherflow.errors import NetworkError
from fresherflow.pwa.cache_policy import (
    OFFLINE_HTML,
    OFFLINE_URL,
    CachePolicy,
    Request,
    Response,
    Strategy,
    normalize_cache_key,
    pathname,
)

logger = logging.getLogger("fresherflow.pwa")

Fetcher = Callable[[Request], Response]


class Cache:
    """One named cache: cache key -> stored response."""

    def __init__(self):
        self._entries: dict[str, Response] = {}
        self._lock = threading.Lock()

    def match(self, key: str) -> Optional[Response]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, response: Response) -> None:
        with self._lock:
            self._entries[key] = response

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)


class CacheStorage:
    def __init__(self):
        self._caches: dict[str, Cache] = {}
        self._lock = threading.Lock()

    def open(self, name: str) -> Cache:
        with self._lock:
            return self._caches.setdefault(name, Cache())

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._caches)

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._caches.pop(name, None) is not None


def requests_fetcher(session: Optional[requests.Session] = None, timeout: int = 15) -> Fetcher:
    """Build a fetcher backed by a requests session."""
    session = session or requests.Session()

    def fetch(request: Request) -> Response:
        try:
            resp = session.request(request.method, request.url, headers=request.headers, timeout=timeout)
        except requests.RequestException as e:
            raise NetworkError(f"{request.method} {request.url} failed: {e}") from e
        return Response(
            status=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
            url=resp.url,
            redirected=bool(resp.history),
        )

    return fetch


def offline_page() -> Response:
    return Response(status=503, body=OFFLINE_HTML.encode("utf-8"), headers={"Content-Type": "text/html; charset=utf-8"})


def offline_api_error() -> Response:
    body = json.dumps({"error": "You are offline and this data is not cached yet.", "offline": True})
    return Response(status=503, body=body.encode("utf-8"), headers={"Content-Type": "application/json"})


class ServiceWorker:
    def __init__(
        self,
        policy: CachePolicy,
        fetch: Fetcher,
        caches: Optional[CacheStorage] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.policy = policy
        self.fetch = fetch
        self.caches = caches or CacheStorage()
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="sw-revalidate")
        self._pending: list[Future] = []
        self._pending_lock = threading.Lock()

    # Lifecycle

    def install(self) -> None:
        """Precache the configured routes. All-or-nothing: any failure aborts install."""
        fetched = []
        for route in self.policy.precache_routes:
            response = self.fetch(Request(url=f"{self.policy.origin}{route}"))
            if not response.ok:
                raise NetworkError(f"Precache of {route} returned HTTP {response.status}")
            fetched.append((route, response))

        cache = self.caches.open(self.policy.static_cache_name)
        for route, response in fetched:
            cache.put(pathname(f"{self.policy.origin}{route}"), response)
        logger.info("Precached %d routes into %s", len(fetched), self.policy.static_cache_name)

    def activate(self) -> list[str]:
        """Delete every cache that is not one of the two current versioned caches."""
        deleted = [name for name in self.caches.keys() if name not in self.policy.current_cache_names]
        for name in deleted:
            self.caches.delete(name)
        if deleted:
            logger.info("Deleted stale caches: %s", ", ".join(deleted))
        return deleted

    # Fetch handling

    def handle(self, request: Request) -> Response:
        strategy = self.policy.classify(request)
        if strategy == Strategy.NAVIGATION:
            return self._network_first_navigation(request)
        if strategy == Strategy.STATIC_ASSET:
            return self._stale_while_revalidate(request, self.policy.static_cache_name)
        if strategy == Strategy.API:
            try:
                return self._stale_while_revalidate(request, self.policy.api_cache_name)
            except NetworkError as e:
                logger.debug("API request %s failed with no cached copy: %s", request.url, e)
                return offline_api_error()
        return self.fetch(request)

    def _network_first_navigation(self, request: Request) -> Response:
        cache = self.caches.open(self.policy.static_cache_name)
        key = pathname(request.url)
        try:
            response = self.fetch(request)
        except NetworkError:
            return cache.match(key) or cache.match(OFFLINE_URL) or offline_page()
        if response.ok:
            cache.put(key, response)
        return response

    def _stale_while_revalidate(self, request: Request, cache_name: str) -> Response:
        cache = self.caches.open(cache_name)
        key = normalize_cache_key(request.url)
        cached = cache.match(key)
        if cached is not None:
            self._schedule_revalidation(request, cache, key)
            return cached
        return self._fetch_and_store(request, cache, key)

    def _fetch_and_store(self, request: Request, cache: Cache, key: str) -> Response:
        response = self.fetch(request)
        if response.ok and not response.redirected:
            cache.put(key, response)
        return response

    def _revalidate(self, request: Request, cache: Cache, key: str) -> None:
        try:
            self._fetch_and_store(request, cache, key)
        except NetworkError as e:
            logger.debug("Background revalidation of %s failed: %s", key, e)

    def _schedule_revalidation(self, request: Request, cache: Cache, key: str) -> None:
        future = self.executor.submit(self._revalidate, request, cache, key)
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    def wait_background(self, timeout: Optional[float] = None) -> None:
        """Block until in-flight revalidations finish."""
        with self._pending_lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=True)
