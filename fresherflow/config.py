"""YAML config loading and validation."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_AUTH_SECRET = "dev-secret-change-me-in-production"

DEFAULT_PRECACHE_ROUTES = [
    "/",
    "/offline.html",
    "/opportunities",
    "/jobs",
    "/internships",
    "/walk-ins",
    "/favicon.ico",
    "/manifest.webmanifest",
]

DEFAULT_API_PREFIXES = [
    "/api/opportunities",
    "/api/public/companies",
    "/api/saved",
    "/api/actions",
    "/api/dashboard",
    "/api/profile",
]


@dataclass
class ApiConfig:
    base_url: str = ""
    access_token: str = ""
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0


@dataclass
class OfflineConfig:
    store_path: str = "data/offline.db"
    max_retry_attempts: int = 10
    feed_cache_max_items: int = 250
    recent_viewed_max_items: int = 12
    sync_interval_seconds: int = 30
    connectivity_url: str = ""  # empty = probe the API base URL


@dataclass
class ServiceWorkerConfig:
    cache_version: str = "v1"
    precache_routes: list[str] = field(default_factory=lambda: list(DEFAULT_PRECACHE_ROUTES))
    api_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_API_PREFIXES))


@dataclass
class ServerConfig:
    database_url: str = "sqlite:///data/fresherflow.db"
    auth_secret: str = DEFAULT_AUTH_SECRET
    token_max_age_seconds: int = 7 * 24 * 60 * 60


@dataclass
class AppConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    offline: OfflineConfig = field(default_factory=OfflineConfig)
    service_worker: ServiceWorkerConfig = field(default_factory=ServiceWorkerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    data_dir: str = "data"
    log_dir: str = "logs"


def normalize_database_url(url: str) -> str:
    # SQLAlchemy 2.x requires postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Copy config.example.yaml to config.yaml and fill in your settings."
        )

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig()

    # API (env vars take precedence)
    api_raw = raw.get("api", {})
    config.api = ApiConfig(
        base_url=os.environ.get("FRESHERFLOW_API_URL", api_raw.get("base_url", "")).rstrip("/"),
        access_token=os.environ.get("FRESHERFLOW_ACCESS_TOKEN", api_raw.get("access_token", "")),
        timeout=api_raw.get("timeout", 30),
        max_retries=api_raw.get("max_retries", 3),
        backoff_factor=api_raw.get("backoff_factor", 1.0),
    )

    # Offline
    offline_raw = raw.get("offline", {})
    config.offline = OfflineConfig(
        store_path=offline_raw.get("store_path", "data/offline.db"),
        max_retry_attempts=offline_raw.get("max_retry_attempts", 10),
        feed_cache_max_items=offline_raw.get("feed_cache_max_items", 250),
        recent_viewed_max_items=offline_raw.get("recent_viewed_max_items", 12),
        sync_interval_seconds=offline_raw.get("sync_interval_seconds", 30),
        connectivity_url=offline_raw.get("connectivity_url", ""),
    )

    # Service worker
    sw_raw = raw.get("service_worker", {})
    config.service_worker = ServiceWorkerConfig(
        cache_version=os.environ.get("FRESHERFLOW_SW_VERSION", sw_raw.get("cache_version", "v1")),
        precache_routes=sw_raw.get("precache_routes", list(DEFAULT_PRECACHE_ROUTES)),
        api_prefixes=sw_raw.get("api_prefixes", list(DEFAULT_API_PREFIXES)),
    )

    # Server
    server_raw = raw.get("server", {})
    config.server = ServerConfig(
        database_url=normalize_database_url(
            os.environ.get("DATABASE_URL", server_raw.get("database_url", "sqlite:///data/fresherflow.db"))
        ),
        auth_secret=os.environ.get("FRESHERFLOW_AUTH_SECRET") or server_raw.get("auth_secret") or DEFAULT_AUTH_SECRET,
        token_max_age_seconds=server_raw.get("token_max_age_seconds", 7 * 24 * 60 * 60),
    )

    config.data_dir = raw.get("data_dir", "data")
    config.log_dir = raw.get("log_dir", "logs")

    return config


def validate_config(config: AppConfig) -> list[str]:
    """Return list of validation warnings (empty = OK)."""
    warnings = []

    if not config.api.base_url:
        warnings.append("No API base URL configured - feed and sync commands will be unavailable")

    if not config.api.access_token:
        warnings.append("No access token configured - queued offline actions will stay blocked until login")

    if config.server.auth_secret == DEFAULT_AUTH_SECRET:
        warnings.append("Default auth secret in use - set FRESHERFLOW_AUTH_SECRET in production")

    if config.offline.max_retry_attempts < 1:
        warnings.append("offline.max_retry_attempts must be at least 1 - queued actions would be dropped immediately")

    if config.offline.feed_cache_max_items < 1:
        warnings.append("offline.feed_cache_max_items must be at least 1 - the feed cache would always be empty")

    return warnings
