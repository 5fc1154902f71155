"""CLI entry point for the FresherFlow offline client."""

import argparse
import logging
import sys
import time
from functools import partial
from pathlib import Path
from typing import Optional

from fresherflow.api.client import FresherFlowClient
from fresherflow.config import AppConfig, load_config, validate_config
from fresherflow.errors import ApiError, ProfileIncompleteError
from fresherflow.matching.matcher import build_feed
from fresherflow.offline.action_queue import OfflineActionQueue
from fresherflow.offline.feed import FeedFilters, FeedLoader, apply_local_filters
from fresherflow.offline.feed_cache import FeedCache
from fresherflow.offline.recent_viewed import RecentViewed
from fresherflow.offline.sync_status import SyncStatus, format_sync_time
from fresherflow.profile.models import Profile
from fresherflow.storage.local_store import LocalStore, SQLiteLocalStore
from fresherflow.utils.http_client import is_reachable
from fresherflow.utils.logging_config import setup_logging

logger = logging.getLogger("fresherflow")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="FresherFlow - offline-first opportunity feed for freshers",
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log at DEBUG level",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Log to the log file only, not the console",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    feed = commands.add_parser("feed", help="Show your ranked feed (falls back to the offline cache)")
    feed.add_argument("--type", help="job, internship or walk-in")
    feed.add_argument("--city", help="Only opportunities in this city")
    feed.add_argument("--closing-soon", action="store_true", help="Only listings closing within 3 days")
    feed.add_argument("--saved", action="store_true", help="Only saved opportunities")
    feed.add_argument("--search", default="", help="Search title and company")
    feed.add_argument("--limit", type=int, default=20, help="Max rows to print (default: 20)")

    view = commands.add_parser("view", help="Show one opportunity (recently viewed ones open offline)")
    view.add_argument("id_or_slug")

    sync = commands.add_parser("sync", help="Replay queued offline actions")
    sync.add_argument(
        "--watch", action="store_true",
        help="Keep running and replay whenever connectivity returns",
    )

    commands.add_parser("status", help="Show pending actions, cache age and last sync times")
    commands.add_parser("funnel", help="Print the growth funnel report (admin token required)")

    return parser.parse_args(argv)


def build_client(config: AppConfig) -> Optional[FresherFlowClient]:
    if not config.api.base_url:
        return None
    return FresherFlowClient.from_config(config.api)


def make_probe(config: AppConfig):
    url = config.offline.connectivity_url or config.api.base_url
    return partial(is_reachable, url)


def build_queue(config: AppConfig, store: LocalStore, client) -> OfflineActionQueue:
    return OfflineActionQueue(
        store,
        api=client,
        is_online=make_probe(config),
        max_retry_attempts=config.offline.max_retry_attempts,
    )


def load_profile(client: Optional[FresherFlowClient]) -> tuple[Optional[str], Optional[Profile]]:
    """Return ``(owner_id, profile)``; both None when the API is unavailable."""
    if client is None:
        return None, None
    try:
        user, profile = client.get_profile()
    except ApiError as e:
        logger.warning("Could not load profile: %s", e)
        return None, None
    owner_id = str(user["id"]) if user.get("id") is not None else None
    return owner_id, profile


def run_feed(config: AppConfig, store: LocalStore, args: argparse.Namespace) -> int:
    client = build_client(config)
    cache = FeedCache(store, max_items=config.offline.feed_cache_max_items)
    filters = FeedFilters(
        type=args.type,
        city=args.city,
        closing_soon=args.closing_soon,
        saved_only=args.saved,
        search=args.search,
    )

    if client is None:
        cached = cache.read()
        if cached is None:
            print("No API configured and no cached feed available.", file=sys.stderr)
            return 1
        opportunities, from_cache, cached_at = cached.opportunities, True, cached.cached_at
        profile = None
    else:
        owner_id, profile = load_profile(client)
        loader = FeedLoader(
            client, cache, SyncStatus(store),
            queue=build_queue(config, store, client),
            owner_id=owner_id,
            is_online=make_probe(config),
        )
        try:
            result = loader.load(filters)
        except ProfileIncompleteError as e:
            print(f"Your profile is {e.completion_percentage}% complete. "
                  "Finish it to unlock your feed.", file=sys.stderr)
            return 1
        except ApiError as e:
            print(f"Could not load feed: {e}", file=sys.stderr)
            return 1
        opportunities, from_cache, cached_at = result.opportunities, result.from_cache, result.cached_at

    visible = apply_local_filters(opportunities, filters)
    # Eligibility was already applied server-side
    ranked = build_feed(visible, profile, apply_filter=False)

    if from_cache:
        print(f"Offline - showing cached feed from {format_sync_time(cached_at)}")
    print(f"{len(ranked)} opportunities")
    for i, item in enumerate(ranked[: args.limit], 1):
        opp = item.opportunity
        where = ", ".join(opp.locations) or (opp.work_mode or "")
        saved = " *" if opp.is_saved else ""
        print(f"  #{i:<3} [{item.match_score:>3}] {opp.type.value:<10} {opp.title} @ {opp.company}"
              f" ({where}){saved}")
        print(f"        {item.match_reason}")
    return 0


def run_view(config: AppConfig, store: LocalStore, args: argparse.Namespace) -> int:
    client = build_client(config)
    recent = RecentViewed(store, max_items=config.offline.recent_viewed_max_items)

    opportunity = None
    if client is not None:
        try:
            opportunity = client.get_opportunity(args.id_or_slug)
            recent.save(opportunity)
            SyncStatus(store).mark_detail_synced_now()
        except ApiError as e:
            logger.warning("Detail fetch failed (%s), trying recently viewed", e)
    if opportunity is None:
        opportunity = recent.get_by_id_or_slug(args.id_or_slug)
        if opportunity is None:
            print(f"Opportunity {args.id_or_slug} is not available offline.", file=sys.stderr)
            return 1
        print("Offline - showing the copy saved when you last viewed it")

    print(f"{opportunity.title} @ {opportunity.company} [{opportunity.type.value}]")
    if opportunity.locations:
        print(f"Locations: {', '.join(opportunity.locations)}")
    if opportunity.expires_at:
        print(f"Closes: {opportunity.expires_at:%Y-%m-%d}")
    if opportunity.apply_link:
        print(f"Apply: {opportunity.apply_link}")
    if opportunity.description:
        print()
        print(opportunity.description)
    return 0


def run_sync(config: AppConfig, store: LocalStore, args: argparse.Namespace) -> int:
    client = build_client(config)
    if client is None:
        print("No API configured - nothing to sync against.", file=sys.stderr)
        return 1
    queue = build_queue(config, store, client)
    owner_id, _ = load_profile(client)

    if args.watch:
        from fresherflow.scheduler import ConnectivityWatcher, shutdown_scheduler, start_sync_job

        watcher = ConnectivityWatcher(queue, make_probe(config), owner_id=owner_id)
        start_sync_job(watcher, interval_seconds=config.offline.sync_interval_seconds)
        print("Watching connectivity; press Ctrl-C to stop.")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            shutdown_scheduler()
        return 0

    result = queue.flush(owner_id)
    print(f"Synced: {result.synced}  Failed: {result.failed}  Remaining: {result.remaining}")
    return 0 if result.failed == 0 else 1


def run_status(config: AppConfig, store: LocalStore) -> int:
    queue = OfflineActionQueue(store, max_retry_attempts=config.offline.max_retry_attempts)
    cache = FeedCache(store, max_items=config.offline.feed_cache_max_items)
    sync_status = SyncStatus(store)
    recent = RecentViewed(store, max_items=config.offline.recent_viewed_max_items)

    print("\n=== FresherFlow Offline Status ===")
    print(f"Pending offline actions: {queue.get_pending_count()}")
    cached = cache.read()
    if cached is None:
        print("Feed cache: empty")
    else:
        print(f"Feed cache: {len(cached.opportunities)} of {cached.count} opportunities, "
              f"{int(cached.age_seconds() // 60)} min old")
    print(f"Recently viewed: {recent.count()}")
    print(f"Last feed sync: {format_sync_time(sync_status.get_feed_last_sync_at())}")
    print(f"Last detail sync: {format_sync_time(sync_status.get_detail_last_sync_at())}")
    print()
    return 0


def run_funnel(config: AppConfig) -> int:
    client = build_client(config)
    if client is None:
        print("No API configured.", file=sys.stderr)
        return 1
    try:
        report = client.get_growth_funnel()
    except ApiError as e:
        print(f"Could not load funnel: {e}", file=sys.stderr)
        return 1

    totals = report.get("totals", {})
    print("\n=== Growth Funnel ===")
    print("Totals: " + "  ".join(f"{k}={v}" for k, v in totals.items()))
    print(f"\n{'source':<24}{'detail':>8}{'login':>8}{'auth':>8}{'signup':>8}{'d->l %':>9}{'l->a %':>9}")
    for row in report.get("sources", []):
        print(f"{row['source']:<24}{row['DETAIL_VIEW']:>8}{row['LOGIN_VIEW']:>8}{row['AUTH_SUCCESS']:>8}"
              f"{row['SIGNUP_SUCCESS']:>8}{row['detailToLoginPct']:>9}{row['loginToAuthPct']:>9}")
    print()
    return 0


def main(argv: Optional[list[str]] = None):
    args = parse_args(argv)

    # Load config
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(
        config.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=not args.quiet,
    )

    # Validate config and print warnings
    warnings = validate_config(config)
    for w in warnings:
        logger.warning("Config: %s", w)

    if args.command == "funnel":
        sys.exit(run_funnel(config))

    Path(config.data_dir).mkdir(parents=True, exist_ok=True)
    with SQLiteLocalStore(config.offline.store_path) as store:
        if args.command == "feed":
            code = run_feed(config, store, args)
        elif args.command == "view":
            code = run_view(config, store, args)
        elif args.command == "sync":
            code = run_sync(config, store, args)
        else:
            code = run_status(config, store)
    sys.exit(code)


if __name__ == "__main__":
    main()
