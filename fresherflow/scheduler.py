"""APScheduler setup: replays the offline action queue when connectivity returns."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from fresherflow.offline.action_queue import FlushResult, OfflineActionQueue

logger = logging.getLogger("fresherflow.scheduler")

SYNC_JOB_ID = "offline_queue_sync"

_scheduler: BackgroundScheduler | None = None


class ConnectivityWatcher:
    """Flush the queue on the first check and on every offline -> online edge."""

    def __init__(self, queue: OfflineActionQueue, probe: Callable[[], bool], owner_id: Optional[str] = None):
        self.queue = queue
        self.probe = probe
        self.owner_id = owner_id
        self._was_online: Optional[bool] = None
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        """Last observed state; optimistic before the first check."""
        return self._was_online is not False

    def check(self) -> Optional[FlushResult]:
        online = bool(self.probe())
        with self._lock:
            previous = self._was_online
            self._was_online = online

        if not online:
            if previous:
                logger.info("Connectivity lost - queueing mutations until it returns")
            return None
        if previous:
            return None

        if previous is None:
            logger.info("Initial sync of offline action queue")
        else:
            logger.info("Back online - replaying offline action queue")
        result = self.queue.flush(self.owner_id)
        logger.info(
            "Offline sync: %d synced, %d failed, %d remaining",
            result.synced, result.failed, result.remaining,
        )
        return result


def _job_listener(event):
    """Log scheduler job events for debugging."""
    if event.exception:
        logger.error("Scheduled job %s FAILED: %s", event.job_id, event.exception)
        logger.error("Traceback: %s", event.traceback)
    elif hasattr(event, "job_id"):
        if event.code == EVENT_JOB_MISSED:
            logger.warning("Scheduled job %s MISSED its fire time", event.job_id)
        else:
            logger.debug("Scheduled job %s executed successfully", event.job_id)


def init_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is not None:
        return _scheduler
    _scheduler = BackgroundScheduler()
    _scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)
    _scheduler.start()
    logger.info("APScheduler started")
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler stopped")


def start_sync_job(watcher: ConnectivityWatcher, interval_seconds: int = 30) -> None:
    """Poll connectivity every ``interval_seconds``; the first check fires immediately."""
    scheduler = init_scheduler()
    scheduler.add_job(
        watcher.check,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=SYNC_JOB_ID,
        name="Offline queue sync",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("Scheduled offline sync every %ds", interval_seconds)


def get_scheduler_info() -> dict:
    """Return diagnostic info about the scheduler state."""
    if _scheduler is None:
        return {"running": False, "jobs": []}
    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })
    return {
        "running": _scheduler.running,
        "jobs": jobs,
    }
