"""Offline action queue: pending save/track/remove mutations replayed on reconnect.

The queue is one JSON array in the local store. Every mutation reads the
whole array, applies the collapse rule for its kind, and writes it back in
a single write. Replay walks the array in insertion order.
"""

import enum
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional

from fresherflow.errors import FailureKind, StorageError, classify_failure
from fresherflow.opportunities.models import ActionType
from fresherflow.storage.local_store import LocalStore

logger = logging.getLogger("fresherflow.offline.queue")

OFFLINE_ACTION_QUEUE_KEY = "ff_offline_action_queue_v1"
MAX_RETRY_ATTEMPTS = 10


class OfflineActionType(str, enum.Enum):
    SAVE_TOGGLE = "SAVE_TOGGLE"
    ACTION_TRACK = "ACTION_TRACK"
    ACTION_REMOVE = "ACTION_REMOVE"


# Idempotent "set state to X" operations; only the latest one per listing matters
STATE_ACTIONS = (OfflineActionType.ACTION_TRACK, OfflineActionType.ACTION_REMOVE)


@dataclass(frozen=True)
class OfflineAction:
    id: str
    type: OfflineActionType
    opportunity_id: str
    created_at: int  # epoch milliseconds
    attempts: int = 0
    owner_id: Optional[str] = None
    action_type: Optional[str] = None  # ACTION_TRACK only

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "opportunityId": self.opportunity_id,
            "createdAt": self.created_at,
            "attempts": self.attempts,
        }
        if self.owner_id is not None:
            data["ownerId"] = self.owner_id
        if self.action_type is not None:
            data["actionType"] = self.action_type
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OfflineAction":
        return cls(
            id=str(data["id"]),
            type=OfflineActionType(data["type"]),
            opportunity_id=str(data["opportunityId"]),
            created_at=int(data.get("createdAt") or 0),
            attempts=int(data.get("attempts") or 0),
            owner_id=data.get("ownerId"),
            action_type=data.get("actionType"),
        )


@dataclass(frozen=True)
class FlushResult:
    synced: int = 0
    failed: int = 0
    remaining: int = 0


def matches_owner(action: OfflineAction, owner_id: Optional[str]) -> bool:
    """An action without an owner, or a query without one, matches anything."""
    return not action.owner_id or not owner_id or action.owner_id == owner_id


class OfflineActionQueue:
    """Persisted FIFO of mutations made while the API was unreachable.

    ``api`` must provide ``toggle_saved(opportunity_id)``,
    ``track_action(opportunity_id, action_type)`` and
    ``remove_action(opportunity_id)``; ``FresherFlowClient`` does.
    """

    def __init__(
        self,
        store: LocalStore,
        api=None,
        is_online: Optional[Callable[[], bool]] = None,
        max_retry_attempts: int = MAX_RETRY_ATTEMPTS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.api = api
        self.is_online = is_online or (lambda: True)
        self.max_retry_attempts = max_retry_attempts
        self.clock = clock
        self._listeners: list[Callable[[], None]] = []
        self._store_lock = threading.RLock()
        self._flush_lock = threading.Lock()

    # Persistence

    def _read_queue(self) -> list[OfflineAction]:
        try:
            raw = self.store.get_item(OFFLINE_ACTION_QUEUE_KEY)
            if not raw:
                return []
            parsed = json.loads(raw)
        except (StorageError, ValueError) as e:
            logger.warning("Offline queue unreadable, treating as empty: %s", e)
            return []

        if not isinstance(parsed, list):
            return []

        queue = []
        for item in parsed:
            try:
                queue.append(OfflineAction.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed offline action %r: %s", item, e)
        return queue

    def _write_queue(self, queue: list[OfflineAction]) -> None:
        try:
            self.store.set_item(OFFLINE_ACTION_QUEUE_KEY, json.dumps([a.to_dict() for a in queue]))
        except StorageError as e:
            logger.warning("Offline queue write failed, keeping previous state: %s", e)
            return
        self._notify()

    def _new_action(self, kind: OfflineActionType, opportunity_id: str, owner_id: Optional[str], **extra) -> OfflineAction:
        now_ms = int(self.clock() * 1000)
        return OfflineAction(
            id=f"offline_{now_ms}_{uuid.uuid4().hex[:6]}",
            type=kind,
            opportunity_id=opportunity_id,
            created_at=now_ms,
            owner_id=owner_id,
            **extra,
        )

    # Subscribers

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Offline queue listener failed")

    # Enqueue

    def enqueue_save_toggle(self, opportunity_id: str, owner_id: Optional[str] = None) -> None:
        """Queue a save/unsave. A second toggle for the same pair cancels the first."""
        with self._store_lock:
            queue = self._read_queue()
            for idx in range(len(queue) - 1, -1, -1):
                item = queue[idx]
                if (item.type == OfflineActionType.SAVE_TOGGLE
                        and item.opportunity_id == opportunity_id
                        and item.owner_id == owner_id):
                    del queue[idx]
                    logger.debug("Save toggle for %s cancelled a pending one", opportunity_id)
                    self._write_queue(queue)
                    return

            queue.append(self._new_action(OfflineActionType.SAVE_TOGGLE, opportunity_id, owner_id))
            self._write_queue(queue)

    def _enqueue_state_action(self, action: OfflineAction) -> None:
        with self._store_lock:
            queue = [
                item for item in self._read_queue()
                if not (item.opportunity_id == action.opportunity_id
                        and matches_owner(item, action.owner_id)
                        and item.type in STATE_ACTIONS)
            ]
            queue.append(action)
            self._write_queue(queue)

    def enqueue_action_track(self, opportunity_id: str, action_type: str, owner_id: Optional[str] = None) -> None:
        value = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        self._enqueue_state_action(
            self._new_action(OfflineActionType.ACTION_TRACK, opportunity_id, owner_id, action_type=value)
        )

    def enqueue_action_remove(self, opportunity_id: str, owner_id: Optional[str] = None) -> None:
        self._enqueue_state_action(self._new_action(OfflineActionType.ACTION_REMOVE, opportunity_id, owner_id))

    # Inspection

    def pending(self, owner_id: Optional[str] = None) -> list[OfflineAction]:
        return [a for a in self._read_queue() if matches_owner(a, owner_id)]

    def get_pending_count(self, owner_id: Optional[str] = None) -> int:
        return len(self.pending(owner_id))

    # Replay

    def _run(self, action: OfflineAction) -> None:
        if action.type == OfflineActionType.SAVE_TOGGLE:
            self.api.toggle_saved(action.opportunity_id)
        elif action.type == OfflineActionType.ACTION_TRACK:
            self.api.track_action(action.opportunity_id, action.action_type)
        else:
            self.api.remove_action(action.opportunity_id)

    def flush(self, owner_id: Optional[str] = None) -> FlushResult:
        """Replay pending actions for ``owner_id`` (or everyone) in FIFO order.

        Only one flush runs at a time per queue; an overlapping call returns
        immediately with the current pending count and makes no API calls.
        """
        if not self._flush_lock.acquire(blocking=False):
            logger.info("Offline flush already in progress, skipping")
            return FlushResult(0, 0, len(self._read_queue()))
        try:
            return self._flush(owner_id)
        finally:
            self._flush_lock.release()

    def _flush(self, owner_id: Optional[str]) -> FlushResult:
        queue = self._read_queue()
        if not queue:
            return FlushResult(0, 0, 0)
        if not self.is_online():
            return FlushResult(0, 0, len(queue))
        if self.api is None:
            raise RuntimeError("OfflineActionQueue.flush called without an API client")

        synced = 0
        failed = 0
        auth_failed = False
        remaining: list[OfflineAction] = []

        for index, action in enumerate(queue):
            if not matches_owner(action, owner_id):
                remaining.append(action)
                continue
            try:
                self._run(action)
                synced += 1
            except Exception as e:
                if classify_failure(e) == FailureKind.AUTH_EXPIRED:
                    auth_failed = True
                    remaining.extend(queue[index:])
                    logger.warning("Session expired while replaying offline actions; %d left for after login",
                                   len(queue) - index)
                    break
                failed += 1
                if action.attempts + 1 < self.max_retry_attempts:
                    remaining.append(replace(action, attempts=action.attempts + 1))
                else:
                    logger.warning("Dropping offline %s for %s after %d attempts: %s",
                                   action.type.value, action.opportunity_id, action.attempts + 1, e)

        with self._store_lock:
            # Reconcile with anything enqueued or cancelled while we were replaying
            snapshot_ids = {a.id for a in queue}
            current = self._read_queue()
            current_ids = {a.id for a in current}
            merged = [a for a in remaining if a.id in current_ids]
            merged.extend(a for a in current if a.id not in snapshot_ids)
            self._write_queue(merged)

        result = FlushResult(synced, failed + 1 if auth_failed else failed, len(merged))
        logger.info("Offline flush: %d synced, %d failed, %d remaining", result.synced, result.failed, result.remaining)
        return result
