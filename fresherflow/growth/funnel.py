"""Growth funnel counters keyed by acquisition source.

Counters live in an injected ``CounterStore``. The default store is
in-process and not durable: a restart resets every counter.
"""

import enum
import logging
import threading
from typing import Optional

from fresherflow.utils.text_processing import sanitize_source

logger = logging.getLogger("fresherflow.growth")


class FunnelEvent(str, enum.Enum):
    DETAIL_VIEW = "DETAIL_VIEW"
    LOGIN_VIEW = "LOGIN_VIEW"
    AUTH_SUCCESS = "AUTH_SUCCESS"
    SIGNUP_SUCCESS = "SIGNUP_SUCCESS"


def normalize_event(event: Optional[str]) -> Optional[FunnelEvent]:
    value = event.strip().upper() if isinstance(event, str) else ""
    try:
        return FunnelEvent(value)
    except ValueError:
        return None


def empty_counters() -> dict[str, int]:
    return {e.value: 0 for e in FunnelEvent}


class CounterStore:
    def increment(self, source: str, event: FunnelEvent) -> None:
        raise NotImplementedError

    def snapshot(self) -> dict[str, dict[str, int]]:
        """Return a copy of ``{source: {EVENT: count}}``."""
        raise NotImplementedError


class InMemoryCounterStore(CounterStore):
    def __init__(self):
        self._rows: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def increment(self, source: str, event: FunnelEvent) -> None:
        with self._lock:
            counters = self._rows.setdefault(source, empty_counters())
            counters[event.value] += 1

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {source: dict(counters) for source, counters in self._rows.items()}


def _pct(numerator: int, denominator: int) -> float:
    return round(numerator / denominator * 100, 2) if denominator > 0 else 0


class GrowthFunnel:
    def __init__(self, store: Optional[CounterStore] = None):
        self.store = store or InMemoryCounterStore()

    def record(self, source: Optional[str] = None, event: Optional[str] = None) -> bool:
        """Count one event. Unknown events are ignored; returns whether it counted."""
        normalized = normalize_event(event)
        if normalized is None:
            logger.debug("Ignoring unknown growth event %r", event)
            return False
        self.store.increment(sanitize_source(source), normalized)
        return True

    def record_auth_success(self, source: Optional[str] = None, is_signup: bool = False) -> None:
        self.record(source, FunnelEvent.AUTH_SUCCESS.value)
        if is_signup:
            self.record(source, FunnelEvent.SIGNUP_SUCCESS.value)

    def get_metrics(self) -> dict:
        sources = []
        for source, counters in self.store.snapshot().items():
            row = {"source": source, **counters}
            row["detailToLoginPct"] = _pct(counters["LOGIN_VIEW"], counters["DETAIL_VIEW"])
            row["loginToAuthPct"] = _pct(counters["AUTH_SUCCESS"], counters["LOGIN_VIEW"])
            sources.append(row)
        sources.sort(key=lambda r: r["AUTH_SUCCESS"], reverse=True)

        totals = empty_counters()
        for row in sources:
            for key in totals:
                totals[key] += row[key]

        return {"totals": totals, "sources": sources}


_default_funnel = GrowthFunnel()


def get_default_funnel() -> GrowthFunnel:
    return _default_funnel


def record_growth_event(source: Optional[str] = None, event: Optional[str] = None) -> bool:
    return _default_funnel.record(source, event)


def record_auth_success(source: Optional[str] = None, is_signup: bool = False) -> None:
    _default_funnel.record_auth_success(source, is_signup)


def get_growth_funnel_metrics() -> dict:
    return _default_funnel.get_metrics()
