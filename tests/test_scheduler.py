"""Tests for the connectivity watcher that drives offline replay."""

from fresherflow.offline.action_queue import FlushResult
from fresherflow.scheduler import ConnectivityWatcher, get_scheduler_info


class FakeQueue:
    def __init__(self):
        self.flushes = []

    def flush(self, owner_id=None):
        self.flushes.append(owner_id)
        return FlushResult(1, 0, 0)


class Probe:
    def __init__(self, states):
        self.states = list(states)

    def __call__(self):
        return self.states.pop(0)


class TestConnectivityWatcher:
    def test_flushes_on_first_check_when_online(self):
        queue = FakeQueue()
        watcher = ConnectivityWatcher(queue, Probe([True]), owner_id="u1")
        assert watcher.check() == FlushResult(1, 0, 0)
        assert queue.flushes == ["u1"]

    def test_flushes_only_on_reconnect(self):
        queue = FakeQueue()
        watcher = ConnectivityWatcher(queue, Probe([True, True, False, False, True, True]))
        results = [watcher.check() for _ in range(6)]
        assert [r is not None for r in results] == [True, False, False, False, True, False]
        assert len(queue.flushes) == 2

    def test_starting_offline_waits_for_connection(self):
        queue = FakeQueue()
        watcher = ConnectivityWatcher(queue, Probe([False, True]))
        assert watcher.check() is None
        assert not watcher.is_online()
        assert watcher.check() is not None
        assert watcher.is_online()

    def test_optimistic_before_first_check(self):
        assert ConnectivityWatcher(FakeQueue(), Probe([])).is_online()


class TestSchedulerInfo:
    def test_not_running_by_default(self):
        assert get_scheduler_info() == {"running": False, "jobs": []}
