"""
Unit tests for per-connection workers.
"""

import threading

import pytest

from conftest import wait_for
from minihttp.core.workers import ConnectionWorker, WorkerGroup, WorkerState


class FakeConn:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


@pytest.fixture
def group():
    group = WorkerGroup()
    yield group
    group.join_all(timeout=5.0)


class TestConnectionWorker:
    """Tests for ConnectionWorker."""

    def test_runs_handler_and_closes(self):
        conn = FakeConn()
        calls = []

        worker = ConnectionWorker(calls.append, conn, 7)
        worker.start()
        worker.join(5.0)

        assert calls == [conn]
        assert conn.closed == 1
        assert worker.state == WorkerState.FINISHED
        assert worker.name == "Worker-7"
        assert worker.daemon

    def test_failure_is_contained(self, caplog):
        conn = FakeConn()

        def explode(c):
            raise RuntimeError("kaboom")

        worker = ConnectionWorker(explode, conn, 1)
        worker.start()
        worker.join(5.0)

        assert worker.state == WorkerState.FAILED
        assert conn.closed == 1
        assert any("kaboom" in r.getMessage() for r in caplog.records)


class TestWorkerGroup:
    """Tests for WorkerGroup."""

    def test_spawn_runs_concurrently(self, group):
        """Two workers are inside the handler at the same time."""
        barrier = threading.Barrier(2, timeout=5.0)

        group.spawn(lambda c: barrier.wait(), FakeConn())
        group.spawn(lambda c: barrier.wait(), FakeConn())

        assert group.join_all(timeout=5.0)
        assert group.stats["completed"] == 2

    def test_reap_removes_finished(self, group):
        release = threading.Event()

        fast = group.spawn(lambda c: None, FakeConn())
        slow = group.spawn(lambda c: release.wait(5.0), FakeConn())
        fast.join(5.0)

        assert group.reap() == 1
        assert group.active_count == 1
        assert slow.is_alive()

        release.set()
        slow.join(5.0)

        assert group.reap() == 1
        assert group.active_count == 0
        assert group.reap() == 0

    def test_failing_worker_does_not_affect_others(self, group):
        def explode(c):
            raise ValueError("bad")

        ok_conn = FakeConn()
        group.spawn(explode, FakeConn())
        group.spawn(lambda c: None, ok_conn)

        assert group.join_all(timeout=5.0)
        assert ok_conn.closed == 1
        assert group.stats == {"spawned": 2, "completed": 1, "failed": 1, "active": 0}

    def test_join_all_times_out(self, group):
        release = threading.Event()
        group.spawn(lambda c: release.wait(5.0), FakeConn())

        assert group.join_all(timeout=0.05) is False
        assert group.active_count == 1

        release.set()
        assert wait_for(lambda: group.reap() == 1)

    def test_worker_ids_increase(self, group):
        first = group.spawn(lambda c: None, FakeConn())
        second = group.spawn(lambda c: None, FakeConn())

        assert second.worker_id == first.worker_id + 1
