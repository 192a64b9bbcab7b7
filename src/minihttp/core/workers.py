"""
=============================================================================
PER-CONNECTION WORKERS
=============================================================================

Every accepted connection gets its own thread. Nothing is shared between
them: each worker owns its socket, its read buffer and its parsed request.

=============================================================================
WHY ONE THREAD PER CONNECTION?
=============================================================================

    ┌──────────────┐
    │   Listener   │  accept() ──┬──► Worker-1  (GET /index.html)
    │   (main)     │             ├──► Worker-2  (GET /big.png, slow client)
    └──────────────┘             └──► Worker-3  (POST /x → 501)

A slow client blocks only its own worker. There is no queue to fill up
and no pool to exhaust; the OS listen backlog is the only limit.

Since workers share no mutable state, there are no locks in the request
path. The only lock below guards the listener's own bookkeeping list.

=============================================================================
REAPING
=============================================================================

A finished thread still holds a Python object until someone drops the last
reference. The listener calls reap() on every accept (and every idle tick),
which joins finished workers and forgets them. On shutdown, join_all()
waits for the ones still running.

=============================================================================
"""

import threading
import time
import logging
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states."""
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


class ConnectionWorker(threading.Thread):
    """
    Thread that runs one connection handler call.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Lifecycle                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   start() ──► handler(conn) ──┬──► returns  → FINISHED              │
    │                               │                                      │
    │                               └──► raises   → FAILED (logged)       │
    │                                                                      │
    │   Either way: conn.close() in finally                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, handler: Callable, conn, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.handler = handler
        self.conn = conn
        self.worker_id = worker_id

        self.state = WorkerState.RUNNING
        self.started_at = 0.0
        self.elapsed = 0.0

    def run(self):
        self.started_at = time.time()

        try:
            self.handler(self.conn)
            self.state = WorkerState.FINISHED
        except Exception as e:
            # A fault here must never reach the listener or other workers
            self.state = WorkerState.FAILED
            logger.exception(f"Worker {self.worker_id} failed: {e}")
        finally:
            close = getattr(self.conn, "close", None)
            if close is not None:
                try:
                    close()
                except Exception as e:
                    logger.warning(f"Worker {self.worker_id} failed to close connection: {e}")

            self.elapsed = time.time() - self.started_at
            logger.debug(f"Worker {self.worker_id} done in {self.elapsed:.3f}s")


class WorkerGroup:
    """
    Spawns and reaps per-connection workers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      WorkerGroup Usage                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   group = WorkerGroup()                                              │
    │   group.spawn(handler.handle, conn)   # one thread per connection    │
    │   group.reap()                        # drop finished threads        │
    │   group.join_all(timeout=10.0)        # on shutdown                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self):
        self._workers: list[ConnectionWorker] = []
        self._lock = threading.Lock()  # Protects _workers list
        self._next_worker_id = 0

        self.spawned = 0
        self.completed = 0
        self.failed = 0

    @property
    def active_count(self) -> int:
        """Number of workers not yet reaped that are still running."""
        with self._lock:
            return sum(1 for w in self._workers if w.is_alive())

    def spawn(self, handler: Callable, conn) -> ConnectionWorker:
        """
        Start a worker thread for one connection.

        Args:
            handler: Callable that takes the connection.
            conn: The accepted connection.

        Returns:
            The started worker.
        """
        with self._lock:
            worker = ConnectionWorker(handler, conn, self._next_worker_id)
            self._next_worker_id += 1
            self._workers.append(worker)
            self.spawned += 1

        worker.start()
        return worker

    def reap(self) -> int:
        """
        Join and forget finished workers.

        Returns:
            Number of workers reaped.
        """
        with self._lock:
            finished = [w for w in self._workers if not w.is_alive()]
            self._workers = [w for w in self._workers if w.is_alive()]

        for worker in finished:
            worker.join()
            self._account(worker)

        if finished:
            logger.debug(f"Reaped {len(finished)} finished workers")
        return len(finished)

    def join_all(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for all workers to finish.

        Args:
            timeout: Overall timeout in seconds. None waits forever.

        Returns:
            True if every worker finished, False if some are still running.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)

        self.reap()

        still_running = self.active_count
        if still_running:
            logger.warning(f"{still_running} workers still running after shutdown timeout")
        return still_running == 0

    def _account(self, worker: ConnectionWorker):
        if worker.state == WorkerState.FAILED:
            self.failed += 1
        else:
            self.completed += 1

    @property
    def stats(self) -> dict:
        return {
            "spawned": self.spawned,
            "completed": self.completed,
            "failed": self.failed,
            "active": self.active_count,
        }
