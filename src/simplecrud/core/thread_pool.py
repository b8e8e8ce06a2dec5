"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling connection tasks from a bounded
queue. The pool does socket I/O in parallel; request handling itself is
serialized by HTTPServer.dispatch, so workers never touch the user store
concurrently.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          ThreadPool                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   submit(task) ──► [ Task ][ Task ][ Task ] ...   (bounded queue)   │
    │                          │                                          │
    │                          ▼ get()                                    │
    │        ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐          │
    │        │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │ ...      │
    │        └──────────┘ └──────────┘ └──────────┘ └──────────┘          │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

QUEUE FULL:
    submit(block=False) returns False and the server answers 503 instead
    of letting the backlog grow without bound.

SCALING:
    When every worker is busy and tasks are waiting, one more worker is
    started, up to max_workers.

SHUTDOWN ("poison pill"):
    One None per worker goes into the queue; a worker that pulls None exits.
=============================================================================
"""

import itertools
import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, List
from dataclasses import dataclass, field
from contextlib import suppress
from enum import Enum


logger = logging.getLogger(__name__)

# Queued once per worker by shutdown(); a worker that receives it exits
_STOP = None


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A queued call. `timeout` bounds the time spent waiting in the queue,
    not the run time: a task that waited longer is dropped unserved, and
    `on_drop` runs in its place to release what `func` would have.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None
    submitted_at: float = field(default_factory=time.time)
    on_drop: Optional[Callable[[], Any]] = None

    @property
    def waited(self) -> float:
        return time.time() - self.submitted_at

    @property
    def is_stale(self) -> bool:
        return self.timeout is not None and self.timeout > 0 and self.waited > self.timeout

    def __call__(self):
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """Runs tasks from the shared queue until it gets _STOP or stop()."""

    def __init__(self, tasks: "queue.Queue[Optional[Task]]", worker_id: int, poll_interval: float = 60.0):
        super().__init__(name=f"simplecrud-worker-{worker_id}", daemon=True)
        self.tasks = tasks
        self.worker_id = worker_id
        self.poll_interval = poll_interval

        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._stopping = threading.Event()

    def run(self):
        logger.debug(f"{self.name} up")
        while not self._stopping.is_set():
            try:
                task = self.tasks.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if task is _STOP:
                    break
                self._run(task)
            finally:
                self.tasks.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} down")

    def _run(self, task: Task):
        if task.is_stale:
            logger.warning(f"{self.name}: dropping task that waited {task.waited:.2f}s (limit {task.timeout}s)")
            self.tasks_failed += 1
            if task.on_drop is not None:
                try:
                    task.on_drop()
                except Exception:
                    logger.exception(f"{self.name}: cleanup of dropped task failed")
            return

        self.state = WorkerState.BUSY
        started = time.perf_counter()
        try:
            task()
        except Exception:
            logger.exception(f"{self.name}: task failed after {time.perf_counter() - started:.3f}s")
            self.tasks_failed += 1
        else:
            self.tasks_completed += 1
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stopping.set()


class ThreadPool:
    """
    Workers serving accepted connections.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(serve, args=(conn,), block=False):
            answer_503(conn)
        pool.shutdown(wait=True, timeout=30.0)

    Args:
        min_workers: Started by start().
        max_workers: Ceiling for scaling up while every worker is busy.
        max_queue: Queue capacity; a full queue makes submit() return False.
        idle_timeout: How often an idle worker wakes up to check stop().
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16,
                 max_queue: int = 100, idle_timeout: float = 60.0):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue = max_queue
        self.idle_timeout = idle_timeout

        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=max_queue)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._accepting = False

    @property
    def is_running(self) -> bool:
        return self._accepting

    def start(self):
        with self._lock:
            if self._accepting:
                return
            for _ in range(self.min_workers):
                self._spawn_worker()
            self._accepting = True
        logger.info(f"Thread pool started with {self.min_workers} workers (max {self.max_workers})")

    def _spawn_worker(self):
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(self._tasks, next(self._ids), poll_interval=self.idle_timeout)
        self._workers.append(worker)
        worker.start()

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None,
               timeout: Optional[float] = None, block: bool = True,
               queue_timeout: Optional[float] = None,
               on_drop: Optional[Callable[[], Any]] = None) -> bool:
        """
        Queue `func(*args, **kwargs)`.

        Args:
            timeout: Longest time the task may wait in the queue.
            on_drop: Called instead of `func` when that wait ran out.
            block: Wait for room in the queue instead of failing at once.
            queue_timeout: Longest wait for room when blocking.

        Returns:
            False if the queue stayed full, True otherwise.

        Raises:
            RuntimeError: start() was not called, or shutdown() was.
        """
        if not self._accepting:
            raise RuntimeError("Thread pool is not accepting tasks")

        try:
            task = Task(func, args, kwargs or {}, timeout, on_drop=on_drop)
            self._tasks.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers or self._tasks.empty():
                return
            if any(w.state is not WorkerState.BUSY for w in self._workers):
                return
            logger.debug(f"All {len(self._workers)} workers busy, adding one")
            self._spawn_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Refuse new tasks, let queued ones finish when `wait` is set (for at
        most `timeout` seconds), then stop every worker.
        """
        with self._lock:
            if not self._accepting:
                return
            self._accepting = False

        logger.info("Thread pool shutting down")
        if wait:
            self._drain(timeout)

        with self._lock:
            workers, self._workers = self._workers, []

        for worker in workers:
            worker.stop()
            with suppress(queue.Full):
                self._tasks.put_nowait(_STOP)
        for worker in workers:
            worker.join(timeout=2.0)

        logger.info("Thread pool stopped")

    def _drain(self, timeout: Optional[float]):
        if not timeout:
            self._tasks.join()
            return

        deadline = time.monotonic() + timeout
        while self._tasks.unfinished_tasks:
            if time.monotonic() >= deadline:
                logger.warning(f"{self._tasks.unfinished_tasks} task(s) still running after {timeout}s, stopping anyway")
                return
            time.sleep(0.1)

    # ─────────────────────────────────────────────────────────────────────
    # MONITORING
    # ─────────────────────────────────────────────────────────────────────

    def _count(self, state: WorkerState) -> int:
        return sum(1 for w in self._workers if w.state is state)

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return self._count(WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return self._count(WorkerState.IDLE)

    @property
    def pending(self) -> int:
        """Tasks waiting in the queue."""
        return self._tasks.qsize()

    @property
    def stats(self) -> dict:
        workers = list(self._workers)
        return {
            "workers": {"total": len(workers), "busy": self.busy_workers, "idle": self.idle_workers},
            "tasks": {
                "queued": self.pending,
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
