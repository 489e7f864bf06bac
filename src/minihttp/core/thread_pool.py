"""
=============================================================================
BOUNDED THREAD POOL
=============================================================================

A fixed set of worker threads pulling connection tasks off a bounded
queue.

=============================================================================
WHY NOT A THREAD PER CONNECTION?
=============================================================================

Spawning a thread for every accepted connection has no ceiling: a flood
of connections (or a crowd of slow clients that never finish their
request) becomes a flood of threads, each with its own stack, until the
process runs out of memory.

The pool puts two hard limits in place:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop                                                        │
    │       │ submit(block=False)                                          │
    │       ▼                                                              │
    │   ┌──────────────────────────┐   full? → submit() returns False     │
    │   │  queue (queue_size)      │            → caller answers 503       │
    │   └──────────┬───────────────┘                                       │
    │              │ get()                                                 │
    │      ┌───────┼────────┬────────┐                                     │
    │      ▼       ▼        ▼        ▼                                     │
    │   Worker-0 Worker-1 Worker-2 ... Worker-(workers-1)                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    - at most `workers` connections are being handled at once
    - at most `queue_size` more are waiting

=============================================================================
FAILURE ISOLATION
=============================================================================

A task that raises is logged and counted; the worker moves on to the next
task. One broken connection never takes a worker (let alone the pool)
down with it.

=============================================================================
"""

import threading
import queue
import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Executing a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred call: func(*args, **kwargs).

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: Submission time, for queue-wait logging.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread: take a task, run it, repeat until a poison pill (None).
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(
                f"Worker {self.worker_id} completed task in {elapsed:.3f}s "
                f"(queued {waited:.3f}s)"
            )
            self.tasks_completed += 1
        except Exception as e:
            # Keep the worker alive for the next task
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

    Usage:
        pool = ThreadPool(workers=8, queue_size=64)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            ...  # overloaded
        pool.shutdown()
    """

    def __init__(self, workers: int = 8, queue_size: int = 64):
        """
        Args:
            workers: Number of worker threads (the concurrency ceiling).
            queue_size: Tasks allowed to wait for a free worker.
        """
        self.workers = workers
        self.max_queue_size = queue_size

        # queue.Queue is thread-safe: no extra locking around put/get
        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        """Spawn the worker threads. Calling twice is a no-op."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.workers} workers")
            for worker_id in range(self.workers):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = False,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue a task.

        Args:
            func: The function to execute.
            args: Positional arguments.
            kwargs: Keyword arguments.
            block: Wait for queue space instead of failing fast.
            queue_timeout: Longest wait when block=True.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
            return True
        except queue.Full:
            return False

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish before stopping workers.
            timeout: Longest time to wait for the queue to drain.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Thread pool shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        # One poison pill per worker. Blocking put: workers keep consuming,
        # so space frees up even when the queue was full.
        for _ in self._workers:
            try:
                self._task_queue.put(None, timeout=2.0)
            except queue.Full:
                break

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queued_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counters."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queued_tasks,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
