"""
=============================================================================
CONNECTION WORKER POOL
=============================================================================

A fixed set of worker threads fed by a BOUNDED queue of accepted
connections.

=============================================================================
WHY A POOL, AND WHY BOUNDED
=============================================================================

Thread-per-connection has no upper limit: a burst of 10,000 clients means
10,000 threads. A pool caps the threads, and the queue in front of it caps
how much work can wait:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop                                                       │
    │       │                                                              │
    │       │ submit(process, conn)                                       │
    │       ▼                                                              │
    │   ┌───────────────────────────────────┐                             │
    │   │ Queue(maxsize=queue_size)         │                             │
    │   │ [conn] [conn] [conn] ...          │                             │
    │   └──────────┬────────────────────────┘                             │
    │              │ get()                                                │
    │     ┌────────┼────────┬────────┐                                    │
    │     ▼        ▼        ▼        ▼                                    │
    │  Worker-0 Worker-1 Worker-2 ... Worker-(N-1)                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
OVERFLOW POLICY
=============================================================================

When the queue is full, ``overflow`` decides what submit() does:

    "reject"  → return False at once; the caller answers 503 and closes
    "block"   → wait up to queue_timeout for a free slot, then return False

Blocking pushes back on the accept loop, so new clients wait in the OS
listen backlog instead of in our memory.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, used for stats and debugging."""
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Running a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred call: "run this function with these arguments later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: When the task entered the queue.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that runs tasks from the shared queue.

        ┌─────────────────────────────────────────────────────────────┐
        │   1. get() a task (wakes every idle_timeout to check stop) │
        │   2. None is the poison pill → exit                        │
        │   3. run it; exceptions are logged, never fatal            │
        │   4. task_done() and loop                                  │
        └─────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

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

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            # One bad connection must not take the worker down
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-size thread pool with a bounded queue.

        pool = ThreadPool(workers=10, queue_size=100, overflow="reject")
        pool.start()

        if not pool.submit(handle_connection, args=(conn,)):
            reject(conn)              # queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        workers: int = 10,
        queue_size: int = 100,
        overflow: str = "reject",
        queue_timeout: Optional[float] = 5.0,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            workers: Number of worker threads, fixed for the pool's life.
            queue_size: Maximum number of tasks waiting for a worker.
            overflow: "reject" or "block"; see the module docstring.
            queue_timeout: Longest wait for a slot under "block".
            idle_timeout: How often idle workers check for shutdown.
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        if overflow not in ("block", "reject"):
            raise ValueError(f"Unknown overflow policy: {overflow}")

        self.num_workers = workers
        self.max_queue_size = queue_size
        self.overflow = overflow
        self.queue_timeout = queue_timeout
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

        self.tasks_rejected = 0

    def start(self):
        """Start all workers. Idempotent."""
        with self._lock:
            if self._started:
                return

            logger.info(
                f"Starting thread pool with {self.num_workers} workers "
                f"(queue {self.max_queue_size}, overflow={self.overflow})"
            )
            for worker_id in range(self.num_workers):
                worker = Worker(self._task_queue, worker_id, self.idle_timeout)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: dict = None) -> bool:
        """
        Queue a task.

        Returns:
            True if queued, False if the queue was full (after waiting up
            to queue_timeout under "block").

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        block = self.overflow == "block"

        try:
            self._task_queue.put(task, block=block, timeout=self.queue_timeout if block else None)
            return True
        except queue.Full:
            self.tasks_rejected += 1
            logger.warning(f"Task queue full ({self.max_queue_size}), rejecting")
            return False

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks run first. If False, they are dropped.
            timeout: Upper bound on the wait for queued tasks.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)
        else:
            self._drain_queue()

        for worker in self._workers:
            worker.shutdown()
        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break  # Workers still see the shutdown flag

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    def _drain_queue(self):
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    # =========================================================================
    # STATS
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._started and not self._shutdown

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queued(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts for logging and tests."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queued,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
                "rejected": self.tasks_rejected,
            },
        }
