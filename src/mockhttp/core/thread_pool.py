"""
=============================================================================
THREAD POOL
=============================================================================

Runs one task per client connection on a bounded set of worker threads.

    SocketServer.accept()
          │
          ▼
    pool.submit(handle_connection, args=(conn,))
          │
          ▼
    ┌─────────────────────────────────────┐
    │  Task queue (bounded, queue_size)   │
    └──────┬──────────┬──────────┬────────┘
           ▼          ▼          ▼
       Worker-0   Worker-1   Worker-N   (min_workers .. max_workers)

Handlers are I/O bound, and ``/delay/{seconds}`` only parks the worker
running it, so other connections keep being served by the rest of the
pool. When every worker is busy and tasks are waiting, the pool grows by
one worker, up to ``max_workers``.

=============================================================================
BACKPRESSURE AND SHUTDOWN
=============================================================================

``submit(..., block=False)`` returns False when the queue is full; the
server answers 503 "Server overloaded" instead of queueing without bound.

Shutdown puts one ``None`` (poison pill) per worker on the queue; a worker
that takes it exits its loop.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: ``func(*args, **kwargs)``."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class Worker(threading.Thread):
    """
    Pulls tasks off the queue until it receives a poison pill.

    Exceptions raised by a task are logged; they never kill
    the worker.
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 60.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

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
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")
        except Exception as e:
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=32, queue_size=100)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,), block=False):
            ...  # queue full, reject

        pool.shutdown(wait=True, timeout=5.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid pool size: min_workers={min_workers}, max_workers={max_workers}"
            )

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start ``min_workers`` threads. No-op if already started."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue ``func(*args, **kwargs)`` for execution.

        Args:
            func: The function to execute.
            args: Positional arguments.
            kwargs: Keyword arguments.
            block: Wait for queue space instead of failing fast.
            queue_timeout: Upper bound on that wait.

        Returns:
            True if the task was queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning("Task queue full, rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when more tasks are waiting than workers are idle."""
        with self._lock:
            idle = sum(1 for w in self._workers if w.state != WorkerState.BUSY)
            if (
                self._task_queue.qsize() > idle
                and len(self._workers) < self.max_workers
            ):
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish before stopping workers.
            timeout: Bound on that wait; pending tasks are abandoned after it.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while not self._task_queue.empty():
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")
