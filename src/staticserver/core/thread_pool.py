"""
=============================================================================
THREAD POOL
=============================================================================

A bounded pool of worker threads. The server submits one task per
accepted connection; a worker keeps that connection for its whole
keep-alive lifetime.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ── submit(conn) ──► [ task queue ] ──► Worker-0        │
    │                      │                         ──► Worker-1        │
    │                      │                         ──► ...             │
    │                      │                         ──► Worker-N        │
    │                      │                                               │
    │                      └── queue full → False → caller sends 503       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    min_workers   started up front
    max_workers   upper bound
    queue_size    bound on waiting connections

=============================================================================
SCALING
=============================================================================

The pool counts OUTSTANDING tasks: submitted and not yet finished,
whether still queued or already running. submit() adds a worker
whenever outstanding > workers, so every task gets a thread of its own
until max_workers is reached:

    4 workers, 6 connections arrive at once

    submit #1..#4   outstanding 1..4   no new worker
    submit #5       outstanding 5 > 4  → Worker-4
    submit #6       outstanding 6 > 5  → Worker-5

Counting is done under the pool lock at submit time, so it does not
depend on how fast workers pick tasks off the queue.

Shutdown uses the poison-pill pattern: one None per worker.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class Worker(threading.Thread):
    """
    Pulls tasks off the queue until it receives None.

    A task that raises is logged with its traceback; the worker keeps
    running. on_task_done is called after every task, failed or not.
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        on_task_done: Callable[[], None],
        idle_timeout: float = 60.0,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.on_task_done = on_task_done
        self.idle_timeout = idle_timeout
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

        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
        finally:
            self.on_task_done()

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Usage:
        pool = ThreadPool(min_workers=4, max_workers=64)
        pool.start()
        if not pool.submit(handle_connection, args=(conn,)):
            reject(conn)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 64,
        queue_size: int = 128,
        idle_timeout: float = 60.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._outstanding = 0
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.debug(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds the lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            on_task_done=self._task_done,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue a task without blocking.

        Returns:
            True if accepted, False if the queue is full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        with self._lock:
            try:
                self._task_queue.put(task, block=False)
            except queue.Full:
                return False

            self._outstanding += 1
            if self._outstanding > len(self._workers) and len(self._workers) < self.max_workers:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()
        return True

    def _task_done(self) -> None:
        with self._lock:
            self._outstanding -= 1

    def shutdown(self, timeout: float = 2.0):
        """
        Stop accepting tasks and stop the workers.

        Workers in the middle of a connection finish it first; each is
        given `timeout` seconds to exit before it is abandoned (they are
        daemon threads).
        """
        if not self._started:
            return

        self._shutdown = True

        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break

        for worker in self._workers:
            worker.shutdown()
            worker.join(timeout=timeout)

        self._workers.clear()
        self._started = False
        logger.debug("Thread pool stopped")

    @property
    def size(self) -> int:
        return len(self._workers)
