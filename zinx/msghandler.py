"""Routing of requests to routers, directly or through a pool of workers."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Dict, List, Optional

from zinx.router import BaseRouter, Request

logger = logging.getLogger(__name__)

_STOP = object()


class DuplicateRouteError(ValueError):
    """A router is already registered for a message id."""


class MsgHandler:
    """Maps message ids to routers and runs them.

    Requests sent to the task queue are spread over ``worker_pool_size``
    worker threads by connection id, so one connection's requests are
    always handled in order by the same worker.
    """

    def __init__(self, worker_pool_size: int = 10, max_worker_task_len: int = 1024) -> None:
        if worker_pool_size < 0:
            raise ValueError("worker_pool_size must not be negative")
        self.apis: Dict[int, BaseRouter] = {}
        self.worker_pool_size = worker_pool_size
        self.max_worker_task_len = max_worker_task_len
        self.task_queues: List["queue.Queue[object]"] = []
        self._workers: List[threading.Thread] = []
        self._lock = threading.Lock()

    def do_msg_handler(self, request: Request) -> None:
        """Run the router registered for the request's message id.

        Requests with no registered router are logged and dropped.
        """
        router: Optional[BaseRouter] = self.apis.get(request.msg_id)
        if router is None:
            logger.warning("api msg_id = %d not found", request.msg_id)
            return
        router.pre_handle(request)
        router.handle(request)
        router.post_handle(request)

    def add_router(self, msg_id: int, router: BaseRouter) -> None:
        """Register ``router`` for ``msg_id``; an id may be registered once."""
        if msg_id in self.apis:
            raise DuplicateRouteError(f"repeated api, msg_id = {msg_id}")
        self.apis[msg_id] = router
        logger.info("add api msg_id = %d success", msg_id)

    @property
    def running(self) -> bool:
        """Whether the worker pool is running."""
        return bool(self._workers)

    def start_worker_pool(self) -> None:
        """Start one worker thread per pool slot, each with its own queue."""
        with self._lock:
            if self._workers:
                raise RuntimeError("worker pool is already running")
            self.task_queues = [
                queue.Queue(maxsize=self.max_worker_task_len)
                for _ in range(self.worker_pool_size)
            ]
            for worker_id, task_queue in enumerate(self.task_queues):
                worker = threading.Thread(
                    target=self._run_worker,
                    args=(worker_id, task_queue),
                    name=f"zinx-worker-{worker_id}",
                    daemon=True,
                )
                self._workers.append(worker)
                worker.start()

    def stop_worker_pool(self) -> None:
        """Let every worker finish its queued requests, then stop it."""
        with self._lock:
            workers, task_queues = self._workers, self.task_queues
            self._workers, self.task_queues = [], []
        for task_queue in task_queues:
            task_queue.put(_STOP)
        for worker in workers:
            worker.join()

    def send_to_task_queue(self, request: Request) -> None:
        """Queue a request for the worker chosen by its connection id.

        Blocks while that worker's queue is full.
        """
        task_queues = self.task_queues
        if not task_queues:
            raise RuntimeError("worker pool is not running")
        worker_id = request.connection.conn_id % len(task_queues)
        logger.debug("worker id = %d get request msg_id = %d", worker_id, request.msg_id)
        task_queues[worker_id].put(request)

    def _run_worker(self, worker_id: int, task_queue: "queue.Queue[object]") -> None:
        logger.info("worker id = %d is started", worker_id)
        while True:
            request = task_queue.get()
            if request is _STOP:
                break
            try:
                self.do_msg_handler(request)  # type: ignore[arg-type]
            except Exception:
                logger.exception("worker %d failed to handle a request", worker_id)
        logger.info("worker id = %d is stopped", worker_id)