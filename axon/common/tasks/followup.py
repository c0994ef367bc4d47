"""
Follow-up Task Queue

Side effects such as recording served content or refreshing a streak run
after the primary work has finished. Each one is submitted here as a named
coroutine factory and executed as a tracked asyncio task with its own retry
policy. A task that still fails after its last attempt is logged and kept on
``failures``; the error never reaches the code that submitted it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from axon.common.error_handling import log_error, retry
from axon.common.logger import app_logger

logger = app_logger.getChild("tasks.followup")

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass
class TaskFailure:
    """A follow-up task that exhausted its retries."""
    name: str
    error: Exception
    attempts: int
    context: Dict[str, Any] = field(default_factory=dict)
    failed_at: datetime = field(default_factory=datetime.utcnow)


class FollowUpTaskQueue:
    """
    Runs best-effort follow-up work outside the request that produced it.

    Args:
        max_retries: Retries after the first attempt
        retry_delay: Initial delay between attempts in seconds
        backoff_factor: Multiplier applied to the delay after each retry
    """

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        backoff_factor: float = 2.0
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.backoff_factor = backoff_factor
        self.failures: List[TaskFailure] = []
        self._pending_tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._pending_tasks)

    def submit(
        self,
        name: str,
        factory: TaskFactory,
        context: Optional[Dict[str, Any]] = None
    ) -> asyncio.Task:
        """
        Schedule a follow-up task on the running event loop.

        Args:
            name: Short task name used in logs
            factory: Zero-argument callable returning a fresh awaitable per attempt
            context: Identifiers logged with a failure (user id, content type...)

        Returns:
            The scheduled asyncio task
        """
        if self._closed:
            raise RuntimeError("Follow-up task queue has been shut down")

        task = asyncio.get_running_loop().create_task(
            self._run(name, factory, context or {}),
            name=f"followup:{name}"
        )
        self._track_task(task)
        return task

    async def _run(self, name: str, factory: TaskFactory, context: Dict[str, Any]) -> None:
        attempts = 0

        @retry(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            backoff_factor=self.backoff_factor,
            ignore_exceptions=(asyncio.CancelledError,)
        )
        async def attempt():
            nonlocal attempts
            attempts += 1
            return await factory()

        try:
            await attempt()
            logger.debug(f"Follow-up task {name} completed after {attempts} attempt(s)")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures.append(TaskFailure(name=name, error=e, attempts=attempts, context=dict(context)))
            log_error(
                e,
                level=logging.ERROR,
                context={"task": name, "attempts": attempts, **context},
                log=logger
            )

    def _track_task(self, task: asyncio.Task) -> None:
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def drain(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, has finished."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)

    async def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop accepting work and wait for outstanding tasks.

        Tasks still running after ``timeout`` seconds are cancelled.
        """
        self._closed = True
        if not self._pending_tasks:
            return

        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cancelling {self.pending} follow-up task(s) still running at shutdown")
            for task in list(self._pending_tasks):
                task.cancel()
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)
