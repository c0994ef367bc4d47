"""
Tests for the follow-up task queue.
"""

import asyncio

import pytest

from axon.common.tasks import FollowUpTaskQueue


class Flaky:
    """Fails a fixed number of times before succeeding."""

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"attempt {self.calls} failed")
        return "done"


@pytest.mark.asyncio
async def test_successful_task():
    queue = FollowUpTaskQueue(max_retries=2, retry_delay=0.01)
    job = Flaky(failures=0)

    queue.submit("job", job)
    await queue.drain()

    assert job.calls == 1
    assert queue.failures == []
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_retries_until_success():
    queue = FollowUpTaskQueue(max_retries=2, retry_delay=0.01)
    job = Flaky(failures=2)

    queue.submit("job", job)
    await queue.drain()

    assert job.calls == 3
    assert queue.failures == []


@pytest.mark.asyncio
async def test_failure_recorded_after_last_attempt():
    queue = FollowUpTaskQueue(max_retries=1, retry_delay=0.01)
    job = Flaky(failures=10)

    task = queue.submit("job", job, context={"user_id": "u1"})
    await queue.drain()

    assert task.done() and task.exception() is None
    assert job.calls == 2
    assert len(queue.failures) == 1
    failure = queue.failures[0]
    assert failure.name == "job"
    assert failure.attempts == 2
    assert failure.context == {"user_id": "u1"}
    assert isinstance(failure.error, RuntimeError)


@pytest.mark.asyncio
async def test_drain_waits_for_tasks_submitted_meanwhile():
    queue = FollowUpTaskQueue(retry_delay=0.01)
    order = []

    async def second():
        order.append("second")

    async def first():
        await asyncio.sleep(0.01)
        order.append("first")
        queue.submit("second", second)

    queue.submit("first", first)
    await queue.drain()

    assert order == ["first", "second"]
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_slow_tasks():
    queue = FollowUpTaskQueue(retry_delay=0.01)
    finished = []

    async def slow():
        await asyncio.sleep(10)
        finished.append(True)

    queue.submit("slow", slow)
    await queue.shutdown(timeout=0.05)

    assert finished == []
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_submit_after_shutdown_rejected():
    queue = FollowUpTaskQueue()
    await queue.shutdown()

    async def job():
        return None

    with pytest.raises(RuntimeError):
        queue.submit("late", job)
