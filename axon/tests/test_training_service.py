"""
Tests for saving training sessions and reporting progress.
"""

import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from axon.common.error_handling import DuplicateRecordError
from axon.common.tasks import FollowUpTaskQueue
from axon.database.models import ContentUsage, TrainingSession, UserProgress
from axon.training.progress import ProgressAggregator
from axon.training.schemas import SaveSessionRequest
from axon.training.service import TrainingSessionService
from axon.tests.conftest import TEST_USER_ID


class Clock:
    """Settable clock returning naive UTC datetimes."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now += datetime.timedelta(**delta)


def save_request(score=80, **overrides) -> SaveSessionRequest:
    body = {
        "trainingType": "word-memory",
        "configuration": {"difficulty": "medium", "wordCount": 20, "timeLimit": 60},
        "results": {
            "score": score,
            "timeSpent": 95.6,
            "correctCount": 8,
            "incorrectCount": 2,
            "missedCount": 12,
        },
    }
    body.update(overrides)
    return SaveSessionRequest.parse_obj(body)


@pytest.fixture
def clock():
    return Clock(datetime.datetime(2024, 12, 1, 9, 30))


@pytest.fixture
def service(session_factory, task_queue, clock):
    return TrainingSessionService(session_factory, task_queue, clock=clock)


async def count_rows(session_factory, model):
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_first_session(service, task_queue, clock):
    response = await service.save_session(TEST_USER_ID, save_request(score=80))
    await task_queue.drain()

    assert response.message == "Session saved successfully"
    assert response.session.score == 80
    assert response.session.accuracy == 80
    assert response.session.performance_level == "good"
    assert response.session.created_at == clock.now
    assert response.progress.total_sessions == 1
    assert response.progress.best_score == 80
    assert response.progress.average_score == 80
    assert response.progress.current_streak == 1
    assert response.progress.longest_streak == 1
    assert task_queue.failures == []


@pytest.mark.asyncio
async def test_session_row_contents(service, session_factory, task_queue):
    request = save_request(
        configuration={"difficulty": "hard", "wordCount": 25, "timeLimit": 45, "sequential": True}
    )
    response = await service.save_session(TEST_USER_ID, request)
    await task_queue.drain()

    async with session_factory() as session:
        row = await session.get(TrainingSession, response.session.id)

    assert row.user_id == TEST_USER_ID
    assert row.duration == 96
    assert row.status == "completed"
    assert row.configuration == {"difficulty": "hard", "wordCount": 25, "timeLimit": 45, "sequential": True}
    assert row.results["missedCount"] == 12


@pytest.mark.asyncio
async def test_progress_accumulates(service, task_queue, clock):
    for score in (80, 90, 90):
        response = await service.save_session(TEST_USER_ID, save_request(score=score))
        await task_queue.drain()
        clock.advance(minutes=5)

    assert response.progress.total_sessions == 3
    assert response.progress.best_score == 90
    assert response.progress.average_score == 86.7
    assert response.progress.current_streak == 1


@pytest.mark.asyncio
async def test_accuracy_absent_without_counts(service, task_queue):
    request = save_request(results={"score": 50, "timeSpent": 30})
    response = await service.save_session(TEST_USER_ID, request)
    await task_queue.drain()

    assert response.session.accuracy is None
    assert response.session.performance_level == "poor"


@pytest.mark.asyncio
async def test_accuracy_zero_when_nothing_attempted(service, task_queue):
    request = save_request(results={"score": 0, "timeSpent": 30, "correctCount": 0, "incorrectCount": 0})
    response = await service.save_session(TEST_USER_ID, request)
    await task_queue.drain()

    assert response.session.accuracy == 0


@pytest.mark.asyncio
async def test_content_used_recorded(service, session_factory, task_queue):
    request = save_request(contentUsed=[
        {"word": "apple", "category": "food", "length": 5},
        {"word": "river", "category": "nature", "length": 5},
    ])
    await service.save_session(TEST_USER_ID, request)
    await task_queue.drain()

    async with session_factory() as session:
        usages = (await session.execute(select(ContentUsage))).scalars().all()

    assert len(usages) == 1
    assert usages[0].content_type == "word"
    assert [item["word"] for item in usages[0].items] == ["apple", "river"]


@pytest.mark.asyncio
async def test_streak_over_consecutive_days(service, task_queue, clock):
    streaks = []
    for _ in range(3):
        response = await service.save_session(TEST_USER_ID, save_request())
        await task_queue.drain()
        streaks.append((response.progress.current_streak, response.progress.longest_streak))
        clock.advance(days=1)

    assert streaks == [(1, 1), (2, 2), (3, 3)]


@pytest.mark.asyncio
async def test_streak_broken_after_gap(service, task_queue, clock):
    for _ in range(2):
        await service.save_session(TEST_USER_ID, save_request())
        await task_queue.drain()
        clock.advance(days=1)

    clock.advance(days=2)
    response = await service.save_session(TEST_USER_ID, save_request())
    await task_queue.drain()

    assert response.progress.current_streak == 1
    assert response.progress.longest_streak == 2


@pytest.mark.asyncio
async def test_streak_spans_modules(service, task_queue, clock):
    await service.save_session(TEST_USER_ID, save_request())
    await task_queue.drain()
    clock.advance(days=1)

    response = await service.save_session(
        TEST_USER_ID, save_request(trainingType="pattern recognition")
    )
    await task_queue.drain()

    assert response.progress.total_sessions == 1
    assert response.progress.current_streak == 2


class FailingStreakWrite(ProgressAggregator):
    async def store_streak(self, session, user_id, module_id, streak):
        raise OperationalError("UPDATE user_progress", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_streak_write_failure_is_isolated(session_factory, clock):
    queue = FollowUpTaskQueue(max_retries=1, retry_delay=0.01)
    service = TrainingSessionService(session_factory, queue, aggregator=FailingStreakWrite(), clock=clock)

    response = await service.save_session(TEST_USER_ID, save_request())
    await queue.drain()

    assert response.progress.current_streak == 1
    assert [failure.name for failure in queue.failures] == ["update_streak"]
    assert await count_rows(session_factory, TrainingSession) == 1


class FailingStreakRead(ProgressAggregator):
    async def compute_streak(self, session, user_id, today=None):
        raise OperationalError("SELECT created_at", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_streak_read_failure_falls_back(session_factory, task_queue, clock):
    service = TrainingSessionService(session_factory, task_queue, aggregator=FailingStreakRead(), clock=clock)

    response = await service.save_session(TEST_USER_ID, save_request())
    await task_queue.drain()

    assert response.progress.current_streak == 0
    assert response.progress.longest_streak == 0
    assert task_queue.pending == 0


class DuplicateInsert(ProgressAggregator):
    def __init__(self):
        super().__init__()
        original_add = self.sessions.add

        async def add(session, training_session):
            await original_add(session, training_session)
            raise IntegrityError(
                "INSERT INTO training_sessions", {}, Exception("UNIQUE constraint failed: training_sessions.id")
            )

        self.sessions.add = add


@pytest.mark.asyncio
async def test_integrity_failure_rolls_back(session_factory, task_queue, clock):
    service = TrainingSessionService(session_factory, task_queue, aggregator=DuplicateInsert(), clock=clock)

    with pytest.raises(DuplicateRecordError):
        await service.save_session(TEST_USER_ID, save_request())

    assert await count_rows(session_factory, TrainingSession) == 0
    assert await count_rows(session_factory, UserProgress) == 0


@pytest.mark.asyncio
async def test_progress_overview(service, task_queue, clock):
    await service.save_session(TEST_USER_ID, save_request(score=70))
    await task_queue.drain()
    clock.advance(hours=1)
    await service.save_session(TEST_USER_ID, save_request(score=95, trainingType="Pattern Recognition"))
    await task_queue.drain()

    overview = await service.progress_overview(TEST_USER_ID)

    assert overview.total_sessions == 2
    assert overview.current_streak == 1
    assert {module.slug for module in overview.modules} == {"word-memory", "pattern-recognition"}
    pattern = next(module for module in overview.modules if module.slug == "pattern-recognition")
    assert pattern.name == "Pattern Recognition"
    assert pattern.best_score == 95
    assert pattern.current_difficulty == "medium"


@pytest.mark.asyncio
async def test_progress_overview_empty(service):
    overview = await service.progress_overview("nobody")

    assert overview.total_sessions == 0
    assert overview.current_streak == 0
    assert overview.modules == []


@pytest.mark.asyncio
async def test_list_modules(service, task_queue):
    await service.save_session(TEST_USER_ID, save_request())
    await task_queue.drain()

    modules = await service.list_modules()

    assert [module.slug for module in modules] == ["word-memory"]
    assert modules[0].category == "memory"
