import datetime
import unittest
from types import SimpleNamespace

import pytest

from axon.common.utils import round1
from axon.database.models import TrainingModule, User
from axon.training.progress import ProgressAggregator, calculate_streak

TODAY = datetime.date(2024, 12, 3)


def at(day: int, hour: int = 12) -> datetime.datetime:
    return datetime.datetime(2024, 12, day, hour, 0)


class TestCalculateStreak(unittest.TestCase):

    def test_consecutive_days(self):
        self.assertEqual(calculate_streak([at(3), at(2), at(1)], TODAY), 3)

    def test_gap_breaks_streak(self):
        self.assertEqual(calculate_streak([at(3), at(1)], TODAY), 1)

    def test_no_session_today_or_yesterday(self):
        self.assertEqual(calculate_streak([at(1)], TODAY), 0)

    def test_streak_ending_yesterday_still_counts(self):
        self.assertEqual(calculate_streak([at(2), at(1)], TODAY), 2)

    def test_several_sessions_per_day_count_once(self):
        times = [at(3, 20), at(3, 8), at(2, 23), at(2, 1)]
        self.assertEqual(calculate_streak(times, TODAY), 2)

    def test_no_sessions(self):
        self.assertEqual(calculate_streak([], TODAY), 0)

    def test_aware_timestamps_use_utc_date(self):
        tz = datetime.timezone(datetime.timedelta(hours=-5))
        # 21:00 at UTC-5 on Dec 2 is Dec 3 in UTC
        late_evening = datetime.datetime(2024, 12, 2, 21, 0, tzinfo=tz)
        self.assertEqual(calculate_streak([late_evening, at(2)], TODAY), 2)


class TestNextValues(unittest.TestCase):

    def setUp(self):
        self.aggregator = ProgressAggregator()

    def apply(self, scores, difficulty=None):
        previous = None
        for score in scores:
            values = self.aggregator.next_values(previous, score, difficulty)
            previous = SimpleNamespace(**values.__dict__)
        return previous

    def test_first_session_seeds_values(self):
        values = self.aggregator.next_values(None, 72, "hard")
        self.assertEqual(values.total_sessions, 1)
        self.assertEqual(values.best_score, 72)
        self.assertEqual(values.average_score, 72)
        self.assertEqual(values.current_difficulty, "hard")

    def test_incremental_average(self):
        progress = self.apply([80, 90, 90])
        self.assertEqual(progress.total_sessions, 3)
        self.assertEqual(progress.average_score, 86.7)
        self.assertEqual(progress.best_score, 90)

    def test_average_matches_rounded_mean(self):
        scores = [55, 70, 85, 100, 40]
        progress = self.apply(scores)
        self.assertEqual(progress.average_score, round1(sum(scores) / len(scores)))
        self.assertGreaterEqual(progress.best_score, progress.average_score)

    def test_difficulty_falls_back(self):
        previous = SimpleNamespace(total_sessions=1, best_score=50, average_score=50, current_difficulty="easy")
        self.assertEqual(self.aggregator.next_values(previous, 60, None).current_difficulty, "easy")
        self.assertEqual(self.aggregator.next_values(None, 60, None).current_difficulty, "medium")
        self.assertEqual(self.aggregator.next_values(previous, 60, "hard").current_difficulty, "hard")


@pytest.mark.asyncio
async def test_record_session_upserts_single_row(session_factory):
    aggregator = ProgressAggregator()

    async with session_factory() as session:
        async with session.begin():
            session.add(User(id="user-1"))
            module = TrainingModule(slug="word-memory", name="Word Memory",
                                    description="Word Memory training module", category="memory")
            session.add(module)
        module_id = module.id

    for score in (80, 90, 90):
        async with session_factory() as session:
            async with session.begin():
                progress = await aggregator.record_session(session, "user-1", module_id, score, "medium")

    assert progress.total_sessions == 3
    assert progress.average_score == 86.7
    assert progress.best_score == 90

    async with session_factory() as session:
        async with session.begin():
            await aggregator.store_streak(session, "user-1", module_id, 4)
        async with session.begin():
            await aggregator.store_streak(session, "user-1", module_id, 1)

    async with session_factory() as session:
        stored = await aggregator.progress.get(session, "user-1", module_id)
    assert stored.current_streak == 1
    assert stored.longest_streak == 4


@pytest.mark.asyncio
async def test_second_session_updates_stored_row(session_factory):
    aggregator = ProgressAggregator()

    async with session_factory() as session:
        async with session.begin():
            session.add(User(id="user-2"))
            module = TrainingModule(slug="word-memory", name="Word Memory",
                                    description="Word Memory training module", category="memory")
            session.add(module)
        module_id = module.id

    async with session_factory() as session:
        async with session.begin():
            await aggregator.record_session(session, "user-2", module_id, 80, "hard", now=at(2))
    async with session_factory() as session:
        async with session.begin():
            await aggregator.record_session(session, "user-2", module_id, 90, None, now=at(3))

    async with session_factory() as session:
        stored = await aggregator.progress.get(session, "user-2", module_id)
    assert stored.total_sessions == 2
    assert stored.average_score == 85.0
    assert stored.best_score == 90
    assert stored.current_difficulty == "hard"
    assert stored.last_session_at == at(3)
