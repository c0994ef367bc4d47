"""
Progress Aggregation

Running statistics per user and training module. Totals, best score and
average score are updated incrementally inside the session-save
transaction; the streak is recomputed from the full session history after
the transaction commits.
"""

import datetime
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from axon.common.logger import app_logger
from axon.common.utils import round1, utc_date, utc_now
from axon.database.models import UserProgress
from axon.training.repository import ProgressRepository, TrainingSessionRepository

logger = app_logger.getChild("training.progress")

DEFAULT_DIFFICULTY = "medium"

Number = Union[int, float]


def calculate_streak(
    session_times: Iterable[datetime.datetime],
    today: Optional[datetime.date] = None
) -> int:
    """
    Consecutive UTC calendar days with at least one session, ending today
    or yesterday.

    The newest training day must be today or yesterday, otherwise the
    streak is broken and 0 is returned. From there days are counted
    backwards while each step is exactly one day.
    """
    today = today or utc_now().date()
    days = sorted(
        {utc_date(moment) for moment in session_times},
        reverse=True
    )
    if not days:
        return 0

    if days[0] not in (today, today - datetime.timedelta(days=1)):
        return 0

    streak = 1
    current = days[0]
    for previous in days[1:]:
        if (current - previous).days != 1:
            break
        streak += 1
        current = previous
    return streak


@dataclass
class ProgressValues:
    """Aggregate values written for one (user, module) pair."""
    total_sessions: int
    best_score: float
    average_score: float
    current_difficulty: str
    last_session_at: datetime.datetime


class ProgressAggregator:
    """
    Applies the progress recurrences for each completed session.

    Args:
        default_difficulty: Difficulty stored when neither the session nor
            the previous row names one
    """

    def __init__(self, default_difficulty: str = DEFAULT_DIFFICULTY):
        self.default_difficulty = default_difficulty
        self.progress = ProgressRepository()
        self.sessions = TrainingSessionRepository()

    def next_values(
        self,
        previous: Optional[UserProgress],
        score: Number,
        difficulty: Optional[str] = None,
        now: Optional[datetime.datetime] = None
    ) -> ProgressValues:
        """
        Aggregates after one more session.

        The average is an incremental mean rounded to one decimal; it is
        never recomputed from history.
        """
        now = now or utc_now()

        if previous is None:
            return ProgressValues(
                total_sessions=1,
                best_score=score,
                average_score=score,
                current_difficulty=difficulty or self.default_difficulty,
                last_session_at=now
            )

        old_total = previous.total_sessions or 0
        new_total = old_total + 1
        average = round1(((previous.average_score or 0) * old_total + score) / new_total)

        return ProgressValues(
            total_sessions=new_total,
            best_score=max(previous.best_score or 0, score),
            average_score=average,
            current_difficulty=difficulty or previous.current_difficulty or self.default_difficulty,
            last_session_at=now
        )

    async def record_session(
        self,
        session: AsyncSession,
        user_id: str,
        module_id: str,
        score: Number,
        difficulty: Optional[str] = None,
        now: Optional[datetime.datetime] = None
    ) -> UserProgress:
        """
        Create or update the progress row within the caller's transaction.

        The (user, module) unique constraint serializes concurrent first
        sessions: the loser of the insert race re-reads the winner's row and
        applies its update on top.
        """
        previous = await self.progress.get(session, user_id, module_id, for_update=True)

        if previous is None:
            values = self.next_values(None, score, difficulty, now)
            try:
                async with session.begin_nested():
                    row = UserProgress(user_id=user_id, module_id=module_id, **asdict(values))
                    session.add(row)
                return row
            except IntegrityError:
                logger.info(f"Progress row for user {user_id} created concurrently, updating instead")
                previous = await self.progress.get(session, user_id, module_id, for_update=True)
                if previous is None:
                    raise

        values = self.next_values(previous, score, difficulty, now)
        for name, value in asdict(values).items():
            setattr(previous, name, value)
        await session.flush()
        return previous

    async def compute_streak(
        self,
        session: AsyncSession,
        user_id: str,
        today: Optional[datetime.date] = None
    ) -> int:
        """Streak over every session the user has completed."""
        times = await self.sessions.session_times(session, user_id)
        return calculate_streak(times, today)

    async def store_streak(self, session: AsyncSession, user_id: str, module_id: str, streak: int) -> None:
        updated = await self.progress.set_streak(session, user_id, module_id, streak)
        if not updated:
            logger.warning(f"No progress row to update streak for user {user_id}, module {module_id}")
