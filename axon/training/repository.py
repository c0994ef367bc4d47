"""
Training Repositories

Data access for training sessions and per-module progress rows. Methods
take a caller-owned ``AsyncSession`` so writes join the caller's
transaction.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from axon.common.utils import utc_now
from axon.database.models import TrainingModule, TrainingSession, UserProgress


class TrainingSessionRepository:
    """Append-only store of completed sessions."""

    async def add(self, session: AsyncSession, training_session: TrainingSession) -> TrainingSession:
        session.add(training_session)
        await session.flush()
        return training_session

    async def session_times(self, session: AsyncSession, user_id: str) -> List[datetime]:
        """Creation times of all the user's sessions, newest first."""
        result = await session.execute(
            select(TrainingSession.created_at)
            .where(TrainingSession.user_id == user_id)
            .order_by(TrainingSession.created_at.desc())
        )
        return list(result.scalars().all())


class ProgressRepository:
    """Per-user, per-module progress rows."""

    async def get(
        self,
        session: AsyncSession,
        user_id: str,
        module_id: str,
        for_update: bool = False
    ) -> Optional[UserProgress]:
        statement = select(UserProgress).where(
            UserProgress.user_id == user_id,
            UserProgress.module_id == module_id
        )
        if for_update:
            statement = statement.with_for_update()
        result = await session.execute(statement)
        return result.scalar_one_or_none()

    async def list_with_modules(
        self,
        session: AsyncSession,
        user_id: str
    ) -> List[Tuple[UserProgress, TrainingModule]]:
        result = await session.execute(
            select(UserProgress, TrainingModule)
            .join(TrainingModule, UserProgress.module_id == TrainingModule.id)
            .where(UserProgress.user_id == user_id)
            .order_by(TrainingModule.name)
        )
        return [(progress, module) for progress, module in result.all()]

    async def set_streak(self, session: AsyncSession, user_id: str, module_id: str, streak: int) -> int:
        """
        Store the current streak and raise the longest streak if exceeded.

        Returns:
            Number of rows updated
        """
        result = await session.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.module_id == module_id)
            .values(
                current_streak=streak,
                longest_streak=case(
                    (UserProgress.longest_streak < streak, streak),
                    else_=UserProgress.longest_streak
                ),
                updated_at=utc_now()
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
