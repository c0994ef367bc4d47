"""
Training Session Service

Persists completed exercise attempts and keeps per-module progress current.

Saving a session is one transaction: the module is found or created, the
session row is written, the served content is recorded and the progress
row is upserted. After the commit the streak is recomputed from the user's
whole session history and written back as a follow-up task, so a failing
streak write never affects the saved session.
"""

import datetime
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from axon.common.error_handling import PersistenceError, map_integrity_error
from axon.common.logger import app_logger, log_execution_time
from axon.common.tasks import FollowUpTaskQueue
from axon.common.utils import round_int, utc_now
from axon.content.models import ContentType
from axon.content.repository import ContentUsageRepository
from axon.database.models import TrainingModule, TrainingSession, UserProgress
from axon.database.users import ensure_user
from axon.training.modules import get_or_create_module, list_active_modules
from axon.training.progress import ProgressAggregator, calculate_streak
from axon.training.schemas import (
    ModuleProgress, ProgressOverview, ProgressSummary, SaveSessionRequest,
    SaveSessionResponse, SessionSummary
)
from axon.training.scoring import calculate_accuracy, performance_level

logger = app_logger.getChild("training.service")

SESSION_SAVED_MESSAGE = "Session saved successfully"
SESSION_STATUS_COMPLETED = "completed"


@dataclass
class SavedSession:
    """Rows produced by one committed save."""
    session: TrainingSession
    progress: UserProgress
    module: TrainingModule


class TrainingSessionService:
    """
    Session persistence and progress reporting.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects
        task_queue: Queue running the post-commit streak write
        aggregator: Progress recurrences
        clock: Returns the current naive UTC time
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        task_queue: FollowUpTaskQueue,
        aggregator: Optional[ProgressAggregator] = None,
        clock: Callable[[], datetime.datetime] = utc_now
    ):
        self.session_factory = session_factory
        self.task_queue = task_queue
        self.aggregator = aggregator or ProgressAggregator()
        self.clock = clock
        self.content_usage = ContentUsageRepository(ContentType.WORD.value)

    @log_execution_time(logger)
    async def save_session(self, user_id: str, request: SaveSessionRequest) -> SaveSessionResponse:
        saved = await self._persist(user_id, request)

        previous_current = saved.progress.current_streak or 0
        previous_longest = saved.progress.longest_streak or 0
        streak = await self._compute_streak(user_id)
        if streak is None:
            streak = previous_current
        else:
            self._schedule_streak_write(user_id, saved.module.id, streak)

        return SaveSessionResponse(
            message=SESSION_SAVED_MESSAGE,
            session=SessionSummary(
                id=saved.session.id,
                score=saved.session.score,
                accuracy=saved.session.accuracy,
                performance_level=saved.session.performance_level,
                created_at=saved.session.created_at
            ),
            progress=ProgressSummary(
                total_sessions=saved.progress.total_sessions,
                best_score=saved.progress.best_score,
                average_score=saved.progress.average_score,
                current_streak=streak,
                longest_streak=max(previous_longest, streak)
            )
        )

    async def _persist(self, user_id: str, request: SaveSessionRequest) -> SavedSession:
        results = request.results
        configuration = request.configuration

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await ensure_user(session, user_id)
                    module = await get_or_create_module(
                        session, request.training_type, configuration.to_payload()
                    )

                    training_session = TrainingSession(
                        user_id=user_id,
                        module_id=module.id,
                        configuration=configuration.to_payload(),
                        results=results.to_payload(),
                        score=results.score,
                        accuracy=calculate_accuracy(results.correct_count, results.incorrect_count),
                        duration=round_int(results.time_spent),
                        performance_level=performance_level(results.score).value,
                        status=SESSION_STATUS_COMPLETED,
                        created_at=self.clock()
                    )
                    await self.aggregator.sessions.add(session, training_session)

                    if request.content_used:
                        await self.content_usage.add(
                            session, user_id, [item.to_payload() for item in request.content_used]
                        )

                    progress = await self.aggregator.record_session(
                        session, user_id, module.id, results.score, configuration.difficulty,
                        now=training_session.created_at
                    )
        except IntegrityError as e:
            error = map_integrity_error(e, context={"user_id": user_id, "training_type": request.training_type})
            logger.error(f"Session save rejected by storage: {error.message}: {e.orig}")
            raise error
        except SQLAlchemyError as e:
            logger.error(f"Failed to save training session for user {user_id}: {e}")
            raise PersistenceError(
                "Failed to save training session", cause=e, context={"user_id": user_id}
            )

        logger.info(
            f"Saved {module.slug} session {training_session.id} for user {user_id}: "
            f"score={training_session.score}, level={training_session.performance_level}"
        )
        return SavedSession(session=training_session, progress=progress, module=module)

    async def _compute_streak(self, user_id: str) -> Optional[int]:
        try:
            async with self.session_factory() as session:
                return await self.aggregator.compute_streak(session, user_id, self.clock().date())
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to calculate streak: {e}",
                extra={"data": {"user_id": user_id}}
            )
            return None

    def _schedule_streak_write(self, user_id: str, module_id: str, streak: int) -> None:
        async def write_streak():
            async with self.session_factory() as session:
                async with session.begin():
                    await self.aggregator.store_streak(session, user_id, module_id, streak)

        self.task_queue.submit(
            "update_streak",
            write_streak,
            context={"user_id": user_id, "module_id": module_id}
        )

    async def progress_overview(self, user_id: str) -> ProgressOverview:
        """Per-module progress for the dashboard with a freshly computed streak."""
        async with self.session_factory() as session:
            rows = await self.aggregator.progress.list_with_modules(session, user_id)
            times = await self.aggregator.sessions.session_times(session, user_id)

        streak = calculate_streak(times, self.clock().date())
        modules: List[ModuleProgress] = [
            ModuleProgress(
                slug=module.slug,
                name=module.name,
                total_sessions=progress.total_sessions,
                best_score=progress.best_score,
                average_score=progress.average_score,
                current_streak=streak,
                longest_streak=max(progress.longest_streak or 0, streak),
                current_difficulty=progress.current_difficulty,
                last_session_at=progress.last_session_at
            )
            for progress, module in rows
        ]
        return ProgressOverview(total_sessions=len(times), current_streak=streak, modules=modules)

    async def list_modules(self) -> List[TrainingModule]:
        async with self.session_factory() as session:
            return await list_active_modules(session)
