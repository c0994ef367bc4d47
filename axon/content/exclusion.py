"""
Exclusion Tracker

Remembers which content items a user was served so that the next few
selections can avoid repeating them. Each selection appends one usage
record; the exclusion set is the union of the newest ``session_window``
records.
"""

from typing import Any, Dict, Iterable, Optional, Set, Union

from sqlalchemy.orm import sessionmaker

from axon.common.logger import app_logger
from axon.content.models import ContentType, ExclusionStats, Word
from axon.content.repository import ContentUsageRepository, excluded_keys
from axon.database.users import ensure_user

logger = app_logger.getChild("content.exclusion")

DEFAULT_SESSION_WINDOW = 3
DEFAULT_RETENTION = 10


class ExclusionTracker:
    """
    Recency exclusion for one content type.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects
        content_type: Content type the records are filed under
        session_window: Number of recent records that make up the exclusion set
        retention: Records kept by ``prune_history`` when no count is given
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        content_type: Union[ContentType, str] = ContentType.WORD,
        session_window: int = DEFAULT_SESSION_WINDOW,
        retention: int = DEFAULT_RETENTION
    ):
        self.session_factory = session_factory
        self.content_type = ContentType(content_type).value
        self.session_window = session_window
        self.retention = retention
        self.repository = ContentUsageRepository(self.content_type)

    def _window(self, session_window: Optional[int]) -> int:
        window = self.session_window if session_window is None else session_window
        if window < 0:
            raise ValueError("session_window cannot be negative")
        return window

    async def recently_used(self, user_id: str, session_window: Optional[int] = None) -> Set[str]:
        """
        Normalized texts served to the user in their most recent records.

        A failed lookup yields an empty set so selection can go ahead
        without exclusion.
        """
        window = self._window(session_window)
        try:
            async with self.session_factory() as session:
                usages = await self.repository.recent(session, user_id, window)
        except Exception as e:
            logger.error(
                f"Failed to query recent content usage, continuing without exclusion: {e}",
                extra={"data": {"user_id": user_id, "content_type": self.content_type}}
            )
            return set()
        return excluded_keys(usages)

    async def record_usage(self, user_id: str, items: Iterable[Union[Word, Dict[str, Any]]]) -> str:
        """
        Append one usage record for the served items.

        Errors propagate; callers run this as a follow-up task.

        Returns:
            Id of the new record
        """
        payload = [item.dict() if isinstance(item, Word) else dict(item) for item in items]
        async with self.session_factory() as session:
            async with session.begin():
                await ensure_user(session, user_id)
                usage = await self.repository.add(session, user_id, payload)
        logger.debug(f"Recorded {len(payload)} {self.content_type} item(s) for user {user_id}")
        return usage.id

    async def stats(self, user_id: str, session_window: Optional[int] = None) -> ExclusionStats:
        """Diagnostic counts; zeros when storage cannot be read."""
        window = self._window(session_window)
        try:
            async with self.session_factory() as session:
                total = await self.repository.count(session, user_id)
                usages = await self.repository.recent(session, user_id, window)
        except Exception as e:
            logger.error(
                f"Failed to get exclusion stats: {e}",
                extra={"data": {"user_id": user_id, "content_type": self.content_type}}
            )
            return ExclusionStats()

        return ExclusionStats(
            total_sessions=total,
            recent_sessions=len(usages),
            excluded_count=len(excluded_keys(usages))
        )

    async def clear_history(self, user_id: str) -> int:
        """Delete all of the user's records for this content type. Errors propagate."""
        async with self.session_factory() as session:
            async with session.begin():
                deleted = await self.repository.delete_all(session, user_id)
        logger.info(
            f"Cleared {deleted} usage record(s)",
            extra={"data": {"user_id": user_id, "content_type": self.content_type}}
        )
        return deleted

    async def prune_history(self, user_id: str, keep: Optional[int] = None) -> int:
        """Keep only the newest ``keep`` records (default: retention); returns the deleted count."""
        keep = self.retention if keep is None else keep
        if keep < 0:
            raise ValueError("keep cannot be negative")

        async with self.session_factory() as session:
            async with session.begin():
                deleted = await self.repository.delete_all_but_newest(session, user_id, keep)
        if deleted:
            logger.info(f"Pruned {deleted} usage record(s) for user {user_id}, kept {keep}")
        return deleted
