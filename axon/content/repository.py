"""
Content Usage Repository

Data access for ``content_usage`` rows. Every method works on a caller-owned
``AsyncSession`` so it can take part in a larger transaction.
"""

from typing import Any, Dict, Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from axon.common.utils import utc_now
from axon.database.models import ContentUsage


class ContentUsageRepository:
    """Queries over a user's content usage history for one content type."""

    def __init__(self, content_type: str):
        self.content_type = content_type

    async def add(self, session: AsyncSession, user_id: str, items: Iterable[Dict[str, Any]]) -> ContentUsage:
        usage = ContentUsage(
            user_id=user_id,
            content_type=self.content_type,
            items=list(items),
            used_at=utc_now()
        )
        session.add(usage)
        await session.flush()
        return usage

    async def recent(self, session: AsyncSession, user_id: str, limit: int) -> List[ContentUsage]:
        """Newest ``limit`` usage rows, newest first."""
        result = await session.execute(
            select(ContentUsage)
            .where(ContentUsage.user_id == user_id, ContentUsage.content_type == self.content_type)
            .order_by(ContentUsage.used_at.desc(), ContentUsage.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            select(func.count(ContentUsage.id))
            .where(ContentUsage.user_id == user_id, ContentUsage.content_type == self.content_type)
        )
        return int(result.scalar_one())

    async def delete_all(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            delete(ContentUsage)
            .where(ContentUsage.user_id == user_id, ContentUsage.content_type == self.content_type)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_all_but_newest(self, session: AsyncSession, user_id: str, keep: int) -> int:
        """Delete every row except the newest ``keep``; returns the deleted count."""
        kept = await self.recent(session, user_id, keep)
        kept_ids = [usage.id for usage in kept]

        statement = delete(ContentUsage).where(
            ContentUsage.user_id == user_id,
            ContentUsage.content_type == self.content_type
        )
        if kept_ids:
            statement = statement.where(ContentUsage.id.notin_(kept_ids))

        result = await session.execute(statement.execution_options(synchronize_session=False))
        return result.rowcount or 0


def excluded_keys(usages: Iterable[ContentUsage]) -> set:
    """Union of normalized item texts across usage rows."""
    keys = set()
    for usage in usages:
        for item in usage.items or []:
            text = item.get("word") if isinstance(item, dict) else item
            if isinstance(text, str) and text.strip():
                keys.add(text.strip().lower())
    return keys
