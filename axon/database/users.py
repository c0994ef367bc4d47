"""
User row helpers.

Identity comes from the external session provider, so a user may act
before any row exists for them. Writes that reference a user call
``ensure_user`` first.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from axon.database.models import User


async def ensure_user(session: AsyncSession, user_id: str) -> User:
    """
    Return the user row for ``user_id``, creating it when missing.

    Must be called inside an open transaction. A concurrent insert of the
    same id is absorbed by a savepoint.
    """
    user = await session.get(User, user_id)
    if user is not None:
        return user

    try:
        async with session.begin_nested():
            user = User(id=user_id)
            session.add(user)
    except IntegrityError:
        result = await session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one()
    return user
