"""
Training module catalog.

Exercise types register themselves the first time a session for them is
saved: the free-text training type is turned into a slug and the module
row for that slug is created if it does not exist yet.
"""

import re
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from axon.common.error_handling import ValidationError
from axon.common.logger import app_logger
from axon.database.models import TrainingModule

logger = app_logger.getChild("training.modules")

_WHITESPACE = re.compile(r"\s+")

# Keyword groups checked in order; the first hit wins
# TODO: replace keyword matching with an explicit category on the module definition
CATEGORY_KEYWORDS = (
    (("memory", "recall"), "memory"),
    (("attention", "focus"), "attention"),
    (("speed", "reaction"), "processing-speed"),
    (("pattern", "visual"), "pattern-recognition"),
)
DEFAULT_CATEGORY = "general"


def slugify(training_type: str) -> str:
    """``"Word Memory"`` -> ``"word-memory"``"""
    slug = _WHITESPACE.sub("-", training_type.strip().lower())
    if not slug:
        raise ValidationError("trainingType must be a non-empty string", field="trainingType")
    return slug


def format_module_name(training_type: str) -> str:
    """``"word-memory"`` -> ``"Word Memory"``"""
    return " ".join(part[:1].upper() + part[1:] for part in training_type.split("-"))


def infer_category(training_type: str) -> str:
    lowered = training_type.lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


async def get_module_by_slug(session: AsyncSession, slug: str) -> Optional[TrainingModule]:
    result = await session.execute(select(TrainingModule).where(TrainingModule.slug == slug))
    return result.scalar_one_or_none()


async def get_or_create_module(
    session: AsyncSession,
    training_type: str,
    configuration: Optional[Dict[str, Any]] = None
) -> TrainingModule:
    """
    Idempotent upsert of the module for ``training_type``, keyed by slug.

    Runs inside the caller's transaction. A module created concurrently by
    another request is picked up after the unique slug rejects our insert.
    """
    slug = slugify(training_type)
    module = await get_module_by_slug(session, slug)
    if module is not None:
        return module

    name = format_module_name(training_type.strip())
    try:
        async with session.begin_nested():
            module = TrainingModule(
                slug=slug,
                name=name,
                description=f"{name} training module",
                category=infer_category(training_type),
                configuration=dict(configuration or {}),
                is_active=True
            )
            session.add(module)
    except IntegrityError:
        module = await get_module_by_slug(session, slug)
        if module is None:
            raise
        return module

    logger.info(f"Registered training module '{slug}' in category '{module.category}'")
    return module


async def list_active_modules(session: AsyncSession):
    result = await session.execute(
        select(TrainingModule)
        .where(TrainingModule.is_active.is_(True))
        .order_by(TrainingModule.name)
    )
    return list(result.scalars().all())
