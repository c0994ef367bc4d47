"""
Content API routes.

Endpoints for serving exercise words and inspecting or clearing a user's
recency exclusion history.
"""

from fastapi import APIRouter, Depends, Request

from axon.common.auth import get_current_user_id
from axon.common.logger import app_logger
from axon.content.exclusion import ExclusionTracker
from axon.content.models import WordSelectionOptions
from axon.content.schemas import (
    ClearHistoryResponse, ExclusionStatsResponse, FetchWordsRequest, FetchWordsResponse
)
from axon.content.selector import ContentSelector

logger = app_logger.getChild("content.router")

router = APIRouter()


def get_content_selector(request: Request) -> ContentSelector:
    return request.app.state.content_selector


def get_exclusion_tracker(request: Request) -> ExclusionTracker:
    return request.app.state.exclusion_tracker


@router.post("/words", response_model=FetchWordsResponse)
async def fetch_words(
    body: FetchWordsRequest,
    user_id: str = Depends(get_current_user_id),
    selector: ContentSelector = Depends(get_content_selector)
):
    """Select words for an exercise, avoiding the user's recently served words."""
    result = await selector.select(WordSelectionOptions(
        count=body.count,
        difficulty=body.difficulty,
        user_id=user_id,
        categories=body.categories,
        min_length=body.min_length,
        max_length=body.max_length
    ))
    logger.info(
        f"Served {result.metadata.returned}/{body.count} {body.difficulty} words to user {user_id}"
        + (" (filters relaxed)" if result.metadata.filters_relaxed else "")
    )
    return FetchWordsResponse.from_result(result, body.difficulty)


@router.get("/exclusion-stats", response_model=ExclusionStatsResponse)
async def exclusion_stats(
    user_id: str = Depends(get_current_user_id),
    tracker: ExclusionTracker = Depends(get_exclusion_tracker)
):
    """Recency exclusion diagnostics for the caller."""
    stats = await tracker.stats(user_id)
    return ExclusionStatsResponse(**stats.dict())


@router.delete("/history", response_model=ClearHistoryResponse)
async def clear_history(
    user_id: str = Depends(get_current_user_id),
    tracker: ExclusionTracker = Depends(get_exclusion_tracker)
):
    """Delete the caller's content usage history."""
    deleted = await tracker.clear_history(user_id)
    return ClearHistoryResponse(message="Content history cleared", deleted=deleted)
