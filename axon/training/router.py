"""
Training API routes.
"""

from typing import List

from fastapi import APIRouter, Depends, Request, status

from axon.common.auth import get_current_user_id
from axon.training.schemas import ModuleInfo, ProgressOverview, SaveSessionRequest, SaveSessionResponse
from axon.training.service import TrainingSessionService

router = APIRouter()


def get_training_service(request: Request) -> TrainingSessionService:
    return request.app.state.training_service


@router.post("/save-session", response_model=SaveSessionResponse, status_code=status.HTTP_201_CREATED)
async def save_session(
    body: SaveSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: TrainingSessionService = Depends(get_training_service)
):
    """Persist a completed exercise and return the updated progress."""
    return await service.save_session(user_id, body)


@router.get("/progress", response_model=ProgressOverview)
async def progress(
    user_id: str = Depends(get_current_user_id),
    service: TrainingSessionService = Depends(get_training_service)
):
    return await service.progress_overview(user_id)


@router.get("/modules", response_model=List[ModuleInfo])
async def modules(
    user_id: str = Depends(get_current_user_id),
    service: TrainingSessionService = Depends(get_training_service)
):
    """Active training modules."""
    return [ModuleInfo.from_orm(module) for module in await service.list_modules()]
