"""Generation API routes: render one or all combinations, forced timeout, batch progress."""

import logging

from fastapi import APIRouter, Depends, status

from amx.errors import MatrixError
from amx.generation.coordinator import GenerationCoordinator
from amx.schemas.models import BatchProgress, Combination, GenerationOutcome
from amx.services import get_coordinator
from backend.errors import to_http

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/combinations/{combination_id}/generate",
    response_model=Combination,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_combination(
    combination_id: str,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    """Start (or restart) rendering one combination."""
    try:
        return await coordinator.generate_one(combination_id)
    except MatrixError as e:
        raise to_http(e)


@router.post("/generate-all", response_model=list[GenerationOutcome], status_code=status.HTTP_202_ACCEPTED)
async def generate_all(coordinator: GenerationCoordinator = Depends(get_coordinator)):
    """Start rendering every eligible combination; one outcome per combination."""
    return await coordinator.generate_all()


@router.post("/combinations/{combination_id}/timeout", response_model=Combination)
async def timeout_combination(
    combination_id: str,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    """Fail a render that never called back."""
    try:
        coordinator.get(combination_id)
    except MatrixError as e:
        raise to_http(e)
    transition = coordinator.force_timeout(combination_id)
    return transition.combination


@router.get("/generation/progress", response_model=BatchProgress)
async def batch_progress(coordinator: GenerationCoordinator = Depends(get_coordinator)):
    return coordinator.batch_progress()
