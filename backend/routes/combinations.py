"""Combination API routes: create, enumerate, list in display order, favourite and score."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from amx.errors import MatrixError
from amx.generation.coordinator import GenerationCoordinator
from amx.matrix.permutations import VariableSlot
from amx.schemas.models import AssetRef, Combination, SortMode
from amx.scoring import score_completed
from amx.services import get_coordinator, get_scorer
from backend.errors import to_http

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class CreateCombinationRequest(BaseModel):
    assets: dict[str, Optional[AssetRef]]
    aspect_ratio: Optional[str] = None


class EnumerateRequest(BaseModel):
    slots: list[VariableSlot]
    max_combinations: Optional[int] = None
    vary: Optional[list[str]] = None
    aspect_ratio: Optional[str] = None


class FavouriteRequest(BaseModel):
    is_favourite: Optional[bool] = None  # None toggles


class ScoreRequest(BaseModel):
    score: float


class ScoreAllResponse(BaseModel):
    scored: int
    scores: dict[str, float] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/combinations", response_model=Combination, status_code=status.HTTP_201_CREATED)
async def create_combination(
    request: CreateCombinationRequest,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.add(request.assets, aspect_ratio=request.aspect_ratio)
    except MatrixError as e:
        raise to_http(e)


@router.post("/combinations/enumerate", response_model=list[Combination], status_code=status.HTTP_201_CREATED)
async def enumerate_combinations(
    request: EnumerateRequest,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    """Add one pending combination per permutation of the given slots."""
    try:
        return coordinator.enumerate_and_add(
            request.slots,
            max_combinations=request.max_combinations,
            vary=request.vary,
            aspect_ratio=request.aspect_ratio,
        )
    except MatrixError as e:
        raise to_http(e)


@router.get("/combinations", response_model=list[Combination])
async def list_combinations(
    sort: SortMode = SortMode.SCORE,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    """List combinations in display order."""
    return coordinator.ordered(sort)


@router.get("/combinations/{combination_id}", response_model=Combination)
async def get_combination(
    combination_id: str,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.get(combination_id)
    except MatrixError as e:
        raise to_http(e)


@router.post("/combinations/{combination_id}/favourite", response_model=Combination)
async def favourite_combination(
    combination_id: str,
    request: FavouriteRequest = FavouriteRequest(),
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    try:
        if request.is_favourite is None:
            return coordinator.toggle_favourite(combination_id)
        return coordinator.set_favourite(combination_id, request.is_favourite)
    except MatrixError as e:
        raise to_http(e)


@router.put("/combinations/{combination_id}/score", response_model=Combination)
async def score_combination(
    combination_id: str,
    request: ScoreRequest,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.attach_score(combination_id, request.score)
    except MatrixError as e:
        raise to_http(e)


@router.post("/combinations/score", response_model=ScoreAllResponse)
async def score_all(coordinator: GenerationCoordinator = Depends(get_coordinator)):
    """Score every completed combination (scoring service, or heuristic fallback)."""
    try:
        scores = await score_completed(coordinator, get_scorer())
    except MatrixError as e:
        raise to_http(e)
    except Exception as e:
        logger.exception("Scoring failed")
        raise HTTPException(status_code=500, detail=f"Scoring failed: {str(e)[:300]}")
    return ScoreAllResponse(scored=len(scores), scores=scores)
