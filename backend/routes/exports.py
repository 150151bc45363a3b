"""Export API routes: single download, batch archive and platform distribution."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from amx.config import get_settings
from amx.errors import MatrixError
from amx.export.pipeline import ExportPipeline, save_artifact
from amx.generation.coordinator import GenerationCoordinator
from amx.services import get_coordinator, get_export_pipeline
from backend.errors import to_http

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class ExportOneRequest(BaseModel):
    combination_id: str
    target: str = "download"  # "download" | "<platform>-<placement>"
    format_overrides: Optional[dict[str, list[str]]] = None


class ExportManyRequest(BaseModel):
    combination_ids: Optional[list[str]] = None  # None exports every combination
    target: str = "download"
    format_overrides: Optional[dict[str, list[str]]] = None


class ExportOutcomeOut(BaseModel):
    combination_id: str
    target: str
    status: str
    filename: Optional[str] = None
    error: Optional[str] = None


class ExportManyResponse(BaseModel):
    outcomes: list[ExportOutcomeOut] = Field(default_factory=list)
    archive_filename: Optional[str] = None
    download_url: Optional[str] = None


def _outcome_out(outcome) -> ExportOutcomeOut:
    return ExportOutcomeOut(**outcome.model_dump(mode="json", exclude={"artifact"}))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/exports/one")
async def export_one(
    request: ExportOneRequest,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
    pipeline: ExportPipeline = Depends(get_export_pipeline),
):
    """Export one completed combination.

    Downloads answer with the media bytes; platform targets answer with the
    outcome as JSON.
    """
    try:
        combination = coordinator.get(request.combination_id)
        outcome = await pipeline.export_one(combination, request.target, request.format_overrides)
    except MatrixError as e:
        raise to_http(e)

    if outcome.artifact is not None:
        return Response(
            content=outcome.artifact.content,
            media_type=outcome.artifact.media_type,
            headers={"Content-Disposition": f'attachment; filename="{outcome.artifact.filename}"'},
        )
    return _outcome_out(outcome)


@router.post("/exports/many", response_model=ExportManyResponse)
async def export_many(
    request: ExportManyRequest,
    coordinator: GenerationCoordinator = Depends(get_coordinator),
    pipeline: ExportPipeline = Depends(get_export_pipeline),
):
    """Export a batch. Download archives are saved and served from ``/exports/files``."""
    try:
        if request.combination_ids is None:
            combinations = coordinator.list()
        else:
            combinations = [coordinator.get(cid) for cid in request.combination_ids]
    except MatrixError as e:
        raise to_http(e)

    result = await pipeline.export_many(combinations, request.target, request.format_overrides)
    response = ExportManyResponse(outcomes=[_outcome_out(o) for o in result.outcomes])
    if result.archive is not None:
        path = save_artifact(result.archive, settings.exports_dir)
        logger.info("Saved export archive %s", path)
        response.archive_filename = result.archive.filename
        response.download_url = f"/api/exports/files/{result.archive.filename}"
    return response


@router.get("/exports/files/{filename}")
async def download_export(filename: str):
    """Download a saved export archive."""
    if "/" in filename or "\\" in filename or filename.startswith("."):
        raise HTTPException(status_code=400, detail=f"Invalid filename: {filename}")
    file_path = settings.exports_dir / filename
    if not file_path.exists():
        raise HTTPException(status_code=404, detail=f"File not found: {filename}")
    return FileResponse(
        path=str(file_path),
        media_type="application/zip",
        filename=file_path.name,
    )
