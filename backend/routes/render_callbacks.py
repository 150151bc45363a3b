"""Render backend webhook: progress, completion, failure and timeout events.

Delivery is at-least-once, so duplicate, late or stale events are answered
with ``applied: false`` instead of an error status.
"""

import logging
from typing import Any, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from amx.generation.coordinator import GenerationCoordinator
from amx.schemas.events import parse_render_event
from amx.services import get_coordinator

logger = logging.getLogger(__name__)
router = APIRouter()


class RenderCallbackResponse(BaseModel):
    combination_id: str
    applied: bool
    status: Optional[str] = None
    note: Optional[str] = None


@router.post("/render-callbacks", response_model=RenderCallbackResponse)
async def render_callback(
    payload: dict[str, Any] = Body(...),
    coordinator: GenerationCoordinator = Depends(get_coordinator),
):
    try:
        event = parse_render_event(payload)
    except pydantic.ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)[:500])

    transition = coordinator.handle_event(event)
    if transition is None:
        return RenderCallbackResponse(
            combination_id=event.combination_id,
            applied=False,
            note="unknown combination",
        )
    return RenderCallbackResponse(
        combination_id=event.combination_id,
        applied=transition.applied,
        status=transition.combination.status.value,
        note=transition.note,
    )
