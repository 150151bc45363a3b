"""Inbound render events, one per combination id.

The render backend pushes these (webhook or in-process callback). All of them
are consumed by ``amx.matrix.state.apply_event``; delivery is at-least-once
and progress may arrive out of order.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _RenderEventBase(BaseModel):
    combination_id: str
    # Job id the backend assigned at submission. None skips the stale-episode check.
    render_job_id: str | None = None


class RenderProgress(_RenderEventBase):
    kind: Literal["progress"] = "progress"
    percent: float = Field(allow_inf_nan=False)


class RenderCompleted(_RenderEventBase):
    kind: Literal["completed"] = "completed"
    url: str = Field(min_length=1)


class RenderFailed(_RenderEventBase):
    kind: Literal["failed"] = "failed"
    reason: str = "Unknown error"


class RenderTimedOut(_RenderEventBase):
    """External timeout signal: the render never called back."""

    kind: Literal["timed_out"] = "timed_out"


RenderEvent = Annotated[
    Union[RenderProgress, RenderCompleted, RenderFailed, RenderTimedOut],
    Field(discriminator="kind"),
]

_render_event_adapter = TypeAdapter(RenderEvent)


def parse_render_event(data: dict) -> RenderProgress | RenderCompleted | RenderFailed | RenderTimedOut:
    """Validate a raw callback payload into the matching event type."""
    return _render_event_adapter.validate_python(data)
