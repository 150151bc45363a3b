"""Combination render state machine.

    pending ──generate──▶ generating ──completed──▶ completed
                             │  ▲                     │
                          failed│ └──── regenerate ─────┘
                             ▼  │
                           failed

Every write to ``status``, ``progress`` or ``preview_url`` goes through the
functions in this module. They are pure: each takes a snapshot and returns a
new one, leaving the caller (the generation coordinator) to store it.

Render events are normalised rather than rejected: stale or duplicate
deliveries come back as a ``Transition`` with ``applied=False`` and a note
explaining why, because at-least-once delivery makes them expected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from amx.errors import ConflictError
from amx.matrix.combination import evolve
from amx.schemas.events import (
    RenderCompleted,
    RenderEvent,
    RenderFailed,
    RenderProgress,
    RenderTimedOut,
)
from amx.schemas.models import Combination, CombinationStatus

TIMEOUT_REASON = "Render timed out without a callback"


@dataclass(frozen=True)
class Transition:
    """Outcome of applying one event: the resulting snapshot and whether it changed."""

    combination: Combination
    applied: bool
    note: str | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def begin_generation(combination: Combination, now: datetime | None = None) -> Combination:
    """Start a new render episode from pending, failed or completed.

    Raises ConflictError when an episode is already in flight. Progress, preview
    URL, error and job id from any previous episode are cleared; the old job id
    moves to ``superseded_job_ids`` so its late events stay rejected.
    """
    if combination.status == CombinationStatus.GENERATING:
        raise ConflictError(
            combination.id,
            combination.status.value,
            f"Combination {combination.id} is already generating",
        )
    superseded = combination.superseded_job_ids
    if combination.render_job_id and combination.render_job_id not in superseded:
        superseded = superseded + (combination.render_job_id,)
    return evolve(
        combination,
        status=CombinationStatus.GENERATING,
        progress=0.0,
        preview_url=None,
        error_message=None,
        render_job_id=None,
        superseded_job_ids=superseded,
        attempts=combination.attempts + 1,
        render_started_at=now or _now(),
        render_completed_at=None,
    )


def attach_render_job(combination: Combination, render_job_id: str) -> Transition:
    """Record the backend job id for the current episode."""
    if combination.status != CombinationStatus.GENERATING:
        return Transition(combination, False, f"not generating ({combination.status.value})")
    if combination.render_job_id is not None:
        return Transition(combination, False, "render job already attached")
    return Transition(evolve(combination, render_job_id=render_job_id), True)


def fail(combination: Combination, reason: str, now: datetime | None = None) -> Transition:
    if combination.status != CombinationStatus.GENERATING:
        return Transition(combination, False, f"failure for {combination.status.value} combination ignored")
    return Transition(
        evolve(
            combination,
            status=CombinationStatus.FAILED,
            preview_url=None,
            error_message=reason,
            render_completed_at=now or _now(),
        ),
        True,
    )


def _is_stale(combination: Combination, event: RenderEvent) -> bool:
    if event.render_job_id is None:
        return False
    if event.render_job_id in combination.superseded_job_ids:
        return True
    return combination.render_job_id is not None and event.render_job_id != combination.render_job_id


def apply_event(
    combination: Combination,
    event: RenderEvent,
    now: datetime | None = None,
) -> Transition:
    """Apply one inbound render event to a combination snapshot."""
    if combination.status != CombinationStatus.GENERATING:
        return Transition(
            combination,
            False,
            f"{event.kind} event for {combination.status.value} combination ignored",
        )
    if _is_stale(combination, event):
        return Transition(
            combination,
            False,
            f"{event.kind} event from superseded render job {event.render_job_id} ignored",
        )

    if isinstance(event, RenderProgress):
        percent = min(float(event.percent), 100.0)
        if percent <= combination.progress:
            return Transition(combination, False, f"stale progress {event.percent} <= {combination.progress}")
        return Transition(evolve(combination, progress=percent), True)

    if isinstance(event, RenderCompleted):
        return Transition(
            evolve(
                combination,
                status=CombinationStatus.COMPLETED,
                preview_url=event.url,
                error_message=None,
                render_completed_at=now or _now(),
            ),
            True,
        )

    if isinstance(event, RenderFailed):
        return fail(combination, event.reason, now)

    if isinstance(event, RenderTimedOut):
        return fail(combination, TIMEOUT_REASON, now)

    raise TypeError(f"Unsupported render event: {type(event).__name__}")
