"""Generation coordinator: drives combinations through render episodes.

Owns the combination store writes for status, progress and preview URL.
Every write runs the latest stored snapshot through ``amx.matrix.state`` and
stores the result, so a render callback that lands while a submission is
awaiting is never overwritten with an older snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

import pydantic

from amx.errors import ConflictError, MatrixError
from amx.generation.render import RenderBackend
from amx.matrix import combination as combination_ops
from amx.matrix import state
from amx.matrix.combination import AssetAssignment
from amx.matrix.ordering import order
from amx.matrix.permutations import VariableSlot, enumerate_assignments
from amx.matrix.store import CombinationStore, require
from amx.schemas.events import (
    RenderCompleted,
    RenderEvent,
    RenderFailed,
    RenderProgress,
    RenderTimedOut,
)
from amx.schemas.models import (
    BatchProgress,
    Combination,
    CombinationStatus,
    GenerationOutcome,
    GenerationStatus,
    SortMode,
)

logger = logging.getLogger(__name__)

GENERATE_ALL_POLICIES = ("redo_completed", "skip_completed")


class GenerationCoordinator:
    """Generate one/all, render event intake, favourites, scores and batch progress."""

    def __init__(
        self,
        store: CombinationStore,
        render_backend: RenderBackend,
        template_id: str = "default",
        output_format: str = "mp4",
        max_concurrent_renders: int = 5,
        generate_all_policy: str = "redo_completed",
        clock: Callable[[], datetime] | None = None,
    ):
        if max_concurrent_renders < 1:
            raise ValueError("max_concurrent_renders must be at least 1")
        if generate_all_policy not in GENERATE_ALL_POLICIES:
            raise ValueError(f"Unknown generate-all policy: {generate_all_policy}")
        self.store = store
        self._backend = render_backend
        self._template_id = template_id
        self._output_format = output_format
        self._policy = generate_all_policy
        self._semaphore = asyncio.Semaphore(max_concurrent_renders)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def add(self, assets: AssetAssignment, aspect_ratio: str | None = None) -> Combination:
        return self.store.add(combination_ops.create(assets, aspect_ratio=aspect_ratio))

    def enumerate_and_add(
        self,
        slots: list[VariableSlot],
        max_combinations: int | None = None,
        vary: list[str] | None = None,
        aspect_ratio: str | None = None,
    ) -> list[Combination]:
        """Enumerate slot assignments and add one pending combination per assignment."""
        assignments = enumerate_assignments(slots, max_combinations=max_combinations, vary=vary)
        created = [self.add(a, aspect_ratio=aspect_ratio) for a in assignments]
        logger.info("Enumerated %d combinations from %d variables", len(created), len(slots))
        return created

    def get(self, combination_id: str) -> Combination:
        return require(self.store, combination_id)

    def list(self) -> list[Combination]:
        return self.store.list()

    def ordered(self, sort_mode: SortMode | str = SortMode.SCORE) -> list[Combination]:
        return order(self.store.list(), sort_mode)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_one(self, combination_id: str) -> Combination:
        """Start a render episode and submit it to the render backend.

        The move to ``generating`` is stored before the first await, so a
        second call for the same id raises ConflictError immediately. A
        rejected submission marks the combination failed and re-raises.
        """
        current = require(self.store, combination_id)
        started = state.begin_generation(current, self._clock())
        self.store.update(started)
        logger.info("Generating combination %s (attempt %d)", combination_id, started.attempts)

        async with self._semaphore:
            try:
                job_id = await self._backend.submit(started, self._template_id, self._output_format)
            except Exception as e:
                transition = state.fail(require(self.store, combination_id), str(e)[:500], self._clock())
                if transition.applied:
                    self.store.update(transition.combination)
                logger.warning("Render submission failed for %s: %s", combination_id, e)
                raise

        transition = state.attach_render_job(require(self.store, combination_id), job_id)
        if transition.applied:
            self.store.update(transition.combination)
        else:
            logger.info("Render job %s for %s not attached: %s", job_id, combination_id, transition.note)
        return transition.combination

    async def _generate_isolated(self, combination_id: str) -> GenerationOutcome:
        try:
            c = await self.generate_one(combination_id)
        except ConflictError as e:
            return GenerationOutcome(combination_id=combination_id, status=GenerationStatus.SKIPPED, error=str(e))
        except Exception as e:
            if not isinstance(e, MatrixError):
                logger.exception("Unexpected failure generating %s", combination_id)
            return GenerationOutcome(combination_id=combination_id, status=GenerationStatus.FAILED, error=str(e)[:500])
        return GenerationOutcome(
            combination_id=combination_id,
            status=GenerationStatus.STARTED,
            render_job_id=c.render_job_id,
        )

    async def generate_all(self) -> list[GenerationOutcome]:
        """Start every eligible combination concurrently; one outcome per stored combination.

        Not atomic: a failed submission does not stop its siblings.
        """
        outcomes: dict[str, GenerationOutcome] = {}
        targets: list[str] = []
        snapshot = self.store.list()
        for c in snapshot:
            if c.status == CombinationStatus.GENERATING:
                outcomes[c.id] = GenerationOutcome(
                    combination_id=c.id, status=GenerationStatus.SKIPPED, error="already generating"
                )
            elif self._policy == "skip_completed" and c.status == CombinationStatus.COMPLETED:
                outcomes[c.id] = GenerationOutcome(
                    combination_id=c.id, status=GenerationStatus.SKIPPED, error="already completed"
                )
            else:
                targets.append(c.id)

        for outcome in await asyncio.gather(*(self._generate_isolated(cid) for cid in targets)):
            outcomes[outcome.combination_id] = outcome

        result = [outcomes[c.id] for c in snapshot]
        logger.info(
            "Generate all: %d started, %d skipped, %d failed",
            sum(1 for o in result if o.status == GenerationStatus.STARTED),
            sum(1 for o in result if o.status == GenerationStatus.SKIPPED),
            sum(1 for o in result if o.status == GenerationStatus.FAILED),
        )
        return result

    # ------------------------------------------------------------------
    # Render events
    # ------------------------------------------------------------------

    def handle_event(self, event: RenderEvent) -> state.Transition | None:
        """Apply one render event. Anomalies are logged and ignored, never raised."""
        current = self.store.get(event.combination_id)
        if current is None:
            logger.warning("%s event for unknown combination %s ignored", event.kind, event.combination_id)
            return None
        transition = state.apply_event(current, event, self._clock())
        if transition.applied:
            self.store.update(transition.combination)
            if transition.combination.status != current.status:
                logger.info("Combination %s is now %s", current.id, transition.combination.status.value)
        elif event.kind == "progress" and current.status == CombinationStatus.GENERATING:
            logger.debug("Combination %s: %s", current.id, transition.note)
        else:
            logger.warning("Combination %s: %s", current.id, transition.note)
        return transition

    def _deliver(self, event_type, **fields) -> state.Transition | None:
        try:
            event = event_type(**fields)
        except pydantic.ValidationError as e:
            logger.warning(
                "Malformed %s event for %s ignored: %s",
                event_type.__name__, fields.get("combination_id"), e.errors()[0]["msg"],
            )
            return None
        return self.handle_event(event)

    def on_progress(self, combination_id: str, percent: float, render_job_id: str | None = None):
        return self._deliver(
            RenderProgress, combination_id=combination_id, percent=percent, render_job_id=render_job_id
        )

    def on_complete(self, combination_id: str, url: str, render_job_id: str | None = None):
        return self._deliver(
            RenderCompleted, combination_id=combination_id, url=url, render_job_id=render_job_id
        )

    def on_fail(self, combination_id: str, reason: str, render_job_id: str | None = None):
        return self._deliver(
            RenderFailed, combination_id=combination_id, reason=reason, render_job_id=render_job_id
        )

    def force_timeout(self, combination_id: str):
        """External timeout signal: fail a render that never called back."""
        return self.handle_event(RenderTimedOut(combination_id=combination_id))

    # ------------------------------------------------------------------
    # Status-independent mutations
    # ------------------------------------------------------------------

    def set_favourite(self, combination_id: str, flag: bool) -> Combination:
        updated = combination_ops.set_favourite(require(self.store, combination_id), flag)
        self.store.update(updated)
        return updated

    def toggle_favourite(self, combination_id: str) -> Combination:
        current = require(self.store, combination_id)
        return self.set_favourite(combination_id, not current.is_favourite)

    def attach_score(self, combination_id: str, score: float) -> Combination:
        updated = combination_ops.attach_score(require(self.store, combination_id), score)
        self.store.update(updated)
        return updated

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def batch_progress(self) -> BatchProgress:
        """Counts per status, overall completion and an ETA from finished render times."""
        items = self.store.list()
        counts = {s: 0 for s in CombinationStatus}
        durations: list[float] = []
        for c in items:
            counts[c.status] += 1
            if (
                c.status == CombinationStatus.COMPLETED
                and c.render_started_at is not None
                and c.render_completed_at is not None
            ):
                durations.append((c.render_completed_at - c.render_started_at).total_seconds())

        total = len(items)
        done = counts[CombinationStatus.COMPLETED] + counts[CombinationStatus.FAILED]
        remaining = counts[CombinationStatus.PENDING] + counts[CombinationStatus.GENERATING]
        eta = None
        if durations:
            eta = sum(durations) / len(durations) * remaining
        return BatchProgress(
            total=total,
            pending=counts[CombinationStatus.PENDING],
            generating=counts[CombinationStatus.GENERATING],
            completed=counts[CombinationStatus.COMPLETED],
            failed=counts[CombinationStatus.FAILED],
            overall_progress=done / total if total else 0.0,
            estimated_seconds_remaining=eta,
        )
