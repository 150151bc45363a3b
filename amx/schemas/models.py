"""Pydantic models: single source of truth for assets, combinations and batch progress."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    TEXT = "text"
    AUDIO = "audio"
    GRAPHIC = "graphic"


class AssetRef(BaseModel):
    """A creative asset assigned to a template variable."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: AssetType
    name: str = ""
    url: str | None = None
    duration_seconds: float | None = None  # video/audio only
    file_size_mb: float | None = None
    aspect_ratio: str | None = None  # e.g. "9:16"


class CombinationStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class SortMode(str, Enum):
    SCORE = "score"
    FAVOURITE = "favourite"
    DATE = "date"


class Combination(BaseModel):
    """One assignment of assets to template variables plus its render state.

    Instances are immutable snapshots. Every state change produces a new
    snapshot through ``amx.matrix.state``; readers (ordering, export) never
    observe a half-applied transition.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    assets: dict[str, AssetRef | None]
    status: CombinationStatus = CombinationStatus.PENDING
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    preview_url: str | None = None
    engagement_score: float | None = Field(default=None, ge=0.0, le=1.0)
    is_favourite: bool = False
    sequence: int = 0  # creation order; key for SortMode.DATE
    created_at: datetime = Field(default_factory=_utcnow)
    aspect_ratio: str | None = None  # output format the render targets
    render_job_id: str | None = None
    superseded_job_ids: tuple[str, ...] = ()  # job ids of earlier episodes
    error_message: str | None = None
    attempts: int = 0
    render_started_at: datetime | None = None
    render_completed_at: datetime | None = None

    @model_validator(mode="after")
    def _preview_iff_completed(self) -> "Combination":
        completed = self.status == CombinationStatus.COMPLETED
        if completed and not self.preview_url:
            raise ValueError("completed combination requires preview_url")
        if not completed and self.preview_url is not None:
            raise ValueError(f"preview_url must be absent while {self.status.value}")
        return self

    def non_null_assets(self) -> list[AssetRef]:
        return [a for a in self.assets.values() if a is not None]

    def non_null_asset_ids(self) -> list[str]:
        return [a.id for a in self.non_null_assets()]

    def has_video(self) -> bool:
        return any(a.type == AssetType.VIDEO for a in self.non_null_assets())


class BatchProgress(BaseModel):
    """Aggregate render progress across a combination collection."""

    total: int = 0
    pending: int = 0
    generating: int = 0
    completed: int = 0
    failed: int = 0
    overall_progress: float = 0.0  # (completed + failed) / total, 0-1
    estimated_seconds_remaining: float | None = None


class GenerationStatus(str, Enum):
    STARTED = "started"
    SKIPPED = "skipped"
    FAILED = "failed"


class GenerationOutcome(BaseModel):
    """Per-combination result of a generate-all sweep."""

    combination_id: str
    status: GenerationStatus
    render_job_id: str | None = None
    error: str | None = None
