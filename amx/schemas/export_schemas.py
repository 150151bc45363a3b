"""Pydantic models for export targets, artifacts and per-item outcomes."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Platform(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    TIKTOK = "tiktok"
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"


class Placement(str, Enum):
    FEED = "feed"
    STORIES = "stories"
    REELS = "reels"
    IN_STREAM = "in_stream"
    SHORTS = "shorts"


class ExportTarget(BaseModel):
    """Closed target type: either a local download or a platform/placement pair."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["download", "platform"] = "download"
    platform: Platform | None = None
    placement: Placement | None = None

    @model_validator(mode="after")
    def _platform_pair_iff_platform(self) -> "ExportTarget":
        if self.kind == "platform" and (self.platform is None or self.placement is None):
            raise ValueError("platform target requires both platform and placement")
        if self.kind == "download" and (self.platform is not None or self.placement is not None):
            raise ValueError("download target takes no platform or placement")
        return self

    @property
    def is_download(self) -> bool:
        return self.kind == "download"

    def label(self) -> str:
        if self.is_download:
            return "download"
        return f"{self.platform.value}-{self.placement.value}"


DOWNLOAD = ExportTarget()


class ExportStatus(str, Enum):
    EXPORTED = "exported"
    SKIPPED = "skipped"
    FAILED = "failed"


class ExportArtifact(BaseModel):
    """A file produced by an export: single media file or zip archive."""

    filename: str
    media_type: str
    content: bytes = b""
    members: list[str] = Field(default_factory=list)  # archive entries, zip only


class ExportOutcome(BaseModel):
    """Result of exporting one combination."""

    combination_id: str
    target: str
    status: ExportStatus
    filename: str | None = None
    error: str | None = None
    artifact: ExportArtifact | None = None  # single-item downloads only


class ExportBatchResult(BaseModel):
    """Per-item outcomes of ``export_many`` plus the archive, when one was built."""

    outcomes: list[ExportOutcome] = Field(default_factory=list)
    archive: ExportArtifact | None = None

    def by_status(self, status: ExportStatus) -> list[ExportOutcome]:
        return [o for o in self.outcomes if o.status == status]
