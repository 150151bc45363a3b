"""Pydantic models: single source of truth for all data shapes."""

from amx.schemas.events import (
    RenderCompleted,
    RenderEvent,
    RenderFailed,
    RenderProgress,
    RenderTimedOut,
)
from amx.schemas.export_schemas import (
    DOWNLOAD,
    ExportArtifact,
    ExportBatchResult,
    ExportOutcome,
    ExportStatus,
    ExportTarget,
    Placement,
    Platform,
)
from amx.schemas.models import (
    AssetRef,
    AssetType,
    BatchProgress,
    Combination,
    CombinationStatus,
    GenerationOutcome,
    GenerationStatus,
    SortMode,
)

__all__ = [
    "AssetRef",
    "AssetType",
    "BatchProgress",
    "Combination",
    "CombinationStatus",
    "DOWNLOAD",
    "ExportArtifact",
    "ExportBatchResult",
    "ExportOutcome",
    "ExportStatus",
    "ExportTarget",
    "GenerationOutcome",
    "GenerationStatus",
    "Placement",
    "Platform",
    "RenderCompleted",
    "RenderEvent",
    "RenderFailed",
    "RenderProgress",
    "RenderTimedOut",
    "SortMode",
]
