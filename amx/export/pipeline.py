"""Export pipeline: download files, zip archives and platform distribution.

Exports only read combinations. Nothing here writes status, progress or
preview URL, so re-running an export is safe.

Batch exports isolate failures: every combination gets its own outcome
(exported, skipped or failed) and one bad item never aborts its siblings.
Single exports fail fast with a typed error instead.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path

from amx.errors import (
    MatrixError,
    NotReadyError,
    PlatformConstraintError,
)
from amx.export.distribution import DistributionService
from amx.export.media import MediaProxy
from amx.export.platforms import DEFAULT_REGISTRY, PlatformSpec, PlatformSpecRegistry, parse_target
from amx.schemas.export_schemas import (
    ExportArtifact,
    ExportBatchResult,
    ExportOutcome,
    ExportStatus,
    ExportTarget,
)
from amx.schemas.models import AssetType, Combination, CombinationStatus

logger = logging.getLogger(__name__)

ARCHIVE_FOLDER = "matrix_exports"

_MEDIA_TYPES = {
    "mp4": "video/mp4",
    "jpg": "image/jpeg",
    "zip": "application/zip",
}


def file_extension(combination: Combination) -> str:
    """``mp4`` when any assigned asset is a video, else ``jpg``."""
    return "mp4" if combination.has_video() else "jpg"


def export_filename(combination: Combination) -> str:
    return f"matrix_{combination.id[:8]}.{file_extension(combination)}"


def archive_filename(now: datetime) -> str:
    """``matrix_export_<ISO-8601 ms UTC, ':' and '.' replaced by '-'>.zip``."""
    utc = now.astimezone(timezone.utc)
    stamp = utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"
    return f"matrix_export_{stamp.replace(':', '-').replace('.', '-')}.zip"


def check_platform_constraints(
    combination: Combination,
    spec: PlatformSpec,
    aspect_ratios: Sequence[str],
) -> list[str]:
    """Return human-readable violations of ``spec`` (empty when the combination fits)."""
    violations: list[str] = []
    if combination.aspect_ratio and combination.aspect_ratio not in aspect_ratios:
        violations.append(
            f"aspect ratio {combination.aspect_ratio} not in {', '.join(aspect_ratios)}"
        )
    for variable, asset in combination.assets.items():
        if asset is None:
            continue
        if (
            asset.type in (AssetType.VIDEO, AssetType.AUDIO)
            and asset.duration_seconds is not None
            and asset.duration_seconds > spec.max_duration_seconds
        ):
            violations.append(
                f"{variable}: duration {asset.duration_seconds:g}s exceeds {spec.max_duration_seconds:g}s"
            )
        if asset.file_size_mb is not None and asset.file_size_mb > spec.max_file_size_mb:
            violations.append(
                f"{variable}: file size {asset.file_size_mb:g}MB exceeds {spec.max_file_size_mb:g}MB"
            )
    return violations


def save_artifact(artifact: ExportArtifact, directory: Path) -> Path:
    """Write an artifact to ``directory`` and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / artifact.filename
    path.write_bytes(artifact.content)
    return path


class ExportPipeline:
    """Export completed combinations to a download or a distribution platform."""

    def __init__(
        self,
        media_proxy: MediaProxy,
        distribution: DistributionService,
        registry: PlatformSpecRegistry = DEFAULT_REGISTRY,
        clock: Callable[[], datetime] | None = None,
    ):
        self._media = media_proxy
        self._distribution = distribution
        self._registry = registry
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------

    async def export_one(
        self,
        combination: Combination,
        target: ExportTarget | str,
        format_overrides: Mapping[str, list[str]] | None = None,
    ) -> ExportOutcome:
        """Export one combination.

        Raises UnknownPlatformError, NotReadyError, PlatformConstraintError,
        MediaFetchError or DistributionError. A distribution service that
        answers "not published" yields a failed outcome rather than an error.
        """
        export_target = parse_target(target)
        if combination.status != CombinationStatus.COMPLETED:
            raise NotReadyError(combination.id, combination.status.value)

        if export_target.is_download:
            artifact = await self._fetch_artifact(combination)
            return ExportOutcome(
                combination_id=combination.id,
                target=export_target.label(),
                status=ExportStatus.EXPORTED,
                filename=artifact.filename,
                artifact=artifact,
            )

        spec = self._registry.resolve(export_target.platform, export_target.placement)
        ratios = self._registry.required_aspect_ratios(spec.platform, spec.placement, format_overrides)
        return await self._dispatch(combination, export_target, spec, ratios)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def export_many(
        self,
        combinations: Sequence[Combination],
        target: ExportTarget | str,
        format_overrides: Mapping[str, list[str]] | None = None,
    ) -> ExportBatchResult:
        """Export a batch; returns one outcome per input combination, in input order."""
        label = target.label() if isinstance(target, ExportTarget) else str(target)
        outcomes: dict[str, ExportOutcome] = {}
        ready: list[Combination] = []
        for c in combinations:
            if c.status == CombinationStatus.COMPLETED:
                ready.append(c)
            else:
                outcomes[c.id] = ExportOutcome(
                    combination_id=c.id,
                    target=label,
                    status=ExportStatus.SKIPPED,
                    error=f"status is {c.status.value}",
                )

        archive = None
        try:
            export_target = parse_target(target)
            label = export_target.label()
            if export_target.is_download:
                archive, results = await self._build_archive(ready, label)
            else:
                spec = self._registry.resolve(export_target.platform, export_target.placement)
                ratios = self._registry.required_aspect_ratios(spec.platform, spec.placement, format_overrides)
                results = await asyncio.gather(
                    *(self._dispatch_isolated(c, export_target, spec, ratios) for c in ready)
                )
        except MatrixError as e:
            logger.warning("Export to %s rejected: %s", label, e)
            results = [
                ExportOutcome(combination_id=c.id, target=label, status=ExportStatus.FAILED, error=str(e))
                for c in ready
            ]

        for outcome in results:
            outcomes[outcome.combination_id] = outcome

        ordered = [outcomes[c.id] for c in combinations if c.id in outcomes]
        logger.info(
            "Exported %d/%d combinations to %s (%d skipped)",
            sum(1 for o in ordered if o.status == ExportStatus.EXPORTED),
            len(ordered),
            label,
            sum(1 for o in ordered if o.status == ExportStatus.SKIPPED),
        )
        return ExportBatchResult(outcomes=ordered, archive=archive)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch_artifact(self, combination: Combination) -> ExportArtifact:
        content = await self._media.fetch(combination.preview_url)
        ext = file_extension(combination)
        return ExportArtifact(
            filename=export_filename(combination),
            media_type=_MEDIA_TYPES[ext],
            content=content,
        )

    async def _fetch_isolated(self, combination: Combination, label: str) -> ExportOutcome:
        try:
            artifact = await self._fetch_artifact(combination)
        except Exception as e:
            logger.warning("Media fetch failed for %s: %s", combination.id, e)
            return ExportOutcome(
                combination_id=combination.id,
                target=label,
                status=ExportStatus.FAILED,
                error=str(e)[:300],
            )
        return ExportOutcome(
            combination_id=combination.id,
            target=label,
            status=ExportStatus.EXPORTED,
            filename=artifact.filename,
            artifact=artifact,
        )

    async def _build_archive(
        self,
        combinations: Sequence[Combination],
        label: str,
    ) -> tuple[ExportArtifact | None, list[ExportOutcome]]:
        fetched = await asyncio.gather(*(self._fetch_isolated(c, label) for c in combinations))
        members: list[str] = []
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for outcome in fetched:
                if outcome.artifact is None:
                    continue
                name = f"{ARCHIVE_FOLDER}/{outcome.artifact.filename}"
                if name in members:
                    stem, ext = outcome.artifact.filename.rsplit(".", 1)
                    name = f"{ARCHIVE_FOLDER}/{stem}_{outcome.combination_id}.{ext}"
                    copy = 2
                    while name in members:
                        name = f"{ARCHIVE_FOLDER}/{stem}_{outcome.combination_id}_{copy}.{ext}"
                        copy += 1
                zf.writestr(name, outcome.artifact.content)
                members.append(name)

        # Archive members carry the bytes; per-item outcomes don't
        results = [o.model_copy(update={"artifact": None}) for o in fetched]
        if not members:
            return None, results
        archive = ExportArtifact(
            filename=archive_filename(self._clock()),
            media_type=_MEDIA_TYPES["zip"],
            content=buf.getvalue(),
            members=members,
        )
        return archive, results

    async def _dispatch(
        self,
        combination: Combination,
        target: ExportTarget,
        spec: PlatformSpec,
        aspect_ratios: Sequence[str],
    ) -> ExportOutcome:
        violations = check_platform_constraints(combination, spec, aspect_ratios)
        if violations:
            raise PlatformConstraintError(combination.id, violations)
        published = await self._distribution.publish(
            combination.id,
            target.label(),
            combination.non_null_asset_ids(),
        )
        return ExportOutcome(
            combination_id=combination.id,
            target=target.label(),
            status=ExportStatus.EXPORTED if published else ExportStatus.FAILED,
            error=None if published else "distribution service declined the export",
        )

    async def _dispatch_isolated(
        self,
        combination: Combination,
        target: ExportTarget,
        spec: PlatformSpec,
        aspect_ratios: Sequence[str],
    ) -> ExportOutcome:
        try:
            return await self._dispatch(combination, target, spec, aspect_ratios)
        except Exception as e:
            if not isinstance(e, MatrixError):
                logger.exception("Unexpected distribution failure for %s", combination.id)
            return ExportOutcome(
                combination_id=combination.id,
                target=target.label(),
                status=ExportStatus.FAILED,
                error=str(e)[:300],
            )
