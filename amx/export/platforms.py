"""Platform spec registry: per platform/placement technical limits.

The default table is built once at import and exposed read-only. Updating a
limit means editing ``_DEFAULT_SPECS`` and redeploying; nothing mutates a
registry at runtime.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from amx.errors import UnknownPlatformError
from amx.schemas.export_schemas import DOWNLOAD, ExportTarget, Placement, Platform


class PlatformSpec(BaseModel):
    """Technical constraints for one platform placement."""

    model_config = ConfigDict(frozen=True)

    platform: Platform
    placement: Placement
    aspect_ratios: tuple[str, ...]
    max_duration_seconds: float
    max_file_size_mb: float
    recommended_codec: str = "H.264"
    recommended_bitrate: str = ""


def _spec(platform, placement, ratios, duration, size_mb, bitrate, codec="H.264") -> PlatformSpec:
    return PlatformSpec(
        platform=platform,
        placement=placement,
        aspect_ratios=tuple(ratios),
        max_duration_seconds=duration,
        max_file_size_mb=size_mb,
        recommended_codec=codec,
        recommended_bitrate=bitrate,
    )


_DEFAULT_SPECS: dict[tuple[Platform, Placement], PlatformSpec] = {
    (s.platform, s.placement): s
    for s in [
        _spec(Platform.FACEBOOK, Placement.FEED, ["16:9", "1:1", "4:5"], 14400, 4096, "8 Mbps"),
        _spec(Platform.FACEBOOK, Placement.STORIES, ["9:16"], 120, 4096, "8 Mbps"),
        _spec(Platform.FACEBOOK, Placement.REELS, ["9:16"], 90, 4096, "8 Mbps"),
        _spec(Platform.INSTAGRAM, Placement.FEED, ["1:1", "4:5"], 3600, 650, "5 Mbps"),
        _spec(Platform.INSTAGRAM, Placement.STORIES, ["9:16"], 60, 250, "5 Mbps"),
        _spec(Platform.INSTAGRAM, Placement.REELS, ["9:16"], 90, 4096, "5 Mbps"),
        _spec(Platform.TIKTOK, Placement.FEED, ["9:16"], 600, 287, "6 Mbps"),
        _spec(Platform.TWITTER, Placement.FEED, ["16:9", "1:1"], 140, 512, "5 Mbps"),
        _spec(Platform.LINKEDIN, Placement.FEED, ["16:9", "1:1", "4:5"], 600, 5120, "5 Mbps"),
        _spec(Platform.YOUTUBE, Placement.IN_STREAM, ["16:9"], 43200, 262144, "12 Mbps"),
        _spec(Platform.YOUTUBE, Placement.SHORTS, ["9:16"], 60, 262144, "8 Mbps"),
    ]
}


def _as_platform(value: Platform | str) -> Platform:
    try:
        return Platform(value.lower() if isinstance(value, str) else value)
    except ValueError:
        raise UnknownPlatformError(str(value))


def _as_placement(platform: Platform, value: Placement | str) -> Placement:
    raw = value.lower().replace("-", "_") if isinstance(value, str) else value
    try:
        return Placement(raw)
    except ValueError:
        raise UnknownPlatformError(platform.value, str(value))


class PlatformSpecRegistry:
    """Immutable lookup of ``(platform, placement) -> PlatformSpec``."""

    def __init__(self, specs: Mapping[tuple[Platform, Placement], PlatformSpec]):
        self._specs = MappingProxyType(dict(specs))

    def resolve(self, platform: Platform | str, placement: Placement | str) -> PlatformSpec:
        """Return the spec or raise UnknownPlatformError; never falls back to a default."""
        p = _as_platform(platform)
        pl = _as_placement(p, placement)
        spec = self._specs.get((p, pl))
        if spec is None:
            raise UnknownPlatformError(p.value, pl.value)
        return spec

    def required_aspect_ratios(
        self,
        platform: Platform | str,
        placement: Placement | str,
        format_overrides: Mapping[str, list[str]] | None = None,
    ) -> list[str]:
        """Aspect ratios an export must satisfy. An override list replaces the default set."""
        spec = self.resolve(platform, placement)
        if format_overrides:
            override = format_overrides.get(spec.platform.value)
            if override is not None:
                return list(override)
        return list(spec.aspect_ratios)

    def list_specs(self) -> list[PlatformSpec]:
        return list(self._specs.values())

    def __contains__(self, key: tuple[Platform, Placement]) -> bool:
        return key in self._specs


DEFAULT_REGISTRY = PlatformSpecRegistry(_DEFAULT_SPECS)


def resolve(platform: Platform | str, placement: Placement | str) -> PlatformSpec:
    return DEFAULT_REGISTRY.resolve(platform, placement)


_TARGET_RE = re.compile(r"^\s*([A-Za-z]+)\s*(?:[-:/]\s*([A-Za-z_-]+))?\s*$")


def parse_target(value: ExportTarget | str) -> ExportTarget:
    """Parse ``"download"``, ``"instagram-feed"``, ``"youtube:in_stream"`` or a bare platform.

    A bare platform name means its feed placement. Unknown names raise
    UnknownPlatformError here, before any export work starts.
    """
    if isinstance(value, ExportTarget):
        return value
    if value.strip().lower() == "download":
        return DOWNLOAD
    m = _TARGET_RE.match(value)
    if not m:
        raise UnknownPlatformError(value)
    platform = _as_platform(m.group(1))
    placement = _as_placement(platform, m.group(2) or Placement.FEED.value)
    return ExportTarget(kind="platform", platform=platform, placement=placement)
