"""Export pipeline, platform spec registry and media/distribution adapters."""

from amx.export.distribution import DistributionService, HttpDistributionService
from amx.export.media import HttpMediaProxy, MediaProxy
from amx.export.pipeline import ExportPipeline, save_artifact
from amx.export.platforms import DEFAULT_REGISTRY, PlatformSpec, PlatformSpecRegistry, parse_target, resolve

__all__ = [
    "DEFAULT_REGISTRY",
    "DistributionService",
    "ExportPipeline",
    "HttpDistributionService",
    "HttpMediaProxy",
    "MediaProxy",
    "PlatformSpec",
    "PlatformSpecRegistry",
    "parse_target",
    "resolve",
    "save_artifact",
]
