"""Process-wide collaborators built from settings.

The backend and CLI obtain the coordinator, export pipeline and scorer here;
tests construct their own with fakes instead.
"""

from __future__ import annotations

import logging

from amx.config import Settings, get_settings
from amx.export.distribution import HttpDistributionService
from amx.export.media import HttpMediaProxy
from amx.export.pipeline import ExportPipeline
from amx.generation.coordinator import GenerationCoordinator
from amx.generation.render import HttpRenderBackend
from amx.matrix.store import get_combination_store
from amx.scoring import HttpScoringService, ScoringService

logger = logging.getLogger(__name__)

_coordinator: GenerationCoordinator | None = None
_pipeline: ExportPipeline | None = None


def build_coordinator(settings: Settings) -> GenerationCoordinator:
    backend = HttpRenderBackend(
        settings.amx_render_base_url,
        api_key=settings.amx_render_api_key,
        timeout=settings.amx_http_timeout,
    )
    return GenerationCoordinator(
        get_combination_store(),
        backend,
        template_id=settings.amx_default_template_id,
        output_format=settings.amx_default_output_format,
        max_concurrent_renders=settings.amx_max_concurrent_renders,
        generate_all_policy=settings.amx_generate_all_policy,
    )


def build_export_pipeline(settings: Settings) -> ExportPipeline:
    return ExportPipeline(
        HttpMediaProxy(settings.amx_media_proxy_url, timeout=settings.amx_http_timeout),
        HttpDistributionService(
            settings.amx_distribution_base_url,
            api_key=settings.amx_distribution_api_key,
            timeout=settings.amx_http_timeout,
        ),
    )


def get_coordinator() -> GenerationCoordinator:
    global _coordinator
    if _coordinator is None:
        settings = get_settings()
        _coordinator = build_coordinator(settings)
        logger.info(
            "Generation coordinator ready (render backend %s, max %d concurrent renders)",
            settings.amx_render_base_url,
            settings.amx_max_concurrent_renders,
        )
    return _coordinator


def get_export_pipeline() -> ExportPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = build_export_pipeline(get_settings())
    return _pipeline


def get_scorer() -> ScoringService | None:
    """HTTP scorer when a scoring service is configured, else None (heuristic fallback)."""
    settings = get_settings()
    if not settings.amx_scoring_base_url:
        return None
    return HttpScoringService(settings.amx_scoring_base_url, timeout=settings.amx_http_timeout)
