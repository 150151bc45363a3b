"""Render generation: coordinator and render backend adapters."""

from amx.generation.coordinator import GenerationCoordinator
from amx.generation.render import HttpRenderBackend, RenderBackend

__all__ = ["GenerationCoordinator", "HttpRenderBackend", "RenderBackend"]
