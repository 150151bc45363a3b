"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from amx.errors import DistributionError, MediaFetchError, RenderSubmitError
from amx.generation.coordinator import GenerationCoordinator
from amx.matrix.combination import create
from amx.matrix.state import apply_event, begin_generation
from amx.matrix.store import InMemoryCombinationStore
from amx.schemas.events import RenderCompleted
from amx.schemas.models import AssetRef, AssetType


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeRenderBackend:
    """Records submissions; returns sequential job ids or raises for ``fail_ids``."""

    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.submitted: list[str] = []

    async def submit(self, combination, template_id, output_format):
        self.submitted.append(combination.id)
        if combination.id in self.fail_ids:
            raise RenderSubmitError(f"render backend rejected {combination.id}")
        return f"job-{len(self.submitted)}"


class FakeMediaProxy:
    """Returns ``b"media:<url>"`` for every URL except those in ``failing``."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.fetched: list[str] = []

    async def fetch(self, url):
        self.fetched.append(url)
        if url in self.failing:
            raise MediaFetchError(f"Could not fetch {url}")
        return f"media:{url}".encode()


class FakeDistribution:
    """Records publish calls; ``declined`` ids answer False, ``broken`` ids raise."""

    def __init__(self, declined=(), broken=()):
        self.declined = set(declined)
        self.broken = set(broken)
        self.calls: list[tuple[str, str, list[str]]] = []

    async def publish(self, combination_id, platform, asset_ids):
        self.calls.append((combination_id, platform, list(asset_ids)))
        if combination_id in self.broken:
            raise DistributionError("distribution service unreachable")
        return combination_id not in self.declined


class FakeClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, start=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Asset / combination factories
# ---------------------------------------------------------------------------

@pytest.fixture
def image_asset():
    return AssetRef(id="img-1", type=AssetType.IMAGE, name="Hero image", url="https://cdn.example/hero.jpg")


@pytest.fixture
def video_asset():
    return AssetRef(
        id="vid-1",
        type=AssetType.VIDEO,
        name="Product clip",
        url="https://cdn.example/clip.mp4",
        duration_seconds=30,
        file_size_mb=80,
    )


@pytest.fixture
def text_asset():
    return AssetRef(id="txt-1", type=AssetType.TEXT, name="Buy now")


@pytest.fixture
def completed_combination():
    """Factory: a combination rendered to completion through the state machine."""

    def _make(assets, url="https://renders.example/out.jpg", aspect_ratio=None):
        c = begin_generation(create(assets, aspect_ratio=aspect_ratio))
        return apply_event(c, RenderCompleted(combination_id=c.id, url=url)).combination

    return _make


@pytest.fixture
def render_backend():
    return FakeRenderBackend()


@pytest.fixture
def media_proxy():
    return FakeMediaProxy()


@pytest.fixture
def distribution():
    return FakeDistribution()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCombinationStore()


@pytest.fixture
def coordinator(store, render_backend, clock):
    return GenerationCoordinator(store, render_backend, clock=clock)
