"""Tests for engagement scoring."""

import asyncio

import httpx
import pytest

from amx.errors import ScoringError
from amx.scoring import HeuristicScorer, HttpScoringService, heuristic_score, score_completed
from amx.schemas.models import CombinationStatus


def test_heuristic_prefers_diverse_video(completed_combination, image_asset, video_asset, text_asset):
    images_only = completed_combination({"a": image_asset, "b": image_asset})
    mixed = completed_combination({"hero": image_asset, "clip": video_asset, "cta": text_asset})
    assert heuristic_score(images_only) == pytest.approx(0.4 + 0.5 * 0.3)
    assert heuristic_score(mixed) == pytest.approx(0.4 + 0.3 + 0.2)
    assert heuristic_score(mixed) > heuristic_score(images_only)


def test_heuristic_is_deterministic(completed_combination, image_asset, video_asset):
    c = completed_combination({"hero": image_asset, "clip": video_asset})
    first = asyncio.run(HeuristicScorer().score([c]))
    assert first == asyncio.run(HeuristicScorer().score([c]))
    assert 0 <= first[c.id] <= 1


class _BrokenScorer:
    async def score(self, combinations):
        raise ScoringError("down")


class _OutOfRangeScorer:
    async def score(self, combinations):
        return {c.id: 3.0 for c in combinations}


class TestScoreCompleted:
    def _finish(self, coordinator, assets):
        c = coordinator.add(assets)
        asyncio.run(coordinator.generate_one(c.id))
        coordinator.on_complete(c.id, "https://renders.example/x.jpg")
        return c.id

    def test_only_completed_scored(self, coordinator, image_asset):
        done = self._finish(coordinator, {"hero": image_asset})
        waiting = coordinator.add({"hero": image_asset}).id

        scores = asyncio.run(score_completed(coordinator))
        assert set(scores) == {done}
        assert coordinator.get(done).engagement_score == pytest.approx(scores[done])
        assert coordinator.get(waiting).engagement_score is None
        assert coordinator.get(done).status == CombinationStatus.COMPLETED

    def test_falls_back_when_service_fails(self, coordinator, image_asset):
        done = self._finish(coordinator, {"hero": image_asset})
        scores = asyncio.run(score_completed(coordinator, _BrokenScorer()))
        assert done in scores

    def test_out_of_range_scores_ignored(self, coordinator, image_asset):
        done = self._finish(coordinator, {"hero": image_asset})
        assert asyncio.run(score_completed(coordinator, _OutOfRangeScorer())) == {}
        assert coordinator.get(done).engagement_score is None

    def test_nothing_completed(self, coordinator, image_asset):
        coordinator.add({"hero": image_asset})
        assert asyncio.run(score_completed(coordinator)) == {}


class TestHttpScoringService:
    def _service(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpScoringService("https://scoring.example/api", client=client)

    def test_parses_nested_scores(self, completed_combination, image_asset):
        c = completed_combination({"hero": image_asset})
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"data": {"scores": {c.id: 0.66}}})

        scores = asyncio.run(self._service(handler).score([c]))
        assert scores == {c.id: 0.66}
        assert seen["url"] == "https://scoring.example/api/analytics/optimise-combinations"

    def test_http_error_raises_scoring_error(self, completed_combination, image_asset):
        service = self._service(lambda request: httpx.Response(503))
        with pytest.raises(ScoringError):
            asyncio.run(service.score([completed_combination({"hero": image_asset})]))

    @pytest.mark.parametrize(
        "body",
        [["not", "an", "object"], {"scores": {"c": "high"}}, {"scores": {"c": [0.5]}}],
    )
    def test_unusable_response_raises_scoring_error(self, completed_combination, image_asset, body):
        service = self._service(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ScoringError):
            asyncio.run(service.score([completed_combination({"hero": image_asset})]))

    def test_non_numeric_scores_fall_back_to_heuristic(self, coordinator, image_asset):
        c = coordinator.add({"hero": image_asset})
        asyncio.run(coordinator.generate_one(c.id))
        coordinator.on_complete(c.id, "https://renders.example/x.jpg")

        service = self._service(lambda request: httpx.Response(200, json={"scores": {c.id: "high"}}))
        scores = asyncio.run(score_completed(coordinator, service))
        assert scores == {c.id: pytest.approx(heuristic_score(coordinator.get(c.id)), abs=1e-4)}
