"""Engagement scoring for completed combinations.

Scores come from an external scoring service when one is configured. When it
is unset or unreachable, ``HeuristicScorer`` estimates a score from asset
metadata: more diverse asset types score higher, and video adds a bonus.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from amx.errors import RangeError, ScoringError
from amx.schemas.models import AssetType, Combination, CombinationStatus

logger = logging.getLogger(__name__)


class ScoringService(Protocol):
    async def score(self, combinations: list[Combination]) -> dict[str, float]:
        """Return engagement scores in [0, 1] keyed by combination id."""
        ...


class HttpScoringService:
    """POST ``/analytics/optimise-combinations`` on the scoring service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def score(self, combinations: list[Combination]) -> dict[str, float]:
        payload = {
            "combinations": [
                {"combination_id": c.id, "asset_ids": c.non_null_asset_ids()}
                for c in combinations
            ]
        }
        url = f"{self._base_url}/analytics/optimise-combinations"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ScoringError(f"Scoring service failed: {str(e)[:300]}") from e

        # Accept both {"scores": {...}} and {"data": {"scores": {...}}}
        if not isinstance(data, dict):
            raise ScoringError("Scoring service response is not a JSON object")
        scores = data.get("scores")
        if scores is None and isinstance(data.get("data"), dict):
            scores = data["data"].get("scores")
        if not isinstance(scores, dict):
            raise ScoringError("Scoring service response has no scores")
        try:
            return {str(k): float(v) for k, v in scores.items() if v is not None}
        except (TypeError, ValueError) as e:
            raise ScoringError(f"Scoring service returned a non-numeric score: {e}") from e


def heuristic_score(combination: Combination) -> float:
    """0.4 + 0.3 * type diversity + 0.2 if any video, capped at 1."""
    assets = combination.non_null_assets()
    if not combination.assets:
        return 0.4
    diversity = len({a.type for a in assets}) / len(combination.assets)
    has_video = any(a.type == AssetType.VIDEO for a in assets)
    return min(1.0, 0.4 + diversity * 0.3 + (0.2 if has_video else 0.0))


class HeuristicScorer:
    """Deterministic fallback scorer."""

    async def score(self, combinations: list[Combination]) -> dict[str, float]:
        return {c.id: round(heuristic_score(c), 4) for c in combinations}


async def score_completed(
    coordinator,
    scorer: ScoringService | None = None,
    fallback: ScoringService | None = None,
) -> dict[str, float]:
    """Score every completed combination and attach the results.

    Falls back to ``HeuristicScorer`` when ``scorer`` is missing or raises
    ScoringError. Out-of-range scores are logged and left unattached.
    Returns the scores that were attached.
    """
    completed = [
        c for c in coordinator.list()
        if c.status == CombinationStatus.COMPLETED and c.preview_url
    ]
    if not completed:
        logger.info("No completed combinations to score")
        return {}

    fallback = fallback or HeuristicScorer()
    scores: dict[str, float] | None = None
    if scorer is not None:
        try:
            scores = await scorer.score(completed)
        except ScoringError as e:
            logger.warning("Scoring service unavailable, using heuristic: %s", e)
    if scores is None:
        scores = await fallback.score(completed)

    attached: dict[str, float] = {}
    wanted = {c.id for c in completed}
    for combination_id, value in scores.items():
        if combination_id not in wanted:
            continue
        try:
            coordinator.attach_score(combination_id, value)
        except RangeError as e:
            logger.warning("Ignoring score for %s: %s", combination_id, e)
            continue
        attached[combination_id] = value
    logger.info("Attached %d engagement scores", len(attached))
    return attached
