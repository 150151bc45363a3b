"""Render backend adapter: protocol plus an HTTP implementation.

The backend accepts a generation request for a combination's asset set and
later pushes progress, completion or failure back to us (see
``backend/routes/render_callbacks.py``). Submission only returns a job id.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from amx.errors import RenderSubmitError
from amx.schemas.models import AssetType, Combination

logger = logging.getLogger(__name__)


class RenderBackend(Protocol):
    """Protocol for render services."""

    async def submit(self, combination: Combination, template_id: str, output_format: str) -> str:
        """Queue a render for ``combination``; return the backend's job id."""
        ...


def build_modifications(combination: Combination) -> dict[str, Any]:
    """Map variable names to the values a template expects (URL, or text for copy assets)."""
    modifications: dict[str, Any] = {}
    for variable, asset in combination.assets.items():
        if asset is None:
            continue
        if asset.type == AssetType.TEXT and not asset.url:
            modifications[variable] = asset.name
        elif asset.url:
            modifications[variable] = asset.url
    return modifications


class HttpRenderBackend:
    """Submit render jobs over HTTP with exponential backoff on 429."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 5,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _post(self, client: httpx.AsyncClient, url: str, payload: dict) -> httpx.Response:
        response = None
        for attempt in range(self._max_retries):
            response = await client.post(url, json=payload, headers=self._headers())
            if response.status_code != 429:
                return response
            await asyncio.sleep(2 ** attempt)
        return response

    async def submit(self, combination: Combination, template_id: str, output_format: str) -> str:
        payload = {
            "template_id": template_id,
            "output_format": output_format,
            "combination_id": combination.id,
            "modifications": build_modifications(combination),
        }
        if combination.aspect_ratio:
            payload["aspect_ratio"] = combination.aspect_ratio
        url = f"{self._base_url}/renders"
        try:
            if self._client is not None:
                response = await self._post(self._client, url, payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, url, payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RenderSubmitError(f"Render submission failed for {combination.id}: {str(e)[:300]}") from e

        job_id = data.get("id") or data.get("job_id")
        if not job_id:
            raise RenderSubmitError(f"Render backend returned no job id for {combination.id}")
        logger.info("Submitted render job %s for combination %s", job_id, combination.id)
        return str(job_id)
