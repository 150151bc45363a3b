"""Distribution (social publishing) adapter."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from amx.errors import DistributionError

logger = logging.getLogger(__name__)


class DistributionService(Protocol):
    async def publish(self, combination_id: str, platform: str, asset_ids: list[str]) -> bool:
        """Schedule or perform publication; True on success."""
        ...


class HttpDistributionService:
    """POST ``/social/export`` on the distribution service."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    async def publish(self, combination_id: str, platform: str, asset_ids: list[str]) -> bool:
        payload = {
            "combination_id": combination_id,
            "platform": platform,
            "asset_ids": asset_ids,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        url = f"{self._base_url}/social/export"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DistributionError(f"Distribution to {platform} failed: {str(e)[:300]}") from e
        if not isinstance(data, dict):
            raise DistributionError(f"Distribution to {platform} returned a non-object response")
        success = bool(data.get("success"))
        if not success:
            logger.warning("Distribution service declined %s on %s", combination_id, platform)
        return success
