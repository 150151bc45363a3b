"""Media proxy adapter: fetch rendered media bytes by URL."""

from __future__ import annotations

from typing import Protocol

import httpx

from amx.errors import MediaFetchError


class MediaProxy(Protocol):
    async def fetch(self, url: str) -> bytes:
        """Return the raw bytes behind ``url``. Raises MediaFetchError."""
        ...


class HttpMediaProxy:
    """Fetch through a proxy endpoint (``<proxy>?url=...``) or directly when no proxy is set."""

    def __init__(
        self,
        proxy_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._proxy_url = proxy_url
        self._timeout = timeout
        self._client = client

    def _request(self, url: str) -> tuple[str, dict[str, str] | None]:
        if self._proxy_url:
            return self._proxy_url, {"url": url}
        return url, None

    async def fetch(self, url: str) -> bytes:
        target, params = self._request(url)
        try:
            if self._client is not None:
                response = await self._client.get(target, params=params)
            else:
                async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout) as client:
                    response = await client.get(target, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MediaFetchError(f"Could not fetch {url}: {str(e)[:300]}") from e
        return response.content
