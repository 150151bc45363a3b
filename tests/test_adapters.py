"""Tests for the httpx render, media proxy and distribution adapters."""

import asyncio
import json

import httpx
import pytest

from amx.errors import DistributionError, MediaFetchError, RenderSubmitError
from amx.export.distribution import HttpDistributionService
from amx.export.media import HttpMediaProxy
from amx.generation.render import HttpRenderBackend, build_modifications
from amx.matrix.combination import create


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRenderBackend:
    def test_submit_posts_modifications(self, image_asset, text_asset):
        c = create({"hero": image_asset, "cta": text_asset, "logo": None}, aspect_ratio="9:16")
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("authorization")
            captured["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "render-42"})

        backend = HttpRenderBackend("https://render.example/", api_key="secret", client=_client(handler))
        job_id = asyncio.run(backend.submit(c, "tpl-1", "mp4"))

        assert job_id == "render-42"
        assert captured["url"] == "https://render.example/renders"
        assert captured["auth"] == "Bearer secret"
        assert captured["body"]["modifications"] == {"hero": "https://cdn.example/hero.jpg", "cta": "Buy now"}
        assert captured["body"]["aspect_ratio"] == "9:16"
        assert captured["body"]["combination_id"] == c.id

    def test_retries_on_rate_limit(self, image_asset, monkeypatch):
        calls = []

        async def no_sleep(seconds):
            calls.append(("sleep", seconds))

        monkeypatch.setattr("amx.generation.render.asyncio.sleep", no_sleep)

        def handler(request):
            calls.append("post")
            if calls.count("post") < 3:
                return httpx.Response(429)
            return httpx.Response(200, json={"job_id": "j-3"})

        backend = HttpRenderBackend("https://render.example", client=_client(handler))
        assert asyncio.run(backend.submit(create({"hero": image_asset}), "tpl", "mp4")) == "j-3"
        assert calls == ["post", ("sleep", 1), "post", ("sleep", 2), "post"]

    def test_http_error(self, image_asset):
        backend = HttpRenderBackend("https://render.example", client=_client(lambda r: httpx.Response(500)))
        with pytest.raises(RenderSubmitError):
            asyncio.run(backend.submit(create({"hero": image_asset}), "tpl", "mp4"))

    def test_missing_job_id(self, image_asset):
        backend = HttpRenderBackend("https://render.example", client=_client(lambda r: httpx.Response(200, json={})))
        with pytest.raises(RenderSubmitError, match="no job id"):
            asyncio.run(backend.submit(create({"hero": image_asset}), "tpl", "mp4"))

    def test_build_modifications_skips_empty_slots(self, image_asset):
        assert build_modifications(create({"hero": image_asset, "logo": None})) == {
            "hero": "https://cdn.example/hero.jpg"
        }


class TestMediaProxy:
    def test_fetch_through_proxy(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, content=b"bytes")

        proxy = HttpMediaProxy("https://app.example/api/proxy-media", client=_client(handler))
        assert asyncio.run(proxy.fetch("https://renders.example/a.jpg")) == b"bytes"
        assert seen["url"].params["url"] == "https://renders.example/a.jpg"
        assert seen["url"].path == "/api/proxy-media"

    def test_fetch_direct(self):
        proxy = HttpMediaProxy(client=_client(lambda r: httpx.Response(200, content=str(r.url).encode())))
        assert asyncio.run(proxy.fetch("https://renders.example/a.jpg")) == b"https://renders.example/a.jpg"

    def test_fetch_error(self):
        proxy = HttpMediaProxy(client=_client(lambda r: httpx.Response(404)))
        with pytest.raises(MediaFetchError):
            asyncio.run(proxy.fetch("https://renders.example/gone.jpg"))


class TestDistribution:
    def test_publish(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        service = HttpDistributionService("https://dist.example/api", client=_client(handler))
        assert asyncio.run(service.publish("c1", "instagram-feed", ["a", "b"])) is True
        assert captured["url"] == "https://dist.example/api/social/export"
        assert captured["body"] == {"combination_id": "c1", "platform": "instagram-feed", "asset_ids": ["a", "b"]}

    def test_declined(self):
        service = HttpDistributionService(
            "https://dist.example", client=_client(lambda r: httpx.Response(200, json={"success": False}))
        )
        assert asyncio.run(service.publish("c1", "tiktok-feed", [])) is False

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service = HttpDistributionService("https://dist.example", client=_client(handler))
        with pytest.raises(DistributionError):
            asyncio.run(service.publish("c1", "tiktok-feed", []))

    def test_non_object_response(self):
        service = HttpDistributionService(
            "https://dist.example", client=_client(lambda r: httpx.Response(200, json=["queued"]))
        )
        with pytest.raises(DistributionError, match="non-object"):
            asyncio.run(service.publish("c1", "tiktok-feed", []))
