"""Tests for the registry API client."""

from __future__ import annotations

import json

import httpx
import pytest

from topic_operator.config import RegistryConfig
from topic_operator.services.registry import APPS_PATH, RegistryClient

from fakes import make_app


def client_for(handler, token=None):
    config = RegistryConfig(url="http://registry.test/", token=token)
    return RegistryClient(config, transport=httpx.MockTransport(handler))


class TestRegistryClient:
    """Tests for RegistryClient."""

    @pytest.mark.asyncio
    async def test_get_app(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "metadata": {"name": "foo", "generation": 2, "finalizers": ["kafka"]},
                    "spec": {},
                    "status": {"kafka": {"conditions": []}},
                },
            )

        app = await client_for(handler).get_app("foo")

        assert app.metadata.name == "foo"
        assert app.metadata.generation == 2
        assert app.status == {"kafka": {"conditions": []}}
        assert str(requests[0].url) == f"http://registry.test{APPS_PATH}/foo"
        assert "authorization" not in requests[0].headers

    @pytest.mark.asyncio
    async def test_get_missing_app(self) -> None:
        client = client_for(lambda request: httpx.Response(404))

        assert await client.get_app("foo") is None

    @pytest.mark.asyncio
    async def test_get_error(self) -> None:
        client = client_for(lambda request: httpx.Response(500))

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_app("foo")

    @pytest.mark.asyncio
    async def test_update_app(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        app = make_app("foo", finalizers=["kafka"])
        await client_for(handler, token="secret").update_app(app)

        request = requests[0]
        assert request.method == "PUT"
        assert request.headers["authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["metadata"]["name"] == "foo"
        assert body["metadata"]["finalizers"] == ["kafka"]
        assert "deletionTimestamp" not in body["metadata"]

    @pytest.mark.asyncio
    async def test_update_conflict(self) -> None:
        client = client_for(lambda request: httpx.Response(409))

        with pytest.raises(httpx.HTTPStatusError):
            await client.update_app(make_app("foo"))
