"""Tests for AI story continuation over a faked completions endpoint."""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from storychain.ai import router as ai_router
from storychain.ai.service import AIUnavailableError, AIUpstreamError, StoryContinuationService
from storychain.config import get_config
from storychain.main import app


client = TestClient(app)


def completion(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def ai_enabled():
    config = get_config()
    config.ai.enabled = True
    config.ai.base_url = "https://llm.example.com/v1"
    config.secrets.ai.api_key = "sk-test"
    return config


def service_with(handler, config):
    return StoryContinuationService(config, transport=httpx.MockTransport(handler))


class TestService:

    @pytest.mark.asyncio
    async def test_posts_openai_compatible_request(self, ai_enabled):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion('  "The door creaked open."  '))

        text = await service_with(handler, ai_enabled).continue_story("It was a dark night.")

        assert text == "The door creaked open."
        assert seen["url"] == "https://llm.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == ai_enabled.ai.model
        assert seen["body"]["messages"][-1] == {"role": "user", "content": "It was a dark night."}

    @pytest.mark.asyncio
    async def test_disabled(self):
        service = StoryContinuationService(get_config())
        assert not service.available
        with pytest.raises(AIUnavailableError):
            await service.continue_story("Hello")

    @pytest.mark.asyncio
    async def test_enabled_without_key(self):
        config = get_config()
        config.ai.enabled = True
        with pytest.raises(AIUnavailableError):
            await StoryContinuationService(config).continue_story("Hello")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=completion("   ")),
    ])
    async def test_upstream_failures(self, ai_enabled, response):
        with pytest.raises(AIUpstreamError):
            await service_with(lambda request: response, ai_enabled).continue_story("Hi")

    @pytest.mark.asyncio
    async def test_network_error(self, ai_enabled):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(AIUpstreamError):
            await service_with(handler, ai_enabled).continue_story("Hi")

    @pytest.mark.asyncio
    async def test_long_context_is_trimmed_to_the_tail(self, ai_enabled):
        seen = {}

        def handler(request):
            seen["content"] = json.loads(request.content)["messages"][-1]["content"]
            return httpx.Response(200, json=completion("More."))

        await service_with(handler, ai_enabled).continue_story("x" * 5000 + "END")

        assert seen["content"].endswith("END")
        assert len(seen["content"]) == 4000


class TestEndpoint:

    def test_returns_continuation(self, ai_enabled, monkeypatch):
        handler = lambda request: httpx.Response(200, json=completion("And then it rained."))
        monkeypatch.setattr(ai_router, "_service", lambda: service_with(handler, ai_enabled))

        resp = client.post("/api/ai/continue-story", json={"storyContext": "The sky darkened."})

        assert resp.status_code == 200
        assert resp.json() == {"continuation": "And then it rained."}

    def test_empty_context_is_400(self):
        resp = client.post("/api/ai/continue-story", json={"storyContext": "   "})
        assert resp.status_code == 400

    def test_disabled_is_503(self):
        resp = client.post("/api/ai/continue-story", json={"storyContext": "Once"})
        assert resp.status_code == 503

    def test_upstream_error_is_502(self, ai_enabled, monkeypatch):
        handler = lambda request: httpx.Response(429, json={"error": "rate limited"})
        monkeypatch.setattr(ai_router, "_service", lambda: service_with(handler, ai_enabled))

        resp = client.post("/api/ai/continue-story", json={"storyContext": "Once"})

        assert resp.status_code == 502
