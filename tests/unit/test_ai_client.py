"""Tests for the chat-completion clients."""

import json

import httpx
import pytest

from api.config import Settings
from api.exceptions import ExternalServiceError
from pipeline.ai.client import AIClientConfig, MockAIClient, OpenAIClient, get_ai_client


def completion(content: str | None) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5},
    }


def make_client(handler) -> OpenAIClient:
    return OpenAIClient(
        AIClientConfig(api_key="sk-test", base_url="https://ai.example.test/v1"),
        transport=httpx.MockTransport(handler),
    )


class TestOpenAIClient:
    """Tests for OpenAIClient."""

    @pytest.mark.asyncio
    async def test_request_shape(self) -> None:
        """JSON mode, model and auth are sent to /chat/completions."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=completion('{"suggestions": []}'))

        content = await make_client(handler).complete_json(
            "system prompt", "user prompt", model="gpt-test", temperature=0.2, max_tokens=50
        )

        assert content == '{"suggestions": []}'
        request = seen[0]
        assert str(request.url) == "https://ai.example.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-test"
        assert body["response_format"] == {"type": "json_object"}
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 50
        assert body["messages"][0] == {"role": "system", "content": "system prompt"}
        assert body["messages"][1] == {"role": "user", "content": "user prompt"}

    @pytest.mark.asyncio
    async def test_image_urls_become_content_parts(self) -> None:
        """Images are attached as image_url parts after the text."""
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=completion('{"altText": "A chart"}'))

        await make_client(handler).complete_json(
            "sys", "describe", model="vision", image_urls=["https://example.com/a.png"]
        )

        parts = seen[0]["messages"][1]["content"]
        assert parts[0] == {"type": "text", "text": "describe"}
        assert parts[1] == {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}}

    @pytest.mark.asyncio
    async def test_non_200_raises(self) -> None:
        """Error statuses raise ExternalServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="rate limited")

        with pytest.raises(ExternalServiceError) as exc_info:
            await make_client(handler).complete_json("s", "u", model="m")

        assert "HTTP 429" in exc_info.value.message
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self) -> None:
        """A body without choices raises ExternalServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(ExternalServiceError):
            await make_client(handler).complete_json("s", "u", model="m")

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        """Empty message content raises ExternalServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=completion(""))

        with pytest.raises(ExternalServiceError):
            await make_client(handler).complete_json("s", "u", model="m")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        """Transport failures are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable")

        with pytest.raises(ExternalServiceError):
            await make_client(handler).complete_json("s", "u", model="m")


class TestMockAIClient:
    """Tests for MockAIClient."""

    @pytest.mark.asyncio
    async def test_fifo_then_default(self) -> None:
        """Queued responses are served first, then the default."""
        client = MockAIClient(responses=["first"], default_response="default")
        client.queue_response("second")

        results = [await client.complete_json("s", "u", model="m") for _ in range(3)]

        assert results == ["first", "second", "default"]
        assert len(client.calls) == 3
        assert client.calls[0].model == "m"

    @pytest.mark.asyncio
    async def test_failure_mode(self) -> None:
        """The next fail_count calls raise."""
        client = MockAIClient()
        client.set_failure_mode(True, fail_count=2)

        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await client.complete_json("s", "u", model="m")

        assert await client.complete_json("s", "u", model="m") == '{"suggestions": []}'


class TestGetAIClient:
    """Tests for get_ai_client."""

    def test_disabled_without_key(self) -> None:
        """No API key means no client."""
        assert get_ai_client(Settings(openai_api_key="")) is None

    def test_configured_client(self) -> None:
        """A key yields an OpenAIClient with the configured endpoint."""
        client = get_ai_client(Settings(openai_api_key="sk-live", ai_base_url="https://x.test/v1"))

        assert isinstance(client, OpenAIClient)
        assert client.config.base_url == "https://x.test/v1"
