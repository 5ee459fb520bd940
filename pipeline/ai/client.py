"""Chat-completion clients used by the AI stages."""

import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from api.config import Settings
from api.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


@dataclass
class AIClientConfig:
    """Configuration for a chat-completion client."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 60.0


@dataclass
class AICall:
    """A recorded request, kept by the mock client."""

    system: str
    user: str
    model: str
    temperature: float
    max_tokens: int
    image_urls: list[str] = field(default_factory=list)


class AIClient(ABC):
    """Abstract base class for JSON-mode chat completion."""

    def __init__(self, config: AIClientConfig):
        self.config = config

    @abstractmethod
    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float = 0.4,
        max_tokens: int = 2000,
        image_urls: list[str] | None = None,
    ) -> str:
        """
        Run one chat completion constrained to a JSON object.

        Returns:
            The raw message content (not yet parsed)

        Raises:
            ExternalServiceError: On transport failures, non-200 responses or
                a response without content
        """
        ...


class OpenAIClient(AIClient):
    """OpenAI-compatible ``/chat/completions`` client over httpx."""

    def __init__(
        self,
        config: AIClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config)
        self._transport = transport

    def _messages(self, system: str, user: str, image_urls: list[str] | None) -> list[dict]:
        if not image_urls:
            user_content: Any = user
        else:
            user_content = [{"type": "text", "text": user}] + [
                {"type": "image_url", "image_url": {"url": url}} for url in image_urls
            ]
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user_content},
        ]

    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float = 0.4,
        max_tokens: int = 2000,
        image_urls: list[str] | None = None,
    ) -> str:
        start_time = time.perf_counter()

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "messages": self._messages(system, user, image_urls),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self.config.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                "openai", f"Request timed out after {self.config.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError("openai", str(e)) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code != 200:
            raise ExternalServiceError(
                "openai", f"HTTP {response.status_code}: {response.text[:500]}"
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError("openai", f"Malformed completion response: {e}") from e

        if not content:
            raise ExternalServiceError("openai", "Empty completion content")

        usage = data.get("usage", {})
        logger.debug(
            "ai_completion",
            model=model,
            latency_ms=round(latency_ms, 1),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
        )
        return str(content)


class MockAIClient(AIClient):
    """Mock client for testing.

    Responses are served from a FIFO queue; once it is empty the
    ``default_response`` is returned. ``set_failure_mode`` makes the next
    ``fail_count`` calls raise ``ExternalServiceError``.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        default_response: str = '{"suggestions": []}',
    ):
        super().__init__(AIClientConfig(api_key="mock"))
        self.responses: deque[str] = deque(responses or [])
        self.default_response = default_response
        self.should_fail = False
        self.fail_count = 0
        self.calls: list[AICall] = []

    def queue_response(self, content: str) -> None:
        self.responses.append(content)

    def set_failure_mode(self, should_fail: bool, fail_count: int = 1) -> None:
        """Configure failure behavior."""
        self.should_fail = should_fail
        self.fail_count = fail_count

    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float = 0.4,
        max_tokens: int = 2000,
        image_urls: list[str] | None = None,
    ) -> str:
        self.calls.append(
            AICall(
                system=system,
                user=user,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                image_urls=list(image_urls or []),
            )
        )

        if self.should_fail and self.fail_count > 0:
            self.fail_count -= 1
            raise ExternalServiceError("mock", "Simulated failure")

        if self.responses:
            return self.responses.popleft()
        return self.default_response


def get_ai_client(settings: Settings) -> AIClient | None:
    """Build the configured client, or None when no API key is set."""
    if not settings.ai_enabled:
        return None
    return OpenAIClient(
        AIClientConfig(
            api_key=settings.openai_api_key or "",
            base_url=settings.ai_base_url,
            timeout_seconds=settings.ai_timeout_seconds,
        )
    )
