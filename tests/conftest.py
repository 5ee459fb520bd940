"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment before any app code runs
os.environ["ENV"] = "test"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SUGGESTION_CACHE_BACKEND"] = "memory"

from api.config import Settings, get_settings  # noqa: E402
from api.deps import Services, build_services, get_services  # noqa: E402
from pipeline.ai.cache import InMemorySuggestionCache  # noqa: E402
from pipeline.ai.client import MockAIClient  # noqa: E402
from pipeline.storage import InMemoryStorage  # noqa: E402
from tests.fixtures.pages import AI_DEFAULT_RESPONSE, FakeSite, build_site  # noqa: E402


@pytest.fixture(autouse=True)
def clear_cached_settings() -> Generator[None, None, None]:
    """Use test env values, not stale or .env ones."""
    get_settings.cache_clear()
    get_services.cache_clear()
    yield
    get_settings.cache_clear()
    get_services.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with every delay disabled."""
    return Settings(
        env="test",
        ai_retry_delay_seconds=0.0,
        insights_batch_delay_ms=0,
        default_crawl_delay_ms=0,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def mock_ai() -> MockAIClient:
    return MockAIClient(default_response=AI_DEFAULT_RESPONSE)


@pytest.fixture
def site() -> FakeSite:
    return build_site(page_count=3)


@pytest.fixture
def services(
    settings: Settings,
    storage: InMemoryStorage,
    mock_ai: MockAIClient,
    site: FakeSite,
) -> Services:
    """Fully wired pipeline against the fake site and the mock AI client."""
    return build_services(
        settings,
        storage=storage,
        ai_client=mock_ai,
        cache=InMemorySuggestionCache(),
        transport=site.transport,
    )


@pytest.fixture
async def client(settings: Settings, services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the pipeline wired to the fake site."""
    from api.main import app

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
