"""Integration tests for the full analysis pipeline against a fake website."""

import asyncio

import pytest

from api.config import Settings
from api.deps import Services, build_services
from api.exceptions import AnalysisCancelledError
from pipeline.ai.cache import InMemorySuggestionCache
from pipeline.ai.client import MockAIClient
from pipeline.models import AccountStatus, AnalysisOptions, ProgressStatus, Usage
from pipeline.storage import InMemoryStorage
from tests.fixtures.pages import AI_DEFAULT_RESPONSE, build_site


def wire(settings: Settings, site_pages: int = 10) -> tuple[Services, MockAIClient]:
    site = build_site(page_count=site_pages)
    client = MockAIClient(default_response=AI_DEFAULT_RESPONSE)
    services = build_services(
        settings,
        storage=InMemoryStorage(),
        ai_client=client,
        cache=InMemorySuggestionCache(),
        transport=site.transport,
    )
    return services, client


@pytest.mark.asyncio
@pytest.mark.integration
async def test_anonymous_run_respects_max_pages(settings: Settings) -> None:
    """
    An anonymous run over a ten-page sitemap with max_pages=3.

    Only the homepage and the first two sitemap pages are analyzed, the
    business context is inferred once, and no suggestions are produced.
    """
    services, client = wire(settings)

    result = await services.orchestrator.run_analysis(
        "example.com", AnalysisOptions(max_pages=3, crawl_delay_ms=0)
    )

    assert [p.url for p in result.pages] == [
        "https://example.com",
        "https://example.com/page-1",
        "https://example.com/page-2",
    ]
    assert result.processing_stats.ai_calls_made == 1
    assert len(client.calls) == 1
    assert all(not p.suggestions for p in result.pages)
    assert result.site_overview.industry == "Technology"
    assert result.processing_stats.pages_analyzed == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_trial_run(settings: Settings) -> None:
    """Trial runs are held to three pages, get free suggestions and count usage."""
    services, _ = wire(settings)
    usage = Usage(account_status=AccountStatus.TRIAL, credits=5)
    services.storage.set_user("t1", usage)

    result = await services.orchestrator.run_analysis(
        "example.com", AnalysisOptions(crawl_delay_ms=0), user_id="t1"
    )

    assert len(result.pages) == 3
    assert all(len(p.suggestions) == 2 for p in result.pages)
    assert result.processing_stats.credits_used == 0
    assert usage.credits == 5
    assert usage.pages_analyzed == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ai_outage_degrades_gracefully(settings: Settings) -> None:
    """When every AI call fails the run still completes and credits are refunded."""
    services, client = wire(settings, site_pages=2)
    client.set_failure_mode(True, fail_count=1000)
    usage = Usage(account_status=AccountStatus.PAID, credits=10)
    services.storage.set_user("p1", usage)

    result = await services.orchestrator.run_analysis(
        "example.com", AnalysisOptions(crawl_delay_ms=0), user_id="p1"
    )

    assert result.site_overview.is_fallback
    assert all(not p.suggestions for p in result.pages)
    assert usage.credits == 10
    assert {r.reason for r in services.storage.refunds} == {"no_suggestions"}
    assert result.analysis_id in services.storage.analyses


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_from_another_task(settings: Settings) -> None:
    """A cancel issued while the run is in flight stops it without persisting."""
    services, _ = wire(settings)
    subscription = services.tracker.subscribe("example.com")

    async def cancel_when_running() -> None:
        while "example.com" not in services.registry.active_domains():
            await asyncio.sleep(0)
        services.orchestrator.cancel("example.com")

    run = asyncio.create_task(
        services.orchestrator.run_analysis("example.com", AnalysisOptions(crawl_delay_ms=0))
    )
    await cancel_when_running()

    with pytest.raises(AnalysisCancelledError):
        await run

    statuses = []
    while not subscription.queue.empty():
        statuses.append(subscription.queue.get_nowait().status)
    assert statuses[-1] == ProgressStatus.CANCELLED
    assert ProgressStatus.COMPLETED not in statuses
    assert services.storage.analyses == {}
    assert services.registry.active_domains() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_domains(settings: Settings) -> None:
    """Runs for different domains proceed independently."""
    services, _ = wire(settings, site_pages=2)
    options = AnalysisOptions(crawl_delay_ms=0)

    first, second = await asyncio.gather(
        services.orchestrator.run_analysis("example.com", options),
        services.orchestrator.run_analysis("acme.test", options),
    )

    assert first.domain == "example.com"
    assert second.domain == "acme.test"
    assert second.pages[0].url == "https://acme.test"
    assert len(services.storage.analyses) == 2
    assert services.registry.active_domains() == []
