"""FastAPI dependencies and pipeline wiring."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends

from api.config import Settings, get_settings
from pipeline.ai.alt_text import AltTextService
from pipeline.ai.cache import SuggestionCache, get_suggestion_cache
from pipeline.ai.client import AIClient, get_ai_client
from pipeline.ai.competitor_insights import CompetitorInsightsService
from pipeline.ai.site_overview import SiteOverviewService
from pipeline.ai.suggestions import SuggestionService
from pipeline.crawler.fetcher import PageFetcher
from pipeline.crawler.sitemap import SitemapParser
from pipeline.competitor import CompetitorAnalyzer
from pipeline.design import DesignService
from pipeline.discovery import PageDiscovery
from pipeline.insights import InsightsGenerator
from pipeline.orchestrator import AnalysisOrchestrator
from pipeline.page_analyzer import PageAnalyzer
from pipeline.progress import CancellationRegistry, ProgressTracker
from pipeline.quota import QuotaManager
from pipeline.storage import InMemoryStorage, Storage

__all__ = [
    "Services",
    "build_services",
    "get_services",
    "SettingsDep",
    "ServicesDep",
    "OrchestratorDep",
    "TrackerDep",
    "QuotaDep",
    "CompetitorDep",
]


@dataclass
class Services:
    """Collaborators shared by every request in one application."""

    storage: Storage
    registry: CancellationRegistry
    tracker: ProgressTracker
    cache: SuggestionCache
    ai_client: AIClient | None
    quota_manager: QuotaManager
    orchestrator: AnalysisOrchestrator
    competitor: CompetitorAnalyzer


def build_services(
    settings: Settings,
    storage: Storage | None = None,
    ai_client: AIClient | None = None,
    cache: SuggestionCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    design: DesignService | None = None,
) -> Services:
    """
    Wire the pipeline from settings.

    Args:
        settings: Application settings
        storage: Datastore (defaults to a fresh InMemoryStorage)
        ai_client: AI client (defaults to the configured one, None without a key)
        cache: Suggestion cache (defaults to the configured backend)
        transport: httpx transport for page, sitemap and crawl requests
        design: Optional design scoring service
    """
    if storage is None:
        storage = InMemoryStorage()
    if ai_client is None:
        ai_client = get_ai_client(settings)
    if cache is None:
        cache = get_suggestion_cache(settings)

    registry = CancellationRegistry()
    tracker = ProgressTracker()
    quota_manager = QuotaManager(storage)

    fetcher = PageFetcher(
        user_agent=settings.crawler_user_agent,
        timeout=settings.crawler_timeout,
        transport=transport,
    )
    sitemap_parser = SitemapParser(
        user_agent=settings.crawler_user_agent,
        timeout=settings.crawler_timeout,
        transport=transport,
    )

    suggestions = site_overview = alt_text = competitor_insights = None
    if ai_client is not None:
        suggestions = SuggestionService(
            ai_client,
            cache,
            model=settings.ai_model,
            max_attempts=settings.ai_max_attempts,
            retry_delay=settings.ai_retry_delay_seconds,
        )
        site_overview = SiteOverviewService(ai_client, model=settings.ai_overview_model)
        alt_text = AltTextService(ai_client, model=settings.ai_vision_model)
        competitor_insights = CompetitorInsightsService(ai_client, model=settings.ai_overview_model)

    orchestrator = AnalysisOrchestrator(
        storage=storage,
        registry=registry,
        tracker=tracker,
        quota_manager=quota_manager,
        discovery=PageDiscovery(sitemap_parser, fetcher, max_depth=settings.crawler_max_depth),
        page_analyzer=PageAnalyzer(
            fetcher,
            quota_manager,
            alt_text=alt_text,
            batch_size=settings.page_batch_size,
        ),
        insights=InsightsGenerator(
            quota_manager,
            suggestions,
            site_overview,
            batch_size=settings.insights_batch_size,
            batch_delay_ms=settings.insights_batch_delay_ms,
            trial_suggestion_limit=settings.trial_suggestion_limit,
        ),
        design=design,
    )

    return Services(
        storage=storage,
        registry=registry,
        tracker=tracker,
        cache=cache,
        ai_client=ai_client,
        quota_manager=quota_manager,
        orchestrator=orchestrator,
        competitor=CompetitorAnalyzer(storage, orchestrator, competitor_insights),
    )


@lru_cache
def get_services() -> Services:
    """Application-wide services, built once from settings."""
    return build_services(get_settings())


def get_orchestrator(services: Annotated[Services, Depends(get_services)]) -> AnalysisOrchestrator:
    return services.orchestrator


def get_tracker(services: Annotated[Services, Depends(get_services)]) -> ProgressTracker:
    return services.tracker


def get_quota_manager(services: Annotated[Services, Depends(get_services)]) -> QuotaManager:
    return services.quota_manager


def get_competitor_analyzer(
    services: Annotated[Services, Depends(get_services)],
) -> CompetitorAnalyzer:
    return services.competitor


# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

ServicesDep = Annotated[Services, Depends(get_services)]
OrchestratorDep = Annotated[AnalysisOrchestrator, Depends(get_orchestrator)]
TrackerDep = Annotated[ProgressTracker, Depends(get_tracker)]
QuotaDep = Annotated[QuotaManager, Depends(get_quota_manager)]
CompetitorDep = Annotated[CompetitorAnalyzer, Depends(get_competitor_analyzer)]
