"""End-to-end analysis run: quota, discovery, pages, insights, analyzers, persistence."""

import structlog

from api.exceptions import AnalysisCancelledError, SiteAuditError
from api.logging import bind_analysis_context, clear_analysis_context
from pipeline.analysis.aggregate import calculate_aggregate_metrics, seo_effectiveness_score
from pipeline.analysis.content_quality import analyze_content_quality
from pipeline.analysis.issues import detect_seo_issues
from pipeline.analysis.link_architecture import analyze_link_architecture
from pipeline.analysis.performance import analyze_performance
from pipeline.analysis.technical import analyze_technical_seo
from pipeline.context import AnalysisContext
from pipeline.crawler.url import normalize_domain
from pipeline.design import DESIGN_PAGE_LIMIT, DesignService
from pipeline.discovery import PageDiscovery
from pipeline.insights import InsightsGenerator
from pipeline.models import (
    AnalysisOptions,
    AnalysisResult,
    DiscoveryResult,
    EnhancedInsights,
    InsightsResult,
    PageAnalysisResult,
    ProcessingStats,
)
from pipeline.page_analyzer import PageAnalyzer
from pipeline.progress import CancellationRegistry, ProgressTracker
from pipeline.quota import QuotaManager
from pipeline.storage import Storage

logger = structlog.get_logger(__name__)

__all__ = ["AnalysisContext", "AnalysisOrchestrator"]

# Progress checkpoints after the AI stage
DESIGN_PERCENT = 70
TECHNICAL_PERCENT = 75
CONTENT_QUALITY_PERCENT = 80
LINK_ARCHITECTURE_PERCENT = 85
PERFORMANCE_PERCENT = 90
FINALIZING_PERCENT = 98


def fallback_pages(discovery: DiscoveryResult, limit: int) -> list[PageAnalysisResult]:
    """Minimal page results built from data harvested while crawling."""
    pages = []
    for data in list(discovery.basic_seo_data.values())[:limit]:
        page = data.to_page_result()
        page.issues = detect_seo_issues(page)
        pages.append(page)
    return pages


class AnalysisOrchestrator:
    """
    Coordinates one analysis run per call and owns its lifecycle.

    The run is registered for cancellation by domain, reports progress
    through a per-domain channel and always deregisters on exit.
    """

    def __init__(
        self,
        storage: Storage,
        registry: CancellationRegistry,
        tracker: ProgressTracker,
        quota_manager: QuotaManager,
        discovery: PageDiscovery,
        page_analyzer: PageAnalyzer,
        insights: InsightsGenerator,
        design: DesignService | None = None,
    ):
        self.storage = storage
        self.registry = registry
        self.tracker = tracker
        self.quota_manager = quota_manager
        self.discovery = discovery
        self.page_analyzer = page_analyzer
        self.insights = insights
        self.design = design

    def cancel(self, domain: str) -> bool:
        """Request cancellation of the active run for ``domain``."""
        return self.registry.cancel(normalize_domain(domain))

    async def _design(
        self,
        pages: list[PageAnalysisResult],
        context: AnalysisContext,
    ) -> dict | None:
        if self.design is None or not context.ai_requested or not pages:
            return None

        context.channel.in_progress(DESIGN_PERCENT, current_page_url="Analyzing page designs...")
        urls = [p.url for p in pages[:DESIGN_PAGE_LIMIT]]
        try:
            return await self.design.analyze(urls)
        except Exception as e:
            logger.warning("design_analysis_failed", error=str(e))
            return None

    def _enhanced_insights(
        self,
        pages: list[PageAnalysisResult],
        context: AnalysisContext,
        discovery: DiscoveryResult,
        design: dict | None,
    ) -> EnhancedInsights:
        channel = context.channel

        context.token.raise_if_cancelled()
        channel.in_progress(TECHNICAL_PERCENT, current_page_url="Running technical SEO analysis...")
        technical = analyze_technical_seo(pages, context.domain, discovery.sitemap_found)

        context.token.raise_if_cancelled()
        channel.in_progress(CONTENT_QUALITY_PERCENT, current_page_url="Analyzing content quality...")
        content_quality = analyze_content_quality(pages)

        context.token.raise_if_cancelled()
        channel.in_progress(
            LINK_ARCHITECTURE_PERCENT, current_page_url="Analyzing link architecture..."
        )
        link_architecture = analyze_link_architecture(pages)

        context.token.raise_if_cancelled()
        channel.in_progress(PERFORMANCE_PERCENT, current_page_url="Analyzing performance metrics...")
        performance = analyze_performance(pages)

        effectiveness = seo_effectiveness_score(
            technical.overall_score,
            content_quality.overall_score,
            performance.overall_score,
            link_architecture.overall_score,
        )
        logger.info(
            "enhanced_insights_completed",
            technical=technical.overall_score,
            content_quality=content_quality.overall_score,
            link_architecture=link_architecture.overall_score,
            performance=performance.overall_score,
            seo_effectiveness=effectiveness,
        )

        return EnhancedInsights(
            technical=technical,
            content_quality=content_quality,
            link_architecture=link_architecture,
            performance=performance,
            seo_effectiveness_score=effectiveness,
            design=design,
        )

    async def _aggregate(
        self,
        pages: list[PageAnalysisResult],
        context: AnalysisContext,
        discovery: DiscoveryResult,
        insights: InsightsResult | None,
        enhanced: EnhancedInsights,
    ) -> AnalysisResult:
        context.token.raise_if_cancelled()
        context.channel.in_progress(FINALIZING_PERCENT, current_page_url="Saving results...")

        result = AnalysisResult(
            domain=context.domain,
            pages=pages,
            metrics=calculate_aggregate_metrics(pages),
            processing_stats=ProcessingStats(
                total_processing_time=context.elapsed(),
                pages_discovered=len(discovery.urls),
                pages_analyzed=len(pages),
                ai_calls_made=insights.ai_calls_made if insights else 0,
                credits_used=insights.credits_used if insights else 0,
            ),
            site_overview=insights.site_overview if insights else None,
            enhanced_insights=enhanced,
        )

        result.analysis_id = await self.storage.save_analysis(result, context.user_id)
        await self.quota_manager.increment_user_usage(context.user_id, len(pages))
        result.processing_stats.total_processing_time = context.elapsed()
        return result

    async def run_analysis(
        self,
        domain: str,
        options: AnalysisOptions | None = None,
        user_id: str | None = None,
    ) -> AnalysisResult:
        """
        Run the full pipeline for ``domain``.

        Raises:
            QuotaExceededError: The user's page limit is already reached
            AnalysisCancelledError: The run was cancelled; nothing is persisted
            DiscoveryError: No pages could be discovered
        """
        options = options or AnalysisOptions()
        domain = normalize_domain(domain)

        token = self.registry.register(domain)
        channel = self.tracker.channel(domain)
        bind_analysis_context(domain, user_id)
        logger.info("analysis_started", use_ai=options.use_ai, max_pages=options.max_pages)

        try:
            quota = await self.quota_manager.initialize_quotas(user_id, options)
            context = AnalysisContext(
                domain=domain,
                options=options,
                quota=quota,
                token=token,
                channel=channel,
                user_id=user_id,
            )
            token.raise_if_cancelled()

            discovery = await self.discovery.discover(
                domain,
                use_sitemap=options.use_sitemap,
                max_pages=quota.effective_max_pages,
                token=token,
                channel=channel,
                crawl_delay_ms=quota.settings.crawl_delay_ms,
                follow_external_links=quota.settings.follow_external_links,
            )
            token.raise_if_cancelled()

            pages = await self.page_analyzer.analyze_pages(discovery.urls, context)
            if not pages and discovery.basic_seo_data:
                logger.info("using_crawl_data_fallback", pages=len(discovery.basic_seo_data))
                pages = fallback_pages(discovery, quota.effective_max_pages)
            token.raise_if_cancelled()

            insights = await self.insights.generate(pages, context)
            design = await self._design(pages, context)
            enhanced = self._enhanced_insights(pages, context, discovery, design)

            result = await self._aggregate(pages, context, discovery, insights, enhanced)
            channel.completed(result)
            logger.info(
                "analysis_completed",
                analysis_id=result.analysis_id,
                pages=len(pages),
                duration_seconds=round(result.processing_stats.total_processing_time, 2),
            )
            return result

        except AnalysisCancelledError:
            logger.info("analysis_cancelled")
            channel.cancelled()
            raise

        except Exception as e:
            message = e.message if isinstance(e, SiteAuditError) else str(e)
            logger.error("analysis_failed", error=message, exc_info=True)
            channel.error(message)
            raise

        finally:
            self.registry.deregister(domain, token)
            clear_analysis_context()
