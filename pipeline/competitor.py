"""Compare a site's latest analysis with a fresh run on a competitor."""

from dataclasses import replace

import structlog

from api.exceptions import (
    AuthenticationRequiredError,
    InsufficientCreditsError,
    NotFoundError,
    QuotaExceededError,
)
from pipeline.ai.competitor_insights import CompetitorInsightsService
from pipeline.analysis.competitor import CompetitorComparison, compare_analyses
from pipeline.crawler.url import normalize_domain
from pipeline.models import AnalysisOptions, AnalysisResult
from pipeline.orchestrator import AnalysisOrchestrator
from pipeline.storage import Storage

logger = structlog.get_logger(__name__)

COMPARISON_COST = 1
AI_INSIGHTS_COST = 2

FEATURE = "Competitor analysis"


class CompetitorAnalyzer:
    """
    Runs the competitor through the pipeline and diffs it against the main site.

    The comparison costs one credit up front. Paid accounts with AI enabled
    pay two more for model-written insights; those credits are refunded
    when the model call fails and the rule-based recommendations are kept.
    """

    def __init__(
        self,
        storage: Storage,
        orchestrator: AnalysisOrchestrator,
        insights: CompetitorInsightsService | None = None,
    ):
        self.storage = storage
        self.orchestrator = orchestrator
        self.insights = insights

    async def _charge(self, user_id: str | None) -> bool:
        """
        Take the base fee and report whether the account is a paid one.

        Raises:
            AuthenticationRequiredError: Anonymous or unknown user
            QuotaExceededError: The page limit is already reached
            InsufficientCreditsError: Fewer credits than the base fee
        """
        usage = await self.storage.get_user_usage(user_id) if user_id else None
        if user_id is None or usage is None:
            raise AuthenticationRequiredError("competitor analysis")

        if not usage.unlimited_pages and usage.pages_analyzed >= usage.page_limit:
            raise QuotaExceededError(usage.pages_analyzed, usage.page_limit)

        result = await self.storage.atomic_deduct_credits(user_id, COMPARISON_COST)
        if not result.success:
            raise InsufficientCreditsError(FEATURE, COMPARISON_COST, result.remaining)

        logger.info("competitor_credit_deducted", user_id=user_id, remaining=result.remaining)
        return not usage.is_trial

    async def compare(
        self,
        main_domain: str,
        competitor_domain: str,
        user_id: str | None,
        options: AnalysisOptions | None = None,
        use_ai: bool = True,
    ) -> CompetitorComparison:
        """
        Analyze ``competitor_domain`` and compare it with ``main_domain``.

        Raises:
            NotFoundError: ``main_domain`` has never been analyzed
            AuthenticationRequiredError, QuotaExceededError, InsufficientCreditsError:
                The caller cannot run a comparison
        """
        main_domain = normalize_domain(main_domain)
        competitor_domain = normalize_domain(competitor_domain)

        main = await self.storage.get_latest_analysis(main_domain)
        if main is None:
            raise NotFoundError("analysis", main_domain)

        is_paid = await self._charge(user_id)

        competitor_options = replace(
            options or AnalysisOptions(),
            use_ai=False,
            skip_alt_text_generation=True,
            is_competitor_analysis=True,
        )
        try:
            competitor = await self.orchestrator.run_analysis(
                competitor_domain, competitor_options, user_id
            )
        except Exception:
            await self.storage.refund_credits(
                user_id, COMPARISON_COST, "competitor_analysis_failed"
            )
            raise

        comparison = compare_analyses(main, competitor)

        if use_ai and is_paid and self.insights is not None:
            await self._add_ai_insights(comparison, main, competitor, user_id, options)

        logger.info(
            "competitor_comparison_completed",
            main=main_domain,
            competitor=competitor_domain,
            recommendations=len(comparison.recommendations),
            ai_insights=comparison.insights is not None,
        )
        return comparison

    async def _add_ai_insights(
        self,
        comparison: CompetitorComparison,
        main: AnalysisResult,
        competitor: AnalysisResult,
        user_id: str,
        options: AnalysisOptions | None,
    ) -> None:
        charged = await self.storage.atomic_deduct_credits(user_id, AI_INSIGHTS_COST)
        if not charged.success:
            logger.info("competitor_insights_skipped", user_id=user_id, remaining=charged.remaining)
            return

        additional_info = options.additional_info if options else None
        insights = await self.insights.generate(main, competitor, additional_info)
        if insights is None:
            await self.storage.refund_credits(
                user_id, AI_INSIGHTS_COST, "competitor_insights_error"
            )
            return

        comparison.insights = insights.to_dict()
        if insights.strategic_recommendations:
            comparison.recommendations = insights.strategic_recommendations
