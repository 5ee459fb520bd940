"""AI business context plus per-page suggestions under quota."""

import asyncio
import math
from collections.abc import Awaitable, Callable

import structlog

from pipeline.ai.site_overview import SiteOverviewService
from pipeline.ai.suggestions import SuggestionService
from pipeline.context import AnalysisContext
from pipeline.models import BusinessContext, InsightsResult, PageAnalysisResult, SitePage
from pipeline.quota import QuotaManager

logger = structlog.get_logger(__name__)

BATCH_SIZE = 3
BATCH_DELAY_MS = 200
TRIAL_SUGGESTION_LIMIT = 5

AI_PROGRESS_START = 40
AI_CONTEXT_DONE = 45
AI_PROGRESS_SPAN = 25
AI_PROGRESS_END = 70

SleepFunc = Callable[[float], Awaitable[None]]


def suggestion_progress(done: int, total: int) -> int:
    if total <= 0:
        return AI_CONTEXT_DONE
    return min(AI_PROGRESS_END, AI_CONTEXT_DONE + math.floor(done / total * AI_PROGRESS_SPAN))


def site_structure_of(pages: list[PageAnalysisResult]) -> list[SitePage]:
    return [SitePage.from_page(page) for page in pages]


class InsightsGenerator:
    """
    Runs the AI stage of an analysis.

    Trial users get suggestions for a pre-sliced set of pages, computed once
    before batching. Paid users pay one credit per page through an atomic
    deduction, refunded when a page ends up without suggestions.
    """

    def __init__(
        self,
        quota_manager: QuotaManager,
        suggestions: SuggestionService | None,
        site_overview: SiteOverviewService | None,
        batch_size: int = BATCH_SIZE,
        batch_delay_ms: int = BATCH_DELAY_MS,
        trial_suggestion_limit: int = TRIAL_SUGGESTION_LIMIT,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.quota_manager = quota_manager
        self.suggestions = suggestions
        self.site_overview = site_overview
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self.trial_suggestion_limit = trial_suggestion_limit
        self._sleep = sleep

    @property
    def available(self) -> bool:
        return self.suggestions is not None and self.site_overview is not None

    async def _business_context(
        self,
        site_structure: list[SitePage],
        additional_info: str | None,
    ) -> tuple[BusinessContext, int]:
        with_content = [p for p in site_structure if p.title or p.headings or p.paragraphs]
        if not with_content or self.site_overview is None:
            logger.warning("business_context_no_content")
            return BusinessContext.fallback(), 0

        context = await self.site_overview.analyze(with_content, additional_info)
        return context, 1

    def _apply_suggestions(
        self,
        page: PageAnalysisResult,
        suggestions: list[str],
        is_trial: bool,
    ) -> None:
        if not is_trial:
            page.suggestions = suggestions
            return

        page.suggestions = suggestions[: self.trial_suggestion_limit]
        extra = len(suggestions) - self.trial_suggestion_limit
        if extra > 0:
            page.suggestions_teaser = f"{extra} additional insights available with paid credits"

    async def _page_suggestions(
        self,
        page: PageAnalysisResult,
        context: AnalysisContext,
        eligible: set[str],
        site_structure: list[SitePage],
        business_context: BusinessContext,
    ) -> None:
        paid = not context.is_trial
        charged = False

        if context.is_trial:
            if page.url not in eligible:
                return
        else:
            credit = await self.quota_manager.deduct_ai_credits(
                context.user_id, is_trial=False, cost=1
            )
            if not credit.success:
                logger.info("page_suggestions_skipped_no_credit", url=page.url)
                return
            charged = True

        try:
            suggestions = await self.suggestions.generate(
                page,
                site_structure,
                business_context,
                context.options.additional_info,
                force_refresh=context.options.force_refresh,
            )
        except Exception as e:
            logger.error("page_suggestions_failed", url=page.url, error=str(e))
            page.suggestions = []
            page.ai_calls_made += 1
            if paid and charged:
                await self.quota_manager.refund_credits(context.user_id, 1, "suggestion_error")
            return

        page.ai_calls_made += 1
        if not suggestions:
            logger.warning("page_suggestions_empty", url=page.url)
            page.suggestions = []
            if paid and charged:
                await self.quota_manager.refund_credits(context.user_id, 1, "no_suggestions")
            return

        self._apply_suggestions(page, suggestions, context.is_trial)
        if paid:
            page.credits_used += 1

    async def generate(
        self,
        pages: list[PageAnalysisResult],
        context: AnalysisContext,
    ) -> InsightsResult | None:
        """
        Attach suggestions to ``pages`` in place and infer the business context.

        Returns None when AI is disabled, unavailable, or there are no pages.

        Raises:
            AnalysisCancelledError: The token was cancelled between batches
        """
        if not context.ai_requested or not self.available or not pages:
            logger.info("insights_skipped", pages=len(pages), available=self.available)
            return None

        context.token.raise_if_cancelled()
        context.channel.in_progress(
            AI_PROGRESS_START, current_page_url="Generating AI-powered SEO suggestions..."
        )

        site_structure = site_structure_of(pages)
        business_context, overview_calls = await self._business_context(
            site_structure, context.options.additional_info
        )
        logger.info(
            "business_context_detected",
            industry=business_context.industry,
            business_type=business_context.business_type,
            fallback=business_context.is_fallback,
        )

        context.token.raise_if_cancelled()
        context.channel.in_progress(AI_CONTEXT_DONE)

        # Computed once so concurrent batches cannot race for the trial allowance
        eligible = (
            {p.url for p in pages[: context.ai_suggestions_remaining]}
            if context.is_trial
            else set()
        )

        total = len(pages)
        for i in range(0, total, self.batch_size):
            context.token.raise_if_cancelled()
            batch = pages[i : i + self.batch_size]

            await asyncio.gather(
                *(
                    self._page_suggestions(
                        page, context, eligible, site_structure, business_context
                    )
                    for page in batch
                )
            )

            context.token.raise_if_cancelled()
            done = min(i + len(batch), total)
            context.channel.in_progress(
                suggestion_progress(done, total), current_page_url=batch[-1].url
            )

            if i + self.batch_size < total and self.batch_delay_ms > 0:
                await self._sleep(self.batch_delay_ms / 1000)

        result = InsightsResult(
            site_overview=business_context,
            ai_calls_made=overview_calls + sum(p.ai_calls_made for p in pages),
            credits_used=sum(p.credits_used for p in pages),
            pages_with_suggestions=sum(1 for p in pages if p.suggestions),
        )
        logger.info(
            "insights_completed",
            ai_calls_made=result.ai_calls_made,
            credits_used=result.credits_used,
            pages_with_suggestions=result.pages_with_suggestions,
        )
        return result
