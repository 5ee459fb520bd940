"""Page and AI-suggestion budgets for trial and paid accounts."""

from dataclasses import replace

import structlog

from api.exceptions import QuotaExceededError
from pipeline.models import AnalysisOptions, CreditResult, QuotaInfo, UserSettings
from pipeline.storage import Storage

logger = structlog.get_logger(__name__)

# Trial accounts: pages per scan and AI suggestion pages per scan
TRIAL_PAGE_LIMIT = 3
TRIAL_AI_LIMIT = 3


class QuotaManager:
    """
    Computes a run's budget and wraps the storage credit operations.

    Anonymous runs (no user id) are bounded only by settings; they never
    receive per-page AI suggestions because credit deduction requires a user.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    async def initialize_quotas(
        self,
        user_id: str | None,
        options: AnalysisOptions,
    ) -> QuotaInfo:
        """
        Build the budget snapshot for a run.

        Raises:
            QuotaExceededError: A paid account with a page limit has no pages left
        """
        stored = await self.storage.get_settings(user_id)
        settings = replace(
            stored,
            max_pages=min(stored.max_pages, options.max_pages),
            use_ai=stored.use_ai and options.use_ai,
            follow_external_links=options.follow_external_links,
            crawl_delay_ms=options.crawl_delay_ms,
        )

        remaining_quota = settings.max_pages
        usage = None
        is_trial = False
        ai_remaining = 0

        if user_id:
            usage = await self.storage.get_user_usage(user_id)
            if usage is not None:
                is_trial = usage.is_trial
                if is_trial:
                    ai_remaining = min(TRIAL_AI_LIMIT, usage.credits)
                    remaining_quota = min(TRIAL_PAGE_LIMIT, settings.max_pages)
                else:
                    ai_remaining = usage.credits
                    if not usage.unlimited_pages:
                        remaining_quota = max(0, usage.page_limit - usage.pages_analyzed)
                        if remaining_quota <= 0:
                            logger.info(
                                "quota_exhausted",
                                user_id=user_id,
                                pages_analyzed=usage.pages_analyzed,
                                page_limit=usage.page_limit,
                            )
                            raise QuotaExceededError(usage.pages_analyzed, usage.page_limit)

        effective_max_pages = min(settings.max_pages, remaining_quota)
        if is_trial and settings.use_ai and ai_remaining > 0:
            effective_max_pages = min(effective_max_pages, TRIAL_PAGE_LIMIT)

        logger.info(
            "quotas_initialized",
            user_id=user_id,
            is_trial=is_trial,
            ai_suggestions_remaining=ai_remaining,
            remaining_quota=remaining_quota,
            effective_max_pages=effective_max_pages,
        )

        return QuotaInfo(
            settings=settings,
            usage=usage,
            is_trial=is_trial,
            ai_suggestions_remaining=ai_remaining,
            remaining_quota=remaining_quota,
            effective_max_pages=effective_max_pages,
        )

    async def check_quota_limits(
        self,
        user_id: str | None,
        pages_analyzed: int,
        remaining_quota: int,
        settings: UserSettings,
    ) -> bool:
        """Whether another page may be analyzed in the current run."""
        if not user_id:
            return True

        usage = await self.storage.get_user_usage(user_id)
        if usage is None:
            return False

        if not usage.unlimited_pages and pages_analyzed >= remaining_quota:
            logger.info("quota_limit_reached", user_id=user_id, limit=remaining_quota)
            return False

        if usage.unlimited_pages and pages_analyzed >= settings.max_pages:
            logger.info("technical_limit_reached", user_id=user_id, limit=settings.max_pages)
            return False

        return True

    async def deduct_ai_credits(
        self,
        user_id: str | None,
        is_trial: bool,
        cost: int = 1,
    ) -> CreditResult:
        """
        Charge for one page of AI suggestions.

        Trial allowances are pre-allocated, so trial deductions always
        succeed at zero cost. Anonymous runs always fail.
        """
        if not user_id:
            return CreditResult(success=False, remaining=0, cost=0)

        if is_trial:
            return CreditResult(success=True, remaining=0, cost=0)

        result = await self.storage.atomic_deduct_credits(user_id, cost)
        if not result.success:
            logger.info("insufficient_credits", user_id=user_id, remaining=result.remaining)
            return CreditResult(success=False, remaining=result.remaining, cost=0)
        return CreditResult(success=True, remaining=result.remaining, cost=cost)

    async def refund_credits(self, user_id: str | None, amount: int, reason: str) -> None:
        if user_id and amount > 0:
            await self.storage.refund_credits(user_id, amount, reason)

    async def increment_user_usage(self, user_id: str | None, pages: int) -> None:
        """Add analyzed pages to the user's total. No-op for anonymous runs or zero pages."""
        if user_id and pages > 0:
            logger.info("usage_incremented", user_id=user_id, pages=pages)
            await self.storage.increment_user_usage(user_id, pages)
