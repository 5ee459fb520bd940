"""Datastore contract consumed by the pipeline, plus an in-process implementation.

The persistent datastore (accounts, billing, saved analyses) lives outside
this service. The pipeline only talks to it through ``Storage``.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from pipeline.models import AnalysisResult, CreditResult, Usage, UserSettings

logger = structlog.get_logger(__name__)


class Storage(ABC):
    """Settings/usage reads, atomic credit accounting and result persistence."""

    @abstractmethod
    async def get_settings(self, user_id: str | None) -> UserSettings:
        """Return the user's analysis settings (defaults for anonymous runs)."""
        ...

    @abstractmethod
    async def get_user_usage(self, user_id: str) -> Usage | None:
        """Return usage counters, or None for an unknown user."""
        ...

    @abstractmethod
    async def atomic_deduct_credits(self, user_id: str, amount: int) -> CreditResult:
        """Check-and-decrement the credit balance in one step."""
        ...

    @abstractmethod
    async def refund_credits(self, user_id: str, amount: int, reason: str) -> None:
        """Return previously deducted credits."""
        ...

    @abstractmethod
    async def increment_user_usage(self, user_id: str, pages: int) -> None:
        """Add analyzed pages to the user's running total."""
        ...

    @abstractmethod
    async def save_analysis(self, result: AnalysisResult, user_id: str | None = None) -> str:
        """Persist a finished analysis and return its id."""
        ...

    @abstractmethod
    async def get_latest_analysis(self, domain: str) -> AnalysisResult | None:
        """Return the most recently saved analysis of ``domain``, if any."""
        ...


@dataclass
class RefundRecord:
    """Audit trail entry for a credit refund."""

    user_id: str
    amount: int
    reason: str
    refunded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryStorage(Storage):
    """Process-local storage used by tests, the CLI and the default app wiring."""

    def __init__(
        self,
        settings: dict[str, UserSettings] | None = None,
        usage: dict[str, Usage] | None = None,
    ):
        self._settings = dict(settings or {})
        self._usage = dict(usage or {})
        self._lock = asyncio.Lock()
        self.analyses: dict[str, AnalysisResult] = {}
        self.refunds: list[RefundRecord] = []

    def set_user(
        self,
        user_id: str,
        usage: Usage,
        settings: UserSettings | None = None,
    ) -> None:
        """Register or replace a user's usage (and optionally settings)."""
        self._usage[user_id] = usage
        if settings is not None:
            self._settings[user_id] = settings

    async def get_settings(self, user_id: str | None) -> UserSettings:
        if user_id and user_id in self._settings:
            return self._settings[user_id]
        return UserSettings()

    async def get_user_usage(self, user_id: str) -> Usage | None:
        return self._usage.get(user_id)

    async def atomic_deduct_credits(self, user_id: str, amount: int) -> CreditResult:
        async with self._lock:
            usage = self._usage.get(user_id)
            if usage is None or usage.credits < amount:
                remaining = usage.credits if usage else 0
                logger.info(
                    "credit_deduction_rejected",
                    user_id=user_id,
                    requested=amount,
                    remaining=remaining,
                )
                return CreditResult(success=False, remaining=remaining)
            usage.credits -= amount
            return CreditResult(success=True, remaining=usage.credits, cost=amount)

    async def refund_credits(self, user_id: str, amount: int, reason: str) -> None:
        async with self._lock:
            usage = self._usage.get(user_id)
            if usage is None:
                return
            usage.credits += amount
            self.refunds.append(RefundRecord(user_id=user_id, amount=amount, reason=reason))
        logger.info("credits_refunded", user_id=user_id, amount=amount, reason=reason)

    async def increment_user_usage(self, user_id: str, pages: int) -> None:
        async with self._lock:
            usage = self._usage.get(user_id)
            if usage is not None:
                usage.pages_analyzed += pages

    async def save_analysis(self, result: AnalysisResult, user_id: str | None = None) -> str:
        analysis_id = str(uuid.uuid4())
        self.analyses[analysis_id] = result
        logger.info(
            "analysis_saved",
            analysis_id=analysis_id,
            domain=result.domain,
            pages=len(result.pages),
            user_id=user_id,
        )
        return analysis_id

    async def get_latest_analysis(self, domain: str) -> AnalysisResult | None:
        # Dicts keep insertion order, so the last match is the newest
        matches = [result for result in self.analyses.values() if result.domain == domain]
        return matches[-1] if matches else None
