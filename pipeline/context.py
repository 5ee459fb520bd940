"""Per-run state shared by the pipeline stages."""

import time
from dataclasses import dataclass, field

from pipeline.models import AnalysisOptions, QuotaInfo, UserSettings
from pipeline.progress import CancellationToken, ProgressChannel


@dataclass
class AnalysisContext:
    """
    Everything a stage needs to know about the run it belongs to.

    Created once by the orchestrator. Quota counters are read from the
    ``QuotaInfo`` snapshot and changed only through the ``QuotaManager``.
    """

    domain: str
    options: AnalysisOptions
    quota: QuotaInfo
    token: CancellationToken
    channel: ProgressChannel
    user_id: str | None = None
    started_at: float = field(default_factory=time.perf_counter)

    @property
    def settings(self) -> UserSettings:
        return self.quota.settings

    @property
    def is_trial(self) -> bool:
        return self.quota.is_trial

    @property
    def ai_suggestions_remaining(self) -> int:
        return self.quota.ai_suggestions_remaining

    @property
    def remaining_quota(self) -> int:
        return self.quota.remaining_quota

    @property
    def ai_requested(self) -> bool:
        """AI stages run only when both the caller and the user settings allow it."""
        return (
            self.options.use_ai
            and self.settings.use_ai
            and not self.options.is_competitor_analysis
        )

    def elapsed(self) -> float:
        return time.perf_counter() - self.started_at
