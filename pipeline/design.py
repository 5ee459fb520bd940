"""Optional design scoring hook."""

from typing import Any, Protocol

DESIGN_PAGE_LIMIT = 5


class DesignService(Protocol):
    """
    Scores the visual design of a handful of pages.

    Implementations (screenshot capture plus a vision model) live outside
    this package; the orchestrator only calls ``analyze`` and stores the
    returned payload under ``enhanced_insights.design``.
    """

    async def analyze(self, urls: list[str]) -> dict[str, Any]: ...
