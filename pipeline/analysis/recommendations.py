"""Shared recommendation type for the cross-page analyzers."""

from dataclasses import dataclass, field
from enum import StrEnum


class Priority(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


@dataclass
class Recommendation:
    """An actionable improvement with an estimated impact (1-10)."""

    category: str
    priority: Priority
    title: str
    description: str
    action_items: list[str] = field(default_factory=list)
    impact: int = 5
    affected_pages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "action_items": self.action_items,
            "impact": self.impact,
            "affected_pages": self.affected_pages,
        }


def sort_recommendations(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Order by priority (critical first), then by impact."""
    return sorted(
        recommendations,
        key=lambda r: (PRIORITY_ORDER[r.priority], r.impact),
        reverse=True,
    )
