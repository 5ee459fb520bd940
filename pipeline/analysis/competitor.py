"""Side-by-side comparison of two finished analyses.

Optimization metrics are compared as the share of pages (0-100) that pass
each aggregate check, so sites of different sizes line up. Score
comparisons use the cross-page analyzer scores when both runs have them.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from pipeline.models import AnalysisResult

# Differences within this band count as a tie
NEUTRAL_BAND = 2

OPTIMIZATION_METRICS = {
    "title_optimization": "title optimization",
    "description_optimization": "meta descriptions",
    "headings_optimization": "heading structure",
    "images_optimization": "image optimization",
    "links_optimization": "internal linking",
}

GAP_MESSAGES = {
    "title_optimization": (
        "Your competitor has better optimized page titles ({gap}% better). "
        "Consider reviewing and improving your title tags."
    ),
    "description_optimization": (
        "Your competitor has better optimized meta descriptions ({gap}% better). "
        "Focus on writing more compelling and keyword-rich descriptions."
    ),
    "headings_optimization": (
        "Your competitor has better heading structure ({gap}% better). "
        "Ensure you use a logical heading hierarchy with relevant keywords."
    ),
    "images_optimization": (
        "Your competitor has better optimized images ({gap}% better). "
        "Make sure all your images have descriptive alt text."
    ),
    "links_optimization": (
        "Your competitor links between its pages more consistently ({gap}% better). "
        "Add contextual internal links so every page has at least two."
    ),
}

COMPARABLE_MESSAGE = (
    "Your site performs comparably to the competitor. "
    "Focus on content quality and user experience improvements."
)


class MetricKind(StrEnum):
    OPTIMIZATION = "optimization"
    ISSUES = "issues"


class Advantage(StrEnum):
    MAIN = "main"
    COMPETITOR = "competitor"
    NEUTRAL = "neutral"


class Significance(StrEnum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    MINOR = "minor"


@dataclass
class MetricComparison:
    """One metric on both sites. ``difference`` is always main minus competitor."""

    main: float
    competitor: float
    difference: float
    percentage_diff: int
    advantage: Advantage
    significance: Significance

    def to_dict(self) -> dict:
        return {
            "main": self.main,
            "competitor": self.competitor,
            "difference": self.difference,
            "percentage_diff": self.percentage_diff,
            "advantage": self.advantage.value,
            "significance": self.significance.value,
        }


@dataclass
class CompetitorComparison:
    """Metric and score gaps between a site and one competitor."""

    main_domain: str
    competitor_domain: str
    metrics: dict[str, MetricComparison]
    scores: dict[str, MetricComparison] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
    insights: dict | None = None
    competitor_analysis_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "main_domain": self.main_domain,
            "competitor_domain": self.competitor_domain,
            "competitor_analysis_id": self.competitor_analysis_id,
            "metrics": {name: m.to_dict() for name, m in self.metrics.items()},
            "scores": {name: s.to_dict() for name, s in self.scores.items()},
            "recommendations": self.recommendations,
            "insights": self.insights,
        }


def _significance(percentage_diff: int, absolute_diff: float) -> Significance:
    if percentage_diff >= 30 or absolute_diff >= 10:
        return Significance.CRITICAL
    if percentage_diff >= 15 or absolute_diff >= 5:
        return Significance.IMPORTANT
    return Significance.MINOR


def compare_metric(
    main: float,
    competitor: float,
    kind: MetricKind = MetricKind.OPTIMIZATION,
) -> MetricComparison:
    """
    Compare one value across both sites.

    For optimization metrics higher is better; for issue counts lower is
    better. Percentages are relative to the competitor (floored at 1).
    """
    difference = round(main - competitor, 1)
    percentage_diff = round(abs(difference) / max(competitor, 1) * 100)

    better_for_main = difference > NEUTRAL_BAND
    better_for_competitor = difference < -NEUTRAL_BAND
    if kind == MetricKind.ISSUES:
        better_for_main, better_for_competitor = better_for_competitor, better_for_main

    if better_for_main:
        advantage = Advantage.MAIN
    elif better_for_competitor:
        advantage = Advantage.COMPETITOR
    else:
        advantage = Advantage.NEUTRAL

    return MetricComparison(
        main=main,
        competitor=competitor,
        difference=difference,
        percentage_diff=percentage_diff,
        advantage=advantage,
        significance=_significance(percentage_diff, abs(difference)),
    )


def _share(result: AnalysisResult, key: str) -> float:
    if not result.pages:
        return 0.0
    return round(result.metrics.get(key, 0) / len(result.pages) * 100, 1)


def _average_words(result: AnalysisResult) -> float:
    if not result.pages:
        return 0.0
    return round(sum(p.word_count for p in result.pages) / len(result.pages), 1)


def _scores(result: AnalysisResult) -> dict[str, int] | None:
    enhanced = result.enhanced_insights
    if enhanced is None:
        return None
    return {
        "technical": enhanced.technical.overall_score,
        "content_quality": enhanced.content_quality.overall_score,
        "link_architecture": enhanced.link_architecture.overall_score,
        "performance": enhanced.performance.overall_score,
        "overall": enhanced.seo_effectiveness_score,
    }


def basic_recommendations(metrics: dict[str, MetricComparison]) -> list[str]:
    """Rule-based advice from the metric gaps, used whenever AI insights are unavailable."""
    recommendations = []

    for key, template in GAP_MESSAGES.items():
        comparison = metrics.get(key)
        if comparison is not None and comparison.difference < 0:
            recommendations.append(template.format(gap=f"{abs(comparison.difference):.1f}"))

    critical = metrics.get("critical_issues")
    if critical is not None and critical.difference > 0:
        recommendations.append(
            f"You have {int(critical.difference)} more critical issues than your competitor. "
            "Prioritize fixing these issues to improve your SEO performance."
        )

    strengths = [
        label
        for key, label in OPTIMIZATION_METRICS.items()
        if key in metrics and metrics[key].difference > 0
    ]
    if critical is not None and critical.difference < 0:
        strengths.append("critical issues management")
    if strengths:
        recommendations.append(
            f"You're outperforming your competitor in: {', '.join(strengths)}. "
            "Continue these strong practices."
        )

    return recommendations or [COMPARABLE_MESSAGE]


def compare_analyses(main: AnalysisResult, competitor: AnalysisResult) -> CompetitorComparison:
    """Build metric and score gaps plus rule-based recommendations."""
    metrics = {
        key: compare_metric(_share(main, key), _share(competitor, key))
        for key in OPTIMIZATION_METRICS
    }
    metrics["critical_issues"] = compare_metric(
        main.metrics.get("critical_issues", 0),
        competitor.metrics.get("critical_issues", 0),
        MetricKind.ISSUES,
    )
    metrics["warnings"] = compare_metric(
        main.metrics.get("warnings", 0),
        competitor.metrics.get("warnings", 0),
        MetricKind.ISSUES,
    )
    metrics["average_word_count"] = compare_metric(_average_words(main), _average_words(competitor))

    scores = {}
    main_scores, competitor_scores = _scores(main), _scores(competitor)
    if main_scores is not None and competitor_scores is not None:
        scores = {
            name: compare_metric(main_scores[name], competitor_scores[name])
            for name in main_scores
        }

    return CompetitorComparison(
        main_domain=main.domain,
        competitor_domain=competitor.domain,
        metrics=metrics,
        scores=scores,
        recommendations=basic_recommendations(metrics),
        competitor_analysis_id=competitor.analysis_id,
    )
