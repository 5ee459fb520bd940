"""Site-wide counters and the blended SEO effectiveness score."""

from pipeline.models import PageAnalysisResult, Severity

EFFECTIVENESS_WEIGHTS = {
    "technical": 0.30,
    "content": 0.30,
    "performance": 0.25,
    "links": 0.15,
}

METRIC_KEYS = (
    "good_practices",
    "warnings",
    "critical_issues",
    "title_optimization",
    "description_optimization",
    "headings_optimization",
    "images_optimization",
    "links_optimization",
)


def calculate_aggregate_metrics(pages: list[PageAnalysisResult]) -> dict[str, int]:
    """
    Count issue severities and well-optimized pages.

    The ``*_optimization`` values are page counts, e.g. the number of pages
    whose title is 30-60 characters long.
    """
    metrics = dict.fromkeys(METRIC_KEYS, 0)

    for page in pages:
        if 30 <= len(page.title) <= 60:
            metrics["title_optimization"] += 1
        if 120 <= len(page.meta_description) <= 160:
            metrics["description_optimization"] += 1
        if page.h1_count == 1 and len(page.headings) >= 3:
            metrics["headings_optimization"] += 1

        with_alt = sum(1 for img in page.images if img.has_alt)
        if not page.images or with_alt / len(page.images) >= 0.8:
            metrics["images_optimization"] += 1

        if len(page.internal_links) >= 2:
            metrics["links_optimization"] += 1

        for issue in page.issues:
            if issue.severity == Severity.CRITICAL:
                metrics["critical_issues"] += 1
            elif issue.severity == Severity.WARNING:
                metrics["warnings"] += 1
            else:
                metrics["good_practices"] += 1

    return metrics


def seo_effectiveness_score(technical: int, content: int, performance: int, links: int) -> int:
    return round(
        technical * EFFECTIVENESS_WEIGHTS["technical"]
        + content * EFFECTIVENESS_WEIGHTS["content"]
        + performance * EFFECTIVENESS_WEIGHTS["performance"]
        + links * EFFECTIVENESS_WEIGHTS["links"]
    )
