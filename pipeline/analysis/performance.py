"""Performance indicators inferred from extracted page content.

No network timing is measured here. Scores are proxies derived from image
hygiene, content weight and page structure.
"""

from dataclasses import dataclass, field

import structlog

from pipeline.analysis.recommendations import Priority, Recommendation, sort_recommendations
from pipeline.models import PageAnalysisResult

logger = structlog.get_logger(__name__)

# Fallback image dimensions for size estimates
DEFAULT_IMAGE_WIDTH = 500
DEFAULT_IMAGE_HEIGHT = 300

PERFORMANCE_WEIGHTS = {
    "resources": 0.35,
    "loading": 0.35,
    "ux": 0.30,
}


@dataclass
class ResourceOptimization:
    image_optimization: int
    image_count: int
    estimated_page_size: int
    optimization_score: int

    def to_dict(self) -> dict:
        return {
            "image_optimization": self.image_optimization,
            "resource_count": {"images": self.image_count, "total": self.image_count},
            "estimated_page_size": self.estimated_page_size,
            "optimization_score": self.optimization_score,
        }


@dataclass
class LoadingPatterns:
    critical_resource_loading: int
    render_blocking_resources: int
    asynchronous_loading: int
    loading_score: int

    def to_dict(self) -> dict:
        return {
            "critical_resource_loading": self.critical_resource_loading,
            "render_blocking_resources": self.render_blocking_resources,
            "asynchronous_loading": self.asynchronous_loading,
            "loading_score": self.loading_score,
        }


@dataclass
class UserExperienceMetrics:
    content_accessibility: int
    navigation_clarity: int
    content_readability: int
    mobile_experience: int
    ux_score: int

    def to_dict(self) -> dict:
        return {
            "content_accessibility": self.content_accessibility,
            "navigation_clarity": self.navigation_clarity,
            "content_readability": self.content_readability,
            "mobile_experience": self.mobile_experience,
            "ux_score": self.ux_score,
        }


@dataclass
class PerformanceAnalysis:
    """Complete performance result."""

    overall_score: int
    resources: ResourceOptimization
    loading: LoadingPatterns
    user_experience: UserExperienceMetrics
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "resource_optimization": self.resources.to_dict(),
            "loading_patterns": self.loading.to_dict(),
            "user_experience_metrics": self.user_experience.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def _has_single_h1(page: PageAnalysisResult) -> bool:
    return page.h1_count == 1


def _analyze_resources(pages: list[PageAnalysisResult]) -> ResourceOptimization:
    total_images = with_alt = with_dimensions = 0
    estimated_size = 0.0

    for page in pages:
        total_images += len(page.images)
        for image in page.images:
            if image.has_alt:
                with_alt += 1
            if image.has_dimensions:
                with_dimensions += 1
            width = image.width or DEFAULT_IMAGE_WIDTH
            height = image.height or DEFAULT_IMAGE_HEIGHT
            estimated_size += width * height * 0.001
        estimated_size += page.word_count * 6 + len(page.headings) * 20

    image_optimization = (
        (with_alt + with_dimensions) / (total_images * 2) * 100 if total_images else 100.0
    )
    average_size = estimated_size / len(pages) if pages else 0.0

    if average_size < 2000:
        size_score = 30
    elif average_size < 5000:
        size_score = 20
    else:
        size_score = 10

    if total_images < 50:
        count_score = 20
    elif total_images < 100:
        count_score = 10
    else:
        count_score = 0

    return ResourceOptimization(
        image_optimization=round(image_optimization),
        image_count=total_images,
        estimated_page_size=round(average_size),
        optimization_score=min(100, round(image_optimization * 0.5 + size_score + count_score)),
    )


def _analyze_loading(pages: list[PageAnalysisResult]) -> LoadingPatterns:
    if not pages:
        return LoadingPatterns(0, 0, 0, 0)

    critical_total = blocking_total = async_total = 0
    for page in pages:
        few_images = len(page.images) <= 5
        critical_total += 85 if _has_single_h1(page) and few_images else 65

        complex_content = page.word_count > 2000 or len(page.images) > 10
        blocking_total += 60 if complex_content else 80

        # Script loading is not inspected; assume typical async usage
        async_total += 75

    critical = round(critical_total / len(pages))
    blocking = round(blocking_total / len(pages))
    asynchronous = round(async_total / len(pages))

    return LoadingPatterns(
        critical_resource_loading=critical,
        render_blocking_resources=blocking,
        asynchronous_loading=asynchronous,
        loading_score=min(100, round(critical * 0.4 + blocking * 0.35 + asynchronous * 0.25)),
    )


def _analyze_user_experience(pages: list[PageAnalysisResult]) -> UserExperienceMetrics:
    if not pages:
        return UserExperienceMetrics(0, 0, 0, 0, 0)

    accessibility = navigation = readability = mobile = 0.0
    for page in pages:
        alt_score = (
            sum(1 for img in page.images if img.has_alt) / len(page.images) * 100
            if page.images
            else 100.0
        )
        accessibility += (alt_score + (100 if _has_single_h1(page) else 50)) / 2

        navigation += (50 if len(page.internal_links) >= 2 else 25) + (
            50 if page.cta_elements else 25
        )

        readability += page.readability_score

        reasonable_length = 200 <= page.word_count <= 2000
        structured = len(page.headings) >= 2
        mobile += (50 if reasonable_length else 30) + (50 if structured else 30)

    count = len(pages)
    metrics = [round(value / count) for value in (accessibility, navigation, readability, mobile)]
    ux_score = round(metrics[0] * 0.3 + metrics[1] * 0.3 + metrics[2] * 0.2 + metrics[3] * 0.2)

    return UserExperienceMetrics(
        content_accessibility=metrics[0],
        navigation_clarity=metrics[1],
        content_readability=metrics[2],
        mobile_experience=metrics[3],
        ux_score=min(100, ux_score),
    )


def _recommendations(
    pages: list[PageAnalysisResult],
    resources: ResourceOptimization,
    loading: LoadingPatterns,
    ux: UserExperienceMetrics,
) -> list[Recommendation]:
    recs: list[Recommendation] = []

    if loading.loading_score < 80:
        recs.append(
            Recommendation(
                category="loading",
                priority=Priority.CRITICAL if loading.loading_score < 60 else Priority.HIGH,
                title="Optimize Page Loading Speed",
                description="Page loading patterns can be improved for a faster experience.",
                action_items=[
                    "Optimize critical resources",
                    "Implement lazy loading",
                    "Reduce render-blocking resources",
                    "Use asynchronous loading for scripts",
                ],
                impact=7,
                affected_pages=[
                    p.url for p in pages if p.word_count > 2000 or len(p.images) > 10
                ],
            )
        )

    if resources.image_optimization < 80:
        recs.append(
            Recommendation(
                category="image-optimization",
                priority=(
                    Priority.CRITICAL if resources.image_optimization < 60 else Priority.HIGH
                ),
                title="Optimize Image Resources",
                description=(
                    "Image optimization can be improved for better performance and accessibility."
                ),
                action_items=[
                    "Add alt text to all images",
                    "Specify width and height attributes",
                    "Compress images without quality loss",
                    "Use modern image formats (WebP, AVIF)",
                ],
                impact=6,
                affected_pages=[p.url for p in pages if p.images_without_alt],
            )
        )

    if resources.image_count > 100:
        recs.append(
            Recommendation(
                category="resource-count",
                priority=Priority.CRITICAL if resources.image_count > 150 else Priority.HIGH,
                title="Reduce Resource Count",
                description=(
                    "The website loads a high number of resources, which can slow down "
                    "page loading."
                ),
                action_items=["Remove unused images", "Combine decorative images into sprites"],
                impact=5,
                affected_pages=[p.url for p in pages if len(p.images) > 20],
            )
        )

    if ux.content_accessibility < 80:
        recs.append(
            Recommendation(
                category="accessibility",
                priority=Priority.CRITICAL if ux.content_accessibility < 60 else Priority.HIGH,
                title="Improve Content Accessibility",
                description="Better accessibility improves user experience and SEO rankings.",
                action_items=[
                    "Add descriptive alt text to all images",
                    "Ensure proper heading hierarchy (single H1, logical H2-H6)",
                    "Use descriptive link text",
                ],
                impact=7,
                affected_pages=[
                    p.url for p in pages if not _has_single_h1(p) or p.images_without_alt
                ],
            )
        )

    if ux.content_readability < 60:
        hard_to_read = [p.url for p in pages if p.readability_score < 60]
        recs.append(
            Recommendation(
                category="readability",
                priority=Priority.CRITICAL if ux.content_readability < 40 else Priority.HIGH,
                title="Improve Content Readability",
                description=(
                    f"{len(hard_to_read)} pages have low readability scores, making content "
                    "hard to understand."
                ),
                action_items=[
                    "Use shorter sentences and paragraphs",
                    "Replace complex words with simpler alternatives",
                    "Add more subheadings to organize content",
                ],
                impact=5,
                affected_pages=hard_to_read,
            )
        )

    return sort_recommendations(recs)


def analyze_performance(pages: list[PageAnalysisResult]) -> PerformanceAnalysis:
    """Estimate resource, loading and UX performance from page content."""
    resources = _analyze_resources(pages)
    loading = _analyze_loading(pages)
    ux = _analyze_user_experience(pages)

    overall = round(
        resources.optimization_score * PERFORMANCE_WEIGHTS["resources"]
        + loading.loading_score * PERFORMANCE_WEIGHTS["loading"]
        + ux.ux_score * PERFORMANCE_WEIGHTS["ux"]
    )
    logger.debug("performance_analyzed", pages=len(pages), score=overall)

    return PerformanceAnalysis(
        overall_score=overall,
        resources=resources,
        loading=loading,
        user_experience=ux,
        recommendations=_recommendations(pages, resources, loading, ux),
    )
