"""Technical SEO analysis.

Covers Core Web Vitals proxies, mobile readiness, transport security and
on-page technical elements (JSON-LD, canonical, robots meta, sitemap).
Everything is derived from already-extracted page data; sitemap presence
comes from the discovery step rather than a fresh request.
"""

from dataclasses import dataclass, field

import structlog

from pipeline.analysis.recommendations import Priority, Recommendation, sort_recommendations
from pipeline.extraction.basic import schema_types
from pipeline.models import PageAnalysisResult

logger = structlog.get_logger(__name__)

# Component weights within the technical score (total = 1.0)
TECHNICAL_WEIGHTS = {
    "core_web_vitals": 0.30,
    "mobile": 0.25,
    "security": 0.25,
    "technical_elements": 0.20,
}


@dataclass
class CoreWebVitals:
    loading_speed: int
    interactivity: int
    visual_stability: int
    score: int

    def to_dict(self) -> dict:
        return {
            "loading_speed": self.loading_speed,
            "interactivity": self.interactivity,
            "visual_stability": self.visual_stability,
            "score": self.score,
        }


@dataclass
class MobileOptimization:
    has_viewport_meta: bool
    viewport_coverage: float  # share of pages with a viewport tag
    responsive_design: int
    touch_optimization: int
    mobile_score: int

    def to_dict(self) -> dict:
        return {
            "has_viewport_meta": self.has_viewport_meta,
            "viewport_coverage": round(self.viewport_coverage, 2),
            "responsive_design": self.responsive_design,
            "touch_optimization": self.touch_optimization,
            "mobile_score": self.mobile_score,
        }


@dataclass
class SecurityAnalysis:
    https_enabled: bool
    insecure_pages: list[str]
    security_score: int

    def to_dict(self) -> dict:
        return {
            "https_enabled": self.https_enabled,
            "insecure_pages": self.insecure_pages,
            "security_score": self.security_score,
        }


@dataclass
class TechnicalElements:
    structured_data: int  # percent of pages with JSON-LD
    schema_types: list[str]
    canonical_coverage: int
    robots_meta_coverage: int
    xml_sitemap: bool
    has_json_ld: bool
    technical_score: int

    def to_dict(self) -> dict:
        return {
            "structured_data": self.structured_data,
            "schema_types": self.schema_types,
            "canonical_coverage": self.canonical_coverage,
            "robots_meta_coverage": self.robots_meta_coverage,
            "xml_sitemap": self.xml_sitemap,
            "has_json_ld": self.has_json_ld,
            "technical_score": self.technical_score,
        }


@dataclass
class TechnicalSeoAnalysis:
    """Complete technical SEO result."""

    overall_score: int
    core_web_vitals: CoreWebVitals
    mobile: MobileOptimization
    security: SecurityAnalysis
    technical_elements: TechnicalElements
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "core_web_vitals": self.core_web_vitals.to_dict(),
            "mobile_optimization": self.mobile.to_dict(),
            "security_analysis": self.security.to_dict(),
            "technical_elements": self.technical_elements.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def _core_web_vitals(pages: list[PageAnalysisResult]) -> CoreWebVitals:
    if not pages:
        return CoreWebVitals(0, 0, 0, 0)

    loading = interactivity = stability = 0
    for page in pages:
        content_size = len(page.all_text_content) + len(page.images) * 100
        if content_size < 50_000:
            loading += 90
        elif content_size < 100_000:
            loading += 70
        else:
            loading += 50

        interactivity += 70 if len(page.cta_elements) > 15 else 85

        sized = all(img.has_dimensions for img in page.images)
        stability += 90 if page.images and sized else 75

    count = len(pages)
    avg_loading = loading / count
    avg_interactivity = interactivity / count
    avg_stability = stability / count

    return CoreWebVitals(
        loading_speed=round(avg_loading),
        interactivity=round(avg_interactivity),
        visual_stability=round(avg_stability),
        score=round((avg_loading + avg_interactivity + avg_stability) / 3),
    )


def _mobile(pages: list[PageAnalysisResult]) -> MobileOptimization:
    if not pages:
        return MobileOptimization(False, 0.0, 0, 0, 0)

    responsive = touch = 0
    for page in pages:
        good_structure = len(page.headings) >= 3
        reasonable_length = 300 <= page.word_count <= 2000
        responsive += 80 if good_structure and reasonable_length else 60

        touch += 85 if 1 <= len(page.cta_elements) <= 5 else 70

    coverage = sum(1 for p in pages if p.has_viewport) / len(pages)
    has_viewport = coverage == 1.0
    avg_responsive = responsive / len(pages)
    avg_touch = touch / len(pages)
    viewport_score = 90 if has_viewport else 50

    return MobileOptimization(
        has_viewport_meta=has_viewport,
        viewport_coverage=coverage,
        responsive_design=round(avg_responsive),
        touch_optimization=round(avg_touch),
        mobile_score=round((avg_responsive + avg_touch + viewport_score) / 3),
    )


def _security(pages: list[PageAnalysisResult]) -> SecurityAnalysis:
    insecure = [p.url for p in pages if not p.url.startswith("https://")]
    https_enabled = bool(pages) and not insecure

    # HTTPS is worth 40; absence of mixed content another 30 (not inspected)
    score = (40 if https_enabled else 0) + 30

    return SecurityAnalysis(
        https_enabled=https_enabled,
        insecure_pages=insecure,
        security_score=min(100, score),
    )


def _technical_elements(pages: list[PageAnalysisResult], sitemap_found: bool) -> TechnicalElements:
    if not pages:
        return TechnicalElements(0, [], 0, 0, sitemap_found, False, 0)

    count = len(pages)
    json_ld = sum(1 for p in pages if p.has_json_ld)
    canonical = sum(1 for p in pages if p.canonical)
    robots = sum(1 for p in pages if p.robots_meta)

    types: set[str] = set()
    for page in pages:
        types |= schema_types(page.structured_data)

    # Last quarter goes to the sitemap; a site without one gets nothing there
    score = round(
        json_ld / count * 25
        + canonical / count * 25
        + robots / count * 25
        + (25 if sitemap_found else 0)
    )

    return TechnicalElements(
        structured_data=round(json_ld / count * 100),
        schema_types=sorted(types),
        canonical_coverage=round(canonical / count * 100),
        robots_meta_coverage=round(robots / count * 100),
        xml_sitemap=sitemap_found,
        has_json_ld=json_ld > 0,
        technical_score=score,
    )


def _recommendations(
    pages: list[PageAnalysisResult],
    cwv: CoreWebVitals,
    mobile: MobileOptimization,
    security: SecurityAnalysis,
    elements: TechnicalElements,
) -> list[Recommendation]:
    recs: list[Recommendation] = []

    if cwv.loading_speed < 70:
        recs.append(
            Recommendation(
                category="performance",
                priority=Priority.HIGH,
                title="Improve Page Loading Speed",
                description=(
                    "Your pages are loading slower than optimal, affecting user experience "
                    "and SEO rankings."
                ),
                action_items=[
                    "Optimize and compress images",
                    "Minimize CSS and JavaScript files",
                    "Enable browser caching",
                ],
                impact=8,
            )
        )

    if not mobile.has_viewport_meta and pages:
        recs.append(
            Recommendation(
                category="mobile",
                priority=Priority.CRITICAL,
                title="Add Viewport Meta Tag",
                description="Missing viewport meta tag prevents proper mobile display.",
                action_items=[
                    'Add <meta name="viewport" content="width=device-width, '
                    'initial-scale=1"> to all pages'
                ],
                impact=9,
                affected_pages=[p.url for p in pages if not p.has_viewport],
            )
        )

    if security.insecure_pages:
        recs.append(
            Recommendation(
                category="security",
                priority=Priority.CRITICAL,
                title="Enable HTTPS",
                description=(
                    "Your website is not using HTTPS, which is a ranking factor and "
                    "security concern."
                ),
                action_items=[
                    "Install an SSL certificate",
                    "Redirect HTTP to HTTPS",
                    "Update internal links to HTTPS",
                ],
                impact=9,
                affected_pages=list(security.insecure_pages),
            )
        )

    if elements.structured_data < 50:
        recs.append(
            Recommendation(
                category="structured-data",
                priority=Priority.MEDIUM,
                title="Implement Structured Data",
                description="Adding structured data markup can enhance search result appearance.",
                action_items=[
                    "Add Organization or LocalBusiness schema",
                    "Implement Article schema for content pages",
                    "Consider Product schema if applicable",
                ],
                impact=6,
                affected_pages=[p.url for p in pages if not p.has_json_ld],
            )
        )

    if not elements.xml_sitemap:
        recs.append(
            Recommendation(
                category="crawlability",
                priority=Priority.MEDIUM,
                title="Publish an XML Sitemap",
                description="No XML sitemap was found, so search engines rely on crawling alone.",
                action_items=[
                    "Generate /sitemap.xml listing every indexable page",
                    "Reference the sitemap from robots.txt",
                ],
                impact=5,
            )
        )

    if elements.canonical_coverage < 50 and pages:
        recs.append(
            Recommendation(
                category="canonical",
                priority=Priority.LOW,
                title="Add Canonical URLs",
                description=(
                    f"Only {elements.canonical_coverage}% of pages declare a canonical URL."
                ),
                action_items=['Add <link rel="canonical"> pointing at the preferred URL'],
                impact=4,
                affected_pages=[p.url for p in pages if not p.canonical],
            )
        )

    return sort_recommendations(recs)


def analyze_technical_seo(
    pages: list[PageAnalysisResult],
    domain: str,
    sitemap_found: bool,
) -> TechnicalSeoAnalysis:
    """
    Score technical SEO readiness across analyzed pages.

    Args:
        pages: Analyzed pages
        domain: Site domain (for log context)
        sitemap_found: Whether discovery succeeded via an XML sitemap

    Returns:
        TechnicalSeoAnalysis with component scores and recommendations
    """
    cwv = _core_web_vitals(pages)
    mobile = _mobile(pages)
    security = _security(pages)
    elements = _technical_elements(pages, sitemap_found)

    overall = round(
        cwv.score * TECHNICAL_WEIGHTS["core_web_vitals"]
        + mobile.mobile_score * TECHNICAL_WEIGHTS["mobile"]
        + security.security_score * TECHNICAL_WEIGHTS["security"]
        + elements.technical_score * TECHNICAL_WEIGHTS["technical_elements"]
    )

    logger.debug("technical_seo_analyzed", domain=domain, pages=len(pages), score=overall)

    return TechnicalSeoAnalysis(
        overall_score=overall,
        core_web_vitals=cwv,
        mobile=mobile,
        security=security,
        technical_elements=elements,
        recommendations=_recommendations(pages, cwv, mobile, security, elements),
    )
