"""Data models shared by the analysis pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pipeline.analysis.content_quality import ContentQualityAnalysis
    from pipeline.analysis.link_architecture import LinkArchitectureAnalysis
    from pipeline.analysis.performance import PerformanceAnalysis
    from pipeline.analysis.technical import TechnicalSeoAnalysis


class Severity(StrEnum):
    """Severity tier of a rule-derived SEO issue."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ProgressStatus(StrEnum):
    """Lifecycle states of an analysis run."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ProgressStatus.IN_PROGRESS


class AccountStatus(StrEnum):
    """Billing tier as seen by the quota manager."""

    TRIAL = "trial"
    PAID = "paid"


class DiscoverySource(StrEnum):
    """Where the page list came from."""

    SITEMAP = "sitemap"
    CRAWL = "crawl"


# =============================================================================
# Page-level extraction types
# =============================================================================


@dataclass
class Heading:
    """A semantic or heuristically detected heading."""

    level: int
    text: str

    def to_dict(self) -> dict:
        return {"level": self.level, "text": self.text}


@dataclass
class ImageInfo:
    """An image referenced by a page."""

    src: str
    alt: str | None = None
    width: int | None = None
    height: int | None = None
    suggested_alt: str | None = None

    @property
    def has_alt(self) -> bool:
        return bool(self.alt and self.alt.strip())

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width and self.height)

    def to_dict(self) -> dict:
        return {
            "src": self.src,
            "alt": self.alt,
            "width": self.width,
            "height": self.height,
            "suggested_alt": self.suggested_alt,
        }


@dataclass
class LinkRef:
    """An anchor pointing at another URL."""

    href: str
    text: str
    title: str | None = None

    def to_dict(self) -> dict:
        return {"href": self.href, "text": self.text, "title": self.title}


@dataclass
class CtaElement:
    """A call-to-action element found on a page."""

    type: str
    text: str
    element: str
    attributes: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "text": self.text,
            "element": self.element,
            "attributes": dict(self.attributes),
        }


@dataclass
class CardElement:
    """A card-like component (feature tile, product card, post preview)."""

    type: str
    title: str
    content: str
    classes: str
    has_image: bool
    has_cta: bool

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "classes": self.classes,
            "has_image": self.has_image,
            "has_cta": self.has_cta,
        }


@dataclass(frozen=True)
class SeoIssue:
    """A rule-derived finding about a page. Immutable once created."""

    category: str
    severity: Severity
    title: str
    description: str
    element: str | None = None
    recommendation: str | None = None

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "element": self.element,
            "recommendation": self.recommendation,
        }


@dataclass
class KeywordDensity:
    """Occurrence statistics for one keyword or phrase."""

    keyword: str
    count: int
    density: float

    def to_dict(self) -> dict:
        return {"keyword": self.keyword, "count": self.count, "density": round(self.density, 2)}


@dataclass
class PageAnalysisResult:
    """Everything the pipeline knows about one analyzed page.

    Built by the page analyzer. The insights generator later fills in
    ``suggestions`` and ``suggestions_teaser`` (and the AI counters); no
    other field is touched after construction.
    """

    url: str
    title: str = ""
    meta_description: str = ""
    meta_keywords: str | None = None
    canonical: str | None = None
    robots_meta: str | None = None
    has_json_ld: bool = False
    structured_data: list[Any] = field(default_factory=list)
    has_viewport: bool = False

    headings: list[Heading] = field(default_factory=list)
    images: list[ImageInfo] = field(default_factory=list)
    internal_links: list[LinkRef] = field(default_factory=list)
    external_links: list[LinkRef] = field(default_factory=list)
    cta_elements: list[CtaElement] = field(default_factory=list)
    card_elements: list[CardElement] = field(default_factory=list)

    paragraphs: list[str] = field(default_factory=list)
    sentences: list[str] = field(default_factory=list)
    all_text_content: str = ""

    issues: list[SeoIssue] = field(default_factory=list)
    word_count: int = 0
    readability_score: float = 0.0
    keyword_density: list[KeywordDensity] = field(default_factory=list)
    content_depth: float = 0.0
    semantic_keywords: list[str] = field(default_factory=list)

    suggestions: list[str] | None = None
    suggestions_teaser: str | None = None
    ai_calls_made: int = 0
    credits_used: int = 0

    def headings_at(self, level: int) -> list[Heading]:
        return [h for h in self.headings if h.level == level]

    @property
    def h1_count(self) -> int:
        return len(self.headings_at(1))

    @property
    def images_without_alt(self) -> list[ImageInfo]:
        return [img for img in self.images if not img.has_alt]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "title": self.title,
            "meta_description": self.meta_description,
            "meta_keywords": self.meta_keywords,
            "canonical": self.canonical,
            "robots_meta": self.robots_meta,
            "has_json_ld": self.has_json_ld,
            "structured_data": self.structured_data,
            "has_viewport": self.has_viewport,
            "headings": [h.to_dict() for h in self.headings],
            "images": [i.to_dict() for i in self.images],
            "internal_links": [link.to_dict() for link in self.internal_links],
            "external_links": [link.to_dict() for link in self.external_links],
            "cta_elements": [c.to_dict() for c in self.cta_elements],
            "card_elements": [c.to_dict() for c in self.card_elements],
            "paragraphs": self.paragraphs,
            "sentences": self.sentences,
            "issues": [i.to_dict() for i in self.issues],
            "word_count": self.word_count,
            "readability_score": round(self.readability_score, 1),
            "keyword_density": [k.to_dict() for k in self.keyword_density],
            "content_depth": round(self.content_depth, 1),
            "semantic_keywords": self.semantic_keywords,
            "suggestions": self.suggestions,
            "suggestions_teaser": self.suggestions_teaser,
        }


@dataclass
class BasicSeoData:
    """Rudimentary metadata harvested while crawling."""

    url: str
    title: str = ""
    meta_description: str = ""
    h1: str = ""
    status_code: int = 200

    def to_page_result(self) -> PageAnalysisResult:
        """Build a minimal page result when the full analyzer produced nothing."""
        headings = [Heading(level=1, text=self.h1)] if self.h1 else []
        return PageAnalysisResult(
            url=self.url,
            title=self.title,
            meta_description=self.meta_description,
            headings=headings,
        )


@dataclass
class DiscoveryResult:
    """Ordered URL list plus whatever the discovery step learned on the way."""

    urls: list[str]
    source: DiscoverySource
    basic_seo_data: dict[str, BasicSeoData] = field(default_factory=dict)

    @property
    def sitemap_found(self) -> bool:
        return self.source == DiscoverySource.SITEMAP


# =============================================================================
# Run configuration and quota types
# =============================================================================


@dataclass
class AnalysisOptions:
    """Caller-supplied knobs for one run."""

    use_sitemap: bool = True
    use_ai: bool = True
    skip_alt_text_generation: bool = False
    max_pages: int = 25
    crawl_delay_ms: int = 1000
    follow_external_links: bool = False
    additional_info: str | None = None
    is_competitor_analysis: bool = False
    force_refresh: bool = False


@dataclass
class UserSettings:
    """Per-user analysis preferences held by the external datastore."""

    max_pages: int = 25
    use_ai: bool = True
    analyze_link_structure: bool = True
    follow_external_links: bool = False
    crawl_delay_ms: int = 1000


@dataclass
class Usage:
    """Per-user consumption counters held by the external datastore."""

    account_status: AccountStatus = AccountStatus.TRIAL
    credits: int = 0
    page_limit: int = -1  # -1 means unlimited
    pages_analyzed: int = 0

    @property
    def is_trial(self) -> bool:
        return self.account_status == AccountStatus.TRIAL

    @property
    def unlimited_pages(self) -> bool:
        return self.page_limit == -1


@dataclass
class CreditResult:
    """Outcome of an atomic credit deduction."""

    success: bool
    remaining: int
    cost: int = 0


@dataclass
class QuotaInfo:
    """Budget snapshot computed once at the start of a run."""

    settings: UserSettings
    usage: Usage | None
    is_trial: bool
    ai_suggestions_remaining: int
    remaining_quota: int
    effective_max_pages: int


# =============================================================================
# AI and aggregate types
# =============================================================================


@dataclass
class BusinessContext:
    """Inferred business profile used to ground AI suggestions."""

    business_type: str
    industry: str
    target_audience: str
    main_services: list[str] = field(default_factory=list)
    location: str | None = None
    site_structure_analysis: str = ""
    content_strategy: list[str] = field(default_factory=list)
    overall_recommendations: list[str] = field(default_factory=list)
    is_fallback: bool = False

    @classmethod
    def fallback(cls) -> BusinessContext:
        return cls(
            business_type="General Website",
            industry="General",
            target_audience="General Public",
            is_fallback=True,
        )

    def to_dict(self) -> dict:
        return {
            "business_type": self.business_type,
            "industry": self.industry,
            "target_audience": self.target_audience,
            "main_services": self.main_services,
            "location": self.location,
            "site_structure_analysis": self.site_structure_analysis,
            "content_strategy": self.content_strategy,
            "overall_recommendations": self.overall_recommendations,
        }


@dataclass
class SitePage:
    """Condensed view of one page, shared with the AI prompts."""

    url: str
    title: str
    meta_description: str
    headings: list[Heading] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)

    @classmethod
    def from_page(cls, page: PageAnalysisResult) -> SitePage:
        return cls(
            url=page.url,
            title=page.title,
            meta_description=page.meta_description,
            headings=list(page.headings),
            paragraphs=list(page.paragraphs),
        )

    @property
    def h1(self) -> str:
        return next((h.text for h in self.headings if h.level == 1), "")


@dataclass
class InsightsResult:
    """Output of the insights stage."""

    site_overview: BusinessContext
    ai_calls_made: int = 0
    credits_used: int = 0
    pages_with_suggestions: int = 0


@dataclass
class EnhancedInsights:
    """Bundle of the cross-page analyzers plus the blended effectiveness score."""

    technical: TechnicalSeoAnalysis
    content_quality: ContentQualityAnalysis
    link_architecture: LinkArchitectureAnalysis
    performance: PerformanceAnalysis
    seo_effectiveness_score: int
    design: dict[str, Any] | None = None

    def to_dict(self) -> dict:
        return {
            "technical": self.technical.to_dict(),
            "content_quality": self.content_quality.to_dict(),
            "link_architecture": self.link_architecture.to_dict(),
            "performance": self.performance.to_dict(),
            "seo_effectiveness_score": self.seo_effectiveness_score,
            "design": self.design,
        }


@dataclass
class ProcessingStats:
    """Timing and consumption counters for a run."""

    total_processing_time: float
    pages_discovered: int
    pages_analyzed: int
    ai_calls_made: int = 0
    credits_used: int = 0

    def to_dict(self) -> dict:
        return {
            "total_processing_time": round(self.total_processing_time, 2),
            "pages_discovered": self.pages_discovered,
            "pages_analyzed": self.pages_analyzed,
            "ai_calls_made": self.ai_calls_made,
            "credits_used": self.credits_used,
        }


@dataclass
class AnalysisResult:
    """Final aggregate of a completed run."""

    domain: str
    pages: list[PageAnalysisResult]
    metrics: dict[str, int]
    processing_stats: ProcessingStats
    site_overview: BusinessContext | None = None
    enhanced_insights: EnhancedInsights | None = None
    analysis_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "analysis_id": self.analysis_id,
            "domain": self.domain,
            "pages": [p.to_dict() for p in self.pages],
            "metrics": dict(self.metrics),
            "site_overview": self.site_overview.to_dict() if self.site_overview else None,
            "enhanced_insights": (
                self.enhanced_insights.to_dict() if self.enhanced_insights else None
            ),
            "processing_stats": self.processing_stats.to_dict(),
        }


@dataclass
class ProgressUpdate:
    """One event on a domain's progress channel."""

    status: ProgressStatus
    domain: str
    percentage: int
    pages_found: int = 0
    pages_analyzed: int = 0
    current_page_url: str = ""
    analyzed_pages: list[str] = field(default_factory=list)
    error: str | None = None
    analysis: AnalysisResult | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "status": self.status.value,
            "domain": self.domain,
            "pages_found": self.pages_found,
            "pages_analyzed": self.pages_analyzed,
            "current_page_url": self.current_page_url,
            "analyzed_pages": list(self.analyzed_pages),
            "percentage": self.percentage,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.analysis is not None:
            data["analysis"] = self.analysis.to_dict()
        return data
