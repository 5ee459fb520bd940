"""Analysis request and response schemas."""

from pydantic import BaseModel, Field, field_validator

from api.config import Settings
from pipeline.crawler.url import normalize_domain
from pipeline.models import AnalysisOptions


def validate_domain(value: str) -> str:
    """Reduce a domain to its bare lowercase host without www."""
    domain = normalize_domain(value)
    if not domain or "." not in domain:
        raise ValueError("domain must be a hostname such as example.com")
    return domain


class AnalysisOptionsSchema(BaseModel):
    """Caller-supplied options for a run."""

    use_sitemap: bool = True
    use_ai: bool = True
    skip_alt_text_generation: bool = False
    max_pages: int | None = Field(default=None, ge=1, le=500)
    crawl_delay_ms: int | None = Field(default=None, ge=0, le=30000)
    follow_external_links: bool = False
    additional_info: str | None = Field(None, max_length=2000)
    is_competitor_analysis: bool = False
    force_refresh: bool = False

    def to_options(self, settings: Settings) -> AnalysisOptions:
        """Build pipeline options, filling unset limits from the configured defaults."""
        values = self.model_dump()
        if values["max_pages"] is None:
            values["max_pages"] = settings.default_max_pages
        if values["crawl_delay_ms"] is None:
            values["crawl_delay_ms"] = settings.default_crawl_delay_ms
        return AnalysisOptions(**values)


class AnalysisRequest(BaseModel):
    """Request to start analyzing a domain."""

    domain: str = Field(..., min_length=1, max_length=255)
    user_id: str | None = Field(None, max_length=255)
    options: AnalysisOptionsSchema = Field(default_factory=AnalysisOptionsSchema)

    @field_validator("domain")
    @classmethod
    def normalize(cls, v: str) -> str:
        return validate_domain(v)


class AnalysisAccepted(BaseModel):
    """Response for an accepted analysis request."""

    domain: str
    status: str = "accepted"
    events_url: str = Field(..., description="Server-Sent Events stream for progress")


class CancelResponse(BaseModel):
    """Outcome of a cancellation request."""

    domain: str
    cancelled: bool


class ActiveAnalysesResponse(BaseModel):
    """Domains with a registered, unfinished run."""

    domains: list[str]


class CompareRequest(BaseModel):
    """Compare an analyzed domain with a competitor."""

    main_domain: str = Field(..., min_length=1, max_length=255)
    competitor_domain: str = Field(..., min_length=1, max_length=255)
    user_id: str | None = Field(None, max_length=255)
    use_ai: bool = True
    additional_info: str | None = Field(None, max_length=2000)

    @field_validator("main_domain", "competitor_domain")
    @classmethod
    def normalize(cls, v: str) -> str:
        return validate_domain(v)
