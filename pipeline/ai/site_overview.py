"""Business context inference over the whole site."""

import json

import structlog

from api.exceptions import ExternalServiceError
from pipeline.ai.client import AIClient
from pipeline.ai.json_repair import parse_json_with_repair
from pipeline.models import BusinessContext, SitePage

logger = structlog.get_logger(__name__)

MAX_OVERVIEW_PAGES = 15

SYSTEM_PROMPT = (
    "You are an expert at analyzing websites to detect their business type, industry, "
    "target audience, and strategic positioning. Always provide specific, actionable "
    "analysis based on the content provided. Never use 'Unknown' - always make an "
    "informed inference based on the available data."
)

RESPONSE_SCHEMA = """{
  "businessType": "Specific business model (e.g., E-commerce Store, SaaS Platform, Digital Agency, Local Service Business)",
  "industry": "Specific industry vertical (e.g., Technology, Healthcare, Real Estate, Professional Services)",
  "targetAudience": "Specific target market (e.g., Small Business Owners, B2B Enterprise, Local Consumers)",
  "mainServices": ["List 3-5 specific services or offerings based on the content"],
  "location": "If local business, specify location; otherwise null",
  "siteStructureAnalysis": "2-3 sentence analysis of navigation, page organization, and user journey",
  "contentStrategy": ["3-4 specific observations about content approach, tone, and focus"],
  "overallRecommendations": ["3-5 specific, actionable SEO and content recommendations"]
}"""


def _page_summary(index: int, page: SitePage) -> str:
    headings = ", ".join(h.text for h in page.headings)[:300]
    content = " ".join(page.paragraphs[:5])[:500]
    return (
        f"Page {index}: {page.url}\n"
        f"Title: {page.title or 'No title'}\n"
        f"Meta: {page.meta_description or 'No description'}\n"
        f"Headings: {headings or 'No headings'}\n"
        f"Content: {content or 'No content'}"
    )


def build_overview_prompt(site_structure: list[SitePage], additional_info: str | None) -> str:
    summaries = "\n\n".join(
        _page_summary(i, page)
        for i, page in enumerate(site_structure[:MAX_OVERVIEW_PAGES], start=1)
    )
    user_context = f"USER PROVIDED CONTEXT: {additional_info}\n\n" if additional_info else ""
    return (
        "Analyze this website thoroughly and provide detailed business context. You MUST "
        'provide specific, meaningful insights - do NOT use "Unknown" or generic placeholders.'
        f"\n\n{user_context}"
        f"WEBSITE DATA ({len(site_structure)} pages analyzed):\n{summaries}\n\n"
        "REQUIRED: Analyze the content above and provide a JSON response with specific, "
        f"actionable insights:\n{RESPONSE_SCHEMA}\n\n"
        "IMPORTANT: Base your analysis on the actual page titles, headings, and content provided."
    )


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


def parse_business_context(data: dict) -> BusinessContext:
    """Map the model's camelCase payload, filling gaps with the generic defaults."""
    fallback = BusinessContext.fallback()
    return BusinessContext(
        business_type=data.get("businessType") or fallback.business_type,
        industry=data.get("industry") or fallback.industry,
        target_audience=data.get("targetAudience") or fallback.target_audience,
        main_services=_string_list(data.get("mainServices")),
        location=data.get("location") or None,
        site_structure_analysis=data.get("siteStructureAnalysis") or "",
        content_strategy=_string_list(data.get("contentStrategy")),
        overall_recommendations=_string_list(data.get("overallRecommendations")),
    )


class SiteOverviewService:
    """One JSON-mode call that infers the business behind a site."""

    def __init__(self, client: AIClient, model: str, temperature: float = 0.3):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def analyze(
        self,
        site_structure: list[SitePage],
        additional_info: str | None = None,
    ) -> BusinessContext:
        """Return the inferred context, or ``BusinessContext.fallback()`` on any failure."""
        if not site_structure:
            return BusinessContext.fallback()

        prompt = build_overview_prompt(site_structure, additional_info)
        try:
            content = await self.client.complete_json(
                SYSTEM_PROMPT,
                prompt,
                model=self.model,
                temperature=self.temperature,
            )
            data = parse_json_with_repair(content)
        except (ExternalServiceError, json.JSONDecodeError) as e:
            logger.warning("site_overview_failed", error=str(e))
            return BusinessContext.fallback()

        if not isinstance(data, dict):
            logger.warning("site_overview_invalid_format", type=type(data).__name__)
            return BusinessContext.fallback()

        context = parse_business_context(data)
        logger.info(
            "site_overview_completed",
            business_type=context.business_type,
            industry=context.industry,
            pages=len(site_structure),
        )
        return context
