"""AI commentary on a competitor comparison."""

import json
from dataclasses import dataclass, field

import structlog

from api.exceptions import ExternalServiceError
from pipeline.ai.client import AIClient
from pipeline.ai.json_repair import parse_json_with_repair
from pipeline.models import AnalysisResult

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a competitive SEO strategist. Analyze website performance data to provide "
    "actionable competitive insights. Focus on specific score comparisons and concrete "
    "recommendations."
)

RESPONSE_SCHEMA = """{
  "insights": ["insight1", "insight2", ...],
  "strategicRecommendations": ["rec1", "rec2", ...],
  "competitiveAdvantages": ["adv1", "adv2", ...],
  "threats": ["threat1", "threat2", ...]
}"""


@dataclass
class CompetitorInsights:
    insights: list[str] = field(default_factory=list)
    strategic_recommendations: list[str] = field(default_factory=list)
    competitive_advantages: list[str] = field(default_factory=list)
    threats: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "insights": self.insights,
            "strategic_recommendations": self.strategic_recommendations,
            "competitive_advantages": self.competitive_advantages,
            "threats": self.threats,
        }


def _site_summary(result: AnalysisResult) -> str:
    pages = len(result.pages)
    avg_words = round(sum(p.word_count for p in result.pages) / pages) if pages else 0
    enhanced = result.enhanced_insights
    scores = (
        (
            enhanced.technical.overall_score,
            enhanced.content_quality.overall_score,
            enhanced.link_architecture.overall_score,
            enhanced.performance.overall_score,
        )
        if enhanced
        else (0, 0, 0, 0)
    )
    return (
        f"{result.domain}:\n"
        f"- Pages: {pages}\n"
        f"- Avg Words/Page: {avg_words}\n"
        f"- Technical SEO: {scores[0]}/100\n"
        f"- Content Quality: {scores[1]}/100\n"
        f"- Link Architecture: {scores[2]}/100\n"
        f"- Performance: {scores[3]}/100"
    )


def build_insights_prompt(
    main: AnalysisResult,
    competitor: AnalysisResult,
    additional_info: str | None = None,
) -> str:
    user_context = f"Additional Context: {additional_info}\n\n" if additional_info else ""
    return (
        f"Analyze the competitive landscape and provide strategic insights for {main.domain}."
        f"\n\nMAIN WEBSITE: {_site_summary(main)}\n\n"
        f"COMPETITOR: {_site_summary(competitor)}\n\n"
        f"{user_context}"
        "Provide competitive analysis with:\n"
        "1. Key insights about competitive positioning\n"
        "2. Strategic recommendations for improvement\n"
        "3. Competitive advantages to leverage\n"
        "4. Potential threats to address\n\n"
        "Focus on actionable insights with specific score comparisons and recommendations."
        f"\n\nRespond in JSON format:\n{RESPONSE_SCHEMA}"
    )


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


class CompetitorInsightsService:
    """One JSON-mode call comparing two analyzed sites."""

    def __init__(self, client: AIClient, model: str, temperature: float = 0.4):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def generate(
        self,
        main: AnalysisResult,
        competitor: AnalysisResult,
        additional_info: str | None = None,
    ) -> CompetitorInsights | None:
        """Return the model's insights, or None when the call or its payload fails."""
        prompt = build_insights_prompt(main, competitor, additional_info)
        try:
            content = await self.client.complete_json(
                SYSTEM_PROMPT,
                prompt,
                model=self.model,
                temperature=self.temperature,
            )
            data = parse_json_with_repair(content)
        except (ExternalServiceError, json.JSONDecodeError) as e:
            logger.warning("competitor_insights_failed", error=str(e))
            return None

        if not isinstance(data, dict):
            logger.warning("competitor_insights_invalid_format", type=type(data).__name__)
            return None

        insights = CompetitorInsights(
            insights=_string_list(data.get("insights")),
            strategic_recommendations=_string_list(data.get("strategicRecommendations")),
            competitive_advantages=_string_list(data.get("competitiveAdvantages")),
            threats=_string_list(data.get("threats")),
        )
        logger.info(
            "competitor_insights_completed",
            main=main.domain,
            competitor=competitor.domain,
            insights=len(insights.insights),
        )
        return insights
