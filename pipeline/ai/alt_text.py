"""Alt text suggestions for images that ship without one."""

import asyncio
import json
from dataclasses import dataclass, field

import structlog

from api.exceptions import ExternalServiceError
from pipeline.ai.client import AIClient
from pipeline.ai.json_repair import parse_json_with_repair
from pipeline.models import Heading

logger = structlog.get_logger(__name__)

MAX_ALT_LENGTH = 125
BATCH_SIZE = 3

SYSTEM_PROMPT = (
    "You write concise, descriptive alt text for web images to improve accessibility "
    'and SEO. Respond in JSON: {"alt_text": "..."}'
)


@dataclass
class AltTextContext:
    """Page information the model sees alongside the image."""

    url: str
    title: str = ""
    headings: list[Heading] = field(default_factory=list)
    business_type: str | None = None
    industry: str | None = None


def build_alt_text_prompt(context: AltTextContext) -> str:
    headings = ", ".join(h.text for h in context.headings[:3]) or "None"
    return (
        "Generate a concise, descriptive alt text for this image. Consider the page context:\n"
        f"Page: {context.url}\n"
        f"Title: {context.title or 'Unknown'}\n"
        f"Business: {context.business_type or 'Unknown'} in "
        f"{context.industry or 'Unknown'} industry\n"
        f"Main headings: {headings}\n\n"
        "Requirements:\n"
        f"- {MAX_ALT_LENGTH} characters or less\n"
        "- Describe what you see, not what you think it means\n"
        "- Include relevant details for accessibility\n"
        "- Be specific and helpful for screen readers"
    )


class AltTextService:
    """Vision-model alt text generation, cached per (image, page)."""

    def __init__(self, client: AIClient, model: str, batch_size: int = BATCH_SIZE):
        self.client = client
        self.model = model
        self.batch_size = batch_size
        self._cache: dict[tuple[str, str], str] = {}

    async def generate(self, src: str, context: AltTextContext) -> str:
        """Return alt text for one image, or "" when generation fails."""
        cache_key = (src, context.url)
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            content = await self.client.complete_json(
                SYSTEM_PROMPT,
                build_alt_text_prompt(context),
                model=self.model,
                temperature=0.3,
                max_tokens=150,
                image_urls=[src],
            )
            data = parse_json_with_repair(content)
        except (ExternalServiceError, json.JSONDecodeError) as e:
            logger.warning("alt_text_failed", src=src, error=str(e))
            return ""

        alt = ""
        if isinstance(data, dict):
            alt = str(data.get("alt_text") or "").strip()[:MAX_ALT_LENGTH]
        if alt:
            self._cache[cache_key] = alt
        return alt

    async def generate_batch(
        self,
        images: list[str],
        context: AltTextContext,
    ) -> list[tuple[str, str]]:
        """Generate alt text for several images, ``batch_size`` requests at a time."""
        results: list[tuple[str, str]] = []
        for i in range(0, len(images), self.batch_size):
            batch = images[i : i + self.batch_size]
            alts = await asyncio.gather(*(self.generate(src, context) for src in batch))
            results.extend(zip(batch, alts, strict=True))

        logger.info(
            "alt_text_batch_completed",
            url=context.url,
            requested=len(images),
            generated=sum(1 for _, alt in results if alt),
        )
        return results
