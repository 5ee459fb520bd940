"""Per-page AI suggestion generation.

Builds a grounded prompt from the extracted page (metadata, heading
outline, content metrics, links, CTAs, paragraphs) plus the site-wide
business context, calls the model in JSON mode with retry and exponential
backoff, and caches successful results by a content fingerprint.
"""

import asyncio
import hashlib
import json
import re
import time
from collections import Counter
from collections.abc import Awaitable, Callable

import structlog

from api.exceptions import ExternalServiceError
from pipeline.ai.cache import SuggestionCache
from pipeline.ai.client import AIClient
from pipeline.ai.json_repair import parse_json_with_repair
from pipeline.crawler.url import url_key
from pipeline.models import BusinessContext, PageAnalysisResult, SitePage

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert SEO consultant. Provide specific, actionable suggestions with "
    "concrete examples. Always include exact character counts for titles/descriptions, "
    "specific keywords to target, and exact URLs for internal linking recommendations. "
    "Be detailed and specific, not generic. Respond in valid JSON with proper escaping "
    "of quotes and special characters. Write all suggestions in the same language as "
    "the page content."
)

TEMPERATURE = 0.4
MAX_TOKENS = 2000

MAX_PROMPT_PARAGRAPHS = 10
MAX_PARAGRAPH_CHARS = 1000
MAX_LINK_OPPORTUNITIES = 6
MAX_LINKS_REVIEWED = 5
PROMPT_KEYWORDS = 10

_NON_WORD = re.compile(r"[^\w\s]")

SleepFunc = Callable[[float], Awaitable[None]]


def extract_keywords(text: str, limit: int = PROMPT_KEYWORDS) -> list[str]:
    """Most frequent words longer than three characters."""
    words = [w for w in _NON_WORD.sub(" ", text.lower()).split() if len(w) > 3]
    return [word for word, _ in Counter(words).most_common(limit)]


def page_fingerprint(page: PageAnalysisResult, now: float) -> str:
    """md5 over the page's identifying content, bucketed by hour."""
    payload = {
        "url": page.url,
        "title": page.title,
        "meta_description": page.meta_description,
        "headings": [h.to_dict() for h in page.headings[:3]],
        "first_paragraph": page.paragraphs[0][:200] if page.paragraphs else "",
        "issues": sorted(issue.category for issue in page.issues),
        "hour": int(now / 3600),
    }
    return hashlib.md5(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


def _link_quality(text: str, keywords: list[str]) -> str:
    lowered = text.lower()
    if any(keyword in lowered for keyword in keywords):
        return "Keyword-rich"
    if len(text) > 50:
        return "Descriptive"
    if len(text) < 10:
        return "Short"
    return "Neutral"


def link_opportunities(
    page: PageAnalysisResult,
    site_structure: list[SitePage],
    keywords: list[str],
) -> list[tuple[SitePage, list[str], bool]]:
    """
    Rank other pages by keyword overlap with this one.

    Pages not yet linked come first, then higher overlap. Only pages that
    share at least one keyword are returned.
    """
    linked = {url_key(link.href) for link in page.internal_links}
    own_key = url_key(page.url)

    candidates = []
    for other in site_structure:
        if url_key(other.url) == own_key:
            continue
        other_keywords = extract_keywords(f"{other.title} {other.h1}")
        common = [k for k in keywords if k in other_keywords]
        if not common:
            continue
        candidates.append((other, common, url_key(other.url) in linked))

    candidates.sort(key=lambda item: (item[2], -len(item[1])))
    return candidates[:MAX_LINK_OPPORTUNITIES]


def _heading_section(page: PageAnalysisResult) -> str:
    if not page.headings:
        return "HEADING STRUCTURE:\n- No headings found on this page"

    lines = ["HEADING STRUCTURE:"]
    for level in (1, 2, 3):
        headings = page.headings_at(level)
        lines.append(f"H{level} Headings ({len(headings)}):")
        if headings:
            lines.extend(f'- "{h.text}"' for h in headings)
        else:
            lines.append(f"- No H{level} headings found")
    return "\n".join(lines)


def _content_quality_section(page: PageAnalysisResult) -> str:
    top_keywords = ", ".join(
        f"{k.keyword}({k.density:.1f}%)" for k in page.keyword_density[:5]
    )
    return "\n".join(
        [
            "CONTENT QUALITY:",
            f"- Words: {page.word_count}",
            f"- Readability: {page.readability_score:.0f}/100",
            f"- Content depth: {page.content_depth:.0f}/100",
            f"- Top keywords: {top_keywords or 'None'}",
            f"- Semantic phrases: {', '.join(page.semantic_keywords[:5]) or 'None'}",
        ]
    )


def _links_section(page: PageAnalysisResult, keywords: list[str]) -> str:
    if not page.internal_links:
        return ""
    lines = [f"Internal Links ({len(page.internal_links)} found):"]
    for link in page.internal_links[:MAX_LINKS_REVIEWED]:
        text = link.text or "No anchor text"
        lines.append(f'- "{text}" ({_link_quality(text, keywords)})')
    if len(page.internal_links) > MAX_LINKS_REVIEWED:
        lines.append(f"  +{len(page.internal_links) - MAX_LINKS_REVIEWED} more links")
    return "\n".join(lines)


def _opportunities_section(
    page: PageAnalysisResult,
    site_structure: list[SitePage] | None,
    keywords: list[str],
) -> str:
    if not site_structure:
        return ""
    lines = [f"Site Structure ({len(site_structure)} pages):", "Internal Link Opportunities:"]
    for other, common, already_linked in link_opportunities(page, site_structure, keywords):
        marker = "[Already linked]" if already_linked else "[Link opportunity]"
        lines.append(
            f'- "{other.title or "Untitled"}" ({other.url}) - Related topics: '
            f"{', '.join(common[:3])} {marker}"
        )
    return "\n".join(lines)


def _cta_section(page: PageAnalysisResult) -> str:
    ctas = [c for c in page.cta_elements if c.text.strip()]
    if not ctas:
        return (
            "CTA ELEMENTS ANALYSIS:\n"
            "- No CTA elements with text found on this page\n"
            "- This may indicate missing conversion opportunities"
        )

    by_type: dict[str, list[str]] = {}
    for cta in ctas:
        by_type.setdefault(cta.type, []).append(cta.text)

    lines = ["CTA ELEMENTS ANALYSIS:", f"Total CTA elements with text: {len(ctas)}"]
    for cta_type, texts in by_type.items():
        lines.append(f"{cta_type} ({len(texts)}):")
        lines.extend(f'- "{text}"' for text in texts)
    average = round(sum(len(c.text) for c in ctas) / len(ctas))
    lines.append(f"- Average CTA text length: {average} characters")
    return "\n".join(lines)


def _business_section(context: BusinessContext | None, additional_info: str | None) -> str:
    lines = []
    if context is not None and not context.is_fallback:
        services = ", ".join(context.main_services[:3]) or "General"
        location = f" | Location: {context.location}" if context.location else ""
        lines.append(
            f"BUSINESS: {context.industry} | {context.business_type} | "
            f"Target: {context.target_audience}"
        )
        lines.append(f"Services: {services}{location}")
    if additional_info:
        lines.append(f"ADDITIONAL BUSINESS CONTEXT: {additional_info}")
    return "\n".join(lines)


def _paragraph_section(page: PageAnalysisResult) -> str:
    if not page.paragraphs:
        return "PARAGRAPH CONTENT: No paragraph content available"
    lines = ["PARAGRAPH CONTENT (for context):"]
    for i, paragraph in enumerate(page.paragraphs[:MAX_PROMPT_PARAGRAPHS], start=1):
        if len(paragraph) > MAX_PARAGRAPH_CHARS:
            paragraph = paragraph[:MAX_PARAGRAPH_CHARS] + "..."
        lines.append(f"Paragraph {i}: {paragraph}")
    return "\n\n".join(lines)


def build_suggestion_prompt(
    page: PageAnalysisResult,
    site_structure: list[SitePage] | None,
    business_context: BusinessContext | None,
    additional_info: str | None = None,
) -> str:
    page_text = " ".join(
        [page.title, page.meta_description, *(h.text for h in page.headings), *page.paragraphs]
    )
    keywords = extract_keywords(page_text)
    h1 = next((h.text for h in page.headings_at(1)), "")
    issues = ", ".join(f"{i.title} ({i.severity.value})" for i in page.issues)

    header = "\n".join(
        [
            "Analyze this webpage and provide 8-12 specific SEO improvements focused on "
            "content optimization.",
            "",
            f"PAGE: {page.url}",
            f'Title: "{page.title or "MISSING"}" ({len(page.title)} chars)',
            f'Meta: "{page.meta_description or "MISSING"}" ({len(page.meta_description)} chars)',
            f'H1: "{h1 or "MISSING"}"',
            f"Content: ~{page.word_count} words, {len(page.paragraphs)} paragraphs",
            f"Images: {len(page.images)} total ({len(page.images_without_alt)} missing alt)",
            f"Links: {len(page.internal_links)} internal",
            f"ISSUES: {issues or 'No major issues found'}",
        ]
    )

    footer = (
        "Provide specific, actionable improvements focusing on:\n"
        "- Content quality optimization (readability, depth, semantic richness)\n"
        "- Title/meta optimization with exact character counts\n"
        "- Internal linking with semantic relevance\n"
        "- CTA optimization (button text, placement, conversion opportunities)\n"
        "- Business-relevant content gaps and opportunities\n\n"
        'Respond in JSON: {"suggestions": ["suggestion 1", "suggestion 2", ...]}'
    )

    sections = [
        header,
        _heading_section(page),
        _content_quality_section(page),
        _business_section(business_context, additional_info),
        _links_section(page, keywords),
        _opportunities_section(page, site_structure, keywords),
        _cta_section(page),
        _paragraph_section(page),
        footer,
    ]
    return "\n\n".join(s for s in sections if s)


def parse_suggestions(content: str) -> list[str]:
    """Extract the ``suggestions`` list from model output, or [] if unusable."""
    try:
        result = parse_json_with_repair(content)
    except json.JSONDecodeError as e:
        logger.warning("suggestions_parse_failed", error=str(e), preview=content[:200])
        return []

    if not isinstance(result, dict):
        return []
    suggestions = result.get("suggestions")
    if not isinstance(suggestions, list):
        logger.warning("suggestions_invalid_format", type=type(suggestions).__name__)
        return []
    return [str(s).strip() for s in suggestions if str(s).strip()]


class SuggestionService:
    """Generates SEO suggestions for one page at a time."""

    def __init__(
        self,
        client: AIClient,
        cache: SuggestionCache,
        model: str,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.cache = cache
        self.model = model
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._clock = clock

    async def _complete_with_retry(self, prompt: str, url: str) -> str | None:
        last_error: ExternalServiceError | None = None
        for attempt in range(self.max_attempts):
            try:
                return await self.client.complete_json(
                    SYSTEM_PROMPT,
                    prompt,
                    model=self.model,
                    temperature=TEMPERATURE,
                    max_tokens=MAX_TOKENS,
                )
            except ExternalServiceError as e:
                last_error = e
                if attempt + 1 < self.max_attempts:
                    delay = self.retry_delay * 2**attempt
                    logger.warning(
                        "suggestion_attempt_failed",
                        url=url,
                        attempt=attempt + 1,
                        retry_in=delay,
                        error=e.message,
                    )
                    await self._sleep(delay)

        logger.error(
            "suggestion_attempts_exhausted",
            url=url,
            attempts=self.max_attempts,
            error=last_error.message if last_error else None,
        )
        return None

    async def generate(
        self,
        page: PageAnalysisResult,
        site_structure: list[SitePage] | None = None,
        business_context: BusinessContext | None = None,
        additional_info: str | None = None,
        force_refresh: bool = False,
    ) -> list[str]:
        """
        Generate suggestions for a page.

        Never raises for AI failures: every failure path returns [].
        Only successful, non-empty results are cached.
        """
        fingerprint = page_fingerprint(page, self._clock())

        if not force_refresh:
            cached = await self.cache.get(fingerprint)
            if cached is not None:
                logger.debug("suggestions_cache_hit", url=page.url)
                return cached

        prompt = build_suggestion_prompt(page, site_structure, business_context, additional_info)
        content = await self._complete_with_retry(prompt, page.url)
        if content is None:
            return []

        suggestions = parse_suggestions(content)
        if suggestions:
            await self.cache.set(fingerprint, suggestions)

        logger.info("suggestions_generated", url=page.url, count=len(suggestions))
        return suggestions
