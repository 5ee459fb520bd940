"""Batched fetch-and-extract of discovered pages."""

import asyncio
import math
from collections.abc import Awaitable, Callable

import structlog

from pipeline.ai.alt_text import AltTextContext, AltTextService
from pipeline.analysis.issues import detect_seo_issues
from pipeline.analysis.metrics import (
    content_depth,
    count_words,
    keyword_density,
    readability_score,
    semantic_keywords,
)
from pipeline.context import AnalysisContext
from pipeline.crawler.fetcher import PageFetcher
from pipeline.extraction.basic import extract_basic_seo
from pipeline.extraction.cards import extract_card_elements
from pipeline.extraction.content import extract_content
from pipeline.extraction.cta import extract_cta_elements
from pipeline.extraction.dom import parse_html
from pipeline.extraction.links import extract_links
from pipeline.models import ImageInfo, PageAnalysisResult
from pipeline.quota import QuotaManager

logger = structlog.get_logger(__name__)

BATCH_SIZE = 3

PAGE_PROGRESS_START = 15
PAGE_PROGRESS_SPAN = 25

SleepFunc = Callable[[float], Awaitable[None]]


def page_progress(done: int, total: int) -> int:
    if total <= 0:
        return PAGE_PROGRESS_START
    return PAGE_PROGRESS_START + math.floor(done / total * PAGE_PROGRESS_SPAN)


def build_page_result(
    url: str,
    html: str,
    analyze_link_structure: bool = True,
    follow_external_links: bool = False,
) -> PageAnalysisResult | None:
    """
    Run the extraction library and content metrics over one document.

    Returns:
        The page result, or None when the page carries a noindex meta directive
    """
    soup = parse_html(html)
    basic = extract_basic_seo(soup, url)
    if basic.is_noindex:
        logger.info("page_noindex_skipped", url=url)
        return None

    content = extract_content(soup, url)
    internal_links, external_links = [], []
    if analyze_link_structure:
        internal_links, external_links = extract_links(soup, url, follow_external_links)

    page = PageAnalysisResult(
        url=url,
        title=basic.title,
        meta_description=basic.meta_description,
        meta_keywords=basic.meta_keywords,
        canonical=basic.canonical,
        robots_meta=basic.robots_meta,
        has_json_ld=basic.has_json_ld,
        structured_data=basic.structured_data,
        has_viewport=basic.has_viewport,
        headings=content.headings,
        images=content.images,
        internal_links=internal_links,
        external_links=external_links,
        cta_elements=extract_cta_elements(soup, url),
        card_elements=extract_card_elements(soup, url),
        paragraphs=content.paragraphs,
        sentences=content.sentences,
        all_text_content=content.all_text_content,
    )

    page.word_count = count_words(content.all_text_content)
    page.readability_score = readability_score(content.sentences)
    page.keyword_density = keyword_density(content.all_text_content)
    page.content_depth = content_depth(content.paragraphs, content.headings)
    page.semantic_keywords = semantic_keywords(content.all_text_content)
    page.issues = detect_seo_issues(page)
    return page


def alt_text_candidates(images: list[ImageInfo]) -> list[ImageInfo]:
    """Images lacking alt text whose source a vision model can load."""
    return [
        img
        for img in images
        if not img.has_alt
        and img.src.startswith("http")
        and "placeholder" not in img.src
        and "%3Csvg" not in img.src
    ]


class PageAnalyzer:
    """Fetches and analyzes pages ``BATCH_SIZE`` at a time under quota."""

    def __init__(
        self,
        fetcher: PageFetcher,
        quota_manager: QuotaManager,
        alt_text: AltTextService | None = None,
        batch_size: int = BATCH_SIZE,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.quota_manager = quota_manager
        self.alt_text = alt_text
        self.batch_size = batch_size
        self._sleep = sleep

    def _alt_text_enabled(self, context: AnalysisContext) -> bool:
        return (
            self.alt_text is not None
            and context.ai_requested
            and not context.options.skip_alt_text_generation
        )

    async def _suggest_alt_text(self, page: PageAnalysisResult) -> None:
        candidates = alt_text_candidates(page.images)
        if not candidates or self.alt_text is None:
            return

        alt_context = AltTextContext(url=page.url, title=page.title, headings=page.headings)
        try:
            results = await self.alt_text.generate_batch(
                [img.src for img in candidates], alt_context
            )
        except Exception as e:
            logger.warning("alt_text_generation_failed", url=page.url, error=str(e))
            return

        suggested = {src: alt for src, alt in results if alt}
        for img in candidates:
            if img.src in suggested:
                img.suggested_alt = suggested[img.src]

    async def analyze_page(
        self,
        url: str,
        context: AnalysisContext,
    ) -> PageAnalysisResult | None:
        """
        Fetch and analyze one URL.

        Returns None (and logs) for non-200, non-HTML, failed fetches and
        noindex pages. Cancellation is the only error that propagates.
        """
        context.token.raise_if_cancelled()

        result = await self.fetcher.fetch(url)
        if not result.success or not result.is_html or not result.html:
            logger.info(
                "page_skipped",
                url=url,
                status=result.status_code,
                content_type=result.content_type,
                error=result.error,
            )
            return None

        if result.header_noindex:
            logger.info("page_noindex_header_skipped", url=url)
            return None

        try:
            page = build_page_result(
                url,
                result.html,
                analyze_link_structure=context.settings.analyze_link_structure,
                follow_external_links=context.settings.follow_external_links,
            )
        except Exception as e:
            logger.warning("page_extraction_failed", url=url, error=str(e))
            return None

        if page is None:
            return None

        if self._alt_text_enabled(context):
            await self._suggest_alt_text(page)

        logger.info(
            "page_analyzed",
            url=url,
            word_count=page.word_count,
            issues=len(page.issues),
        )
        return page

    async def _within_quota(self, context: AnalysisContext, analyzed: int) -> bool:
        return await self.quota_manager.check_quota_limits(
            context.user_id,
            analyzed,
            context.remaining_quota,
            context.settings,
        )

    @staticmethod
    def _page_limit(context: AnalysisContext) -> int | None:
        usage = context.quota.usage
        if not context.user_id or usage is None:
            return None
        if usage.unlimited_pages:
            return context.settings.max_pages
        return context.remaining_quota

    async def _analyze_if_allowed(
        self,
        url: str,
        context: AnalysisContext,
        analyzed: int,
    ) -> PageAnalysisResult | None:
        context.token.raise_if_cancelled()
        if not await self._within_quota(context, analyzed):
            return None
        return await self.analyze_page(url, context)

    async def analyze_pages(
        self,
        urls: list[str],
        context: AnalysisContext,
    ) -> list[PageAnalysisResult]:
        """
        Analyze ``urls`` in order, in concurrent batches.

        Stops early (without error) once the quota is exhausted.

        Raises:
            AnalysisCancelledError: The token was cancelled
        """
        analyzed: list[PageAnalysisResult] = []
        total = len(urls)
        logger.info("page_analysis_started", domain=context.domain, pages=total)

        for i in range(0, total, self.batch_size):
            context.token.raise_if_cancelled()

            if not await self._within_quota(context, len(analyzed)):
                logger.info("page_analysis_quota_stop", analyzed=len(analyzed))
                break

            batch = urls[i : i + self.batch_size]
            results = await asyncio.gather(
                *(self._analyze_if_allowed(url, context, len(analyzed)) for url in batch)
            )

            # Pages finished after a cancel are discarded
            context.token.raise_if_cancelled()

            analyzed.extend(page for page in results if page is not None)
            limit = self._page_limit(context)
            if limit is not None and len(analyzed) > limit:
                logger.info("page_analysis_truncated", analyzed=len(analyzed), limit=limit)
                del analyzed[limit:]

            context.channel.in_progress(
                page_progress(min(i + len(batch), total), total),
                current_page_url=batch[-1],
                pages_found=total,
                analyzed_pages=[p.url for p in analyzed],
            )

            has_more = i + self.batch_size < total
            within_quota = not context.user_id or len(analyzed) < context.remaining_quota
            if has_more and within_quota and context.settings.crawl_delay_ms > 0:
                await self._sleep(context.settings.crawl_delay_ms / 1000)

        logger.info(
            "page_analysis_completed",
            domain=context.domain,
            analyzed=len(analyzed),
            total=total,
        )
        return analyzed
