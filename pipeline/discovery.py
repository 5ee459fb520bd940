"""Page discovery: sitemap first, BFS crawl as the fallback."""

import math

import structlog

from api.exceptions import DiscoveryError, ExternalServiceError
from pipeline.crawler.crawler import CrawlConfig, Crawler
from pipeline.crawler.fetcher import PageFetcher
from pipeline.crawler.sitemap import SitemapParser
from pipeline.crawler.url import is_homepage_url, root_url
from pipeline.models import DiscoveryResult, DiscoverySource
from pipeline.progress import CancellationToken, ProgressChannel

logger = structlog.get_logger(__name__)

# Tried in order when /sitemap.xml parses but yields nothing
COMMON_SITEMAP_PATTERNS = [
    "sitemap_index.xml",
    "sitemap1.xml",
    "sitemap-1.xml",
    "post-sitemap.xml",
    "page-sitemap.xml",
]

SITEMAP_FOUND_PERCENT = 5
CRAWL_START_PERCENT = 3
CRAWL_PROGRESS_SPAN = 12


def crawl_progress(crawled: int, max_pages: int) -> int:
    if max_pages <= 0:
        return CRAWL_START_PERCENT
    return CRAWL_START_PERCENT + min(
        CRAWL_PROGRESS_SPAN, math.floor(crawled / max_pages * CRAWL_PROGRESS_SPAN)
    )


def prepare_pages_list(urls: list[str], domain: str, max_pages: int) -> list[str]:
    """
    Cap, de-duplicate and put the homepage first.

    Every homepage alias (with or without ``www.``, trailing slash,
    ``/index.html``, ``/index.php``, ``/home``) is removed and the canonical
    ``https://{domain}`` is prepended, so the homepage appears exactly once.
    The returned list never exceeds ``max_pages`` (but always holds the homepage).
    """
    capped = urls[:max_pages]
    unique = list(dict.fromkeys(capped))
    others = [url for url in unique if not is_homepage_url(url, domain)]
    return [root_url(domain), *others][: max(1, max_pages)]


class PageDiscovery:
    """Produces the ordered list of URLs a run will analyze."""

    def __init__(
        self,
        sitemap_parser: SitemapParser,
        fetcher: PageFetcher,
        max_depth: int = 3,
    ):
        self.sitemap_parser = sitemap_parser
        self.fetcher = fetcher
        self.max_depth = max_depth

    async def _from_sitemaps(
        self,
        domain: str,
        max_pages: int,
        token: CancellationToken,
    ) -> list[str]:
        """
        Parse ``/sitemap.xml``, then the common alternates if it was empty.

        Raises:
            ExternalServiceError: The primary sitemap could not be fetched or parsed
        """
        urls = await self.sitemap_parser.parse(
            f"https://{domain}/sitemap.xml", token=token, max_pages=max_pages
        )
        if urls:
            return urls

        logger.info("sitemap_empty_trying_patterns", domain=domain)
        for pattern in COMMON_SITEMAP_PATTERNS:
            token.raise_if_cancelled()
            try:
                urls = await self.sitemap_parser.parse(
                    f"https://{domain}/{pattern}", token=token, max_pages=max_pages
                )
            except ExternalServiceError:
                logger.debug("sitemap_pattern_failed", domain=domain, pattern=pattern)
                continue
            if urls:
                logger.info("sitemap_pattern_found", domain=domain, pattern=pattern)
                return urls
        return []

    async def discover(
        self,
        domain: str,
        use_sitemap: bool,
        max_pages: int,
        token: CancellationToken,
        channel: ProgressChannel,
        crawl_delay_ms: int = 1000,
        follow_external_links: bool = False,
    ) -> DiscoveryResult:
        """
        Discover pages for ``domain``.

        Raises:
            AnalysisCancelledError: The token was cancelled during discovery
            DiscoveryError: The fallback crawl failed
        """
        logger.info("discovery_started", domain=domain, max_pages=max_pages)

        if use_sitemap:
            try:
                urls = await self._from_sitemaps(domain, max_pages, token)
            except ExternalServiceError as e:
                logger.info("sitemap_failed_falling_back", domain=domain, error=e.message)
                urls = []

            if urls:
                channel.in_progress(SITEMAP_FOUND_PERCENT, pages_found=len(urls))
                pages = prepare_pages_list(urls, domain, max_pages)
                logger.info(
                    "discovery_completed", domain=domain, source="sitemap", pages=len(pages)
                )
                return DiscoveryResult(urls=pages, source=DiscoverySource.SITEMAP)

        channel.in_progress(
            CRAWL_START_PERCENT, current_page_url="Falling back to website crawling..."
        )

        crawler = Crawler(
            CrawlConfig(
                max_pages=max_pages,
                max_depth=self.max_depth,
                delay_ms=crawl_delay_ms,
                follow_external_links=follow_external_links,
            ),
            self.fetcher,
        )

        def on_progress(crawled: int, limit: int) -> None:
            channel.in_progress(crawl_progress(crawled, limit), pages_found=crawled)

        try:
            result = await crawler.crawl(root_url(domain), token=token, on_progress=on_progress)
        except (ValueError, ExternalServiceError) as e:
            logger.error("crawl_failed", domain=domain, error=str(e))
            raise DiscoveryError(domain, str(e)) from e

        pages = prepare_pages_list(result.urls, domain, max_pages)
        logger.info("discovery_completed", domain=domain, source="crawl", pages=len(pages))
        return DiscoveryResult(
            urls=pages,
            source=DiscoverySource.CRAWL,
            basic_seo_data=result.basic_seo_data,
        )
