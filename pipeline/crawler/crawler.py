"""BFS web crawler used when no sitemap is available."""

import asyncio
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from bs4 import BeautifulSoup

from pipeline.crawler.fetcher import PageFetcher
from pipeline.crawler.url import extract_domain, is_internal_url, normalize_url
from pipeline.models import BasicSeoData
from pipeline.progress import CancellationToken

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class CrawlConfig:
    """Configuration for a crawl."""

    max_pages: int = 25
    max_depth: int = 3
    delay_ms: int = 1000
    follow_external_links: bool = False


@dataclass
class CrawlResult:
    """Result of a complete crawl."""

    domain: str
    start_url: str
    urls: list[str]
    basic_seo_data: dict[str, BasicSeoData] = field(default_factory=dict)
    urls_discovered: int = 0
    urls_failed: int = 0
    max_depth_reached: int = 0
    duration_seconds: float = 0.0


def extract_basic_seo_data(url: str, html: str, status_code: int = 200) -> BasicSeoData:
    """Pull title, meta description and first H1 out of a crawled page."""
    soup = BeautifulSoup(html, "html.parser")

    title = soup.title.get_text(strip=True) if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    description = str(meta.get("content", "")).strip() if meta else ""
    h1 = soup.find("h1")

    return BasicSeoData(
        url=url,
        title=title[:500],
        meta_description=description,
        h1=h1.get_text(" ", strip=True) if h1 else "",
        status_code=status_code,
    )


class Crawler:
    """Breadth-first crawler bounded by page count and link depth."""

    def __init__(self, config: CrawlConfig, fetcher: PageFetcher):
        self.config = config
        self.fetcher = fetcher

    def _extract_links(self, html: str, base_url: str) -> list[str]:
        """Extract and normalize links from HTML."""
        links = []
        soup = BeautifulSoup(html, "html.parser")
        for a_tag in soup.find_all("a", href=True):
            href = str(a_tag["href"])
            if href.startswith(("javascript:", "mailto:", "tel:", "#")):
                continue
            normalized = normalize_url(href, base_url)
            if normalized:
                links.append(normalized)
        return links

    async def crawl(
        self,
        start_url: str,
        token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> CrawlResult:
        """
        Perform a BFS crawl starting from the given URL.

        Args:
            start_url: The URL to start crawling from
            token: Cancellation token, polled before every fetch
            on_progress: Optional callback(pages_crawled, max_pages)

        Returns:
            CrawlResult with the crawled URLs and their basic SEO data

        Raises:
            ValueError: the start URL is unusable
            AnalysisCancelledError: the token was cancelled mid-crawl
        """
        started_at = datetime.now(UTC)

        normalized_start = normalize_url(start_url)
        if not normalized_start:
            raise ValueError(f"Invalid start URL: {start_url}")

        base_domain = extract_domain(normalized_start)
        if not base_domain:
            raise ValueError(f"Could not extract domain from: {start_url}")

        logger.info(
            "crawl_started",
            url=normalized_start,
            domain=base_domain,
            max_pages=self.config.max_pages,
            max_depth=self.config.max_depth,
        )

        crawled: list[str] = []
        basic_seo: dict[str, BasicSeoData] = {}
        queue: deque[tuple[str, int]] = deque([(normalized_start, 0)])
        seen: set[str] = {normalized_start}
        failed = 0
        max_depth_reached = 0

        while queue and len(crawled) < self.config.max_pages:
            if token:
                token.raise_if_cancelled()

            url, depth = queue.popleft()

            if crawled or failed:
                await asyncio.sleep(self.config.delay_ms / 1000)
                if token:
                    token.raise_if_cancelled()

            result = await self.fetcher.fetch(url)

            # Results that land after a cancel are discarded
            if token:
                token.raise_if_cancelled()

            if not result.success or not result.is_html or not result.html:
                logger.debug(
                    "crawl_fetch_failed",
                    url=url,
                    status=result.status_code,
                    error=result.error,
                )
                failed += 1
                continue

            crawled.append(url)
            basic_seo[url] = extract_basic_seo_data(url, result.html, result.status_code)
            max_depth_reached = max(max_depth_reached, depth)

            if on_progress:
                on_progress(len(crawled), self.config.max_pages)

            internal = is_internal_url(url, base_domain)
            if not internal or depth + 1 > self.config.max_depth:
                continue

            for link in self._extract_links(result.html, result.final_url):
                if link in seen:
                    continue
                if not self.config.follow_external_links and not is_internal_url(
                    link, base_domain
                ):
                    continue
                seen.add(link)
                queue.append((link, depth + 1))

        duration = (datetime.now(UTC) - started_at).total_seconds()
        logger.info(
            "crawl_completed",
            domain=base_domain,
            pages_crawled=len(crawled),
            urls_discovered=len(seen),
            urls_failed=failed,
            duration_seconds=round(duration, 2),
        )

        return CrawlResult(
            domain=base_domain,
            start_url=normalized_start,
            urls=crawled,
            basic_seo_data=basic_seo,
            urls_discovered=len(seen),
            urls_failed=failed,
            max_depth_reached=max_depth_reached,
            duration_seconds=duration,
        )
