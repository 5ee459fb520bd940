"""Sitemap fetching and parsing."""

import contextlib
import gzip
from xml.etree import ElementTree as ET

import httpx
import structlog

from api.exceptions import ExternalServiceError
from pipeline.progress import CancellationToken

logger = structlog.get_logger(__name__)

SITEMAP_NS = {
    "sm": "http://www.sitemaps.org/schemas/sitemap/0.9",
}

GZIP_MAGIC = b"\x1f\x8b"


class SitemapParser:
    """Parser for sitemap.xml and sitemap index files."""

    def __init__(
        self,
        user_agent: str,
        timeout: float = 15.0,
        max_sitemaps: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_sitemaps = max_sitemaps
        self.transport = transport

    async def parse(
        self,
        url: str,
        token: CancellationToken | None = None,
        max_pages: int = 25,
    ) -> list[str]:
        """
        Fetch a sitemap (or sitemap index) and return up to ``max_pages`` page URLs.

        Nested sitemaps referenced by an index are followed breadth-first,
        bounded by ``max_sitemaps``. A nested sitemap that fails is logged
        and skipped; failure of the top-level document raises.

        Raises:
            ExternalServiceError: the top-level sitemap could not be fetched or parsed
            AnalysisCancelledError: the token was cancelled between fetches
        """
        urls: list[str] = []
        seen: set[str] = set()
        pending = [url]
        processed = 0

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self.transport,
        ) as client:
            while pending and processed < self.max_sitemaps and len(urls) < max_pages:
                if token:
                    token.raise_if_cancelled()

                sitemap_url = pending.pop(0)
                try:
                    page_urls, nested = await self._fetch_sitemap(client, sitemap_url)
                except ExternalServiceError:
                    if sitemap_url == url:
                        raise
                    logger.warning("nested_sitemap_failed", sitemap=sitemap_url)
                    continue
                processed += 1

                for page_url in page_urls:
                    if page_url not in seen:
                        seen.add(page_url)
                        urls.append(page_url)
                pending.extend(nested)

        logger.info(
            "sitemap_parsing_complete",
            sitemap=url,
            urls_found=len(urls),
            sitemaps_processed=processed,
        )
        return urls[:max_pages]

    async def _fetch_sitemap(
        self, client: httpx.AsyncClient, url: str
    ) -> tuple[list[str], list[str]]:
        """
        Fetch and parse a single sitemap.

        Returns:
            Tuple of (page_urls, nested_sitemap_urls)
        """
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise ExternalServiceError("sitemap", f"{url}: {e}") from e

        if response.status_code != 200:
            raise ExternalServiceError("sitemap", f"{url}: HTTP {response.status_code}")

        content = response.content
        if url.endswith(".gz") or content[:2] == GZIP_MAGIC:
            with contextlib.suppress(OSError, EOFError):
                content = gzip.decompress(content)

        return self._parse_sitemap_xml(url, content)

    def _parse_sitemap_xml(self, url: str, content: bytes) -> tuple[list[str], list[str]]:
        """Split a sitemap document into page locations and nested sitemap locations."""
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise ExternalServiceError("sitemap", f"{url}: invalid XML: {e}") from e

        page_urls: list[str] = []
        nested: list[str] = []

        if root.tag.endswith("sitemapindex"):
            elements = root.findall(".//sm:sitemap/sm:loc", SITEMAP_NS) + root.findall(
                ".//sitemap/loc"
            )
            for loc in elements:
                if loc.text and loc.text.strip() not in nested:
                    nested.append(loc.text.strip())
            return page_urls, nested

        if not root.tag.endswith("urlset"):
            raise ExternalServiceError("sitemap", f"{url}: unexpected root element {root.tag}")

        for loc in root.findall(".//sm:url/sm:loc", SITEMAP_NS) + root.findall(".//url/loc"):
            if loc.text and loc.text.strip() not in page_urls:
                page_urls.append(loc.text.strip())

        return page_urls, nested


async def parse_sitemap(
    url: str,
    token: CancellationToken | None,
    max_pages: int,
    user_agent: str = "SEO-Optimizer-Bot/1.0",
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[str]:
    """
    Convenience function: fetch and parse one sitemap URL.

    Args:
        url: Sitemap URL
        token: Cancellation token polled between nested fetches
        max_pages: Maximum page URLs to return
        user_agent: User agent string
        transport: Optional httpx transport override

    Returns:
        Page URLs in document order
    """
    parser = SitemapParser(user_agent=user_agent, transport=transport)
    return await parser.parse(url, token=token, max_pages=max_pages)
