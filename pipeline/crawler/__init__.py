"""Crawler package: page fetching, sitemap parsing and link-following discovery."""

# Lazy imports to avoid requiring all dependencies at import time
# Use explicit imports when needed:
# from pipeline.crawler.crawler import Crawler, CrawlConfig
# from pipeline.crawler.fetcher import PageFetcher, FetchResult
# from pipeline.crawler.sitemap import SitemapParser, parse_sitemap
# from pipeline.crawler.url import normalize_url, normalize_domain, root_url

__all__ = [
    # Crawler
    "Crawler",
    "CrawlConfig",
    "CrawlResult",
    "crawl",
    # Fetcher
    "PageFetcher",
    "FetchResult",
    # Sitemap
    "SitemapParser",
    "parse_sitemap",
    # URL utilities
    "normalize_url",
    "normalize_domain",
    "root_url",
    "is_homepage_url",
    "is_internal_url",
    "extract_domain",
    "url_key",
]
