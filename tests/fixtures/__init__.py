"""Test fixtures: HTML builders and a fake site served over httpx.MockTransport."""

from tests.fixtures.pages import (
    AI_DEFAULT_RESPONSE,
    FakeSite,
    build_site,
    page_html,
    sitemap_index_xml,
    sitemap_xml,
)

__all__ = [
    "AI_DEFAULT_RESPONSE",
    "FakeSite",
    "build_site",
    "page_html",
    "sitemap_index_xml",
    "sitemap_xml",
]
