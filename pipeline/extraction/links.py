"""Internal/external link classification for a single page."""

from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from pipeline.crawler.url import strip_www
from pipeline.extraction.dom import attr, element_text
from pipeline.models import LinkRef


def extract_links(
    soup: BeautifulSoup,
    page_url: str,
    follow_external_links: bool = False,
) -> tuple[list[LinkRef], list[LinkRef]]:
    """
    Split a page's anchors into internal and external links.

    Relative hrefs are resolved against the page URL and count as internal.
    Anchors pointing back at the same path and query are dropped, as are
    non-web schemes (mailto:, tel:, javascript:). External links are only
    returned when ``follow_external_links`` is set.

    Returns:
        Tuple of (internal_links, external_links)
    """
    page = urlparse(page_url)
    page_host = strip_www(page.hostname or "")
    internal: list[LinkRef] = []
    external: list[LinkRef] = []

    for anchor in soup.find_all("a", href=True):
        text = element_text(anchor)
        if not text:
            continue

        href = attr(anchor, "href").strip()
        title = attr(anchor, "title") or None

        if href.startswith(("http://", "https://")):
            target = urlparse(href)
            resolved = href
            is_internal = strip_www(target.hostname or "") == page_host
        elif href.startswith("/") or "://" not in href:
            if href.startswith(("#", "mailto:", "tel:", "javascript:", "data:")):
                continue
            resolved = urljoin(page_url, href)
            target = urlparse(resolved)
            is_internal = True
        else:
            continue

        if is_internal:
            if (target.path or "/") == (page.path or "/") and target.query == page.query:
                continue
            internal.append(LinkRef(href=resolved, text=text, title=title))
        elif follow_external_links:
            external.append(LinkRef(href=resolved, text=text, title=title))

    return internal, external
