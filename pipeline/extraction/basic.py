"""Title, meta, canonical, robots and JSON-LD extraction."""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog
from bs4 import BeautifulSoup

logger = structlog.get_logger(__name__)


@dataclass
class BasicSeoElements:
    """Head-level SEO signals of a page."""

    title: str = ""
    meta_description: str = ""
    meta_keywords: str | None = None
    canonical: str | None = None
    robots_meta: str | None = None
    googlebot_meta: str | None = None
    has_json_ld: bool = False
    structured_data: list[Any] = field(default_factory=list)
    has_viewport: bool = False

    @property
    def meta_keywords_list(self) -> list[str]:
        if not self.meta_keywords:
            return []
        return [k.strip() for k in self.meta_keywords.split(",") if k.strip()]

    @property
    def is_noindex(self) -> bool:
        """Check for a noindex directive in robots or googlebot meta tags."""
        directives = " ".join(filter(None, [self.robots_meta, self.googlebot_meta])).lower()
        return "noindex" in directives


def _get_meta_content(
    soup: BeautifulSoup, name: str | None = None, property: str | None = None
) -> str | None:
    """Get content from a meta tag by name or property (name match is case-insensitive)."""
    if name:
        tag = soup.find(
            "meta", attrs={"name": lambda v: bool(v) and v.lower() == name.lower()}
        )
    elif property:
        tag = soup.find("meta", attrs={"property": property})
    else:
        return None

    if tag and tag.get("content"):
        content = tag["content"]
        return content.strip() if isinstance(content, str) else str(content).strip()
    return None


def _parse_json_ld(soup: BeautifulSoup, url: str) -> tuple[bool, list[Any]]:
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    data: list[Any] = []
    for script in scripts:
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data.append(json.loads(raw))
        except json.JSONDecodeError as e:
            logger.debug("invalid_json_ld", url=url, error=str(e))
    return bool(scripts), data


def schema_types(structured_data: list[Any]) -> set[str]:
    """Collect ``@type`` values from JSON-LD blocks, following ``@graph`` and lists."""
    types: set[str] = set()

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                visit(item)
        elif isinstance(node, dict):
            t = node.get("@type")
            if isinstance(t, list):
                types.update(str(x) for x in t)
            elif t:
                types.add(str(t))
            if "@graph" in node:
                visit(node["@graph"])

    visit(structured_data)
    return types


def extract_basic_seo(soup: BeautifulSoup, url: str) -> BasicSeoElements:
    """
    Extract head-level SEO elements.

    Args:
        soup: Parsed document
        url: Page URL (for log context)

    Returns:
        BasicSeoElements
    """
    title_tag = soup.find("title")
    canonical_tag = soup.find("link", rel=lambda v: bool(v) and "canonical" in v)
    has_json_ld, structured = _parse_json_ld(soup, url)
    canonical = canonical_tag.get("href") if canonical_tag else None

    return BasicSeoElements(
        title=title_tag.get_text(strip=True) if title_tag else "",
        meta_description=(
            _get_meta_content(soup, name="description")
            or _get_meta_content(soup, property="og:description")
            or ""
        ),
        meta_keywords=_get_meta_content(soup, name="keywords"),
        canonical=str(canonical).strip() if canonical else None,
        robots_meta=_get_meta_content(soup, name="robots"),
        googlebot_meta=_get_meta_content(soup, name="googlebot"),
        has_json_ld=has_json_ld,
        structured_data=structured,
        has_viewport=_get_meta_content(soup, name="viewport") is not None,
    )
