"""Heading, image and text-content extraction.

Text is collected by walking ``rules.TEXT_STRATEGIES`` in priority order,
de-duplicating blocks that are equal to or contained in one already taken,
until ``MAX_TOTAL_TEXT_LENGTH`` characters have been gathered. When that
yields nothing useful, an aggressive whole-body scrape takes over.
"""

from dataclasses import dataclass, field
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag

from pipeline.extraction import rules
from pipeline.extraction.dom import (
    CookieBannerFilter,
    attr,
    body_of,
    collapse,
    direct_text,
    element_text,
    stripped_copy,
)
from pipeline.models import Heading, ImageInfo

logger = structlog.get_logger(__name__)

SEMANTIC_HEADINGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


@dataclass
class ContentElements:
    """Body-level content of a page."""

    headings: list[Heading] = field(default_factory=list)
    images: list[ImageInfo] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)
    sentences: list[str] = field(default_factory=list)
    all_text_content: str = ""


# =============================================================================
# Headings
# =============================================================================


def _heuristic_level(el: Tag, rule: rules.HeadingRule) -> int:
    aria_level = attr(el, "aria-level")
    if aria_level.isdigit():
        return max(1, min(6, int(aria_level)))

    classes = attr(el, "class")
    match = rules.COMPONENT_HEADING_PATTERN.search(classes)
    if match:
        return int(match.group(1))

    if rule.level is not None:
        return rule.level

    if any(hint in classes for hint in rules.TITLE_CLASS_HINTS):
        depth = len(el.find_parents(["main", "article", "section"]))
        return min(3, max(1, depth + 1))

    return 6


def extract_headings(soup: BeautifulSoup) -> list[Heading]:
    """Semantic h1-h6 headings followed by non-semantic elements styled as headings."""
    headings: list[Heading] = []
    for tag in soup.find_all(SEMANTIC_HEADINGS):
        text = element_text(tag)
        if text:
            headings.append(Heading(level=int(tag.name[1]), text=text))

    for rule in rules.HEADING_RULES:
        for el in soup.select(rule.selector):
            if el.name in SEMANTIC_HEADINGS or el.find(SEMANTIC_HEADINGS):
                continue
            text = element_text(el)
            if not (rules.HEADING_MIN_LENGTH <= len(text) <= rules.HEADING_MAX_LENGTH):
                continue
            if rules.UI_LABEL_PATTERN.match(text):
                continue

            level = _heuristic_level(el, rule)
            if any(h.text == text and abs(h.level - level) <= 1 for h in headings):
                continue
            headings.append(Heading(level=level, text=text))

    return headings


# =============================================================================
# Images
# =============================================================================


def _parse_dimension(value: str) -> int | None:
    digits = value.strip().removesuffix("px")
    return int(digits) if digits.isdigit() and int(digits) > 0 else None


def extract_images(soup: BeautifulSoup, url: str) -> list[ImageInfo]:
    images: list[ImageInfo] = []
    for img in soup.find_all("img"):
        src = attr(img, "src").strip()
        if not src:
            continue
        if not src.startswith(("http://", "https://", "data:")):
            src = urljoin(url, src)
        alt = img.get("alt")
        images.append(
            ImageInfo(
                src=src,
                alt=str(alt) if alt is not None else None,
                width=_parse_dimension(attr(img, "width")),
                height=_parse_dimension(attr(img, "height")),
            )
        )
    return images


# =============================================================================
# Text
# =============================================================================


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in rules.SENTENCE_PATTERN.findall(text) if s.strip()]


class _TextCollector:
    """Accumulates text blocks under the total-length budget."""

    def __init__(self) -> None:
        self.paragraphs: list[str] = []
        self.sentences: list[str] = []
        self.taken: list[str] = []
        self.total_length = 0

    @property
    def full(self) -> bool:
        return self.total_length >= rules.MAX_TOTAL_TEXT_LENGTH

    def accepts(self, text: str, strategy: rules.TextStrategy, el: Tag) -> bool:
        if len(text) < rules.MIN_BLOCK_LENGTH:
            return False
        if rules.UI_TEXT_PATTERN.match(text):
            return False
        lowered = text.lower()
        if any(keyword in lowered for keyword in rules.COOKIE_BANNER_KEYWORDS):
            return False
        if len(text) < 30 and len(text.split()) < 5:
            return False
        if any(text in existing or existing in text for existing in self.taken):
            return False
        if strategy.priority >= 3:
            if len(el.find_all(recursive=False)) > 3:
                return False
            if len(text) < 100 and text.upper() == text:
                return False
            if rules.BUTTON_TEXT_PATTERN.match(text):
                return False
        return True

    def add(self, text: str) -> bool:
        """Add a block; returns False once the budget is exhausted."""
        block_sentences = split_sentences(text)
        if block_sentences:
            self.sentences.extend(block_sentences)
        elif len(text) > 50:
            self.sentences.append(text)

        final = text
        if len(final) > rules.MAX_PARAGRAPH_LENGTH:
            final = final[: rules.MAX_PARAGRAPH_LENGTH] + "..."

        if self.total_length + len(final) <= rules.MAX_TOTAL_TEXT_LENGTH:
            self.paragraphs.append(final)
            self.taken.append(text)
            self.total_length += len(final)
            return True

        remaining = rules.MAX_TOTAL_TEXT_LENGTH - self.total_length
        if remaining > 50:
            truncated = final[:remaining] + "..."
            self.paragraphs.append(truncated)
            self.taken.append(text)
            self.total_length += len(truncated)
        self.total_length = max(self.total_length, rules.MAX_TOTAL_TEXT_LENGTH)
        return False


def _collect_text(soup: BeautifulSoup, cookie_filter: CookieBannerFilter) -> _TextCollector:
    collector = _TextCollector()
    for strategy in sorted(rules.TEXT_STRATEGIES, key=lambda s: s.priority):
        if collector.full:
            break
        for el in soup.select(strategy.selector):
            if strategy.priority <= 2:
                text = element_text(el)
            else:
                text = direct_text(el, rules.INLINE_TEXT_TAGS)
            if not collector.accepts(text, strategy, el):
                continue
            if cookie_filter.banner_count and cookie_filter.contains(el):
                continue
            if not collector.add(text):
                break
    return collector


def _aggressive_fallback(soup: BeautifulSoup, collector: _TextCollector) -> None:
    text = element_text(stripped_copy(body_of(soup), rules.FALLBACK_STRIP_SELECTORS))
    if len(text) <= 100:
        return

    content = ""
    for sentence in split_sentences(text):
        if len(sentence) > 20 and len(content) + len(sentence) < rules.MAX_TOTAL_TEXT_LENGTH:
            content += sentence + " "
            collector.sentences.append(sentence)

    content = content.strip()
    if len(content) > 100:
        collector.paragraphs.append(content)
        collector.total_length = len(content)


def _sentences_from_full_text(all_text: str) -> list[str]:
    sentences = [s for s in split_sentences(all_text) if len(s) > 10]
    if sentences:
        return sentences
    return [
        all_text[i : i + 100].strip()
        for i in range(0, len(all_text), 100)
        if len(all_text[i : i + 100].strip()) > 10
    ]


def extract_content(soup: BeautifulSoup, url: str) -> ContentElements:
    """
    Extract headings, images, paragraphs, sentences and the page's full text.

    Args:
        soup: Parsed document
        url: Page URL (for resolving relative image sources)

    Returns:
        ContentElements
    """
    cookie_filter = CookieBannerFilter(soup)
    all_text = collapse(
        stripped_copy(body_of(soup), rules.NON_CONTENT_SELECTORS).get_text(" ")
    )

    collector = _collect_text(soup, cookie_filter)
    if not collector.paragraphs or collector.total_length < 100:
        logger.debug("content_fallback_extraction", url=url)
        _aggressive_fallback(soup, collector)

    if not collector.sentences and len(all_text) > 50:
        collector.sentences = _sentences_from_full_text(all_text)

    return ContentElements(
        headings=extract_headings(soup),
        images=extract_images(soup, url),
        paragraphs=collector.paragraphs,
        sentences=collector.sentences,
        all_text_content=all_text,
    )
