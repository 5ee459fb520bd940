"""Small BeautifulSoup helpers shared by the extractors."""

import copy
import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from pipeline.extraction.rules import COOKIE_BANNER_KEYWORDS, COOKIE_BANNER_SELECTORS

WHITESPACE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def collapse(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return WHITESPACE.sub(" ", text).strip()


def element_text(el: Tag) -> str:
    return collapse(el.get_text(" "))


def attr(el: Tag, name: str) -> str:
    """Attribute value as a string (class lists are joined with spaces)."""
    value = el.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def has_ancestor(el: Tag, candidates: set[int]) -> bool:
    """Check if ``el`` or one of its parents is in ``candidates`` (by identity)."""
    node: Tag | None = el
    while node is not None:
        if id(node) in candidates:
            return True
        node = node.parent
    return False


def direct_text(el: Tag, inline_tags: frozenset[str]) -> str:
    """Text of ``el`` from its own text nodes and simple inline children only."""
    parts: list[str] = []
    for child in el.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag) and child.name in inline_tags:
            if child.name == "a" and child.find(["div", "p"]):
                continue
            parts.append(child.get_text(" "))
    return collapse(" ".join(parts))


def stripped_copy(root: Tag, selectors: tuple[str, ...]) -> Tag:
    """Deep copy of ``root`` with every element matching ``selectors`` removed."""
    clone = copy.copy(root)
    for el in clone.select(", ".join(selectors)):
        if not el.decomposed:
            el.decompose()
    return clone


def body_of(soup: BeautifulSoup) -> Tag:
    return soup.body if soup.body is not None else soup


class CookieBannerFilter:
    """Answers "is this element part of a cookie or consent banner?".

    Banner roots are located once per document; an element belongs to a
    banner if it or any ancestor is a root, or if its own text carries a
    consent keyword.
    """

    def __init__(self, soup: BeautifulSoup):
        self._roots = {id(el) for el in soup.select(", ".join(COOKIE_BANNER_SELECTORS))}

    @property
    def banner_count(self) -> int:
        return len(self._roots)

    def contains(self, el: Tag) -> bool:
        if self._roots and has_ancestor(el, self._roots):
            return True
        text = el.get_text(" ").lower()
        return any(keyword in text for keyword in COOKIE_BANNER_KEYWORDS)
