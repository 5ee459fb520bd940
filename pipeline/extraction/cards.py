"""Card-like component detection (feature tiles, product cards, post previews)."""

from bs4 import BeautifulSoup, Tag

from pipeline.extraction import rules
from pipeline.extraction.dom import attr, element_text
from pipeline.models import CardElement


def _has_card_styling(el: Tag, classes: str) -> bool:
    return (
        "card" in classes
        or "shadow" in classes
        or ("border" in classes and "rounded" in classes)
        or "bg-card" in classes
        or el.has_attr("data-card")
    )


def _nested_in_card(el: Tag) -> bool:
    return any("card" in attr(parent, "class") for parent in el.find_parents())


def extract_card_elements(soup: BeautifulSoup, url: str) -> list[CardElement]:
    """
    Find card-like components.

    An element qualifies when it matches one of ``rules.CARD_SELECTORS``,
    carries card styling (or is an ARIA article), is not nested inside
    another card and holds between 20 and 500 characters of text. Each
    element is reported once even if several selectors match it.
    """
    cards: list[CardElement] = []
    seen: set[int] = set()

    for selector in rules.CARD_SELECTORS:
        for el in soup.select(selector):
            if id(el) in seen:
                continue
            seen.add(id(el))

            classes = attr(el, "class")
            if not _has_card_styling(el, classes) and attr(el, "role") != "article":
                continue
            if _nested_in_card(el):
                continue

            content = element_text(el)
            if not (rules.CARD_MIN_TEXT <= len(content) <= rules.CARD_MAX_TEXT):
                continue

            title_el = el.select_one(rules.CARD_TITLE_SELECTOR)
            title = element_text(title_el) if title_el else ""
            preview = content[: rules.CARD_PREVIEW_LENGTH]
            if len(content) > rules.CARD_PREVIEW_LENGTH:
                preview += "..."

            cards.append(
                CardElement(
                    type="component_card",
                    title=title or "Untitled Card",
                    content=preview,
                    classes=classes,
                    has_image=el.select_one(rules.CARD_IMAGE_SELECTOR) is not None,
                    has_cta=el.select_one(rules.CARD_CTA_SELECTOR) is not None,
                )
            )

    return cards
