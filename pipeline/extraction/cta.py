"""Call-to-action detection.

Runs a fixed sequence of strategies (buttons, input buttons, link buttons,
ARIA widgets, styled elements, download links, text patterns, forms and
WordPress form blocks). Anything inside a cookie/consent banner is skipped
before a strategy looks at it. Results are de-duplicated by
case-insensitive text.
"""

import structlog
from bs4 import BeautifulSoup, Tag

from pipeline.extraction import rules
from pipeline.extraction.dom import CookieBannerFilter, attr, element_text
from pipeline.models import CtaElement

logger = structlog.get_logger(__name__)


def _has_button_styling(classes: str, role: str) -> bool:
    if role == "button" or any(marker in classes for marker in rules.BUTTON_CLASS_MARKERS):
        return True
    if rules.TAILWIND_BUTTON_COLOR.search(classes):
        return True
    if "rounded" in classes and "px-" in classes and "py-" in classes:
        return True
    return "cursor-pointer" in classes and ("border" in classes or "shadow" in classes)


def _buttons(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    for el in soup.find_all("button"):
        if skip.contains(el):
            continue
        aria_label = attr(el, "aria-label")
        found.append(
            CtaElement(
                type="button",
                text=element_text(el) or aria_label or "Button",
                element="button",
                attributes={
                    "type": attr(el, "type") or "button",
                    "class": attr(el, "class"),
                    "aria-label": aria_label,
                },
            )
        )
    return found


def _input_buttons(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    for el in soup.select('input[type="submit"], input[type="button"], input[type="image"]'):
        if skip.contains(el):
            continue
        found.append(
            CtaElement(
                type="input_button",
                text=attr(el, "value").strip() or attr(el, "alt") or "Submit",
                element="input",
                attributes={"type": attr(el, "type"), "class": attr(el, "class")},
            )
        )
    return found


def _link_buttons(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    for el in soup.find_all("a"):
        classes = attr(el, "class")
        role = attr(el, "role")
        text = element_text(el)
        aria_label = attr(el, "aria-label")
        if not _has_button_styling(classes, role) or not (text or aria_label):
            continue
        if skip.contains(el):
            continue
        found.append(
            CtaElement(
                type="link_button",
                text=text or aria_label,
                element="a",
                attributes={"href": attr(el, "href"), "class": classes, "role": role},
            )
        )
    return found


def _aria_widgets(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    selector = '[role="button"], [role="link"], [tabindex="0"][class*="cursor-pointer"]'
    for el in soup.select(selector):
        if el.name in ("button", "a", "input") or skip.contains(el):
            continue
        text = element_text(el)
        if len(text) > rules.CTA_MAX_TEXT_LENGTH or rules.CTA_NAV_TEXT.match(text):
            continue
        role = attr(el, "role")
        aria_label = attr(el, "aria-label")
        final_text = text or aria_label or f"Interactive {role}"
        if len(final_text) > 2:
            found.append(
                CtaElement(
                    type="aria_cta",
                    text=final_text,
                    element=el.name,
                    attributes={"role": role, "class": attr(el, "class"), "aria-label": aria_label},
                )
            )
    return found


def _styled_elements(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    seen: set[int] = set()
    for selector in rules.BUTTON_LIKE_SELECTORS:
        for el in soup.select(selector):
            if id(el) in seen:
                continue
            seen.add(id(el))
            if el.name in ("button", "a", "input") or attr(el, "role") == "button":
                continue
            if skip.contains(el):
                continue
            text = element_text(el)
            if len(text) > rules.CTA_MAX_TEXT_LENGTH or rules.CTA_NAV_TEXT.match(text):
                continue
            test_id = attr(el, "data-testid")
            final_text = text or attr(el, "aria-label") or test_id or "Interactive Element"
            if len(final_text) > 2:
                found.append(
                    CtaElement(
                        type="styled_cta",
                        text=final_text,
                        element=el.name,
                        attributes={"class": attr(el, "class"), "data-testid": test_id},
                    )
                )
    return found


def _download_links(
    soup: BeautifulSoup, skip: CookieBannerFilter, existing: list[CtaElement]
) -> list[CtaElement]:
    link_button_texts = {c.text for c in existing if c.type == "link_button"}
    found = []
    for el in soup.select(rules.DOWNLOAD_LINK_SELECTOR):
        text = element_text(el)
        if not text or text in link_button_texts or skip.contains(el):
            continue
        found.append(
            CtaElement(
                type="download_cta",
                text=text,
                element="a",
                attributes={"href": attr(el, "href"), "class": attr(el, "class")},
            )
        )
    return found


def _is_interactive(el: Tag) -> bool:
    classes = attr(el, "class")
    parent_classes = attr(el.parent, "class") if isinstance(el.parent, Tag) else ""
    return any(
        marker in value
        for marker in ("cursor-pointer", "hover:")
        for value in (classes, parent_classes)
    )


def _text_patterns(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    for el in soup.find_all(["span", "div"]):
        text = element_text(el)
        if len(text) > 50 or len(text.split()) > 5 or not rules.CTA_TEXT_PATTERN.search(text):
            continue
        if not _is_interactive(el):
            continue
        if el.find_parent(["button", "a"]) or el.find_parent(attrs={"role": "button"}):
            continue
        if skip.contains(el):
            continue
        found.append(
            CtaElement(
                type="text_pattern_cta",
                text=text,
                element=el.name,
                attributes={"class": attr(el, "class")},
            )
        )
    return found


def _forms(soup: BeautifulSoup, skip: CookieBannerFilter) -> list[CtaElement]:
    found = []
    for form in soup.find_all("form"):
        if skip.contains(form):
            continue
        submit = form.select_one(rules.SUBMIT_SELECTOR)
        text = "Form submission"
        if submit is not None:
            text = attr(submit, "value") or element_text(submit) or text
        found.append(
            CtaElement(
                type="form",
                text=text,
                element="form",
                attributes={
                    "class": attr(form, "class"),
                    "id": attr(form, "id"),
                    "action": attr(form, "action"),
                },
            )
        )

    for block in soup.select(rules.WP_FORM_SELECTOR):
        if block.name == "form" or skip.contains(block):
            continue
        submit = block.select_one(
            'input[type="submit"], button[type="submit"], .wp-block-button__link'
        )
        if submit is None:
            continue
        text = element_text(submit) or attr(submit, "value")
        if text:
            found.append(
                CtaElement(
                    type="wp_form",
                    text=text,
                    element="div",
                    attributes={"class": attr(block, "class")},
                )
            )
    return found


def _dedupe(elements: list[CtaElement]) -> list[CtaElement]:
    unique: list[CtaElement] = []
    for current in elements:
        duplicate = any(
            existing.text.lower() == current.text.lower()
            and abs(len(existing.text) - len(current.text)) <= rules.CTA_DEDUPE_LENGTH_TOLERANCE
            for existing in unique
        )
        if not duplicate:
            unique.append(current)
    return unique


def extract_cta_elements(soup: BeautifulSoup, url: str) -> list[CtaElement]:
    """
    Find calls to action on a page.

    Args:
        soup: Parsed document
        url: Page URL (for log context)

    Returns:
        De-duplicated CTA elements in strategy order
    """
    skip = CookieBannerFilter(soup)

    elements: list[CtaElement] = []
    elements.extend(_buttons(soup, skip))
    elements.extend(_input_buttons(soup, skip))
    elements.extend(_link_buttons(soup, skip))
    elements.extend(_aria_widgets(soup, skip))
    elements.extend(_styled_elements(soup, skip))
    elements.extend(_download_links(soup, skip, elements))
    elements.extend(_text_patterns(soup, skip))
    elements.extend(_forms(soup, skip))

    unique = _dedupe(elements)
    logger.debug("cta_elements_found", url=url, count=len(unique), raw=len(elements))
    return unique
