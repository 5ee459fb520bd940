"""Selector and keyword tables that drive the extraction heuristics.

Every heuristic list used by the extractors lives here, tagged with
``EXTRACTION_RULES_VERSION`` so results can be traced back to the rule set
that produced them. Where older and newer rule sets disagreed, the newer,
more specific variant is the one kept.
"""

import re
from dataclasses import dataclass

EXTRACTION_RULES_VERSION = "2024.2"


# =============================================================================
# Cookie / consent banners (excluded from content and CTA extraction)
# =============================================================================

COOKIE_BANNER_SELECTORS = (
    '[class*="cookie"]',
    '[id*="cookie"]',
    '[class*="gdpr"]',
    '[id*="gdpr"]',
    '[class*="consent"]',
    '[id*="consent"]',
    '[class*="privacy-banner"]',
    '[id*="privacy-banner"]',
    '[class*="notice-banner"]',
    '[id*="notice-banner"]',
    '[class*="modal-cacsp"]',
    '[id*="modal-cacsp"]',
    '[role="dialog"][aria-label*="cookie"]',
    '[role="dialog"][aria-label*="consent"]',
    '[data-testid*="cookie"]',
    '[data-testid*="consent"]',
)

COOKIE_BANNER_KEYWORDS = (
    "accept cookies",
    "reject cookies",
    "cookie consent",
    "cookie preferences",
    "manage cookies",
    "cookie settings",
    "privacy settings",
    "consent preferences",
    "accept all",
    "reject all",
    "necessary cookies",
    "optional cookies",
    "cookies policy",
    "cookie policy",
    "cookie notice",
    "we use cookies",
    "this site uses cookies",
)

# Removed before the whole-page text scrape
NON_CONTENT_SELECTORS = (
    "script",
    "style",
    "noscript",
    "template",
    "nav",
    "header",
    "footer",
    "aside",
    ".menu",
    ".navigation",
    ".sidebar",
    ".comments",
    '[aria-hidden="true"]',
) + COOKIE_BANNER_SELECTORS

# Removed before the aggressive fallback scrape
FALLBACK_STRIP_SELECTORS = (
    "script",
    "style",
    "noscript",
    "template",
    "nav",
    "header",
    "footer",
    "aside",
    '[aria-hidden="true"]',
    ".menu",
    ".navigation",
    ".sidebar",
    ".comments",
    ".cookie",
    ".popup",
    ".modal",
)


# =============================================================================
# Headings
# =============================================================================


@dataclass(frozen=True)
class HeadingRule:
    """Non-semantic elements styled like a heading, with the level they imply."""

    name: str
    selector: str
    level: int | None = None  # None: derive from attributes and context


_NOT_SEMANTIC = ":not(h1):not(h2):not(h3):not(h4):not(h5):not(h6)"


def _inline(*classes: str) -> str:
    return ", ".join(f'{tag}[class*="{cls}"]' for cls in classes for tag in ("div", "span", "p"))


HEADING_RULES = (
    HeadingRule(
        "display_xl",
        _inline("text-4xl", "text-5xl", "text-6xl", "text-7xl", "text-8xl", "text-9xl"),
        1,
    ),
    HeadingRule("display_lg", _inline("text-3xl"), 2),
    HeadingRule("display_md", _inline("text-2xl"), 3),
    HeadingRule("display_sm", _inline("text-xl"), 4),
    HeadingRule(
        "emphasized_lg",
        ", ".join(
            f'{tag}[class*="text-lg"][class*="{weight}"]'
            for weight in ("font-bold", "font-semibold")
            for tag in ("div", "span", "p")
        ),
        5,
    ),
    HeadingRule(
        "heavy_weight",
        ", ".join(
            f'{tag}[class*="{weight}"]'
            for weight in ("font-extrabold", "font-black")
            for tag in ("div", "span", "p")
        ),
    ),
    HeadingRule(
        "aria_heading",
        'div[role="heading"], span[role="heading"], p[role="heading"], '
        "div[aria-level], span[aria-level], p[aria-level]",
    ),
    HeadingRule(
        "component_library",
        f'[class*="MuiTypography-h"]{_NOT_SEMANTIC}, [class*="chakra-heading"]{_NOT_SEMANTIC}, '
        f'[class*="Typography--variant-h"]{_NOT_SEMANTIC}, [class*="Heading--"]{_NOT_SEMANTIC}',
    ),
    HeadingRule(
        "test_id",
        f'[data-testid*="heading"]{_NOT_SEMANTIC}, [data-testid*="title"]{_NOT_SEMANTIC}',
    ),
    HeadingRule("bootstrap_fs_1", _inline("fs-1"), 2),
    HeadingRule("bootstrap_fs_2", _inline("fs-2"), 3),
    HeadingRule("bootstrap_fs_3", _inline("fs-3"), 4),
    HeadingRule("design_system", _inline("typography-h", "type-h")),
)

HEADING_MAX_LENGTH = 200
HEADING_MIN_LENGTH = 3
UI_LABEL_PATTERN = re.compile(r"^(menu|login|signup|cart|search|home|about|contact)$", re.IGNORECASE)
COMPONENT_HEADING_PATTERN = re.compile(
    r"(?:MuiTypography-h|Typography--variant-h|typography-h|type-h)([1-6])"
)
TITLE_CLASS_HINTS = ("title", "heading", "headline")


# =============================================================================
# Text extraction
# =============================================================================


@dataclass(frozen=True)
class TextStrategy:
    """A selector for candidate text blocks. Lower priority value runs first.

    Priority 1-2 strategies take an element's full text; 3-4 take only its
    direct text and simple inline children, and apply stricter filters.
    """

    name: str
    selector: str
    priority: int


_LEAF = ":not(:has(div))"

TEXT_STRATEGIES = (
    TextStrategy("traditional_paragraphs", "p", 1),
    TextStrategy("semantic_paragraphs", "main p, article p, section p", 1),
    TextStrategy(
        "semantic_content_areas",
        'main, article, section[class*="content"], [role="main"], [role="article"]',
        2,
    ),
    TextStrategy("prose_content", f'[class*="prose"] p, [class*="prose"] div:not(:has(p)){_LEAF}', 2),
    TextStrategy(
        "large_text",
        f'[class*="text-lg"]{_NOT_SEMANTIC}:not([class*="heading"]):not([class*="title"])',
        2,
    ),
    TextStrategy(
        "base_text",
        f'[class*="text-base"]{_NOT_SEMANTIC}:not([class*="heading"]):not([class*="title"])',
        2,
    ),
    TextStrategy("descriptions", '[class*="description"]:not(meta)', 2),
    TextStrategy("lead_text", '[class*="lead"], [class*="intro"], [class*="excerpt"]', 2),
    TextStrategy("summary_text", '[class*="summary"], [class*="abstract"], [class*="overview"]', 2),
    TextStrategy(
        "body_content",
        '[class*="body-text"], [class*="content-text"], [class*="post-content"]',
        2,
    ),
    TextStrategy("mui_typography", ".MuiTypography-body1, .MuiTypography-body2", 2),
    TextStrategy("chakra_text", '[class*="chakra-text"], [class*="chakra-stack"] p', 2),
    TextStrategy(
        "testid_content",
        '[data-testid*="content"], [data-testid*="text"], [data-testid*="body"]',
        2,
    ),
    TextStrategy(
        "cms_content",
        '[class*="post-body"], [class*="entry-content"], [class*="article-body"]',
        2,
    ),
    TextStrategy(
        "markdown_content",
        '[class*="markdown"], [class*="md-content"], [class*="rich-text"], [data-mdx], [class*="mdx"]',
        2,
    ),
    TextStrategy("small_text", '[class*="text-sm"], [class*="text-xs"]', 3),
    TextStrategy("muted_text", '[class*="text-muted"], [class*="text-gray"], [class*="text-slate"]', 3),
    TextStrategy("container_paragraphs", 'div[class*="container"] p, div[class*="wrapper"] p', 3),
    TextStrategy(
        "grid_content",
        f'div[class*="grid"] > div{_LEAF}:not(:has(section)):not(:has(article))',
        3,
    ),
    TextStrategy(
        "flex_content",
        f'div[class*="flex"] > div{_LEAF}:not(:has(section)):not(:has(article))',
        3,
    ),
    TextStrategy("card_content", f'[class*="card"] p, [class*="card"] div:not(:has(p)){_LEAF}', 3),
    TextStrategy(
        "feature_content",
        f'[class*="feature"] div{_LEAF}, [class*="benefit"] div{_LEAF}',
        3,
    ),
    TextStrategy("spaced_content", '[class*="space-y-"] > div, [class*="gap-"] > div', 3),
    TextStrategy(
        "leaf_divs",
        f"div{_LEAF}:not(:has(section)):not(:has(article)):not(:has(p))",
        4,
    ),
    TextStrategy("span_text", 'span:not(:has(*)):not([class*="icon"]):not([class*="btn"])', 4),
)

MAX_TOTAL_TEXT_LENGTH = 15000
MAX_PARAGRAPH_LENGTH = 1000
MIN_BLOCK_LENGTH = 15
UI_TEXT_PATTERN = re.compile(
    r"^(menu|nav|navigation|header|footer|sidebar|cookie|privacy|terms|login|signup|register|"
    r"cart|search|home|about|contact|back to top|skip to|toggle|close|open)$",
    re.IGNORECASE,
)
BUTTON_TEXT_PATTERN = re.compile(
    r"^(click|read more|learn more|get started|sign up|download|buy now|order now|"
    r"contact us|call now)$",
    re.IGNORECASE,
)
INLINE_TEXT_TAGS = frozenset(["span", "strong", "em", "b", "i", "a"])
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")


# =============================================================================
# Calls to action
# =============================================================================

TAILWIND_BUTTON_COLOR = re.compile(
    r"bg-(blue|green|red|purple|indigo|pink|yellow|orange|emerald|cyan|amber|lime|violet|"
    r"fuchsia|rose|sky|teal)-\d+"
)

BUTTON_CLASS_MARKERS = ("button", "btn", "MuiButton", "chakra-button", "ant-btn", "Button--")

BUTTON_LIKE_SELECTORS = (
    ".wp-block-button__link, .wp-block-button > a",
    ".wp-element-button",
    '[class*="bg-blue-"][class*="hover:bg-"], [class*="bg-green-"][class*="hover:bg-"]',
    '[class*="bg-red-"][class*="hover:bg-"], [class*="bg-purple-"][class*="hover:bg-"]',
    '[class*="px-"][class*="py-"][class*="rounded"][class*="cursor-pointer"]',
    '[class*="border"][class*="rounded"][class*="px-"][class*="hover:"]',
    ".MuiButton-root, .MuiIconButton-root, .MuiFab-root",
    ".chakra-button, .chakra-icon-button",
    ".ant-btn",
    '[class*="Button--"], [class*="button--"]',
    '[class*="btn-"], [class*="cta-"], [class*="action-"]',
    '[data-testid*="button"], [data-testid*="cta"], [data-testid*="action"]',
)

DOWNLOAD_LINK_SELECTOR = 'a[href*="download"], a[href*=".pdf"], a[href*=".zip"], a[href*=".doc"]'

CTA_TEXT_PATTERN = re.compile(
    r"\b(sign up|sign in|log in|log out|register|subscribe|buy now|purchase|order|shop now|"
    r"get started|learn more|contact us|call now|book now|try free|download|join now|"
    r"apply now|request|submit|continue|proceed|next|finish|complete)\b",
    re.IGNORECASE,
)
CTA_NAV_TEXT = re.compile(r"^(menu|nav|navigation|header|footer|copyright|privacy)$", re.IGNORECASE)
CTA_MAX_TEXT_LENGTH = 100
CTA_DEDUPE_LENGTH_TOLERANCE = 5

WP_FORM_SELECTOR = (
    '.wp-block-contact-form, .wpforms-form, .gform_wrapper, .wpcf7-form, [class*="wp-block-"] form'
)
SUBMIT_SELECTOR = (
    'input[type="submit"], button[type="submit"], .wp-block-button__link, .wp-element-button'
)


# =============================================================================
# Cards
# =============================================================================

CARD_SELECTORS = (
    ".card",
    '[class*="card"]',
    "article",
    '[role="article"]',
    "[data-card]",
    '[class*="rounded-lg"][class*="bg-card"]',
    '[class*="rounded-lg"][class*="shadow"]',
    '[class*="border"][class*="rounded"]',
    '[class*="rounded"][class*="border-0"][class*="shadow"]',
    '[class*="hover:shadow"]',
    '[class*="bg-white"][class*="shadow"], [class*="bg-gray-"][class*="shadow"]',
    '.grid > div[class*="rounded"], .grid > div[class*="border"]',
    '.flex > div[class*="shadow"], .flex > div[class*="border"]',
    '[data-testid*="card"], [data-testid*="item"], [data-testid*="post"]',
    '[class*="post-card"], [class*="blog-card"], [class*="article-card"]',
    '.MuiCard-root, .MuiPaper-root[class*="elevation"]',
    ".chakra-card, .ant-card",
    '[class*="Card--"]',
    '[class*="post-preview"], [class*="post-item"], [class*="blog-post"]',
    '[class*="product-"], [class*="tile"]',
    '[class*="surface"], [class*="panel"]',
    '[data-component="card"], [data-component="item"]',
    '[class*="transition"][class*="shadow"]',
)

CARD_MIN_TEXT = 20
CARD_MAX_TEXT = 500
CARD_PREVIEW_LENGTH = 200
CARD_TITLE_SELECTOR = 'h1, h2, h3, h4, h5, h6, [class*="title"], [class*="heading"]'
CARD_IMAGE_SELECTOR = 'img, [role="img"], picture'
CARD_CTA_SELECTOR = 'a, button, [role="button"], [class*="btn"], [class*="button"]'
