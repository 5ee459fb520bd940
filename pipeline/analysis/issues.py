"""Rule-based SEO issue detection for a single page."""

from pipeline.extraction.basic import schema_types
from pipeline.models import PageAnalysisResult, SeoIssue, Severity

TITLE_MIN_LENGTH = 30
TITLE_MAX_LENGTH = 60
DESCRIPTION_MIN_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 160
MIN_WORD_COUNT = 300
RECOGNIZED_SCHEMA_TYPES = frozenset(["Organization", "LocalBusiness", "Product"])


def _title_issues(title: str) -> list[SeoIssue]:
    if not title:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.CRITICAL,
                title="Missing Title Tag",
                description="This page is missing a title tag, which is crucial for SEO.",
                element="<title>",
                recommendation="Add a descriptive title tag (50-60 characters) with the page's primary keyword.",
            )
        ]
    if len(title) < TITLE_MIN_LENGTH:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.WARNING,
                title="Short Title Tag",
                description=f"Title tag is only {len(title)} characters long.",
                element=title,
                recommendation="Expand the title to 50-60 characters so it describes the page fully.",
            )
        ]
    if len(title) > TITLE_MAX_LENGTH:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.WARNING,
                title="Long Title Tag",
                description=f"Title tag is {len(title)} characters long and may be truncated.",
                element=title,
                recommendation="Shorten the title to 60 characters or fewer, keeping keywords first.",
            )
        ]
    return []


def _description_issues(description: str) -> list[SeoIssue]:
    if not description:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.WARNING,
                title="Missing Meta Description",
                description="This page is missing a meta description.",
                element='<meta name="description">',
                recommendation="Write a 120-160 character summary that invites the click.",
            )
        ]
    if len(description) < DESCRIPTION_MIN_LENGTH:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.INFO,
                title="Short Meta Description",
                description=f"Meta description is only {len(description)} characters long.",
                element=description,
                recommendation="Extend the meta description to 120-160 characters.",
            )
        ]
    if len(description) > DESCRIPTION_MAX_LENGTH:
        return [
            SeoIssue(
                category="meta",
                severity=Severity.WARNING,
                title="Long Meta Description",
                description=f"Meta description is {len(description)} characters long.",
                element=description,
                recommendation="Trim the meta description to 160 characters so it is not cut off.",
            )
        ]
    return []


def _heading_issues(page: PageAnalysisResult) -> list[SeoIssue]:
    h1_count = page.h1_count
    if h1_count == 0:
        return [
            SeoIssue(
                category="headings",
                severity=Severity.CRITICAL,
                title="Missing H1 Tag",
                description="This page is missing an H1 heading tag.",
                element="<h1>",
                recommendation="Add a single H1 that states the page's main topic.",
            )
        ]
    if h1_count > 1:
        return [
            SeoIssue(
                category="headings",
                severity=Severity.WARNING,
                title="Multiple H1 Tags",
                description=f"Found {h1_count} H1 tags on this page.",
                element=", ".join(h.text for h in page.headings_at(1))[:200],
                recommendation="Keep one H1 and demote the others to H2.",
            )
        ]
    return []


def _structured_data_issues(page: PageAnalysisResult) -> list[SeoIssue]:
    if not page.has_json_ld:
        return [
            SeoIssue(
                category="structured-data",
                severity=Severity.WARNING,
                title="Missing JSON-LD",
                description=(
                    "This page does not have JSON-LD structured data, which can improve "
                    "search engine understanding."
                ),
                element='<script type="application/ld+json">',
                recommendation="Add Organization, LocalBusiness or Product schema as appropriate.",
            )
        ]
    if page.structured_data and not schema_types(page.structured_data) & RECOGNIZED_SCHEMA_TYPES:
        return [
            SeoIssue(
                category="structured-data",
                severity=Severity.INFO,
                title="JSON-LD Schema Type Not Recognized",
                description=(
                    "The detected JSON-LD schema type is not one of the commonly recognized "
                    "types (Organization, LocalBusiness, Product)."
                ),
                recommendation="Consider adding an Organization or LocalBusiness block.",
            )
        ]
    return []


def detect_seo_issues(page: PageAnalysisResult) -> list[SeoIssue]:
    """
    Derive rule-based issues from an extracted page.

    Every page with zero H1 headings gets a critical "Missing H1 Tag" issue.

    Args:
        page: Page result with extraction fields and word count filled in

    Returns:
        List of SeoIssue in rule order
    """
    issues: list[SeoIssue] = []
    issues.extend(_title_issues(page.title))
    issues.extend(_description_issues(page.meta_description))
    issues.extend(_heading_issues(page))

    missing_alt = page.images_without_alt
    if missing_alt:
        issues.append(
            SeoIssue(
                category="images",
                severity=Severity.WARNING,
                title="Images Without Alt Text",
                description=f"{len(missing_alt)} images are missing alt text.",
                element=", ".join(img.src for img in missing_alt[:3]),
                recommendation="Describe each image in its alt attribute.",
            )
        )

    if page.word_count < MIN_WORD_COUNT:
        issues.append(
            SeoIssue(
                category="content",
                severity=Severity.WARNING,
                title="Low Content Volume",
                description=f"Page has only {page.word_count} words.",
                recommendation=f"Expand the copy to at least {MIN_WORD_COUNT} words of useful content.",
            )
        )

    issues.extend(_structured_data_issues(page))
    return issues
