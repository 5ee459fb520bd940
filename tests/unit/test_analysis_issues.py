"""Tests for rule-based issue detection and aggregate metrics."""

from pipeline.analysis.aggregate import calculate_aggregate_metrics, seo_effectiveness_score
from pipeline.analysis.issues import detect_seo_issues
from pipeline.models import Heading, ImageInfo, LinkRef, PageAnalysisResult, SeoIssue, Severity

GOOD_TITLE = "Invoicing Software for Small Business Teams"
GOOD_DESCRIPTION = "d" * 140


def clean_page(**overrides) -> PageAnalysisResult:
    """A page that triggers no rule."""
    fields = {
        "url": "https://example.com/",
        "title": GOOD_TITLE,
        "meta_description": GOOD_DESCRIPTION,
        "headings": [Heading(level=1, text="Invoicing")],
        "word_count": 450,
        "has_json_ld": True,
        "structured_data": [{"@type": "Organization"}],
    }
    fields.update(overrides)
    return PageAnalysisResult(**fields)


def titles(issues: list[SeoIssue]) -> list[str]:
    return [issue.title for issue in issues]


class TestDetectSeoIssues:
    """Tests for detect_seo_issues."""

    def test_clean_page_has_no_issues(self) -> None:
        """A well-formed page produces nothing."""
        assert detect_seo_issues(clean_page()) == []

    def test_missing_title_is_critical(self) -> None:
        """A missing title is a critical meta issue."""
        issues = detect_seo_issues(clean_page(title=""))

        assert issues[0].title == "Missing Title Tag"
        assert issues[0].severity == Severity.CRITICAL
        assert issues[0].category == "meta"

    def test_title_length_bounds(self) -> None:
        """Titles under 30 or over 60 characters are warnings."""
        short = detect_seo_issues(clean_page(title="Home"))
        long = detect_seo_issues(clean_page(title="x" * 61))
        edge = detect_seo_issues(clean_page(title="x" * 30))

        assert titles(short) == ["Short Title Tag"]
        assert short[0].severity == Severity.WARNING
        assert titles(long) == ["Long Title Tag"]
        assert edge == []

    def test_description_rules(self) -> None:
        """Missing and long descriptions warn; short ones are informational."""
        missing = detect_seo_issues(clean_page(meta_description=""))
        short = detect_seo_issues(clean_page(meta_description="d" * 50))
        long = detect_seo_issues(clean_page(meta_description="d" * 161))

        assert missing[0].title == "Missing Meta Description"
        assert missing[0].severity == Severity.WARNING
        assert short[0].title == "Short Meta Description"
        assert short[0].severity == Severity.INFO
        assert long[0].title == "Long Meta Description"
        assert long[0].severity == Severity.WARNING

    def test_missing_h1_always_critical(self) -> None:
        """Zero H1 headings gives a critical issue even with other headings."""
        page = clean_page(headings=[Heading(level=2, text="Section")])

        issues = detect_seo_issues(page)

        assert titles(issues) == ["Missing H1 Tag"]
        assert issues[0].severity == Severity.CRITICAL

    def test_multiple_h1(self) -> None:
        """More than one H1 is a warning listing them."""
        page = clean_page(headings=[Heading(level=1, text="One"), Heading(level=1, text="Two")])

        issues = detect_seo_issues(page)

        assert titles(issues) == ["Multiple H1 Tags"]
        assert issues[0].element == "One, Two"

    def test_images_without_alt(self) -> None:
        """Images with missing or blank alt text are reported together."""
        page = clean_page(
            images=[
                ImageInfo(src="https://example.com/a.png", alt="Chart"),
                ImageInfo(src="https://example.com/b.png", alt=None),
                ImageInfo(src="https://example.com/c.png", alt="  "),
            ]
        )

        issues = detect_seo_issues(page)

        assert titles(issues) == ["Images Without Alt Text"]
        assert "2 images" in issues[0].description

    def test_low_word_count(self) -> None:
        """Pages under 300 words are flagged."""
        issues = detect_seo_issues(clean_page(word_count=120))

        assert titles(issues) == ["Low Content Volume"]

    def test_structured_data_rules(self) -> None:
        """Missing JSON-LD warns; unrecognized types are informational."""
        missing = detect_seo_issues(clean_page(has_json_ld=False, structured_data=[]))
        other = detect_seo_issues(clean_page(structured_data=[{"@type": "WebPage"}]))
        product = detect_seo_issues(clean_page(structured_data=[{"@graph": [{"@type": "Product"}]}]))

        assert titles(missing) == ["Missing JSON-LD"]
        assert missing[0].severity == Severity.WARNING
        assert titles(other) == ["JSON-LD Schema Type Not Recognized"]
        assert other[0].severity == Severity.INFO
        assert product == []

    def test_rule_order(self) -> None:
        """Issues come out in rule order."""
        page = PageAnalysisResult(url="https://example.com/empty")

        assert titles(detect_seo_issues(page)) == [
            "Missing Title Tag",
            "Missing Meta Description",
            "Missing H1 Tag",
            "Low Content Volume",
            "Missing JSON-LD",
        ]


class TestAggregateMetrics:
    """Tests for calculate_aggregate_metrics."""

    def test_counts(self) -> None:
        """Severities and optimized pages are counted."""
        good = clean_page(
            headings=[
                Heading(level=1, text="Invoicing"),
                Heading(level=2, text="Features"),
                Heading(level=2, text="Pricing"),
            ],
            internal_links=[
                LinkRef(href="https://example.com/a", text="A"),
                LinkRef(href="https://example.com/b", text="B"),
            ],
        )
        bad = PageAnalysisResult(
            url="https://example.com/bad",
            images=[ImageInfo(src="x.png")],
        )
        for page in (good, bad):
            page.issues = detect_seo_issues(page)

        metrics = calculate_aggregate_metrics([good, bad])

        assert metrics["title_optimization"] == 1
        assert metrics["description_optimization"] == 1
        assert metrics["headings_optimization"] == 1
        assert metrics["images_optimization"] == 1
        assert metrics["links_optimization"] == 1
        assert metrics["critical_issues"] == 2
        assert metrics["warnings"] == 4
        assert metrics["good_practices"] == 0

    def test_empty(self) -> None:
        """No pages gives all-zero counters."""
        metrics = calculate_aggregate_metrics([])

        assert set(metrics) == {
            "good_practices",
            "warnings",
            "critical_issues",
            "title_optimization",
            "description_optimization",
            "headings_optimization",
            "images_optimization",
            "links_optimization",
        }
        assert all(value == 0 for value in metrics.values())


class TestSeoEffectivenessScore:
    """Tests for seo_effectiveness_score."""

    def test_weighted_blend(self) -> None:
        """Technical and content weigh most, links least."""
        assert seo_effectiveness_score(100, 100, 100, 100) == 100
        assert seo_effectiveness_score(100, 0, 0, 0) == 30
        assert seo_effectiveness_score(0, 0, 100, 0) == 25
        assert seo_effectiveness_score(0, 0, 0, 100) == 15
