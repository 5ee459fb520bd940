"""Tests for the cross-page analyzers."""

from pipeline.analysis.content_quality import analyze_content_quality, jaccard
from pipeline.analysis.link_architecture import analyze_link_architecture, build_link_graph
from pipeline.analysis.performance import analyze_performance
from pipeline.analysis.recommendations import Priority, Recommendation, sort_recommendations
from pipeline.analysis.technical import analyze_technical_seo
from pipeline.models import Heading, ImageInfo, KeywordDensity, LinkRef, PageAnalysisResult

HOME = "https://example.com/"


def page(path: str, links: list[str] | None = None, **fields) -> PageAnalysisResult:
    url = HOME.rstrip("/") + path
    return PageAnalysisResult(
        url=url,
        internal_links=[LinkRef(href=href, text=f"Go to {href}") for href in links or []],
        **fields,
    )


class TestLinkGraph:
    """Tests for the internal link graph."""

    def test_cycle_with_orphan(self) -> None:
        """A -> B -> C -> A plus an unlinked D."""
        pages = [
            page("/", ["https://example.com/b"]),
            page("/b", ["https://example.com/c"]),
            page("/c", ["https://example.com/"]),
            page("/d"),
        ]

        graph = build_link_graph(pages)

        assert len(graph) == 4
        assert graph.incoming_count("https://example.com/d") == 0
        assert graph.incoming_count(HOME) == 1
        assert graph.depths_from(HOME) == {
            HOME: 0,
            "https://example.com/b": 1,
            "https://example.com/c": 2,
        }

    def test_equivalent_urls_share_a_node(self) -> None:
        """www, scheme and trailing-slash variants point at the same page."""
        pages = [page("/", ["http://www.example.com/b/"]), page("/b")]

        graph = build_link_graph(pages)

        assert graph.incoming_count("https://example.com/b") == 1

    def test_links_outside_the_set_are_not_edges(self) -> None:
        """Links to unanalyzed pages are ignored by the graph."""
        graph = build_link_graph([page("/", ["https://example.com/unknown"])])

        assert graph.outgoing_count(HOME) == 0


class TestLinkArchitecture:
    """Tests for analyze_link_architecture."""

    def test_orphans_and_depth(self) -> None:
        """Orphans and depth from the first page are reported."""
        pages = [
            page("/", ["https://example.com/b"]),
            page("/b", ["https://example.com/c"]),
            page("/c", ["https://example.com/"]),
            page("/d"),
        ]

        result = analyze_link_architecture(pages)

        assert result.link_distribution.orphan_pages == ["https://example.com/d"]
        assert result.navigation.max_depth_from_home == 2
        assert result.link_distribution.total_internal_links == 3
        assert "Fix Orphan Pages" in [r.title for r in result.recommendations]
        assert 0 <= result.overall_score <= 100

    def test_generic_anchors(self) -> None:
        """Generic anchor text is measured and flagged."""
        home = PageAnalysisResult(
            url=HOME,
            internal_links=[
                LinkRef(href="https://example.com/a", text="Click here"),
                LinkRef(href="https://example.com/b", text="Read more"),
            ],
        )

        result = analyze_link_architecture([home])

        assert result.anchor_text.generic_anchors == 100
        assert "Improve Anchor Text Quality" in [r.title for r in result.recommendations]

    def test_empty(self) -> None:
        """No pages still yields a serializable result."""
        result = analyze_link_architecture([])

        assert result.link_distribution.orphan_pages == []
        assert "link_equity_flow" in result.to_dict()


class TestTechnicalSeo:
    """Tests for analyze_technical_seo."""

    def test_sitemap_and_https(self) -> None:
        """Sitemap presence comes from discovery; HTTPS from page URLs."""
        pages = [
            page(
                "/",
                has_json_ld=True,
                structured_data=[{"@type": "Organization"}],
                canonical=HOME,
                has_viewport=True,
            ),
            page("/about", has_json_ld=True, canonical="https://example.com/about", has_viewport=True),
        ]

        result = analyze_technical_seo(pages, "example.com", sitemap_found=True)

        assert result.technical_elements.xml_sitemap
        assert result.technical_elements.schema_types == ["Organization"]
        assert result.technical_elements.technical_score == 75
        assert result.security.https_enabled
        assert result.mobile.has_viewport_meta
        titles = [r.title for r in result.recommendations]
        assert "Publish an XML Sitemap" not in titles
        assert "Enable HTTPS" not in titles

    def test_missing_sitemap_and_insecure_page(self) -> None:
        """No sitemap and an http:// page produce recommendations."""
        pages = [page("/"), PageAnalysisResult(url="http://example.com/old")]

        result = analyze_technical_seo(pages, "example.com", sitemap_found=False)

        assert not result.technical_elements.xml_sitemap
        assert not result.security.https_enabled
        assert result.security.insecure_pages == ["http://example.com/old"]
        titles = [r.title for r in result.recommendations]
        assert "Publish an XML Sitemap" in titles
        assert "Enable HTTPS" in titles
        assert "Add Viewport Meta Tag" in titles
        # Critical recommendations come first
        assert result.recommendations[0].priority == Priority.CRITICAL

    def test_empty(self) -> None:
        """No pages gives zero scores without failing."""
        result = analyze_technical_seo([], "example.com", sitemap_found=False)

        assert result.core_web_vitals.score == 0
        assert not result.security.https_enabled


class TestContentQuality:
    """Tests for analyze_content_quality."""

    def test_exact_duplicates(self) -> None:
        """Shared titles and descriptions form duplicate groups."""
        pages = [
            page("/a", title="Pricing", meta_description="Plans for every team"),
            page("/b", title="pricing ", meta_description="Plans for every team"),
            page("/c", title="Contact", meta_description="Talk to us"),
        ]

        result = analyze_content_quality(pages)

        titles = result.duplicates_for("title")
        assert len(titles) == 1
        assert titles[0].urls == ["https://example.com/a", "https://example.com/b"]
        assert titles[0].impact_level == Priority.HIGH
        assert len(result.duplicates_for("description")) == 1
        assert result.uniqueness_score == 80

    def test_uniqueness_floor(self) -> None:
        """Uniqueness never drops below 30."""
        pages = [
            page(
                f"/{i}",
                title=f"T{i % 2}",
                meta_description=f"D{i % 2}",
                headings=[Heading(level=1, text=f"H{i % 2}")],
            )
            for i in range(4)
        ]

        result = analyze_content_quality(pages)

        assert len(result.duplicate_groups) == 6
        assert result.uniqueness_score == 40

        many = [
            page(
                f"/{i}",
                title=f"T{i % 4}",
                meta_description=f"D{i % 4}",
                headings=[Heading(level=1, text=f"H{i % 4}")],
            )
            for i in range(8)
        ]
        assert analyze_content_quality(many).uniqueness_score == 30

    def test_boilerplate_paragraph(self) -> None:
        """A paragraph on most pages is boilerplate."""
        shared = "Sign up for our newsletter to get product news and invoicing tips every month."
        pages = [page(f"/{i}", paragraphs=[shared, f"Unique body copy number {i}."]) for i in range(3)]

        groups = analyze_content_quality(pages).duplicates_for("paragraph")

        assert len(groups) == 1
        assert groups[0].duplication_type == "boilerplate"
        assert len(groups[0].urls) == 3

    def test_near_duplicate_paragraph(self) -> None:
        """Paragraphs that differ by a word cluster as near duplicates."""
        base = (
            "Our invoicing software helps small teams send accurate invoices in minutes "
            "every single day of the"
        )
        pages = [
            page("/a", paragraphs=[base + " week"]),
            page("/b", paragraphs=[base + " month"]),
        ]

        groups = analyze_content_quality(pages).duplicates_for("paragraph")

        assert len(groups) == 1
        assert groups[0].duplication_type == "near"
        assert 80 <= groups[0].similarity_score < 100

    def test_keyword_stuffing(self) -> None:
        """Keywords at 3% density or more are issues; over 5% is critical."""
        pages = [
            page("/a", keyword_density=[KeywordDensity("invoice", 12, 6.0)]),
            page("/b", keyword_density=[KeywordDensity("payroll", 4, 3.5)]),
            page("/c", keyword_density=[KeywordDensity("tax", 3, 1.0)]),
        ]

        result = analyze_content_quality(pages)

        assert [i.keyword for i in result.keyword_issues] == ["invoice", "payroll"]
        assert result.keyword_issues[0].impact_level == Priority.CRITICAL
        assert result.keyword_issues[1].impact_level == Priority.HIGH
        assert result.keyword_health_score == 100 - 15 - 8

    def test_combined_score(self) -> None:
        """overall_score is the weighted combination."""
        pages = [page("/a", readability_score=80.0, content_depth=60.0)]

        result = analyze_content_quality(pages)

        assert result.quality_score == 70
        assert result.overall_score == round(100 * 0.4 + 100 * 0.3 + 70 * 0.3)

    def test_jaccard(self) -> None:
        """Jaccard similarity of sets; empty sets score zero."""
        assert jaccard({1, 2}, {2, 3}) == 1 / 3
        assert jaccard(set(), {1}) == 0.0


class TestPerformance:
    """Tests for analyze_performance."""

    def test_image_hygiene(self) -> None:
        """Images without alt text or dimensions lower the resource score."""
        good = page(
            "/a",
            headings=[Heading(level=1, text="A")],
            images=[ImageInfo(src="a.png", alt="Chart", width=100, height=80)],
        )
        bad = page("/b", images=[ImageInfo(src="b.png")])

        clean = analyze_performance([good])
        messy = analyze_performance([good, bad])

        assert clean.resources.image_optimization == 100
        assert messy.resources.image_optimization == 50
        assert "Optimize Image Resources" in [r.title for r in messy.recommendations]

    def test_empty(self) -> None:
        """No pages is handled."""
        result = analyze_performance([])

        assert result.loading.loading_score == 0
        assert result.resources.image_count == 0


class TestSortRecommendations:
    """Tests for sort_recommendations."""

    def test_priority_then_impact(self) -> None:
        """Critical first, then by impact within a priority."""
        recs = [
            Recommendation("a", Priority.LOW, "low", "", impact=9),
            Recommendation("b", Priority.HIGH, "high-5", "", impact=5),
            Recommendation("c", Priority.CRITICAL, "critical", "", impact=1),
            Recommendation("d", Priority.HIGH, "high-8", "", impact=8),
        ]

        assert [r.title for r in sort_recommendations(recs)] == [
            "critical",
            "high-8",
            "high-5",
            "low",
        ]
