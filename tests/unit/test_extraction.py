"""Tests for the extraction library."""

from pipeline.extraction.basic import extract_basic_seo, schema_types
from pipeline.extraction.cards import extract_card_elements
from pipeline.extraction.content import extract_content, extract_headings, split_sentences
from pipeline.extraction.cta import extract_cta_elements
from pipeline.extraction.dom import parse_html
from pipeline.extraction.links import extract_links
from tests.fixtures.pages import page_html

URL = "https://example.com/features"


class TestExtractBasicSeo:
    """Tests for head-level extraction."""

    def test_title_description_and_viewport(self) -> None:
        """Core head elements are extracted."""
        soup = parse_html(page_html(title="Features", description="What we offer"))

        basic = extract_basic_seo(soup, URL)

        assert basic.title == "Features"
        assert basic.meta_description == "What we offer"
        assert basic.has_viewport
        assert not basic.is_noindex

    def test_og_description_fallback(self) -> None:
        """og:description is used when the meta description is missing."""
        html = (
            "<html><head><title>T</title>"
            '<meta property="og:description" content="From Open Graph"></head></html>'
        )

        basic = extract_basic_seo(parse_html(html), URL)

        assert basic.meta_description == "From Open Graph"

    def test_noindex_robots_meta(self) -> None:
        """A robots noindex directive is detected."""
        soup = parse_html(page_html(robots="noindex, follow"))

        assert extract_basic_seo(soup, URL).is_noindex

    def test_noindex_googlebot_meta(self) -> None:
        """A googlebot noindex directive is detected."""
        html = '<html><head><meta name="googlebot" content="NOINDEX"></head></html>'

        assert extract_basic_seo(parse_html(html), URL).is_noindex

    def test_canonical_and_keywords(self) -> None:
        """Canonical link and keyword list are parsed."""
        html = (
            '<html><head><link rel="canonical" href="https://example.com/features">'
            '<meta name="keywords" content="invoicing, payroll , "></head></html>'
        )

        basic = extract_basic_seo(parse_html(html), URL)

        assert basic.canonical == "https://example.com/features"
        assert basic.meta_keywords_list == ["invoicing", "payroll"]

    def test_json_ld(self) -> None:
        """Valid JSON-LD is parsed; types are collected through @graph."""
        soup = parse_html(
            page_html(
                json_ld={
                    "@context": "https://schema.org",
                    "@graph": [{"@type": "Organization"}, {"@type": ["WebSite", "Thing"]}],
                }
            )
        )

        basic = extract_basic_seo(soup, URL)

        assert basic.has_json_ld
        assert schema_types(basic.structured_data) == {"Organization", "WebSite", "Thing"}

    def test_invalid_json_ld_still_flags_presence(self) -> None:
        """A broken JSON-LD block counts as present but yields no data."""
        html = '<html><head><script type="application/ld+json">{broken</script></head></html>'

        basic = extract_basic_seo(parse_html(html), URL)

        assert basic.has_json_ld
        assert basic.structured_data == []


class TestExtractContent:
    """Tests for headings, images and text."""

    def test_semantic_headings(self) -> None:
        """h1-h6 are extracted with their levels."""
        soup = parse_html(page_html(h1="Main", h2s=["First", "Second"]))

        headings = extract_headings(soup)

        assert [(h.level, h.text) for h in headings] == [(1, "Main"), (2, "First"), (2, "Second")]

    def test_heuristic_headings(self) -> None:
        """Large-text divs count as headings at the implied level."""
        soup = parse_html(
            '<html><body><div class="text-4xl font-bold">Hero headline</div>'
            '<div role="heading" aria-level="3">Aria heading</div></body></html>'
        )

        headings = extract_headings(soup)

        assert (1, "Hero headline") in [(h.level, h.text) for h in headings]
        assert (3, "Aria heading") in [(h.level, h.text) for h in headings]

    def test_ui_labels_are_not_headings(self) -> None:
        """Short UI labels styled as headings are ignored."""
        soup = parse_html('<html><body><div class="text-2xl">Menu</div></body></html>')

        assert extract_headings(soup) == []

    def test_images_resolved_with_alt(self) -> None:
        """Relative image sources are resolved; missing alt stays None."""
        soup = parse_html(page_html(images=[("/img/a.png", "Chart"), ("b.png", None)]))

        content = extract_content(soup, URL)

        assert content.images[0].src == "https://example.com/img/a.png"
        assert content.images[0].has_alt
        assert content.images[1].src == "https://example.com/b.png"
        assert content.images[1].alt is None

    def test_paragraphs_and_sentences(self) -> None:
        """Paragraph text is collected and split into sentences."""
        soup = parse_html(
            page_html(
                paragraphs=[
                    "Invoices go out automatically every month. Reminders follow a week later.",
                    "Short.",
                ]
            )
        )

        content = extract_content(soup, URL)

        assert content.paragraphs[0] == (
            "Invoices go out automatically every month. Reminders follow a week later."
        )
        assert "Short." not in content.paragraphs
        assert "Reminders follow a week later." in content.sentences
        assert "Invoices go out automatically" in content.all_text_content

    def test_navigation_excluded_from_full_text(self) -> None:
        """Navigation and footer text is not part of the page text."""
        html = (
            "<html><body><nav>Products Pricing Careers</nav>"
            "<main><p>Our team builds accounting tools for small shops.</p></main>"
            "<footer>Copyright Acme</footer></body></html>"
        )

        content = extract_content(parse_html(html), URL)

        assert "Careers" not in content.all_text_content
        assert "Copyright" not in content.all_text_content
        assert "accounting tools" in content.all_text_content

    def test_split_sentences(self) -> None:
        """Sentences end at terminal punctuation."""
        assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]


class TestExtractLinks:
    """Tests for internal/external link classification."""

    def test_internal_and_external(self) -> None:
        """Relative links are internal; other hosts are external when requested."""
        soup = parse_html(
            page_html(
                links=[
                    ("/pricing", "Pricing"),
                    ("https://example.com/blog", "Blog"),
                    ("https://partner.io/", "Partner"),
                    ("mailto:sales@example.com", "Email"),
                    ("#top", "Back to top"),
                    ("/features", "Self link"),
                ]
            )
        )

        internal, external = extract_links(soup, URL, follow_external_links=True)

        assert [link.href for link in internal] == [
            "https://example.com/pricing",
            "https://example.com/blog",
        ]
        assert [link.href for link in external] == ["https://partner.io/"]

    def test_www_variant_is_internal(self) -> None:
        """Links to the www host of a bare-domain page are internal."""
        soup = parse_html(
            page_html(
                links=[
                    ("https://www.example.com/about", "About us"),
                    ("http://WWW.example.com/services", "Services"),
                    ("https://shop.example.com/", "Shop"),
                ]
            )
        )

        internal, external = extract_links(soup, URL, follow_external_links=True)

        assert [link.href for link in internal] == [
            "https://www.example.com/about",
            "http://WWW.example.com/services",
        ]
        assert [link.href for link in external] == ["https://shop.example.com/"]

    def test_external_dropped_by_default(self) -> None:
        """External links are not returned unless requested."""
        soup = parse_html(page_html(links=[("https://partner.io/", "Partner")]))

        _, external = extract_links(soup, URL)

        assert external == []

    def test_anchors_without_text_skipped(self) -> None:
        """Anchors with no visible text are ignored."""
        soup = parse_html('<html><body><a href="/x"><img src="i.png"></a></body></html>')

        internal, _ = extract_links(soup, URL)

        assert internal == []


class TestExtractCtaElements:
    """Tests for call-to-action detection."""

    def test_buttons_and_link_buttons(self) -> None:
        """Buttons and button-styled links are found and de-duplicated."""
        soup = parse_html(
            "<html><body>"
            '<button type="submit">Start free trial</button>'
            '<a class="btn btn-primary" href="/signup">Sign up today</a>'
            "<button>start free trial</button>"
            "</body></html>"
        )

        ctas = extract_cta_elements(soup, URL)
        texts = [c.text.lower() for c in ctas]

        assert texts.count("start free trial") == 1
        assert "sign up today" in texts

    def test_cookie_banner_ignored(self) -> None:
        """CTAs inside a cookie banner are skipped."""
        soup = parse_html(
            "<html><body>"
            '<div id="cookie-banner"><button>Accept all cookies</button></div>'
            "<button>Book a demo</button>"
            "</body></html>"
        )

        texts = [c.text for c in extract_cta_elements(soup, URL)]

        assert "Book a demo" in texts
        assert "Accept all cookies" not in texts


class TestExtractCardElements:
    """Tests for card detection."""

    def test_card_detected(self) -> None:
        """A styled card with enough text is reported with title and flags."""
        soup = parse_html(
            "<html><body>"
            '<div class="card"><h3>Payroll</h3>'
            "<p>Run payroll for your whole team in a few clicks.</p>"
            '<a href="/payroll">Learn more</a></div>'
            "</body></html>"
        )

        cards = extract_card_elements(soup, URL)

        assert len(cards) == 1
        assert cards[0].title == "Payroll"
        assert cards[0].has_cta
        assert not cards[0].has_image

    def test_nested_cards_reported_once(self) -> None:
        """A card nested inside another card is skipped."""
        soup = parse_html(
            "<html><body>"
            '<div class="card"><h3>Outer plan</h3><p>Everything in the starter plan and more.</p>'
            '<div class="card-body">Inner content that is long enough to count.</div>'
            "</div></body></html>"
        )

        cards = extract_card_elements(soup, URL)

        assert [c.title for c in cards] == ["Outer plan"]

    def test_short_cards_ignored(self) -> None:
        """Cards with too little text are ignored."""
        soup = parse_html('<html><body><div class="card">Tiny</div></body></html>')

        assert extract_card_elements(soup, URL) == []
