"""Tests for URL normalization and utilities."""

from pipeline.crawler.url import (
    extract_domain,
    is_homepage_url,
    is_internal_url,
    normalize_domain,
    normalize_url,
    root_url,
    url_key,
)


class TestNormalizeDomain:
    """Tests for normalize_domain."""

    def test_strips_scheme_www_and_path(self) -> None:
        """Full URLs reduce to the bare host."""
        assert normalize_domain("https://www.Example.com/path?q=1") == "example.com"

    def test_bare_host(self) -> None:
        """A bare host is lowercased and kept."""
        assert normalize_domain("  Example.COM ") == "example.com"

    def test_subdomain_kept(self) -> None:
        """Only the www prefix is removed."""
        assert normalize_domain("blog.example.com") == "blog.example.com"


class TestRootUrl:
    """Tests for root_url."""

    def test_root_url_is_https_without_www(self) -> None:
        """The canonical homepage URL uses https and no www."""
        assert root_url("www.example.com") == "https://example.com"
        assert root_url("http://example.com/") == "https://example.com"


class TestIsHomepageUrl:
    """Tests for is_homepage_url."""

    def test_homepage_aliases(self) -> None:
        """Every homepage alias is recognized."""
        for url in [
            "https://example.com",
            "https://example.com/",
            "http://www.example.com/",
            "https://example.com/index.html",
            "https://example.com/index.php",
            "https://example.com/home",
            "https://www.example.com/home/",
        ]:
            assert is_homepage_url(url, "example.com"), url

    def test_non_homepage(self) -> None:
        """Inner pages, other hosts and queries are not the homepage."""
        assert not is_homepage_url("https://example.com/about", "example.com")
        assert not is_homepage_url("https://other.com/", "example.com")
        assert not is_homepage_url("https://example.com/?page=2", "example.com")
        assert not is_homepage_url("ftp://example.com/", "example.com")


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_basic_normalization(self) -> None:
        """Scheme is forced to https and the root keeps its slash."""
        assert normalize_url("http://example.com") == "https://example.com/"
        assert normalize_url("https://example.com/page") == "https://example.com/page"

    def test_removes_www_and_trailing_slash(self) -> None:
        """www and trailing slashes are dropped."""
        assert normalize_url("https://www.example.com/page/") == "https://example.com/page"

    def test_removes_default_ports(self) -> None:
        """Default ports are removed."""
        assert normalize_url("https://example.com:443/page") == "https://example.com/page"

    def test_strips_tracking_params(self) -> None:
        """Tracking parameters are removed, others kept."""
        result = normalize_url("https://example.com/page?utm_source=google&id=123")
        assert result == "https://example.com/page?id=123"

    def test_resolves_relative(self) -> None:
        """Relative URLs resolve against the base."""
        assert normalize_url("/about", "https://example.com/") == "https://example.com/about"

    def test_skips_assets_and_feeds(self) -> None:
        """Non-HTML resources and feeds are skipped."""
        assert normalize_url("https://example.com/logo.png") is None
        assert normalize_url("https://example.com/report.pdf") is None
        assert normalize_url("https://example.com/feed/") is None
        assert normalize_url("https://example.com/wp-admin/options.php") is None

    def test_skips_non_web(self) -> None:
        """Empty input and non-http schemes are skipped."""
        assert normalize_url("") is None
        assert normalize_url("mailto:hi@example.com") is None
        assert normalize_url("#section") is None


class TestUrlKey:
    """Tests for url_key."""

    def test_equivalent_urls_share_a_key(self) -> None:
        """Scheme, www and trailing slash do not matter."""
        assert url_key("https://www.example.com/docs/") == url_key("http://example.com/docs")

    def test_root_key(self) -> None:
        """Root with and without slash share a key."""
        assert url_key("https://example.com") == url_key("https://example.com/")

    def test_query_is_significant(self) -> None:
        """Different queries give different keys."""
        assert url_key("https://example.com/a?x=1") != url_key("https://example.com/a?x=2")


class TestDomainHelpers:
    """Tests for extract_domain and is_internal_url."""

    def test_extract_domain(self) -> None:
        """Host is returned without www."""
        assert extract_domain("https://www.example.com/page") == "example.com"
        assert extract_domain("not a url") is None

    def test_is_internal_url(self) -> None:
        """Same host and subdomains are internal."""
        assert is_internal_url("https://example.com/a", "example.com")
        assert is_internal_url("https://blog.example.com/a", "example.com")
        assert not is_internal_url("https://example.org/a", "example.com")
