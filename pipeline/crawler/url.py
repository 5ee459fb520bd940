"""URL normalization and utilities for discovery and link analysis."""

import re
from urllib.parse import parse_qs, urlencode, urljoin, urlparse, urlunparse

# File extensions that never hold an HTML page
SKIP_EXTENSIONS = frozenset(
    (".jpg", ".jpeg", ".png", ".gif", ".svg", ".ico", ".webp", ".avif")
    + (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx")
    + (".mp3", ".mp4", ".mov", ".webm")
    + (".zip", ".rar", ".gz", ".exe", ".dmg")
    + (".json", ".xml", ".csv", ".txt", ".css", ".js")
)

# Paths that are feeds, admin areas or asset folders
SKIP_PATTERNS = [
    re.compile(r"/feed/?$", re.IGNORECASE),
    re.compile(r"/rss/?$", re.IGNORECASE),
    re.compile(r"/wp-admin/", re.IGNORECASE),
    re.compile(r"/wp-json/", re.IGNORECASE),
    re.compile(r"/wp-content/uploads/", re.IGNORECASE),
    re.compile(r"/cdn-cgi/", re.IGNORECASE),
]

# Tracking parameters dropped during normalization
STRIP_PARAMS = frozenset(
    ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")
    + ("fbclid", "gclid", "msclkid", "mc_cid", "mc_eid", "_ga", "_gl")
)

# Paths that serve the homepage under another name
HOMEPAGE_ALIASES = frozenset(["", "/", "/index.html", "/index.php", "/home", "/home/"])


def strip_www(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def normalize_domain(value: str) -> str:
    """Reduce user input (``https://www.Example.com/path``) to ``example.com``."""
    value = value.strip().lower()
    if "://" not in value:
        value = "https://" + value
    host = urlparse(value).hostname or ""
    return strip_www(host).rstrip(".")


def root_url(domain: str) -> str:
    """The canonical homepage URL for a domain."""
    return f"https://{strip_www(normalize_domain(domain))}"


def is_homepage_url(url: str, domain: str) -> bool:
    """Check if ``url`` points at the domain root or one of its index aliases."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    if strip_www(parsed.hostname or "") != strip_www(normalize_domain(domain)):
        return False
    if parsed.query:
        return False
    return parsed.path.lower() in HOMEPAGE_ALIASES


def normalize_url(url: str, base_url: str | None = None) -> str | None:
    """
    Normalize a URL for consistent comparison and de-duplication.

    Args:
        url: The URL to normalize
        base_url: Optional base URL for resolving relative URLs

    Returns:
        Normalized URL string or None if URL should be skipped
    """
    if not url or not url.strip():
        return None

    url = url.strip()

    if url.startswith("//"):
        url = "https:" + url
    elif base_url and not url.startswith(("http://", "https://")):
        url = urljoin(base_url, url)

    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None

    host = strip_www(parsed.netloc.lower())
    if host.endswith(":443") or host.endswith(":80"):
        host = host.rsplit(":", 1)[0]

    path = parsed.path or "/"
    path_lower = path.lower()
    if any(path_lower.endswith(ext) for ext in SKIP_EXTENSIONS):
        return None
    if any(pattern.search(path) for pattern in SKIP_PATTERNS):
        return None

    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")

    query = ""
    if parsed.query:
        params = parse_qs(parsed.query, keep_blank_values=False)
        filtered = {k: v for k, v in params.items() if k.lower() not in STRIP_PARAMS}
        if filtered:
            query = urlencode(sorted(filtered.items()), doseq=True)

    return urlunparse(("https", host, path, "", query, ""))


def url_key(url: str) -> str:
    """Comparison key that ignores scheme, ``www.``, trailing slashes and fragments."""
    parsed = urlparse(url.strip())
    host = strip_www(parsed.netloc.lower())
    path = parsed.path.rstrip("/") or "/"
    return f"{host}{path}" + (f"?{parsed.query}" if parsed.query else "")


def extract_domain(url: str) -> str | None:
    """Extract the domain from a URL."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return None
    host = strip_www(host)
    return host if host else None


def is_internal_url(url: str, base_domain: str) -> bool:
    """Check if a URL is internal to the base domain (subdomains included)."""
    url_domain = extract_domain(url)
    if not url_domain:
        return False
    base = strip_www(base_domain)
    return url_domain == base or url_domain.endswith("." + base)
