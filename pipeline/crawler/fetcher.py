"""HTTP page fetcher."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    final_url: str  # After redirects
    status_code: int
    content_type: str | None
    html: str | None
    error: str | None
    fetch_time_ms: int
    fetched_at: datetime
    x_robots_tag: str | None = None

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return self.status_code == 200 and self.html is not None

    @property
    def is_html(self) -> bool:
        """Check if response is HTML."""
        if not self.content_type:
            return False
        content_type = self.content_type.lower()
        return "text/html" in content_type or "application/xhtml" in content_type

    @property
    def header_noindex(self) -> bool:
        """Check for a noindex directive in the X-Robots-Tag header."""
        return bool(self.x_robots_tag and "noindex" in self.x_robots_tag.lower())


class PageFetcher:
    """Fetches single pages with a timeout and a descriptive user agent.

    ``transport`` lets callers (and tests) swap the network layer for an
    ``httpx.MockTransport`` without touching the fetch logic.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 15.0,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        """Build a client configured like every page request."""
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=5,
            headers={"User-Agent": self.user_agent, **DEFAULT_HEADERS},
            transport=self.transport,
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a URL, retrying transient transport failures.

        Network problems never raise; they come back as a result with
        ``status_code`` 0 and ``error`` set. Non-200 responses are returned
        as-is with ``error`` holding ``HTTP <status>``.
        """
        started = datetime.now(UTC)
        error: str | None = None

        for attempt in range(1, self.max_retries + 2):
            try:
                async with self.client() as client:
                    response = await client.get(url)
            except httpx.TimeoutException:
                error = f"Request timed out after {self.timeout}s"
            except httpx.HTTPError as e:
                error = str(e) or type(e).__name__
            except (httpx.InvalidURL, ValueError) as e:
                # Malformed URLs fail the same way on every attempt
                logger.warning("fetch_invalid_url", url=url, error=str(e))
                return self._failed(url, str(e), started)
            else:
                return self._to_result(url, response, started)

            if attempt <= self.max_retries:
                logger.warning("fetch_retry", url=url, error=error, attempt=attempt)
                await asyncio.sleep(self.retry_delay * attempt)

        return self._failed(url, error, started)

    @staticmethod
    def _failed(url: str, error: str | None, started: datetime) -> FetchResult:
        return FetchResult(
            url=url,
            final_url=url,
            status_code=0,
            content_type=None,
            html=None,
            error=error,
            fetch_time_ms=_elapsed_ms(started),
            fetched_at=started,
        )

    @staticmethod
    def _to_result(url: str, response: httpx.Response, started: datetime) -> FetchResult:
        content_type = response.headers.get("content-type", "")
        ok = response.status_code == 200
        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            content_type=content_type,
            html=response.text if ok and "html" in content_type.lower() else None,
            error=None if ok else f"HTTP {response.status_code}",
            fetch_time_ms=_elapsed_ms(started),
            fetched_at=started,
            x_robots_tag=response.headers.get("x-robots-tag"),
        )


def _elapsed_ms(started: datetime) -> int:
    return int((datetime.now(UTC) - started).total_seconds() * 1000)
