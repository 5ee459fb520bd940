"""Tests for the HTTP surface."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from api.deps import Services
from api.routers.analyses import _event_stream, format_sse
from api.routers.health import _check_redis
from pipeline.models import AccountStatus, AnalysisOptions, Usage
from pipeline.storage import InMemoryStorage


class FakeRequest:
    def __init__(self, disconnected: bool = False) -> None:
        self.disconnected = disconnected

    async def is_disconnected(self) -> bool:
        return self.disconnected


def start_body(**options) -> dict:
    return {"domain": "https://www.Example.com/", "options": {"crawl_delay_ms": 0, **options}}


class TestHealth:
    """Tests for health and info endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        """Health reports healthy with a request id header."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_ready_without_redis(self, client: AsyncClient) -> None:
        """With the memory cache only the AI client is checked."""
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["ai"]["status"] == "healthy"
        assert data["active_analyses"] == 0
        assert "redis" not in data["checks"]

    @pytest.mark.asyncio
    async def test_redis_check_awaits_ping(self) -> None:
        """The readiness check pings Redis through the async client."""
        redis = AsyncMock()

        with patch("api.routers.health.get_redis_connection", return_value=redis):
            check = await _check_redis()

        assert check.status == "healthy"
        redis.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_check_unreachable(self) -> None:
        """A failed ping is reported as unhealthy with the error."""
        redis = AsyncMock()
        redis.ping.side_effect = ConnectionError("redis down")

        with patch("api.routers.health.get_redis_connection", return_value=redis):
            check = await _check_redis()

        assert check.status == "unhealthy"
        assert check.error == "redis down"

    @pytest.mark.asyncio
    async def test_v1_root(self, client: AsyncClient) -> None:
        """The v1 root reports its version."""
        response = await client.get("/v1/")

        assert response.json() == {"version": "1", "status": "active"}


class TestStartAnalysis:
    """Tests for POST /v1/analyses."""

    @pytest.mark.asyncio
    async def test_accepted_and_run(
        self,
        client: AsyncClient,
        storage: InMemoryStorage,
    ) -> None:
        """The request is accepted and the run completes in the background."""
        response = await client.post("/v1/analyses", json=start_body())

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["domain"] == "example.com"
        assert data["status"] == "accepted"
        assert data["events_url"] == "/v1/analyses/example.com/events"

        saved = list(storage.analyses.values())
        assert len(saved) == 1
        assert saved[0].domain == "example.com"

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, client: AsyncClient, storage: InMemoryStorage) -> None:
        """A spent page limit is rejected with 403 and the error envelope."""
        storage.set_user(
            "p1", Usage(account_status=AccountStatus.PAID, page_limit=10, pages_analyzed=10)
        )

        response = await client.post("/v1/analyses", json={**start_body(), "user_id": "p1"})

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "quota_exceeded"
        assert error["details"] == {"pages_analyzed": 10, "page_limit": 10}
        assert storage.analyses == {}

    @pytest.mark.asyncio
    async def test_invalid_domain(self, client: AsyncClient) -> None:
        """Domains without a dot are rejected."""
        response = await client.post("/v1/analyses", json={"domain": "localhost"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_invalid_option(self, client: AsyncClient) -> None:
        """Out-of-range options are rejected with the offending field."""
        response = await client.post("/v1/analyses", json=start_body(max_pages=0))

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "options.max_pages"


class TestCompare:
    """Tests for POST /v1/analyses/compare."""

    @pytest.mark.asyncio
    async def test_compare(
        self, client: AsyncClient, services: Services, storage: InMemoryStorage
    ) -> None:
        """A paid user gets metric and score gaps for both domains."""
        await services.orchestrator.run_analysis("example.com", AnalysisOptions(crawl_delay_ms=0))
        storage.set_user("p1", Usage(account_status=AccountStatus.PAID, credits=5))

        response = await client.post(
            "/v1/analyses/compare",
            json={
                "main_domain": "www.example.com",
                "competitor_domain": "https://Rival.com/",
                "user_id": "p1",
                "use_ai": False,
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["main_domain"] == "example.com"
        assert data["competitor_domain"] == "rival.com"
        assert data["metrics"]["title_optimization"]["advantage"] in {
            "main",
            "competitor",
            "neutral",
        }
        assert "overall" in data["scores"]
        assert data["recommendations"]
        assert (await storage.get_user_usage("p1")).credits == 4

    @pytest.mark.asyncio
    async def test_unknown_main_domain(self, client: AsyncClient) -> None:
        """Comparing before the main domain was analyzed is a 404."""
        response = await client.post(
            "/v1/analyses/compare",
            json={"main_domain": "example.com", "competitor_domain": "rival.com"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, client: AsyncClient, services: Services) -> None:
        """Anonymous comparisons are a 401."""
        await services.orchestrator.run_analysis("example.com", AnalysisOptions(crawl_delay_ms=0))

        response = await client.post(
            "/v1/analyses/compare",
            json={"main_domain": "example.com", "competitor_domain": "rival.com"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "authentication_required"


class TestCancelAndActive:
    """Tests for cancellation and the active list."""

    @pytest.mark.asyncio
    async def test_cancel_running(self, client: AsyncClient, services: Services) -> None:
        """A registered run is cancelled and leaves the active list."""
        token = services.registry.register("example.com")

        active = await client.get("/v1/analyses/active")
        assert active.json()["data"]["domains"] == ["example.com"]

        response = await client.post("/v1/analyses/www.example.com/cancel")

        assert response.status_code == 200
        assert response.json()["data"] == {"domain": "example.com", "cancelled": True}
        assert token.cancelled
        assert services.registry.active_domains() == []

    @pytest.mark.asyncio
    async def test_cancel_idle(self, client: AsyncClient) -> None:
        """Cancelling with nothing running reports False."""
        response = await client.post("/v1/analyses/example.com/cancel")

        assert response.json()["data"]["cancelled"] is False


class TestEventStream:
    """Tests for the progress event stream."""

    def test_format_sse(self) -> None:
        """Events are single data lines terminated by a blank line."""
        assert format_sse({"status": "in-progress"}) == 'data: {"status":"in-progress"}\n\n'

    @pytest.mark.asyncio
    async def test_stream_ends_at_terminal(self, services: Services) -> None:
        """The stream yields every update and stops after the terminal one."""
        subscription = services.tracker.subscribe("example.com")
        channel = services.tracker.channel("example.com")
        channel.in_progress(10, pages_found=3)
        channel.cancelled()

        events = [e async for e in _event_stream(FakeRequest(), subscription)]

        payloads = [json.loads(e.removeprefix("data: ")) for e in events]
        assert [p["status"] for p in payloads] == ["in-progress", "cancelled"]
        assert payloads[0]["pages_found"] == 3
        assert services.tracker.subscriber_count("example.com") == 0

    @pytest.mark.asyncio
    async def test_stream_stops_on_disconnect(self, services: Services) -> None:
        """A disconnected client ends the stream and unsubscribes."""
        subscription = services.tracker.subscribe("example.com")
        services.tracker.channel("example.com").in_progress(10)

        events = [e async for e in _event_stream(FakeRequest(disconnected=True), subscription)]

        assert events == []
        assert services.tracker.subscriber_count("example.com") == 0


class TestSchemasPackage:
    """Tests for the schemas package surface."""

    def test_exports_resolve(self) -> None:
        """Every exported schema name is importable from the package."""
        import api.schemas

        for name in api.schemas.__all__:
            assert hasattr(api.schemas, name), name

    def test_error_envelope_omits_empty_fields(self) -> None:
        """The error envelope drops unset field and details."""
        from api.main import error_response

        response = error_response(404, "not_found", "No such analysis")

        assert json.loads(response.body) == {
            "error": {"code": "not_found", "message": "No such analysis"}
        }
