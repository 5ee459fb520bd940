"""Liveness and readiness checks."""

import time
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.config import API_VERSION
from api.deps import ServicesDep, SettingsDep
from pipeline.redis import get_redis_connection

router = APIRouter(tags=["Health"])
logger = structlog.get_logger(__name__)

_started_at = time.time()


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _uptime() -> int:
    return int(time.time() - _started_at)


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy, degraded or unhealthy")
    timestamp: str
    version: str
    uptime_seconds: int


class DependencyCheck(BaseModel):
    """Result of checking one collaborator."""

    status: str = Field(..., description="healthy, unhealthy or disabled")
    latency_ms: float | None = None
    error: str | None = None


class ReadyResponse(HealthResponse):
    active_analyses: int = Field(..., description="Runs currently holding a cancellation token")
    checks: dict[str, DependencyCheck]


class ApiInfoResponse(BaseModel):
    name: str
    version: str
    env: str
    docs: str | None


async def _check_redis() -> DependencyCheck:
    start = time.perf_counter()
    try:
        await get_redis_connection().ping()
    except Exception as e:
        logger.warning("redis_health_check_failed", error=str(e))
        return DependencyCheck(status="unhealthy", error=str(e))
    return DependencyCheck(
        status="healthy",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report that the process is serving requests. Dependencies are covered by /ready."""
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        version=API_VERSION,
        uptime_seconds=_uptime(),
    )


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(settings: SettingsDep, services: ServicesDep) -> ReadyResponse:
    """
    Report whether analyses can run at full capability.

    A missing AI key is reported as ``disabled``, not as a failure, since runs
    still complete without suggestions. Redis is only checked when it backs the
    suggestion cache; an unreachable server degrades the service.
    """
    checks = {
        "ai": DependencyCheck(status="healthy" if services.ai_client else "disabled"),
    }
    if settings.suggestion_cache_backend == "redis":
        checks["redis"] = await _check_redis()

    degraded = any(check.status == "unhealthy" for check in checks.values())
    return ReadyResponse(
        status="degraded" if degraded else "healthy",
        timestamp=_now(),
        version=API_VERSION,
        uptime_seconds=_uptime(),
        active_analyses=len(services.registry.active_domains()),
        checks=checks,
    )


@router.get("/", response_model=ApiInfoResponse)
async def root(settings: SettingsDep) -> ApiInfoResponse:
    return ApiInfoResponse(
        name="SiteAudit API",
        version=API_VERSION,
        env=settings.env,
        docs="/docs" if settings.debug else None,
    )
