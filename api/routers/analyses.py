"""Analysis endpoints: start, cancel, compare and stream progress."""

from collections.abc import AsyncIterator
from typing import Any

import orjson
import structlog
from fastapi import APIRouter, BackgroundTasks, Request, status
from fastapi.responses import StreamingResponse

from api.deps import (
    CompetitorDep,
    OrchestratorDep,
    QuotaDep,
    ServicesDep,
    SettingsDep,
    TrackerDep,
)
from api.exceptions import AnalysisCancelledError, SiteAuditError
from api.schemas.analysis import (
    ActiveAnalysesResponse,
    AnalysisAccepted,
    AnalysisRequest,
    CancelResponse,
    CompareRequest,
)
from api.schemas.responses import SuccessResponse
from pipeline.crawler.url import normalize_domain
from pipeline.models import AnalysisOptions
from pipeline.orchestrator import AnalysisOrchestrator
from pipeline.progress import Subscription

router = APIRouter(prefix="/analyses", tags=["analyses"])
logger = structlog.get_logger(__name__)


async def run_analysis_task(
    orchestrator: AnalysisOrchestrator,
    domain: str,
    options: AnalysisOptions,
    user_id: str | None,
) -> None:
    """Background entry point. Outcomes are reported on the progress channel."""
    try:
        await orchestrator.run_analysis(domain, options, user_id)
    except AnalysisCancelledError:
        logger.info("background_analysis_cancelled", domain=domain)
    except SiteAuditError as e:
        logger.warning("background_analysis_failed", domain=domain, code=e.code, error=e.message)
    except Exception:
        logger.exception("background_analysis_crashed", domain=domain)


def format_sse(payload: dict) -> str:
    return f"data: {orjson.dumps(payload).decode()}\n\n"


async def _event_stream(request: Request, subscription: Subscription) -> AsyncIterator[str]:
    try:
        async for update in subscription:
            if await request.is_disconnected():
                logger.debug("progress_client_disconnected", domain=subscription.domain)
                break
            yield format_sse(update.to_dict())
    finally:
        subscription.close()


@router.post(
    "",
    response_model=SuccessResponse[AnalysisAccepted],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start an analysis",
)
async def start_analysis(
    body: AnalysisRequest,
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    quota_manager: QuotaDep,
    settings: SettingsDep,
) -> SuccessResponse[AnalysisAccepted]:
    """
    Validate the user's quota and schedule the analysis in the background.

    Returns 403 when the page limit is already reached. Progress is
    available from the events endpoint.
    """
    options = body.options.to_options(settings)
    await quota_manager.initialize_quotas(body.user_id, options)

    background_tasks.add_task(run_analysis_task, orchestrator, body.domain, options, body.user_id)
    logger.info("analysis_scheduled", domain=body.domain, user_id=body.user_id)

    return SuccessResponse(
        data=AnalysisAccepted(
            domain=body.domain,
            events_url=f"/v1/analyses/{body.domain}/events",
        )
    )


@router.post(
    "/compare",
    response_model=SuccessResponse[dict[str, Any]],
    summary="Compare with a competitor",
)
async def compare_competitor(
    body: CompareRequest,
    competitor: CompetitorDep,
    settings: SettingsDep,
) -> SuccessResponse[dict[str, Any]]:
    """
    Analyze the competitor now and diff it against the latest run of the main domain.

    Returns 401 without a known user, 403 when credits or pages run out and
    404 when the main domain has not been analyzed yet.
    """
    options = AnalysisOptions(
        max_pages=settings.default_max_pages,
        crawl_delay_ms=settings.default_crawl_delay_ms,
        additional_info=body.additional_info,
    )
    comparison = await competitor.compare(
        body.main_domain,
        body.competitor_domain,
        body.user_id,
        options,
        use_ai=body.use_ai,
    )
    return SuccessResponse(data=comparison.to_dict())


@router.get(
    "/active",
    response_model=SuccessResponse[ActiveAnalysesResponse],
    summary="List running analyses",
)
async def list_active(services: ServicesDep) -> SuccessResponse[ActiveAnalysesResponse]:
    return SuccessResponse(data=ActiveAnalysesResponse(domains=services.registry.active_domains()))


@router.post(
    "/{domain}/cancel",
    response_model=SuccessResponse[CancelResponse],
    summary="Cancel a running analysis",
)
async def cancel_analysis(
    domain: str,
    orchestrator: OrchestratorDep,
) -> SuccessResponse[CancelResponse]:
    normalized = normalize_domain(domain)
    cancelled = orchestrator.cancel(normalized)
    return SuccessResponse(data=CancelResponse(domain=normalized, cancelled=cancelled))


@router.get("/{domain}/events", summary="Stream analysis progress")
async def stream_events(
    domain: str,
    request: Request,
    tracker: TrackerDep,
) -> StreamingResponse:
    """
    Server-Sent Events stream of progress updates for ``domain``.

    The stream ends after a terminal update (completed, error, cancelled)
    or when the client disconnects.
    """
    subscription = tracker.subscribe(normalize_domain(domain))
    return StreamingResponse(
        _event_stream(request, subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
