"""Cancellation tokens and per-domain progress channels.

Runs are keyed by domain. ``CancellationRegistry`` holds at most one token
per domain (the most recent registration wins), and ``ProgressTracker``
fans progress events out to any number of subscribers through bounded
queues.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator

import structlog

from api.exceptions import AnalysisCancelledError
from pipeline.models import AnalysisResult, ProgressStatus, ProgressUpdate

logger = structlog.get_logger(__name__)

# Default bounded queue size for a single subscriber
DEFAULT_SUBSCRIBER_QUEUE_SIZE = 100


class CancellationToken:
    """Cooperative cancellation flag for one run."""

    def __init__(self, domain: str):
        self.domain = domain
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelledError once the token has been cancelled."""
        if self._event.is_set():
            raise AnalysisCancelledError(self.domain)

    async def wait(self) -> None:
        await self._event.wait()


class CancellationRegistry:
    """Injected registry of ongoing analyses, one token per domain."""

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def register(self, domain: str) -> CancellationToken:
        """Create a token for ``domain``, replacing any previous registration."""
        if domain in self._tokens:
            logger.info("analysis_registration_replaced", domain=domain)
        token = CancellationToken(domain)
        self._tokens[domain] = token
        return token

    def deregister(self, domain: str, token: CancellationToken | None = None) -> None:
        """Remove the registration for ``domain``.

        When ``token`` is given, only remove it if it is still the current
        registration, so a finished older run cannot evict a newer one.
        """
        current = self._tokens.get(domain)
        if current is None:
            return
        if token is not None and current is not token:
            return
        del self._tokens[domain]

    def cancel(self, domain: str) -> bool:
        """Cancel the current run for ``domain``. Returns False if none is registered."""
        token = self._tokens.pop(domain, None)
        if token is None:
            logger.info("cancel_no_active_analysis", domain=domain)
            return False
        token.cancel()
        logger.info("analysis_cancel_requested", domain=domain)
        return True

    def get(self, domain: str) -> CancellationToken | None:
        return self._tokens.get(domain)

    def active_domains(self) -> list[str]:
        return sorted(self._tokens)


class Subscription:
    """One consumer's view of a domain's progress topic."""

    def __init__(self, tracker: "ProgressTracker", domain: str, maxsize: int):
        self.domain = domain
        self.queue: asyncio.Queue[ProgressUpdate] = asyncio.Queue(maxsize=maxsize)
        self._tracker = tracker
        self._closed = False

    def put(self, update: ProgressUpdate) -> None:
        """Enqueue without blocking the producer. Drops the oldest event when full."""
        if self._closed:
            return
        if self.queue.full():
            self.queue.get_nowait()
            logger.debug("progress_event_dropped", domain=self.domain)
        self.queue.put_nowait(update)

    async def get(self) -> ProgressUpdate:
        return await self.queue.get()

    def close(self) -> None:
        """Detach from the tracker. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._tracker.unsubscribe(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[ProgressUpdate]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProgressUpdate]:
        try:
            while True:
                update = await self.queue.get()
                yield update
                if update.status.is_terminal:
                    return
        finally:
            self.close()


class ProgressTracker:
    """Per-domain publish/subscribe topic for progress updates."""

    def __init__(self, subscriber_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE):
        self.subscriber_queue_size = subscriber_queue_size
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, domain: str) -> Subscription:
        subscription = Subscription(self, domain, self.subscriber_queue_size)
        self._subscribers[domain].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.domain)
        if not subscribers:
            return
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            del self._subscribers[subscription.domain]

    def subscriber_count(self, domain: str) -> int:
        return len(self._subscribers.get(domain, []))

    def publish(self, update: ProgressUpdate) -> None:
        for subscription in list(self._subscribers.get(update.domain, [])):
            subscription.put(update)

    def channel(self, domain: str) -> "ProgressChannel":
        """Create the single producer handle for a run on ``domain``."""
        return ProgressChannel(self, domain)


class ProgressChannel:
    """Producer side of a run's progress topic.

    Percentages never decrease within a run. Only ``completed`` reports 100;
    ``error`` and ``cancelled`` keep the last percentage reached. Nothing is
    published after a terminal event.
    """

    def __init__(self, tracker: ProgressTracker, domain: str):
        self.tracker = tracker
        self.domain = domain
        self.percentage = 0
        self.pages_found = 0
        self.analyzed_pages: list[str] = []
        self.status = ProgressStatus.IN_PROGRESS
        self.history: list[ProgressUpdate] = []

    @property
    def finished(self) -> bool:
        return self.status.is_terminal

    def emit(self, update: ProgressUpdate) -> ProgressUpdate | None:
        if self.finished:
            logger.debug("progress_after_terminal_ignored", domain=self.domain)
            return None
        if update.status == ProgressStatus.COMPLETED:
            update.percentage = 100
        else:
            update.percentage = min(99, max(self.percentage, update.percentage))
        self.percentage = update.percentage
        self.status = update.status
        self.history.append(update)
        self.tracker.publish(update)
        return update

    def in_progress(
        self,
        percentage: int,
        current_page_url: str = "",
        pages_found: int | None = None,
        analyzed_pages: list[str] | None = None,
    ) -> ProgressUpdate | None:
        if pages_found is not None:
            self.pages_found = pages_found
        if analyzed_pages is not None:
            self.analyzed_pages = list(analyzed_pages)
        return self.emit(
            ProgressUpdate(
                status=ProgressStatus.IN_PROGRESS,
                domain=self.domain,
                percentage=percentage,
                pages_found=self.pages_found,
                pages_analyzed=len(self.analyzed_pages),
                current_page_url=current_page_url,
                analyzed_pages=list(self.analyzed_pages),
            )
        )

    def completed(self, result: AnalysisResult) -> ProgressUpdate | None:
        return self.emit(
            ProgressUpdate(
                status=ProgressStatus.COMPLETED,
                domain=self.domain,
                percentage=100,
                pages_found=self.pages_found,
                pages_analyzed=len(result.pages),
                current_page_url="Analysis complete",
                analyzed_pages=[p.url for p in result.pages],
                analysis=result,
            )
        )

    def error(self, message: str) -> ProgressUpdate | None:
        return self.emit(
            ProgressUpdate(
                status=ProgressStatus.ERROR,
                domain=self.domain,
                percentage=self.percentage,
                pages_found=self.pages_found,
                pages_analyzed=len(self.analyzed_pages),
                current_page_url="Analysis failed",
                analyzed_pages=list(self.analyzed_pages),
                error=message,
            )
        )

    def cancelled(self) -> ProgressUpdate | None:
        return self.emit(
            ProgressUpdate(
                status=ProgressStatus.CANCELLED,
                domain=self.domain,
                percentage=self.percentage,
                pages_found=self.pages_found,
                pages_analyzed=len(self.analyzed_pages),
                current_page_url="Analysis cancelled by user",
                analyzed_pages=list(self.analyzed_pages),
            )
        )
