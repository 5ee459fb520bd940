"""Suggestion caching keyed by page fingerprint."""

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from api.config import Settings
from pipeline.redis import get_redis_connection as get_redis

logger = structlog.get_logger(__name__)

# Default cache TTL: 6 hours
DEFAULT_CACHE_TTL_SECONDS = 6 * 60 * 60


class SuggestionCache(ABC):
    """Stores generated suggestion lists by page fingerprint."""

    def __init__(self, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def get(self, fingerprint: str) -> list[str] | None:
        """Return cached suggestions, or None on miss/expiry."""
        ...

    @abstractmethod
    async def set(self, fingerprint: str, suggestions: list[str]) -> None:
        ...


class InMemorySuggestionCache(SuggestionCache):
    """Process-local cache with lazy expiry."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, tuple[float, list[str]]] = {}

    async def get(self, fingerprint: str) -> list[str] | None:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None

        stored_at, suggestions = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[fingerprint]
            return None
        return list(suggestions)

    async def set(self, fingerprint: str, suggestions: list[str]) -> None:
        self._entries[fingerprint] = (self._clock(), list(suggestions))

    def __len__(self) -> int:
        return len(self._entries)


class RedisSuggestionCache(SuggestionCache):
    """
    Cache backed by Redis, shared across processes.

    Errors are logged and treated as a miss so a Redis outage only costs
    extra AI calls.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self._prefix = "suggestions:cache:"

    def _cache_key(self, fingerprint: str) -> str:
        return f"{self._prefix}{fingerprint}"

    async def get(self, fingerprint: str) -> list[str] | None:
        try:
            redis = get_redis()
            data = await redis.get(self._cache_key(fingerprint))
            if not data:
                logger.debug("suggestion_cache_miss", fingerprint=fingerprint)
                return None
            cached = json.loads(data)
        except Exception as e:
            logger.warning("suggestion_cache_get_error", fingerprint=fingerprint, error=str(e))
            return None

        if not isinstance(cached, list):
            return None
        return [str(s) for s in cached]

    async def set(self, fingerprint: str, suggestions: list[str]) -> None:
        try:
            redis = get_redis()
            await redis.setex(
                self._cache_key(fingerprint), self.ttl_seconds, json.dumps(suggestions)
            )
        except Exception as e:
            logger.warning("suggestion_cache_set_error", fingerprint=fingerprint, error=str(e))


def get_suggestion_cache(settings: Settings) -> SuggestionCache:
    """Build the configured cache backend."""
    if settings.suggestion_cache_backend == "redis":
        return RedisSuggestionCache(ttl_seconds=settings.suggestion_cache_ttl_seconds)
    return InMemorySuggestionCache(ttl_seconds=settings.suggestion_cache_ttl_seconds)
