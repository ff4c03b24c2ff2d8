# Moving-window rate limiting for push dispatch
# memory:// keeps counters in this process; a shared storage URI (redis://...) holds the limit across instances.

import logging

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage, storage_from_string
from limits.strategies import MovingWindowRateLimiter

from config.app_config import (
    PUSH_RATE_LIMIT_MAX,
    PUSH_RATE_LIMIT_WINDOW_SECONDS,
    RATE_LIMIT_STORAGE_URI,
)

logger = logging.getLogger(__name__)


class PushRateLimiter:
    """
    Allow at most `max_requests` per `window_seconds` for each caller.

    Counting is delegated to a `limits` storage, so the window is shared by
    every process that points at the same storage.
    """

    namespace = "push-send"

    def __init__(
        self,
        max_requests: int = PUSH_RATE_LIMIT_MAX,
        window_seconds: int = PUSH_RATE_LIMIT_WINDOW_SECONDS,
        storage: Storage = None,
    ):
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.storage = storage if storage is not None else MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self.storage)

    def allow(self, key: str) -> bool:
        return self._limiter.hit(self.item, self.namespace, key)


def build_rate_limiter(storage_uri: str = RATE_LIMIT_STORAGE_URI) -> PushRateLimiter:
    logger.info(f"Push rate limit storage: {storage_uri.split('@')[-1]}")
    return PushRateLimiter(storage=storage_from_string(storage_uri))


_push_rate_limiter = build_rate_limiter()


def get_push_rate_limiter() -> PushRateLimiter:
    """FastAPI dependency for the push-send limiter."""
    return _push_rate_limiter
