"""
Fixed-window rate limiter shared by every worker process through Redis.

Each window has its own counter key; INCR returns this caller's slot and the
key expires shortly after the window closes.
"""
import math
import time
from typing import Callable, Optional

from redis import Redis

from doc_summarizer.config import WORKER_RATE_LIMIT, WORKER_RATE_WINDOW_SECONDS
from doc_summarizer.logging_config import get_worker_logger

logger = get_worker_logger()


class RateLimiter:

    def __init__(
        self,
        redis_client: Redis,
        limit: int = WORKER_RATE_LIMIT,
        window_seconds: float = WORKER_RATE_WINDOW_SECONDS,
        key_prefix: str = "ratelimit:summary",
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self._clock = clock
        self._sleep = sleep

    def _window_key(self, now: float) -> str:
        return f"{self.key_prefix}:{int(now // self.window_seconds)}"

    def try_acquire(self) -> bool:
        """Take a slot in the current window if one is left."""
        key = self._window_key(self._clock())
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, int(math.ceil(self.window_seconds)) + 1)
        count, _ = pipe.execute()
        return count <= self.limit

    def acquire(self, max_wait: Optional[float] = None) -> bool:
        """
        Block until a slot is free.

        Returns False if max_wait elapses first.
        """
        started = self._clock()
        while not self.try_acquire():
            now = self._clock()
            if max_wait is not None and now - started >= max_wait:
                logger.warning(f"[RATE_LIMIT] Gave up after {now - started:.2f}s | limit={self.limit}")
                return False
            wait = self.window_seconds - (now % self.window_seconds)
            logger.debug(f"[RATE_LIMIT] Window full, waiting {wait:.3f}s | limit={self.limit}")
            self._sleep(max(wait, 0.01))
        return True
