"""Fixed-window request throttling keyed by client address."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from starlette.requests import Request

from backend.core.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Allows ``max_requests`` hits per key in each ``window_seconds`` window.

    A window opens on a key's first hit and the counter resets once it
    elapses. Safe to share between FastAPI's worker threads.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Record a hit for ``key``; False once the window's budget is spent."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            window.count += 1
            return window.count <= self.max_requests

    def check(self, key: str) -> None:
        """Record a hit and raise ``RateLimitError`` when over budget."""
        if not self.hit(key):
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitError()

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]


def client_address(request: Request) -> str:
    """Socket peer address of the request.

    Forwarded headers are not read here. Behind a reverse proxy, list the
    proxy in ``FORWARDED_ALLOW_IPS`` so uvicorn's ``ProxyHeadersMiddleware``
    rewrites the peer address from ``X-Forwarded-For`` before this runs.
    """
    if request.client is not None:
        return request.client.host
    return "unknown"
