from __future__ import annotations

import logging
import math
import threading
import time
from typing import Dict, Tuple

from fastapi import Request

from .errors import RateLimitedError

logger = logging.getLogger(__name__)


class _RateLimiter:
    """Fixed-window counter keyed by scope and client address."""

    def __init__(self) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int, window_seconds: int) -> int:
        """Count one hit; return attempts left or raise RateLimitedError."""
        now = time.time()
        with self._lock:
            expired = [stale for stale, (_, stale_reset) in self._hits.items() if stale_reset < now]
            for stale in expired:
                del self._hits[stale]
            count, reset = self._hits.get(key, (0, now + window_seconds))
            if now > reset:
                count = 0
                reset = now + window_seconds
            count += 1
            self._hits[key] = (count, reset)
        if count > limit:
            raise RateLimitedError(
                attempts_left=max(0, limit - count),
                retry_after=max(1, math.ceil(reset - now)),
            )
        return limit - count

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = _RateLimiter()


def _client_ip(request: Request, trust_proxy: bool = False) -> str:
    # X-Forwarded-For is client-controlled unless a trusted proxy sets it
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(
    request: Request,
    scope: str,
    *,
    limit: int,
    window_seconds: int,
    trust_proxy: bool = False,
) -> int:
    ip = _client_ip(request, trust_proxy)
    try:
        return _limiter.check(f"{scope}:{ip}", limit, window_seconds)
    except RateLimitedError as exc:
        logger.warning(
            "Rate limit exceeded: %s\tIP: %s\tMethod: %s\tURL: %s\tOrigin: %s\tAttempts Left: %s",
            exc.reason,
            ip,
            request.method,
            request.url.path,
            request.headers.get("origin"),
            exc.attempts_left,
        )
        raise


def reset_limits() -> None:
    _limiter.reset()
