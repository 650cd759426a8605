"""Request middleware in front of tool dispatch: rate limiting and logging."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field

from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_request
from fastmcp.server.middleware import Middleware, MiddlewareContext

logger = logging.getLogger(__name__)

GLOBAL_KEY = "_global_"


def client_key() -> str:
    """Client IP of the current HTTP request, honouring proxy headers.

    Falls back to a single global bucket for transports without HTTP
    (stdio, in-memory).
    """
    try:
        request = get_http_request()
    except RuntimeError:
        return GLOBAL_KEY
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else GLOBAL_KEY


@dataclass
class RateLimitMiddleware(Middleware):
    """Sliding-window limit on tool calls per client IP.

    Only active when ``enabled``; the deployed server turns it on in
    production and leaves self-hosted setups unthrottled.
    """

    max_requests: int = 100
    window_seconds: float = 15 * 60
    enabled: bool = True
    _timestamps: dict[str, deque[float]] = field(default_factory=dict, repr=False)

    def allow(self, key: str) -> bool:
        now = time.monotonic()
        bucket = self._timestamps.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()
        if len(bucket) >= self.max_requests:
            return False
        bucket.append(now)
        return True

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        if self.enabled:
            key = client_key()
            if not self.allow(key):
                logger.warning("Rate limit exceeded for %s on %s", key, context.message.name)
                raise ToolError("Too many requests from this IP, please try again later.")
        return await call_next(context)


@dataclass
class LoggingMiddleware(Middleware):
    """Log each tool call with its duration; failures at WARNING."""

    log: logging.Logger = field(default_factory=lambda: logger)
    log_params: bool = True

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        name = context.message.name
        params = f" params={context.message.arguments}" if self.log_params else ""
        self.log.info("[%s] Starting%s", name, params)
        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as exc:
            duration = (time.perf_counter() - start) * 1000
            self.log.warning("[%s] Failed after %.1fms: %s", name, duration, exc)
            raise
        duration = (time.perf_counter() - start) * 1000
        self.log.info("[%s] Completed in %.1fms", name, duration)
        return result
