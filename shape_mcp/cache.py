"""Optional Redis cache for serialized tool responses.

Entries are scoped by tool, chain id and address and expire after a fixed
TTL handled natively by Redis SETEX. Cache trouble never fails a request:
errors are logged and treated as a miss.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Protocol

from shape_mcp.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
KEY_PREFIX = "shape-mcp:"


class AsyncRedisClient(Protocol):
    async def get(self, key: str) -> bytes | str | None: ...
    async def setex(self, name: str, time: int, value: str) -> bool: ...


class ResponseCache:
    """JSON response cache over an async Redis client."""

    __slots__ = ("_client", "_prefix", "_ttl")

    def __init__(self, client: AsyncRedisClient, prefix: str = KEY_PREFIX, ttl: int = DEFAULT_TTL) -> None:
        self._client = client
        self._prefix = prefix
        self._ttl = ttl

    @classmethod
    def from_url(cls, url: str, prefix: str = KEY_PREFIX, ttl: int = DEFAULT_TTL) -> ResponseCache:
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url), prefix, ttl)

    @property
    def ttl(self) -> int:
        return self._ttl

    def key(self, tool_name: str, chain_id: int, address: str) -> str:
        return f"{self._prefix}{tool_name}:{chain_id}:{address.lower()}"

    async def get(self, tool_name: str, chain_id: int, address: str) -> dict[str, Any] | None:
        key = self.key(tool_name, chain_id, address)
        try:
            raw = await self._client.get(key)
        except Exception as exc:  # noqa: BLE001 - cache is best effort
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw.decode() if isinstance(raw, bytes) else raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, tool_name: str, chain_id: int, address: str, value: dict[str, Any]) -> None:
        key = self.key(tool_name, chain_id, address)
        try:
            await self._client.setex(key, self._ttl, json.dumps(value))
        except Exception as exc:  # noqa: BLE001 - cache is best effort
            logger.warning("Cache set failed for %s: %s", key, exc)


@lru_cache(maxsize=1)
def get_cache() -> ResponseCache | None:
    """Process-wide cache, or ``None`` when ``REDIS_URL`` is not configured."""
    settings = get_settings()
    if not settings.redis_url:
        return None
    logger.info("Response cache enabled (ttl=%ss)", settings.cache_ttl_seconds)
    return ResponseCache.from_url(settings.redis_url, ttl=settings.cache_ttl_seconds)
