"""Redis cache backend implementing ICacheBackend."""

from __future__ import annotations

import redis

from benchrecon.core.exceptions import CacheError


class RedisCacheBackend:
    """ICacheBackend backed by Redis, used as the mapping store's read-through cache."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 client: redis.Redis | None = None) -> None:
        self._client = client if client is not None else redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode()
        return value

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(key, ttl, value)
        except redis.RedisError as exc:
            raise CacheError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise CacheError(f"Redis DELETE failed for key={key!r}: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as exc:
            raise CacheError(f"Redis PING failed: {exc}") from exc
