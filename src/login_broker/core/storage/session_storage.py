"""Session storage interface and implementations.

Provides a unified interface for storing challenge state and local sessions
with Redis-first approach and in-memory fallback.
"""

from __future__ import annotations

import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)


class SessionStorage(ABC):
    """Abstract interface for session storage backends."""

    @abstractmethod
    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store a value with TTL.

        Args:
            key: Storage key
            value: Session data (Pydantic model)
            ttl_seconds: Time to live in seconds
        """

    @abstractmethod
    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve a value.

        Args:
            key: Storage key
            model_class: Pydantic model class to deserialize to

        Returns:
            Session data or None if not found/expired
        """

    @abstractmethod
    async def pop(self, key: str, model_class: type[T]) -> T | None:
        """Atomically retrieve and delete a value.

        Only one of several concurrent callers can receive the value.

        Args:
            key: Storage key
            model_class: Pydantic model class to deserialize to

        Returns:
            Session data or None if not found/expired
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a value.

        Args:
            key: Storage key
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a non-expired value exists under key."""

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Clean up expired values.

        Returns:
            Number of values cleaned up
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if storage backend is available."""


class InMemorySessionStorage(SessionStorage):
    """In-memory session storage with TTL support."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store value in memory with expiration."""
        entry = {
            "data": json.loads(value.model_dump_json()),
            "expires_at": time.time() + ttl_seconds,
        }
        with self._lock:
            self._data[key] = entry

    def _live_entry(self, key: str) -> dict[str, Any] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if time.time() > entry["expires_at"]:
            del self._data[key]
            return None
        return entry

    def _load(self, key: str, entry: dict[str, Any], model_class: type[T]) -> T | None:
        try:
            return model_class.model_validate(entry["data"])
        except ValidationError:
            logger.warning(f"Discarding corrupted session data under {key.split(':', 1)[0]}")
            return None

    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve value from memory if not expired."""
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return None
        value = self._load(key, entry, model_class)
        if value is None:
            await self.delete(key)
        return value

    async def pop(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve and remove value from memory."""
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return None
            del self._data[key]
        return self._load(key, entry, model_class)

    async def delete(self, key: str) -> None:
        """Delete value from memory."""
        with self._lock:
            self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        """Check if value exists and is not expired."""
        with self._lock:
            return self._live_entry(key) is not None

    async def cleanup_expired(self) -> int:
        """Remove expired values from memory."""
        now = time.time()
        with self._lock:
            expired_keys = [
                key for key, entry in self._data.items() if now > entry["expires_at"]
            ]
            for key in expired_keys:
                del self._data[key]

        return len(expired_keys)

    def is_available(self) -> bool:
        """In-memory storage is always available."""
        return True


class RedisSessionStorage(SessionStorage):
    """Redis-based session storage with serialization."""

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._available = True

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store value in Redis with TTL."""
        try:
            await self._redis.setex(key, ttl_seconds, value.model_dump_json())
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis set failed: {e}") from e

    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve value from Redis."""
        try:
            data = await self._redis.get(key)
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis get failed: {e}") from e
        return self._decode(data, model_class)

    async def pop(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve and delete value with GETDEL."""
        try:
            data = await self._redis.getdel(key)
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis getdel failed: {e}") from e
        return self._decode(data, model_class)

    def _decode(self, data: str | bytes | None, model_class: type[T]) -> T | None:
        self._available = True
        if data is None:
            return None

        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            return model_class.model_validate_json(data)
        except ValidationError:
            logger.warning("Discarding corrupted session data from Redis")
            return None

    async def delete(self, key: str) -> None:
        """Delete value from Redis."""
        try:
            await self._redis.delete(key)
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis delete failed: {e}") from e

    async def exists(self, key: str) -> bool:
        """Check if value exists in Redis."""
        try:
            result = await self._redis.exists(key)
            self._available = True
            return bool(result)
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis exists failed: {e}") from e

    async def cleanup_expired(self) -> int:
        """Redis handles expiration automatically."""
        return 0

    def is_available(self) -> bool:
        """Check if Redis connection is healthy."""
        return self._available

    async def ping(self) -> bool:
        """Test Redis connection health."""
        try:
            await self._redis.ping()
            self._available = True
            return True
        except Exception:
            self._available = False
            return False

    async def close(self) -> None:
        await self._redis.aclose()


async def create_session_storage() -> SessionStorage:
    """Create Redis storage when configured and reachable, in-memory otherwise."""
    from src.login_broker.runtime.context import get_config

    config = get_config()
    if not config.redis.enabled or not config.redis.url:
        logger.info("Session storage: Redis not configured, using in-memory storage")
        return InMemorySessionStorage()

    import redis.asyncio as redis

    redis_client = redis.from_url(
        config.redis.connection_string,
        encoding="utf-8",
        decode_responses=config.redis.decode_responses,
        socket_connect_timeout=2,
        socket_timeout=2,
    )

    redis_storage = RedisSessionStorage(redis_client)
    if await redis_storage.ping():
        logger.info("Session storage: Redis connected")
        return redis_storage

    if config.app.environment == "production":
        raise RuntimeError("Redis session storage configured but unreachable")

    logger.warning("Redis unavailable, using in-memory session storage")
    return InMemorySessionStorage()
