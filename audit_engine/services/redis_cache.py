"""
Redis Cache - Food Safety Audit Engine
audit_engine/services/redis_cache.py

JSON cache of pydantic records with a per-key TTL.
"""
import logging
from typing import Optional, Type, TypeVar

import redis
from pydantic import BaseModel, ValidationError

from audit_engine.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    def __init__(self, url: Optional[str] = None, connect_timeout: int = 5):
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
        )

    def ping(self) -> bool:
        return bool(self.client.ping())

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Cached record, or None on a miss or an entry that no longer parses."""
        data = self.client.get(key)
        if not data:
            return None
        try:
            return model.model_validate_json(data)
        except ValidationError:
            logger.warning("Dropping unreadable cache entry", extra={"key": key})
            self.client.delete(key)
            return None

    def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self.client.setex(key, ttl_seconds, value.model_dump_json())

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching pattern; returns the number removed."""
        keys = list(self.client.scan_iter(match=pattern))
        if not keys:
            return 0
        return self.client.delete(*keys)
