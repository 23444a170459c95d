"""
Passing-grade cache - Food Safety Audit Engine
audit_engine/services/cache.py

Process-wide RedisCache plus the key layout of cached passing grades:

    passing_grade:{schema_id}:overall
    passing_grade:{schema_id}:{section_id}

get_cache() returns None while Redis is unreachable; callers then read the
settings table directly. After a failed ping no reconnect is attempted for
CACHE_RETRY_SECONDS.
"""
import time
import redis
from typing import Optional
from audit_engine.services.redis_cache import RedisCache
from audit_engine.config import settings

_cache: Optional[RedisCache] = None
_retry_at: float = 0.0


def passing_grade_key(schema_id: int, section_id: Optional[int] = None) -> str:
    scope = section_id if section_id is not None else "overall"
    return f"passing_grade:{schema_id}:{scope}"


def schema_pattern(schema_id: int) -> str:
    """Matches every cached grade of one schema."""
    return f"passing_grade:{schema_id}:*"


def get_cache() -> Optional[RedisCache]:
    """Shared RedisCache, created on first use; None if the ping fails."""
    global _cache, _retry_at
    if _cache is None:
        if time.monotonic() < _retry_at:
            return None
        try:
            _cache = RedisCache()
            _cache.ping()
        except (redis.RedisError, ConnectionError):
            _cache = None
            _retry_at = time.monotonic() + settings.CACHE_RETRY_SECONDS
    return _cache


def reset_cache() -> None:
    """Forget the shared instance so the next get_cache() reconnects."""
    global _cache, _retry_at
    _cache = None
    _retry_at = 0.0
