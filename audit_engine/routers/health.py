"""
Health Check Router - Food Safety Audit Engine
audit_engine/routers/health.py

Returns health status of the Snowflake pool and Redis.
"""
from datetime import datetime, timezone
from typing import Dict, Optional

import redis
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from snowflake.connector.errors import Error as SnowflakeError

from audit_engine.config import settings
from audit_engine.core.exceptions import RepositoryException
from audit_engine.services.cache import get_cache
from audit_engine.services.snowflake import SnowflakeConnectionPool

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]


def _short(error: Exception) -> str:
    msg = str(error)
    return msg[:100] + "..." if len(msg) > 100 else msg


#  Dependency Health Checks

def check_snowflake(pool: Optional[SnowflakeConnectionPool]) -> str:
    """Round-trip one pooled connection."""
    if pool is None or not pool.is_open:
        return "unhealthy: connection pool is not open"
    try:
        user = pool.ping()
        return f"healthy (User: {user})"
    except (RepositoryException, SnowflakeError) as e:
        return f"unhealthy: {_short(e)}"


def check_redis() -> str:
    """Redis is optional; an unreachable server degrades caching only."""
    cache = get_cache()
    if cache is None:
        return "unhealthy: Redis not configured or unreachable"
    try:
        cache.ping()
        return "healthy"
    except redis.RedisError as e:
        return f"unhealthy: {_short(e)}"


#  Main Health Check Route

@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Health check",
    description="Check health of all dependencies.",
)
def health_check(request: Request):
    """Check health of all dependencies."""
    dependencies = {
        "snowflake": check_snowflake(getattr(request.app.state, "pool", None)),
        "redis": check_redis(),
    }

    all_healthy = all(v.startswith("healthy") for v in dependencies.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        dependencies=dependencies,
    )

    if all_healthy:
        return response
    else:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
