"""
Dependencies - Food Safety Audit Engine
audit_engine/core/dependencies.py

FastAPI dependency injection for the pool, repositories and engine services.
The pool is opened at startup and stored on app.state.
"""

from typing import Optional

from fastapi import Depends, Request

from audit_engine.core.exceptions import DatabaseConnectionException
from audit_engine.repositories.audit_repository import AuditRepository, ResponseRepository
from audit_engine.repositories.exclusion_repository import ExclusionRepository
from audit_engine.repositories.section_score_repository import SectionScoreRepository
from audit_engine.repositories.threshold_repository import ThresholdRepository
from audit_engine.services.audit_lifecycle_service import AuditLifecycleController
from audit_engine.services.cache import get_cache
from audit_engine.services.exclusion_service import ExclusionLedger
from audit_engine.services.redis_cache import RedisCache
from audit_engine.services.snowflake import SnowflakeConnectionPool
from audit_engine.services.threshold_service import ThresholdResolver


def get_pool(request: Request) -> SnowflakeConnectionPool:
    """Pool opened by the startup handler."""
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise DatabaseConnectionException("Connection pool has not been initialised")
    return pool


def get_redis_cache() -> Optional[RedisCache]:
    """Redis cache, or None when Redis is unreachable."""
    return get_cache()


def get_audit_repository(pool: SnowflakeConnectionPool = Depends(get_pool)) -> AuditRepository:
    return AuditRepository(pool)


def get_response_repository(pool: SnowflakeConnectionPool = Depends(get_pool)) -> ResponseRepository:
    return ResponseRepository(pool)


def get_section_score_repository(pool: SnowflakeConnectionPool = Depends(get_pool)) -> SectionScoreRepository:
    return SectionScoreRepository(pool)


def get_exclusion_repository(pool: SnowflakeConnectionPool = Depends(get_pool)) -> ExclusionRepository:
    return ExclusionRepository(pool)


def get_threshold_repository(pool: SnowflakeConnectionPool = Depends(get_pool)) -> ThresholdRepository:
    return ThresholdRepository(pool)


def get_threshold_resolver(
    threshold_repo: ThresholdRepository = Depends(get_threshold_repository),
    cache: Optional[RedisCache] = Depends(get_redis_cache),
) -> ThresholdResolver:
    return ThresholdResolver(threshold_repo, cache=cache)


def get_exclusion_ledger(
    audit_repo: AuditRepository = Depends(get_audit_repository),
    response_repo: ResponseRepository = Depends(get_response_repository),
    section_score_repo: SectionScoreRepository = Depends(get_section_score_repository),
    exclusion_repo: ExclusionRepository = Depends(get_exclusion_repository),
    threshold_resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> ExclusionLedger:
    return ExclusionLedger(
        audit_repo,
        response_repo,
        section_score_repo,
        exclusion_repo,
        threshold_resolver,
    )


def get_audit_lifecycle_controller(
    audit_repo: AuditRepository = Depends(get_audit_repository),
    response_repo: ResponseRepository = Depends(get_response_repository),
    section_score_repo: SectionScoreRepository = Depends(get_section_score_repository),
    threshold_resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> AuditLifecycleController:
    return AuditLifecycleController(
        audit_repo,
        response_repo,
        section_score_repo,
        threshold_resolver,
    )
