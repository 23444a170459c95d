"""
services/ - connection pool, cache and engine services

Modules:
    snowflake.py                - SnowflakeConnectionPool (open/close, connection, transaction)
    redis_cache.py / cache.py   - Redis cache with graceful degradation
    threshold_service.py        - ThresholdResolver, classify()
    exclusion_service.py        - ExclusionLedger
    audit_lifecycle_service.py  - AuditLifecycleController
"""
