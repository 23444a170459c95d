"""
Repositories Package - Food Safety Audit Engine
audit_engine/repositories/__init__.py

Data access layer for Snowflake database operations.
"""

from audit_engine.repositories.base import BaseRepository
from audit_engine.repositories.audit_repository import AuditRepository, ResponseRepository
from audit_engine.repositories.section_score_repository import SectionScoreRepository
from audit_engine.repositories.exclusion_repository import ExclusionRepository
from audit_engine.repositories.threshold_repository import ThresholdRepository

__all__ = [
    "BaseRepository",
    "AuditRepository",
    "ResponseRepository",
    "SectionScoreRepository",
    "ExclusionRepository",
    "ThresholdRepository",
]
