"""
Threshold Resolver - Food Safety Audit Engine
audit_engine/services/threshold_service.py

Resolves pass/fail percentage thresholds per schema and section.

Lookup order for get_passing_grade():
  1. Redis (when reachable)
  2. SYSTEM_SETTINGS row for (schema, Section, section_id) or (schema, Overall)
  3. DEFAULT_PASSING_GRADE (83)

A failed lookup never raises: it logs a warning and returns the default.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import redis
import structlog

from audit_engine.config import Settings, get_settings
from audit_engine.core.exceptions import EntityNotFoundException
from audit_engine.models.enumerations import Classification, SettingType
from audit_engine.models.settings import (
    PassingGradeSetting,
    SaveResult,
    SchemaSettingsRequest,
    SchemaSettingsResponse,
    SectionPassingGrade,
)
from audit_engine.repositories.threshold_repository import ThresholdRepository
from audit_engine.services.cache import passing_grade_key, schema_pattern
from audit_engine.services.redis_cache import RedisCache

logger = structlog.get_logger(__name__)


def classify(
    score: Optional[Union[Decimal, float]],
    passing_grade: Union[int, float],
) -> Optional[Classification]:
    """PASS when score >= passing_grade, FAIL otherwise, None for an undefined score."""
    if score is None:
        return None
    return Classification.PASS if Decimal(str(score)) >= Decimal(str(passing_grade)) else Classification.FAIL


class ThresholdResolver:
    """Passing-grade lookups and bulk settings saves."""

    def __init__(
        self,
        threshold_repo: ThresholdRepository,
        cache: Optional[RedisCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.threshold_repo = threshold_repo
        self.cache = cache
        self.settings = settings or get_settings()

    @property
    def default_grade(self) -> int:
        return self.settings.DEFAULT_PASSING_GRADE

    def get_passing_grade(self, schema_id: int, section_id: Optional[int] = None) -> int:
        """
        Passing grade for a schema, or for one of its sections.

        Always returns a usable number.
        """
        key = passing_grade_key(schema_id, section_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached.passing_grade

        setting_type = SettingType.SECTION if section_id is not None else SettingType.OVERALL
        try:
            grade = self.threshold_repo.get_passing_grade(schema_id, setting_type, section_id)
        except Exception as e:
            # scoring must never fail on a settings lookup
            logger.warning(
                "passing_grade_lookup_failed",
                schema_id=schema_id,
                section_id=section_id,
                error=str(e),
                error_type=type(e).__name__,
                fallback=self.default_grade,
            )
            return self.default_grade

        if grade is None:
            return self.default_grade

        self._cache_set(key, schema_id, setting_type, section_id, grade)
        return grade

    def get_schema_settings(self, schema_id: int) -> SchemaSettingsResponse:
        """Overall grade plus every active section with its grade."""
        schema = self.threshold_repo.get_schema(schema_id)
        if schema is None:
            raise EntityNotFoundException("Schema", schema_id)
        return self._schema_settings(schema)

    def list_schema_settings(self) -> List[SchemaSettingsResponse]:
        """Every active schema with its overall and section grades, ordered by name."""
        return [self._schema_settings(schema) for schema in self.threshold_repo.list_active_schemas()]

    def _schema_settings(self, schema: Dict[str, Any]) -> SchemaSettingsResponse:
        schema_id = schema["schema_id"]
        sections = [
            SectionPassingGrade(
                section_id=row["section_id"],
                section_name=row.get("section_name"),
                section_number=row.get("section_number"),
                passing_grade=row["passing_grade"] if row.get("passing_grade") is not None else self.default_grade,
            )
            for row in self.threshold_repo.get_schema_sections(schema_id)
        ]

        return SchemaSettingsResponse(
            schema_id=schema_id,
            schema_name=schema["schema_name"],
            description=schema.get("description"),
            overall_passing_grade=self.get_passing_grade(schema_id),
            sections=sections,
        )

    def save_schema_settings(self, schema_id: int, request: SchemaSettingsRequest) -> SaveResult:
        """
        Upsert the overall grade and every listed section grade in one transaction.

        Raises:
            EntityNotFoundException: unknown schema, or a section outside it
            PersistenceFailureException: the transaction was rolled back
        """
        if self.threshold_repo.get_schema(schema_id) is None:
            raise EntityNotFoundException("Schema", schema_id)

        names = {
            row["section_id"]: row.get("section_name")
            for row in self.threshold_repo.get_schema_sections(schema_id)
        }
        for section in request.sections:
            if section.section_id not in names:
                raise EntityNotFoundException("Section", section.section_id)

        now = datetime.now(timezone.utc)
        outcomes = []
        with self.threshold_repo.transaction() as cursor:
            if request.overall_passing_grade is not None:
                outcomes.append(
                    self.threshold_repo.upsert(
                        cursor,
                        schema_id,
                        SettingType.OVERALL,
                        request.overall_passing_grade,
                        request.updated_by,
                        now,
                        entity_name="Overall",
                    )
                )
            for section in request.sections:
                outcomes.append(
                    self.threshold_repo.upsert(
                        cursor,
                        schema_id,
                        SettingType.SECTION,
                        section.passing_grade,
                        request.updated_by,
                        now,
                        entity_id=section.section_id,
                        entity_name=section.section_name or names[section.section_id],
                    )
                )

        self._invalidate(schema_id)
        logger.info(
            "schema_settings_saved",
            schema_id=schema_id,
            updated_by=request.updated_by,
            updated=outcomes.count("updated"),
            inserted=outcomes.count("inserted"),
        )
        return SaveResult(success=True)

    # -------------------------
    # Cache helpers
    # -------------------------
    def _cache_get(self, key: str) -> Optional[PassingGradeSetting]:
        if not self.cache:
            return None
        try:
            return self.cache.get(key, PassingGradeSetting)
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

    def _cache_set(
        self,
        key: str,
        schema_id: int,
        setting_type: SettingType,
        section_id: Optional[int],
        grade: int,
    ) -> None:
        if not self.cache:
            return
        value = PassingGradeSetting(
            schema_id=schema_id,
            setting_type=setting_type,
            entity_id=section_id,
            passing_grade=grade,
        )
        try:
            self.cache.set(key, value, self.settings.CACHE_TTL_PASSING_GRADE)
        except redis.RedisError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    def _invalidate(self, schema_id: int) -> None:
        if not self.cache:
            return
        try:
            self.cache.delete_pattern(schema_pattern(schema_id))
        except redis.RedisError as e:
            logger.warning("cache_invalidate_failed", schema_id=schema_id, error=str(e))
