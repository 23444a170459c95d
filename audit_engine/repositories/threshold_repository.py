"""
Threshold Repository - Food Safety Audit Engine
audit_engine/repositories/threshold_repository.py

Data access layer for passing-grade settings (SYSTEM_SETTINGS) and the
schema/section catalog they are keyed on.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from audit_engine.models.enumerations import SettingType
from audit_engine.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

GRADE_MIN, GRADE_MAX = 0, 100


def usable_grade(value: Any, **context: Any) -> Optional[int]:
    """Stored PASSING_GRADE as an int, or None when unset or outside 0..100."""
    if value is None:
        return None
    grade = int(value)
    if not GRADE_MIN <= grade <= GRADE_MAX:
        logger.warning("Ignoring out-of-range passing grade", extra={"passing_grade": grade, **context})
        return None
    return grade


class ThresholdRepository(BaseRepository):
    """Repository for SYSTEM_SETTINGS passing grades."""

    TABLE_NAME = "SYSTEM_SETTINGS"

    def get_passing_grade(
        self,
        schema_id: int,
        setting_type: SettingType,
        entity_id: Optional[int] = None,
    ) -> Optional[int]:
        """
        Look up one configured passing grade.

        Returns:
            The grade, or None when no row is configured or it is out of range
        """
        if setting_type == SettingType.SECTION:
            sql = """
                SELECT PASSING_GRADE FROM SYSTEM_SETTINGS
                WHERE SCHEMA_ID = %s AND SETTING_TYPE = %s AND ENTITY_ID = %s
            """
            params = (schema_id, setting_type.value, entity_id)
        else:
            sql = """
                SELECT PASSING_GRADE FROM SYSTEM_SETTINGS
                WHERE SCHEMA_ID = %s AND SETTING_TYPE = %s
            """
            params = (schema_id, setting_type.value)

        row = self.execute_query(sql, params, fetch_one=True)
        if not row:
            return None
        return usable_grade(row["PASSING_GRADE"], schema_id=schema_id, entity_id=entity_id)

    def upsert(
        self,
        cursor: Any,
        schema_id: int,
        setting_type: SettingType,
        passing_grade: int,
        updated_by: str,
        updated_at: datetime,
        entity_id: Optional[int] = None,
        entity_name: Optional[str] = None,
    ) -> str:
        """
        Update the (schema, type, entity) row, or insert it when absent.

        Runs inside the caller's transaction.

        Returns:
            "updated" or "inserted"
        """
        if setting_type == SettingType.SECTION:
            where = "SCHEMA_ID = %s AND SETTING_TYPE = %s AND ENTITY_ID = %s"
            key = (schema_id, setting_type.value, entity_id)
        else:
            where = "SCHEMA_ID = %s AND SETTING_TYPE = %s"
            key = (schema_id, setting_type.value)

        sql = f"""
            UPDATE SYSTEM_SETTINGS
            SET PASSING_GRADE = %s, UPDATED_BY = %s, UPDATED_AT = %s
            WHERE {where}
        """
        updated = self.execute_query(sql, (passing_grade, updated_by, updated_at, *key), cursor=cursor)
        if updated:
            return "updated"

        sql = """
            INSERT INTO SYSTEM_SETTINGS (
                SCHEMA_ID, SETTING_TYPE, ENTITY_ID, ENTITY_NAME,
                PASSING_GRADE, UPDATED_BY, UPDATED_AT
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            schema_id,
            setting_type.value,
            entity_id,
            entity_name,
            passing_grade,
            updated_by,
            updated_at,
        )
        self.execute_query(sql, params, cursor=cursor)
        return "inserted"

    def get_schema(self, schema_id: int) -> Optional[Dict[str, Any]]:
        """Schema header or None."""
        sql = """
            SELECT SCHEMA_ID, SCHEMA_NAME, DESCRIPTION
            FROM AUDIT_SCHEMAS WHERE SCHEMA_ID = %s
        """
        row = self.execute_query(sql, (schema_id,), fetch_one=True)
        return self.row_to_dict(row) if row else None

    def list_active_schemas(self) -> List[Dict[str, Any]]:
        """Active schemas ordered by name."""
        sql = """
            SELECT SCHEMA_ID, SCHEMA_NAME, DESCRIPTION
            FROM AUDIT_SCHEMAS
            WHERE IS_ACTIVE = TRUE
            ORDER BY SCHEMA_NAME
        """
        rows = self.execute_query(sql, fetch_all=True) or []
        return [self.row_to_dict(row) for row in rows]

    def get_schema_sections(self, schema_id: int) -> List[Dict[str, Any]]:
        """
        Active sections of a schema with their configured grade (None if unset).
        """
        sql = """
            SELECT s.SECTION_ID, s.SECTION_NAME, s.SECTION_NUMBER, ss.PASSING_GRADE
            FROM AUDIT_SECTIONS s
            LEFT JOIN SYSTEM_SETTINGS ss ON ss.SCHEMA_ID = s.SCHEMA_ID
                AND ss.SETTING_TYPE = 'Section'
                AND ss.ENTITY_ID = s.SECTION_ID
            WHERE s.SCHEMA_ID = %s AND s.IS_ACTIVE = TRUE
            ORDER BY s.SECTION_NUMBER
        """
        rows = self.execute_query(sql, (schema_id,), fetch_all=True) or []
        sections = []
        for row in rows:
            data = self.row_to_dict(row)
            data["passing_grade"] = usable_grade(
                data.get("passing_grade"), schema_id=schema_id, entity_id=data.get("section_id")
            )
            sections.append(data)
        return sections
