"""
Audit Repository - Food Safety Audit Engine
audit_engine/repositories/audit_repository.py

Data access layer for audit headers and their item responses.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from audit_engine.models.audit import Audit, ItemResponse
from audit_engine.models.enumerations import AuditStatus
from audit_engine.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository):
    """Repository for audit header reads and the completion write."""

    TABLE_NAME = "AUDIT_INSTANCES"

    _SELECT = """
        SELECT a.AUDIT_ID, a.SCHEMA_ID, a.DOCUMENT_NUMBER, a.STORE_NAME,
               s.SCHEMA_NAME, a.AUDIT_DATE, a.STATUS, a.TOTAL_SCORE, a.COMPLETED_AT
        FROM AUDIT_INSTANCES a
        LEFT JOIN AUDIT_SCHEMAS s ON s.SCHEMA_ID = a.SCHEMA_ID
    """

    def get_by_id(self, audit_id: int, cursor: Optional[Any] = None) -> Optional[Audit]:
        """
        Retrieve an audit by ID.

        Args:
            audit_id: Audit identifier
            cursor: Optional transaction cursor

        Returns:
            Audit or None if not found
        """
        sql = self._SELECT + " WHERE a.AUDIT_ID = %s"
        row = self.execute_query(sql, (audit_id,), fetch_one=True, cursor=cursor)

        if not row:
            return None

        return self._row_to_audit(row)

    def list_all(self) -> List[Audit]:
        """Retrieve all audits, most recent first."""
        sql = self._SELECT + " ORDER BY a.AUDIT_DATE DESC, a.AUDIT_ID DESC"
        rows = self.execute_query(sql, fetch_all=True) or []
        return [self._row_to_audit(row) for row in rows]

    def mark_completed(
        self,
        cursor: Any,
        audit_id: int,
        total_score: Optional[float],
        completed_at: datetime,
    ) -> int:
        """
        Persist the completion outcome inside the caller's transaction.

        Returns:
            Number of rows updated
        """
        sql = """
            UPDATE AUDIT_INSTANCES
            SET STATUS = %s,
                TOTAL_SCORE = %s,
                COMPLETED_AT = %s
            WHERE AUDIT_ID = %s
        """
        return self.execute_query(
            sql,
            (AuditStatus.COMPLETED.value, total_score, completed_at, audit_id),
            cursor=cursor,
        )

    @staticmethod
    def _status(data: Dict[str, Any]) -> AuditStatus:
        status = AuditStatus.parse(data.get("status"))
        if status is None:
            logger.warning(
                "Unrecognised audit status, treating as in progress",
                extra={"audit_id": data.get("audit_id"), "status": data.get("status")},
            )
            return AuditStatus.IN_PROGRESS
        return status

    def _row_to_audit(self, row: Dict[str, Any]) -> Audit:
        data = self.row_to_dict(row)
        return Audit(
            audit_id=data["audit_id"],
            schema_id=data["schema_id"],
            document_number=data.get("document_number"),
            store_name=data.get("store_name"),
            schema_name=data.get("schema_name"),
            audit_date=data.get("audit_date"),
            status=self._status(data),
            total_score=float(data["total_score"]) if data.get("total_score") is not None else None,
            completed_at=self.normalize_timestamp(data.get("completed_at")),
        )


class ResponseRepository(BaseRepository):
    """Read-only access to the item responses of an audit."""

    TABLE_NAME = "AUDIT_RESPONSES"

    def get_by_audit_id(self, audit_id: int, cursor: Optional[Any] = None) -> List[ItemResponse]:
        """
        Retrieve every item response of an audit.

        Args:
            audit_id: Audit identifier
            cursor: Optional transaction cursor (completion reads inside its transaction)

        Returns:
            List of ItemResponse ordered by section and item
        """
        sql = """
            SELECT AUDIT_ID, SECTION_ID, SECTION_NUMBER, SECTION_NAME,
                   ITEM_ID, REFERENCE_VALUE, COEFF, SELECTED_CHOICE
            FROM AUDIT_RESPONSES
            WHERE AUDIT_ID = %s
            ORDER BY SECTION_NUMBER, SECTION_ID, ITEM_ID
        """
        rows = self.execute_query(sql, (audit_id,), fetch_all=True, cursor=cursor) or []

        return [
            ItemResponse(
                audit_id=row["AUDIT_ID"],
                section_id=row["SECTION_ID"],
                section_number=row["SECTION_NUMBER"],
                section_name=row["SECTION_NAME"] or "",
                item_id=row["ITEM_ID"],
                reference_value=row["REFERENCE_VALUE"],
                coefficient=row["COEFF"],
                selected_choice=row["SELECTED_CHOICE"],
            )
            for row in rows
        ]

    def get_section_catalog(self, schema_id: int) -> List[Dict[str, Any]]:
        """Active sections of a schema, listed even when an audit has no responses in them."""
        sql = """
            SELECT SECTION_ID, SECTION_NUMBER, SECTION_NAME
            FROM AUDIT_SECTIONS
            WHERE SCHEMA_ID = %s AND IS_ACTIVE = TRUE
            ORDER BY SECTION_NUMBER, SECTION_ID
        """
        rows = self.execute_query(sql, (schema_id,), fetch_all=True) or []
        return [self.row_to_dict(row) for row in rows]
