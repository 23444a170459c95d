"""
Exclusion Repository - Food Safety Audit Engine
audit_engine/repositories/exclusion_repository.py

Data access layer for the current exclusion state (AUDIT_SCORE_EXCLUSIONS)
and its append-only change log (AUDIT_SCORE_EXCLUSION_HISTORY).
History rows are only ever inserted; nothing here updates or deletes them.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from audit_engine.models.audit import ExclusionHistoryEntry, ExclusionStats
from audit_engine.models.enumerations import ExclusionAction
from audit_engine.repositories.base import BaseRepository


class ExclusionRepository(BaseRepository):
    """Repository for section exclusions and their history."""

    TABLE_NAME = "AUDIT_SCORE_EXCLUSIONS"
    HISTORY_TABLE_NAME = "AUDIT_SCORE_EXCLUSION_HISTORY"

    # =====================================================================
    # Current state
    # =====================================================================

    def get_excluded_section_ids(self, audit_id: int, cursor: Optional[Any] = None) -> Set[int]:
        """Section IDs currently excluded from the audit total."""
        sql = """
            SELECT SECTION_ID FROM AUDIT_SCORE_EXCLUSIONS
            WHERE AUDIT_ID = %s AND IS_EXCLUDED = TRUE
        """
        rows = self.execute_query(sql, (audit_id,), fetch_all=True, cursor=cursor) or []
        return {row["SECTION_ID"] for row in rows}

    def delete_sections(self, cursor: Any, audit_id: int, section_ids: Iterable[int]) -> int:
        """Remove exclusion rows for the given sections."""
        ids = sorted(section_ids)
        if not ids:
            return 0
        sql = f"""
            DELETE FROM AUDIT_SCORE_EXCLUSIONS
            WHERE AUDIT_ID = %s AND SECTION_ID IN ({self.in_clause(ids)})
        """
        return self.execute_query(sql, (audit_id, *ids), cursor=cursor)

    def insert_sections(
        self,
        cursor: Any,
        audit_id: int,
        section_ids: Iterable[int],
        created_by: str,
        created_at: datetime,
    ) -> int:
        """Insert one exclusion row per section."""
        sql = """
            INSERT INTO AUDIT_SCORE_EXCLUSIONS (AUDIT_ID, SECTION_ID, IS_EXCLUDED, CREATED_BY, CREATED_AT)
            VALUES (%s, %s, TRUE, %s, %s)
        """
        count = 0
        for section_id in sorted(section_ids):
            self.execute_query(sql, (audit_id, section_id, created_by, created_at), cursor=cursor)
            count += 1
        return count

    # =====================================================================
    # History
    # =====================================================================

    def append_history(self, cursor: Any, entries: List[ExclusionHistoryEntry]) -> int:
        """Append history rows inside the caller's transaction."""
        sql = """
            INSERT INTO AUDIT_SCORE_EXCLUSION_HISTORY (
                AUDIT_ID, SECTION_ID, SECTION_NAME, ACTION,
                ORIGINAL_SCORE, ADJUSTED_SCORE, CHANGED_BY, CHANGED_AT
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        """
        for entry in entries:
            params = (
                entry.audit_id,
                entry.section_id,
                entry.section_name,
                entry.action.value,
                entry.original_score,
                entry.adjusted_score,
                entry.changed_by,
                entry.changed_at,
            )
            self.execute_query(sql, params, cursor=cursor)
        return len(entries)

    def get_history(self, audit_id: int, limit: Optional[int] = None) -> List[ExclusionHistoryEntry]:
        """
        History of one audit, newest first.

        Args:
            audit_id: Audit identifier
            limit: Optional maximum number of rows
        """
        sql = """
            SELECT HISTORY_ID, AUDIT_ID, SECTION_ID, SECTION_NAME, ACTION,
                   ORIGINAL_SCORE, ADJUSTED_SCORE, CHANGED_BY, CHANGED_AT
            FROM AUDIT_SCORE_EXCLUSION_HISTORY
            WHERE AUDIT_ID = %s
            ORDER BY CHANGED_AT DESC, HISTORY_ID DESC
        """
        params: List[Any] = [audit_id]
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)

        rows = self.execute_query(sql, tuple(params), fetch_all=True) or []
        return [self._row_to_entry(row) for row in rows]

    def search_history(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        changed_by: Optional[str] = None,
        audit_id: Optional[int] = None,
        limit: int = 500,
    ) -> List[ExclusionHistoryEntry]:
        """History across audits with optional filters, newest first."""
        where_clauses = ["1=1"]
        params: List[Any] = []

        if start_date:
            where_clauses.append("h.CHANGED_AT >= %s")
            params.append(start_date)
        if end_date:
            where_clauses.append("h.CHANGED_AT <= %s")
            params.append(end_date)
        if changed_by:
            where_clauses.append("h.CHANGED_BY ILIKE %s")
            params.append(f"%{changed_by}%")
        if audit_id is not None:
            where_clauses.append("h.AUDIT_ID = %s")
            params.append(audit_id)

        params.append(limit)
        sql = f"""
            SELECT h.HISTORY_ID, h.AUDIT_ID, a.DOCUMENT_NUMBER, a.STORE_NAME,
                   h.SECTION_ID, h.SECTION_NAME, h.ACTION,
                   h.ORIGINAL_SCORE, h.ADJUSTED_SCORE, h.CHANGED_BY, h.CHANGED_AT
            FROM AUDIT_SCORE_EXCLUSION_HISTORY h
            LEFT JOIN AUDIT_INSTANCES a ON h.AUDIT_ID = a.AUDIT_ID
            WHERE {' AND '.join(where_clauses)}
            ORDER BY h.CHANGED_AT DESC, h.HISTORY_ID DESC
            LIMIT %s
        """
        rows = self.execute_query(sql, tuple(params), fetch_all=True) or []
        return [self._row_to_entry(row) for row in rows]

    def get_stats(self) -> ExclusionStats:
        """Summary counts over the whole history table."""
        sql = """
            SELECT
                COUNT(DISTINCT AUDIT_ID) AS AUDITS_WITH_EXCLUSIONS,
                COUNT(*) AS TOTAL_CHANGES,
                COUNT(CASE WHEN ACTION = 'Excluded' THEN 1 END) AS TOTAL_EXCLUSIONS,
                COUNT(CASE WHEN ACTION = 'Included' THEN 1 END) AS TOTAL_INCLUSIONS,
                COUNT(DISTINCT CHANGED_BY) AS UNIQUE_USERS,
                MIN(CHANGED_AT) AS FIRST_CHANGE,
                MAX(CHANGED_AT) AS LAST_CHANGE
            FROM AUDIT_SCORE_EXCLUSION_HISTORY
        """
        row = self.execute_query(sql, fetch_one=True)
        if not row:
            return ExclusionStats()

        data = self.row_to_dict(row)
        return ExclusionStats(
            audits_with_exclusions=data["audits_with_exclusions"] or 0,
            total_changes=data["total_changes"] or 0,
            total_exclusions=data["total_exclusions"] or 0,
            total_inclusions=data["total_inclusions"] or 0,
            unique_users=data["unique_users"] or 0,
            first_change=self.normalize_timestamp(data["first_change"]),
            last_change=self.normalize_timestamp(data["last_change"]),
        )

    def _row_to_entry(self, row: Dict[str, Any]) -> ExclusionHistoryEntry:
        data = self.row_to_dict(row)
        return ExclusionHistoryEntry(
            history_id=data.get("history_id"),
            audit_id=data["audit_id"],
            section_id=data["section_id"],
            section_name=data.get("section_name") or "Unknown",
            action=ExclusionAction(data["action"]),
            original_score=float(data["original_score"]) if data.get("original_score") is not None else None,
            adjusted_score=float(data["adjusted_score"]) if data.get("adjusted_score") is not None else None,
            changed_by=data["changed_by"],
            changed_at=self.normalize_timestamp(data["changed_at"]),
            document_number=data.get("document_number"),
            store_name=data.get("store_name"),
        )
