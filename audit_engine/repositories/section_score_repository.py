"""
Section Score Repository - Food Safety Audit Engine
audit_engine/repositories/section_score_repository.py

Data access layer for the section-score snapshot written at audit completion.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from audit_engine.models.audit import SectionScoreRecord
from audit_engine.repositories.base import BaseRepository
from audit_engine.scoring.section_scorer import SectionScoreResult

logger = logging.getLogger(__name__)


class SectionScoreRepository(BaseRepository):
    """Repository for AUDIT_SECTION_SCORES."""

    TABLE_NAME = "AUDIT_SECTION_SCORES"

    def get_by_audit_id(self, audit_id: int) -> List[SectionScoreRecord]:
        """
        Retrieve the snapshot rows of an audit.

        Args:
            audit_id: Audit identifier

        Returns:
            List of SectionScoreRecord ordered by section number
        """
        sql = """
            SELECT AUDIT_ID, SECTION_ID, SECTION_NUMBER, SECTION_NAME,
                   EARNED_SCORE, MAX_SCORE, PERCENTAGE,
                   TOTAL_QUESTIONS, ANSWERED_QUESTIONS, NA_QUESTIONS, CREATED_AT
            FROM AUDIT_SECTION_SCORES
            WHERE AUDIT_ID = %s
            ORDER BY SECTION_NUMBER, SECTION_ID
        """
        rows = self.execute_query(sql, (audit_id,), fetch_all=True) or []
        return [self._row_to_record(row) for row in rows]

    def replace_for_audit(
        self,
        cursor: Any,
        audit_id: int,
        scores: List[SectionScoreResult],
        created_at: datetime,
    ) -> Dict[str, int]:
        """
        Make the stored snapshot equal to `scores`, inside the caller's transaction.

        The current rows are diffed against the new set: sections that
        disappeared are deleted first, surviving sections are updated, new
        ones are inserted. Nothing from a previous run survives.

        Returns:
            Counts of deleted / updated / inserted rows
        """
        rows = self.execute_query(
            "SELECT SECTION_ID FROM AUDIT_SECTION_SCORES WHERE AUDIT_ID = %s",
            (audit_id,),
            fetch_all=True,
            cursor=cursor,
        ) or []
        existing = {row["SECTION_ID"] for row in rows}
        wanted = {score.section_id for score in scores}

        stale = sorted(existing - wanted)
        if stale:
            sql = f"""
                DELETE FROM AUDIT_SECTION_SCORES
                WHERE AUDIT_ID = %s AND SECTION_ID IN ({self.in_clause(stale)})
            """
            self.execute_query(sql, (audit_id, *stale), cursor=cursor)

        updated = inserted = 0
        for score in scores:
            values = (
                score.section_number,
                score.section_name,
                score.earned_points,
                score.max_points,
                score.percentage,
                score.total_questions,
                score.answered_questions,
                score.na_questions,
                created_at,
            )
            if score.section_id in existing:
                sql = """
                    UPDATE AUDIT_SECTION_SCORES
                    SET SECTION_NUMBER = %s, SECTION_NAME = %s,
                        EARNED_SCORE = %s, MAX_SCORE = %s, PERCENTAGE = %s,
                        TOTAL_QUESTIONS = %s, ANSWERED_QUESTIONS = %s, NA_QUESTIONS = %s,
                        CREATED_AT = %s
                    WHERE AUDIT_ID = %s AND SECTION_ID = %s
                """
                self.execute_query(sql, (*values, audit_id, score.section_id), cursor=cursor)
                updated += 1
            else:
                sql = """
                    INSERT INTO AUDIT_SECTION_SCORES (
                        AUDIT_ID, SECTION_ID, SECTION_NUMBER, SECTION_NAME,
                        EARNED_SCORE, MAX_SCORE, PERCENTAGE,
                        TOTAL_QUESTIONS, ANSWERED_QUESTIONS, NA_QUESTIONS, CREATED_AT
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """
                self.execute_query(sql, (audit_id, score.section_id, *values), cursor=cursor)
                inserted += 1

        counts = {"deleted": len(stale), "updated": updated, "inserted": inserted}
        logger.info("section_scores_replaced", extra={"audit_id": audit_id, **counts})
        return counts

    def _row_to_record(self, row: Dict[str, Any]) -> SectionScoreRecord:
        return SectionScoreRecord(
            audit_id=row["AUDIT_ID"],
            section_id=row["SECTION_ID"],
            section_number=row["SECTION_NUMBER"],
            section_name=row["SECTION_NAME"] or "",
            earned_points=float(row["EARNED_SCORE"] or 0),
            max_points=float(row["MAX_SCORE"] or 0),
            percentage=float(row["PERCENTAGE"] or 0),
            total_questions=int(row["TOTAL_QUESTIONS"] or 0),
            answered_questions=int(row["ANSWERED_QUESTIONS"] or 0),
            na_questions=int(row["NA_QUESTIONS"] or 0),
            created_at=self.normalize_timestamp(row["CREATED_AT"]),
        )
