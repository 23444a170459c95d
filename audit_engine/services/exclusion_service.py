"""
Exclusion Ledger - Food Safety Audit Engine
audit_engine/services/exclusion_service.py

Current per-section exclusion state of an audit plus its append-only history.

save_exclusions() takes the complete desired excluded set and, in one
transaction:
  1. reads the current excluded set C (N = desired set)
  2. removes rows for C - N, then inserts rows for N - C
  3. logs Excluded for N - C and Included for C - N
Sections in both sets produce no history, so re-saving the same set is a no-op.
"""

from datetime import datetime, timezone
from typing import AbstractSet, Iterable, List, Optional

import structlog

from audit_engine.config import Settings, get_settings
from audit_engine.core.exceptions import EntityNotFoundException
from audit_engine.models.audit import (
    Audit,
    AuditSectionsResponse,
    ExclusionHistoryEntry,
    ExclusionStats,
    SectionWithScore,
)
from audit_engine.models.enumerations import ExclusionAction
from audit_engine.repositories.audit_repository import AuditRepository, ResponseRepository
from audit_engine.repositories.exclusion_repository import ExclusionRepository
from audit_engine.repositories.section_score_repository import SectionScoreRepository
from audit_engine.scoring.section_scorer import SectionScoreResult
from audit_engine.scoring.total_scorer import TotalScorer
from audit_engine.scoring.utils import to_float
from audit_engine.services.threshold_service import ThresholdResolver

logger = structlog.get_logger(__name__)


class ExclusionLedger:
    """Section exclusions, their history and the exclusion-adjusted total."""

    def __init__(
        self,
        audit_repo: AuditRepository,
        response_repo: ResponseRepository,
        section_score_repo: SectionScoreRepository,
        exclusion_repo: ExclusionRepository,
        threshold_resolver: ThresholdResolver,
        total_scorer: Optional[TotalScorer] = None,
        settings: Optional[Settings] = None,
    ):
        self.audit_repo = audit_repo
        self.response_repo = response_repo
        self.section_score_repo = section_score_repo
        self.exclusion_repo = exclusion_repo
        self.threshold_resolver = threshold_resolver
        self.total_scorer = total_scorer or TotalScorer()
        self.settings = settings or get_settings()

    # =====================================================================
    # Reads
    # =====================================================================

    def get_audit_sections_with_scores(self, audit_id: int) -> AuditSectionsResponse:
        """Sections with scores and exclusion flags, both totals and recent history."""
        audit = self._load_audit(audit_id)
        sections = self._sections_for(audit)
        excluded = self.exclusion_repo.get_excluded_section_ids(audit_id)
        return self._build_response(audit, sections, excluded)

    def get_exclusion_history(self, audit_id: int) -> List[ExclusionHistoryEntry]:
        """Full history of one audit, newest first."""
        self._load_audit(audit_id)
        return self.exclusion_repo.get_history(audit_id)

    def get_all_exclusion_history(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        changed_by: Optional[str] = None,
        audit_id: Optional[int] = None,
    ) -> List[ExclusionHistoryEntry]:
        """History across audits, newest first, capped at EXCLUSION_SEARCH_LIMIT rows."""
        return self.exclusion_repo.search_history(
            start_date=start_date,
            end_date=end_date,
            changed_by=changed_by,
            audit_id=audit_id,
            limit=self.settings.EXCLUSION_SEARCH_LIMIT,
        )

    def get_exclusion_stats(self) -> ExclusionStats:
        return self.exclusion_repo.get_stats()

    # =====================================================================
    # Write
    # =====================================================================

    def save_exclusions(
        self,
        audit_id: int,
        section_ids: Iterable[int],
        changed_by: str,
    ) -> AuditSectionsResponse:
        """
        Replace the excluded set of an audit with `section_ids`.

        Args:
            audit_id: Audit identifier
            section_ids: Complete desired excluded set (duplicates ignored)
            changed_by: Actor recorded in the history

        Returns:
            The refreshed AuditSectionsResponse

        Raises:
            EntityNotFoundException: unknown audit, or a section outside the audit
            PersistenceFailureException: the transaction was rolled back
        """
        audit = self._load_audit(audit_id)
        sections = self._sections_for(audit)
        by_id = {section.section_id: section for section in sections}

        desired = set()
        for section_id in section_ids:
            if section_id not in by_id:
                raise EntityNotFoundException("Section", section_id)
            desired.add(section_id)

        now = datetime.now(timezone.utc)
        with self.exclusion_repo.transaction() as cursor:
            current = self.exclusion_repo.get_excluded_section_ids(audit_id, cursor=cursor)
            added = desired - current
            removed = current - desired

            if added or removed:
                original_score = to_float(self.total_scorer.calculate(sections))
                adjusted_score = to_float(self.total_scorer.calculate(sections, desired))

                self.exclusion_repo.delete_sections(cursor, audit_id, removed)
                self.exclusion_repo.insert_sections(cursor, audit_id, added, changed_by, now)

                entries = [
                    self._history_entry(audit_id, by_id.get(section_id), section_id, action,
                                        original_score, adjusted_score, changed_by, now)
                    for action, ids in (
                        (ExclusionAction.EXCLUDED, added),
                        (ExclusionAction.INCLUDED, removed),
                    )
                    for section_id in sorted(ids)
                ]
                self.exclusion_repo.append_history(cursor, entries)

        logger.info(
            "exclusions_saved",
            audit_id=audit_id,
            changed_by=changed_by,
            excluded=sorted(added),
            included=sorted(removed),
        )
        return self._build_response(audit, sections, desired)

    # =====================================================================
    # Helpers
    # =====================================================================

    def _load_audit(self, audit_id: int) -> Audit:
        audit = self.audit_repo.get_by_id(audit_id)
        if audit is None:
            raise EntityNotFoundException("Audit", audit_id)
        return audit

    def _sections_for(self, audit: Audit) -> List[SectionScoreResult]:
        """
        Snapshot rows of a completed audit, live scores of an in-progress one.

        A completed audit without snapshot rows is scored live. Active schema
        sections without responses are listed with zero points.
        """
        scored = None
        if audit.is_completed:
            records = self.section_score_repo.get_by_audit_id(audit.audit_id)
            if records:
                scored = [SectionScoreResult.from_record(record) for record in records]

        if scored is None:
            responses = self.response_repo.get_by_audit_id(audit.audit_id)
            scored = self.total_scorer.section_scorer.score_audit(responses)

        by_id = {section.section_id: section for section in scored}
        for row in self.response_repo.get_section_catalog(audit.schema_id):
            if row["section_id"] not in by_id:
                by_id[row["section_id"]] = SectionScoreResult.unanswered(
                    row["section_id"], row.get("section_name") or "", row.get("section_number")
                )
        return sorted(by_id.values(), key=lambda s: (s.section_number or 0, s.section_id))

    def _build_response(
        self,
        audit: Audit,
        sections: List[SectionScoreResult],
        excluded: AbstractSet[int],
    ) -> AuditSectionsResponse:
        totals = self.total_scorer.calculate_both(sections, excluded)
        return AuditSectionsResponse(
            audit=audit,
            passing_grade=self.threshold_resolver.get_passing_grade(audit.schema_id),
            sections=[
                SectionWithScore(
                    section_id=section.section_id,
                    section_number=section.section_number,
                    section_name=section.section_name,
                    earned_points=float(section.earned_points),
                    max_points=float(section.max_points),
                    percentage=float(section.percentage),
                    total_questions=section.total_questions,
                    answered_questions=section.answered_questions,
                    na_questions=section.na_questions,
                    is_excluded=section.section_id in excluded,
                )
                for section in sections
            ],
            original_total=to_float(totals.original_total),
            adjusted_total=to_float(totals.adjusted_total),
            excluded_count=totals.excluded_count,
            history=self.exclusion_repo.get_history(
                audit.audit_id, limit=self.settings.EXCLUSION_HISTORY_LIMIT
            ),
        )

    @staticmethod
    def _history_entry(
        audit_id: int,
        section: Optional[SectionScoreResult],
        section_id: int,
        action: ExclusionAction,
        original_score: Optional[float],
        adjusted_score: Optional[float],
        changed_by: str,
        changed_at: datetime,
    ) -> ExclusionHistoryEntry:
        return ExclusionHistoryEntry(
            audit_id=audit_id,
            section_id=section_id,
            section_name=section.section_name if section and section.section_name else "Unknown",
            action=action,
            original_score=original_score,
            adjusted_score=adjusted_score,
            changed_by=changed_by,
            changed_at=changed_at,
        )
