"""
Audit Lifecycle Controller - Food Safety Audit Engine
audit_engine/services/audit_lifecycle_service.py

Drives In Progress -> Completed.

complete_audit() scores the current responses, replaces the section-score
snapshot and persists status/total/completed_at in one transaction. It may be
re-run on a completed audit; the snapshot and total are then fully replaced.

Live scores of in-progress audits go through the same SectionScorer and
TotalScorer, so an estimate always equals what completion would store.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog

from audit_engine.core.exceptions import EntityNotFoundException, InvalidStateException
from audit_engine.models.audit import (
    Audit,
    AuditListItem,
    CompleteAuditResponse,
    LiveScoreResponse,
    SectionScoreRecord,
    SectionScoreSummary,
)
from audit_engine.models.enumerations import AuditStatus, Classification
from audit_engine.repositories.audit_repository import AuditRepository, ResponseRepository
from audit_engine.repositories.section_score_repository import SectionScoreRepository
from audit_engine.scoring.total_scorer import TotalScorer
from audit_engine.scoring.utils import to_float
from audit_engine.services.threshold_service import ThresholdResolver, classify

logger = structlog.get_logger(__name__)


class AuditLifecycleController:
    """Audit completion, live scores and the audit list."""

    def __init__(
        self,
        audit_repo: AuditRepository,
        response_repo: ResponseRepository,
        section_score_repo: SectionScoreRepository,
        threshold_resolver: ThresholdResolver,
        total_scorer: Optional[TotalScorer] = None,
    ):
        self.audit_repo = audit_repo
        self.response_repo = response_repo
        self.section_score_repo = section_score_repo
        self.threshold_resolver = threshold_resolver
        self.total_scorer = total_scorer or TotalScorer()

    def complete_audit(self, audit_id: int) -> CompleteAuditResponse:
        """
        Score the audit, freeze the section snapshot and mark it Completed.

        Sections whose items are all NA or unanswered are kept in the
        snapshot; if every section is like that the total is None.

        Raises:
            EntityNotFoundException: unknown audit
            InvalidStateException: the audit has no responses, hence no sections
            PersistenceFailureException: the transaction was rolled back
        """
        if self.audit_repo.get_by_id(audit_id) is None:
            raise EntityNotFoundException("Audit", audit_id)

        now = datetime.now(timezone.utc)
        with self.audit_repo.transaction() as cursor:
            responses = self.response_repo.get_by_audit_id(audit_id, cursor=cursor)
            sections = self.total_scorer.section_scorer.score_audit(responses)
            if not sections:
                raise InvalidStateException(
                    f"Audit {audit_id} has no sections to score and cannot be completed"
                )

            counts = self.section_score_repo.replace_for_audit(cursor, audit_id, sections, now)
            total = self.total_scorer.calculate(sections)
            self.audit_repo.mark_completed(cursor, audit_id, to_float(total), now)

        logger.info(
            "audit_completed",
            audit_id=audit_id,
            total_score=to_float(total),
            section_count=len(sections),
            **counts,
        )

        return CompleteAuditResponse(
            total_score=to_float(total),
            section_scores=[
                SectionScoreSummary(
                    section_id=section.section_id,
                    section_name=section.section_name,
                    percentage=float(section.percentage),
                )
                for section in sections
            ],
            status=AuditStatus.COMPLETED,
        )

    def get_live_score(self, audit_id: int) -> LiveScoreResponse:
        """Persisted total of a completed audit, or an on-the-fly estimate."""
        audit = self._load_audit(audit_id)
        if audit.is_completed:
            return LiveScoreResponse(
                audit_id=audit_id,
                status=audit.status,
                score=audit.total_score,
                is_estimate=False,
            )

        responses = self.response_repo.get_by_audit_id(audit_id)
        return LiveScoreResponse(
            audit_id=audit_id,
            status=audit.status,
            score=to_float(self.total_scorer.live_estimate(responses)),
            is_estimate=True,
        )

    def get_section_scores(self, audit_id: int) -> List[SectionScoreRecord]:
        """Snapshot written by the last completion run (empty before completion)."""
        self._load_audit(audit_id)
        return self.section_score_repo.get_by_audit_id(audit_id)

    def list_audits(self) -> List[AuditListItem]:
        """Every audit with its display score and pass/fail against the schema grade."""
        items = []
        for audit in self.audit_repo.list_all():
            if audit.is_completed:
                score = audit.total_score
            else:
                score = to_float(
                    self.total_scorer.live_estimate(self.response_repo.get_by_audit_id(audit.audit_id))
                )
            grade = self.threshold_resolver.get_passing_grade(audit.schema_id)
            outcome = classify(score, grade)

            items.append(
                AuditListItem(
                    audit_id=audit.audit_id,
                    document_number=audit.document_number,
                    store_name=audit.store_name,
                    schema_id=audit.schema_id,
                    schema_name=audit.schema_name,
                    status=audit.status,
                    total_score=score,
                    passing_grade=grade,
                    passed=None if outcome is None else outcome == Classification.PASS,
                    completed_at=audit.completed_at,
                )
            )
        return items

    def _load_audit(self, audit_id: int) -> Audit:
        audit = self.audit_repo.get_by_id(audit_id)
        if audit is None:
            raise EntityNotFoundException("Audit", audit_id)
        return audit
