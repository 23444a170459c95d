"""
In-memory store for engine tests
tests/fakes.py

Fake repositories with the same method signatures as the Snowflake ones,
sharing one InMemoryDatabase. transaction() snapshots the whole state and
restores it when the body raises, so partial writes are never observable.
Failures can be injected into any write to exercise rollback.
"""

import copy
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from audit_engine.core.exceptions import PersistenceFailureException
from audit_engine.models.audit import (
    Audit,
    ExclusionHistoryEntry,
    ExclusionStats,
    ItemResponse,
    SectionScoreRecord,
)
from audit_engine.models.enumerations import AuditStatus, ExclusionAction, SettingType
from audit_engine.repositories.threshold_repository import usable_grade
from audit_engine.scoring.section_scorer import SectionScoreResult


class InMemoryDatabase:
    """Shared state of every fake repository."""

    _STATE = (
        "audits",
        "responses",
        "section_scores",
        "exclusions",
        "history",
        "settings",
        "schemas",
        "schema_sections",
        "next_history_id",
    )

    def __init__(self):
        self.audits: Dict[int, Audit] = {}
        self.responses: Dict[int, List[ItemResponse]] = {}
        self.section_scores: Dict[int, Dict[int, SectionScoreRecord]] = {}
        self.exclusions: Dict[int, Dict[int, Dict[str, Any]]] = {}
        self.history: List[ExclusionHistoryEntry] = []
        self.settings: Dict[Tuple[int, str, Optional[int]], int] = {}
        self.schemas: Dict[int, Dict[str, Any]] = {}
        self.schema_sections: Dict[int, List[Dict[str, Any]]] = {}
        self.next_history_id = 1

        self.commits = 0
        self.rollbacks = 0
        self._failures: Dict[str, int] = {}
        self._calls: Dict[str, int] = {}

    # -------------------------
    # Transactions
    # -------------------------
    @contextmanager
    def transaction(self):
        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._STATE}
        try:
            yield object()
            self.commits += 1
        except Exception:
            for name, value in snapshot.items():
                setattr(self, name, value)
            self.rollbacks += 1
            raise

    def inject_failure(self, operation: str, on_call: int = 1) -> None:
        """Make the `on_call`-th call of `operation` raise PersistenceFailureException."""
        self._failures[operation] = on_call
        self._calls[operation] = 0

    def check(self, operation: str) -> None:
        if operation not in self._failures:
            return
        self._calls[operation] += 1
        if self._calls[operation] == self._failures[operation]:
            raise PersistenceFailureException(f"Injected failure in {operation}")

    # -------------------------
    # Seeding
    # -------------------------
    def add_schema(
        self,
        schema_id: int,
        name: str,
        sections: List[Tuple[int, int, str]],
        active: bool = True,
    ) -> None:
        """sections: (section_id, section_number, section_name)"""
        self.schemas[schema_id] = {
            "schema_id": schema_id,
            "schema_name": name,
            "description": None,
            "is_active": active,
        }
        self.schema_sections[schema_id] = [
            {"section_id": sid, "section_number": number, "section_name": label}
            for sid, number, label in sections
        ]

    def add_audit(
        self,
        audit_id: int,
        responses: List[ItemResponse],
        schema_id: int = 1,
        status: AuditStatus = AuditStatus.IN_PROGRESS,
        total_score: Optional[float] = None,
    ) -> Audit:
        audit = Audit(
            audit_id=audit_id,
            schema_id=schema_id,
            document_number=f"GMRL-FSACR-{audit_id:04d}",
            store_name="Store",
            status=status,
            total_score=total_score,
        )
        self.audits[audit_id] = audit
        self.responses[audit_id] = list(responses)
        return audit


class _FakeRepository:
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def transaction(self):
        return self.db.transaction()


class FakeAuditRepository(_FakeRepository):
    def get_by_id(self, audit_id: int, cursor: Optional[Any] = None) -> Optional[Audit]:
        audit = self.db.audits.get(audit_id)
        return audit.model_copy() if audit else None

    def list_all(self) -> List[Audit]:
        return [self.db.audits[k].model_copy() for k in sorted(self.db.audits, reverse=True)]

    def mark_completed(self, cursor, audit_id: int, total_score: Optional[float], completed_at: datetime) -> int:
        self.db.check("mark_completed")
        audit = self.db.audits[audit_id]
        self.db.audits[audit_id] = audit.model_copy(
            update={
                "status": AuditStatus.COMPLETED,
                "total_score": total_score,
                "completed_at": completed_at,
            }
        )
        return 1


class FakeResponseRepository(_FakeRepository):
    def get_by_audit_id(self, audit_id: int, cursor: Optional[Any] = None) -> List[ItemResponse]:
        return list(self.db.responses.get(audit_id, []))

    def get_section_catalog(self, schema_id: int) -> List[Dict[str, Any]]:
        return sorted(
            (dict(row) for row in self.db.schema_sections.get(schema_id, [])),
            key=lambda r: (r["section_number"], r["section_id"]),
        )


class FakeSectionScoreRepository(_FakeRepository):
    def get_by_audit_id(self, audit_id: int) -> List[SectionScoreRecord]:
        rows = self.db.section_scores.get(audit_id, {}).values()
        return sorted(rows, key=lambda r: (r.section_number or 0, r.section_id))

    def replace_for_audit(
        self,
        cursor,
        audit_id: int,
        scores: List[SectionScoreResult],
        created_at: datetime,
    ) -> Dict[str, int]:
        existing = set(self.db.section_scores.get(audit_id, {}))
        self.db.section_scores[audit_id] = {}
        self.db.check("replace_for_audit")
        for score in scores:
            self.db.section_scores[audit_id][score.section_id] = SectionScoreRecord(
                audit_id=audit_id,
                section_id=score.section_id,
                section_number=score.section_number,
                section_name=score.section_name,
                earned_points=float(score.earned_points),
                max_points=float(score.max_points),
                percentage=float(score.percentage),
                total_questions=score.total_questions,
                answered_questions=score.answered_questions,
                na_questions=score.na_questions,
                created_at=created_at,
            )
        wanted = {s.section_id for s in scores}
        return {
            "deleted": len(existing - wanted),
            "updated": len(existing & wanted),
            "inserted": len(wanted - existing),
        }


class FakeExclusionRepository(_FakeRepository):
    def get_excluded_section_ids(self, audit_id: int, cursor: Optional[Any] = None) -> Set[int]:
        return {
            sid for sid, row in self.db.exclusions.get(audit_id, {}).items() if row["is_excluded"]
        }

    def delete_sections(self, cursor, audit_id: int, section_ids: Iterable[int]) -> int:
        self.db.check("delete_sections")
        rows = self.db.exclusions.get(audit_id, {})
        deleted = 0
        for section_id in list(section_ids):
            if rows.pop(section_id, None) is not None:
                deleted += 1
        return deleted

    def insert_sections(self, cursor, audit_id: int, section_ids: Iterable[int], created_by: str, created_at: datetime) -> int:
        self.db.check("insert_sections")
        rows = self.db.exclusions.setdefault(audit_id, {})
        count = 0
        for section_id in section_ids:
            rows[section_id] = {"is_excluded": True, "created_by": created_by, "created_at": created_at}
            count += 1
        return count

    def append_history(self, cursor, entries: List[ExclusionHistoryEntry]) -> int:
        self.db.check("append_history")
        for entry in entries:
            self.db.history.append(entry.model_copy(update={"history_id": self.db.next_history_id}))
            self.db.next_history_id += 1
        return len(entries)

    def get_history(self, audit_id: int, limit: Optional[int] = None) -> List[ExclusionHistoryEntry]:
        rows = self._newest_first(e for e in self.db.history if e.audit_id == audit_id)
        return rows[:limit] if limit is not None else rows

    def search_history(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        changed_by: Optional[str] = None,
        audit_id: Optional[int] = None,
        limit: int = 500,
    ) -> List[ExclusionHistoryEntry]:
        rows = [
            e
            for e in self.db.history
            if (start_date is None or e.changed_at >= start_date)
            and (end_date is None or e.changed_at <= end_date)
            and (not changed_by or changed_by.lower() in e.changed_by.lower())
            and (audit_id is None or e.audit_id == audit_id)
        ]
        return self._newest_first(rows)[:limit]

    def get_stats(self) -> ExclusionStats:
        rows = self.db.history
        if not rows:
            return ExclusionStats()
        return ExclusionStats(
            audits_with_exclusions=len({e.audit_id for e in rows}),
            total_changes=len(rows),
            total_exclusions=sum(1 for e in rows if e.action == ExclusionAction.EXCLUDED),
            total_inclusions=sum(1 for e in rows if e.action == ExclusionAction.INCLUDED),
            unique_users=len({e.changed_by for e in rows}),
            first_change=min(e.changed_at for e in rows),
            last_change=max(e.changed_at for e in rows),
        )

    @staticmethod
    def _newest_first(rows) -> List[ExclusionHistoryEntry]:
        return sorted(rows, key=lambda e: (e.changed_at, e.history_id), reverse=True)


class FakeThresholdRepository(_FakeRepository):
    def get_passing_grade(self, schema_id: int, setting_type: SettingType, entity_id: Optional[int] = None) -> Optional[int]:
        self.db.check("get_passing_grade")
        key = (schema_id, setting_type.value, entity_id if setting_type == SettingType.SECTION else None)
        return usable_grade(self.db.settings.get(key), schema_id=schema_id, entity_id=entity_id)

    def upsert(
        self,
        cursor,
        schema_id: int,
        setting_type: SettingType,
        passing_grade: int,
        updated_by: str,
        updated_at: datetime,
        entity_id: Optional[int] = None,
        entity_name: Optional[str] = None,
    ) -> str:
        self.db.check("upsert")
        key = (schema_id, setting_type.value, entity_id if setting_type == SettingType.SECTION else None)
        outcome = "updated" if key in self.db.settings else "inserted"
        self.db.settings[key] = passing_grade
        return outcome

    def get_schema(self, schema_id: int) -> Optional[Dict[str, Any]]:
        schema = self.db.schemas.get(schema_id)
        return dict(schema) if schema else None

    def list_active_schemas(self) -> List[Dict[str, Any]]:
        active = [dict(s) for s in self.db.schemas.values() if s["is_active"]]
        return sorted(active, key=lambda s: s["schema_name"])

    def get_schema_sections(self, schema_id: int) -> List[Dict[str, Any]]:
        return [
            {
                **row,
                "passing_grade": usable_grade(
                    self.db.settings.get((schema_id, SettingType.SECTION.value, row["section_id"]))
                ),
            }
            for row in self.db.schema_sections.get(schema_id, [])
        ]
