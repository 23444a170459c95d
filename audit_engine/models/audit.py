from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List

from audit_engine.models.enumerations import (
    AuditStatus,
    ExclusionAction,
    SelectedChoice,
)


class ItemResponse(BaseModel):
    """
    One checklist answer inside an audit, as read from the response store.
    """

    audit_id: int = Field(..., description="Audit the response belongs to")
    section_id: int = Field(..., description="Section of the checklist item")
    section_number: Optional[int] = Field(default=None, description="Display order of the section")
    section_name: str = Field(default="", description="Section label")
    item_id: int = Field(..., description="Checklist item identifier")
    reference_value: Optional[str] = Field(default=None, description="Item reference, e.g. '1.4'")
    coefficient: int = Field(..., gt=0, description="Positive integer weight of the item")
    selected_choice: SelectedChoice = Field(
        default=SelectedChoice.UNANSWERED,
        description="Yes, Partially, No, NA or unanswered"
    )

    @field_validator("selected_choice", mode="before")
    @classmethod
    def parse_choice(cls, v):
        return SelectedChoice.parse(v)


class Audit(BaseModel):
    """
    Audit header.
    """

    audit_id: int
    schema_id: int
    document_number: Optional[str] = None
    store_name: Optional[str] = None
    schema_name: Optional[str] = None
    audit_date: Optional[datetime] = None
    status: AuditStatus = AuditStatus.IN_PROGRESS
    total_score: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Persisted total, null until the audit is completed"
    )
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == AuditStatus.COMPLETED


class SectionScoreRecord(BaseModel):
    """
    Snapshot row written when an audit is completed.
    """

    audit_id: int
    section_id: int
    section_number: Optional[int] = None
    section_name: str = ""
    earned_points: float = Field(..., ge=0)
    max_points: float = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)
    total_questions: int = 0
    answered_questions: int = 0
    na_questions: int = 0
    created_at: Optional[datetime] = None


class ExclusionHistoryEntry(BaseModel):
    """
    Append-only log row of an exclusion state change.
    """

    history_id: Optional[int] = None
    audit_id: int
    section_id: int
    section_name: str = "Unknown"
    action: ExclusionAction
    original_score: Optional[float] = None
    adjusted_score: Optional[float] = None
    changed_by: str
    changed_at: datetime
    document_number: Optional[str] = None
    store_name: Optional[str] = None


#  API payloads


class SectionWithScore(BaseModel):
    section_id: int
    section_number: Optional[int] = None
    section_name: str
    earned_points: float
    max_points: float
    percentage: float
    total_questions: int
    answered_questions: int
    na_questions: int
    is_excluded: bool = False


class AuditSectionsResponse(BaseModel):
    """
    Sections of an audit with their scores, exclusion state and both totals.
    """

    audit: Audit
    passing_grade: int
    sections: List[SectionWithScore]
    original_total: Optional[float] = None
    adjusted_total: Optional[float] = None
    excluded_count: int = 0
    history: List[ExclusionHistoryEntry] = Field(default_factory=list)


class SaveExclusionsRequest(BaseModel):
    section_ids: List[int] = Field(
        default_factory=list,
        description="Complete set of sections to exclude from the total"
    )
    changed_by: str = Field(..., min_length=1, max_length=255)


class SectionScoreSummary(BaseModel):
    section_id: int
    section_name: str
    percentage: float


class CompleteAuditResponse(BaseModel):
    total_score: Optional[float] = None
    section_scores: List[SectionScoreSummary]
    status: AuditStatus


class LiveScoreResponse(BaseModel):
    audit_id: int
    status: AuditStatus
    score: Optional[float] = None
    is_estimate: bool


class AuditListItem(BaseModel):
    audit_id: int
    document_number: Optional[str] = None
    store_name: Optional[str] = None
    schema_id: int
    schema_name: Optional[str] = None
    status: AuditStatus
    total_score: Optional[float] = None
    passing_grade: int
    passed: Optional[bool] = None
    completed_at: Optional[datetime] = None


class ExclusionStats(BaseModel):
    audits_with_exclusions: int = 0
    total_changes: int = 0
    total_exclusions: int = 0
    total_inclusions: int = 0
    unique_users: int = 0
    first_change: Optional[datetime] = None
    last_change: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether the caller may retry")
    details: Optional[dict] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error occurrence timestamp")
