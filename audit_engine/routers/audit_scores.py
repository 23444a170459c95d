"""
Audit Scores Router - Food Safety Audit Engine
audit_engine/routers/audit_scores.py

Audit list, section scores, exclusions and completion endpoints.
Every route is a thin adapter over ExclusionLedger / AuditLifecycleController.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from audit_engine.config import settings
from audit_engine.core.dependencies import (
    get_audit_lifecycle_controller,
    get_exclusion_ledger,
)
from audit_engine.core.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    PersistenceFailureException,
    RepositoryException,
)
from audit_engine.models.audit import (
    AuditListItem,
    AuditSectionsResponse,
    CompleteAuditResponse,
    ErrorResponse,
    ExclusionHistoryEntry,
    ExclusionStats,
    LiveScoreResponse,
    SaveExclusionsRequest,
    SectionScoreRecord,
)
from audit_engine.services.audit_lifecycle_service import AuditLifecycleController
from audit_engine.services.exclusion_service import ExclusionLedger

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Audit Scores"])


#  Exception Handlers
# Registered in main.py

def _error_content(error_code: str, message: str, retryable: bool = False, details: Optional[dict] = None) -> dict:
    return ErrorResponse(
        error_code=error_code,
        message=message,
        retryable=retryable,
        details=details,
        timestamp=datetime.now(timezone.utc),
    ).model_dump(mode="json")


async def repository_exception_handler(request: Request, exc: RepositoryException):
    """Map the engine's error taxonomy onto HTTP responses."""
    if isinstance(exc, EntityNotFoundException):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=_error_content(
                f"{exc.entity_type.upper()}_NOT_FOUND",
                str(exc),
                details={"entity_type": exc.entity_type, "entity_id": exc.entity_id},
            ),
        )

    if isinstance(exc, InvalidStateException):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=_error_content("INVALID_STATE", exc.reason),
        )

    if isinstance(exc, PersistenceFailureException):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_content("PERSISTENCE_FAILURE", exc.message, retryable=exc.retryable),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_content("INTERNAL_SERVER_ERROR", "Unexpected server error"),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_content("VALIDATION_ERROR", "Request validation failed"),
        )

    err = errors[0]
    error_type = err.get("type", "")
    if "json_invalid" in error_type:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_content("INVALID_REQUEST", "Malformed JSON request body"),
        )

    field = ".".join(str(l) for l in err.get("loc", []) if l != "body")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_content(
            "VALIDATION_ERROR",
            err.get("msg", "Invalid request"),
            details={"field": field, "type": error_type} if field else None,
        ),
    )


#  OpenAPI response examples

NOT_FOUND_RESPONSE = {
    404: {
        "model": ErrorResponse,
        "description": "Audit or section not found",
        "content": {
            "application/json": {
                "example": {
                    "error_code": "AUDIT_NOT_FOUND",
                    "message": "Audit with ID 5 not found",
                    "retryable": False,
                    "details": {"entity_type": "Audit", "entity_id": 5},
                    "timestamp": "2026-01-28T12:00:00Z",
                }
            }
        },
    }
}

PERSISTENCE_RESPONSE = {
    503: {
        "model": ErrorResponse,
        "description": "Store failure, the transaction was rolled back",
        "content": {
            "application/json": {
                "example": {
                    "error_code": "PERSISTENCE_FAILURE",
                    "message": "Transaction rolled back: 000604: SQL execution canceled",
                    "retryable": True,
                    "details": None,
                    "timestamp": "2026-01-28T12:00:00Z",
                }
            }
        },
    }
}


#  Routes

@router.get(
    "/audits",
    response_model=List[AuditListItem],
    responses={**PERSISTENCE_RESPONSE},
    summary="List audits",
    description="Every audit with its persisted (completed) or live (in progress) score and pass/fail flag.",
)
def list_audits(
    controller: AuditLifecycleController = Depends(get_audit_lifecycle_controller),
) -> List[AuditListItem]:
    return controller.list_audits()


@router.get(
    "/audits/{audit_id}/sections-with-scores",
    response_model=AuditSectionsResponse,
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Sections with scores",
    description="Section scores with exclusion flags, original and adjusted totals, and recent exclusion history.",
)
def get_audit_sections_with_scores(
    audit_id: int,
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
) -> AuditSectionsResponse:
    return ledger.get_audit_sections_with_scores(audit_id)


@router.put(
    "/audits/{audit_id}/exclusions",
    response_model=AuditSectionsResponse,
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Save excluded sections",
    description="Replace the complete set of excluded sections. Only actual changes are written to history.",
)
def save_exclusions(
    audit_id: int,
    payload: SaveExclusionsRequest,
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
) -> AuditSectionsResponse:
    return ledger.save_exclusions(audit_id, payload.section_ids, payload.changed_by)


@router.get(
    "/audits/{audit_id}/exclusions/history",
    response_model=List[ExclusionHistoryEntry],
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Exclusion history of an audit",
)
def get_exclusion_history(
    audit_id: int,
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
) -> List[ExclusionHistoryEntry]:
    return ledger.get_exclusion_history(audit_id)


@router.post(
    "/audits/{audit_id}/complete",
    response_model=CompleteAuditResponse,
    responses={
        **NOT_FOUND_RESPONSE,
        409: {
            "model": ErrorResponse,
            "description": "Audit cannot be completed",
            "content": {
                "application/json": {
                    "example": {
                        "error_code": "INVALID_STATE",
                        "message": "Audit 5 has no sections to score and cannot be completed",
                        "retryable": False,
                        "details": None,
                        "timestamp": "2026-01-28T12:00:00Z",
                    }
                }
            },
        },
        **PERSISTENCE_RESPONSE,
    },
    summary="Complete an audit",
    description="Score the audit, replace its section-score snapshot and mark it Completed. May be re-run to refresh.",
)
def complete_audit(
    audit_id: int,
    controller: AuditLifecycleController = Depends(get_audit_lifecycle_controller),
) -> CompleteAuditResponse:
    return controller.complete_audit(audit_id)


@router.get(
    "/audits/{audit_id}/section-scores",
    response_model=List[SectionScoreRecord],
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Section-score snapshot",
)
def get_section_scores(
    audit_id: int,
    controller: AuditLifecycleController = Depends(get_audit_lifecycle_controller),
) -> List[SectionScoreRecord]:
    return controller.get_section_scores(audit_id)


@router.get(
    "/audits/{audit_id}/live-score",
    response_model=LiveScoreResponse,
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Live score",
    description="Estimate for an in-progress audit, persisted total for a completed one.",
)
def get_live_score(
    audit_id: int,
    controller: AuditLifecycleController = Depends(get_audit_lifecycle_controller),
) -> LiveScoreResponse:
    return controller.get_live_score(audit_id)


@router.get(
    "/exclusions/history",
    response_model=List[ExclusionHistoryEntry],
    responses={**PERSISTENCE_RESPONSE},
    summary="Exclusion history across audits",
    description="Newest first, capped at 500 rows.",
)
def get_all_exclusion_history(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    changed_by: Optional[str] = Query(default=None, max_length=255),
    audit_id: Optional[int] = Query(default=None),
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
) -> List[ExclusionHistoryEntry]:
    return ledger.get_all_exclusion_history(
        start_date=start_date,
        end_date=end_date,
        changed_by=changed_by,
        audit_id=audit_id,
    )


@router.get(
    "/exclusions/stats",
    response_model=ExclusionStats,
    responses={**PERSISTENCE_RESPONSE},
    summary="Exclusion statistics",
)
def get_exclusion_stats(
    ledger: ExclusionLedger = Depends(get_exclusion_ledger),
) -> ExclusionStats:
    return ledger.get_exclusion_stats()
