"""
Settings Router - Food Safety Audit Engine
audit_engine/routers/settings.py

Passing-grade lookups and schema threshold settings.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from audit_engine.config import settings
from audit_engine.core.dependencies import get_threshold_resolver
from audit_engine.models.audit import ErrorResponse
from audit_engine.models.settings import (
    PassingGradeResponse,
    SaveResult,
    SchemaSettingsRequest,
    SchemaSettingsResponse,
)
from audit_engine.routers.audit_scores import NOT_FOUND_RESPONSE, PERSISTENCE_RESPONSE
from audit_engine.services.threshold_service import ThresholdResolver

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Settings"])


@router.get(
    "/schemas/settings",
    response_model=List[SchemaSettingsResponse],
    responses={**PERSISTENCE_RESPONSE},
    summary="Settings of every active schema",
    description="Overall and section grades of each active schema, ordered by name. Unconfigured grades read 83.",
)
def list_schema_settings(
    resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> List[SchemaSettingsResponse]:
    return resolver.list_schema_settings()


@router.get(
    "/schemas/{schema_id}/passing-grade",
    response_model=PassingGradeResponse,
    summary="Passing grade for scoring",
    description="Section grade when section_id is given, overall grade otherwise. Falls back to 83.",
)
def get_passing_grade(
    schema_id: int,
    section_id: Optional[int] = Query(default=None),
    resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> PassingGradeResponse:
    return PassingGradeResponse(
        schema_id=schema_id,
        section_id=section_id,
        passing_grade=resolver.get_passing_grade(schema_id, section_id),
    )


@router.get(
    "/schemas/{schema_id}/settings",
    response_model=SchemaSettingsResponse,
    responses={
        404: {
            "model": ErrorResponse,
            "description": "Schema not found",
            "content": {
                "application/json": {
                    "example": {
                        "error_code": "SCHEMA_NOT_FOUND",
                        "message": "Schema with ID 3 not found",
                        "retryable": False,
                        "details": {"entity_type": "Schema", "entity_id": 3},
                        "timestamp": "2026-01-28T12:00:00Z",
                    }
                }
            },
        },
        **PERSISTENCE_RESPONSE,
    },
    summary="Schema settings",
)
def get_schema_settings(
    schema_id: int,
    resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> SchemaSettingsResponse:
    return resolver.get_schema_settings(schema_id)


@router.put(
    "/schemas/{schema_id}/settings",
    response_model=SaveResult,
    responses={**NOT_FOUND_RESPONSE, **PERSISTENCE_RESPONSE},
    summary="Save schema settings",
    description="Upsert the overall grade and the listed section grades in one transaction.",
)
def save_schema_settings(
    schema_id: int,
    payload: SchemaSettingsRequest,
    resolver: ThresholdResolver = Depends(get_threshold_resolver),
) -> SaveResult:
    return resolver.save_schema_settings(schema_id, payload)
