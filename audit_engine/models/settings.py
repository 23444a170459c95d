from pydantic import BaseModel, Field
from typing import Optional, List

from audit_engine.models.enumerations import SettingType


class PassingGradeSetting(BaseModel):
    """
    One ThresholdSetting row; also the cached form of a resolved grade.
    """

    schema_id: int
    setting_type: SettingType
    entity_id: Optional[int] = Field(
        default=None,
        description="Section ID for Section settings, null for Overall"
    )
    passing_grade: int = Field(..., ge=0, le=100)


class SectionPassingGrade(BaseModel):
    section_id: int
    section_name: Optional[str] = None
    section_number: Optional[int] = None
    passing_grade: int = Field(..., ge=0, le=100)


class SchemaSettingsRequest(BaseModel):
    overall_passing_grade: Optional[int] = Field(default=None, ge=0, le=100)
    sections: List[SectionPassingGrade] = Field(default_factory=list)
    updated_by: str = Field(..., min_length=1, max_length=255)


class SchemaSettingsResponse(BaseModel):
    schema_id: int
    schema_name: str
    description: Optional[str] = None
    overall_passing_grade: int
    sections: List[SectionPassingGrade]


class PassingGradeResponse(BaseModel):
    schema_id: int
    section_id: Optional[int] = None
    passing_grade: int


class SaveResult(BaseModel):
    success: bool
