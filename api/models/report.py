"""
Report models.

GOVERNANCE:
- All four SOAP sections are required before a report can be submitted
- Only learner notes stay editable after composition
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from api.models.session import utcnow

SOAP_SECTIONS = ("subjective", "objective", "assessment", "plan")


class ReportStatus(str, Enum):
    """Report status enum."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"


class SoapNote(BaseModel):
    """Subjective / Objective / Assessment / Plan."""

    subjective: str = ""
    objective: str = ""
    assessment: str = ""
    plan: str = ""

    def missing_sections(self) -> list[str]:
        """Names of the sections that are empty or whitespace only."""
        return [name for name in SOAP_SECTIONS if not getattr(self, name).strip()]


class EducationalContent(BaseModel):
    """Generated teaching material for the primary diagnosis."""

    pathophysiology: str = ""
    risk_factors: list[str] = Field(default_factory=list)
    diagnostic_criteria: list[str] = Field(default_factory=list)
    treatment: str = ""
    complications: list[str] = Field(default_factory=list)
    prognosis: str = ""
    pearls: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)


class Report(BaseModel):
    """Composed clinical report for one completed session."""

    report_id: str
    session_id: str
    title: str
    primary_diagnosis: str
    soap: SoapNote
    educational_content: EducationalContent = Field(default_factory=EducationalContent)
    learner_notes: Optional[str] = None
    status: ReportStatus = ReportStatus.DRAFT
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
