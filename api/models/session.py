"""
Session models.

GOVERNANCE:
- Diagnosis candidates are teaching material, not clinical advice
- Confidence is always stored as a fraction in [0, 1]
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class Step(str, Enum):
    """Workflow step, in the order the learner moves through them."""

    SELECTING_REGION = "selecting_region"
    SELECTING_SYMPTOMS = "selecting_symptoms"
    AWAITING_DIAGNOSIS = "awaiting_diagnosis"
    REVIEWING_RESULTS = "reviewing_results"
    COMPOSING_REPORT = "composing_report"
    SUBMITTED = "submitted"


class SessionStatus(str, Enum):
    """Session status enum."""

    IN_PROGRESS = "in_progress"  # Learner still collecting facts
    COMPLETED = "completed"  # Learner moved on to the report
    SUBMITTED = "submitted"  # Report handed to a reviewer
    REVIEWED = "reviewed"  # Reviewer returned feedback
    ABANDONED = "abandoned"  # Discarded by an explicit reset


class ProbabilityTier(str, Enum):
    """Coarse likelihood of a differential entry."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class BodyRegion(BaseModel):
    """A selectable body region."""

    region_id: str
    name: str
    display_name: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    display_order: int = 0


class Symptom(BaseModel):
    """A named clinical finding."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    is_red_flag: bool = False
    description: Optional[str] = None
    region_id: Optional[str] = None


class TranscriptEntry(BaseModel):
    """One answered follow-up question from the AI-chat step."""

    step_number: int
    question: str
    answer: str
    rationale: Optional[str] = None
    answered_at: datetime = Field(default_factory=utcnow)


class FollowUpOption(BaseModel):
    """An answer option offered for a follow-up question."""

    id: str
    text: str
    clinical_significance: Optional[str] = None


class FollowUpQuestion(BaseModel):
    """A follow-up question generated for the AI-chat step."""

    id: str
    question: str
    rationale: Optional[str] = None
    options: list[FollowUpOption] = Field(default_factory=list)


class DiagnosisCandidate(BaseModel):
    """One normalized differential-diagnosis entry."""

    name: str = Field(..., min_length=1)
    probability: ProbabilityTier = ProbabilityTier.LOW
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    supporting_findings: list[str] = Field(default_factory=list)
    contradicting_findings: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    icd_code: Optional[str] = None
    description: Optional[str] = None
    is_selected: bool = False


class Session(BaseModel):
    """One learner's attempt at the diagnostic exercise."""

    session_id: str
    workflow_id: str
    learner_id: str
    status: SessionStatus = SessionStatus.IN_PROGRESS

    region_id: Optional[str] = None
    region_name: Optional[str] = None
    symptoms: list[Symptom] = Field(default_factory=list)
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    diagnoses: list[DiagnosisCandidate] = Field(default_factory=list)

    learner_notes: Optional[str] = None
    report_id: Optional[str] = None

    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def selected_diagnoses(self) -> list[DiagnosisCandidate]:
        return [d for d in self.diagnoses if d.is_selected]

    @property
    def selected_diagnosis(self) -> Optional[DiagnosisCandidate]:
        """The primary working diagnosis, if exactly one is selected."""
        selected = self.selected_diagnoses
        return selected[0] if len(selected) == 1 else None

    @property
    def red_flag_symptoms(self) -> list[Symptom]:
        return [s for s in self.symptoms if s.is_red_flag]


class Workflow(BaseModel):
    """Persisted state of one step controller."""

    workflow_id: str
    learner_id: str
    step: Step = Step.SELECTING_REGION
    session_id: Optional[str] = None
    generation: int = 0
    reviewer_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
