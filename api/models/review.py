"""
Review models.

GOVERNANCE:
- Approval requires written feedback
- A revision request requires feedback AND revision notes
- One submission gets exactly one review
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from api.models.session import utcnow


class SubmissionStatus(str, Enum):
    """Submission status enum."""

    ASSIGNED = "assigned"  # Waiting for the reviewer
    REVIEWED = "reviewed"  # Reviewer has decided


class NotificationKind(str, Enum):
    SUBMISSION_RECEIVED = "submission_received"
    FEEDBACK_RECEIVED = "feedback_received"


class Reviewer(BaseModel):
    """An instructor who can receive submissions."""

    reviewer_id: str
    display_name: str
    email: str
    department: Optional[str] = None
    active: bool = True


class ReviewFeedback(BaseModel):
    """Reviewer decision on a submission."""

    feedback_text: str = ""
    is_approved: bool = False
    revision_requested: bool = False
    revision_notes: Optional[str] = None
    suggested_diagnosis: Optional[str] = None
    suggested_diagnosis_reasoning: Optional[str] = None
    grade: Optional[str] = None
    strengths: list[str] = Field(default_factory=list)
    areas_for_improvement: list[str] = Field(default_factory=list)


class Submission(BaseModel):
    """A report handed to one reviewer."""

    submission_id: str
    report_id: str
    session_id: str
    learner_id: str
    reviewer_id: str
    notes: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.ASSIGNED
    submitted_at: datetime = Field(default_factory=utcnow)
    reviewed_at: Optional[datetime] = None
    feedback: Optional[ReviewFeedback] = None


class Notification(BaseModel):
    """In-app notice for a learner or reviewer."""

    notification_id: str
    user_id: str
    title: str
    message: str
    kind: NotificationKind
    entity_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
