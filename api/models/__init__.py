"""API models."""

from api.models.report import (
    EducationalContent,
    Report,
    ReportStatus,
    SoapNote,
)
from api.models.review import (
    Notification,
    NotificationKind,
    Reviewer,
    ReviewFeedback,
    Submission,
    SubmissionStatus,
)
from api.models.session import (
    BodyRegion,
    DiagnosisCandidate,
    FollowUpOption,
    FollowUpQuestion,
    ProbabilityTier,
    Session,
    SessionStatus,
    Step,
    Symptom,
    TranscriptEntry,
    Workflow,
)

__all__ = [
    "BodyRegion",
    "DiagnosisCandidate",
    "EducationalContent",
    "FollowUpOption",
    "FollowUpQuestion",
    "Notification",
    "NotificationKind",
    "ProbabilityTier",
    "Report",
    "ReportStatus",
    "Reviewer",
    "ReviewFeedback",
    "Session",
    "SessionStatus",
    "SoapNote",
    "Step",
    "Submission",
    "SubmissionStatus",
    "Symptom",
    "TranscriptEntry",
    "Workflow",
]
