"""
Submission gateway.

GOVERNANCE:
- SOAP completeness is re-checked at submission, never trusted from the caller
- Every review ends in exactly one of: approved, revision requested
- A reviewed submission is closed; a revision is a new submission
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from api.models.report import Report, ReportStatus
from api.models.review import (
    Notification,
    NotificationKind,
    Reviewer,
    ReviewFeedback,
    Submission,
    SubmissionStatus,
)
from api.models.session import Session, SessionStatus
from storage.repository import Repository
from workflow.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def validate_feedback(feedback: ReviewFeedback) -> None:
    """Check that a review carries the fields its outcome requires."""
    if feedback.is_approved == feedback.revision_requested:
        raise ValidationError(
            "A review must either approve the report or request a revision",
            field="outcome",
        )
    if not feedback.feedback_text.strip():
        raise ValidationError("Feedback text is required", field="feedback_text")
    if feedback.revision_requested and not (feedback.revision_notes or "").strip():
        raise ValidationError(
            "Revision notes are required when requesting a revision",
            field="revision_notes",
        )


class SubmissionGateway:
    """Binds reports to reviewers and tracks the feedback round-trip."""

    def __init__(self, storage: Repository):
        self.storage = storage

    def submit(self, report: Report, reviewer_id: str, notes: Optional[str] = None) -> Submission:
        """
        Hand a draft report to a reviewer.

        Args:
            report: Composed report (reloaded from storage by the caller or not)
            reviewer_id: Reviewer from the directory
            notes: Learner notes for the reviewer

        Returns:
            The new submission, status ``assigned``
        """
        if report.status != ReportStatus.DRAFT:
            raise ValidationError(
                f"Only draft reports can be submitted (status: {report.status.value})",
                field="status",
            )
        missing = report.soap.missing_sections()
        if missing:
            raise ValidationError(
                f"SOAP sections must not be empty: {', '.join(missing)}",
                field="soap",
                details={"missing": missing},
            )
        if not reviewer_id:
            raise ValidationError("A reviewer must be chosen", field="reviewer_id")

        reviewer: Reviewer = self.storage.require("reviewers", reviewer_id)
        if not reviewer.active:
            raise ValidationError(f"Reviewer {reviewer_id} is not active", field="reviewer_id")
        session: Session = self.storage.require("sessions", report.session_id)
        stored_report: Report = self.storage.require("reports", report.report_id)
        if stored_report.status != ReportStatus.DRAFT:
            raise ValidationError(
                f"Only draft reports can be submitted (status: {stored_report.status.value})",
                field="status",
            )

        now = datetime.now(timezone.utc)
        submission = Submission(
            submission_id=str(uuid.uuid4()),
            report_id=report.report_id,
            session_id=session.session_id,
            learner_id=session.learner_id,
            reviewer_id=reviewer_id,
            notes=notes,
            submitted_at=now,
        )
        submitted_report = report.model_copy(
            deep=True,
            update={
                "status": ReportStatus.SUBMITTED,
                "learner_notes": notes if notes is not None else report.learner_notes,
                "updated_at": now,
            },
        )
        submitted_session = session.model_copy(
            deep=True, update={"status": SessionStatus.SUBMITTED}
        )

        # The submission is created last, so a failed write never leaves one behind
        self.storage.update("reports", submitted_report)
        try:
            self.storage.update("sessions", submitted_session)
            self.storage.create("submissions", submission)
        except PersistenceError:
            self.storage.restore("sessions", session)
            self.storage.restore("reports", stored_report)
            raise

        self._notify(
            user_id=reviewer_id,
            title="New Submission for Review",
            message=f"Learner {session.learner_id} submitted '{report.title}' for your review.",
            kind=NotificationKind.SUBMISSION_RECEIVED,
            entity_id=submission.submission_id,
        )
        logger.info(
            "Report %s submitted to reviewer %s",
            report.report_id,
            reviewer_id,
            extra={"submission_id": submission.submission_id, "session_id": session.session_id},
        )
        return submission

    def open_for_review(self, submission_id: str) -> Report:
        """Mark the submitted report as under review."""
        submission: Submission = self.storage.require("submissions", submission_id)
        report: Report = self.storage.require("reports", submission.report_id)
        if submission.status != SubmissionStatus.ASSIGNED:
            raise ValidationError(
                f"Submission is not awaiting review (status: {submission.status.value})",
                field="status",
            )
        if report.status == ReportStatus.SUBMITTED:
            report.status = ReportStatus.UNDER_REVIEW
            report.updated_at = datetime.now(timezone.utc)
            self.storage.update("reports", report)
        return report

    def resolve(self, submission_id: str, feedback: ReviewFeedback) -> Submission:
        """
        Record the reviewer's decision.

        Validation happens before anything is written, so a rejected decision
        leaves the submission ``assigned``.
        """
        submission: Submission = self.storage.require("submissions", submission_id)
        if submission.status != SubmissionStatus.ASSIGNED:
            raise ValidationError(
                f"Submission has already been reviewed (status: {submission.status.value})",
                field="status",
            )
        validate_feedback(feedback)

        now = datetime.now(timezone.utc)
        report: Report = self.storage.require("reports", submission.report_id)
        session: Optional[Session] = self.storage.get("sessions", submission.session_id)

        reviewed_report = report.model_copy(
            deep=True,
            update={
                "status": (
                    ReportStatus.APPROVED
                    if feedback.is_approved
                    else ReportStatus.REVISION_REQUESTED
                ),
                "updated_at": now,
            },
        )
        reviewed = submission.model_copy(
            deep=True,
            update={
                "status": SubmissionStatus.REVIEWED,
                "feedback": feedback,
                "reviewed_at": now,
            },
        )

        # Closing the submission is the last write; until then a retry is allowed
        self.storage.update("reports", reviewed_report)
        try:
            if session is not None:
                self.storage.update(
                    "sessions", session.model_copy(update={"status": SessionStatus.REVIEWED})
                )
            self.storage.update("submissions", reviewed)
        except PersistenceError:
            if session is not None:
                self.storage.restore("sessions", session)
            self.storage.restore("reports", report)
            raise

        self._notify(
            user_id=submission.learner_id,
            title="Submission Reviewed",
            message=(
                "Your clinical analysis has been approved!"
                if feedback.is_approved
                else "Your clinical analysis requires revision."
            ),
            kind=NotificationKind.FEEDBACK_RECEIVED,
            entity_id=submission_id,
        )
        logger.info(
            "Submission resolved as %s",
            reviewed_report.status.value,
            extra={"submission_id": submission_id, "session_id": submission.session_id},
        )
        return reviewed

    def pending_for_reviewer(self, reviewer_id: str) -> list[Submission]:
        """Submissions still waiting for this reviewer, oldest first."""
        pending = self.storage.list(
            "submissions", reviewer_id=reviewer_id, status=SubmissionStatus.ASSIGNED
        )
        return sorted(pending, key=lambda s: s.submitted_at)

    def history_for_learner(self, learner_id: str) -> list[Submission]:
        """Every submission of a learner, newest first."""
        history = self.storage.list("submissions", learner_id=learner_id)
        return sorted(history, key=lambda s: s.submitted_at, reverse=True)

    def _notify(
        self, user_id: str, title: str, message: str, kind: NotificationKind, entity_id: str
    ) -> None:
        """Notifications are best effort; a lost one never undoes the decision."""
        try:
            self.storage.create(
                "notifications",
                Notification(
                    notification_id=str(uuid.uuid4()),
                    user_id=user_id,
                    title=title,
                    message=message,
                    kind=kind,
                    entity_id=entity_id,
                ),
            )
        except PersistenceError as exc:
            logger.warning("Notification for %s about %s not saved: %s", user_id, entity_id, exc.message)
