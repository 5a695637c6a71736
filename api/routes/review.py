"""
Reviewer routes.

GOVERNANCE:
- NO skip option: every review approves or requests a revision
- A revision request REQUIRES revision notes
- All decisions are recorded against the assigned reviewer
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.models.report import Report
from api.models.review import Notification, Reviewer, ReviewFeedback, Submission
from api.models.session import Session
from storage import Repository, get_storage
from workflow.gateway import SubmissionGateway

router = APIRouter(prefix="/v1/review", tags=["review"])


def get_gateway(storage: Repository = Depends(get_storage)) -> SubmissionGateway:
    return SubmissionGateway(storage)


class SubmissionDetailResponse(BaseModel):
    """Everything a reviewer needs to assess one submission."""

    submission: Submission
    report: Report
    session: Session


@router.get("/reviewers", response_model=list[Reviewer])
def list_reviewers(storage: Repository = Depends(get_storage)):
    """List active reviewers a learner can submit to."""
    reviewers: list[Reviewer] = storage.list("reviewers", active=True)
    return sorted(reviewers, key=lambda r: r.display_name)


@router.get("/queue", response_model=list[Submission])
def get_review_queue(reviewer_id: str, gateway: SubmissionGateway = Depends(get_gateway)):
    """
    Get submissions pending review for a reviewer.

    Returns submissions with status ``assigned``, oldest first.
    """
    return gateway.pending_for_reviewer(reviewer_id)


@router.get("/submissions/{submission_id}", response_model=SubmissionDetailResponse)
def get_submission(submission_id: str, storage: Repository = Depends(get_storage)):
    submission: Submission = storage.require("submissions", submission_id)
    return SubmissionDetailResponse(
        submission=submission,
        report=storage.require("reports", submission.report_id),
        session=storage.require("sessions", submission.session_id),
    )


@router.post("/submissions/{submission_id}/open", response_model=Report)
def open_submission(submission_id: str, gateway: SubmissionGateway = Depends(get_gateway)):
    """Mark the submitted report as under review."""
    return gateway.open_for_review(submission_id)


@router.post("/submissions/{submission_id}/feedback", response_model=Submission)
def submit_feedback(
    submission_id: str,
    feedback: ReviewFeedback,
    gateway: SubmissionGateway = Depends(get_gateway),
):
    """
    Record the reviewer's decision.

    GOVERNANCE:
    - Exactly one of ``is_approved`` / ``revision_requested``
    - A rejected decision leaves the submission assigned
    """
    return gateway.resolve(submission_id, feedback)


@router.get("/history", response_model=list[Submission])
def get_learner_history(learner_id: str, gateway: SubmissionGateway = Depends(get_gateway)):
    """All submissions of a learner, newest first, with any feedback."""
    return gateway.history_for_learner(learner_id)


@router.get("/notifications", response_model=list[Notification])
def get_notifications(user_id: str, storage: Repository = Depends(get_storage)):
    notifications: list[Notification] = storage.list("notifications", user_id=user_id)
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)
