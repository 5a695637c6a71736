"""
API tests for the reviewer side: queue, detail, decisions, history.
"""

import pytest
from fastapi.testclient import TestClient

from tests.factories import at_submitted


@pytest.fixture
def submission(storage, client):
    """A submission assigned to the demo reviewer."""
    _, submission = at_submitted(storage)
    return submission


class TestQueue:
    def test_reviewers(self, client: TestClient):
        reviewers = client.get("/v1/review/reviewers").json()
        assert [r["reviewer_id"] for r in reviewers] == ["demo_reviewer"]

    def test_queue_lists_assigned(self, client: TestClient, submission):
        queue = client.get("/v1/review/queue", params={"reviewer_id": "demo_reviewer"}).json()
        assert [s["submission_id"] for s in queue] == [submission.submission_id]

    def test_queue_of_other_reviewer_empty(self, client: TestClient, submission):
        assert client.get("/v1/review/queue", params={"reviewer_id": "someone"}).json() == []

    def test_detail(self, client: TestClient, submission):
        data = client.get(f"/v1/review/submissions/{submission.submission_id}").json()
        assert data["report"]["primary_diagnosis"] == "Acute Appendicitis"
        assert data["session"]["region_id"] == "abdomen"

    def test_detail_not_found(self, client: TestClient):
        assert client.get("/v1/review/submissions/missing").status_code == 404

    def test_reviewer_notified(self, client: TestClient, submission):
        notifications = client.get("/v1/review/notifications", params={"user_id": "demo_reviewer"}).json()
        assert notifications[0]["kind"] == "submission_received"


class TestDecisions:
    def test_open_then_approve(self, client: TestClient, submission):
        opened = client.post(f"/v1/review/submissions/{submission.submission_id}/open").json()
        assert opened["status"] == "under_review"

        response = client.post(
            f"/v1/review/submissions/{submission.submission_id}/feedback",
            json={"feedback_text": "Well reasoned", "is_approved": True, "strengths": ["Clear plan"]},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "reviewed"

        report = client.get(f"/v1/reports/{submission.report_id}").json()
        assert report["status"] == "approved"
        assert client.get("/v1/review/queue", params={"reviewer_id": "demo_reviewer"}).json() == []

    def test_revision_without_notes_rejected(self, client: TestClient, submission):
        response = client.post(
            f"/v1/review/submissions/{submission.submission_id}/feedback",
            json={"feedback_text": "Reconsider", "revision_requested": True},
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "revision_notes"

        queue = client.get("/v1/review/queue", params={"reviewer_id": "demo_reviewer"}).json()
        assert [s["status"] for s in queue] == ["assigned"]

    def test_revision_reaches_learner(self, client: TestClient, submission):
        client.post(
            f"/v1/review/submissions/{submission.submission_id}/feedback",
            json={
                "feedback_text": "Reconsider",
                "revision_requested": True,
                "revision_notes": "Exclude ectopic pregnancy",
            },
        )
        history = client.get("/v1/review/history", params={"learner_id": "learner_1"}).json()
        assert history[0]["feedback"]["revision_notes"] == "Exclude ectopic pregnancy"

        notifications = client.get("/v1/review/notifications", params={"user_id": "learner_1"}).json()
        assert notifications[0]["kind"] == "feedback_received"
