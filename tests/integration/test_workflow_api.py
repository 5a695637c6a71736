"""
API tests for the learner workflow.

Drives the whole path over HTTP: region, symptoms, follow-up answers,
diagnosis, selection, report composition and submission.
"""

from fastapi.testclient import TestClient

from tests.fixtures.mocks import MockDiagnosisEngine
from workflow.errors import GenerationError

SYMPTOM = {"id": "rlq_pain", "name": "Right lower quadrant pain"}


def create(client: TestClient, learner_id: str = "learner_1") -> str:
    response = client.post("/v1/workflows", json={"learner_id": learner_id})
    assert response.status_code == 200
    return response.json()["workflow_id"]


def to_awaiting(client: TestClient) -> str:
    workflow_id = create(client)
    client.post(f"/v1/workflows/{workflow_id}/region", json={"region_id": "abdomen"})
    client.post(f"/v1/workflows/{workflow_id}/advance")
    client.post(f"/v1/workflows/{workflow_id}/symptoms", json=SYMPTOM)
    response = client.post(f"/v1/workflows/{workflow_id}/advance")
    assert response.json()["step"] == "awaiting_diagnosis"
    return workflow_id


def to_composing(client: TestClient) -> str:
    workflow_id = to_awaiting(client)
    assert client.post(f"/v1/chat/{workflow_id}/diagnose").status_code == 200
    client.post(f"/v1/chat/{workflow_id}/select", json={"diagnosis_name": "Acute Appendicitis"})
    response = client.post(f"/v1/workflows/{workflow_id}/advance")
    assert response.json()["step"] == "composing_report"
    return workflow_id


class TestServiceEndpoints:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client: TestClient):
        assert "workflows" in client.get("/").json()["endpoints"]

    def test_regions(self, client: TestClient):
        regions = client.get("/v1/regions").json()
        assert regions[0]["region_id"] == "head"
        assert all(r["parent_id"] is None for r in regions)

    def test_sub_regions(self, client: TestClient):
        regions = client.get("/v1/regions", params={"parent_id": "abdomen"}).json()
        assert {r["parent_id"] for r in regions} == {"abdomen"}


class TestWorkflowSteps:
    def test_create_and_get(self, client: TestClient):
        workflow_id = create(client)
        data = client.get(f"/v1/workflows/{workflow_id}").json()
        assert data["step"] == "selecting_region"
        assert data["session"] is None

    def test_unknown_workflow_is_404(self, client: TestClient):
        response = client.get("/v1/workflows/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_zero_symptoms_is_400(self, client: TestClient):
        workflow_id = create(client)
        client.post(f"/v1/workflows/{workflow_id}/region", json={"region_id": "chest"})
        client.post(f"/v1/workflows/{workflow_id}/advance")

        response = client.post(f"/v1/workflows/{workflow_id}/advance")
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "symptoms"
        assert client.get(f"/v1/workflows/{workflow_id}").json()["step"] == "selecting_symptoms"

    def test_remove_symptom(self, client: TestClient):
        workflow_id = create(client)
        client.post(f"/v1/workflows/{workflow_id}/region", json={"region_id": "abdomen"})
        client.post(f"/v1/workflows/{workflow_id}/advance")
        client.post(f"/v1/workflows/{workflow_id}/symptoms", json=SYMPTOM)
        data = client.delete(f"/v1/workflows/{workflow_id}/symptoms/rlq_pain").json()
        assert data["session"]["symptoms"] == []

    def test_suggest_symptoms(self, client: TestClient, engine: MockDiagnosisEngine):
        workflow_id = create(client)
        client.post(f"/v1/workflows/{workflow_id}/region", json={"region_id": "abdomen"})
        symptoms = client.get(f"/v1/chat/{workflow_id}/symptoms").json()
        assert [s["id"] for s in symptoms] == ["rlq_pain", "fever", "rebound"]
        assert symptoms[2]["is_red_flag"] is True

    def test_questions_and_answers(self, client: TestClient):
        workflow_id = to_awaiting(client)
        questions = client.get(f"/v1/chat/{workflow_id}/questions").json()
        assert questions[0]["options"][0]["text"] == "Less than 24 hours ago"

        response = client.post(
            f"/v1/chat/{workflow_id}/answer",
            json={"question": questions[0]["question"], "answer": "Less than 24 hours ago"},
        )
        transcript = response.json()["session"]["transcript"]
        assert transcript[0]["step_number"] == 1

    def test_diagnose_returns_normalized_candidates(self, client: TestClient):
        workflow_id = to_awaiting(client)
        data = client.post(f"/v1/chat/{workflow_id}/diagnose").json()
        assert data["workflow"]["step"] == "reviewing_results"
        assert [d["confidence"] for d in data["diagnoses"]] == [0.82, 0.35]

    def test_generation_failure_is_502_and_step_kept(self, client: TestClient, engine: MockDiagnosisEngine):
        workflow_id = to_awaiting(client)
        engine.set_error(GenerationError("The generator timed out", operation="generate_diagnoses"))

        response = client.post(f"/v1/chat/{workflow_id}/diagnose")
        assert response.status_code == 502
        assert response.json()["details"]["retryable"] is True
        assert client.get(f"/v1/workflows/{workflow_id}").json()["step"] == "awaiting_diagnosis"

    def test_select_unknown_diagnosis(self, client: TestClient):
        workflow_id = to_awaiting(client)
        client.post(f"/v1/chat/{workflow_id}/diagnose")
        response = client.post(f"/v1/chat/{workflow_id}/select", json={"diagnosis_name": "Migraine"})
        assert response.status_code == 400

    def test_back_and_reset(self, client: TestClient):
        workflow_id = to_awaiting(client)
        assert client.post(f"/v1/workflows/{workflow_id}/back").json()["step"] == "selecting_symptoms"

        data = client.post(f"/v1/workflows/{workflow_id}/reset").json()
        assert data["step"] == "selecting_region"
        assert data["session"] is None
        assert client.get("/v1/workflows/stats/counts").json() == {"abandoned": 1}

    def test_list_workflows_for_resume(self, client: TestClient):
        first = create(client)
        create(client, learner_id="someone_else")
        listed = client.get("/v1/workflows", params={"learner_id": "learner_1"}).json()
        assert [w["workflow_id"] for w in listed] == [first]


class TestReportAndSubmission:
    def test_compose_with_content(self, client: TestClient):
        workflow_id = to_composing(client)
        data = client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": True}).json()
        assert data["content_generated"] is True
        assert data["report"]["educational_content"]["treatment"].startswith("First line")
        assert data["report"]["soap"]["plan"] == "1. CBC\n2. CT abdomen"

    def test_compose_without_body(self, client: TestClient):
        workflow_id = to_composing(client)
        response = client.post(f"/v1/workflows/{workflow_id}/report")
        assert response.status_code == 200
        assert response.json()["content_generated"] is True

    def test_content_failure_still_composes(self, client: TestClient, engine: MockDiagnosisEngine):
        workflow_id = to_composing(client)
        engine.set_error(GenerationError("down", operation="educational_content"))
        data = client.post(f"/v1/workflows/{workflow_id}/report", json={}).json()
        assert data["content_generated"] is False
        assert data["report"]["soap"]["assessment"].startswith("Primary working diagnosis")

    def test_notes_saved(self, client: TestClient):
        workflow_id = to_composing(client)
        client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": False})
        response = client.put(f"/v1/workflows/{workflow_id}/report/notes", json={"notes": "check WBC"})
        assert response.json() == {"saved": True}

    def test_submit_and_export(self, client: TestClient):
        workflow_id = to_composing(client)
        report = client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": False}).json()["report"]

        response = client.post(f"/v1/workflows/{workflow_id}/submit", json={"reviewer_id": "demo_reviewer"})
        assert response.status_code == 200
        data = response.json()
        assert data["workflow"]["step"] == "submitted"
        assert data["submission"]["status"] == "assigned"

        assert client.get(f"/v1/reports/{report['report_id']}").json()["status"] == "submitted"

        pdf = client.get(f"/v1/reports/{report['report_id']}/export", params={"format": "pdf"})
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content.startswith(b"%PDF")

        md = client.get(f"/v1/reports/{report['report_id']}/export", params={"format": "markdown"})
        assert md.headers["content-type"].startswith("text/markdown")
        assert "### Plan" in md.text

    def test_unsupported_export_format(self, client: TestClient):
        workflow_id = to_composing(client)
        report = client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": False}).json()["report"]
        response = client.get(f"/v1/reports/{report['report_id']}/export", params={"format": "docx"})
        assert response.status_code == 400

    def test_submit_without_reviewer(self, client: TestClient):
        workflow_id = to_composing(client)
        client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": False})
        response = client.post(f"/v1/workflows/{workflow_id}/submit", json={})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "reviewer_id"

    def test_choose_reviewer_then_submit(self, client: TestClient):
        workflow_id = to_composing(client)
        client.post(f"/v1/workflows/{workflow_id}/report", json={"generate_content": False})
        reviewer = client.post(f"/v1/workflows/{workflow_id}/reviewer", json={"reviewer_id": "demo_reviewer"})
        assert reviewer.json()["display_name"] == "Dr. Demo Reviewer"
        assert client.post(f"/v1/workflows/{workflow_id}/submit", json={}).status_code == 200
