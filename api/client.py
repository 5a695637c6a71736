"""
HTTP client for the Clinical Analyzer API.

Used by the Streamlit consoles. Every method returns decoded JSON (or raw
bytes for exports) and raises ``AnalyzerAPIError`` for non-2xx responses.
"""

from typing import Any, Optional

import httpx


class AnalyzerAPIError(Exception):
    """The API answered with an error status."""

    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class AnalyzerClient:
    """Thin wrapper over ``httpx.Client`` for the workflow endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self.client.request(method, path, **kwargs)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            message = payload.get("message") or payload.get("detail") or response.text
            raise AnalyzerAPIError(response.status_code, str(message), payload)
        return response

    def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._request(method, path, **kwargs).json()

    # Regions and workflows

    def list_regions(self, parent_id: Optional[str] = None) -> list[dict]:
        params = {"parent_id": parent_id} if parent_id else None
        return self._json("GET", "/v1/regions", params=params)

    def create_workflow(self, learner_id: str) -> dict:
        return self._json("POST", "/v1/workflows", json={"learner_id": learner_id})

    def list_workflows(self, learner_id: str) -> list[dict]:
        return self._json("GET", "/v1/workflows", params={"learner_id": learner_id})

    def get_workflow(self, workflow_id: str) -> dict:
        return self._json("GET", f"/v1/workflows/{workflow_id}")

    def select_region(self, workflow_id: str, region_id: str, display_name: Optional[str] = None) -> dict:
        return self._json(
            "POST",
            f"/v1/workflows/{workflow_id}/region",
            json={"region_id": region_id, "display_name": display_name},
        )

    def add_symptom(self, workflow_id: str, symptom: dict) -> dict:
        return self._json("POST", f"/v1/workflows/{workflow_id}/symptoms", json=symptom)

    def remove_symptom(self, workflow_id: str, symptom_id: str) -> dict:
        return self._json("DELETE", f"/v1/workflows/{workflow_id}/symptoms/{symptom_id}")

    def advance(self, workflow_id: str) -> dict:
        return self._json("POST", f"/v1/workflows/{workflow_id}/advance")

    def back(self, workflow_id: str) -> dict:
        return self._json("POST", f"/v1/workflows/{workflow_id}/back")

    def reset(self, workflow_id: str) -> dict:
        return self._json("POST", f"/v1/workflows/{workflow_id}/reset")

    # Generator-backed steps

    def suggest_symptoms(self, workflow_id: str) -> list[dict]:
        return self._json("GET", f"/v1/chat/{workflow_id}/symptoms")

    def follow_up_questions(self, workflow_id: str) -> list[dict]:
        return self._json("GET", f"/v1/chat/{workflow_id}/questions")

    def record_answer(self, workflow_id: str, question: str, answer: str) -> dict:
        return self._json(
            "POST",
            f"/v1/chat/{workflow_id}/answer",
            json={"question": question, "answer": answer},
        )

    def diagnose(self, workflow_id: str) -> dict:
        return self._json("POST", f"/v1/chat/{workflow_id}/diagnose")

    def select_diagnosis(self, workflow_id: str, diagnosis_name: str) -> dict:
        return self._json(
            "POST", f"/v1/chat/{workflow_id}/select", json={"diagnosis_name": diagnosis_name}
        )

    # Report and submission

    def compose_report(self, workflow_id: str, generate_content: bool = True) -> dict:
        return self._json(
            "POST",
            f"/v1/workflows/{workflow_id}/report",
            json={"generate_content": generate_content},
        )

    def update_notes(self, workflow_id: str, notes: str) -> bool:
        data = self._json("PUT", f"/v1/workflows/{workflow_id}/report/notes", json={"notes": notes})
        return bool(data.get("saved"))

    def submit(self, workflow_id: str, reviewer_id: str, notes: Optional[str] = None) -> dict:
        return self._json(
            "POST",
            f"/v1/workflows/{workflow_id}/submit",
            json={"reviewer_id": reviewer_id, "notes": notes},
        )

    def get_report(self, report_id: str) -> dict:
        return self._json("GET", f"/v1/reports/{report_id}")

    def export_report(self, report_id: str, format: str = "pdf") -> bytes:
        response = self._request("GET", f"/v1/reports/{report_id}/export", params={"format": format})
        return response.content

    # Review

    def list_reviewers(self) -> list[dict]:
        return self._json("GET", "/v1/review/reviewers")

    def review_queue(self, reviewer_id: str) -> list[dict]:
        return self._json("GET", "/v1/review/queue", params={"reviewer_id": reviewer_id})

    def get_submission(self, submission_id: str) -> dict:
        return self._json("GET", f"/v1/review/submissions/{submission_id}")

    def open_submission(self, submission_id: str) -> dict:
        return self._json("POST", f"/v1/review/submissions/{submission_id}/open")

    def submit_feedback(self, submission_id: str, feedback: dict) -> dict:
        return self._json("POST", f"/v1/review/submissions/{submission_id}/feedback", json=feedback)

    def learner_history(self, learner_id: str) -> list[dict]:
        return self._json("GET", "/v1/review/history", params={"learner_id": learner_id})

    def notifications(self, user_id: str) -> list[dict]:
        return self._json("GET", "/v1/review/notifications", params={"user_id": user_id})
