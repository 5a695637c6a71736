"""
Mock generator for testing the workflow without network calls.

Configure responses per-test by setting attributes on the mock instance.
"""

from typing import Callable, Dict, List, Optional

import httpx

from api.models.report import EducationalContent
from api.models.session import DiagnosisCandidate, FollowUpQuestion, Symptom
from intelligence.adapter import DiagnosisEngineAdapter
from intelligence.normalize import (
    normalize_diagnoses,
    normalize_educational_content,
    normalize_questions,
    normalize_symptoms,
)
from storage.repository import Repository
from workflow.errors import PersistenceError, ValidationError

DEFAULT_DIAGNOSES = {
    "diagnoses": [
        {
            "name": "Acute Appendicitis",
            "probability": "high",
            "confidence": 0.82,
            "supporting_findings": ["RLQ tenderness", "Fever"],
            "contradicting_findings": [],
            "red_flags": ["Peritonitis"],
            "next_steps": ["CBC", "CT abdomen"],
            "icd_code": "K35.80",
        },
        {
            "diagnosisName": "Gastroenteritis",
            "probabilityTier": "moderate",
            "confidenceScore": 35,
            "supportingFindings": ["Nausea"],
            "recommended_next_steps": ["Oral rehydration"],
        },
    ]
}

DEFAULT_SYMPTOMS = {
    "symptoms": [
        {"id": "rlq_pain", "name": "Right lower quadrant pain"},
        {"id": "fever", "name": "Fever"},
        {"id": "rebound", "name": "Rebound tenderness", "isRedFlag": True},
    ]
}

DEFAULT_QUESTIONS = {
    "questions": [
        {
            "id": "q1",
            "question": "When did the pain start?",
            "clinicalRationale": "Onset timing",
            "options": [{"id": "a", "text": "Less than 24 hours ago"}, {"id": "b", "text": "Days ago"}],
        }
    ]
}

DEFAULT_CONTENT = {
    "pathophysiology": "Obstruction of the appendiceal lumen.",
    "riskFactors": ["Age 10-30"],
    "treatment": {"firstLine": "Appendectomy", "supportive": "Analgesia"},
    "prognosis": "Excellent with timely surgery.",
    "clinicalPearls": ["Pain migrates from periumbilical to RLQ"],
}


class MockDiagnosisEngine:
    """
    Stand-in for DiagnosisEngineAdapter.

    Responses are raw generator payloads run through the real normalizers,
    so tests exercise the same shapes the adapter would return.
    """

    def __init__(self):
        self.calls: Dict[str, List[Dict]] = {}
        self.diagnoses_payload = DEFAULT_DIAGNOSES
        self.symptoms_payload = DEFAULT_SYMPTOMS
        self.questions_payload = DEFAULT_QUESTIONS
        self.content_payload = DEFAULT_CONTENT
        self._raise_error: Optional[Exception] = None
        self.before_return: Optional[Callable[[], None]] = None

    def _record_call(self, method: str, **kwargs):
        self.calls.setdefault(method, []).append(kwargs)
        if self._raise_error is not None:
            raise self._raise_error

    def set_error(self, error: Optional[Exception]):
        """Set an error to raise on every call (None clears it)."""
        self._raise_error = error

    def generate(self, region, symptoms, transcript=()) -> List[DiagnosisCandidate]:
        if region is None or not region.region_id:
            raise ValidationError("A body region is required to generate diagnoses", field="region")
        if not symptoms:
            raise ValidationError("At least one symptom is required to generate diagnoses", field="symptoms")
        self._record_call("generate", region=region, symptoms=list(symptoms), transcript=list(transcript))
        if self.before_return is not None:
            self.before_return()
        return normalize_diagnoses(self.diagnoses_payload)

    def suggest_symptoms(self, region) -> List[Symptom]:
        self._record_call("suggest_symptoms", region=region)
        return normalize_symptoms(self.symptoms_payload, region.region_id)

    def follow_up_questions(self, region, symptoms) -> List[FollowUpQuestion]:
        self._record_call("follow_up_questions", region=region, symptoms=list(symptoms))
        return normalize_questions(self.questions_payload)

    def educational_content(self, diagnosis_name, region, symptoms) -> EducationalContent:
        self._record_call("educational_content", diagnosis_name=diagnosis_name)
        return normalize_educational_content(self.content_payload)


def make_adapter(settings, handler) -> DiagnosisEngineAdapter:
    """Real adapter whose HTTP traffic is answered by ``handler``."""
    return DiagnosisEngineAdapter(
        settings=settings,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def completion(content: str) -> httpx.Response:
    """Chat-completions response carrying ``content`` as the message."""
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 1700000000,
            "model": "test-model",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }
            ],
        },
    )


class FailingRepository(Repository):
    """Repository whose writes to the named collections fail on demand."""

    def __init__(self):
        super().__init__()
        self.fail_on: set = set()

    def _check(self, collection):
        if collection in self.fail_on:
            raise PersistenceError(f"Simulated write failure on '{collection}'", collection=collection)

    def create(self, collection, record):
        self._check(collection)
        return super().create(collection, record)

    def update(self, collection, record):
        self._check(collection)
        return super().update(collection, record)
