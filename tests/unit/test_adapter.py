"""
Unit tests for DiagnosisEngineAdapter.

The openai client is given an httpx.MockTransport, so these tests run the real
request building, error mapping and normalization.
"""

import json

import httpx
import pytest

from api.models.session import Symptom, TranscriptEntry
from intelligence import RegionRef
from tests.fixtures.mocks import DEFAULT_CONTENT, DEFAULT_DIAGNOSES, completion, make_adapter
from workflow.errors import GenerationError, ValidationError

REGION = RegionRef(region_id="abdomen", display_name="Abdomen")
SYMPTOMS = [Symptom(id="rlq_pain", name="Right lower quadrant pain")]


class TestGenerate:
    def test_returns_normalized_candidates(self, settings):
        adapter = make_adapter(settings, lambda request: completion(json.dumps(DEFAULT_DIAGNOSES)))
        result = adapter.generate(REGION, SYMPTOMS)

        assert [c.name for c in result] == ["Acute Appendicitis", "Gastroenteritis"]
        assert result[1].confidence == 0.35
        assert result[1].next_steps == ["Oral rehydration"]

    def test_request_shape(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return completion('{"diagnoses": []}')

        adapter = make_adapter(settings, handler)
        transcript = [TranscriptEntry(step_number=1, question="Onset?", answer="Sudden")]
        adapter.generate(REGION, SYMPTOMS, transcript)

        assert seen["path"] == "/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == settings.generator_model
        assert seen["body"]["response_format"] == {"type": "json_object"}
        user_prompt = seen["body"]["messages"][1]["content"]
        assert "Right lower quadrant pain" in user_prompt
        assert "Onset?: Sudden" in user_prompt

    def test_empty_result_is_not_an_error(self, settings):
        adapter = make_adapter(settings, lambda request: completion('{"diagnoses": []}'))
        assert adapter.generate(REGION, SYMPTOMS) == []

    def test_fenced_json_accepted(self, settings):
        content = "```json\n" + json.dumps(DEFAULT_DIAGNOSES) + "\n```"
        adapter = make_adapter(settings, lambda request: completion(content))
        assert len(adapter.generate(REGION, SYMPTOMS)) == 2

    def test_zero_symptoms_never_calls_generator(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            return completion('{"diagnoses": []}')

        adapter = make_adapter(settings, handler)
        with pytest.raises(ValidationError) as exc_info:
            adapter.generate(REGION, [])
        assert exc_info.value.field == "symptoms"
        assert calls == []

    def test_missing_region_rejected(self, settings):
        adapter = make_adapter(settings, lambda request: completion("{}"))
        with pytest.raises(ValidationError):
            adapter.generate(None, SYMPTOMS)


class TestErrorMapping:
    def test_http_status_error(self, settings):
        adapter = make_adapter(settings, lambda request: httpx.Response(500, json={"error": "down"}))
        with pytest.raises(GenerationError) as exc_info:
            adapter.generate(REGION, SYMPTOMS)
        assert exc_info.value.details["status_code"] == 500
        assert exc_info.value.details["retryable"] is True
        assert exc_info.value.status_code == 502

    def test_timeout(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = make_adapter(settings, handler)
        with pytest.raises(GenerationError, match="timed out"):
            adapter.generate(REGION, SYMPTOMS)

    def test_connection_failure(self, settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = make_adapter(settings, handler)
        with pytest.raises(GenerationError, match="could not be reached"):
            adapter.generate(REGION, SYMPTOMS)

    def test_unparsable_content(self, settings):
        adapter = make_adapter(settings, lambda request: completion("It is probably appendicitis."))
        with pytest.raises(GenerationError, match="malformed"):
            adapter.generate(REGION, SYMPTOMS)

    def test_missing_choices(self, settings):
        adapter = make_adapter(settings, lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(GenerationError):
            adapter.generate(REGION, SYMPTOMS)

    def test_malformed_envelope(self, settings):
        adapter = make_adapter(settings, lambda request: completion('{"diagnoses": "Appendicitis"}'))
        with pytest.raises(GenerationError) as exc_info:
            adapter.generate(REGION, SYMPTOMS)
        assert exc_info.value.operation == "generate_diagnoses"


class TestOtherOperations:
    def test_suggest_symptoms(self, settings):
        payload = {"symptoms": [{"name": "Fever", "is_red_flag": False}]}
        adapter = make_adapter(settings, lambda request: completion(json.dumps(payload)))
        result = adapter.suggest_symptoms(REGION)
        assert result[0].id == "fever"
        assert result[0].region_id == "abdomen"

    def test_follow_up_questions(self, settings):
        payload = {"questions": [{"question": "Any vomiting?", "options": ["Yes", "No"]}]}
        adapter = make_adapter(settings, lambda request: completion(json.dumps(payload)))
        result = adapter.follow_up_questions(REGION, SYMPTOMS)
        assert result[0].question == "Any vomiting?"

    def test_educational_content_uses_content_model(self, settings):
        models = []

        def handler(request):
            models.append(json.loads(request.content)["model"])
            return completion(json.dumps(DEFAULT_CONTENT))

        adapter = make_adapter(settings, handler)
        content = adapter.educational_content("Acute Appendicitis", REGION, SYMPTOMS)
        assert models == [settings.content_model]
        assert content.treatment == "First line: Appendectomy\nSupportive: Analgesia"
        assert content.pearls == ["Pain migrates from periumbilical to RLQ"]

    def test_server_error_is_not_retried(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"error": {"message": "overloaded"}})

        adapter = make_adapter(settings, handler)
        with pytest.raises(GenerationError):
            adapter.suggest_symptoms(REGION)
        assert len(calls) == 1
