"""
Adapter for the diagnosis/content generator.

GOVERNANCE:
- Generated output is teaching material only
- No automatic retry: every call is triggered by the learner
- Raw payload shapes never leave this package
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
import openai

from config import Settings, get_settings
from api.models.report import EducationalContent
from api.models.session import (
    DiagnosisCandidate,
    FollowUpQuestion,
    Symptom,
    TranscriptEntry,
)
from intelligence.normalize import (
    MalformedPayload,
    normalize_diagnoses,
    normalize_educational_content,
    normalize_questions,
    normalize_symptoms,
    parse_json_content,
)
from intelligence.prompts import (
    CONTENT_SYSTEM_PROMPT,
    DIAGNOSIS_SYSTEM_PROMPT,
    QUESTIONS_SYSTEM_PROMPT,
    SYMPTOMS_SYSTEM_PROMPT,
    build_content_prompt,
    build_diagnosis_prompt,
    build_questions_prompt,
    build_symptoms_prompt,
)
from workflow.errors import GenerationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class RegionRef:
    """Body region as the generator sees it."""

    region_id: str
    display_name: str


class DiagnosisEngineAdapter:
    """
    Adapter for the external generator.

    Talks to an OpenAI-compatible chat-completions endpoint through the
    ``openai`` SDK and turns every response into canonical models. Network
    errors, timeouts, non-2xx statuses and unparsable bodies all surface as
    GenerationError.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or get_settings()
        self.client = openai.OpenAI(
            base_url=self.settings.generator_base_url,
            # Self-hosted OpenAI-compatible servers accept any key
            api_key=self.settings.generator_api_key or "unset",
            timeout=self.settings.generator_timeout,
            max_retries=0,
            http_client=http_client,
        )

    def generate(
        self,
        region: Optional[RegionRef],
        symptoms: Sequence[Symptom],
        transcript: Sequence[TranscriptEntry] = (),
    ) -> list[DiagnosisCandidate]:
        """
        Generate a normalized differential for the collected facts.

        Args:
            region: Selected body region
            symptoms: Selected symptoms (must be non-empty)
            transcript: Answered follow-up questions, in order

        Returns:
            Normalized candidates; an empty list is a valid result

        Raises:
            ValidationError: if region or symptoms are missing
            GenerationError: if the call fails or the payload is unusable
        """
        if region is None or not region.region_id:
            raise ValidationError("A body region is required to generate diagnoses", field="region")
        if not symptoms:
            raise ValidationError("At least one symptom is required to generate diagnoses", field="symptoms")

        payload = self._complete(
            operation="generate_diagnoses",
            model=self.settings.generator_model,
            system_prompt=DIAGNOSIS_SYSTEM_PROMPT,
            user_prompt=build_diagnosis_prompt(region.display_name, symptoms, transcript),
        )
        try:
            candidates = normalize_diagnoses(payload)
        except MalformedPayload as exc:
            raise GenerationError(str(exc), operation="generate_diagnoses") from exc

        logger.info(
            "Generated %d diagnosis candidates for region %s", len(candidates), region.region_id
        )
        return candidates

    def suggest_symptoms(self, region: RegionRef) -> list[Symptom]:
        """Suggest selectable symptoms for a body region."""
        payload = self._complete(
            operation="suggest_symptoms",
            model=self.settings.generator_model,
            system_prompt=SYMPTOMS_SYSTEM_PROMPT,
            user_prompt=build_symptoms_prompt(region.region_id, region.display_name),
        )
        try:
            return normalize_symptoms(payload, region.region_id)
        except MalformedPayload as exc:
            raise GenerationError(str(exc), operation="suggest_symptoms") from exc

    def follow_up_questions(
        self, region: RegionRef, symptoms: Sequence[Symptom]
    ) -> list[FollowUpQuestion]:
        """Generate follow-up questions for the AI-chat step."""
        payload = self._complete(
            operation="follow_up_questions",
            model=self.settings.generator_model,
            system_prompt=QUESTIONS_SYSTEM_PROMPT,
            user_prompt=build_questions_prompt(region.display_name, symptoms),
        )
        try:
            return normalize_questions(payload)
        except MalformedPayload as exc:
            raise GenerationError(str(exc), operation="follow_up_questions") from exc

    def educational_content(
        self, diagnosis_name: str, region: RegionRef, symptoms: Sequence[Symptom]
    ) -> EducationalContent:
        """Generate the educational block for the primary diagnosis."""
        payload = self._complete(
            operation="educational_content",
            model=self.settings.content_model,
            system_prompt=CONTENT_SYSTEM_PROMPT,
            user_prompt=build_content_prompt(diagnosis_name, region.display_name, symptoms),
        )
        try:
            return normalize_educational_content(payload)
        except MalformedPayload as exc:
            raise GenerationError(str(exc), operation="educational_content") from exc

    def close(self) -> None:
        self.client.close()

    def _complete(
        self, operation: str, model: str, system_prompt: str, user_prompt: str
    ) -> Any:
        """Run one chat completion and return the parsed JSON content."""
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.generator_temperature,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as exc:
            logger.error("Generator timed out", extra={"operation": operation})
            raise GenerationError("The generator timed out", operation=operation) from exc
        except openai.APIStatusError as exc:
            logger.error("Generator returned HTTP %s", exc.status_code, extra={"operation": operation})
            raise GenerationError(
                f"The generator returned HTTP {exc.status_code}",
                operation=operation,
                details={"status_code": exc.status_code},
            ) from exc
        except openai.APIConnectionError as exc:
            logger.error("Generator request failed: %s", exc, extra={"operation": operation})
            raise GenerationError("The generator could not be reached", operation=operation) from exc
        except openai.APIError as exc:
            logger.error("Generator call failed: %s", exc, extra={"operation": operation})
            raise GenerationError(
                "The generator returned a malformed response", operation=operation
            ) from exc

        try:
            content = response.choices[0].message.content
            return parse_json_content(content)
        except (json.JSONDecodeError, AttributeError, IndexError, TypeError) as exc:
            logger.error("Unparsable generator response: %s", exc, extra={"operation": operation})
            raise GenerationError(
                "The generator returned a malformed response", operation=operation
            ) from exc
