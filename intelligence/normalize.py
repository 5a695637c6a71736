"""
Normalization of generator payloads.

The generator names the same field several ways (snake_case, camelCase,
prefixed variants) and reports confidence either as a fraction or as a
percentage. Every payload is normalized here, once, so nothing past the
adapter ever sees the raw shapes.

Priority order per field is the order of the tuples below: the first key
holding a non-empty value wins.
"""

import json
import logging
import re
from typing import Any, Iterable, Optional

from api.models.report import EducationalContent
from api.models.session import (
    DiagnosisCandidate,
    FollowUpOption,
    FollowUpQuestion,
    ProbabilityTier,
    Symptom,
)

logger = logging.getLogger(__name__)

NAME_KEYS = ("diagnosis_name", "name", "diagnosisName")
CONFIDENCE_KEYS = ("confidence", "confidence_score", "confidenceScore")
PROBABILITY_KEYS = ("probability", "probability_tier", "probabilityTier")
SUPPORTING_KEYS = ("supporting_findings", "supportingFindings")
CONTRADICTING_KEYS = ("contradicting_findings", "contradictingFindings")
RED_FLAG_KEYS = ("red_flags", "redFlags")
NEXT_STEP_KEYS = ("next_steps", "nextSteps", "recommended_next_steps")
ICD_KEYS = ("icd_code", "icdCode", "diagnosis_code")
DESCRIPTION_KEYS = ("description", "brief_description", "briefDescription")
DIAGNOSIS_ENVELOPE_KEYS = ("diagnoses", "differential_diagnoses", "differentialDiagnoses")

SYMPTOM_RED_FLAG_KEYS = ("isRedFlag", "is_red_flag", "red_flag")


class MalformedPayload(ValueError):
    """The payload envelope is not a shape the generator contract allows."""


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def first_present(raw: dict, keys: Iterable[str]) -> Any:
    """Value of the first key holding a non-empty value, else None."""
    for key in keys:
        value = raw.get(key)
        if not _is_blank(value):
            return value
    return None


def normalize_confidence(raw: Any) -> float:
    """
    Coerce a raw confidence into [0, 1].

    Numbers above 1 are percentages; exactly 1 is a full-confidence fraction.
    Strings are parsed, and a trailing ``%`` always marks a percentage.
    Anything unparsable is 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0

    is_percent = False
    if isinstance(raw, str):
        text = raw.strip()
        if text.endswith("%"):
            is_percent = True
            text = text[:-1].strip()
        try:
            value = float(text)
        except ValueError:
            return 0.0
    elif isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            # Integer beyond float range; saturates to the nearest bound
            value = float("inf") if raw > 0 else float("-inf")
    else:
        return 0.0

    if value != value:  # NaN
        return 0.0
    if is_percent or value > 1:
        value = value / 100.0
    return round(min(max(value, 0.0), 1.0), 4)


def normalize_probability(raw: Any) -> ProbabilityTier:
    """Map a raw tier onto low/moderate/high; unknown values are low."""
    if isinstance(raw, str):
        try:
            return ProbabilityTier(raw.strip().lower())
        except ValueError:
            pass
    return ProbabilityTier.LOW


def normalize_list(raw: Any) -> list[str]:
    """Coerce a list-typed field: never None, strings become one-item lists."""
    if _is_blank(raw):
        return []
    if isinstance(raw, str):
        return [raw.strip()]
    if isinstance(raw, (list, tuple)):
        return [str(item).strip() for item in raw if not _is_blank(item)]
    return [str(raw)]


def _optional_text(raw: Any) -> Optional[str]:
    return str(raw).strip() if not _is_blank(raw) else None


def normalize_candidate(raw: Any) -> Optional[DiagnosisCandidate]:
    """Normalize one raw differential entry; None when it has no usable name."""
    if not isinstance(raw, dict):
        return None

    name = first_present(raw, NAME_KEYS)
    if not isinstance(name, str) or not name.strip():
        return None

    return DiagnosisCandidate(
        name=name.strip(),
        probability=normalize_probability(first_present(raw, PROBABILITY_KEYS)),
        confidence=normalize_confidence(first_present(raw, CONFIDENCE_KEYS)),
        supporting_findings=normalize_list(first_present(raw, SUPPORTING_KEYS)),
        contradicting_findings=normalize_list(first_present(raw, CONTRADICTING_KEYS)),
        red_flags=normalize_list(first_present(raw, RED_FLAG_KEYS)),
        next_steps=normalize_list(first_present(raw, NEXT_STEP_KEYS)),
        icd_code=_optional_text(first_present(raw, ICD_KEYS)),
        description=_optional_text(first_present(raw, DESCRIPTION_KEYS)),
    )


def _unwrap(payload: Any, envelope_keys: Iterable[str]) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = first_present(payload, envelope_keys)
        if items is None:
            return []
        if isinstance(items, list):
            return items
    raise MalformedPayload(f"Unexpected payload type: {type(payload).__name__}")


def normalize_diagnoses(payload: Any) -> list[DiagnosisCandidate]:
    """
    Normalize a whole diagnosis payload.

    Raises:
        MalformedPayload: if the envelope is neither a list nor a dict of lists
    """
    candidates = []
    for raw in _unwrap(payload, DIAGNOSIS_ENVELOPE_KEYS):
        candidate = normalize_candidate(raw)
        if candidate is None:
            logger.warning("Dropping diagnosis entry without a name: %r", raw)
            continue
        candidates.append(candidate)
    return candidates


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


def normalize_symptoms(payload: Any, region_id: str) -> list[Symptom]:
    """Normalize a symptom-suggestion payload for one region."""
    symptoms = []
    seen = set()
    for raw in _unwrap(payload, ("symptoms",)):
        if not isinstance(raw, dict):
            continue
        name = first_present(raw, ("name", "symptom_name", "symptomName"))
        if not isinstance(name, str) or not name.strip():
            continue
        symptom_id = str(first_present(raw, ("id", "symptom_id", "symptomId")) or _slug(name))
        if symptom_id in seen:
            continue
        seen.add(symptom_id)
        symptoms.append(
            Symptom(
                id=symptom_id,
                name=name.strip(),
                is_red_flag=bool(first_present(raw, SYMPTOM_RED_FLAG_KEYS)),
                description=_optional_text(raw.get("description")),
                region_id=region_id,
            )
        )
    return symptoms


def normalize_questions(payload: Any) -> list[FollowUpQuestion]:
    """Normalize a follow-up question payload."""
    questions = []
    for index, raw in enumerate(_unwrap(payload, ("questions",)), 1):
        if not isinstance(raw, dict):
            continue
        text = first_present(raw, ("question", "text", "question_text"))
        if not isinstance(text, str) or not text.strip():
            continue
        options = []
        for opt_index, option in enumerate(raw.get("options") or [], 1):
            if isinstance(option, str):
                option = {"text": option}
            if not isinstance(option, dict) or _is_blank(option.get("text")):
                continue
            options.append(
                FollowUpOption(
                    id=str(option.get("id") or f"q{index}_{opt_index}"),
                    text=str(option["text"]).strip(),
                    clinical_significance=_optional_text(
                        first_present(option, ("clinicalSignificance", "clinical_significance"))
                    ),
                )
            )
        questions.append(
            FollowUpQuestion(
                id=str(raw.get("id") or f"q{index}"),
                question=text.strip(),
                rationale=_optional_text(
                    first_present(raw, ("clinicalRationale", "clinical_rationale", "rationale"))
                ),
                options=options,
            )
        )
    return questions


def _flatten_treatment(raw: Any) -> str:
    if isinstance(raw, dict):
        parts = []
        for key, label in (
            (("firstLine", "first_line"), "First line"),
            (("alternatives",), "Alternatives"),
            (("supportive",), "Supportive"),
        ):
            value = first_present(raw, key)
            if value is not None:
                parts.append(f"{label}: {str(value).strip()}")
        return "\n".join(parts)
    return _optional_text(raw) or ""


def normalize_educational_content(payload: Any) -> EducationalContent:
    """Normalize an educational-content payload."""
    if not isinstance(payload, dict):
        raise MalformedPayload(f"Unexpected payload type: {type(payload).__name__}")
    return EducationalContent(
        pathophysiology=_optional_text(payload.get("pathophysiology")) or "",
        risk_factors=normalize_list(first_present(payload, ("risk_factors", "riskFactors"))),
        diagnostic_criteria=normalize_list(
            first_present(payload, ("diagnostic_criteria", "diagnosticCriteria"))
        ),
        treatment=_flatten_treatment(payload.get("treatment")),
        complications=normalize_list(payload.get("complications")),
        prognosis=_optional_text(payload.get("prognosis")) or "",
        pearls=normalize_list(first_present(payload, ("pearls", "clinical_pearls", "clinicalPearls"))),
        references=normalize_list(
            first_present(payload, ("references", "suggested_references", "suggestedReferences"))
        ),
    )


def strip_markdown_json(text: str) -> str:
    """Strip markdown code block wrappers from JSON text."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    return text


def parse_json_content(text: str) -> Any:
    """Parse model output as JSON, tolerating code fences."""
    return json.loads(strip_markdown_json(text or ""))
