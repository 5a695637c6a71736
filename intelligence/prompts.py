"""Prompt templates for the generator."""

from typing import Sequence

from api.models.session import Symptom, TranscriptEntry

SYMPTOMS_SYSTEM_PROMPT = """You are a medical education AI. Generate realistic symptoms for the specified body region.
Return ONLY valid JSON with this structure:
{
  "symptoms": [
    {"id": "unique_id", "name": "Symptom Name", "description": "Brief description", "isRedFlag": false}
  ]
}
Include 8-10 symptoms. Mark dangerous symptoms as isRedFlag: true."""

QUESTIONS_SYSTEM_PROMPT = """You are a medical education AI teaching clinical reasoning.
Return ONLY valid JSON with this structure:
{
  "questions": [
    {
      "id": "q1",
      "question": "Question text",
      "clinicalRationale": "Why this matters",
      "options": [{"id": "q1_a", "text": "Option", "clinicalSignificance": "What it means"}]
    }
  ]
}
Generate exactly 5 questions with 4 options each."""

DIAGNOSIS_SYSTEM_PROMPT = """You are a medical education AI providing differential diagnoses.
Return ONLY valid JSON with this structure:
{
  "diagnoses": [
    {
      "name": "Diagnosis Name",
      "icdCode": "ICD-10",
      "probability": "high" | "moderate" | "low",
      "confidence": 0.0-1.0,
      "description": "Brief description",
      "supportingFindings": ["finding"],
      "contradictingFindings": ["finding"],
      "redFlags": ["warning"],
      "nextSteps": ["step"]
    }
  ]
}
Provide 3-4 diagnoses ranked by probability."""

CONTENT_SYSTEM_PROMPT = """You are an expert medical educator. Always emphasize that the material
is for educational purposes and real patients should consult healthcare providers.
Return ONLY valid JSON with this structure:
{
  "pathophysiology": "text",
  "riskFactors": ["factor"],
  "diagnosticCriteria": ["criterion"],
  "treatment": {"firstLine": "text", "alternatives": "text", "supportive": "text"},
  "complications": ["complication"],
  "prognosis": "text",
  "clinicalPearls": ["pearl"],
  "suggestedReferences": ["reference"]
}"""


def format_symptoms(symptoms: Sequence[Symptom]) -> str:
    return ", ".join(f"{s.name}{' (RED FLAG)' if s.is_red_flag else ''}" for s in symptoms)


def build_symptoms_prompt(region_id: str, display_name: str) -> str:
    return f"Generate symptoms for: {display_name} ({region_id})"


def build_questions_prompt(region_name: str, symptoms: Sequence[Symptom]) -> str:
    return (
        f"Patient with {region_name} symptoms: {format_symptoms(symptoms)}. "
        "Generate clinical assessment questions."
    )


def build_diagnosis_prompt(
    region_name: str, symptoms: Sequence[Symptom], transcript: Sequence[TranscriptEntry]
) -> str:
    history = "\n".join(f"{entry.question}: {entry.answer}" for entry in transcript)
    return (
        f"Region: {region_name}\n"
        f"Symptoms: {format_symptoms(symptoms)}\n"
        f"History:\n{history or 'None recorded'}\n\n"
        "Generate differential diagnoses."
    )


def build_content_prompt(
    diagnosis_name: str, region_name: str, symptoms: Sequence[Symptom]
) -> str:
    red_flags = ", ".join(s.name for s in symptoms if s.is_red_flag) or "None"
    return (
        f"Body region: {region_name}\n"
        f"Reported symptoms: {', '.join(s.name for s in symptoms) or 'Not specified'}\n"
        f"Red flag symptoms: {red_flags}\n"
        f"Primary diagnosis: {diagnosis_name}\n\n"
        f"Write the educational content for {diagnosis_name} for a medical student."
    )
