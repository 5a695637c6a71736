"""
Generator-backed routes: symptom suggestions, follow-up Q&A, diagnosis.

GOVERNANCE:
- Every generator call is triggered by the learner; nothing retries on its own
- Diagnoses are teaching material, reviewed by an instructor before feedback
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.models.session import DiagnosisCandidate, FollowUpQuestion, Symptom
from api.routes.session import WorkflowResponse, load_controller, to_response
from intelligence import DiagnosisEngineAdapter, RegionRef, get_adapter
from workflow.controller import StepController
from workflow.errors import ValidationError

router = APIRouter(prefix="/v1/chat", tags=["chat"])


class AnswerRequest(BaseModel):
    """Request to record an answer to a follow-up question."""

    question: str
    answer: str
    rationale: Optional[str] = None


class DiagnoseResponse(BaseModel):
    """Workflow state after generation, with the normalized candidates."""

    workflow: WorkflowResponse
    diagnoses: list[DiagnosisCandidate]


class SelectDiagnosisRequest(BaseModel):
    """Request to choose the primary working diagnosis."""

    diagnosis_name: str


def _region_ref(controller: StepController) -> RegionRef:
    session = controller.session
    if session is None or not session.region_id:
        raise ValidationError("No body region has been confirmed yet", field="region")
    return RegionRef(region_id=session.region_id, display_name=session.region_name or "")


@router.get("/{workflow_id}/symptoms", response_model=list[Symptom])
def suggest_symptoms(
    controller: StepController = Depends(load_controller),
    adapter: DiagnosisEngineAdapter = Depends(get_adapter),
):
    """Suggest symptoms for the confirmed region (502 when the generator fails)."""
    return adapter.suggest_symptoms(_region_ref(controller))


@router.get("/{workflow_id}/questions", response_model=list[FollowUpQuestion])
def follow_up_questions(
    controller: StepController = Depends(load_controller),
    adapter: DiagnosisEngineAdapter = Depends(get_adapter),
):
    """Generate follow-up questions for the selected symptoms."""
    session = controller.session
    region = _region_ref(controller)
    return adapter.follow_up_questions(region, session.symptoms if session else [])


@router.post("/{workflow_id}/answer", response_model=WorkflowResponse)
def record_answer(request: AnswerRequest, controller: StepController = Depends(load_controller)):
    controller.record_answer(request.question, request.answer, request.rationale)
    return to_response(controller)


@router.post("/{workflow_id}/diagnose", response_model=DiagnoseResponse)
def diagnose(
    controller: StepController = Depends(load_controller),
    adapter: DiagnosisEngineAdapter = Depends(get_adapter),
):
    """
    Generate the differential diagnosis and move to the results.

    On a generator failure the workflow stays where it was and the
    learner may retry.
    """
    candidates = controller.request_diagnosis(adapter)
    return DiagnoseResponse(workflow=to_response(controller), diagnoses=candidates)


@router.post("/{workflow_id}/select", response_model=WorkflowResponse)
def select_diagnosis(
    request: SelectDiagnosisRequest, controller: StepController = Depends(load_controller)
):
    controller.select_diagnosis(request.diagnosis_name)
    return to_response(controller)
