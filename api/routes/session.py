"""
Workflow and session routes.

GOVERNANCE:
- Step changes only through the step controller
- Reset is an explicit learner action
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.models.session import BodyRegion, Session, Step, Symptom, Workflow
from storage import Repository, get_storage
from workflow.controller import StepController

router = APIRouter(prefix="/v1/workflows", tags=["workflows"])
region_router = APIRouter(prefix="/v1/regions", tags=["regions"])


class CreateWorkflowRequest(BaseModel):
    """Request to start a new analysis workflow."""

    learner_id: str


class SelectRegionRequest(BaseModel):
    """Request to confirm a body region."""

    region_id: str
    display_name: Optional[str] = None


class WorkflowResponse(BaseModel):
    """Workflow state with its current session."""

    workflow_id: str
    learner_id: str
    step: Step
    generation: int
    reviewer_id: Optional[str]
    updated_at: datetime
    session: Optional[Session]


def load_controller(
    workflow_id: str, storage: Repository = Depends(get_storage)
) -> StepController:
    """Rebuild the step controller for a workflow (404 when it is gone)."""
    return StepController.load(storage, workflow_id)


def to_response(controller: StepController) -> WorkflowResponse:
    workflow = controller.workflow
    return WorkflowResponse(
        workflow_id=workflow.workflow_id,
        learner_id=workflow.learner_id,
        step=workflow.step,
        generation=workflow.generation,
        reviewer_id=workflow.reviewer_id,
        updated_at=workflow.updated_at,
        session=controller.session,
    )


@region_router.get("", response_model=list[BodyRegion])
def list_regions(parent_id: Optional[str] = None, storage: Repository = Depends(get_storage)):
    """List body regions, top level unless a parent is given."""
    regions: list[BodyRegion] = storage.list("regions", parent_id=parent_id)
    return sorted(regions, key=lambda r: r.display_order)


@router.post("", response_model=WorkflowResponse)
def create_workflow(request: CreateWorkflowRequest, storage: Repository = Depends(get_storage)):
    """Start a new workflow at region selection."""
    return to_response(StepController.create(storage, request.learner_id))


@router.get("", response_model=list[WorkflowResponse])
def list_workflows(learner_id: str, storage: Repository = Depends(get_storage)):
    """List a learner's workflows, most recently active first (resumable)."""
    workflows: list[Workflow] = storage.list("workflows", learner_id=learner_id)
    workflows.sort(key=lambda w: w.updated_at, reverse=True)
    return [to_response(StepController(storage, w)) for w in workflows]


@router.get("/stats/counts")
def get_session_counts(storage: Repository = Depends(get_storage)):
    """Get counts of sessions by status."""
    return storage.count_by("sessions", "status")


@router.get("/{workflow_id}", response_model=WorkflowResponse)
def get_workflow(controller: StepController = Depends(load_controller)):
    return to_response(controller)


@router.post("/{workflow_id}/region", response_model=WorkflowResponse)
def select_region(
    request: SelectRegionRequest, controller: StepController = Depends(load_controller)
):
    """Confirm the body region (creates the session on first confirmation)."""
    controller.select_region(request.region_id, request.display_name)
    return to_response(controller)


@router.post("/{workflow_id}/symptoms", response_model=WorkflowResponse)
def add_symptom(symptom: Symptom, controller: StepController = Depends(load_controller)):
    controller.add_symptom(symptom)
    return to_response(controller)


@router.delete("/{workflow_id}/symptoms/{symptom_id}", response_model=WorkflowResponse)
def remove_symptom(symptom_id: str, controller: StepController = Depends(load_controller)):
    controller.remove_symptom(symptom_id)
    return to_response(controller)


@router.post("/{workflow_id}/advance", response_model=WorkflowResponse)
def advance(controller: StepController = Depends(load_controller)):
    """
    Move to the next step.

    Returns 400 with the unmet condition when the step guard fails.
    """
    controller.advance()
    return to_response(controller)


@router.post("/{workflow_id}/back", response_model=WorkflowResponse)
def back(controller: StepController = Depends(load_controller)):
    controller.back()
    return to_response(controller)


@router.post("/{workflow_id}/reset", response_model=WorkflowResponse)
def reset(controller: StepController = Depends(load_controller)):
    """Abandon the current session and return to region selection."""
    controller.reset()
    return to_response(controller)
