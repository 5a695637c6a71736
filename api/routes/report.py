"""
Report composition, submission and export routes.

GOVERNANCE:
- Reports are composed from the selected diagnosis only
- A report reaches a reviewer only with all four SOAP sections filled
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel

from api.models.report import EducationalContent, Report
from api.models.review import Reviewer, Submission
from api.models.session import Step
from api.routes.session import WorkflowResponse, load_controller, to_response
from intelligence import DiagnosisEngineAdapter, RegionRef, get_adapter
from storage import Repository, get_storage
from workflow.controller import StepController
from workflow.errors import GenerationError, ValidationError
from workflow.export import render_markdown, render_pdf

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


class ComposeReportRequest(BaseModel):
    """Request to compose the draft report."""

    generate_content: bool = True


class ComposeReportResponse(BaseModel):
    """The composed draft, and whether educational content was generated."""

    report: Report
    content_generated: bool


class NotesRequest(BaseModel):
    notes: str


class ReviewerRequest(BaseModel):
    reviewer_id: str


class SubmitRequest(BaseModel):
    """Request to submit the report for review."""

    reviewer_id: Optional[str] = None
    notes: Optional[str] = None


class SubmitResponse(BaseModel):
    workflow: WorkflowResponse
    submission: Submission


@router.post("/v1/workflows/{workflow_id}/report", response_model=ComposeReportResponse)
def compose_report(
    request: Optional[ComposeReportRequest] = None,
    controller: StepController = Depends(load_controller),
    adapter: DiagnosisEngineAdapter = Depends(get_adapter),
):
    """
    Compose the SOAP report for the selected diagnosis.

    Educational content is optional; when its generation fails the report
    is still composed without it.
    """
    content: Optional[EducationalContent] = None
    session = controller.session
    selected = session.selected_diagnosis if session else None
    generate = request.generate_content if request is not None else True
    if generate and selected is not None and controller.step == Step.COMPOSING_REPORT:
        try:
            content = adapter.educational_content(
                selected.name,
                RegionRef(region_id=session.region_id or "", display_name=session.region_name or ""),
                session.symptoms,
            )
        except GenerationError as exc:
            logger.warning("Educational content unavailable for %s: %s", selected.name, exc.message)

    report = controller.compose_report(content)
    return ComposeReportResponse(report=report, content_generated=content is not None)


@router.put("/v1/workflows/{workflow_id}/report/notes")
def update_notes(request: NotesRequest, controller: StepController = Depends(load_controller)):
    """Save learner notes; ``saved`` is false when the write failed."""
    return {"saved": controller.update_notes(request.notes)}


@router.post("/v1/workflows/{workflow_id}/reviewer", response_model=Reviewer)
def choose_reviewer(request: ReviewerRequest, controller: StepController = Depends(load_controller)):
    return controller.choose_reviewer(request.reviewer_id)


@router.post("/v1/workflows/{workflow_id}/submit", response_model=SubmitResponse)
def submit(request: SubmitRequest, controller: StepController = Depends(load_controller)):
    """Submit the composed report to the chosen reviewer."""
    submission = controller.submit(request.reviewer_id, request.notes)
    return SubmitResponse(workflow=to_response(controller), submission=submission)


@router.get("/v1/reports/{report_id}", response_model=Report)
def get_report(report_id: str, storage: Repository = Depends(get_storage)):
    return storage.require("reports", report_id)


@router.get("/v1/reports/{report_id}/export")
def export_report(
    report_id: str,
    format: str = "pdf",
    storage: Repository = Depends(get_storage),
):
    """Download a report as PDF or Markdown."""
    report: Report = storage.require("reports", report_id)
    if format == "markdown":
        return Response(
            content=render_markdown(report),
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="report_{report_id}.md"'},
        )
    if format == "pdf":
        return Response(
            content=render_pdf(report),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="report_{report_id}.pdf"'},
        )
    raise ValidationError(f"Unsupported export format '{format}'", field="format")
