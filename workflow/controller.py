"""
Step controller for the clinical analysis workflow.

GOVERNANCE:
- Forward progress only through guarded transitions
- A failed guard or a failed write leaves the step unchanged
- Reset is explicit and user-initiated, never automatic
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from api.models.report import EducationalContent, Report, ReportStatus
from api.models.review import Reviewer, Submission
from api.models.session import (
    DiagnosisCandidate,
    Session,
    SessionStatus,
    Step,
    Symptom,
    TranscriptEntry,
    Workflow,
)
from intelligence.adapter import DiagnosisEngineAdapter, RegionRef
from storage.repository import Repository
from workflow.composer import ReportComposer
from workflow.errors import PersistenceError, ValidationError, WorkflowError
from workflow.gateway import SubmissionGateway

logger = logging.getLogger(__name__)

# Source step -> (target step, guard method)
TRANSITIONS: dict[Step, tuple[Step, str]] = {
    Step.SELECTING_REGION: (Step.SELECTING_SYMPTOMS, "_guard_region"),
    Step.SELECTING_SYMPTOMS: (Step.AWAITING_DIAGNOSIS, "_guard_symptoms"),
    Step.AWAITING_DIAGNOSIS: (Step.REVIEWING_RESULTS, "_guard_diagnoses"),
    Step.REVIEWING_RESULTS: (Step.COMPOSING_REPORT, "_guard_selection"),
    Step.COMPOSING_REPORT: (Step.SUBMITTED, "_guard_submission"),
}

PREVIOUS_STEP: dict[Step, Step] = {
    target: source for source, (target, _) in TRANSITIONS.items() if target != Step.SUBMITTED
}


@dataclass(frozen=True)
class GenerationTicket:
    """Identifies the session state a generator call was issued for."""

    workflow_id: str
    session_id: str
    generation: int


class StepController:
    """
    Finite-state machine driving one learner's workflow.

    The controller is the only writer of workflow and session state. It is
    rebuilt from storage for every request, so all state lives in the
    ``workflows`` and ``sessions`` collections.
    """

    def __init__(
        self,
        storage: Repository,
        workflow: Workflow,
        composer: Optional[ReportComposer] = None,
        gateway: Optional[SubmissionGateway] = None,
    ):
        self.storage = storage
        self.workflow = workflow
        self.composer = composer or ReportComposer()
        self.gateway = gateway or SubmissionGateway(storage)

    @classmethod
    def create(cls, storage: Repository, learner_id: str) -> "StepController":
        """Start a new workflow at region selection."""
        if not learner_id:
            raise ValidationError("A learner id is required", field="learner_id")
        workflow = Workflow(workflow_id=str(uuid.uuid4()), learner_id=learner_id)
        storage.create("workflows", workflow)
        logger.info("Workflow %s started for learner %s", workflow.workflow_id, learner_id)
        return cls(storage, workflow)

    @classmethod
    def load(cls, storage: Repository, workflow_id: str) -> "StepController":
        """Rebuild a controller from storage."""
        return cls(storage, storage.require("workflows", workflow_id))

    @property
    def step(self) -> Step:
        return self.workflow.step

    @property
    def session(self) -> Optional[Session]:
        """Current session, freshly loaded; None before a region is confirmed."""
        if self.workflow.session_id is None:
            return None
        return self.storage.require("sessions", self.workflow.session_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_step(self, action: str, *steps: Step) -> None:
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise ValidationError(
                f"Cannot {action} while {self.step.value} (allowed: {allowed})",
                field="step",
                details={"step": self.step.value},
            )

    def _require_session(self) -> Session:
        session = self.session
        if session is None:
            raise ValidationError("No body region has been confirmed yet", field="region")
        return session

    def _save_workflow(self) -> None:
        self.workflow.updated_at = datetime.now(timezone.utc)
        self.storage.update("workflows", self.workflow)

    def _move_to(self, target: Step, session_before: Optional[Session] = None) -> None:
        """
        Persist the new step. On failure the in-memory workflow is rolled
        back and, when given, the session is put back to ``session_before``.
        """
        previous = self.workflow.model_copy(deep=True)
        self.workflow.step = target
        try:
            self._save_workflow()
        except WorkflowError:
            self.workflow = previous
            if session_before is not None:
                self.storage.restore("sessions", session_before)
            raise
        logger.info(
            "Workflow moved %s -> %s",
            previous.step.value,
            target.value,
            extra={"workflow_id": self.workflow.workflow_id, "session_id": self.workflow.session_id},
        )

    # ------------------------------------------------------------------
    # Guards: validate, then commit the step-defining slice
    # ------------------------------------------------------------------

    def _guard_region(self) -> None:
        session = self.session
        if session is None or not session.region_id:
            raise ValidationError("Select a body region before continuing", field="region")

    def _guard_symptoms(self) -> None:
        session = self._require_session()
        if not session.symptoms:
            raise ValidationError("Select at least one symptom before continuing", field="symptoms")
        # A failed write here must block the transition
        self.storage.update("sessions", session)

    def _guard_diagnoses(self) -> None:
        session = self._require_session()
        if not session.diagnoses:
            raise ValidationError(
                "No diagnosis candidates yet. Generate the differential first",
                field="diagnoses",
            )

    def _guard_selection(self) -> None:
        session = self._require_session()
        selected = session.selected_diagnoses
        if len(selected) != 1:
            raise ValidationError(
                "Select exactly one primary diagnosis before continuing",
                field="selected_diagnosis",
                details={"selected": len(selected)},
            )
        session.status = SessionStatus.COMPLETED
        session.completed_at = datetime.now(timezone.utc)
        self.storage.update("sessions", session)

    def _guard_submission(self) -> Report:
        session = self._require_session()
        if not session.report_id:
            raise ValidationError("Compose the report before submitting", field="report")
        report: Report = self.storage.require("reports", session.report_id)
        missing = report.soap.missing_sections()
        if missing:
            raise ValidationError(
                f"SOAP sections must not be empty: {', '.join(missing)}",
                field="soap",
                details={"missing": missing},
            )
        if not self.workflow.reviewer_id:
            raise ValidationError("Choose a reviewer before submitting", field="reviewer_id")
        return report

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance(self) -> Step:
        """Move to the next step if its guard passes."""
        if self.step not in TRANSITIONS:
            raise ValidationError("The workflow has already been submitted", field="step")
        target, guard = TRANSITIONS[self.step]
        if target == Step.SUBMITTED:
            self.submit()
            return self.step
        session_before = self.session
        getattr(self, guard)()
        self._move_to(target, session_before)
        return self.step

    def back(self) -> Step:
        """Return to the previous step, discarding data of the step being left."""
        if self.step not in PREVIOUS_STEP:
            raise ValidationError(f"Cannot go back from {self.step.value}", field="step")

        target = PREVIOUS_STEP[self.step]
        workflow_before = self.workflow.model_copy(deep=True)
        session = self.session
        session_before = session.model_copy(deep=True) if session is not None else None
        if session is not None:
            if self.step == Step.AWAITING_DIAGNOSIS:
                session.transcript = []
                session.diagnoses = []
                self.workflow.generation += 1
            elif self.step == Step.REVIEWING_RESULTS:
                session.diagnoses = []
                self.workflow.generation += 1
            elif self.step == Step.COMPOSING_REPORT:
                session.status = SessionStatus.IN_PROGRESS
                session.completed_at = None
                session.report_id = None
            try:
                self.storage.update("sessions", session)
            except WorkflowError:
                self.workflow = workflow_before
                raise

        try:
            self._move_to(target, session_before)
        except WorkflowError:
            self.workflow = workflow_before
            raise
        return self.step

    def reset(self) -> Step:
        """Abandon the current session and start over at region selection."""
        session: Optional[Session] = (
            self.storage.get("sessions", self.workflow.session_id)
            if self.workflow.session_id
            else None
        )
        session_before = session.model_copy(deep=True) if session is not None else None
        if session is not None and session.status in (
            SessionStatus.IN_PROGRESS,
            SessionStatus.COMPLETED,
        ):
            session.status = SessionStatus.ABANDONED
            self.storage.update("sessions", session)

        previous = self.workflow.model_copy(deep=True)
        self.workflow.session_id = None
        self.workflow.reviewer_id = None
        self.workflow.generation += 1
        self.workflow.step = Step.SELECTING_REGION
        try:
            self._save_workflow()
        except WorkflowError:
            self.workflow = previous
            if session_before is not None:
                self.storage.restore("sessions", session_before)
            raise
        logger.info(
            "Workflow reset; session abandoned",
            extra={"workflow_id": self.workflow.workflow_id, "session_id": previous.session_id},
        )
        return self.step

    # ------------------------------------------------------------------
    # Step-local operations
    # ------------------------------------------------------------------

    def select_region(self, region_id: str, display_name: Optional[str] = None) -> Session:
        """Confirm a body region, creating the session on first confirmation."""
        self._require_step("select a region", Step.SELECTING_REGION)
        if not region_id:
            raise ValidationError("A body region identifier is required", field="region")

        region = self.storage.get("regions", region_id)
        name = display_name or (region.display_name if region else region_id.replace("_", " ").title())

        session = self.session
        if session is None:
            session = Session(
                session_id=str(uuid.uuid4()),
                workflow_id=self.workflow.workflow_id,
                learner_id=self.workflow.learner_id,
                region_id=region_id,
                region_name=name,
            )
            self.storage.create("sessions", session)
            self.workflow.session_id = session.session_id
            self._save_workflow()
            logger.info("Session %s created for region %s", session.session_id, region_id)
            return session

        if session.region_id != region_id:
            session.symptoms = [s for s in session.symptoms if s.region_id == region_id]
        session.region_id = region_id
        session.region_name = name
        self.storage.update("sessions", session)
        return session

    def add_symptom(self, symptom: Symptom) -> Session:
        """Add a symptom to the selection; duplicates by id are ignored."""
        self._require_step("add symptoms", Step.SELECTING_SYMPTOMS)
        session = self._require_session()
        if any(s.id == symptom.id for s in session.symptoms):
            return session
        session.symptoms.append(symptom.model_copy(update={"region_id": session.region_id}))
        self.storage.update("sessions", session)
        return session

    def remove_symptom(self, symptom_id: str) -> Session:
        self._require_step("remove symptoms", Step.SELECTING_SYMPTOMS)
        session = self._require_session()
        session.symptoms = [s for s in session.symptoms if s.id != symptom_id]
        self.storage.update("sessions", session)
        return session

    def record_answer(self, question: str, answer: str, rationale: Optional[str] = None) -> Session:
        """Append an answered follow-up question to the transcript."""
        self._require_step("answer questions", Step.AWAITING_DIAGNOSIS)
        if not question.strip() or not answer.strip():
            raise ValidationError("Both question and answer are required", field="answer")
        session = self._require_session()
        session.transcript.append(
            TranscriptEntry(
                step_number=len(session.transcript) + 1,
                question=question.strip(),
                answer=answer.strip(),
                rationale=rationale,
            )
        )
        self.storage.update("sessions", session)
        return session

    def begin_generation(self) -> GenerationTicket:
        """Issue a ticket for a generator call on the current session state."""
        self._require_step("generate diagnoses", Step.AWAITING_DIAGNOSIS)
        session = self._require_session()
        return GenerationTicket(
            workflow_id=self.workflow.workflow_id,
            session_id=session.session_id,
            generation=self.workflow.generation,
        )

    def attach_diagnoses(
        self, ticket: GenerationTicket, candidates: Sequence[DiagnosisCandidate]
    ) -> bool:
        """
        Attach generator output to the session the ticket was issued for.

        Returns False, and changes nothing, when the workflow was reset or
        moved back since the ticket was issued.
        """
        current: Workflow = self.storage.require("workflows", ticket.workflow_id)
        if (
            current.session_id != ticket.session_id
            or current.generation != ticket.generation
            or current.step != Step.AWAITING_DIAGNOSIS
        ):
            logger.warning(
                "Discarding stale diagnoses for session %s (generation %d, now %d)",
                ticket.session_id,
                ticket.generation,
                current.generation,
            )
            self.workflow = current
            return False

        self.workflow = current
        session = self._require_session()
        session.diagnoses = [c.model_copy(update={"is_selected": False}) for c in candidates]
        self.storage.update("sessions", session)
        return True

    def request_diagnosis(self, adapter: DiagnosisEngineAdapter) -> list[DiagnosisCandidate]:
        """
        Generate the differential and move on to the results.

        GenerationError propagates and leaves the step unchanged. An empty
        result is attached and then blocked by the results guard.
        """
        ticket = self.begin_generation()
        session = self._require_session()
        candidates = adapter.generate(
            RegionRef(region_id=session.region_id or "", display_name=session.region_name or ""),
            session.symptoms,
            session.transcript,
        )
        if not self.attach_diagnoses(ticket, candidates):
            raise ValidationError(
                "The session changed while diagnoses were generated; the result was discarded",
                field="session",
            )
        self.advance()
        return list(candidates)

    def select_diagnosis(self, name: str) -> Session:
        """Mark exactly one candidate as the primary working diagnosis."""
        self._require_step("select a diagnosis", Step.REVIEWING_RESULTS)
        session = self._require_session()
        names = [d.name for d in session.diagnoses]
        if name not in names:
            matches = [n for n in names if n.lower() == name.strip().lower()]
            if not matches:
                raise ValidationError(
                    f"Unknown diagnosis '{name}'", field="selected_diagnosis", details={"choices": names}
                )
            name = matches[0]

        chosen = False
        for candidate in session.diagnoses:
            candidate.is_selected = candidate.name == name and not chosen
            chosen = chosen or candidate.is_selected
        self.storage.update("sessions", session)
        return session

    def compose_report(self, content: Optional[EducationalContent] = None) -> Report:
        """Compose and save the draft report for the current session."""
        self._require_step("compose the report", Step.COMPOSING_REPORT)
        session = self._require_session()
        report = self.composer.compose(session, content)

        existing: Optional[Report] = (
            self.storage.get("reports", session.report_id) if session.report_id else None
        )
        if existing is not None and existing.status == ReportStatus.DRAFT:
            report.report_id = existing.report_id
            report.created_at = existing.created_at
            report.learner_notes = existing.learner_notes or report.learner_notes
            self.storage.update("reports", report)
        else:
            # Link first, then create: a failed create is undone by restoring the link
            linked = session.model_copy(update={"report_id": report.report_id})
            self.storage.update("sessions", linked)
            try:
                self.storage.create("reports", report)
            except PersistenceError:
                self.storage.restore("sessions", session)
                raise

        logger.info("Report %s composed for session %s", report.report_id, session.session_id)
        return report

    def update_notes(self, notes: str) -> bool:
        """
        Save learner notes.

        Notes do not gate any transition, so a failed write is reported as
        False ("not saved") instead of raising.
        """
        if self.step == Step.SUBMITTED:
            raise ValidationError("Notes can no longer be edited after submission", field="notes")
        session = self._require_session()
        session.learner_notes = notes
        try:
            self.storage.update("sessions", session)
            if session.report_id:
                report: Optional[Report] = self.storage.get("reports", session.report_id)
                if report is not None and report.status == ReportStatus.DRAFT:
                    report.learner_notes = notes
                    report.updated_at = datetime.now(timezone.utc)
                    self.storage.update("reports", report)
        except PersistenceError as exc:
            logger.warning("Notes for session %s not saved: %s", session.session_id, exc.message)
            return False
        return True

    def choose_reviewer(self, reviewer_id: str) -> Reviewer:
        self._require_step("choose a reviewer", Step.COMPOSING_REPORT)
        reviewer: Reviewer = self.storage.require("reviewers", reviewer_id)
        if not reviewer.active:
            raise ValidationError(f"Reviewer {reviewer_id} is not active", field="reviewer_id")
        self.workflow.reviewer_id = reviewer_id
        self._save_workflow()
        return reviewer

    def submit(self, reviewer_id: Optional[str] = None, notes: Optional[str] = None) -> Submission:
        """
        Hand the composed report to the chosen reviewer.

        If an earlier attempt stored the submission but failed to record the
        step, the existing submission is reused and only the step is written.
        """
        self._require_step("submit", Step.COMPOSING_REPORT)
        if reviewer_id:
            self.choose_reviewer(reviewer_id)
        report = self._guard_submission()

        submission = self._existing_submission(report)
        if submission is None:
            session = self._require_session()
            submission = self.gateway.submit(
                report,
                self.workflow.reviewer_id or "",
                notes if notes is not None else session.learner_notes,
            )
        else:
            logger.info(
                "Report %s already submitted as %s; completing the step",
                report.report_id,
                submission.submission_id,
            )
        self._move_to(Step.SUBMITTED)
        return submission

    def _existing_submission(self, report: Report) -> Optional[Submission]:
        if report.status == ReportStatus.DRAFT:
            return None
        submissions = self.storage.list("submissions", report_id=report.report_id)
        return submissions[0] if submissions else None
