"""
Report composition.

GOVERNANCE:
- Subjective and Objective are templated from session facts, never free-form
- Assessment always names the selected diagnosis verbatim
"""

import uuid
from typing import Optional

from api.models.report import EducationalContent, Report, SoapNote
from api.models.session import DiagnosisCandidate, Session
from workflow.errors import ValidationError

OBJECTIVE_PENDING = "Physical examination findings to be documented at the bedside."
PLAN_FALLBACK = "Recommended workup and management as outlined in the educational content."


def _join(items: list[str]) -> str:
    return ", ".join(items)


class ReportComposer:
    """Builds the initial report for a completed session."""

    def compose(
        self, session: Session, content: Optional[EducationalContent] = None
    ) -> Report:
        """
        Compose a draft report.

        The SOAP text depends only on the session facts, so composing the
        same session twice yields the same sections.

        Args:
            session: Session with exactly one selected diagnosis
            content: Educational block for the selected diagnosis, if generated

        Returns:
            Draft report (not persisted)
        """
        diagnosis = session.selected_diagnosis
        if diagnosis is None:
            raise ValidationError(
                "Select exactly one primary diagnosis before composing the report",
                field="selected_diagnosis",
            )

        return Report(
            report_id=str(uuid.uuid4()),
            session_id=session.session_id,
            title=f"{diagnosis.name} - Clinical Analysis",
            primary_diagnosis=diagnosis.name,
            soap=self.compose_soap(session, diagnosis),
            educational_content=content or EducationalContent(),
            learner_notes=session.learner_notes,
        )

    def compose_soap(self, session: Session, diagnosis: DiagnosisCandidate) -> SoapNote:
        return SoapNote(
            subjective=self._subjective(session),
            objective=self._objective(diagnosis),
            assessment=self._assessment(session, diagnosis),
            plan=self._plan(diagnosis),
        )

    @staticmethod
    def _subjective(session: Session) -> str:
        region = session.region_name or session.region_id or "unspecified region"
        lines = [f"Chief complaint localized to the {region.lower()}."]
        if session.symptoms:
            lines.append(f"Reported symptoms: {_join([s.name for s in session.symptoms])}.")
        red_flags = session.red_flag_symptoms
        if red_flags:
            lines.append(f"Red flag symptoms: {_join([s.name for s in red_flags])}.")
        for entry in session.transcript:
            lines.append(f"{entry.question} {entry.answer}")
        return "\n".join(lines)

    @staticmethod
    def _objective(diagnosis: DiagnosisCandidate) -> str:
        lines = [OBJECTIVE_PENDING]
        if diagnosis.supporting_findings:
            lines.append(f"Supporting findings: {_join(diagnosis.supporting_findings)}.")
        if diagnosis.contradicting_findings:
            lines.append(f"Contradicting findings: {_join(diagnosis.contradicting_findings)}.")
        return "\n".join(lines)

    @staticmethod
    def _assessment(session: Session, diagnosis: DiagnosisCandidate) -> str:
        lines = [
            f"Primary working diagnosis: {diagnosis.name}",
            f"Confidence {round(diagnosis.confidence * 100)}%, "
            f"{diagnosis.probability.value} probability.",
        ]
        if diagnosis.icd_code:
            lines.append(f"ICD-10: {diagnosis.icd_code}")
        others = [d.name for d in session.diagnoses if not d.is_selected]
        if others:
            lines.append(f"Differential also considered: {_join(others)}.")
        if diagnosis.red_flags:
            lines.append(f"Red flags to exclude: {_join(diagnosis.red_flags)}.")
        return "\n".join(lines)

    @staticmethod
    def _plan(diagnosis: DiagnosisCandidate) -> str:
        if not diagnosis.next_steps:
            return PLAN_FALLBACK
        return "\n".join(f"{i}. {step}" for i, step in enumerate(diagnosis.next_steps, 1))
