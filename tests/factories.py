"""
Factories for building workflow state in tests.

Each helper drives a real StepController, so the resulting state is one the
workflow can actually reach.
"""

from api.models.session import Symptom
from storage.repository import Repository
from tests.fixtures.mocks import MockDiagnosisEngine
from workflow.controller import StepController

DEFAULT_SYMPTOMS = [
    Symptom(id="rlq_pain", name="Right lower quadrant pain"),
    Symptom(id="rebound", name="Rebound tenderness", is_red_flag=True),
]


def start_workflow(storage: Repository, learner_id: str = "learner_1") -> StepController:
    return StepController.create(storage, learner_id)


def at_symptoms(storage: Repository, region_id: str = "abdomen") -> StepController:
    controller = start_workflow(storage)
    controller.select_region(region_id)
    controller.advance()
    return controller


def at_awaiting_diagnosis(storage: Repository, symptoms=None) -> StepController:
    controller = at_symptoms(storage)
    for symptom in symptoms or DEFAULT_SYMPTOMS:
        controller.add_symptom(symptom)
    controller.advance()
    return controller


def at_results(storage: Repository, engine: MockDiagnosisEngine = None) -> StepController:
    controller = at_awaiting_diagnosis(storage)
    controller.record_answer("When did the pain start?", "Less than 24 hours ago")
    controller.request_diagnosis(engine or MockDiagnosisEngine())
    return controller


def at_composing(storage: Repository, diagnosis: str = "Acute Appendicitis") -> StepController:
    controller = at_results(storage)
    controller.select_diagnosis(diagnosis)
    controller.advance()
    return controller


def at_submitted(storage: Repository, reviewer_id: str = "demo_reviewer"):
    """Drive a workflow through submission; returns (controller, submission)."""
    controller = at_composing(storage)
    controller.compose_report()
    submission = controller.submit(reviewer_id)
    return controller, submission
