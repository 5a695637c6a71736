"""
Learner Console.

GOVERNANCE:
- Generated diagnoses are teaching material, NOT medical advice
- The workflow only moves forward through the API's guarded steps
- Starting over is an explicit action (Reset), never automatic
"""

import httpx
import streamlit as st

from api.client import AnalyzerAPIError, AnalyzerClient
from config import get_settings

settings = get_settings()

st.set_page_config(
    page_title="Clinical Analyzer - Learner",
    page_icon="",
    layout="centered",
)

STEP_LABELS = {
    "selecting_region": "1. Body Region",
    "selecting_symptoms": "2. Symptoms",
    "awaiting_diagnosis": "3. Follow-up Questions",
    "reviewing_results": "4. Differential Diagnosis",
    "composing_report": "5. Report",
    "submitted": "6. Submitted",
}


@st.cache_resource
def get_client() -> AnalyzerClient:
    return AnalyzerClient(settings.api_base_url)


def init_session_state():
    """Initialize session state variables."""
    if "learner_id" not in st.session_state:
        st.session_state.learner_id = settings.demo_learner_id
    if "workflow" not in st.session_state:
        st.session_state.workflow = None
    if "suggested_symptoms" not in st.session_state:
        st.session_state.suggested_symptoms = []
    if "questions" not in st.session_state:
        st.session_state.questions = []
    if "report" not in st.session_state:
        st.session_state.report = None
    if "error_message" not in st.session_state:
        st.session_state.error_message = None


def call(action, *args, **kwargs):
    """Run a client call, keeping the error for display on failure."""
    try:
        return action(*args, **kwargs)
    except AnalyzerAPIError as e:
        st.session_state.error_message = e.message
    except httpx.HTTPError as e:
        st.session_state.error_message = f"API unavailable: {e}"
    return None


def set_workflow(workflow) -> bool:
    if workflow is None:
        return False
    st.session_state.workflow = workflow
    return True


def workflow_id() -> str:
    return st.session_state.workflow["workflow_id"]


def session() -> dict:
    return st.session_state.workflow.get("session") or {}


def render_sidebar():
    client = get_client()
    with st.sidebar:
        st.header("Workflow")
        learner_id = st.text_input("Learner ID", value=st.session_state.learner_id)
        if learner_id != st.session_state.learner_id:
            st.session_state.learner_id = learner_id
            st.session_state.workflow = None

        workflow = st.session_state.workflow
        if workflow:
            for step, label in STEP_LABELS.items():
                marker = "**" if step == workflow["step"] else ""
                st.write(f"{marker}{label}{marker}")

            col1, col2 = st.columns(2)
            with col1:
                if workflow["step"] not in ("selecting_region", "submitted"):
                    if st.button("Back", use_container_width=True):
                        if set_workflow(call(client.back, workflow_id())):
                            st.rerun()
            with col2:
                if st.button("Reset", use_container_width=True):
                    if set_workflow(call(client.reset, workflow_id())):
                        st.session_state.suggested_symptoms = []
                        st.session_state.questions = []
                        st.session_state.report = None
                        st.rerun()
        else:
            previous = call(client.list_workflows, st.session_state.learner_id) or []
            resumable = [w for w in previous if w["step"] != "submitted"]
            if resumable:
                st.subheader("Resume")
                for w in resumable[:5]:
                    label = STEP_LABELS.get(w["step"], w["step"])
                    if st.button(f"{w['workflow_id'][:8]}... ({label})", key=w["workflow_id"]):
                        set_workflow(w)
                        st.rerun()

        st.markdown("---")
        st.caption("For medical education only. Not medical advice.")


def render_start():
    st.title("Clinical Analyzer")
    st.markdown("""
    Work through a clinical case step by step:

    1. Choose the body region of the chief complaint
    2. Select the presenting symptoms
    3. Answer follow-up questions
    4. Review the generated differential and choose a primary diagnosis
    5. Compose a SOAP report and submit it to an instructor
    """)
    if st.button("Start New Analysis", type="primary"):
        if set_workflow(call(get_client().create_workflow, st.session_state.learner_id)):
            st.rerun()


def render_region():
    client = get_client()
    st.subheader("Where is the chief complaint?")
    regions = call(client.list_regions) or []
    if not regions:
        st.info("No regions available.")
        return

    current = session().get("region_id")
    ids = [r["region_id"] for r in regions]
    names = {r["region_id"]: r["display_name"] for r in regions}

    with st.form("region_form"):
        region_id = st.radio(
            "Body region:",
            options=ids,
            index=ids.index(current) if current in ids else 0,
            format_func=lambda rid: names[rid],
        )
        submitted = st.form_submit_button("Continue", type="primary")

    if submitted:
        if set_workflow(call(client.select_region, workflow_id(), region_id, names[region_id])):
            if set_workflow(call(client.advance, workflow_id())):
                st.session_state.suggested_symptoms = []
                st.rerun()


def render_symptoms():
    client = get_client()
    st.subheader(f"Symptoms: {session().get('region_name', '')}")

    if st.button("Suggest Symptoms"):
        st.session_state.suggested_symptoms = call(client.suggest_symptoms, workflow_id()) or []

    selected = {s["id"] for s in session().get("symptoms", [])}
    for symptom in st.session_state.suggested_symptoms:
        label = symptom["name"] + (" (red flag)" if symptom.get("is_red_flag") else "")
        checked = st.checkbox(label, value=symptom["id"] in selected, key=f"sym_{symptom['id']}")
        if checked and symptom["id"] not in selected:
            set_workflow(call(client.add_symptom, workflow_id(), symptom))
            st.rerun()
        elif not checked and symptom["id"] in selected:
            set_workflow(call(client.remove_symptom, workflow_id(), symptom["id"]))
            st.rerun()

    with st.form("custom_symptom", clear_on_submit=True):
        name = st.text_input("Add a symptom not listed:")
        if st.form_submit_button("Add") and name.strip():
            symptom = {"id": name.strip().lower().replace(" ", "_"), "name": name.strip()}
            if set_workflow(call(client.add_symptom, workflow_id(), symptom)):
                st.rerun()

    st.markdown("---")
    st.write(f"**Selected:** {len(session().get('symptoms', []))}")
    if st.button("Continue", type="primary"):
        if set_workflow(call(client.advance, workflow_id())):
            st.session_state.questions = []
            st.rerun()


def render_questions():
    client = get_client()
    st.subheader("Follow-up Questions")

    if not st.session_state.questions:
        if st.button("Generate Questions"):
            st.session_state.questions = call(client.follow_up_questions, workflow_id()) or []
            st.rerun()

    answered = {entry["question"] for entry in session().get("transcript", [])}
    for i, question in enumerate(st.session_state.questions):
        if question["question"] in answered:
            continue
        options = [o["text"] for o in question.get("options", [])]
        with st.form(f"question_{i}"):
            st.write(question["question"])
            if options:
                answer = st.radio("Answer:", options=options, label_visibility="collapsed")
            else:
                answer = st.text_input("Answer:")
            if st.form_submit_button("Answer") and answer:
                if set_workflow(call(client.record_answer, workflow_id(), question["question"], answer)):
                    st.rerun()

    for entry in session().get("transcript", []):
        st.write(f"**Q{entry['step_number']}:** {entry['question']}")
        st.write(f"**A:** {entry['answer']}")

    st.markdown("---")
    if st.button("Generate Differential Diagnosis", type="primary"):
        with st.spinner("Generating..."):
            result = call(client.diagnose, workflow_id())
        if result is not None:
            set_workflow(result["workflow"])
            st.rerun()


def render_results():
    client = get_client()
    st.subheader("Differential Diagnosis")
    diagnoses = session().get("diagnoses", [])

    for diagnosis in diagnoses:
        with st.expander(
            f"{diagnosis['name']} ({diagnosis['probability']}, {diagnosis['confidence']:.0%})",
            expanded=diagnosis.get("is_selected", False),
        ):
            if diagnosis.get("icd_code"):
                st.write(f"**ICD-10:** {diagnosis['icd_code']}")
            if diagnosis.get("description"):
                st.write(diagnosis["description"])
            for key, label in (
                ("supporting_findings", "Supporting"),
                ("contradicting_findings", "Contradicting"),
                ("red_flags", "Red flags"),
                ("next_steps", "Next steps"),
            ):
                if diagnosis.get(key):
                    st.write(f"**{label}:** " + "; ".join(diagnosis[key]))
            if st.button("Select as primary", key=f"select_{diagnosis['name']}"):
                if set_workflow(call(client.select_diagnosis, workflow_id(), diagnosis["name"])):
                    st.rerun()

    st.markdown("---")
    if st.button("Continue to Report", type="primary"):
        if set_workflow(call(client.advance, workflow_id())):
            st.session_state.report = None
            st.rerun()


def render_report():
    client = get_client()
    st.subheader("SOAP Report")

    if st.session_state.report is None:
        generate = st.checkbox("Include educational content", value=True)
        if st.button("Compose Report", type="primary"):
            with st.spinner("Composing..."):
                result = call(client.compose_report, workflow_id(), generate)
            if result is not None:
                st.session_state.report = result["report"]
                if not result["content_generated"] and generate:
                    st.session_state.error_message = "Educational content unavailable; report composed without it."
                st.rerun()
        return

    report = st.session_state.report
    st.write(f"### {report['title']}")
    for section in ("subjective", "objective", "assessment", "plan"):
        st.write(f"**{section.capitalize()}**")
        st.text(report["soap"][section])

    notes = st.text_area("Notes for your reviewer:", value=session().get("learner_notes") or "")
    if st.button("Save Notes"):
        saved = call(client.update_notes, workflow_id(), notes)
        if saved:
            st.success("Notes saved.")
        elif saved is False:
            st.warning("Notes not saved. Try again.")

    reviewers = call(client.list_reviewers) or []
    if not reviewers:
        st.info("No reviewers available.")
        return
    names = {r["reviewer_id"]: r["display_name"] for r in reviewers}
    reviewer_id = st.selectbox("Reviewer:", options=list(names), format_func=lambda rid: names[rid])

    if st.button("Submit for Review", type="primary"):
        result = call(client.submit, workflow_id(), reviewer_id, notes or None)
        if result is not None:
            set_workflow(result["workflow"])
            st.rerun()


def render_submitted():
    client = get_client()
    st.title("Submitted for Review")
    st.success("Your report was submitted. Your instructor's feedback will appear below.")

    report_id = session().get("report_id")
    if report_id:
        col1, col2 = st.columns(2)
        with col1:
            pdf = call(client.export_report, report_id, "pdf")
            if pdf:
                st.download_button("Download PDF", pdf, f"report_{report_id}.pdf", "application/pdf")
        with col2:
            md = call(client.export_report, report_id, "markdown")
            if md:
                st.download_button("Download Markdown", md, f"report_{report_id}.md", "text/markdown")

    st.markdown("---")
    st.subheader("Feedback History")
    for submission in call(client.learner_history, st.session_state.learner_id) or []:
        feedback = submission.get("feedback")
        st.write(f"**Submission {submission['submission_id'][:8]}...:** {submission['status']}")
        if feedback:
            outcome = "Approved" if feedback["is_approved"] else "Revision requested"
            st.write(f"{outcome}: {feedback['feedback_text']}")
            if feedback.get("revision_notes"):
                st.write(f"**Revision notes:** {feedback['revision_notes']}")

    if st.button("Start New Analysis"):
        st.session_state.workflow = None
        st.session_state.report = None
        st.rerun()


def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()

    if st.session_state.error_message:
        st.error(st.session_state.error_message)
        st.session_state.error_message = None

    workflow = st.session_state.workflow
    if workflow is None:
        render_start()
        return

    step = workflow["step"]
    if step == "selecting_region":
        render_region()
    elif step == "selecting_symptoms":
        render_symptoms()
    elif step == "awaiting_diagnosis":
        render_questions()
    elif step == "reviewing_results":
        render_results()
    elif step == "composing_report":
        render_report()
    else:
        render_submitted()


if __name__ == "__main__":
    main()
