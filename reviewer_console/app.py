"""
Reviewer Console.

GOVERNANCE:
- NO skip option (every submission MUST be resolved)
- NO auto-approval
- A revision request REQUIRES revision notes
- Reviewer ID recorded with every decision
"""

from datetime import datetime

import httpx
import streamlit as st

from api.client import AnalyzerAPIError, AnalyzerClient
from config import get_settings

settings = get_settings()

st.set_page_config(
    page_title="Reviewer - Clinical Analyzer",
    page_icon="",
    layout="wide",
)


@st.cache_resource
def get_client() -> AnalyzerClient:
    return AnalyzerClient(settings.api_base_url)


def init_session_state():
    """Initialize session state variables."""
    if "reviewer_id" not in st.session_state:
        st.session_state.reviewer_id = settings.demo_reviewer_id
    if "selected_submission" not in st.session_state:
        st.session_state.selected_submission = None
    if "pending_submissions" not in st.session_state:
        st.session_state.pending_submissions = []
    if "review_stats" not in st.session_state:
        st.session_state.review_stats = {"approved": 0, "revision": 0}
    if "error_message" not in st.session_state:
        st.session_state.error_message = None
    if "success_message" not in st.session_state:
        st.session_state.success_message = None


def call(action, *args, **kwargs):
    """Run a client call, keeping the error for display on failure."""
    try:
        return action(*args, **kwargs)
    except AnalyzerAPIError as e:
        st.session_state.error_message = e.message
    except httpx.HTTPError as e:
        st.session_state.error_message = f"API unavailable: {e}"
    return None


def fetch_pending_submissions() -> bool:
    """Fetch submissions waiting for this reviewer."""
    pending = call(get_client().review_queue, st.session_state.reviewer_id)
    if pending is None:
        return False
    st.session_state.pending_submissions = pending
    return True


def send_feedback(submission_id: str, feedback: dict, outcome: str) -> bool:
    if call(get_client().submit_feedback, submission_id, feedback) is None:
        return False
    st.session_state.review_stats[outcome] += 1
    return True


def render_dashboard():
    """Render the main dashboard."""
    st.title("Reviewer Dashboard")

    col1, col2 = st.columns([2, 1])
    with col1:
        reviewer_id = st.text_input("Reviewer ID", value=st.session_state.reviewer_id)
        if reviewer_id != st.session_state.reviewer_id:
            st.session_state.reviewer_id = reviewer_id
            fetch_pending_submissions()
    with col2:
        if st.button("Refresh Queue", use_container_width=True):
            fetch_pending_submissions()

    st.markdown("---")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Pending Review", len(st.session_state.pending_submissions))
    with col2:
        st.metric("Approved (This Session)", st.session_state.review_stats["approved"])
    with col3:
        st.metric("Revisions Requested (This Session)", st.session_state.review_stats["revision"])

    unread = [
        n for n in call(get_client().notifications, st.session_state.reviewer_id) or []
        if not n["is_read"]
    ]
    if unread:
        with st.expander(f"Notifications ({len(unread)})"):
            for notification in unread:
                st.write(f"**{notification['title']}** {notification['message']}")

    st.markdown("---")

    if not st.session_state.pending_submissions:
        st.info("No submissions pending review. Click 'Refresh Queue' to check again.")
        return

    st.subheader("Pending Submissions")
    for submission in st.session_state.pending_submissions:
        with st.container():
            col1, col2, col3, col4 = st.columns([2, 2, 2, 1])
            with col1:
                st.write(f"**Submission:** {submission['submission_id'][:8]}...")
            with col2:
                st.write(f"**Learner:** {submission['learner_id']}")
            with col3:
                submitted_at = datetime.fromisoformat(submission["submitted_at"].replace("Z", "+00:00"))
                st.write(f"**Submitted:** {submitted_at.strftime('%Y-%m-%d %H:%M')}")
            with col4:
                if st.button("Review", key=f"review_{submission['submission_id']}"):
                    call(get_client().open_submission, submission["submission_id"])
                    st.session_state.selected_submission = submission["submission_id"]
                    st.rerun()
            st.markdown("---")


def render_review():
    """Render the review screen for a selected submission."""
    submission_id = st.session_state.selected_submission
    detail = call(get_client().get_submission, submission_id)

    if not detail:
        st.error("Failed to load submission details.")
        if st.button("Back to Dashboard"):
            st.session_state.selected_submission = None
            st.rerun()
        return

    report = detail["report"]
    session = detail["session"]

    col1, col2 = st.columns([3, 1])
    with col1:
        st.title(report["title"])
        st.caption(f"Learner {session['learner_id']} | Region: {session.get('region_name') or 'N/A'}")
    with col2:
        if st.button("Back to Queue"):
            st.session_state.selected_submission = None
            st.rerun()

    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("SOAP Note")
        for section in ("subjective", "objective", "assessment", "plan"):
            st.write(f"**{section.capitalize()}**")
            st.text(report["soap"][section])
        if detail["submission"].get("notes"):
            st.write("**Learner notes**")
            st.write(detail["submission"]["notes"])
    with col2:
        st.subheader("Differential Considered")
        for diagnosis in session.get("diagnoses", []):
            marker = " (selected)" if diagnosis.get("is_selected") else ""
            st.write(f"- {diagnosis['name']}{marker}: {diagnosis['probability']}, {diagnosis['confidence']:.0%}")
        st.subheader("Transcript")
        for entry in session.get("transcript", []):
            st.write(f"**Q{entry['step_number']}:** {entry['question']}")
            st.write(f"**A:** {entry['answer']}")

    st.markdown("---")

    st.subheader("Your Decision")
    st.caption("GOVERNANCE: All submissions MUST be resolved. No skip option.")

    approve_tab, revision_tab = st.tabs(["Approve", "Request Revision"])

    with approve_tab:
        with st.form("approve_form"):
            feedback_text = st.text_area("Feedback (required):", height=100)
            grade = st.text_input("Grade (optional):")
            strengths = st.text_area("Strengths (one per line):")
            submitted = st.form_submit_button("Approve", type="primary")

            if submitted:
                if not feedback_text.strip():
                    st.error("Feedback is required.")
                elif send_feedback(
                    submission_id,
                    {
                        "feedback_text": feedback_text,
                        "is_approved": True,
                        "grade": grade or None,
                        "strengths": [s for s in strengths.splitlines() if s.strip()],
                    },
                    "approved",
                ):
                    st.session_state.success_message = "Decision recorded: APPROVED"
                    st.session_state.selected_submission = None
                    fetch_pending_submissions()
                    st.rerun()

    with revision_tab:
        st.warning("GOVERNANCE: Revision notes are MANDATORY when requesting a revision.")
        with st.form("revision_form"):
            feedback_text = st.text_area("Feedback (required):", height=100)
            revision_notes = st.text_area("Revision notes (required):", height=100)
            suggested = st.text_input("Suggested diagnosis (optional):")
            reasoning = st.text_area("Reasoning for the suggestion (optional):")
            improvements = st.text_area("Areas for improvement (one per line):")
            submitted = st.form_submit_button("Request Revision", type="secondary")

            if submitted:
                errors = []
                if not feedback_text.strip():
                    errors.append("Feedback is required.")
                if not revision_notes.strip():
                    errors.append("Revision notes are required.")

                if errors:
                    for error in errors:
                        st.error(error)
                elif send_feedback(
                    submission_id,
                    {
                        "feedback_text": feedback_text,
                        "revision_requested": True,
                        "revision_notes": revision_notes,
                        "suggested_diagnosis": suggested or None,
                        "suggested_diagnosis_reasoning": reasoning or None,
                        "areas_for_improvement": [s for s in improvements.splitlines() if s.strip()],
                    },
                    "revision",
                ):
                    st.session_state.success_message = "Decision recorded: REVISION REQUESTED"
                    st.session_state.selected_submission = None
                    fetch_pending_submissions()
                    st.rerun()


def main():
    """Main application entry point."""
    init_session_state()

    if st.session_state.error_message:
        st.error(st.session_state.error_message)
        st.session_state.error_message = None

    if st.session_state.success_message:
        st.success(st.session_state.success_message)
        st.session_state.success_message = None

    if not st.session_state.pending_submissions:
        fetch_pending_submissions()

    if st.session_state.selected_submission:
        render_review()
    else:
        render_dashboard()


if __name__ == "__main__":
    main()
