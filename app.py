from __future__ import annotations
import asyncio
import logging
import streamlit as st
import pandas as pd
from termreport.errors import ConversationBusy, ParseFailure
from termreport.export import export_reports_to_excel_bytes
from termreport.ingest import load_students
from termreport.llm import GeminiModel
from termreport.models import CRITERION_KEYS, ReferenceFile, Role, StudentStatus
from termreport.orchestrator import ConversationOrchestrator
from termreport.report import score_label
from termreport.store import StudentStore, default_units, add_unit, remove_unit, rename_unit, update_criterion
from termreport.utils import load_settings, setup_logging

SETTINGS = load_settings()
setup_logging(SETTINGS.log_level)
logger = logging.getLogger("termreport.app")

st.set_page_config(page_title="Term reports", layout="wide")
st.title("Term report assistant")
st.caption("Upload a grade sheet with student names, scores (1-8) and notes. The assistant interviews you about each student and drafts the term comment.")
# =========================

# Session state
# =========================
if "orchestrator" not in st.session_state:
    st.session_state["orchestrator"] = ConversationOrchestrator(
        store=StudentStore(),
        model=GeminiModel.from_settings(SETTINGS),
        units=default_units(),
    )
    st.session_state["active_file"] = None

orch: ConversationOrchestrator = st.session_state["orchestrator"]
store = orch.store
units = orch.units

if not SETTINGS.api_key:
    st.warning("GEMINI_API_KEY is not set: the assistant cannot generate reports.")

STATUS_BADGE = {
    StudentStatus.IDLE: "Waiting for chat...",
    StudentStatus.GENERATING: "Drafting...",
    StudentStatus.COMPLETED: "Done",
    StudentStatus.ERROR: "Failed to generate",
}
# =========================

# Units & criteria
# =========================
with st.expander("Course units & criteria configuration", expanded=st.session_state["active_file"] is None):
    for idx, unit in enumerate(list(units)):
        kp = unit.id
        st.markdown(f"#### Unit {idx + 1}")
        c1, c2 = st.columns([5, 1])
        with c1:
            title = st.text_input("Unit title", value=unit.title, key=f"{kp}__title", placeholder="e.g. Unit 3: Persuasive writing")
            if title != unit.title:
                rename_unit(units, unit.id, title)
        with c2:
            if st.button("Remove", key=f"{kp}__rm"):
                remove_unit(units, unit.id)
                st.rerun()

        cols = st.columns(len(CRITERION_KEYS))
        for col, key in zip(cols, CRITERION_KEYS):
            crit = unit.criteria[key]
            with col:
                enabled = st.checkbox(f"Criterion {key}", value=crit.enabled, key=f"{kp}__{key}__on")
                notes = st.text_area("Notes", value=crit.notes, key=f"{kp}__{key}__notes", disabled=not enabled, height=80)
                up = st.file_uploader(
                    "Task clarification",
                    type=["pdf", "txt", "md", "csv"],
                    key=f"{kp}__{key}__file",
                    disabled=not enabled,
                )
                ref = ReferenceFile(name=up.name, mime_type=up.type or "", data=up.getvalue()) if up else None
                update_criterion(units, unit.id, key, enabled=enabled, notes=notes, reference_file=ref)

    if st.button("Add unit"):
        add_unit(units)
        st.rerun()
# =========================

# Upload
# =========================
upload = st.file_uploader("Grade sheet (Excel/CSV)", type=["xlsx", "xlsm", "csv"], accept_multiple_files=False)

if upload is not None and upload.name != st.session_state["active_file"]:
    try:
        students = load_students(upload.getvalue(), upload.name)
    except ParseFailure as e:
        logger.error("Failed to parse %s: %s", upload.name, e)
        st.error("Failed to parse the spreadsheet. Please make sure it has a column with student names.")
    else:
        store.replace_all(students)
        st.session_state["active_file"] = upload.name
        orch.announce_roster(upload.name)

if st.session_state["active_file"]:
    c1, c2 = st.columns([4, 1])
    with c1:
        counts = store.counts()
        st.info(f'{st.session_state["active_file"]}: {len(store)} students, {counts["completed"]} completed, {counts["error"]} failed')
    with c2:
        if st.button("Clear file"):
            store.clear()
            orch.reset()
            st.session_state["active_file"] = None
            st.rerun()

left, right = st.columns([2, 1])
# =========================

# Students
# =========================
with left:
    if len(store):
        st.subheader("Students")
        for s in store:
            with st.container(border=True):
                h1, h2, h3 = st.columns([3, 2, 1])
                h1.markdown(f"**{s.name}**")
                h2.write(f"Score {s.score} ({score_label(s.score)}) - {STATUS_BADGE[s.status]}")
                if s.status != StudentStatus.GENERATING and h3.button("Regenerate", key=f"{s.id}__regen", disabled=orch.busy):
                    with st.spinner(f"Drafting a report for {s.name}..."):
                        asyncio.run(orch.regenerate(s.id))
                    st.rerun()
                if s.generated_summary:
                    st.write(s.generated_summary)
                with st.expander("Assessment data"):
                    st.text("\n".join(s.raw_context) or "-")

        st.download_button(
            "Download reports (Excel)",
            data=export_reports_to_excel_bytes(store),
            file_name="term_reports.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        with st.expander("Status table"):
            st.dataframe(pd.DataFrame(store.status_snapshot()), width="stretch", hide_index=True)
# =========================

# Chat
# =========================
with right:
    st.subheader("Assistant")
    for turn in orch.turns:
        with st.chat_message("user" if turn.role == Role.USER else "assistant"):
            st.markdown(turn.text)

    prompt = st.chat_input("Ask for tweaks (e.g. \"Make Alice's comment shorter\")", disabled=orch.busy)
    if prompt:
        try:
            with st.spinner("Thinking..."):
                asyncio.run(orch.handle_message(prompt))
        except ConversationBusy:
            st.warning("Please wait for the previous message to finish.")
        st.rerun()
