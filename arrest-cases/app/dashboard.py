"""Arrest Cases — Streamlit dashboard.

Officers submit arrests through the intake form; court staff review the
live case list, search and filter it, read an AI summary and accept or
deny each case.
"""

from __future__ import annotations

import html as html_mod
import sys
from pathlib import Path

import streamlit as st

from app.cases import (
    NOT_PROVIDED,
    STATUS_FILTERS,
    CaseStatus,
    charge_severity,
    format_timestamp,
    parse_charges,
)
from app.context import AppContext, build_context
from app.intake import IntakeController, IntakeForm
from app.review import FILTER_WIDGET_DEFAULTS, ReviewDashboard, dashboard_for_session

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.auth import render_sign_out, require_session
from shared.log_setup import setup_logging
from shared.theme import (
    charge_row_html,
    render_nav_bar,
    render_theme_css,
    status_badge_html,
)
from shared.usage_tracker import monthly_summary

VIEW_OFFICER = "Officer Intake"
VIEW_REVIEW = "Court Staff Review"

_INTAKE_KEYS = ("in_arrested_user", "in_reason", "in_evidence", "in_dates", "in_context")

# ── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Arrest Cases — Dauphin County",
    layout="wide",
    initial_sidebar_state="expanded",
)

render_theme_css()


@st.cache_resource
def _get_context() -> AppContext:
    ctx = build_context()
    setup_logging(ctx.settings.log_level, ctx.settings.log_format)
    return ctx


ctx = _get_context()
settings = ctx.settings
session = require_session(settings.initial_auth_token, settings.session_hours)

render_nav_bar("Arrest Cases")
render_sign_out()

# ── Session state init ───────────────────────────────────────────────────────

if "intake_form" not in st.session_state:
    st.session_state.intake_form = IntakeForm()
form: IntakeForm = st.session_state.intake_form
review: ReviewDashboard = dashboard_for_session(st.session_state, ctx.store, session)

# ── Sidebar ──────────────────────────────────────────────────────────────────

with st.sidebar:
    view = st.radio("View", [VIEW_OFFICER, VIEW_REVIEW], key="view")
    st.caption(f"User ID: `{session.uid}`")
    if session.is_anonymous:
        st.caption("Signed in anonymously.")

    with st.expander("API usage this month"):
        usage = monthly_summary()
        st.metric("AI summaries", usage["gemini"]["calls"])
        st.metric("AI summary cost", f"${usage['gemini']['cost_usd']:.4f}")
        st.metric("Discord notifications", usage["discord"]["sent"])
        if usage["discord"]["failed"]:
            st.caption(f"{usage['discord']['failed']} notification(s) failed this month.")


# ── Officer intake ───────────────────────────────────────────────────────────


def _render_charge_picker() -> None:
    st.markdown('<div class="section-label">Charges</div>', unsafe_allow_html=True)
    term = st.text_input("Search charges", key="charge_search", placeholder="e.g. theft")
    options = form.available_charges(term)
    pick_col, add_col = st.columns([5, 1])
    with pick_col:
        choice = st.selectbox(
            "Charge",
            options,
            index=None,
            placeholder="Select a charge" if options else "No matching charges",
            label_visibility="collapsed",
            key="charge_choice",
        )
    with add_col:
        if st.button("Add", disabled=choice is None, use_container_width=True):
            form.add_charge(choice)
            st.session_state.pop("charge_choice", None)
            st.rerun()

    for i, charge in enumerate(form.charges):
        c1, c2 = st.columns([10, 1])
        c1.markdown(f"- {html_mod.escape(charge)}")
        if c2.button("✕", key=f"rm_charge_{i}", help="Remove charge"):
            form.remove_charge(charge)
            st.rerun()


def _render_intake() -> None:
    st.subheader("Submit New Arrest")

    flash = st.session_state.pop("_intake_flash", None)
    if flash:
        st.success(flash)

    _render_charge_picker()

    with st.form("intake"):
        arrested_user = st.text_input("Arrested User *", key="in_arrested_user")
        reason_text = st.text_input(
            "Reason (if no charges selected)", key="in_reason",
            disabled=bool(form.charges),
        )
        evidence = st.text_area(
            "Evidence URLs (comma-separated)", key="in_evidence", height=80,
        )
        dates = st.text_input(
            "Court Dates Availability (comma-separated)", key="in_dates",
            placeholder="2024-02-15, 2024-02-20",
        )
        context = st.text_area("Context of Incident", key="in_context", height=120)
        submitted = st.form_submit_button("Submit Arrest", type="primary")

    if not submitted:
        return

    form.arrested_user = arrested_user
    form.reason_text = reason_text
    form.evidence_urls = evidence
    form.court_dates_availability = dates
    form.context_of_incident = context

    result = IntakeController(ctx.store, session, ctx.webhook).submit(form)
    if not result.success:
        st.error(result.message)
        return

    for key in _INTAKE_KEYS:
        st.session_state.pop(key, None)
    st.session_state["_intake_flash"] = f"{result.message} Case ID: {result.case_id}"
    st.rerun()


# ── Court staff review ───────────────────────────────────────────────────────


def _on_search_id() -> None:
    review.set_search_id(st.session_state.search_id)
    st.session_state.search_name = review.search_name


def _on_search_name() -> None:
    review.set_search_name(st.session_state.search_name)
    st.session_state.search_id = review.search_id


def _on_status_filter() -> None:
    review.set_status_filter(st.session_state.status_filter)


def _on_clear_filters() -> None:
    review.clear_filters()
    st.session_state.update(FILTER_WIDGET_DEFAULTS)


def _render_banner() -> None:
    if not review.message:
        return
    msg_col, btn_col = st.columns([10, 1])
    with msg_col:
        if review.message_type == "success":
            st.success(review.message)
        else:
            st.error(review.message)
    with btn_col:
        if st.button("Dismiss", key="dismiss_msg"):
            review.dismiss_message()
            st.rerun()


@st.fragment(run_every="5s")
def _render_case_list() -> None:
    cases = review.visible_cases()
    st.caption(f"{len(cases)} of {len(review.cases)} cases")
    if not cases:
        st.info("No cases match the current filters.")
        return

    for case in cases:
        with st.container(border=True):
            c1, c2, c3 = st.columns([4, 2, 1])
            with c1:
                st.markdown(
                    f"**{html_mod.escape(case.arrested_user)}** "
                    f"{status_badge_html(case.status.value)}",
                    unsafe_allow_html=True,
                )
                st.markdown(
                    f'<div class="case-meta">{html_mod.escape(case.reason)}</div>',
                    unsafe_allow_html=True,
                )
            with c2:
                st.markdown(
                    f'<div class="case-meta">Case ID: {html_mod.escape(case.id)}<br>'
                    f"Submitted: {format_timestamp(case.submission_date)}</div>",
                    unsafe_allow_html=True,
                )
            with c3:
                if st.button("Review", key=f"review_{case.id}"):
                    review.review_case(case.id)
                    st.rerun()


def _render_detail() -> None:
    case = review.selected_case
    if case is None:
        return

    with st.container(border=True):
        head_col, close_col = st.columns([10, 1])
        with head_col:
            st.markdown(
                f"### {html_mod.escape(case.arrested_user)} "
                f"{status_badge_html(case.status.value)}",
                unsafe_allow_html=True,
            )
        with close_col:
            if st.button("Close", key="close_detail"):
                review.close_case()
                st.rerun()

        left, right = st.columns(2)
        with left:
            st.markdown(f"**Case ID:** {case.id}")
            st.markdown(f"**Officer ID:** {case.officer_id}")
            st.markdown(f"**Submitted:** {format_timestamp(case.submission_date)}")
            st.markdown("**Charges:**")
            charges = parse_charges(case.reason)
            st.markdown(
                "".join(charge_row_html(c, charge_severity(c)) for c in charges)
                or NOT_PROVIDED,
                unsafe_allow_html=True,
            )
        with right:
            st.markdown("**Evidence:**")
            for url in case.evidence_urls or ["None provided."]:
                st.markdown(f"- {url}")
            st.markdown("**Court Dates Availability:**")
            for d in case.court_dates_availability or ["None provided."]:
                st.markdown(f"- {d}")
        if case.context_of_incident:
            st.markdown("**Context of Incident:**")
            st.write(case.context_of_incident)

        if not case.is_pending:
            st.markdown(
                f"**Reviewed by:** {case.reviewer_id or 'N/A'} on "
                f"{format_timestamp(case.review_date)}"
            )

        # AI summary
        if st.button("Generate AI Summary", key="gen_summary"):
            with st.spinner("Generating summary..."):
                review.generate_summary(settings)
        if review.summary is not None:
            if review.summary.ok:
                st.markdown(
                    f'<div class="summary-panel">{html_mod.escape(review.summary.text)}</div>',
                    unsafe_allow_html=True,
                )
            else:
                st.error(review.summary.error)

        notes = st.text_area(
            "Court Staff Notes",
            value=case.court_staff_notes,
            key=f"notes_{case.id}",
        )
        if st.button("Save Notes", key="save_notes"):
            review.save_notes(case.id, notes)
            st.rerun()

        if not case.is_pending:
            return

        armed = review.pending_decision
        a_col, d_col, c_col = st.columns(3)
        with a_col:
            label = "Confirm Accept" if armed == CaseStatus.ACCEPTED else "Accept"
            if st.button(label, key="btn_accept", type="primary"):
                review.press_decision(CaseStatus.ACCEPTED, notes)
                st.rerun()
        with d_col:
            label = "Confirm Deny" if armed == CaseStatus.DENIED else "Deny"
            if st.button(label, key="btn_deny"):
                review.press_decision(CaseStatus.DENIED, notes)
                st.rerun()
        with c_col:
            if armed is not None and st.button("Cancel", key="btn_cancel"):
                review.cancel_decision()
                st.rerun()
        if armed is not None:
            st.warning(f"Click again to confirm: mark this case as {armed.value}.")


def _render_review() -> None:
    review.open()
    st.subheader("Review Submitted Arrests")
    _render_banner()

    counts = review.status_counts()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Total", counts["total"])
    m2.metric("Pending", counts["pending"])
    m3.metric("Accepted", counts["accepted"])
    m4.metric("Denied", counts["denied"])

    f1, f2, f3, f4 = st.columns([2, 2, 2, 1])
    with f1:
        st.selectbox(
            "Status", STATUS_FILTERS, key="status_filter", on_change=_on_status_filter,
        )
    with f2:
        st.text_input("Search by Case ID", key="search_id", on_change=_on_search_id)
    with f3:
        st.text_input("Search by Name", key="search_name", on_change=_on_search_name)
    with f4:
        st.markdown("<div style='height: 1.8rem'></div>", unsafe_allow_html=True)
        st.button(
            "Clear filters", key="clear_filters", on_click=_on_clear_filters,
            disabled=not review.has_filters, use_container_width=True,
        )

    _render_detail()
    _render_case_list()


# ── Main ─────────────────────────────────────────────────────────────────────

if view == VIEW_OFFICER:
    review.close()
    _render_intake()
else:
    _render_review()
