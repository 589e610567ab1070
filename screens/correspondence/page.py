# screens/correspondence/page.py
from __future__ import annotations

import traceback
from typing import Optional

import streamlit as st
from sqlalchemy.engine import Engine

from core.settings import load_settings
from core.db import get_engine, init_db
from core.ui import handle_error, show_notices, tagline
from screens.correspondence.controller import CorrespondenceController, level_options
from screens.correspondence.records import Record, level_label
from screens.correspondence.store import build_store

CATEGORY_LABELS = {
    "enquiry": "Enquiry Correspondence",
    "student": "Student Correspondence",
}


def _k(s: str) -> str:
    """Per-page key namespace to avoid collisions if rendered twice."""
    return f"correspondence__{s}"


def _get_controller(engine: Optional[Engine]) -> CorrespondenceController:
    ctrl = st.session_state.get(_k("controller"))
    if ctrl is None:
        settings = load_settings()
        ctrl = CorrespondenceController(
            build_store(settings, engine),
            page_size=settings.ui.page_size,
            author=st.session_state.get("user", {}).get("name") or settings.ui.operator_name,
            date_format=settings.ui.date_format,
        )
        st.session_state[_k("controller")] = ctrl
    return ctrl


# ────────────────────────────────────────────────────────────────────────────────
# Widget callbacks (run before the rerun that follows the interaction)
# ────────────────────────────────────────────────────────────────────────────────

def _on_category(ctrl: CorrespondenceController) -> None:
    ctrl.set_category(st.session_state[_k("category")])
    st.session_state[_k("level")] = "" if ctrl.min_level is None else str(ctrl.min_level)


def _on_search(ctrl: CorrespondenceController) -> None:
    ctrl.set_search(st.session_state[_k("search")])


def _on_level(ctrl: CorrespondenceController) -> None:
    ctrl.set_min_level(st.session_state[_k("level")])


def _on_add_note(ctrl: CorrespondenceController, record: Record) -> None:
    st.session_state[_k("note_buffer")] = ""
    ctrl.start_note(record)


def _on_view_history(ctrl: CorrespondenceController, record: Record) -> None:
    ctrl.view_history(record)


# ────────────────────────────────────────────────────────────────────────────────
# Sections
# ────────────────────────────────────────────────────────────────────────────────

def _render_filters(ctrl: CorrespondenceController) -> None:
    st.radio(
        "Category",
        options=list(CATEGORY_LABELS),
        format_func=CATEGORY_LABELS.get,
        horizontal=True,
        key=_k("category"),
        on_change=_on_category,
        args=(ctrl,),
        label_visibility="collapsed",
    )
    col1, col2 = st.columns([3, 2])
    with col1:
        st.text_input(
            "Search",
            placeholder="Search by name, email, or phone...",
            key=_k("search"),
            on_change=_on_search,
            args=(ctrl,),
        )
    options = level_options(ctrl.category)
    labels = dict(options)
    with col2:
        st.selectbox(
            "Level",
            options=[code for code, _ in options],
            format_func=labels.get,
            key=_k("level"),
            on_change=_on_level,
            args=(ctrl,),
        )


def _render_table(ctrl: CorrespondenceController) -> None:
    is_enquiry = ctrl.category == "enquiry"
    items = ctrl.page_items()
    pager = ctrl.paginator
    noun = "Enquiries" if is_enquiry else "Students"

    st.markdown(f"#### {noun} ({pager.total})")
    if pager.total == 0:
        st.info("No records found.")
        return
    st.caption(pager.range_label())

    widths = [3, 3, 2, 2, 2] if is_enquiry else [3, 3, 2, 2]
    header = st.columns(widths)
    titles = ["Enquiry" if is_enquiry else "Student", "Email", "Phone"]
    if is_enquiry:
        titles.append("Level")
    titles.append("Actions")
    for col, title in zip(header, titles):
        col.markdown(f"**{title}**")

    for record in items:
        cols = st.columns(widths)
        cols[0].markdown(f"{record.display_name or '—'}")
        cols[0].caption(f"Father: {record.father_name or 'N/A'}")
        cols[1].write(record.email or "Not provided")
        cols[2].write(record.phone_number or "Not provided")
        if is_enquiry:
            cols[3].write(level_label(record))
        with cols[-1]:
            st.button(
                "View History",
                key=_k(f"hist_{record.id}"),
                on_click=_on_view_history,
                args=(ctrl, record),
            )
            st.button(
                "Add Note",
                key=_k(f"add_{record.id}"),
                on_click=_on_add_note,
                args=(ctrl, record),
                type="primary",
            )


def _render_pagination(ctrl: CorrespondenceController) -> None:
    pager = ctrl.paginator
    if pager.total_pages <= 1:
        return
    window = pager.window()
    cols = st.columns(len(window) + 2)
    cols[0].button(
        "Previous",
        key=_k("prev"),
        disabled=not pager.has_previous,
        on_click=ctrl.previous_page,
    )
    for i, page in enumerate(window, start=1):
        if page is None:
            cols[i].markdown("…")
            continue
        cols[i].button(
            str(page),
            key=_k(f"page_{page}"),
            type="primary" if page == pager.page else "secondary",
            on_click=ctrl.go_to_page,
            args=(page,),
        )
    cols[-1].button(
        "Next",
        key=_k("next"),
        disabled=not pager.has_next,
        on_click=ctrl.next_page,
    )


def _render_history_panel(ctrl: CorrespondenceController) -> None:
    result = ctrl.history
    record = ctrl.history_record
    if result is None or record is None:
        return
    with st.container(border=True):
        top_l, top_r = st.columns([5, 1])
        top_l.markdown(f"### Correspondence History — {record.display_name}")
        top_r.button("Close", key=_k("close_history"), on_click=ctrl.close_history)
        if not result.ok:
            st.error(result.message)
        elif not result.entries:
            st.info(result.message)
        else:
            for entry in result.entries:
                by = f" · {entry.author}" if entry.author else ""
                st.markdown(f"**{entry.index}.** {entry.date_label}{by} — {entry.remark}")


@st.dialog("Add Correspondence", width="large", dismissible=False)
def _note_dialog(ctrl: CorrespondenceController) -> None:
    composer = ctrl.composer
    record = composer.target
    noun = "enquiry" if ctrl.category == "enquiry" else "student"

    st.markdown(f"**{record.display_name}**")
    c1, c2 = st.columns(2)
    c1.caption(f"Email: {record.email or 'Not provided'}")
    c2.caption(f"Phone: {record.phone_number or 'Not provided'}")
    if ctrl.category == "enquiry":
        st.caption(f"Current Level: {level_label(record)}")

    text = st.text_area(
        "Correspondence Note",
        key=_k("note_buffer"),
        placeholder=f"Enter your note about this {noun}...",
        height=120,
        disabled=composer.is_submitting,
    )
    st.caption(f"This note will be saved to the {noun}'s correspondence history.")

    if composer.validation_message:
        st.warning(composer.validation_message)

    b1, b2 = st.columns(2)
    if b1.button("Cancel", key=_k("note_cancel"), disabled=composer.is_submitting):
        ctrl.cancel_note()
        st.rerun()
    if b2.button("Save Note", key=_k("note_save"), type="primary", disabled=composer.is_submitting):
        with st.spinner("Saving..."):
            notice = ctrl.submit_note(text)
        if notice is not None and notice.kind == "success":
            st.rerun()
        elif notice is not None and notice.kind == "validation":
            st.warning(notice.message)
        elif notice is not None:
            show_notices(ctrl.drain_notices())
            st.error(notice.message)


# ────────────────────────────────────────────────────────────────────────────────
# Main
# ────────────────────────────────────────────────────────────────────────────────
def render(engine: Optional[Engine] = None) -> None:
    settings = load_settings()
    if engine is None and settings.store.backend == "db":
        engine = get_engine(settings.db.url, settings.db.echo)
        init_db(engine)

    st.title("✉️ Correspondence Management")
    tagline("Track correspondence with enquiries and students.")

    try:
        ctrl = _get_controller(engine)
    except Exception as e:
        handle_error(e, "Could not connect to the record store.")
        st.code(traceback.format_exc())
        return

    show_notices(ctrl.drain_notices())

    try:
        _render_filters(ctrl)
        if not ctrl.loaded:
            with st.spinner("Loading records..."):
                ctrl.ensure_loaded()
        _render_table(ctrl)
        _render_pagination(ctrl)
        _render_history_panel(ctrl)
    except Exception:
        st.error("Correspondence view failed.")
        st.code(traceback.format_exc())

    if ctrl.composer.is_open:
        _note_dialog(ctrl)


# Always render on import so navigating away/back re-renders reliably.
render()
