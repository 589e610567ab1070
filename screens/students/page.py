# screens/students/page.py
from __future__ import annotations

import io
import traceback
from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

from core.settings import load_settings
from core.db import _table_exists, get_engine, get_setting, init_db, set_setting
from screens.students.db import (
    create_user,
    get_profile,
    list_directory,
    set_approval,
    set_enquiry_level,
    soft_delete_user,
)
from screens.students.importer import enquiry_template, import_enquiries


# ────────────────────────────────────────────────────────────────────────────────
# Small helpers
# ────────────────────────────────────────────────────────────────────────────────

def _k(s: str) -> str:
    """Per-page key namespace to avoid collisions if rendered twice."""
    return f"students__{s}"


def _ensure_engine(engine: Optional[Engine]) -> Engine:
    if engine is not None:
        return engine
    settings = load_settings()
    return get_engine(settings.db.url, settings.db.echo)


def _users_table_exists(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            return _table_exists(conn, "users")
    except Exception:
        return False


# ────────────────────────────────────────────────────────────────────────────────
# Tabs
# ────────────────────────────────────────────────────────────────────────────────

def _render_directory(engine: Engine) -> None:
    st.subheader("Directory")
    with engine.connect() as conn:
        df = list_directory(conn)

    if df.empty:
        st.info("No student records yet. Use **Add Record** or **Import** to create enquiries.")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.markdown("---")
    st.markdown("### Update a record")
    ids = df["ID"].tolist()
    labels = dict(zip(df["ID"], df["Name"] + " <" + df["Email"] + ">"))
    user_id = st.selectbox("Record", ids, format_func=labels.get, key=_k("edit_id"))
    if user_id is None:
        return

    with engine.connect() as conn:
        prof = get_profile(conn, int(user_id))
    if not prof:
        st.warning("Record not found.")
        return

    c1, c2, c3 = st.columns(3)
    with c1:
        approved = st.checkbox("Approved", value=bool(prof.get("is_approved")), key=_k(f"appr_{user_id}"))
    with c2:
        level = st.number_input(
            "Enquiry level", min_value=1, max_value=5,
            value=int(prof.get("enquiry_level") or 1), key=_k(f"lvl_{user_id}"),
        )
    with c3:
        st.metric("Account status", prof["account_status"])

    b1, b2 = st.columns(2)
    if b1.button("💾 Save", type="primary", key=_k("save_record")):
        with engine.begin() as conn:
            set_approval(conn, int(user_id), approved)
            set_enquiry_level(conn, int(user_id), int(level))
        st.success("✅ Record updated")
        st.rerun()
    if b2.button("🗑️ Delete", key=_k("delete_record")):
        with engine.begin() as conn:
            soft_delete_user(conn, int(user_id))
        st.success("Record removed from the directory")
        st.rerun()

    with st.expander("Profile details"):
        st.json({k: v for k, v in prof.items() if v not in (None, "")})


def _render_add_record(engine: Engine, rounds: int) -> None:
    st.subheader("Add Record")
    with st.form(key=_k("add_form"), clear_on_submit=True):
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name*")
        last_name = c2.text_input("Last name*")
        email = c1.text_input("Email*")
        phone = c2.text_input("Phone number")
        father = c1.text_input("Father name")
        program = c2.selectbox("Program", ["", "ICS", "ICOM", "Pre Engineering", "Pre Medical"])
        level = c1.number_input("Enquiry level", min_value=1, max_value=5, value=1)
        approved = c2.checkbox("Approved (admitted student)")
        submitted = st.form_submit_button("Create Record", type="primary")

    if submitted:
        try:
            with engine.begin() as conn:
                uid = create_user(conn, {
                    "first_name": first_name,
                    "last_name": last_name,
                    "email": email,
                    "phone_number": phone,
                    "father_name": father,
                    "program": program,
                    "enquiry_level": int(level),
                    "is_approved": approved,
                    "family_info": {"fatherName": father} if father else None,
                }, rounds=rounds)
            st.success(f"✅ Created record #{uid}")
        except ValueError as e:
            st.error(str(e))
        except Exception as e:
            st.error(f"Failed to create record: {e} (Is the email unique?)")


def _render_import(engine: Engine, rounds: int) -> None:
    st.subheader("Import Enquiries")
    st.download_button(
        "⬇️ Download CSV template",
        data=enquiry_template().to_csv(index=False).encode("utf-8"),
        file_name="enquiries_template.csv",
        mime="text/csv",
        key=_k("tpl_dl"),
    )
    upload = st.file_uploader("Upload CSV", type=["csv"], key=_k("upload"))
    if upload is None:
        return

    try:
        df = pd.read_csv(io.BytesIO(upload.getvalue()), dtype=str)
    except Exception as e:
        st.error(f"Could not read CSV: {e}")
        return
    st.dataframe(df.head(20), use_container_width=True, hide_index=True)

    if st.button("📥 Import", type="primary", key=_k("do_import")):
        with engine.begin() as conn:
            default_level = int(get_setting(conn, "import_default_level", 1))
            created, skipped, errors = import_enquiries(conn, df, default_level, rounds=rounds)
        st.success(f"✅ Imported {created} enquiries ({skipped} skipped)")
        if errors:
            with st.expander(f"{len(errors)} issue(s)", expanded=True):
                for err in errors:
                    st.write(f"- {err}")


def _render_settings(engine: Engine) -> None:
    st.subheader("⚙️ Settings")
    with engine.connect() as conn:
        default_level = st.number_input(
            "Default enquiry level for imported rows",
            min_value=1, max_value=5,
            value=int(get_setting(conn, "import_default_level", 1)),
            key=_k("import_default_level"),
        )
    if st.button("💾 Save Settings", type="primary", key=_k("save_settings")):
        with engine.begin() as conn:
            set_setting(conn, "import_default_level", int(default_level))
        st.success("✅ Settings saved")


# ────────────────────────────────────────────────────────────────────────────────
# Main
# ────────────────────────────────────────────────────────────────────────────────
def render(engine: Optional[Engine] = None, **kwargs) -> None:
    engine = _ensure_engine(engine)
    settings = load_settings()
    rounds = settings.security.bcrypt_rounds

    st.title("👨‍🎓 Students & Enquiries")

    if not _users_table_exists(engine):
        st.warning("⚠️ Directory tables not found in database.")
        if st.button("🔧 Install Schema", type="primary", key=_k("install_btn")):
            try:
                with st.spinner("Creating database tables..."):
                    init_db(engine)
                st.success("✅ Schema installed successfully!")
                st.rerun()
            except Exception as e:
                st.error(f"❌ Failed to install schema: {e}")
                st.code(traceback.format_exc())
        return

    tab_list, tab_add, tab_import, tab_settings = st.tabs(
        ["Directory", "Add Record", "Import", "Settings"]
    )

    with tab_list:
        try:
            _render_directory(engine)
        except Exception:
            st.error("Directory failed.")
            st.code(traceback.format_exc())

    with tab_add:
        try:
            _render_add_record(engine, rounds)
        except Exception:
            st.error("Add Record failed.")
            st.code(traceback.format_exc())

    with tab_import:
        try:
            _render_import(engine, rounds)
        except Exception:
            st.error("Import failed.")
            st.code(traceback.format_exc())

    with tab_settings:
        try:
            _render_settings(engine)
        except Exception:
            st.error("Settings tab failed.")
            st.code(traceback.format_exc())


# Always render on import so navigating away/back re-renders reliably.
render()
