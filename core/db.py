# app/core/db.py
from __future__ import annotations

import logging
from typing import Any

import streamlit as st
from sqlalchemy import create_engine, text as sa_text
from sqlalchemy.engine import Engine, Connection

log = logging.getLogger(__name__)


@st.cache_resource
def get_engine(url: str, echo: bool = False) -> Engine:
    """One engine per database URL for the whole Streamlit server process."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, echo=echo, connect_args=connect_args)
    log.info("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_db(engine: Engine) -> None:
    """Run every schema installer. Idempotent: safe on every page load."""
    from schemas.users_schema import install_schema as install_users
    from schemas.remarks_schema import install_schema as install_remarks

    install_users(engine)
    install_remarks(engine)


def _table_exists(conn: Connection, name: str) -> bool:
    try:
        row = conn.execute(
            sa_text("SELECT 1 FROM sqlite_master WHERE type='table' AND name=:n"),
            {"n": name},
        ).fetchone()
        return bool(row)
    except Exception:
        return False


# ────────────────────────────────────────────────────────────────────────────────
# app_settings key/value helpers
# ────────────────────────────────────────────────────────────────────────────────

def get_setting(conn: Connection, key: str, default: Any = None) -> Any:
    """Gets a setting value from the database."""
    if not _table_exists(conn, "app_settings"):
        return default
    row = conn.execute(
        sa_text("SELECT value FROM app_settings WHERE key = :key"),
        {"key": key}
    ).fetchone()
    if row:
        return row[0]
    return default


def set_setting(conn: Connection, key: str, value: Any) -> None:
    """Saves a setting value to the database."""
    conn.execute(sa_text("""
        INSERT INTO app_settings (key, value)
        VALUES (:key, :value)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
    """), {"key": key, "value": str(value)})
