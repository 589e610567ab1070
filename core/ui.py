# app/core/ui.py
from __future__ import annotations

import logging
from typing import Iterable

import streamlit as st

logger = logging.getLogger(__name__)

_TOAST_ICONS = {
    "success": "✅",
    "failure": "❌",
    "validation": "⚠️",
    "info": "ℹ️",
}


def handle_error(e: Exception, user_message: str = "An error occurred.") -> None:
    logger.error(user_message, exc_info=e)
    st.error(user_message)


def show_notices(notices: Iterable) -> None:
    """Render queued (kind, message) notices as non-blocking toasts."""
    for notice in notices:
        st.toast(notice.message, icon=_TOAST_ICONS.get(notice.kind, "ℹ️"))


def tagline(text: str) -> None:
    st.caption(text)
