# app.py: streamlit run app.py
from __future__ import annotations

import logging

import streamlit as st

from core.settings import configure_logging, load_settings
from core.db import get_engine, init_db

log = logging.getLogger(__name__)

settings = load_settings()
configure_logging(settings)

st.set_page_config(page_title=settings.app_name, page_icon="🏫", layout="wide")

engine = get_engine(settings.db.url, settings.db.echo)
try:
    init_db(engine)
except Exception as e:
    log.error(f"Schema installation failed: {e}")
    st.error(f"❌ Database schema could not be installed: {e}")
    st.stop()

pages = [
    st.Page("screens/correspondence/page.py", title="Correspondence", icon="✉️", default=True),
    st.Page("screens/students/page.py", title="Students & Enquiries", icon="👨‍🎓"),
]
st.navigation(pages).run()
