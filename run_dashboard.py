"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``timespent_app/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

from importlib import import_module
from pathlib import Path

import streamlit as st

from timespent_app.app import main
from timespent_app.core.config import Credentials

st.set_page_config(layout="wide")


def _auto_init_credentials():
    """Pick up Jira credentials from Streamlit secrets if available."""
    if "jira_credentials" in st.session_state:
        return
    from timespent_app.pages.setup import secret_credentials

    server, user, token = secret_credentials()
    if user and token:
        if server:
            st.session_state["jira_server"] = server
        st.session_state["jira_user"] = user
        st.session_state["jira_credentials"] = Credentials(user=user, token=token)
        st.sidebar.info("Using Jira credentials from secrets.")
    else:
        st.sidebar.warning("Jira secrets not found. Please use the Setup page.")


PAGES_DIR = Path(__file__).parent / "timespent_app" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    import_module(f"timespent_app.pages.{py.stem}")

_auto_init_credentials()

if __name__ == "__main__":
    main()
