"""Connection setup page: collect Jira credentials for the report page."""

from __future__ import annotations

import streamlit as st

from timespent_app.app import register_page
from timespent_app.core.config import Credentials


def secret_credentials() -> tuple[str | None, str | None, str | None]:
    """Server, user, and token from a ``[jira]`` secrets section or the top level."""
    jira_secrets = st.secrets.get("jira", {})
    server = jira_secrets.get("JIRA_SERVER") or st.secrets.get("JIRA_SERVER")
    user = (
        jira_secrets.get("AUTH_USER")
        or st.secrets.get("AUTH_USER")
        or jira_secrets.get("JIRA_EMAIL")
        or st.secrets.get("JIRA_EMAIL")
    )
    token = (
        jira_secrets.get("AUTH_TOKEN")
        or st.secrets.get("AUTH_TOKEN")
        or jira_secrets.get("JIRA_API_TOKEN")
        or st.secrets.get("JIRA_API_TOKEN")
    )
    return server, user, token


@register_page("Setup / Connection")
def setup_page():
    st.title("Jira Connection Setup")
    st.caption("Enter credentials (use secrets manager in production).")

    secret_server, secret_user, secret_token = secret_credentials()
    server = st.text_input(
        "Jira Server URL",
        value=st.session_state.get("jira_server") or secret_server or "",
    )
    user = st.text_input(
        "Email / Username",
        value=st.session_state.get("jira_user") or secret_user or "",
    )
    token = st.text_input("API Token", type="password", value=secret_token or "")

    if st.button("Save Connection", type="primary"):
        if not (server and user and token):
            st.error("All fields required.")
            return
        st.session_state["jira_server"] = server
        st.session_state["jira_user"] = user
        st.session_state["jira_credentials"] = Credentials(user=user, token=token)
        st.success("Credentials saved.")

    if "jira_credentials" in st.session_state:
        st.info(f"Connected as {st.session_state['jira_credentials'].user}.")
