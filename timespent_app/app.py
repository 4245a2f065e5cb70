"""Streamlit entry point: page registry and router."""

from __future__ import annotations

import streamlit as st

PAGES = {}

PREFERRED_ORDER = (
    "Timespent Report",
    "Setup / Connection",
)


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def main():
    st.sidebar.title("Jira Timespent Report")
    pages = [name for name in PREFERRED_ORDER if name in PAGES]
    pages += sorted(name for name in PAGES if name not in PREFERRED_ORDER)
    if not pages:
        st.write("No pages registered yet.")
        return
    # Without credentials the setup page is the only useful one
    if "Setup / Connection" in pages and "jira_credentials" not in st.session_state:
        default = pages.index("Setup / Connection")
    else:
        default = 0
    page = st.sidebar.selectbox("Page", pages, index=default)
    PAGES[page]()


if __name__ == "__main__":
    main()
